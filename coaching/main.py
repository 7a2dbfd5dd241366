import logging
import os

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from coaching.core import config
from coaching.core.errors import PreconditionViolation, SchedulingError, SlotConflict, StorageError, ValidationError
from coaching.database import Base, SessionLocal, engine, ensure_appointment_schema
from coaching.models import appointment, assessment, availability, message, service, user  # noqa: F401
from coaching.routes import appointment_routes, assessment_routes, availability_routes, message_routes, user_routes
from coaching.routes.common import ERROR_STATUS_CODES
from coaching.scheduling.services import seed_default_services

logging.basicConfig(
    level=config.LOG_LEVEL,
    format='%(asctime)s %(levelname)s %(name)s: %(message)s',
)

logger = logging.getLogger(__name__)

app = FastAPI(title='Coaching Practice API')

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)


def status_code_for(exc: SchedulingError) -> int:
    if isinstance(exc, StorageError):
        return 503
    if isinstance(exc, SlotConflict):
        return 409
    if isinstance(exc, (ValidationError, PreconditionViolation)):
        return ERROR_STATUS_CODES.get(exc.code, 400)
    return 500


async def handle_scheduling_error(request: Request, exc: SchedulingError) -> JSONResponse:
    status_code = status_code_for(exc)
    if status_code >= 500:
        logger.error('%s on %s: %s', exc.code, request.url.path, exc.message, exc_info=exc.__cause__)
    else:
        logger.info('%s on %s: %s', exc.code, request.url.path, exc.message)
    return JSONResponse(status_code=status_code, content={'detail': exc.message, 'code': exc.code})


def register_exception_handlers(application: FastAPI) -> None:
    application.add_exception_handler(SchedulingError, handle_scheduling_error)


register_exception_handlers(app)


@app.on_event('startup')
def initialize_database() -> None:
    config.validate_runtime_config()

    try:
        Base.metadata.create_all(bind=engine)
        ensure_appointment_schema()
    except SQLAlchemyError:
        logger.exception('Database initialization failed. Check DATABASE_URL and database credentials.')
        return

    if not config.SEED_DEFAULT_SERVICES:
        return

    db = SessionLocal()
    try:
        seed_default_services(db)
    except StorageError:
        logger.exception('Seeding the default service catalog failed.')
    finally:
        db.close()


@app.get('/')
def root():
    return {'status': 'Coaching Practice API Running'}


app.include_router(availability_routes.router, prefix='/availability')
app.include_router(appointment_routes.router, prefix='/appointments')
app.include_router(assessment_routes.router, prefix='/assessments')
app.include_router(user_routes.router, prefix='/users')
app.include_router(message_routes.router, prefix='/messages')


if __name__ == '__main__':
    import uvicorn

    uvicorn.run('coaching.main:app', host='0.0.0.0', port=int(os.getenv('PORT', '8000')))
