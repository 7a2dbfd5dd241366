from datetime import datetime
from typing import Callable

from fastapi import Depends, HTTPException, status
from sqlalchemy.orm import Session

from coaching.core.errors import PreconditionViolation, ValidationError
from coaching.database import get_db
from coaching.scheduling.engine import AvailabilityEngine, BookingResult
from coaching.scheduling.slots import utc_now
from coaching.scheduling.store import ScheduleStore

ERROR_STATUS_CODES = {
    'appointment_not_found': status.HTTP_404_NOT_FOUND,
    'not_owner': status.HTTP_403_FORBIDDEN,
    'slot_conflict': status.HTTP_409_CONFLICT,
    'slot_unavailable': status.HTTP_409_CONFLICT,
    'initial_already_booked': status.HTTP_409_CONFLICT,
}


def get_clock() -> Callable[[], datetime]:
    return utc_now


def get_store(db: Session = Depends(get_db)) -> ScheduleStore:
    return ScheduleStore(db)


def get_engine(
    store: ScheduleStore = Depends(get_store),
    clock: Callable[[], datetime] = Depends(get_clock),
) -> AvailabilityEngine:
    return AvailabilityEngine(store, clock)


def http_error_for(error: PreconditionViolation | ValidationError) -> HTTPException:
    status_code = ERROR_STATUS_CODES.get(error.code, status.HTTP_400_BAD_REQUEST)
    return HTTPException(status_code=status_code, detail=error.message)


def unwrap(result: BookingResult):
    if not result.ok:
        raise http_error_for(result.error)
    return result.appointment
