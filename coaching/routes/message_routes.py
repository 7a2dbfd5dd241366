import logging
import re
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from coaching.auth.dependencies import get_optional_user, require_admin
from coaching.core.errors import StorageError
from coaching.database import get_db
from coaching.models.message import MESSAGE_STATUSES, Message
from coaching.models.user import User
from coaching.scheduling.store import from_storage

router = APIRouter(tags=['messages'])

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')
MAX_SUBJECT_LENGTH = 200
MAX_MESSAGE_LENGTH = 5000


class CreateMessageRequest(BaseModel):
    name: str
    email: str
    subject: str
    message: str

    @field_validator('name', 'subject', 'message')
    @classmethod
    def validate_required_text(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('This field is required.')
        return normalized

    @field_validator('email')
    @classmethod
    def validate_email(cls, value: str) -> str:
        normalized = value.strip().lower()
        if not EMAIL_PATTERN.match(normalized):
            raise ValueError('A valid email address is required.')
        return normalized

    @field_validator('subject')
    @classmethod
    def validate_subject_length(cls, value: str) -> str:
        if len(value) > MAX_SUBJECT_LENGTH:
            raise ValueError(f'Subject must be {MAX_SUBJECT_LENGTH} characters or fewer.')
        return value

    @field_validator('message')
    @classmethod
    def validate_message_length(cls, value: str) -> str:
        if len(value) > MAX_MESSAGE_LENGTH:
            raise ValueError(f'Message must be {MAX_MESSAGE_LENGTH} characters or fewer.')
        return value


class UpdateMessageRequest(BaseModel):
    status: str

    @field_validator('status')
    @classmethod
    def validate_status(cls, value: str) -> str:
        normalized = value.strip().lower()
        if normalized not in MESSAGE_STATUSES:
            raise ValueError(f'Status must be one of: {", ".join(MESSAGE_STATUSES)}.')
        return normalized


class MessageResponse(BaseModel):
    id: int
    user_id: int | None = None
    name: str
    email: str
    subject: str
    message: str
    status: str
    created_at: datetime | None = None


def serialize_message(message: Message) -> MessageResponse:
    return MessageResponse(
        id=message.id,
        user_id=message.user_id,
        name=message.name,
        email=message.email,
        subject=message.subject,
        message=message.message,
        status=message.status,
        created_at=from_storage(message.created_at),
    )


@router.post('', response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
def create_message(
    data: CreateMessageRequest,
    user: User | None = Depends(get_optional_user),
    db: Session = Depends(get_db),
):
    message = Message(
        user_id=user.id if user is not None else None,
        name=data.name,
        email=data.email,
        subject=data.subject,
        message=data.message,
        status='unread',
    )
    try:
        db.add(message)
        db.commit()
        db.refresh(message)
    except SQLAlchemyError as exc:
        db.rollback()
        raise StorageError('Could not send message.') from exc

    logger.info('Contact message %s received', message.id)
    return serialize_message(message)


@router.get('', response_model=list[MessageResponse])
def list_messages(
    message_status: str | None = Query(default=None, alias='status'),
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    del admin
    try:
        query = db.query(Message)
        if message_status:
            query = query.filter(Message.status == message_status.strip().lower())
        messages = query.order_by(Message.created_at.desc(), Message.id.desc()).all()
    except SQLAlchemyError as exc:
        db.rollback()
        raise StorageError('Could not load messages.') from exc
    return [serialize_message(message) for message in messages]


@router.patch('/{message_id}', response_model=MessageResponse)
def update_message(
    message_id: int,
    data: UpdateMessageRequest,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    del admin
    try:
        message = db.get(Message, message_id)
        if message is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Message not found.')

        message.status = data.status
        db.commit()
        db.refresh(message)
    except SQLAlchemyError as exc:
        db.rollback()
        raise StorageError('Could not update message.') from exc
    return serialize_message(message)
