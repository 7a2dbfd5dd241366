"""SQLAlchemy-backed persistence for blocks, appointments and scores.

Every public method is one logical read or one committed write. SQLAlchemy
failures are rolled back and re-raised as ``StorageError``; a uniqueness
violation on an appointment write becomes ``SlotConflict``.
"""

from datetime import datetime, timezone

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from coaching.core.errors import SlotConflict, StorageError
from coaching.models.appointment import STATUS_SCHEDULED, Appointment, SessionNote
from coaching.models.assessment import AssessmentScore
from coaching.models.availability import AvailabilityBlock

STORAGE_UNAVAILABLE_MESSAGE = 'Database unavailable. Verify DATABASE_URL and database credentials.'


def to_storage(instant: datetime) -> datetime:
    """Aware datetime -> naive UTC, the form every timestamp column holds."""
    return instant.astimezone(timezone.utc).replace(tzinfo=None)


def from_storage(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class ScheduleStore:

    def __init__(self, db: Session):
        self.db = db

    def _storage_error(self) -> StorageError:
        self.db.rollback()
        return StorageError(STORAGE_UNAVAILABLE_MESSAGE)

    def get_blocks_for_day_range(self, start: datetime, end: datetime) -> list[AvailabilityBlock]:
        try:
            return self.db.query(AvailabilityBlock).filter(
                AvailabilityBlock.start_time >= to_storage(start),
                AvailabilityBlock.start_time < to_storage(end),
            ).order_by(AvailabilityBlock.start_time.asc()).all()
        except SQLAlchemyError as exc:
            raise self._storage_error() from exc

    def get_block(self, start: datetime) -> AvailabilityBlock | None:
        try:
            return self.db.query(AvailabilityBlock).filter(
                AvailabilityBlock.start_time == to_storage(start),
            ).first()
        except SQLAlchemyError as exc:
            raise self._storage_error() from exc

    def create_block(self, start: datetime, end: datetime) -> AvailabilityBlock:
        existing = self.get_block(start)
        if existing is not None:
            return existing

        block = AvailabilityBlock(start_time=to_storage(start), end_time=to_storage(end))
        try:
            self.db.add(block)
            self.db.commit()
            self.db.refresh(block)
        except SQLAlchemyError as exc:
            raise self._storage_error() from exc
        return block

    def delete_block(self, start: datetime) -> None:
        try:
            self.db.query(AvailabilityBlock).filter(
                AvailabilityBlock.start_time == to_storage(start),
            ).delete(synchronize_session=False)
            self.db.commit()
        except SQLAlchemyError as exc:
            raise self._storage_error() from exc

    def get_scheduled_appointments_for_day_range(self, start: datetime, end: datetime) -> list[Appointment]:
        try:
            return self.db.query(Appointment).filter(
                Appointment.status == STATUS_SCHEDULED,
                Appointment.start_time >= to_storage(start),
                Appointment.start_time < to_storage(end),
            ).order_by(Appointment.start_time.asc()).all()
        except SQLAlchemyError as exc:
            raise self._storage_error() from exc

    def get_appointment(self, appointment_id: int) -> Appointment | None:
        try:
            return self.db.get(Appointment, appointment_id)
        except SQLAlchemyError as exc:
            raise self._storage_error() from exc

    def get_appointments_for_user(self, user_id: int) -> list[Appointment]:
        try:
            return self.db.query(Appointment).filter(
                Appointment.user_id == user_id,
            ).order_by(Appointment.start_time.desc()).all()
        except SQLAlchemyError as exc:
            raise self._storage_error() from exc

    def create_appointment(
        self,
        *,
        user_id: int,
        service_type: str,
        start: datetime,
        end: datetime,
        notes: str | None = None,
    ) -> Appointment:
        appointment = Appointment(
            user_id=user_id,
            service_type=service_type,
            start_time=to_storage(start),
            end_time=to_storage(end),
            status=STATUS_SCHEDULED,
            notes=notes,
        )
        try:
            self.db.add(appointment)
            self.db.commit()
            self.db.refresh(appointment)
        except IntegrityError as exc:
            self.db.rollback()
            raise SlotConflict('This time is already booked.') from exc
        except SQLAlchemyError as exc:
            raise self._storage_error() from exc
        return appointment

    def update_appointment_status(self, appointment_id: int, status: str) -> Appointment | None:
        try:
            appointment = self.db.get(Appointment, appointment_id)
            if appointment is None:
                return None
            appointment.status = status
            self.db.commit()
            self.db.refresh(appointment)
        except IntegrityError as exc:
            self.db.rollback()
            raise SlotConflict('This time is already booked.') from exc
        except SQLAlchemyError as exc:
            raise self._storage_error() from exc
        return appointment

    def update_appointment_times(self, appointment_id: int, start: datetime, end: datetime) -> Appointment | None:
        try:
            appointment = self.db.get(Appointment, appointment_id)
            if appointment is None:
                return None
            appointment.start_time = to_storage(start)
            appointment.end_time = to_storage(end)
            self.db.commit()
            self.db.refresh(appointment)
        except IntegrityError as exc:
            self.db.rollback()
            raise SlotConflict('This time is already booked.') from exc
        except SQLAlchemyError as exc:
            raise self._storage_error() from exc
        return appointment

    def add_session_note(
        self,
        appointment_id: int,
        *,
        title: str,
        content: str,
        file_url: str | None = None,
        file_name: str | None = None,
    ) -> SessionNote:
        note = SessionNote(
            appointment_id=appointment_id,
            title=title,
            content=content,
            file_url=file_url,
            file_name=file_name,
        )
        try:
            self.db.add(note)
            self.db.commit()
            self.db.refresh(note)
        except SQLAlchemyError as exc:
            raise self._storage_error() from exc
        return note

    def get_scores_for_user(self, user_id: int) -> list[AssessmentScore]:
        try:
            return self.db.query(AssessmentScore).filter(
                AssessmentScore.user_id == user_id,
            ).order_by(AssessmentScore.created_at.asc(), AssessmentScore.id.asc()).all()
        except SQLAlchemyError as exc:
            raise self._storage_error() from exc

    def create_score(self, breakdown: dict, answers: dict, test_type: str, user_id: int) -> AssessmentScore:
        score = AssessmentScore(
            user_id=user_id,
            type=test_type,
            score_breakdown=breakdown,
            user_answers=dict(answers),
        )
        try:
            self.db.add(score)
            self.db.commit()
            self.db.refresh(score)
        except SQLAlchemyError as exc:
            raise self._storage_error() from exc
        return score
