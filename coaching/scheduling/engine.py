"""Availability engine: which half-hour slots are open, and the transitions
that change the answer (block toggles, bookings, cancellations, reschedules).

The engine holds no state of its own. It reads live blocks and scheduled
appointments through a ``ScheduleStore`` and takes "now" from an injected
clock so lead-time rules are deterministic under test.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Callable

from coaching.core import config
from coaching.core.errors import PreconditionViolation, SlotConflict
from coaching.models.appointment import STATUS_CANCELLED, STATUS_COMPLETED, STATUS_SCHEDULED, Appointment
from coaching.scheduling.slots import (
    SLOT_INCREMENT_MINUTES,
    business_slots_for_day,
    day_range,
    normalize_slot_label,
    slot_label_for,
    to_absolute,
    utc_now,
)
from coaching.scheduling.store import ScheduleStore, from_storage

SLOT_AVAILABLE = 'available'
SLOT_BLOCKED = 'blocked'
SLOT_BOOKED = 'booked'
SLOT_PASSED = 'passed'
SLOT_TOO_SOON = 'too_soon'


@dataclass(frozen=True)
class BookingResult:
    appointment: Appointment | None = None
    error: PreconditionViolation | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, appointment: Appointment) -> 'BookingResult':
        return cls(appointment=appointment)

    @classmethod
    def failure(cls, message: str, *, code: str) -> 'BookingResult':
        return cls(error=PreconditionViolation(message, code=code))


@dataclass(frozen=True)
class SlotState:
    label: str
    start_time: datetime
    status: str

    @property
    def is_available(self) -> bool:
        return self.status == SLOT_AVAILABLE


class AvailabilityEngine:

    def __init__(self, store: ScheduleStore, clock: Callable[[], datetime] = utc_now):
        self.store = store
        self.clock = clock
        self.lead_time = timedelta(hours=config.BOOKING_LEAD_TIME_HOURS)

    def _now(self, now: datetime | None) -> datetime:
        return now if now is not None else self.clock()

    def blocked_slots_for_day(self, day: date) -> set[str]:
        start, end = day_range(day)
        return {
            slot_label_for(from_storage(block.start_time))
            for block in self.store.get_blocks_for_day_range(start, end)
        }

    def booked_slots_for_day(self, day: date, exclude_appointment_id: int | None = None) -> set[str]:
        start, end = day_range(day)
        return {
            slot_label_for(from_storage(appointment.start_time))
            for appointment in self.store.get_scheduled_appointments_for_day_range(start, end)
            if appointment.id != exclude_appointment_id
        }

    def unavailable_slots_for_day(self, day: date, exclude_appointment_id: int | None = None) -> set[str]:
        return self.blocked_slots_for_day(day) | self.booked_slots_for_day(day, exclude_appointment_id)

    def meets_lead_time(self, slot_start: datetime, now: datetime | None = None) -> bool:
        return slot_start > self._now(now) + self.lead_time

    def is_bookable(
        self,
        day: date,
        slot_label: str,
        now: datetime | None = None,
        exclude_appointment_id: int | None = None,
    ) -> bool:
        label = normalize_slot_label(slot_label)
        if label not in business_slots_for_day(day):
            return False
        if not self.meets_lead_time(to_absolute(day, label), now):
            return False
        return label not in self.unavailable_slots_for_day(day, exclude_appointment_id)

    def day_grid(
        self,
        day: date,
        now: datetime | None = None,
        exclude_appointment_id: int | None = None,
    ) -> list[SlotState]:
        current = self._now(now)
        blocked = self.blocked_slots_for_day(day)
        booked = self.booked_slots_for_day(day, exclude_appointment_id)

        grid: list[SlotState] = []
        for label in business_slots_for_day(day):
            start = to_absolute(day, label)
            if label in booked:
                status = SLOT_BOOKED
            elif label in blocked:
                status = SLOT_BLOCKED
            elif start <= current:
                status = SLOT_PASSED
            elif not self.meets_lead_time(start, current):
                status = SLOT_TOO_SOON
            else:
                status = SLOT_AVAILABLE
            grid.append(SlotState(label=label, start_time=start, status=status))

        return grid

    def toggle_block(self, day: date, slot_label: str) -> bool:
        """Flip the admin block on one slot and return whether it is now blocked."""
        start = to_absolute(day, slot_label)

        if self.store.get_block(start) is not None:
            self.store.delete_block(start)
            return False

        self.store.create_block(start, start + timedelta(minutes=SLOT_INCREMENT_MINUTES))
        return True

    def book(
        self,
        user_id: int,
        service_type: str,
        day: date,
        slot_label: str,
        notes: str | None = None,
        duration_minutes: int | None = None,
        now: datetime | None = None,
    ) -> BookingResult:
        if not self.is_bookable(day, slot_label, now):
            return BookingResult.failure('This time is not available for booking.', code='slot_unavailable')

        start = to_absolute(day, slot_label)
        end = start + timedelta(minutes=duration_minutes or config.DEFAULT_APPOINTMENT_MINUTES)

        try:
            appointment = self.store.create_appointment(
                user_id=user_id,
                service_type=service_type,
                start=start,
                end=end,
                notes=notes,
            )
        except SlotConflict as exc:
            return BookingResult(error=exc)

        return BookingResult.success(appointment)

    def can_modify(self, appointment: Appointment, now: datetime | None = None) -> bool:
        if appointment.status != STATUS_SCHEDULED:
            return False
        return self.meets_lead_time(from_storage(appointment.start_time), now)

    def _modifiable(
        self,
        appointment_id: int,
        user_id: int | None,
        now: datetime | None,
        action: str,
    ) -> BookingResult:
        appointment = self.store.get_appointment(appointment_id)
        if appointment is None:
            return BookingResult.failure('Appointment not found.', code='appointment_not_found')
        if user_id is not None and appointment.user_id != user_id:
            return BookingResult.failure(
                f'Only the client who booked this appointment can {action} it.',
                code='not_owner',
            )
        if appointment.status != STATUS_SCHEDULED:
            return BookingResult.failure(
                f'Only scheduled appointments can be {action}d.',
                code='not_scheduled',
            )
        if not self.can_modify(appointment, now):
            return BookingResult.failure(
                f'Appointments can only be {action}d more than '
                f'{config.BOOKING_LEAD_TIME_HOURS} hours in advance.',
                code='modification_window_closed',
            )
        return BookingResult.success(appointment)

    def cancel(self, appointment_id: int, user_id: int | None = None, now: datetime | None = None) -> BookingResult:
        checked = self._modifiable(appointment_id, user_id, now, 'cancel')
        if not checked.ok:
            return checked

        appointment = self.store.update_appointment_status(appointment_id, STATUS_CANCELLED)
        return BookingResult.success(appointment)

    def reschedule(
        self,
        appointment_id: int,
        new_day: date,
        new_slot_label: str,
        user_id: int | None = None,
        now: datetime | None = None,
    ) -> BookingResult:
        checked = self._modifiable(appointment_id, user_id, now, 'reschedule')
        if not checked.ok:
            return checked

        appointment = checked.appointment
        if not self.is_bookable(new_day, new_slot_label, now, exclude_appointment_id=appointment.id):
            return BookingResult.failure('This time is not available for booking.', code='slot_unavailable')

        duration = appointment.end_time - appointment.start_time
        new_start = to_absolute(new_day, new_slot_label)

        try:
            updated = self.store.update_appointment_times(appointment.id, new_start, new_start + duration)
        except SlotConflict as exc:
            return BookingResult(error=exc)

        return BookingResult.success(updated)

    def complete(self, appointment_id: int) -> BookingResult:
        appointment = self.store.get_appointment(appointment_id)
        if appointment is None:
            return BookingResult.failure('Appointment not found.', code='appointment_not_found')
        if appointment.status != STATUS_SCHEDULED:
            return BookingResult.failure('Only scheduled appointments can be completed.', code='not_scheduled')

        return BookingResult.success(self.store.update_appointment_status(appointment_id, STATUS_COMPLETED))
