"""Slot labels and business-hour arithmetic.

A slot label is a 12-hour clock string such as ``"9:00 AM"`` or ``"7:00 PM"``.
Labels carry no date or zone; they only become an instant once combined with
a calendar date in the business timezone.
"""

import re
from datetime import date, datetime, time, timedelta, timezone

from coaching.core import config
from coaching.core.errors import ValidationError

WEEKDAY_START_HOUR = 9
WEEKEND_START_HOUR = 10
END_HOUR = 19
SLOT_INCREMENT_MINUTES = 30

_LABEL_PATTERN = re.compile(r'^(1[0-2]|[1-9]):([0-5][0-9]) ?([AaPp][Mm])$')


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def is_weekend(day: date) -> bool:
    return day.weekday() >= 5


def format_slot_label(slot_time: time) -> str:
    hour12 = slot_time.hour % 12 or 12
    meridiem = 'PM' if slot_time.hour >= 12 else 'AM'
    return f'{hour12}:{slot_time.minute:02d} {meridiem}'


def parse_slot_label(label: str) -> time:
    if not isinstance(label, str):
        raise ValidationError(f'Slot label must be a string, got {type(label).__name__}.', code='invalid_slot_label')

    match = _LABEL_PATTERN.match(label.strip())
    if match is None:
        raise ValidationError(f'Unrecognized slot label: {label!r}.', code='invalid_slot_label')

    hour = int(match.group(1)) % 12
    if match.group(3).upper() == 'PM':
        hour += 12

    return time(hour, int(match.group(2)))


def normalize_slot_label(label: str) -> str:
    return format_slot_label(parse_slot_label(label))


def business_slots_for_day(day: date) -> list[str]:
    start_hour = WEEKEND_START_HOUR if is_weekend(day) else WEEKDAY_START_HOUR
    current = datetime.combine(day, time(start_hour, 0))
    last_start = datetime.combine(day, time(END_HOUR, 0))

    slots: list[str] = []
    while current <= last_start:
        slots.append(format_slot_label(current.time()))
        current += timedelta(minutes=SLOT_INCREMENT_MINUTES)

    return slots


def to_absolute(day: date, label: str) -> datetime:
    return datetime.combine(day, parse_slot_label(label), tzinfo=config.business_timezone())


def slot_label_for(instant: datetime) -> str:
    if instant.tzinfo is None:
        raise ValidationError('Timestamps must be timezone-aware.', code='naive_timestamp')
    return format_slot_label(instant.astimezone(config.business_timezone()).time())


def business_date_for(instant: datetime) -> date:
    return instant.astimezone(config.business_timezone()).date()


def day_range(day: date) -> tuple[datetime, datetime]:
    """Return ``[start, end)`` of ``day`` in the business timezone.

    Both bounds are built from wall-clock midnight so DST days come out as
    23 or 25 hours long.
    """
    tz = config.business_timezone()
    start = datetime.combine(day, time(0, 0), tzinfo=tz)
    end = datetime.combine(day + timedelta(days=1), time(0, 0), tzinfo=tz)
    return start, end


def week_dates(week_offset: int, today: date) -> list[date]:
    # weeks start on Sunday; weekday() is Monday=0
    days_since_sunday = (today.weekday() + 1) % 7
    start_of_week = today - timedelta(days=days_since_sunday) + timedelta(weeks=week_offset)
    return [start_of_week + timedelta(days=offset) for offset in range(7)]
