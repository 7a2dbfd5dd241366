from datetime import date, datetime, time, timedelta, timezone

import pytest

from coaching.core.errors import ValidationError
from coaching.scheduling.slots import (
    business_date_for,
    business_slots_for_day,
    day_range,
    format_slot_label,
    normalize_slot_label,
    parse_slot_label,
    slot_label_for,
    to_absolute,
    week_dates,
)


def test_weekday_has_twenty_one_slots_from_nine_to_seven() -> None:
    slots = business_slots_for_day(date(2026, 1, 5))

    assert len(slots) == 21
    assert slots[0] == '9:00 AM'
    assert slots[-1] == '7:00 PM'
    assert '12:00 PM' in slots


def test_weekend_has_nineteen_slots_from_ten_to_seven() -> None:
    saturday = business_slots_for_day(date(2026, 1, 10))
    sunday = business_slots_for_day(date(2026, 1, 11))

    assert len(saturday) == len(sunday) == 19
    assert saturday[0] == '10:00 AM'
    assert saturday[-1] == '7:00 PM'


@pytest.mark.parametrize('label', business_slots_for_day(date(2026, 1, 5)))
def test_every_business_label_round_trips(label: str) -> None:
    assert format_slot_label(parse_slot_label(label)) == label


# 2026-03-08 and 2026-11-01 are the Toronto DST transition days
@pytest.mark.parametrize('day', [date(2026, 1, 5), date(2026, 3, 8), date(2026, 11, 1)])
def test_absolute_start_maps_back_to_its_label(day: date) -> None:
    for label in business_slots_for_day(day):
        assert slot_label_for(to_absolute(day, label)) == label


@pytest.mark.parametrize(
    ('raw', 'expected'),
    [
        ('9:00 AM', time(9, 0)),
        ('12:00 PM', time(12, 0)),
        ('12:30 AM', time(0, 30)),
        ('7:00pm', time(19, 0)),
        (' 4:30 pm ', time(16, 30)),
    ],
)
def test_parse_slot_label_accepts_common_spellings(raw: str, expected: time) -> None:
    assert parse_slot_label(raw) == expected


def test_normalize_slot_label_returns_canonical_form() -> None:
    assert normalize_slot_label('4:30pm') == '4:30 PM'


@pytest.mark.parametrize('raw', ['', '13:00 PM', '9 AM', '09:00', '9:60 AM', 'noon'])
def test_parse_slot_label_rejects_malformed_labels(raw: str) -> None:
    with pytest.raises(ValidationError) as exception_info:
        parse_slot_label(raw)

    assert exception_info.value.code == 'invalid_slot_label'


def test_parse_slot_label_rejects_non_strings() -> None:
    with pytest.raises(ValidationError):
        parse_slot_label(900)


def test_to_absolute_uses_business_timezone() -> None:
    start = to_absolute(date(2026, 1, 5), '9:00 AM')

    # EST is UTC-5 in January
    assert start.astimezone(timezone.utc) == datetime(2026, 1, 5, 14, 0, tzinfo=timezone.utc)


def test_slot_label_for_converts_from_utc() -> None:
    assert slot_label_for(datetime(2026, 7, 6, 20, 30, tzinfo=timezone.utc)) == '4:30 PM'


def test_slot_label_for_rejects_naive_datetimes() -> None:
    with pytest.raises(ValidationError) as exception_info:
        slot_label_for(datetime(2026, 1, 5, 9, 0))

    assert exception_info.value.code == 'naive_timestamp'


def test_business_date_for_uses_business_timezone() -> None:
    # 02:00 UTC is still the previous evening in Toronto
    assert business_date_for(datetime(2026, 1, 6, 2, 0, tzinfo=timezone.utc)) == date(2026, 1, 5)


def test_day_range_spans_a_short_day_across_spring_forward() -> None:
    start, end = day_range(date(2026, 3, 8))

    assert end.astimezone(timezone.utc) - start.astimezone(timezone.utc) == timedelta(hours=23)


def test_week_dates_start_on_sunday() -> None:
    days = week_dates(0, date(2026, 1, 7))

    assert days[0] == date(2026, 1, 4)
    assert days[-1] == date(2026, 1, 10)
    assert len(days) == 7


def test_week_dates_applies_offset() -> None:
    assert week_dates(2, date(2026, 1, 4))[0] == date(2026, 1, 18)
