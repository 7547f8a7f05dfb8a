"""
Slot generation for facilities.

Hourly slots are created in bulk ahead of demand; class slots overlay a single
weekday window onto the slots that already exist.
"""

import calendar
from collections import defaultdict
from datetime import date, datetime, time, timedelta
from typing import Optional, Dict, Any

import sqlalchemy as sa
from flask import current_app

from clubhouse import db
from clubhouse.exceptions import NotFoundError, ValidationError
from clubhouse.models import Facility, Slot, Booking


WEEKDAYS = ['monday', 'tuesday', 'wednesday', 'thursday', 'friday', 'saturday', 'sunday']


def add_months(start: date, months: int) -> date:
    """Same day `months` later, clamped to the last day of a shorter month."""
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    day = min(start.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def parse_weekday(value) -> int:
    """Accept 0-6 (Monday first) or a weekday name."""
    if isinstance(value, int) or (isinstance(value, str) and value.strip().isdigit()):
        day = int(value)
        if 0 <= day <= 6:
            return day
    elif isinstance(value, str) and value.strip().lower() in WEEKDAYS:
        return WEEKDAYS.index(value.strip().lower())
    raise ValidationError(f'Invalid day of week: {value!r}', field='day_of_week')


def operating_hours():
    """Start hours of the generated hourly slots, both ends inclusive."""
    opening = current_app.config.get('SLOT_OPENING_HOUR', 8)
    # A slot must end on the same day
    last_start = min(current_app.config.get('SLOT_LAST_START_HOUR', 22), 22)
    return range(opening, last_start + 1)


def get_active_facility(facility_id: int) -> Facility:
    facility = db.session.get(Facility, facility_id)
    if not facility or not facility.is_active:
        raise NotFoundError('Facility not found or inactive.', field='facility_id')
    return facility


def _check_generation_bounds(months: int, capacity: int):
    max_months = current_app.config.get('SLOT_MAX_MONTHS', 12)
    max_capacity = current_app.config.get('SLOT_MAX_CAPACITY', 100)
    if not isinstance(months, int) or not 1 <= months <= max_months:
        raise ValidationError(f'Months must be between 1 and {max_months}.', field='months')
    if not isinstance(capacity, int) or not 1 <= capacity <= max_capacity:
        raise ValidationError(f'Capacity must be between 1 and {max_capacity}.', field='capacity')


def latest_slot_date(facility_id: int) -> Optional[date]:
    """Latest day with hourly slots. Class slots created past that day do not count."""
    return db.session.scalar(
        sa.select(sa.func.max(Slot.slot_date)).where(
            Slot.facility_id == facility_id,
            Slot.is_class_slot == False,  # noqa: E712
        )
    )


def generation_start_date(facility_id: int, start_date: Optional[date] = None) -> date:
    """
    First day to generate for a facility.

    With existing hourly slots generation continues the day after the latest
    one, so repeated runs extend the horizon. An explicit start date later
    than that wins.
    """
    start = start_date or datetime.now().date()
    latest = latest_slot_date(facility_id)
    if latest is not None:
        resume = latest + timedelta(days=1)
        if start_date is None or resume > start:
            start = resume
    return start


def generate_slots(facility_id: int, months: int, capacity: int,
                   start_date: Optional[date] = None) -> int:
    """
    Create hourly slots for every day in [start, start + months].

    Hours already covered by an existing slot, such as a class slot, are
    left untouched.

    Returns:
        Number of slots created
    """
    get_active_facility(facility_id)
    _check_generation_bounds(months, capacity)

    start = generation_start_date(facility_id, start_date)
    end = add_months(start, months)

    existing = defaultdict(list)
    for row in db.session.execute(
            sa.select(Slot.slot_date, Slot.start_time, Slot.end_time)
            .where(Slot.facility_id == facility_id,
                   Slot.slot_date >= start,
                   Slot.slot_date <= end)):
        existing[row.slot_date].append((row.start_time, row.end_time))

    created = 0
    try:
        day = start
        while day <= end:
            for hour in operating_hours():
                slot_start, slot_end = time(hour, 0), time(hour + 1, 0)
                if any(start_time < slot_end and end_time > slot_start
                       for start_time, end_time in existing[day]):
                    continue
                db.session.add(Slot(
                    facility_id=facility_id,
                    slot_date=day,
                    start_time=slot_start,
                    end_time=slot_end,
                    capacity=capacity,
                    remaining_capacity=capacity,
                    is_class_slot=False,
                ))
                created += 1
            day += timedelta(days=1)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    current_app.logger.info(f"Generated {created} slots for facility {facility_id} from {start} to {end}")
    return created


def _slot_has_booking(slot: Slot) -> bool:
    return db.session.scalar(
        sa.select(sa.func.count(Booking.id)).where(
            Booking.facility_id == slot.facility_id,
            Booking.booking_date == slot.slot_date,
            Booking.is_deleted == False,  # noqa: E712
            Booking.start_time < slot.end_time,
            Booking.end_time > slot.start_time,
        )
    ) > 0


def generate_class_slots(facility_id: int, months: int, capacity: int, day_of_week,
                         start: time, end: time, start_date: Optional[date] = None) -> Dict[str, Any]:
    """
    Overlay a weekly class window [start, end) onto a facility's slots.

    On every matching weekday in [start_date, start_date + months]:
    - slots overlapping the window with no booking get the class capacity and
      are flagged as class slots,
    - if any overlapping slot is already booked the day is skipped and reported,
    - with no overlapping slot a new class slot is created.

    Returns:
        Dictionary with 'created', 'updated' and 'skipped' (list of
        {'date', 'reason'} entries)
    """
    get_active_facility(facility_id)
    _check_generation_bounds(months, capacity)
    weekday = parse_weekday(day_of_week)
    if end <= start:
        raise ValidationError('End time must be after start time.', field='end_time')

    first_day = start_date or datetime.now().date()
    last_day = add_months(first_day, months)

    summary = {'created': 0, 'updated': 0, 'skipped': []}
    try:
        day = first_day
        while day <= last_day:
            if day.weekday() != weekday:
                day += timedelta(days=1)
                continue

            overlapping = db.session.scalars(
                sa.select(Slot).where(
                    Slot.facility_id == facility_id,
                    Slot.slot_date == day,
                    Slot.start_time < end,
                    Slot.end_time > start,
                ).order_by(Slot.start_time)
            ).all()

            if overlapping:
                if any(_slot_has_booking(slot) for slot in overlapping):
                    summary['skipped'].append({
                        'date': day.isoformat(),
                        'reason': f'Cannot create class on {day} from {start:%H:%M} to {end:%H:%M}. '
                                  f'Slot is already booked.'
                    })
                else:
                    for slot in overlapping:
                        slot.capacity = capacity
                        slot.remaining_capacity = capacity
                        slot.is_class_slot = True
                        summary['updated'] += 1
            else:
                db.session.add(Slot(
                    facility_id=facility_id,
                    slot_date=day,
                    start_time=start,
                    end_time=end,
                    capacity=capacity,
                    remaining_capacity=capacity,
                    is_class_slot=True,
                ))
                summary['created'] += 1
            day += timedelta(days=1)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    if summary['skipped']:
        current_app.logger.warning(f"Class slots for facility {facility_id}: skipped {len(summary['skipped'])} booked day(s)")
    return summary


def slot_to_dict(slot: Slot) -> Dict[str, Any]:
    return {
        'id': slot.id,
        'facility_id': slot.facility_id,
        'date': slot.slot_date.isoformat(),
        'start_time': slot.start_time.strftime('%H:%M'),
        'end_time': slot.end_time.strftime('%H:%M'),
        'capacity': slot.capacity,
        'remaining_capacity': slot.remaining_capacity,
        'is_class_slot': slot.is_class_slot,
        'fully_booked': slot.is_fully_booked,
    }
