"""
Booking request validation.

Checks run in a fixed order and the first failure is raised. The matching
slot rows are locked before the ledger is read for overlaps, so a second
request for the same hours waits until the first one has committed. The
ledger calls ensure_no_overlap again after reserving, which covers databases
that ignore FOR UPDATE.
"""

from datetime import date, time, datetime
from typing import Optional

import sqlalchemy as sa

from clubhouse import db
from clubhouse.exceptions import ConflictError, NotFoundError, ValidationError
from clubhouse.models import Booking, Facility
from clubhouse.slots.capacity import ensure_available, find_matching_slots


def get_bookable_facility(facility_id: int) -> Facility:
    facility = db.session.get(Facility, facility_id)
    if not facility or not facility.is_active:
        raise NotFoundError('Facility not found or inactive.', field='facility_id')
    return facility


def find_overlapping_booking(facility_id: int, booking_date: date, start: time, end: time,
                             exclude_booking_id: Optional[int] = None) -> Optional[Booking]:
    """First confirmed booking of the facility whose [start, end) overlaps the given one."""
    query = sa.select(Booking).where(
        Booking.facility_id == facility_id,
        Booking.booking_date == booking_date,
        Booking.is_deleted.is_(False),
        Booking.start_time < end,
        Booking.end_time > start,
    )
    if exclude_booking_id is not None:
        query = query.where(Booking.id != exclude_booking_id)
    return db.session.scalars(query.order_by(Booking.start_time).limit(1)).first()


def ensure_no_overlap(facility_id: int, booking_date: date, start: time, end: time,
                      exclude_booking_id: Optional[int] = None):
    overlapping = find_overlapping_booking(facility_id, booking_date, start, end, exclude_booking_id)
    if overlapping is not None:
        raise ConflictError(
            f'The selected time overlaps an existing booking '
            f'({overlapping.start_time:%H:%M}-{overlapping.end_time:%H:%M}).',
            field='start_time'
        )


def validate_booking_request(facility_id: int, booking_date: date, start: time, end: time,
                             exclude_booking_id: Optional[int] = None, now: Optional[datetime] = None):
    """
    Validate a booking request against the clock, the ledger and the slots.

    Args:
        facility_id: Facility being booked
        booking_date: Date of the booking
        start: Start time, on the hour
        end: End time, on the hour and after start
        exclude_booking_id: Booking being edited, ignored by the overlap check
        now: Current time, defaults to datetime.now()

    Returns:
        The matching slots, locked for the rest of the transaction

    Raises:
        NotFoundError: facility missing or inactive
        ValidationError: date, alignment or ordering problem
        ConflictError: overlaps another confirmed booking
        CapacityError: slots missing or full
    """
    now = now or datetime.now()
    get_bookable_facility(facility_id)

    if booking_date < now.date():
        raise ValidationError('Booking date cannot be in the past.', field='booking_date')

    if start.minute != 0 or end.minute != 0:
        raise ValidationError('Bookings must start and end on the hour.', field='start_time')

    if end <= start:
        raise ValidationError('Invalid time range. End time must be after start time.', field='end_time')

    if datetime.combine(booking_date, start) <= now:
        raise ValidationError('Start time has already passed.', field='start_time')

    slots = find_matching_slots(facility_id, booking_date, start, end)
    ensure_no_overlap(facility_id, booking_date, start, end, exclude_booking_id)
    ensure_available(slots, start, end)
    return slots


def validate_edit_duration(booking: Booking, start: time, end: time):
    """An edit may move a booking but not change how long it is."""
    new_duration = datetime.combine(booking.booking_date, end) - datetime.combine(booking.booking_date, start)
    if new_duration != booking.duration:
        raise ValidationError('Booking duration cannot be changed when editing.', field='end_time')
