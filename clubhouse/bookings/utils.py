"""
Booking ledger: create, edit, cancel and list facility bookings.

Each write runs validation, the capacity change and the booking row change in
one transaction. A failure anywhere rolls the whole unit back, so slot
capacity and the ledger never disagree.
"""

from datetime import date, time, datetime
from decimal import Decimal
from typing import Optional, Dict, Any, List

import sqlalchemy as sa
from flask import current_app

from clubhouse import db
from clubhouse.audit import audit_log_create, audit_log_update, audit_log_delete
from clubhouse.bookings.fees import compute_fee, is_exclusive_role, resolve_requester, verify_fee
from clubhouse.bookings.validation import (
    ensure_no_overlap, get_bookable_facility, validate_booking_request, validate_edit_duration
)
from clubhouse.exceptions import (
    AlreadyCancelledError, BookingNotAllowedError, ConflictError, NotFoundError,
    PastBookingError, ValidationError
)
from clubhouse.members.utils import normalize_email
from clubhouse.models import Booking, Facility, Member, Slot
from clubhouse.slots.capacity import release, reserve
from clubhouse.slots.utils import slot_to_dict


def _member_email(member: Optional[Member]) -> Optional[str]:
    return member.email if member is not None else None


def check_payment_method(pay_by: Optional[str]) -> str:
    pay_by = pay_by or 'None'
    if pay_by not in current_app.config['PAYMENT_METHODS']:
        raise ValidationError(f'Invalid payment method: {pay_by}', field='pay_by')
    return pay_by


def can_book_for(member: Optional[Member], email: Optional[str]) -> bool:
    """Members book for their own email. Staff and admins book for anyone."""
    if member is None or member.is_desk:
        return True
    return normalize_email(email) == normalize_email(member.email)


def can_manage_booking(member: Optional[Member], booking: Booking) -> bool:
    """
    Check if a member can see or cancel a booking.

    Args:
        member: Acting member, None for system calls
        booking: Booking instance

    Returns:
        True for staff, admins and the member the booking was made for
    """
    if member is None or member.is_desk:
        return True
    return bool(booking.email) and normalize_email(booking.email) == normalize_email(member.email)


def get_booking(booking_id: int) -> Booking:
    booking = db.session.get(Booking, booking_id)
    if not booking:
        raise NotFoundError('Booking not found.', field='booking_id')
    return booking


def _check_changeable(booking: Booking, now: datetime):
    if booking.is_deleted:
        raise AlreadyCancelledError('Booking has already been cancelled.')
    if booking.starts_at <= now:
        raise PastBookingError('Cannot change a booking that has already started.', field='start_time')


def create_booking(facility_id: int, name: str, phone: str, email: Optional[str], booking_date: date,
                   start_time: time, end_time: time, fee_paid, pay_by: Optional[str] = 'None',
                   acting_member: Optional[Member] = None, now: Optional[datetime] = None) -> Booking:
    """
    Validate, price and record a booking, taking capacity from its slots.

    Args:
        facility_id: Facility to book
        name: Requester name
        phone: Requester phone
        email: Requester email, may be empty for walk-in guests
        booking_date: Date of the booking
        start_time: Start, on the hour
        end_time: End, on the hour
        fee_paid: Fee the client computed, must match the server fee
        pay_by: Payment method, 'None' when not paid yet
        acting_member: Logged-in member making the request
        now: Current time for the past-booking checks

    Returns:
        The committed Booking
    """
    pay_by = check_payment_method(pay_by)
    if not can_book_for(acting_member, email):
        raise BookingNotAllowedError('Members can only book for their own email.', field='email')

    try:
        validate_booking_request(facility_id, booking_date, start_time, end_time, now=now)
        facility = get_bookable_facility(facility_id)

        role, self_service = resolve_requester(email, acting_member)
        fee = verify_fee(compute_fee(facility, start_time, end_time, role, self_service), fee_paid)

        reserve(facility_id, booking_date, start_time, end_time, exclusive=is_exclusive_role(role))
        # re-read under the write lock taken by reserve
        ensure_no_overlap(facility_id, booking_date, start_time, end_time)

        booking = Booking(
            facility_id=facility_id,
            name=name,
            phone=phone,
            email=normalize_email(email) or None,
            booking_date=booking_date,
            start_time=start_time,
            end_time=end_time,
            fee_paid=fee,
            is_paid=fee == 0 or pay_by != 'None',
            pay_by=pay_by,
            is_deleted=False,
            created_by=_member_email(acting_member),
        )
        db.session.add(booking)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    current_app.logger.info(f"Booking {booking.id} created for facility {facility_id} on {booking_date} "
                            f"{start_time:%H:%M}-{end_time:%H:%M} ({role.value})")
    audit_log_create('Booking', booking.id,
                     f'Booked {facility.name} on {booking_date} {start_time:%H:%M}-{end_time:%H:%M} for {name}',
                     {'fee_paid': fee, 'pay_by': pay_by, 'role': role.value})
    return booking


def edit_booking(booking_id: int, booking_date: date, start_time: time, end_time: time,
                 name: Optional[str] = None, phone: Optional[str] = None, pay_by: Optional[str] = None,
                 acting_member: Optional[Member] = None, now: Optional[datetime] = None) -> Booking:
    """
    Move a confirmed future booking to another date or time of the same length.

    The old slots are released before the new request is validated, so a
    booking can move onto hours it already holds.
    """
    now = now or datetime.now()
    booking = get_booking(booking_id)
    _check_changeable(booking, now)
    validate_edit_duration(booking, start_time, end_time)
    if pay_by is not None:
        pay_by = check_payment_method(pay_by)

    changes = {
        'booking_date': booking.booking_date,
        'start_time': booking.start_time,
        'end_time': booking.end_time,
    }
    role, _ = resolve_requester(booking.email)

    try:
        release(booking.facility_id, booking.booking_date, booking.start_time, booking.end_time)
        validate_booking_request(booking.facility_id, booking_date, start_time, end_time,
                                 exclude_booking_id=booking.id, now=now)
        reserve(booking.facility_id, booking_date, start_time, end_time, exclusive=is_exclusive_role(role))
        ensure_no_overlap(booking.facility_id, booking_date, start_time, end_time, exclude_booking_id=booking.id)

        booking.booking_date = booking_date
        booking.start_time = start_time
        booking.end_time = end_time
        if name:
            booking.name = name
        if phone:
            booking.phone = phone
        if pay_by is not None:
            booking.pay_by = pay_by
            booking.is_paid = booking.fee_paid == 0 or pay_by != 'None'
        booking.modified_at = datetime.utcnow()
        booking.modified_by = _member_email(acting_member)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    audit_log_update('Booking', booking.id, f'Moved booking to {booking_date} '
                     f'{start_time:%H:%M}-{end_time:%H:%M}', changes)
    return booking


def cancel_booking(booking_id: int, acting_member: Optional[Member] = None,
                   now: Optional[datetime] = None) -> Booking:
    """
    Cancel a booking that has not started yet and give its capacity back.

    Cancellation is a soft delete: the row stays in the ledger.
    """
    now = now or datetime.now()
    booking = get_booking(booking_id)
    if not can_manage_booking(acting_member, booking):
        raise BookingNotAllowedError('You can only cancel your own bookings.')
    _check_changeable(booking, now)

    try:
        released = release(booking.facility_id, booking.booking_date, booking.start_time, booking.end_time)
        booking.is_deleted = True
        booking.cancelled_at = datetime.utcnow()
        booking.modified_at = booking.cancelled_at
        booking.modified_by = _member_email(acting_member)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    current_app.logger.info(f"Booking {booking.id} cancelled, {released} slot(s) released")
    audit_log_delete('Booking', booking.id, f'Cancelled booking for {booking.name} on {booking.booking_date} '
                     f'{booking.start_time:%H:%M}-{booking.end_time:%H:%M}')
    return booking


def mark_paid(booking_id: int, pay_by: str, acting_member: Optional[Member] = None) -> Booking:
    booking = get_booking(booking_id)
    if booking.is_deleted:
        raise AlreadyCancelledError('Booking has already been cancelled.')
    if booking.is_paid:
        raise ConflictError('Booking is already paid.')
    pay_by = check_payment_method(pay_by)
    if pay_by == 'None':
        raise ValidationError('Select a payment method.', field='pay_by')

    booking.is_paid = True
    booking.pay_by = pay_by
    booking.modified_at = datetime.utcnow()
    booking.modified_by = _member_email(acting_member)
    db.session.commit()

    audit_log_update('Booking', booking.id, 'Marked booking as paid', {'pay_by': 'None'})
    return booking


def _booking_order(query, include_cancelled: bool):
    if not include_cancelled:
        query = query.where(Booking.is_deleted == False)  # noqa: E712
    return query.order_by(Booking.booking_date, Booking.start_time)


def list_bookings_by_facility(facility_id: int, booking_date: Optional[date] = None,
                              include_cancelled: bool = False) -> List[Booking]:
    if not db.session.get(Facility, facility_id):
        raise NotFoundError('Facility not found.', field='facility_id')
    query = sa.select(Booking).where(Booking.facility_id == facility_id)
    if booking_date is not None:
        query = query.where(Booking.booking_date == booking_date)
    return list(db.session.scalars(_booking_order(query, include_cancelled)).all())


def list_bookings_by_requester(email: str, include_cancelled: bool = False) -> List[Booking]:
    email = normalize_email(email)
    if not email:
        return []
    query = sa.select(Booking).where(sa.func.lower(Booking.email) == email)
    return list(db.session.scalars(_booking_order(query, include_cancelled)).all())


def list_slots_for_date(selected_date: date, category_id: Optional[int] = None) -> List[Dict[str, Any]]:
    """
    Availability board for one date.

    Returns:
        One entry per active facility (optionally of one category) with its
        confirmed bookings and its slots that still have capacity
    """
    query = sa.select(Facility).where(Facility.is_active == True)  # noqa: E712
    if category_id:
        query = query.where(Facility.category_id == category_id)
    facilities = db.session.scalars(query.order_by(Facility.name)).all()

    board = []
    for facility in facilities:
        bookings = db.session.scalars(
            _booking_order(
                sa.select(Booking).where(Booking.facility_id == facility.id,
                                         Booking.booking_date == selected_date),
                include_cancelled=False,
            )
        ).all()
        slots = db.session.scalars(
            sa.select(Slot)
            .where(Slot.facility_id == facility.id,
                   Slot.slot_date == selected_date,
                   Slot.remaining_capacity > 0)
            .order_by(Slot.start_time)
        ).all()
        board.append({
            'facility': facility_to_summary(facility),
            'bookings': [booking_to_dict(booking) for booking in bookings],
            'slots': [slot_to_dict(slot) for slot in slots],
        })
    return board


def facility_to_summary(facility: Facility) -> Dict[str, Any]:
    return {
        'id': facility.id,
        'name': facility.name,
        'category_id': facility.category_id,
        'price': str(facility.price),
    }


def booking_to_dict(booking: Booking) -> Dict[str, Any]:
    return {
        'id': booking.id,
        'facility_id': booking.facility_id,
        'facility_name': booking.facility.name if booking.facility else None,
        'name': booking.name,
        'phone': booking.phone,
        'email': booking.email,
        'booking_date': booking.booking_date.isoformat(),
        'start_time': booking.start_time.strftime('%H:%M'),
        'end_time': booking.end_time.strftime('%H:%M'),
        'fee_paid': str(Decimal(booking.fee_paid).quantize(Decimal('0.01'))),
        'is_paid': booking.is_paid,
        'pay_by': booking.pay_by,
        'status': booking.status,
        'cancelled_at': booking.cancelled_at.isoformat() if booking.cancelled_at else None,
    }
