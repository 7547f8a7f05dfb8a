"""
Booking fee calculation.

The fee is hours x facility hourly price, adjusted by the requester's role.
The server always recomputes it and rejects a booking whose submitted fee
differs.
"""

from datetime import datetime, date, time
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Tuple

from flask import current_app

from clubhouse import db
from clubhouse.audit import audit_log_security_event
from clubhouse.exceptions import (
    BookingNotAllowedError, FeeMismatchError, NotFoundError, ValidationError
)
from clubhouse.members.utils import find_member_by_email
from clubhouse.models import Facility, Member, MemberRole

CENTS = Decimal('0.01')

# Share of the base fee each role pays. None means the role may not be booked for.
FEE_RATES = {
    MemberRole.MEMBER: Decimal('1'),
    MemberRole.GUEST: Decimal('1'),
    MemberRole.PREMIUM: Decimal('0'),
    MemberRole.COACH: Decimal('0'),
    MemberRole.STAFF: None,
    MemberRole.ADMIN: None,
    MemberRole.SUPER_ADMIN: None,
}

# Overrides when the logged-in member books for themselves
SELF_SERVICE_RATES = {
    MemberRole.ADMIN: Decimal('0.8'),
}

# Roles whose bookings take the whole slot instead of one unit of capacity
EXCLUSIVE_ROLES = {MemberRole.COACH}


def booking_hours(start: time, end: time) -> Decimal:
    """Duration of [start, end) in hours."""
    seconds = (datetime.combine(date.min, end) - datetime.combine(date.min, start)).total_seconds()
    if seconds <= 0:
        raise ValidationError('Invalid time range. End time must be after start time.', field='end_time')
    return Decimal(int(seconds)) / Decimal(3600)


def fee_rate(role, self_service: bool = False) -> Decimal:
    role = MemberRole.parse(role)
    if self_service and role in SELF_SERVICE_RATES:
        return SELF_SERVICE_RATES[role]
    rate = FEE_RATES[role]
    if rate is None:
        raise BookingNotAllowedError(f'Booking is not allowed for {role.value} roles.', field='email')
    return rate


def compute_fee(facility: Facility, start: time, end: time, role, self_service: bool = False) -> Decimal:
    """
    Fee for booking a facility over [start, end).

    Args:
        facility: Facility with an hourly price
        start: Booking start time
        end: Booking end time
        role: MemberRole or role name of the requester
        self_service: True when the requester is the logged-in member

    Returns:
        Fee rounded to cents
    """
    base = booking_hours(start, end) * Decimal(facility.price)
    return (base * fee_rate(role, self_service)).quantize(CENTS, rounding=ROUND_HALF_UP)


def is_exclusive_role(role) -> bool:
    return MemberRole.parse(role) in EXCLUSIVE_ROLES


def resolve_requester(email: Optional[str], acting_member: Optional[Member] = None) -> Tuple[MemberRole, bool]:
    """
    Role of the person a booking is for, and whether they are booking for themselves.

    An email with no account books as a guest.
    """
    member = find_member_by_email(email)
    if member is None:
        return MemberRole.GUEST, False
    self_service = acting_member is not None and getattr(acting_member, 'id', None) == member.id
    return member.role_enum, self_service


def calculate_fee(facility_id: int, start: time, end: time, email: Optional[str],
                  acting_member: Optional[Member] = None) -> Decimal:
    facility = db.session.get(Facility, facility_id)
    if not facility:
        raise NotFoundError('Facility not found.', field='facility_id')
    role, self_service = resolve_requester(email, acting_member)
    return compute_fee(facility, start, end, role, self_service)


def _fee_mismatch(expected: Decimal, submitted) -> FeeMismatchError:
    current_app.logger.warning(f"Fee mismatch: expected {expected}, submitted {submitted}")
    audit_log_security_event('FEE_MISMATCH', 'Submitted booking fee does not match the server fee',
                             {'expected': expected, 'submitted': submitted})
    return FeeMismatchError(expected, submitted)


def verify_fee(expected: Decimal, submitted) -> Decimal:
    """Raise FeeMismatchError unless the client fee equals the server fee."""
    if submitted is None:
        raise _fee_mismatch(expected, submitted)
    try:
        submitted_fee = Decimal(str(submitted)).quantize(CENTS, rounding=ROUND_HALF_UP)
    except ArithmeticError:
        raise _fee_mismatch(expected, submitted)
    if submitted_fee != expected:
        raise _fee_mismatch(expected, submitted)
    return expected
