"""
Remaining capacity per (facility, date, start time) slot.

Capacity lives only in slot rows. Every change is a conditional UPDATE run
inside the caller's transaction, so a reservation and the booking insert that
goes with it commit or roll back together. Nothing here commits.
"""

from datetime import date, time, datetime
from typing import List

import sqlalchemy as sa

from clubhouse import db
from clubhouse.exceptions import CapacityError
from clubhouse.models import Slot


def find_matching_slots(facility_id: int, slot_date: date, start: time, end: time) -> List[Slot]:
    """
    Slots of a facility whose start time falls within [start, end), in start order.

    Rows are locked for the rest of the transaction on backends that support
    SELECT ... FOR UPDATE.
    """
    query = (
        sa.select(Slot)
        .where(
            Slot.facility_id == facility_id,
            Slot.slot_date == slot_date,
            Slot.start_time >= start,
            Slot.start_time < end,
        )
        .order_by(Slot.start_time)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return list(db.session.scalars(query).all())


def ensure_available(slots: List[Slot], start: time, end: time):
    """
    Raise CapacityError unless the slots cover [start, end) without gaps and
    each one still has capacity.
    """
    if not slots:
        raise CapacityError('Selected time slots are not available for this facility.', field='start_time')

    covered_until = start
    for slot in slots:
        if slot.start_time != covered_until:
            raise CapacityError('Selected time slots are not available for this facility.', field='start_time')
        covered_until = slot.end_time
    if covered_until < end:
        raise CapacityError('Selected time slots are not available for this facility.', field='end_time')

    if any(slot.remaining_capacity <= 0 for slot in slots):
        raise CapacityError('One or more slots are fully booked.', field='start_time')


def reserve(facility_id: int, slot_date: date, start: time, end: time, exclusive: bool = False) -> List[int]:
    """
    Take one unit of capacity from every slot covering [start, end).

    Exclusive (coach) reservations take the whole slot: remaining capacity is
    set to 0 instead of being decremented. The update only touches rows that
    still have capacity, and the affected row count must match the number of
    slots, so two requests racing for the last unit cannot both succeed.

    Returns:
        The ids of the reserved slots
    """
    slots = find_matching_slots(facility_id, slot_date, start, end)
    ensure_available(slots, start, end)

    slot_ids = [slot.id for slot in slots]
    new_remaining = 0 if exclusive else Slot.remaining_capacity - 1
    result = db.session.execute(
        sa.update(Slot)
        .where(Slot.id.in_(slot_ids), Slot.remaining_capacity > 0)
        .values(remaining_capacity=new_remaining)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != len(slot_ids):
        raise CapacityError('One or more slots are fully booked.', field='start_time')
    return slot_ids


def release(facility_id: int, slot_date: date, start: time, end: time) -> int:
    """
    Give one unit of capacity back to every slot covering [start, end).

    A slot never goes above its capacity. Returns the number of slots changed.
    """
    result = db.session.execute(
        sa.update(Slot)
        .where(
            Slot.facility_id == facility_id,
            Slot.slot_date == slot_date,
            Slot.start_time >= start,
            Slot.start_time < end,
            Slot.remaining_capacity < Slot.capacity,
        )
        .values(remaining_capacity=Slot.remaining_capacity + 1)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount


def available_dates(facility_id: int = None, from_date: date = None) -> List[date]:
    """Dates that still have at least one slot with capacity left."""
    query = (
        sa.select(Slot.slot_date)
        .where(Slot.remaining_capacity > 0,
               Slot.slot_date >= (from_date or datetime.now().date()))
        .distinct()
        .order_by(Slot.slot_date)
    )
    if facility_id:
        query = query.where(Slot.facility_id == facility_id)
    return list(db.session.scalars(query).all())
