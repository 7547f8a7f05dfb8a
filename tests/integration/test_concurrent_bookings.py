"""
Integration tests for two booking requests racing for the same hours.

Each request runs in its own thread and app context, so each has its own
session and connection to a file-backed database. The second request is run
to completion at a chosen point inside the first one.
"""
import pytest
import threading
import sqlalchemy as sa
from datetime import time

from clubhouse import db
from clubhouse.bookings import validation
from clubhouse.bookings.utils import create_booking
from clubhouse.exceptions import ConflictError
from clubhouse.models import Booking, Slot
from tests.fixtures.factories import FacilityFactory, make_day_of_slots


def _book(facility_id, slot_date, name):
    return create_booking(
        facility_id=facility_id,
        name=name,
        phone='0700000000',
        email=None,
        booking_date=slot_date,
        start_time=time(10, 0),
        end_time=time(11, 0),
        fee_paid='10.00',
    )


@pytest.mark.integration
class TestConcurrentBookings:

    @pytest.fixture
    def court(self, file_app, tomorrow):
        with file_app.app_context():
            facility = FacilityFactory.create(name='Court 1')
            make_day_of_slots(facility, tomorrow, capacity=5)
            return facility.id

    @pytest.mark.parametrize('step', ['find_matching_slots', 'find_overlapping_booking'])
    def test_second_request_in_between_is_rejected(self, file_app, court, tomorrow, monkeypatch, step):
        outcome = {}
        original = getattr(validation, step)

        def book_in_other_session():
            with file_app.app_context():
                try:
                    outcome['other'] = _book(court, tomorrow, 'Other Player').id
                except ConflictError:
                    outcome['other'] = 'conflict'
                finally:
                    db.session.remove()

        def run_other_request_after(*args, **kwargs):
            result = original(*args, **kwargs)
            if 'other' not in outcome:
                outcome['other'] = None
                worker = threading.Thread(target=book_in_other_session)
                worker.start()
                worker.join()
            return result

        monkeypatch.setattr(validation, step, run_other_request_after)

        with file_app.app_context():
            with pytest.raises(ConflictError):
                _book(court, tomorrow, 'First Player')
            db.session.remove()

        assert isinstance(outcome['other'], int)
        with file_app.app_context():
            confirmed = db.session.scalars(
                sa.select(Booking).where(Booking.facility_id == court, Booking.is_deleted.is_(False))
            ).all()
            assert [booking.id for booking in confirmed] == [outcome['other']]

            slot = db.session.scalar(
                sa.select(Slot).where(Slot.facility_id == court, Slot.start_time == time(10, 0))
            )
            assert slot.remaining_capacity == 4

    def test_requests_one_after_another(self, file_app, court, tomorrow):
        with file_app.app_context():
            _book(court, tomorrow, 'First Player')
            with pytest.raises(ConflictError):
                _book(court, tomorrow, 'Other Player')

            assert db.session.scalar(sa.select(sa.func.count(Booking.id))) == 1
