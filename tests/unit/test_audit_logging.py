"""
Unit tests for audit logging of booking operations.
"""

import pytest
import logging
from datetime import time
from unittest.mock import patch, MagicMock

from clubhouse.audit import (
    audit_log_create, audit_log_update, audit_log_delete, audit_log_security_event,
    audit_log_bulk_operation, get_model_changes
)
from clubhouse.bookings.fees import verify_fee
from clubhouse.bookings.utils import cancel_booking, create_booking
from clubhouse.exceptions import FeeMismatchError


@pytest.fixture
def mock_logger():
    with patch('clubhouse.audit.setup_audit_logger') as mock_setup:
        logger = MagicMock()
        mock_setup.return_value = logger
        yield logger


def _messages(logger):
    return [call.args[1] for call in logger.log.call_args_list]


@pytest.mark.unit
class TestAuditLogging:

    def test_create_format(self, app, mock_logger):
        with app.app_context():
            audit_log_create('Booking', 123, 'Booked Court 1', {'fee_paid': '20.00'})

        level, message = mock_logger.log.call_args[0]
        assert level == logging.INFO
        assert message.startswith('CREATE | Booking | ID: 123 | User: SYSTEM')
        assert 'fee_paid=20.00' in message

    def test_update_and_delete_format(self, app, mock_logger):
        with app.app_context():
            audit_log_update('Facility', 7, 'Updated facility', {'price': '10.00'})
            audit_log_delete('Booking', 9, 'Cancelled booking')

        update, delete = _messages(mock_logger)
        assert 'UPDATE | Facility | ID: 7' in update
        assert 'price=10.00' in update
        assert 'DELETE | Booking | ID: 9' in delete

    def test_security_event_is_a_warning(self, app, mock_logger):
        with app.app_context():
            audit_log_security_event('ACCESS_DENIED', 'Member tried admin route')

        level, message = mock_logger.log.call_args[0]
        assert level == logging.WARNING
        assert 'SECURITY | ACCESS_DENIED' in message

    def test_bulk_operation_format(self, app, mock_logger):
        with app.app_context():
            audit_log_bulk_operation('BULK_CREATE', 'Slot', 465, 'Generated hourly slots')
        assert 'BULK_CREATE | Slot | Count: 465' in _messages(mock_logger)[0]

    def test_failing_logger_does_not_raise(self, app):
        with app.app_context():
            with patch('clubhouse.audit.setup_audit_logger', side_effect=OSError('disk full')):
                audit_log_create('Booking', 1, 'Booked')

    def test_get_model_changes(self, db_session, facility):
        changes = get_model_changes(facility, {'name': 'Court 9', 'is_active': True})
        assert changes == {'name': 'Court 1'}


@pytest.mark.unit
class TestBookingAuditTrail:

    def test_fee_mismatch_is_a_security_event(self, db_session, mock_logger):
        with pytest.raises(FeeMismatchError):
            verify_fee(20, '5.00')
        assert any('SECURITY | FEE_MISMATCH' in message for message in _messages(mock_logger))

    def test_booking_lifecycle_is_logged(self, db_session, mock_logger, facility, tomorrow, open_day, test_member):
        booking = create_booking(facility.id, 'Pat', '0700', test_member.email, tomorrow,
                                 time(10, 0), time(11, 0), '10.00', acting_member=test_member)
        cancel_booking(booking.id, acting_member=test_member)

        messages = _messages(mock_logger)
        assert any(message.startswith(f'CREATE | Booking | ID: {booking.id}') for message in messages)
        assert any(message.startswith(f'DELETE | Booking | ID: {booking.id}') for message in messages)
