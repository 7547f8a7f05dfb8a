"""
Errors raised by the booking and slot operations.

Every error is local to a single operation: nothing is retried and the
transaction that raised it is rolled back by the caller. The web layer turns
them into JSON responses in clubhouse/errors.py.
"""


class BookingError(Exception):
    """Base class for recoverable booking errors."""
    status_code = 400
    error_type = 'booking_error'

    def __init__(self, message, field=None):
        super().__init__(message)
        self.message = message
        self.field = field

    def to_dict(self):
        data = {
            'success': False,
            'error': self.message,
            'error_type': self.error_type,
        }
        if self.field:
            data['field'] = self.field
        return data


class ValidationError(BookingError):
    """Bad input shape: past date, misaligned time, inverted range."""
    error_type = 'validation_error'


class CapacityError(BookingError):
    """Slot missing or exhausted."""
    status_code = 409
    error_type = 'capacity_error'


class ConflictError(BookingError):
    """Overlaps an existing booking."""
    status_code = 409
    error_type = 'conflict_error'


class FeeMismatchError(BookingError):
    """Submitted fee differs from the server computed one."""
    error_type = 'fee_mismatch'

    def __init__(self, expected, submitted):
        super().__init__(f'Incorrect fee. Expected {expected}.', field='fee_paid')
        self.expected = expected
        self.submitted = submitted


class NotFoundError(BookingError):
    status_code = 404
    error_type = 'not_found'


class BookingNotAllowedError(BookingError):
    status_code = 403
    error_type = 'booking_not_allowed'


class InvalidRoleError(BookingError):
    error_type = 'invalid_role'


class AlreadyCancelledError(BookingError):
    status_code = 409
    error_type = 'already_cancelled'


class PastBookingError(BookingError):
    error_type = 'past_booking'
