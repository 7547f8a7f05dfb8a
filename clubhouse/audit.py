"""
Audit Logging for Booking and Slot Operations

Every change to facilities, slots, bookings and member accounts is written to
instance/logs/audit.log with a timestamp, the acting member and the details
of the operation.

Usage:
    from clubhouse.audit import audit_log_create, audit_log_update, audit_log_delete

    # For new records
    audit_log_create('Booking', booking.id, f'Booked {booking.facility.name} on {booking.booking_date}')

    # For updates
    audit_log_update('Booking', booking.id, 'Moved booking', {'start_time': '10:00:00'})

    # For cancellations (soft deletes)
    audit_log_delete('Booking', booking.id, 'Cancelled booking')
"""

import logging
import os
from typing import Optional, Dict, Any, Union
from flask import current_app, has_request_context
from flask_login import current_user


# Configure audit logger
def setup_audit_logger():
    """Setup and configure the audit logger with proper formatting and file handling."""
    audit_logger = logging.getLogger('audit')
    audit_logger.setLevel(logging.INFO)

    # Prevent duplicate log entries
    if audit_logger.hasHandlers():
        return audit_logger

    log_dir = os.path.join(current_app.instance_path, 'logs')
    os.makedirs(log_dir, exist_ok=True)

    log_file = os.path.join(log_dir, 'audit.log')
    file_handler = logging.FileHandler(log_file, mode='a', encoding='utf-8')
    file_handler.setLevel(logging.INFO)

    formatter = logging.Formatter(
        '%(asctime)s | %(levelname)s | %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    file_handler.setFormatter(formatter)
    audit_logger.addHandler(file_handler)

    # Prevent propagation to root logger
    audit_logger.propagate = False

    return audit_logger


def get_current_user_info() -> str:
    """Get current user information for audit logging."""
    if has_request_context() and current_user.is_authenticated:
        return f"{current_user.email} (ID: {current_user.id})"
    return "SYSTEM"


def _format_details(details: Optional[Dict[str, Any]]) -> str:
    if not details:
        return ''
    return ' | ' + ', '.join(f'{key}={value}' for key, value in details.items())


def _write(level: int, message: str):
    try:
        setup_audit_logger().log(level, message)
    except Exception as e:
        # Audit logging should never break a booking that already committed
        current_app.logger.error(f"AUDIT_FAILURE | {message} | {str(e)}")


def audit_log_create(model_name: str, record_id: Union[int, str], description: str,
                     additional_data: Optional[Dict[str, Any]] = None):
    """
    Log database record creation.

    Args:
        model_name: Name of the database model (e.g., 'Booking', 'Facility')
        record_id: ID of the created record
        description: Human-readable description of the operation
        additional_data: Optional additional data to include in the log
    """
    user_info = get_current_user_info()
    _write(logging.INFO, f"CREATE | {model_name} | ID: {record_id} | User: {user_info} | "
                         f"{description}{_format_details(additional_data)}")


def audit_log_update(model_name: str, record_id: Union[int, str], description: str,
                     changes: Optional[Dict[str, Any]] = None):
    """
    Log database record updates.

    Args:
        model_name: Name of the database model
        record_id: ID of the updated record
        description: Human-readable description of the operation
        changes: Optional dictionary of field changes {'field': 'old_value'}
    """
    user_info = get_current_user_info()
    _write(logging.INFO, f"UPDATE | {model_name} | ID: {record_id} | User: {user_info} | "
                         f"{description}{_format_details(changes)}")


def audit_log_delete(model_name: str, record_id: Union[int, str], description: str):
    """Log a deletion. Bookings are soft-deleted, so this marks a cancellation."""
    user_info = get_current_user_info()
    _write(logging.INFO, f"DELETE | {model_name} | ID: {record_id} | User: {user_info} | {description}")


def audit_log_bulk_operation(operation: str, model_name: str, count: int, description: str,
                             additional_data: Optional[Dict[str, Any]] = None):
    """
    Log bulk database operations such as slot generation.

    Args:
        operation: Type of operation ('BULK_CREATE', 'BULK_UPDATE')
        model_name: Name of the database model
        count: Number of records affected
        description: Human-readable description of the operation
        additional_data: Optional additional data to include in the log
    """
    user_info = get_current_user_info()
    _write(logging.INFO, f"{operation} | {model_name} | Count: {count} | User: {user_info} | "
                         f"{description}{_format_details(additional_data)}")


def audit_log_authentication(event_type: str, email: str, success: bool):
    """Log login and logout attempts."""
    status = "SUCCESS" if success else "FAILURE"
    _write(logging.INFO, f"AUTH | {event_type} | {status} | User: {email}")


def audit_log_security_event(event_type: str, description: str,
                             additional_data: Optional[Dict[str, Any]] = None):
    """
    Log security-related events.

    Args:
        event_type: Type of security event ('ACCESS_DENIED', 'FEE_MISMATCH')
        description: Human-readable description of the event
        additional_data: Optional additional data to include in the log
    """
    user_info = get_current_user_info()
    _write(logging.WARNING, f"SECURITY | {event_type} | User: {user_info} | "
                            f"{description}{_format_details(additional_data)}")


def audit_log_system_event(event_type: str, description: str):
    """Log system-level events ('STARTUP', 'BOOTSTRAP', 'SLOT_GENERATION')."""
    _write(logging.INFO, f"SYSTEM | {event_type} | {description}")


def get_model_changes(model_instance, form_data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Helper function to detect changes between model instance and form data.

    Args:
        model_instance: The database model instance
        form_data: Dictionary of new values from form

    Returns:
        Dictionary of changes with old values
    """
    changes = {}

    for field, new_value in form_data.items():
        if hasattr(model_instance, field):
            old_value = getattr(model_instance, field)
            if old_value != new_value:
                changes[field] = str(old_value) if old_value is not None else None

    return changes
