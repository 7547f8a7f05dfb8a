# Shared decorators and helpers for the blueprint routes

from functools import wraps
from flask import current_app, jsonify
from flask_login import current_user
from clubhouse.audit import audit_log_security_event
from clubhouse.exceptions import ValidationError


def _access_denied(required):
    return jsonify({
        'success': False,
        'error': f'Access denied. Required roles: {", ".join(required)}'
    }), 403


def admin_required(f):
    """
    Decorator to require admin privileges.
    Can be used in addition to @login_required.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not current_user.is_authenticated:
            return current_app.login_manager.unauthorized()
        if not current_user.is_admin:
            audit_log_security_event('ACCESS_DENIED',
                                     f'Non-admin user {current_user.email} attempted to access admin-only resource')
            return _access_denied(['admin'])
        return f(*args, **kwargs)
    return decorated_function


def role_required(*required_roles):
    """
    Decorator to require specific roles.
    Usage: @role_required('staff', 'admin')
    Can be used in addition to @login_required.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not current_user.is_authenticated:
                return current_app.login_manager.unauthorized()

            # Super admins bypass role checks
            if current_user.has_role('super_admin'):
                return f(*args, **kwargs)

            if not current_user.has_role(*required_roles):
                current_app.logger.warning(f"Access denied for user {current_user.email} with role "
                                           f"{current_user.role} to resource requiring {required_roles}")
                audit_log_security_event('ACCESS_DENIED',
                                         f'User {current_user.email} with role {current_user.role} attempted '
                                         f'to access resource requiring roles {required_roles}')
                return _access_denied(required_roles)

            return f(*args, **kwargs)
        return decorated_function
    return decorator


def validate_form(form):
    """
    Run a form's validators and raise the first field error as a ValidationError.
    """
    if form.validate():
        return form
    for field_name, messages in form.errors.items():
        raise ValidationError(messages[0], field=field_name)
    raise ValidationError('Invalid request')
