"""
Member session and lookup routes.
"""

from flask import jsonify, request, current_app
from flask_login import login_user, logout_user, current_user, login_required

from clubhouse import limiter
from clubhouse.audit import audit_log_authentication, audit_log_security_event
from clubhouse.exceptions import NotFoundError
from clubhouse.members import bp
from clubhouse.members.forms import LoginForm
from clubhouse.members.utils import find_member_by_email, search_members
from clubhouse.routes import role_required, validate_form


def member_to_dict(member):
    return {
        'id': member.id,
        'email': member.email,
        'name': member.name,
        'phone': member.phone,
        'role': member.role,
    }


@bp.route('/auth/login', methods=['POST'])
@limiter.limit(lambda: current_app.config['LOGIN_RATE_LIMIT'])
def auth_login():
    """
    JSON login with rate limiting and security logging
    """
    form = validate_form(LoginForm())
    member = find_member_by_email(form.email.data)

    if member is None or not member.check_password(form.password.data):
        audit_log_authentication('LOGIN', form.email.data, False)
        return jsonify({'success': False, 'error': 'Invalid email or password'}), 401

    if not member.is_active:
        audit_log_security_event('LOGIN_ATTEMPT_INACTIVE_ACCOUNT',
                                 f'Login attempt on inactive account: {member.email}')
        return jsonify({'success': False, 'error': 'Your account is not active. '
                                                   'Please contact the administrator.'}), 403

    login_user(member, remember=form.remember_me.data)
    audit_log_authentication('LOGIN', member.email, True)
    return jsonify({'success': True, 'member': member_to_dict(member)})


@bp.route('/auth/logout', methods=['POST'])
@login_required
def auth_logout():
    audit_log_authentication('LOGOUT', current_user.email, True)
    logout_user()
    return jsonify({'success': True, 'message': 'You have been logged out successfully.'})


@bp.route('/api/v1/lookup')
@login_required
@role_required('staff', 'admin')
def api_lookup():
    """
    Requester lookup for the booking desk.

    Returns the exact account for the term, if any, plus accounts whose email
    contains it.
    """
    term = request.args.get('term', '')
    exact = find_member_by_email(term)
    if request.args.get('exact', '').lower() in ['true', '1', 'yes'] and exact is None:
        raise NotFoundError('No account with that email.', field='term')

    return jsonify({
        'success': True,
        'member': {'name': exact.name, 'role': exact.role} if exact else None,
        'matches': [member_to_dict(member) for member in search_members(term)]
    })
