"""
Facility booking API: fee quotes, create, edit, cancel, pay and listings.
"""

from datetime import datetime
from flask import jsonify, request, current_app
from flask_login import current_user, login_required

from clubhouse import limiter
from clubhouse.bookings import bp
from clubhouse.bookings.forms import BookingForm, EditBookingForm, FeeQueryForm, PaymentForm
from clubhouse.bookings.fees import calculate_fee
from clubhouse.bookings.utils import (
    booking_to_dict, can_manage_booking, cancel_booking, create_booking, edit_booking,
    get_booking, list_bookings_by_facility, list_bookings_by_requester, list_slots_for_date, mark_paid
)
from clubhouse.exceptions import BookingNotAllowedError, ValidationError
from clubhouse.routes import role_required, validate_form


def _parse_date(value, field='booking_date'):
    try:
        return datetime.strptime(value, '%Y-%m-%d').date()
    except (TypeError, ValueError):
        raise ValidationError('Invalid date. Use YYYY-MM-DD', field=field)


def _include_cancelled():
    return request.args.get('include_cancelled', '').lower() in ['true', '1', 'yes']


@bp.route('/api/v1/fee')
@login_required
def api_calculate_fee():
    """
    Fee the server will charge for a booking, for display before submitting.
    The fee does not depend on the date, which is only echoed back.
    """
    form = validate_form(FeeQueryForm(formdata=request.args))
    email = form.email.data or current_user.email
    fee = calculate_fee(form.facility_id.data, form.start_time.data, form.end_time.data,
                        email, acting_member=current_user)
    response = {'success': True, 'fee': str(fee)}
    if form.booking_date.data:
        response['booking_date'] = form.booking_date.data.isoformat()
    return jsonify(response)


@bp.route('/api/v1/booking', methods=['POST'])
@login_required
@limiter.limit(lambda: current_app.config['BOOKING_RATE_LIMIT'])
def api_create_booking():
    """
    Create a booking. Members book for themselves, the desk books for anyone
    """
    form = validate_form(BookingForm())
    email = form.email.data or (None if current_user.is_desk else current_user.email)

    booking = create_booking(
        facility_id=form.facility_id.data,
        name=form.name.data.strip(),
        phone=form.phone.data.strip(),
        email=email,
        booking_date=form.booking_date.data,
        start_time=form.start_time.data,
        end_time=form.end_time.data,
        fee_paid=form.fee_paid.data,
        pay_by=form.pay_by.data,
        acting_member=current_user,
    )

    return jsonify({
        'success': True,
        'message': 'Booking created successfully!',
        'booking': booking_to_dict(booking)
    }), 201


@bp.route('/api/v1/booking/<int:booking_id>', methods=['GET'])
@login_required
def api_get_booking(booking_id):
    booking = get_booking(booking_id)
    if not can_manage_booking(current_user, booking):
        raise BookingNotAllowedError('You can only view your own bookings.')
    return jsonify({'success': True, 'booking': booking_to_dict(booking)})


@bp.route('/api/v1/booking/<int:booking_id>', methods=['PUT'])
@login_required
@role_required('staff', 'admin')
def api_edit_booking(booking_id):
    """
    Move a booking to another date or time with the same duration
    """
    form = validate_form(EditBookingForm())
    booking = edit_booking(
        booking_id,
        form.booking_date.data,
        form.start_time.data,
        form.end_time.data,
        name=form.name.data,
        phone=form.phone.data,
        pay_by=form.pay_by.data,
        acting_member=current_user,
    )
    return jsonify({
        'success': True,
        'message': 'Booking updated successfully!',
        'booking': booking_to_dict(booking)
    })


@bp.route('/api/v1/booking/<int:booking_id>/cancel', methods=['POST'])
@login_required
def api_cancel_booking(booking_id):
    booking = cancel_booking(booking_id, acting_member=current_user)
    return jsonify({
        'success': True,
        'message': 'Booking cancelled successfully!',
        'booking': booking_to_dict(booking)
    })


@bp.route('/api/v1/booking/<int:booking_id>/pay', methods=['POST'])
@login_required
@role_required('staff', 'admin')
def api_mark_paid(booking_id):
    form = validate_form(PaymentForm())
    booking = mark_paid(booking_id, form.pay_by.data, acting_member=current_user)
    return jsonify({
        'success': True,
        'message': 'Booking marked as paid',
        'booking': booking_to_dict(booking)
    })


@bp.route('/api/v1/facility/<int:facility_id>')
@login_required
@role_required('staff', 'admin')
def api_facility_bookings(facility_id):
    """
    Bookings of one facility, optionally on one date
    """
    selected_date = request.args.get('date')
    booking_date = _parse_date(selected_date, field='date') if selected_date else None
    bookings = list_bookings_by_facility(facility_id, booking_date, include_cancelled=_include_cancelled())
    return jsonify({
        'success': True,
        'bookings': [booking_to_dict(booking) for booking in bookings]
    })


@bp.route('/api/v1/my_bookings')
@login_required
def api_my_bookings():
    bookings = list_bookings_by_requester(current_user.email, include_cancelled=_include_cancelled())
    return jsonify({
        'success': True,
        'bookings': [booking_to_dict(booking) for booking in bookings]
    })


@bp.route('/api/v1/availability/<string:selected_date>')
@login_required
def api_availability(selected_date):
    """
    Facilities with their bookings and open slots on one date
    """
    board = list_slots_for_date(_parse_date(selected_date, field='date'),
                                category_id=request.args.get('category_id', type=int))
    current_app.logger.debug(f"Availability for {selected_date}: {len(board)} facilities")
    return jsonify({
        'success': True,
        'date': selected_date,
        'facilities': board
    })
