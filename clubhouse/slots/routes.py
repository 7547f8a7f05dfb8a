"""
Slot generation and slot listing routes.
"""

from datetime import datetime
import sqlalchemy as sa
from flask import jsonify, request, current_app
from flask_login import login_required

from clubhouse import db
from clubhouse.slots import bp
from clubhouse.slots.capacity import available_dates
from clubhouse.slots.forms import SlotGenerationForm, ClassSlotGenerationForm
from clubhouse.slots.utils import generate_slots, generate_class_slots, slot_to_dict
from clubhouse.models import Facility, Slot
from clubhouse.routes import admin_required, validate_form
from clubhouse.audit import audit_log_bulk_operation
from clubhouse.exceptions import NotFoundError, ValidationError


@bp.route('/api/v1/generate', methods=['POST'])
@login_required
@admin_required
def api_generate_slots():
    """
    Generate hourly slots for a facility, continuing after its latest slot
    """
    form = validate_form(SlotGenerationForm())

    created = generate_slots(form.facility_id.data, form.months.data, form.capacity.data,
                             start_date=form.start_date.data)

    audit_log_bulk_operation('BULK_CREATE', 'Slot', created,
                             f'Generated hourly slots for facility {form.facility_id.data}',
                             {'months': form.months.data, 'capacity': form.capacity.data})

    return jsonify({
        'success': True,
        'message': 'Slots created successfully!',
        'created': created
    }), 201


@bp.route('/api/v1/generate_class', methods=['POST'])
@login_required
@admin_required
def api_generate_class_slots():
    """
    Overlay a weekly class window on a facility's slots
    """
    form = validate_form(ClassSlotGenerationForm())

    summary = generate_class_slots(
        form.facility_id.data,
        form.months.data,
        form.capacity.data,
        form.day_of_week.data,
        form.start_time.data,
        form.end_time.data,
        start_date=form.start_date.data,
    )

    audit_log_bulk_operation('BULK_UPDATE', 'Slot', summary['created'] + summary['updated'],
                             f'Generated class slots for facility {form.facility_id.data}',
                             {'day_of_week': form.day_of_week.data,
                              'window': f'{form.start_time.data:%H:%M}-{form.end_time.data:%H:%M}',
                              'skipped': len(summary['skipped'])})

    return jsonify({
        'success': True,
        'message': 'Class slots created successfully!',
        **summary
    }), 201


@bp.route('/api/v1/facility/<int:facility_id>/<string:selected_date>')
@login_required
def api_facility_slots(facility_id, selected_date):
    """
    Slots of one facility on one date with their remaining capacity
    """
    try:
        slot_date = datetime.strptime(selected_date, '%Y-%m-%d').date()
    except ValueError:
        raise ValidationError('Invalid date. Use YYYY-MM-DD', field='date')

    facility = db.session.get(Facility, facility_id)
    if not facility:
        raise NotFoundError('Facility not found', field='facility_id')

    slots = db.session.scalars(
        sa.select(Slot)
        .where(Slot.facility_id == facility_id, Slot.slot_date == slot_date)
        .order_by(Slot.start_time)
    ).all()

    current_app.logger.debug(f"Found {len(slots)} slots for facility {facility_id} on {slot_date}")
    return jsonify({
        'success': True,
        'facility': {'id': facility.id, 'name': facility.name},
        'slots': [slot_to_dict(slot) for slot in slots]
    })


@bp.route('/api/v1/available_dates')
@login_required
def api_available_dates():
    """
    Dates with capacity left, optionally for one facility
    """
    facility_id = request.args.get('facility_id', type=int)
    dates = available_dates(facility_id)
    return jsonify({
        'success': True,
        'dates': [d.isoformat() for d in dates]
    })
