"""
Facility category and facility routes. Reads for members, writes for admins.
"""

from flask import jsonify, request
from flask_login import login_required

from clubhouse.facilities import bp
from clubhouse.facilities.forms import CategoryForm, FacilityForm
from clubhouse.facilities.utils import (
    category_to_dict, create_category, create_facility, deactivate_facility, facility_to_dict,
    list_categories, list_facilities, update_facility
)
from clubhouse.routes import admin_required, validate_form


@bp.route('/api/v1/categories', methods=['GET'])
@login_required
def api_list_categories():
    return jsonify({
        'success': True,
        'categories': [category_to_dict(category) for category in list_categories()]
    })


@bp.route('/api/v1/categories', methods=['POST'])
@login_required
@admin_required
def api_create_category():
    form = validate_form(CategoryForm())
    category = create_category(form.name.data, form.description.data)
    return jsonify({
        'success': True,
        'message': 'Category created successfully!',
        'category': category_to_dict(category)
    }), 201


@bp.route('/api/v1/facilities', methods=['GET'])
@login_required
def api_list_facilities():
    """
    Active facilities, optionally filtered by category
    """
    facilities = list_facilities(
        category_id=request.args.get('category_id', type=int),
        include_inactive=request.args.get('include_inactive', '').lower() in ['true', '1', 'yes'],
    )
    return jsonify({
        'success': True,
        'facilities': [facility_to_dict(facility) for facility in facilities]
    })


@bp.route('/api/v1/facilities', methods=['POST'])
@login_required
@admin_required
def api_create_facility():
    form = validate_form(FacilityForm())
    facility = create_facility(form.name.data, form.category_id.data, form.price.data, form.description.data)
    return jsonify({
        'success': True,
        'message': 'Facility created successfully!',
        'facility': facility_to_dict(facility)
    }), 201


@bp.route('/api/v1/facilities/<int:facility_id>', methods=['PUT'])
@login_required
@admin_required
def api_update_facility(facility_id):
    form = validate_form(FacilityForm())
    facility = update_facility(facility_id, form.name.data, form.category_id.data,
                               form.price.data, form.description.data)
    return jsonify({
        'success': True,
        'message': 'Facility updated successfully!',
        'facility': facility_to_dict(facility)
    })


@bp.route('/api/v1/facilities/<int:facility_id>/deactivate', methods=['POST'])
@login_required
@admin_required
def api_deactivate_facility(facility_id):
    facility = deactivate_facility(facility_id)
    return jsonify({
        'success': True,
        'message': 'Facility deactivated',
        'facility': facility_to_dict(facility)
    })
