"""
Facility and category management.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional, Dict, Any, List

import sqlalchemy as sa

from clubhouse import db
from clubhouse.audit import audit_log_create, audit_log_update, get_model_changes
from clubhouse.exceptions import ConflictError, NotFoundError
from clubhouse.models import Facility, FacilityCategory


def get_category(category_id: int) -> FacilityCategory:
    category = db.session.get(FacilityCategory, category_id)
    if not category:
        raise NotFoundError('Category not found.', field='category_id')
    return category


def get_facility(facility_id: int) -> Facility:
    facility = db.session.get(Facility, facility_id)
    if not facility:
        raise NotFoundError('Facility not found.', field='facility_id')
    return facility


def create_category(name: str, description: Optional[str] = None) -> FacilityCategory:
    name = name.strip()
    exists = db.session.scalar(
        sa.select(FacilityCategory).where(sa.func.lower(FacilityCategory.name) == name.lower())
    )
    if exists:
        raise ConflictError(f'A category named {name} already exists.', field='name')

    category = FacilityCategory(name=name, description=description)
    db.session.add(category)
    db.session.commit()
    audit_log_create('FacilityCategory', category.id, f'Created facility category: {name}')
    return category


def list_categories() -> List[FacilityCategory]:
    return list(db.session.scalars(sa.select(FacilityCategory).order_by(FacilityCategory.name)).all())


def list_facilities(category_id: Optional[int] = None, include_inactive: bool = False) -> List[Facility]:
    query = sa.select(Facility)
    if category_id:
        query = query.where(Facility.category_id == category_id)
    if not include_inactive:
        query = query.where(Facility.is_active == True)  # noqa: E712
    return list(db.session.scalars(query.order_by(Facility.name)).all())


def create_facility(name: str, category_id: int, price: Optional[Decimal] = None,
                    description: Optional[str] = None) -> Facility:
    get_category(category_id)
    facility = Facility(
        name=name.strip(),
        category_id=category_id,
        price=price if price is not None else Decimal('0.00'),
        description=description,
        is_active=True,
    )
    db.session.add(facility)
    db.session.commit()
    audit_log_create('Facility', facility.id, f'Created facility: {facility.name}',
                     {'category_id': category_id, 'price': facility.price})
    return facility


def update_facility(facility_id: int, name: str, category_id: int, price: Optional[Decimal] = None,
                    description: Optional[str] = None) -> Facility:
    facility = get_facility(facility_id)
    get_category(category_id)

    new_values = {'name': name.strip(), 'category_id': category_id, 'description': description}
    if price is not None:
        new_values['price'] = price
    changes = get_model_changes(facility, new_values)

    for field, value in new_values.items():
        setattr(facility, field, value)
    facility.modified_at = datetime.utcnow()
    db.session.commit()

    audit_log_update('Facility', facility.id, f'Updated facility: {facility.name}', changes)
    return facility


def deactivate_facility(facility_id: int) -> Facility:
    """Hide a facility from booking. Its slots and bookings stay."""
    facility = get_facility(facility_id)
    facility.is_active = False
    facility.modified_at = datetime.utcnow()
    db.session.commit()
    audit_log_update('Facility', facility.id, f'Deactivated facility: {facility.name}', {'is_active': True})
    return facility


def category_to_dict(category: FacilityCategory) -> Dict[str, Any]:
    return {
        'id': category.id,
        'name': category.name,
        'description': category.description,
        'facility_count': category.facility_count,
    }


def facility_to_dict(facility: Facility) -> Dict[str, Any]:
    return {
        'id': facility.id,
        'name': facility.name,
        'category_id': facility.category_id,
        'category_name': facility.category.name if facility.category else None,
        'price': str(facility.price),
        'description': facility.description,
        'is_active': facility.is_active,
    }
