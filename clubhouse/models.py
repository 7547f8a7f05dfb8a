# Standard library imports
import enum
from datetime import datetime, date, time
from decimal import Decimal
from typing import Optional

# Third-party imports
import sqlalchemy as sa
import sqlalchemy.orm as so
from flask_login import UserMixin
from werkzeug.security import generate_password_hash, check_password_hash

# Local application imports
from clubhouse import db, login
from clubhouse.exceptions import InvalidRoleError


class MemberRole(str, enum.Enum):
    """Roles a requester can hold. GUEST is never stored, it marks an email with no account."""
    MEMBER = 'member'
    PREMIUM = 'premium'
    COACH = 'coach'
    STAFF = 'staff'
    ADMIN = 'admin'
    SUPER_ADMIN = 'super_admin'
    GUEST = 'guest'

    @classmethod
    def parse(cls, value):
        if isinstance(value, cls):
            return value
        try:
            return cls((value or '').strip().lower())
        except ValueError:
            raise InvalidRoleError(f"Invalid role: {value!r}")


# Roles allowed to run the front desk: edit, mark paid, list any booking
DESK_ROLES = (MemberRole.STAFF, MemberRole.ADMIN, MemberRole.SUPER_ADMIN)


class Member(UserMixin, db.Model):
    __tablename__ = 'member'

    id: so.Mapped[int] = so.mapped_column(primary_key=True)
    email: so.Mapped[str] = so.mapped_column(sa.String(100), index=True, unique=True)
    name: so.Mapped[str] = so.mapped_column(sa.String(100), nullable=False)
    phone: so.Mapped[Optional[str]] = so.mapped_column(sa.String(15), nullable=True)
    role: so.Mapped[str] = so.mapped_column(sa.String(20), nullable=False, default=MemberRole.MEMBER.value)
    password_hash: so.Mapped[Optional[str]] = so.mapped_column(sa.String(256))
    is_activated: so.Mapped[bool] = so.mapped_column(sa.Boolean, default=True, nullable=False)
    created_at: so.Mapped[datetime] = so.mapped_column(sa.DateTime, default=datetime.utcnow, nullable=False)
    created_by: so.Mapped[Optional[str]] = so.mapped_column(sa.String(100), nullable=True)
    modified_at: so.Mapped[Optional[datetime]] = so.mapped_column(sa.DateTime, nullable=True)

    def __repr__(self):
        return '<Member {} ({})>'.format(self.email, self.role)

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        if self.password_hash is None or password is None:
            return False
        return check_password_hash(self.password_hash, password)

    @property
    def role_enum(self):
        return MemberRole.parse(self.role)

    @property
    def is_admin(self):
        return self.role in (MemberRole.ADMIN.value, MemberRole.SUPER_ADMIN.value)

    @property
    def is_desk(self):
        """Staff and admins may manage bookings made for other people."""
        return self.role in {r.value for r in DESK_ROLES}

    def has_role(self, *role_names):
        """Check if the member holds any of the given roles."""
        return self.role in {MemberRole.parse(name).value for name in role_names}

    @property
    def is_active(self):
        return self.is_activated


@login.user_loader
def load_user(id):
    return db.session.get(Member, int(id))


class FacilityCategory(db.Model):
    __tablename__ = 'facility_categories'

    id: so.Mapped[int] = so.mapped_column(sa.Integer, primary_key=True)
    name: so.Mapped[str] = so.mapped_column(sa.String(100), nullable=False, unique=True)
    description: so.Mapped[Optional[str]] = so.mapped_column(sa.String(500), nullable=True)
    created_at: so.Mapped[datetime] = so.mapped_column(sa.DateTime, default=datetime.utcnow, nullable=False)
    modified_at: so.Mapped[Optional[datetime]] = so.mapped_column(sa.DateTime, nullable=True)

    facilities: so.Mapped[list['Facility']] = so.relationship('Facility', back_populates='category')

    def __repr__(self):
        return f"<FacilityCategory id={self.id}, name='{self.name}'>"

    @property
    def facility_count(self):
        return len(self.facilities)


class Facility(db.Model):
    __tablename__ = 'facilities'

    id: so.Mapped[int] = so.mapped_column(sa.Integer, primary_key=True)
    name: so.Mapped[str] = so.mapped_column(sa.String(100), nullable=False)
    category_id: so.Mapped[int] = so.mapped_column(sa.Integer, sa.ForeignKey('facility_categories.id'), nullable=False)
    price: so.Mapped[Decimal] = so.mapped_column(sa.Numeric(10, 2), nullable=False, default=Decimal('0.00'))  # Per hour
    description: so.Mapped[Optional[str]] = so.mapped_column(sa.String(500), nullable=True)
    is_active: so.Mapped[bool] = so.mapped_column(sa.Boolean, nullable=False, default=True)
    created_at: so.Mapped[datetime] = so.mapped_column(sa.DateTime, default=datetime.utcnow, nullable=False)
    modified_at: so.Mapped[Optional[datetime]] = so.mapped_column(sa.DateTime, nullable=True)

    category: so.Mapped['FacilityCategory'] = so.relationship('FacilityCategory', back_populates='facilities')
    slots: so.Mapped[list['Slot']] = so.relationship('Slot', back_populates='facility')
    bookings: so.Mapped[list['Booking']] = so.relationship('Booking', back_populates='facility')

    __table_args__ = (
        sa.CheckConstraint('price >= 0', name='ck_facility_price_positive'),
    )

    def __repr__(self):
        return f"<Facility id={self.id}, name='{self.name}', price={self.price}, active={self.is_active}>"


class Slot(db.Model):
    """
    One bookable unit of facility time with a capacity counter.

    Slots are generated ahead of demand and never deleted. Bookings do not
    reference them: a booking consumes the slots found by
    (facility_id, slot_date, start_time) when it is written.
    """
    __tablename__ = 'facility_slots'

    id: so.Mapped[int] = so.mapped_column(sa.Integer, primary_key=True)
    facility_id: so.Mapped[int] = so.mapped_column(sa.Integer, sa.ForeignKey('facilities.id'), nullable=False, index=True)
    slot_date: so.Mapped[date] = so.mapped_column(sa.Date, nullable=False, index=True)
    start_time: so.Mapped[time] = so.mapped_column(sa.Time, nullable=False)
    end_time: so.Mapped[time] = so.mapped_column(sa.Time, nullable=False)
    capacity: so.Mapped[int] = so.mapped_column(sa.Integer, nullable=False)
    remaining_capacity: so.Mapped[int] = so.mapped_column(sa.Integer, nullable=False)
    is_class_slot: so.Mapped[bool] = so.mapped_column(sa.Boolean, nullable=False, default=False)
    created_at: so.Mapped[datetime] = so.mapped_column(sa.DateTime, default=datetime.utcnow, nullable=False)

    facility: so.Mapped['Facility'] = so.relationship('Facility', back_populates='slots')

    __table_args__ = (
        sa.UniqueConstraint('facility_id', 'slot_date', 'start_time', name='uq_facility_slot_start'),
        sa.CheckConstraint('remaining_capacity >= 0', name='ck_slot_remaining_not_negative'),
        sa.CheckConstraint('remaining_capacity <= capacity', name='ck_slot_remaining_within_capacity'),
    )

    def __repr__(self):
        return (f"<Slot id={self.id}, facility_id={self.facility_id}, date={self.slot_date}, "
                f"{self.start_time}-{self.end_time}, remaining={self.remaining_capacity}/{self.capacity}>")

    @property
    def is_fully_booked(self):
        return self.remaining_capacity <= 0


class Booking(db.Model):
    __tablename__ = 'facility_bookings'

    id: so.Mapped[int] = so.mapped_column(sa.Integer, primary_key=True)
    facility_id: so.Mapped[int] = so.mapped_column(sa.Integer, sa.ForeignKey('facilities.id'), nullable=False)
    name: so.Mapped[str] = so.mapped_column(sa.String(100), nullable=False)
    phone: so.Mapped[str] = so.mapped_column(sa.String(15), nullable=False)
    email: so.Mapped[Optional[str]] = so.mapped_column(sa.String(100), nullable=True, index=True)  # Requester may have no account
    booking_date: so.Mapped[date] = so.mapped_column(sa.Date, nullable=False)
    start_time: so.Mapped[time] = so.mapped_column(sa.Time, nullable=False)
    end_time: so.Mapped[time] = so.mapped_column(sa.Time, nullable=False)
    fee_paid: so.Mapped[Decimal] = so.mapped_column(sa.Numeric(10, 2), nullable=False, default=Decimal('0.00'))
    is_paid: so.Mapped[bool] = so.mapped_column(sa.Boolean, nullable=False, default=False)
    pay_by: so.Mapped[str] = so.mapped_column(sa.String(20), nullable=False, default='None')
    is_deleted: so.Mapped[bool] = so.mapped_column(sa.Boolean, nullable=False, default=False)  # Soft-delete = cancelled
    cancelled_at: so.Mapped[Optional[datetime]] = so.mapped_column(sa.DateTime, nullable=True)
    created_at: so.Mapped[datetime] = so.mapped_column(sa.DateTime, default=datetime.utcnow, nullable=False)
    created_by: so.Mapped[Optional[str]] = so.mapped_column(sa.String(100), nullable=True)
    modified_at: so.Mapped[Optional[datetime]] = so.mapped_column(sa.DateTime, nullable=True)
    modified_by: so.Mapped[Optional[str]] = so.mapped_column(sa.String(100), nullable=True)

    facility: so.Mapped['Facility'] = so.relationship('Facility', back_populates='bookings')

    __table_args__ = (
        sa.Index('ix_facility_bookings_facility_date', 'facility_id', 'booking_date'),
        sa.CheckConstraint('fee_paid >= 0', name='ck_booking_fee_positive'),
    )

    def __repr__(self):
        return (f"<Booking id={self.id}, facility_id={self.facility_id}, date={self.booking_date}, "
                f"{self.start_time}-{self.end_time}, status={self.status}>")

    @property
    def status(self):
        return 'cancelled' if self.is_deleted else 'confirmed'

    @property
    def starts_at(self):
        return datetime.combine(self.booking_date, self.start_time)

    @property
    def duration(self):
        return datetime.combine(self.booking_date, self.end_time) - self.starts_at
