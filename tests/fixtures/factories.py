"""
Factory classes for creating test data using Factory Boy.
"""
import factory
from factory.alchemy import SQLAlchemyModelFactory
from datetime import date, time, timedelta
from decimal import Decimal
from clubhouse import db
from clubhouse.models import Member, FacilityCategory, Facility, Slot, Booking


class MemberFactory(SQLAlchemyModelFactory):
    """Factory for creating Member instances."""

    class Meta:
        model = Member
        sqlalchemy_session = db.session
        sqlalchemy_session_persistence = 'commit'

    email = factory.Sequence(lambda n: f'member{n}@clubtest.org')
    name = factory.Faker('name')
    phone = factory.Sequence(lambda n: f'0700{n:06d}')
    role = 'member'
    is_activated = True

    @factory.post_generation
    def password(obj, create, extracted, **kwargs):
        """Set password for the member."""
        if not create:
            return
        obj.set_password(extracted or 'defaultpassword123')


class PremiumMemberFactory(MemberFactory):
    role = 'premium'


class CoachFactory(MemberFactory):
    role = 'coach'


class StaffFactory(MemberFactory):
    role = 'staff'


class AdminMemberFactory(MemberFactory):
    role = 'admin'


class CategoryFactory(SQLAlchemyModelFactory):
    class Meta:
        model = FacilityCategory
        sqlalchemy_session = db.session
        sqlalchemy_session_persistence = 'commit'

    name = factory.Sequence(lambda n: f'Category {n}')
    description = factory.Faker('sentence')


class FacilityFactory(SQLAlchemyModelFactory):
    class Meta:
        model = Facility
        sqlalchemy_session = db.session
        sqlalchemy_session_persistence = 'commit'

    name = factory.Sequence(lambda n: f'Court {n}')
    category = factory.SubFactory(CategoryFactory)
    price = Decimal('10.00')
    is_active = True


class SlotFactory(SQLAlchemyModelFactory):
    """Hourly slot tomorrow at 10:00 unless told otherwise."""

    class Meta:
        model = Slot
        sqlalchemy_session = db.session
        sqlalchemy_session_persistence = 'commit'

    facility = factory.SubFactory(FacilityFactory)
    slot_date = factory.LazyFunction(lambda: date.today() + timedelta(days=1))
    start_time = time(10, 0)
    end_time = factory.LazyAttribute(lambda obj: time(obj.start_time.hour + 1, 0))
    capacity = 5
    remaining_capacity = factory.LazyAttribute(lambda obj: obj.capacity)
    is_class_slot = False


class BookingFactory(SQLAlchemyModelFactory):
    """Confirmed booking written straight to the ledger, without touching slots."""

    class Meta:
        model = Booking
        sqlalchemy_session = db.session
        sqlalchemy_session_persistence = 'commit'

    facility = factory.SubFactory(FacilityFactory)
    name = factory.Faker('name')
    phone = factory.Sequence(lambda n: f'0711{n:06d}')
    email = factory.Sequence(lambda n: f'guest{n}@clubtest.org')
    booking_date = factory.LazyFunction(lambda: date.today() + timedelta(days=1))
    start_time = time(10, 0)
    end_time = time(11, 0)
    fee_paid = Decimal('10.00')
    is_paid = False
    pay_by = 'None'
    is_deleted = False


def make_day_of_slots(facility, slot_date, capacity=5, hours=range(8, 23)):
    """Hourly slots for one facility and day."""
    return [
        SlotFactory.create(facility=facility, slot_date=slot_date, start_time=time(hour, 0),
                           capacity=capacity)
        for hour in hours
    ]
