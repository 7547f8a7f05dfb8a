"""
Test configuration and fixtures for the Clubhouse booking service.
"""
import pytest
import os
from datetime import date, timedelta

# Set environment variables for testing
os.environ['SECRET_KEY'] = 'test-secret-key-for-testing-only'

from clubhouse import create_app, db
from tests.fixtures.factories import (
    MemberFactory, PremiumMemberFactory, CoachFactory, StaffFactory, AdminMemberFactory,
    FacilityFactory, make_day_of_slots
)


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app('testing')

    with app.app_context():
        # Ensure all models are registered with SQLAlchemy
        from clubhouse import models

        db.create_all()

        import sqlalchemy as sa
        tables = sa.inspect(db.engine).get_table_names()
        if 'facility_bookings' not in tables:
            raise RuntimeError(f"Database setup failed. Tables created: {tables}")

        yield app

        db.drop_all()


@pytest.fixture
def file_app(tmp_path, monkeypatch):
    """App on a file-backed SQLite database, so several sessions can run at once."""
    from config import config, TestingConfig

    class FileBackedConfig(TestingConfig):
        SQLALCHEMY_DATABASE_URI = f"sqlite:///{tmp_path / 'clubhouse.db'}"

    monkeypatch.setitem(config, 'file_backed', FileBackedConfig)
    file_app = create_app('file_backed')

    with file_app.app_context():
        db.create_all()

    yield file_app

    with file_app.app_context():
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


@pytest.fixture
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture
def runner(app):
    """Create test CLI runner."""
    return app.test_cli_runner()


@pytest.fixture
def db_session(app):
    """Create database session for testing."""
    with app.app_context():
        yield db.session

        # Clear the data for the next test, the tables are session-scoped
        try:
            db.session.rollback()
            for table in reversed(db.metadata.sorted_tables):
                db.session.execute(table.delete())
            db.session.commit()
        except Exception:
            db.session.rollback()
        finally:
            db.session.remove()


@pytest.fixture
def tomorrow():
    return date.today() + timedelta(days=1)


@pytest.fixture
def test_member(db_session):
    return MemberFactory.create(email='member@clubtest.org', name='Test Member', password='testpassword123')


@pytest.fixture
def premium_member(db_session):
    return PremiumMemberFactory.create(email='premium@clubtest.org', name='Premium Member')


@pytest.fixture
def coach_member(db_session):
    return CoachFactory.create(email='coach@clubtest.org', name='Coach Carter')


@pytest.fixture
def staff_member(db_session):
    return StaffFactory.create(email='staff@clubtest.org', name='Desk Staff')


@pytest.fixture
def admin_member(db_session):
    return AdminMemberFactory.create(email='admin@clubtest.org', name='Admin User', password='adminpassword123')


@pytest.fixture
def facility(db_session):
    """Facility at 10 per hour."""
    return FacilityFactory.create(name='Court 1')


@pytest.fixture
def open_day(facility, tomorrow):
    """Hourly slots 08:00-23:00 tomorrow with capacity 5."""
    return make_day_of_slots(facility, tomorrow, capacity=5)


def _login(client, member):
    with client.session_transaction() as sess:
        sess['_user_id'] = str(member.id)
        sess['_fresh'] = True
    return client


@pytest.fixture
def authenticated_client(client, test_member):
    """Create an authenticated client session."""
    return _login(client, test_member)


@pytest.fixture
def staff_client(client, staff_member):
    return _login(client, staff_member)


@pytest.fixture
def admin_client(client, admin_member):
    """Create an authenticated admin client session."""
    return _login(client, admin_member)


@pytest.fixture
def coach_client(client, coach_member):
    return _login(client, coach_member)
