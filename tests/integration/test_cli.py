"""
Integration tests for the flask CLI commands.
"""
import pytest
import sqlalchemy as sa

from clubhouse.models import Member, Slot


@pytest.mark.integration
class TestCliCommands:

    def test_create_admin(self, runner, db_session):
        result = runner.invoke(args=['create-admin', 'Boss@clubtest.org', 'Big Boss',
                                     '--password', 'adminpassword123'])

        assert result.exit_code == 0, result.output
        member = db_session.scalar(sa.select(Member).where(Member.email == 'boss@clubtest.org'))
        assert member.role == 'admin'
        assert member.check_password('adminpassword123')

    def test_create_admin_twice(self, runner, admin_member):
        result = runner.invoke(args=['create-admin', admin_member.email, 'Again', '--password', 'x'])
        assert result.exit_code != 0
        assert 'already exists' in result.output

    def test_generate_slots(self, runner, db_session, facility):
        result = runner.invoke(args=['generate-slots', str(facility.id), '--months', '1', '--capacity', '3'])

        assert result.exit_code == 0, result.output
        count = db_session.scalar(sa.select(sa.func.count(Slot.id)).where(Slot.facility_id == facility.id))
        assert f'Created {count} slots' in result.output

    def test_generate_slots_unknown_facility(self, runner, db_session):
        result = runner.invoke(args=['generate-slots', '999'])
        assert result.exit_code != 0
        assert 'Facility not found' in result.output
