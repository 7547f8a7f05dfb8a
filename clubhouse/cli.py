"""
Flask CLI commands for bootstrapping accounts and generating slots.

Usage:
    flask create-admin admin@club.org "Admin User"
    flask generate-slots 1 --months 2 --capacity 5
"""

import click
import sqlalchemy as sa

from clubhouse import db
from clubhouse.audit import audit_log_system_event
from clubhouse.exceptions import BookingError
from clubhouse.members.utils import normalize_email
from clubhouse.models import Member, MemberRole
from clubhouse.slots.utils import generate_slots


def register_cli(app):

    @app.cli.command('create-admin')
    @click.argument('email')
    @click.argument('name')
    @click.option('--role', type=click.Choice(['admin', 'super_admin']), default='admin')
    @click.password_option()
    def create_admin(email, name, role, password):
        """Create an admin account."""
        email = normalize_email(email)
        if db.session.scalar(sa.select(Member).where(Member.email == email)):
            raise click.ClickException(f'An account for {email} already exists')

        member = Member(email=email, name=name, role=MemberRole.parse(role).value,
                        is_activated=True, created_by='cli')
        member.set_password(password)
        db.session.add(member)
        db.session.commit()

        audit_log_system_event('BOOTSTRAP_ADMIN_CREATED', f'Admin account created: {email} ({role})')
        click.echo(f'Created {role} account for {email}')

    @app.cli.command('generate-slots')
    @click.argument('facility_id', type=int)
    @click.option('--months', type=int, default=1, show_default=True)
    @click.option('--capacity', type=int, default=1, show_default=True)
    def generate_slots_command(facility_id, months, capacity):
        """Generate hourly slots for a facility."""
        try:
            created = generate_slots(facility_id, months, capacity)
        except BookingError as e:
            raise click.ClickException(e.message)

        audit_log_system_event('SLOT_GENERATION', f'Generated {created} slots for facility {facility_id}')
        click.echo(f'Created {created} slots for facility {facility_id}')
