from typing import Optional

import sqlalchemy as sa

from clubhouse import db
from clubhouse.models import Member


def normalize_email(value: Optional[str]) -> str:
    return (value or '').strip().lower()


def find_member_by_email(email: Optional[str]) -> Optional[Member]:
    """
    Look up the account behind a booking email.

    Returns None for blank emails and for requesters without an account.
    """
    email = normalize_email(email)
    if not email:
        return None
    return db.session.scalar(sa.select(Member).where(sa.func.lower(Member.email) == email))


def search_members(term: str, limit: int = 20):
    """Accounts whose email contains the term, for the booking desk autocomplete."""
    term = normalize_email(term)
    if not term:
        return []
    return db.session.scalars(
        sa.select(Member)
        .where(sa.func.lower(Member.email).contains(term))
        .order_by(Member.email)
        .limit(limit)
    ).all()
