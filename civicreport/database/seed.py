"""
Development seed data for CivicReport
"""

import logging

from sqlalchemy.orm import Session

from civicreport.core.constants import DEV_USERS
from .models import User

logger = logging.getLogger(__name__)


def seed_dev_users(session: Session) -> int:
    """
    Insert the development admin and citizen accounts when no user exists.

    Returns:
        Number of users created
    """
    if session.query(User.id).first() is not None:
        return 0

    for name, phone, is_admin in DEV_USERS:
        session.add(User(name=name, phone=phone, is_admin=is_admin, reputation_score=0))

    logger.info(f"Seeded {len(DEV_USERS)} development users")
    return len(DEV_USERS)
