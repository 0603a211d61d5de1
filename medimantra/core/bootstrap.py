"""
First admin account creation at application startup.
"""
import logging
from typing import Optional

from sqlalchemy.orm import Session

from ..auth.models import User, UserRole
from ..config import Settings
from .security import hash_password

# Set up logging
logger = logging.getLogger(__name__)


def bootstrap_admin_if_needed(db: Session, settings: Settings) -> Optional[User]:
    """
    Create the first admin account from the bootstrap settings.

    Nothing happens when an admin already exists or when the bootstrap
    credentials are not configured.

    Args:
        db: Database session
        settings: Application settings

    Returns:
        The created admin, or None if no account was created
    """
    if not settings.bootstrap_admin_email or not settings.bootstrap_admin_password:
        logger.info("Bootstrap admin credentials not configured, skipping")
        return None

    existing_admin = db.query(User).filter(User.role == UserRole.ADMIN).first()
    if existing_admin:
        logger.info("Admin account already exists, skipping bootstrap")
        return None

    admin = User(
        first_name="System",
        last_name="Administrator",
        email=settings.bootstrap_admin_email.strip().lower(),
        password_hash=hash_password(settings.bootstrap_admin_password),
        role=UserRole.ADMIN,
        is_email_verified=True,
        is_active=True,
    )
    db.add(admin)
    db.commit()
    db.refresh(admin)
    logger.info(f"Bootstrap admin created successfully: {admin.id}")
    return admin
