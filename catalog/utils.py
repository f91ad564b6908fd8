import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from catalog.config import config
from catalog.models import User
from catalog.oauth2 import hash_password
from catalog.roles import UserRole

logger = logging.getLogger("catalog")


def create_admin_user(db: Session) -> Optional[User]:
    """
    Create the configured admin user if it doesn't exist yet

    Returns:
        The admin user (if created or found)
    """
    admin_user = db.query(User).filter(User.email == config.ADMIN_EMAIL).first()

    if admin_user:
        logger.info("Admin user %s already exists.", config.ADMIN_EMAIL)
        return admin_user

    new_admin = User(
        email=config.ADMIN_EMAIL,
        hashed_password=hash_password(config.ADMIN_PASSWORD),
        name=config.ADMIN_NAME,
        is_active=True,
        role=UserRole.ADMIN.value,
    )

    try:
        db.add(new_admin)
        db.commit()
        db.refresh(new_admin)
        logger.info("Created admin user with email: %s", config.ADMIN_EMAIL)
        return new_admin
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Error creating admin user: %s", e)
        return None
