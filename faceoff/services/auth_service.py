import logging
from typing import Optional

from fastapi import Depends, HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from faceoff.api.dependencies import get_db
from faceoff.core import security
from faceoff.core.config import settings
from faceoff.core.database import transaction, utcnow
from faceoff.core.errors import InvalidInput
from faceoff.models import AdminUser

logger = logging.getLogger(__name__)


def get_admin_by_username(db: Session, username: str) -> Optional[AdminUser]:
    return db.query(AdminUser).filter(AdminUser.username == username).first()


def create_admin_user(db: Session, username: str, password: str) -> AdminUser:
    if not username or not password:
        raise InvalidInput("Username and password are required", field="username" if not username else "password")
    if get_admin_by_username(db, username):
        raise InvalidInput(f"Admin '{username}' already exists", field="username")

    admin = AdminUser(username=username, password_hash=security.get_password_hash(password), is_active=True)
    try:
        with transaction(db):
            db.add(admin)
    except IntegrityError:
        raise InvalidInput(f"Admin '{username}' already exists", field="username")
    db.refresh(admin)
    logger.info("Admin user '%s' created", username)
    return admin


def authenticate_admin(db: Session, username: str, password: str) -> Optional[AdminUser]:
    admin = get_admin_by_username(db, username)
    if not admin or not admin.is_active or not security.verify_password(password, admin.password_hash):
        logger.warning("Failed admin login for '%s'", username)
        return None
    with transaction(db):
        admin.last_login_at = utcnow()
    db.refresh(admin)
    return admin


def ensure_bootstrap_admin(db: Session) -> Optional[AdminUser]:
    """Create the admin named by ADMIN_USERNAME/ADMIN_PASSWORD if it does not exist yet."""
    if not settings.ADMIN_USERNAME or not settings.ADMIN_PASSWORD:
        return None
    existing = get_admin_by_username(db, settings.ADMIN_USERNAME)
    if existing:
        return existing
    return create_admin_user(db, settings.ADMIN_USERNAME, settings.ADMIN_PASSWORD)


def get_current_admin(token: str = Depends(security.oauth2_scheme), db: Session = Depends(get_db)) -> AdminUser:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    username = security.decode_access_token(token)
    if username is None:
        raise credentials_exception
    admin = get_admin_by_username(db, username)
    if admin is None or not admin.is_active:
        raise credentials_exception
    return admin
