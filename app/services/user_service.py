import logging
from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import AuthError, Conflict, NotFound, PermissionDenied, ValidationError
from app.core.security import create_access_token, hash_password, verify_password
from app.models.user import ROLE_ADMIN, ROLE_USER, User

logger = logging.getLogger(__name__)

ROLES = (ROLE_ADMIN, ROLE_USER)
MIN_PASSWORD_LENGTH = 6


def _check_password(password: Optional[str]) -> str:
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    return password


def _check_role(role: Optional[str]) -> str:
    role = (role or ROLE_USER).upper()
    if role not in ROLES:
        raise ValidationError(f"role must be one of: {list(ROLES)}")
    return role


def authenticate(db: Session, login: str, password: str) -> dict:
    """Login with username or email; returns the access token and user."""
    if not login or not password:
        raise ValidationError("Username/Email and password are required")

    field = User.email if "@" in login else User.username
    user = db.query(User).filter(field == login).first()
    if user is None or not verify_password(password, user.password_hash):
        logger.info(f"Login failed for {login}")
        raise AuthError("Invalid username/email or password")
    if not user.is_active:
        logger.info(f"Login refused for inactive user {login}")
        raise PermissionDenied("Your account has been deactivated. Please contact admin.")

    logger.info(f"Login successful for user {user.username}")
    return {
        "access_token": create_access_token(user.id, user.role),
        "token_type": "bearer",
        "user": to_dict(user),
    }


def list_users(db: Session) -> List[User]:
    return db.query(User).order_by(User.id).all()


def get_user(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise NotFound(f"User {user_id} not found")
    return user


def create_user(db: Session, username: str, email: str, password: str, role: str = ROLE_USER) -> User:
    if not username or not email:
        raise ValidationError("Username, email, and password are required")
    _check_password(password)
    role = _check_role(role)

    existing = db.query(User).filter(or_(User.username == username, User.email == email)).first()
    if existing:
        raise Conflict("Username already exists" if existing.username == username else "Email already exists")

    user = User(
        username=username,
        email=email,
        password_hash=hash_password(password),
        role=role,
        is_active=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info(f"Created user {username} ({role})")
    return user


def update_user(db: Session, user_id: int, username: Optional[str] = None, email: Optional[str] = None,
                role: Optional[str] = None, password: Optional[str] = None) -> User:
    user = get_user(db, user_id)
    if username and username != user.username:
        if db.query(User).filter(User.username == username).first():
            raise Conflict("Username already exists")
        user.username = username
    if email and email != user.email:
        if db.query(User).filter(User.email == email).first():
            raise Conflict("Email already exists")
        user.email = email
    if role:
        user.role = _check_role(role)
    if password:
        user.password_hash = hash_password(_check_password(password))
    db.commit()
    db.refresh(user)
    return user


def delete_user(db: Session, user_id: int, acting_user_id: int) -> None:
    if user_id == acting_user_id:
        raise ValidationError("You cannot delete your own account")
    user = get_user(db, user_id)
    db.delete(user)
    db.commit()
    logger.info(f"Deleted user {user_id}")


def toggle_status(db: Session, user_id: int, acting_user_id: int) -> User:
    if user_id == acting_user_id:
        raise ValidationError("You cannot deactivate your own account")
    user = get_user(db, user_id)
    user.is_active = not user.is_active
    db.commit()
    db.refresh(user)
    logger.info(f"User {user_id} is now {'active' if user.is_active else 'inactive'}")
    return user


def change_password(db: Session, user: User, current_password: str, new_password: str) -> None:
    if not verify_password(current_password or "", user.password_hash):
        raise ValidationError("Current password is incorrect")
    user.password_hash = hash_password(_check_password(new_password))
    db.commit()


def seed_admin(db: Session) -> User:
    """Create the default admin unless an admin already exists."""
    admin = db.query(User).filter(User.role == ROLE_ADMIN).first()
    if admin:
        return admin
    admin = User(
        username=settings.DEFAULT_ADMIN_USERNAME,
        email=settings.DEFAULT_ADMIN_EMAIL,
        password_hash=hash_password(settings.DEFAULT_ADMIN_PASSWORD),
        role=ROLE_ADMIN,
        is_active=True,
    )
    db.add(admin)
    db.commit()
    db.refresh(admin)
    logger.warning(f"Default admin '{admin.username}' created; change its password after first login")
    return admin


def to_dict(user: User) -> dict:
    return {
        "id": user.id,
        "username": user.username,
        "email": user.email,
        "role": user.role,
        "is_active": user.is_active,
        "active_interval_id": user.active_interval_id,
        "created_at": user.created_at,
    }
