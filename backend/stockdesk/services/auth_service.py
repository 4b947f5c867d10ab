# Overview: Service-layer operations for user accounts and roles.

"""
User accounts, password hashing and role assignment.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor 12)
- Minimum 8 characters, mixed case, digit and special character
- Email and password are only set at creation time; update_user never
  touches them
"""

import logging
import re

import bcrypt

from ..extensions import db
from ..models import User, Role, UserRole
from ..permissions import DEFAULT_ROLES
from ..validation import ConflictError, NotFoundError, ValidationError
from stockdesk.time_utils import utcnow


logger = logging.getLogger(__name__)


class PasswordValidationError(ValidationError):
    """Raised when password doesn't meet strength requirements."""


def validate_password_strength(password: str) -> None:
    if not password or len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")

    if not re.search(r"[!@#$%^&*(),.'\":{}|<>]", password):
        raise PasswordValidationError("Password must contain at least one special character")


def hash_password(password: str) -> str:
    """Validate strength, then bcrypt-hash with cost factor 12."""
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=12)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        # Malformed stored hash
        return False


def create_user(
    username: str,
    email: str,
    password: str,
    full_name: str | None = None,
    roles: list[str] | None = None,
) -> User:
    """
    Create a new user with a bcrypt password hash.

    Raises:
        ValidationError: blank username/email
        PasswordValidationError: weak password
        ConflictError: username or email already taken
    """
    username = (username or "").strip()
    email = (email or "").strip().lower()
    if not username:
        raise ValidationError("username is required")
    if not email or "@" not in email:
        raise ValidationError("A valid email is required")

    existing = db.session.query(User).filter(
        db.or_(User.username == username, User.email == email)
    ).first()
    if existing:
        raise ConflictError("Username or email already exists")

    user = User(
        username=username,
        email=email,
        full_name=(full_name or "").strip() or None,
        password_hash=hash_password(password),
    )
    db.session.add(user)
    db.session.flush()

    for role_name in roles or []:
        _attach_role(user.id, role_name)

    db.session.commit()
    logger.info("Created user %s (id=%s)", username, user.id)
    return user


def update_user(user_id: int, *, username: str | None = None, full_name: str | None = None,
                is_active: bool | None = None) -> User:
    user = db.session.get(User, user_id)
    if not user:
        raise NotFoundError("User not found")

    if username is not None:
        username = username.strip()
        if not username:
            raise ValidationError("username cannot be blank")
        clash = db.session.query(User).filter(User.username == username, User.id != user_id).first()
        if clash:
            raise ConflictError("Username already exists")
        user.username = username
    if full_name is not None:
        user.full_name = full_name.strip() or None
    if is_active is not None:
        user.is_active = bool(is_active)

    db.session.commit()
    return user


def deactivate_user(user_id: int) -> User:
    from .session_service import revoke_all_user_sessions

    user = update_user(user_id, is_active=False)
    revoke_all_user_sessions(user_id, reason="User deactivated")
    return user


def authenticate(username: str, password: str) -> User | None:
    """
    Authenticate by username or email.

    Returns the User and stamps last_login_at on success, None otherwise.
    """
    user = db.session.query(User).filter(
        db.or_(User.username == username, User.email == (username or "").lower()),
        User.is_active.is_(True),
    ).first()

    if not user:
        return None

    if verify_password(password or "", user.password_hash):
        user.last_login_at = utcnow()
        db.session.commit()
        return user

    logger.info("Failed login for %s", username)
    return None


def _attach_role(user_id: int, role_name: str) -> UserRole:
    role = db.session.query(Role).filter_by(name=role_name).first()
    if not role:
        raise NotFoundError(f"Role {role_name} not found")

    existing = db.session.query(UserRole).filter_by(user_id=user_id, role_id=role.id).first()
    if existing:
        return existing

    user_role = UserRole(user_id=user_id, role_id=role.id)
    db.session.add(user_role)
    return user_role


def assign_role(user_id: int, role_name: str) -> UserRole:
    """Assign role to user."""
    if not db.session.get(User, user_id):
        raise NotFoundError("User not found")
    user_role = _attach_role(user_id, role_name)
    db.session.commit()
    return user_role


def remove_role(user_id: int, role_name: str) -> bool:
    role = db.session.query(Role).filter_by(name=role_name).first()
    if not role:
        raise NotFoundError(f"Role {role_name} not found")
    deleted = db.session.query(UserRole).filter_by(user_id=user_id, role_id=role.id).delete()
    db.session.commit()
    return bool(deleted)


def create_default_roles():
    """Create the built-in roles if they don't exist."""
    for name, desc in DEFAULT_ROLES:
        existing = db.session.query(Role).filter_by(name=name).first()
        if not existing:
            db.session.add(Role(name=name, description=desc))

    db.session.commit()
