# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Authentication Service

WHY: Every sale must be attributable to a staff account. Uses bcrypt for
password hashing and validates password strength.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor 12)
- Minimum 8 characters required
- Must contain uppercase, lowercase, digit, and special char
- Session tokens managed separately (see session_service.py)
"""

import re

import bcrypt
from flask import current_app

from ..extensions import db
from ..models import User
from ..models.auth import ROLES, ROLE_ADMIN, ROLE_SALES
from ..time_utils import utcnow


class PasswordValidationError(Exception):
    """Raised when password doesn't meet strength requirements."""
    pass


class RegistrationError(Exception):
    """Raised when an account cannot be created."""

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


def validate_password_strength(password: str) -> None:
    """
    Validate password meets strength requirements.

    Raises PasswordValidationError if requirements not met.
    """
    if not isinstance(password, str) or len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")

    if not re.search(r"[!@#$%^&*(),.'\":{}|<>?_\-]", password):
        raise PasswordValidationError("Password must contain at least one special character")


def hash_password(password: str) -> str:
    """
    Hash password using bcrypt with cost factor 12.

    Password is validated for strength before hashing.
    """
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=12)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    bcrypt.checkpw() is timing-safe. Malformed hashes never verify.
    """
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except (ValueError, TypeError):
        return False


def create_user(
    username: str,
    password: str,
    *,
    name: str | None = None,
    email: str | None = None,
    role: str = ROLE_SALES,
    is_active: bool = True,
) -> User:
    """
    Create a staff account.

    Raises PasswordValidationError for weak passwords and ValueError for an
    unknown role or a duplicate username/email.
    """
    username = (username or "").strip()
    if not username:
        raise ValueError("username is required")
    if role not in ROLES:
        raise ValueError(f"role must be one of: {', '.join(ROLES)}")

    email = (email or "").strip() or None

    if db.session.query(User.id).filter(User.username == username).first():
        raise ValueError(f"Username '{username}' already exists")
    if email and db.session.query(User.id).filter(User.email == email).first():
        raise ValueError(f"Email '{email}' already exists")

    user = User(
        username=username,
        name=(name or "").strip() or username,
        email=email,
        password_hash=hash_password(password),
        role=role,
        is_active=is_active,
    )
    db.session.add(user)
    db.session.commit()
    return user


def register_user(username: str, password: str, *, name: str | None = None, email: str | None = None) -> User:
    """
    Self-registration.

    The first account bootstraps the system and becomes admin. Later
    accounts get the sales role and are only accepted when
    SELF_REGISTRATION_ENABLED is set.
    """
    is_first_user = db.session.query(User.id).first() is None

    if not is_first_user and not current_app.config.get("SELF_REGISTRATION_ENABLED"):
        raise RegistrationError(
            "Self-registration is disabled. Contact an administrator to create an account.",
            status_code=403,
        )

    try:
        return create_user(
            username,
            password,
            name=name,
            email=email,
            role=ROLE_ADMIN if is_first_user else ROLE_SALES,
        )
    except PasswordValidationError as e:
        raise RegistrationError(str(e))
    except ValueError as e:
        raise RegistrationError(str(e), status_code=409 if "already exists" in str(e) else 400)


def authenticate(username: str, password: str) -> User | None:
    """
    Check credentials; returns the user on success, None otherwise.

    Inactive accounts still authenticate here; the route rejects them so the
    caller gets a distinct "inactive" answer.
    """
    user = db.session.query(User).filter(User.username == username).first()
    if not user or not verify_password(password, user.password_hash):
        return None

    user.last_login_at = utcnow()
    db.session.commit()
    return user
