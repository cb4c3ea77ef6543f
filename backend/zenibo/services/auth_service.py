# Overview: Account registration and login; bcrypt password hashing and credential checks.

"""
Authentication Service

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor 12)
- Minimum 8 characters, at least one letter and one digit
- Emails are unique across the whole service and compared case-insensitively
- Bearer tokens are issued separately (see token_service.py)
"""

import re

import bcrypt
from flask import current_app

from ..extensions import db
from ..models import User
from ..time_utils import utcnow
from ..validation import ConflictError, ValidationError, validate_email
from . import token_service


class PasswordValidationError(Exception):
    """Raised when password doesn't meet strength requirements."""
    pass


class AuthenticationError(Exception):
    """Bad credentials, or a token that no longer maps to an active user."""
    pass


def validate_password_strength(password: str) -> None:
    """
    Requirements:
    - Minimum 8 characters
    - At least one letter
    - At least one digit
    """
    if len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r"[A-Za-z]", password):
        raise PasswordValidationError("Password must contain at least one letter")

    if not re.search(r"\d", password):
        raise PasswordValidationError("Password must contain at least one digit")


def hash_password(password: str) -> str:
    """Hash with bcrypt (BCRYPT_ROUNDS, default 12) after validating strength."""
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=current_app.config.get("BCRYPT_ROUNDS", 12))
    hashed = bcrypt.hashpw(password.encode("utf-8"), salt)
    return hashed.decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """bcrypt.checkpw is timing-safe. A malformed stored hash never matches."""
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


def normalize_email(email: str | None) -> str:
    return validate_email("email", email).lower()


def get_user_by_email(email: str) -> User | None:
    return db.session.query(User).filter(User.email == email.strip().lower()).first()


def create_user(email: str, password: str, name: str, *, is_admin: bool = False, commit: bool = True) -> User:
    """
    Create a user on the free plan.

    Raises:
        ValidationError: malformed email or blank name
        PasswordValidationError: weak password
        ConflictError: email already registered
    """
    email = normalize_email(email)
    name = (name or "").strip()
    if not name:
        raise ValidationError("name is required")
    if len(name) > 120:
        raise ValidationError("name exceeds max length 120")

    if get_user_by_email(email) is not None:
        raise ConflictError("Email already registered")

    user = User(
        email=email,
        name=name,
        password_hash=hash_password(password),
        subscription_plan="free",
        subscription_status="inactive",
        is_admin=is_admin,
    )
    db.session.add(user)
    if commit:
        db.session.commit()
    return user


def register(email: str, password: str, name: str) -> tuple[User, str]:
    """Create the account and return it with a freshly issued bearer token."""
    user = create_user(email, password, name)
    current_app.logger.info("User registered user_id=%s", user.id)
    return user, token_service.issue_token(user.id)


def authenticate(email: str, password: str) -> User:
    """
    Check credentials. Unknown email, wrong password and deactivated accounts
    all raise the same AuthenticationError so the response does not reveal
    which accounts exist.
    """
    user = get_user_by_email(email or "")
    if user is None or not user.is_active or not verify_password(password or "", user.password_hash):
        raise AuthenticationError("Invalid email or password")

    user.last_login_at = utcnow()
    db.session.commit()
    return user


def login(email: str, password: str) -> tuple[User, str]:
    user = authenticate(email, password)
    return user, token_service.issue_token(user.id)


def user_for_token(token: str) -> User:
    """Resolve a bearer token to its active user, else raise AuthenticationError."""
    try:
        claims = token_service.verify_token(token)
    except token_service.InvalidTokenError as e:
        raise AuthenticationError(str(e))

    user = db.session.get(User, claims.user_id)
    if user is None or not user.is_active:
        raise AuthenticationError("User not found or inactive")
    return user
