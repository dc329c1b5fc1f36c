# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Credential Store and Authentication Gate

Accounts, bcrypt password hashes (salt embedded in the stored hash) and
the login check.

ACCOUNT LIFECYCLE:
- Registration creates role=guest, approved=False and never logs the
  account in.
- authenticate() only succeeds for approved accounts. A correct password on
  an unapproved account raises NotApprovedError, distinct from
  InvalidCredentialsError, so the UI can show "pending approval".

SECURITY NOTES:
- Passwords hashed with bcrypt (cost from BCRYPT_ROUNDS, default 12)
- Minimum length from PASSWORD_MIN_LENGTH
- Plaintext passwords and hashes are never logged or returned
- Session tokens managed separately (see session_service.py)
"""

import bcrypt
from flask import current_app
from ..extensions import db
from ..models import User
from ..permissions import Role
from ..validation import (
    ConflictError,
    ModelValidationPolicy,
    NotFoundError,
    ValidationError,
    validate_payload,
)
from techsheet.time_utils import utcnow


REGISTRATION_PENDING_MESSAGE = (
    "Registration received. Your account is pending administrator approval."
)

USER_POLICY = ModelValidationPolicy(
    writable_fields={"username", "email", "name", "company"},
    required_on_create={"username", "email", "name"},
)


class PasswordValidationError(ValidationError):
    """Raised when password doesn't meet strength requirements."""
    pass


class DuplicateUsernameError(ConflictError):
    """Raised when a username is already taken."""
    pass


class InvalidCredentialsError(Exception):
    """Unknown username or wrong password (HTTP 401)."""
    pass


class NotApprovedError(Exception):
    """Correct credentials, but the account awaits administrator approval."""
    pass


def validate_password_strength(password: str) -> None:
    """
    Validate password meets the configured minimum length.

    Raises PasswordValidationError if requirements not met.
    """
    min_length = current_app.config.get("PASSWORD_MIN_LENGTH", 6)
    if not isinstance(password, str) or len(password) < min_length:
        raise PasswordValidationError(
            f"Password must be at least {min_length} characters long"
        )


def hash_password(password: str) -> str:
    """
    Hash password using bcrypt.

    Password is validated for strength before hashing.
    """
    validate_password_strength(password)
    rounds = current_app.config.get("BCRYPT_ROUNDS", 12)
    salt = bcrypt.gensalt(rounds=rounds)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    bcrypt.checkpw() compares in constant time. Non-string input never matches.
    """
    if not isinstance(password, str) or not isinstance(password_hash, str):
        return False
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except (ValueError, TypeError):
        # Malformed stored hash
        return False


def get_user(user_id: int) -> User | None:
    return db.session.get(User, user_id)


def get_user_by_username(username: str) -> User | None:
    return db.session.query(User).filter_by(username=username).first()


def require_user(user_id: int) -> User:
    user = get_user(user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


def list_users(*, approved: bool | None = None) -> list[User]:
    query = db.session.query(User)
    if approved is not None:
        query = query.filter(User.approved.is_(approved))
    return query.order_by(User.username.asc()).all()


def create_user(
    username: str,
    email: str,
    password: str,
    name: str,
    company: str | None = None,
    role: Role | str = Role.GUEST,
    approved: bool = False,
) -> User:
    """
    Create new user with bcrypt password hashing.

    Defaults to a pending guest; the CLI bootstrap passes role/approved
    explicitly to seed the first administrator.

    Raises:
        DuplicateUsernameError: If the username exists
        PasswordValidationError: If password doesn't meet requirements
        ValidationError: If a required field is missing or too long
    """
    patch = validate_payload(
        model=User,
        payload={"username": username, "email": email, "name": name, "company": company},
        policy=USER_POLICY,
        partial=False,
    )

    try:
        role = Role.parse(role)
    except ValueError as e:
        raise ValidationError(str(e))

    if get_user_by_username(patch["username"]):
        raise DuplicateUsernameError("Username already exists")

    user = User(
        password_hash=hash_password(password),
        role=role.value,
        approved=approved,
        allowed_groups=[],
        **patch,
    )

    db.session.add(user)
    db.session.commit()
    return user


def register_user(username: str, email: str, password: str, name: str, company: str | None = None) -> User:
    """Self-registration: always a pending guest, never a session."""
    return create_user(username, email, password, name, company=company)


def update_user(user_id: int, patch: dict) -> User:
    """
    Update profile fields (username, email, name, company).

    The id is never writable; a new username must not collide with another
    account.
    """
    user = require_user(user_id)
    patch = validate_payload(model=User, payload=patch, policy=USER_POLICY, partial=True)

    if "username" in patch and patch["username"] != user.username:
        existing = (
            db.session.query(User)
            .filter(User.username == patch["username"], User.id != user.id)
            .first()
        )
        if existing:
            raise DuplicateUsernameError("Username already exists")

    for k, v in patch.items():
        setattr(user, k, v)

    db.session.commit()
    return user


def verify_credentials(username: str, password: str) -> bool:
    """True if the username exists and the password matches its stored hash."""
    user = get_user_by_username(username)
    if not user:
        return False
    return verify_password(password, user.password_hash)


def authenticate(username: str, password: str) -> User:
    """
    Authenticate user with username and password.

    Returns the User on success and stamps last_login_at.

    Raises:
        InvalidCredentialsError: unknown username or wrong password
        NotApprovedError: password matches but the account is not approved
    """
    user = get_user_by_username(username)

    if not user or not verify_password(password, user.password_hash):
        raise InvalidCredentialsError("Invalid credentials")

    if not user.approved:
        raise NotApprovedError("Account pending administrator approval")

    user.last_login_at = utcnow()
    db.session.commit()
    return user


def set_password(user_id: int, password: str) -> User:
    """Replace a user's password hash (administrative reset)."""
    user = require_user(user_id)
    user.password_hash = hash_password(password)
    db.session.commit()
    return user
