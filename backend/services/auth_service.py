from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from auth.sessions import SessionIdentity, SessionManager
from auth.utils import burn_password_check, hash_password, password_policy_violations, verify_password
from config import settings
from db.models import User
from services.errors import AuthError, ConflictError, StorageError, ValidationError
from utils.datetime_utils import utcnow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthResult:
    identity: SessionIdentity
    token: str


def _identity_for(user: User) -> SessionIdentity:
    return SessionIdentity(user_id=int(user.id), username=user.username, display_name=user.display_name)


def _find_user(db: Session, username: str) -> User | None:
    try:
        return db.query(User).filter(User.username == username).first()
    except SQLAlchemyError as e:
        logger.exception(f"User lookup failed: {e}")
        raise StorageError("Could not reach the user store.") from e


def register_user(
    db: Session,
    sessions: SessionManager,
    username: str | None,
    display_name: str | None,
    password: str | None,
) -> AuthResult:
    clean_username = (username or "").strip()
    clean_display_name = (display_name or "").strip()
    password = password or ""  # never strip passwords
    if not clean_username or not clean_display_name or not password.strip():
        raise ValidationError("All fields required.")

    if settings.PASSWORD_POLICY_ENFORCED:
        missing = password_policy_violations(password)
        if missing:
            raise ValidationError("Password must contain " + ", ".join(missing) + ".")

    if _find_user(db, clean_username):
        logger.info("Registration rejected, username taken: %s", clean_username)
        raise ConflictError("Username already taken.")

    user = User(
        username=clean_username,
        password_hash=hash_password(password),
        display_name=clean_display_name,
        created_at=utcnow(),
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        # Lost a race against a concurrent registration for the same name
        db.rollback()
        logger.info("Registration lost a race for username: %s", clean_username)
        raise ConflictError("Username already taken.")
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception(f"Registration failed: {e}")
        raise StorageError("Registration failed.") from e
    db.refresh(user)

    identity = _identity_for(user)
    token = sessions.create(identity)
    logger.info("Registered user_id=%s username=%s", identity.user_id, identity.username)
    return AuthResult(identity=identity, token=token)


def authenticate_user(
    db: Session,
    sessions: SessionManager,
    username: str | None,
    password: str | None,
) -> AuthResult:
    clean_username = (username or "").strip()
    password = password or ""

    user = _find_user(db, clean_username) if clean_username else None
    if user is None:
        burn_password_check(password)
        logger.info("Login failed, unknown username: %s", clean_username)
        raise AuthError()
    if not verify_password(password, user.password_hash):
        logger.info("Login failed, bad password for user_id=%s", user.id)
        raise AuthError()

    identity = _identity_for(user)
    token = sessions.create(identity)
    return AuthResult(identity=identity, token=token)


def logout(sessions: SessionManager, token: str | None) -> None:
    sessions.destroy(token)
