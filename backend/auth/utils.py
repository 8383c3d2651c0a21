import re
from functools import lru_cache

import bcrypt
from fastapi import Depends, HTTPException, Request, status

from auth.sessions import SessionIdentity, SessionManager, get_session_manager
from config import settings

PASSWORD_MIN_LENGTH = 8
BCRYPT_MAX_BYTES = 72

_PASSWORD_RULES: tuple[tuple[re.Pattern, str], ...] = (
    (re.compile(r"[a-z]"), "a lowercase letter"),
    (re.compile(r"[A-Z]"), "an uppercase letter"),
    (re.compile(r"\d"), "a digit"),
    (re.compile(r"[^A-Za-z0-9]"), "a symbol"),
)


def _password_bytes(password: str) -> bytes:
    # bcrypt only reads the first 72 bytes and newer releases reject longer input
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]


def hash_password(password: str, rounds: int | None = None) -> str:
    cost = int(rounds if rounds is not None else settings.BCRYPT_ROUNDS)
    return bcrypt.hashpw(_password_bytes(password), bcrypt.gensalt(rounds=cost)).decode()


def verify_password(password: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(_password_bytes(password), hashed.encode())
    except ValueError:
        # Malformed stored hash
        return False


@lru_cache(maxsize=4)
def _dummy_hash(rounds: int) -> str:
    return hash_password("dummy-password-for-timing", rounds=rounds)


def burn_password_check(password: str) -> None:
    """Spend one bcrypt verification so unknown usernames cost the same as wrong passwords."""
    verify_password(password, _dummy_hash(int(settings.BCRYPT_ROUNDS)))


def password_policy_violations(password: str) -> list[str]:
    missing: list[str] = []
    if len(password) < PASSWORD_MIN_LENGTH:
        missing.append(f"at least {PASSWORD_MIN_LENGTH} characters")
    for pattern, label in _PASSWORD_RULES:
        if not pattern.search(password):
            missing.append(label)
    return missing


def request_base_path(request: Request) -> str:
    """The mount prefix this request came in through ("" for the root mount)."""
    base = settings.normalized_base_path
    path = request.url.path
    if base and (path == base or path.startswith(base + "/")):
        return base
    return ""


def session_cookie_name() -> str:
    return (settings.SESSION_COOKIE_NAME or "").strip() or "coach_session"


def session_token_from_request(request: Request) -> str | None:
    return request.cookies.get(session_cookie_name()) or None


def get_optional_identity(
    request: Request,
    sessions: SessionManager = Depends(get_session_manager),
) -> SessionIdentity | None:
    return sessions.resolve(session_token_from_request(request))


def require_identity(
    request: Request,
    identity: SessionIdentity | None = Depends(get_optional_identity),
) -> SessionIdentity:
    if identity is None:
        login_url = f"{request_base_path(request)}/auth/login"
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"message": "Not authenticated", "login_url": login_url},
        )
    return identity
