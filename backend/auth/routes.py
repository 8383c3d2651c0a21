from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from sqlalchemy.orm import Session

from auth.models import AuthResponse, IdentityResponse, LoginRequest, RegisterRequest
from auth.sessions import SessionIdentity, SessionManager, get_session_manager
from auth.utils import (
    request_base_path,
    require_identity,
    session_cookie_name,
    session_token_from_request,
)
from config import settings
from db.database import get_db
from services import auth_service
from services.auth_service import AuthResult
from services.rate_limit_service import RateLimitRule, enforce_rate_limit

router = APIRouter(prefix="/auth", tags=["auth"])


def _client_ip(request: Request) -> str:
    return (request.client.host if request.client else "") or "unknown"


def _check_rate_limit(request: Request, *, endpoint: str, limit: int, window_seconds: int, username: str) -> None:
    allowed, retry_after = enforce_rate_limit(
        rule=RateLimitRule(endpoint=endpoint, limit=limit, window_seconds=window_seconds),
        scope_key=f"{_client_ip(request)}:{(username or '').strip()}",
    )
    if not allowed:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many attempts. Please try again later.",
            headers={"Retry-After": str(retry_after)},
        )


def _set_session_cookie(response: Response, token: str) -> None:
    samesite = (settings.SESSION_COOKIE_SAMESITE or "lax").strip().lower()
    if samesite not in {"strict", "lax", "none"}:
        samesite = "lax"
    response.set_cookie(
        key=session_cookie_name(),
        value=token,
        httponly=bool(settings.SESSION_COOKIE_HTTPONLY),
        secure=bool(settings.SESSION_COOKIE_SECURE),
        samesite=samesite,  # type: ignore[arg-type]
        domain=settings.SESSION_COOKIE_DOMAIN,
        path=settings.SESSION_COOKIE_PATH or "/",
        max_age=max(int(settings.SESSION_ABSOLUTE_HOURS), 1) * 3600,
    )


def _clear_session_cookie(response: Response) -> None:
    response.delete_cookie(
        key=session_cookie_name(),
        domain=settings.SESSION_COOKIE_DOMAIN,
        path=settings.SESSION_COOKIE_PATH or "/",
    )


def _auth_response(request: Request, response: Response, result: AuthResult) -> AuthResponse:
    _set_session_cookie(response, result.token)
    return AuthResponse(
        user=IdentityResponse.model_validate(result.identity),
        redirect_to=request_base_path(request) or "/",
    )


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def register(
    req: RegisterRequest,
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
    sessions: SessionManager = Depends(get_session_manager),
):
    _check_rate_limit(
        request,
        endpoint="/auth/register",
        limit=settings.RATE_LIMIT_AUTH_REGISTER_ATTEMPTS,
        window_seconds=settings.RATE_LIMIT_AUTH_REGISTER_WINDOW_SECONDS,
        username=req.username,
    )
    result = auth_service.register_user(db, sessions, req.username, req.display_name, req.password)
    # Registering while signed in replaces the previous session
    sessions.destroy(session_token_from_request(request))
    return _auth_response(request, response, result)


@router.post("/login", response_model=AuthResponse)
def login(
    req: LoginRequest,
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
    sessions: SessionManager = Depends(get_session_manager),
):
    _check_rate_limit(
        request,
        endpoint="/auth/login",
        limit=settings.RATE_LIMIT_AUTH_LOGIN_ATTEMPTS,
        window_seconds=settings.RATE_LIMIT_AUTH_LOGIN_WINDOW_SECONDS,
        username=req.username,
    )
    result = auth_service.authenticate_user(db, sessions, req.username, req.password)
    sessions.destroy(session_token_from_request(request))
    return _auth_response(request, response, result)


@router.get("/me", response_model=IdentityResponse)
def me(identity: SessionIdentity = Depends(require_identity)):
    return identity


@router.api_route("/logout", methods=["GET", "POST"])
def logout(
    request: Request,
    response: Response,
    sessions: SessionManager = Depends(get_session_manager),
):
    auth_service.logout(sessions, session_token_from_request(request))
    _clear_session_cookie(response)
    return {"status": "ok", "redirect_to": request_base_path(request) or "/"}
