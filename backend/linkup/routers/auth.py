"""Registration, login and the current-user endpoint.

Endpoints:
- POST /api/auth/register
- POST /api/auth/login
- GET /api/auth/me
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlmodel import Session

from .. import models, serializers, services
from ..auth import get_current_user
from ..config import settings
from ..database import get_session
from ..schemas import LoginIn, RegisterIn
from ..utils.rate_limit import LoginThrottle
from . import service_errors

router = APIRouter()
logger = logging.getLogger("linkup.api")

_login_throttle = LoginThrottle(settings.AUTH_RATE_LIMIT, settings.AUTH_RATE_WINDOW_SECONDS)


def _throttle_key(request: Request, email: str) -> str:
    client = request.client.host if request.client else "unknown"
    return f"{client}:{email.strip().lower()}"


@router.post("/register", status_code=201)
def register(payload: RegisterIn, db: Session = Depends(get_session)):
    """Create an account and return a token for it.

    Fails with 400 when the email is already registered.
    """
    with service_errors():
        user = services.AuthService(db).register(payload.name, payload.email, payload.password, payload.bio)
    return {
        "message": "User created successfully",
        "token": services.create_access_token(user.id),
        "user": serializers.auth_user(user),
    }


@router.post("/login")
def login(payload: LoginIn, request: Request, db: Session = Depends(get_session)):
    """Verify credentials and return a signed token.

    Unknown emails and wrong passwords get the same 400 answer. Repeated
    failures from one client for one email are refused with 429 until the
    window passes.
    """
    key = _throttle_key(request, payload.email)
    allowed, retry_after = _login_throttle.check(key)
    if not allowed:
        raise HTTPException(
            status_code=429,
            detail=f"Too many failed login attempts; retry after {retry_after}s",
            headers={"Retry-After": str(retry_after)},
        )
    user = services.AuthService(db).authenticate(payload.email, payload.password)
    if not user:
        _login_throttle.record_failure(key)
        logger.warning("login_rejected client=%s", key.split(":", 1)[0])
        raise HTTPException(status_code=400, detail="Invalid credentials")
    _login_throttle.reset(key)
    return {
        "message": "Login successful",
        "token": services.create_access_token(user.id),
        "user": serializers.auth_user(user),
    }


@router.get("/me")
def me(db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    """Return the caller with followers and following resolved to summaries."""
    return services.AuthService(db).current_user(user)
