"""Authentication endpoints: shared-password login, logout, session check."""
import logging
from fastapi import APIRouter, Request, Response, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ..core.config import settings
from ..core.security import (
    verify_shared_password,
    create_session_token,
    decode_session_token,
    session_max_age,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


class LoginRequest(BaseModel):
    password: str


class LoginResponse(BaseModel):
    success: bool


class SessionResponse(BaseModel):
    authenticated: bool


@router.post("/login", response_model=LoginResponse)
def login(req: LoginRequest, response: Response):
    """Check the unit password and open a seven-day session."""
    if not verify_shared_password(req.password):
        logger.info("Failed login attempt")
        return JSONResponse(status_code=status.HTTP_401_UNAUTHORIZED, content={"success": False})

    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=create_session_token(),
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
        path="/",
        max_age=session_max_age(),
    )
    return LoginResponse(success=True)


@router.api_route("/logout", methods=["GET", "POST"], response_model=LoginResponse)
def logout(response: Response):
    """Expire the session cookie."""
    response.delete_cookie(
        key=settings.SESSION_COOKIE_NAME,
        path="/",
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
    )
    return LoginResponse(success=True)


@router.get("/session", response_model=SessionResponse)
def get_session(request: Request):
    token = request.cookies.get(settings.SESSION_COOKIE_NAME)
    return SessionResponse(authenticated=decode_session_token(token) is not None)
