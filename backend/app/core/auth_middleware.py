"""
Session gate middleware.
Rejects requests to the API without a valid session cookie.
"""
import logging
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse
from .config import settings
from .security import decode_session_token

logger = logging.getLogger(__name__)

PROTECTED_PATH_PREFIX = "/api/v1"

# Reachable without a session
PUBLIC_PATHS = (
    "/api/v1/auth/login",
    "/api/v1/auth/logout",
    "/api/v1/auth/session",
)


class AuthGateMiddleware(BaseHTTPMiddleware):
    """Middleware that requires a session cookie on every protected endpoint."""

    async def dispatch(self, request: Request, call_next):
        path = request.url.path.rstrip("/") or "/"
        if not path.startswith(PROTECTED_PATH_PREFIX) or path in PUBLIC_PATHS:
            return await call_next(request)

        # CORS preflight carries no cookies
        if request.method == "OPTIONS":
            return await call_next(request)

        token = request.cookies.get(settings.SESSION_COOKIE_NAME)
        if decode_session_token(token) is None:
            ip_address = request.client.host if request.client else None
            logger.info("Rejected unauthenticated %s %s from %s", request.method, path, ip_address)
            return JSONResponse(status_code=401, content={"detail": "Not authenticated"})

        return await call_next(request)
