"""
HTTP Basic authentication middleware for the admin surface.

When ``INSIDER_ADMIN_PASS`` is set, every request must carry matching
``Authorization: Basic`` credentials.  Unauthenticated requests get a
401 problem document with a ``WWW-Authenticate`` challenge so browsers
prompt for credentials.

Bypass paths (no auth required):
  - ``/health``
  - ``/docs``, ``/redoc``, ``/openapi.json``
"""

from __future__ import annotations

import base64
import binascii
import re
import secrets

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

REALM = "MCP Insider Admin"

_BYPASS_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"^/health"),
    re.compile(r"/docs$"),
    re.compile(r"/redoc$"),
    re.compile(r"/openapi\.json$"),
]


def _is_bypass(path: str) -> bool:
    return any(p.search(path) for p in _BYPASS_PATTERNS)


def _decode_basic(header: str | None) -> tuple[str, str] | None:
    if not header or not header.lower().startswith("basic "):
        return None
    try:
        decoded = base64.b64decode(header[6:].strip(), validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        return None
    user, sep, password = decoded.partition(":")
    if not sep:
        return None
    return user, password


class BasicAuthMiddleware(BaseHTTPMiddleware):
    """Reject requests without valid Basic credentials.

    If ``password`` is ``None`` authentication is disabled and all
    requests pass through.
    """

    def __init__(self, app: object, username: str = "admin", password: str | None = None) -> None:
        super().__init__(app)  # type: ignore[arg-type]
        self._username = username
        self._password = password

    def _authorized(self, request: Request) -> bool:
        credentials = _decode_basic(request.headers.get("Authorization"))
        if credentials is None:
            return False
        user, password = credentials
        user_ok = secrets.compare_digest(user.encode(), self._username.encode())
        pass_ok = secrets.compare_digest(password.encode(), (self._password or "").encode())
        return user_ok and pass_ok

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if self._password is None or _is_bypass(request.url.path):
            return await call_next(request)

        if not self._authorized(request):
            return JSONResponse(
                status_code=401,
                content={
                    "type": "about:blank",
                    "title": "Unauthorized",
                    "status": 401,
                    "detail": "Missing or invalid credentials.",
                    "instance": request.url.path,
                },
                headers={"WWW-Authenticate": f'Basic realm="{REALM}"'},
            )

        return await call_next(request)
