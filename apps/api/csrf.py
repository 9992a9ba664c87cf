# apps/api/csrf.py
import secrets

from itsdangerous import URLSafeTimedSerializer, BadSignature, SignatureExpired
from fastapi import Request
from fastapi.responses import Response

from config import settings
from errors import UnauthorizedError

COOKIE_NAME = "csrf"
HEADER_NAME = "x-csrf-token"
TTL_SECONDS = 86400  # 24h
SAFE_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})

_serializer = URLSafeTimedSerializer(settings.session_secret, salt="csrf")


def issue_csrf(response: Response) -> str:
    token = _serializer.dumps(secrets.token_urlsafe(32))
    response.set_cookie(
        key=COOKIE_NAME,
        value=token,
        httponly=False,  # must be readable by JS for double-submit
        samesite="lax",
        secure=(settings.env.lower() == "production"),
        path="/",
        max_age=TTL_SECONDS,
    )
    return token


def require_csrf(request: Request) -> None:
    """
    Double-submit check for state-changing requests.

    Mounted as a router-level dependency, so read-only methods pass through
    and every POST/PUT/DELETE must echo the `csrf` cookie in `x-csrf-token`.
    """
    if request.method in SAFE_METHODS:
        return
    cookie = request.cookies.get(COOKIE_NAME)
    header = request.headers.get(HEADER_NAME)
    if not cookie or not header:
        raise UnauthorizedError("CSRF token missing")
    if not secrets.compare_digest(cookie, header):
        raise UnauthorizedError("CSRF token mismatch")
    try:
        _serializer.loads(header, max_age=TTL_SECONDS)
    except SignatureExpired:
        raise UnauthorizedError("CSRF token expired")
    except BadSignature:
        raise UnauthorizedError("Invalid CSRF token")
