# apps/api/session.py
import json
import logging
import secrets
import uuid
from datetime import datetime, timezone
from typing import Optional, Dict

from fastapi import Depends, Request
from fastapi.responses import Response
from sqlalchemy.orm import Session

from config import settings
from cache import redis_client
from db import get_db
from errors import UnauthenticatedError
from models import User, utcnow

SESSION_PREFIX = "sess:"
TTL = settings.session_ttl_seconds

log = logging.getLogger("session")


def _key(sid: str) -> str:
    return f"{SESSION_PREFIX}{sid}"


def create_session(user_id: str) -> str:
    sid = secrets.token_urlsafe(32)
    payload = {
        "user_id": user_id,
        "issued_at": datetime.now(timezone.utc).isoformat(),
    }
    redis_client.set(_key(sid), json.dumps(payload), ex=TTL)
    return sid


def get_session(sid: str) -> Optional[Dict]:
    raw = redis_client.get(_key(sid))
    if not raw:
        return None
    # Rolling TTL: extend on each access
    redis_client.expire(_key(sid), TTL)
    return json.loads(raw)


def delete_session(sid: str) -> None:
    redis_client.delete(_key(sid))


def set_session_cookie(response: Response, sid: str) -> None:
    response.set_cookie(
        key=settings.session_cookie_name,
        value=sid,
        httponly=True,
        samesite="lax",
        secure=(settings.env.lower() == "production"),
        path="/",
        max_age=TTL,
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(
        key=settings.session_cookie_name,
        path="/",
        samesite="lax",
    )


def resolve_identity(db: Session, email: str, username: str = "", avatar: str = "") -> User:
    """Look up the user for a verified email, creating it on first sign-in."""
    user = db.query(User).filter(User.email == email).first()
    if user is None:
        user = User(email=email, username=username or email.split("@")[0], avatar=avatar or None)
        db.add(user)
        log.info("Created user for %s", email)
    user.last_login_at = utcnow()
    db.commit()
    db.refresh(user)
    return user


def _load_user(request: Request, response: Response, db: Session) -> Optional[User]:
    sid = request.cookies.get(settings.session_cookie_name)
    if not sid:
        return None
    sess = get_session(sid)  # already refreshes Redis TTL
    if not sess:
        return None
    try:
        user = db.get(User, uuid.UUID(sess["user_id"]))
    except (KeyError, ValueError):
        user = None
    if not user:
        delete_session(sid)
        return None
    # Refresh browser cookie TTL as well (rolling cookie expiry)
    set_session_cookie(response, sid)
    return user


def get_optional_user(
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
) -> Optional[User]:
    return _load_user(request, response, db)


def get_current_user(
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
) -> User:
    user = _load_user(request, response, db)
    if user is None:
        raise UnauthenticatedError()
    return user
