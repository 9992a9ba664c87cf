# apps/api/routes_auth.py
import logging

from fastapi import APIRouter, Depends, Response, Request, status
from sqlalchemy.orm import Session

from config import settings
from db import get_db
from errors import ConflictError, RateLimitExceededError, UnauthenticatedError, ValidationError
from models import User, utcnow
from auth import hash_password, verify_password, normalize_email, verify_google_token
from session import (
    create_session,
    set_session_cookie,
    clear_session_cookie,
    delete_session,
    get_current_user,
    resolve_identity,
)
from schemas import GoogleLoginRequest, RegisterRequest, LoginRequest, UserOut, Ok, user_out
from csrf import issue_csrf, require_csrf, HEADER_NAME
from cache import incr_window

router = APIRouter(prefix="/auth", tags=["auth"], dependencies=[Depends(require_csrf)])

log = logging.getLogger("routes_auth")

# dev rate limit: 20/min per (ip,email)
LOGIN_LIMIT = 20
LOGIN_WINDOW_SEC = 60


def check_login_rate_limit(ip: str, email: str) -> None:
    if incr_window(f"rl:login:{ip}:{email}", LOGIN_WINDOW_SEC) > LOGIN_LIMIT:
        raise RateLimitExceededError(
            "Too many login attempts, try again soon.", retry_after=LOGIN_WINDOW_SEC
        )


def _start_session(response: Response, user: User) -> None:
    sid = create_session(str(user.id))
    set_session_cookie(response, sid)


@router.get("/csrf")
def get_csrf(response: Response):
    token = issue_csrf(response)
    return {"csrf": token, "header": HEADER_NAME}


@router.post("/google-login", response_model=UserOut)
def google_login(
    body: GoogleLoginRequest,
    response: Response,
    db: Session = Depends(get_db),
):
    identity = verify_google_token(body.id_token)
    if not identity:
        raise UnauthenticatedError("Google sign-in could not be verified")
    email = normalize_email(identity["email"])
    if not email:
        raise UnauthenticatedError("Google account has no usable email")

    user = resolve_identity(db, email, identity["name"], identity["picture"])
    _start_session(response, user)
    return user_out(user)


@router.post("/register", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def register(
    body: RegisterRequest,
    response: Response,
    db: Session = Depends(get_db),
):
    email = normalize_email(body.email or "")
    if not email:
        raise ValidationError("Invalid email", field="email")
    if not body.password or len(body.password) < 8:
        raise ValidationError("Password must be at least 8 characters", field="password")

    existing = db.query(User).filter(User.email == email).first()
    if existing:
        raise ConflictError("Email already registered")

    username = (body.username or "").strip() or email.split("@")[0]
    user = User(email=email, username=username, password_hash=hash_password(body.password))
    db.add(user)
    db.commit()
    db.refresh(user)
    log.info("Registered user %s", user.id)

    _start_session(response, user)
    return user_out(user)


@router.post("/login", response_model=UserOut)
def login(
    request: Request,
    body: LoginRequest,
    response: Response,
    db: Session = Depends(get_db),
):
    email = normalize_email(body.email or "")
    if not email or not body.password:
        raise UnauthenticatedError("Invalid credentials")

    ip = request.client.host if request.client else "unknown"
    check_login_rate_limit(ip, email)

    user = db.query(User).filter(User.email == email).first()
    if not user or not verify_password(user.password_hash, body.password):
        raise UnauthenticatedError("Invalid credentials")

    user.last_login_at = utcnow()
    db.commit()
    _start_session(response, user)
    return user_out(user)


@router.post("/logout", response_model=Ok)
@router.post("/signout", response_model=Ok, include_in_schema=False)
def logout(request: Request, response: Response):
    sid = request.cookies.get(settings.session_cookie_name)
    if sid:
        delete_session(sid)  # server-side revoke
    clear_session_cookie(response)  # client-side remove
    return Ok(ok=True)


@router.get("/me", response_model=UserOut)
def me(user: User = Depends(get_current_user)):
    return user_out(user)
