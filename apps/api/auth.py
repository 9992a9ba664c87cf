# apps/api/auth.py
import logging
from typing import Dict, Optional

from argon2 import PasswordHasher
from argon2.exceptions import VerificationError, InvalidHashError
from email_validator import validate_email, EmailNotValidError
from google.auth.transport import requests as google_requests
from google.oauth2 import id_token as google_id_token

from config import settings

log = logging.getLogger("auth")

hasher = PasswordHasher()


def hash_password(password: str) -> str:
    return hasher.hash(password)


def verify_password(password_hash: Optional[str], password: str) -> bool:
    if not password_hash:
        return False
    try:
        return hasher.verify(password_hash, password)
    except (VerificationError, InvalidHashError):
        return False


def normalize_email(email: str) -> Optional[str]:
    try:
        v = validate_email(email, allow_smtputf8=True, check_deliverability=False)
        return v.normalized.lower()
    except EmailNotValidError:
        return None


def verify_google_token(token: str) -> Optional[Dict[str, str]]:
    """
    Verify a Google ID token and return the identity it vouches for.

    Returns {"email", "name", "picture"} on success and None when the token
    is malformed, expired, issued for another client or lacks a verified email.
    """
    if not token or not settings.google_client_id:
        return None
    try:
        info = google_id_token.verify_oauth2_token(
            token, google_requests.Request(), settings.google_client_id
        )
    except ValueError as exc:
        log.info("Google token rejected: %s", exc)
        return None
    email = info.get("email")
    if not email or not info.get("email_verified", False):
        return None
    return {
        "email": email,
        "name": info.get("name") or email.split("@")[0],
        "picture": info.get("picture") or "",
    }
