"""Session management using signed HttpOnly cookies."""
import logging
from typing import Dict, Optional
from fastapi import Request, Response
from .. import config
from ..models.records import StoredUser
from .tokens import TokenVerification, sign_token, verify_token

logger = logging.getLogger(__name__)

SESSION_COOKIE_NAME = "rakamin_session"
SESSION_TTL_SECONDS = 60 * 60 * 24 * 7
DEV_SECRET = "insecure-development-secret-change-me"

_warned_dev_secret = False


def get_secret() -> str:
    """Configured secret, or the development placeholder."""
    global _warned_dev_secret
    if config.AUTH_SECRET:
        return config.AUTH_SECRET
    if not _warned_dev_secret:
        logger.warning("AUTH_SECRET is not set, signing sessions with the development secret")
        _warned_dev_secret = True
    return DEV_SECRET


def create_session_token(user: StoredUser) -> str:
    return sign_token({"sub": user.id, "email": user.email}, get_secret(), SESSION_TTL_SECONDS)


def verify_session_token(token: str) -> TokenVerification:
    return verify_token(token, get_secret())


def set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value=token,
        max_age=SESSION_TTL_SECONDS,
        httponly=True,
        secure=config.IS_PRODUCTION,
        samesite="lax",
        path="/",
    )


def clear_session_cookie(response: Response) -> None:
    """Clear the session cookie."""
    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value="",
        max_age=0,
        expires=0,
        httponly=True,
        secure=config.IS_PRODUCTION,
        samesite="lax",
        path="/",
    )


def read_session(request: Request) -> Optional[Dict]:
    """Verified session payload from the cookie, or None."""
    token = request.cookies.get(SESSION_COOKIE_NAME)
    if not token:
        return None

    result = verify_session_token(token)
    if not result.valid or not result.payload:
        return None
    return result.payload
