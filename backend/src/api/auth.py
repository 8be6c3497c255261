"""Authentication endpoints: credentials, magic link, registration and session."""
import logging
import re
from typing import Any, Optional
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from .. import config
from ..auth.storage import AuthStore
from ..auth.session import create_session_token, set_session_cookie, clear_session_cookie, read_session
from ..auth.magic_link import create_magic_link_request
from ..db import get_auth_store
from ..models.records import DEFAULT_REDIRECT
from .schemas_auth import CredentialsIn, MagicLinkIn, RegisterEmailIn

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])

EMAIL_REGEX = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def is_valid_email(email: str) -> bool:
    return bool(email) and EMAIL_REGEX.match(email) is not None


def normalize_redirect(value: Optional[str]) -> str:
    """Only same-site absolute paths are allowed as redirect targets."""
    if not value or not value.startswith("/") or value.startswith("//"):
        return DEFAULT_REDIRECT
    return value


def request_origin(request: Request) -> str:
    origin = request.headers.get("origin")
    if origin:
        return origin
    return str(request.base_url).rstrip("/")


def request_ip(request: Request) -> Optional[str]:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip() or None
    return request.client.host if request.client else None


async def json_body(request: Request) -> Any:
    """Request body parsed as JSON, or None when it is missing or not JSON."""
    try:
        return await request.json()
    except ValueError:
        return None


@router.post("/credentials")
def login_with_credentials(body: Any = Depends(json_body), store: AuthStore = Depends(get_auth_store)):
    """Start a session for an email/password pair."""
    payload = CredentialsIn.from_body(body)
    email = (payload.email or "").strip().lower()
    redirect_to = normalize_redirect(payload.redirect_to)

    if not is_valid_email(email):
        return JSONResponse(status_code=400, content={"ok": False, "message": "Invalid email address."})

    if not payload.password:
        return JSONResponse(status_code=400, content={"ok": False, "message": "Password is required."})

    try:
        user = store.upsert_user_by_email(email)
        user = store.record_user_login(email) or user
        token = create_session_token(user)
    except Exception as e:
        logger.error(f"Failed to create credential session for {email}: {e}")
        return JSONResponse(
            status_code=500,
            content={"ok": False, "message": "Unable to create a login session right now."},
        )

    response = JSONResponse(content={"ok": True, "email": user.email, "redirectTo": redirect_to})
    set_session_cookie(response, token)
    return response


@router.post("/logout")
def logout():
    """Log out the current user."""
    response = JSONResponse(content={"ok": True})
    clear_session_cookie(response)
    return response


@router.post("/magic-link")
def request_magic_link(
    request: Request,
    body: Any = Depends(json_body),
    store: AuthStore = Depends(get_auth_store),
):
    """Issue a magic link for login or registration."""
    payload = MagicLinkIn.from_body(body)
    email = (payload.email or "").strip()
    purpose = "register" if payload.purpose == "register" else "login"

    if not is_valid_email(email):
        return JSONResponse(
            status_code=400,
            content={"ok": False, "error": "INVALID_EMAIL", "message": "Invalid email address."},
        )

    try:
        result = create_magic_link_request(
            store,
            email=email,
            origin=request_origin(request),
            purpose=purpose,
            redirect_to=normalize_redirect(payload.redirect_to),
            request_ip=request_ip(request),
            user_agent=request.headers.get("user-agent"),
        )
    except Exception as e:
        logger.error(f"Failed to create magic link for {email}: {e}")
        return JSONResponse(
            status_code=500,
            content={"ok": False, "error": "SERVER_ERROR", "message": "Something went wrong while creating the magic link."},
        )

    content = {
        "ok": True,
        "email": result.email,
        "expiresAt": result.expires_at.isoformat(),
        "delivery": result.delivery,
    }
    if not config.IS_PRODUCTION:
        content["verificationUrl"] = result.verification_url
    if result.debug_token:
        content["debugToken"] = result.debug_token
    return content


@router.post("/register-email")
def register_email(body: Any = Depends(json_body), store: AuthStore = Depends(get_auth_store)):
    """Create (or touch) the account for an email address."""
    payload = RegisterEmailIn.from_body(body)
    email = (payload.email or "").strip()
    if not is_valid_email(email):
        return JSONResponse(status_code=400, content={"ok": False, "message": "Invalid email address."})

    user = store.upsert_user_by_email(email)
    return {"ok": True, "user": {"id": user.id, "email": user.email}}


@router.get("/session")
def get_session(request: Request):
    """Current session payload, 401 when not authenticated."""
    session = read_session(request)
    if not session:
        return JSONResponse(status_code=401, content={"authenticated": False})
    return {"authenticated": True, "session": session}
