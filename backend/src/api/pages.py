"""Server-rendered magic link verification page."""
import html
import logging
from typing import Optional
from fastapi import APIRouter, Depends, Query
from fastapi.responses import HTMLResponse, RedirectResponse

from ..auth.storage import AuthStore
from ..auth.magic_link import verify_magic_link_token
from ..auth.session import create_session_token, set_session_cookie
from ..db import get_auth_store
from ..models.records import DEFAULT_REDIRECT

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])

ERROR_MESSAGES = {
    "missing_token": "The link does not contain a token.",
    "expired": "This link has expired. Please request a new one.",
    "already_used": "This link has already been used. Request a new link to continue.",
    "invalid_token": "We could not process this link. Please request a new one.",
}


def render_error_page(reason: str) -> HTMLResponse:
    message = ERROR_MESSAGES.get(reason, ERROR_MESSAGES["invalid_token"])
    body = f"""<!DOCTYPE html>
<html lang="en">
  <head>
    <meta charset="UTF-8" />
    <title>Link cannot be used</title>
  </head>
  <body style="font-family: -apple-system, 'Segoe UI', sans-serif; display: flex; justify-content: center; padding: 64px 16px;">
    <main style="max-width: 420px; text-align: center;">
      <h1>Link cannot be used</h1>
      <p data-reason="{html.escape(reason)}">{html.escape(message)}</p>
      <p><a href="/auth/login">Request a new link</a></p>
      <p><a href="/">Back to home</a></p>
    </main>
  </body>
</html>
"""
    return HTMLResponse(content=body, status_code=400)


@router.get("/auth/magic-link/verify")
def verify_magic_link(
    token: Optional[str] = Query(None, description="Magic link token"),
    store: AuthStore = Depends(get_auth_store),
):
    """Consume the token, start a session and redirect to the stored target."""
    if not token:
        return render_error_page("missing_token")

    result = verify_magic_link_token(store, token)
    if not result.ok:
        logger.info(f"Magic link verification failed: {result.reason}")
        return render_error_page(result.reason)

    response = RedirectResponse(url=result.redirect_to or DEFAULT_REDIRECT, status_code=302)
    set_session_cookie(response, create_session_token(result.user))
    return response
