"""Magic link issuance and one-time consumption."""
import hashlib
import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Literal, Optional
from urllib.parse import urlencode

from pydantic import BaseModel

from .. import config
from ..models.records import (
    DEFAULT_REDIRECT,
    MagicLinkMetadata,
    MagicLinkPurpose,
    StoredMagicLink,
    StoredUser,
)
from .email import DELIVERY_FAILED, send_magic_link_email
from .storage import AuthStore

logger = logging.getLogger(__name__)

MAGIC_LINK_TTL = timedelta(minutes=30)
VERIFY_PATH = "/auth/magic-link/verify"

# A consumed link is still accepted for this long, covering duplicate requests
# from one page load or a link prefetch.
REUSE_GRACE_PERIOD = timedelta(seconds=1)

VerifyFailure = Literal["invalid_token", "expired", "already_used"]


def utcnow():
    return datetime.now(timezone.utc)


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def build_verification_url(origin: str, token: str) -> str:
    return f"{origin.rstrip('/')}{VERIFY_PATH}?{urlencode({'token': token})}"


class MagicLinkRequestResult(BaseModel):
    email: str
    expires_at: datetime
    verification_url: str
    delivery: str
    debug_token: Optional[str] = None


class VerifyMagicLinkResult(BaseModel):
    ok: bool
    reason: Optional[VerifyFailure] = None
    user: Optional[StoredUser] = None
    redirect_to: Optional[str] = None
    purpose: Optional[MagicLinkPurpose] = None

    @classmethod
    def failure(cls, reason: VerifyFailure) -> "VerifyMagicLinkResult":
        return cls(ok=False, reason=reason)


def create_magic_link_request(
    store: AuthStore,
    email: str,
    origin: str,
    purpose: MagicLinkPurpose = "login",
    redirect_to: str = DEFAULT_REDIRECT,
    request_ip: Optional[str] = None,
    user_agent: Optional[str] = None,
) -> MagicLinkRequestResult:
    """Issue a magic link for ``email`` and try to deliver it.

    The link is stored before delivery is attempted; a delivery failure is
    logged and reported through ``delivery`` without failing the request.
    """
    if not email or not email.strip():
        raise ValueError("Email is required")

    now = utcnow()
    store.purge_expired_magic_links(now)
    user = store.upsert_user_by_email(email)

    token = secrets.token_urlsafe(32)
    expires_at = now + MAGIC_LINK_TTL
    verification_url = build_verification_url(origin, token)

    store.append_magic_link(StoredMagicLink(
        token_hash=hash_token(token),
        email=user.email,
        redirect_to=redirect_to or DEFAULT_REDIRECT,
        expires_at=expires_at,
        created_at=now,
        purpose=purpose,
        metadata=MagicLinkMetadata(
            preview_url=f"{origin.rstrip('/')}{VERIFY_PATH}",
            request_ip=request_ip,
            user_agent=user_agent,
        ),
    ))

    try:
        delivery = send_magic_link_email(user.email, verification_url, expires_at, purpose)
    except Exception as e:
        logger.error(f"Failed to deliver magic link email to {user.email}: {e}")
        delivery = DELIVERY_FAILED

    return MagicLinkRequestResult(
        email=user.email,
        expires_at=expires_at,
        verification_url=verification_url,
        delivery=delivery,
        debug_token=token if config.IS_DEVELOPMENT else None,
    )


def _reused(link: StoredMagicLink, now: datetime) -> bool:
    return link.consumed_at is not None and now - link.consumed_at > REUSE_GRACE_PERIOD


def verify_magic_link_token(store: AuthStore, token: str) -> VerifyMagicLinkResult:
    """Consume a raw magic link token.

    Fails with ``invalid_token`` (unknown hash or owner gone), ``expired``, or
    ``already_used`` when the link was consumed more than
    ``REUSE_GRACE_PERIOD`` ago.
    """
    if not token:
        return VerifyMagicLinkResult.failure("invalid_token")

    token_hash = hash_token(token)
    now = utcnow()

    link = store.find_magic_link(token_hash)
    if not link:
        return VerifyMagicLinkResult.failure("invalid_token")

    if link.is_expired(now):
        return VerifyMagicLinkResult.failure("expired")

    if _reused(link, now):
        return VerifyMagicLinkResult.failure("already_used")

    # The store repeats the reuse check on the row it locks for the update
    link, user = store.consume_magic_link(token_hash, now, reuse_window=REUSE_GRACE_PERIOD)
    if link and _reused(link, now):
        return VerifyMagicLinkResult.failure("already_used")
    if not link or not user:
        return VerifyMagicLinkResult.failure("invalid_token")

    logger.info(f"Magic link ({link.purpose}) consumed by {user.email}")
    return VerifyMagicLinkResult(
        ok=True,
        user=user,
        redirect_to=link.redirect_to,
        purpose=link.purpose,
    )
