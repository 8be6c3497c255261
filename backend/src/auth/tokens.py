"""Compact signed tokens (header.payload.signature) using HMAC-SHA256."""
import base64
import binascii
import hashlib
import hmac
import json
import time
from typing import Any, Dict, Optional

from pydantic import BaseModel

HEADER = {"alg": "HS256", "typ": "JWT"}


class TokenVerification(BaseModel):
    valid: bool
    expired: bool
    payload: Optional[Dict[str, Any]] = None


def _invalid() -> TokenVerification:
    return TokenVerification(valid=False, expired=False, payload=None)


def _b64url_encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def _b64url_decode(segment: str) -> bytes:
    padded = segment + "=" * (-len(segment) % 4)
    return base64.urlsafe_b64decode(padded.encode("ascii"))


def _json_segment(value: Dict[str, Any]) -> str:
    return _b64url_encode(json.dumps(value, separators=(",", ":")).encode("utf-8"))


def _signature(signing_input: str, secret: str) -> str:
    digest = hmac.new(secret.encode(), signing_input.encode(), hashlib.sha256).digest()
    return _b64url_encode(digest)


def sign_token(payload: Dict[str, Any], secret: str, ttl_seconds: int) -> str:
    """Sign ``payload`` and return the token. ``iat``/``exp`` are epoch seconds."""
    issued_at = int(time.time())
    claims = {**payload, "iat": issued_at, "exp": issued_at + ttl_seconds}

    header_segment = _json_segment(HEADER)
    payload_segment = _json_segment(claims)
    signature_segment = _signature(f"{header_segment}.{payload_segment}", secret)
    return f"{header_segment}.{payload_segment}.{signature_segment}"


def verify_token(token: str, secret: str) -> TokenVerification:
    """Check signature then expiry. Never raises on malformed input."""
    if not token:
        return _invalid()

    segments = token.split(".")
    if len(segments) < 3:
        return _invalid()
    header_segment, payload_segment, signature_segment = segments[:3]
    if not header_segment or not payload_segment or not signature_segment:
        return _invalid()

    expected = _signature(f"{header_segment}.{payload_segment}", secret)
    if not hmac.compare_digest(expected.encode(), signature_segment.encode()):
        return _invalid()

    try:
        payload = json.loads(_b64url_decode(payload_segment).decode("utf-8"))
    except (binascii.Error, UnicodeError, ValueError):
        return _invalid()
    if not isinstance(payload, dict):
        return _invalid()

    exp = payload.get("exp")
    if isinstance(exp, (int, float)) and not isinstance(exp, bool) and exp < int(time.time()):
        return TokenVerification(valid=False, expired=True, payload=None)

    return TokenVerification(valid=True, expired=False, payload=payload)
