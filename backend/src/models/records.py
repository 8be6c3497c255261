"""Schemas for the records kept by the auth stores.

Field aliases follow the camelCase keys of the JSON document so a store file
can be read and written without reshaping.
"""
import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Annotated, Any, List, Literal, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, ValidationError

logger = logging.getLogger(__name__)

MagicLinkPurpose = Literal["login", "register"]

DEFAULT_REDIRECT = "/user"
DEFAULT_LINK_TTL = timedelta(minutes=30)


def utcnow():
    return datetime.now(timezone.utc)


def normalize_email(email: str) -> str:
    return email.strip().lower()


def new_user_id() -> str:
    return str(uuid.uuid4())


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


UtcDatetime = Annotated[datetime, AfterValidator(_as_utc)]
Email = Annotated[str, AfterValidator(normalize_email)]


class RecordModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    def to_json(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class StoredUser(RecordModel):
    id: str = Field(default_factory=new_user_id)
    email: Email
    created_at: UtcDatetime = Field(default_factory=utcnow, alias="createdAt")
    updated_at: UtcDatetime = Field(default_factory=utcnow, alias="updatedAt")
    last_login_at: Optional[UtcDatetime] = Field(None, alias="lastLoginAt")


class MagicLinkMetadata(RecordModel):
    preview_url: Optional[str] = Field(None, alias="previewUrl")
    request_ip: Optional[str] = Field(None, alias="requestIp")
    user_agent: Optional[str] = Field(None, alias="userAgent")


class StoredMagicLink(RecordModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    token_hash: str = Field(alias="tokenHash")
    email: Email
    redirect_to: str = Field(DEFAULT_REDIRECT, alias="redirectTo")
    expires_at: UtcDatetime = Field(default_factory=lambda: utcnow() + DEFAULT_LINK_TTL, alias="expiresAt")
    created_at: UtcDatetime = Field(default_factory=utcnow, alias="createdAt")
    consumed_at: Optional[UtcDatetime] = Field(None, alias="consumedAt")
    purpose: MagicLinkPurpose = "login"
    metadata: Optional[MagicLinkMetadata] = None

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at <= now

    def is_consumable(self, now: datetime) -> bool:
        return self.consumed_at is None and not self.is_expired(now)


class AuthDocument(BaseModel):
    """The whole auth store: users, magic links and the job blob it does not own."""

    jobs: Any = Field(default_factory=list)
    users: List[StoredUser] = Field(default_factory=list)
    magic_links: List[StoredMagicLink] = Field(default_factory=list)

    def to_json(self) -> dict:
        return {
            "jobs": self.jobs,
            "users": [user.to_json() for user in self.users],
            "magicLinks": [link.to_json() for link in self.magic_links],
        }


def _without_nulls(entry: dict) -> dict:
    return {key: value for key, value in entry.items() if value is not None}


def _validate_with_defaults(model, entry: dict, label: str):
    """Validate a stored entry, falling back to defaults for fields that do not parse."""
    data = _without_nulls(entry)
    try:
        return model.model_validate(data)
    except ValidationError as e:
        invalid = {error["loc"][0] for error in e.errors() if error["loc"]}
        invalid |= {name for name, field in model.model_fields.items() if field.alias in invalid}
        logger.warning(f"Defaulting unreadable fields {sorted(invalid)} on {label}")
        return model.model_validate({key: value for key, value in data.items() if key not in invalid})


def normalize_users(raw: Any) -> List[StoredUser]:
    """Keep entries with a string email; fields that are missing or unreadable get defaults."""
    if not isinstance(raw, list):
        return []
    return [
        _validate_with_defaults(StoredUser, entry, f"user {entry['email']!r}")
        for entry in raw
        if isinstance(entry, dict) and isinstance(entry.get("email"), str)
    ]


def normalize_magic_links(raw: Any) -> List[StoredMagicLink]:
    """Keep entries with a string token hash and email, unknown keys included."""
    if not isinstance(raw, list):
        return []
    return [
        _validate_with_defaults(StoredMagicLink, entry, "magic link")
        for entry in raw
        if isinstance(entry, dict)
        and isinstance(entry.get("tokenHash"), str)
        and isinstance(entry.get("email"), str)
    ]


def parse_document(raw: Any) -> AuthDocument:
    if not isinstance(raw, dict):
        raw = {}
    jobs = raw.get("jobs")
    return AuthDocument(
        jobs=jobs if jobs is not None else [],
        users=normalize_users(raw.get("users")),
        magic_links=normalize_magic_links(raw.get("magicLinks")),
    )
