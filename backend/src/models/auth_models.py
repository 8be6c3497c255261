from datetime import datetime, timezone
from sqlalchemy import Column, String, DateTime, Index
from .db import Base


def utcnow():
    return datetime.now(timezone.utc)


class User(Base):
    """Account keyed by normalized email."""

    __tablename__ = "users"

    id = Column(String(36), primary_key=True)
    email = Column(String, unique=True, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    last_login_at = Column(DateTime(timezone=True), nullable=True)


class MagicLink(Base):
    """One-time login link; only the SHA-256 of the token is kept."""

    __tablename__ = "magic_links"

    token_hash = Column(String(64), primary_key=True)
    email = Column(String, nullable=False, index=True)
    redirect_to = Column(String, nullable=False, default="/user")
    purpose = Column(String(16), nullable=False, default="login")
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    consumed_at = Column(DateTime(timezone=True), nullable=True)
    preview_url = Column(String, nullable=True)
    request_ip = Column(String(45), nullable=True)
    user_agent = Column(String, nullable=True)

    __table_args__ = (
        Index('ix_magic_links_email_purpose', 'email', 'purpose'),
    )
