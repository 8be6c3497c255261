"""AuthStore backed by the SQLAlchemy models (unique email, unique token hash)."""
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..models.auth_models import MagicLink, User
from ..models.records import (
    MagicLinkMetadata,
    StoredMagicLink,
    StoredUser,
    new_user_id,
    normalize_email,
    utcnow,
)
from .storage import AuthStore

logger = logging.getLogger(__name__)


def _to_user(row: User) -> StoredUser:
    return StoredUser(
        id=row.id,
        email=row.email,
        created_at=row.created_at,
        updated_at=row.updated_at,
        last_login_at=row.last_login_at,
    )


def _to_link(row: MagicLink) -> StoredMagicLink:
    return StoredMagicLink(
        token_hash=row.token_hash,
        email=row.email,
        redirect_to=row.redirect_to,
        purpose=row.purpose,
        expires_at=row.expires_at,
        created_at=row.created_at,
        consumed_at=row.consumed_at,
        metadata=MagicLinkMetadata(
            preview_url=row.preview_url,
            request_ip=row.request_ip,
            user_agent=row.user_agent,
        ),
    )


class SqlAlchemyStore(AuthStore):

    def __init__(self, db: Session):
        self.db = db

    def _user_row(self, email: str):
        return self.db.query(User).filter(User.email == email).first()

    def get_user_by_email(self, email):
        row = self._user_row(normalize_email(email))
        return _to_user(row) if row else None

    def upsert_user_by_email(self, email):
        normalized = normalize_email(email)
        now = utcnow()

        row = self._user_row(normalized)
        if row:
            row.updated_at = now
            self.db.commit()
            return _to_user(row)

        row = User(id=new_user_id(), email=normalized, created_at=now, updated_at=now)
        self.db.add(row)
        try:
            self.db.commit()
        except IntegrityError:
            # Another request inserted the same email first
            self.db.rollback()
            row = self._user_row(normalized)
            if row is None:
                raise
            row.updated_at = now
            self.db.commit()
            return _to_user(row)

        logger.info(f"Created user {row.id} for {normalized}")
        return _to_user(row)

    def record_user_login(self, email):
        row = self._user_row(normalize_email(email))
        if not row:
            return None
        now = utcnow()
        row.last_login_at = now
        row.updated_at = now
        self.db.commit()
        return _to_user(row)

    def append_magic_link(self, link):
        metadata = link.metadata or MagicLinkMetadata()
        self.db.add(MagicLink(
            token_hash=link.token_hash,
            email=link.email,
            redirect_to=link.redirect_to,
            purpose=link.purpose,
            expires_at=link.expires_at,
            created_at=link.created_at,
            consumed_at=link.consumed_at,
            preview_url=metadata.preview_url,
            request_ip=metadata.request_ip,
            user_agent=metadata.user_agent,
        ))
        self.db.commit()

    def find_magic_link(self, token_hash):
        row = self.db.get(MagicLink, token_hash)
        return _to_link(row) if row else None

    def consume_magic_link(self, token_hash, now=None, reuse_window=None):
        now = now or utcnow()
        row = (
            self.db.query(MagicLink)
            .filter(MagicLink.token_hash == token_hash)
            .with_for_update()
            .first()
        )
        if not row:
            return None, None

        if row.consumed_at is None:
            row.consumed_at = now
        else:
            link = _to_link(row)
            if reuse_window is not None and now - link.consumed_at > reuse_window:
                # Release the row lock without touching the owner
                self.db.rollback()
                return link, None

        user = self._user_row(row.email)
        if user:
            user.last_login_at = now
            user.updated_at = now

        self.db.commit()
        return _to_link(row), (_to_user(user) if user else None)

    def purge_expired_magic_links(self, now=None):
        now = now or utcnow()
        removed = (
            self.db.query(MagicLink)
            .filter(MagicLink.expires_at <= now)
            .delete(synchronize_session=False)
        )
        self.db.commit()
        if removed:
            logger.debug(f"Purged {removed} stale magic link(s)")
        return removed

    def list_magic_links_for_email(self, email, purpose=None):
        query = self.db.query(MagicLink).filter(MagicLink.email == normalize_email(email))
        if purpose:
            query = query.filter(MagicLink.purpose == purpose)
        return [_to_link(row) for row in query.order_by(MagicLink.created_at).all()]
