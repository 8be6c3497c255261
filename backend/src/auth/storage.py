"""User and magic-link persistence.

``JsonFileStore`` keeps everything in one JSON document. Each operation loads
the whole file, mutates it in memory and writes it back; there is no locking,
so concurrent writers can overwrite each other's changes. ``SqlAlchemyStore``
(see ``sql_storage``) implements the same interface on a database.
"""
import json
import logging
from datetime import datetime, timedelta
from pathlib import Path
from typing import List, Optional, Tuple, Union

from ..models.records import (
    AuthDocument,
    MagicLinkPurpose,
    StoredMagicLink,
    StoredUser,
    normalize_email,
    parse_document,
    utcnow,
)

logger = logging.getLogger(__name__)


class AuthStore:
    """Operations the magic-link flow and the auth routes rely on."""

    def get_user_by_email(self, email: str) -> Optional[StoredUser]:
        raise NotImplementedError

    def upsert_user_by_email(self, email: str) -> StoredUser:
        raise NotImplementedError

    def record_user_login(self, email: str) -> Optional[StoredUser]:
        raise NotImplementedError

    def append_magic_link(self, link: StoredMagicLink) -> None:
        raise NotImplementedError

    def find_magic_link(self, token_hash: str) -> Optional[StoredMagicLink]:
        raise NotImplementedError

    def consume_magic_link(
        self,
        token_hash: str,
        now: Optional[datetime] = None,
        reuse_window: Optional[timedelta] = None,
    ) -> Tuple[Optional[StoredMagicLink], Optional[StoredUser]]:
        """Mark the link consumed and record the owner's login.

        When the link was already consumed more than ``reuse_window`` ago the
        link is returned unchanged with no user.
        """
        raise NotImplementedError

    def purge_expired_magic_links(self, now: Optional[datetime] = None) -> int:
        raise NotImplementedError

    def list_magic_links_for_email(
        self, email: str, purpose: Optional[MagicLinkPurpose] = None
    ) -> List[StoredMagicLink]:
        raise NotImplementedError


class JsonFileStore(AuthStore):

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def load(self) -> AuthDocument:
        """Read the document. A missing file is an empty document."""
        try:
            payload = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return AuthDocument()
        return parse_document(json.loads(payload) if payload.strip() else {})

    def save(self, document: AuthDocument) -> None:
        serialized = json.dumps(document.to_json(), indent=2, ensure_ascii=False)
        self.path.write_text(f"{serialized}\n", encoding="utf-8")

    @staticmethod
    def _find_user(document: AuthDocument, email: str) -> Optional[StoredUser]:
        return next((user for user in document.users if user.email == email), None)

    def get_user_by_email(self, email: str) -> Optional[StoredUser]:
        return self._find_user(self.load(), normalize_email(email))

    def upsert_user_by_email(self, email: str) -> StoredUser:
        normalized = normalize_email(email)
        document = self.load()
        now = utcnow()

        user = self._find_user(document, normalized)
        if user:
            user.updated_at = now
        else:
            user = StoredUser(email=normalized, created_at=now, updated_at=now)
            document.users.append(user)
            logger.info(f"Created user {user.id} for {normalized}")

        self.save(document)
        return user

    def record_user_login(self, email: str) -> Optional[StoredUser]:
        document = self.load()
        user = self._find_user(document, normalize_email(email))
        if not user:
            return None

        now = utcnow()
        user.last_login_at = now
        user.updated_at = now
        self.save(document)
        return user

    def append_magic_link(self, link: StoredMagicLink) -> None:
        document = self.load()
        document.magic_links.append(link)
        self.save(document)

    def find_magic_link(self, token_hash: str) -> Optional[StoredMagicLink]:
        document = self.load()
        return next((link for link in document.magic_links if link.token_hash == token_hash), None)

    def consume_magic_link(self, token_hash, now=None, reuse_window=None):
        now = now or utcnow()
        document = self.load()
        link = next((entry for entry in document.magic_links if entry.token_hash == token_hash), None)
        if not link:
            return None, None

        if link.consumed_at is None:
            link.consumed_at = now
        elif reuse_window is not None and now - link.consumed_at > reuse_window:
            return link, None

        user = self._find_user(document, link.email)
        if user:
            user.last_login_at = now
            user.updated_at = now

        self.save(document)
        return link, user

    def purge_expired_magic_links(self, now=None) -> int:
        """Drop expired links. Consumed ones stay until they expire. Returns how many went."""
        now = now or utcnow()
        document = self.load()
        active = [link for link in document.magic_links if not link.is_expired(now)]
        removed = len(document.magic_links) - len(active)
        if removed == 0:
            return 0

        document.magic_links = active
        self.save(document)
        logger.debug(f"Purged {removed} stale magic link(s)")
        return removed

    def list_magic_links_for_email(self, email, purpose=None):
        normalized = normalize_email(email)
        return [
            link
            for link in self.load().magic_links
            if link.email == normalized and (purpose is None or link.purpose == purpose)
        ]
