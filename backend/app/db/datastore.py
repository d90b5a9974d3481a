"""Datastore interface for profiles, subscription records and config documents.

The profile read-modify-write is exposed as ``run_profile_transaction``:
the store begins a transaction isolated on one profile, hands the callback
a ProfileTransaction to read and stage a single media update, then commits
when the callback returns or aborts when it raises. Implementations:

- SqlDatastore: SQLAlchemy async, row lock via SELECT ... FOR UPDATE
- InMemoryDatastore: per-username asyncio.Lock, used by tests and local dev
"""

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, TypeVar

from app.domain.media import normalize_string, read_url_list
from app.domain.plans import to_instant
from app.domain.upload_paths import MediaKind

T = TypeVar("T")


@dataclass
class ProfileMedia:
    avatar_url: str | None = None
    images: list[str] = field(default_factory=list)
    videos: list[str] = field(default_factory=list)
    updated_at: datetime | None = None


@dataclass
class ProfileSnapshot:
    """Normalised view of a stored profile document."""

    username: str
    uid: str
    published: bool = False
    template_id: str | None = None
    theme: dict | None = None
    content: dict = field(default_factory=dict)
    media: ProfileMedia = field(default_factory=ProfileMedia)


@dataclass(frozen=True)
class MediaUpdate:
    """The single field mutation a commit applies to a profile."""

    kind: MediaKind
    url: str
    at: datetime


def snapshot_from_document(username: str, document: dict) -> ProfileSnapshot:
    """Build a snapshot from a loosely typed profile document.

    A missing or malformed media sub-document reads as empty collections.
    """
    media_raw = document.get("media")
    media_raw = media_raw if isinstance(media_raw, dict) else {}
    content = document.get("content")
    theme = document.get("theme")

    return ProfileSnapshot(
        username=username,
        uid=normalize_string(document.get("uid")),
        published=document.get("published") is True,
        template_id=normalize_string(document.get("templateId")) or None,
        theme=theme if isinstance(theme, dict) else None,
        content=content if isinstance(content, dict) else {},
        media=ProfileMedia(
            avatar_url=normalize_string(media_raw.get("avatarUrl")) or None,
            images=read_url_list(media_raw.get("images")),
            videos=read_url_list(media_raw.get("videos")),
            updated_at=to_instant(media_raw.get("updatedAt")),
        ),
    )


def apply_media_update(media: Any, update: MediaUpdate) -> dict:
    """Return a new media sub-document with ``update`` applied.

    Images and videos have set semantics: adding a URL that is already
    present leaves the collection unchanged.
    """
    result = dict(media) if isinstance(media, dict) else {}

    if update.kind == MediaKind.AVATAR:
        result["avatarUrl"] = update.url
    else:
        key = "images" if update.kind == MediaKind.IMAGE else "videos"
        current = result.get(key)
        urls = list(current) if isinstance(current, list) else []
        if update.url not in urls:
            urls.append(update.url)
        result[key] = urls

    result["updatedAt"] = update.at.isoformat()
    return result


class ProfileTransaction(ABC):
    """Handle passed to a profile transaction callback."""

    def __init__(self, username: str) -> None:
        self.username = username
        self.pending: MediaUpdate | None = None

    @abstractmethod
    async def read(self) -> ProfileSnapshot | None:
        """Return the locked profile, or None if it does not exist."""

    def write(self, update: MediaUpdate) -> None:
        """Stage the media update applied at commit. Only one write per transaction."""
        if self.pending is not None:
            raise RuntimeError("Profile transaction already has a pending write")
        self.pending = update


class Datastore(ABC):
    @abstractmethod
    async def get_subscription(self, uid: str) -> dict | None:
        """Return the raw subscription record (``plan``, ``planExpiresAt``) for ``uid``."""

    @abstractmethod
    async def get_profile(self, username: str) -> ProfileSnapshot | None:
        """Non-transactional profile read."""

    @abstractmethod
    async def get_config_document(self, name: str) -> Any | None:
        """Return the raw body of a configuration document, or None if absent."""

    @abstractmethod
    async def put_config_document(self, name: str, data: Any, overwrite: bool = False) -> bool:
        """Store a configuration document. Returns False if it existed and was kept."""

    @abstractmethod
    async def run_profile_transaction(
        self,
        username: str,
        fn: Callable[[ProfileTransaction], Awaitable[T]],
    ) -> T:
        """Run ``fn`` isolated on one profile; commit on return, abort on raise."""
