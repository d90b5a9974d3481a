"""Storage path scoping for uploaded media.

Uploaded objects live under ``users/{uid}/avatar/``, ``users/{uid}/images/``
or ``users/{uid}/videos/``. These predicates are the security boundary that
stops a caller from recording (or triggering cleanup of) someone else's object.
"""

from enum import StrEnum


class MediaKind(StrEnum):
    AVATAR = "avatar"
    IMAGE = "image"
    VIDEO = "video"


KIND_DIRECTORIES = {
    MediaKind.AVATAR: "avatar",
    MediaKind.IMAGE: "images",
    MediaKind.VIDEO: "videos",
}


def normalize_storage_path(raw: object) -> str:
    """Trim whitespace and strip leading slashes. Non-strings normalise to ''."""
    if not isinstance(raw, str):
        return ""
    return raw.strip().lstrip("/")


def is_owned_path(path: str, uid: str) -> bool:
    """True iff ``path`` sits under the caller's ``users/{uid}/`` prefix."""
    return bool(uid) and path.startswith(f"users/{uid}/")


def is_kind_scoped_path(path: str, uid: str, kind: MediaKind) -> bool:
    """True iff ``path`` sits in the directory for ``kind`` with a safe, non-empty remainder.

    Only the directory prefix is enforced; the file name shape inside the
    directory is not constrained any further for any kind.
    """
    base = f"users/{uid}/{KIND_DIRECTORIES[kind]}/"
    if not path.startswith(base):
        return False
    suffix = path[len(base):].strip()
    return bool(suffix) and ".." not in suffix
