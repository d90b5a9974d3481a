"""Media request normalisation and content policy.

Pure functions shared by the commit pre-validation and the in-transaction
re-check for videos.
"""

import math
from dataclasses import dataclass

from app.core.exceptions import FailedPreconditionError
from app.domain.upload_paths import MediaKind

IMAGE_CONTENT_TYPES = frozenset({"image/jpeg", "image/png", "image/webp"})
VIDEO_CONTENT_TYPE = "video/mp4"


@dataclass(frozen=True)
class MediaCeilings:
    """Absolute per-file byte ceilings, independent of plan."""

    image_max_bytes: int = 2 * 1024 * 1024
    video_max_bytes: int = 25 * 1024 * 1024


def normalize_string(raw: object) -> str:
    return raw.strip() if isinstance(raw, str) else ""


def normalize_size_bytes(raw: object) -> int | None:
    """Floor a finite positive number; anything else is None."""
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        return None
    if not math.isfinite(raw) or raw <= 0:
        return None
    return math.floor(raw)


def normalize_content_type(raw: object) -> str:
    """Lower-case and drop any ``;`` parameter suffix (``image/png; q=1`` -> ``image/png``)."""
    return normalize_string(raw).lower().split(";", 1)[0].strip()


def read_url_list(raw: object) -> list[str]:
    """Read a stored URL collection, dropping blanks and non-strings."""
    if not isinstance(raw, list):
        return []
    return [item.strip() for item in raw if isinstance(item, str) and item.strip()]


def _mb(limit_bytes: int) -> str:
    return f"{limit_bytes // (1024 * 1024)}MB"


def check_content_policy(kind: MediaKind, content_type: str, size_bytes: int, ceilings: MediaCeilings) -> None:
    """Enforce content type whitelist and byte ceiling for ``kind``.

    Raises:
        FailedPreconditionError: with reason ``content-type-not-allowed`` or ``file-too-large``
    """
    if kind == MediaKind.VIDEO:
        if content_type != VIDEO_CONTENT_TYPE:
            raise FailedPreconditionError(
                f"Invalid video type. Allowed: {VIDEO_CONTENT_TYPE}.",
                reason="content-type-not-allowed",
            )
        if size_bytes > ceilings.video_max_bytes:
            raise FailedPreconditionError(
                f"Video size must be {_mb(ceilings.video_max_bytes)} or less.",
                reason="file-too-large",
            )
        return

    if content_type not in IMAGE_CONTENT_TYPES:
        raise FailedPreconditionError(
            f"Invalid image type. Allowed: {', '.join(sorted(IMAGE_CONTENT_TYPES))}.",
            reason="content-type-not-allowed",
        )
    if size_bytes > ceilings.image_max_bytes:
        raise FailedPreconditionError(
            f"Image size must be {_mb(ceilings.image_max_bytes)} or less.",
            reason="file-too-large",
        )
