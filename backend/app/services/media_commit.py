"""MediaCommitService: plan-gated recording of an uploaded media object on a profile.

The client uploads bytes to object storage first, then calls commit() with
the object path and its download URL. The commit:

1. Pre-validates the request fields (invalid-argument, no side effects)
2. Checks the path is under the caller's ``users/{uid}/`` prefix
3. Checks the path sits in the directory for the declared kind and that
   content type and size are within the fixed ceilings
4. Runs one read-modify-write transaction on the profile: ownership,
   fresh plan resolution, plan gating, quota, then a single media update

Any rejection from step 3 onwards deletes the uploaded object (best
effort). A path outside the caller's prefix is never deleted, since it
may belong to someone else.
"""

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

import structlog

from app.core.exceptions import (
    FailedPreconditionError,
    InvalidArgumentError,
    PermissionDeniedError,
)
from app.db.datastore import Datastore, MediaUpdate, ProfileTransaction
from app.domain.media import (
    MediaCeilings,
    check_content_policy,
    normalize_content_type,
    normalize_size_bytes,
    normalize_string,
)
from app.domain.plans import Plan
from app.domain.upload_paths import (
    MediaKind,
    is_kind_scoped_path,
    is_owned_path,
    normalize_storage_path,
)
from app.integrations.object_storage import S3ObjectStorage, delete_quietly
from app.metrics.cloudwatch import emit_business_event
from app.services.plan_resolver import PlanResolver

logger = structlog.get_logger(__name__)

PROFILE_NOT_OWNED_MESSAGE = "Profile not found or not owned by you."


@dataclass
class CommitMediaInput:
    """Raw commit input. Fields are loosely typed and normalised by the service."""

    username: Any = None
    kind: Any = None
    path: Any = None
    download_url: Any = None
    size_bytes: Any = None
    content_type: Any = None


@dataclass(frozen=True)
class CommitMediaResult:
    kind: MediaKind
    count_images: int
    count_videos: int


@dataclass(frozen=True)
class _ValidatedCommit:
    username: str
    kind: MediaKind
    path: str
    download_url: str
    size_bytes: int
    content_type: str


def _validate_request(request: CommitMediaInput) -> _ValidatedCommit:
    """Field checks in a fixed order; the first failure wins."""
    username = normalize_string(request.username)
    if not username:
        raise InvalidArgumentError("Username is required.", reason="username-required")

    try:
        kind = MediaKind(normalize_string(request.kind).lower())
    except ValueError:
        raise InvalidArgumentError("Kind must be avatar, image, or video.", reason="kind-invalid") from None

    path = normalize_storage_path(request.path)
    if not path:
        raise InvalidArgumentError("Path is required.", reason="path-required")

    download_url = normalize_string(request.download_url)
    if not download_url:
        raise InvalidArgumentError("Download URL is required.", reason="download-url-required")

    size_bytes = normalize_size_bytes(request.size_bytes)
    if size_bytes is None:
        raise InvalidArgumentError("File size is invalid.", reason="size-invalid")

    content_type = normalize_content_type(request.content_type)
    if not content_type:
        raise InvalidArgumentError("Content type is required.", reason="content-type-required")

    return _ValidatedCommit(
        username=username,
        kind=kind,
        path=path,
        download_url=download_url,
        size_bytes=size_bytes,
        content_type=content_type,
    )


class MediaCommitService:
    def __init__(
        self,
        datastore: Datastore,
        resolver: PlanResolver,
        storage: S3ObjectStorage | None = None,
        ceilings: MediaCeilings | None = None,
    ):
        """Initialize with injected collaborators.

        Args:
            datastore: Profile store providing run_profile_transaction()
            resolver: Plan resolver, called inside the transaction
            storage: Object storage used to delete rejected uploads (None disables cleanup)
            ceilings: Fixed per-kind byte ceilings
        """
        self.datastore = datastore
        self.resolver = resolver
        self.storage = storage
        self.ceilings = ceilings or MediaCeilings()

    async def commit(
        self,
        uid: str,
        request: CommitMediaInput,
        now: datetime | None = None,
    ) -> CommitMediaResult:
        """Validate and record one uploaded media object against a profile.

        Raises:
            InvalidArgumentError: a request field is missing or malformed
            PermissionDeniedError: path or profile not owned by the caller
            FailedPreconditionError: content policy, plan gating or quota
        """
        commit = _validate_request(request)
        now = now or datetime.now(UTC)

        if not is_owned_path(commit.path, uid):
            logger.warning("media_commit_rejected", uid=uid, path=commit.path, reason="path-not-owned")
            raise PermissionDeniedError("Upload path is not owned by you.", reason="path-not-owned")

        try:
            if not is_kind_scoped_path(commit.path, uid, commit.kind):
                raise PermissionDeniedError("Upload path does not match media kind.", reason="path-kind-mismatch")

            check_content_policy(commit.kind, commit.content_type, commit.size_bytes, self.ceilings)

            result = await self.datastore.run_profile_transaction(
                commit.username,
                lambda txn: self._apply(txn, uid, commit, now),
            )
        except (PermissionDeniedError, FailedPreconditionError) as exc:
            logger.warning(
                "media_commit_rejected",
                uid=uid,
                username=commit.username,
                kind=commit.kind,
                path=commit.path,
                reason=exc.reason,
            )
            await delete_quietly(self.storage, commit.path)
            raise

        logger.info(
            "media_committed",
            uid=uid,
            username=commit.username,
            kind=result.kind,
            count_images=result.count_images,
            count_videos=result.count_videos,
        )
        await emit_business_event("media_committed", Kind=str(result.kind))
        return result

    async def _apply(
        self,
        txn: ProfileTransaction,
        uid: str,
        commit: _ValidatedCommit,
        now: datetime,
    ) -> CommitMediaResult:
        profile = await txn.read()
        # Missing and foreign profiles fail identically
        if profile is None or profile.uid != uid:
            raise PermissionDeniedError(PROFILE_NOT_OWNED_MESSAGE, reason="profile-not-owned")

        plan = await self.resolver.resolve(uid, now)
        images = list(profile.media.images)
        videos = list(profile.media.videos)

        if commit.kind == MediaKind.IMAGE:
            if plan.plan == Plan.FREE:
                raise FailedPreconditionError("Upgrade to Pro to upload gallery images.", reason="plan-upgrade-required")
            if commit.download_url not in images:
                if len(images) >= plan.limits.images:
                    raise FailedPreconditionError(
                        f"Image limit reached ({plan.limits.images}).",
                        reason="image-limit-reached",
                    )
                images.append(commit.download_url)

        elif commit.kind == MediaKind.VIDEO:
            if plan.declared_plan != Plan.BUSINESS or not plan.active_paid_subscription:
                raise FailedPreconditionError(
                    "Videos require an active Business plan.",
                    reason="business-plan-required",
                )
            check_content_policy(commit.kind, commit.content_type, commit.size_bytes, self.ceilings)
            if commit.download_url not in videos:
                if len(videos) >= plan.limits.videos:
                    raise FailedPreconditionError(
                        f"Video limit reached ({plan.limits.videos}).",
                        reason="video-limit-reached",
                    )
                videos.append(commit.download_url)

        txn.write(MediaUpdate(kind=commit.kind, url=commit.download_url, at=now))

        return CommitMediaResult(kind=commit.kind, count_images=len(images), count_videos=len(videos))
