"""Media routes: record an uploaded object on a profile."""

from fastapi import APIRouter, Depends

from app.api.dependencies import get_media_commit_service
from app.core.auth import ClerkUser, require_auth
from app.schemas.media import CommitMediaRequest, CommitMediaResponse
from app.services.media_commit import CommitMediaInput, MediaCommitService

router = APIRouter()


@router.post("/commit", response_model=CommitMediaResponse)
@router.post("/finalize", response_model=CommitMediaResponse, include_in_schema=False)
async def commit_media(
    body: CommitMediaRequest,
    user: ClerkUser = Depends(require_auth),
    service: MediaCommitService = Depends(get_media_commit_service),
) -> CommitMediaResponse:
    """Commit an uploaded avatar, gallery image or video to the caller's profile.

    ``/finalize`` is kept for older app builds and behaves identically.
    """
    result = await service.commit(
        user.user_id,
        CommitMediaInput(
            username=body.username,
            kind=body.kind,
            path=body.path,
            download_url=body.download_url,
            size_bytes=body.size_bytes,
            content_type=body.content_type,
        ),
    )
    return CommitMediaResponse(
        kind=result.kind.value,
        count_images=result.count_images,
        count_videos=result.count_videos,
    )
