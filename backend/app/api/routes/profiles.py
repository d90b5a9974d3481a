"""Public profile routes."""

from fastapi import APIRouter, Depends, HTTPException

from app.api.dependencies import get_profile_view_service
from app.schemas.profiles import PublicProfileResponse
from app.services.profile_view_service import ProfileViewService

router = APIRouter()


@router.get("/{username}", response_model=PublicProfileResponse)
async def get_public_profile(
    username: str,
    service: ProfileViewService = Depends(get_profile_view_service),
) -> PublicProfileResponse:
    """Published profile display data. Unpublished and unknown usernames are both 404."""
    profile = await service.get_public_profile(username)
    if profile is None:
        raise HTTPException(status_code=404, detail="Profile not found")
    return PublicProfileResponse(
        username=profile.username,
        template_id=profile.template_id,
        theme=profile.theme,
        content=profile.content,
        avatar_url=profile.avatar_url,
        images=profile.images,
        videos=profile.videos,
        show_branding=profile.show_branding,
    )
