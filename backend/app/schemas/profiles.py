"""Public profile response schema."""

from pydantic import BaseModel


class PublicProfileResponse(BaseModel):
    username: str
    template_id: str
    theme: dict
    content: dict
    avatar_url: str | None
    images: list[str]
    videos: list[str]
    show_branding: bool
