"""Public profile view: display data for a published profile."""

from dataclasses import dataclass, field
from datetime import UTC, datetime

from app.db.datastore import Datastore, ProfileSnapshot
from app.domain.media import normalize_string, read_url_list
from app.services.plan_resolver import PlanResolver

FREE_TEMPLATE_ID = "business_card_v1"
DEFAULT_THEME = {"mode": "light", "primary": "#0F172A", "accent": "#2563EB"}


@dataclass
class PublicProfile:
    username: str
    template_id: str
    theme: dict
    content: dict
    avatar_url: str | None
    images: list[str] = field(default_factory=list)
    videos: list[str] = field(default_factory=list)
    show_branding: bool = True


def build_public_profile(profile: ProfileSnapshot, active_paid_subscription: bool) -> PublicProfile:
    """Project a stored profile onto what the public page renders.

    Older profiles kept media inside ``content`` (``avatar``, ``gallery``);
    those are used when the media sub-document is empty. Premium templates
    and branding removal require an active paid subscription.
    """
    content = profile.content
    avatar_url = profile.media.avatar_url or normalize_string(content.get("avatar")) or None
    images = profile.media.images or read_url_list(content.get("gallery"))

    template_id = profile.template_id or FREE_TEMPLATE_ID
    if not active_paid_subscription:
        template_id = FREE_TEMPLATE_ID

    return PublicProfile(
        username=profile.username,
        template_id=template_id,
        theme=profile.theme or dict(DEFAULT_THEME),
        content=content,
        avatar_url=avatar_url,
        images=images,
        videos=profile.media.videos,
        show_branding=not active_paid_subscription,
    )


class ProfileViewService:
    def __init__(self, datastore: Datastore, resolver: PlanResolver):
        self.datastore = datastore
        self.resolver = resolver

    async def get_public_profile(self, username: str, now: datetime | None = None) -> PublicProfile | None:
        """Return the public view of ``username``, or None unless it exists and is published."""
        username = normalize_string(username)
        if not username:
            return None

        profile = await self.datastore.get_profile(username)
        if profile is None or not profile.published:
            return None

        active = False
        if profile.uid:
            resolved = await self.resolver.resolve(profile.uid, now or datetime.now(UTC))
            active = resolved.active_paid_subscription

        return build_public_profile(profile, active)
