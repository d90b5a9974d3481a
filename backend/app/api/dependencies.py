"""FastAPI dependency providers.

Each collaborator is built from settings and the process-wide pools set up
in the lifespan. Tests swap any of them via ``app.dependency_overrides``.
"""

from functools import lru_cache

from fastapi import Depends

from app.core.config import get_settings
from app.db.base import get_session_factory
from app.db.datastore import Datastore
from app.db.datastore_sql import SqlDatastore
from app.db.pay_sessions import RedisPaySessionStore
from app.db.redis import get_redis
from app.domain.media import MediaCeilings
from app.integrations.clerk import ClerkSignInTokenIssuer
from app.integrations.object_storage import S3ObjectStorage
from app.services.media_commit import MediaCommitService
from app.services.pay_session_service import PaySessionService, TokenIssuer
from app.services.plan_resolver import PlanResolver
from app.services.profile_view_service import ProfileViewService


def get_datastore() -> Datastore:
    return SqlDatastore(get_session_factory())


def get_pay_session_store() -> RedisPaySessionStore:
    settings = get_settings()
    return RedisPaySessionStore(get_redis(), retention_seconds=settings.pay_session_retention_seconds)


@lru_cache
def get_object_storage() -> S3ObjectStorage | None:
    """S3 storage for cleanup of rejected uploads; None when no bucket is configured."""
    settings = get_settings()
    if not settings.media_bucket:
        return None
    return S3ObjectStorage(settings.media_bucket, settings.aws_region)


def get_token_issuer() -> TokenIssuer:
    settings = get_settings()
    return ClerkSignInTokenIssuer(
        secret_key=settings.clerk_secret_key,
        api_url=settings.clerk_api_url,
        expires_in_seconds=settings.sign_in_token_ttl_seconds,
    )


def get_plan_resolver(datastore: Datastore = Depends(get_datastore)) -> PlanResolver:
    return PlanResolver(datastore)


def get_media_commit_service(
    datastore: Datastore = Depends(get_datastore),
    resolver: PlanResolver = Depends(get_plan_resolver),
    storage: S3ObjectStorage | None = Depends(get_object_storage),
) -> MediaCommitService:
    settings = get_settings()
    return MediaCommitService(
        datastore,
        resolver,
        storage=storage,
        ceilings=MediaCeilings(
            image_max_bytes=settings.image_max_bytes,
            video_max_bytes=settings.video_max_bytes,
        ),
    )


def get_pay_session_service(
    store: RedisPaySessionStore = Depends(get_pay_session_store),
    issuer: TokenIssuer = Depends(get_token_issuer),
) -> PaySessionService:
    settings = get_settings()
    return PaySessionService(
        store,
        issuer,
        ttl_seconds=settings.pay_session_ttl_seconds,
        reissue_window_seconds=settings.pay_session_reissue_window_seconds,
        pay_portal_base_url=settings.pay_portal_base_url,
    )


def get_profile_view_service(
    datastore: Datastore = Depends(get_datastore),
    resolver: PlanResolver = Depends(get_plan_resolver),
) -> ProfileViewService:
    return ProfileViewService(datastore, resolver)
