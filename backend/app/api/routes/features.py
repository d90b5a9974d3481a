"""Feature gate routes.

Provides GET /api/features: which configured feature gates the caller's
effective plan unlocks.
"""

from fastapi import APIRouter, Depends

from app.api.dependencies import get_datastore, get_plan_resolver
from app.core.auth import ClerkUser, require_auth
from app.db.datastore import Datastore
from app.schemas.plans import FeaturesResponse
from app.services.catalog_service import load_plan_config, unlocked_features
from app.services.plan_resolver import PlanResolver

router = APIRouter()


@router.get("", response_model=FeaturesResponse)
async def get_features(
    user: ClerkUser = Depends(require_auth),
    datastore: Datastore = Depends(get_datastore),
    resolver: PlanResolver = Depends(get_plan_resolver),
) -> FeaturesResponse:
    config = await load_plan_config(datastore)
    resolved = await resolver.resolve(user.user_id)
    return FeaturesResponse(plan=resolved.plan.value, features=unlocked_features(config, resolved.plan))
