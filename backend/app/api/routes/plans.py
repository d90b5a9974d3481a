"""Plan catalog routes: public plan/billing catalogs and the caller's resolved plan."""

from fastapi import APIRouter, Depends

from app.api.dependencies import get_datastore, get_plan_resolver
from app.core.auth import ClerkUser, require_auth
from app.db.datastore import Datastore
from app.domain.plan_config import BillingData, PlanConfigPublic
from app.schemas.plans import ResolvedPlanResponse
from app.services.catalog_service import load_billing, load_plan_config
from app.services.plan_resolver import PlanResolver

router = APIRouter()


@router.get("/plans", response_model=PlanConfigPublic)
async def get_plan_catalog(datastore: Datastore = Depends(get_datastore)) -> PlanConfigPublic:
    """Public plan catalog (labels, limits, feature gates). Defaults when unconfigured."""
    return await load_plan_config(datastore)


@router.get("/billing/catalog", response_model=BillingData)
async def get_billing_catalog(datastore: Datastore = Depends(get_datastore)) -> BillingData:
    return await load_billing(datastore)


@router.get("/plans/me", response_model=ResolvedPlanResponse)
async def get_my_plan(
    user: ClerkUser = Depends(require_auth),
    resolver: PlanResolver = Depends(get_plan_resolver),
) -> ResolvedPlanResponse:
    """Effective plan for the caller. An expired paid plan reports as free."""
    resolved = await resolver.resolve(user.user_id)
    return ResolvedPlanResponse(
        plan=resolved.plan.value,
        declared_plan=resolved.declared_plan.value,
        active_paid_subscription=resolved.active_paid_subscription,
        limits=resolved.limits,
    )
