"""Catalog loading: decoded plan and billing configuration documents."""

from app.db.datastore import Datastore
from app.domain.plan_config import (
    BILLING_DOC,
    PLANS_PUBLIC_DOC,
    BillingData,
    PlanConfigPublic,
    parse_billing_doc,
    parse_plans_public_doc,
)
from app.domain.plans import Plan, normalize_plan, plan_allows


async def load_plan_config(datastore: Datastore) -> PlanConfigPublic:
    """Read and decode the plansPublic document. Falls back to defaults, never raises on bad data."""
    return parse_plans_public_doc(await datastore.get_config_document(PLANS_PUBLIC_DOC))


async def load_billing(datastore: Datastore) -> BillingData:
    return parse_billing_doc(await datastore.get_config_document(BILLING_DOC))


def unlocked_features(config: PlanConfigPublic, plan: Plan) -> dict[str, bool]:
    """Map each configured feature gate to whether ``plan`` meets its minimum plan."""
    return {
        feature: plan_allows(plan, normalize_plan(minimum))
        for feature, minimum in config.feature_gates.items()
    }
