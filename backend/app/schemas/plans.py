"""Plan and feature gate response schemas."""

from pydantic import BaseModel

from app.domain.plan_config import PlanLimits


class ResolvedPlanResponse(BaseModel):
    plan: str
    declared_plan: str
    active_paid_subscription: bool
    limits: PlanLimits


class FeaturesResponse(BaseModel):
    plan: str
    features: dict[str, bool]
