"""PlanResolver: effective plan for a uid at a point in time."""

from datetime import UTC, datetime

import structlog

from app.core.exceptions import UnauthenticatedError
from app.db.datastore import Datastore
from app.domain.plan_config import PlanLimits, plan_limits_catalog
from app.domain.plans import ResolvedPlan, resolve_plan
from app.services.catalog_service import load_plan_config

logger = structlog.get_logger(__name__)


class PlanResolver:
    """Resolves a caller's plan from their subscription record.

    Takes the datastore by constructor injection. When no catalog is given,
    plan limits are read from the plansPublic document on each call.
    """

    def __init__(self, datastore: Datastore, catalog: dict[str, PlanLimits] | None = None):
        self.datastore = datastore
        self.catalog = catalog

    async def _catalog(self) -> dict[str, PlanLimits]:
        if self.catalog is not None:
            return self.catalog
        return plan_limits_catalog(await load_plan_config(self.datastore))

    async def resolve(self, uid: str, now: datetime | None = None) -> ResolvedPlan:
        """Read the subscription record for ``uid`` and derive its effective plan.

        Args:
            uid: Authenticated caller id
            now: Evaluation instant (defaults to current UTC time)

        Raises:
            UnauthenticatedError: uid is empty
        """
        if not uid:
            raise UnauthenticatedError("Login required.", reason="login-required")

        now = now or datetime.now(UTC)
        record = await self.datastore.get_subscription(uid)
        resolved = resolve_plan(record, await self._catalog(), now)

        logger.debug(
            "plan_resolved",
            uid=uid,
            plan=resolved.plan,
            declared_plan=resolved.declared_plan,
            active=resolved.active_paid_subscription,
        )
        return resolved
