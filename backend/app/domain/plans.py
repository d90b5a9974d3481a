"""Plan identifiers and effective-plan rules.

Pure domain functions: no DB access, deterministic for a given ``now``.
"""

import math
from dataclasses import dataclass
from datetime import UTC, date, datetime
from enum import StrEnum
from typing import Any

from app.domain.plan_config import PlanLimits


class Plan(StrEnum):
    """Subscription plans, cheapest first."""

    FREE = "free"
    PRO = "pro"
    BUSINESS = "business"


PLAN_RANK = {Plan.FREE: 0, Plan.PRO: 1, Plan.BUSINESS: 2}


@dataclass(frozen=True)
class ResolvedPlan:
    """Result of resolving a user's subscription at a point in time."""

    plan: Plan
    declared_plan: Plan
    active_paid_subscription: bool
    limits: PlanLimits


def normalize_plan(raw_plan: Any) -> Plan:
    """Map a stored plan value onto a known plan. Anything unrecognised is free."""
    value = raw_plan.strip().lower() if isinstance(raw_plan, str) else ""
    try:
        return Plan(value)
    except ValueError:
        return Plan.FREE


def to_instant(value: Any) -> datetime | None:
    """Normalise a stored expiry into an aware UTC datetime.

    Accepts datetimes (naive values are taken as UTC), dates, epoch
    milliseconds, ISO-8601 strings and objects exposing ``to_datetime()``
    (Firestore-style timestamps). Returns None for anything unparseable.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=UTC)

    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=UTC)

    if isinstance(value, (int, float)):
        if not math.isfinite(value):
            return None
        try:
            return datetime.fromtimestamp(value / 1000, tz=UTC)
        except (OverflowError, OSError, ValueError):
            return None

    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)

    converter = getattr(value, "to_datetime", None)
    if callable(converter):
        try:
            converted = converter()
        except Exception:
            return None
        if isinstance(converted, datetime):
            return converted if converted.tzinfo else converted.replace(tzinfo=UTC)

    return None


def has_active_paid_subscription(plan: Plan, plan_expires_at: Any, now: datetime) -> bool:
    """True only for a paid plan whose expiry is strictly after ``now``."""
    if plan == Plan.FREE:
        return False
    expires_at = to_instant(plan_expires_at)
    return expires_at is not None and expires_at > now


def resolve_plan(record: dict | None, catalog: dict[str, PlanLimits], now: datetime) -> ResolvedPlan:
    """Derive the effective plan from a loosely typed subscription record.

    Args:
        record: Stored user document (``plan``, ``planExpiresAt``) or None
        catalog: Limits per plan id
        now: Evaluation instant (aware)

    Returns:
        ResolvedPlan where an expired or missing paid plan collapses to free
    """
    data = record or {}
    declared = normalize_plan(data.get("plan"))
    active = has_active_paid_subscription(declared, data.get("planExpiresAt"), now)
    effective = declared if active else Plan.FREE

    return ResolvedPlan(
        plan=effective,
        declared_plan=declared,
        active_paid_subscription=active,
        limits=catalog[effective],
    )


def plan_allows(plan: Plan, minimum: Plan) -> bool:
    """Whether ``plan`` is at or above ``minimum`` in the plan order."""
    return PLAN_RANK[plan] >= PLAN_RANK[minimum]
