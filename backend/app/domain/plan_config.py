"""Plan and billing catalog decoders.

Both catalogs live in externally editable configuration documents, so the
decoders never trust the upstream shape. A plan map with the wrong key set
discards the whole document in favour of the embedded default; individual
bad fields fall back to the default value for that field. Decoding never
raises, anomalies are logged as warnings.
"""

import math
import re
from typing import Any

import structlog
from pydantic import BaseModel

logger = structlog.get_logger(__name__)

PLAN_IDS = ("free", "pro", "business")
PAID_PLAN_IDS = ("pro", "business")

PLANS_PUBLIC_DOC = "plansPublic"
BILLING_DOC = "billing"


class PlanLimits(BaseModel):
    images: int
    videos: int
    max_image_mb: int
    max_video_mb: int


class PlanDefinition(BaseModel):
    label: str
    tagline: str
    cta: str
    badge: str
    limits: PlanLimits
    features: list[str]


class PlanConfigPublic(BaseModel):
    currency: str
    demo_mode: bool
    plans: dict[str, PlanDefinition]
    feature_gates: dict[str, str]
    display_order: list[str]
    version: int | None = None


class BillingPlanPricing(BaseModel):
    amount: int
    charge_amount: int
    duration_days: int


class BillingData(BaseModel):
    currency: str
    demo_mode: bool
    plans: dict[str, BillingPlanPricing]
    version: int | None = None


DEFAULT_PLAN_CONFIG = PlanConfigPublic(
    currency="XAF",
    demo_mode=False,
    plans={
        "free": PlanDefinition(
            label="Free",
            tagline="Perfect for getting your first page online.",
            cta="Start Free",
            badge="",
            limits=PlanLimits(images=1, videos=0, max_image_mb=1, max_video_mb=0),
            features=["1 avatar image", "Basic template", "QuickSite branding"],
        ),
        "pro": PlanDefinition(
            label="Pro",
            tagline="Best for creators and small teams ready to convert.",
            cta="Choose Pro",
            badge="Most Popular",
            limits=PlanLimits(images=20, videos=0, max_image_mb=2, max_video_mb=0),
            features=["Premium templates", "Contact form + inbox", "Push notifications"],
        ),
        "business": PlanDefinition(
            label="Business",
            tagline="Built for busy businesses with rich media needs.",
            cta="Choose Business",
            badge="",
            limits=PlanLimits(images=40, videos=3, max_image_mb=2, max_video_mb=25),
            features=["Everything in Pro", "Business videos", "Advanced branding controls"],
        ),
    },
    feature_gates={
        "contactForm": "pro",
        "gallery": "pro",
        "videos": "business",
        "premiumTemplates": "pro",
        "removeBranding": "business",
    },
    display_order=["free", "pro", "business"],
    version=1,
)

DEFAULT_BILLING = BillingData(
    currency="XAF",
    demo_mode=False,
    plans={
        "pro": BillingPlanPricing(amount=4900, charge_amount=4900, duration_days=30),
        "business": BillingPlanPricing(amount=7900, charge_amount=7900, duration_days=30),
    },
    version=1,
)


def _warn(path: str, message: str) -> None:
    logger.warning("config_field_invalid", path=path, message=message)


def _as_mapping(value: Any) -> dict | None:
    return value if isinstance(value, dict) else None


def _parse_string(value: Any) -> str | None:
    if not isinstance(value, str):
        return None
    trimmed = value.strip()
    return trimmed or None


def _parse_int_like(value: Any) -> int | None:
    """Accept finite numbers (rounded) and strings carrying digits."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        if not math.isfinite(value):
            return None
        return round(value)
    if isinstance(value, str):
        digits = re.sub(r"[^0-9]", "", value)
        return int(digits) if digits else None
    return None


def _to_plan_id(value: Any) -> str | None:
    if not isinstance(value, str):
        return None
    normalized = value.strip().lower()
    return normalized if normalized in PLAN_IDS else None


def _has_exact_keys(data: dict, required: tuple[str, ...], path: str) -> bool:
    missing = [key for key in required if key not in data]
    extra = [key for key in data if key not in required]
    if missing or extra:
        _warn(path, f"Invalid plan keys. Missing: {missing}, Extra: {extra}")
        return False
    return True


def _parse_limits(value: Any, fallback: PlanLimits, path: str) -> PlanLimits:
    data = _as_mapping(value)
    if data is None:
        _warn(path, "Missing or invalid object. Using fallback.")
        return fallback.model_copy()

    def pick(key: str, default: int) -> int:
        parsed = _parse_int_like(data.get(key))
        return parsed if parsed is not None and parsed >= 0 else default

    return PlanLimits(
        images=pick("images", fallback.images),
        videos=pick("videos", fallback.videos),
        max_image_mb=pick("maxImageMB", fallback.max_image_mb),
        max_video_mb=pick("maxVideoMB", fallback.max_video_mb),
    )


def _parse_features(value: Any, fallback: list[str], path: str) -> list[str]:
    if not isinstance(value, list):
        _warn(path, "Missing or invalid list. Using fallback.")
        return list(fallback)

    parsed = [item.strip() for item in value if isinstance(item, str) and item.strip()]
    if not parsed:
        _warn(path, "Empty list. Using fallback.")
        return list(fallback)
    return parsed


def _parse_plan(value: Any, fallback: PlanDefinition, path: str) -> PlanDefinition:
    data = _as_mapping(value)
    if data is None:
        _warn(path, "Missing plan object. Using fallback.")
        return fallback.model_copy(deep=True)

    return PlanDefinition(
        label=_parse_string(data.get("label")) or fallback.label,
        tagline=_parse_string(data.get("tagline")) or fallback.tagline,
        cta=_parse_string(data.get("cta")) or fallback.cta,
        badge=_parse_string(data.get("badge")) or fallback.badge,
        limits=_parse_limits(data.get("limits"), fallback.limits, f"{path}.limits"),
        features=_parse_features(data.get("features"), fallback.features, f"{path}.features"),
    )


def parse_plans_public_doc(raw: Any) -> PlanConfigPublic:
    """Decode the ``config/plansPublic`` document.

    Args:
        raw: Untrusted document body (any JSON value)

    Returns:
        A fully populated PlanConfigPublic; the embedded default when the
        document or its plan map is structurally wrong
    """
    fallback = DEFAULT_PLAN_CONFIG.model_copy(deep=True)
    data = _as_mapping(raw)
    if data is None:
        _warn("config/plansPublic", "Invalid document. Using default config.")
        return fallback

    plans_raw = _as_mapping(data.get("plans"))
    if plans_raw is None or not _has_exact_keys(plans_raw, PLAN_IDS, "config/plansPublic.plans"):
        _warn("config/plansPublic.plans", "Plan map missing required keys. Using default config.")
        return fallback

    plans = {
        plan_id: _parse_plan(plans_raw[plan_id], fallback.plans[plan_id], f"config/plansPublic.plans.{plan_id}")
        for plan_id in PLAN_IDS
    }

    order_raw = data.get("displayOrder")
    display_order: list[str] = []
    if isinstance(order_raw, list):
        display_order = [plan_id for plan_id in map(_to_plan_id, order_raw) if plan_id is not None]
    if not display_order:
        if order_raw is not None:
            _warn("config/plansPublic.displayOrder", "Invalid displayOrder. Using fallback.")
        display_order = list(fallback.display_order)

    feature_gates = dict(fallback.feature_gates)
    gates_raw = _as_mapping(data.get("featureGates"))
    if gates_raw is None:
        _warn("config/plansPublic.featureGates", "Missing featureGates object. Using fallback.")
    else:
        for key, value in gates_raw.items():
            gate_plan = _to_plan_id(value)
            if gate_plan is None:
                _warn(f"config/plansPublic.featureGates.{key}", "Invalid plan id. Using fallback.")
                continue
            feature_gates[key] = gate_plan

    version = _parse_int_like(data.get("version"))
    demo_mode = data.get("demoMode")

    return PlanConfigPublic(
        currency=(_parse_string(data.get("currency")) or fallback.currency).upper(),
        demo_mode=demo_mode if isinstance(demo_mode, bool) else fallback.demo_mode,
        plans=plans,
        feature_gates=feature_gates,
        display_order=display_order,
        version=version if version is not None else fallback.version,
    )


def _parse_pricing(value: Any, fallback: BillingPlanPricing, path: str) -> BillingPlanPricing:
    data = _as_mapping(value)
    if data is None:
        _warn(path, "Missing plan object. Using fallback.")
        return fallback.model_copy()

    amount = _parse_int_like(data.get("amount"))
    if amount is None or amount <= 0:
        _warn(f"{path}.amount", "Invalid amount. Using fallback.")
        amount = fallback.amount

    # chargeAmount may legitimately be zero (demo / promotional pricing)
    charge_amount = _parse_int_like(data.get("chargeAmount"))
    if charge_amount is None or charge_amount < 0:
        charge_amount = amount

    duration_days = _parse_int_like(data.get("durationDays"))
    if duration_days is None or duration_days <= 0:
        _warn(f"{path}.durationDays", "Invalid durationDays. Using fallback.")
        duration_days = fallback.duration_days

    return BillingPlanPricing(amount=amount, charge_amount=charge_amount, duration_days=duration_days)


def parse_billing_doc(raw: Any) -> BillingData:
    """Decode the ``config/billing`` document. Never raises."""
    fallback = DEFAULT_BILLING.model_copy(deep=True)
    data = _as_mapping(raw)
    if data is None:
        _warn("config/billing", "Invalid document. Using default billing.")
        return fallback

    plans_raw = _as_mapping(data.get("plans"))
    if plans_raw is None or not _has_exact_keys(plans_raw, PAID_PLAN_IDS, "config/billing.plans"):
        _warn("config/billing.plans", "Plan map missing required keys. Using default billing.")
        return fallback

    plans = {
        plan_id: _parse_pricing(plans_raw[plan_id], fallback.plans[plan_id], f"config/billing.plans.{plan_id}")
        for plan_id in PAID_PLAN_IDS
    }

    version = _parse_int_like(data.get("version"))
    demo_mode = data.get("demoMode")

    return BillingData(
        currency=(_parse_string(data.get("currency")) or fallback.currency).upper(),
        demo_mode=demo_mode if isinstance(demo_mode, bool) else fallback.demo_mode,
        plans=plans,
        version=version if version is not None else fallback.version,
    )


def plan_limits_catalog(config: PlanConfigPublic) -> dict[str, PlanLimits]:
    """Limits keyed by plan id, as consumed by the plan resolver."""
    return {plan_id: definition.limits for plan_id, definition in config.plans.items()}
