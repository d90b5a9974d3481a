"""Idempotent seed data for configuration documents."""

import structlog

from app.db.datastore import Datastore
from app.domain.plan_config import (
    BILLING_DOC,
    DEFAULT_BILLING,
    DEFAULT_PLAN_CONFIG,
    PLANS_PUBLIC_DOC,
    BillingData,
    PlanConfigPublic,
)

logger = structlog.get_logger(__name__)


def plans_public_document(config: PlanConfigPublic) -> dict:
    """Render a plan config in the stored (camelCase) document shape."""
    return {
        "currency": config.currency,
        "demoMode": config.demo_mode,
        "plans": {
            plan_id: {
                "label": plan.label,
                "tagline": plan.tagline,
                "cta": plan.cta,
                "badge": plan.badge,
                "limits": {
                    "images": plan.limits.images,
                    "videos": plan.limits.videos,
                    "maxImageMB": plan.limits.max_image_mb,
                    "maxVideoMB": plan.limits.max_video_mb,
                },
                "features": list(plan.features),
            }
            for plan_id, plan in config.plans.items()
        },
        "featureGates": dict(config.feature_gates),
        "displayOrder": list(config.display_order),
        "version": config.version,
    }


def billing_document(billing: BillingData) -> dict:
    """Render billing data in the stored (camelCase) document shape."""
    return {
        "currency": billing.currency,
        "demoMode": billing.demo_mode,
        "plans": {
            plan_id: {
                "amount": pricing.amount,
                "chargeAmount": pricing.charge_amount,
                "durationDays": pricing.duration_days,
            }
            for plan_id, pricing in billing.plans.items()
        },
        "version": billing.version,
    }


async def seed_config_documents(datastore: Datastore, overwrite: bool = False) -> None:
    """Insert the default plan and billing documents if they don't already exist."""
    seeded = {
        PLANS_PUBLIC_DOC: await datastore.put_config_document(
            PLANS_PUBLIC_DOC, plans_public_document(DEFAULT_PLAN_CONFIG), overwrite=overwrite
        ),
        BILLING_DOC: await datastore.put_config_document(
            BILLING_DOC, billing_document(DEFAULT_BILLING), overwrite=overwrite
        ),
    }
    logger.info("config_documents_seeded", **seeded)
