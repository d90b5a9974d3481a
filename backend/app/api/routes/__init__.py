from fastapi import APIRouter

from app.api.routes import features, health, media, pay_sessions, plans, profiles

api_router = APIRouter()

api_router.include_router(health.router, tags=["health"])
api_router.include_router(plans.router, tags=["plans"])
api_router.include_router(features.router, prefix="/features", tags=["features"])
api_router.include_router(media.router, prefix="/media", tags=["media"])
api_router.include_router(pay_sessions.router, prefix="/pay-sessions", tags=["pay-sessions"])
api_router.include_router(profiles.router, prefix="/profiles", tags=["profiles"])
