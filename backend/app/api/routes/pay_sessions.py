"""Pay session routes: create (authenticated app user) and exchange (public pay portal)."""

from fastapi import APIRouter, Depends, status

from app.api.dependencies import get_pay_session_service
from app.core.auth import ClerkUser, require_auth
from app.schemas.pay_sessions import (
    CreatePaySessionResponse,
    ExchangePaySessionRequest,
    ExchangePaySessionResponse,
)
from app.services.pay_session_service import PaySessionService

router = APIRouter()


@router.post("", response_model=CreatePaySessionResponse, status_code=status.HTTP_201_CREATED)
async def create_pay_session(
    user: ClerkUser = Depends(require_auth),
    service: PaySessionService = Depends(get_pay_session_service),
) -> CreatePaySessionResponse:
    created = await service.create_session(user.user_id)
    return CreatePaySessionResponse(
        session_id=created.session_id,
        pay_url=created.pay_url,
        expires_at=created.expires_at,
    )


@router.post("/exchange", response_model=ExchangePaySessionResponse)
async def exchange_pay_session(
    body: ExchangePaySessionRequest,
    service: PaySessionService = Depends(get_pay_session_service),
) -> ExchangePaySessionResponse:
    """Trade a pay session id for a one-time sign-in token. No login required."""
    token = await service.exchange(body.session_id)
    return ExchangePaySessionResponse(custom_token=token)
