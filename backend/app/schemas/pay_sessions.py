"""Pay session request/response schemas."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class CreatePaySessionResponse(BaseModel):
    session_id: str
    pay_url: str
    expires_at: datetime


class ExchangePaySessionRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    session_id: Any = Field(default=None, alias="sessionId")


class ExchangePaySessionResponse(BaseModel):
    custom_token: str
