"""Clerk Backend API client for minting sign-in tokens.

A sign-in token is a short-lived, single-use ticket the client redeems
with Clerk's ``ticket`` sign-in strategy. It is the credential returned
by the pay session exchange.
"""

import httpx
import structlog

from app.core.exceptions import IdentityProviderError

logger = structlog.get_logger(__name__)


class ClerkSignInTokenIssuer:
    """Issues Clerk sign-in tokens for a user id."""

    def __init__(
        self,
        secret_key: str,
        api_url: str = "https://api.clerk.com/v1",
        expires_in_seconds: int = 600,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the issuer.

        Args:
            secret_key: Clerk secret key (``sk_...``)
            api_url: Clerk Backend API base URL
            expires_in_seconds: Lifetime of each minted token
            transport: Optional httpx transport (tests pass an httpx.MockTransport)
        """
        self.secret_key = secret_key
        self.api_url = api_url.rstrip("/")
        self.expires_in_seconds = expires_in_seconds
        self.transport = transport

    async def issue(self, uid: str) -> str:
        """Mint a sign-in token for ``uid``.

        Raises:
            IdentityProviderError: Clerk not configured, unreachable, or returned an error
        """
        if not self.secret_key:
            raise IdentityProviderError("Sign-in is temporarily unavailable.", reason="identity-provider-unconfigured")

        try:
            async with httpx.AsyncClient(transport=self.transport, timeout=10.0) as client:
                response = await client.post(
                    f"{self.api_url}/sign_in_tokens",
                    headers={"Authorization": f"Bearer {self.secret_key}"},
                    json={"user_id": uid, "expires_in_seconds": self.expires_in_seconds},
                )
        except httpx.HTTPError as exc:
            logger.error("sign_in_token_request_failed", uid=uid, error=str(exc), error_type=type(exc).__name__)
            raise IdentityProviderError("Sign-in is temporarily unavailable.", reason="identity-provider-error") from exc

        if response.status_code not in (200, 201):
            logger.error("sign_in_token_rejected", uid=uid, status_code=response.status_code)
            raise IdentityProviderError("Sign-in is temporarily unavailable.", reason="identity-provider-error")

        token = response.json().get("token")
        if not isinstance(token, str) or not token:
            logger.error("sign_in_token_missing", uid=uid)
            raise IdentityProviderError("Sign-in is temporarily unavailable.", reason="identity-provider-error")

        return token
