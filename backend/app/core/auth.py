"""Clerk JWT authentication for FastAPI."""

import base64
from dataclasses import dataclass
from functools import lru_cache

import jwt as pyjwt
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jwt import PyJWKClient

from app.core.config import get_settings
from app.core.exceptions import QuickSiteError, UnauthenticatedError

_bearer_scheme = HTTPBearer(auto_error=False)


def _extract_frontend_api_domain(pk: str) -> str:
    """Extract the Clerk frontend API domain from a publishable key.

    Clerk publishable keys are formatted as ``pk_(test|live)_<base64>`` where the
    base64 payload decodes to ``<domain>$``.
    """
    parts = pk.split("_", 2)
    if len(parts) != 3 or parts[0] != "pk":
        raise ValueError("Invalid Clerk publishable key format")

    try:
        raw = base64.b64decode(parts[2] + "==")  # add padding
        domain = raw.decode("utf-8").rstrip("$")
    except Exception as exc:
        raise ValueError("Invalid Clerk publishable key: cannot decode") from exc

    if not domain:
        raise ValueError("Invalid Clerk publishable key: empty domain")

    return domain


@lru_cache
def get_jwks_client() -> PyJWKClient:
    """Create a cached JWKS client pointing at the Clerk JWKS endpoint."""
    settings = get_settings()
    domain = _extract_frontend_api_domain(settings.clerk_publishable_key)
    return PyJWKClient(f"https://{domain}/.well-known/jwks.json", cache_keys=True, lifespan=300)


@dataclass(frozen=True)
class ClerkUser:
    """Authenticated caller extracted from a Clerk JWT. ``user_id`` is the uid."""

    user_id: str
    claims: dict


def decode_clerk_jwt(token: str) -> ClerkUser:
    """Verify and decode a Clerk session JWT.

    Raises ``UnauthenticatedError`` on any validation failure.
    """
    try:
        client = get_jwks_client()
        signing_key = client.get_signing_key_from_jwt(token)

        payload = pyjwt.decode(
            token,
            signing_key.key,
            algorithms=["RS256"],
            options={
                "verify_exp": True,
                "verify_nbf": True,
                "verify_iat": True,
                # aud is checked by _validate_audience_claim when configured
                "verify_aud": False,
                "require": ["sub", "exp", "nbf", "iat"],
            },
        )
    except pyjwt.ExpiredSignatureError:
        raise UnauthenticatedError("Token expired", reason="token-expired") from None
    except pyjwt.ImmatureSignatureError:
        raise UnauthenticatedError("Token not yet valid (immature)", reason="token-invalid") from None
    except pyjwt.MissingRequiredClaimError as exc:
        raise UnauthenticatedError(f"Missing required claim: {exc}", reason="token-invalid") from exc
    except pyjwt.InvalidTokenError as exc:
        raise UnauthenticatedError(f"Invalid token: {exc}", reason="token-invalid") from exc

    sub = payload.get("sub")
    if not sub:
        raise UnauthenticatedError("Token missing sub claim", reason="token-invalid")

    return ClerkUser(user_id=sub, claims=payload)


def _validate_audience_claim(aud_claim: object, allowed_audiences: list[str]) -> None:
    """Validate aud claim against configured allowed audiences."""
    if aud_claim is None:
        raise UnauthenticatedError("Missing aud claim", reason="token-claims-rejected")

    if isinstance(aud_claim, str):
        audiences = {aud_claim}
    elif isinstance(aud_claim, list) and all(isinstance(v, str) for v in aud_claim):
        audiences = set(aud_claim)
    else:
        raise UnauthenticatedError("Invalid aud claim format", reason="token-claims-rejected")

    if not audiences.intersection(allowed_audiences):
        raise UnauthenticatedError("Unauthorized audience (aud mismatch)", reason="token-claims-rejected")


async def require_auth(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer_scheme),
) -> ClerkUser:
    """FastAPI dependency that extracts and validates the Clerk JWT.

    Usage::

        @router.post("/media/commit")
        async def commit(user: ClerkUser = Depends(require_auth)):
            ...
    """
    if credentials is None:
        raise UnauthenticatedError("Login required.", reason="login-required")

    user = decode_clerk_jwt(credentials.credentials)

    settings = get_settings()

    # Issuer must be the Clerk frontend API derived from the publishable key
    try:
        expected_issuer = f"https://{_extract_frontend_api_domain(settings.clerk_publishable_key)}"
    except ValueError as exc:
        raise QuickSiteError("Authentication is misconfigured", reason="auth-misconfigured") from exc
    if user.claims.get("iss") != expected_issuer:
        raise UnauthenticatedError("Invalid issuer (iss mismatch)", reason="token-claims-rejected")

    azp = user.claims.get("azp")
    if not azp:
        raise UnauthenticatedError("Missing azp claim", reason="token-claims-rejected")
    if azp not in settings.clerk_allowed_origins:
        raise UnauthenticatedError("Unauthorized origin (azp mismatch)", reason="token-claims-rejected")

    if settings.clerk_allowed_audiences:
        _validate_audience_claim(user.claims.get("aud"), settings.clerk_allowed_audiences)

    # Downstream error handlers read this for audit logging
    request.state.user_id = user.user_id

    return user
