"""Tests for Clerk JWT authentication."""

import base64
import time
from dataclasses import dataclass
from unittest.mock import MagicMock, patch

import jwt as pyjwt
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from fastapi.security import HTTPAuthorizationCredentials

from app.core.auth import (
    ClerkUser,
    _extract_frontend_api_domain,
    _validate_audience_claim,
    decode_clerk_jwt,
    require_auth,
)
from app.core.exceptions import UnauthenticatedError

pytestmark = pytest.mark.unit

# RSA keypair generated once for the module
_private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
_public_key = _private_key.public_key()
_private_pem = _private_key.private_bytes(
    encoding=serialization.Encoding.PEM,
    format=serialization.PrivateFormat.PKCS8,
    encryption_algorithm=serialization.NoEncryption(),
)

_DOMAIN = "quicksite-test.clerk.accounts.dev"
_TEST_CLERK_PK = "pk_test_" + base64.b64encode(f"{_DOMAIN}$".encode()).decode().rstrip("=")
_TEST_ISSUER = f"https://{_DOMAIN}"
_APP_ORIGIN = "https://quicksite-cm.web.app"


@dataclass
class _FakeSigningKey:
    key: object


def _mock_jwks_client():
    client = MagicMock()
    client.get_signing_key_from_jwt.return_value = _FakeSigningKey(key=_public_key)
    return client


def _mock_settings(audiences: list[str] | None = None):
    s = MagicMock()
    s.clerk_publishable_key = _TEST_CLERK_PK
    s.clerk_allowed_origins = ["http://localhost:3000", _APP_ORIGIN]
    s.clerk_allowed_audiences = audiences or []
    return s


def _token(**overrides) -> str:
    now = int(time.time())
    claims = {
        "sub": "user_u1",
        "iat": now - 10,
        "nbf": now - 10,
        "exp": now + 300,
        "iss": _TEST_ISSUER,
        "azp": _APP_ORIGIN,
    }
    claims.update(overrides)
    claims = {key: value for key, value in claims.items() if value is not None}
    return pyjwt.encode(claims, _private_pem, algorithm="RS256", headers={"kid": "test-kid"})


async def _authenticate(token: str, settings=None) -> tuple[ClerkUser, MagicMock]:
    request = MagicMock()
    request.state = MagicMock()
    creds = HTTPAuthorizationCredentials(scheme="Bearer", credentials=token)
    with (
        patch("app.core.auth.get_jwks_client", _mock_jwks_client),
        patch("app.core.auth.get_settings", lambda: settings or _mock_settings()),
    ):
        user = await require_auth(request=request, credentials=creds)
    return user, request


class TestExtractFrontendApiDomain:
    def test_round_trips_publishable_key(self):
        assert _extract_frontend_api_domain(_TEST_CLERK_PK) == _DOMAIN

    @pytest.mark.parametrize("pk", ["not-a-valid-key", "sk_test_abc", ""])
    def test_invalid_key_raises(self, pk):
        with pytest.raises(ValueError, match="Invalid Clerk publishable key"):
            _extract_frontend_api_domain(pk)


class TestDecodeClerkJwt:
    def test_valid_token(self):
        with patch("app.core.auth.get_jwks_client", _mock_jwks_client):
            user = decode_clerk_jwt(_token())

        assert user.user_id == "user_u1"
        assert user.claims["azp"] == _APP_ORIGIN

    @pytest.mark.parametrize(
        ("overrides", "detail_fragment", "reason"),
        [
            (
                {"iat": int(time.time()) - 600, "nbf": int(time.time()) - 600, "exp": int(time.time()) - 300},
                "expired",
                "token-expired",
            ),
            ({"nbf": int(time.time()) + 600}, "immature", "token-invalid"),
            ({"sub": None}, "sub", "token-invalid"),
        ],
    )
    def test_rejected_tokens(self, overrides, detail_fragment, reason):
        with patch("app.core.auth.get_jwks_client", _mock_jwks_client):
            with pytest.raises(UnauthenticatedError) as exc_info:
                decode_clerk_jwt(_token(**overrides))

        assert exc_info.value.status_code == 401
        assert detail_fragment in exc_info.value.message.lower()
        assert exc_info.value.reason == reason


class TestRequireAuth:
    async def test_valid_token_sets_request_user(self):
        user, request = await _authenticate(_token())

        assert user.user_id == "user_u1"
        assert request.state.user_id == "user_u1"

    async def test_missing_credentials(self):
        with pytest.raises(UnauthenticatedError) as exc_info:
            await require_auth(request=MagicMock(), credentials=None)

        assert exc_info.value.status_code == 401
        assert exc_info.value.message == "Login required."
        assert exc_info.value.reason == "login-required"

    async def test_garbage_token(self):
        with pytest.raises(UnauthenticatedError) as exc_info:
            await _authenticate("garbage.token.here")

        assert exc_info.value.status_code == 401

    @pytest.mark.parametrize(
        ("overrides", "detail_fragment"),
        [
            ({"iss": "https://evil-issuer.example"}, "issuer"),
            ({"azp": "https://evil-site.example"}, "origin"),
            ({"azp": None}, "azp"),
        ],
    )
    async def test_claim_mismatch(self, overrides, detail_fragment):
        with pytest.raises(UnauthenticatedError) as exc_info:
            await _authenticate(_token(**overrides))

        assert exc_info.value.status_code == 401
        assert detail_fragment in exc_info.value.message.lower()
        assert exc_info.value.reason == "token-claims-rejected"

    async def test_audience_enforced_when_configured(self):
        settings = _mock_settings(audiences=["quicksite-api"])

        user, _ = await _authenticate(_token(aud="quicksite-api"), settings)
        assert user.user_id == "user_u1"

        with pytest.raises(UnauthenticatedError):
            await _authenticate(_token(aud="other-api"), settings)


class TestValidateAudienceClaim:
    def test_list_claim_with_allowed_member(self):
        _validate_audience_claim(["a", "quicksite-api"], ["quicksite-api"])

    @pytest.mark.parametrize("claim", [None, 5, ["a", 1]])
    def test_invalid_claims(self, claim):
        with pytest.raises(UnauthenticatedError):
            _validate_audience_claim(claim, ["quicksite-api"])
