"""Tests for pay session creation and the exchange with its reissue window."""

import asyncio
from datetime import timedelta
from urllib.parse import parse_qs, urlparse

import pytest

from app.core.exceptions import (
    FailedPreconditionError,
    IdentityProviderError,
    InvalidArgumentError,
    UnauthenticatedError,
)
from app.db.pay_sessions import PaySessionRecord
from app.integrations.token_issuer_fake import FakeSignInTokenIssuer
from app.services.pay_session_service import PaySessionService

pytestmark = pytest.mark.unit


@pytest.fixture
def service(pay_session_store, token_issuer) -> PaySessionService:
    return PaySessionService(
        pay_session_store,
        token_issuer,
        ttl_seconds=600,
        reissue_window_seconds=60,
        pay_portal_base_url="https://pay.example/",
    )


class TestCreateSession:
    async def test_persists_unused_session(self, service, pay_session_store, now):
        created = await service.create_session("u1", now)

        record = await pay_session_store.get(created.session_id)
        assert record.uid == "u1"
        assert record.created_at == now
        assert record.expires_at == now + timedelta(minutes=10)
        assert record.used is False
        assert record.used_at is None
        assert created.expires_at == record.expires_at

    async def test_pay_url_embeds_session_id(self, service, now):
        created = await service.create_session("u1", now)

        url = urlparse(created.pay_url)
        assert f"{url.scheme}://{url.netloc}{url.path}" == "https://pay.example/pay"
        assert parse_qs(url.query) == {"s": [created.session_id]}

    async def test_session_ids_are_unique(self, service, now):
        first = await service.create_session("u1", now)
        second = await service.create_session("u1", now)

        assert first.session_id != second.session_id

    async def test_key_is_evicted_after_retention(self, service, redis, now):
        created = await service.create_session("u1", now)

        assert await redis.ttl(f"quicksite:pay_session:{created.session_id}") > 0

    async def test_requires_uid(self, service):
        with pytest.raises(UnauthenticatedError):
            await service.create_session("")


class TestExchange:
    async def test_first_use_issues_token_and_marks_used(self, service, pay_session_store, token_issuer, now):
        created = await service.create_session("u1", now)
        used_at = now + timedelta(minutes=2)

        token = await service.exchange(created.session_id, used_at)

        assert token == "fake-token-u1-1"
        record = await pay_session_store.get(created.session_id)
        assert record.used is True
        assert record.used_at == used_at

    async def test_reissue_within_window(self, service, pay_session_store, token_issuer, now):
        created = await service.create_session("u1", now)
        first_use = now + timedelta(minutes=1)
        await service.exchange(created.session_id, first_use)

        token = await service.exchange(created.session_id, first_use + timedelta(seconds=60))

        assert token == "fake-token-u1-2"
        # A replay does not move usedAt
        record = await pay_session_store.get(created.session_id)
        assert record.used_at == first_use

    async def test_reuse_after_window_is_invalid(self, service, token_issuer, now):
        created = await service.create_session("u1", now)
        first_use = now + timedelta(minutes=1)
        await service.exchange(created.session_id, first_use)

        with pytest.raises(UnauthenticatedError) as exc_info:
            await service.exchange(created.session_id, first_use + timedelta(seconds=61))

        assert exc_info.value.reason == "session-invalid"
        assert token_issuer.issued == ["u1"]

    async def test_expired_unused_session(self, service, token_issuer, now):
        created = await service.create_session("u1", now)

        with pytest.raises(FailedPreconditionError) as exc_info:
            await service.exchange(created.session_id, now + timedelta(minutes=10))

        assert exc_info.value.reason == "session-expired"
        assert token_issuer.issued == []

    async def test_expiry_beats_reissue_window(self, service, now):
        created = await service.create_session("u1", now)
        await service.exchange(created.session_id, now + timedelta(minutes=9, seconds=50))

        with pytest.raises(FailedPreconditionError) as exc_info:
            await service.exchange(created.session_id, now + timedelta(minutes=10, seconds=5))

        assert exc_info.value.reason == "session-expired"

    @pytest.mark.parametrize("raw", ["", "   ", None, 123])
    async def test_blank_session_id_is_invalid_argument(self, service, raw):
        with pytest.raises(InvalidArgumentError) as exc_info:
            await service.exchange(raw)

        assert exc_info.value.reason == "session-invalid"

    async def test_unknown_session(self, service, now):
        with pytest.raises(UnauthenticatedError) as exc_info:
            await service.exchange("does-not-exist", now)

        assert exc_info.value.reason == "session-invalid"

    async def test_session_without_uid(self, service, redis, now):
        await redis.hset(
            "quicksite:pay_session:orphan",
            mapping={"uid": "", "expires_at": (now + timedelta(minutes=5)).isoformat(), "used": "0"},
        )

        with pytest.raises(UnauthenticatedError) as exc_info:
            await service.exchange("orphan", now)

        assert exc_info.value.reason == "session-invalid"

    async def test_unparseable_expiry_is_expired(self, service, redis, now):
        await redis.hset("quicksite:pay_session:weird", mapping={"uid": "u1", "expires_at": "tomorrow", "used": "0"})

        with pytest.raises(FailedPreconditionError) as exc_info:
            await service.exchange("weird", now)

        assert exc_info.value.reason == "session-expired"

    async def test_session_id_is_trimmed(self, service, now):
        created = await service.create_session("u1", now)

        assert await service.exchange(f"  {created.session_id} ", now + timedelta(seconds=1))

    async def test_concurrent_double_submit_both_succeed(self, service, pay_session_store, token_issuer, now):
        created = await service.create_session("u1", now)
        at = now + timedelta(seconds=30)

        tokens = await asyncio.gather(
            service.exchange(created.session_id, at),
            service.exchange(created.session_id, at),
        )

        assert len(tokens) == 2
        assert token_issuer.issued == ["u1", "u1"]
        record = await pay_session_store.get(created.session_id)
        assert record.used is True
        assert record.used_at == at

    async def test_issuer_failure_propagates(self, pay_session_store, now):
        service = PaySessionService(pay_session_store, FakeSignInTokenIssuer(fail=True))
        created = await service.create_session("u1", now)

        with pytest.raises(IdentityProviderError):
            await service.exchange(created.session_id, now + timedelta(seconds=1))

        # The session is consumed; a retry within the window is still honoured
        record = await pay_session_store.get(created.session_id)
        assert record.used is True


class TestPaySessionStore:
    async def test_get_unknown_returns_none(self, pay_session_store):
        assert await pay_session_store.get("missing") is None

    async def test_transaction_without_write_leaves_record_untouched(self, pay_session_store, now):
        await pay_session_store.create(
            PaySessionRecord(session_id="s1", uid="u1", created_at=now, expires_at=now + timedelta(minutes=10))
        )

        async def peek(txn):
            return await txn.read()

        record = await pay_session_store.run_transaction("s1", peek)

        assert record.uid == "u1"
        assert (await pay_session_store.get("s1")).used is False

    async def test_raising_callback_aborts(self, pay_session_store, now):
        await pay_session_store.create(
            PaySessionRecord(session_id="s1", uid="u1", created_at=now, expires_at=now + timedelta(minutes=10))
        )

        async def mark_then_fail(txn):
            txn.mark_used(now)
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            await pay_session_store.run_transaction("s1", mark_then_fail)

        assert (await pay_session_store.get("s1")).used is False
