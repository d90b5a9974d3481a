"""PaySessionService: hand a mobile session over to the web pay portal.

An authenticated app user creates a short-lived pay session and opens the
returned ``pay_url``. The portal exchanges the session id for a Clerk
sign-in token. A session is single-use, except that a repeat exchange
within the reissue window after first use is honoured, so a retried or
double-submitted request does not strand the user.
"""

import secrets
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any, Protocol
from urllib.parse import urlencode

import structlog

from app.core.exceptions import (
    FailedPreconditionError,
    InvalidArgumentError,
    UnauthenticatedError,
)
from app.db.pay_sessions import PaySessionRecord, PaySessionTransaction, RedisPaySessionStore
from app.domain.media import normalize_string
from app.metrics.cloudwatch import emit_business_event

logger = structlog.get_logger(__name__)

SESSION_INVALID_MESSAGE = "This pay session is invalid. Start again from the app."
SESSION_EXPIRED_MESSAGE = "This pay session has expired. Start again from the app."


class TokenIssuer(Protocol):
    async def issue(self, uid: str) -> str: ...


@dataclass(frozen=True)
class PaySessionCreated:
    session_id: str
    pay_url: str
    expires_at: datetime


class PaySessionService:
    def __init__(
        self,
        store: RedisPaySessionStore,
        issuer: TokenIssuer,
        ttl_seconds: int = 600,
        reissue_window_seconds: int = 60,
        pay_portal_base_url: str = "https://quicksite-cm.web.app",
    ):
        self.store = store
        self.issuer = issuer
        self.ttl = timedelta(seconds=ttl_seconds)
        self.reissue_window = timedelta(seconds=reissue_window_seconds)
        self.pay_portal_base_url = pay_portal_base_url.rstrip("/")

    async def create_session(self, uid: str, now: datetime | None = None) -> PaySessionCreated:
        """Persist a fresh unused session for ``uid`` and build its pay URL."""
        if not uid:
            raise UnauthenticatedError("Login required.", reason="login-required")

        now = now or datetime.now(UTC)
        session_id = secrets.token_urlsafe(20)
        expires_at = now + self.ttl

        await self.store.create(
            PaySessionRecord(session_id=session_id, uid=uid, created_at=now, expires_at=expires_at)
        )

        logger.info("pay_session_created", uid=uid, session_id=session_id, expires_at=expires_at.isoformat())
        await emit_business_event("pay_session_created")

        return PaySessionCreated(
            session_id=session_id,
            pay_url=f"{self.pay_portal_base_url}/pay?{urlencode({'s': session_id})}",
            expires_at=expires_at,
        )

    async def exchange(self, raw_session_id: Any, now: datetime | None = None) -> str:
        """Consume a session and mint a sign-in token for its owner.

        Returns:
            Opaque sign-in token for the session's uid

        Raises:
            InvalidArgumentError: session id missing or blank (``session-invalid``)
            UnauthenticatedError: unknown session, no owner, or used outside the reissue window
            FailedPreconditionError: session expired (``session-expired``)
        """
        session_id = normalize_string(raw_session_id)
        if not session_id:
            raise InvalidArgumentError(SESSION_INVALID_MESSAGE, reason="session-invalid")

        now = now or datetime.now(UTC)

        async def consume(txn: PaySessionTransaction) -> tuple[str, bool]:
            record = await txn.read()
            if record is None or not record.uid:
                raise UnauthenticatedError(SESSION_INVALID_MESSAGE, reason="session-invalid")

            if record.expires_at is None or record.expires_at <= now:
                raise FailedPreconditionError(SESSION_EXPIRED_MESSAGE, reason="session-expired")

            if not record.used:
                txn.mark_used(now)
                return record.uid, False

            if record.used_at is not None and now - record.used_at <= self.reissue_window:
                return record.uid, True

            raise UnauthenticatedError(SESSION_INVALID_MESSAGE, reason="session-invalid")

        try:
            uid, reissued = await self.store.run_transaction(session_id, consume)
        except (UnauthenticatedError, FailedPreconditionError) as exc:
            logger.info("pay_session_exchange_rejected", session_id=session_id, reason=exc.reason)
            raise

        token = await self.issuer.issue(uid)

        logger.info("pay_session_exchanged", uid=uid, session_id=session_id, reissued=reissued)
        await emit_business_event("pay_session_exchanged", Reissued=str(reissued).lower())
        return token
