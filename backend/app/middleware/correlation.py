"""Correlation ID middleware for request tracing.

Every response carries ``X-Request-ID``. The id is bound into structlog
entries by the ``add_correlation_id`` processor and echoed in error logs.
"""

import uuid

from asgi_correlation_id import CorrelationIdMiddleware
from asgi_correlation_id.context import correlation_id
from fastapi import FastAPI


def setup_correlation_middleware(app: FastAPI) -> None:
    """Add correlation ID middleware to FastAPI app.

    A client-sent X-Request-ID is echoed back; otherwise a new UUID is generated.
    """
    app.add_middleware(
        CorrelationIdMiddleware,
        header_name="X-Request-ID",
        generator=lambda: str(uuid.uuid4()),
        validator=None,  # Accept any format
        transformer=lambda a: a,
    )


def get_correlation_id() -> str | None:
    """Current request's correlation ID, or None outside a request."""
    try:
        return correlation_id.get()
    except LookupError:
        return None


__all__ = ["setup_correlation_middleware", "get_correlation_id"]
