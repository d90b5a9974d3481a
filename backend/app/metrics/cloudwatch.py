"""CloudWatch custom metric emission for business events.

Fire-and-forget: failures are caught and logged as warnings via structlog,
and never raise or block the caller.

boto3 is synchronous, so put_metric_data runs on a small ThreadPoolExecutor.
"""

import asyncio
from concurrent.futures import ThreadPoolExecutor
from datetime import UTC, datetime

import boto3
import structlog

from app.core.config import get_settings

logger = structlog.get_logger(__name__)

NAMESPACE = "QuickSite/Business"

_cw_client = None
_executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix="cw-metrics")


def _get_client():
    global _cw_client
    if _cw_client is None:
        _cw_client = boto3.client("cloudwatch", region_name=get_settings().aws_region)
    return _cw_client


def _put_business_event(event_name: str, dimensions: dict[str, str]) -> None:
    """Synchronous put_metric_data. Runs in thread pool."""
    metric_dimensions = [{"Name": "Event", "Value": event_name}]
    metric_dimensions.extend({"Name": name, "Value": value} for name, value in dimensions.items() if value)
    try:
        _get_client().put_metric_data(
            Namespace=NAMESPACE,
            MetricData=[{
                "MetricName": "EventCount",
                "Dimensions": metric_dimensions,
                "Value": 1.0,
                "Unit": "Count",
                "Timestamp": datetime.now(UTC),
            }],
        )
    except Exception as e:
        logger.warning("business_event_emit_failed", error=str(e), event_name=event_name)


async def emit_business_event(event_name: str, **dimensions: str) -> None:
    """Emit a business event count (e.g. ``media_committed`` with ``Kind=image``)."""
    if not get_settings().metrics_enabled:
        return
    loop = asyncio.get_running_loop()
    loop.run_in_executor(_executor, _put_business_event, event_name, dimensions)
