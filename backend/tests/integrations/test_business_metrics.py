"""Tests for fire-and-forget CloudWatch business events."""

from unittest.mock import MagicMock, patch

import pytest

from app.metrics import cloudwatch

pytestmark = pytest.mark.unit


def test_put_business_event_dimensions():
    client = MagicMock()

    with patch.object(cloudwatch, "_get_client", return_value=client):
        cloudwatch._put_business_event("media_committed", {"Kind": "image", "Empty": ""})

    kwargs = client.put_metric_data.call_args.kwargs
    assert kwargs["Namespace"] == "QuickSite/Business"
    datum = kwargs["MetricData"][0]
    assert datum["MetricName"] == "EventCount"
    assert datum["Dimensions"] == [
        {"Name": "Event", "Value": "media_committed"},
        {"Name": "Kind", "Value": "image"},
    ]


def test_put_business_event_never_raises():
    client = MagicMock()
    client.put_metric_data.side_effect = RuntimeError("throttled")

    with patch.object(cloudwatch, "_get_client", return_value=client):
        cloudwatch._put_business_event("pay_session_created", {})


def test_put_business_event_logs_failure():
    client = MagicMock()
    client.put_metric_data.side_effect = RuntimeError("throttled")

    with (
        patch.object(cloudwatch, "_get_client", return_value=client),
        patch.object(cloudwatch, "logger") as logger,
    ):
        cloudwatch._put_business_event("pay_session_created", {})

    logger.warning.assert_called_once_with(
        "business_event_emit_failed", error="throttled", event_name="pay_session_created"
    )


async def test_emit_is_noop_when_disabled():
    settings = MagicMock(metrics_enabled=False)

    with (
        patch.object(cloudwatch, "get_settings", return_value=settings),
        patch.object(cloudwatch, "_put_business_event") as put,
    ):
        await cloudwatch.emit_business_event("media_committed", Kind="image")

    put.assert_not_called()
