"""Tests for the CloudWatch metrics client."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

from booking_assistant.services.metrics import MetricsClient


def _dims(metric: dict) -> dict[str, str]:
    return {d["Name"]: d["Value"] for d in metric["Dimensions"]}


def _by_name(client: MetricsClient, name: str) -> dict:
    return next(m for m in client._buffer if m["MetricName"] == name)


class TestMetricsRecording:
    """Verify that recorded calls buffer the right data points."""

    def _make_client(self, *, enabled: bool = False) -> MetricsClient:
        with patch.dict("os.environ", {"METRICS_ENABLED": str(enabled).lower()}):
            return MetricsClient()

    def test_successful_call_appends_count_and_latency(self):
        client = self._make_client()
        client.record_call("openai", "embeddings.create", latency_ms=42.0)
        names = {m["MetricName"] for m in client._buffer}
        assert names == {"ExternalCall/Count", "ExternalCall/Latency"}
        assert _dims(_by_name(client, "ExternalCall/Count")) == {"Service": "openai", "Status": "success"}

    def test_failed_call_adds_error_point(self):
        client = self._make_client()
        client.record_call("anthropic", "translate", latency_ms=8000.0, error_type="APITimeoutError")
        assert len(client._buffer) == 3
        assert _dims(_by_name(client, "ExternalCall/Errors"))["ErrorType"] == "APITimeoutError"
        assert _dims(_by_name(client, "ExternalCall/Count"))["Status"] == "failure"

    def test_latency_is_dimensioned_by_operation(self):
        client = self._make_client()
        client.record_call("postgres", "faq_nearest", latency_ms=3.5)
        latency = _by_name(client, "ExternalCall/Latency")
        assert _dims(latency) == {"Service": "postgres", "Operation": "faq_nearest"}
        assert latency["Unit"] == "Milliseconds"

    def test_timed_records_success(self):
        client = self._make_client()
        with client.timed("openai", "embeddings.create"):
            pass
        assert _dims(_by_name(client, "ExternalCall/Count"))["Status"] == "success"

    def test_timed_records_failure_and_reraises(self):
        client = self._make_client()
        with pytest.raises(TimeoutError):
            with client.timed("anthropic", "llm_invoke"):
                raise TimeoutError("slow")
        assert _dims(_by_name(client, "ExternalCall/Errors"))["ErrorType"] == "TimeoutError"

    def test_record_tool(self):
        client = self._make_client()
        client.record_tool("createReservation", "rejected")
        point = _by_name(client, "Tool/Invocations")
        assert _dims(point) == {"Tool": "createReservation", "Outcome": "rejected"}


class TestMetricsFlush:
    """Verify flush behaviour with and without CloudWatch enabled."""

    def test_flush_when_disabled_does_not_call_boto3(self):
        client = MetricsClient(enabled=False)
        client.record_call("openai", "embeddings.create", latency_ms=100.0)
        assert client.flush() == 0
        assert client._cw_client is None

    def test_flush_clears_buffer(self):
        client = MetricsClient(enabled=False)
        client.record_tool("listTeachers", "ok")
        client.flush()
        assert client._buffer == []

    def test_flush_when_enabled_calls_put_metric_data(self):
        with patch.object(MetricsClient, "_start_flush_thread"):
            client = MetricsClient(enabled=True)

        mock_cw = MagicMock()
        client._cw_client = mock_cw

        client.record_call("openai", "embeddings.create", latency_ms=100.0)
        sent = client.flush()

        assert sent == 2
        kwargs = mock_cw.put_metric_data.call_args[1]
        assert kwargs["Namespace"] == "BookingAssistant"
        assert len(kwargs["MetricData"]) == 2

    def test_flush_failure_is_logged_not_raised(self):
        with patch.object(MetricsClient, "_start_flush_thread"):
            client = MetricsClient(enabled=True)
        client._cw_client = MagicMock()
        client._cw_client.put_metric_data.side_effect = RuntimeError("throttled")

        client.record_tool("listTeachers", "ok")
        assert client.flush() == 0

    def test_flush_empty_buffer_returns_zero(self):
        with patch.object(MetricsClient, "_start_flush_thread"):
            client = MetricsClient(enabled=True)
        assert client.flush() == 0
