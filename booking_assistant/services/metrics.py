"""CloudWatch custom metrics with background batching.

Two families of metrics are published:

* ``ExternalCall/*`` — count, latency and errors for every upstream call the
  assistant makes (Anthropic chat/translation/generation, OpenAI
  embeddings, Postgres).
* ``Tool/*`` — one data point per booking-flow tool execution, dimensioned
  by tool name and outcome (``ok``, ``error``, ``rejected``).

Points are buffered in memory and flushed by a daemon thread every
``FLUSH_INTERVAL_SECONDS`` when ``METRICS_ENABLED=true``; otherwise they are
only logged at DEBUG level and dropped on flush.

Usage
-----
>>> from booking_assistant.services.metrics import metrics
>>> with metrics.timed("openai", "embeddings.create"):
...     pass
>>> metrics.record_tool("listTeachers", outcome="ok")
"""

from __future__ import annotations

import atexit
import logging
import os
import threading
import time
from contextlib import contextmanager
from datetime import UTC, datetime
from typing import Any

logger = logging.getLogger(__name__)

NAMESPACE = "BookingAssistant"
FLUSH_INTERVAL_SECONDS = 60
MAX_BATCH_SIZE = 1_000  # CloudWatch API limit per PutMetricData call


def _dims(**pairs: str) -> list[dict[str, str]]:
    return [{"Name": name, "Value": value} for name, value in pairs.items()]


class MetricsClient:
    """Batched CloudWatch metrics publisher."""

    def __init__(self, enabled: bool | None = None) -> None:
        if enabled is None:
            enabled = os.getenv("METRICS_ENABLED", "false").lower() == "true"
        self._enabled = enabled
        self._buffer: list[dict[str, Any]] = []
        self._lock = threading.Lock()
        self._cw_client = None

        if self._enabled:
            self._start_flush_thread()

    def _get_cw_client(self):
        if self._cw_client is None:
            import boto3

            self._cw_client = boto3.client("cloudwatch")
        return self._cw_client

    # ── Recording ─────────────────────────────────────────────────────

    def _point(self, name: str, dims: list[dict[str, str]], value: float, unit: str) -> None:
        with self._lock:
            self._buffer.append(
                {
                    "MetricName": name,
                    "Dimensions": dims,
                    "Timestamp": datetime.now(UTC),
                    "Value": value,
                    "Unit": unit,
                }
            )

    def record_call(
        self,
        service: str,
        operation: str,
        latency_ms: float,
        error_type: str | None = None,
    ) -> None:
        """Record one upstream call; ``error_type`` marks it as failed."""
        status = "failure" if error_type else "success"
        self._point("ExternalCall/Count", _dims(Service=service, Status=status), 1, "Count")
        self._point(
            "ExternalCall/Latency",
            _dims(Service=service, Operation=operation),
            latency_ms,
            "Milliseconds",
        )
        if error_type:
            self._point(
                "ExternalCall/Errors", _dims(Service=service, ErrorType=error_type), 1, "Count",
            )
        logger.debug(
            "Metric: %s %s %s latency=%.1fms%s",
            service, operation, status, latency_ms,
            f" error={error_type}" if error_type else "",
        )

    @contextmanager
    def timed(self, service: str, operation: str):
        """Time the wrapped block and record it; exceptions are re-raised."""
        t0 = time.perf_counter()
        try:
            yield
        except Exception as exc:
            self.record_call(
                service, operation, (time.perf_counter() - t0) * 1000,
                error_type=type(exc).__name__,
            )
            raise
        self.record_call(service, operation, (time.perf_counter() - t0) * 1000)

    def record_tool(self, tool: str, outcome: str) -> None:
        self._point("Tool/Invocations", _dims(Tool=tool, Outcome=outcome), 1, "Count")
        logger.debug("Metric: tool %s outcome=%s", tool, outcome)

    # ── Flushing ──────────────────────────────────────────────────────

    def flush(self) -> int:
        """Send buffered metrics to CloudWatch.  Returns count sent."""
        with self._lock:
            if not self._buffer:
                return 0
            batch = self._buffer[:]
            self._buffer.clear()

        if not self._enabled:
            logger.debug("Metrics flush skipped (not enabled): %d items", len(batch))
            return 0

        sent = 0
        try:
            cw = self._get_cw_client()
            for i in range(0, len(batch), MAX_BATCH_SIZE):
                chunk = batch[i : i + MAX_BATCH_SIZE]
                cw.put_metric_data(Namespace=NAMESPACE, MetricData=chunk)
                sent += len(chunk)
            logger.info("Flushed %d metrics to CloudWatch", sent)
        except Exception:
            logger.exception("Failed to flush metrics to CloudWatch")
        return sent

    def _start_flush_thread(self) -> None:
        def _loop():
            while True:
                time.sleep(FLUSH_INTERVAL_SECONDS)
                try:
                    self.flush()
                except Exception:
                    logger.exception("Metrics flush thread error")

        threading.Thread(target=_loop, daemon=True, name="metrics-flush").start()
        atexit.register(self.flush)
        logger.info("Metrics flush thread started (interval=%ds)", FLUSH_INTERVAL_SECONDS)


# ── Module-level singleton ──────────────────────────────────────────
metrics = MetricsClient()
