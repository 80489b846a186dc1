"""
Prometheus metrics for the Slack bridge.

Two families are recorded for inbound Slack traffic:
    - remote_request_seconds (Histogram): time spent handling one event,
      labelled by outcome (success / dropped / fail).
    - received_messages (Counter): inbound messages, labelled by side.

Each sink owns its own CollectorRegistry so several handlers (tests, the
replay CLI) can coexist in one process without duplicate-metric errors.
"""

from __future__ import annotations

import logging
import time

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

from slackbridge.bridge.ports import EndTimer
from slackbridge.events.outcome import OutcomeStatus

logger = logging.getLogger(__name__)

REMOTE_REQUEST_SECONDS = "remote_request_seconds"
RECEIVED_MESSAGES = "received_messages"


class PrometheusSink:
    """Timer and counter primitives backed by prometheus_client."""

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self.registry = registry or CollectorRegistry()
        self._histograms: dict[str, Histogram] = {
            REMOTE_REQUEST_SECONDS: Histogram(
                REMOTE_REQUEST_SECONDS,
                "Time taken to handle an inbound Slack event",
                ["outcome"],
                buckets=[0.005, 0.01, 0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10],
                registry=self.registry,
            ),
        }
        self._counters: dict[str, Counter] = {
            RECEIVED_MESSAGES: Counter(
                RECEIVED_MESSAGES,
                "Messages received by the bridge",
                ["side"],
                registry=self.registry,
            ),
        }

    def start_timer(self, name: str) -> EndTimer:
        histogram = self._histograms.get(name)
        started = time.perf_counter()

        def _end(outcome: OutcomeStatus) -> None:
            if histogram is None:
                logger.warning("Timer %s is not registered; outcome=%s dropped", name, outcome)
                return
            histogram.labels(outcome=outcome).observe(time.perf_counter() - started)

        return _end

    def inc_counter(self, name: str, labels: dict[str, str]) -> None:
        counter = self._counters.get(name)
        if counter is None:
            logger.warning("Counter %s is not registered", name)
            return
        counter.labels(**labels).inc()

    def sample(self, name: str, labels: dict[str, str]) -> float:
        """Current value of a sample, 0.0 when it has not been recorded yet."""
        value = self.registry.get_sample_value(name, labels)
        return float(value) if value is not None else 0.0

    def render(self) -> tuple[bytes, str]:
        return generate_latest(self.registry), CONTENT_TYPE_LATEST
