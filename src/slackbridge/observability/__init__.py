"""Metrics for inbound Slack traffic."""

from slackbridge.observability.metrics import (
    RECEIVED_MESSAGES,
    REMOTE_REQUEST_SECONDS,
    PrometheusSink,
)

__all__ = ["RECEIVED_MESSAGES", "REMOTE_REQUEST_SECONDS", "PrometheusSink"]
