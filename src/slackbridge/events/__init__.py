"""Slack event parsing and normalized records."""

from slackbridge.events.models import RawEvent, parse_event
from slackbridge.events.outcome import EventOutcome

__all__ = ["EventOutcome", "RawEvent", "parse_event"]
