"""Slack to Matrix bridge: inbound Slack event handling."""

__version__ = "0.1.0"
