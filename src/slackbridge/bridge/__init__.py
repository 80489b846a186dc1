"""Slack event handling and bridged rooms."""
