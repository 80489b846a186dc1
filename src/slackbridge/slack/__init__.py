"""Slack Web API collaborators: mention resolution and file access."""

from slackbridge.slack.client import SlackWebClient
from slackbridge.slack.files import SlackFileGateway
from slackbridge.slack.mentions import SlackMentionResolver

__all__ = ["SlackFileGateway", "SlackMentionResolver", "SlackWebClient"]
