"""Matrix homeserver access."""

from slackbridge.matrix.client import MatrixClient

__all__ = ["MatrixClient"]
