"""Bridge exception hierarchy.

All bridge-specific exceptions inherit from BridgeError, so the event
handler can tell a named drop (unknown channel, unknown event) apart from a
real failure with a single ``except`` chain.
"""


class BridgeError(Exception):
    """Base exception for all bridge errors."""

    def __init__(self, message: str = "", *, retryable: bool = False) -> None:
        super().__init__(message)
        self.retryable = retryable


class UnknownChannelError(BridgeError):
    """No bridged room is linked to the Slack channel an event refers to."""

    def __init__(self, channel_id: str) -> None:
        super().__init__(f"unknown_channel: {channel_id}")
        self.channel_id = channel_id


class UnknownEventError(BridgeError):
    """The event kind is not one the bridge handles."""

    def __init__(self, event_type: str) -> None:
        super().__init__(f"unknown_event: {event_type}")
        self.event_type = event_type


class SlackApiError(BridgeError):
    """Slack Web API returned ``ok: false`` or an HTTP error."""

    def __init__(self, message: str = "", *, retryable: bool = True) -> None:
        super().__init__(message, retryable=retryable)


class FileAccessError(BridgeError):
    """A Slack file could not be made public or downloaded."""


class MatrixError(BridgeError):
    """Error talking to the Matrix homeserver."""

    def __init__(self, message: str = "", *, retryable: bool = True) -> None:
        super().__init__(message, retryable=retryable)


class DatastoreError(BridgeError):
    """Persistence layer failure."""


class ConfigError(BridgeError):
    """Invalid or missing configuration."""
