"""Assemble the event handler and its collaborators from settings."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from slackbridge.bridge.handler import SlackEventHandler
from slackbridge.bridge.registry import RoomRegistry
from slackbridge.bridge.room import BridgedRoom
from slackbridge.config import Settings, get_settings
from slackbridge.db.datastore import SqliteDatastore
from slackbridge.matrix.client import MatrixClient
from slackbridge.observability.metrics import PrometheusSink
from slackbridge.slack.client import SlackWebClient
from slackbridge.slack.files import SlackFileGateway
from slackbridge.slack.mentions import SlackMentionResolver

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class Bridge:
    settings: Settings
    registry: RoomRegistry
    datastore: SqliteDatastore
    matrix: MatrixClient
    sink: PrometheusSink
    handler: SlackEventHandler


def load_rooms(
    registry: RoomRegistry,
    datastore: SqliteDatastore,
    matrix: MatrixClient,
    settings: Settings,
) -> int:
    """Register every persisted room; returns how many were loaded."""
    count = 0
    for entry in datastore.list_rooms():
        registry.register(
            BridgedRoom.from_entry(
                entry,
                matrix=matrix,
                events=datastore,
                user_prefix=settings.matrix_user_prefix,
                homeserver_domain=settings.homeserver_domain,
            )
        )
        count += 1
    return count


def build_bridge(settings: Settings | None = None) -> Bridge:
    settings = settings or get_settings()
    registry = RoomRegistry()
    datastore = SqliteDatastore(settings.app_db)
    matrix = MatrixClient.from_settings(settings)
    slack = SlackWebClient.from_settings(settings)
    sink = PrometheusSink()
    handler = SlackEventHandler(
        rooms=registry,
        datastore=datastore,
        mention_resolver=SlackMentionResolver(slack, cache_size=settings.slack_name_cache_size),
        file_gateway=SlackFileGateway(slack, max_bytes=settings.slack_file_max_bytes),
        redactor=matrix,
        sink=sink,
    )
    loaded = load_rooms(registry, datastore, matrix, settings)
    logger.info("Loaded %d bridged rooms", loaded)
    return Bridge(
        settings=settings,
        registry=registry,
        datastore=datastore,
        matrix=matrix,
        sink=sink,
        handler=handler,
    )
