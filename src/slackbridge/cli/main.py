"""Click CLI group: serve, room management and event replay."""

from __future__ import annotations

import asyncio
import json
import sys
from pathlib import Path

import click

from slackbridge.config import get_settings
from slackbridge.db.datastore import SqliteDatastore
from slackbridge.db.migrations.runner import run_migrations
from slackbridge.logging import configure_logging


@click.group()
def cli() -> None:
    """Slack to Matrix bridge CLI."""


@cli.command()
@click.option("--host", type=str, default=None, help="Override BIND_HOST.")
@click.option("--port", type=int, default=None, help="Override BIND_PORT.")
@click.option("--reload", is_flag=True, help="Reload on code changes (development only).")
def serve(host: str | None, port: int | None, reload: bool) -> None:
    """Run the Slack events webhook server."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "slackbridge.main:app",
        host=host or settings.bind_host,
        port=port or settings.bind_port,
        reload=reload,
        log_config=None,
    )


@cli.command("link-room")
@click.argument("matrix_room_id")
@click.argument("slack_channel_id")
@click.option("--team-id", type=str, default=None)
@click.option("--team-domain", type=str, default=None)
@click.option("--channel-name", type=str, default=None)
@click.option("--bot-id", type=str, default=None, help="Slack bot id used to drop echoes.")
@click.option("--token", "access_token", type=str, default=None, envvar="SLACK_ACCESS_TOKEN")
def link_room(
    matrix_room_id: str,
    slack_channel_id: str,
    team_id: str | None,
    team_domain: str | None,
    channel_name: str | None,
    bot_id: str | None,
    access_token: str | None,
) -> None:
    """Link a Matrix room to a Slack channel."""
    from slackbridge.bridge.handler import SlackEventHandler

    run_migrations()
    datastore = SqliteDatastore()
    existing = datastore.get_room(slack_channel_id)
    if existing is not None and existing["matrix_room_id"] != matrix_room_id:
        raise click.ClickException(
            f"{slack_channel_id} is already linked to {existing['matrix_room_id']}; "
            "run unlink-room first"
        )
    datastore.upsert_room_entry(
        {
            "matrix_room_id": matrix_room_id,
            "slack_channel_id": slack_channel_id,
            "slack_team_id": team_id,
            "slack_team_domain": team_domain,
            "slack_channel_name": channel_name,
            "slack_bot_id": bot_id,
            "slack_access_token": access_token,
        }
    )
    click.echo(f"linked {slack_channel_id} -> {matrix_room_id}")
    click.echo(f"slack app events: {', '.join(SlackEventHandler.SUPPORTED_EVENTS)}")


@cli.command("unlink-room")
@click.argument("slack_channel_id")
def unlink_room(slack_channel_id: str) -> None:
    """Remove the link for a Slack channel."""
    run_migrations()
    if not SqliteDatastore().delete_room(slack_channel_id):
        raise click.ClickException(f"no room linked to {slack_channel_id}")
    click.echo(f"unlinked {slack_channel_id}")
    click.echo("a running server keeps bridging it until restarted")


@cli.command("list-rooms")
@click.option("--json", "json_output", is_flag=True, help="Print rooms as JSON.")
def list_rooms(json_output: bool) -> None:
    """List linked rooms."""
    run_migrations()
    rooms = SqliteDatastore().list_rooms()
    for room in rooms:
        room["slack_access_token"] = "***" if room.get("slack_access_token") else None
    if json_output:
        click.echo(json.dumps(rooms, indent=2))
        return
    if not rooms:
        click.echo("no linked rooms")
        return
    for room in rooms:
        click.echo(
            f"{room['slack_channel_id']}\t{room['matrix_room_id']}\t"
            f"{room.get('slack_team_domain') or '-'}\t{room.get('slack_channel_name') or '-'}"
        )


@cli.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def replay(path: Path) -> None:
    """Run a captured event_callback payload through the handler."""
    from slackbridge.bridge.wiring import build_bridge

    settings = get_settings()
    configure_logging(settings.log_level)
    run_migrations()
    try:
        envelope = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise click.ClickException(f"invalid JSON in {path}: {exc}") from exc
    if not isinstance(envelope, dict):
        raise click.ClickException("expected a JSON object")
    event = envelope.get("event", envelope)
    if not isinstance(event, dict):
        raise click.ClickException("event must be a JSON object")
    team_id = str(envelope.get("team_id") or "")

    bridge = build_bridge(settings)

    def _respond(status: int, body: str | None, headers: dict[str, str] | None) -> None:
        click.echo(f"ack: {status} {body or ''}", err=True)

    outcome = asyncio.run(bridge.handler.handle(event, team_id, _respond))
    click.echo(json.dumps({"status": outcome.status, "reason": outcome.reason, "detail": outcome.detail}))
    if outcome.status == "fail":
        sys.exit(1)


if __name__ == "__main__":
    cli()
