"""Tests for the Slack Web API client, mention resolver and file gateway."""

import asyncio
import json
from urllib.parse import parse_qs

import httpx
import pytest

from slackbridge.errors import FileAccessError, SlackApiError
from slackbridge.events.models import NormalizedMessage, SlackFile
from slackbridge.slack.client import SlackWebClient
from slackbridge.slack.files import SlackFileGateway, slack_file_url
from slackbridge.slack.mentions import SlackMentionResolver, replace_links

BASE = "http://slack.test/api"


def _form(request: httpx.Request) -> dict[str, str]:
    return {k: v[0] for k, v in parse_qs(request.content.decode()).items()}


def _client(handler) -> SlackWebClient:
    return SlackWebClient(BASE, transport=httpx.MockTransport(handler))


def _record() -> NormalizedMessage:
    return NormalizedMessage(channel_id="C1", team_id="T1", team_domain="acme", user_id="U1")


def test_call_sends_bearer_token_and_form() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"ok": True, "user": {"name": "bob"}})

    user = asyncio.run(_client(handler).users_info("xoxb-1", "U2"))
    assert user == {"name": "bob"}
    assert seen[0].url.path == "/api/users.info"
    assert seen[0].headers["Authorization"] == "Bearer xoxb-1"
    assert _form(seen[0]) == {"user": "U2"}


def test_call_raises_on_not_ok() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"ok": False, "error": "user_not_found"})

    with pytest.raises(SlackApiError, match="user_not_found") as exc_info:
        asyncio.run(_client(handler).users_info("xoxb-1", "U2"))
    assert exc_info.value.retryable is False


def test_call_marks_rate_limit_retryable() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(429, json={"ok": False})

    with pytest.raises(SlackApiError) as exc_info:
        asyncio.run(_client(handler).conversations_info("xoxb-1", "C1"))
    assert exc_info.value.retryable is True


def test_mentions_resolve_users_channels_and_links() -> None:
    calls: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.url.path)
        form = _form(request)
        if request.url.path.endswith("users.info"):
            if form["user"] == "U2":
                return httpx.Response(
                    200, json={"ok": True, "user": {"name": "bob", "profile": {"display_name": "Bob"}}}
                )
            return httpx.Response(200, json={"ok": False, "error": "user_not_found"})
        if request.url.path.endswith("conversations.info"):
            return httpx.Response(200, json={"ok": True, "channel": {"name": "random"}})
        return httpx.Response(404)

    resolver = SlackMentionResolver(_client(handler))
    text = (
        "hi <@U2> and <@U9>, see <#C5> or <#C6|general>; <!here> "
        "<https://example.com|docs> &amp; <https://example.com>"
    )
    result = asyncio.run(resolver(_record(), text, "xoxb-1"))
    assert result == (
        "hi Bob and <@U9>, see #random or #general; @here "
        "docs (https://example.com) & https://example.com"
    )

    calls.clear()
    asyncio.run(resolver(_record(), "again <@U2>", "xoxb-1"))
    assert calls == []


def test_mention_cache_evicts_least_recently_used() -> None:
    calls: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        user = _form(request)["user"]
        calls.append(user)
        return httpx.Response(200, json={"ok": True, "user": {"name": user.lower()}})

    resolver = SlackMentionResolver(_client(handler), cache_size=2)

    async def scenario() -> None:
        for text in ("<@U1>", "<@U2>", "<@U1>", "<@U3>", "<@U1>", "<@U2>"):
            await resolver(_record(), text, "xoxb-1")

    asyncio.run(scenario())
    # U2 is evicted when U3 arrives; U1 stays hot.
    assert calls == ["U1", "U2", "U3", "U2"]


def test_replace_links_mailto_and_subteam() -> None:
    assert replace_links("<mailto:a@b.c|a@b.c>") == "a@b.c"
    assert replace_links("<!subteam^S1|@oncall> ping") == "@oncall ping"
    assert replace_links("<http://acme.com|acme.com>") == "http://acme.com"


def test_slack_file_url_uses_pub_secret() -> None:
    file = SlackFile(
        id="F1",
        url_private="https://files.slack.com/files-pri/T1-F1/chart.png",
        permalink_public="https://slack-files.com/T1-F1-5ecret",
    )
    assert slack_file_url(file) == "https://files.slack.com/files-pri/T1-F1/chart.png?pub_secret=5ecret"
    assert slack_file_url(SlackFile(id="F2", url_private="x", permalink_public="https://other/x")) is None


def test_make_public_skips_already_shared_file() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no API call expected")

    file = SlackFile(id="F1", permalink_public="https://slack-files.com/T1-F1-s", public_url_shared=True)
    gateway = SlackFileGateway(_client(handler))
    assert asyncio.run(gateway.make_public(file, "xoxp")) is file


def test_make_public_calls_shared_public_url() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path.endswith("files.sharedPublicURL")
        return httpx.Response(
            200,
            json={
                "ok": True,
                "file": {
                    "id": "F1",
                    "url_private": "https://files.slack.com/F1",
                    "permalink_public": "https://slack-files.com/T1-F1-s3",
                    "public_url_shared": True,
                },
            },
        )

    shared = asyncio.run(SlackFileGateway(_client(handler)).make_public(SlackFile(id="F1"), "xoxp"))
    assert shared.public_url_shared is True
    assert shared.permalink_public == "https://slack-files.com/T1-F1-s3"


def test_make_public_wraps_api_errors() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"ok": False, "error": "not_allowed_token_type"})

    with pytest.raises(FileAccessError, match="not_allowed_token_type"):
        asyncio.run(SlackFileGateway(_client(handler)).make_public(SlackFile(id="F1"), "xoxb"))


def test_download_fetches_pub_secret_url() -> None:
    seen: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(str(request.url))
        return httpx.Response(200, content=b"PNGDATA")

    file = SlackFile(
        id="F1",
        url_private="https://files.slack.com/F1",
        permalink_public="https://slack-files.com/T1-F1-abc",
    )
    data = asyncio.run(SlackFileGateway(_client(handler)).download(file))
    assert data == b"PNGDATA"
    assert seen == ["https://files.slack.com/F1?pub_secret=abc"]


def test_download_enforces_size_cap() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=b"x" * 64)

    file = SlackFile(id="F1", permalink_public="https://slack-files.com/T1-F1-abc")
    with pytest.raises(FileAccessError, match="exceeds"):
        asyncio.run(SlackFileGateway(_client(handler), max_bytes=16).download(file))


def test_download_without_url_fails() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200)

    with pytest.raises(FileAccessError):
        asyncio.run(SlackFileGateway(_client(handler)).download(SlackFile(id="F1")))


def test_from_settings_uses_configured_base_url() -> None:
    seen: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(str(request.url))
        return httpx.Response(200, content=json.dumps({"ok": True, "channel": {}}).encode())

    client = SlackWebClient.from_settings()
    client._transport = httpx.MockTransport(handler)
    asyncio.run(client.conversations_info("xoxb", "C1"))
    assert seen == ["http://slack.test/api/conversations.info"]
