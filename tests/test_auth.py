"""Tests for the OAuth prompt relay."""

import pytest

from hark.auth import OAuthPromptRelay, make_token_input
from hark.channel.messages import NotificationKind, OAuthCodeSubmitted
from tests.conftest import drain


@pytest.mark.asyncio
async def test_prompt_publishes_url_and_relays_code(channel):
    queue = channel.subscribe()
    codes = []

    relay = OAuthPromptRelay(channel, codes.append, "https://auth.example/start")
    await relay.prompt()

    notes = drain(queue)
    assert notes[0].kind == NotificationKind.SHOW_OAUTH_PROMPT
    assert notes[0].payload == {"authUrl": "https://auth.example/start"}

    await channel.emit(OAuthCodeSubmitted(code="4/code"))
    assert codes == ["4/code"]
    assert relay.answered is True


@pytest.mark.asyncio
async def test_code_is_relayed_only_once(channel):
    codes = []
    await OAuthPromptRelay(channel, codes.append, "https://auth.example").prompt()

    await channel.emit(OAuthCodeSubmitted(code="first"))
    await channel.emit(OAuthCodeSubmitted(code="second"))

    assert codes == ["first"]
    assert channel.handler_count(OAuthCodeSubmitted) == 0


@pytest.mark.asyncio
async def test_async_callback_is_awaited(channel):
    codes = []

    async def validate(code):
        codes.append(code)

    await OAuthPromptRelay(channel, validate, "https://auth.example").prompt()
    await channel.emit(OAuthCodeSubmitted(code="async-code"))

    assert codes == ["async-code"]


@pytest.mark.asyncio
async def test_token_input_uses_a_fresh_relay_per_prompt(channel):
    queue = channel.subscribe()
    token_input = make_token_input(channel)
    first, second = [], []

    await token_input(first.append, "https://auth.example/1")
    await channel.emit(OAuthCodeSubmitted(code="one"))
    await token_input(second.append, "https://auth.example/2")
    await channel.emit(OAuthCodeSubmitted(code="two"))

    assert first == ["one"]
    assert second == ["two"]
    assert [n.payload["authUrl"] for n in drain(queue)] == [
        "https://auth.example/1",
        "https://auth.example/2",
    ]


@pytest.mark.asyncio
async def test_newer_prompt_retires_unanswered_one(channel):
    token_input = make_token_input(channel)
    stale, current = [], []

    await token_input(stale.append, "https://auth.example/1")
    await token_input(current.append, "https://auth.example/2")
    await channel.emit(OAuthCodeSubmitted(code="code-for-2"))

    assert stale == []
    assert current == ["code-for-2"]
    assert channel.handler_count(OAuthCodeSubmitted) == 0


@pytest.mark.asyncio
async def test_retire_after_answer_is_a_no_op(channel):
    codes = []
    relay = OAuthPromptRelay(channel, codes.append, "https://auth.example")
    await relay.prompt()
    await channel.emit(OAuthCodeSubmitted(code="4/code"))

    relay.retire()

    assert codes == ["4/code"]
    assert relay.answered is True
