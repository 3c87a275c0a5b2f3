"""Tests for ConversationSession: the per-turn event relay."""

import pytest

from hark.assistant.events import (
    AudioData,
    ConversationError,
    EndOfUtterance,
    Ended,
    ScreenData,
    Transcription,
)
from hark.channel.messages import NotificationKind
from hark.core.metrics import metrics
from hark.handlers import EventHandlers
from hark.session import ConversationSession
from tests.conftest import FakeConversation, drain, kinds


def _session(channel, handlers, **kwargs):
    conversation = FakeConversation()
    session = ConversationSession(conversation, channel, handlers, **kwargs)
    session.attach()
    return session, conversation


@pytest.mark.asyncio
async def test_audio_data_passes_through_in_order(channel, handlers):
    _session_obj, conversation = _session(channel, handlers)
    chunks = [b"\x01\x02", b"", b"\xff" * 512, bytearray(b"\x03")]

    for chunk in chunks:
        await conversation.emit(AudioData(chunk))

    assert handlers.audio == [bytes(c) for c in chunks]
    assert all(isinstance(a, bytes) for a in handlers.audio)


@pytest.mark.asyncio
async def test_interim_transcription_is_ui_only(channel, handlers):
    queue = channel.subscribe()
    _s, conversation = _session(channel, handlers)

    await conversation.emit(Transcription("turn on", done=False))

    assert handlers.queries == []
    notes = drain(queue)
    assert len(notes) == 1
    assert notes[0].kind == NotificationKind.TRANSCRIPTION
    assert notes[0].payload == {"text": "turn on", "done": False}


@pytest.mark.asyncio
async def test_final_transcription_reports_query_once(channel, handlers):
    queue = channel.subscribe()
    _s, conversation = _session(channel, handlers)

    await conversation.emit(Transcription("turn", done=False))
    await conversation.emit(Transcription("turn on the", done=False))
    await conversation.emit(Transcription("turn on the lights", done=True))

    assert handlers.queries == ["turn on the lights"]
    assert kinds(queue) == ["transcription"] * 3


@pytest.mark.asyncio
async def test_final_transcription_matching_text_query_is_not_repeated(channel, handlers):
    _s, conversation = _session(channel, handlers, query="turn on lights")

    await conversation.emit(Transcription("turn on lights", done=True))

    assert handlers.queries == []


@pytest.mark.asyncio
async def test_screen_data_decoded_for_channel_and_handler(channel, handlers):
    queue = channel.subscribe()
    _s, conversation = _session(channel, handlers)

    await conversation.emit(
        ScreenData(b"<html>Lights on</html>", metadata={"format": "html"})
    )

    assert handlers.screens == ["<html>Lights on</html>"]
    notes = drain(queue)
    assert notes[0].kind == NotificationKind.SCREEN_DATA
    assert notes[0].payload == {"format": "html", "data": "<html>Lights on</html>"}


@pytest.mark.asyncio
async def test_screen_data_with_invalid_utf8_still_delivered(channel, handlers):
    _s, conversation = _session(channel, handlers)

    await conversation.emit(ScreenData(b"ok \xff"))

    assert handlers.screens == ["ok \ufffd"]


@pytest.mark.asyncio
async def test_end_of_utterance_notification(channel, handlers):
    queue = channel.subscribe()
    _s, conversation = _session(channel, handlers)

    await conversation.emit(EndOfUtterance())

    notes = drain(queue)
    assert [n.kind for n in notes] == [NotificationKind.END_OF_UTTERANCE]
    assert notes[0].payload == {}


@pytest.mark.asyncio
async def test_ended_with_continue_and_auto_continue_opens_mic(channel, handlers):
    queue = channel.subscribe()
    session, conversation = _session(channel, handlers, auto_continue=True)

    await conversation.emit(Ended(error=None, should_continue=True))

    assert handlers.ended == 1
    assert kinds(queue) == ["conversation-ended", "start-microphone"]
    assert session.is_open is False


@pytest.mark.asyncio
async def test_ended_with_continue_but_auto_continue_disabled(channel, handlers):
    queue = channel.subscribe()
    _s, conversation = _session(channel, handlers, auto_continue=False)

    await conversation.emit(Ended(error=None, should_continue=True))

    assert handlers.ended == 1
    assert kinds(queue) == ["conversation-ended"]


@pytest.mark.asyncio
async def test_ended_without_continue_never_opens_mic(channel, handlers):
    queue = channel.subscribe()
    _s, conversation = _session(channel, handlers, auto_continue=True)

    await conversation.emit(Ended(should_continue=False))

    assert kinds(queue) == ["conversation-ended"]


@pytest.mark.asyncio
async def test_ended_with_error_publishes_error_then_ended(channel, handlers):
    queue = channel.subscribe()
    _s, conversation = _session(channel, handlers)

    await conversation.emit(Ended(error=RuntimeError("stream reset")))

    notes = drain(queue)
    assert [n.kind.value for n in notes] == ["error", "conversation-ended"]
    assert notes[0].payload == {"message": "stream reset", "source": "conversation"}
    assert handlers.ended == 1


@pytest.mark.asyncio
async def test_conversation_error_does_not_close_session(channel, handlers):
    queue = channel.subscribe()
    session, conversation = _session(channel, handlers)

    await conversation.emit(ConversationError("deadline exceeded"))
    await conversation.emit(AudioData(b"\x00"))

    assert session.is_open is True
    assert handlers.audio == [b"\x00"]
    assert kinds(queue) == ["error"]


@pytest.mark.asyncio
async def test_events_after_ended_are_dropped(channel, handlers):
    queue = channel.subscribe()
    _s, conversation = _session(channel, handlers)

    await conversation.emit(Ended())
    drain(queue)
    await conversation.emit(AudioData(b"late"))
    await conversation.emit(Transcription("late", done=True))
    await conversation.emit(Ended())

    assert handlers.audio == []
    assert handlers.queries == []
    assert handlers.ended == 1
    assert drain(queue) == []
    assert metrics.counter("conversation.events.dropped") == 3


@pytest.mark.asyncio
async def test_host_end_closes_and_ignores_trailing_events(channel, handlers):
    closed = []
    session, conversation = _session(channel, handlers, on_closed=closed.append)

    await session.end()
    await session.end()
    await conversation.emit(AudioData(b"buffered"))
    await conversation.emit(Ended())

    assert conversation.end_calls == 1
    assert closed == [session]
    assert handlers.audio == []
    assert handlers.ended == 0


@pytest.mark.asyncio
async def test_write_forwards_until_closed(channel, handlers):
    session, conversation = _session(channel, handlers)

    await session.write(b"\x01")
    await session.end()
    await session.write(b"\x02")

    assert conversation.written == [b"\x01"]
    assert metrics.counter("audio.in.dropped") == 1


@pytest.mark.asyncio
async def test_failing_handler_does_not_break_relay(channel):
    async def boom(*_args):
        raise RuntimeError("handler exploded")

    handlers = EventHandlers(
        on_query=boom,
        on_screen_data=boom,
        on_audio_data=boom,
        on_conversation_ended=boom,
    )
    queue = channel.subscribe()
    session, conversation = _session(channel, handlers, auto_continue=True)

    await conversation.emit(AudioData(b"\x00"))
    await conversation.emit(Transcription("hi", done=True))
    await conversation.emit(ScreenData(b"card"))
    await conversation.emit(Ended(should_continue=True))

    assert kinds(queue) == [
        "transcription",
        "screen-data",
        "conversation-ended",
        "start-microphone",
    ]
    assert session.is_open is False
    assert metrics.counter("handlers.failed", labels={"handler": "on_audio_data"}) == 1
