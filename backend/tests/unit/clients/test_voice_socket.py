"""Tests for the voice socket client and its reconnect policy."""

import json

import pytest
from websockets.exceptions import ConnectionClosedError
from websockets.frames import Close

from intake.clients.voice_socket import ReconnectPolicy, VoiceSocketCallbacks, VoiceSocketClient


class TestReconnectPolicy:
    def test_delays_back_off_and_cap(self):
        policy = ReconnectPolicy(base_interval=3.0, factor=2.0, max_interval=30.0)

        assert [policy.next_delay(n) for n in range(5)] == [3.0, 6.0, 12.0, 24.0, 30.0]

    def test_normal_closure_never_reconnects(self):
        assert ReconnectPolicy().should_reconnect(1000, attempts=0) is False

    def test_client_close_never_reconnects(self):
        assert ReconnectPolicy().should_reconnect(1006, attempts=0, closed_by_client=True) is False

    def test_abnormal_closure_reconnects_until_limit(self):
        policy = ReconnectPolicy(max_attempts=5)

        assert policy.should_reconnect(1006, attempts=4) is True
        assert policy.should_reconnect(1006, attempts=5) is False
        assert policy.should_reconnect(None, attempts=0) is True


class FakeSocket:
    """Async-iterable stand-in for a websockets client connection."""

    def __init__(self, frames, close_code=1000, error=None):
        self.frames = list(frames)
        self.close_code = close_code
        self.error = error
        self.sent: list[dict] = []
        self.closed = False

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        return False

    def __aiter__(self):
        return self

    async def __anext__(self):
        if self.frames:
            return self.frames.pop(0)
        if self.error is not None:
            raise self.error
        raise StopAsyncIteration

    async def send(self, data):
        self.sent.append(json.loads(data))

    async def close(self):
        self.closed = True


class FakeConnector:
    def __init__(self, sockets):
        self.sockets = list(sockets)
        self.urls: list[str] = []

    def __call__(self, url):
        self.urls.append(url)
        item = self.sockets.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


def _abnormal_close() -> ConnectionClosedError:
    return ConnectionClosedError(Close(1011, "server error"), None)


class TestVoiceSocketClient:
    @pytest.mark.asyncio
    async def test_dispatches_frames_and_stops_on_normal_close(self):
        received: list[dict] = []
        connector = FakeConnector([FakeSocket(['{"type":"status","content":"connected"}', "not json"])])
        sleeps: list[float] = []

        async def fake_sleep(delay):
            sleeps.append(delay)

        client = VoiceSocketClient(
            "ws://localhost:8000/ws/voice",
            session_id="abc",
            callbacks=VoiceSocketCallbacks(on_message=received.append),
            connect=connector,
            sleep=fake_sleep,
        )

        await client.run()

        assert received == [{"type": "status", "content": "connected"}]
        assert connector.urls == ["ws://localhost:8000/ws/voice?sessionId=abc"]
        assert sleeps == []
        assert client.last_close_code == 1000

    @pytest.mark.asyncio
    async def test_reconnects_with_backoff_then_gives_up(self):
        states: list[str] = []
        sleeps: list[float] = []

        async def fake_sleep(delay):
            sleeps.append(delay)

        connector = FakeConnector([OSError("refused")] * 3)
        client = VoiceSocketClient(
            "ws://localhost:8000/ws/voice",
            policy=ReconnectPolicy(base_interval=1.0, factor=2.0, max_interval=3.0, max_attempts=2),
            callbacks=VoiceSocketCallbacks(on_state_change=states.append),
            connect=connector,
            sleep=fake_sleep,
        )

        await client.run()

        assert sleeps == [1.0, 2.0]
        assert len(connector.urls) == 3
        assert states[-1] == "gave_up"

    @pytest.mark.asyncio
    async def test_successful_open_resets_attempts(self):
        sleeps: list[float] = []

        async def fake_sleep(delay):
            sleeps.append(delay)

        connector = FakeConnector(
            [
                OSError("refused"),
                FakeSocket([], error=_abnormal_close()),
                FakeSocket([], close_code=1000),
            ]
        )
        client = VoiceSocketClient(
            "ws://h/ws/voice",
            policy=ReconnectPolicy(base_interval=1.0, factor=2.0),
            connect=connector,
            sleep=fake_sleep,
        )

        await client.run()

        # second delay restarts from the base because the socket opened in between
        assert sleeps == [1.0, 1.0]
        assert client.attempts == 0

    @pytest.mark.asyncio
    async def test_send_helpers_frame_messages(self):
        socket = FakeSocket([])
        client = VoiceSocketClient("ws://h/ws/voice", connect=FakeConnector([socket]))

        client._websocket = socket
        assert await client.send_audio(b"\x01\x02", context={"page": "refills"}, synthesize=True)
        assert await client.interrupt()
        assert await client.ping()

        audio, interrupt, ping = socket.sent
        assert audio == {
            "type": "voice.audio",
            "payload": {
                "audioData": "AQI=",
                "context": {"page": "refills"},
                "synthesize": True,
                "format": "wav",
            },
        }
        assert interrupt == {"type": "voice.interrupt", "payload": {}}
        assert ping == {"type": "ping"}

    @pytest.mark.asyncio
    async def test_send_without_connection_returns_false(self):
        client = VoiceSocketClient("ws://h/ws/voice", connect=FakeConnector([]))
        assert await client.ping() is False

    @pytest.mark.asyncio
    async def test_close_prevents_reconnect(self):
        sleeps: list[float] = []

        async def fake_sleep(delay):
            sleeps.append(delay)

        socket = FakeSocket(['{"type":"status","content":"connected"}'], error=_abnormal_close())
        client = VoiceSocketClient("ws://h/ws/voice", connect=FakeConnector([socket]), sleep=fake_sleep)

        async def close_on_first_frame(_message):
            await client.close()

        client.callbacks = VoiceSocketCallbacks(on_message=close_on_first_frame)
        await client.run()

        assert socket.closed is True
        assert sleeps == []
        assert client.last_close_code == 1011
