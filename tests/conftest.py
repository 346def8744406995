"""Pytest configuration and fixtures."""
import asyncio
import json
from typing import Any, List, Optional

import pytest
from starlette.websockets import WebSocketState

from models.session_models import SessionContext
from services.realtime.dispatcher import RelayServices, RequestDispatcher
from services.realtime.event_sender import EventSender
from services.realtime.ws_session import RealtimeSessionHandler
from utils.settings import RelaySettings


class FakeWebSocket:
    """Collects events the server would send to the device."""

    def __init__(self):
        self.sent: List[dict] = []
        self.application_state = WebSocketState.CONNECTED

    async def send_text(self, text: str) -> None:
        self.sent.append(json.loads(text))

    def events(self, name: Optional[str] = None) -> List[dict]:
        return [message for message in self.sent if name is None or message["event"] == name]

    def errors(self) -> List[str]:
        return [message["data"]["type"] for message in self.events("error")]


class FakeTranscriber:
    """Stands in for the upstream streaming transcription session."""

    def __init__(self, *, on_open, on_turn, on_error, on_close, fail_connect=False):
        self.on_open = on_open
        self.on_turn = on_turn
        self.on_error = on_error
        self.on_close = on_close
        self.fail_connect = fail_connect
        self.connected = False
        self.audio: List[bytes] = []
        self.close_calls = 0

    @property
    def is_open(self) -> bool:
        return self.connected

    async def connect(self) -> None:
        if self.fail_connect:
            raise RuntimeError("upstream unavailable")
        self.connected = True
        await self.on_open("stt-session-1")

    async def send_audio(self, chunk: bytes) -> None:
        self.audio.append(chunk)

    async def close(self) -> None:
        self.close_calls += 1
        self.connected = False


class TranscriberFactory:
    def __init__(self, fail_connect: bool = False):
        self.fail_connect = fail_connect
        self.instances: List[FakeTranscriber] = []

    def __call__(self, **callbacks) -> FakeTranscriber:
        transcriber = FakeTranscriber(fail_connect=self.fail_connect, **callbacks)
        self.instances.append(transcriber)
        return transcriber


class FakeAssistant:
    def __init__(self, reply: str = "That is a red mug.", error: Optional[Exception] = None):
        self.reply = reply
        self.error = error
        self.gate: Optional[asyncio.Event] = None
        self.started = asyncio.Event()
        self.delay: float = 0.0
        self.calls: List[tuple] = []

    async def respond(self, image_bytes: Optional[bytes], text: str) -> str:
        self.calls.append((image_bytes, text))
        self.started.set()
        if self.gate is not None:
            await self.gate.wait()
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.reply


class FakeSpeech:
    def __init__(self, audio: bytes = b"RIFF-fake-audio", error: Optional[Exception] = None):
        self.audio = audio
        self.error = error
        self.calls: List[str] = []

    async def synthesize(self, text: str) -> bytes:
        self.calls.append(text)
        if self.error is not None:
            raise self.error
        return self.audio


class FakeDictation:
    def __init__(self, transcript: str = "what am I holding"):
        self.transcript = transcript
        self.calls: List[tuple] = []

    async def transcribe(self, audio_bytes: bytes, *, filename: str = "audio.wav") -> str:
        self.calls.append((audio_bytes, filename))
        return self.transcript


@pytest.fixture
def settings():
    return RelaySettings(openai_api_key="test-key", upstream_timeout=2.0, max_image_bytes=1024)


@pytest.fixture
def services():
    return RelayServices(assistant=FakeAssistant(), speech=FakeSpeech(), dictation=FakeDictation())


@pytest.fixture
def websocket():
    return FakeWebSocket()


@pytest.fixture
def context():
    return SessionContext(session_id="session-1")


@pytest.fixture
def sender(websocket, context):
    return EventSender(websocket, context.session_id)


@pytest.fixture
def dispatcher(context, sender, services):
    return RequestDispatcher(context, sender, services, timeout=2.0)


@pytest.fixture
def transcriber_factory():
    return TranscriberFactory()


@pytest.fixture
def handler(context, sender, services, settings, transcriber_factory):
    return RealtimeSessionHandler(context, sender, services, settings, transcriber_factory=transcriber_factory)


async def wait_for_request(context: SessionContext) -> Any:
    """Await the session's in-flight request, if any."""
    task = context.active_task
    if task is not None:
        await task
