"""OpenAI service wrappers against stubbed SDK clients."""
import io
from types import SimpleNamespace

import pytest
from PIL import Image

from services.openai.assistant_service import AssistantService
from services.openai.dictation_service import DictationService
from services.openai.media_inputs import build_inputs
from services.openai.response_parser import extract_text
from services.openai.speech_service import SpeechService


class RecordingEndpoint:
    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error
        self.kwargs = []

    async def create(self, **kwargs):
        self.kwargs.append(kwargs)
        if self.error is not None:
            raise self.error
        return self.result


def _client(responses=None, speech=None, transcriptions=None):
    return SimpleNamespace(
        responses=responses or RecordingEndpoint(),
        audio=SimpleNamespace(
            speech=speech or RecordingEndpoint(),
            transcriptions=transcriptions or RecordingEndpoint(),
        ),
    )


def _png_bytes() -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (2, 2)).save(buffer, format="PNG")
    return buffer.getvalue()


def test_services_require_a_client():
    with pytest.raises(ValueError):
        AssistantService(None)
    with pytest.raises(ValueError):
        SpeechService(None)
    with pytest.raises(ValueError):
        DictationService(None)


def test_inputs_include_image_only_when_present():
    without_image = build_inputs("system", "hello", None)
    assert without_image[1]["content"] == [{"type": "input_text", "text": "hello"}]

    with_image = build_inputs("system", "hello", _png_bytes())
    image_part = with_image[1]["content"][1]
    assert image_part["type"] == "input_image"
    assert image_part["image_url"].startswith("data:image/png;base64,")


def test_extract_text_from_output_items():
    response = SimpleNamespace(
        output_text=None,
        output=[
            SimpleNamespace(type="reasoning", content=[]),
            SimpleNamespace(type="message", content=[{"type": "output_text", "text": "Hi."}]),
        ],
    )
    assert extract_text(response) == "Hi."


@pytest.mark.asyncio
async def test_assistant_sends_text_and_image():
    responses = RecordingEndpoint(SimpleNamespace(output_text=" A blue cup. ", usage=None))
    service = AssistantService(_client(responses=responses), model="test-model")

    answer = await service.respond(_png_bytes(), "what is this?")

    assert answer == "A blue cup."
    [kwargs] = responses.kwargs
    assert kwargs["model"] == "test-model"
    system, user = kwargs["input"]
    assert system["role"] == "system"
    assert user["content"][0] == {"type": "input_text", "text": "what is this?"}
    assert user["content"][1]["type"] == "input_image"


@pytest.mark.asyncio
async def test_assistant_rejects_empty_output():
    responses = RecordingEndpoint(SimpleNamespace(output_text="", output=[], usage=None))
    service = AssistantService(_client(responses=responses))

    with pytest.raises(RuntimeError):
        await service.respond(None, "hello")


@pytest.mark.asyncio
async def test_assistant_propagates_api_errors():
    service = AssistantService(_client(responses=RecordingEndpoint(error=ConnectionError("offline"))))

    with pytest.raises(ConnectionError):
        await service.respond(None, "hello")


@pytest.mark.asyncio
async def test_speech_returns_audio_bytes():
    speech = RecordingEndpoint(SimpleNamespace(content=b"RIFFaudio"))
    service = SpeechService(_client(speech=speech), voice="coral", audio_format="wav")

    audio = await service.synthesize("Hello")

    assert audio == b"RIFFaudio"
    [kwargs] = speech.kwargs
    assert kwargs["voice"] == "coral"
    assert kwargs["input"] == "Hello"
    assert kwargs["response_format"] == "wav"


@pytest.mark.asyncio
async def test_speech_saves_debug_audio(tmp_path):
    speech = RecordingEndpoint(SimpleNamespace(content=b"\x00\x00" * 10))
    service = SpeechService(
        _client(speech=speech), audio_format="pcm", debug_save_audio=True, debug_audio_dir=str(tmp_path)
    )

    await service.synthesize("Hello")

    [saved] = list(tmp_path.glob("tts_output_*.wav"))
    assert saved.read_bytes().startswith(b"RIFF")


@pytest.mark.asyncio
async def test_speech_rejects_missing_audio():
    service = SpeechService(_client(speech=RecordingEndpoint(SimpleNamespace(content=b""))))

    with pytest.raises(RuntimeError):
        await service.synthesize("Hello")


@pytest.mark.asyncio
async def test_dictation_names_the_upload():
    transcriptions = RecordingEndpoint(SimpleNamespace(text="  turn left  "))
    service = DictationService(_client(transcriptions=transcriptions), model="whisper-1")

    transcript = await service.transcribe(b"RIFF", filename="audio.webm")

    assert transcript == "turn left"
    [kwargs] = transcriptions.kwargs
    assert kwargs["model"] == "whisper-1"
    assert kwargs["file"].name == "audio.webm"


@pytest.mark.asyncio
async def test_dictation_requires_audio():
    service = DictationService(_client())
    with pytest.raises(ValueError):
        await service.transcribe(b"")
