"""Text-to-speech helper built on OpenAI's speech endpoint."""

import logging
from typing import Any

from openai import AsyncOpenAI

from utils.audio_utils import pcm16_to_wav, save_debug_audio

TTS_MODEL = "gpt-4o-mini-tts"
TTS_SAMPLE_RATE = 24000


class SpeechService:
    """Synthesize assistant answers into playable audio."""

    def __init__(
        self,
        client: AsyncOpenAI,
        *,
        model: str = TTS_MODEL,
        voice: str = "alloy",
        audio_format: str = "wav",
        debug_save_audio: bool = False,
        debug_audio_dir: str = ".",
    ) -> None:
        """Initialize the service with a shared OpenAI client."""
        if client is None:
            raise ValueError("OpenAI client is required for speech synthesis.")
        self.client = client
        self.model = model
        self.voice = voice
        self.audio_format = audio_format
        self.debug_save_audio = debug_save_audio
        self.debug_audio_dir = debug_audio_dir

    async def synthesize(self, text: str) -> bytes:
        """Return audio bytes in `self.audio_format` for the given text."""
        if not text or not text.strip():
            raise ValueError("text must contain data for speech synthesis.")

        try:
            response = await self.client.audio.speech.create(
                model=self.model,
                voice=self.voice,
                input=text,
                response_format=self.audio_format,
            )
        except Exception as exc:
            logging.error("OpenAI speech request failed: %s", exc)
            raise

        audio = _response_bytes(response)
        if not audio:
            raise RuntimeError("No audio data returned from the speech endpoint.")

        if self.debug_save_audio:
            self._save_for_debugging(audio)
        return audio

    def _save_for_debugging(self, audio: bytes) -> None:
        """Persist a copy of the synthesized audio; failures are logged only."""
        try:
            if self.audio_format == "pcm":
                path = save_debug_audio(pcm16_to_wav(audio, sample_rate=TTS_SAMPLE_RATE), self.debug_audio_dir)
            else:
                path = save_debug_audio(audio, self.debug_audio_dir, extension=self.audio_format)
        except OSError as exc:
            logging.error("Failed to save debug TTS audio: %s", exc)
            return
        logging.info("TTS audio saved: %s", path)


def _response_bytes(response: Any) -> bytes:
    if isinstance(response, (bytes, bytearray)):
        return bytes(response)
    content = getattr(response, "content", None)
    if content is None:
        return b""
    return bytes(content)
