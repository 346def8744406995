"""Environment-driven settings for the relay server."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional, Tuple

TRUE_VALUES = {"1", "true", "yes", "on"}


def _env_flag(name: str, default: bool) -> bool:
	raw = os.getenv(name)
	if raw is None or not raw.strip():
		return default
	return raw.strip().lower() in TRUE_VALUES


def _env_int(name: str, default: int) -> int:
	raw = os.getenv(name)
	if raw is None or not raw.strip():
		return default
	try:
		return int(raw)
	except ValueError as exc:
		raise RuntimeError(f"{name} must be an integer, got {raw!r}") from exc


def _env_float(name: str, default: float) -> float:
	raw = os.getenv(name)
	if raw is None or not raw.strip():
		return default
	try:
		return float(raw)
	except ValueError as exc:
		raise RuntimeError(f"{name} must be a number, got {raw!r}") from exc


@dataclass(frozen=True)
class RelaySettings:
	"""Runtime configuration shared by every connection."""

	openai_api_key: str
	stt_api_key: Optional[str] = None
	tts_api_key: Optional[str] = None
	host: str = "0.0.0.0"
	port: int = 5000
	debug_save_audio: bool = False
	debug_audio_dir: str = "."
	assistant_model: str = "gpt-4o-mini"
	transcribe_model: str = "gpt-4o-transcribe"
	tts_model: str = "gpt-4o-mini-tts"
	tts_voice: str = "alloy"
	tts_format: str = "wav"
	realtime_url: str = "wss://api.openai.com/v1/realtime"
	pcm_sample_rate: int = 16000
	upstream_timeout: float = 30.0
	text_message_tts: bool = True
	max_image_bytes: int = 10_000_000
	cors_origins: Tuple[str, ...] = ("*",)
	log_level: str = "INFO"

	@property
	def speech_to_text_key(self) -> str:
		return self.stt_api_key or self.openai_api_key

	@property
	def text_to_speech_key(self) -> str:
		return self.tts_api_key or self.openai_api_key

	@classmethod
	def from_env(cls) -> "RelaySettings":
		"""Build settings from environment variables.

		Raises:
			RuntimeError: if OPENAI_API_KEY is missing or a numeric variable
				cannot be parsed.
		"""
		openai_api_key = os.getenv("OPENAI_API_KEY")
		if not openai_api_key:
			raise RuntimeError("OPENAI_API_KEY environment variable is not set")

		origins = os.getenv("CORS_ORIGINS", "*")
		return cls(
			openai_api_key=openai_api_key,
			stt_api_key=os.getenv("STT_API_KEY") or None,
			tts_api_key=os.getenv("TTS_API_KEY") or None,
			host=os.getenv("HOST", "0.0.0.0"),
			port=_env_int("PORT", 5000),
			debug_save_audio=_env_flag("DEBUG_SAVE_AUDIO", False),
			debug_audio_dir=os.getenv("DEBUG_AUDIO_DIR", "."),
			assistant_model=os.getenv("ASSISTANT_MODEL", "gpt-4o-mini"),
			transcribe_model=os.getenv("TRANSCRIBE_MODEL", "gpt-4o-transcribe"),
			tts_model=os.getenv("TTS_MODEL", "gpt-4o-mini-tts"),
			tts_voice=os.getenv("TTS_VOICE", "alloy"),
			tts_format=os.getenv("TTS_FORMAT", "wav"),
			realtime_url=os.getenv("REALTIME_URL", "wss://api.openai.com/v1/realtime"),
			pcm_sample_rate=_env_int("PCM_SAMPLE_RATE", 16000),
			upstream_timeout=_env_float("UPSTREAM_TIMEOUT_SECONDS", 30.0),
			text_message_tts=_env_flag("TEXT_MESSAGE_TTS", True),
			max_image_bytes=_env_int("MAX_IMAGE_BYTES", 10_000_000),
			cors_origins=tuple(origin.strip() for origin in origins.split(",") if origin.strip()) or ("*",),
			log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
		)
