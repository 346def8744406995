"""Dispatch relay websocket events to the appropriate handlers."""
from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Optional

from pydantic import ValidationError

from models.event_models import AudioPayload, ImageChunkPayload, TextMessagePayload
from models.session_models import ImageChunk, SessionContext
from services.realtime.chunk_reassembler import ChunkReassembler, ImageUploadError
from services.realtime.dispatcher import FULL_AUDIO_KIND, TEXT_KIND, RelayServices, RequestDispatcher
from services.realtime.event_sender import EventSender, now_ms
from utils.media_validation import decode_binary_payload
from utils.settings import RelaySettings

LOGGER = logging.getLogger(__name__)

TranscriberFactory = Callable[..., Any]


class RealtimeSessionHandler:
	"""Route websocket events for a single connected device."""

	def __init__(
		self,
		context: SessionContext,
		sender: EventSender,
		services: RelayServices,
		settings: RelaySettings,
		transcriber_factory: Optional[TranscriberFactory] = None,
	) -> None:
		self.context = context
		self.sender = sender
		self.transcriber_factory = transcriber_factory
		self.reassembler = ChunkReassembler(settings.max_image_bytes)
		self.dispatcher = RequestDispatcher(
			context,
			sender,
			services,
			timeout=settings.upstream_timeout,
			text_message_tts=settings.text_message_tts,
			pcm_sample_rate=settings.pcm_sample_rate,
			audio_format=settings.tts_format,
		)
		self._shut_down = False
		self._handlers: Dict[str, Callable[[Any], Any]] = {
			"audio_chunk": self._on_audio_chunk_event,
			"audio_full": self._on_audio_full,
			"image_chunk": self._on_image_chunk,
			"text_message": self._on_text_message,
			"clear_image": self._on_clear_image,
			"audio_start": self._on_audio_start,
			"audio_end": self._on_audio_end,
		}

	@property
	def session_id(self) -> str:
		return self.context.session_id

	async def start(self) -> None:
		"""Open the streaming transcription session for this connection."""
		if self.transcriber_factory is None:
			return
		try:
			self.context.transcriber = self.transcriber_factory(
				on_open=self._on_stt_open,
				on_turn=self._on_stt_turn,
				on_error=self._on_stt_error,
				on_close=self._on_stt_close,
			)
			await self.context.transcriber.connect()
		except Exception as exc:
			LOGGER.error("[%s] Failed to initialize STT: %s", self.session_id, exc)
			await self.sender.send_error("initialization", str(exc))

	async def handle(self, payload: Dict[str, Any]) -> None:
		"""Process a single inbound JSON event."""
		event = payload.get("event") if isinstance(payload, dict) else None
		handler = self._handlers.get(event) if isinstance(event, str) else None
		if handler is None:
			await self.sender.send_error("invalid_message", f"Unsupported event: {event!r}")
			return
		await handler(payload.get("data"))

	async def handle_audio_chunk(self, chunk: bytes) -> None:
		"""Forward raw audio to the streaming transcriber when it is open."""
		transcriber = self.context.transcriber
		if transcriber is None or not transcriber.is_open:
			LOGGER.debug("[%s] Dropping audio chunk: no open transcription stream", self.session_id)
			return
		try:
			await transcriber.send_audio(chunk)
		except Exception as exc:
			LOGGER.error("[%s] Error writing audio chunk: %s", self.session_id, exc)

	async def shutdown(self) -> None:
		"""Tear the session down: cancel work, close the transcriber, drop media."""
		if self._shut_down:
			return
		self._shut_down = True
		self.sender.mark_closed()
		self.context.close()
		await self.dispatcher.cancel()

		transcriber = self.context.transcriber
		self.context.transcriber = None
		if transcriber is not None:
			try:
				await transcriber.close()
			except Exception as exc:
				LOGGER.error("[%s] Error closing transcriber: %s", self.session_id, exc)

	# Inbound events

	async def _on_audio_chunk_event(self, data: Any) -> None:
		try:
			chunk = decode_binary_payload(data)
		except ValueError as exc:
			await self.sender.send_error("invalid_message", str(exc))
			return
		await self.handle_audio_chunk(chunk)

	async def _on_audio_full(self, data: Any) -> None:
		if await self.dispatcher.reject_if_busy(FULL_AUDIO_KIND):
			return
		try:
			if isinstance(data, dict) and "audio" in data:
				payload = AudioPayload.model_validate(data)
			else:
				payload = AudioPayload(audio=data)
			audio = decode_binary_payload(payload.audio)
		except (ValidationError, ValueError) as exc:
			await self.sender.send_error("full_audio", str(exc))
			return
		if not audio:
			await self.sender.send_error("full_audio", "Audio payload is empty")
			return
		LOGGER.info("[%s] Full audio received: %d bytes", self.session_id, len(audio))
		await self.dispatcher.submit_audio(audio, payload.mime_type)

	async def _on_image_chunk(self, data: Any) -> None:
		try:
			payload = ImageChunkPayload.model_validate(data)
			chunk = ImageChunk(data=decode_binary_payload(payload.chunk), is_last=payload.is_last, seq=payload.seq)
			image = self.reassembler.append(self.context, chunk)
		except (ValidationError, ImageUploadError, ValueError) as exc:
			LOGGER.error("[%s] Error processing image: %s", self.session_id, exc)
			await self.sender.send_error("image_upload", str(exc))
			return
		if image is None:
			return
		LOGGER.info("[%s] Image received: %d bytes", self.session_id, len(image))
		await self.sender.send("image_received", {"size": len(image), "timestamp": now_ms()})

	async def _on_text_message(self, data: Any) -> None:
		if await self.dispatcher.reject_if_busy(TEXT_KIND):
			return
		try:
			if isinstance(data, dict):
				payload = TextMessagePayload.model_validate(data)
			else:
				payload = TextMessagePayload(text=data if data is not None else "")
		except ValidationError as exc:
			await self.sender.send_error("text_processing", str(exc))
			return
		text = payload.text.strip()
		if not text:
			await self.sender.send_error("text_processing", "Text message is required")
			return
		LOGGER.info("[%s] Text received: %s", self.session_id, text)
		await self.dispatcher.submit_text(text)

	async def _on_clear_image(self, _data: Any) -> None:
		self.context.clear_image()
		LOGGER.info("[%s] Image cleared", self.session_id)
		await self.sender.send("image_cleared")

	async def _on_audio_start(self, _data: Any) -> None:
		LOGGER.info("[%s] Audio stream started", self.session_id)

	async def _on_audio_end(self, _data: Any) -> None:
		LOGGER.info("[%s] Audio stream ended", self.session_id)

	# Streaming transcription callbacks

	async def _on_stt_open(self, stt_session_id: str) -> None:
		self.context.stt_session_id = stt_session_id
		LOGGER.info("[%s] STT session opened: %s", self.session_id, stt_session_id)
		await self.sender.send("stt_ready", {"sessionId": stt_session_id})

	async def _on_stt_turn(self, transcript: str) -> None:
		transcript = (transcript or "").strip()
		if not transcript:
			return
		LOGGER.info("[%s] Transcribed: %s", self.session_id, transcript)
		await self.dispatcher.submit_transcript(transcript)

	async def _on_stt_error(self, message: str) -> None:
		LOGGER.error("[%s] STT error: %s", self.session_id, message)
		await self.sender.send_error("stt", message)

	async def _on_stt_close(self, code: Optional[int], reason: str) -> None:
		LOGGER.info("[%s] STT session closed: %s %s", self.session_id, code, reason)
