"""Serialize AI requests per session and deliver their results."""

from __future__ import annotations

import asyncio
import base64
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Optional, TypeVar

from models.session_models import SessionContext
from services.realtime.event_sender import EventSender, now_ms
from utils.audio_utils import pcm16_to_wav
from utils.media_validation import audio_filename_for_mime, is_raw_pcm

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

# Error kinds reported per trigger.
TRANSCRIPT_KIND = "ai_processing"
TEXT_KIND = "text_processing"
FULL_AUDIO_KIND = "full_audio"

FAILURE_MESSAGES = {
	TRANSCRIPT_KIND: "Failed to process your request",
	TEXT_KIND: "Failed to process your message",
	FULL_AUDIO_KIND: "Failed to process your audio",
}


@dataclass
class RelayServices:
	"""Upstream collaborators shared by every session."""

	assistant: Any
	speech: Any
	dictation: Any


class RequestDispatcher:
	"""Run (image, text) through the assistant and speech synthesis for one session.

	At most one request is admitted per session. Each admitted request runs
	as its own task so the connection keeps receiving while it is in flight;
	the task is the handle used to cancel it on disconnect.
	"""

	def __init__(
		self,
		context: SessionContext,
		sender: EventSender,
		services: RelayServices,
		*,
		timeout: Optional[float] = 30.0,
		text_message_tts: bool = True,
		pcm_sample_rate: int = 16000,
		audio_format: str = "wav",
	) -> None:
		self.context = context
		self.sender = sender
		self.services = services
		self.timeout = timeout
		self.text_message_tts = text_message_tts
		self.pcm_sample_rate = pcm_sample_rate
		self.audio_format = audio_format

	async def submit_transcript(self, transcript: str) -> bool:
		"""Answer a finalized streaming transcription turn."""
		return await self._submit(TRANSCRIPT_KIND, text=transcript, synthesize=True)

	async def submit_text(self, text: str) -> bool:
		"""Answer a text message typed by the user."""
		return await self._submit(TEXT_KIND, text=text, synthesize=self.text_message_tts)

	async def submit_audio(self, audio: bytes, mime_type: str = "audio/wav") -> bool:
		"""Transcribe a complete recording, then answer it."""
		return await self._submit(FULL_AUDIO_KIND, audio=audio, mime_type=mime_type, synthesize=True)

	async def reject_if_busy(self, kind: str) -> bool:
		"""Answer `busy` and return True when a request is already in flight."""
		if not self.context.is_processing:
			return False
		await self._reject_busy(kind)
		return True

	async def _reject_busy(self, kind: str) -> None:
		LOGGER.info("[%s] Rejecting %s request: session busy", self.context.session_id, kind)
		await self.sender.send_error("busy", "Still processing previous request")

	async def _submit(
		self,
		kind: str,
		*,
		text: Optional[str] = None,
		audio: Optional[bytes] = None,
		mime_type: str = "audio/wav",
		synthesize: bool = True,
	) -> bool:
		context = self.context
		if not context.try_begin_processing():
			await self._reject_busy(kind)
			return False

		image = context.image
		context.active_task = asyncio.create_task(
			self._process(kind, image, text=text, audio=audio, mime_type=mime_type, synthesize=synthesize)
		)
		return True

	async def _process(
		self,
		kind: str,
		image: Optional[bytes],
		*,
		text: Optional[str],
		audio: Optional[bytes],
		mime_type: str,
		synthesize: bool,
	) -> None:
		session_id = self.context.session_id
		try:
			if audio is not None:
				text = await self._transcribe(audio, mime_type)
				if not text:
					await self.sender.send_error(kind, "No speech detected in audio")
					return
				LOGGER.info("[%s] Transcribed full audio: %s", session_id, text)

			response_text = await self._call(self.services.assistant.respond(image, text or ""))
			LOGGER.info("[%s] AI response: %s", session_id, response_text)

			if not synthesize:
				await self.sender.send("ai_text_response", {"text": response_text, "timestamp": now_ms()})
				return

			response_audio = await self._call(self.services.speech.synthesize(response_text))
			await self.sender.send(
				"ai_response",
				{
					"text": response_text,
					"audio": base64.b64encode(response_audio).decode("ascii"),
					"audio_format": self.audio_format,
					"timestamp": now_ms(),
				},
			)
		except asyncio.TimeoutError:
			LOGGER.error("[%s] Upstream call timed out after %ss (%s)", session_id, self.timeout, kind)
			await self.sender.send_error("timeout", "The AI service took too long to respond")
		except asyncio.CancelledError:
			LOGGER.info("[%s] %s request cancelled", session_id, kind)
			raise
		except Exception as exc:
			LOGGER.error("[%s] Error in %s: %s", session_id, kind, exc, exc_info=True)
			await self.sender.send_error(kind, FAILURE_MESSAGES[kind])
		finally:
			self.context.finish_processing()

	async def _transcribe(self, audio: bytes, mime_type: str) -> str:
		filename = audio_filename_for_mime(mime_type)
		if is_raw_pcm(mime_type):
			audio = pcm16_to_wav(audio, sample_rate=self.pcm_sample_rate)
		return await self._call(self.services.dictation.transcribe(audio, filename=filename))

	async def _call(self, awaitable: Awaitable[T]) -> T:
		if self.timeout is None:
			return await awaitable
		return await asyncio.wait_for(awaitable, timeout=self.timeout)

	async def cancel(self) -> None:
		"""Cancel the in-flight request, if any, and wait for it to unwind."""
		task = self.context.active_task
		if task is None or task.done():
			return
		task.cancel()
		await asyncio.gather(task, return_exceptions=True)
		# a task cancelled before it started never reaches its finally block
		self.context.finish_processing()
