"""Streaming speech-to-text over the OpenAI Realtime transcription API."""

from __future__ import annotations

import asyncio
import base64
import json
import logging
from typing import Any, Awaitable, Callable, Dict, Optional

import websockets

LOGGER = logging.getLogger(__name__)

OpenCallback = Callable[[str], Awaitable[None]]
TurnCallback = Callable[[str], Awaitable[None]]
ErrorCallback = Callable[[str], Awaitable[None]]
CloseCallback = Callable[[Optional[int], str], Awaitable[None]]

REALTIME_URL = "wss://api.openai.com/v1/realtime"

TURN_DETECTION: Dict[str, Any] = {
	"type": "server_vad",
	"threshold": 0.5,
	"prefix_padding_ms": 300,
	"silence_duration_ms": 500,
}


class RealtimeTranscriber:
	"""One upstream transcription session, fed raw PCM16 audio chunks.

	Upstream events are surfaced through async callbacks:
		on_open(session_id): the transcription session is ready.
		on_turn(transcript): a finalized turn was transcribed.
		on_error(message): the upstream reported an error.
		on_close(code, reason): the upstream connection ended.
	"""

	def __init__(
		self,
		api_key: str,
		*,
		url: str = REALTIME_URL,
		model: str = "gpt-4o-transcribe",
		on_open: Optional[OpenCallback] = None,
		on_turn: Optional[TurnCallback] = None,
		on_error: Optional[ErrorCallback] = None,
		on_close: Optional[CloseCallback] = None,
	) -> None:
		if not api_key:
			raise ValueError("A speech-to-text API key is required.")
		self.api_key = api_key
		self.url = url
		self.model = model
		self.on_open = on_open
		self.on_turn = on_turn
		self.on_error = on_error
		self.on_close = on_close
		self.ws = None
		self.session_id: Optional[str] = None
		self._receive_task: Optional[asyncio.Task] = None

	@property
	def is_open(self) -> bool:
		return self.ws is not None and self._receive_task is not None and not self._receive_task.done()

	async def connect(self) -> None:
		"""Open the upstream socket, configure the session and start receiving."""
		headers = {
			"Authorization": f"Bearer {self.api_key}",
			"OpenAI-Beta": "realtime=v1",
		}
		self.ws = await websockets.connect(f"{self.url}?intent=transcription", additional_headers=headers)
		await self.send_event(
			{
				"type": "transcription_session.update",
				"session": {
					"input_audio_format": "pcm16",
					"input_audio_transcription": {"model": self.model},
					"turn_detection": TURN_DETECTION,
				},
			}
		)
		self._receive_task = asyncio.create_task(self.receive_loop())

	async def send_event(self, event: Dict[str, Any]) -> None:
		if self.ws is None:
			raise RuntimeError("Transcription stream is not connected.")
		await self.ws.send(json.dumps(event))

	async def send_audio(self, audio_bytes: bytes) -> None:
		"""Append raw PCM16 audio to the upstream input buffer."""
		await self.send_event(
			{
				"type": "input_audio_buffer.append",
				"audio": base64.b64encode(audio_bytes).decode("utf-8"),
			}
		)

	async def receive_loop(self) -> None:
		"""Read upstream events until the connection ends."""
		try:
			async for message in self.ws:
				try:
					data = json.loads(message)
				except ValueError:
					LOGGER.warning("Skipping non-JSON transcription frame")
					continue
				if not isinstance(data, dict):
					LOGGER.warning("Skipping transcription frame that is not an object")
					continue
				await self._handle_event(data)
		except websockets.exceptions.ConnectionClosedError as exc:
			LOGGER.warning("Transcription connection closed with error: %s", exc)
		except Exception as exc:
			LOGGER.error("Error in transcription receive loop: %s", exc, exc_info=True)
			await self._notify(self.on_error, str(exc))
		await self._notify(self.on_close, getattr(self.ws, "close_code", None), getattr(self.ws, "close_reason", "") or "")

	async def _handle_event(self, data: Dict[str, Any]) -> None:
		event_type = data.get("type")
		if event_type == "transcription_session.created":
			self.session_id = (data.get("session") or {}).get("id")
			await self._notify(self.on_open, self.session_id or "")
		elif event_type == "conversation.item.input_audio_transcription.completed":
			await self._notify(self.on_turn, data.get("transcript") or "")
		elif event_type == "error":
			error = data.get("error") or {}
			await self._notify(self.on_error, error.get("message") or "Unknown transcription error")
		else:
			LOGGER.debug("Transcription event: %s", event_type)

	async def _notify(self, callback: Optional[Callable[..., Awaitable[None]]], *args: Any) -> None:
		if callback is None:
			return
		try:
			await callback(*args)
		except Exception:
			LOGGER.exception("Transcription callback %s failed", getattr(callback, "__name__", callback))

	async def close(self) -> None:
		"""Close the upstream socket and wait for the receive loop to finish."""
		if self.ws is not None:
			await self.ws.close()
		task = self._receive_task
		if task is not None and not task.done():
			task.cancel()
			await asyncio.gather(task, return_exceptions=True)
