"""Serialize outbound relay events onto a websocket."""

from __future__ import annotations

import json
import logging
import time
from typing import Any

from fastapi import WebSocket
from starlette.websockets import WebSocketDisconnect, WebSocketState

LOGGER = logging.getLogger(__name__)


def now_ms() -> int:
	return int(time.time() * 1000)


class EventSender:
	"""Send `{"event": name, "data": payload}` frames to one client.

	Once the client is gone every further event is dropped quietly; late
	results from upstream calls end up here after a disconnect.
	"""

	def __init__(self, websocket: WebSocket, session_id: str) -> None:
		self.websocket = websocket
		self.session_id = session_id
		self.closed = False

	def mark_closed(self) -> None:
		self.closed = True

	async def send(self, event: str, data: Any = None) -> bool:
		"""Send one event; return False if it was dropped."""
		if self.closed or getattr(self.websocket, "application_state", None) == WebSocketState.DISCONNECTED:
			LOGGER.debug("[%s] Dropping %s event for closed socket", self.session_id, event)
			return False
		try:
			await self.websocket.send_text(json.dumps({"event": event, "data": data}))
		except (WebSocketDisconnect, RuntimeError, OSError) as exc:
			self.closed = True
			LOGGER.debug("[%s] Dropping %s event: %s", self.session_id, event, exc)
			return False
		return True

	async def send_error(self, error_type: str, message: str) -> bool:
		return await self.send("error", {"type": error_type, "message": message})
