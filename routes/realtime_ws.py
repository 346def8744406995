"""WebSocket endpoint relaying device audio, images and text to the AI services."""

from __future__ import annotations

import json
import logging

from fastapi import APIRouter, Depends, HTTPException, WebSocket
from starlette.websockets import WebSocketDisconnect

from services.realtime.event_sender import EventSender
from services.realtime.session_store import SessionStore
from services.realtime.ws_session import RealtimeSessionHandler

LOGGER = logging.getLogger(__name__)

router = APIRouter()


def _require_session_store(websocket: WebSocket) -> SessionStore:
	store = getattr(websocket.app.state, "session_store", None)
	if store is None:
		raise HTTPException(status_code=500, detail="Session store unavailable")
	return store


@router.websocket("/ws")
async def realtime_socket(websocket: WebSocket, store: SessionStore = Depends(_require_session_store)):
	"""Run one device session: JSON events as text frames, raw audio as binary frames."""
	await websocket.accept()
	state = websocket.app.state
	context = store.create()
	sender = EventSender(websocket, context.session_id)
	handler = RealtimeSessionHandler(
		context,
		sender,
		state.relay_services,
		state.settings,
		transcriber_factory=state.transcriber_factory,
	)
	LOGGER.info("[%s] Device connected", context.session_id)

	try:
		await handler.start()
		while True:
			try:
				message = await websocket.receive()
			except WebSocketDisconnect:
				break
			if message.get("type") == "websocket.disconnect":
				break
			if message.get("bytes") is not None:
				await handler.handle_audio_chunk(message["bytes"])
				continue
			raw = message.get("text")
			if raw is None:
				continue
			try:
				payload = json.loads(raw)
			except ValueError:
				await sender.send_error("invalid_message", "Payload must be JSON")
				continue
			await handler.handle(payload)
	finally:
		LOGGER.info("[%s] Device disconnected", context.session_id)
		await handler.shutdown()
		store.remove(context.session_id)
