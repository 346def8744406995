"""Simple in-memory registry of live relay sessions."""

from __future__ import annotations

from typing import Dict
from uuid import uuid4

from models.session_models import SessionContext


class SessionStore:
	"""Track the session context of every connected device."""

	def __init__(self) -> None:
		self._sessions: Dict[str, SessionContext] = {}

	def create(self) -> SessionContext:
		"""Register a new session with a fresh id."""
		session_id = uuid4().hex
		context = SessionContext(session_id=session_id)
		self._sessions[session_id] = context
		return context

	def remove(self, session_id: str) -> None:
		"""Forget a session; unknown ids are ignored."""
		self._sessions.pop(session_id, None)

	def count(self) -> int:
		return len(self._sessions)
