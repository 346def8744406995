"""Session domain models for realtime relay connections."""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional


class SessionPhase(str, Enum):
	"""Lifecycle of a connection: idle and processing loop until closed."""

	IDLE = "idle"
	PROCESSING = "processing"
	CLOSED = "closed"


@dataclass
class ImageChunk:
	"""One fragment of an incrementally uploaded image."""

	data: bytes
	is_last: bool = False
	seq: Optional[int] = None


@dataclass
class SessionContext:
	"""Mutable per-connection state shared by every event handler."""

	session_id: str
	image: Optional[bytes] = None
	pending_image_chunks: List[bytes] = field(default_factory=list)
	next_chunk_seq: int = 0
	phase: SessionPhase = SessionPhase.IDLE
	transcriber: Any = None
	stt_session_id: Optional[str] = None
	active_task: Optional[asyncio.Task] = None
	connected_at: float = field(default_factory=lambda: time.time())

	@property
	def is_processing(self) -> bool:
		return self.phase is SessionPhase.PROCESSING

	@property
	def closed(self) -> bool:
		return self.phase is SessionPhase.CLOSED

	@property
	def pending_image_bytes(self) -> int:
		return sum(len(chunk) for chunk in self.pending_image_chunks)

	def try_begin_processing(self) -> bool:
		"""Move from idle to processing; return False if that is not possible.

		Contains no await, so on the event loop the check and the transition
		cannot interleave with another handler.
		"""
		if self.phase is not SessionPhase.IDLE:
			return False
		self.phase = SessionPhase.PROCESSING
		return True

	def finish_processing(self) -> None:
		if self.phase is SessionPhase.PROCESSING:
			self.phase = SessionPhase.IDLE
		self.active_task = None

	def reset_image_upload(self) -> None:
		self.pending_image_chunks = []
		self.next_chunk_seq = 0

	def clear_image(self) -> None:
		self.image = None
		self.reset_image_upload()

	def close(self) -> None:
		"""Mark the session closed and drop buffered media."""
		self.phase = SessionPhase.CLOSED
		self.clear_image()
