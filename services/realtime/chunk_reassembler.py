"""Reassemble incrementally uploaded images."""

from __future__ import annotations

from typing import Optional

from models.session_models import ImageChunk, SessionContext


class ImageUploadError(ValueError):
	"""Raised when an image chunk cannot be accepted."""


class ChunkSequenceError(ImageUploadError):
	"""Raised when a numbered chunk arrives out of order."""


class ImageTooLargeError(ImageUploadError):
	"""Raised when an upload grows beyond the configured limit."""


class ChunkReassembler:
	"""Fold ordered image chunks into the session's current image."""

	def __init__(self, max_image_bytes: int = 10_000_000) -> None:
		self.max_image_bytes = max_image_bytes

	def append(self, context: SessionContext, chunk: ImageChunk) -> Optional[bytes]:
		"""Buffer a chunk and return the full image once the terminal chunk arrives.

		A rejected chunk discards the partial upload so the next one starts
		from sequence number 0.
		"""
		if chunk.seq is not None and chunk.seq != context.next_chunk_seq:
			expected = context.next_chunk_seq
			context.reset_image_upload()
			raise ChunkSequenceError(f"Expected image chunk {expected}, received {chunk.seq}")

		if context.pending_image_bytes + len(chunk.data) > self.max_image_bytes:
			context.reset_image_upload()
			raise ImageTooLargeError(f"Image exceeds the {self.max_image_bytes} byte limit")

		context.pending_image_chunks.append(chunk.data)
		context.next_chunk_seq += 1
		if not chunk.is_last:
			return None

		image = b"".join(context.pending_image_chunks)
		context.image = image
		context.reset_image_upload()
		return image
