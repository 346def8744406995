"""Payload models for inbound websocket events."""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class ImageChunkPayload(BaseModel):
	model_config = ConfigDict(populate_by_name=True)

	chunk: Any
	is_last: bool = Field(default=False, alias="isLast")
	seq: Optional[int] = Field(default=None, ge=0)


class TextMessagePayload(BaseModel):
	text: str = ""


class AudioPayload(BaseModel):
	audio: Any
	mime_type: str = "audio/wav"
