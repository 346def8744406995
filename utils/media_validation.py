"""Validation helpers for uploaded multimedia content."""

import base64
import binascii
import io
import logging
from typing import Any

from PIL import Image, UnidentifiedImageError

LOGGER = logging.getLogger(__name__)

DEFAULT_IMAGE_MIME = "image/png"

RAW_PCM_TYPES = {"audio/pcm", "audio/l16", "audio/raw"}

AUDIO_EXTENSIONS = {
    "audio/webm": "webm",
    "audio/wav": "wav",
    "audio/x-wav": "wav",
    "audio/wave": "wav",
    "audio/mpeg": "mp3",
    "audio/mp3": "mp3",
    "audio/mp4": "mp4",
    "audio/aac": "m4a",
    "audio/ogg": "oga",
    "audio/opus": "ogg",
    "audio/flac": "flac",
    "audio/x-flac": "flac",
}


def normalize_mime(mime_type: str) -> str:
    """Lowercase a MIME type and strip parameters such as ';codecs=opus'."""
    return (mime_type or "").lower().split(";", 1)[0].strip()


def is_raw_pcm(mime_type: str) -> bool:
    return normalize_mime(mime_type) in RAW_PCM_TYPES


def audio_filename_for_mime(mime_type: str) -> str:
    """Return an upload filename whose extension matches the audio MIME type.

    Raw PCM is wrapped into WAV before upload, so it maps to a `.wav` name.
    Unknown types raise ValueError so callers can report the error instead of
    sending an unsupported format upstream.
    """
    mime = normalize_mime(mime_type)
    if mime in RAW_PCM_TYPES:
        return "audio.wav"
    if mime in AUDIO_EXTENSIONS:
        return f"audio.{AUDIO_EXTENSIONS[mime]}"
    raise ValueError(f"Unsupported or unknown audio MIME type: '{mime_type}'")


def decode_binary_payload(value: Any) -> bytes:
    """Return raw bytes from a JSON-carried binary payload.

    Accepted shapes:
      - a base64 string
      - a list of byte values (0-255)
      - a serialized Node Buffer: {"type": "Buffer", "data": [...]}
      - bytes / bytearray (already decoded)
    """
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if isinstance(value, dict) and value.get("type") == "Buffer":
        value = value.get("data")
    if isinstance(value, list):
        try:
            return bytes(value)
        except (TypeError, ValueError) as exc:
            raise ValueError("Byte arrays must contain integers between 0 and 255.") from exc
    if isinstance(value, str):
        try:
            return base64.b64decode(value, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise ValueError("Binary payload is not valid base64.") from exc
    raise ValueError(f"Unsupported binary payload of type {type(value).__name__}.")


def detect_image_mime(image_bytes: bytes) -> str:
    """Sniff the image format with Pillow and return its MIME type.

    Falls back to image/png when the bytes cannot be identified; the
    vision model is left to reject truly malformed images.
    """
    try:
        with Image.open(io.BytesIO(image_bytes)) as image:
            image_format = image.format
    except (UnidentifiedImageError, OSError) as exc:
        LOGGER.warning("Could not identify uploaded image format: %s", exc)
        return DEFAULT_IMAGE_MIME
    return Image.MIME.get(image_format or "", DEFAULT_IMAGE_MIME)
