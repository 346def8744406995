"""Utilities to build multimodal input payloads for the Responses API."""

import base64
from typing import Any, Dict, List, Optional

from utils.media_validation import detect_image_mime


def to_image_data_url(image_bytes: bytes) -> str:
    """Convert raw image bytes into a data URL suitable for vision input."""
    encoded = base64.b64encode(image_bytes).decode("utf-8")
    return f"data:{detect_image_mime(image_bytes)};base64,{encoded}"


def build_user_content(text: str, image_bytes: Optional[bytes]) -> List[Dict[str, Any]]:
    """Compose the user turn: the spoken or typed text, then the image if one is held."""
    content: List[Dict[str, Any]] = [{"type": "input_text", "text": text}]
    if image_bytes:
        content.append({"type": "input_image", "image_url": to_image_data_url(image_bytes)})
    return content


def build_inputs(system_prompt: str, text: str, image_bytes: Optional[bytes]) -> List[Dict[str, Any]]:
    """Build the Responses API input array for one assistant request."""
    return [
        {
            "type": "message",
            "role": "system",
            "content": [{"type": "input_text", "text": system_prompt}],
        },
        {"type": "message", "role": "user", "content": build_user_content(text, image_bytes)},
    ]
