"""Description: Vision and text answers using OpenAI's Responses API."""

import logging
import time
from typing import Any, Dict, List, Optional

from openai import AsyncOpenAI

from services.openai.assistant_prompts import build_system_prompt
from services.openai.media_inputs import build_inputs
from services.openai.response_parser import extract_text, extract_usage

DEFAULT_MODEL = "gpt-4o-mini"


class AssistantService:
    """Answer a user's text, optionally grounded in the session's current image."""

    def __init__(self, client: AsyncOpenAI, model: str = DEFAULT_MODEL) -> None:
        """Initialize the service with an OpenAI async client."""
        if client is None:
            raise ValueError("OpenAI client must be provided.")
        self.client = client
        self.model = model
        self.system_prompt = build_system_prompt()

    async def respond(self, image_bytes: Optional[bytes], text: str) -> str:
        """Return the model's answer to `text`, looking at `image_bytes` when present."""
        start_time = time.time()
        inputs = build_inputs(self.system_prompt, text, image_bytes)
        response = await self._create_response(inputs)

        answer = extract_text(response).strip()
        if not answer:
            logging.error("Empty assistant output received from OpenAI: %r", response)
            raise RuntimeError("Assistant response did not include text.")

        usage = extract_usage(response)
        logging.info(
            "Assistant latency %.3fs (image=%s, input_tokens=%s, output_tokens=%s)",
            time.time() - start_time,
            bool(image_bytes),
            usage["input_tokens"],
            usage["output_tokens"],
        )
        return answer

    async def _create_response(self, inputs: List[Dict[str, Any]]) -> Any:
        """Send the multimodal request to the OpenAI Responses API."""
        try:
            return await self.client.responses.create(model=self.model, input=inputs)
        except Exception as exc:
            logging.error("Error during OpenAI Responses API call: %s", exc)
            raise

# end of AssistantService
