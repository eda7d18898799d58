"""Claude generation backend — Anthropic API via httpx."""

from __future__ import annotations

import logging

import httpx

from copydesk.config import settings
from copydesk.errors import BackendConfigError, GenerationError

logger = logging.getLogger(__name__)

ANTHROPIC_API_URL = "https://api.anthropic.com/v1/messages"

JSON_SYSTEM_PROMPT = """\
Respond with a single valid JSON object and nothing else. \
No markdown fences, no commentary before or after the object.\
"""


class ClaudeBackend:
    """Text generator using Anthropic's Claude API."""

    name: str = "Claude"

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        timeout: float | None = None,
    ) -> None:
        self.api_key = api_key or settings.anthropic_api_key
        self.model = model or settings.claude_model
        self.timeout = timeout or settings.generation_timeout

    async def complete(self, prompt: str, json_output: bool = False) -> str:
        """Send the prompt as a single user message and return the text block."""
        if not self.api_key:
            raise BackendConfigError("Anthropic API key not configured (COPYDESK_ANTHROPIC_API_KEY)")

        body: dict = {
            "model": self.model,
            "max_tokens": 8192,
            "messages": [{"role": "user", "content": prompt}],
        }
        if json_output:
            body["system"] = JSON_SYSTEM_PROMPT

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    ANTHROPIC_API_URL,
                    headers={
                        "x-api-key": self.api_key,
                        "anthropic-version": "2023-06-01",
                        "content-type": "application/json",
                    },
                    json=body,
                )
                response.raise_for_status()
        except httpx.HTTPError as exc:
            raise GenerationError(f"Claude request failed: {exc}") from exc

        data = response.json()
        for block in data.get("content", []):
            if block.get("type") == "text":
                return block["text"]
        logger.warning("Claude response had no text block (stop_reason=%s)", data.get("stop_reason"))
        return ""
