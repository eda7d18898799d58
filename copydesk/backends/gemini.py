"""Gemini backend — text generation and PDF vision extraction via httpx."""

from __future__ import annotations

import logging

import httpx

from copydesk.config import settings
from copydesk.errors import BackendConfigError, GenerationError, IngestionError

logger = logging.getLogger(__name__)

GEMINI_API_URL = "https://generativelanguage.googleapis.com/v1beta/models"

PDF_EXTRACTION_PROMPT = """\
Extract the full text content of this PDF document ({filename}).

Preserve:
- Every number, percentage, date and dollar figure exactly as written
- Headings and section order
- Tables, rendered as plain-text rows
- Quotes verbatim, with the speaker when named

Do not summarize, interpret or add commentary. Return only the document text.\
"""


def split_data_url(payload: str) -> tuple[str, str]:
    """Split a ``data:<mime>;base64,<data>`` URL into (mime, data).

    Bare base64 payloads are assumed to be PDFs.
    """
    if payload.startswith("data:") and "," in payload:
        header, data = payload.split(",", 1)
        mime = header[len("data:"):].split(";", 1)[0] or "application/pdf"
        return mime, data
    return "application/pdf", payload


class GeminiBackend:
    """Generation and document backend using Google's Gemini API."""

    name: str = "Gemini"

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        vision_model: str | None = None,
        timeout: float | None = None,
    ) -> None:
        self.api_key = api_key or settings.google_api_key
        self.model = model or settings.gemini_model
        self.vision_model = vision_model or settings.gemini_vision_model
        self.timeout = timeout or settings.generation_timeout

    async def complete(self, prompt: str, json_output: bool = False) -> str:
        """Generate a completion; JSON mode sets the response MIME type."""
        body: dict = {"contents": [{"role": "user", "parts": [{"text": prompt}]}]}
        if json_output:
            body["generationConfig"] = {"responseMimeType": "application/json"}
        try:
            data = await self._generate(self.model, body)
        except httpx.HTTPError as exc:
            raise GenerationError(f"Gemini request failed: {exc}") from exc
        return self._extract_text(data)

    async def extract_document(self, payload: str, filename: str) -> str:
        """Read a PDF with the vision model and return its text."""
        mime, data = split_data_url(payload)
        body = {
            "contents": [
                {
                    "role": "user",
                    "parts": [
                        {"inline_data": {"mime_type": mime, "data": data}},
                        {"text": PDF_EXTRACTION_PROMPT.format(filename=filename)},
                    ],
                }
            ]
        }
        logger.info("Extracting %s via Gemini vision (%d bytes base64)", filename, len(data))
        try:
            result = await self._generate(self.vision_model, body)
        except httpx.HTTPError as exc:
            raise IngestionError(f"PDF extraction failed for {filename}: {exc}") from exc
        except GenerationError as exc:
            raise IngestionError(f"PDF extraction failed for {filename}: {exc}") from exc

        text = self._extract_text(result)
        if not text.strip():
            raise IngestionError(f"No text extracted from {filename}")
        return text

    async def _generate(self, model: str, body: dict) -> dict:
        if not self.api_key:
            raise BackendConfigError("Google API key not configured (COPYDESK_GOOGLE_API_KEY)")

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.post(
                f"{GEMINI_API_URL}/{model}:generateContent",
                headers={
                    "Content-Type": "application/json",
                    "x-goog-api-key": self.api_key,
                },
                json=body,
            )
            response.raise_for_status()
        return response.json()

    def _extract_text(self, data: dict) -> str:
        """Concatenate the text parts of the first candidate."""
        candidates = data.get("candidates") or []
        if not candidates:
            feedback = data.get("promptFeedback", {})
            raise GenerationError(
                f"Gemini returned no candidates (blockReason={feedback.get('blockReason', 'unknown')})"
            )
        parts = (candidates[0].get("content") or {}).get("parts") or []
        return "".join(p.get("text", "") for p in parts)
