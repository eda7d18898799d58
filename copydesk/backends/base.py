"""Protocols for the external extraction and generation backends."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable


@dataclass
class ExtractionResult:
    """Text pulled from a web page or video, with optional metadata."""

    text: str
    title: str | None = None
    author: str | None = None


@runtime_checkable
class ContentExtractor(Protocol):
    """Turns a URL (article or video) into text."""

    name: str

    async def extract(self, url: str) -> ExtractionResult:
        """Fetch and extract the content behind ``url``.

        Raises IngestionError with a descriptive message on failure.
        """
        ...


@runtime_checkable
class DocumentExtractor(Protocol):
    """Turns an uploaded document payload into text."""

    name: str

    async def extract_document(self, payload: str, filename: str) -> str:
        """Extract the text of a base64-encoded document."""
        ...


@runtime_checkable
class TextGenerator(Protocol):
    """Interface that all generative text backends must implement."""

    name: str

    async def complete(self, prompt: str, json_output: bool = False) -> str:
        """Return the completion for a fully assembled prompt.

        Raises GenerationError when the backend fails.
        """
        ...
