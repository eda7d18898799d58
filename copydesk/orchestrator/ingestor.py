"""Ingestor — turns raw source references into text, concurrently."""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
from dataclasses import replace
from typing import Any, Awaitable, Callable

from copydesk.backends.base import ContentExtractor, DocumentExtractor
from copydesk.config import settings
from copydesk.models.source import SourceMaterial, SourceStatus, SourceType

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str, SourceStatus], "Awaitable[Any] | None"]
ResultCallback = Callable[[SourceMaterial], "Awaitable[Any] | None"]


def with_metadata(text: str, title: str | None, author: str | None) -> str:
    """Prefix extracted text with a TITLE/AUTHOR block when a title is known."""
    if not title:
        return text
    header = f"TITLE: {title}\n"
    if author:
        header += f"AUTHOR: {author}\n"
    return f"{header}\n---\n\n{text}"


class Ingestor:
    """Dispatches each source to exactly one extraction backend by type."""

    def __init__(
        self,
        extractor: ContentExtractor,
        document_extractor: DocumentExtractor,
        timeout: float | None = None,
    ) -> None:
        self.extractor = extractor
        self.document_extractor = document_extractor
        self.timeout = timeout or settings.ingestion_timeout

    async def ingest(self, source: SourceMaterial) -> SourceMaterial:
        """Ingest one source. Failures come back as ``error`` records, never raised."""
        try:
            content = await asyncio.wait_for(self._extract(source), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning("Ingestion of %s timed out after %ss", source.source, self.timeout)
            return replace(
                source,
                status=SourceStatus.ERROR,
                content=f"Error: Extraction timed out after {self.timeout:g} seconds",
            )
        except Exception as exc:
            logger.warning("Failed to ingest source %s: %s", source.source, exc)
            return replace(source, status=SourceStatus.ERROR, content=f"Error: {exc}")

        return replace(
            source,
            content=content,
            status=SourceStatus.READY,
            extracted_at=int(time.time() * 1000),
        )

    async def _extract(self, source: SourceMaterial) -> str:
        if source.type in (SourceType.URL, SourceType.VIDEO):
            logger.info("Ingesting %s via %s", source.source, self.extractor.name)
            result = await self.extractor.extract(source.source)
            if not result.text.strip():
                raise ValueError("No content extracted from the URL.")
            return with_metadata(result.text, result.title, result.author)

        if source.type is SourceType.PDF:
            logger.info("Extracting PDF %s via %s", source.source, self.document_extractor.name)
            return await self.document_extractor.extract_document(source.content, source.source)

        # text and file sources are already readable
        return source.content

    async def ingest_all(
        self,
        sources: list[SourceMaterial],
        on_progress: ProgressCallback | None = None,
        on_result: ResultCallback | None = None,
    ) -> list[SourceMaterial]:
        """Ingest every source concurrently; results keep the input order.

        ``on_result`` receives each finished record before its terminal
        progress event.
        """

        async def _run(source: SourceMaterial) -> SourceMaterial:
            await self._notify(on_progress, source.id, source.id, SourceStatus.PROCESSING)
            result = await self.ingest(source)
            await self._notify(on_result, source.id, result)
            await self._notify(on_progress, source.id, source.id, result.status)
            return result

        results = await asyncio.gather(*[_run(s) for s in sources])
        failed = sum(1 for r in results if r.status is SourceStatus.ERROR)
        logger.info("Ingested %d sources (%d failed)", len(results), failed)
        return list(results)

    async def _notify(self, callback: Callable | None, source_id: str, *args: Any) -> None:
        if callback is None:
            return
        try:
            outcome = callback(*args)
            if inspect.isawaitable(outcome):
                await outcome
        except Exception:
            logger.exception("Ingestion callback failed for %s", source_id)
