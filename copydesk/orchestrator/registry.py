"""Session-owned registry of source materials and their ingestion status."""

from __future__ import annotations

import itertools
import time
from dataclasses import replace
from urllib.parse import urlparse

from copydesk.errors import InvalidTransitionError
from copydesk.models.source import SourceMaterial, SourceStatus, SourceType

VIDEO_HOSTS = ("youtube.com", "youtu.be", "vimeo.com")

_ALLOWED: dict[SourceStatus, set[SourceStatus]] = {
    SourceStatus.PENDING: {SourceStatus.PROCESSING},
    SourceStatus.PROCESSING: {SourceStatus.READY, SourceStatus.ERROR},
    SourceStatus.READY: set(),
    SourceStatus.ERROR: {SourceStatus.PENDING},
}

_counter = itertools.count(1)


def generate_source_id() -> str:
    return f"source-{int(time.time() * 1000)}-{next(_counter)}"


def detect_source_type(url: str) -> SourceType:
    host = urlparse(url).netloc.lower()
    if any(host == h or host.endswith("." + h) for h in VIDEO_HOSTS):
        return SourceType.VIDEO
    return SourceType.URL


class SourceRegistry:
    """Ordered list of one session's sources, keyed by id."""

    def __init__(
        self,
        sources: list[SourceMaterial] | None = None,
        payloads: dict[str, str] | None = None,
    ) -> None:
        self._sources: dict[str, SourceMaterial] = {}
        # raw payloads as added; ingestion overwrites content with the text or error
        self._payloads: dict[str, str] = {}
        self.replace_all(sources, payloads)

    def __len__(self) -> int:
        return len(self._sources)

    def __iter__(self):
        return iter(list(self._sources.values()))

    def get(self, source_id: str) -> SourceMaterial:
        return self._sources[source_id]

    # -- Adding --

    def add(self, type: SourceType, content: str, source: str) -> SourceMaterial:
        material = SourceMaterial(
            id=generate_source_id(), type=type, content=content, source=source
        )
        self._sources[material.id] = material
        self._payloads[material.id] = content
        return material

    def add_url(self, url: str) -> SourceMaterial:
        url = url.strip()
        return self.add(detect_source_type(url), url, url)

    def add_text(self, text: str, label: str = "Manual notes") -> SourceMaterial:
        return self.add(SourceType.TEXT, text, label)

    def add_file(self, filename: str, payload: str) -> SourceMaterial:
        """Register an upload; PDFs carry a base64 data URL, other files their text."""
        kind = SourceType.PDF if filename.lower().endswith(".pdf") else SourceType.FILE
        return self.add(kind, payload, filename)

    def remove(self, source_id: str) -> None:
        self._sources.pop(source_id, None)
        self._payloads.pop(source_id, None)

    def replace_all(
        self,
        sources: list[SourceMaterial] | None = None,
        payloads: dict[str, str] | None = None,
    ) -> None:
        self._sources = {s.id: s for s in sources or []}
        self._payloads = {
            s.id: s.content for s in self._sources.values() if s.status is SourceStatus.PENDING
        }
        self._payloads.update(payloads or {})

    def payload(self, source_id: str) -> str:
        return self._payloads.get(source_id, self._sources[source_id].source)

    # -- Status --

    def mark(self, source_id: str, status: SourceStatus) -> SourceMaterial:
        current = self._sources[source_id]
        if status is current.status:
            return current
        if status not in _ALLOWED[current.status]:
            raise InvalidTransitionError(
                f"Source {source_id}: cannot go from {current.status.value} to {status.value}"
            )
        updated = replace(current, status=status)
        self._sources[source_id] = updated
        return updated

    def apply(self, result: SourceMaterial) -> SourceMaterial:
        """Store an ingestion result, moving through ``processing`` if needed."""
        if result.id not in self._sources:
            raise KeyError(result.id)
        if self._sources[result.id].status is SourceStatus.PENDING:
            self.mark(result.id, SourceStatus.PROCESSING)
        self.mark(result.id, result.status)
        self._sources[result.id] = result
        return result

    def retry_failed(self) -> list[SourceMaterial]:
        """Reset failed sources to pending and return them for re-ingestion.

        The error message in ``content`` is replaced by the payload the
        source was added with (the origin URL when that is unknown).
        """
        retried = []
        for source in list(self._sources.values()):
            if source.status is not SourceStatus.ERROR:
                continue
            self.mark(source.id, SourceStatus.PENDING)
            content = self.payload(source.id)
            reset = replace(self._sources[source.id], content=content)
            self._sources[source.id] = reset
            retried.append(reset)
        return retried

    def pending(self) -> list[SourceMaterial]:
        return [s for s in self._sources.values() if s.status is SourceStatus.PENDING]

    def ready(self) -> list[SourceMaterial]:
        return [s for s in self._sources.values() if s.status is SourceStatus.READY]

    def failed(self) -> list[SourceMaterial]:
        return [s for s in self._sources.values() if s.status is SourceStatus.ERROR]

    @property
    def settled(self) -> bool:
        return all(s.status.is_terminal for s in self._sources.values())
