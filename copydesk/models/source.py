"""Source material data model."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class SourceType(Enum):
    URL = "url"
    PDF = "pdf"
    TEXT = "text"
    VIDEO = "video"
    FILE = "file"


class SourceStatus(Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    READY = "ready"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (SourceStatus.READY, SourceStatus.ERROR)


@dataclass
class SourceMaterial:
    """A raw input added by the user, tracked through ingestion.

    ``source`` is the origin identifier: the URL, or the filename for
    uploads. ``content`` holds the raw payload before ingestion and the
    extracted text afterwards.
    """

    id: str
    type: SourceType
    content: str
    source: str
    status: SourceStatus = SourceStatus.PENDING
    extracted_at: int | None = None

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "type": self.type.value,
            "content": self.content,
            "source": self.source,
            "status": self.status.value,
        }
        if self.extracted_at is not None:
            data["extractedAt"] = self.extracted_at
        return data

    @classmethod
    def from_dict(cls, data: dict) -> SourceMaterial:
        return cls(
            id=data["id"],
            type=SourceType(data["type"]),
            content=data.get("content", ""),
            source=data.get("source", ""),
            status=SourceStatus(data.get("status", "pending")),
            extracted_at=data.get("extractedAt"),
        )
