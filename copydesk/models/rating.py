"""Rating records and the learning context built from them."""

from __future__ import annotations

import time
from dataclasses import dataclass, field

from copydesk.models.generation import Format, Platform

SAMPLE_LIMIT = 500


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class RatingRecord:
    """One user rating of a generated output. Never mutated after creation."""

    content_type: str
    format: Format
    platform: Platform
    rating: int
    feedback: str = ""
    source_pack_summary: str = ""
    output_sample: str = ""
    final_output: str | None = None
    created_at: int = field(default_factory=_now_ms)

    def __post_init__(self) -> None:
        if not 1 <= self.rating <= 5:
            raise ValueError(f"Rating must be between 1 and 5, got {self.rating}")
        # frozen: go through object.__setattr__ to normalize on construction
        object.__setattr__(self, "source_pack_summary", self.source_pack_summary[:SAMPLE_LIMIT])
        object.__setattr__(self, "output_sample", self.output_sample[:SAMPLE_LIMIT])
        if self.rating != 5:
            object.__setattr__(self, "final_output", None)

    @classmethod
    def for_output(
        cls,
        content: str,
        *,
        platform: Platform,
        format: Format,
        rating: int,
        feedback: str = "",
        source_pack_summary: str = "",
        content_type: str | None = None,
    ) -> RatingRecord:
        """Build a record from generated content; 5★ keeps the full text."""
        return cls(
            content_type=content_type or platform.value,
            format=format,
            platform=platform,
            rating=rating,
            feedback=feedback,
            source_pack_summary=source_pack_summary,
            output_sample=content,
            final_output=content if rating == 5 else None,
        )

    def to_dict(self) -> dict:
        data = {
            "contentType": self.content_type,
            "format": self.format.value,
            "rating": self.rating,
            "feedback": self.feedback,
            "sourcePackSummary": self.source_pack_summary,
            "outputSample": self.output_sample,
            "platform": self.platform.value,
            "createdAt": self.created_at,
        }
        if self.final_output is not None:
            data["finalOutput"] = self.final_output
        return data

    @classmethod
    def from_dict(cls, data: dict) -> RatingRecord:
        return cls(
            content_type=data.get("contentType", data["platform"]),
            format=Format(data["format"]),
            platform=Platform(data["platform"]),
            rating=data["rating"],
            feedback=data.get("feedback", ""),
            source_pack_summary=data.get("sourcePackSummary", ""),
            output_sample=data.get("outputSample", ""),
            final_output=data.get("finalOutput"),
            created_at=data.get("createdAt", _now_ms()),
        )


@dataclass(frozen=True)
class LearningExample:
    output: str
    feedback: str

    def to_dict(self) -> dict:
        return {"output": self.output, "feedback": self.feedback}


@dataclass
class LearningContext:
    successful_examples: list[LearningExample] = field(default_factory=list)
    patterns_to_avoid: list[LearningExample] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.successful_examples and not self.patterns_to_avoid

    def to_dict(self) -> dict:
        return {
            "successfulExamples": [e.to_dict() for e in self.successful_examples],
            "patternsToAvoid": [e.to_dict() for e in self.patterns_to_avoid],
        }
