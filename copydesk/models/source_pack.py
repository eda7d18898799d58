"""SourcePack data model — the structured evidence record."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from copydesk.models.source import SourceMaterial


class Quality(Enum):
    WEAK = "weak"
    ADEQUATE = "adequate"
    STRONG = "strong"

    @property
    def rank(self) -> int:
        return _QUALITY_ORDER.index(self)

    @classmethod
    def weakest(cls, qualities) -> Quality:
        return min(qualities, key=lambda q: q.rank, default=cls.WEAK)


_QUALITY_ORDER = [Quality.WEAK, Quality.ADEQUATE, Quality.STRONG]

# Section attribute name -> JSON key, in display order.
SECTIONS: dict[str, str] = {
    "verified_facts": "verifiedFacts",
    "operating_fundamentals": "operatingFundamentals",
    "capital_signals": "capitalSignals",
    "supply_pipeline": "supplyPipeline",
    "quotes": "quotes",
    "mechanical_implications": "mechanicalImplications",
    "common_misreads": "commonMisreads",
    "investor_questions": "investorQuestions",
}


@dataclass
class ContextHeader:
    topic: str = ""
    asset_class: str = ""
    markets: list[str] = field(default_factory=list)
    time_horizon: str = ""
    intended_output: str = ""

    def to_dict(self) -> dict:
        return {
            "topic": self.topic,
            "assetClass": self.asset_class,
            "markets": list(self.markets),
            "timeHorizon": self.time_horizon,
            "intendedOutput": self.intended_output,
        }

    @classmethod
    def from_dict(cls, data: dict) -> ContextHeader:
        return cls(
            topic=data.get("topic", ""),
            asset_class=data.get("assetClass", ""),
            markets=list(data.get("markets", [])),
            time_horizon=data.get("timeHorizon", ""),
            intended_output=data.get("intendedOutput", ""),
        )


@dataclass
class SourcePack:
    """Facts, verbatim quotes and signals extracted from ingested sources."""

    context_header: ContextHeader = field(default_factory=ContextHeader)
    verified_facts: list[str] = field(default_factory=list)
    operating_fundamentals: list[str] = field(default_factory=list)
    capital_signals: list[str] = field(default_factory=list)
    supply_pipeline: list[str] = field(default_factory=list)
    quotes: list[str] = field(default_factory=list)
    mechanical_implications: list[str] = field(default_factory=list)
    common_misreads: list[str] = field(default_factory=list)
    investor_questions: list[str] = field(default_factory=list)
    raw_sources: list[SourceMaterial] = field(default_factory=list)
    quality: Quality = Quality.WEAK
    quality_notes: str = "No sources processed yet"

    @classmethod
    def empty(cls) -> SourcePack:
        """The canonical empty pack returned when nothing is ready."""
        return cls()

    def to_dict(self) -> dict:
        data: dict = {"contextHeader": self.context_header.to_dict()}
        for attr, key in SECTIONS.items():
            data[key] = list(getattr(self, attr))
        data["rawSources"] = [s.to_dict() for s in self.raw_sources]
        data["quality"] = self.quality.value
        data["qualityNotes"] = self.quality_notes
        return data

    @classmethod
    def from_dict(cls, data: dict) -> SourcePack:
        pack = cls(
            context_header=ContextHeader.from_dict(data.get("contextHeader") or {}),
            raw_sources=[SourceMaterial.from_dict(s) for s in data.get("rawSources", [])],
            quality=Quality(data.get("quality", "weak")),
            quality_notes=data.get("qualityNotes", ""),
        )
        for attr, key in SECTIONS.items():
            setattr(pack, attr, list(data.get(key, [])))
        return pack
