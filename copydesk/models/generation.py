"""Generation config and output data models."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from copydesk.models.source_pack import SourcePack


class Mode(Enum):
    WRITE = "write"
    IDEATE = "ideate"
    DIAGNOSE = "diagnose"


class Tone(Enum):
    MARKET_TIMING = "market-timing"
    TENSION_FIRST = "tension-first"
    OPERATOR_REFRAME = "operator-reframe"
    MYTH_REALITY = "myth-reality"


class Format(Enum):
    POST = "post"
    ARTICLE = "article"
    CAROUSEL = "carousel"
    VIDEO_SCRIPT = "video-script"
    IC_MEMO = "ic-memo"


class Platform(Enum):
    LINKEDIN = "linkedin"
    YOUTUBE = "youtube"
    INSTAGRAM = "instagram"
    TWITTER = "twitter"


@dataclass(frozen=True)
class GenerationConfig:
    mode: Mode
    tone: Tone
    format: Format
    platform: Platform

    def to_dict(self) -> dict:
        return {
            "mode": self.mode.value,
            "tone": self.tone.value,
            "format": self.format.value,
            "platform": self.platform.value,
        }

    @classmethod
    def from_dict(cls, data: dict) -> GenerationConfig:
        return cls(
            mode=Mode(data["mode"]),
            tone=Tone(data["tone"]),
            format=Format(data["format"]),
            platform=Platform(data["platform"]),
        )


@dataclass(frozen=True)
class Validation:
    """The generator's trailing self-check."""

    assumption_invalidated: str
    data_support: str
    decision_to_reconsider: str

    def to_dict(self) -> dict:
        return {
            "assumptionInvalidated": self.assumption_invalidated,
            "dataSupport": self.data_support,
            "decisionToReconsider": self.decision_to_reconsider,
        }

    @classmethod
    def from_dict(cls, data: dict) -> Validation:
        return cls(
            assumption_invalidated=data.get("assumptionInvalidated", ""),
            data_support=data.get("dataSupport", ""),
            decision_to_reconsider=data.get("decisionToReconsider", ""),
        )


@dataclass
class GenerationOutput:
    """A complete generated piece; refinements replace it wholesale."""

    content: str
    source_pack: SourcePack
    config: GenerationConfig
    iteration: int = 1
    validation: Validation | None = None

    @property
    def platform(self) -> Platform:
        return self.config.platform

    def to_dict(self) -> dict:
        data = {
            "content": self.content,
            "iteration": self.iteration,
            "sourcePack": self.source_pack.to_dict(),
            "config": self.config.to_dict(),
            "platform": self.platform.value,
        }
        if self.validation is not None:
            data["validation"] = self.validation.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: dict) -> GenerationOutput:
        validation = data.get("validation")
        return cls(
            content=data["content"],
            source_pack=SourcePack.from_dict(data["sourcePack"]),
            config=GenerationConfig.from_dict(data["config"]),
            iteration=data.get("iteration", 1),
            validation=Validation.from_dict(validation) if validation else None,
        )
