"""SourcePack builder — one extraction call turns ingested text into evidence."""

from __future__ import annotations

import asyncio
import logging

from copydesk.backends.base import TextGenerator
from copydesk.config import settings
from copydesk.errors import ExtractionParseError
from copydesk.models.source import SourceMaterial, SourceStatus
from copydesk.models.source_pack import SECTIONS, ContextHeader, Quality, SourcePack
from copydesk.orchestrator.json_repair import try_parse_structured_output
from copydesk.prompts.extraction import build_extraction_prompt

logger = logging.getLogger(__name__)

FALLBACK_SOURCE_LIMIT = 5
FALLBACK_SNIPPET_CHARS = 300
SUMMARY_LIMIT = 500


def assess_quality(pack: SourcePack) -> Quality:
    """Highest quality the pack's contents can objectively support."""
    if (
        len(pack.verified_facts) >= 3
        and len(pack.quotes) >= 1
        and len(pack.capital_signals) >= 1
    ):
        return Quality.STRONG
    if pack.verified_facts:
        return Quality.ADEQUATE
    return Quality.WEAK


def clamp_quality(pack: SourcePack, claimed: Quality) -> SourcePack:
    """Apply ``claimed`` unless the data cannot back it; never upgrades."""
    ceiling = assess_quality(pack)
    if claimed.rank <= ceiling.rank:
        pack.quality = claimed
        return pack

    pack.quality = ceiling
    note = (
        f"Quality lowered from {claimed.value} to {ceiling.value}: "
        f"{len(pack.verified_facts)} verified facts, {len(pack.quotes)} quotes, "
        f"{len(pack.capital_signals)} capital signals."
    )
    pack.quality_notes = f"{pack.quality_notes} {note}".strip()
    return pack


def _as_text(value) -> str:
    return value.strip() if isinstance(value, str) else ("" if value is None else str(value).strip())


def _string_list(value) -> list[str]:
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list):
        return []
    items = [_as_text(v) for v in value if not isinstance(v, (dict, list))]
    return [i for i in items if i]


def _dedupe(items: list[str]) -> list[str]:
    seen: set[str] = set()
    result = []
    for item in items:
        key = " ".join(item.lower().split())
        if key not in seen:
            seen.add(key)
            result.append(item)
    return result


def pack_from_parsed(parsed: dict, sources: list[SourceMaterial]) -> SourcePack:
    """Coerce a parsed extraction response into a SourcePack."""
    header = parsed.get("contextHeader")
    header = header if isinstance(header, dict) else {}
    pack = SourcePack(
        context_header=ContextHeader(
            topic=_as_text(header.get("topic")),
            asset_class=_as_text(header.get("assetClass")),
            markets=_string_list(header.get("markets")),
            time_horizon=_as_text(header.get("timeHorizon")),
            intended_output=_as_text(header.get("intendedOutput")),
        ),
        raw_sources=list(sources),
        quality_notes=_as_text(parsed.get("qualityNotes")),
    )
    for attr, key in SECTIONS.items():
        setattr(pack, attr, _string_list(parsed.get(key)))

    try:
        claimed = Quality(_as_text(parsed.get("quality")).lower())
    except ValueError:
        claimed = Quality.STRONG  # no usable self-report; the data decides
    return clamp_quality(pack, claimed)


def parse_extraction(raw_text: str | None) -> dict:
    parsed = try_parse_structured_output(raw_text)
    if parsed is None:
        raise ExtractionParseError(
            f"SourcePack response is not a JSON object ({len(raw_text or '')} chars)"
        )
    return parsed


def fallback_pack(sources: list[SourceMaterial], note: str) -> SourcePack:
    """Degraded pack built straight from raw source text."""
    facts = [
        s.content[:FALLBACK_SNIPPET_CHARS].strip()
        for s in sources[:FALLBACK_SOURCE_LIMIT]
    ]
    return SourcePack(
        verified_facts=[f for f in facts if f],
        raw_sources=list(sources),
        quality=Quality.WEAK,
        quality_notes=note,
    )


def combine_sources(sources: list[SourceMaterial]) -> str:
    return "\n\n".join(
        f"--- SOURCE {i}: {s.source} ---\n{s.content}" for i, s in enumerate(sources, 1)
    )


def summarize(pack: SourcePack) -> str:
    """Short description of a pack, stored alongside ratings."""
    header = pack.context_header
    lines = [
        f"Topic: {header.topic or 'n/a'}",
        f"Quality: {pack.quality.value}",
        f"Facts: {len(pack.verified_facts)}, quotes: {len(pack.quotes)}, "
        f"capital signals: {len(pack.capital_signals)}",
    ]
    lines.extend(f"- {fact}" for fact in pack.verified_facts[:3])
    return "\n".join(lines)[:SUMMARY_LIMIT]


class SourcePackBuilder:
    """Builds SourcePacks from ingested sources via the text generator."""

    def __init__(self, generator: TextGenerator, timeout: float | None = None) -> None:
        self.generator = generator
        self.timeout = timeout or settings.generation_timeout

    async def build(self, sources: list[SourceMaterial]) -> SourcePack:
        ready = [s for s in sources if s.status is SourceStatus.READY]
        if not ready:
            return SourcePack.empty()

        prompt = build_extraction_prompt(combine_sources(ready))
        logger.info("Extracting SourcePack from %d sources via %s", len(ready), self.generator.name)

        try:
            raw_text = await asyncio.wait_for(
                self.generator.complete(prompt, json_output=True), timeout=self.timeout
            )
        except asyncio.TimeoutError:
            logger.warning("SourcePack extraction timed out, using raw sources")
            return fallback_pack(
                ready, f"Extraction failed: timed out after {self.timeout:g} seconds. "
                "Using raw source content for generation."
            )
        except Exception as exc:
            logger.warning("SourcePack extraction failed, using raw sources: %s", exc)
            return fallback_pack(
                ready, f"Extraction failed: {exc}. Using raw source content for generation."
            )

        try:
            parsed = parse_extraction(raw_text)
        except ExtractionParseError as exc:
            logger.warning("%s, using raw sources as fallback", exc)
            return fallback_pack(
                ready, "Auto-extraction failed. Using raw source content for generation."
            )

        pack = pack_from_parsed(parsed, ready)
        logger.info(
            "SourcePack built: %d facts, %d quotes, quality %s",
            len(pack.verified_facts), len(pack.quotes), pack.quality.value,
        )
        return pack

    def merge(self, packs: list[SourcePack]) -> SourcePack:
        """Conservative merge: every distinct fact kept, weakest quality wins."""
        if not packs:
            return SourcePack.empty()
        if len(packs) == 1:
            return packs[0]

        headers = [p.context_header for p in packs]
        merged = SourcePack(
            context_header=ContextHeader(
                topic=" / ".join(_dedupe([h.topic for h in headers if h.topic])),
                asset_class=next((h.asset_class for h in headers if h.asset_class), ""),
                markets=_dedupe([m for h in headers for m in h.markets]),
                time_horizon=" / ".join(_dedupe([h.time_horizon for h in headers if h.time_horizon])),
                intended_output=next((h.intended_output for h in headers if h.intended_output), ""),
            ),
            quality_notes=" | ".join(p.quality_notes for p in packs if p.quality_notes),
        )
        for attr in SECTIONS:
            setattr(merged, attr, _dedupe([item for p in packs for item in getattr(p, attr)]))

        seen_ids: set[str] = set()
        for pack in packs:
            for source in pack.raw_sources:
                if source.id not in seen_ids:
                    seen_ids.add(source.id)
                    merged.raw_sources.append(source)

        return clamp_quality(merged, Quality.weakest(p.quality for p in packs))
