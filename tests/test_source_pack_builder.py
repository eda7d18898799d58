"""
Tests for SourcePack extraction, the quality ceiling and merging.
"""

import asyncio
import json

from fakes import FakeGenerator, extraction_json, make_pack, make_source

from copydesk.models.source import SourceStatus
from copydesk.models.source_pack import ContextHeader, Quality, SourcePack
from copydesk.orchestrator.source_pack_builder import (
    SourcePackBuilder,
    assess_quality,
    fallback_pack,
    pack_from_parsed,
    summarize,
)


def build(generator, sources, timeout=None):
    return asyncio.run(SourcePackBuilder(generator, timeout=timeout).build(sources))


class TestBuild:
    def test_no_ready_sources_gives_empty_pack(self):
        generator = FakeGenerator(extraction_json())
        sources = [
            make_source("a", status=SourceStatus.ERROR, content="Error: 404"),
            make_source("b", status=SourceStatus.PENDING),
        ]

        pack = build(generator, sources)

        assert pack == SourcePack.empty()
        assert pack.quality is Quality.WEAK
        assert pack.quality_notes == "No sources processed yet"
        assert generator.prompts == []

    def test_strong_extraction(self):
        generator = FakeGenerator(extraction_json("strong", facts=3, quotes=1, signals=1))
        sources = [make_source("a", content="Austin vacancy report"), make_source("b")]

        pack = build(generator, sources)

        assert pack.quality is Quality.STRONG
        assert len(pack.verified_facts) == 3
        assert pack.context_header.markets == ["Austin", "Phoenix"]
        assert [s.id for s in pack.raw_sources] == ["a", "b"]
        assert generator.json_flags == [True]

    def test_single_fact_source_cannot_be_strong(self):
        response = json.dumps({
            "verifiedFacts": ["Rates rose 200bps in 2024 (Fed)"],
            "quality": "strong",
        })
        source = make_source(content="Rates rose 200bps in 2024 (Fed).")

        pack = build(FakeGenerator(response), [source])

        assert any("200bps" in f and "2024" in f for f in pack.verified_facts)
        assert pack.quality in (Quality.ADEQUATE, Quality.WEAK)

    def test_single_fact_source_fallback(self):
        source = make_source(content="Rates rose 200bps in 2024 (Fed).")

        pack = build(FakeGenerator("not json"), [source])

        assert pack.verified_facts == ["Rates rose 200bps in 2024 (Fed)."]
        assert pack.quality is Quality.WEAK

    def test_only_ready_sources_reach_the_prompt(self):
        generator = FakeGenerator(extraction_json())
        sources = [
            make_source("a", content="Readable report text"),
            make_source("b", content="Error: Apify request failed", status=SourceStatus.ERROR),
        ]

        pack = build(generator, sources)

        assert "Readable report text" in generator.prompts[0]
        assert "Apify request failed" not in generator.prompts[0]
        assert [s.id for s in pack.raw_sources] == ["a"]

    def test_claimed_quality_is_clamped_to_the_data(self):
        generator = FakeGenerator(extraction_json("strong", facts=1, quotes=0, signals=0))

        pack = build(generator, [make_source()])

        assert pack.quality is Quality.ADEQUATE
        assert "Quality lowered from strong to adequate" in pack.quality_notes

    def test_claimed_quality_is_never_upgraded(self):
        generator = FakeGenerator(extraction_json("weak", facts=5, quotes=2, signals=2))

        pack = build(generator, [make_source()])

        assert pack.quality is Quality.WEAK

    def test_unparseable_output_falls_back_to_raw_sources(self):
        generator = FakeGenerator("Sorry, I can only summarize this in prose.")
        sources = [make_source(str(i), content=f"Source {i} " + "x" * 400) for i in range(7)]

        pack = build(generator, sources)

        assert pack.quality is Quality.WEAK
        assert pack.quality_notes == "Auto-extraction failed. Using raw source content for generation."
        assert len(pack.verified_facts) == 5
        assert all(len(fact) <= 300 for fact in pack.verified_facts)
        assert len(pack.raw_sources) == 7

    def test_generator_failure_falls_back(self):
        generator = FakeGenerator(RuntimeError("quota exceeded"))

        pack = build(generator, [make_source()])

        assert pack.quality is Quality.WEAK
        assert pack.quality_notes.startswith("Extraction failed: quota exceeded")

    def test_generator_timeout_falls_back(self):
        generator = FakeGenerator(extraction_json(), delay=0.5)

        pack = build(generator, [make_source()], timeout=0.01)

        assert pack.quality is Quality.WEAK
        assert "timed out" in pack.quality_notes


class TestQuality:
    def test_ceiling(self):
        assert assess_quality(make_pack()) is Quality.STRONG
        assert assess_quality(make_pack(quotes=[])) is Quality.ADEQUATE
        assert assess_quality(make_pack(capital_signals=[])) is Quality.ADEQUATE
        assert assess_quality(make_pack(verified_facts=["one"], quotes=[], capital_signals=[])) is Quality.ADEQUATE
        assert assess_quality(make_pack(verified_facts=[])) is Quality.WEAK

    def test_missing_self_report_uses_the_ceiling(self):
        parsed = {"verifiedFacts": ["a", "b", "c"], "quotes": ["q"], "capitalSignals": ["s"]}
        assert pack_from_parsed(parsed, []).quality is Quality.STRONG

    def test_invalid_self_report_uses_the_ceiling(self):
        parsed = {"verifiedFacts": ["a"], "quality": "excellent"}
        assert pack_from_parsed(parsed, []).quality is Quality.ADEQUATE

    def test_malformed_sections_are_coerced(self):
        parsed = {"verifiedFacts": "single fact", "quotes": [{"text": "nested"}, "  ", "kept"]}
        pack = pack_from_parsed(parsed, [])
        assert pack.verified_facts == ["single fact"]
        assert pack.quotes == ["kept"]

    def test_fallback_pack_skips_blank_sources(self):
        pack = fallback_pack([make_source("a", content="   "), make_source("b")], "note")
        assert pack.verified_facts == ["Some source text"]


class TestMerge:
    def setup_method(self):
        self.builder = SourcePackBuilder(FakeGenerator("unused"))

    def test_empty_and_single(self):
        assert self.builder.merge([]) == SourcePack.empty()
        pack = make_pack()
        assert self.builder.merge([pack]) is pack

    def test_union_without_duplicates(self):
        shared = "Austin vacancy hit 14.1% in Q3 2024"
        first = make_pack(raw_sources=[make_source("a"), make_source("b")])
        second = make_pack(
            context_header=ContextHeader(topic="Rate cuts", markets=["Phoenix", "Dallas"]),
            verified_facts=["austin vacancy hit 14.1%  in q3 2024", "Dallas permits fell 38%"],
            raw_sources=[make_source("b"), make_source("c")],
        )

        merged = self.builder.merge([first, second])

        assert merged.verified_facts.count(shared) == 1
        assert "Dallas permits fell 38%" in merged.verified_facts
        assert merged.context_header.topic == "Sunbelt multifamily / Rate cuts"
        assert merged.context_header.markets == ["Austin", "Phoenix", "Dallas"]
        assert [s.id for s in merged.raw_sources] == ["a", "b", "c"]

    def test_weakest_quality_wins(self):
        strong = make_pack()
        adequate = make_pack(quality=Quality.ADEQUATE, quality_notes="Thin quotes.")

        merged = self.builder.merge([strong, adequate])

        assert merged.quality is Quality.ADEQUATE
        assert merged.quality_notes == "Three sources with hard numbers. | Thin quotes."


def test_summarize_is_bounded():
    pack = make_pack(verified_facts=["x" * 400] * 3)
    summary = summarize(pack)
    assert len(summary) <= 500
    assert summary.startswith("Topic: Sunbelt multifamily")
