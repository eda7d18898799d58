"""
Tests for generation and refinement against a fake text generator.
"""

import asyncio

import pytest
from fakes import FakeGenerator, make_pack

from copydesk.errors import GenerationError, RefinementError
from copydesk.models.generation import Format, GenerationConfig, Mode, Platform, Tone
from copydesk.models.rating import RatingRecord
from copydesk.orchestrator.generator import NO_SOURCE_PACK, GenerationEngine

WITH_TRAILER = """\
Austin vacancy is at 14.1%. The market is not waiting for you.

---
VALIDATION:
1. Rents recover on their own in 2025
2. 14.1% vacancy and 23,000 Phoenix deliveries
3. Underwriting rent growth before 2026
---"""


def engine(learning, *responses, **kwargs):
    return GenerationEngine(FakeGenerator(*responses, **kwargs), learning)


class TestGenerate:
    def test_write_output(self, learning, write_config):
        output = asyncio.run(engine(learning, WITH_TRAILER).generate(make_pack(), write_config))

        assert output.content == "Austin vacancy is at 14.1%. The market is not waiting for you."
        assert output.iteration == 1
        assert output.platform is Platform.LINKEDIN
        assert output.validation.assumption_invalidated == "Rents recover on their own in 2025"
        assert output.validation.data_support == "14.1% vacancy and 23,000 Phoenix deliveries"
        assert output.validation.decision_to_reconsider == "Underwriting rent growth before 2026"

    def test_prompt_carries_doctrine_and_evidence(self, learning, write_config):
        gen = engine(learning, "Body")
        asyncio.run(gen.generate(make_pack(), write_config))

        prompt = gen.generator.prompts[0]
        assert "# LinkedIn Platform Doctrine" in prompt
        assert "Austin vacancy hit 14.1% in Q3 2024" in prompt
        assert gen.generator.json_flags == [False]

    def test_learning_context_reaches_the_prompt(self, learning, write_config):
        record = RatingRecord.for_output(
            "A five star post", platform=Platform.LINKEDIN, format=Format.POST, rating=5
        )
        asyncio.run(learning.record_rating(record))
        gen = engine(learning, "Body")

        asyncio.run(gen.generate(make_pack(), write_config))

        assert "A five star post" in gen.generator.prompts[0]

    def test_no_validation_block(self, learning, write_config):
        output = asyncio.run(engine(learning, "Just content.").generate(make_pack(), write_config))
        assert output.validation is None
        assert output.content == "Just content."

    def test_backend_failure(self, learning, write_config):
        with pytest.raises(GenerationError, match="Content generation failed: rate limited"):
            asyncio.run(engine(learning, RuntimeError("rate limited")).generate(make_pack(), write_config))

    def test_empty_response(self, learning, write_config):
        with pytest.raises(GenerationError, match="empty response"):
            asyncio.run(engine(learning, "   ").generate(make_pack(), write_config))

    def test_response_with_only_validation(self, learning, write_config):
        raw = "VALIDATION:\n1. a\n2. b\n3. c"
        with pytest.raises(GenerationError, match="no usable content"):
            asyncio.run(engine(learning, raw).generate(make_pack(), write_config))

    def test_timeout(self, learning, write_config):
        gen = GenerationEngine(FakeGenerator("late", delay=0.5), learning, timeout=0.01)
        with pytest.raises(GenerationError, match="timed out"):
            asyncio.run(gen.generate(make_pack(), write_config))

    def test_diagnose_requires_content(self, learning):
        config = GenerationConfig(Mode.DIAGNOSE, Tone.MARKET_TIMING, Format.POST, Platform.LINKEDIN)
        with pytest.raises(ValueError):
            asyncio.run(engine(learning, "x").generate(make_pack(), config, content="  "))


class TestModes:
    def test_ideate(self, learning):
        gen = engine(learning, "1. Hook: Vacancy is the new rent growth")

        ideas = asyncio.run(gen.ideate(make_pack(), Tone.TENSION_FIRST, Platform.LINKEDIN))

        assert ideas.startswith("1. Hook:")
        assert "## OUTPUT MODE: IDEATE" in gen.generator.prompts[0]

    def test_diagnose_without_source_pack(self, learning):
        gen = engine(learning, "Weakest element: the hook")

        report = asyncio.run(gen.diagnose("My draft", Platform.TWITTER))

        assert report == "Weakest element: the hook"
        prompt = gen.generator.prompts[0]
        assert NO_SOURCE_PACK in prompt
        assert "## CONTENT TO DIAGNOSE\n\nMy draft" in prompt
        assert "# Twitter/X Platform Doctrine" in prompt


class TestRefine:
    def test_iteration_increases(self, learning, write_config):
        gen = engine(learning, "First draft", "Second draft", "Third draft")
        first = asyncio.run(gen.generate(make_pack(), write_config))

        second = asyncio.run(gen.refine_output(first, 3, "needs more data"))
        third = asyncio.run(gen.refine_output(second, 4, "tighten"))

        assert (first.iteration, second.iteration, third.iteration) == (1, 2, 3)
        assert third.content == "Third draft"
        assert first.content == "First draft"

    def test_refinement_prompt(self, learning, write_config):
        gen = engine(learning, "New version")

        asyncio.run(gen.refine("Is vacancy peaking?", 3, "needs more data", make_pack(), write_config, 1))

        prompt = gen.generator.prompts[0]
        assert "Previous output to refine:\nIs vacancy peaking?" in prompt
        assert "Add at least 3 additional numeric facts drawn from the SourcePack" in prompt
        assert "Open this version with a declarative statement" in prompt

    def test_failure_leaves_previous_output(self, learning, write_config):
        gen = engine(learning, "Draft", RuntimeError("overloaded"))
        first = asyncio.run(gen.generate(make_pack(), write_config))

        with pytest.raises(RefinementError, match="Content refinement failed: overloaded") as exc_info:
            asyncio.run(gen.refine_output(first, 2, "different angle"))

        assert isinstance(exc_info.value, GenerationError)
        assert first.content == "Draft"
        assert first.iteration == 1

    @pytest.mark.parametrize("rating, iteration", [(0, 1), (6, 1), (3, 0)])
    def test_invalid_arguments(self, learning, write_config, rating, iteration):
        with pytest.raises(ValueError):
            asyncio.run(engine(learning, "x").refine("prev", rating, "", make_pack(), write_config, iteration))
