"""Generation engine — turns a SourcePack and a config into finished content."""

from __future__ import annotations

import asyncio
import logging

from copydesk.backends.base import TextGenerator
from copydesk.config import settings
from copydesk.errors import GenerationError, RefinementError
from copydesk.models.generation import (
    Format,
    GenerationConfig,
    GenerationOutput,
    Mode,
    Platform,
    Tone,
)
from copydesk.models.source_pack import SourcePack
from copydesk.orchestrator.learning import LearningStore
from copydesk.orchestrator.validation import clean_content, extract_validation
from copydesk.prompts.copy_rules import Refinement, build_prompt
from copydesk.prompts.doctrine import get_doctrine
from copydesk.prompts.extraction import format_source_pack

logger = logging.getLogger(__name__)

NO_SOURCE_PACK = "No SourcePack provided - diagnose based on content alone."


class GenerationEngine:
    """Platform-aware content generation over a SourcePack.

    Learning context is read through the injected ``LearningStore``; the
    engine never writes ratings.
    """

    def __init__(
        self,
        generator: TextGenerator,
        learning: LearningStore,
        timeout: float | None = None,
    ) -> None:
        self.generator = generator
        self.learning = learning
        self.timeout = timeout or settings.generation_timeout

    async def build_prompt(
        self,
        source_pack: SourcePack | None,
        config: GenerationConfig,
        content: str | None = None,
        refinement: Refinement | None = None,
    ) -> str:
        doctrine = get_doctrine(config.platform, config.format)
        learning = await self.learning.get_learning_context(config.platform, config.format)
        pack_text = format_source_pack(source_pack) if source_pack is not None else NO_SOURCE_PACK
        existing = refinement.previous_output if refinement is not None else content
        return build_prompt(config, doctrine, pack_text, existing, refinement, learning)

    async def generate(
        self,
        source_pack: SourcePack,
        config: GenerationConfig,
        content: str | None = None,
    ) -> GenerationOutput:
        """Produce a fresh output (iteration 1).

        ``content`` is the text under review and is required in diagnose mode.
        """
        if config.mode is Mode.DIAGNOSE and not (content and content.strip()):
            raise ValueError("Diagnose mode requires the content to review")

        prompt = await self.build_prompt(source_pack, config, content)
        logger.info(
            "Generating %s/%s (%s, %s); SourcePack: %d facts, %d quotes, quality %s",
            config.platform.value, config.format.value, config.mode.value, config.tone.value,
            len(source_pack.verified_facts) if source_pack else 0,
            len(source_pack.quotes) if source_pack else 0,
            source_pack.quality.value if source_pack else "none",
        )

        try:
            raw_text = await self._complete(prompt)
        except GenerationError as exc:
            raise GenerationError(f"Content generation failed: {exc}") from exc
        return self._to_output(raw_text, source_pack, config, iteration=1, error=GenerationError)

    async def refine(
        self,
        previous_output: str,
        rating: int,
        feedback: str,
        source_pack: SourcePack,
        config: GenerationConfig,
        iteration: int,
    ) -> GenerationOutput:
        """Rewrite ``previous_output`` according to a rating and feedback.

        Callers serialize refinements of the same output; nothing here locks.
        """
        if not 1 <= rating <= 5:
            raise ValueError(f"Rating must be between 1 and 5, got {rating}")
        if iteration < 1:
            raise ValueError(f"Iteration must be at least 1, got {iteration}")

        refinement = Refinement(previous_output=previous_output, rating=rating, feedback=feedback)
        prompt = await self.build_prompt(source_pack, config, refinement=refinement)
        logger.info(
            "Refining %s/%s iteration %d (%d★)",
            config.platform.value, config.format.value, iteration, rating,
        )

        try:
            raw_text = await self._complete(prompt)
        except GenerationError as exc:
            raise RefinementError(f"Content refinement failed: {exc}") from exc
        return self._to_output(
            raw_text, source_pack, config, iteration=iteration + 1, error=RefinementError
        )

    async def refine_output(
        self, output: GenerationOutput, rating: int, feedback: str
    ) -> GenerationOutput:
        return await self.refine(
            output.content, rating, feedback, output.source_pack, output.config, output.iteration
        )

    async def ideate(self, source_pack: SourcePack, tone: Tone, platform: Platform) -> str:
        config = GenerationConfig(mode=Mode.IDEATE, tone=tone, format=Format.POST, platform=platform)
        output = await self.generate(source_pack, config)
        return output.content

    async def diagnose(
        self, content: str, platform: Platform, source_pack: SourcePack | None = None
    ) -> str:
        config = GenerationConfig(
            mode=Mode.DIAGNOSE, tone=Tone.MARKET_TIMING, format=Format.POST, platform=platform
        )
        output = await self.generate(source_pack, config, content=content)
        return output.content

    async def _complete(self, prompt: str) -> str:
        try:
            return await asyncio.wait_for(self.generator.complete(prompt), timeout=self.timeout)
        except asyncio.TimeoutError as exc:
            raise GenerationError(f"{self.generator.name} timed out after {self.timeout:g} seconds") from exc
        except GenerationError:
            raise
        except Exception as exc:
            logger.error("%s generation call failed: %s", self.generator.name, exc)
            raise GenerationError(str(exc) or type(exc).__name__) from exc

    def _to_output(
        self,
        raw_text: str,
        source_pack: SourcePack,
        config: GenerationConfig,
        iteration: int,
        error: type[GenerationError],
    ) -> GenerationOutput:
        if not raw_text or not raw_text.strip():
            raise error(f"{self.generator.name} returned an empty response")

        content = clean_content(raw_text)
        if not content:
            raise error(f"{self.generator.name} returned no usable content")

        return GenerationOutput(
            content=content,
            source_pack=source_pack,
            config=config,
            iteration=iteration,
            validation=extract_validation(raw_text),
        )
