"""Learning store — rating history fed back into future prompts."""

from __future__ import annotations

import logging
from typing import Protocol

from copydesk.models.generation import Format, GenerationOutput, Platform
from copydesk.models.rating import LearningContext, LearningExample, RatingRecord
from copydesk.orchestrator.source_pack_builder import summarize

logger = logging.getLogger(__name__)

EXAMPLE_LIMIT = 5


class RatingRepository(Protocol):
    """Append-only rating storage, queryable by platform + format."""

    async def add_rating(self, record: RatingRecord) -> None:
        ...

    async def list_ratings(self, platform: Platform, format: Format) -> list[RatingRecord]:
        """Ratings for the exact pair, most recent first."""
        ...


class InMemoryRatingRepository:
    """Process-local repository, used in tests and when no database is wired."""

    def __init__(self) -> None:
        self._records: list[RatingRecord] = []

    async def add_rating(self, record: RatingRecord) -> None:
        self._records.append(record)

    async def list_ratings(self, platform: Platform, format: Format) -> list[RatingRecord]:
        matching = [r for r in self._records if r.platform is platform and r.format is format]
        # stable sort keeps insertion order among equal timestamps; newest first
        indexed = list(enumerate(matching))
        indexed.sort(key=lambda pair: (pair[1].created_at, pair[0]), reverse=True)
        return [r for _, r in indexed]


class LearningStore:
    def __init__(self, repository: RatingRepository) -> None:
        self.repository = repository

    async def record_rating(self, record: RatingRecord) -> None:
        await self.repository.add_rating(record)
        logger.info(
            "Rating saved: %d★ for %s/%s", record.rating, record.platform.value, record.format.value
        )

    async def rate(self, output: GenerationOutput, rating: int, feedback: str = "") -> RatingRecord:
        """Record a rating for a generated output and return the stored record."""
        record = RatingRecord.for_output(
            output.content,
            platform=output.platform,
            format=output.config.format,
            rating=rating,
            feedback=feedback,
            source_pack_summary=summarize(output.source_pack),
        )
        await self.record_rating(record)
        return record

    async def get_learning_context(self, platform: Platform, format: Format) -> LearningContext:
        """Successes (≥4★ with final output) and failures (≤2★ with feedback)."""
        try:
            records = await self.repository.list_ratings(platform, format)
        except Exception:
            logger.exception("Failed to fetch learning context for %s/%s", platform.value, format.value)
            return LearningContext()

        records = [r for r in records if r.platform is platform and r.format is format]
        successes = [
            LearningExample(output=r.final_output, feedback=r.feedback)
            for r in records
            if r.rating >= 4 and r.final_output
        ][:EXAMPLE_LIMIT]
        avoid = [
            LearningExample(output=r.output_sample, feedback=r.feedback)
            for r in records
            if r.rating <= 2 and r.feedback.strip()
        ][:EXAMPLE_LIMIT]

        logger.info(
            "Learning context for %s/%s: %d successes, %d patterns to avoid",
            platform.value, format.value, len(successes), len(avoid),
        )
        return LearningContext(successful_examples=successes, patterns_to_avoid=avoid)
