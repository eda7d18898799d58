"""
Tests for the aiosqlite persistence layer.
"""

import asyncio
from dataclasses import replace

import pytest
from fakes import make_pack, make_source

from copydesk.db.database import Database
from copydesk.models.generation import Format, GenerationConfig, GenerationOutput, Mode, Platform, Tone
from copydesk.models.rating import RatingRecord
from copydesk.models.source import SourceStatus, SourceType


@pytest.fixture
def run_db(tmp_path):
    """Run ``scenario(db)`` against a fresh database file."""

    def run(scenario):
        async def main():
            db = Database(str(tmp_path / "test.db"))
            await db.connect()
            try:
                return await scenario(db)
            finally:
                await db.close()

        return asyncio.run(main())

    return run


def test_requires_connect():
    with pytest.raises(RuntimeError):
        Database(":memory:").db


def test_batches_and_sources(run_db):
    pdf = make_source("p1", SourceType.PDF, "JVBERi0=", "deck.pdf", SourceStatus.PENDING)
    text = make_source("t1", SourceType.TEXT, "notes", "Manual notes", SourceStatus.PENDING)

    async def scenario(db):
        batch_id = await db.create_batch([pdf, text])
        await db.update_source(replace(pdf, status=SourceStatus.ERROR, content="Error: unreadable"))
        return (
            batch_id,
            await db.batch_exists(batch_id),
            await db.batch_exists("missing"),
            await db.get_sources(batch_id),
            await db.get_payloads(batch_id),
        )

    batch_id, exists, missing, sources, payloads = run_db(scenario)

    assert exists and not missing
    assert [s.id for s in sources] == ["p1", "t1"]
    assert sources[0].status is SourceStatus.ERROR
    assert sources[0].content == "Error: unreadable"
    assert payloads == {"p1": "JVBERi0=", "t1": "notes"}


def test_source_packs_and_drafts(run_db):
    pack = make_pack(raw_sources=[make_source()])
    config = GenerationConfig(Mode.WRITE, Tone.MARKET_TIMING, Format.POST, Platform.LINKEDIN)
    draft = GenerationOutput(content="v1", source_pack=pack, config=config)

    async def scenario(db):
        pack_id = await db.save_source_pack(pack)
        draft_id = await db.create_draft(draft, pack_id)
        await db.update_draft(draft_id, replace(draft, content="v2", iteration=2))
        return (
            await db.get_source_pack(pack_id),
            await db.get_source_pack("missing"),
            await db.get_draft(draft_id),
            await db.get_draft("missing"),
        )

    stored_pack, missing_pack, stored_draft, missing_draft = run_db(scenario)

    assert stored_pack == pack
    assert missing_pack is None
    assert stored_draft.content == "v2"
    assert stored_draft.iteration == 2
    assert stored_draft.source_pack == pack
    assert missing_draft is None


def test_ratings_newest_first_per_pair(run_db):
    def rating(text, platform=Platform.LINKEDIN):
        return RatingRecord.for_output(text, platform=platform, format=Format.POST, rating=5)

    async def scenario(db):
        for text, created_at in [("a", 1), ("b", 3), ("c", 2)]:
            await db.add_rating(replace(rating(text), created_at=created_at))
        await db.add_rating(rating("other", platform=Platform.TWITTER))
        return await db.list_ratings(Platform.LINKEDIN, Format.POST)

    records = run_db(scenario)

    assert [r.output_sample for r in records] == ["b", "c", "a"]
    assert records[0].final_output == "b"
