"""SQLite database layer via aiosqlite."""

from __future__ import annotations

import json
import uuid

import aiosqlite

from copydesk.models.generation import Format, GenerationOutput, Platform
from copydesk.models.rating import RatingRecord
from copydesk.models.source import SourceMaterial
from copydesk.models.source_pack import SourcePack

SCHEMA = """
CREATE TABLE IF NOT EXISTS batches (
    id TEXT PRIMARY KEY,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS sources (
    id TEXT PRIMARY KEY,
    batch_id TEXT NOT NULL REFERENCES batches(id),
    position INTEGER NOT NULL,
    payload TEXT NOT NULL DEFAULT '',
    data_json TEXT NOT NULL,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS source_packs (
    id TEXT PRIMARY KEY,
    batch_id TEXT REFERENCES batches(id),
    data_json TEXT NOT NULL,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS drafts (
    id TEXT PRIMARY KEY,
    source_pack_id TEXT REFERENCES source_packs(id),
    data_json TEXT NOT NULL,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS ratings (
    id TEXT PRIMARY KEY,
    platform TEXT NOT NULL,
    format TEXT NOT NULL,
    rating INTEGER NOT NULL,
    created_at INTEGER NOT NULL,
    data_json TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS ratings_platform_format
    ON ratings (platform, format, created_at);
"""


class Database:
    """Async SQLite database for batches, SourcePacks, drafts and ratings."""

    def __init__(self, path: str = "copydesk.db") -> None:
        self.path = path
        self._db: aiosqlite.Connection | None = None

    async def connect(self) -> None:
        self._db = await aiosqlite.connect(self.path)
        self._db.row_factory = aiosqlite.Row
        await self._db.executescript(SCHEMA)

    async def close(self) -> None:
        if self._db:
            await self._db.close()
            self._db = None

    @property
    def db(self) -> aiosqlite.Connection:
        if self._db is None:
            raise RuntimeError("Database not connected — call connect() first")
        return self._db

    # -- Batches / sources --

    async def create_batch(self, sources: list[SourceMaterial]) -> str:
        batch_id = str(uuid.uuid4())
        await self.db.execute("INSERT INTO batches (id) VALUES (?)", (batch_id,))
        await self.db.executemany(
            "INSERT INTO sources (id, batch_id, position, payload, data_json) VALUES (?, ?, ?, ?, ?)",
            [
                (s.id, batch_id, i, s.content, json.dumps(s.to_dict()))
                for i, s in enumerate(sources)
            ],
        )
        await self.db.commit()
        return batch_id

    async def batch_exists(self, batch_id: str) -> bool:
        cursor = await self.db.execute("SELECT 1 FROM batches WHERE id = ?", (batch_id,))
        return await cursor.fetchone() is not None

    async def update_source(self, source: SourceMaterial) -> None:
        await self.db.execute(
            "UPDATE sources SET data_json = ?, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
            (json.dumps(source.to_dict()), source.id),
        )
        await self.db.commit()

    async def get_sources(self, batch_id: str) -> list[SourceMaterial]:
        cursor = await self.db.execute(
            "SELECT data_json FROM sources WHERE batch_id = ? ORDER BY position", (batch_id,)
        )
        rows = await cursor.fetchall()
        return [SourceMaterial.from_dict(json.loads(r["data_json"])) for r in rows]

    async def get_payloads(self, batch_id: str) -> dict[str, str]:
        """Payloads the sources were created with, before ingestion replaced them."""
        cursor = await self.db.execute(
            "SELECT id, payload FROM sources WHERE batch_id = ?", (batch_id,)
        )
        rows = await cursor.fetchall()
        return {r["id"]: r["payload"] for r in rows}

    # -- SourcePacks --

    async def save_source_pack(self, pack: SourcePack, batch_id: str | None = None) -> str:
        pack_id = str(uuid.uuid4())
        await self.db.execute(
            "INSERT INTO source_packs (id, batch_id, data_json) VALUES (?, ?, ?)",
            (pack_id, batch_id, json.dumps(pack.to_dict())),
        )
        await self.db.commit()
        return pack_id

    async def get_source_pack(self, pack_id: str) -> SourcePack | None:
        cursor = await self.db.execute(
            "SELECT data_json FROM source_packs WHERE id = ?", (pack_id,)
        )
        row = await cursor.fetchone()
        return SourcePack.from_dict(json.loads(row["data_json"])) if row else None

    # -- Drafts --

    async def create_draft(self, output: GenerationOutput, source_pack_id: str | None = None) -> str:
        draft_id = str(uuid.uuid4())
        await self.db.execute(
            "INSERT INTO drafts (id, source_pack_id, data_json) VALUES (?, ?, ?)",
            (draft_id, source_pack_id, json.dumps(output.to_dict())),
        )
        await self.db.commit()
        return draft_id

    async def update_draft(self, draft_id: str, output: GenerationOutput) -> None:
        await self.db.execute(
            "UPDATE drafts SET data_json = ?, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
            (json.dumps(output.to_dict()), draft_id),
        )
        await self.db.commit()

    async def get_draft(self, draft_id: str) -> GenerationOutput | None:
        cursor = await self.db.execute("SELECT data_json FROM drafts WHERE id = ?", (draft_id,))
        row = await cursor.fetchone()
        return GenerationOutput.from_dict(json.loads(row["data_json"])) if row else None

    # -- Ratings (RatingRepository) --

    async def add_rating(self, record: RatingRecord) -> None:
        await self.db.execute(
            "INSERT INTO ratings (id, platform, format, rating, created_at, data_json) "
            "VALUES (?, ?, ?, ?, ?, ?)",
            (
                str(uuid.uuid4()),
                record.platform.value,
                record.format.value,
                record.rating,
                record.created_at,
                json.dumps(record.to_dict()),
            ),
        )
        await self.db.commit()

    async def list_ratings(self, platform: Platform, format: Format) -> list[RatingRecord]:
        cursor = await self.db.execute(
            "SELECT data_json FROM ratings WHERE platform = ? AND format = ? "
            "ORDER BY created_at DESC, rowid DESC",
            (platform.value, format.value),
        )
        rows = await cursor.fetchall()
        return [RatingRecord.from_dict(json.loads(r["data_json"])) for r in rows]
