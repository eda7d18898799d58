"""Copydesk — FastAPI application entry point."""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass

from fastapi import FastAPI, HTTPException, Request, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from copydesk.backends.apify import ApifyExtractor
from copydesk.backends.base import ContentExtractor, DocumentExtractor, TextGenerator
from copydesk.backends.claude import ClaudeBackend
from copydesk.backends.gemini import GeminiBackend
from copydesk.config import settings
from copydesk.db.database import Database
from copydesk.errors import GenerationError
from copydesk.models.generation import Format, GenerationConfig, Mode, Platform, Tone
from copydesk.models.source import SourceMaterial, SourceStatus, SourceType
from copydesk.orchestrator.generator import GenerationEngine
from copydesk.orchestrator.ingestor import Ingestor
from copydesk.orchestrator.learning import LearningStore
from copydesk.orchestrator.registry import SourceRegistry
from copydesk.orchestrator.source_pack_builder import SourcePackBuilder

logger = logging.getLogger(__name__)

db = Database(settings.database_path)


@dataclass
class Services:
    ingestor: Ingestor
    builder: SourcePackBuilder
    engine: GenerationEngine
    learning: LearningStore


def create_generator() -> TextGenerator:
    if settings.generator_backend == "claude":
        return ClaudeBackend()
    return GeminiBackend()


def build_services(
    generator: TextGenerator | None = None,
    extractor: ContentExtractor | None = None,
    document_extractor: DocumentExtractor | None = None,
) -> Services:
    generator = generator or create_generator()
    learning = LearningStore(db)
    return Services(
        ingestor=Ingestor(extractor or ApifyExtractor(), document_extractor or GeminiBackend()),
        builder=SourcePackBuilder(generator),
        engine=GenerationEngine(generator, learning),
        learning=learning,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    logging.basicConfig(level=settings.log_level)
    await db.connect()
    if getattr(app.state, "services", None) is None:
        app.state.services = build_services()
    yield
    await db.close()


app = FastAPI(
    title="Copydesk",
    description="SourcePack ingestion and constrained content generation",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(GenerationError)
async def generation_error_handler(request: Request, exc: GenerationError):
    return JSONResponse(status_code=502, content={"detail": str(exc)})


@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError):
    return JSONResponse(status_code=422, content={"detail": str(exc)})


def _services() -> Services:
    return app.state.services


# --- Request / Response models ---


class SourceInput(BaseModel):
    type: SourceType
    source: str
    content: str = ""


class BatchRequest(BaseModel):
    sources: list[SourceInput] = Field(min_length=1)


class BatchResponse(BaseModel):
    batch_id: str
    source_ids: list[str]


class MergeRequest(BaseModel):
    ids: list[str] = Field(min_length=1)


class ConfigInput(BaseModel):
    mode: Mode
    tone: Tone
    format: Format
    platform: Platform

    def to_config(self) -> GenerationConfig:
        return GenerationConfig(self.mode, self.tone, self.format, self.platform)


class DraftRequest(BaseModel):
    source_pack_id: str = Field(alias="sourcePackId")
    config: ConfigInput
    content: str | None = None


class RatingRequest(BaseModel):
    rating: int = Field(ge=1, le=5)
    feedback: str = ""


# --- Routes ---


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.post("/api/batches", response_model=BatchResponse)
async def create_batch(req: BatchRequest):
    """Register sources and start ingesting them in the background.

    Connect to /ws/batches/{batch_id} for per-source status updates.
    """
    registry = SourceRegistry()
    for item in req.sources:
        if item.type is SourceType.URL:
            registry.add_url(item.source)
        else:
            registry.add(item.type, item.content or item.source, item.source)

    sources = list(registry)
    batch_id = await db.create_batch(sources)
    _start_ingestion(batch_id, registry, sources)
    return BatchResponse(batch_id=batch_id, source_ids=[s.id for s in sources])


@app.get("/api/batches/{batch_id}")
async def get_batch(batch_id: str):
    if not await db.batch_exists(batch_id):
        raise HTTPException(status_code=404, detail="Batch not found")
    sources = await db.get_sources(batch_id)
    return {
        "batch_id": batch_id,
        "settled": all(s.status.is_terminal for s in sources),
        "sources": [s.to_dict() for s in sources],
    }


@app.post("/api/batches/{batch_id}/retry", response_model=BatchResponse)
async def retry_batch(batch_id: str):
    """Re-ingest only the sources that failed."""
    if not await db.batch_exists(batch_id):
        raise HTTPException(status_code=404, detail="Batch not found")
    registry = SourceRegistry(await db.get_sources(batch_id), await db.get_payloads(batch_id))
    retried = registry.retry_failed()
    for source in retried:
        await db.update_source(source)
    _start_ingestion(batch_id, registry, retried)
    return BatchResponse(batch_id=batch_id, source_ids=[s.id for s in retried])


@app.post("/api/batches/{batch_id}/source-pack")
async def build_source_pack(batch_id: str):
    if not await db.batch_exists(batch_id):
        raise HTTPException(status_code=404, detail="Batch not found")
    sources = await db.get_sources(batch_id)
    if not all(s.status.is_terminal for s in sources):
        raise HTTPException(status_code=409, detail="Ingestion still in progress")

    pack = await _services().builder.build(sources)
    pack_id = await db.save_source_pack(pack, batch_id)
    return {"id": pack_id, "sourcePack": pack.to_dict()}


@app.post("/api/source-packs/merge")
async def merge_source_packs(req: MergeRequest):
    packs = []
    for pack_id in req.ids:
        pack = await db.get_source_pack(pack_id)
        if pack is None:
            raise HTTPException(status_code=404, detail=f"SourcePack {pack_id} not found")
        packs.append(pack)

    merged = _services().builder.merge(packs)
    merged_id = await db.save_source_pack(merged)
    return {"id": merged_id, "sourcePack": merged.to_dict()}


@app.get("/api/source-packs/{pack_id}")
async def get_source_pack(pack_id: str):
    pack = await db.get_source_pack(pack_id)
    if pack is None:
        raise HTTPException(status_code=404, detail="SourcePack not found")
    return {"id": pack_id, "sourcePack": pack.to_dict()}


@app.post("/api/drafts")
async def create_draft(req: DraftRequest):
    pack = await db.get_source_pack(req.source_pack_id)
    if pack is None:
        raise HTTPException(status_code=404, detail="SourcePack not found")

    config = req.config.to_config()
    output = await _services().engine.generate(pack, config, content=req.content)
    draft_id = await db.create_draft(output, req.source_pack_id)
    return {"id": draft_id, "output": output.to_dict()}


@app.get("/api/drafts/{draft_id}")
async def get_draft(draft_id: str):
    output = await db.get_draft(draft_id)
    if output is None:
        raise HTTPException(status_code=404, detail="Draft not found")
    return {"id": draft_id, "output": output.to_dict()}


# Refinements of one draft run one at a time. Entries live only while held or awaited.
_draft_locks: dict[str, tuple[asyncio.Lock, int]] = {}


@asynccontextmanager
async def _draft_lock(draft_id: str):
    lock, users = _draft_locks.get(draft_id, (asyncio.Lock(), 0))
    _draft_locks[draft_id] = (lock, users + 1)
    try:
        async with lock:
            yield
    finally:
        lock, users = _draft_locks[draft_id]
        if users == 1:
            del _draft_locks[draft_id]
        else:
            _draft_locks[draft_id] = (lock, users - 1)


@app.post("/api/drafts/{draft_id}/refine")
async def refine_draft(draft_id: str, req: RatingRequest):
    """Rate the current draft, then rewrite it from the rating and feedback.

    The stored draft is replaced only once the refinement succeeds.
    """
    async with _draft_lock(draft_id):
        output = await db.get_draft(draft_id)
        if output is None:
            raise HTTPException(status_code=404, detail="Draft not found")

        services = _services()
        await services.learning.rate(output, req.rating, req.feedback)
        refined = await services.engine.refine_output(output, req.rating, req.feedback)
        await db.update_draft(draft_id, refined)
    return {"id": draft_id, "output": refined.to_dict()}


@app.post("/api/drafts/{draft_id}/ratings")
async def rate_draft(draft_id: str, req: RatingRequest):
    output = await db.get_draft(draft_id)
    if output is None:
        raise HTTPException(status_code=404, detail="Draft not found")
    record = await _services().learning.rate(output, req.rating, req.feedback)
    return record.to_dict()


@app.get("/api/learning/{platform}/{format}")
async def get_learning(platform: Platform, format: Format):
    context = await _services().learning.get_learning_context(platform, format)
    return context.to_dict()


# --- WebSocket ---

# Active WS connections keyed by batch_id
_ws_connections: dict[str, list[WebSocket]] = {}


@app.websocket("/ws/batches/{batch_id}")
async def batch_ws(websocket: WebSocket, batch_id: str):
    """Stream per-source ingestion status for a batch."""
    await websocket.accept()
    _ws_connections.setdefault(batch_id, []).append(websocket)
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        watchers = _ws_connections.get(batch_id, [])
        if websocket in watchers:
            watchers.remove(websocket)


async def _broadcast(batch_id: str, message: dict) -> None:
    """Send a message to all WebSocket clients watching a batch."""
    for ws in list(_ws_connections.get(batch_id, [])):
        try:
            await ws.send_json(message)
        except (WebSocketDisconnect, RuntimeError) as exc:
            logger.debug("Dropping WebSocket for batch %s: %s", batch_id, exc)
            if ws in _ws_connections.get(batch_id, []):
                _ws_connections[batch_id].remove(ws)


# --- Ingestion pipeline ---

_background_tasks: set[asyncio.Task] = set()


def _start_ingestion(
    batch_id: str, registry: SourceRegistry, sources: list[SourceMaterial]
) -> None:
    task = asyncio.create_task(_run_ingestion(batch_id, registry, sources))
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)


async def _run_ingestion(
    batch_id: str, registry: SourceRegistry, sources: list[SourceMaterial]
) -> None:
    """Ingest a batch, persisting and broadcasting every status change.

    Each source is written as soon as it finishes, so one failed write
    cannot leave the rest of the batch in ``processing``.
    """
    persisted: set[str] = set()

    async def on_progress(source_id: str, status: SourceStatus) -> None:
        registry.mark(source_id, status)
        if status is SourceStatus.PROCESSING:
            await db.update_source(registry.get(source_id))
        await _broadcast(batch_id, {"type": "source_status", "id": source_id, "status": status.value})

    async def on_result(result: SourceMaterial) -> None:
        registry.apply(result)
        await db.update_source(result)
        persisted.add(result.id)

    try:
        results = await _services().ingestor.ingest_all(sources, on_progress, on_result)
        for result in results:
            if result.id in persisted:
                continue
            logger.warning("Retrying write of source %s for batch %s", result.id, batch_id)
            registry.apply(result)
            await db.update_source(result)

        await _broadcast(batch_id, {
            "type": "batch_settled",
            "ready": len(registry.ready()),
            "failed": [s.to_dict() for s in registry.failed()],
        })
    except Exception:
        logger.exception("Ingestion pipeline failed for batch %s", batch_id)
        await _broadcast(batch_id, {"type": "error", "detail": "Ingestion pipeline failed"})
