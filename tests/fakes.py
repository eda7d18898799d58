"""Fake backends and builders shared by the tests."""

import asyncio
import json

from copydesk.backends.base import ExtractionResult
from copydesk.models.source import SourceMaterial, SourceStatus, SourceType
from copydesk.models.source_pack import ContextHeader, Quality, SourcePack


class FakeGenerator:
    """Returns queued responses in order; exceptions in the queue are raised."""

    name = "Fake"

    def __init__(self, *responses, delay: float = 0.0):
        self.responses = list(responses)
        self.delay = delay
        self.prompts: list[str] = []
        self.json_flags: list[bool] = []

    async def complete(self, prompt: str, json_output: bool = False) -> str:
        self.prompts.append(prompt)
        self.json_flags.append(json_output)
        if self.delay:
            await asyncio.sleep(self.delay)
        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, Exception):
            raise response
        return response


class FakeExtractor:
    """URL extractor keyed by URL; tracks how many calls overlap."""

    name = "FakeApify"

    def __init__(self, results: dict, delay: float = 0.01):
        self.results = results
        self.delay = delay
        self.in_flight = 0
        self.max_in_flight = 0

    async def extract(self, url: str) -> ExtractionResult:
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
            result = self.results[url]
            if isinstance(result, Exception):
                raise result
            return result
        finally:
            self.in_flight -= 1


class FakeDocumentExtractor:
    name = "FakeGemini"

    def __init__(self, text: str = "PDF text body", error: Exception | None = None):
        self.text = text
        self.error = error
        self.calls: list[tuple[str, str]] = []

    async def extract_document(self, payload: str, filename: str) -> str:
        self.calls.append((payload, filename))
        if self.error is not None:
            raise self.error
        return self.text


def make_source(
    id: str = "source-1",
    type: SourceType = SourceType.TEXT,
    content: str = "Some source text",
    source: str = "Manual notes",
    status: SourceStatus = SourceStatus.READY,
) -> SourceMaterial:
    return SourceMaterial(id=id, type=type, content=content, source=source, status=status)


def make_pack(**overrides) -> SourcePack:
    values = dict(
        context_header=ContextHeader(topic="Sunbelt multifamily", markets=["Austin", "Phoenix"]),
        verified_facts=[
            "Austin vacancy hit 14.1% in Q3 2024",
            "Phoenix deliveries totaled 23,000 units in 2024",
            "Cap rates widened 150 bps since 2022",
        ],
        capital_signals=["Debt funds provided 40% of bridge loans"],
        quotes=["We are underwriting flat rents through 2026"],
        quality=Quality.STRONG,
        quality_notes="Three sources with hard numbers.",
    )
    values.update(overrides)
    return SourcePack(**values)


def extraction_json(quality: str = "strong", facts: int = 3, quotes: int = 1, signals: int = 1) -> str:
    return json.dumps({
        "contextHeader": {
            "topic": "Sunbelt multifamily",
            "assetClass": "Multifamily",
            "markets": ["Austin", "Phoenix"],
            "timeHorizon": "2024-2026",
            "intendedOutput": "LinkedIn post",
        },
        "verifiedFacts": [f"Fact {i} with {i * 10}% change" for i in range(1, facts + 1)],
        "operatingFundamentals": ["Concessions at 8 weeks free"],
        "capitalSignals": [f"Signal {i}" for i in range(1, signals + 1)],
        "supplyPipeline": [],
        "quotes": [f"Quote {i}" for i in range(1, quotes + 1)],
        "mechanicalImplications": [],
        "commonMisreads": [],
        "investorQuestions": [],
        "quality": quality,
        "qualityNotes": "Self-assessed.",
    })
