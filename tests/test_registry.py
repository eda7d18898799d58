"""
Tests for the source registry: typing of new sources, status transitions
and retrying failed sources.
"""

from dataclasses import replace

import pytest

from copydesk.errors import InvalidTransitionError
from copydesk.models.source import SourceStatus, SourceType
from copydesk.orchestrator.registry import SourceRegistry, detect_source_type


@pytest.fixture
def registry():
    return SourceRegistry()


class TestAdding:
    def test_url_types(self, registry):
        assert registry.add_url("https://example.com/report").type is SourceType.URL
        assert registry.add_url(" https://youtu.be/abc ").type is SourceType.VIDEO
        assert registry.add_url("https://www.youtube.com/watch?v=x").type is SourceType.VIDEO
        assert detect_source_type("https://vimeo.com/12345") is SourceType.VIDEO
        assert detect_source_type("https://notyoutube.com/watch") is SourceType.URL

    def test_files_and_text(self, registry):
        pdf = registry.add_file("Deck.PDF", "data:application/pdf;base64,JVBERi0=")
        notes = registry.add_file("notes.txt", "plain text")
        manual = registry.add_text("my thoughts")

        assert pdf.type is SourceType.PDF
        assert pdf.source == "Deck.PDF"
        assert notes.type is SourceType.FILE
        assert manual.type is SourceType.TEXT
        assert manual.source == "Manual notes"

    def test_new_sources_are_pending_with_unique_ids(self, registry):
        added = [registry.add_text(str(i)) for i in range(20)]
        assert len({s.id for s in added}) == 20
        assert all(s.status is SourceStatus.PENDING for s in added)
        assert [s.id for s in registry] == [s.id for s in added]

    def test_remove(self, registry):
        source = registry.add_text("x")
        registry.remove(source.id)
        assert len(registry) == 0


class TestTransitions:
    def test_happy_path(self, registry):
        source = registry.add_text("x")
        registry.mark(source.id, SourceStatus.PROCESSING)
        assert registry.mark(source.id, SourceStatus.READY).status is SourceStatus.READY
        assert registry.settled

    @pytest.mark.parametrize("target", [SourceStatus.READY, SourceStatus.ERROR])
    def test_cannot_skip_processing(self, registry, target):
        source = registry.add_text("x")
        with pytest.raises(InvalidTransitionError):
            registry.mark(source.id, target)

    def test_ready_is_final(self, registry):
        source = registry.add_text("x")
        registry.mark(source.id, SourceStatus.PROCESSING)
        registry.mark(source.id, SourceStatus.READY)
        with pytest.raises(InvalidTransitionError):
            registry.mark(source.id, SourceStatus.PENDING)

    def test_apply_moves_through_processing(self, registry):
        source = registry.add_url("https://example.com/a")
        result = replace(source, status=SourceStatus.READY, content="text")

        registry.apply(result)

        assert registry.get(source.id).content == "text"
        assert registry.ready() == [result]

    def test_settled_needs_every_source_terminal(self, registry):
        first = registry.add_text("a")
        registry.add_text("b")
        registry.apply(replace(first, status=SourceStatus.READY))
        assert not registry.settled
        assert len(registry.pending()) == 1


class TestRetry:
    def test_retry_restores_the_original_payload(self, registry):
        payload = "data:application/pdf;base64,JVBERi0="
        pdf = registry.add_file("deck.pdf", payload)
        ok = registry.add_text("fine")
        registry.apply(replace(pdf, status=SourceStatus.ERROR, content="Error: No text extracted"))
        registry.apply(replace(ok, status=SourceStatus.READY))

        retried = registry.retry_failed()

        assert [s.id for s in retried] == [pdf.id]
        assert retried[0].status is SourceStatus.PENDING
        assert retried[0].content == payload
        assert registry.get(ok.id).status is SourceStatus.READY
        assert registry.failed() == []

    def test_retry_from_persisted_state(self):
        url = "https://example.com/a"
        seed = SourceRegistry()
        source = seed.add_url(url)
        failed = replace(source, status=SourceStatus.ERROR, content="Error: timeout")

        registry = SourceRegistry([failed], {source.id: url})
        retried = registry.retry_failed()

        assert retried[0].content == url

    def test_retry_without_payload_uses_origin(self):
        seed = SourceRegistry()
        source = seed.add_url("https://example.com/a")
        failed = replace(source, status=SourceStatus.ERROR, content="Error: timeout")

        retried = SourceRegistry([failed]).retry_failed()

        assert retried[0].content == "https://example.com/a"
