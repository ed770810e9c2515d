"""Tests for the event system."""

from datetime import datetime, timezone
from unittest.mock import MagicMock
from uuid import uuid4

from sped_extractor.events import (
    EventCollector,
    EventType,
    ExtractionEvent,
    datasets_combined,
    extraction_completed,
    extraction_failed,
    file_classified,
    file_parsed,
    rate_defaulted,
    value_derived,
    value_resolved,
)
from sped_extractor.events.types import FileEvent, ResolutionEvent


class TestEventTypes:
    """Tests for event type definitions."""

    def test_event_type_values(self):
        """Test that all event types have correct values."""
        assert EventType.FILE_CLASSIFIED.value == "file.classified"
        assert EventType.VALUE_RESOLVED.value == "value.resolved"
        assert EventType.RATE_DEFAULTED.value == "rate.defaulted"
        assert EventType.EXTRACTION_FAILED.value == "extraction.failed"

    def test_extraction_event_to_dict(self):
        """Test basic event serialization."""
        event = ExtractionEvent(
            event_type=EventType.DATASETS_COMBINED,
            data={"files": 2},
        )

        result = event.to_dict()

        assert result["type"] == "datasets.combined"
        assert result["data"] == {"files": 2}
        assert "id" in result
        assert "timestamp" in result

    def test_event_with_explicit_identity(self):
        event_id = uuid4()
        timestamp = datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)
        event = ExtractionEvent(
            event_type=EventType.EXTRACTION_COMPLETED,
            event_id=event_id,
            timestamp=timestamp,
        )

        result = event.to_dict()

        assert result["id"] == str(event_id)
        assert result["timestamp"] == "2024-01-15T10:30:00+00:00"

    def test_file_event_to_dict(self):
        event = FileEvent(
            event_type=EventType.FILE_PARSED,
            file_name="efd.txt",
            file_type="fiscal",
        )
        assert event.to_dict()["file"] == {"name": "efd.txt", "type": "fiscal"}

    def test_resolution_event_to_dict(self):
        event = ResolutionEvent(
            event_type=EventType.VALUE_RESOLVED,
            subject="pis_debito",
            strategy="m200_debitos",
            provenance="from-ledger",
            value=1650.0,
        )
        resolution = event.to_dict()["resolution"]
        assert resolution["subject"] == "pis_debito"
        assert resolution["value"] == 1650.0


class TestEventFactories:
    """Tests for event factory functions."""

    def test_file_classified(self):
        event = file_classified("ecf.txt", "ecf", "nome")
        assert event.event_type == EventType.FILE_CLASSIFIED
        assert event.file_name == "ecf.txt"
        assert event.data == {"method": "nome"}

    def test_file_parsed(self):
        event = file_parsed(None, "fiscal", {"processed": 10})
        assert event.event_type == EventType.FILE_PARSED
        assert event.file_name is None
        assert event.data["processed"] == 10

    def test_datasets_combined(self):
        event = datasets_combined(2, ["fiscal", "contribuicoes"])
        assert event.data == {"files": 2, "file_types": ["fiscal", "contribuicoes"]}

    def test_value_resolved(self):
        event = value_resolved(
            "faturamento_mensal",
            "total_saidas_fiscal",
            "from-ledger",
            10000.0,
            reason="skipped: receita_bruta_contribuicoes",
            details={"skipped": ["receita_bruta_contribuicoes"]},
        )
        assert event.event_type == EventType.VALUE_RESOLVED
        assert event.strategy == "total_saidas_fiscal"
        assert event.data["skipped"] == ["receita_bruta_contribuicoes"]

    def test_value_derived(self):
        event = value_derived("cofins_debito", "pis", 4.6, 7600.0)
        assert event.event_type == EventType.VALUE_DERIVED
        assert event.provenance == "derived"
        assert event.strategy == "derived_from_pis"
        assert event.data == {"sibling": "pis", "ratio": 4.6}

    def test_rate_defaulted(self):
        event = rate_defaulted("icms", 250.0, 18.0)
        assert event.subject == "icms_aliquota_efetiva"
        assert event.value == 18.0
        assert event.data == {"computed": 250.0}

    def test_extraction_lifecycle(self):
        completed = extraction_completed("alta", 0)
        failed = extraction_failed("boom", {"files": 1})
        assert completed.data == {"reliability": "alta", "issues": 0}
        assert failed.event_type == EventType.EXTRACTION_FAILED
        assert failed.data == {"message": "boom", "files": 1}


class TestEventCollector:
    """Tests for the in-process collector."""

    def test_publish_buffers_in_order(self):
        collector = EventCollector()
        first = extraction_completed("alta", 0)
        second = extraction_failed("erro")

        collector.publish(first)
        collector.publish(second)

        assert collector.recent_events == [first, second]

    def test_buffer_size_limit(self):
        collector = EventCollector(buffer_size=2)
        for issues in range(5):
            collector.publish(extraction_completed("baixa", issues))

        events = collector.recent_events
        assert len(events) == 2
        assert events[-1].data["issues"] == 4

    def test_events_of(self):
        collector = EventCollector()
        collector.publish(file_classified("a.txt", "fiscal", "nome"))
        collector.publish(extraction_completed("alta", 0))

        classified = collector.events_of(EventType.FILE_CLASSIFIED)

        assert len(classified) == 1
        assert classified[0].file_name == "a.txt"

    def test_hooks_receive_events(self):
        collector = EventCollector()
        hook = MagicMock()
        collector.add_event_hook(hook)

        event = extraction_completed("media", 1)
        collector.publish(event)

        hook.assert_called_once_with(event)

    def test_remove_hook(self):
        collector = EventCollector()
        hook = MagicMock()
        collector.add_event_hook(hook)
        collector.remove_event_hook(hook)
        collector.remove_event_hook(hook)

        collector.publish(extraction_completed("alta", 0))

        hook.assert_not_called()

    def test_failing_hook_does_not_stop_others(self):
        collector = EventCollector()
        failing = MagicMock(side_effect=RuntimeError("hook quebrado"))
        working = MagicMock()
        collector.add_event_hook(failing)
        collector.add_event_hook(working)

        collector.publish(extraction_completed("alta", 0))

        working.assert_called_once()
        assert len(collector.recent_events) == 1

    def test_clear(self):
        collector = EventCollector()
        collector.publish(extraction_completed("alta", 0))
        collector.clear()
        assert collector.recent_events == []
