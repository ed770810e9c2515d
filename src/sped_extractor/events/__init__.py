"""Extraction events and the collector that receives them."""

from sped_extractor.events.collector import EventCollector
from sped_extractor.events.types import (
    EventType,
    ExtractionEvent,
    FileEvent,
    ResolutionEvent,
    datasets_combined,
    extraction_completed,
    extraction_failed,
    file_classified,
    file_parsed,
    rate_defaulted,
    value_derived,
    value_resolved,
)

__all__ = [
    "EventCollector",
    "EventType",
    "ExtractionEvent",
    "FileEvent",
    "ResolutionEvent",
    "datasets_combined",
    "extraction_completed",
    "extraction_failed",
    "file_classified",
    "file_parsed",
    "rate_defaulted",
    "value_derived",
    "value_resolved",
]
