"""Event type definitions for extraction diagnostics.

Events describe what the extractor decided and why: which file family was
detected, which source fed each resolved figure, when a statutory default
replaced a computed value.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any
from uuid import UUID, uuid4


class EventType(str, Enum):
    """Types of events emitted during an extraction."""

    # File lifecycle
    FILE_CLASSIFIED = "file.classified"
    FILE_PARSED = "file.parsed"
    DATASETS_COMBINED = "datasets.combined"

    # Resolution decisions
    VALUE_RESOLVED = "value.resolved"
    VALUE_DERIVED = "value.derived"
    RATE_DEFAULTED = "rate.defaulted"

    # Extraction lifecycle
    EXTRACTION_COMPLETED = "extraction.completed"
    EXTRACTION_FAILED = "extraction.failed"


@dataclass
class ExtractionEvent:
    """Base event structure for all extraction events."""

    event_type: EventType
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    event_id: UUID = field(default_factory=uuid4)
    data: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Serialize event to a dictionary."""
        return {
            "id": str(self.event_id),
            "type": self.event_type.value,
            "timestamp": self.timestamp.isoformat(),
            "data": self.data,
        }


@dataclass
class FileEvent(ExtractionEvent):
    """Event about one input file."""

    file_name: str | None = None
    file_type: str = ""

    def to_dict(self) -> dict[str, Any]:
        base = super().to_dict()
        base["file"] = {"name": self.file_name, "type": self.file_type}
        return base


@dataclass
class ResolutionEvent(ExtractionEvent):
    """One resolution decision: which strategy produced a figure."""

    subject: str = ""
    strategy: str = ""
    provenance: str = ""
    value: float = 0.0
    reason: str = ""

    def to_dict(self) -> dict[str, Any]:
        base = super().to_dict()
        base["resolution"] = {
            "subject": self.subject,
            "strategy": self.strategy,
            "provenance": self.provenance,
            "value": self.value,
            "reason": self.reason,
        }
        return base


# Factory functions


def file_classified(file_name: str | None, file_type: str, method: str) -> FileEvent:
    return FileEvent(
        event_type=EventType.FILE_CLASSIFIED,
        file_name=file_name,
        file_type=file_type,
        data={"method": method},
    )


def file_parsed(
    file_name: str | None, file_type: str, summary: dict[str, Any]
) -> FileEvent:
    return FileEvent(
        event_type=EventType.FILE_PARSED,
        file_name=file_name,
        file_type=file_type,
        data=summary,
    )


def datasets_combined(files: int, file_types: list[str]) -> ExtractionEvent:
    return ExtractionEvent(
        event_type=EventType.DATASETS_COMBINED,
        data={"files": files, "file_types": file_types},
    )


def value_resolved(
    subject: str,
    strategy: str,
    provenance: str,
    value: float,
    reason: str = "",
    details: dict[str, Any] | None = None,
) -> ResolutionEvent:
    return ResolutionEvent(
        event_type=EventType.VALUE_RESOLVED,
        subject=subject,
        strategy=strategy,
        provenance=provenance,
        value=value,
        reason=reason,
        data=details or {},
    )


def value_derived(
    subject: str, sibling: str, ratio: float, value: float
) -> ResolutionEvent:
    return ResolutionEvent(
        event_type=EventType.VALUE_DERIVED,
        subject=subject,
        strategy=f"derived_from_{sibling}",
        provenance="derived",
        value=value,
        reason=f"no ledger data; {sibling} available",
        data={"sibling": sibling, "ratio": ratio},
    )


def rate_defaulted(tax: str, computed: float, default: float) -> ResolutionEvent:
    return ResolutionEvent(
        event_type=EventType.RATE_DEFAULTED,
        subject=f"{tax}_aliquota_efetiva",
        strategy="statutory_default",
        provenance="estimated",
        value=default,
        reason="computed rate outside [0, 100]",
        data={"computed": computed},
    )


def extraction_completed(reliability: str, issues: int) -> ExtractionEvent:
    return ExtractionEvent(
        event_type=EventType.EXTRACTION_COMPLETED,
        data={"reliability": reliability, "issues": issues},
    )


def extraction_failed(message: str, details: dict[str, Any] | None = None) -> ExtractionEvent:
    return ExtractionEvent(
        event_type=EventType.EXTRACTION_FAILED,
        data={"message": message, **(details or {})},
    )
