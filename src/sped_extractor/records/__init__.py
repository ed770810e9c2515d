"""Record layouts and the line dispatcher."""

from sped_extractor.records.dispatcher import (
    DEFAULT_LAYOUTS,
    DispatchResult,
    LineError,
    RecordDispatcher,
)
from sped_extractor.records.layouts import (
    FieldSpec,
    LayoutTable,
    RecordLayout,
    layout_table,
)
from sped_extractor.records.types import ParsedRecord, RecordKind

__all__ = [
    "DEFAULT_LAYOUTS",
    "DispatchResult",
    "FieldSpec",
    "LayoutTable",
    "LineError",
    "ParsedRecord",
    "RecordDispatcher",
    "RecordKind",
    "RecordLayout",
    "layout_table",
]
