"""SPED Extractor - tax-simulation parameters from Brazilian SPED bookkeeping files."""

__version__ = "0.1.0"

from sped_extractor.aggregator import SpedDataset, aggregate_records
from sped_extractor.classifier import FileType, classify_file
from sped_extractor.combiner import combine_datasets, merge_datasets
from sped_extractor.config import (
    StatutoryTables,
    configure_logging,
    get_settings,
    load_statutory_tables,
)
from sped_extractor.events import EventCollector, EventType, ExtractionEvent
from sped_extractor.extractor import ExtractionResult, SpedExtractor, SpedFile, extract
from sped_extractor.normalizers import (
    normalize_text,
    parse_monetary,
    parse_sped_date,
    safe_amount,
)
from sped_extractor.records import RecordDispatcher, RecordKind, RecordLayout
from sped_extractor.resolvers import (
    CompanyProfile,
    Provenance,
    Sector,
    SourcedValue,
    TaxComposition,
)

__all__ = [
    # Version
    "__version__",
    # Service
    "SpedExtractor",
    "SpedFile",
    "ExtractionResult",
    "extract",
    # Parsing
    "FileType",
    "classify_file",
    "RecordDispatcher",
    "RecordKind",
    "RecordLayout",
    "SpedDataset",
    "aggregate_records",
    "merge_datasets",
    "combine_datasets",
    # Resolution
    "CompanyProfile",
    "Provenance",
    "Sector",
    "SourcedValue",
    "TaxComposition",
    # Normalizers
    "parse_monetary",
    "parse_sped_date",
    "safe_amount",
    "normalize_text",
    # Config & Events
    "StatutoryTables",
    "load_statutory_tables",
    "configure_logging",
    "get_settings",
    "EventCollector",
    "EventType",
    "ExtractionEvent",
]
