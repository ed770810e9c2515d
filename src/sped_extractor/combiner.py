"""Cross-file merge of aggregated datasets.

Merging is a pure fold: every call builds a new ``SpedDataset`` from its two
inputs and leaves both untouched. The order of the inputs only matters for
ties in company identity and for scalar facts, where the earlier input wins.
"""

from __future__ import annotations

from collections.abc import Iterable
from functools import reduce
from typing import Any

import structlog

from sped_extractor.aggregator import (
    LIST_CATEGORIES,
    MAP_CATEGORIES,
    DatasetMetadata,
    SpedDataset,
    identity_score,
)

logger = structlog.get_logger(__name__)


def _merge_map(
    left: dict[str, list[dict[str, Any]]], right: dict[str, list[dict[str, Any]]]
) -> dict[str, list[dict[str, Any]]]:
    merged = {key: list(entries) for key, entries in left.items()}
    for key, entries in right.items():
        merged[key] = merged.get(key, []) + list(entries)
    return merged


def _merge_totals(
    left: dict[str, dict[str, float]], right: dict[str, dict[str, float]]
) -> dict[str, dict[str, float]]:
    merged = {group: dict(values) for group, values in left.items()}
    for group, values in right.items():
        target = merged.setdefault(group, {})
        for category, amount in values.items():
            target[category] = target.get(category, 0.0) + amount
    return merged


def _merge_scalars(left: dict[str, float], right: dict[str, float]) -> dict[str, float]:
    merged = dict(left)
    for name, value in right.items():
        if not merged.get(name) and value:
            merged[name] = value
    return merged


def _pick_company(left: dict[str, Any], right: dict[str, Any]) -> dict[str, Any]:
    if identity_score(right) > identity_score(left):
        return dict(right)
    return dict(left)


def _merge_metadata(left: DatasetMetadata, right: DatasetMetadata) -> DatasetMetadata:
    counts = dict(left.record_counts)
    for code, count in right.record_counts.items():
        counts[code] = counts.get(code, 0) + count
    return DatasetMetadata(
        files=left.files + right.files,
        errors=left.errors + right.errors,
        record_counts=counts,
    )


def merge_datasets(left: SpedDataset, right: SpedDataset) -> SpedDataset:
    """Merge two datasets into a new one."""
    identities = dict(left.identities)
    for source, identity in right.identities.items():
        identities.setdefault(source, dict(identity))

    lists = {
        name: list(getattr(left, name)) + list(getattr(right, name))
        for name in LIST_CATEGORIES
    }
    maps = {
        name: _merge_map(getattr(left, name), getattr(right, name))
        for name in MAP_CATEGORIES
    }

    return SpedDataset(
        file_types=left.file_types + right.file_types,
        company=_pick_company(left.company, right.company),
        identities=identities,
        scalars=_merge_scalars(left.scalars, right.scalars),
        calculated_totals=_merge_totals(left.calculated_totals, right.calculated_totals),
        metadata=_merge_metadata(left.metadata, right.metadata),
        **lists,
        **maps,
    )


def combine_datasets(datasets: Iterable[SpedDataset]) -> SpedDataset:
    """Fold any number of per-file datasets into one consolidated dataset."""
    combined = reduce(merge_datasets, datasets, SpedDataset.empty())
    logger.debug(
        "datasets_combined",
        files=len(combined.metadata.files),
        file_types=[ft.value for ft in combined.file_types],
    )
    return combined
