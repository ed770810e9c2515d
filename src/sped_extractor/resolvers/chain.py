"""Provenance-tagged values and the first-success strategy combinator."""

from __future__ import annotations

import math
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, TypeVar

import structlog

from sped_extractor.events import EventCollector, value_resolved

logger = structlog.get_logger(__name__)

C = TypeVar("C")
T = TypeVar("T")


class Provenance(str, Enum):
    """Where a resolved figure came from."""

    FROM_LEDGER = "from-ledger"
    ESTIMATED = "estimated"
    DERIVED = "derived"


@dataclass(frozen=True)
class SourcedValue:
    """A non-negative amount tagged with its provenance."""

    value: float
    provenance: Provenance
    metadata: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if isinstance(self.value, bool) or not isinstance(self.value, (int, float)):
            raise ValueError(f"SourcedValue requires a number, got {self.value!r}")
        if not math.isfinite(self.value) or self.value < 0:
            raise ValueError(f"SourcedValue must be finite and >= 0, got {self.value}")
        object.__setattr__(self, "value", float(self.value))

    @classmethod
    def estimated(cls, value: float, **metadata: Any) -> SourcedValue:
        return cls(value, Provenance.ESTIMATED, metadata)

    @classmethod
    def from_ledger(cls, value: float, **metadata: Any) -> SourcedValue:
        return cls(value, Provenance.FROM_LEDGER, metadata)

    @classmethod
    def derived(cls, value: float, **metadata: Any) -> SourcedValue:
        return cls(value, Provenance.DERIVED, metadata)

    @property
    def is_from_ledger(self) -> bool:
        return self.provenance is Provenance.FROM_LEDGER

    def to_dict(self) -> dict[str, Any]:
        return {
            "valor": self.value,
            "fonte": self.provenance.value,
            "metadados": dict(self.metadata),
        }


@dataclass(frozen=True)
class Strategy(Generic[C]):
    """A named way of obtaining a figure from a context.

    The accessor returns None (or a non-positive amount) when its source has
    nothing to offer, letting the next strategy in the chain try.
    """

    name: str
    provenance: Provenance
    accessor: Callable[[C], float | None]
    description: str = ""

    def attempt(self, context: C) -> float | None:
        value = self.accessor(context)
        if value is None or isinstance(value, bool):
            return None
        if not math.isfinite(value) or value <= 0:
            return None
        return float(value)


def resolve_first(
    subject: str,
    strategies: Sequence[Strategy[C]],
    context: C,
    collector: EventCollector | None = None,
    fallback: SourcedValue | None = None,
) -> SourcedValue:
    """Return the value of the first strategy yielding a positive amount.

    Args:
        subject: Name of the figure being resolved (for events and logs).
        strategies: Ordered strategies; earlier ones take priority.
        context: Object handed to every accessor.
        collector: Receives one event describing the decision.
        fallback: Result when no strategy succeeds. Defaults to an estimated 0.

    Returns:
        The resolved, provenance-tagged value.
    """
    skipped: list[str] = []
    for strategy in strategies:
        value = strategy.attempt(context)
        if value is None:
            skipped.append(strategy.name)
            continue
        result = SourcedValue(
            value,
            strategy.provenance,
            {"estrategia": strategy.name, "descricao": strategy.description},
        )
        _publish(subject, result, strategy.name, skipped, collector)
        return result

    result = fallback or SourcedValue.estimated(0.0, estrategia="sem_fonte")
    _publish(subject, result, str(result.metadata.get("estrategia", "fallback")), skipped, collector)
    return result


def first_present(
    candidates: Sequence[tuple[str, Callable[[C], T | None]]], context: C
) -> tuple[str, T] | None:
    """Return ``(name, value)`` of the first accessor giving a non-empty value.

    Used for non-numeric figures (names, regime labels) where "empty" is the
    only failure mode.
    """
    for name, accessor in candidates:
        value = accessor(context)
        if value:
            return name, value
    return None


def _publish(
    subject: str,
    result: SourcedValue,
    strategy: str,
    skipped: list[str],
    collector: EventCollector | None,
) -> None:
    reason = f"skipped: {', '.join(skipped)}" if skipped else "first strategy"
    if collector is None:
        logger.debug(
            "value_resolved",
            subject=subject,
            strategy=strategy,
            provenance=result.provenance.value,
            value=result.value,
        )
    else:
        collector.publish(
            value_resolved(
                subject,
                strategy,
                result.provenance.value,
                result.value,
                reason=reason,
                details={"skipped": list(skipped)},
            )
        )
