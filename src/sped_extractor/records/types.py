"""Typed records produced by the dispatcher."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from sped_extractor.classifier import FileType


class RecordKind(str, Enum):
    """Closed set of record kinds the aggregator knows how to route."""

    COMPANY = "empresa"
    DOCUMENT = "documento"
    LINE_ITEM = "item_documento"
    ANALYTIC = "analitico"
    PARTICIPANT = "participante"
    CREDIT = "credito"
    DEBIT = "debito"
    REGIME = "regime"
    ADJUSTMENT = "ajuste"
    UNTAXED_REVENUE = "receita_nao_tributada"
    BALANCE_SHEET = "balanco"
    INCOME_STATEMENT = "dre"
    TOTALIZATION = "totalizacao"
    OTHER = "outro"


@dataclass(frozen=True)
class ParsedRecord:
    """One decoded SPED line."""

    code: str
    kind: RecordKind
    category: str
    file_type: FileType
    line_number: int
    values: dict[str, Any] = field(default_factory=dict)

    def get(self, name: str, default: Any = None) -> Any:
        return self.values.get(name, default)

    def to_dict(self) -> dict[str, Any]:
        """Flatten into the dict shape stored by the aggregator."""
        return {
            "registro": self.code,
            "linha": self.line_number,
            "categoria": self.category,
            **self.values,
        }
