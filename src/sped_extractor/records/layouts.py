"""Declarative record layouts.

Each SPED record type is described by a ``RecordLayout``: the minimum number
of split fields it needs, the kind/category it is routed under, and the
positions of the fields worth keeping. Position N is the official field
number N of the published layout, because the leading delimiter puts an
empty string at index 0 and the record code at index 1.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Any

from sped_extractor.classifier import FileType
from sped_extractor.normalizers import parse_monetary, parse_sped_date
from sped_extractor.records.types import ParsedRecord, RecordKind

FieldParser = Callable[[str], Any]
Derivation = Callable[[dict[str, Any]], dict[str, Any]]


def _text(raw: str) -> str:
    return raw.strip()


@dataclass(frozen=True)
class FieldSpec:
    """A named field at a fixed position."""

    name: str
    index: int
    parser: FieldParser = _text

    def extract(self, parts: list[str]) -> Any:
        raw = parts[self.index] if self.index < len(parts) else ""
        return self.parser(raw)


def text(name: str, index: int) -> FieldSpec:
    return FieldSpec(name, index, _text)


def money(name: str, index: int) -> FieldSpec:
    return FieldSpec(name, index, parse_monetary)


def day(name: str, index: int) -> FieldSpec:
    return FieldSpec(name, index, parse_sped_date)


@dataclass(frozen=True)
class RecordLayout:
    """Decoder for one record code.

    ``revisions`` lists later versions of the layout as pairs of the minimum
    split length that identifies the version and its field positions. A line
    is decoded with the newest version it is long enough for, or with
    ``fields`` otherwise.
    """

    code: str
    min_fields: int
    kind: RecordKind
    category: str
    fields: tuple[FieldSpec, ...] = ()
    derive: Derivation | None = None
    description: str = ""
    revisions: tuple[tuple[int, tuple[FieldSpec, ...]], ...] = ()

    def fields_for(self, size: int) -> tuple[FieldSpec, ...]:
        chosen = self.fields
        for min_size, fields in sorted(self.revisions, key=lambda revision: revision[0]):
            if size >= min_size:
                chosen = fields
        return chosen

    def decode(
        self, parts: list[str], file_type: FileType, line_number: int
    ) -> ParsedRecord | None:
        """Decode a split line, or return None when it is too short."""
        if len(parts) < self.min_fields:
            return None

        values = {
            field_spec.name: field_spec.extract(parts)
            for field_spec in self.fields_for(len(parts))
        }
        if self.derive is not None:
            values.update(self.derive(values))

        return ParsedRecord(
            code=self.code,
            kind=self.kind,
            category=self.category,
            file_type=file_type,
            line_number=line_number,
            values=values,
        )


@dataclass(frozen=True)
class LayoutTable:
    """Record layouts for one file family, keyed by record code."""

    file_type: FileType
    layouts: dict[str, RecordLayout] = field(default_factory=dict)

    def get(self, code: str) -> RecordLayout | None:
        return self.layouts.get(code)

    def __contains__(self, code: object) -> bool:
        return code in self.layouts

    def __len__(self) -> int:
        return len(self.layouts)


def layout_table(file_type: FileType, layouts: Iterable[RecordLayout]) -> LayoutTable:
    """Index layouts by code, rejecting duplicates."""
    indexed: dict[str, RecordLayout] = {}
    for layout in layouts:
        if layout.code in indexed:
            raise ValueError(f"{file_type.value}: duplicate layout for {layout.code}")
        indexed[layout.code] = layout
    return LayoutTable(file_type=file_type, layouts=indexed)


def block_openers(codes: Iterable[str]) -> list[RecordLayout]:
    """Layouts for the ``X001`` block-opening records."""
    return [
        RecordLayout(
            code, 3, RecordKind.OTHER, "abertura_bloco", (text("ind_mov", 2),)
        )
        for code in codes
    ]


def control_records() -> list[RecordLayout]:
    """Layouts for the block 9 control records shared by every family."""
    return [
        RecordLayout(
            "9900",
            4,
            RecordKind.OTHER,
            "controle",
            (text("reg_blc", 2), text("qtd_reg_blc", 3)),
        ),
        RecordLayout("9990", 3, RecordKind.OTHER, "controle", (text("qtd_lin", 2),)),
        RecordLayout("9999", 3, RecordKind.OTHER, "controle", (text("qtd_lin", 2),)),
    ]


def participant_layout() -> RecordLayout:
    """0150 participant register, identical in both EFD families."""
    return RecordLayout(
        "0150",
        11,
        RecordKind.PARTICIPANT,
        "participante",
        (
            text("cod_part", 2),
            text("nome", 3),
            text("cod_pais", 4),
            text("cnpj", 5),
            text("cpf", 6),
            text("ie", 7),
            text("cod_mun", 8),
            text("suframa", 9),
            text("endereco", 10),
            text("num", 11),
        ),
    )


def first_positive(*names: str) -> Callable[[dict[str, Any]], float]:
    """Pick the first positive amount among the given fields."""

    def pick(values: dict[str, Any]) -> float:
        for name in names:
            amount = values.get(name) or 0.0
            if amount > 0:
                return amount
        return 0.0

    return pick
