"""Per-file aggregation of decoded records into categorized collections."""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import date
from typing import Any

import structlog

from sped_extractor.classifier import FileType
from sped_extractor.normalizers import months_between, normalize_text, safe_amount
from sped_extractor.records.dispatcher import DispatchResult, LineError
from sped_extractor.records.types import ParsedRecord, RecordKind

logger = structlog.get_logger(__name__)

IDENTITY_FIELDS = ("nome", "cnpj", "uf", "ie", "cod_mun", "im")

LIST_CATEGORIES = (
    "documents",
    "line_items",
    "analytics",
    "participants",
    "balance_sheet",
    "income_statement",
)
MAP_CATEGORIES = (
    "credits",
    "debits",
    "regimes",
    "adjustments",
    "untaxed_revenue",
    "totalizations",
    "details",
)

_LIST_KINDS = {
    RecordKind.DOCUMENT: "documents",
    RecordKind.LINE_ITEM: "line_items",
    RecordKind.ANALYTIC: "analytics",
    RecordKind.PARTICIPANT: "participants",
    RecordKind.BALANCE_SHEET: "balance_sheet",
    RecordKind.INCOME_STATEMENT: "income_statement",
}
_MAP_KINDS = {
    RecordKind.CREDIT: "credits",
    RecordKind.DEBIT: "debits",
    RecordKind.REGIME: "regimes",
    RecordKind.ADJUSTMENT: "adjustments",
    RecordKind.UNTAXED_REVENUE: "untaxed_revenue",
    RecordKind.TOTALIZATION: "totalizations",
    RecordKind.OTHER: "details",
}

OUTBOUND = "1"
INBOUND = "0"
# Regular and late-issued documents; cancelled / denied ones are excluded
REGULAR_SITUATIONS = frozenset({"", "00", "01"})

# (code prefixes, keyword groups) used to find income statement lines
GROSS_REVENUE = (("3.01",), (("RECEITA", "BRUTA"),))
NET_REVENUE = (("3.02",), (("RECEITA", "LIQUIDA"),))
COST_OF_SALES = (("3.03",), (("CUSTO", "VENDAS"), ("CUSTO", "MERCADORIAS")))
OPERATING_EXPENSES = (("3.04",), (("DESPESAS", "OPERACIONAIS"),))

CLIENT_BALANCE = ((), (("CLIENTES",), ("DUPLICATAS", "RECEBER"), ("CONTAS", "RECEBER")))
SUPPLIER_BALANCE = ((), (("FORNECEDORES",),))
INVENTORY_BALANCE = ((), (("ESTOQUE",),))


@dataclass(frozen=True)
class FileSummary:
    """Counters of one parsed file."""

    file_type: FileType
    file_name: str | None = None
    lines: int = 0
    processed: int = 0
    ignored: int = 0
    malformed: int = 0
    errors: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "arquivo": self.file_name,
            "tipo": self.file_type.value,
            "linhas": self.lines,
            "processados": self.processed,
            "ignorados": self.ignored,
            "malformados": self.malformed,
            "erros": self.errors,
        }


@dataclass(frozen=True)
class DatasetMetadata:
    """Files processed, accumulated non-fatal errors and record counts."""

    files: tuple[FileSummary, ...] = ()
    errors: tuple[LineError, ...] = ()
    record_counts: dict[str, int] = field(default_factory=dict)

    @property
    def processed(self) -> int:
        return sum(f.processed for f in self.files)

    @property
    def ignored(self) -> int:
        return sum(f.ignored for f in self.files)

    @property
    def malformed(self) -> int:
        return sum(f.malformed for f in self.files)

    def to_dict(self) -> dict[str, Any]:
        return {
            "arquivos": [f.to_dict() for f in self.files],
            "tipos_detectados": [f.file_type.value for f in self.files],
            "registros_processados": self.processed,
            "registros_ignorados": self.ignored,
            "registros_malformados": self.malformed,
            "erros": [e.to_dict() for e in self.errors],
            "contagem_registros": dict(sorted(self.record_counts.items())),
        }


@dataclass(frozen=True)
class SpedDataset:
    """Categorized collections from one file, or several combined files.

    ``identities`` keeps the company block of each file family so the name
    resolver can try the sources in a fixed order; ``company`` is the
    consolidated identity.
    """

    file_types: tuple[FileType, ...] = ()
    company: dict[str, Any] = field(default_factory=dict)
    identities: dict[str, dict[str, Any]] = field(default_factory=dict)

    documents: list[dict[str, Any]] = field(default_factory=list)
    line_items: list[dict[str, Any]] = field(default_factory=list)
    analytics: list[dict[str, Any]] = field(default_factory=list)
    participants: list[dict[str, Any]] = field(default_factory=list)
    balance_sheet: list[dict[str, Any]] = field(default_factory=list)
    income_statement: list[dict[str, Any]] = field(default_factory=list)

    credits: dict[str, list[dict[str, Any]]] = field(default_factory=dict)
    debits: dict[str, list[dict[str, Any]]] = field(default_factory=dict)
    regimes: dict[str, list[dict[str, Any]]] = field(default_factory=dict)
    adjustments: dict[str, list[dict[str, Any]]] = field(default_factory=dict)
    untaxed_revenue: dict[str, list[dict[str, Any]]] = field(default_factory=dict)
    totalizations: dict[str, list[dict[str, Any]]] = field(default_factory=dict)
    details: dict[str, list[dict[str, Any]]] = field(default_factory=dict)

    scalars: dict[str, float] = field(default_factory=dict)
    calculated_totals: dict[str, dict[str, float]] = field(default_factory=dict)
    metadata: DatasetMetadata = field(default_factory=DatasetMetadata)

    @classmethod
    def empty(cls) -> SpedDataset:
        return cls()

    def has_file_type(self, file_type: FileType) -> bool:
        return file_type in self.file_types

    def scalar(self, name: str) -> float:
        return self.scalars.get(name, 0.0)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to plain structures (dates become ISO strings)."""
        return to_jsonable(
            {
                "tipos_arquivo": [ft.value for ft in self.file_types],
                "empresa": self.company,
                "documentos": self.documents,
                "itens": self.line_items,
                "analiticos": self.analytics,
                "participantes": self.participants,
                "balanco_patrimonial": self.balance_sheet,
                "demonstracao_resultado": self.income_statement,
                "creditos": self.credits,
                "debitos": self.debits,
                "regimes": self.regimes,
                "ajustes": self.adjustments,
                "receitas_nao_tributadas": self.untaxed_revenue,
                "totalizacoes": self.totalizations,
                "detalhamento": self.details,
                "escalares": self.scalars,
                "totais_calculados": self.calculated_totals,
                "metadados": self.metadata.to_dict(),
            }
        )


def to_jsonable(value: Any) -> Any:
    if isinstance(value, dict):
        return {str(k): to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(v) for v in value]
    if isinstance(value, date):
        return value.isoformat()
    return value


def identity_score(company: dict[str, Any]) -> tuple[bool, int]:
    """Rank identity blocks: a name first, then number of populated fields."""
    populated = sum(1 for name in IDENTITY_FIELDS if company.get(name))
    return bool(company.get("nome")), populated


def matches_statement_line(
    entry: dict[str, Any],
    prefixes: Sequence[str],
    keyword_groups: Sequence[Sequence[str]],
) -> bool:
    """Check an income statement / balance line by code prefix or keywords."""
    code = str(entry.get("codigo") or "")
    if prefixes and any(code.startswith(prefix) for prefix in prefixes):
        return True
    description = normalize_text(entry.get("descricao"))
    if not description:
        return False
    return any(all(word in description for word in group) for group in keyword_groups)


def find_statement_value(
    entries: Iterable[dict[str, Any]],
    matcher: tuple[Sequence[str], Sequence[Sequence[str]]],
) -> float:
    """Value of the first matching line with a positive amount."""
    prefixes, keyword_groups = matcher
    for entry in entries:
        if matches_statement_line(entry, prefixes, keyword_groups):
            amount = safe_amount(entry.get("valor"))
            if amount > 0:
                return amount
    return 0.0


def is_regular_outbound(document: dict[str, Any]) -> bool:
    return (
        document.get("ind_oper") == OUTBOUND
        and (document.get("cod_sit") or "") in REGULAR_SITUATIONS
    )


def credit_amount(entry: dict[str, Any]) -> float:
    return safe_amount(entry.get("valor_credito"))


def debit_amount(entry: dict[str, Any]) -> float:
    return safe_amount(entry.get("valor_debito"))


def aggregate_records(result: DispatchResult, file_name: str | None = None) -> SpedDataset:
    """Route the records of one file into a ``SpedDataset``.

    ``file_name`` overrides the name recorded by the dispatcher.
    """
    file_type = result.file_type
    file_name = file_name or result.file_name

    company: dict[str, Any] = {}
    lists: dict[str, list[dict[str, Any]]] = {name: [] for name in LIST_CATEGORIES}
    maps: dict[str, dict[str, list[dict[str, Any]]]] = {
        name: defaultdict(list) for name in MAP_CATEGORIES
    }

    current_document: dict[str, Any] | None = None
    for record in result.records:
        entry = _entry(record, file_name)

        if record.kind is RecordKind.COMPANY:
            for key, value in record.values.items():
                if value not in (None, "") and key not in company:
                    company[key] = value
            continue

        if record.kind is RecordKind.DOCUMENT:
            entry["itens"] = []
            entry["participante"] = None
            current_document = entry
        elif record.kind is RecordKind.LINE_ITEM and current_document is not None:
            entry["documento_linha"] = current_document["linha"]
            entry["ind_oper_documento"] = current_document.get("ind_oper")
            current_document["itens"].append(entry)

        list_name = _LIST_KINDS.get(record.kind)
        if list_name is not None:
            lists[list_name].append(entry)
        else:
            maps[_MAP_KINDS[record.kind]][record.category].append(entry)

    _link_participants(lists["documents"], lists["participants"])

    calculated_totals = {
        "credits": {
            category: sum(credit_amount(e) for e in entries)
            for category, entries in maps["credits"].items()
        },
        "debits": {
            category: sum(debit_amount(e) for e in entries)
            for category, entries in maps["debits"].items()
        },
    }

    dataset = SpedDataset(
        file_types=(file_type,),
        company=company,
        identities={file_type.value: dict(company)} if company else {},
        documents=lists["documents"],
        line_items=lists["line_items"],
        analytics=lists["analytics"],
        participants=lists["participants"],
        balance_sheet=lists["balance_sheet"],
        income_statement=lists["income_statement"],
        credits=dict(maps["credits"]),
        debits=dict(maps["debits"]),
        regimes=dict(maps["regimes"]),
        adjustments=dict(maps["adjustments"]),
        untaxed_revenue=dict(maps["untaxed_revenue"]),
        totalizations=dict(maps["totalizations"]),
        details=dict(maps["details"]),
        scalars=_scalar_facts(file_type, company, lists, maps),
        calculated_totals=calculated_totals,
        metadata=DatasetMetadata(
            files=(
                FileSummary(
                    file_type=file_type,
                    file_name=file_name,
                    lines=result.total_lines,
                    processed=result.processed,
                    ignored=result.ignored,
                    malformed=result.malformed,
                    errors=len(result.errors),
                ),
            ),
            errors=tuple(result.errors),
            record_counts=dict(result.record_counts),
        ),
    )

    logger.debug(
        "file_aggregated",
        file_name=file_name,
        file_type=file_type.value,
        documents=len(dataset.documents),
        line_items=len(dataset.line_items),
        scalars=dataset.scalars,
    )
    return dataset


def _entry(record: ParsedRecord, file_name: str | None) -> dict[str, Any]:
    entry = record.to_dict()
    entry["arquivo"] = file_name
    entry["tipo_arquivo"] = record.file_type.value
    return entry


def _link_participants(
    documents: list[dict[str, Any]], participants: list[dict[str, Any]]
) -> None:
    by_code = {p["cod_part"]: p for p in participants if p.get("cod_part")}
    for document in documents:
        code = document.get("cod_part")
        if code and code in by_code:
            document["participante"] = by_code[code]


def _scalar_facts(
    file_type: FileType,
    company: dict[str, Any],
    lists: dict[str, list[dict[str, Any]]],
    maps: dict[str, dict[str, list[dict[str, Any]]]],
) -> dict[str, float]:
    scalars: dict[str, float] = {}

    if file_type is FileType.FISCAL:
        scalars["total_saidas"] = sum(
            safe_amount(d.get("vl_doc")) for d in lists["documents"] if is_regular_outbound(d)
        )

    if file_type is FileType.CONTRIBUICOES:
        declared = sum(
            safe_amount(t.get("rec_bru_total"))
            for t in maps["totalizations"].get("receita_bruta", [])
        )
        if declared <= 0:
            declared = sum(
                safe_amount(t.get("vl_rec_brt"))
                for t in maps["totalizations"].get("pis", [])
            )
        scalars["receita_bruta"] = declared

    if file_type in (FileType.ECF, FileType.ECD):
        statement = lists["income_statement"]
        net_revenue = find_statement_value(statement, NET_REVENUE)
        scalars["receita_liquida"] = net_revenue
        scalars["receita_bruta_dre"] = find_statement_value(statement, GROSS_REVENUE)
        scalars["custo_vendas"] = find_statement_value(statement, COST_OF_SALES)
        scalars["despesas_operacionais"] = sum(
            safe_amount(e.get("valor"))
            for e in statement
            if matches_statement_line(e, *OPERATING_EXPENSES)
        )

        months = _period_months(company)
        if file_type is FileType.ECF and net_revenue > 0:
            scalars["receita_liquida_mensal"] = net_revenue / months

        balance = lists["balance_sheet"]
        scalars["saldo_clientes"] = find_statement_value(balance, CLIENT_BALANCE)
        scalars["saldo_fornecedores"] = find_statement_value(balance, SUPPLIER_BALANCE)
        scalars["saldo_estoques"] = find_statement_value(balance, INVENTORY_BALANCE)

    return {name: value for name, value in scalars.items() if value > 0}


def _period_months(company: dict[str, Any]) -> int:
    start = company.get("dt_ini")
    end = company.get("dt_fin")
    if isinstance(start, date) and isinstance(end, date):
        return months_between(start, end)
    # Income-tax bookkeeping covers a calendar year unless stated otherwise
    return 12
