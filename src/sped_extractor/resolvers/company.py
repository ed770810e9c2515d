"""Company identity, tax regime and monthly revenue resolution."""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import date
from typing import Any

import structlog

from sped_extractor.aggregator import (
    OUTBOUND,
    SpedDataset,
    debit_amount,
    is_regular_outbound,
)
from sped_extractor.config.tables import StatutoryTables
from sped_extractor.events import EventCollector
from sped_extractor.normalizers import months_between, safe_amount
from sped_extractor.resolvers.chain import (
    Provenance,
    SourcedValue,
    Strategy,
    first_present,
    resolve_first,
)
from sped_extractor.resolvers.sector import Sector, classify_sector

logger = structlog.get_logger(__name__)

NAME_FIELDS = ("nome", "nome_empresarial", "razao_social", "fantasia")
# "direct" is the consolidated identity, the others are per-family blocks
NAME_SOURCES = ("direct", "fiscal", "contribuicoes")
DEFAULT_NAME = "Empresa Importada"

B2B_THRESHOLD = 80.0
B2C_THRESHOLD = 20.0
CONSUMER_INVOICE_MODEL = "65"
BUSINESS_INVOICE_MODEL = "55"

_NON_DIGITS = re.compile(r"\D")


@dataclass(frozen=True)
class CompanyProfile:
    """Who the company is and how it is taxed."""

    name: str
    cnpj: str
    uf: str
    regime: str
    pis_cofins_regime: str
    sector: str
    monthly_revenue: SourcedValue
    margin: float
    operation_type: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "nome": self.name,
            "cnpj": self.cnpj,
            "uf": self.uf,
            "tipo_empresa": self.sector,
            "regime": self.regime,
            "faturamento": self.monthly_revenue.value,
            "fonte_faturamento": self.monthly_revenue.provenance.value,
            "margem": self.margin,
        }


def _digits(value: Any) -> str:
    return _NON_DIGITS.sub("", str(value or ""))


def _sum_debits(dataset: SpedDataset, category: str) -> float:
    return sum(debit_amount(e) for e in dataset.debits.get(category, []))


def outbound_document_revenue(dataset: SpedDataset) -> float | None:
    """Average monthly value of regular outbound documents.

    Documents without a valid date, or with an amount outside the accepted
    range, are left out of both the total and the month span.
    """
    total = 0.0
    dates: list[date] = []
    for document in dataset.documents:
        if not is_regular_outbound(document):
            continue
        issued = document.get("dt_doc")
        amount = safe_amount(document.get("vl_doc"))
        if not isinstance(issued, date) or amount <= 0:
            continue
        total += amount
        dates.append(issued)

    if not dates:
        return None
    return total / months_between(min(dates), max(dates))


def revenue_strategies(tables: StatutoryTables) -> list[Strategy[SpedDataset]]:
    """Monthly revenue sources, most authoritative first."""
    strategies: list[Strategy[SpedDataset]] = [
        Strategy(
            "receita_bruta_contribuicoes",
            Provenance.FROM_LEDGER,
            lambda d: d.scalar("receita_bruta"),
            "receita bruta declarada na EFD-Contribuições (0111 ou M210)",
        ),
        Strategy(
            "total_saidas_fiscal",
            Provenance.FROM_LEDGER,
            lambda d: d.scalar("total_saidas"),
            "documentos de saída da EFD ICMS/IPI",
        ),
        Strategy(
            "receita_liquida_ecf",
            Provenance.FROM_LEDGER,
            lambda d: d.scalar("receita_liquida_mensal"),
            "receita líquida da ECF dividida pelos meses do período",
        ),
        Strategy(
            "documentos_saida",
            Provenance.FROM_LEDGER,
            outbound_document_revenue,
            "média mensal dos documentos de saída",
        ),
    ]
    for tax, rate in tables.inverse_revenue_rates.items():
        strategies.append(
            Strategy(
                f"inverso_{tax}",
                Provenance.ESTIMATED,
                lambda d, tax=tax, rate=rate: _sum_debits(d, tax) / rate,
                f"débito de {tax.upper()} dividido pela alíquota média {rate}",
            )
        )
    return strategies


def _identity_source(dataset: SpedDataset, source: str) -> dict[str, Any]:
    if source == "direct":
        return dataset.company
    return dataset.identities.get(source, {})


def _name_accessor(source: str, field: str) -> Callable[[SpedDataset], str]:
    def read(dataset: SpedDataset) -> str:
        return str(_identity_source(dataset, source).get(field) or "").strip()

    return read


def resolve_name(dataset: SpedDataset) -> str:
    """Company name from the identity blocks, or a placeholder."""
    candidates = [
        (f"{source}.{field}", _name_accessor(source, field))
        for source in NAME_SOURCES
        for field in NAME_FIELDS
    ]
    found = first_present(candidates, dataset)
    if found is not None:
        return found[1]

    cnpj = _digits(dataset.company.get("cnpj"))
    return f"Empresa (CNPJ: {cnpj})" if cnpj else DEFAULT_NAME


def _first_value(entries: Iterable[dict[str, Any]], field: str) -> str:
    for entry in entries:
        value = str(entry.get(field) or "").strip()
        if value:
            return value
    return ""


def resolve_regime(dataset: SpedDataset, tables: StatutoryTables) -> str:
    """Income-tax regime: simples, presumido or real."""

    def from_ecf(d: SpedDataset) -> str | None:
        return tables.ecf_forma_trib.get(_first_value(d.regimes.get("irpj", []), "forma_trib"))

    def from_contributions(d: SpedDataset) -> str | None:
        code = _first_value(d.regimes.get("pis_cofins", []), "cod_inc_trib")
        entry = tables.contribution_regime_codes.get(code)
        return entry[0] if entry else None

    def from_simples_records(d: SpedDataset) -> str | None:
        return "simples" if d.regimes.get("simples") else None

    def from_credits(d: SpedDataset) -> str | None:
        return "real" if d.credits.get("pis") or d.credits.get("cofins") else None

    found = first_present(
        [
            ("forma_trib_ecf", from_ecf),
            ("cod_inc_trib", from_contributions),
            ("registro_simples", from_simples_records),
            ("creditos_pis_cofins", from_credits),
        ],
        dataset,
    )
    if found is None:
        logger.debug("regime_defaulted", regime=tables.default_regime)
        return tables.default_regime

    strategy, regime = found
    logger.debug("regime_resolved", strategy=strategy, regime=regime)
    return regime


def resolve_pis_cofins_regime(
    dataset: SpedDataset, tables: StatutoryTables, regime: str
) -> str:
    code = _first_value(dataset.regimes.get("pis_cofins", []), "cod_inc_trib")
    entry = tables.contribution_regime_codes.get(code)
    if entry is not None:
        return entry[1]
    return "nao-cumulativo" if regime == "real" else "cumulativo"


def resolve_operation_type(dataset: SpedDataset) -> str:
    """b2b, b2c or mista from the counterparts of outbound documents."""
    business = 0
    consumer = 0
    for document in dataset.documents:
        if document.get("ind_oper") != OUTBOUND:
            continue
        participant = document.get("participante") or {}
        tax_id = _digits(participant.get("cnpj")) or _digits(participant.get("cpf"))
        if tax_id:
            if len(tax_id) == 14:
                business += 1
            else:
                consumer += 1
        elif document.get("cod_mod") == CONSUMER_INVOICE_MODEL:
            consumer += 1
        elif document.get("cod_mod") == BUSINESS_INVOICE_MODEL:
            business += 1

    total = business + consumer
    if total == 0:
        return "b2b"

    business_share = business / total * 100
    if business_share > B2B_THRESHOLD:
        return "b2b"
    if business_share < B2C_THRESHOLD:
        return "b2c"
    return "mista"


class CompanyResolver:
    """Build a ``CompanyProfile`` from a consolidated dataset."""

    def __init__(self, tables: StatutoryTables, collector: EventCollector | None = None):
        self._tables = tables
        self._collector = collector
        self._revenue_strategies = revenue_strategies(tables)
        self._logger = logger.bind(component="company_resolver")

    def resolve_revenue(self, dataset: SpedDataset) -> SourcedValue:
        return resolve_first(
            "faturamento_mensal",
            self._revenue_strategies,
            dataset,
            collector=self._collector,
        )

    def resolve(self, dataset: SpedDataset) -> CompanyProfile:
        sector: Sector = classify_sector(dataset, self._tables)
        regime = resolve_regime(dataset, self._tables)
        revenue = self.resolve_revenue(dataset)

        profile = CompanyProfile(
            name=resolve_name(dataset),
            cnpj=_digits(dataset.company.get("cnpj")),
            uf=str(dataset.company.get("uf") or "").strip().upper(),
            regime=regime,
            pis_cofins_regime=resolve_pis_cofins_regime(dataset, self._tables, regime),
            sector=sector.value,
            monthly_revenue=revenue,
            margin=self._tables.margin_for(sector.value),
            operation_type=resolve_operation_type(dataset),
        )
        self._logger.info(
            "company_resolved",
            name=profile.name,
            regime=profile.regime,
            sector=profile.sector,
            revenue=revenue.value,
            revenue_source=revenue.provenance.value,
        )
        return profile
