"""Tax debits, credits and effective rates per tax.

Each figure is resolved through an ordered list of strategies: the
assessment records of the ledgers first, then analytic and document-level
amounts, and finally a statutory estimate over the monthly revenue. PIS and
COFINS move together, so when one of them has no ledger data and the other
does, the missing one is derived from its sibling by the ratio of their
non-cumulative rates.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

import structlog

from sped_extractor.aggregator import INBOUND, OUTBOUND, SpedDataset, is_regular_outbound
from sped_extractor.config.tables import StatutoryTables
from sped_extractor.events import EventCollector, rate_defaulted, value_derived
from sped_extractor.normalizers import MAX_AMOUNT, safe_amount
from sped_extractor.resolvers.chain import (
    Provenance,
    SourcedValue,
    Strategy,
    resolve_first,
)
from sped_extractor.resolvers.company import CompanyProfile
from sped_extractor.resolvers.sector import Sector

logger = structlog.get_logger(__name__)

TAXES = ("pis", "cofins", "icms", "ipi", "iss")
OUTBOUND_CFOP_PREFIXES = ("5", "6")
INBOUND_CFOP_PREFIXES = ("1", "2", "3")


@dataclass(frozen=True)
class TaxComposition:
    """Debits, credits and effective rates of the five taxes."""

    debits: dict[str, SourcedValue]
    credits: dict[str, SourcedValue]
    effective_rates: dict[str, float]
    provenance: dict[str, str]

    def net(self, tax: str) -> float:
        return max(0.0, self.debits[tax].value - self.credits[tax].value)

    @property
    def total_debits(self) -> float:
        return sum(value.value for value in self.debits.values())

    @property
    def total_credits(self) -> float:
        return sum(value.value for value in self.credits.values())

    def to_dict(self) -> dict[str, Any]:
        return {
            "debitos": {tax: value.value for tax, value in self.debits.items()},
            "creditos": {tax: value.value for tax, value in self.credits.items()},
            "aliquotas_efetivas": dict(self.effective_rates),
            "fontes_dados": dict(self.provenance),
        }


@dataclass(frozen=True)
class _Context:
    dataset: SpedDataset
    profile: CompanyProfile
    tables: StatutoryTables

    @property
    def revenue(self) -> float:
        return self.profile.monthly_revenue.value


def _total(entries: Iterable[dict[str, Any]], field: str, ceiling: float = MAX_AMOUNT) -> float:
    return sum(safe_amount(e.get(field), ceiling) for e in entries)


def _cfop_starts(entry: dict[str, Any], prefixes: tuple[str, ...]) -> bool:
    return str(entry.get("cfop") or "").startswith(prefixes)


def _outbound_documents(dataset: SpedDataset, category: str | None = None) -> list[dict[str, Any]]:
    return [
        d
        for d in dataset.documents
        if is_regular_outbound(d) and (category is None or d.get("categoria") == category)
    ]


def _inbound_documents(dataset: SpedDataset) -> list[dict[str, Any]]:
    return [d for d in dataset.documents if d.get("ind_oper") == INBOUND]


def _not_applicable(reason: str) -> SourcedValue:
    return SourcedValue.estimated(0.0, estrategia="nao_aplicavel", motivo=reason)


# Debit chains


def _contribution_debit_strategies(tax: str) -> list[Strategy[_Context]]:
    record = "M200" if tax == "pis" else "M600"
    totalization = "M210" if tax == "pis" else "M610"

    def estimate(ctx: _Context) -> float:
        if ctx.profile.regime == "simples":
            return 0.0
        return ctx.revenue * ctx.tables.contribution_rate(tax, ctx.profile.pis_cofins_regime)

    return [
        Strategy(
            f"{record.lower()}_debitos",
            Provenance.FROM_LEDGER,
            lambda ctx: _total(ctx.dataset.debits.get(tax, []), "valor_debito"),
            f"contribuição apurada no registro {record}",
        ),
        Strategy(
            f"{totalization.lower()}_totalizacao",
            Provenance.FROM_LEDGER,
            lambda ctx: _total(ctx.dataset.totalizations.get(tax, []), "valor_debito"),
            f"detalhamento da contribuição no registro {totalization}",
        ),
        Strategy(
            "estimativa_regime",
            Provenance.ESTIMATED,
            estimate,
            "faturamento mensal vezes a alíquota do regime",
        ),
    ]


def _icms_debit_strategies() -> list[Strategy[_Context]]:
    def estimate(ctx: _Context) -> float:
        if ctx.profile.sector == Sector.SERVICOS.value:
            return 0.0
        rate = ctx.tables.state_icms_rate(ctx.profile.uf)
        return ctx.revenue * ctx.tables.icms_debit_base_ratio * rate

    return [
        Strategy(
            "e110_debitos",
            Provenance.FROM_LEDGER,
            lambda ctx: _total(ctx.dataset.debits.get("icms", []), "valor_debito"),
            "apuração do ICMS no registro E110",
        ),
        Strategy(
            "c190_saidas",
            Provenance.FROM_LEDGER,
            lambda ctx: _total(
                (a for a in ctx.dataset.analytics if _cfop_starts(a, OUTBOUND_CFOP_PREFIXES)),
                "vl_icms",
            ),
            "registros analíticos C190 de saída",
        ),
        Strategy(
            "documentos_saida",
            Provenance.FROM_LEDGER,
            lambda ctx: _total(_outbound_documents(ctx.dataset), "vl_icms"),
            "ICMS destacado nos documentos de saída",
        ),
        Strategy(
            "estimativa_uf",
            Provenance.ESTIMATED,
            estimate,
            "faturamento vezes a base tributável e a alíquota da UF",
        ),
    ]


def _ipi_debit_strategies() -> list[Strategy[_Context]]:
    return [
        Strategy(
            "e520_debitos",
            Provenance.FROM_LEDGER,
            lambda ctx: _total(ctx.dataset.debits.get("ipi", []), "valor_debito"),
            "apuração do IPI no registro E520",
        ),
        Strategy(
            "itens_saida",
            Provenance.FROM_LEDGER,
            lambda ctx: _total(
                (i for i in ctx.dataset.line_items if i.get("ind_oper_documento") == OUTBOUND),
                "vl_ipi",
            ),
            "IPI dos itens de documentos de saída",
        ),
        Strategy(
            "c190_saidas",
            Provenance.FROM_LEDGER,
            lambda ctx: _total(
                (a for a in ctx.dataset.analytics if _cfop_starts(a, OUTBOUND_CFOP_PREFIXES)),
                "vl_ipi",
            ),
            "IPI dos registros analíticos de saída",
        ),
        Strategy(
            "estimativa_industria",
            Provenance.ESTIMATED,
            lambda ctx: ctx.revenue * ctx.tables.ipi_base_ratio * ctx.tables.ipi_rate,
            "faturamento vezes a base e a alíquota média de IPI",
        ),
    ]


def _iss_debit_strategies() -> list[Strategy[_Context]]:
    def estimate(ctx: _Context) -> float:
        receipts = _total(_outbound_documents(ctx.dataset, "servicos"), "vl_doc")
        base = receipts if receipts > 0 else ctx.revenue
        return base * ctx.tables.iss_rate

    return [
        Strategy(
            "documentos_servico",
            Provenance.FROM_LEDGER,
            lambda ctx: _total(_outbound_documents(ctx.dataset, "servicos"), "vl_iss"),
            "ISS informado nos documentos de serviço (A100)",
        ),
        Strategy(
            "estimativa_servicos",
            Provenance.ESTIMATED,
            estimate,
            "receita de serviços vezes a alíquota média de ISS",
        ),
    ]


# Credit chains


def _takes_contribution_credits(profile: CompanyProfile) -> bool:
    """Only the non-cumulative PIS/COFINS regime generates purchase credits."""
    return profile.regime != "simples" and profile.pis_cofins_regime == "nao-cumulativo"


def _is_purchase(document: dict[str, Any]) -> bool:
    # Documents without items carry no CFOP and are kept.
    cfops = [str(item.get("cfop") or "") for item in document.get("itens") or []]
    cfops = [cfop for cfop in cfops if cfop]
    return not cfops or any(cfop.startswith(INBOUND_CFOP_PREFIXES) for cfop in cfops)


def _contribution_credit_strategies(tax: str) -> list[Strategy[_Context]]:
    record = "M100" if tax == "pis" else "M500"
    consolidation = "M200" if tax == "pis" else "M600"
    field = f"vl_{tax}"

    def discounted(ctx: _Context) -> float:
        if not _takes_contribution_credits(ctx.profile):
            return 0.0
        return _total(ctx.dataset.debits.get(tax, []), "valor_credito")

    def purchases(ctx: _Context) -> float:
        if not _takes_contribution_credits(ctx.profile):
            return 0.0
        return _total(
            (d for d in _inbound_documents(ctx.dataset) if _is_purchase(d)), field
        )

    def estimate(ctx: _Context) -> float:
        if not _takes_contribution_credits(ctx.profile):
            return 0.0
        ratio = ctx.tables.pis_cofins_credit
        rate = ctx.tables.contribution_rate(tax, "nao-cumulativo")
        return ctx.revenue * ratio.purchase_ratio * rate * ratio.utilization

    return [
        Strategy(
            f"{record.lower()}_creditos",
            Provenance.FROM_LEDGER,
            lambda ctx: _total(ctx.dataset.credits.get(tax, []), "valor_credito"),
            f"créditos apurados no registro {record}",
        ),
        Strategy(
            f"{consolidation.lower()}_creditos_descontados",
            Provenance.FROM_LEDGER,
            discounted,
            f"créditos descontados no registro {consolidation}",
        ),
        Strategy(
            "documentos_entrada",
            Provenance.FROM_LEDGER,
            purchases,
            "contribuição destacada nos documentos de entrada",
        ),
        Strategy(
            "estimativa_nao_cumulativo",
            Provenance.ESTIMATED,
            estimate,
            "compras estimadas vezes a alíquota e o aproveitamento típico",
        ),
    ]


def _icms_credit_strategies() -> list[Strategy[_Context]]:
    def estimate(ctx: _Context) -> float:
        ratio = ctx.tables.icms_credit.get(ctx.profile.sector)
        if ratio is None:
            return 0.0
        rate = ctx.tables.state_icms_rate(ctx.profile.uf)
        return ctx.revenue * ratio.purchase_ratio * rate * ratio.utilization

    return [
        Strategy(
            "e110_creditos",
            Provenance.FROM_LEDGER,
            lambda ctx: _total(
                ctx.dataset.debits.get("icms", []),
                "valor_credito",
                ctx.tables.icms_credit_ceiling,
            ),
            "créditos da apuração do ICMS no registro E110",
        ),
        Strategy(
            "c190_entradas",
            Provenance.FROM_LEDGER,
            lambda ctx: _total(
                (a for a in ctx.dataset.analytics if _cfop_starts(a, INBOUND_CFOP_PREFIXES)),
                "vl_icms",
            ),
            "registros analíticos C190 de entrada",
        ),
        Strategy(
            "documentos_entrada",
            Provenance.FROM_LEDGER,
            lambda ctx: _total(_inbound_documents(ctx.dataset), "vl_icms"),
            "ICMS destacado nos documentos de entrada",
        ),
        Strategy(
            "estimativa_setor",
            Provenance.ESTIMATED,
            estimate,
            "compras estimadas por setor vezes a alíquota da UF",
        ),
    ]


def _ipi_credit_strategies() -> list[Strategy[_Context]]:
    return [
        Strategy(
            "e520_creditos",
            Provenance.FROM_LEDGER,
            lambda ctx: _total(ctx.dataset.debits.get("ipi", []), "valor_credito"),
            "créditos da apuração do IPI no registro E520",
        ),
        Strategy(
            "c190_entradas",
            Provenance.FROM_LEDGER,
            lambda ctx: _total(
                (a for a in ctx.dataset.analytics if _cfop_starts(a, INBOUND_CFOP_PREFIXES)),
                "vl_ipi",
            ),
            "IPI dos registros analíticos de entrada",
        ),
        Strategy(
            "estimativa_industria",
            Provenance.ESTIMATED,
            lambda ctx: (
                ctx.revenue
                * ctx.tables.ipi_base_ratio
                * ctx.tables.ipi_rate
                * ctx.tables.ipi_credit_utilization
            ),
            "compras estimadas vezes a alíquota e o aproveitamento de IPI",
        ),
    ]


class TaxCompositionResolver:
    """Resolve the tax composition of a company.

    Usage:
        resolver = TaxCompositionResolver(tables, collector)
        composition = resolver.resolve(dataset, profile)
        composition.effective_rates["total"]
    """

    def __init__(self, tables: StatutoryTables, collector: EventCollector | None = None):
        self._tables = tables
        self._collector = collector
        self._logger = logger.bind(component="tax_composition")

    def _resolve(
        self, subject: str, strategies: list[Strategy[_Context]], ctx: _Context
    ) -> SourcedValue:
        return resolve_first(subject, strategies, ctx, collector=self._collector)

    def resolve_debits(self, ctx: _Context) -> dict[str, SourcedValue]:
        sector = ctx.profile.sector
        debits = {
            "pis": self._resolve("pis_debito", _contribution_debit_strategies("pis"), ctx),
            "cofins": self._resolve(
                "cofins_debito", _contribution_debit_strategies("cofins"), ctx
            ),
            "icms": self._resolve("icms_debito", _icms_debit_strategies(), ctx),
        }
        debits["ipi"] = (
            self._resolve("ipi_debito", _ipi_debit_strategies(), ctx)
            if sector == Sector.INDUSTRIA.value
            else _not_applicable("IPI apenas para indústria")
        )
        debits["iss"] = (
            self._resolve("iss_debito", _iss_debit_strategies(), ctx)
            if sector == Sector.SERVICOS.value
            else _not_applicable("ISS apenas para serviços")
        )
        return self._derive_siblings(debits, "debito")

    def resolve_credits(self, ctx: _Context) -> dict[str, SourcedValue]:
        credits = {
            "pis": self._resolve(
                "pis_credito", _contribution_credit_strategies("pis"), ctx
            ),
            "cofins": self._resolve(
                "cofins_credito", _contribution_credit_strategies("cofins"), ctx
            ),
            "icms": self._resolve("icms_credito", _icms_credit_strategies(), ctx),
        }
        credits["ipi"] = (
            self._resolve("ipi_credito", _ipi_credit_strategies(), ctx)
            if ctx.profile.sector == Sector.INDUSTRIA.value
            else _not_applicable("IPI apenas para indústria")
        )
        # ISS is cumulative: no credit mechanism
        credits["iss"] = _not_applicable("ISS não gera créditos")
        return self._derive_siblings(credits, "credito")

    def _derive_siblings(
        self, values: dict[str, SourcedValue], side: str
    ) -> dict[str, SourcedValue]:
        pis = values["pis"]
        cofins = values["cofins"]
        if pis.is_from_ledger == cofins.is_from_ledger:
            return values

        if cofins.is_from_ledger:
            missing, sibling, ratio = "pis", cofins, self._tables.pis_per_cofins
        else:
            missing, sibling, ratio = "cofins", pis, self._tables.cofins_per_pis
        source = "cofins" if missing == "pis" else "pis"

        derived = SourcedValue.derived(
            sibling.value * ratio,
            estrategia=f"derivado_{source}",
            razao=ratio,
        )
        if self._collector is not None:
            self._collector.publish(
                value_derived(f"{missing}_{side}", source, ratio, derived.value)
            )
        else:
            self._logger.debug(
                "value_derived",
                subject=f"{missing}_{side}",
                sibling=source,
                ratio=ratio,
                value=derived.value,
            )
        return {**values, missing: derived}

    def effective_rates(
        self,
        debits: dict[str, SourcedValue],
        credits: dict[str, SourcedValue],
        revenue: float,
    ) -> dict[str, float]:
        """Net tax burden per tax as a percentage of monthly revenue."""
        defaults = self._tables.default_effective_rates
        if revenue <= 0:
            return {tax: defaults[tax] for tax in (*TAXES, "total")}

        rates: dict[str, float] = {}
        net_total = 0.0
        for tax in TAXES:
            net = max(0.0, debits[tax].value - credits[tax].value)
            net_total += net
            rate = net / revenue * 100
            if 0 <= rate <= 100:
                rates[tax] = rate
                continue
            rates[tax] = defaults[tax]
            if self._collector is not None:
                self._collector.publish(rate_defaulted(tax, rate, defaults[tax]))
            else:
                self._logger.warning(
                    "rate_defaulted", tax=tax, computed=rate, default=defaults[tax]
                )

        total = net_total / revenue * 100
        rates["total"] = total if 0 <= total <= 100 else 0.0
        return rates

    def resolve(self, dataset: SpedDataset, profile: CompanyProfile) -> TaxComposition:
        ctx = _Context(dataset=dataset, profile=profile, tables=self._tables)
        debits = self.resolve_debits(ctx)
        credits = self.resolve_credits(ctx)
        rates = self.effective_rates(debits, credits, ctx.revenue)

        provenance = {f"{tax}_debito": debits[tax].provenance.value for tax in TAXES}
        provenance.update(
            {f"{tax}_credito": credits[tax].provenance.value for tax in TAXES}
        )

        composition = TaxComposition(
            debits=debits,
            credits=credits,
            effective_rates=rates,
            provenance=provenance,
        )
        self._logger.info(
            "tax_composition_resolved",
            total_debits=composition.total_debits,
            total_credits=composition.total_credits,
            effective_total=rates["total"],
        )
        return composition
