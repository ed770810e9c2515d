"""Financial cycle, income statement summary and IVA parameters."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import structlog

from sped_extractor.aggregator import OUTBOUND, SpedDataset
from sped_extractor.config.tables import StatutoryTables
from sped_extractor.normalizers import safe_amount
from sped_extractor.resolvers.company import CONSUMER_INVOICE_MODEL, CompanyProfile

logger = structlog.get_logger(__name__)

CASH_PAYMENT = "0"
MONTHS_PER_YEAR = 12
DAYS_PER_MONTH = 30


@dataclass(frozen=True)
class FinancialCycle:
    """Average receivable, payable and inventory days plus the cash-sale share."""

    pmr: int
    pmp: int
    pme: int
    cash_share: float

    @property
    def credit_share(self) -> float:
        return 1 - self.cash_share

    @property
    def cycle_days(self) -> int:
        return self.pmr + self.pme - self.pmp

    def to_dict(self) -> dict[str, Any]:
        return {
            "pmr": self.pmr,
            "pmp": self.pmp,
            "pme": self.pme,
            "ciclo_financeiro": self.cycle_days,
            "perc_vista": self.cash_share,
            "perc_prazo": self.credit_share,
        }


@dataclass(frozen=True)
class FinancialStatement:
    gross_revenue: float
    net_revenue: float
    cost_of_sales: float
    operating_expenses: float
    operating_profit: float
    margin: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "receita_bruta": self.gross_revenue,
            "receita_liquida": self.net_revenue,
            "custo_total": self.cost_of_sales,
            "despesas_operacionais": self.operating_expenses,
            "lucro_operacional": self.operating_profit,
            "margem": self.margin,
        }


@dataclass(frozen=True)
class IvaConfig:
    """Parameters for the CBS/IBS value-added tax simulation."""

    cbs: float
    ibs: float
    category: str
    special_reduction: float
    sector_code: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "cbs": self.cbs,
            "ibs": self.ibs,
            "categoria_iva": self.category,
            "reducao_especial": self.special_reduction,
            "codigo_setor": self.sector_code,
        }


def _days(balance: float, monthly_base: float, default: int, limit: float) -> int:
    if balance <= 0 or monthly_base <= 0:
        return default
    days = round(balance / monthly_base * DAYS_PER_MONTH)
    if 0 < days <= limit:
        return days
    logger.debug("cycle_days_out_of_range", days=days, limit=limit)
    return default


def cash_sale_share(dataset: SpedDataset, tables: StatutoryTables) -> float:
    """Share of outbound document value paid in cash, clamped to the table bounds."""
    cycle = tables.financial_cycle
    total = 0.0
    cash = 0.0
    for document in dataset.documents:
        if document.get("ind_oper") != OUTBOUND:
            continue
        amount = safe_amount(document.get("vl_doc"))
        if amount <= 0:
            continue
        total += amount
        if (
            document.get("cod_mod") == CONSUMER_INVOICE_MODEL
            or document.get("ind_pgto") == CASH_PAYMENT
        ):
            cash += amount

    if total <= 0:
        return cycle["default_cash_share"]
    return max(cycle["min_cash_share"], min(cycle["max_cash_share"], cash / total))


def annual_revenue(dataset: SpedDataset, profile: CompanyProfile) -> float:
    """Yearly revenue base for the cycle ratios."""
    for name in ("receita_bruta_dre", "receita_liquida"):
        value = dataset.scalar(name)
        if value > 0:
            return value
    return profile.monthly_revenue.value * MONTHS_PER_YEAR


def resolve_financial_cycle(
    dataset: SpedDataset, profile: CompanyProfile, tables: StatutoryTables
) -> FinancialCycle:
    cycle = tables.financial_cycle
    default = int(cycle["default_days"])
    limit = cycle["max_days"]
    monthly = annual_revenue(dataset, profile) / MONTHS_PER_YEAR

    result = FinancialCycle(
        pmr=_days(dataset.scalar("saldo_clientes"), monthly, default, limit),
        pmp=_days(
            dataset.scalar("saldo_fornecedores"),
            monthly * cycle["purchases_ratio"],
            default,
            limit,
        ),
        pme=_days(
            dataset.scalar("saldo_estoques"),
            monthly * cycle["cost_of_sales_ratio"],
            default,
            limit,
        ),
        cash_share=cash_sale_share(dataset, tables),
    )
    logger.debug("financial_cycle_resolved", **result.to_dict())
    return result


def resolve_financial_statement(
    dataset: SpedDataset, profile: CompanyProfile, tables: StatutoryTables
) -> FinancialStatement:
    """Summarize the income statement, estimating what the ledgers omit.

    Figures cover the bookkeeping year. Without statement revenue, the
    monthly revenue of the company profile is annualized.
    """
    cycle = tables.financial_cycle
    net_ratio = cycle["net_revenue_ratio"]
    gross = dataset.scalar("receita_bruta_dre")
    net = dataset.scalar("receita_liquida")
    cost = dataset.scalar("custo_vendas")
    expenses = dataset.scalar("despesas_operacionais")

    if gross == 0 and net > 0 and net_ratio > 0:
        gross = net / net_ratio
    elif gross == 0:
        gross = profile.monthly_revenue.value * MONTHS_PER_YEAR
    if net == 0:
        net = gross * net_ratio
    if cost == 0:
        cost = net * cycle["cost_ratio"]

    if dataset.income_statement and net > 0:
        profit = net - cost - expenses
        margin = profit / net
    else:
        margin = profile.margin
        profit = net * margin

    return FinancialStatement(
        gross_revenue=gross,
        net_revenue=net,
        cost_of_sales=cost,
        operating_expenses=expenses,
        operating_profit=profit,
        margin=margin,
    )


def resolve_iva_config(profile: CompanyProfile, tables: StatutoryTables) -> IvaConfig:
    iva = tables.iva
    return IvaConfig(
        cbs=float(iva.get("cbs", 0.0)),
        ibs=float(iva.get("ibs", 0.0)),
        category=str(iva.get("categoria", "standard")),
        special_reduction=float(iva.get("reducao_especial", 0.0)),
        sector_code=profile.sector,
    )
