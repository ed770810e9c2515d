"""Consistency checks and data-quality scoring of an extraction."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import structlog

from sped_extractor.aggregator import SpedDataset
from sped_extractor.resolvers.company import CompanyProfile
from sped_extractor.resolvers.composition import TaxComposition

logger = structlog.get_logger(__name__)

MIN_NAME_LENGTH = 3
MAX_ISSUES_FOR_MEDIUM = 3

QUALITY_CLASSES = (
    (80, "excelente"),
    (60, "boa"),
    (40, "regular"),
)


def validate_output(profile: CompanyProfile, composition: TaxComposition | None) -> list[str]:
    """Return the inconsistencies found in the resolved figures."""
    issues: list[str] = []
    if len(profile.name.strip()) < MIN_NAME_LENGTH:
        issues.append("Nome da empresa não encontrado ou inválido")
    if profile.monthly_revenue.value <= 0:
        issues.append("Faturamento da empresa não encontrado ou zero")
    if composition is None:
        issues.append("Composição tributária não encontrada")
    elif composition.total_debits <= 0:
        issues.append("Nenhum débito tributário encontrado")
    return issues


def reliability_label(issues: list[str]) -> str:
    if not issues:
        return "alta"
    if len(issues) <= MAX_ISSUES_FOR_MEDIUM:
        return "media"
    return "baixa"


@dataclass(frozen=True)
class QualityReport:
    """Completeness score per area (0 to 100) and an overall class."""

    company: int
    fiscal: int
    accounting: int

    @property
    def total(self) -> int:
        return round((self.company + self.fiscal + self.accounting) / 3)

    @property
    def classification(self) -> str:
        for threshold, label in QUALITY_CLASSES:
            if self.total >= threshold:
                return label
        return "insuficiente"

    def to_dict(self) -> dict[str, Any]:
        return {
            "pontuacao": {
                "empresa": self.company,
                "fiscal": self.fiscal,
                "contabil": self.accounting,
                "total": self.total,
            },
            "classificacao": self.classification,
        }


def assess_quality(dataset: SpedDataset, profile: CompanyProfile) -> QualityReport:
    company = 0
    if dataset.company.get("nome"):
        company += 25
    if dataset.company.get("cnpj"):
        company += 25
    if profile.monthly_revenue.value > 0:
        company += 50

    fiscal = 0
    if any(dataset.credits.values()):
        fiscal += 30
    if any(dataset.debits.values()):
        fiscal += 30
    if dataset.documents:
        fiscal += 40

    accounting = 0
    if dataset.balance_sheet:
        accounting += 50
    if dataset.income_statement:
        accounting += 50

    report = QualityReport(company=company, fiscal=fiscal, accounting=accounting)
    logger.debug("quality_assessed", total=report.total, classification=report.classification)
    return report
