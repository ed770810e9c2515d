"""Business sector inference from excise-tax records and CFOP codes."""

from __future__ import annotations

from collections.abc import Iterable
from enum import Enum

import structlog

from sped_extractor.aggregator import SpedDataset
from sped_extractor.config.tables import StatutoryTables
from sped_extractor.normalizers import safe_amount

logger = structlog.get_logger(__name__)

COMMERCE_PREFIXES = ("1", "2", "5", "6")
OUTBOUND_CFOP_PREFIXES = ("5", "6")


class Sector(str, Enum):
    COMERCIO = "comercio"
    INDUSTRIA = "industria"
    SERVICOS = "servicos"


def collect_cfops(dataset: SpedDataset) -> set[str]:
    """Distinct CFOPs seen on line items and analytic records."""
    cfops: set[str] = set()
    for entry in (*dataset.line_items, *dataset.analytics):
        cfop = str(entry.get("cfop") or "").strip()
        if cfop:
            cfops.add(cfop)
    return cfops


def has_excise_records(dataset: SpedDataset) -> bool:
    """True when the company itself assesses IPI.

    Only the E520/E530 assessment and IPI charged on outbound analytic
    records count; IPI paid on purchases says nothing about the buyer.
    """
    if dataset.debits.get("ipi") or dataset.adjustments.get("ipi"):
        return True
    return any(
        safe_amount(a.get("vl_ipi")) > 0
        for a in dataset.analytics
        if str(a.get("cfop") or "").startswith(OUTBOUND_CFOP_PREFIXES)
    )


def score_cfops(cfops: Iterable[str], tables: StatutoryTables) -> dict[Sector, int]:
    scores = {sector: 0 for sector in Sector}
    for cfop in cfops:
        if cfop in tables.industry_cfops:
            scores[Sector.INDUSTRIA] += tables.industry_weight
        elif cfop in tables.services_cfops:
            scores[Sector.SERVICOS] += tables.services_weight
        elif cfop.startswith(COMMERCE_PREFIXES):
            scores[Sector.COMERCIO] += tables.commerce_weight
    return scores


def classify_cfops(cfops: Iterable[str], tables: StatutoryTables) -> Sector:
    """Pick the sector with the highest weighted CFOP score; commerce on ties."""
    scores = score_cfops(cfops, tables)
    industry = scores[Sector.INDUSTRIA]
    services = scores[Sector.SERVICOS]
    commerce = scores[Sector.COMERCIO]

    if industry > 0 and industry >= max(services, commerce):
        return Sector.INDUSTRIA
    if services > commerce:
        return Sector.SERVICOS
    return Sector.COMERCIO


def classify_sector(dataset: SpedDataset, tables: StatutoryTables) -> Sector:
    if has_excise_records(dataset):
        logger.debug("sector_from_excise_records", sector=Sector.INDUSTRIA.value)
        return Sector.INDUSTRIA

    cfops = collect_cfops(dataset)
    sector = classify_cfops(cfops, tables)
    logger.debug("sector_from_cfops", sector=sector.value, cfops=len(cfops))
    return sector
