"""Resolution of company, tax and financial figures from a consolidated dataset."""

from sped_extractor.resolvers.chain import (
    Provenance,
    SourcedValue,
    Strategy,
    first_present,
    resolve_first,
)
from sped_extractor.resolvers.company import CompanyProfile, CompanyResolver
from sped_extractor.resolvers.composition import TaxComposition, TaxCompositionResolver
from sped_extractor.resolvers.financial import (
    FinancialCycle,
    FinancialStatement,
    IvaConfig,
    resolve_financial_cycle,
    resolve_financial_statement,
    resolve_iva_config,
)
from sped_extractor.resolvers.sector import Sector, classify_sector

__all__ = [
    # Chain
    "Provenance",
    "SourcedValue",
    "Strategy",
    "first_present",
    "resolve_first",
    # Company
    "CompanyProfile",
    "CompanyResolver",
    "Sector",
    "classify_sector",
    # Taxes
    "TaxComposition",
    "TaxCompositionResolver",
    # Financial
    "FinancialCycle",
    "FinancialStatement",
    "IvaConfig",
    "resolve_financial_cycle",
    "resolve_financial_statement",
    "resolve_iva_config",
]
