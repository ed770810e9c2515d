"""Loader for the statutory rate tables and estimation heuristics."""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml  # type: ignore[import-untyped]

from sped_extractor.config.settings import get_settings

BUNDLED_TABLES_PATH = Path(__file__).resolve().parent / "statutory_tables.yaml"

VALID_REGIMES = ("simples", "presumido", "real")
VALID_PIS_COFINS_REGIMES = ("cumulativo", "nao-cumulativo")


@dataclass(frozen=True)
class CreditRatio:
    """Purchases-to-revenue ratio and the usable share of the resulting credit."""

    purchase_ratio: float
    utilization: float


@dataclass(frozen=True)
class StatutoryTables:
    """Statutory constants consumed by the resolvers.

    Every heuristic ratio lives here so that a different table (a new layout
    year, a state-specific study) can be swapped in without touching the
    resolution logic.
    """

    contribution_rates: dict[str, dict[str, float]]
    inverse_revenue_rates: dict[str, float]
    icms_default_rate: float
    icms_debit_base_ratio: float
    icms_state_rates: dict[str, float]
    icms_credit_ceiling: float
    ipi_rate: float
    ipi_base_ratio: float
    ipi_credit_utilization: float
    iss_rate: float
    pis_cofins_credit: CreditRatio
    icms_credit: dict[str, CreditRatio]
    sibling_pis_rate: float
    sibling_cofins_rate: float
    default_effective_rates: dict[str, float]
    margins: dict[str, float]
    ecf_forma_trib: dict[str, str]
    contribution_regime_codes: dict[str, tuple[str, str]]
    default_regime: str
    industry_cfops: frozenset[str]
    services_cfops: frozenset[str]
    industry_weight: int
    services_weight: int
    commerce_weight: int
    financial_cycle: dict[str, float]
    iva: dict[str, Any]

    def state_icms_rate(self, uf: str | None) -> float:
        """Return the average internal ICMS rate for a state code."""
        if not uf:
            return self.icms_default_rate
        return self.icms_state_rates.get(uf.strip().upper(), self.icms_default_rate)

    def contribution_rate(self, tax: str, pis_cofins_regime: str) -> float:
        """Return the nominal PIS or COFINS rate for a contribution regime."""
        return self.contribution_rates[tax][pis_cofins_regime]

    def margin_for(self, sector: str | None) -> float:
        """Return the typical operating margin for a sector."""
        if sector and sector in self.margins:
            return self.margins[sector]
        return self.margins["default"]

    @property
    def cofins_per_pis(self) -> float:
        return self.sibling_cofins_rate / self.sibling_pis_rate

    @property
    def pis_per_cofins(self) -> float:
        return self.sibling_pis_rate / self.sibling_cofins_rate

    @classmethod
    def from_mapping(cls, data: dict[str, Any], source: str = "tables") -> StatutoryTables:
        """Build tables from parsed YAML, validating every entry.

        Raises:
            ValueError: If a section is missing or holds an invalid value.
        """
        if not isinstance(data, dict):
            raise ValueError(f"{source}: top level must be a mapping")

        contribution_rates: dict[str, dict[str, float]] = {}
        raw_contrib = _section(data, "contribution_rates", source)
        for tax in ("pis", "cofins"):
            rates = _section(raw_contrib, tax, f"{source}: contribution_rates")
            contribution_rates[tax] = {
                regime: _rate(rates, regime, f"{source}: contribution_rates.{tax}")
                for regime in VALID_PIS_COFINS_REGIMES
            }

        raw_inverse = _section(data, "inverse_revenue_rates", source)
        inverse_revenue_rates = {
            str(tax): _positive(raw_inverse, tax, f"{source}: inverse_revenue_rates")
            for tax in raw_inverse
        }

        icms = _section(data, "icms", source)
        state_rates = _section(icms, "state_rates", f"{source}: icms")
        icms_state_rates = {
            str(uf).upper(): _rate(state_rates, uf, f"{source}: icms.state_rates")
            for uf in state_rates
        }

        ipi = _section(data, "ipi", source)
        iss = _section(data, "iss", source)

        credit = _section(data, "credit_estimates", source)
        pis_cofins_credit = _credit_ratio(
            _section(credit, "pis_cofins", f"{source}: credit_estimates"),
            f"{source}: credit_estimates.pis_cofins",
        )
        raw_icms_credit = _section(credit, "icms", f"{source}: credit_estimates")
        icms_credit = {
            str(sector): _credit_ratio(
                _section(raw_icms_credit, sector, f"{source}: credit_estimates.icms"),
                f"{source}: credit_estimates.icms.{sector}",
            )
            for sector in raw_icms_credit
        }

        sibling = _section(data, "sibling_ratio", source)
        defaults = _section(data, "default_effective_rates", source)
        default_effective_rates = {
            str(tax): _non_negative(defaults, tax, f"{source}: default_effective_rates")
            for tax in defaults
        }
        for tax in ("pis", "cofins", "icms", "ipi", "iss", "total"):
            if tax not in default_effective_rates:
                raise ValueError(f"{source}: default_effective_rates missing {tax!r}")

        raw_margins = _section(data, "margins", source)
        margins = {
            str(sector): _rate(raw_margins, sector, f"{source}: margins")
            for sector in raw_margins
        }
        if "default" not in margins:
            raise ValueError(f"{source}: margins missing 'default'")

        ecf_forma_trib: dict[str, str] = {}
        for code, regime in _section(data, "ecf_forma_trib", source).items():
            if regime not in VALID_REGIMES:
                raise ValueError(f"{source}: ecf_forma_trib invalid regime {regime!r}")
            ecf_forma_trib[str(code)] = regime

        contribution_regime_codes: dict[str, tuple[str, str]] = {}
        for code, entry in _section(data, "contribution_regime_codes", source).items():
            if not isinstance(entry, dict):
                raise ValueError(
                    f"{source}: contribution_regime_codes[{code!r}] must be a mapping"
                )
            regime = entry.get("regime")
            pis_cofins = entry.get("pis_cofins")
            if regime not in VALID_REGIMES or pis_cofins not in VALID_PIS_COFINS_REGIMES:
                raise ValueError(
                    f"{source}: contribution_regime_codes[{code!r}] has invalid values"
                )
            contribution_regime_codes[str(code)] = (regime, pis_cofins)

        default_regime = data.get("default_regime", "presumido")
        if default_regime not in VALID_REGIMES:
            raise ValueError(f"{source}: invalid default_regime {default_regime!r}")

        cfop = _section(data, "cfop", source)

        cycle = _section(data, "financial_cycle", source)
        financial_cycle = {
            str(key): _non_negative(cycle, key, f"{source}: financial_cycle")
            for key in cycle
        }

        iva = dict(_section(data, "iva", source))

        return cls(
            contribution_rates=contribution_rates,
            inverse_revenue_rates=inverse_revenue_rates,
            icms_default_rate=_rate(icms, "default_rate", f"{source}: icms"),
            icms_debit_base_ratio=_rate(icms, "debit_base_ratio", f"{source}: icms"),
            icms_state_rates=icms_state_rates,
            icms_credit_ceiling=_positive(icms, "credit_ceiling", f"{source}: icms"),
            ipi_rate=_rate(ipi, "rate", f"{source}: ipi"),
            ipi_base_ratio=_rate(ipi, "base_ratio", f"{source}: ipi"),
            ipi_credit_utilization=_rate(ipi, "credit_utilization", f"{source}: ipi"),
            iss_rate=_rate(iss, "rate", f"{source}: iss"),
            pis_cofins_credit=pis_cofins_credit,
            icms_credit=icms_credit,
            sibling_pis_rate=_positive(sibling, "pis", f"{source}: sibling_ratio"),
            sibling_cofins_rate=_positive(sibling, "cofins", f"{source}: sibling_ratio"),
            default_effective_rates=default_effective_rates,
            margins=margins,
            ecf_forma_trib=ecf_forma_trib,
            contribution_regime_codes=contribution_regime_codes,
            default_regime=default_regime,
            industry_cfops=_code_set(cfop, "industry", f"{source}: cfop"),
            services_cfops=_code_set(cfop, "services", f"{source}: cfop"),
            industry_weight=int(_positive(cfop, "industry_weight", f"{source}: cfop")),
            services_weight=int(_positive(cfop, "services_weight", f"{source}: cfop")),
            commerce_weight=int(_positive(cfop, "commerce_weight", f"{source}: cfop")),
            financial_cycle=financial_cycle,
            iva=iva,
        )


def _section(data: dict[str, Any], key: Any, source: str) -> dict[Any, Any]:
    value = data.get(key)
    if not isinstance(value, dict):
        raise ValueError(f"{source}: {key} must be a mapping")
    return value


def _number(data: dict[Any, Any], key: Any, source: str) -> float:
    value = data.get(key)
    if isinstance(value, bool):
        raise ValueError(f"{source}: invalid number for {key!r}: {value!r}")
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{source}: invalid number for {key!r}: {value!r}") from exc


def _non_negative(data: dict[Any, Any], key: Any, source: str) -> float:
    value = _number(data, key, source)
    if value < 0:
        raise ValueError(f"{source}: negative value for {key!r}: {value}")
    return value


def _positive(data: dict[Any, Any], key: Any, source: str) -> float:
    value = _number(data, key, source)
    if value <= 0:
        raise ValueError(f"{source}: {key!r} must be positive, got {value}")
    return value


def _rate(data: dict[Any, Any], key: Any, source: str) -> float:
    value = _non_negative(data, key, source)
    if value > 1:
        raise ValueError(f"{source}: rate {key!r} must be a fraction, got {value}")
    return value


def _credit_ratio(data: dict[Any, Any], source: str) -> CreditRatio:
    return CreditRatio(
        purchase_ratio=_rate(data, "purchase_ratio", source),
        utilization=_rate(data, "utilization", source),
    )


def _code_set(data: dict[Any, Any], key: str, source: str) -> frozenset[str]:
    codes = data.get(key)
    if not isinstance(codes, list):
        raise ValueError(f"{source}: {key} must be a list")
    return frozenset(str(code).strip() for code in codes)


def _read_tables(path: Path) -> StatutoryTables:
    raw = path.read_text(encoding="utf-8")
    data = yaml.safe_load(raw) or {}
    return StatutoryTables.from_mapping(data, source=path.name)


@lru_cache
def _bundled_tables() -> StatutoryTables:
    return _read_tables(BUNDLED_TABLES_PATH)


def load_statutory_tables(path: Path | str | None = None) -> StatutoryTables:
    """Load statutory tables from YAML.

    Args:
        path: Table file to read. Defaults to ``SPED_TABLES_PATH`` when set,
            otherwise the bundled ``statutory_tables.yaml`` (cached).

    Returns:
        Validated statutory tables.
    """
    if path is None:
        path = get_settings().tables_path
    if path is None:
        return _bundled_tables()
    return _read_tables(Path(path))
