"""Tests for tax composition resolution."""

from datetime import date

import pytest

from sped_extractor.aggregator import SpedDataset
from sped_extractor.classifier import FileType
from sped_extractor.events import EventCollector, EventType
from sped_extractor.resolvers import (
    CompanyResolver,
    Provenance,
    SourcedValue,
    TaxCompositionResolver,
)


def compose(dataset, tables, collector=None):
    profile = CompanyResolver(tables).resolve(dataset)
    return TaxCompositionResolver(tables, collector).resolve(dataset, profile)


class TestContributionsOnly:
    """A non-cumulative company with only EFD Contribuições."""

    @pytest.fixture
    def composition(self, tables, parse, contribuicoes_lines):
        return compose(parse(contribuicoes_lines, FileType.CONTRIBUICOES), tables)

    def test_pis_from_ledger(self, composition):
        assert composition.debits["pis"].value == pytest.approx(1650.0)
        assert composition.debits["pis"].provenance is Provenance.FROM_LEDGER
        assert composition.debits["pis"].metadata["estrategia"] == "m200_debitos"
        assert composition.credits["pis"].value == pytest.approx(660.0)

    def test_cofins_derived_from_pis(self, composition):
        """Test that COFINS follows PIS by the ratio of nominal rates."""
        assert composition.debits["cofins"].value == pytest.approx(7600.0)
        assert composition.debits["cofins"].provenance is Provenance.DERIVED
        assert composition.credits["cofins"].value == pytest.approx(3040.0)
        assert composition.credits["cofins"].provenance is Provenance.DERIVED

    def test_icms_estimated_from_state_rate(self, composition):
        assert composition.debits["icms"].value == pytest.approx(10800.0)
        assert composition.debits["icms"].provenance is Provenance.ESTIMATED
        assert composition.credits["icms"].value == pytest.approx(12916.8)

    def test_non_applicable_taxes(self, composition):
        assert composition.debits["ipi"].value == 0.0
        assert composition.debits["iss"].metadata["estrategia"] == "nao_aplicavel"
        assert composition.credits["iss"].value == 0.0

    def test_effective_rates(self, composition):
        rates = composition.effective_rates
        assert rates["pis"] == pytest.approx(0.99)
        assert rates["cofins"] == pytest.approx(4.56)
        assert rates["icms"] == 0.0
        assert rates["total"] == pytest.approx(5.55)

    def test_provenance_map(self, composition):
        assert composition.provenance["pis_debito"] == "from-ledger"
        assert composition.provenance["cofins_debito"] == "derived"
        assert composition.provenance["icms_debito"] == "estimated"
        assert len(composition.provenance) == 10

    def test_to_dict(self, composition):
        data = composition.to_dict()
        assert set(data) == {"debitos", "creditos", "aliquotas_efetivas", "fontes_dados"}
        assert data["debitos"]["pis"] == pytest.approx(1650.0)


class TestFiscalOnly:
    """A presumed-profit retailer with only EFD ICMS/IPI."""

    @pytest.fixture
    def composition(self, tables, parse, fiscal_lines):
        return compose(parse(fiscal_lines, FileType.FISCAL), tables)

    def test_icms_from_assessment(self, composition):
        assert composition.debits["icms"].value == pytest.approx(1800.0)
        assert composition.debits["icms"].metadata["estrategia"] == "e110_debitos"
        assert composition.credits["icms"].value == pytest.approx(480.0)
        assert composition.effective_rates["icms"] == pytest.approx(13.2)

    def test_contributions_estimated_at_cumulative_rates(self, composition):
        assert composition.debits["pis"].value == pytest.approx(65.0)
        assert composition.debits["pis"].provenance is Provenance.ESTIMATED
        assert composition.debits["cofins"].value == pytest.approx(300.0)

    def test_cumulative_regime_takes_no_contribution_credits(self, composition):
        """Test that purchase documents give no PIS/COFINS credit under presumed profit."""
        assert composition.credits["pis"].value == 0.0
        assert composition.credits["pis"].provenance is Provenance.ESTIMATED
        assert composition.credits["cofins"].value == 0.0

    def test_effective_rates(self, composition):
        assert composition.net("pis") == pytest.approx(65.0)
        assert composition.effective_rates["pis"] == pytest.approx(0.65)
        assert composition.effective_rates["cofins"] == pytest.approx(3.0)
        assert composition.effective_rates["total"] == pytest.approx(16.85)


class TestContributionCredits:
    """Tests for the regime rules on PIS/COFINS credits."""

    @staticmethod
    def inbound(cfop, pis, cofins):
        return {
            "ind_oper": "0",
            "cod_sit": "00",
            "vl_pis": pis,
            "vl_cofins": cofins,
            "itens": [{"cfop": cfop}],
        }

    def test_presumed_profit_ignores_ledger_and_documents(self, tables):
        dataset = SpedDataset(
            regimes={"pis_cofins": [{"cod_inc_trib": "2"}]},
            debits={
                "pis": [{"valor_debito": 650.0, "valor_credito": 650.0}],
                "cofins": [{"valor_debito": 3000.0, "valor_credito": 3000.0}],
            },
            documents=[self.inbound("1102", 660.0, 3040.0)],
            scalars={"total_saidas": 100000.0},
        )
        composition = compose(dataset, tables)

        assert composition.debits["pis"].value == pytest.approx(650.0)
        assert composition.credits["pis"].value == 0.0
        assert composition.credits["cofins"].value == 0.0
        assert composition.effective_rates["pis"] == pytest.approx(0.65)

    def test_non_cumulative_counts_purchase_documents_only(self, tables):
        dataset = SpedDataset(
            regimes={"pis_cofins": [{"cod_inc_trib": "1"}]},
            documents=[
                self.inbound("1102", 66.0, 304.0),
                self.inbound("5949", 100.0, 460.0),
            ],
            scalars={"total_saidas": 10000.0},
        )
        composition = compose(dataset, tables)

        assert composition.credits["pis"].value == pytest.approx(66.0)
        assert composition.credits["pis"].metadata["estrategia"] == "documentos_entrada"
        assert composition.credits["cofins"].value == pytest.approx(304.0)

    def test_simples_takes_no_credits(self, tables):
        dataset = SpedDataset(
            regimes={"simples": [{"registro": "X"}]},
            documents=[self.inbound("1102", 66.0, 304.0)],
            scalars={"total_saidas": 10000.0},
        )
        composition = compose(dataset, tables)
        assert composition.credits["pis"].value == 0.0
        assert composition.credits["cofins"].value == 0.0


class TestSectorSpecificTaxes:
    """Tests for IPI and ISS."""

    def test_industry_ipi_from_assessment(self, tables):
        dataset = SpedDataset(
            debits={"ipi": [{"valor_debito": 310.0, "valor_credito": 125.0}]},
            scalars={"total_saidas": 10000.0},
        )
        composition = compose(dataset, tables)
        assert composition.debits["ipi"].value == pytest.approx(310.0)
        assert composition.credits["ipi"].value == pytest.approx(125.0)
        assert composition.effective_rates["ipi"] == pytest.approx(1.85)

    def test_services_iss_from_documents(self, tables):
        dataset = SpedDataset(
            documents=[
                {
                    "ind_oper": "1",
                    "cod_sit": "00",
                    "categoria": "servicos",
                    "vl_doc": 1000.0,
                    "vl_iss": 50.0,
                    "dt_doc": date(2024, 1, 10),
                }
            ],
            line_items=[{"cfop": "5933"}],
        )
        composition = compose(dataset, tables)
        assert composition.debits["iss"].value == pytest.approx(50.0)
        assert composition.debits["iss"].is_from_ledger
        assert composition.debits["icms"].value == 0.0
        assert composition.effective_rates["iss"] == pytest.approx(5.0)

    def test_simples_has_no_contribution_estimate(self, tables):
        dataset = SpedDataset(
            regimes={"simples": [{"registro": "X"}]},
            scalars={"total_saidas": 10000.0},
        )
        composition = compose(dataset, tables)
        assert composition.debits["pis"].value == 0.0
        assert composition.debits["cofins"].value == 0.0


class TestEffectiveRates:
    """Tests for rate computation and defaults."""

    @staticmethod
    def values(**amounts):
        taxes = ("pis", "cofins", "icms", "ipi", "iss")
        return {tax: SourcedValue.estimated(amounts.get(tax, 0.0)) for tax in taxes}

    def test_zero_revenue_uses_defaults(self, tables):
        rates = TaxCompositionResolver(tables).effective_rates(
            self.values(), self.values(), 0.0
        )
        assert rates["total"] == pytest.approx(21.65)
        assert rates["icms"] == pytest.approx(18.0)

    def test_out_of_range_rate_defaulted(self, tables):
        collector = EventCollector()
        rates = TaxCompositionResolver(tables, collector).effective_rates(
            self.values(icms=500.0), self.values(), 100.0
        )

        assert rates["icms"] == pytest.approx(18.0)
        assert rates["total"] == 0.0
        events = collector.events_of(EventType.RATE_DEFAULTED)
        assert len(events) == 1
        assert events[0].data["computed"] == pytest.approx(500.0)


class TestEvents:
    """Tests for published resolution decisions."""

    def test_sibling_derivation_published(self, tables, parse, contribuicoes_lines):
        collector = EventCollector()
        compose(parse(contribuicoes_lines, FileType.CONTRIBUICOES), tables, collector)

        derived = collector.events_of(EventType.VALUE_DERIVED)
        assert [e.subject for e in derived] == ["cofins_debito", "cofins_credito"]
        assert derived[0].data["sibling"] == "pis"

    def test_every_resolved_figure_published(self, tables, parse, fiscal_lines):
        collector = EventCollector()
        compose(parse(fiscal_lines, FileType.FISCAL), tables, collector)

        subjects = {e.subject for e in collector.events_of(EventType.VALUE_RESOLVED)}
        assert subjects == {
            "pis_debito",
            "cofins_debito",
            "icms_debito",
            "pis_credito",
            "cofins_credito",
            "icms_credito",
        }
