"""Tests for per-file aggregation."""

from datetime import date

import pytest

from sped_extractor.aggregator import SpedDataset, aggregate_records
from sped_extractor.classifier import FileType
from sped_extractor.records import RecordDispatcher


def aggregate(lines, file_type, file_name="arquivo.txt"):
    result = RecordDispatcher().dispatch(lines, file_type, file_name)
    return aggregate_records(result)


class TestFiscalAggregation:
    """Tests for EFD ICMS/IPI routing."""

    def test_company_merges_blocks(self, fiscal_lines):
        """Test that 0000 and 0005 feed the same identity."""
        dataset = aggregate(fiscal_lines, FileType.FISCAL)
        assert dataset.company["nome"] == "COMERCIAL EXEMPLO LTDA"
        assert dataset.company["fantasia"] == "EXEMPLO MODAS"
        assert dataset.identities["fiscal"]["cnpj"] == "12345678000195"

    def test_documents_link_items_and_participants(self, fiscal_lines):
        dataset = aggregate(fiscal_lines, FileType.FISCAL)

        outbound = dataset.documents[0]
        assert outbound["registro"] == "C100"
        assert outbound["arquivo"] == "arquivo.txt"
        assert outbound["dt_doc"] == date(2024, 1, 15)
        assert outbound["participante"]["nome"] == "CLIENTE SA"
        assert len(outbound["itens"]) == 1
        assert outbound["itens"][0]["cfop"] == "5405"

        item = dataset.line_items[0]
        assert item["documento_linha"] == outbound["linha"]
        assert item["ind_oper_documento"] == "1"

        assert dataset.documents[1]["participante"] is None

    def test_totals_and_scalars(self, fiscal_lines):
        dataset = aggregate(fiscal_lines, FileType.FISCAL)
        assert dataset.calculated_totals["debits"]["icms"] == pytest.approx(1800.0)
        assert dataset.scalar("total_saidas") == pytest.approx(10000.0)
        assert len(dataset.analytics) == 2

    def test_cancelled_documents_excluded_from_outbound_total(self, line):
        lines = [
            line("C100", {2: "1", 6: "00", 12: "500,00"}, size=29),
            line("C100", {2: "1", 6: "02", 12: "900,00"}, size=29),
        ]
        dataset = aggregate(lines, FileType.FISCAL)
        assert dataset.scalar("total_saidas") == pytest.approx(500.0)

    def test_metadata(self, fiscal_lines):
        dataset = aggregate(fiscal_lines + ["|ZZZZ|1|"], FileType.FISCAL)
        summary = dataset.metadata.files[0]
        assert summary.file_name == "arquivo.txt"
        assert summary.ignored == 1
        assert dataset.metadata.record_counts["C190"] == 2


class TestContributionAggregation:
    """Tests for EFD Contribuições routing."""

    def test_buckets(self, contribuicoes_lines):
        dataset = aggregate(contribuicoes_lines, FileType.CONTRIBUICOES)
        assert dataset.regimes["pis_cofins"][0]["cod_inc_trib"] == "1"
        assert len(dataset.credits["pis"]) == 1
        assert len(dataset.debits["pis"]) == 1
        assert dataset.calculated_totals["credits"]["pis"] == pytest.approx(660.0)

    def test_gross_revenue_from_declared_total(self, contribuicoes_lines):
        dataset = aggregate(contribuicoes_lines, FileType.CONTRIBUICOES)
        assert dataset.scalar("receita_bruta") == pytest.approx(100000.0)

    def test_gross_revenue_falls_back_to_contribution_detail(self, line):
        lines = [line("M210", {2: "01", 3: "45000,00", 13: "742,50"})]
        dataset = aggregate(lines, FileType.CONTRIBUICOES)
        assert dataset.scalar("receita_bruta") == pytest.approx(45000.0)


class TestAccountingAggregation:
    """Tests for ECF and ECD statements."""

    def test_ecf_statement_scalars(self, ecf_lines):
        dataset = aggregate(ecf_lines, FileType.ECF)
        assert dataset.scalar("receita_liquida") == pytest.approx(1080000.0)
        assert dataset.scalar("receita_bruta_dre") == pytest.approx(1200000.0)
        assert dataset.scalar("custo_vendas") == pytest.approx(600000.0)
        assert dataset.scalar("despesas_operacionais") == pytest.approx(200000.0)
        assert dataset.scalar("saldo_clientes") == pytest.approx(150000.0)
        assert dataset.scalar("saldo_fornecedores") == pytest.approx(72000.0)
        assert dataset.scalar("saldo_estoques") == pytest.approx(84000.0)

    def test_ecf_monthly_net_revenue_uses_period(self, ecf_lines):
        """Test that annual net revenue is spread over the declared months."""
        dataset = aggregate(ecf_lines, FileType.ECF)
        assert dataset.scalar("receita_liquida_mensal") == pytest.approx(90000.0)

    def test_ecd_matches_descriptions(self, ecd_lines):
        dataset = aggregate(ecd_lines, FileType.ECD)
        assert dataset.scalar("receita_liquida") == pytest.approx(960000.0)
        assert dataset.scalar("saldo_clientes") == pytest.approx(90000.0)
        assert dataset.scalar("receita_liquida_mensal") == 0.0


class TestSerialization:
    """Tests for dataset serialization."""

    def test_to_dict_is_plain(self, fiscal_lines):
        data = aggregate(fiscal_lines, FileType.FISCAL).to_dict()
        assert data["tipos_arquivo"] == ["fiscal"]
        assert data["empresa"]["dt_ini"] == "2024-01-01"
        assert data["documentos"][0]["dt_doc"] == "2024-01-15"

    def test_empty_dataset(self):
        empty = SpedDataset.empty()
        assert empty.file_types == ()
        assert empty.scalar("receita_bruta") == 0.0
