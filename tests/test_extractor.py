"""Tests for the extraction pipeline."""

import pytest

from sped_extractor import SpedExtractor, SpedFile, extract
from sped_extractor.classifier import FileType
from sped_extractor.config.settings import get_settings
from sped_extractor.events import EventCollector, EventType
from sped_extractor.extractor import as_sped_file
from sped_extractor.resolvers.company import DEFAULT_NAME


def as_text(lines):
    return "\n".join(lines)


@pytest.fixture
def files(fiscal_lines, contribuicoes_lines):
    return [
        ("efd_icms_ipi_012024.txt", as_text(fiscal_lines)),
        ("arquivo2.txt", as_text(contribuicoes_lines)),
    ]


class TestSpedFile:
    """Tests for input handling."""

    def test_from_text(self):
        sped_file = SpedFile.from_text("|0000|a|\r\n|9999|1|\n", name="a.txt")
        assert sped_file.lines == ["|0000|a|", "|9999|1|"]
        assert sped_file.name == "a.txt"

    def test_from_path_uses_encoding(self, tmp_path, ecf_lines):
        path = tmp_path / "ecf_2023.txt"
        path.write_bytes(as_text(ecf_lines).encode("latin-1"))

        sped_file = SpedFile.from_path(path)

        assert sped_file.name == "ecf_2023.txt"
        assert any("Receita Líquida" in line for line in sped_file.lines)

    def test_undecodable_bytes_replaced(self, tmp_path):
        path = tmp_path / "efd.txt"
        path.write_bytes(b"|0000|\xff\xfe|\n")
        sped_file = SpedFile.from_path(path, encoding="utf-8")
        assert len(sped_file.lines) == 1

    def test_pairs_accepted(self):
        assert as_sped_file((None, "|0000|")).lines == ["|0000|"]

    def test_other_inputs_rejected(self):
        with pytest.raises(TypeError):
            as_sped_file("|0000|")


class TestExtract:
    """Tests for the full pipeline."""

    def test_fiscal_and_contributions(self, tables, files):
        result = SpedExtractor(tables=tables).extract(files)

        assert not result.degraded
        assert result.reliability == "alta"
        assert result.issues == []
        assert result.profile.name == "COMERCIAL EXEMPLO LTDA"
        assert result.profile.regime == "real"
        assert result.profile.monthly_revenue.value == pytest.approx(100000.0)
        assert result.composition.debits["icms"].value == pytest.approx(1800.0)
        assert result.composition.debits["pis"].value == pytest.approx(1650.0)
        assert result.composition.debits["cofins"].value == pytest.approx(7600.0)
        assert result.dataset.file_types == (FileType.FISCAL, FileType.CONTRIBUICOES)

    def test_to_dict_structure(self, tables, files):
        data = SpedExtractor(tables=tables).extract(files).to_dict()

        assert set(data) == {
            "empresa",
            "parametros_fiscais",
            "ciclo_financeiro",
            "dados_financeiros",
            "iva_config",
            "validacao",
            "qualidade",
            "documentos",
            "itens",
            "metadados",
        }
        assert data["parametros_fiscais"]["regime_pis_cofins"] == "nao-cumulativo"
        assert data["validacao"] == {"inconsistencias": [], "confiabilidade": "alta"}
        assert "itens" not in data["documentos"][0]
        assert data["documentos"][0]["dt_doc"] == "2024-01-15"
        assert len(data["itens"]) == 1

    def test_parallel_parse_matches_sequential(self, tables, files):
        extractor = SpedExtractor(tables=tables)
        sequential = extractor.extract(files).to_dict()
        parallel = extractor.extract(files, max_workers=2).to_dict()
        assert parallel == sequential

    def test_events(self, tables, files):
        collector = EventCollector()
        SpedExtractor(tables=tables, collector=collector).extract(files)

        classified = collector.events_of(EventType.FILE_CLASSIFIED)
        assert [e.data["method"] for e in classified] == ["nome", "conteudo"]
        assert [e.file_type for e in classified] == ["fiscal", "contribuicoes"]
        assert len(collector.events_of(EventType.FILE_PARSED)) == 2
        assert len(collector.events_of(EventType.DATASETS_COMBINED)) == 1
        completed = collector.events_of(EventType.EXTRACTION_COMPLETED)
        assert completed[0].data == {"reliability": "alta", "issues": 0}

    def test_no_files(self, tables):
        result = SpedExtractor(tables=tables).extract([])
        assert not result.degraded
        assert result.reliability == "media"
        assert result.profile.monthly_revenue.value == 0.0

    def test_module_level_extract(self, tables, files):
        result = extract(files, tables=tables)
        assert result.profile.cnpj == "12345678000195"


class TestDegraded:
    """Tests for the never-raise contract."""

    def test_bad_input_gives_default_structure(self, tables):
        collector = EventCollector()
        result = SpedExtractor(tables=tables, collector=collector).extract([object()])

        assert result.degraded
        assert result.error.startswith("Erro ao processar dados:")
        assert result.issues == [result.error]
        assert result.reliability == "baixa"
        assert result.composition.effective_rates["total"] == pytest.approx(21.65)
        assert result.cycle.pmr == 30
        assert collector.events_of(EventType.EXTRACTION_FAILED)[0].data["error_type"] == "TypeError"

    def test_degraded_serializes(self, tables):
        data = SpedExtractor(tables=tables).degraded("falha").to_dict()
        assert data["validacao"] == {"inconsistencias": ["falha"], "confiabilidade": "baixa"}
        assert data["documentos"] == []
        assert data["qualidade"]["classificacao"] == "insuficiente"

    def test_resolver_failure_is_caught(self, tables, files, monkeypatch):
        extractor = SpedExtractor(tables=tables)

        def explode(dataset):
            raise RuntimeError("falha inesperada")

        monkeypatch.setattr(extractor, "resolve", explode)

        result = extractor.extract(files)

        assert result.error == "Erro ao processar dados: falha inesperada"

    def test_degraded_keeps_default_name(self, tables):
        assert SpedExtractor(tables=tables).degraded("falha").profile.name == DEFAULT_NAME


class TestExtractorSetup:
    """Tests for failures while building the extractor."""

    @pytest.fixture
    def bad_tables(self, tmp_path, monkeypatch):
        path = tmp_path / "tabelas.yaml"
        path.write_text("icms: [1, 2]\n", encoding="utf-8")
        monkeypatch.setenv("SPED_TABLES_PATH", str(path))
        get_settings.cache_clear()
        yield path
        get_settings.cache_clear()

    def test_unreadable_tables_give_degraded_result(self, bad_tables, files):
        collector = EventCollector()

        result = extract(files, collector=collector)

        assert result.degraded
        assert result.error.startswith("Erro ao processar dados: tabelas.yaml")
        assert result.profile.name == DEFAULT_NAME
        assert result.composition.effective_rates["total"] == pytest.approx(21.65)
        assert collector.events_of(EventType.EXTRACTION_FAILED)[0].data["error_type"] == (
            "ValueError"
        )

    def test_missing_tables_file(self, tmp_path, monkeypatch, files):
        monkeypatch.setenv("SPED_TABLES_PATH", str(tmp_path / "nao_existe.yaml"))
        get_settings.cache_clear()
        try:
            result = extract(files)
        finally:
            get_settings.cache_clear()

        assert result.degraded
        assert result.reliability == "baixa"


class TestParseFile:
    def test_forced_type(self, tables, ecd_lines):
        collector = EventCollector()
        extractor = SpedExtractor(tables=tables, collector=collector)

        dataset = extractor.parse_file(ecd_lines, "dados.txt", FileType.ECD)

        assert dataset.file_types == (FileType.ECD,)
        assert collector.events_of(EventType.FILE_CLASSIFIED)[0].data["method"] == "informado"
