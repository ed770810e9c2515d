"""Tests for cross-file merging."""

import pytest

from sped_extractor.aggregator import SpedDataset, aggregate_records
from sped_extractor.classifier import FileType
from sped_extractor.combiner import combine_datasets, merge_datasets
from sped_extractor.records import RecordDispatcher


@pytest.fixture
def fiscal_dataset(fiscal_lines):
    return aggregate_records(RecordDispatcher().dispatch(fiscal_lines, FileType.FISCAL, "efd.txt"))


@pytest.fixture
def contribuicoes_dataset(contribuicoes_lines):
    return aggregate_records(
        RecordDispatcher().dispatch(contribuicoes_lines, FileType.CONTRIBUICOES, "contrib.txt")
    )


class TestMergeDatasets:
    """Tests for the pairwise merge."""

    def test_empty_is_identity(self, fiscal_dataset):
        assert merge_datasets(fiscal_dataset, SpedDataset.empty()) == fiscal_dataset
        assert merge_datasets(SpedDataset.empty(), fiscal_dataset) == fiscal_dataset

    def test_inputs_untouched(self, fiscal_dataset, contribuicoes_dataset):
        documents_before = len(fiscal_dataset.documents)
        merge_datasets(fiscal_dataset, contribuicoes_dataset)
        assert len(fiscal_dataset.documents) == documents_before
        assert "pis" not in fiscal_dataset.debits

    def test_lists_and_maps_concatenate(self, fiscal_dataset, contribuicoes_dataset):
        merged = merge_datasets(fiscal_dataset, contribuicoes_dataset)
        assert merged.file_types == (FileType.FISCAL, FileType.CONTRIBUICOES)
        assert len(merged.documents) == 2
        assert set(merged.debits) == {"icms", "pis"}
        assert merged.scalar("total_saidas") == pytest.approx(10000.0)
        assert merged.scalar("receita_bruta") == pytest.approx(100000.0)
        assert set(merged.identities) == {"fiscal", "contribuicoes"}

    def test_totals_add(self):
        left = SpedDataset(calculated_totals={"debits": {"icms": 100.0}})
        right = SpedDataset(calculated_totals={"debits": {"icms": 50.0, "ipi": 5.0}})
        merged = merge_datasets(left, right)
        assert merged.calculated_totals["debits"] == {"icms": 150.0, "ipi": 5.0}

    def test_first_nonzero_scalar_wins(self):
        left = SpedDataset(scalars={"receita_bruta": 10.0})
        right = SpedDataset(scalars={"receita_bruta": 99.0, "total_saidas": 5.0})
        merged = merge_datasets(left, right)
        assert merged.scalars == {"receita_bruta": 10.0, "total_saidas": 5.0}

    def test_company_prefers_named_identity(self):
        left = SpedDataset(company={"cnpj": "1", "uf": "SP", "ie": "2"})
        right = SpedDataset(company={"nome": "EMPRESA"})
        assert merge_datasets(left, right).company == {"nome": "EMPRESA"}

    def test_company_tie_keeps_earlier(self):
        left = SpedDataset(company={"nome": "PRIMEIRA", "cnpj": "1"})
        right = SpedDataset(company={"nome": "SEGUNDA", "cnpj": "2"})
        assert merge_datasets(left, right).company["nome"] == "PRIMEIRA"

    def test_metadata_accumulates(self, fiscal_dataset, contribuicoes_dataset):
        merged = merge_datasets(fiscal_dataset, contribuicoes_dataset)
        assert [f.file_name for f in merged.metadata.files] == ["efd.txt", "contrib.txt"]
        assert merged.metadata.record_counts["9999"] == 2


class TestCombineDatasets:
    """Tests for the fold."""

    def test_no_input(self):
        assert combine_datasets([]) == SpedDataset.empty()

    def test_fold_matches_pairwise(self, fiscal_dataset, contribuicoes_dataset):
        folded = combine_datasets([fiscal_dataset, contribuicoes_dataset])
        assert folded == merge_datasets(fiscal_dataset, contribuicoes_dataset)
