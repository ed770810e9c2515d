"""Pytest configuration and fixtures."""

import os

import pytest

# Set test environment variables before importing settings
os.environ.setdefault("SPED_LOG_LEVEL", "WARNING")
os.environ.setdefault("SPED_LOG_FORMAT", "console")
os.environ.setdefault("SPED_ENCODING", "latin-1")

from sped_extractor.aggregator import aggregate_records  # noqa: E402
from sped_extractor.config.tables import load_statutory_tables  # noqa: E402
from sped_extractor.records import RecordDispatcher  # noqa: E402


def build_line(code: str, values: dict[int, str] | None = None, size: int = 2) -> str:
    """Build a delimited SPED line with ``values`` at official field positions.

    ``size`` is the highest field number the line carries.
    """
    values = values or {}
    size = max([size, *values.keys()]) if values else size
    fields = [values.get(index, "") for index in range(2, size + 1)]
    return "|" + "|".join([code, *fields]) + "|"


@pytest.fixture
def line():
    """Expose the line builder to tests."""
    return build_line


@pytest.fixture
def tables():
    """Bundled statutory tables."""
    return load_statutory_tables()


@pytest.fixture
def parse():
    """Dispatch and aggregate lines of a known file type."""

    def _parse(lines, file_type, file_name="arquivo.txt"):
        result = RecordDispatcher().dispatch(lines, file_type, file_name)
        return aggregate_records(result)

    return _parse


@pytest.fixture
def fiscal_lines():
    """One month of EFD ICMS/IPI for a retailer in SP."""
    return [
        build_line(
            "0000",
            {
                2: "017",
                3: "0",
                4: "01012024",
                5: "31012024",
                6: "COMERCIAL EXEMPLO LTDA",
                7: "12345678000195",
                9: "SP",
                10: "111222333444",
                11: "3550308",
                14: "A",
                15: "1",
            },
        ),
        build_line("0001", {2: "0"}),
        build_line("0005", {2: "EXEMPLO MODAS", 3: "01001000", 4: "RUA A", 5: "10"}),
        build_line(
            "0150",
            {2: "CLI01", 3: "CLIENTE SA", 4: "01058", 5: "98765432000110", 8: "3550308"},
            size=13,
        ),
        build_line(
            "C100",
            {
                2: "1",
                3: "0",
                4: "CLI01",
                5: "55",
                6: "00",
                7: "1",
                8: "100",
                10: "15012024",
                11: "15012024",
                12: "10.000,00",
                13: "1",
                16: "10000,00",
                21: "10000,00",
                22: "1800,00",
                26: "165,00",
                27: "760,00",
            },
            size=29,
        ),
        build_line(
            "C170",
            {2: "1", 3: "ITEM1", 5: "10", 6: "UN", 7: "10000,00", 11: "5405", 15: "1800,00"},
            size=37,
        ),
        build_line(
            "C190",
            {2: "000", 3: "5405", 4: "18,00", 5: "10000,00", 6: "10000,00", 7: "1800,00"},
            size=12,
        ),
        build_line(
            "C100",
            {
                2: "0",
                3: "1",
                4: "FOR01",
                5: "55",
                6: "00",
                10: "10012024",
                12: "4000,00",
                22: "480,00",
                26: "66,00",
                27: "304,00",
            },
            size=29,
        ),
        build_line("C190", {2: "000", 3: "1102", 5: "4000,00", 7: "480,00"}, size=12),
        build_line("E110", {2: "1800,00", 6: "480,00", 11: "1320,00", 13: "1320,00"}, size=15),
        build_line("9999", {2: "12"}),
    ]


@pytest.fixture
def contribuicoes_lines():
    """One month of EFD Contribuições under the non-cumulative regime."""
    return [
        build_line(
            "0000",
            {
                2: "006",
                3: "0",
                6: "01012024",
                7: "31012024",
                8: "COMERCIAL EXEMPLO LTDA",
                9: "12345678000195",
                10: "SP",
                11: "3550308",
                13: "00",
                14: "1",
            },
        ),
        build_line("0110", {2: "1", 3: "1", 4: "1"}, size=5),
        build_line(
            "0111", {2: "80000,00", 3: "0", 4: "0", 5: "20000,00", 6: "100000,00"}
        ),
        build_line(
            "M100",
            {
                2: "101",
                3: "0",
                4: "40000,00",
                5: "1,65",
                8: "660,00",
                12: "660,00",
                13: "1",
                14: "660,00",
                15: "0",
            },
        ),
        build_line("M200", {2: "1650,00", 3: "660,00", 8: "990,00", 13: "990,00"}),
        build_line(
            "M210",
            {2: "01", 3: "100000,00", 4: "100000,00", 5: "1,65", 8: "1650,00", 13: "1650,00"},
        ),
        build_line("9999", {2: "7"}),
    ]


@pytest.fixture
def ecf_lines():
    """A year of ECF for a company taxed on presumed profit."""
    return [
        build_line(
            "0000",
            {
                2: "LECF",
                3: "0009",
                4: "12345678000195",
                5: "COMERCIAL EXEMPLO LTDA",
                6: "0",
                10: "01012023",
                11: "31122023",
                12: "N",
                14: "0",
            },
        ),
        build_line("0010", {5: "5", 6: "T"}, size=13),
        build_line(
            "P100", {2: "1.01.02.01", 3: "Clientes", 4: "A", 5: "4", 10: "150000,00", 11: "D"}
        ),
        build_line(
            "P100", {2: "2.01.01", 3: "Fornecedores", 4: "A", 5: "3", 10: "72000,00", 11: "C"}
        ),
        build_line(
            "P100", {2: "1.01.03", 3: "Estoques", 4: "A", 5: "3", 10: "84000,00", 11: "D"}
        ),
        build_line("P150", {2: "3.01", 3: "Receita Bruta", 4: "S", 8: "1200000,00", 9: "C"}),
        build_line("P150", {2: "3.02", 3: "Receita Líquida", 4: "S", 8: "1080000,00", 9: "C"}),
        build_line("P150", {2: "3.03", 3: "Custo das Vendas", 4: "S", 8: "600000,00", 9: "D"}),
        build_line(
            "P150", {2: "3.04", 3: "Despesas Operacionais", 4: "S", 8: "200000,00", 9: "D"}
        ),
        build_line("9999", {2: "10"}),
    ]


@pytest.fixture
def ecd_lines():
    """Closing statements of a year of ECD."""
    return [
        build_line(
            "0000",
            {
                2: "LECD",
                3: "01012023",
                4: "31122023",
                5: "COMERCIAL EXEMPLO LTDA",
                6: "12345678000195",
                7: "SP",
                14: "0",
            },
            size=15,
        ),
        build_line("I010", {2: "G", 3: "9.00"}),
        build_line(
            "J100",
            {2: "1.1.2", 3: "D", 4: "3", 6: "A", 7: "Duplicatas a Receber", 10: "90000,00", 11: "D"},
        ),
        build_line(
            "J150",
            {2: "1", 3: "3.02", 4: "T", 5: "2", 7: "Receita Líquida", 10: "960000,00", 11: "C"},
            size=12,
        ),
        build_line("9999", {2: "5"}),
    ]
