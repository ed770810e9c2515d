"""ECD (digital general ledger) record layouts."""

from sped_extractor.classifier import FileType
from sped_extractor.records.layouts import (
    RecordLayout,
    block_openers,
    control_records,
    day,
    layout_table,
    money,
    text,
)
from sped_extractor.records.types import RecordKind

ECD_LAYOUTS = layout_table(
    FileType.ECD,
    [
        RecordLayout(
            "0000",
            15,
            RecordKind.COMPANY,
            "identificacao",
            (
                text("lecd", 2),
                day("dt_ini", 3),
                day("dt_fin", 4),
                text("nome", 5),
                text("cnpj", 6),
                text("uf", 7),
                text("ie", 8),
                text("cod_mun", 9),
                text("im", 10),
                text("ind_sit_esp", 11),
                text("ind_sit_ini_per", 12),
                text("ind_nire", 13),
                text("ind_fin_esc", 14),
            ),
        ),
        RecordLayout(
            "0007",
            3,
            RecordKind.OTHER,
            "outras_inscricoes",
            (text("cod_ent_ref", 2), text("cod_inscr", 3)),
        ),
        RecordLayout(
            "I010",
            3,
            RecordKind.OTHER,
            "identificacao_escrituracao",
            (text("ind_esc", 2), text("cod_ver_lc", 3)),
        ),
        RecordLayout(
            "I050",
            8,
            RecordKind.OTHER,
            "plano_contas",
            (
                day("dt_alt", 2),
                text("cod_nat", 3),
                text("ind_cta", 4),
                text("nivel", 5),
                text("cod_cta", 6),
                text("cod_cta_sup", 7),
                text("cta", 8),
            ),
        ),
        RecordLayout(
            "I150",
            4,
            RecordKind.OTHER,
            "periodo_saldos",
            (day("dt_ini", 2), day("dt_fin", 3)),
        ),
        RecordLayout(
            "I155",
            9,
            RecordKind.BALANCE_SHEET,
            "saldo_periodico",
            (
                text("codigo", 2),
                text("cod_ccus", 3),
                money("valor_inicial", 4),
                text("indicador_inicial", 5),
                money("vl_deb", 6),
                money("vl_cred", 7),
                money("valor", 8),
                text("indicador", 9),
            ),
        ),
        RecordLayout(
            "I200",
            5,
            RecordKind.OTHER,
            "lancamento",
            (
                text("num_lcto", 2),
                day("dt_lcto", 3),
                money("vl_lcto", 4),
                text("ind_lcto", 5),
            ),
        ),
        RecordLayout(
            "I250",
            6,
            RecordKind.OTHER,
            "partida",
            (
                text("cod_cta", 2),
                text("cod_ccus", 3),
                money("vl_dc", 4),
                text("ind_dc", 5),
                text("num_arq", 6),
                text("cod_hist_pad", 7),
                text("hist", 8),
            ),
        ),
        RecordLayout(
            "I350", 3, RecordKind.OTHER, "encerramento_resultado", (day("dt_res", 2),)
        ),
        RecordLayout(
            "I355",
            6,
            RecordKind.INCOME_STATEMENT,
            "saldo_resultado",
            (
                text("codigo", 2),
                text("cod_ccus", 3),
                money("valor", 4),
                text("indicador", 5),
            ),
        ),
        RecordLayout(
            "J005",
            5,
            RecordKind.OTHER,
            "demonstracoes",
            (day("dt_ini", 2), day("dt_fin", 3), text("id_dem", 4)),
        ),
        RecordLayout(
            "J100",
            11,
            RecordKind.BALANCE_SHEET,
            "balanco_patrimonial",
            (
                text("codigo", 2),
                text("ind_cod_agl", 3),
                text("nivel", 4),
                text("cod_sup", 5),
                text("ind_grp_bal", 6),
                text("descricao", 7),
                money("valor_inicial", 8),
                text("indicador_inicial", 9),
                money("valor", 10),
                text("indicador", 11),
            ),
        ),
        RecordLayout(
            "J150",
            11,
            RecordKind.INCOME_STATEMENT,
            "dre",
            (
                text("nu_ordem", 2),
                text("codigo", 3),
                text("ind_cod_agl", 4),
                text("nivel", 5),
                text("cod_sup", 6),
                text("descricao", 7),
                money("valor_inicial", 8),
                text("indicador_inicial", 9),
                money("valor", 10),
                text("indicador", 11),
                text("ind_grp_dre", 12),
            ),
        ),
        *block_openers(["0001", "C001", "I001", "J001", "K001", "9001"]),
        *control_records(),
    ],
)
