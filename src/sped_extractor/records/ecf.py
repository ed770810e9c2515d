"""ECF (corporate income tax) record layouts."""

from sped_extractor.classifier import FileType
from sped_extractor.records.layouts import (
    FieldSpec,
    RecordLayout,
    block_openers,
    control_records,
    day,
    layout_table,
    money,
    text,
)
from sped_extractor.records.types import RecordKind


def _referential_fields() -> tuple[FieldSpec, ...]:
    """L100 / P100 balance lines against the referential chart."""
    return (
        text("codigo", 2),
        text("descricao", 3),
        text("tipo", 4),
        text("nivel", 5),
        text("cod_nat", 6),
        text("cod_sup", 7),
        money("valor_inicial", 8),
        text("indicador_inicial", 9),
        money("valor", 10),
        text("indicador", 11),
    )


def _result_fields() -> tuple[FieldSpec, ...]:
    """L300 / P150 income statement lines against the referential chart."""
    return (
        text("codigo", 2),
        text("descricao", 3),
        text("tipo", 4),
        text("nivel", 5),
        text("cod_nat", 6),
        text("cod_sup", 7),
        money("valor", 8),
        text("indicador", 9),
    )


def _account_balance_fields() -> tuple[FieldSpec, ...]:
    """K155 / K355 account balances after closing."""
    return (
        text("codigo", 2),
        text("cod_ccus", 3),
        money("valor_inicial", 4),
        text("indicador_inicial", 5),
        money("vl_deb", 6),
        money("vl_cred", 7),
        money("valor", 8),
        text("indicador", 9),
    )


def _calculation_fields() -> tuple[FieldSpec, ...]:
    """N-block calculation lines (codigo, descricao, valor)."""
    return (text("codigo", 2), text("descricao", 3), money("valor", 4))


ECF_LAYOUTS = layout_table(
    FileType.ECF,
    [
        RecordLayout(
            "0000",
            14,
            RecordKind.COMPANY,
            "identificacao",
            (
                text("nome_esc", 2),
                text("cod_ver", 3),
                text("cnpj", 4),
                text("nome", 5),
                text("ind_sit_ini_per", 6),
                text("sit_especial", 7),
                day("dt_sit_esp", 9),
                day("dt_ini", 10),
                day("dt_fin", 11),
                text("retificadora", 12),
                text("tip_ecf", 14),
            ),
        ),
        RecordLayout(
            "0010",
            7,
            RecordKind.REGIME,
            "irpj",
            (
                text("hash_ecf_anterior", 2),
                text("opt_refis", 3),
                text("opt_paes", 4),
                text("forma_trib", 5),
                text("forma_apur", 6),
                text("cod_qualif_pj", 7),
                text("forma_trib_per", 8),
                text("mes_bal_red", 9),
                text("tip_esc_pre", 10),
                text("tip_ent", 11),
                text("forma_apur_i", 12),
                text("apur_csll", 13),
            ),
            description="Parâmetros de tributação",
        ),
        RecordLayout(
            "0020",
            8,
            RecordKind.OTHER,
            "parametros_complementares",
            (
                text("ind_aliq_csll", 2),
                text("ind_qte_scp", 3),
                text("ind_adm_fun_clu", 4),
                text("ind_part_cons", 5),
                text("ind_op_ext", 6),
                text("ind_op_vinc", 7),
            ),
        ),
        RecordLayout(
            "J050",
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
            "K155", 9, RecordKind.BALANCE_SHEET, "saldo_contabil", _account_balance_fields()
        ),
        RecordLayout(
            "K355",
            9,
            RecordKind.INCOME_STATEMENT,
            "saldo_resultado",
            _account_balance_fields(),
        ),
        RecordLayout(
            "L100", 10, RecordKind.BALANCE_SHEET, "balanco_real", _referential_fields()
        ),
        RecordLayout("L300", 9, RecordKind.INCOME_STATEMENT, "dre_real", _result_fields()),
        RecordLayout(
            "M300",
            7,
            RecordKind.OTHER,
            "lalur",
            (
                text("codigo", 2),
                text("descricao", 3),
                text("tipo_lancamento", 4),
                text("ind_relacao", 5),
                money("valor", 6),
                text("hist_lan_lal", 7),
            ),
        ),
        RecordLayout(
            "N630",
            5,
            RecordKind.DEBIT,
            "irpj",
            _calculation_fields(),
            derive=lambda v: {"valor_debito": v["valor"]},
        ),
        RecordLayout(
            "N670",
            5,
            RecordKind.DEBIT,
            "csll",
            _calculation_fields(),
            derive=lambda v: {"valor_debito": v["valor"]},
        ),
        RecordLayout(
            "P100",
            10,
            RecordKind.BALANCE_SHEET,
            "balanco_presumido",
            _referential_fields(),
        ),
        RecordLayout(
            "P150", 9, RecordKind.INCOME_STATEMENT, "dre_presumido", _result_fields()
        ),
        RecordLayout(
            "Y540",
            5,
            RecordKind.OTHER,
            "receita_atividade",
            (text("cnpj_estab", 2), money("vl_rec_estab", 3), text("cnae", 4)),
        ),
        *block_openers(
            [
                "0001",
                "C001",
                "E001",
                "J001",
                "K001",
                "L001",
                "M001",
                "N001",
                "P001",
                "Q001",
                "T001",
                "U001",
                "X001",
                "Y001",
                "9001",
            ]
        ),
        *control_records(),
    ],
)
