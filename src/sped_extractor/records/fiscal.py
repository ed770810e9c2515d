"""EFD ICMS/IPI record layouts."""

from typing import Any

from sped_extractor.classifier import FileType
from sped_extractor.records.layouts import (
    RecordLayout,
    block_openers,
    control_records,
    day,
    layout_table,
    money,
    participant_layout,
    text,
)
from sped_extractor.records.types import RecordKind


def _icms_debit(values: dict[str, Any]) -> dict[str, Any]:
    # Gross period debits plus adjustments; credits are reported separately
    debit = (
        values["vl_tot_debitos"]
        + values["vl_aj_debitos"]
        + values["vl_tot_aj_debitos"]
        + values["vl_estornos_cred"]
    )
    credit = (
        values["vl_tot_creditos"]
        + values["vl_aj_creditos"]
        + values["vl_tot_aj_creditos"]
        + values["vl_estornos_deb"]
    )
    return {"valor_debito": debit, "valor_credito": credit}


def _icms_st_debit(values: dict[str, Any]) -> dict[str, Any]:
    return {"valor_debito": values["vl_retencao_st"] + values["vl_out_deb_st"]}


def _ipi_debit(values: dict[str, Any]) -> dict[str, Any]:
    return {
        "valor_debito": values["vl_deb_ipi"] + values["vl_od_ipi"],
        "valor_credito": values["vl_cred_ipi"] + values["vl_oc_ipi"],
    }


FISCAL_LAYOUTS = layout_table(
    FileType.FISCAL,
    [
        # Block 0: identity and registers
        RecordLayout(
            "0000",
            15,
            RecordKind.COMPANY,
            "identificacao",
            (
                text("cod_ver", 2),
                text("cod_fin", 3),
                day("dt_ini", 4),
                day("dt_fin", 5),
                text("nome", 6),
                text("cnpj", 7),
                text("cpf", 8),
                text("uf", 9),
                text("ie", 10),
                text("cod_mun", 11),
                text("im", 12),
                text("suframa", 13),
                text("ind_perfil", 14),
                text("ind_ativ", 15),
            ),
            description="Abertura do arquivo digital e identificação da entidade",
        ),
        RecordLayout(
            "0005",
            7,
            RecordKind.COMPANY,
            "complemento",
            (
                text("fantasia", 2),
                text("cep", 3),
                text("endereco", 4),
                text("num", 5),
                text("compl", 6),
                text("bairro", 7),
                text("fone", 8),
                text("email", 10),
            ),
        ),
        participant_layout(),
        RecordLayout(
            "0190", 3, RecordKind.OTHER, "unidade", (text("unid", 2), text("descr", 3))
        ),
        RecordLayout(
            "0200",
            9,
            RecordKind.OTHER,
            "item",
            (
                text("cod_item", 2),
                text("descr_item", 3),
                text("cod_barra", 4),
                text("cod_ant_item", 5),
                text("unid_inv", 6),
                text("tipo_item", 7),
                text("cod_ncm", 8),
                text("ex_ipi", 9),
                text("cod_gen", 10),
                text("cod_lst", 11),
                money("aliq_icms", 12),
            ),
        ),
        # Block C: goods documents
        RecordLayout(
            "C100",
            18,
            RecordKind.DOCUMENT,
            "mercadorias",
            (
                text("ind_oper", 2),
                text("ind_emit", 3),
                text("cod_part", 4),
                text("cod_mod", 5),
                text("cod_sit", 6),
                text("ser", 7),
                text("num_doc", 8),
                text("chv_nfe", 9),
                day("dt_doc", 10),
                day("dt_e_s", 11),
                money("vl_doc", 12),
                text("ind_pgto", 13),
                money("vl_desc", 14),
                money("vl_merc", 16),
                money("vl_frt", 18),
                money("vl_bc_icms", 21),
                money("vl_icms", 22),
                money("vl_bc_icms_st", 23),
                money("vl_icms_st", 24),
                money("vl_ipi", 25),
                money("vl_pis", 26),
                money("vl_cofins", 27),
            ),
        ),
        RecordLayout(
            "C170",
            17,
            RecordKind.LINE_ITEM,
            "mercadorias",
            (
                text("num_item", 2),
                text("cod_item", 3),
                text("descr_compl", 4),
                money("qtd", 5),
                text("unid", 6),
                money("vl_item", 7),
                money("vl_desc", 8),
                text("ind_mov", 9),
                text("cst_icms", 10),
                text("cfop", 11),
                text("cod_nat", 12),
                money("vl_bc_icms", 13),
                money("aliq_icms", 14),
                money("vl_icms", 15),
                money("vl_bc_icms_st", 16),
                money("aliq_st", 17),
                money("vl_icms_st", 18),
                text("ind_apur", 19),
                text("cst_ipi", 20),
                money("vl_bc_ipi", 22),
                money("aliq_ipi", 23),
                money("vl_ipi", 24),
            ),
        ),
        RecordLayout(
            "C190",
            9,
            RecordKind.ANALYTIC,
            "icms",
            (
                text("cst_icms", 2),
                text("cfop", 3),
                money("aliq_icms", 4),
                money("vl_opr", 5),
                money("vl_bc_icms", 6),
                money("vl_icms", 7),
                money("vl_bc_icms_st", 8),
                money("vl_icms_st", 9),
                money("vl_red_bc", 10),
                money("vl_ipi", 11),
                text("cod_obs", 12),
            ),
        ),
        RecordLayout(
            "C197",
            8,
            RecordKind.ADJUSTMENT,
            "icms",
            (
                text("cod_aj", 2),
                text("descr_compl_aj", 3),
                text("cod_item", 4),
                money("vl_bc_icms", 5),
                money("aliq_icms", 6),
                money("vl_icms", 7),
                money("vl_outros", 8),
            ),
        ),
        # Block E: tax assessment
        RecordLayout(
            "E110",
            15,
            RecordKind.DEBIT,
            "icms",
            (
                money("vl_tot_debitos", 2),
                money("vl_aj_debitos", 3),
                money("vl_tot_aj_debitos", 4),
                money("vl_estornos_cred", 5),
                money("vl_tot_creditos", 6),
                money("vl_aj_creditos", 7),
                money("vl_tot_aj_creditos", 8),
                money("vl_estornos_deb", 9),
                money("vl_sld_credor_ant", 10),
                money("vl_sld_apurado", 11),
                money("vl_tot_ded", 12),
                money("vl_icms_recolher", 13),
                money("vl_sld_credor_transportar", 14),
                money("deb_esp", 15),
            ),
            derive=_icms_debit,
            description="Apuração do ICMS - operações próprias",
        ),
        RecordLayout(
            "E111",
            5,
            RecordKind.ADJUSTMENT,
            "icms",
            (text("cod_aj_apur", 2), text("descr_compl_aj", 3), money("vl_aj_apur", 4)),
        ),
        RecordLayout(
            "E116",
            6,
            RecordKind.OTHER,
            "obrigacao_icms",
            (
                text("cod_or", 2),
                money("vl_or", 3),
                day("dt_vcto", 4),
                text("cod_rec", 5),
            ),
        ),
        RecordLayout(
            "E200",
            5,
            RecordKind.OTHER,
            "periodo_icms_st",
            (text("uf", 2), day("dt_ini", 3), day("dt_fin", 4)),
        ),
        RecordLayout(
            "E210",
            14,
            RecordKind.DEBIT,
            "icms_st",
            (
                text("ind_mov_st", 2),
                money("vl_sld_cred_ant_st", 3),
                money("vl_devol_st", 4),
                money("vl_ressarc_st", 5),
                money("vl_out_cred_st", 6),
                money("vl_aj_creditos_st", 7),
                money("vl_retencao_st", 8),
                money("vl_out_deb_st", 9),
                money("vl_aj_debitos_st", 10),
                money("vl_sld_dev_ant_st", 11),
                money("vl_deducoes_st", 12),
                money("vl_icms_recol_st", 13),
            ),
            derive=_icms_st_debit,
        ),
        RecordLayout(
            "E500",
            5,
            RecordKind.OTHER,
            "periodo_ipi",
            (text("ind_apur", 2), day("dt_ini", 3), day("dt_fin", 4)),
        ),
        RecordLayout(
            "E520",
            9,
            RecordKind.DEBIT,
            "ipi",
            (
                money("vl_sd_ant_ipi", 2),
                money("vl_deb_ipi", 3),
                money("vl_cred_ipi", 4),
                money("vl_od_ipi", 5),
                money("vl_oc_ipi", 6),
                money("vl_sc_ipi", 7),
                money("vl_sd_ipi", 8),
            ),
            derive=_ipi_debit,
            description="Apuração do IPI",
        ),
        RecordLayout(
            "E530",
            5,
            RecordKind.ADJUSTMENT,
            "ipi",
            (text("ind_aj", 2), money("vl_aj", 3), text("cod_aj", 4), text("ind_doc", 5)),
        ),
        # Block H: inventory
        RecordLayout(
            "H005",
            4,
            RecordKind.OTHER,
            "inventario",
            (day("dt_inv", 2), money("vl_inv", 3), text("mot_inv", 4)),
        ),
        RecordLayout(
            "H010",
            7,
            RecordKind.OTHER,
            "inventario_item",
            (
                text("cod_item", 2),
                text("unid", 3),
                money("qtd", 4),
                money("vl_unit", 5),
                money("vl_item", 6),
                text("ind_prop", 7),
                text("cod_part", 8),
            ),
        ),
        # Block K: production and stock control
        RecordLayout(
            "K100",
            4,
            RecordKind.OTHER,
            "periodo_producao",
            (day("dt_ini", 2), day("dt_fin", 3)),
        ),
        *block_openers(
            ["0001", "B001", "C001", "D001", "E001", "G001", "H001", "K001", "1001", "9001"]
        ),
        *control_records(),
    ],
)
