"""EFD Contribuições (PIS/COFINS) record layouts."""

from typing import Any

from sped_extractor.classifier import FileType
from sped_extractor.records.layouts import (
    FieldSpec,
    RecordLayout,
    block_openers,
    control_records,
    day,
    first_positive,
    layout_table,
    money,
    participant_layout,
    text,
)
from sped_extractor.records.types import RecordKind


def _credit_fields(tax: str) -> tuple[FieldSpec, ...]:
    """M100 / M500 share the same positions."""
    return (
        text("cod_cred", 2),
        text("ind_cred_ori", 3),
        money(f"vl_bc_{tax}", 4),
        money(f"aliq_{tax}", 5),
        money("vl_cred", 8),
        money("vl_ajus_acres", 9),
        money("vl_ajus_reduc", 10),
        money("vl_cred_dif", 11),
        money("vl_cred_disp", 12),
        text("ind_desc_cred", 13),
        money("vl_cred_desc", 14),
        money("sld_cred", 15),
    )


def _credit_amount(values: dict[str, Any]) -> dict[str, Any]:
    pick = first_positive("vl_cred_disp", "vl_cred", "vl_cred_desc")
    return {"valor_credito": pick(values)}


def _contribution_fields() -> tuple[FieldSpec, ...]:
    """M200 / M600 consolidation of the period contribution."""
    return (
        money("vl_tot_cont_nc_per", 2),
        money("vl_tot_cred_desc", 3),
        money("vl_tot_cred_desc_ant", 4),
        money("vl_tot_cont_nc_dev", 5),
        money("vl_ret_nc", 6),
        money("vl_out_ded_nc", 7),
        money("vl_cont_nc_rec", 8),
        money("vl_tot_cont_cum_per", 9),
        money("vl_ret_cum", 10),
        money("vl_out_ded_cum", 11),
        money("vl_cont_cum_rec", 12),
        money("vl_tot_cont_rec", 13),
    )


def _contribution_debit(values: dict[str, Any]) -> dict[str, Any]:
    # Gross contribution of both regimes, before credits are discounted
    gross = values["vl_tot_cont_nc_per"] + values["vl_tot_cont_cum_per"]
    if gross <= 0:
        gross = values["vl_tot_cont_rec"]
    return {
        "valor_debito": gross,
        "valor_credito": values["vl_tot_cred_desc"] + values["vl_tot_cred_desc_ant"],
    }


# M210 / M610 grew from 13 to 16 fields in 2019 with the base adjustments.
CONTRIBUTION_DETAIL_2019_SIZE = 17


def _contribution_detail_fields(tax: str) -> tuple[FieldSpec, ...]:
    """M210 / M610 contribution detail per contribution code, up to 2018."""
    return (
        text("cod_cont", 2),
        money("vl_rec_brt", 3),
        money("vl_bc_cont", 4),
        money(f"aliq_{tax}", 5),
        money("quant_bc", 6),
        money("aliq_quant", 7),
        money("vl_cont_apur", 8),
        money("vl_ajus_acres", 9),
        money("vl_ajus_reduc", 10),
        money("vl_cont_difer", 11),
        money("vl_cont_difer_ant", 12),
        money("vl_cont_per", 13),
    )


def _contribution_detail_2019_fields(tax: str) -> tuple[FieldSpec, ...]:
    return (
        text("cod_cont", 2),
        money("vl_rec_brt", 3),
        money("vl_bc_cont", 4),
        money("vl_ajus_acres_bc", 5),
        money("vl_ajus_reduc_bc", 6),
        money("vl_bc_cont_ajus", 7),
        money(f"aliq_{tax}", 8),
        money("quant_bc", 9),
        money("aliq_quant", 10),
        money("vl_cont_apur", 11),
        money("vl_ajus_acres", 12),
        money("vl_ajus_reduc", 13),
        money("vl_cont_difer", 14),
        money("vl_cont_difer_ant", 15),
        money("vl_cont_per", 16),
    )


def _contribution_detail_revisions(tax: str) -> tuple[tuple[int, tuple[FieldSpec, ...]], ...]:
    return ((CONTRIBUTION_DETAIL_2019_SIZE, _contribution_detail_2019_fields(tax)),)


def _contribution_detail(values: dict[str, Any]) -> dict[str, Any]:
    pick = first_positive("vl_cont_per", "vl_cont_apur")
    return {"valor_debito": pick(values)}


def _adjustment_fields() -> tuple[FieldSpec, ...]:
    return (
        text("ind_aj", 2),
        money("vl_aj", 3),
        text("cod_aj", 4),
        text("num_doc", 5),
        text("descr_aj", 6),
        day("dt_ref", 7),
    )


def _untaxed_fields(tax: str) -> tuple[FieldSpec, ...]:
    return (
        text(f"cst_{tax}", 2),
        money("vl_tot_rec", 3),
        text("cod_cta", 4),
        text("desc_compl", 5),
    )


def _consolidation_fields(tax: str) -> tuple[FieldSpec, ...]:
    """C181 / C185 consolidated sales per CST and CFOP."""
    return (
        text(f"cst_{tax}", 2),
        text("cfop", 3),
        money("vl_item", 4),
        money("vl_desc", 5),
        money(f"vl_bc_{tax}", 6),
        money(f"aliq_{tax}", 7),
        money(f"vl_{tax}", 10),
        text("cod_cta", 11),
    )


def _credit_control_fields() -> tuple[FieldSpec, ...]:
    """1100 / 1500 carry-over credit control."""
    return (
        text("per_apu_cred", 2),
        text("orig_cred", 3),
        text("cnpj_suc", 4),
        text("cod_cred", 5),
        money("vl_cred_apu", 6),
        money("vl_cred_ext_apu", 7),
        money("vl_tot_cred_apu", 8),
        money("vl_cred_desc_pa_ant", 9),
        money("vl_cred_per_pa_ant", 10),
        money("vl_cred_dcomp_pa_ant", 11),
        money("sd_cred_disp_efd", 12),
        money("vl_cred_desc_efd", 13),
        money("sld_cred_fim", 18),
    )


CONTRIBUICOES_LAYOUTS = layout_table(
    FileType.CONTRIBUICOES,
    [
        # Block 0
        RecordLayout(
            "0000",
            14,
            RecordKind.COMPANY,
            "identificacao",
            (
                text("cod_ver", 2),
                text("tipo_escrit", 3),
                text("ind_sit_esp", 4),
                text("num_rec_anterior", 5),
                day("dt_ini", 6),
                day("dt_fin", 7),
                text("nome", 8),
                text("cnpj", 9),
                text("uf", 10),
                text("cod_mun", 11),
                text("suframa", 12),
                text("ind_nat_pj", 13),
                text("ind_ativ", 14),
            ),
        ),
        RecordLayout(
            "0110",
            5,
            RecordKind.REGIME,
            "pis_cofins",
            (
                text("cod_inc_trib", 2),
                text("ind_apro_cred", 3),
                text("cod_tipo_cont", 4),
                text("ind_reg_cum", 5),
            ),
            description="Regimes de apuração da contribuição social",
        ),
        RecordLayout(
            "0111",
            7,
            RecordKind.TOTALIZATION,
            "receita_bruta",
            (
                money("rec_bru_ncum_trib_mi", 2),
                money("rec_bru_ncum_nt_mi", 3),
                money("rec_bru_ncum_exp", 4),
                money("rec_bru_cum", 5),
                money("rec_bru_total", 6),
            ),
            description="Receita bruta mensal para fins de rateio de créditos",
        ),
        RecordLayout(
            "0140",
            8,
            RecordKind.OTHER,
            "estabelecimento",
            (
                text("cod_est", 2),
                text("nome", 3),
                text("cnpj", 4),
                text("uf", 5),
                text("ie", 6),
                text("cod_mun", 7),
                text("im", 8),
                text("suframa", 9),
            ),
        ),
        participant_layout(),
        # Block A: services
        RecordLayout(
            "A100",
            13,
            RecordKind.DOCUMENT,
            "servicos",
            (
                text("ind_oper", 2),
                text("ind_emit", 3),
                text("cod_part", 4),
                text("cod_sit", 5),
                text("ser", 6),
                text("num_doc", 8),
                text("chv_nfse", 9),
                day("dt_doc", 10),
                day("dt_exe_serv", 11),
                money("vl_doc", 12),
                text("ind_pgto", 13),
                money("vl_desc", 14),
                money("vl_bc_pis", 15),
                money("vl_pis", 16),
                money("vl_bc_cofins", 17),
                money("vl_cofins", 18),
                money("vl_pis_ret", 19),
                money("vl_cofins_ret", 20),
                money("vl_iss", 21),
            ),
        ),
        RecordLayout(
            "A170",
            8,
            RecordKind.LINE_ITEM,
            "servicos",
            (
                text("num_item", 2),
                text("cod_item", 3),
                text("descr_compl", 4),
                money("vl_item", 5),
                money("vl_desc", 6),
                text("nat_bc_cred", 7),
                text("ind_orig_cred", 8),
                text("cst_pis", 9),
                money("vl_bc_pis", 10),
                money("aliq_pis", 11),
                money("vl_pis", 12),
                text("cst_cofins", 13),
                money("vl_bc_cofins", 14),
                money("aliq_cofins", 15),
                money("vl_cofins", 16),
            ),
        ),
        # Block C: goods
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
                money("vl_bc_icms", 21),
                money("vl_icms", 22),
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
                text("cfop", 11),
                money("vl_icms", 15),
                money("vl_ipi", 24),
                text("cst_pis", 25),
                money("vl_bc_pis", 26),
                money("aliq_pis", 27),
                money("vl_pis", 30),
                text("cst_cofins", 31),
                money("vl_bc_cofins", 32),
                money("aliq_cofins", 33),
                money("vl_cofins", 36),
            ),
        ),
        RecordLayout(
            "C180",
            9,
            RecordKind.OTHER,
            "consolidacao_vendas",
            (
                text("cod_mod", 2),
                day("dt_doc_ini", 3),
                day("dt_doc_fin", 4),
                text("cod_item", 5),
                text("cod_ncm", 6),
                money("vl_tot_item", 8),
            ),
        ),
        RecordLayout(
            "C181", 11, RecordKind.OTHER, "consolidacao_pis", _consolidation_fields("pis")
        ),
        RecordLayout(
            "C185",
            11,
            RecordKind.OTHER,
            "consolidacao_cofins",
            _consolidation_fields("cofins"),
        ),
        # Block F: other operations
        RecordLayout(
            "F100",
            16,
            RecordKind.OTHER,
            "demais_operacoes",
            (
                text("ind_oper", 2),
                text("cod_part", 3),
                text("cod_item", 4),
                day("dt_oper", 5),
                money("vl_oper", 6),
                text("cst_pis", 7),
                money("vl_bc_pis", 8),
                money("aliq_pis", 9),
                money("vl_pis", 10),
                text("cst_cofins", 11),
                money("vl_bc_cofins", 12),
                money("aliq_cofins", 13),
                money("vl_cofins", 14),
                text("nat_bc_cred", 15),
                text("ind_orig_cred", 16),
            ),
        ),
        # Block M: PIS assessment
        RecordLayout(
            "M100",
            15,
            RecordKind.CREDIT,
            "pis",
            _credit_fields("pis"),
            derive=_credit_amount,
            description="Crédito de PIS/Pasep relativo ao período",
        ),
        RecordLayout(
            "M105",
            8,
            RecordKind.OTHER,
            "credito_detalhe_pis",
            (
                text("nat_bc_cred", 2),
                text("cst_pis", 3),
                money("vl_bc_pis_tot", 4),
                money("vl_bc_pis_cum", 5),
                money("vl_bc_pis_nc", 6),
                money("vl_bc_pis", 7),
                text("desc_cred", 10),
            ),
        ),
        RecordLayout(
            "M200",
            14,
            RecordKind.DEBIT,
            "pis",
            _contribution_fields(),
            derive=_contribution_debit,
            description="Consolidação da contribuição para o PIS/Pasep do período",
        ),
        RecordLayout(
            "M210",
            12,
            RecordKind.TOTALIZATION,
            "pis",
            _contribution_detail_fields("pis"),
            derive=_contribution_detail,
            revisions=_contribution_detail_revisions("pis"),
        ),
        RecordLayout("M220", 5, RecordKind.ADJUSTMENT, "pis", _adjustment_fields()),
        RecordLayout("M400", 5, RecordKind.UNTAXED_REVENUE, "pis", _untaxed_fields("pis")),
        RecordLayout(
            "M410",
            5,
            RecordKind.OTHER,
            "receita_nao_tributada_detalhe_pis",
            (text("nat_rec", 2), money("vl_rec", 3), text("cod_cta", 4)),
        ),
        # Block M: COFINS assessment
        RecordLayout(
            "M500",
            15,
            RecordKind.CREDIT,
            "cofins",
            _credit_fields("cofins"),
            derive=_credit_amount,
        ),
        RecordLayout(
            "M505",
            8,
            RecordKind.OTHER,
            "credito_detalhe_cofins",
            (
                text("nat_bc_cred", 2),
                text("cst_cofins", 3),
                money("vl_bc_cofins_tot", 4),
                money("vl_bc_cofins_cum", 5),
                money("vl_bc_cofins_nc", 6),
                money("vl_bc_cofins", 7),
                text("desc_cred", 10),
            ),
        ),
        RecordLayout(
            "M600",
            14,
            RecordKind.DEBIT,
            "cofins",
            _contribution_fields(),
            derive=_contribution_debit,
        ),
        RecordLayout(
            "M610",
            12,
            RecordKind.TOTALIZATION,
            "cofins",
            _contribution_detail_fields("cofins"),
            derive=_contribution_detail,
            revisions=_contribution_detail_revisions("cofins"),
        ),
        RecordLayout("M620", 5, RecordKind.ADJUSTMENT, "cofins", _adjustment_fields()),
        RecordLayout(
            "M800", 5, RecordKind.UNTAXED_REVENUE, "cofins", _untaxed_fields("cofins")
        ),
        RecordLayout(
            "M810",
            5,
            RecordKind.OTHER,
            "receita_nao_tributada_detalhe_cofins",
            (text("nat_rec", 2), money("vl_rec", 3), text("cod_cta", 4)),
        ),
        # Block P: payroll-substitution social security contribution
        RecordLayout(
            "P100",
            11,
            RecordKind.OTHER,
            "contribuicao_previdenciaria",
            (
                day("dt_ini", 2),
                day("dt_fin", 3),
                money("vl_rec_tot_est", 4),
                text("cod_ativ_econ", 5),
                money("vl_rec_ativ_estab", 6),
                money("vl_exc", 7),
                money("vl_bc_cont", 8),
                money("aliq_cont", 9),
                money("vl_cont_apu", 10),
            ),
        ),
        RecordLayout(
            "P200",
            8,
            RecordKind.DEBIT,
            "previdenciaria",
            (
                text("per_ref", 2),
                money("vl_tot_cont_apu", 3),
                money("vl_tot_aj_reduc", 4),
                money("vl_tot_aj_acres", 5),
                money("vl_tot_cont_dev", 6),
                text("cod_rec", 7),
            ),
            derive=lambda v: {"valor_debito": v["vl_tot_cont_apu"]},
        ),
        # Block 1: carry-over credit control
        RecordLayout(
            "1100", 15, RecordKind.OTHER, "controle_credito_pis", _credit_control_fields()
        ),
        RecordLayout(
            "1500",
            15,
            RecordKind.OTHER,
            "controle_credito_cofins",
            _credit_control_fields(),
        ),
        *block_openers(
            ["0001", "A001", "C001", "D001", "F001", "I001", "M001", "P001", "1001", "9001"]
        ),
        *control_records(),
    ],
)
