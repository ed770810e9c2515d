"""Extraction service: files in, simulator-ready parameters out.

Each file goes through classification, record dispatch and aggregation on
its own; the per-file datasets are then folded into one consolidated
dataset, from which company, tax and financial figures are resolved.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Union

import structlog

from sped_extractor.aggregator import SpedDataset, aggregate_records, to_jsonable
from sped_extractor.classifier import FileType, classify_by_name, classify_file
from sped_extractor.combiner import combine_datasets
from sped_extractor.config.settings import Settings, get_settings
from sped_extractor.config.tables import (
    BUNDLED_TABLES_PATH,
    StatutoryTables,
    load_statutory_tables,
)
from sped_extractor.events import (
    EventCollector,
    ExtractionEvent,
    datasets_combined,
    extraction_completed,
    extraction_failed,
    file_classified,
    file_parsed,
)
from sped_extractor.quality import (
    QualityReport,
    assess_quality,
    reliability_label,
    validate_output,
)
from sped_extractor.records.dispatcher import RecordDispatcher
from sped_extractor.resolvers.chain import SourcedValue
from sped_extractor.resolvers.company import (
    DEFAULT_NAME,
    CompanyProfile,
    CompanyResolver,
)
from sped_extractor.resolvers.composition import (
    TAXES,
    TaxComposition,
    TaxCompositionResolver,
)
from sped_extractor.resolvers.financial import (
    FinancialCycle,
    FinancialStatement,
    IvaConfig,
    resolve_financial_cycle,
    resolve_financial_statement,
    resolve_iva_config,
)
from sped_extractor.resolvers.sector import Sector

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class SpedFile:
    """One SPED export, already split into lines."""

    lines: Sequence[str]
    name: str | None = None

    @classmethod
    def from_text(cls, text: str, name: str | None = None) -> SpedFile:
        return cls(lines=text.splitlines(), name=name)

    @classmethod
    def from_path(cls, path: Path | str, encoding: str | None = None) -> SpedFile:
        """Read a file from disk using the configured encoding.

        Undecodable bytes are replaced so a single bad character never
        prevents the rest of the file from being read.
        """
        path = Path(path)
        encoding = encoding or get_settings().encoding
        text = path.read_text(encoding=encoding, errors="replace")
        return cls.from_text(text, name=path.name)


FileInput = Union[SpedFile, tuple[Union[str, None], str]]


def as_sped_file(item: FileInput) -> SpedFile:
    """Accept a ``SpedFile`` or a ``(name, text)`` pair."""
    if isinstance(item, SpedFile):
        return item
    if isinstance(item, tuple) and len(item) == 2:
        name, text = item
        return SpedFile.from_text(text, name=name)
    raise TypeError(f"expected SpedFile or (name, text) pair, got {type(item).__name__}")


@dataclass(frozen=True)
class ExtractionResult:
    """Everything resolved from one set of SPED files."""

    profile: CompanyProfile
    composition: TaxComposition
    cycle: FinancialCycle
    statement: FinancialStatement
    iva: IvaConfig
    issues: list[str]
    reliability: str
    quality: QualityReport
    dataset: SpedDataset = field(default_factory=SpedDataset.empty)
    error: str | None = None

    @property
    def degraded(self) -> bool:
        return self.error is not None

    def to_dict(self) -> dict[str, Any]:
        """Nested structure consumed by the tax-reform simulator."""
        return {
            "empresa": self.profile.to_dict(),
            "parametros_fiscais": {
                "regime": self.profile.regime,
                "regime_pis_cofins": self.profile.pis_cofins_regime,
                "tipo_operacao": self.profile.operation_type,
                "composicao_tributaria": self.composition.to_dict(),
            },
            "ciclo_financeiro": self.cycle.to_dict(),
            "dados_financeiros": self.statement.to_dict(),
            "iva_config": self.iva.to_dict(),
            "validacao": {
                "inconsistencias": list(self.issues),
                "confiabilidade": self.reliability,
            },
            "qualidade": self.quality.to_dict(),
            "documentos": to_jsonable(
                [
                    {key: value for key, value in doc.items() if key != "itens"}
                    for doc in self.dataset.documents
                ]
            ),
            "itens": to_jsonable(self.dataset.line_items),
            "metadados": self.dataset.metadata.to_dict(),
        }


class SpedExtractor:
    """Parse, combine and resolve SPED files.

    Usage:
        extractor = SpedExtractor()
        result = extractor.extract([("efd_icms.txt", text)])
        result.to_dict()["parametros_fiscais"]["composicao_tributaria"]
    """

    def __init__(
        self,
        tables: StatutoryTables | None = None,
        dispatcher: RecordDispatcher | None = None,
        collector: EventCollector | None = None,
        settings: Settings | None = None,
    ):
        self._settings = settings or get_settings()
        self._tables = tables or load_statutory_tables(self._settings.tables_path)
        self._dispatcher = dispatcher or RecordDispatcher()
        self._collector = collector
        self._company_resolver = CompanyResolver(self._tables, collector)
        self._composition_resolver = TaxCompositionResolver(self._tables, collector)
        self._logger = logger.bind(component="sped_extractor")

    @property
    def tables(self) -> StatutoryTables:
        return self._tables

    def _publish(self, event: ExtractionEvent) -> None:
        if self._collector is not None:
            self._collector.publish(event)

    def parse_file(
        self,
        lines: Iterable[str],
        file_name: str | None = None,
        file_type: FileType | None = None,
    ) -> SpedDataset:
        """Classify, dispatch and aggregate a single file."""
        lines = list(lines)
        if file_type is not None:
            method = "informado"
        else:
            method = "nome" if classify_by_name(file_name) is not None else "conteudo"
            file_type = classify_file(lines, file_name, self._settings.sample_lines)
        self._publish(file_classified(file_name, file_type.value, method))

        result = self._dispatcher.dispatch(lines, file_type, file_name)
        dataset = aggregate_records(result, file_name)

        summary = dataset.metadata.files[0]
        self._publish(file_parsed(file_name, file_type.value, summary.to_dict()))
        self._logger.info(
            "file_parsed",
            file_name=file_name,
            file_type=file_type.value,
            processed=summary.processed,
            ignored=summary.ignored,
            malformed=summary.malformed,
            errors=summary.errors,
        )
        return dataset

    def combine(self, datasets: Iterable[SpedDataset]) -> SpedDataset:
        combined = combine_datasets(datasets)
        self._publish(
            datasets_combined(
                len(combined.metadata.files), [ft.value for ft in combined.file_types]
            )
        )
        return combined

    def resolve(self, dataset: SpedDataset) -> ExtractionResult:
        """Resolve every simulator parameter from a consolidated dataset."""
        profile = self._company_resolver.resolve(dataset)
        composition = self._composition_resolver.resolve(dataset, profile)
        issues = validate_output(profile, composition)

        return ExtractionResult(
            profile=profile,
            composition=composition,
            cycle=resolve_financial_cycle(dataset, profile, self._tables),
            statement=resolve_financial_statement(dataset, profile, self._tables),
            iva=resolve_iva_config(profile, self._tables),
            issues=issues,
            reliability=reliability_label(issues),
            quality=assess_quality(dataset, profile),
            dataset=dataset,
        )

    def _parse_all(self, files: list[SpedFile], max_workers: int | None) -> list[SpedDataset]:
        if max_workers and max_workers > 1 and len(files) > 1:
            with ThreadPoolExecutor(max_workers=max_workers) as pool:
                # map keeps input order, so the fold stays deterministic
                return list(pool.map(lambda f: self.parse_file(f.lines, f.name), files))
        return [self.parse_file(f.lines, f.name) for f in files]

    def extract(
        self, files: Iterable[FileInput], max_workers: int | None = None
    ) -> ExtractionResult:
        """Run the whole pipeline. Never raises.

        Args:
            files: ``SpedFile`` instances or ``(name, text)`` pairs.
            max_workers: Parse files on a thread pool of this size.

        Returns:
            The resolved result, or a degraded default result carrying the
            error message when anything unexpected fails.
        """
        try:
            sped_files = [as_sped_file(item) for item in files]
            self._logger.info("extraction_started", files=len(sped_files))
            dataset = self.combine(self._parse_all(sped_files, max_workers))
            result = self.resolve(dataset)
        except Exception as e:
            self._logger.exception("extraction_failed", error=str(e))
            self._publish(extraction_failed(str(e), {"error_type": type(e).__name__}))
            return self.degraded(f"Erro ao processar dados: {e}")

        self._publish(extraction_completed(result.reliability, len(result.issues)))
        self._logger.info(
            "extraction_completed",
            reliability=result.reliability,
            issues=len(result.issues),
            revenue=result.profile.monthly_revenue.value,
        )
        return result

    def degraded(self, message: str) -> ExtractionResult:
        """Default structure returned when extraction fails."""
        return degraded_result(message, self._tables)


def degraded_result(message: str, tables: StatutoryTables) -> ExtractionResult:
    """Default result over ``tables``, carrying ``message`` as its only issue."""
    cycle = tables.financial_cycle
    zero = SourcedValue.estimated(0.0, estrategia="falha_extracao")

    profile = CompanyProfile(
        name=DEFAULT_NAME,
        cnpj="",
        uf="",
        regime=tables.default_regime,
        pis_cofins_regime="cumulativo",
        sector=Sector.COMERCIO.value,
        monthly_revenue=zero,
        margin=tables.margin_for(None),
        operation_type="b2b",
    )
    composition = TaxComposition(
        debits={tax: zero for tax in TAXES},
        credits={tax: zero for tax in TAXES},
        effective_rates=dict(tables.default_effective_rates),
        provenance={
            **{f"{tax}_debito": zero.provenance.value for tax in TAXES},
            **{f"{tax}_credito": zero.provenance.value for tax in TAXES},
        },
    )
    default_days = int(cycle["default_days"])
    return ExtractionResult(
        profile=profile,
        composition=composition,
        cycle=FinancialCycle(
            pmr=default_days,
            pmp=default_days,
            pme=default_days,
            cash_share=cycle["default_cash_share"],
        ),
        statement=FinancialStatement(
            gross_revenue=0.0,
            net_revenue=0.0,
            cost_of_sales=0.0,
            operating_expenses=0.0,
            operating_profit=0.0,
            margin=profile.margin,
        ),
        iva=resolve_iva_config(profile, tables),
        issues=[message],
        reliability="baixa",
        quality=QualityReport(company=0, fiscal=0, accounting=0),
        error=message,
    )


def extract(
    files: Iterable[FileInput], max_workers: int | None = None, **kwargs: Any
) -> ExtractionResult:
    """Extract with a one-off ``SpedExtractor`` built from ``kwargs``.

    Never raises: when the extractor itself cannot be built, for instance
    from an unreadable ``SPED_TABLES_PATH``, the degraded result is built
    over the bundled tables.
    """
    try:
        extractor = SpedExtractor(**kwargs)
    except Exception as e:
        logger.exception("extractor_setup_failed", error=str(e))
        collector = kwargs.get("collector")
        if collector is not None:
            collector.publish(extraction_failed(str(e), {"error_type": type(e).__name__}))
        return degraded_result(
            f"Erro ao processar dados: {e}", load_statutory_tables(BUNDLED_TABLES_PATH)
        )
    return extractor.extract(files, max_workers=max_workers)
