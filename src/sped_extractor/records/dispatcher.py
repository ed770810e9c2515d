"""Line-by-line dispatch of SPED text to record decoders."""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

import structlog

from sped_extractor.classifier import DELIMITER, FileType
from sped_extractor.records.contribuicoes import CONTRIBUICOES_LAYOUTS
from sped_extractor.records.ecd import ECD_LAYOUTS
from sped_extractor.records.ecf import ECF_LAYOUTS
from sped_extractor.records.fiscal import FISCAL_LAYOUTS
from sped_extractor.records.layouts import LayoutTable, RecordLayout
from sped_extractor.records.types import ParsedRecord

logger = structlog.get_logger(__name__)

# "|X|" splits into three parts; anything shorter cannot hold a record.
ABSOLUTE_MIN_FIELDS = 3

DEFAULT_LAYOUTS: dict[FileType, LayoutTable] = {
    FileType.FISCAL: FISCAL_LAYOUTS,
    FileType.CONTRIBUICOES: CONTRIBUICOES_LAYOUTS,
    FileType.ECF: ECF_LAYOUTS,
    FileType.ECD: ECD_LAYOUTS,
}


@dataclass(frozen=True)
class LineError:
    """A non-fatal problem found on one line."""

    line_number: int
    message: str
    code: str | None = None
    file_name: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "linha": self.line_number,
            "registro": self.code,
            "arquivo": self.file_name,
            "mensagem": self.message,
        }


@dataclass
class DispatchResult:
    """Decoded records of one file plus the bookkeeping of the pass."""

    file_type: FileType
    file_name: str | None = None
    records: list[ParsedRecord] = field(default_factory=list)
    total_lines: int = 0
    processed: int = 0
    ignored: int = 0
    malformed: int = 0
    errors: list[LineError] = field(default_factory=list)
    record_counts: Counter[str] = field(default_factory=Counter)


class RecordDispatcher:
    """Maps each line's record code to the decoder of its file family.

    Usage:
        dispatcher = RecordDispatcher()
        result = dispatcher.dispatch(lines, FileType.FISCAL, file_name="efd.txt")
    """

    def __init__(self, layouts: Mapping[FileType, LayoutTable] | None = None):
        self._layouts = dict(layouts) if layouts is not None else dict(DEFAULT_LAYOUTS)
        self._logger = logger.bind(component="record_dispatcher")

    @property
    def layouts(self) -> dict[FileType, LayoutTable]:
        return dict(self._layouts)

    def layout_for(self, file_type: FileType, code: str) -> RecordLayout | None:
        table = self._layouts.get(file_type)
        if table is None:
            return None
        return table.get(code)

    def decode_line(
        self, line: str, file_type: FileType, line_number: int = 0
    ) -> ParsedRecord | None:
        """Decode a single line. Unknown codes and short lines yield None."""
        parts = line.strip().split(DELIMITER)
        if len(parts) < ABSOLUTE_MIN_FIELDS:
            return None
        layout = self.layout_for(file_type, parts[1].strip().upper())
        if layout is None:
            return None
        return layout.decode(parts, file_type, line_number)

    def dispatch(
        self,
        lines: Iterable[str],
        file_type: FileType,
        file_name: str | None = None,
    ) -> DispatchResult:
        """Decode every line of a file.

        A failure on one line is recorded and never stops the pass.
        """
        result = DispatchResult(file_type=file_type, file_name=file_name)

        for line_number, raw_line in enumerate(lines, start=1):
            line = raw_line.strip()
            if not line:
                continue
            result.total_lines += 1

            parts = line.split(DELIMITER)
            if len(parts) < ABSOLUTE_MIN_FIELDS or not parts[1].strip():
                result.errors.append(
                    LineError(
                        line_number=line_number,
                        message="linha sem código de registro",
                        file_name=file_name,
                    )
                )
                continue

            code = parts[1].strip().upper()
            result.record_counts[code] += 1

            layout = self.layout_for(file_type, code)
            if layout is None:
                result.ignored += 1
                continue

            try:
                record = layout.decode(parts, file_type, line_number)
            except Exception as e:
                self._logger.warning(
                    "line_decode_failed",
                    file_name=file_name,
                    line_number=line_number,
                    code=code,
                    error=str(e),
                )
                result.errors.append(
                    LineError(
                        line_number=line_number,
                        message=str(e) or type(e).__name__,
                        code=code,
                        file_name=file_name,
                    )
                )
                continue

            if record is None:
                result.malformed += 1
                continue

            result.records.append(record)
            result.processed += 1

        self._logger.info(
            "file_dispatched",
            file_name=file_name,
            file_type=file_type.value,
            lines=result.total_lines,
            processed=result.processed,
            ignored=result.ignored,
            malformed=result.malformed,
            errors=len(result.errors),
        )
        return result
