"""File-type detection for SPED exports.

A file is classified by its name when the name follows one of the usual
naming conventions, and otherwise by counting which family's record codes
dominate the first lines of the file.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from enum import Enum

import structlog

logger = structlog.get_logger(__name__)

DELIMITER = "|"
DEFAULT_SAMPLE_LINES = 100


class FileType(str, Enum):
    """The four SPED bookkeeping families."""

    FISCAL = "fiscal"  # EFD ICMS/IPI
    CONTRIBUICOES = "contribuicoes"  # EFD Contribuições (PIS/COFINS)
    ECF = "ecf"  # Escrituração Contábil Fiscal (IRPJ/CSLL)
    ECD = "ecd"  # Escrituração Contábil Digital


# Most specific family first; the first matching pattern wins.
FILENAME_PATTERNS: tuple[tuple[FileType, tuple[re.Pattern[str], ...]], ...] = (
    (
        FileType.CONTRIBUICOES,
        tuple(
            re.compile(p, re.IGNORECASE)
            for p in (
                r"contribuic(o|ã)es",
                r"pis[_\-]?cofins",
                r"efd[_\-]?contribuic",
                r"efd[_\-]?pis",
                r"sped[_\-]?contribuic",
                r"sped[_\-]?pis",
            )
        ),
    ),
    (
        FileType.ECF,
        tuple(
            re.compile(p, re.IGNORECASE)
            for p in (
                r"^ecf[_\-]",
                r"[_\-]ecf[_\-]",
                r"escriturac(a|ã)o[_\-]?contabil[_\-]?fiscal",
                r"sped[_\-]?ecf",
                r"ecd[_\-]?fiscal",
            )
        ),
    ),
    (
        FileType.ECD,
        tuple(
            re.compile(p, re.IGNORECASE)
            for p in (
                r"^ecd[_\-]",
                r"[_\-]ecd[_\-]",
                r"escriturac(a|ã)o[_\-]?contabil[_\-]?digital",
                r"sped[_\-]?ecd",
                r"contabil[_\-]?digital",
            )
        ),
    ),
    (
        FileType.FISCAL,
        tuple(
            re.compile(p, re.IGNORECASE)
            for p in (
                r"^efd[_\-]",
                r"fiscal",
                r"icms[_\-]?ipi",
                r"sped[_\-]?fiscal",
                r"efd[_\-]?icms",
                r"nota[_\-]?fiscal",
            )
        ),
    ),
)

SPED_EXTENSIONS = (".efd", ".sped")

# Record codes characteristic of each family, used for content sniffing.
RECORD_CODES: dict[FileType, frozenset[str]] = {
    FileType.CONTRIBUICOES: frozenset(
        """
        0110 0140 A100 A110 A111 C180 C181 C185 C188 D100 D101 D105 D111
        F100 F111 F120 F129 F130 F139 F150 F200 F205 F210 F211 I100 I199
        M100 M105 M110 M115 M200 M205 M210 M220 M225 M400 M410 M500 M505
        M510 M515 M600 M605 M610 M620 M625 M800 M810 P100 P110 P199 P200
        P210 1001 1100 1200 1300 1500
        """.split()
    ),
    FileType.ECF: frozenset(
        """
        0010 0020 J001 J050 J051 J100 K001 K030 K155 K156 L001 L030 L100
        M001 M010 M300 M350 N001 N500 N600 N610 N620 N630 N650 N660 N670
        P001 P030 P100 P130 P150 P200 P230 T001 T030 T120 T150 U001 U030
        U100 Y540
        """.split()
    ),
    FileType.ECD: frozenset(
        """
        0007 0020 I001 I010 I012 I015 I020 I030 I050 I051 I052 I053 I100
        I150 I155 I200 I250 I300 I310 I350 I355 J001 J005 J100 J150 K001
        K030 K100 K155 K156 K200 K220 K230 K300
        """.split()
    ),
    FileType.FISCAL: frozenset(
        """
        0001 0005 0150 0190 0200 C100 C170 C190 C197 E110 E111 E116 E200
        E210 E220 H010 H020 9900 9990 9999
        """.split()
    ),
}


def record_code(line: str) -> str | None:
    """Return the record code of a delimited line, if it has one."""
    parts = line.strip().split(DELIMITER)
    if len(parts) < 2 or not parts[1]:
        return None
    return parts[1].strip().upper()


def classify_by_name(file_name: str | None) -> FileType | None:
    """Classify a file from its name, or return None when nothing matches."""
    if not file_name:
        return None
    name = file_name.strip()

    for file_type, patterns in FILENAME_PATTERNS:
        if any(pattern.search(name) for pattern in patterns):
            return file_type

    lowered = name.lower()
    if lowered.endswith(SPED_EXTENSIONS):
        if re.search(r"pis|cofins|contribuic", lowered):
            return FileType.CONTRIBUICOES
        if "ecf" in lowered:
            return FileType.ECF
        if "ecd" in lowered:
            return FileType.ECD
        return FileType.FISCAL

    return None


def count_record_codes(
    lines: Iterable[str], sample_size: int = DEFAULT_SAMPLE_LINES
) -> dict[FileType, int]:
    """Count family-characteristic record codes over the first non-empty lines."""
    counts = {file_type: 0 for file_type in FileType}
    scanned = 0
    for line in lines:
        if scanned >= sample_size:
            break
        if not line.strip():
            continue
        scanned += 1
        code = record_code(line)
        if code is None:
            continue
        for file_type, codes in RECORD_CODES.items():
            if code in codes:
                counts[file_type] += 1
    return counts


def classify_by_content(
    lines: Iterable[str], sample_size: int = DEFAULT_SAMPLE_LINES
) -> FileType:
    """Classify a file by the histogram of its record codes.

    The goods-tax family wins every tie, including an empty sample.
    """
    counts = count_record_codes(lines, sample_size)
    best = FileType.FISCAL
    best_count = counts[best]
    for file_type in (FileType.CONTRIBUICOES, FileType.ECF, FileType.ECD):
        if counts[file_type] > best_count:
            best = file_type
            best_count = counts[file_type]

    logger.debug(
        "file_classified_by_content",
        file_type=best.value,
        counts={ft.value: n for ft, n in counts.items()},
    )
    return best


def classify_file(
    lines: Iterable[str],
    file_name: str | None = None,
    sample_size: int = DEFAULT_SAMPLE_LINES,
) -> FileType:
    """Determine the family of a SPED file by name first, then by content."""
    by_name = classify_by_name(file_name)
    if by_name is not None:
        logger.debug("file_classified_by_name", file_name=file_name, file_type=by_name.value)
        return by_name
    return classify_by_content(lines, sample_size)
