"""Command-line entry point: ``sped-extract FILE [FILE ...]``."""

from __future__ import annotations

import argparse
import json
import sys

import structlog

from sped_extractor.classifier import FileType
from sped_extractor.config import configure_logging, get_settings
from sped_extractor.events import EventCollector
from sped_extractor.extractor import SpedExtractor, SpedFile

logger = structlog.get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sped-extract",
        description="Extract tax-simulation parameters from SPED files",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
File types:
  fiscal         EFD ICMS/IPI
  contribuicoes  EFD Contribuições (PIS/COFINS)
  ecf            Escrituração Contábil Fiscal
  ecd            Escrituração Contábil Digital

Examples:
  %(prog)s efd_icms_ipi.txt efd_contribuicoes.txt
  %(prog)s --workers=4 --indent=2 *.txt
  %(prog)s --type=ecf arquivo.txt
  %(prog)s --parse-only efd.txt     # Dump the consolidated dataset
        """,
    )
    parser.add_argument("files", nargs="+", help="SPED text files")
    parser.add_argument(
        "--type",
        choices=[ft.value for ft in FileType],
        default=None,
        help="Force the file type of every input (default: detect)",
    )
    parser.add_argument(
        "--encoding",
        default=None,
        help="Input encoding (default: SPED_ENCODING or latin-1)",
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=1,
        help="Parse files on a thread pool of this size (default: 1)",
    )
    parser.add_argument(
        "--indent",
        type=int,
        default=None,
        help="Indent the JSON output",
    )
    parser.add_argument(
        "--parse-only",
        action="store_true",
        help="Print the consolidated dataset instead of resolved parameters",
    )
    parser.add_argument(
        "--events",
        action="store_true",
        help="Include resolution events in the output",
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    settings = get_settings()
    configure_logging(settings.log_level, settings.log_format)

    collector = EventCollector() if args.events else None

    try:
        extractor = SpedExtractor(collector=collector, settings=settings)
        files = [SpedFile.from_path(path, args.encoding) for path in args.files]

        if args.parse_only or args.type:
            forced = FileType(args.type) if args.type else None
            dataset = extractor.combine(
                extractor.parse_file(f.lines, f.name, forced) for f in files
            )
            if args.parse_only:
                output = dataset.to_dict()
            else:
                output = extractor.resolve(dataset).to_dict()
        else:
            output = extractor.extract(files, max_workers=args.workers).to_dict()

        if collector is not None:
            output["eventos"] = [event.to_dict() for event in collector.recent_events]

    except KeyboardInterrupt:
        logger.info("extraction_interrupted")
        sys.exit(130)
    except Exception as e:
        logger.exception("extraction_error", error=str(e))
        sys.exit(1)

    json.dump(output, sys.stdout, ensure_ascii=False, indent=args.indent, default=str)
    sys.stdout.write("\n")


if __name__ == "__main__":
    main()
