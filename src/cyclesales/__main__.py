"""
Command line entry point.

Run with: python -m cyclesales exports/cycle_sales.xlsx [--include-non-sales]
Prints the export summary as JSON.
"""

import argparse
import logging
import sys

from .clients import IngestionError, SpreadsheetLoader
from .config import configure_logging, get_settings
from .core.filters import RecordFilters
from .core.pipeline import AnalyticsState, compute_snapshot, load_result
from .core.summary import build_export

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cyclesales", description="Analyze a sales-cycle spreadsheet export."
    )
    parser.add_argument("path", help="Excel (.xlsx) or CSV export")
    parser.add_argument(
        "--include-non-sales",
        action="store_true",
        default=None,
        help="Count gifts, donations and other movements in quantity metrics",
    )
    parser.add_argument("--min-support", type=float, help="Minimum pair support (0-1)")
    parser.add_argument("--top", type=int, help="Products and pairs to include")
    parser.add_argument("--log-level", help="Logging level (default from settings)")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)

    settings = get_settings()
    overrides = {}
    if args.min_support is not None:
        overrides["min_support"] = args.min_support
    if overrides:
        settings = settings.model_copy(update=overrides)

    include = (
        args.include_non_sales
        if args.include_non_sales is not None
        else settings.include_non_sales
    )

    try:
        result = SpreadsheetLoader(args.path).load()
    except IngestionError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1

    for warning in result.quality.warnings:
        logger.warning(warning)

    state = load_result(AnalyticsState(filters=RecordFilters(include_non_sales=include)), result)
    snapshot = compute_snapshot(state, settings)
    top_n = args.top if args.top is not None else settings.export_top_n
    export = build_export(snapshot, state.filters, top_n=top_n)

    print(export.model_dump_json(indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
