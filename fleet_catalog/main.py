import argparse
import logging
import sys

from registry_import.exceptions import (
    DecodeError,
    ImportInProgressError,
    StoreUnavailableError,
)
from registry_import.models import ImportSummary

from .app_factory import create_facade, initialize_app

logger = logging.getLogger(__name__)


def format_summary(summary: ImportSummary) -> str:
    """Renders an import summary for the terminal."""
    lines = [
        f"Rows seen:        {summary.total_rows_seen}",
        f"Unique addresses: {summary.unique_entries}",
        f"Created:          {summary.created}",
        f"Already stored:   {summary.skipped_existing}",
        f"Duplicates:       {len(summary.duplicates)}",
        f"Invalid rows:     {len(summary.invalid_rows)}",
    ]
    for report in summary.duplicate_preview:
        sources = ", ".join(kind.value for kind in report.source_kinds)
        lines.append(f"  duplicate: {report.display_label} ({report.total_occurrences}x, {sources})")
    for row in summary.invalid_rows:
        lines.append(
            f"  invalid: {row.source_kind.value} row {row.row_number}: {row.reason} '{row.raw_address}'"
        )
    return "\n".join(lines)


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Address registry import runner.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    import_parser = subparsers.add_parser("import", help="Import registry CSV files.")
    import_parser.add_argument("--commercial", help="Path to the commercial registry CSV.")
    import_parser.add_argument("--residential", help="Path to the residential registry CSV.")

    subparsers.add_parser("clear", help="Delete every address in the catalog.")
    subparsers.add_parser("dashboard", help="Run the admin dashboard.")

    args = parser.parse_args(argv)

    initialize_app()
    facade = create_facade()

    if args.command == "import":
        if not args.commercial and not args.residential:
            parser.error("import needs --commercial and/or --residential")
        try:
            summary = facade.import_registry_files(args.commercial, args.residential)
        except (OSError, DecodeError, ImportInProgressError, StoreUnavailableError) as e:
            logger.error(f"Import failed: {e}")
            return 1
        print(format_summary(summary))
    elif args.command == "clear":
        removed = facade.clear_addresses()
        print(f"Removed {removed} addresses.")
    elif args.command == "dashboard":
        from dashboard.app import run_dashboard
        logger.info("Starting dashboard...")
        run_dashboard(facade)
    return 0


if __name__ == "__main__":
    sys.exit(main())
