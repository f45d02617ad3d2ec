import argparse
import sys
from pathlib import Path

# Ensure repo root is on sys.path when running this script directly.
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from openpyxl.utils.exceptions import InvalidFileException
from sqlalchemy.exc import SQLAlchemyError

from app.core.logging import setup_logging
from app.services.ingestion_service import import_items_workbook, summarize_results


def parse_args():
    parser = argparse.ArgumentParser(
        description="Reconcile an item workbook against the catalog and import it."
    )
    parser.add_argument("--path", required=True, help="Path to .xlsx workbook.")
    parser.add_argument(
        "--warehouse-id",
        type=int,
        default=None,
        help="Warehouse for opening stock of new items. Default: the default warehouse.",
    )
    parser.add_argument("--dry-run", action="store_true", help="Validate without saving.")
    return parser.parse_args()


def main():
    setup_logging()
    args = parse_args()
    try:
        report = import_items_workbook(
            args.path,
            dry_run=args.dry_run,
            default_warehouse_id=args.warehouse_id,
        )
    except (OSError, ValueError, SQLAlchemyError, InvalidFileException) as exc:
        raise SystemExit(f"Import failed: {exc}") from exc

    print(summarize_results(report))
    if report.issues:
        print("Issues:")
        for issue in report.issues:
            print(f"  [{issue.kind}] {issue.message}")

    if args.dry_run:
        print("Dry run complete, no changes committed.")
    else:
        print("Import complete.")


if __name__ == "__main__":
    main()
