import logging
from dataclasses import asdict, dataclass, field
from pathlib import Path

from openpyxl import load_workbook
from sqlalchemy.exc import IntegrityError

from app.config import get_settings
from app.core.errors import InventoryError, ItemNotFoundError
from app.database import Base, SessionLocal, engine, session_scope
from app.models import import_all_models
from app.models.item import Item
from app.services import item_service
from app.services.reconciliation_service import (
    ImportRow,
    RowIssue,
    load_catalog_snapshot,
    reconcile,
)

logger = logging.getLogger(__name__)

ISSUE_INVALID = "invalid"
ISSUE_FAILED = "failed"

_ALIAS_SPECS = (
    (("item", "name"), "name"),
    (("product", "name"), "name"),
    (("article", "name"), "name"),
    (("item", "code"), "item_code"),
    (("sku",), "item_code"),
    (("barcode", "no"), "barcode"),
    (("barcode", "number"), "barcode"),
    (("ean",), "barcode"),
    (("hsn",), "hsn_code"),
    (("hsn", "code"), "hsn_code"),
    (("hsn", "sac"), "hsn_code"),
    (("category", "name"), "category"),
    (("per", "carton", "qty"), "per_container_quantity"),
    (("per", "carton", "quantity"), "per_container_quantity"),
    (("per", "container", "qty"), "per_container_quantity"),
    (("per", "container", "quantity"), "per_container_quantity"),
    (("pcs", "per", "carton"), "per_container_quantity"),
    (("conversion", "rate"), "per_container_quantity"),
    (("packaging", "unit"), "packaging_unit"),
    (("alternate", "unit"), "packaging_unit"),
    (("base", "unit"), "unit"),
    (("uom",), "unit"),
    (("sale", "price"), "sale_price"),
    (("selling", "price"), "sale_price"),
    (("purchase", "price"), "purchase_price"),
    (("cost", "price"), "purchase_price"),
    (("item", "mrp"), "mrp"),
    (("min", "stock"), "min_stock"),
    (("minimum", "stock"), "min_stock"),
    (("opening", "stock"), "opening_stock"),
    (("opening", "qty"), "opening_stock"),
    (("stock",), "opening_stock"),
    (("qty",), "opening_stock"),
    (("quantity",), "opening_stock"),
    (("warehouse", "id"), "warehouse_id"),
    (("godown", "id"), "warehouse_id"),
)

HEADER_ALIASES = {"".join(parts): target for parts, target in _ALIAS_SPECS}

REQUIRED_COLUMNS = {"name"}

_PLACEHOLDER_VALUES = {"none", "[none]", "null", "[null]", "na", "n/a", "nan", "-", "--"}


@dataclass
class ImportReport:
    rows_read: int = 0
    inserted: int = 0
    updated: int = 0
    unchanged: int = 0
    stock_booked: int = 0
    dry_run: bool = False
    inserted_ids: list = field(default_factory=list)
    issues: list = field(default_factory=list)

    def to_dict(self, max_issues: int | None = None) -> dict:
        max_issues = max_issues or get_settings().IMPORT_MAX_ISSUES
        return {
            "rows_read": self.rows_read,
            "inserted": self.inserted,
            "updated": self.updated,
            "unchanged": self.unchanged,
            "stock_booked": self.stock_booked,
            "dry_run": self.dry_run,
            "issue_count": len(self.issues),
            "issues": [issue.to_dict() for issue in self.issues[:max_issues]],
        }


def _is_blank(value):
    return value is None or (isinstance(value, str) and not value.strip())


def _clean_text(value):
    if _is_blank(value):
        return None
    text = str(value).strip()
    if not text:
        return None
    if text.lower() in _PLACEHOLDER_VALUES:
        return None
    return text


def _clean_code(value):
    # Numeric cells come back as floats (8901234567890.0); keep the digits.
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return _clean_text(value)


def _is_summary_value(value):
    if isinstance(value, str):
        value_text = value.strip().lower()
        if value_text and "total" in value_text:
            return True
    return False


def _is_footer_value(value):
    if not isinstance(value, str):
        return False
    value_text = value.strip().lower()
    return value_text.startswith("printed on") or value_text.startswith("generated on")


def _looks_like_header_row(row, header_set):
    matches = 0
    non_blank = 0
    for value in row:
        if _is_blank(value):
            continue
        non_blank += 1
        if normalize_header(value) in header_set:
            matches += 1
    return 0 < non_blank == matches


def normalize_header(value):
    if value is None:
        return ""
    value_text = str(value).strip().lower()
    if not value_text:
        return ""
    for char in (" ", "-", ".", "/"):
        value_text = value_text.replace(char, "_")
    value_text = "_".join(part for part in value_text.split("_") if part)
    alias = HEADER_ALIASES.get(value_text)
    if alias:
        return alias
    alias = HEADER_ALIASES.get(value_text.replace("_", ""))
    if alias:
        return alias
    return value_text


def to_int(value, field, required=True):
    if _is_blank(value):
        if required:
            raise ValueError(f"{field} is required")
        return None
    if isinstance(value, bool):
        raise ValueError(f"{field} must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if value.is_integer():
            return int(value)
        raise ValueError(f"{field} must be an integer")
    if isinstance(value, str):
        value_text = value.strip().replace(",", "")
        try:
            return int(value_text)
        except ValueError:
            try:
                numeric = float(value_text)
            except ValueError:
                raise ValueError(f"{field} must be an integer") from None
            if not numeric.is_integer():
                raise ValueError(f"{field} must be an integer")
            return int(numeric)
    return int(value)


def to_float(value, field, required=True):
    if _is_blank(value):
        if required:
            raise ValueError(f"{field} is required")
        return None
    if isinstance(value, str):
        value = value.replace(",", "")
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValueError(f"{field} must be a number") from None


def parse_import_row(raw, row_number):
    """Turn one raw record (normalised header -> cell) into an ``ImportRow``."""
    per_container = to_int(raw.get("per_container_quantity"), "per_container_quantity", required=False)
    if per_container is not None and per_container <= 0:
        per_container = None
    opening = to_int(raw.get("opening_stock"), "opening_stock", required=False) or 0
    if opening < 0:
        raise ValueError("opening_stock cannot be negative")

    return ImportRow(
        row_number=row_number,
        name=_clean_text(raw.get("name")),
        category=_clean_text(raw.get("category")),
        per_container_quantity=per_container,
        item_code=_clean_code(raw.get("item_code")),
        barcode=_clean_code(raw.get("barcode")),
        unit=_clean_text(raw.get("unit")),
        packaging_unit=_clean_text(raw.get("packaging_unit")),
        description=_clean_text(raw.get("description")),
        hsn_code=_clean_code(raw.get("hsn_code")),
        sale_price=to_float(raw.get("sale_price"), "sale_price", required=False),
        purchase_price=to_float(raw.get("purchase_price"), "purchase_price", required=False),
        mrp=to_float(raw.get("mrp"), "mrp", required=False),
        min_stock=to_int(raw.get("min_stock"), "min_stock", required=False),
        opening_stock=opening,
        warehouse_id=to_int(raw.get("warehouse_id"), "warehouse_id", required=False),
    )


def load_sheet_rows(worksheet):
    rows_iter = worksheet.iter_rows(values_only=True)
    headers = next(rows_iter, None)
    if not headers:
        return [], set()
    header_keys = [normalize_header(header) for header in headers]
    indices = [(idx, key) for idx, key in enumerate(header_keys) if key]
    columns = {key for key in header_keys if key}
    name_idx = header_keys.index("name") if "name" in columns else None

    rows = []
    for row_idx, row in enumerate(rows_iter, start=2):
        if row is None or all(_is_blank(value) for value in row):
            continue
        if _looks_like_header_row(row, columns):
            continue
        if name_idx is not None and name_idx < len(row):
            name_value = row[name_idx]
            if _is_summary_value(name_value) or _is_footer_value(name_value):
                continue
        record = {key: row[idx] for idx, key in indices if idx < len(row)}
        record["row_number"] = row_idx
        rows.append(record)
    return rows, columns


def validate_columns(columns):
    missing = sorted(REQUIRED_COLUMNS - set(columns))
    if missing:
        raise ValueError("item sheet missing columns: {}".format(", ".join(missing)))


def load_item_rows(path):
    """Read the first sheet of an item workbook into raw row dicts."""
    workbook_path = Path(path)
    if not workbook_path.exists():
        raise FileNotFoundError(f"File not found: {workbook_path}")
    if workbook_path.suffix.lower() != ".xlsx":
        raise ValueError("Only .xlsx files are supported.")

    workbook = load_workbook(workbook_path, read_only=True, data_only=True)
    try:
        worksheet = workbook.worksheets[0]
        sheet_title = worksheet.title
        rows, columns = load_sheet_rows(worksheet)
    finally:
        workbook.close()
    validate_columns(columns)
    logger.info("Read %s item rows from %s (%s)", len(rows), workbook_path.name, sheet_title)
    return rows


def _insert_values(row: ImportRow, warehouse_id):
    values = asdict(row)
    values.pop("row_number", None)
    values["warehouse_id"] = row.warehouse_id or warehouse_id
    return values


def _apply_updates(db, updates, report):
    for item_id, fields in updates.items():
        if not fields:
            report.unchanged += 1
            continue
        try:
            values = item_service.normalize_item_values(fields, partial=True)
            with db.begin_nested():
                item = db.get(Item, item_id)
                if item is None:
                    raise ItemNotFoundError(item_id)
                changed = False
                for key, value in values.items():
                    if getattr(item, key) != value:
                        setattr(item, key, value)
                        changed = True
                db.flush()
        except (InventoryError, ValueError, IntegrityError) as exc:
            report.issues.append(
                RowIssue(
                    row_number=0,
                    kind=ISSUE_FAILED,
                    message=f"item {item_id}: update failed: {exc}",
                    context={"item_id": item_id},
                )
            )
            logger.warning("Import update failed for item %s: %s", item_id, exc)
            continue
        if changed:
            report.updated += 1
        else:
            report.unchanged += 1


def _apply_inserts(db, rows, report, default_warehouse_id, actor):
    for row in rows:
        try:
            with db.begin_nested():
                item = item_service.create_item(
                    db, _insert_values(row, default_warehouse_id), actor=actor
                )
        except (InventoryError, ValueError, IntegrityError) as exc:
            report.issues.append(
                RowIssue(
                    row_number=row.row_number,
                    kind=ISSUE_FAILED,
                    message=f"row {row.row_number}: insert failed: {exc}",
                    name=row.name,
                )
            )
            logger.warning("Import row %s (%s) not inserted: %s", row.row_number, row.name, exc)
            continue
        report.inserted += 1
        report.inserted_ids.append(item.id)
        if row.opening_stock and item.current_stock:
            report.stock_booked += 1


def import_items(db, raw_rows, *, default_warehouse_id=None, dry_run=False, actor=None):
    """Reconcile raw item rows against the catalog and write the outcome.

    Matched rows sync ``item_code``, ``unit`` and ``description`` onto every
    matched item. Unmatched rows become new items with a barcode and their
    opening stock. Ambiguous and invalid rows are reported, never written.
    With ``dry_run`` everything is written inside a savepoint that is rolled
    back, so the report reflects what a real run would do.
    """
    report = ImportReport(dry_run=dry_run)
    parsed = []
    for position, raw in enumerate(raw_rows, start=2):
        report.rows_read += 1
        row_number = raw.get("row_number") or position
        try:
            parsed.append(parse_import_row(raw, row_number))
        except ValueError as exc:
            report.issues.append(
                RowIssue(
                    row_number=row_number,
                    kind=ISSUE_INVALID,
                    message=f"row {row_number}: {exc}",
                    name=_clean_text(raw.get("name")),
                )
            )

    snapshot = load_catalog_snapshot(db)
    result = reconcile(parsed, snapshot)
    report.issues.extend(result.issues)

    savepoint = db.begin_nested() if dry_run else None
    try:
        _apply_updates(db, result.updates, report)
        _apply_inserts(db, result.inserts, report, default_warehouse_id, actor)
    finally:
        if savepoint is not None and savepoint.is_active:
            savepoint.rollback()

    report.issues.sort(key=lambda issue: issue.row_number)
    logger.info("Item import %s", summarize_results(report))
    return report


def import_items_workbook(workbook_path, dry_run=False, *, default_warehouse_id=None, session_factory=SessionLocal):
    rows = load_item_rows(workbook_path)

    if session_factory is SessionLocal:
        import_all_models()
        Base.metadata.create_all(bind=engine)

    with session_scope(dry_run=dry_run, factory=session_factory) as db:
        return import_items(
            db,
            rows,
            default_warehouse_id=default_warehouse_id,
            dry_run=dry_run,
        )


def summarize_results(report):
    text = "{} rows: {} inserted, {} updated, {} unchanged, {} issues".format(
        report.rows_read,
        report.inserted,
        report.updated,
        report.unchanged,
        len(report.issues),
    )
    if report.dry_run:
        text += " (dry run)"
    return text
