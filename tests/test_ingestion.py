import tempfile
import unittest
from pathlib import Path

from openpyxl import Workbook
from sqlalchemy import func, select

from app.models.item import Item
from app.services import stock_service
from app.services.ingestion_service import (
    import_items,
    import_items_workbook,
    load_item_rows,
    normalize_header,
    parse_import_row,
    summarize_results,
)
from tests.helpers import add_item, add_warehouse, make_session_factory


def _write_workbook(path, rows):
    workbook = Workbook()
    worksheet = workbook.active
    worksheet.title = "Items"
    for row in rows:
        worksheet.append(row)
    workbook.save(path)


class HeaderAndRowParsingTest(unittest.TestCase):
    def test_header_aliases(self):
        self.assertEqual(normalize_header("Item Name"), "name")
        self.assertEqual(normalize_header("Per Carton Qty"), "per_container_quantity")
        self.assertEqual(normalize_header("Barcode No."), "barcode")
        self.assertEqual(normalize_header("barcodeNo"), "barcode")
        self.assertEqual(normalize_header("Opening Stock"), "opening_stock")
        self.assertEqual(normalize_header("HSN"), "hsn_code")
        self.assertEqual(normalize_header("Sale-Price"), "sale_price")
        self.assertEqual(normalize_header("Description"), "description")
        self.assertEqual(normalize_header(None), "")

    def test_parse_import_row_cleans_cells(self):
        row = parse_import_row(
            {
                "name": "  Pencil ",
                "category": "n/a",
                "barcode": 8901234567890.0,
                "hsn_code": 9609,
                "per_container_quantity": "12",
                "opening_stock": "1,200",
                "sale_price": "1,250.50",
            },
            7,
        )
        self.assertEqual(row.row_number, 7)
        self.assertEqual(row.name, "Pencil")
        self.assertIsNone(row.category)
        self.assertEqual(row.barcode, "8901234567890")
        self.assertEqual(row.hsn_code, "9609")
        self.assertEqual(row.per_container_quantity, 12)
        self.assertEqual(row.opening_stock, 1200)
        self.assertEqual(row.sale_price, 1250.5)

    def test_parse_import_row_rejects_bad_numbers(self):
        with self.assertRaises(ValueError):
            parse_import_row({"name": "Eraser", "opening_stock": "abc"}, 2)
        with self.assertRaises(ValueError):
            parse_import_row({"name": "Eraser", "opening_stock": -2}, 2)
        with self.assertRaises(ValueError):
            parse_import_row({"name": "Eraser", "per_container_quantity": 2.5}, 2)


class LoadItemRowsTest(unittest.TestCase):
    def test_reads_first_sheet_and_skips_noise(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "items.xlsx"
            _write_workbook(
                path,
                [
                    ["Item Name", "Category", "Per Carton Qty", "Barcode No", "Opening Stock"],
                    ["Pen Blue", "Stationery", 10, None, 5],
                    [None, None, None, None, None],
                    ["Item Name", "Category", "Per Carton Qty", "Barcode No", "Opening Stock"],
                    ["Pencil", "Stationery", 12, 8901234567890, None],
                    ["Grand Total", None, None, None, 5],
                    ["Printed on 2026-01-05", None, None, None, None],
                ],
            )
            rows = load_item_rows(path)

        self.assertEqual([row["name"] for row in rows], ["Pen Blue", "Pencil"])
        self.assertEqual([row["row_number"] for row in rows], [2, 5])
        self.assertEqual(rows[0]["per_container_quantity"], 10)
        self.assertEqual(rows[0]["opening_stock"], 5)

    def test_missing_name_column(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "items.xlsx"
            _write_workbook(path, [["Category", "Qty"], ["Stationery", 3]])
            with self.assertRaises(ValueError):
                load_item_rows(path)

    def test_rejects_missing_or_unsupported_files(self):
        with tempfile.TemporaryDirectory() as tmp:
            with self.assertRaises(FileNotFoundError):
                load_item_rows(Path(tmp) / "missing.xlsx")
            csv_path = Path(tmp) / "items.csv"
            csv_path.write_text("name\nPen\n")
            with self.assertRaises(ValueError):
                load_item_rows(csv_path)


class ImportItemsTest(unittest.TestCase):
    def setUp(self):
        self.engine, self.Session = make_session_factory()
        self.db = self.Session()
        self.main = add_warehouse(self.db, "Main", is_default=True)
        self.pen = add_item(
            self.db, "Pen Blue", category="Stationery", per_container_quantity=10, barcode="2000000000100"
        )
        add_item(self.db, "Lamp", category="Home")
        add_item(self.db, "Lamp", category="Garden")
        self.db.commit()

    def tearDown(self):
        self.db.close()
        self.engine.dispose()

    def raw_rows(self):
        return [
            {"row_number": 2, "name": "Pen Blue", "item_code": "PB-1", "unit": "pcs", "opening_stock": 50},
            {"row_number": 3, "name": "Pencil", "category": "Stationery", "opening_stock": 5, "barcode": 8901234567890.0},
            {"row_number": 4, "name": None, "category": "Stationery"},
            {"row_number": 5, "name": "Eraser", "opening_stock": "abc"},
            {"row_number": 6, "name": "Lamp"},
            {"row_number": 7, "name": "Sharpener"},
        ]

    def item_count(self):
        return self.db.execute(select(func.count(Item.id))).scalar_one()

    def test_import_updates_inserts_and_reports(self):
        report = import_items(self.db, self.raw_rows())
        self.db.commit()

        self.assertEqual(report.rows_read, 6)
        self.assertEqual(report.updated, 1)
        self.assertEqual(report.inserted, 2)
        self.assertEqual(report.stock_booked, 1)
        self.assertEqual(
            [(issue.row_number, issue.kind) for issue in report.issues],
            [(4, "missing_name"), (5, "invalid"), (6, "ambiguous")],
        )

        pen = self.db.get(Item, self.pen.id)
        self.assertEqual(pen.item_code, "PB-1")
        self.assertEqual(pen.unit, "PCS")
        # matched rows never touch stock
        self.assertEqual(stock_service.cached_aggregate(self.db, pen.id), 0)

        pencil = self.db.execute(select(Item).where(Item.name == "Pencil")).scalar_one()
        self.assertEqual(pencil.barcode, "8901234567890")
        self.assertEqual(stock_service.warehouse_quantity(self.db, pencil.id, self.main.id), 5)

        sharpener = self.db.execute(select(Item).where(Item.name == "Sharpener")).scalar_one()
        self.assertEqual(sharpener.barcode, "2000000000101")
        self.assertEqual(self.item_count(), 5)

        summary = report.to_dict()
        self.assertEqual(summary["issue_count"], 3)
        self.assertEqual(summary["issues"][0]["message"], "row 4: missing name")
        self.assertIn("2 inserted, 1 updated", summarize_results(report))

    def test_failing_row_does_not_abort_batch(self):
        rows = [
            {"row_number": 2, "name": "Pencil", "barcode": "2000000000100"},
            {"row_number": 3, "name": "Crayon", "opening_stock": 2},
        ]
        report = import_items(self.db, rows)
        self.db.commit()

        self.assertEqual(report.inserted, 1)
        self.assertEqual([issue.kind for issue in report.issues], ["failed"])
        self.assertIn("row 2: insert failed", report.issues[0].message)
        crayon = self.db.execute(select(Item).where(Item.name == "Crayon")).scalar_one()
        self.assertEqual(stock_service.cached_aggregate(self.db, crayon.id), 2)

    def test_opening_stock_goes_to_requested_default_warehouse(self):
        annex = add_warehouse(self.db, "Annex")
        self.db.commit()

        import_items(
            self.db,
            [{"row_number": 2, "name": "Crayon", "opening_stock": 3}],
            default_warehouse_id=annex.id,
        )
        crayon = self.db.execute(select(Item).where(Item.name == "Crayon")).scalar_one()
        self.assertEqual(stock_service.warehouse_quantity(self.db, crayon.id, annex.id), 3)
        self.assertEqual(stock_service.warehouse_quantity(self.db, crayon.id, self.main.id), 0)

    def test_dry_run_writes_nothing(self):
        report = import_items(self.db, self.raw_rows(), dry_run=True)
        self.db.commit()

        self.assertTrue(report.dry_run)
        self.assertEqual(report.inserted, 2)
        self.assertEqual(report.updated, 1)
        self.assertEqual(self.item_count(), 3)
        self.assertIsNone(self.db.get(Item, self.pen.id).item_code)

    def test_import_workbook_commits(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "items.xlsx"
            _write_workbook(
                path,
                [
                    ["Item Name", "Item Code", "Opening Stock"],
                    ["Pen Blue", "PB-7", None],
                    ["Marker", None, 4],
                ],
            )
            report = import_items_workbook(path, session_factory=self.Session)

        self.assertEqual((report.updated, report.inserted), (1, 1))
        check = self.Session()
        try:
            self.assertEqual(check.get(Item, self.pen.id).item_code, "PB-7")
            marker = check.execute(select(Item).where(Item.name == "Marker")).scalar_one()
            self.assertEqual(marker.current_stock, 4)
        finally:
            check.close()


if __name__ == "__main__":
    unittest.main()
