import threading
import unittest
from concurrent.futures import ThreadPoolExecutor

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from app.core.errors import BarcodeConflictError, ValidationError
from app.core.retry import with_retry
from app.services.barcode_service import (
    BarcodeAllocator,
    allocate_barcode,
    create_item_with_barcode,
)
from tests.helpers import add_item, make_session_factory


def _no_barcodes():
    return []


def _never_taken(_candidate):
    return False


class FakeBarcodeStore:
    """Thread-safe set of barcodes with insert-time uniqueness."""

    def __init__(self, existing=()):
        self._lock = threading.Lock()
        self._codes = set(existing)

    def scan(self):
        with self._lock:
            return list(self._codes)

    def exists(self, candidate):
        with self._lock:
            return candidate in self._codes

    def insert(self, candidate):
        with self._lock:
            if candidate in self._codes:
                raise BarcodeConflictError(candidate)
            self._codes.add(candidate)
        return candidate

    def __len__(self):
        return len(self._codes)


class BarcodeAllocatorTest(unittest.TestCase):
    def setUp(self):
        self.allocator = BarcodeAllocator()

    def test_empty_store_starts_after_fallback_base(self):
        barcode = self.allocator.allocate(_no_barcodes, _never_taken)
        self.assertEqual(barcode, "2000000000001")
        self.assertEqual(len(barcode), 13)
        self.assertTrue(barcode.startswith("200"))

    def test_continues_from_highest_prefixed_value(self):
        existing = ["2000000000041", "abc", None, "9999999999999", "2000000000007", " "]
        barcode = self.allocator.allocate(lambda: existing, _never_taken)
        self.assertEqual(barcode, "2000000000042")

    def test_ignores_prefixed_values_of_the_wrong_width(self):
        existing = ["2000000000041", "20012345678905", "200999", "2000000000007"]
        barcode = self.allocator.allocate(lambda: existing, _never_taken)
        self.assertEqual(barcode, "2000000000042")

    def test_overflow_out_of_prefix_range_resets_to_base(self):
        barcode = self.allocator.allocate(lambda: ["2009999999999"], _never_taken)
        self.assertEqual(barcode, "2000000000001")

    def test_collisions_probe_upward(self):
        taken = {"2000000000001", "2000000000002"}
        barcode = self.allocator.allocate(_no_barcodes, taken.__contains__)
        self.assertEqual(barcode, "2000000000003")

    def test_scan_failure_falls_back_to_base(self):
        def broken_scan():
            raise SQLAlchemyError("database is locked")

        with self.assertLogs("app.services.barcode_service", level="ERROR"):
            barcode = self.allocator.allocate(broken_scan, _never_taken)
        self.assertEqual(barcode, "2000000000001")

    def test_probe_failure_returns_candidate_unverified(self):
        def broken_probe(_candidate):
            raise OSError("connection reset")

        with self.assertLogs("app.services.barcode_service", level="ERROR"):
            barcode = self.allocator.allocate(lambda: ["2000000000010"], broken_probe)
        self.assertEqual(barcode, "2000000000011")

    def test_exhausted_probes_return_last_candidate(self):
        allocator = BarcodeAllocator(max_attempts=3)
        with self.assertLogs("app.services.barcode_service", level="WARNING"):
            barcode = allocator.allocate(_no_barcodes, lambda _candidate: True)
        self.assertEqual(barcode, "2000000000004")

    def test_custom_prefix_and_width(self):
        allocator = BarcodeAllocator(prefix="29", width=8, fallback_base=29_000_000)
        self.assertEqual(allocator.allocate(lambda: ["29000120"], _never_taken), "29000121")

    def test_rejects_invalid_configuration(self):
        with self.assertRaises(ValueError):
            BarcodeAllocator(prefix="ABC")
        with self.assertRaises(ValueError):
            BarcodeAllocator(prefix="12345", width=4)
        with self.assertRaises(ValueError):
            BarcodeAllocator(max_attempts=0)

    def test_concurrent_allocations_are_unique_with_retry(self):
        store = FakeBarcodeStore()
        allocator = BarcodeAllocator()
        workers = 100

        def allocate_and_insert():
            return with_retry(
                workers,
                lambda: store.insert(allocator.allocate(store.scan, store.exists)),
                retry_on=(BarcodeConflictError,),
            )

        with ThreadPoolExecutor(max_workers=16) as pool:
            barcodes = list(pool.map(lambda _: allocate_and_insert(), range(workers)))

        self.assertEqual(len(barcodes), workers)
        self.assertEqual(len(set(barcodes)), workers)
        self.assertEqual(len(store), workers)
        self.assertTrue(all(allocator.in_range(code) for code in barcodes))


class _FixedSequenceAllocator(BarcodeAllocator):
    def __init__(self, sequence):
        super().__init__()
        self._sequence = list(sequence)
        self.calls = 0

    def allocate(self, scan_existing, exists):
        self.calls += 1
        return self._sequence.pop(0)


class CreateItemWithBarcodeTest(unittest.TestCase):
    def setUp(self):
        self.engine, Session = make_session_factory()
        self.db = Session()

    def tearDown(self):
        self.db.close()
        self.engine.dispose()

    def test_allocates_sequential_barcodes(self):
        first = create_item_with_barcode(self.db, {"name": "Pen Blue"})
        second = create_item_with_barcode(self.db, {"name": "Pen Red"})
        self.db.commit()

        self.assertEqual(first.barcode, "2000000000001")
        self.assertEqual(second.barcode, "2000000000002")

    def test_long_prefixed_barcode_does_not_block_allocation(self):
        for number in range(1, 61):
            add_item(self.db, f"Item {number}", barcode=str(2_000_000_000_000 + number))
        add_item(self.db, "Imported", barcode="20012345678905")

        item = create_item_with_barcode(self.db, {"name": "New"})
        self.db.commit()

        self.assertEqual(item.barcode, "2000000000061")

    def test_store_rejects_duplicate_barcodes(self):
        add_item(self.db, "Ink", barcode="2000000000009")
        with self.assertRaises(IntegrityError):
            add_item(self.db, "Ink copy", barcode="2000000000009")
        self.db.rollback()

    def test_supplied_barcode_is_kept(self):
        item = create_item_with_barcode(self.db, {"name": "Ink", "barcode": " 8901234567890 "})
        self.assertEqual(item.barcode, "8901234567890")
        self.assertEqual(allocate_barcode(self.db), "2000000000001")

    def test_supplied_duplicate_barcode_is_a_validation_error(self):
        add_item(self.db, "Ink", barcode="8901234567890")
        with self.assertRaises(ValidationError):
            create_item_with_barcode(self.db, {"name": "Ink 2", "barcode": "8901234567890"})
        # the failed insert left the session usable
        item = create_item_with_barcode(self.db, {"name": "Ink 3"})
        self.assertIsNotNone(item.id)

    def test_lost_race_is_reallocated(self):
        add_item(self.db, "Glue", barcode="2000000000001")
        allocator = _FixedSequenceAllocator(["2000000000001", "2000000000002"])

        item = create_item_with_barcode(self.db, {"name": "Tape"}, allocator=allocator)
        self.db.commit()

        self.assertEqual(item.barcode, "2000000000002")
        self.assertEqual(allocator.calls, 2)


if __name__ == "__main__":
    unittest.main()
