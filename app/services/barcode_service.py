"""Numeric barcode allocation for new catalog items.

There is no central counter. The allocator scans the stored barcodes for the
current maximum in the reserved range, probes upward past collisions, and
relies on the unique index on ``items.barcode`` to reject the rare duplicate
that slips through under concurrent writers. ``create_item_with_barcode``
retries allocate-and-insert as one unit when that happens.
"""

from __future__ import annotations

import logging
from typing import Callable, Iterable, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import get_settings
from app.core.errors import BarcodeConflictError, ValidationError
from app.core.retry import with_retry
from app.models.item import Item

logger = logging.getLogger(__name__)

# Failures of the scan/probe collaborators that must not block item creation.
_COLLABORATOR_ERRORS = (SQLAlchemyError, OSError, TimeoutError)


class BarcodeAllocator:
    def __init__(
        self,
        prefix: str = "200",
        width: int = 13,
        fallback_base: int = 2_000_000_000_000,
        max_attempts: int = 50,
    ):
        if not prefix.isdigit():
            raise ValueError("barcode prefix must be numeric")
        if len(prefix) > width:
            raise ValueError("barcode prefix is longer than the barcode width")
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.prefix = prefix
        self.width = width
        self.fallback_base = fallback_base
        self.max_attempts = max_attempts

    @classmethod
    def from_settings(cls, settings=None) -> "BarcodeAllocator":
        settings = settings or get_settings()
        return cls(
            prefix=settings.BARCODE_PREFIX,
            width=settings.BARCODE_WIDTH,
            fallback_base=settings.BARCODE_FALLBACK_BASE,
            max_attempts=settings.BARCODE_MAX_ATTEMPTS,
        )

    def format(self, value: int) -> str:
        return str(value).zfill(self.width)

    def in_range(self, barcode: str) -> bool:
        return (
            len(barcode) == self.width
            and barcode.isdigit()
            and barcode.startswith(self.prefix)
        )

    def current_max(self, scan_existing: Callable[[], Iterable[str]]) -> int:
        """Highest stored value in the reserved range, or the fallback base."""
        highest: Optional[int] = None
        try:
            for raw in scan_existing():
                text = str(raw or "").strip()
                if not self.in_range(text):
                    continue
                value = int(text)
                if highest is None or value > highest:
                    highest = value
        except _COLLABORATOR_ERRORS as exc:
            logger.error("Barcode scan failed, using fallback base: %s", exc)
            return self.fallback_base
        if highest is None:
            return self.fallback_base
        return highest

    def _next_candidate(self, value: int) -> tuple[int, str]:
        candidate = self.format(value)
        if not self.in_range(candidate):
            value = self.fallback_base + 1
            candidate = self.format(value)
        return value, candidate

    def allocate(
        self,
        scan_existing: Callable[[], Iterable[str]],
        exists: Callable[[str], bool],
    ) -> str:
        value, candidate = self._next_candidate(self.current_max(scan_existing) + 1)
        for _ in range(self.max_attempts):
            try:
                taken = exists(candidate)
            except _COLLABORATOR_ERRORS as exc:
                logger.error(
                    "Barcode collision check failed for %s, returning it unverified: %s",
                    candidate,
                    exc,
                )
                return candidate
            if not taken:
                return candidate
            value, candidate = self._next_candidate(value + 1)

        logger.warning(
            "No free barcode found after %s probes; returning %s unverified",
            self.max_attempts,
            candidate,
        )
        return candidate


def iter_prefixed_barcodes(db: Session, prefix: str, page_size: Optional[int] = None):
    """Yield every stored barcode starting with ``prefix``, one page at a time."""
    page_size = page_size or get_settings().CATALOG_PAGE_SIZE
    offset = 0
    while True:
        batch = (
            db.execute(
                select(Item.barcode)
                .where(Item.barcode.is_not(None), Item.barcode.like(f"{prefix}%"))
                .order_by(Item.id)
                .limit(page_size)
                .offset(offset)
            )
            .scalars()
            .all()
        )
        if not batch:
            return
        yield from batch
        if len(batch) < page_size:
            return
        offset += page_size


def barcode_exists(db: Session, barcode: str) -> bool:
    return (
        db.execute(select(Item.id).where(Item.barcode == barcode).limit(1)).first()
        is not None
    )


def allocate_barcode(db: Session, allocator: Optional[BarcodeAllocator] = None) -> str:
    allocator = allocator or BarcodeAllocator.from_settings()
    return allocator.allocate(
        lambda: iter_prefixed_barcodes(db, allocator.prefix),
        lambda candidate: barcode_exists(db, candidate),
    )


def _insert_item(db: Session, values: dict) -> Item:
    item = Item(**values)
    try:
        with db.begin_nested():
            db.add(item)
            db.flush()
    except IntegrityError as exc:
        raise BarcodeConflictError(values.get("barcode") or "") from exc
    return item


def create_item_with_barcode(
    db: Session,
    values: dict,
    *,
    allocator: Optional[BarcodeAllocator] = None,
    attempts: Optional[int] = None,
) -> Item:
    """Insert a catalog row, allocating a barcode when none was supplied.

    A supplied barcode that is already taken is a validation error; an
    allocated one that loses a race is re-allocated and the insert retried.
    """
    values = dict(values)
    supplied = str(values.get("barcode") or "").strip()
    if supplied:
        values["barcode"] = supplied
        try:
            return _insert_item(db, values)
        except BarcodeConflictError as exc:
            raise ValidationError(f"barcode {supplied} is already assigned") from exc

    allocator = allocator or BarcodeAllocator.from_settings()
    attempts = attempts or get_settings().BARCODE_WRITE_ATTEMPTS

    def allocate_and_insert() -> Item:
        values["barcode"] = allocate_barcode(db, allocator)
        return _insert_item(db, values)

    item = with_retry(
        attempts,
        allocate_and_insert,
        retry_on=(BarcodeConflictError,),
        description="barcode allocation",
    )
    logger.info(
        "Created item %s with barcode %s",
        item.name,
        item.barcode,
        extra={"item_id": item.id},
    )
    return item


def assign_barcode(
    db: Session,
    item: Item,
    *,
    allocator: Optional[BarcodeAllocator] = None,
    attempts: Optional[int] = None,
) -> str:
    """Give an existing item a fresh barcode, re-allocating if another writer wins."""
    allocator = allocator or BarcodeAllocator.from_settings()
    attempts = attempts or get_settings().BARCODE_WRITE_ATTEMPTS

    def allocate_and_save() -> str:
        barcode = allocate_barcode(db, allocator)
        try:
            with db.begin_nested():
                item.barcode = barcode
                db.flush()
        except IntegrityError as exc:
            raise BarcodeConflictError(barcode) from exc
        return barcode

    return with_retry(
        attempts,
        allocate_and_save,
        retry_on=(BarcodeConflictError,),
        description="barcode assignment",
    )


__all__ = [
    "BarcodeAllocator",
    "allocate_barcode",
    "assign_barcode",
    "barcode_exists",
    "create_item_with_barcode",
    "iter_prefixed_barcodes",
]
