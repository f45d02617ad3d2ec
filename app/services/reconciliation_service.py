"""Identity reconciliation of bulk-import rows against the item catalog.

Each row resolves to exactly one of four outcomes:

``Matched``    one catalog item, or every member of a group of true duplicates
``NotFound``   no name candidates at either key tier; becomes an insert
``Ambiguous``  several non-duplicate candidates survive narrowing
``Rejected``   the row has no usable name

``reconcile`` is pure: it takes parsed rows and a catalog snapshot and returns
a ``ReconciliationResult``. Loading the snapshot and applying the result are
done by the callers (see ``ingestion_service``).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional, Sequence, Union

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.config import get_settings
from app.core.name_keys import per_container_key, relaxed_key, strict_key
from app.models.item import Item

logger = logging.getLogger(__name__)

TIER_STRICT = "strict"
TIER_RELAXED = "relaxed"
TIER_CATEGORY = "category"
TIER_PER_CONTAINER = "per_container"
TIER_DUPLICATES = "duplicates"

ISSUE_MISSING_NAME = "missing_name"
ISSUE_AMBIGUOUS = "ambiguous"

# Catalog fields a matched row may overwrite; everything else is left alone.
SYNC_FIELDS = ("item_code", "unit", "description")

_MAX_CONTEXT_CANDIDATES = 10


@dataclass(frozen=True)
class CatalogEntry:
    id: Any
    name: Optional[str]
    category: Optional[str] = None
    per_container_quantity: Optional[Any] = None

    @property
    def signature(self) -> tuple[str, str, str]:
        return (
            strict_key(self.name),
            strict_key(self.category),
            per_container_key(self.per_container_quantity),
        )


@dataclass
class ImportRow:
    row_number: int
    name: Optional[str]
    category: Optional[str] = None
    per_container_quantity: Optional[int] = None
    item_code: Optional[str] = None
    barcode: Optional[str] = None
    unit: Optional[str] = None
    packaging_unit: Optional[str] = None
    description: Optional[str] = None
    hsn_code: Optional[str] = None
    sale_price: Optional[float] = None
    purchase_price: Optional[float] = None
    mrp: Optional[float] = None
    min_stock: Optional[int] = None
    opening_stock: int = 0
    warehouse_id: Optional[int] = None

    def sync_fields(self) -> dict:
        values = {}
        for name in SYNC_FIELDS:
            value = getattr(self, name)
            if isinstance(value, str):
                value = value.strip()
            if value:
                values[name] = value
        return values


@dataclass(frozen=True)
class MatchKeys:
    name_key: str
    category_key: str
    per_container_key: str
    key_type: str = TIER_STRICT

    def as_dict(self) -> dict:
        return {
            "name_key": self.name_key,
            "category_key": self.category_key,
            "per_container_key": self.per_container_key,
            "key_type": self.key_type,
        }


@dataclass(frozen=True)
class Matched:
    item_ids: tuple
    tier: str


@dataclass(frozen=True)
class Ambiguous:
    reason: str
    candidates: tuple
    keys: MatchKeys


@dataclass(frozen=True)
class NotFound:
    keys: MatchKeys


@dataclass(frozen=True)
class Rejected:
    reason: str


MatchResult = Union[Matched, Ambiguous, NotFound, Rejected]


@dataclass(frozen=True)
class RowIssue:
    row_number: int
    kind: str
    message: str
    name: Optional[str] = None
    context: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "row": self.row_number,
            "kind": self.kind,
            "message": self.message,
            "name": self.name,
            "context": self.context,
        }


@dataclass
class ReconciliationResult:
    updates: dict = field(default_factory=dict)
    inserts: list = field(default_factory=list)
    issues: list = field(default_factory=list)
    matches: list = field(default_factory=list)

    @property
    def errors(self) -> list:
        return list(self.issues)

    @property
    def ambiguous(self) -> list:
        return [issue for issue in self.issues if issue.kind == ISSUE_AMBIGUOUS]

    @property
    def rejected(self) -> list:
        return [issue for issue in self.issues if issue.kind != ISSUE_AMBIGUOUS]

    def summary(self) -> dict:
        return {
            "rows": len(self.matches) + len(self.inserts) + len(self.issues),
            "matched_rows": len(self.matches),
            "items_to_update": len(self.updates),
            "inserts": len(self.inserts),
            "ambiguous": len(self.ambiguous),
            "rejected": len(self.rejected),
        }


class CatalogIndex:
    """Strict and relaxed name-key lookups over a catalog snapshot."""

    def __init__(self, entries: Iterable[CatalogEntry]):
        self.by_strict: dict[str, list[CatalogEntry]] = {}
        self.by_relaxed: dict[str, list[CatalogEntry]] = {}
        self.size = 0
        for entry in entries:
            self.size += 1
            name_key = strict_key(entry.name)
            if not name_key:
                continue
            self.by_strict.setdefault(name_key, []).append(entry)
            loose_key = relaxed_key(entry.name)
            if loose_key:
                self.by_relaxed.setdefault(loose_key, []).append(entry)

    def candidates(self, name) -> tuple[list[CatalogEntry], str, str]:
        name_key = strict_key(name)
        found = self.by_strict.get(name_key, [])
        if found:
            return found, name_key, TIER_STRICT
        loose_key = relaxed_key(name)
        if loose_key:
            found = self.by_relaxed.get(loose_key, [])
            if found:
                return found, loose_key, TIER_RELAXED
        return [], name_key, TIER_STRICT


def build_catalog_index(snapshot: Iterable) -> CatalogIndex:
    entries = sorted((_as_catalog_entry(entry) for entry in snapshot), key=lambda entry: entry.id)
    return CatalogIndex(entries)


def _as_catalog_entry(entry) -> CatalogEntry:
    if isinstance(entry, CatalogEntry):
        return entry
    if isinstance(entry, dict):
        return CatalogEntry(
            id=entry["id"],
            name=entry.get("name"),
            category=entry.get("category"),
            per_container_quantity=entry.get("per_container_quantity"),
        )
    return CatalogEntry(
        id=entry.id,
        name=entry.name,
        category=getattr(entry, "category", None),
        per_container_quantity=getattr(entry, "per_container_quantity", None),
    )


def _narrow(candidates: list, key: str, key_of) -> tuple[list, bool]:
    """Filter on ``key``; a filter that empties the set is ignored."""
    if not key:
        return candidates, False
    narrowed = [candidate for candidate in candidates if key_of(candidate) == key]
    if not narrowed:
        return candidates, False
    return narrowed, True


def resolve_row(row: ImportRow, index: CatalogIndex) -> MatchResult:
    if not strict_key(row.name):
        return Rejected("missing name")

    category_key = strict_key(row.category)
    container_key = per_container_key(row.per_container_quantity)
    candidates, name_key, key_type = index.candidates(row.name)
    keys = MatchKeys(name_key, category_key, container_key, key_type)

    if not candidates:
        return NotFound(keys)
    if len(candidates) == 1:
        return Matched((candidates[0].id,), key_type)

    filtered, _ = _narrow(candidates, category_key, lambda c: strict_key(c.category))
    if len(filtered) == 1:
        return Matched((filtered[0].id,), TIER_CATEGORY)

    filtered, _ = _narrow(
        filtered, container_key, lambda c: per_container_key(c.per_container_quantity)
    )
    if len(filtered) == 1:
        return Matched((filtered[0].id,), TIER_PER_CONTAINER)

    if len({candidate.signature for candidate in filtered}) == 1:
        return Matched(tuple(candidate.id for candidate in filtered), TIER_DUPLICATES)

    return Ambiguous(
        reason="ambiguous match ({} candidates, keys: {})".format(len(filtered), key_type),
        candidates=tuple(filtered),
        keys=keys,
    )


def _describe_candidate(candidate: CatalogEntry) -> dict:
    name_key, category_key, container_key = candidate.signature
    return {
        "id": candidate.id,
        "name": candidate.name or "",
        "name_key": name_key,
        "category": candidate.category or "",
        "category_key": category_key,
        "per_container_quantity": candidate.per_container_quantity,
        "per_container_key": container_key,
    }


def reconcile(rows: Sequence[ImportRow], snapshot: Iterable) -> ReconciliationResult:
    index = snapshot if isinstance(snapshot, CatalogIndex) else build_catalog_index(snapshot)
    result = ReconciliationResult()

    for row in rows:
        outcome = resolve_row(row, index)

        if isinstance(outcome, Matched):
            payload = row.sync_fields()
            for item_id in outcome.item_ids:
                result.updates.setdefault(item_id, {}).update(payload)
            result.matches.append((row.row_number, outcome.item_ids, outcome.tier))
            if len(outcome.item_ids) > 1:
                logger.warning(
                    "Row %s (%s) matched %s duplicate catalog items: %s",
                    row.row_number,
                    row.name,
                    len(outcome.item_ids),
                    ", ".join(str(item_id) for item_id in outcome.item_ids),
                )
            else:
                logger.debug(
                    "Row %s (%s) matched item %s via %s key",
                    row.row_number,
                    row.name,
                    outcome.item_ids[0],
                    outcome.tier,
                )
        elif isinstance(outcome, NotFound):
            result.inserts.append(row)
        elif isinstance(outcome, Ambiguous):
            shown = outcome.candidates[:_MAX_CONTEXT_CANDIDATES]
            context = outcome.keys.as_dict()
            context["candidate_count"] = len(outcome.candidates)
            context["candidates"] = [_describe_candidate(candidate) for candidate in shown]
            result.issues.append(
                RowIssue(
                    row_number=row.row_number,
                    kind=ISSUE_AMBIGUOUS,
                    message="row {}: {}".format(row.row_number, outcome.reason),
                    name=row.name,
                    context=context,
                )
            )
            logger.warning("Row %s (%s): %s", row.row_number, row.name, outcome.reason)
        else:
            result.issues.append(
                RowIssue(
                    row_number=row.row_number,
                    kind=ISSUE_MISSING_NAME,
                    message="row {}: {}".format(row.row_number, outcome.reason),
                    name=row.name,
                )
            )

    logger.info(
        "Reconciled %s rows against %s catalog items: %s",
        len(rows),
        index.size,
        result.summary(),
    )
    return result


def load_catalog_snapshot(db: Session, page_size: Optional[int] = None) -> list[CatalogEntry]:
    """Read every catalog item's identity fields, paging through the table."""
    page_size = page_size or get_settings().CATALOG_PAGE_SIZE
    entries: list[CatalogEntry] = []
    offset = 0
    while True:
        batch = db.execute(
            select(Item.id, Item.name, Item.category, Item.per_container_quantity)
            .order_by(Item.id)
            .limit(page_size)
            .offset(offset)
        ).all()
        entries.extend(
            CatalogEntry(
                id=row.id,
                name=row.name,
                category=row.category,
                per_container_quantity=row.per_container_quantity,
            )
            for row in batch
        )
        if len(batch) < page_size:
            break
        offset += page_size
    return entries


__all__ = [
    "Ambiguous",
    "CatalogEntry",
    "CatalogIndex",
    "ImportRow",
    "MatchKeys",
    "MatchResult",
    "Matched",
    "NotFound",
    "ReconciliationResult",
    "Rejected",
    "RowIssue",
    "build_catalog_index",
    "load_catalog_snapshot",
    "reconcile",
    "resolve_row",
]
