"""Inventory record model and the JSON-file backed record store."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from pathlib import Path
from threading import RLock
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple
import json
import math
import logging
import uuid

from .errors import RecordError, StoreCorruptedError

logger = logging.getLogger(__name__)


class Category(str, Enum):
    ELECTRONICS = "Electronics"
    FURNITURE = "Furniture"
    CLOTHING = "Clothing"
    OFFICE = "Office Supplies"
    OTHER = "Other"

    @classmethod
    def coerce(cls, value: Any) -> "Category":
        """Return the matching category, falling back to ``Other``."""

        try:
            return cls(value)
        except ValueError:
            return cls.OTHER


class Status(str, Enum):
    IN_STOCK = "In Stock"
    LOW_STOCK = "Low Stock"
    OUT_OF_STOCK = "Out of Stock"
    DISCONTINUED = "Discontinued"

    @classmethod
    def coerce(cls, value: Any) -> "Status":
        """Return the matching status, falling back to ``In Stock``."""

        try:
            return cls(value)
        except ValueError:
            return cls.IN_STOCK


def new_record_id() -> str:
    return str(uuid.uuid4())


def today() -> str:
    return datetime.now(timezone.utc).date().isoformat()


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _require_text(record: Mapping[str, Any], key: str) -> str:
    value = record.get(key)
    if not isinstance(value, str) or value.strip() == "":
        raise RecordError(f"Field '{key}' must be a non-empty string")
    return value


def _parse_quantity(value: Any) -> int:
    if not _is_number(value) or (isinstance(value, float) and not value.is_integer()):
        raise RecordError(f"Quantity must be a whole number, got {value!r}")
    if value < 0:
        raise RecordError("Quantity cannot be negative")
    return int(value)


def _parse_price(value: Any) -> float:
    if not _is_number(value):
        raise RecordError(f"Price must be a number, got {value!r}")
    if not math.isfinite(value):
        raise RecordError(f"Price must be finite, got {value!r}")
    if value < 0:
        raise RecordError("Price cannot be negative")
    return float(value)


def _parse_date(value: Any) -> str:
    if not isinstance(value, str):
        raise RecordError(f"dateAdded must be an ISO date string, got {value!r}")
    try:
        return date.fromisoformat(value).isoformat()
    except ValueError as exc:
        raise RecordError(f"dateAdded is not an ISO date: {value!r}") from exc


@dataclass(frozen=True)
class DataRecord:
    """A single inventory record. Instances are never mutated in place."""

    id: str
    product_name: str
    category: Category
    quantity: int
    price: float
    date_added: str
    status: Status
    notes: Optional[str] = None

    @property
    def total_value(self) -> float:
        return self.price * self.quantity

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "id": self.id,
            "productName": self.product_name,
            "category": self.category.value,
            "quantity": self.quantity,
            "price": self.price,
            "dateAdded": self.date_added,
            "status": self.status.value,
        }
        if self.notes is not None:
            payload["notes"] = self.notes
        return payload

    @classmethod
    def from_dict(cls, record: Mapping[str, Any]) -> "DataRecord":
        """Build a record from its stored form, rejecting anything malformed."""

        if not isinstance(record, Mapping):
            raise RecordError("Record must be a JSON object")
        try:
            category = Category(record.get("category"))
        except ValueError as exc:
            raise RecordError(f"Unknown category {record.get('category')!r}") from exc
        try:
            status = Status(record.get("status"))
        except ValueError as exc:
            raise RecordError(f"Unknown status {record.get('status')!r}") from exc
        notes = record.get("notes")
        if notes is not None and not isinstance(notes, str):
            raise RecordError("notes must be a string when present")
        return cls(
            id=_require_text(record, "id"),
            product_name=_require_text(record, "productName"),
            category=category,
            quantity=_parse_quantity(record.get("quantity")),
            price=_parse_price(record.get("price")),
            date_added=_parse_date(record.get("dateAdded")),
            status=status,
            notes=notes,
        )


SEED_RECORDS: Tuple[DataRecord, ...] = (
    DataRecord("1", "Ergonomic Chair", Category.FURNITURE, 45, 250.00, "2023-10-01", Status.IN_STOCK, "Black mesh"),
    DataRecord("2", "Wireless Mouse", Category.ELECTRONICS, 8, 29.99, "2023-10-02", Status.LOW_STOCK, "Logitech"),
    DataRecord("3", "Standing Desk", Category.FURNITURE, 12, 450.00, "2023-10-03", Status.IN_STOCK),
    DataRecord("4", 'Monitor 27"', Category.ELECTRONICS, 0, 300.00, "2023-10-05", Status.OUT_OF_STOCK),
    DataRecord("5", "Printer Paper (Box)", Category.OFFICE, 100, 45.00, "2023-10-06", Status.IN_STOCK),
)


@dataclass
class RecordStore:
    """Holds the record collection in memory and mirrors it to a JSON file.

    The collection is kept newest first. ``load`` must be called before the
    store is used; every mutation rewrites the whole file.
    """

    storage_path: Path
    seed: Sequence[DataRecord] = SEED_RECORDS
    _records: Tuple[DataRecord, ...] = field(default=(), init=False)
    _version: int = field(default=0, init=False)
    _loaded: bool = field(default=False, init=False)
    _lock: RLock = field(default_factory=RLock, init=False)

    def __post_init__(self) -> None:
        self.storage_path = Path(self.storage_path)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def load(self) -> Tuple[DataRecord, ...]:
        with self._lock:
            if not self.storage_path.exists():
                records = tuple(self.seed)
                logger.info(
                    "No record file at %s, starting from %d seed records",
                    self.storage_path,
                    len(records),
                )
                self._write_unlocked(records)
            else:
                raw = self.storage_path.read_text(encoding="utf-8")
                records = self._parse_unlocked(raw)
                logger.info("Loaded %d records from %s", len(records), self.storage_path)
            self._records = records
            self._loaded = True
            self._version += 1
            return records

    def save(self) -> None:
        with self._lock:
            self._ensure_loaded()
            self._write_unlocked(self._records)

    @property
    def version(self) -> int:
        return self._version

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    @property
    def records(self) -> Tuple[DataRecord, ...]:
        with self._lock:
            self._ensure_loaded()
            return self._records

    def list_records(self) -> List[DataRecord]:
        return list(self.records)

    def get(self, record_id: str) -> DataRecord:
        for record in self.records:
            if record.id == record_id:
                return record
        raise KeyError(f"Record '{record_id}' not found")

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    def add_record(self, record: DataRecord) -> DataRecord:
        self.add_records([record])
        return record

    def add_records(self, records: Iterable[DataRecord]) -> List[DataRecord]:
        incoming = list(records)
        if not incoming:
            return []
        with self._lock:
            self._ensure_loaded()
            updated = list(self._records)
            existing = {record.id for record in updated}
            for record in incoming:
                if record.id in existing:
                    raise ValueError(f"Record id '{record.id}' already exists")
                existing.add(record.id)
                updated.insert(0, record)
            self._commit_unlocked(updated)
        for record in incoming:
            logger.info("Added record %s (%s)", record.id, record.product_name)
        return incoming

    def delete_record(self, record_id: str) -> DataRecord:
        with self._lock:
            self._ensure_loaded()
            remaining: List[DataRecord] = []
            removed: Optional[DataRecord] = None
            for record in self._records:
                if removed is None and record.id == record_id:
                    removed = record
                    continue
                remaining.append(record)
            if removed is None:
                raise KeyError(f"Record '{record_id}' not found")
            self._commit_unlocked(remaining)
        logger.info("Deleted record %s (%s)", removed.id, removed.product_name)
        return removed

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _ensure_loaded(self) -> None:
        if not self._loaded:
            raise RuntimeError("RecordStore.load() must be called before use")

    def _commit_unlocked(self, records: Sequence[DataRecord]) -> None:
        snapshot = tuple(records)
        self._write_unlocked(snapshot)
        self._records = snapshot
        self._version += 1

    def _parse_unlocked(self, raw: str) -> Tuple[DataRecord, ...]:
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError as exc:
            logger.error("Record file %s is not valid JSON: %s", self.storage_path, exc)
            raise StoreCorruptedError(self.storage_path, f"invalid JSON ({exc})") from exc
        if not isinstance(payload, list):
            raise StoreCorruptedError(self.storage_path, "expected a JSON array of records")
        records: List[DataRecord] = []
        seen: set[str] = set()
        for index, item in enumerate(payload):
            try:
                record = DataRecord.from_dict(item)
            except RecordError as exc:
                logger.error("Record %d in %s is invalid: %s", index, self.storage_path, exc)
                raise StoreCorruptedError(self.storage_path, f"record {index}: {exc}") from exc
            if record.id in seen:
                raise StoreCorruptedError(
                    self.storage_path, f"duplicate record id '{record.id}'"
                )
            seen.add(record.id)
            records.append(record)
        return tuple(records)

    def _write_unlocked(self, records: Sequence[DataRecord]) -> None:
        self.storage_path.parent.mkdir(parents=True, exist_ok=True)
        temp_path = self.storage_path.with_suffix(".tmp")
        payload = [record.to_dict() for record in records]
        temp_path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
        temp_path.replace(self.storage_path)


__all__ = [
    "Category",
    "Status",
    "DataRecord",
    "RecordStore",
    "SEED_RECORDS",
    "new_record_id",
    "today",
]
