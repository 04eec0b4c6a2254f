"""Search and sort helpers backing the records list."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from functools import cmp_to_key
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

from .records import DataRecord


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


def _enum_value(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


_FIELD_GETTERS: Dict[str, Callable[[DataRecord], Any]] = {
    "id": lambda record: record.id,
    "productName": lambda record: record.product_name,
    "category": lambda record: _enum_value(record.category),
    "quantity": lambda record: record.quantity,
    "price": lambda record: record.price,
    "status": lambda record: _enum_value(record.status),
    "dateAdded": lambda record: record.date_added,
    "notes": lambda record: record.notes,
}

# Column order of the records table; ``None`` marks the non-sortable action column.
TABLE_COLUMNS = (
    ("Product Name", "productName"),
    ("Category", "category"),
    ("Qty", "quantity"),
    ("Price", "price"),
    ("Status", "status"),
    ("Date", "dateAdded"),
    ("Action", None),
)

SORTABLE_FIELDS = tuple(_FIELD_GETTERS)


@dataclass(frozen=True)
class SortConfig:
    key: str
    direction: SortDirection = SortDirection.ASC

    def __post_init__(self) -> None:
        if self.key not in _FIELD_GETTERS:
            raise ValueError(f"Cannot sort by unknown field '{self.key}'")
        object.__setattr__(self, "direction", SortDirection(self.direction))

    @classmethod
    def from_params(cls, key: Optional[str], direction: Optional[str]) -> Optional["SortConfig"]:
        """Build a config from query parameters, ignoring unknown values."""

        if not key or key not in _FIELD_GETTERS:
            return None
        try:
            resolved = SortDirection((direction or "asc").lower())
        except ValueError:
            resolved = SortDirection.ASC
        return cls(key, resolved)


@dataclass(frozen=True)
class QueryResult:
    records: List[DataRecord]
    count: int


def toggle_sort(current: Optional[SortConfig], key: str) -> SortConfig:
    if current is not None and current.key == key and current.direction is SortDirection.ASC:
        return SortConfig(key, SortDirection.DESC)
    return SortConfig(key, SortDirection.ASC)


def matches(record: DataRecord, search: str) -> bool:
    term = search.lower()
    if not term:
        return True
    if term in record.product_name.lower():
        return True
    if term in record.category.value.lower():
        return True
    return record.notes is not None and term in record.notes.lower()


def filter_records(records: Iterable[DataRecord], search: str = "") -> List[DataRecord]:
    return [record for record in records if matches(record, search or "")]


def _compare(a: Any, b: Any) -> int:
    if a is None or b is None:
        return 0
    if a < b:
        return -1
    if a > b:
        return 1
    return 0


def sort_records(records: Sequence[DataRecord], config: Optional[SortConfig]) -> List[DataRecord]:
    if config is None:
        return list(records)
    getter = _FIELD_GETTERS[config.key]
    sign = 1 if config.direction is SortDirection.ASC else -1

    def comparator(left: DataRecord, right: DataRecord) -> int:
        return sign * _compare(getter(left), getter(right))

    # sorted() is stable, so equal keys keep their original order in both directions.
    return sorted(records, key=cmp_to_key(comparator))


def query_records(
    records: Iterable[DataRecord],
    search: str = "",
    sort: Optional[SortConfig] = None,
) -> QueryResult:
    filtered = filter_records(records, search)
    ordered = sort_records(filtered, sort)
    return QueryResult(records=ordered, count=len(ordered))


__all__ = [
    "SortDirection",
    "SortConfig",
    "QueryResult",
    "SORTABLE_FIELDS",
    "TABLE_COLUMNS",
    "toggle_sort",
    "matches",
    "filter_records",
    "sort_records",
    "query_records",
]
