"""Dashboard metrics derived from the record collection."""
from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from threading import Lock
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .records import DataRecord, RecordStore

LOW_STOCK_THRESHOLD = 10


@dataclass(frozen=True)
class InventoryStats:
    total_value: float
    total_items: int
    low_stock_count: int
    unique_categories: int
    record_count: int
    quantity_by_category: Dict[str, int] = field(default_factory=dict)
    value_by_category: Dict[str, float] = field(default_factory=dict)

    def quantity_chart(self) -> List[Dict[str, Any]]:
        return [{"name": name, "value": value} for name, value in self.quantity_by_category.items()]

    def value_chart(self) -> List[Dict[str, Any]]:
        return [{"name": name, "value": value} for name, value in self.value_by_category.items()]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalValue": self.total_value,
            "totalItems": self.total_items,
            "lowStockCount": self.low_stock_count,
            "uniqueCategories": self.unique_categories,
            "recordCount": self.record_count,
            "quantityByCategory": self.quantity_chart(),
            "valueByCategory": self.value_chart(),
        }


def is_low_stock(record: DataRecord) -> bool:
    # Independent of the stored status label.
    return record.quantity < LOW_STOCK_THRESHOLD


def compute_stats(records: Iterable[DataRecord]) -> InventoryStats:
    total_value = 0.0
    total_items = 0
    low_stock_count = 0
    record_count = 0
    quantity_by_category: Dict[str, int] = defaultdict(int)
    value_by_category: Dict[str, float] = defaultdict(float)

    for record in records:
        label = record.category.value
        value = record.price * record.quantity
        record_count += 1
        total_value += value
        total_items += record.quantity
        if is_low_stock(record):
            low_stock_count += 1
        quantity_by_category[label] += record.quantity
        value_by_category[label] += value

    return InventoryStats(
        total_value=total_value,
        total_items=total_items,
        low_stock_count=low_stock_count,
        unique_categories=len(quantity_by_category),
        record_count=record_count,
        quantity_by_category=dict(quantity_by_category),
        value_by_category=dict(value_by_category),
    )


class StatsCache:
    """Recomputes :class:`InventoryStats` only when the store version changes."""

    def __init__(self, store: RecordStore) -> None:
        self._store = store
        self._lock = Lock()
        self._cached: Optional[Tuple[int, InventoryStats]] = None

    def get(self) -> InventoryStats:
        with self._lock:
            version = self._store.version
            if self._cached is None or self._cached[0] != version:
                self._cached = (version, compute_stats(self._store.records))
            return self._cached[1]


__all__ = [
    "LOW_STOCK_THRESHOLD",
    "InventoryStats",
    "StatsCache",
    "compute_stats",
    "is_low_stock",
]
