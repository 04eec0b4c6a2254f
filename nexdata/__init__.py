"""NexData inventory tracker package."""
from __future__ import annotations

from .analytics import InventoryStats, compute_stats
from .extraction import RecordExtractor
from .query import SortConfig, SortDirection, query_records, toggle_sort
from .records import Category, DataRecord, RecordStore, Status

__all__ = [
    "create_app",
    "Category",
    "DataRecord",
    "InventoryStats",
    "RecordExtractor",
    "RecordStore",
    "SortConfig",
    "SortDirection",
    "Status",
    "compute_stats",
    "query_records",
    "toggle_sort",
]


def create_app(*args, **kwargs):
    from .app import create_app as _create_app

    return _create_app(*args, **kwargs)
