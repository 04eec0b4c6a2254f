import json
from pathlib import Path

import pytest

from nexdata.errors import RecordError, StoreCorruptedError
from nexdata.records import (
    SEED_RECORDS,
    Category,
    DataRecord,
    RecordStore,
    Status,
    new_record_id,
)


def _record(name: str, quantity: int = 1, price: float = 1.0, **overrides) -> DataRecord:
    values = dict(
        id=new_record_id(),
        product_name=name,
        category=Category.OTHER,
        quantity=quantity,
        price=price,
        date_added="2024-01-15",
        status=Status.IN_STOCK,
        notes=None,
    )
    values.update(overrides)
    return DataRecord(**values)


def test_load_seeds_missing_file(tmp_path: Path) -> None:
    storage = tmp_path / "records.json"
    store = RecordStore(storage)

    records = store.load()
    assert [record.product_name for record in records] == [
        "Ergonomic Chair",
        "Wireless Mouse",
        "Standing Desk",
        'Monitor 27"',
        "Printer Paper (Box)",
    ]
    assert storage.exists()
    payload = json.loads(storage.read_text(encoding="utf-8"))
    assert payload[0]["productName"] == "Ergonomic Chair"
    assert payload[0]["dateAdded"] == "2023-10-01"
    assert "notes" not in payload[2]


def test_load_reads_existing_file(tmp_path: Path) -> None:
    storage = tmp_path / "records.json"
    storage.write_text(
        json.dumps(
            [
                {
                    "id": "abc",
                    "productName": "Desk Lamp",
                    "category": "Office Supplies",
                    "quantity": 3,
                    "price": 19.5,
                    "dateAdded": "2024-02-01",
                    "status": "Low Stock",
                }
            ]
        ),
        encoding="utf-8",
    )
    store = RecordStore(storage)
    records = store.load()

    assert len(records) == 1
    assert records[0].category is Category.OFFICE
    assert records[0].status is Status.LOW_STOCK
    assert records[0].notes is None


def test_unparseable_file_fails_loudly_and_is_preserved(tmp_path: Path) -> None:
    storage = tmp_path / "records.json"
    storage.write_text("{not json", encoding="utf-8")
    store = RecordStore(storage)

    with pytest.raises(StoreCorruptedError):
        store.load()
    assert storage.read_text(encoding="utf-8") == "{not json"


def test_invalid_enum_in_file_is_rejected(tmp_path: Path) -> None:
    storage = tmp_path / "records.json"
    record = SEED_RECORDS[0].to_dict()
    record["category"] = "Gadgets"
    storage.write_text(json.dumps([record]), encoding="utf-8")

    with pytest.raises(StoreCorruptedError) as excinfo:
        RecordStore(storage).load()
    assert "Gadgets" in str(excinfo.value)


def test_non_finite_price_in_file_is_rejected(tmp_path: Path) -> None:
    storage = tmp_path / "records.json"
    record = SEED_RECORDS[0].to_dict()
    record["price"] = float("inf")
    storage.write_text(json.dumps([record]), encoding="utf-8")
    original = storage.read_text(encoding="utf-8")
    assert "Infinity" in original

    with pytest.raises(StoreCorruptedError):
        RecordStore(storage).load()
    assert storage.read_text(encoding="utf-8") == original


def test_non_list_payload_is_rejected(tmp_path: Path) -> None:
    storage = tmp_path / "records.json"
    storage.write_text(json.dumps({"records": []}), encoding="utf-8")

    with pytest.raises(StoreCorruptedError):
        RecordStore(storage).load()


def test_duplicate_ids_in_file_are_rejected(tmp_path: Path) -> None:
    storage = tmp_path / "records.json"
    record = SEED_RECORDS[0].to_dict()
    storage.write_text(json.dumps([record, record]), encoding="utf-8")

    with pytest.raises(StoreCorruptedError):
        RecordStore(storage).load()


def test_store_requires_load(tmp_path: Path) -> None:
    store = RecordStore(tmp_path / "records.json")
    with pytest.raises(RuntimeError):
        store.list_records()


def test_add_record_prepends_and_persists(store: RecordStore, storage: Path) -> None:
    record = _record("Desk Lamp")
    store.add_record(record)

    assert store.records[0] == record
    assert len(store.records) == len(SEED_RECORDS) + 1

    reloaded = RecordStore(storage)
    assert reloaded.load()[0] == record


def test_add_records_keeps_extraction_order(store: RecordStore) -> None:
    first = _record("First")
    second = _record("Second")
    store.add_records([first, second])

    names = [record.product_name for record in store.records]
    assert names[:2] == ["Second", "First"]


def test_add_duplicate_id_is_rejected(store: RecordStore) -> None:
    with pytest.raises(ValueError):
        store.add_record(_record("Clone", id="1"))
    assert len(store.records) == len(SEED_RECORDS)


def test_delete_removes_exactly_one_record(store: RecordStore, storage: Path) -> None:
    before = [record.id for record in store.records]
    removed = store.delete_record("3")

    assert removed.product_name == "Standing Desk"
    after = [record.id for record in store.records]
    assert after == [record_id for record_id in before if record_id != "3"]
    assert [item["id"] for item in json.loads(storage.read_text(encoding="utf-8"))] == after

    with pytest.raises(KeyError):
        store.get("3")


def test_delete_unknown_record(store: RecordStore) -> None:
    version = store.version
    with pytest.raises(KeyError):
        store.delete_record("missing")
    assert store.version == version


def test_mutations_bump_version(store: RecordStore) -> None:
    version = store.version
    store.add_record(_record("Desk Lamp"))
    assert store.version == version + 1
    store.delete_record("1")
    assert store.version == version + 2


def test_from_dict_validation() -> None:
    valid = SEED_RECORDS[1].to_dict()
    assert DataRecord.from_dict(valid) == SEED_RECORDS[1]

    for key, value in [
        ("quantity", -1),
        ("quantity", 2.5),
        ("quantity", "7"),
        ("price", -0.01),
        ("price", float("inf")),
        ("price", float("nan")),
        ("status", "Backordered"),
        ("dateAdded", "yesterday"),
        ("productName", ""),
    ]:
        broken = dict(valid)
        broken[key] = value
        with pytest.raises(RecordError):
            DataRecord.from_dict(broken)


def test_enum_coercion() -> None:
    assert Category.coerce("Furniture") is Category.FURNITURE
    assert Category.coerce("Snacks") is Category.OTHER
    assert Category.coerce(None) is Category.OTHER
    assert Status.coerce("Discontinued") is Status.DISCONTINUED
    assert Status.coerce("gone") is Status.IN_STOCK
