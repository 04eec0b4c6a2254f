"""Turn free-form text into inventory records with an LLM extraction call.

The model is asked for a constrained JSON document (``RECORD_SCHEMA``); the
response is parsed here and every extracted item is completed locally into a
well-formed :class:`~nexdata.records.DataRecord`. Status inference from the
quantity is left to the model and is not recomputed.
"""
from __future__ import annotations

from datetime import date
from threading import Lock
from typing import Any, Dict, List, Mapping, Optional
import json
import logging
import math

from openai import OpenAI, OpenAIError

from .errors import ExtractionBusyError, ExtractionError
from .records import Category, DataRecord, Status, new_record_id, today

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gpt-4o-mini"
UNKNOWN_PRODUCT = "Unknown Product"
IMPORT_NOTE = "Imported via AI"


def _nullable(schema: Dict[str, Any]) -> Dict[str, Any]:
    return {"anyOf": [schema, {"type": "null"}]}


RECORD_ITEM_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "productName": {"type": "string"},
        "category": {"type": "string", "enum": [category.value for category in Category]},
        "quantity": {"type": "number"},
        "price": {"type": "number"},
        "status": _nullable({"type": "string", "enum": [status.value for status in Status]}),
        "notes": _nullable({"type": "string"}),
        "dateAdded": _nullable(
            {"type": "string", "description": "ISO 8601 date string (YYYY-MM-DD)"}
        ),
    },
    # Strict structured output needs every key listed; optional ones are nullable.
    "required": ["productName", "category", "quantity", "price", "status", "notes", "dateAdded"],
    "additionalProperties": False,
}

RECORD_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {"records": {"type": "array", "items": RECORD_ITEM_SCHEMA}},
    "required": ["records"],
    "additionalProperties": False,
}

SYSTEM_PROMPT = "You extract product inventory data from text and respond with strict JSON only."


def build_prompt(text: str) -> str:
    return (
        "Extract product inventory data from the following text.\n"
        "If a category is not clear, map it to 'Other'.\n"
        "If status is not mentioned, infer it from quantity "
        "(0 = Out of Stock, < 10 = Low Stock, else In Stock).\n"
        "Use null for notes or dateAdded when the text does not mention them.\n"
        "Return every product as an entry of the records array.\n"
        "\n"
        f'Text to parse: "{text}"'
    )


def parse_payload(content: Optional[str]) -> List[Dict[str, Any]]:
    """Decode the raw model output into a list of partial record mappings.

    Empty output means nothing was found. Output that is not JSON, or JSON of
    an unexpected shape, raises :class:`ExtractionError`.
    """

    if content is None or not content.strip():
        return []
    try:
        payload = json.loads(content)
    except json.JSONDecodeError as exc:
        raise ExtractionError(f"Extraction service returned invalid JSON: {exc}") from exc
    if isinstance(payload, Mapping):
        payload = payload.get("records")
    if not isinstance(payload, list):
        raise ExtractionError("Extraction service response does not contain a records array")
    items: List[Dict[str, Any]] = []
    for index, item in enumerate(payload):
        if not isinstance(item, Mapping):
            raise ExtractionError(f"Extracted item {index} is not an object")
        items.append({key: value for key, value in item.items() if value is not None})
    return items


def _coerce_amount(value: Any) -> float:
    if isinstance(value, bool) or value is None:
        return 0.0
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return 0.0
    if not isinstance(value, (int, float)) or not math.isfinite(value):
        return 0.0
    return max(0.0, float(value))


def _coerce_date(value: Any) -> str:
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip()).isoformat()
        except ValueError:
            pass
    return today()


def _text_or(value: Any, default: str) -> str:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return default


def complete_record(item: Mapping[str, Any]) -> DataRecord:
    """Fill in defaults for everything the extraction service left out."""

    return DataRecord(
        id=new_record_id(),
        product_name=_text_or(item.get("productName"), UNKNOWN_PRODUCT),
        category=Category.coerce(item.get("category")),
        quantity=int(_coerce_amount(item.get("quantity"))),
        price=_coerce_amount(item.get("price")),
        date_added=_coerce_date(item.get("dateAdded")),
        status=Status.coerce(item.get("status")),
        notes=_text_or(item.get("notes"), IMPORT_NOTE),
    )


class RecordExtractor:
    """Client for the extraction service. Only one request runs at a time."""

    def __init__(self, api_key: str = "", model: str = DEFAULT_MODEL, client: Any = None) -> None:
        self.api_key = (api_key or "").strip()
        self.model = model
        self._client = client
        self._busy = Lock()

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    @property
    def busy(self) -> bool:
        return self._busy.locked()

    def _get_client(self) -> Any:
        if self._client is None:
            self._client = OpenAI(api_key=self.api_key)
        return self._client

    def extract(self, text: str) -> List[Dict[str, Any]]:
        if not self.is_configured:
            logger.error("Extraction service API key is missing")
            return []
        if not text or not text.strip():
            return []
        if not self._busy.acquire(blocking=False):
            raise ExtractionBusyError("An extraction is already in progress")
        try:
            content = self._request(text)
        finally:
            self._busy.release()
        items = parse_payload(content)
        logger.info("Extraction service returned %d item(s)", len(items))
        return items

    def extract_records(self, text: str) -> List[DataRecord]:
        return [complete_record(item) for item in self.extract(text)]

    def _request(self, text: str) -> Optional[str]:
        logger.info("Sending %d characters to %s for extraction", len(text), self.model)
        try:
            response = self._get_client().chat.completions.create(
                model=self.model,
                temperature=0,
                response_format={
                    "type": "json_schema",
                    "json_schema": {
                        "name": "inventory_records",
                        "strict": True,
                        "schema": RECORD_SCHEMA,
                    },
                },
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": build_prompt(text)},
                ],
            )
        except OpenAIError as exc:
            logger.error("Extraction service call failed: %s", exc)
            raise ExtractionError(f"Extraction service call failed: {exc}") from exc
        if not response.choices:
            return None
        return response.choices[0].message.content


__all__ = [
    "DEFAULT_MODEL",
    "IMPORT_NOTE",
    "UNKNOWN_PRODUCT",
    "RECORD_SCHEMA",
    "RecordExtractor",
    "build_prompt",
    "complete_record",
    "parse_payload",
]
