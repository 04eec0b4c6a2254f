"""Flask application serving the NexData dashboard, data entry and record list."""
from __future__ import annotations

from datetime import datetime
from io import BytesIO
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from flask import (
    Flask,
    Response,
    flash,
    jsonify,
    redirect,
    render_template,
    request,
    url_for,
)
from pydantic import ValidationError
import xlwt

from .analytics import LOW_STOCK_THRESHOLD, StatsCache
from .config import Settings, get_settings
from .errors import ExtractionBusyError, ExtractionError
from .extraction import RecordExtractor
from .query import TABLE_COLUMNS, SortConfig, query_records, toggle_sort
from .records import Category, DataRecord, RecordStore, Status
from .schemas import HealthStatus, RecordCreate


VIEW_TEXT: Dict[str, Tuple[str, str]] = {
    "dashboard": ("Dashboard Overview", "Real-time insights into your inventory and assets."),
    "entry": ("Data Entry", "Add new items manually or use AI to parse text."),
    "list": ("Inventory Records", "Manage, filter, and sort your complete dataset."),
}

ENDPOINT_VIEWS = {
    "dashboard": "dashboard",
    "entry": "entry",
    "entry_manual": "entry",
    "entry_ai": "entry",
    "records": "list",
}

STATUS_BADGES = {
    Status.IN_STOCK: "badge-success",
    Status.LOW_STOCK: "badge-warning",
    Status.OUT_OF_STOCK: "badge-danger",
}

AI_SERVICE_ERROR = "AI Service Error. Check API Key."
AI_BUSY_MESSAGE = "An extraction is already in progress."
AI_EMPTY_MESSAGE = "Could not extract data. Try being more specific."

EXPORT_COLUMNS = ["Product Name", "Category", "Quantity", "Price", "Status", "Date Added", "Notes"]
# xlwt writes the legacy .xls format, which caps a sheet at 65536 rows.
XLS_MAX_ROWS = 65536


def create_app(
    storage_path: str | Path | None = None,
    *,
    settings: Optional[Settings] = None,
    extractor: Optional[RecordExtractor] = None,
) -> Flask:
    settings = settings or get_settings()
    storage_path = Path(storage_path) if storage_path is not None else settings.storage_path
    app = Flask(__name__)
    app.config["SECRET_KEY"] = settings.secret_key

    store = RecordStore(storage_path)
    # Raises StoreCorruptedError instead of silently replacing unreadable data.
    store.load()
    stats_cache = StatsCache(store)
    if extractor is None:
        extractor = RecordExtractor(api_key=settings.openai_api_key, model=settings.openai_model)
    app.extensions["nexdata"] = {"store": store, "extractor": extractor}

    def _money(value: float) -> str:
        return f"${value:,.2f}"

    app.jinja_env.filters["money"] = _money

    def _query_from_args() -> Tuple[str, Optional[SortConfig]]:
        search = request.args.get("q") or ""
        sort = SortConfig.from_params(request.args.get("sort"), request.args.get("direction"))
        return search, sort

    def _render_entry(mode: str, *, form: Optional[Dict[str, Any]] = None, ai_input: str = "") -> str:
        return render_template(
            "entry.html",
            mode=mode,
            form=form or {},
            ai_input=ai_input,
            ai_configured=extractor.is_configured,
            categories=list(Category),
            statuses=list(Status),
        )

    @app.context_processor
    def inject_globals() -> Dict[str, Any]:
        return {
            "app_name": settings.app_name,
            "current_year": datetime.now().year,
            "view_text": VIEW_TEXT,
            "active_view": ENDPOINT_VIEWS.get(request.endpoint or ""),
        }

    @app.get("/health")
    def health() -> Any:
        return jsonify(HealthStatus(environment=settings.environment).model_dump())

    # ------------------------------------------------------------------
    # Screens
    # ------------------------------------------------------------------
    @app.get("/")
    def dashboard() -> str:
        stats = stats_cache.get()
        return render_template(
            "dashboard.html",
            stats=stats,
            low_stock_threshold=LOW_STOCK_THRESHOLD,
            max_quantity=max(stats.quantity_by_category.values(), default=0),
            max_value=max(stats.value_by_category.values(), default=0),
        )

    @app.get("/entry")
    def entry() -> str:
        mode = "ai" if request.args.get("mode") == "ai" else "manual"
        return _render_entry(mode)

    @app.post("/entry")
    def entry_manual() -> Any:
        form = request.form.to_dict()
        try:
            payload = RecordCreate.model_validate(form)
        except ValidationError as exc:
            for message in _validation_messages(exc):
                flash(message, "error")
            return _render_entry("manual", form=form), 400
        store.add_record(payload.to_record())
        flash("Record added successfully", "success")
        return redirect(url_for("entry"))

    @app.post("/entry/ai")
    def entry_ai() -> Any:
        text = request.form.get("text") or ""
        if not text.strip():
            return redirect(url_for("entry", mode="ai"))
        try:
            records = extractor.extract_records(text)
        except ExtractionBusyError:
            flash(AI_BUSY_MESSAGE, "error")
            return _render_entry("ai", ai_input=text), 409
        except ExtractionError:
            flash(AI_SERVICE_ERROR, "error")
            return _render_entry("ai", ai_input=text), 502
        if not extractor.is_configured:
            flash(AI_SERVICE_ERROR, "error")
            return _render_entry("ai", ai_input=text), 503
        if not records:
            flash(AI_EMPTY_MESSAGE, "error")
            return _render_entry("ai", ai_input=text)
        store.add_records(records)
        flash(f"{len(records)} record(s) processed by AI!", "success")
        return redirect(url_for("entry", mode="ai"))

    @app.get("/records")
    def records() -> str:
        search, sort = _query_from_args()
        result = query_records(store.records, search, sort)
        columns = []
        for label, key in TABLE_COLUMNS:
            link = None
            if key is not None:
                toggled = toggle_sort(sort, key)
                link = url_for(
                    "records", q=search or None, sort=toggled.key, direction=toggled.direction.value
                )
            columns.append({"label": label, "key": key, "link": link})
        export_url = url_for(
            "export_records",
            q=search or None,
            sort=sort.key if sort else None,
            direction=sort.direction.value if sort else None,
        )
        return render_template(
            "records.html",
            records=result.records,
            count=result.count,
            search=search,
            sort=sort,
            columns=columns,
            status_badges=STATUS_BADGES,
            export_url=export_url,
        )

    @app.post("/records/<string:record_id>/delete")
    def delete_record(record_id: str) -> Any:
        try:
            removed = store.delete_record(record_id)
        except KeyError:
            flash("Record not found", "error")
        else:
            flash(f"Deleted {removed.product_name}", "success")
        next_target = request.form.get("next")
        if not next_target or not next_target.startswith("/") or next_target.startswith("//"):
            next_target = url_for("records")
        return redirect(next_target)

    @app.get("/records/export")
    def export_records() -> Response:
        search, sort = _query_from_args()
        result = query_records(store.records, search, sort)
        if result.count >= XLS_MAX_ROWS:
            flash(f"Too many records to export (limit {XLS_MAX_ROWS - 1}). Narrow the search first.", "error")
            return redirect(url_for("records", q=search or None))
        content = _rows_to_xls(EXPORT_COLUMNS, (_export_row(record) for record in result.records))
        return _xls_response(content, _timestamped_filename("inventory_records"))

    # ------------------------------------------------------------------
    # JSON API
    # ------------------------------------------------------------------
    @app.get("/api/records")
    def api_list_records() -> Any:
        search, sort = _query_from_args()
        result = query_records(store.records, search, sort)
        return jsonify(
            {"records": [record.to_dict() for record in result.records], "count": result.count}
        )

    @app.post("/api/records")
    def api_create_record() -> Any:
        try:
            payload = RecordCreate.model_validate(_get_payload(request))
        except ValidationError as exc:
            return {"error": "Invalid record", "details": _validation_messages(exc)}, 400
        record = store.add_record(payload.to_record())
        return jsonify(record.to_dict()), 201

    @app.get("/api/records/<string:record_id>")
    def api_get_record(record_id: str) -> Any:
        try:
            record = store.get(record_id)
        except KeyError as exc:
            return {"error": str(exc.args[0])}, 404
        return jsonify(record.to_dict())

    @app.delete("/api/records/<string:record_id>")
    def api_delete_record(record_id: str) -> Any:
        try:
            store.delete_record(record_id)
        except KeyError as exc:
            return {"error": str(exc.args[0])}, 404
        return "", 204

    @app.get("/api/stats")
    def api_stats() -> Any:
        return jsonify(stats_cache.get().to_dict())

    @app.post("/api/extract")
    def api_extract() -> Any:
        payload = _get_payload(request)
        text = payload.get("text")
        if not isinstance(text, str) or not text.strip():
            return {"error": "Missing text"}, 400
        try:
            extracted = extractor.extract_records(text)
        except ExtractionBusyError as exc:
            return {"error": str(exc)}, 409
        except ExtractionError as exc:
            return {"error": str(exc)}, 502
        if not extractor.is_configured:
            return {"error": "AI service is not configured"}, 503
        store.add_records(extracted)
        status = 201 if extracted else 200
        return (
            jsonify({"records": [record.to_dict() for record in extracted], "count": len(extracted)}),
            status,
        )

    return app


def _get_payload(req: Any) -> Dict[str, Any]:
    if req.is_json:
        payload = req.get_json(silent=True)
        return payload if isinstance(payload, dict) else {}
    if req.form:
        return req.form.to_dict()
    return {}


def _validation_messages(exc: ValidationError) -> List[str]:
    messages = []
    for error in exc.errors():
        message = str(error.get("msg", "Invalid value"))
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        else:
            field = ".".join(str(part) for part in error.get("loc", ()))
            message = f"{field}: {message}" if field else message
        messages.append(message)
    return messages


def _export_row(record: DataRecord) -> Dict[str, Any]:
    return {
        "Product Name": record.product_name,
        "Category": record.category.value,
        "Quantity": record.quantity,
        "Price": record.price,
        "Status": record.status.value,
        "Date Added": record.date_added,
        "Notes": record.notes or "",
    }


def _rows_to_xls(
    fieldnames: Sequence[str],
    rows: Iterable[Dict[str, Any]],
) -> bytes:
    workbook = xlwt.Workbook()
    sheet = workbook.add_sheet("Records")
    for col_index, field in enumerate(fieldnames):
        sheet.write(0, col_index, field)
    for row_index, row in enumerate(rows, start=1):
        for col_index, field in enumerate(fieldnames):
            value = row.get(field, "")
            sheet.write(row_index, col_index, "" if value is None else value)
    buffer = BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


def _xls_response(content: bytes, filename: str) -> Response:
    response = Response(content, mimetype="application/vnd.ms-excel")
    response.headers["Content-Disposition"] = f"attachment; filename={filename}.xls"
    return response


def _timestamped_filename(prefix: str) -> str:
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    return f"{prefix}_{timestamp}"


__all__ = ["create_app"]
