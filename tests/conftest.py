from __future__ import annotations

import json
from pathlib import Path
from types import SimpleNamespace
from typing import Any, Dict, List, Optional

import pytest
from flask import Flask

from nexdata import create_app
from nexdata.config import Settings
from nexdata.extraction import RecordExtractor
from nexdata.records import RecordStore


class FakeCompletions:
    def __init__(self, content: Optional[str] = None, error: Optional[Exception] = None) -> None:
        self.content = content
        self.error = error
        self.calls: List[Dict[str, Any]] = []

    def create(self, **kwargs: Any) -> Any:
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


class FakeOpenAI:
    """Stands in for ``openai.OpenAI`` with a canned chat completion."""

    def __init__(self, content: Optional[str] = None, error: Optional[Exception] = None) -> None:
        self.completions = FakeCompletions(content=content, error=error)
        self.chat = SimpleNamespace(completions=self.completions)


def records_payload(*items: Dict[str, Any]) -> str:
    return json.dumps({"records": list(items)})


@pytest.fixture()
def storage(tmp_path: Path) -> Path:
    return tmp_path / "records.json"


@pytest.fixture()
def store(storage: Path) -> RecordStore:
    record_store = RecordStore(storage)
    record_store.load()
    return record_store


@pytest.fixture()
def settings(storage: Path) -> Settings:
    return Settings(
        _env_file=None,
        environment="test",
        storage_path=storage,
        openai_api_key="",
        app_name="Test NexData",
    )


@pytest.fixture()
def make_app(settings: Settings):
    def _make(extractor: Optional[RecordExtractor] = None) -> Flask:
        app = create_app(settings=settings, extractor=extractor)
        app.config.update(TESTING=True)
        return app

    return _make


@pytest.fixture()
def app(make_app) -> Flask:
    return make_app()


@pytest.fixture()
def client(app: Flask):
    return app.test_client()


@pytest.fixture()
def fake_openai():
    return FakeOpenAI


@pytest.fixture()
def payload():
    return records_payload
