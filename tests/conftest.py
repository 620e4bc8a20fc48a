# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace
from typing import Any

import pytest

from todo_tree.core.provider import TodoTreeProvider

from .fakes import FakeClientFactory, FakeGateway, RecordingListener


def groceries_data() -> dict[str, Any]:
    """List "Groceries" (L1) with T1 (notStarted, normal) and T2 (completed, high)."""
    return {
        "lists": [{"id": "L1", "displayName": "Groceries"}],
        "tasks": {
            "L1": [
                {"id": "T1", "title": "Milk", "status": "notStarted", "importance": "normal"},
                {
                    "id": "T2",
                    "title": "Bread",
                    "status": "completed",
                    "importance": "high",
                    "body": {"content": "Sourdough", "contentType": "text"},
                },
            ]
        },
    }


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with the Graph client factory and bootstrap.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated from the environment.
    """
    return SimpleNamespace(
        app_name="todo-tree-test",
        log_level="DEBUG",
        data_dir=tmp_path / "data",
        graph_base_url="https://graph.test/v1.0/me/todo",
        access_token="test-token",
        is_authenticated=True,
        connect_timeout=1.0,
        read_timeout=1.0,
        offline=False,
    )


@pytest.fixture()
def gateway() -> FakeGateway:
    return FakeGateway(groceries_data())


@pytest.fixture()
def factory(gateway: FakeGateway) -> FakeClientFactory:
    return FakeClientFactory(gateway)


@pytest.fixture()
def provider(factory: FakeClientFactory) -> TodoTreeProvider:
    p = TodoTreeProvider(factory)
    yield p
    p.dispose()


@pytest.fixture()
def listener(provider: TodoTreeProvider) -> RecordingListener:
    rec = RecordingListener()
    provider.subscribe(rec)
    return rec
