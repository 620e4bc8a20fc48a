# src/todo_tree/graph/offline.py

from __future__ import annotations

import copy
import itertools
import logging
import re
from typing import Any
from urllib.parse import unquote

from ..core.errors import GatewayError
from ..core.ports import Entity

logger = logging.getLogger(__name__)

_LISTS = re.compile(r"^/lists/?$")
_TASKS = re.compile(r"^/lists/(?P<list>[^/?]+)/tasks(?:\?\$filter=status (?P<op>eq|ne) 'completed')?$")
_TASK = re.compile(r"^/lists/(?P<list>[^/?]+)/tasks/(?P<task>[^/?]+)$")


def demo_data() -> dict[str, Any]:
    return {
        "lists": [
            {"id": "groceries", "displayName": "Groceries"},
            {"id": "work", "displayName": "Work"},
        ],
        "tasks": {
            "groceries": [
                {"id": "milk", "title": "Milk", "status": "notStarted", "importance": "normal",
                 "body": {"content": "", "contentType": "text"}},
                {"id": "bread", "title": "Bread", "status": "completed", "importance": "high",
                 "body": {"content": "Sourdough if they have it", "contentType": "text"}},
            ],
            "work": [
                {"id": "report", "title": "Quarterly report", "status": "notStarted", "importance": "high",
                 "dueDateTime": {"dateTime": "2026-11-02T00:00:00.0000000", "timeZone": "UTC"},
                 "body": {"content": "Numbers from finance first.", "contentType": "text"}},
            ],
        },
    }


class InMemoryGateway:
    """
    Offline gateway used for demos when TODO_TREE_OFFLINE is set.

    Serves the same paths and filter strings as the real service, so the core
    cannot tell the difference.
    """

    def __init__(self, data: dict[str, Any] | None = None) -> None:
        data = copy.deepcopy(data if data is not None else demo_data())
        self.lists: list[Entity] = list(data.get("lists", []))
        self.tasks: dict[str, list[Entity]] = {k: list(v) for k, v in data.get("tasks", {}).items()}
        self._ids = itertools.count(1)

    def _tasks_of(self, list_id: str) -> list[Entity]:
        if list_id not in self.tasks and not any(lst.get("id") == list_id for lst in self.lists):
            raise GatewayError(f"list not found: {list_id}", path=list_id, status_code=404)
        return self.tasks.setdefault(list_id, [])

    async def fetch_all(self, path: str) -> list[Entity]:
        if _LISTS.match(path):
            return copy.deepcopy(self.lists)

        m = _TASKS.match(path)
        if m:
            tasks = self._tasks_of(unquote(m["list"]))
            op = m["op"]
            if op == "eq":
                tasks = [t for t in tasks if t.get("status") == "completed"]
            elif op == "ne":
                tasks = [t for t in tasks if t.get("status") != "completed"]
            return copy.deepcopy(tasks)

        raise GatewayError(f"unsupported path: {path}", path=path, status_code=400)

    async def patch(self, path: str, fields: dict[str, Any]) -> Entity:
        m = _TASK.match(path)
        if not m:
            raise GatewayError(f"unsupported path: {path}", path=path, status_code=400)

        task_id = unquote(m["task"])
        for task in self._tasks_of(unquote(m["list"])):
            if task.get("id") == task_id:
                task.update(copy.deepcopy(fields))
                return copy.deepcopy(task)
        raise GatewayError(f"task not found: {task_id}", path=path, status_code=404)

    async def post(self, path: str, fields: dict[str, Any]) -> Entity:
        if not _LISTS.match(path):
            raise GatewayError(f"unsupported path: {path}", path=path, status_code=400)

        entity = {"id": f"list-{next(self._ids)}", **copy.deepcopy(fields)}
        self.lists.append(entity)
        self.tasks[entity["id"]] = []
        return copy.deepcopy(entity)


class OfflineClientFactory:
    def __init__(self, gateway: InMemoryGateway | None = None) -> None:
        self.gateway = gateway or InMemoryGateway()

    async def get_client(self) -> InMemoryGateway:
        return self.gateway

    async def aclose(self) -> None:
        return None
