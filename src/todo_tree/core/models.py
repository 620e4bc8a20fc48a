# src/todo_tree/core/models.py

from __future__ import annotations

"""
Immutable snapshots of remote entities.

The remote service is the only source of truth: a snapshot is whatever the last
fetch returned and is never mutated locally. Optional fields that are missing or
malformed parse to None instead of raising.
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

_FRACTION = re.compile(r"^(?P<head>[^.]+)\.(?P<frac>\d+)(?P<offset>[+-]\d{2}:?\d{2})?$")


class TaskStatus(StrEnum):
    NOT_STARTED = "notStarted"
    IN_PROGRESS = "inProgress"
    COMPLETED = "completed"
    WAITING_ON_OTHERS = "waitingOnOthers"
    DEFERRED = "deferred"

    @classmethod
    def from_api(cls, raw: Any) -> TaskStatus:
        if not raw:
            return cls.NOT_STARTED
        try:
            return cls(str(raw))
        except ValueError:
            return cls.NOT_STARTED


class Importance(StrEnum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"

    @classmethod
    def from_api(cls, raw: Any) -> Importance:
        if not raw:
            return cls.NORMAL
        try:
            return cls(str(raw))
        except ValueError:
            return cls.NORMAL


def parse_datetime(raw: Any) -> datetime | None:
    """
    Parse a Graph dateTimeTimeZone object ({"dateTime": "...", "timeZone": "..."}).

    Graph emits seven fractional digits ("2024-05-01T00:00:00.0000000"), which
    fromisoformat() rejects, so the fraction is fitted to six digits first.
    A trailing UTC offset is kept.
    """
    if isinstance(raw, dict):
        raw = raw.get("dateTime")
    if not isinstance(raw, str) or not raw.strip():
        return None

    text = raw.strip()
    if text.endswith("Z"):
        text = text[:-1]
    m = _FRACTION.match(text)
    if m:
        text = f"{m['head']}.{m['frac'][:6].ljust(6, '0')}{m['offset'] or ''}"

    try:
        return datetime.fromisoformat(text)
    except ValueError:
        logger.debug("Ignoring malformed dateTime value: %r", raw)
        return None


def _text(raw: Any) -> str | None:
    if raw is None:
        return None
    s = str(raw)
    return s if s.strip() else None


@dataclass(frozen=True, slots=True)
class TaskList:
    id: str
    display_name: str
    raw: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> TaskList:
        list_id = data.get("id")
        if not list_id:
            raise ValueError("task list without id")
        return cls(
            id=str(list_id),
            display_name=str(data.get("displayName") or ""),
            raw=dict(data),
        )


@dataclass(frozen=True, slots=True)
class TodoTask:
    id: str
    title: str
    status: TaskStatus
    importance: Importance
    due: datetime | None = None
    body: str | None = None
    reminder: datetime | None = None
    raw: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @property
    def is_completed(self) -> bool:
        return self.status == TaskStatus.COMPLETED

    @property
    def is_starred(self) -> bool:
        return self.importance == Importance.HIGH

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> TodoTask:
        task_id = data.get("id")
        if not task_id:
            raise ValueError("task without id")

        body = data.get("body")
        content = body.get("content") if isinstance(body, dict) else None

        reminder = data.get("reminderDateTime") if data.get("isReminderOn", True) else None

        return cls(
            id=str(task_id),
            title=str(data.get("title") or ""),
            status=TaskStatus.from_api(data.get("status")),
            importance=Importance.from_api(data.get("importance")),
            due=parse_datetime(data.get("dueDateTime")),
            body=_text(content),
            reminder=parse_datetime(reminder),
            raw=dict(data),
        )


_E = TypeVar("_E", TaskList, TodoTask)


def parse_many(kind: type[_E], items: list[dict[str, Any]]) -> list[_E]:
    """Parse a page of raw entities, skipping (and logging) malformed ones."""
    out: list[_E] = []
    for item in items:
        if not isinstance(item, dict):
            logger.warning("Skipping non-object %s entity: %r", kind.__name__, item)
            continue
        try:
            out.append(kind.from_api(item))
        except ValueError as e:
            logger.warning("Skipping malformed %s entity: %s", kind.__name__, e)
    return out
