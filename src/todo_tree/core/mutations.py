# src/todo_tree/core/mutations.py

from __future__ import annotations

"""
Mutation coordinator.

Turns node-level commands into partial updates against the service, then tells
the host which subtree went stale. Nothing is applied locally: the next
expansion re-fetches, so a failed update simply leaves the old value on screen.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any, Iterable

from .channel import InvalidationChannel
from .errors import GatewayUnavailableError
from .models import Importance, TaskList, TaskStatus, TodoTask
from .nodes import LISTS_PATH, TaskNode, list_node_for, node_key, task_path
from .ports import ClientFactory, Entity, TaskGateway

logger = logging.getLogger(__name__)

_DATE_FORMATS = ("%Y-%m-%d", "%m/%d/%Y")


class MutationKind(StrEnum):
    TOGGLE_COMPLETION = "toggle_completion"
    TOGGLE_IMPORTANCE = "toggle_importance"


def toggled_fields(kind: MutationKind, task: TodoTask) -> dict[str, Any]:
    """Partial record that negates the task's current value."""
    if kind == MutationKind.TOGGLE_COMPLETION:
        status = TaskStatus.NOT_STARTED if task.is_completed else TaskStatus.COMPLETED
        return {"status": status.value}
    if kind == MutationKind.TOGGLE_IMPORTANCE:
        importance = Importance.NORMAL if task.is_starred else Importance.HIGH
        return {"importance": importance.value}
    raise ValueError(f"Unknown mutation kind: {kind!r}")


@dataclass(slots=True, frozen=True)
class MutationOutcome:
    node: TaskNode
    fields: dict[str, Any]
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(slots=True)
class MutationReport:
    kind: MutationKind
    succeeded: list[MutationOutcome] = field(default_factory=list)
    failed: list[MutationOutcome] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed

    def summary(self) -> str:
        return f"{self.kind}: {len(self.succeeded)} ok, {len(self.failed)} failed"


def parse_due_date(raw: str | None) -> datetime | None:
    """Date typed into the details panel (YYYY-MM-DD or M/D/YYYY); None if blank/unparseable."""
    text = (raw or "").strip()
    if not text:
        return None
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    logger.warning("Ignoring unparseable due date: %r", raw)
    return None


@dataclass(slots=True, frozen=True)
class TaskUpdate:
    """A field edit committed from the details panel."""

    list_id: str
    task_id: str
    title: str | None = None
    note: str | None = None
    due_date: str | None = None

    def to_fields(self) -> dict[str, Any]:
        fields: dict[str, Any] = {}
        if self.title is not None:
            fields["title"] = self.title
        if self.note is not None:
            fields["body"] = {"content": self.note, "contentType": "text"}

        # Blank means "not touched": the panel does not prefill the date input.
        due = parse_due_date(self.due_date)
        if due is not None:
            fields["dueDateTime"] = {"dateTime": due.strftime("%Y-%m-%dT00:00:00"), "timeZone": "UTC"}
        return fields


class MutationCoordinator:
    def __init__(self, client_factory: ClientFactory, channel: InvalidationChannel) -> None:
        self._client_factory = client_factory
        self._channel = channel

    async def _require_client(self) -> TaskGateway:
        client = await self._client_factory.get_client()
        if client is None:
            raise GatewayUnavailableError("Not signed in to the task service")
        return client

    async def apply_mutation(self, kind: MutationKind, targets: Iterable[TaskNode]) -> MutationReport:
        """
        Toggle `kind` on every target concurrently.

        All requests are in flight before any is awaited. Each success
        invalidates its own list; failures are logged and collected, never
        cancelling siblings.
        """
        nodes = list(targets)
        report = MutationReport(kind=kind)
        if not nodes:
            return report

        try:
            client = await self._require_client()
        except GatewayUnavailableError as e:
            logger.warning("%s skipped for %d task(s): %s", kind.value, len(nodes), e)
            report.failed.extend(MutationOutcome(node=n, fields={}, error=e) for n in nodes)
            return report

        outcomes = await asyncio.gather(*(self._toggle_one(client, kind, n) for n in nodes))
        for outcome in outcomes:
            (report.succeeded if outcome.ok else report.failed).append(outcome)

        if report.failed:
            logger.warning("%s", report.summary())
        else:
            logger.info("%s", report.summary())
        return report

    async def _toggle_one(self, client: TaskGateway, kind: MutationKind, node: TaskNode) -> MutationOutcome:
        fields = toggled_fields(kind, node.entity)
        path = task_path(node.parent.entity.id, node.entity.id)
        try:
            await client.patch(path, fields)
        except Exception as e:
            logger.exception("%s failed for %s", kind.value, node_key(node))
            return MutationOutcome(node=node, fields=fields, error=e)

        self._channel.fire(node.parent)
        return MutationOutcome(node=node, fields=fields)

    async def toggle_completion(self, targets: Iterable[TaskNode]) -> MutationReport:
        return await self.apply_mutation(MutationKind.TOGGLE_COMPLETION, targets)

    async def toggle_importance(self, targets: Iterable[TaskNode]) -> MutationReport:
        return await self.apply_mutation(MutationKind.TOGGLE_IMPORTANCE, targets)

    async def update_task(self, update: TaskUpdate) -> Entity | None:
        """Single-target field edit. Returns the updated entity (None if nothing to send)."""
        fields = update.to_fields()
        if not fields:
            logger.info("Nothing to update for task %s", update.task_id)
            return None

        client = await self._require_client()
        entity = await client.patch(task_path(update.list_id, update.task_id), fields)
        logger.info("Updated task %s (%s)", update.task_id, ", ".join(sorted(fields)))

        self._channel.fire(list_node_for(update.list_id))
        return entity

    async def create_list(self, display_name: str) -> TaskList:
        name = (display_name or "").strip()
        if not name:
            raise ValueError("List name must not be empty")

        client = await self._require_client()
        entity = await client.post(LISTS_PATH, {"displayName": name})
        created = TaskList.from_api(entity)
        logger.info("Created list %r (%s)", created.display_name, created.id)

        self._channel.fire()
        return created
