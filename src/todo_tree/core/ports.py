# src/todo_tree/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The core depends on Protocols instead of concrete implementations.
This keeps the remote service adapter swappable and makes testing easier.
"""

from typing import Any, Protocol

Entity = dict[str, Any]
# Raw JSON object as returned by the remote service.


class TaskGateway(Protocol):
    """
    Authenticated access to the remote task service.

    Paths are relative to the service root ("/lists", "/lists/{id}/tasks?...").
    fetch_all resolves pagination internally and returns every entity in order.
    """

    async def fetch_all(self, path: str) -> list[Entity]: ...

    async def patch(self, path: str, fields: dict[str, Any]) -> Entity: ...

    async def post(self, path: str, fields: dict[str, Any]) -> Entity: ...


class ClientFactory(Protocol):
    """Hands out a gateway, or None when no authenticated session exists."""

    async def get_client(self) -> TaskGateway | None: ...
