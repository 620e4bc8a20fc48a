# src/todo_tree/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures the local (gitignored) data directory exists,
- picks the client factory (Graph, or the offline demo gateway),
- wires the tree provider.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ..config import get_settings
from ..core.ports import ClientFactory
from ..core.provider import TodoTreeProvider
from ..graph.client import GraphClientFactory
from ..graph.offline import OfflineClientFactory

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class AppContext:
    settings: object
    client_factory: ClientFactory
    provider: TodoTreeProvider

    async def aclose(self) -> None:
        self.provider.dispose()
        close = getattr(self.client_factory, "aclose", None)
        if close is not None:
            await close()


def create_client_factory(settings) -> ClientFactory:
    if getattr(settings, "offline", False):
        logger.info("Offline demo mode: using in-memory task data")
        return OfflineClientFactory()
    if not getattr(settings, "is_authenticated", False):
        logger.warning("TODO_TREE_ACCESS_TOKEN is not set; the tree will stay empty")
    return GraphClientFactory(settings)


def create_app(*, settings=None) -> AppContext:
    """
    Build the application from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    settings.data_dir.mkdir(parents=True, exist_ok=True)

    factory = create_client_factory(settings)
    return AppContext(settings=settings, client_factory=factory, provider=TodoTreeProvider(factory))
