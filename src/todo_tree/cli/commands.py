# src/todo_tree/cli/commands.py

from __future__ import annotations

import logging
import shlex
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

from ..core.errors import GatewayError
from ..core.mutations import MutationReport
from ..graph.client import friendly_gateway_error_message
from ..panel.details import PanelProtocolError

if TYPE_CHECKING:
    from ..connectors.console_host import ConsoleTreeHost

CommandHandler = Callable[["ConsoleTreeHost", list[str]], Awaitable[str]]

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Simple slash-command registry used by the console host (/help, /tree, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    async def handle(self, host: ConsoleTreeHost, line: str) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        try:
            parts = shlex.split(line[1:])
        except ValueError as e:
            return f"Could not parse command: {e}"
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            return await handler(host, args)
        except (IndexError, ValueError, PanelProtocolError) as e:
            return str(e)
        except GatewayError as e:
            logger.info("Gateway error in /%s: %s", name, e)
            return f"[SERVICE] {friendly_gateway_error_message(e)}"

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


def _numbers(args: list[str]) -> list[int]:
    if not args:
        raise ValueError("Give one or more node numbers (see /tree).")
    try:
        return [int(a) for a in args]
    except ValueError:
        raise ValueError("Node numbers must be integers.") from None


def _report_text(report: MutationReport) -> str:
    lines = [f"{len(report.succeeded)} updated, {len(report.failed)} failed."]
    for outcome in report.failed:
        lines.append(f"  {outcome.node.entity.title!r}: {friendly_gateway_error_message(outcome.error)}")
    return "\n".join(lines)


async def _render(host: ConsoleTreeHost) -> str:
    return "\n".join(await host.render())


async def cmd_help(host: ConsoleTreeHost, args: list[str]) -> str:
    return registry.build_help()


async def cmd_tree(host: ConsoleTreeHost, args: list[str]) -> str:
    return await _render(host)


async def cmd_open(host: ConsoleTreeHost, args: list[str]) -> str:
    for n in _numbers(args):
        host.set_expanded(host.node_at(n), True)
    return await _render(host)


async def cmd_close(host: ConsoleTreeHost, args: list[str]) -> str:
    for n in _numbers(args):
        host.set_expanded(host.node_at(n), False)
    return await _render(host)


async def cmd_refresh(host: ConsoleTreeHost, args: list[str]) -> str:
    """
    /refresh      -> re-fetch everything
    /refresh N    -> re-fetch node N's subtree
    """
    node = host.node_at(_numbers(args)[0]) if args else None
    await host.provider.refresh(node)
    return await _render(host)


async def cmd_complete(host: ConsoleTreeHost, args: list[str]) -> str:
    tasks = [host.task_at(n) for n in _numbers(args)]
    report = await host.provider.complete(tasks[0], tasks)
    return f"{_report_text(report)}\n{await _render(host)}"


async def cmd_star(host: ConsoleTreeHost, args: list[str]) -> str:
    tasks = [host.task_at(n) for n in _numbers(args)]
    report = await host.provider.star(tasks[0], tasks)
    return f"{_report_text(report)}\n{await _render(host)}"


async def cmd_newlist(host: ConsoleTreeHost, args: list[str]) -> str:
    created = await host.provider.create_list(" ".join(args))
    return f"Created list {created.display_name!r}.\n{await _render(host)}"


async def cmd_show(host: ConsoleTreeHost, args: list[str]) -> str:
    node = host.task_at(_numbers(args)[0])
    await host.panel.show(node)
    desc = host.provider.get_display_descriptor(node)
    lines = [desc.tooltip or desc.label]
    if node.entity.reminder is not None:
        lines.append(f"Reminder set at {node.entity.reminder:%Y-%m-%d %H:%M}")
    return "\n".join(lines)


async def cmd_edit(host: ConsoleTreeHost, args: list[str]) -> str:
    """
    /edit N title="..." note="..." due=YYYY-MM-DD
    Unspecified fields keep their current value.
    """
    if not args:
        raise ValueError('Usage: /edit N title="..." note="..." due=YYYY-MM-DD')
    node = host.task_at(_numbers(args[:1])[0])

    values: dict[str, str] = {}
    for arg in args[1:]:
        key, sep, value = arg.partition("=")
        if not sep or key not in ("title", "note", "due"):
            raise ValueError(f"Unknown field assignment: {arg!r} (use title=, note=, due=)")
        values[key] = value

    await host.panel.show(node)
    await host.panel.handle_message(
        {
            "command": "update",
            "body": {
                "title": values.get("title", node.entity.title),
                "note": values.get("note", node.entity.body or ""),
                "id": node.entity.id,
                "listId": node.parent.entity.id,
                "dueDate": values.get("due", ""),
            },
        }
    )
    return f"Updated {node.entity.title!r}.\n{await _render(host)}"


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("tree", cmd_tree, help_text="Show the tree with node numbers.", aliases=["ls"])
registry.register("open", cmd_open, help_text="Expand nodes: /open N [N...].")
registry.register("close", cmd_close, help_text="Collapse nodes: /close N [N...].")
registry.register("refresh", cmd_refresh, help_text="Re-fetch everything, or one subtree: /refresh [N].")
registry.register(
    "complete", cmd_complete, help_text="Toggle completion: /complete N [N...].", aliases=["done", "uncomplete"]
)
registry.register("star", cmd_star, help_text="Toggle importance: /star N [N...].", aliases=["unstar"])
registry.register("newlist", cmd_newlist, help_text="Create a list: /newlist NAME.")
registry.register("show", cmd_show, help_text="Show task details: /show N.")
registry.register("edit", cmd_edit, help_text='Edit a task: /edit N title="..." note="..." due=YYYY-MM-DD.')
