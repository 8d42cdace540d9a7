"""Command executor: apply one parsed command to the registry.

Stateless apart from the registry and store it was built with. It is
only ever called from the dispatcher's processing lane, which is what
makes the registry single-writer.
"""
from __future__ import annotations

from dataclasses import dataclass

from greylistd.domain.status import ALL_STATUSES
from greylistd.persistence.state_files import StateStore
from greylistd.protocol import render
from greylistd.protocol.commands import (
    AddCommand,
    CheckCommand,
    ClearCommand,
    Command,
    DeleteCommand,
    ListCommand,
    MrtgCommand,
    ReloadCommand,
    SaveCommand,
    StatsCommand,
    StatusCommand,
    UpdateCommand,
)
from greylistd.registry.registry import Registry


@dataclass(frozen=True, slots=True)
class Response:
    """Reply text, and whether the serving cycle should end for a reload."""
    text: str
    reload: bool = False


class CommandExecutor:
    """Maps each command variant to a registry operation and a reply.

    Usage:
        executor = CommandExecutor(registry, store)
        response = executor.execute(parse_command("check 192.0.2.1 bob@x"))
    """

    def __init__(self, registry: Registry, store: StateStore) -> None:
        self._registry = registry
        self._store = store

    def execute(self, command: Command) -> Response:
        """Run a command. PersistenceError from "save" propagates."""
        registry = self._registry

        if isinstance(command, UpdateCommand):
            entry = registry.update(command.triplet)
            return Response(render.render_decision(entry.status, command.expect))

        if isinstance(command, CheckCommand):
            status = registry.check(command.triplet)
            return Response(render.render_decision(status, command.expect))

        if isinstance(command, AddCommand):
            registry.add(command.triplet, command.status)
            return Response(render.render_added(command.status))

        if isinstance(command, DeleteCommand):
            return Response(render.render_removed(registry.delete(command.triplet)))

        if isinstance(command, StatusCommand):
            entry = registry.lookup(command.triplet)
            return Response(render.render_status(entry.status if entry else None))

        if isinstance(command, ListCommand):
            tables = [
                (status, registry.entries([status]))
                for status in (command.statuses or ALL_STATUSES)
            ]
            return Response(render.render_list(tables))

        if isinstance(command, ClearCommand):
            registry.clear(command.statuses)
            return Response(render.CLEARED)

        if isinstance(command, SaveCommand):
            self._store.save(registry)
            return Response(render.SAVED)

        if isinstance(command, ReloadCommand):
            return Response(render.RELOADING, reload=True)

        if isinstance(command, StatsCommand):
            return Response(render.render_stats(registry.snapshot()))

        if isinstance(command, MrtgCommand):
            registry.prune()
            return Response(render.render_mrtg(registry.snapshot()))

        raise TypeError(f"Unhandled command: {command!r}")
