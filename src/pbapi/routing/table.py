from __future__ import annotations

import threading
from types import MappingProxyType
from typing import Iterable, Iterator, Mapping, Optional

from loguru import logger

from pbapi.errors import RouteCollision
from pbapi.routing.model import RouteEntry


class DispatchTable:
    """
    Read-only mapping: concrete template -> lowercased method -> RouteEntry.

    Built in one step from a list of entries and never mutated afterwards.
    """

    def __init__(self, routes: Mapping[str, Mapping[str, RouteEntry]]):
        self._routes = MappingProxyType(
            {t: MappingProxyType(dict(m)) for t, m in routes.items()}
        )

    @classmethod
    def from_entries(cls, entries: Iterable[RouteEntry]) -> "DispatchTable":
        routes: dict[str, dict[str, RouteEntry]] = {}
        for e in entries:
            methods = routes.setdefault(e.concrete_template, {})
            if e.http_method in methods:
                raise RouteCollision(e.concrete_template, e.http_method)
            methods[e.http_method] = e
        return cls(routes)

    @classmethod
    def empty(cls) -> "DispatchTable":
        return cls({})

    def methods_for(self, template: str) -> Optional[Mapping[str, RouteEntry]]:
        return self._routes.get(template)

    def lookup(self, template: str, method: str) -> Optional[RouteEntry]:
        methods = self._routes.get(template)
        if methods is None:
            return None
        return methods.get(method.lower())

    def entries(self) -> Iterator[RouteEntry]:
        for template in sorted(self._routes):
            methods = self._routes[template]
            for method in sorted(methods):
                yield methods[method]

    def __contains__(self, template: object) -> bool:
        return template in self._routes

    def __getitem__(self, template: str) -> Mapping[str, RouteEntry]:
        return self._routes[template]

    def __len__(self) -> int:
        return sum(len(m) for m in self._routes.values())


class PublishedTable:
    """
    Holder for the live DispatchTable.

    Writers build a complete table elsewhere and swap it in; readers just
    grab `current` and keep using that reference for the whole request.
    """

    def __init__(self, table: Optional[DispatchTable] = None):
        self._table = table if table is not None else DispatchTable.empty()
        self._write_lock = threading.Lock()

    @property
    def current(self) -> DispatchTable:
        return self._table

    def publish(self, table: DispatchTable) -> DispatchTable:
        with self._write_lock:
            previous = self._table
            self._table = table
        logger.info("Published dispatch table with {} routes (was {})", len(table), len(previous))
        return previous
