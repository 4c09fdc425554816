from __future__ import annotations

import threading
import time
import uuid
from typing import Iterable, Optional, Protocol

from pbapi.domain.graph import Bundle, Entity, Pathbuilder


def _now_ts() -> int:
    return int(time.time())


class GraphStore(Protocol):
    def list_pathbuilders(self) -> list[Pathbuilder]: ...
    def get_pathbuilder(self, pathbuilder_id: str) -> Optional[Pathbuilder]: ...
    def save_pathbuilder(self, pathbuilder: Pathbuilder) -> None: ...
    def delete_pathbuilder(self, pathbuilder_id: str) -> bool: ...
    def list_bundles(self) -> list[Bundle]: ...
    def list_entities(self, bundle_id: Optional[str] = None) -> list[Entity]: ...
    def get_entity(self, uri: str) -> Optional[Entity]: ...
    def save_entity(self, entity: Entity) -> str: ...
    def delete_entity(self, uri: str) -> bool: ...


class InMemoryGraphStore:
    """
    Process-local GraphStore backed by dictionaries.

    Used by the demo server and the tests; a real deployment plugs its own
    graph backend in behind the GraphStore protocol.
    """

    def __init__(
        self,
        pathbuilders: Iterable[Pathbuilder] = (),
        bundles: Iterable[Bundle] = (),
        entities: Iterable[Entity] = (),
        uri_base: str = "http://example.org/entity/",
    ):
        self.uri_base = uri_base
        self._lock = threading.RLock()
        self._pathbuilders = {pb.id: pb for pb in pathbuilders}
        self._bundles = {b.id: b for b in bundles}
        self._entities = {e.uri: e for e in entities}

    # ----------------------------
    # Pathbuilders
    # ----------------------------

    def list_pathbuilders(self) -> list[Pathbuilder]:
        with self._lock:
            return [self._pathbuilders[k] for k in sorted(self._pathbuilders)]

    def get_pathbuilder(self, pathbuilder_id: str) -> Optional[Pathbuilder]:
        with self._lock:
            return self._pathbuilders.get(pathbuilder_id)

    def save_pathbuilder(self, pathbuilder: Pathbuilder) -> None:
        with self._lock:
            self._pathbuilders[pathbuilder.id] = pathbuilder
            # group paths define bundles
            for path in pathbuilder.groups().values():
                self._bundles.setdefault(path.bundle, Bundle(id=path.bundle, label=path.name))

    def delete_pathbuilder(self, pathbuilder_id: str) -> bool:
        with self._lock:
            return self._pathbuilders.pop(pathbuilder_id, None) is not None

    # ----------------------------
    # Bundles / entities
    # ----------------------------

    def list_bundles(self) -> list[Bundle]:
        with self._lock:
            return [self._bundles[k] for k in sorted(self._bundles)]

    def list_entities(self, bundle_id: Optional[str] = None) -> list[Entity]:
        with self._lock:
            rows = [self._entities[k] for k in sorted(self._entities)]
        if bundle_id is None:
            return rows
        return [e for e in rows if e.bundle == bundle_id]

    def get_entity(self, uri: str) -> Optional[Entity]:
        with self._lock:
            return self._entities.get(uri)

    def save_entity(self, entity: Entity) -> str:
        with self._lock:
            if not entity.uri:
                entity = entity.model_copy(update={"uri": f"{self.uri_base}{uuid.uuid4().hex}"})
            previous = self._entities.get(entity.uri)
            meta = dict(entity.meta)
            meta.setdefault("created", previous.meta.get("created") if previous else _now_ts())
            meta["changed"] = _now_ts()
            self._entities[entity.uri] = entity.model_copy(update={"meta": meta})
            return entity.uri

    def delete_entity(self, uri: str) -> bool:
        with self._lock:
            return self._entities.pop(uri, None) is not None
