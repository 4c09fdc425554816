from __future__ import annotations

import json
from typing import Any, Optional, Union
from urllib.parse import quote

from pbapi.domain.graph import Entity, Pathbuilder, PathbuilderPath
from pbapi.errors import PbApiError
from pbapi.plugins.base import ApiPlugin, api_plugin, operation
from pbapi.store.memory import GraphStore

META_KEYS = ("created", "changed")


class NoSuchEntity(PbApiError):
    pass


class EntityAlreadyExists(PbApiError):
    def __init__(self, kind: str, id: str):
        super().__init__(f"{kind} with ID: {id} already exists")
        self.kind = kind
        self.id = id


def paginate(items: list, start: Optional[int], limit: Optional[int]) -> list:
    begin = start or 0
    if limit is None:
        return items[begin:]
    return items[begin : begin + limit]


@api_plugin(
    id="pathbuilder_api_v0",
    label="Pathbuilder API v0",
    version=0,
    description="pathbuilder_v0",
    permissions={
        "pbapi.pathbuilder.read": "Read pathbuilder definitions",
        "pbapi.pathbuilder.write": "Create and delete pathbuilders",
    },
)
class PathbuilderApiV0(ApiPlugin):
    """Pathbuilder and entity operations over a GraphStore."""

    def __init__(self, store: GraphStore, view_base: str = "/entity/view"):
        self.store = store
        self.view_base = view_base

    # ----------------------------
    # Pathbuilders
    # ----------------------------

    def _load_pathbuilder(self, pathbuilder_id: str) -> Pathbuilder:
        pb = self.store.get_pathbuilder(pathbuilder_id)
        if pb is None:
            raise NoSuchEntity(f"No pathbuilder with ID: {pathbuilder_id} found")
        return pb

    @operation
    def get_pathbuilder_ids(self, start: Optional[int] = None, limit: Optional[int] = None) -> list[str]:
        ids = [pb.id for pb in self.store.list_pathbuilders()]
        return paginate(ids, start, limit)

    @operation
    def get_pathbuilder(self, pathbuilder_id: str) -> Pathbuilder:
        return self._load_pathbuilder(pathbuilder_id)

    @operation
    def create_pathbuilder(self, data: dict[str, Any]) -> str:
        pb = Pathbuilder.model_validate(data)
        if self.store.get_pathbuilder(pb.id) is not None:
            raise EntityAlreadyExists("Pathbuilder", pb.id)
        self.store.save_pathbuilder(pb)
        return pb.id

    @operation
    def delete_pathbuilder(self, pathbuilder_id: str) -> bool:
        self._load_pathbuilder(pathbuilder_id)
        return self.store.delete_pathbuilder(pathbuilder_id)

    @operation
    def get_path(self, pathbuilder_id: str, path_id: str) -> PathbuilderPath:
        pb = self._load_pathbuilder(pathbuilder_id)
        path = pb.paths.get(path_id)
        if path is None:
            raise NoSuchEntity(f"No path with ID {path_id} in pathbuilder {pathbuilder_id}")
        return path

    # ----------------------------
    # Bundles
    # ----------------------------

    @operation
    def get_bundles(self) -> dict[str, str]:
        return {b.id: b.label for b in self.store.list_bundles()}

    @operation
    def get_uris_for_bundle(
        self,
        bundle_id: str,
        start: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> list[str]:
        uris = [e.uri for e in self.store.list_entities(bundle_id)]
        return paginate(uris, start, limit)

    # ----------------------------
    # Entities
    # ----------------------------

    def _load_entity(self, uri: str) -> Entity:
        entity = self.store.get_entity(uri)
        if entity is None:
            raise NoSuchEntity(f"No such entity with URI: {uri}!")
        return entity

    @operation
    def get_entity_languages(self, uri: str) -> list[str]:
        return self._load_entity(uri).languages()

    @operation
    def get_entity(
        self,
        uri: str,
        lang: Optional[str] = None,
        expand: bool = False,
        meta: bool = False,
    ) -> dict[str, Any]:
        entity = self._load_entity(uri)
        if lang and lang not in entity.values:
            raise NoSuchEntity(f"Language with code {lang} does not exist for this entity")
        return self._normalize(entity, lang, expand, meta, seen={entity.uri})

    @operation
    def create_entity(self, data: dict[str, Any], overwrite: bool = False) -> str:
        entity = Entity.model_validate({"uri": "", **data})
        if entity.uri and self.store.get_entity(entity.uri) is not None and not overwrite:
            raise EntityAlreadyExists("Entity", entity.uri)
        return self.store.save_entity(entity)

    @operation
    def delete_entity(self, uri: str) -> bool:
        self._load_entity(uri)
        return self.store.delete_entity(uri)

    @operation
    def get_entity_view(self, uri: str) -> str:
        self._load_entity(uri)
        return f"{self.view_base}?uri={quote(uri, safe='')}"

    @operation
    def query_entity(self, query: Union[str, dict[str, Any]]) -> list[str]:
        """
        Return the URIs of entities matching every condition in `query`.

        `query` is a JSON object; the key "bundle" matches the entity bundle,
        every other key is a field id that must contain the given value in
        any language.
        """
        conditions = json.loads(query) if isinstance(query, str) else dict(query)
        if not isinstance(conditions, dict):
            raise ValueError("Invalid query structure")

        bundle = conditions.pop("bundle", None)
        out: list[str] = []
        for entity in self.store.list_entities(bundle):
            if all(self._has_value(entity, f, v) for f, v in conditions.items()):
                out.append(entity.uri)
        return out

    # ----------------------------
    # Normalization
    # ----------------------------

    @staticmethod
    def _has_value(entity: Entity, field_id: str, value: Any) -> bool:
        return any(value in fields.get(field_id, []) for fields in entity.values.values())

    def _is_group_field(self, field_id: str) -> bool:
        for pb in self.store.list_pathbuilders():
            path = pb.path_for_field(field_id)
            if path is not None:
                return path.is_group
        return False

    def _normalize(
        self,
        entity: Entity,
        lang: Optional[str],
        expand: bool,
        meta: bool,
        seen: set[str],
    ) -> dict[str, Any]:
        languages = [lang] if lang else entity.languages()
        out: dict[str, Any] = {"uri": entity.uri, "bundle": entity.bundle}
        fields: dict[str, dict[str, list[Any]]] = {}

        for code in languages:
            translated: dict[str, list[Any]] = {}
            for field_id, values in entity.values.get(code, {}).items():
                translated[field_id] = [
                    self._normalize_value(field_id, v, lang, expand, meta, seen) for v in values
                ]
            fields[code] = translated

        out["fields"] = fields
        if meta:
            out["meta"] = {"label": entity.label, **{k: entity.meta.get(k) for k in META_KEYS}}
        return out

    def _normalize_value(
        self,
        field_id: str,
        value: Any,
        lang: Optional[str],
        expand: bool,
        meta: bool,
        seen: set[str],
    ) -> Any:
        if not (isinstance(value, dict) and "target_uri" in value):
            return value

        target = str(value["target_uri"])
        # only sub-groups are expanded, plain references may be circular
        if expand and target not in seen and self._is_group_field(field_id):
            sub = self.store.get_entity(target)
            if sub is not None:
                return {"entity": self._normalize(sub, lang, expand, meta, seen | {target})}
        return {"target_uri": target}
