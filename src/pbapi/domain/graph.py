from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, Field


class PathbuilderPath(BaseModel):
    id: str
    name: str = ""
    bundle: str = ""
    field: str = ""
    # id of the enclosing group path, empty for top-level groups
    parent: str = ""

    @property
    def is_group(self) -> bool:
        return bool(self.bundle) and self.bundle == self.field


class Pathbuilder(BaseModel):
    id: str
    name: str = ""
    adapter: str = ""
    paths: dict[str, PathbuilderPath] = Field(default_factory=dict)

    def groups(self) -> dict[str, PathbuilderPath]:
        return {k: p for k, p in self.paths.items() if p.is_group}

    def path_for_field(self, field_id: str) -> Optional[PathbuilderPath]:
        for p in self.paths.values():
            if p.field == field_id:
                return p
        return None


class Bundle(BaseModel):
    id: str
    label: str = ""


class Entity(BaseModel):
    """
    A node of the entity graph.

    `values` is keyed by language code, then by field id. A value is either
    a literal or a reference ``{"target_uri": "..."}`` to another entity.
    """

    uri: str
    bundle: str
    label: str = ""
    values: dict[str, dict[str, list[Any]]] = Field(default_factory=dict)
    meta: dict[str, Any] = Field(default_factory=dict)

    def languages(self) -> list[str]:
        return sorted(self.values)
