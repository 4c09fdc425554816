from __future__ import annotations

import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping

from pbapi.routing.signatures import handler_signature

DOCUMENTATION_OPERATION = "render_documentation"

_PLACEHOLDER = re.compile(r"[\[{(].*?[\]})]")
_MULTI_SLASH = re.compile(r"/{2,}")


def route_name_from_path(path: str) -> str:
    # /api/v0/pathbuilders/{first} -> api.v0.pathbuilders
    p = path.lstrip("/")
    p = _PLACEHOLDER.sub("", p)
    p = _MULTI_SLASH.sub("/", p)
    p = p.rstrip("/")
    return p.replace("/", ".")


@dataclass(frozen=True)
class RouteEntry:
    concrete_template: str
    http_method: str
    operation_name: str
    handler_arity: int
    plugin_id: str
    # generic name -> semantic name, in generic order
    parameter_map: Mapping[str, str] = field(default_factory=dict)
    query_parameters: tuple[str, ...] = ()
    required_permissions: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "http_method", self.http_method.lower())
        object.__setattr__(self, "parameter_map", MappingProxyType(dict(self.parameter_map)))

    @property
    def handler_name(self) -> str:
        return handler_signature(self.handler_arity).name

    @property
    def route_name(self) -> str:
        return f"{self.http_method}.{route_name_from_path(self.concrete_template)}"

    @property
    def permission_string(self) -> str:
        # '+' is a logical OR for the host authorization layer
        return "+".join(self.required_permissions)

    @property
    def is_documentation(self) -> bool:
        return self.operation_name == DOCUMENTATION_OPERATION

    def to_dict(self) -> dict:
        return {
            "template": self.concrete_template,
            "method": self.http_method,
            "operation": self.operation_name,
            "handler": self.handler_name,
            "parameter_map": dict(self.parameter_map),
            "query_parameters": list(self.query_parameters),
            "plugin_id": self.plugin_id,
            "permissions": list(self.required_permissions),
        }
