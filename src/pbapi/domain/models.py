from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

ParamLocation = Literal["path", "query", "header", "cookie"]


class ParameterDescription(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: str
    location: ParamLocation = Field(alias="in")
    required: bool = False


class OperationDescription(BaseModel):
    """One HTTP method of one path in an API description."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    operation_id: str = Field(alias="operationId")
    parameters: list[ParameterDescription] = Field(default_factory=list)
    # [{scheme_name: [permission, ...]}, ...]
    security: Optional[list[dict[str, list[str]]]] = None

    def path_parameters(self) -> list[str]:
        return [p.name for p in self.parameters if p.location == "path"]

    def query_parameters(self) -> list[str]:
        return [p.name for p in self.parameters if p.location == "query"]

    def declared_permissions(self) -> list[str]:
        # the scheme name is ignored, only the listed permissions count
        out: list[str] = []
        for scheme in self.security or []:
            for permissions in scheme.values():
                out.extend(permissions)
        return out


class ApiDescription(BaseModel):
    """
    Parsed OpenAPI-style description of one API plugin.

    Only `paths` drives route compilation; `info` and the raw document are
    kept so the documentation view can serve the original file.
    """

    model_config = ConfigDict(extra="ignore")

    paths: dict[str, dict[str, OperationDescription]] = Field(default_factory=dict)
    info: dict[str, Any] = Field(default_factory=dict)
    raw: dict[str, Any] = Field(default_factory=dict, exclude=True)

    @classmethod
    def from_document(cls, document: dict[str, Any]) -> "ApiDescription":
        desc = cls.model_validate(document)
        desc.raw = dict(document)
        return desc


class PluginDefinition(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    label: str
    version: int
    description: str  # name of the API description document
    permissions: dict[str, str] = Field(default_factory=dict)
