from __future__ import annotations

from typing import Any, Optional

import pytest

from pbapi.config.settings import Settings
from pbapi.domain.models import ApiDescription
from pbapi.orchestrator.api_service import ApiService
from pbapi.plugins.base import ApiPlugin, api_plugin, operation
from pbapi.plugins.manager import PluginManager

WIDGET_DOCUMENT = {
    "info": {"title": "Widgets", "version": "0"},
    "paths": {
        "/widget/{id}": {
            "get": {
                "operationId": "get_widget",
                "parameters": [{"name": "id", "in": "path"}],
            },
        },
        "/widget/{id}/parts/{part}": {
            "get": {
                "operationId": "get_part",
                "parameters": [
                    {"name": "id", "in": "path"},
                    {"name": "part", "in": "path"},
                    {"name": "limit", "in": "query"},
                ],
                "security": [{"basicAuth": ["widgets.parts", "pbapi.read"]}],
            },
        },
        "/widget": {
            "post": {"operationId": "create_widget"},
        },
        "/explode": {
            "get": {"operationId": "explode"},
        },
        "/active/{id}": {
            "get": {
                "operationId": "is_active",
                "parameters": [{"name": "id", "in": "path"}],
            },
        },
    },
}


@api_plugin(id="widgets", label="Widgets", version=0, description="widgets")
class WidgetApi(ApiPlugin):
    def __init__(self, calls: Optional[list] = None):
        self.calls = calls if calls is not None else []

    @operation
    def get_widget(self, id: str) -> dict:
        self.calls.append(("get_widget", {"id": id}))
        return {"id": id, "name": f"widget {id}"}

    @operation
    def get_part(self, id: str, part: str, limit: Optional[int] = None) -> dict:
        self.calls.append(("get_part", {"id": id, "part": part, "limit": limit}))
        return {"widget": id, "part": part, "limit": limit}

    @operation
    def create_widget(self, data: Any) -> Any:
        self.calls.append(("create_widget", {"data": data}))
        return data

    @operation
    def explode(self) -> None:
        raise RuntimeError("boom")

    @operation
    def is_active(self, id: str) -> bool:
        return id == "on"


@pytest.fixture
def widget_description() -> ApiDescription:
    return ApiDescription.from_document(WIDGET_DOCUMENT)


@pytest.fixture
def calls() -> list:
    return []


@pytest.fixture
def widget_manager(calls: list) -> PluginManager:
    return PluginManager([WidgetApi], calls=calls)


@pytest.fixture
def widget_service(widget_manager: PluginManager) -> ApiService:
    settings = Settings(api_prefix="/api", enabled_plugins=["widgets"])
    service = ApiService(
        widget_manager,
        settings,
        loader=lambda name: ApiDescription.from_document(WIDGET_DOCUMENT),
    )
    service.rebuild_routes()
    return service
