import pytest
import yaml

from pbapi.config.settings import Settings
from pbapi.dispatch.dispatcher import Invocation, dispatch
from pbapi.dispatch.result import Ok
from pbapi.domain.models import ApiDescription
from pbapi.errors import RouteCollision, RouteCompileError
from pbapi.orchestrator.api_service import ApiService
from pbapi.plugins.base import ApiPlugin, api_plugin, operation
from pbapi.plugins.manager import PluginManager

from conftest import WIDGET_DOCUMENT, WidgetApi

GADGET_DOCUMENT = {
    "paths": {
        "/widget/{id}": {
            "get": {"operationId": "get_gadget", "parameters": [{"name": "id", "in": "path"}]},
        },
    },
}


@api_plugin(id="gadgets", label="Gadgets", version=1, description="gadgets")
class GadgetApi(ApiPlugin):
    def __init__(self, calls=None):
        pass

    @operation
    def get_gadget(self, id: str) -> dict:
        return {"gadget": id}


@api_plugin(id="sprockets", label="Sprockets", version=0, description="sprockets")
class SprocketApi(GadgetApi):
    pass


SPROCKET_DOCUMENT = {
    "paths": {
        "/sprocket/{id}": {
            "get": {"operationId": "get_gadget", "parameters": [{"name": "id", "in": "path"}]},
        },
    },
}

DOCUMENTS = {"widgets": WIDGET_DOCUMENT, "gadgets": GADGET_DOCUMENT, "sprockets": SPROCKET_DOCUMENT}


def _load(name):
    return ApiDescription.from_document(DOCUMENTS[name])


def test_rebuild_publishes_table(widget_service):
    table = widget_service.table
    assert "/api/v0/widget/{first}" in table
    assert table.lookup("/api/v0/widget/{first}", "get").operation_name == "get_widget"
    assert table.lookup("/api/v0", "get").is_documentation
    assert len(table) == 6


def test_rebuild_result(widget_manager):
    service = ApiService(
        widget_manager,
        Settings(api_prefix="/api", enabled_plugins=["widgets"]),
        loader=lambda name: ApiDescription.from_document(WIDGET_DOCUMENT),
    )
    result = service.rebuild_routes()
    assert result.plugins == ["widgets"]
    assert result.routes == 6
    assert service.table is result.table


def test_failed_rebuild_keeps_previous_table(widget_service):
    before = widget_service.table

    broken = {
        "paths": {
            "/a/{w}/{x}/{y}/{z}": {
                "get": {
                    "operationId": "get_widget",
                    "parameters": [{"name": n, "in": "path"} for n in "wxyz"],
                }
            }
        }
    }
    widget_service.loader = lambda name: ApiDescription.from_document(broken)

    with pytest.raises(RouteCompileError):
        widget_service.rebuild_routes()
    assert widget_service.table is before


def test_disabled_plugins_have_no_routes(widget_manager):
    service = ApiService(
        widget_manager,
        Settings(enabled_plugins=[]),
        loader=lambda name: ApiDescription.from_document(WIDGET_DOCUMENT),
    )
    assert service.rebuild_routes().routes == 0
    assert len(service.table) == 0


def test_handle_encodes_results(widget_service):
    ok = widget_service.handle("/api/v0/widget/{first}", "get", Invocation(path_values=("w1",)))
    assert ok.status_code == 200
    assert ok.body == '{"id":"w1","name":"widget w1"}'

    err = widget_service.handle("/api/v0/explode", "get", Invocation())
    assert err.status_code == 400
    assert err.body == "boom"


def test_handle_with_caching(widget_manager):
    service = ApiService(
        widget_manager,
        Settings(enabled_plugins=["widgets"], response_caching=True),
        loader=lambda name: ApiDescription.from_document(WIDGET_DOCUMENT),
    )
    service.rebuild_routes()
    r = service.handle("/api/v0/active/{first}", "get", Invocation(path_values=("on",)))
    assert r.body == "TRUE"
    assert r.cacheable is True


def test_documentation_page(widget_service):
    page = widget_service.render_documentation("/api/v0")
    assert "<title>Widgets - Documentation</title>" in page
    assert 'url: "/api/v0/openapi.yaml"' in page

    assert widget_service.render_documentation("/api/v0/widget/{first}") is None
    assert widget_service.render_documentation("/api/v9") is None


def test_description_document_from_raw(widget_service):
    text = widget_service.description_document("widgets")
    assert yaml.safe_load(text) == WIDGET_DOCUMENT


def test_versions_share_one_table(calls):
    manager = PluginManager([WidgetApi, GadgetApi], calls=calls)
    service = ApiService(manager, Settings(enabled_plugins=["widgets", "gadgets"]), loader=_load)
    result = service.rebuild_routes()

    assert result.plugins == ["gadgets", "widgets"]
    assert result.routes == 6 + 2

    table = service.table
    assert table.lookup("/api/v0/widget/{first}", "get").plugin_id == "widgets"
    assert table.lookup("/api/v1/widget/{first}", "get").plugin_id == "gadgets"
    assert table.lookup("/api/v0", "get").plugin_id == "widgets"
    assert table.lookup("/api/v1", "get").plugin_id == "gadgets"

    v0 = service.handle("/api/v0/widget/{first}", "get", Invocation(path_values=("a",)))
    v1 = service.handle("/api/v1/widget/{first}", "get", Invocation(path_values=("a",)))
    assert v0.body == '{"id":"a","name":"widget a"}'
    assert v1.body == '{"gadget":"a"}'

    assert "Gadgets - Documentation" in service.render_documentation("/api/v1")
    assert "Widgets - Documentation" in service.render_documentation("/api/v0")


def test_same_version_plugins_collide_on_documentation_route():
    manager = PluginManager([WidgetApi, SprocketApi])
    service = ApiService(manager, Settings(enabled_plugins=["widgets", "sprockets"]), loader=_load)

    with pytest.raises(RouteCollision) as exc:
        service.rebuild_routes()
    assert exc.value.template == "/api/v0"
    assert len(service.table) == 0


def test_dispatch_picks_the_owning_plugin(calls):
    manager = PluginManager([WidgetApi, GadgetApi], calls=calls)
    service = ApiService(manager, Settings(enabled_plugins=["widgets", "gadgets"]), loader=_load)
    service.rebuild_routes()

    result = dispatch(service.table, "/api/v1/widget/{first}", "get", Invocation(path_values=("x",)), manager)
    assert result == Ok({"gadget": "x"})
    assert calls == []
