import inspect

import pytest
import yaml
from fastapi.testclient import TestClient

from pbapi.config.settings import Settings
from pbapi.domain.graph import Pathbuilder, PathbuilderPath
from pbapi.orchestrator.api_service import build_service
from pbapi.routing.signatures import MAX_PATH_PARAMS, signature_for
from pbapi.server.app import GenericHandlers, create_app
from pbapi.store.memory import InMemoryGraphStore

from conftest import WIDGET_DOCUMENT


@pytest.fixture
def client(widget_service):
    return TestClient(create_app(widget_service))


def test_handler_signatures_match_table(widget_service):
    handlers = GenericHandlers(widget_service)
    for arity in range(MAX_PATH_PARAMS + 1):
        params = [p for p in inspect.signature(handlers.for_arity(arity)).parameters if p != "request"]
        assert tuple(params) == signature_for(arity)


def test_get_defaults_to_json(client, calls):
    r = client.get("/api/v0/widget/w42")
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("application/json")
    assert r.json() == {"id": "w42", "name": "widget w42"}
    assert r.headers["cache-control"] == "no-cache"
    assert calls == [("get_widget", {"id": "w42"})]


def test_two_path_params_and_query(client, calls):
    r = client.get("/api/v0/widget/w1/parts/p9", params={"limit": "3"})
    assert r.status_code == 200
    assert r.json() == {"widget": "w1", "part": "p9", "limit": 3}


def test_xml_by_content_type(client):
    r = client.get("/api/v0/widget/w42", headers={"Content-Type": "text/xml"})
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("text/xml")
    assert "<response><id>w42</id><name>widget w42</name></response>" in r.text


def test_unsupported_content_type(client):
    r = client.get("/api/v0/widget/w42", headers={"Content-Type": "application/unsupported"})
    assert r.status_code == 400
    assert "application/unsupported" in r.text


def test_post_json_body(client, calls):
    r = client.post("/api/v0/widget", json={"name": "new"})
    assert r.status_code == 200
    assert r.json() == {"name": "new"}
    assert calls == [("create_widget", {"data": {"name": "new"}})]


def test_post_raw_body(client, calls):
    r = client.post("/api/v0/widget", content=b"not json", headers={"Content-Type": "text/plain"})
    assert r.status_code == 200
    assert r.text == "not json"
    assert calls == [("create_widget", {"data": "not json"})]


def test_operation_error_is_400(client):
    r = client.get("/api/v0/explode")
    assert r.status_code == 400
    assert r.text == "boom"


def test_boolean_result(client):
    assert client.get("/api/v0/active/on").text == "TRUE"
    assert client.get("/api/v0/active/off").text == "FALSE"


def test_wrong_method_is_rejected_by_router(client):
    assert client.delete("/api/v0/widget/w42").status_code == 405


def test_unknown_path_is_404(client):
    assert client.get("/api/v0/nothing/here").status_code == 404


def test_documentation_routes(client):
    page = client.get("/api/v0")
    assert page.status_code == 200
    assert page.headers["content-type"].startswith("text/html")
    assert "swagger-ui" in page.text

    doc = client.get("/api/v0/openapi.yaml")
    assert doc.status_code == 200
    assert yaml.safe_load(doc.text) == WIDGET_DOCUMENT


@pytest.fixture
def builtin_client():
    store = InMemoryGraphStore()
    store.save_pathbuilder(
        Pathbuilder(
            id="default",
            name="Default",
            paths={"person": PathbuilderPath(id="person", name="Person", bundle="b_person", field="b_person")},
        )
    )
    return TestClient(create_app(build_service(Settings(api_prefix="/api"), store=store)))


def test_non_utf8_post_body_is_echoed_unchanged(client):
    r = client.post("/api/v0/widget", content=b"caf\xe9", headers={"Content-Type": "text/plain"})
    assert r.status_code == 200
    assert r.content == b"caf\xe9"
    assert r.headers["content-type"] == "application/octet-stream"


def test_list_of_models_is_encoded(builtin_client):
    r = builtin_client.get("/api/v1/pathbuilders/list")
    assert r.status_code == 200
    [pb] = r.json()
    assert pb["id"] == "default"
    assert pb["paths"]["person"]["bundle"] == "b_person"


def test_both_api_versions_are_served(builtin_client):
    assert builtin_client.get("/api/v0/pathbuilders").json() == ["default"]
    assert builtin_client.get("/api/v1/pathbuilders").json() == ["default"]
    assert builtin_client.get("/api/v1/pathbuilders/default/groups").json() == {"person": "Person"}

    # v1 reports a missing pathbuilder, v0 fails the request
    assert builtin_client.delete("/api/v1/pathbuilders/nope").text == "FALSE"
    assert builtin_client.delete("/api/v0/pathbuilders/nope").status_code == 400

    for prefix in ("/api/v0", "/api/v1"):
        assert builtin_client.get(prefix).status_code == 200
        assert builtin_client.get(f"{prefix}/openapi.yaml").text.startswith("openapi:")
