from __future__ import annotations

import html
from dataclasses import dataclass
from typing import Callable, Optional

import yaml
from loguru import logger

from pbapi.codec.response import EncodedResponse, encode_result
from pbapi.config.descriptions import DescriptionLoader
from pbapi.config.settings import Settings, get_settings
from pbapi.dispatch.dispatcher import Invocation, dispatch
from pbapi.domain.models import ApiDescription, PluginDefinition
from pbapi.plugins.manager import PluginManager
from pbapi.plugins.pathbuilder_v0 import PathbuilderApiV0
from pbapi.plugins.pathbuilder_v1 import PathbuilderApiV1
from pbapi.routing.compiler import build_dispatch_table, build_prefix, compile_description
from pbapi.routing.model import RouteEntry
from pbapi.routing.table import DispatchTable, PublishedTable
from pbapi.store.memory import GraphStore, InMemoryGraphStore

DESCRIPTION_DOCUMENT = "openapi.yaml"

_DOC_PAGE = """<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <title>{title}</title>
  <link rel="stylesheet" href="{ui}/swagger-ui.css">
</head>
<body>
  <div id="swagger-ui"></div>
  <script src="{ui}/swagger-ui-bundle.js"></script>
  <script>
    window.ui = SwaggerUIBundle({{
      url: "{spec_url}",
      dom_id: "#swagger-ui",
      docExpansion: "list",
      sortTagsByName: false,
      supportedSubmitMethods: ["get", "post", "delete"]
    }});
  </script>
</body>
</html>
"""


@dataclass(frozen=True)
class RebuildResult:
    plugins: list[str]
    routes: int
    table: DispatchTable


class ApiService:
    """
    Ties plugins, descriptions and the dispatch table together.

    `rebuild_routes` compiles every enabled plugin and swaps the new table
    in; a compile error leaves the previously published table untouched.
    """

    def __init__(
        self,
        manager: PluginManager,
        settings: Settings,
        loader: Optional[Callable[[str], ApiDescription]] = None,
    ):
        self.manager = manager
        self.settings = settings
        self.loader = loader or DescriptionLoader(settings.descriptions_dir)
        self._published = PublishedTable()

    @property
    def table(self) -> DispatchTable:
        return self._published.current

    def prefix_for(self, definition: PluginDefinition) -> str:
        return build_prefix(self.settings.api_prefix, definition.version)

    def enabled_definitions(self) -> list[PluginDefinition]:
        return self.manager.enabled_definitions(self.settings.enabled_plugins)

    def compile_routes(self) -> tuple[list[str], list[RouteEntry]]:
        plugin_ids: list[str] = []
        entries: list[RouteEntry] = []
        for definition in self.enabled_definitions():
            description = self.loader(definition.description)
            entries.extend(
                compile_description(
                    description,
                    self.prefix_for(definition),
                    definition.id,
                    read_permission=self.settings.read_permission,
                    write_permission=self.settings.write_permission,
                )
            )
            plugin_ids.append(definition.id)
        return plugin_ids, entries

    def rebuild_routes(self) -> RebuildResult:
        if isinstance(self.loader, DescriptionLoader):
            self.loader.clear()
        plugin_ids, entries = self.compile_routes()
        table = build_dispatch_table(entries)
        self._published.publish(table)
        logger.info("Routes rebuilt for plugins: {}", ", ".join(plugin_ids) or "<none>")
        return RebuildResult(plugins=plugin_ids, routes=len(table), table=table)

    def handle(self, template: str, method: str, invocation: Invocation) -> EncodedResponse:
        result = dispatch(self.table, template, method, invocation, self.manager)
        return encode_result(result, invocation.content_type, self.settings.response_caching)

    # ----------------------------
    # Documentation
    # ----------------------------

    def documentation_plugin(self, template: str) -> Optional[PluginDefinition]:
        entry = self.table.lookup(template, "get")
        if entry is None or not entry.is_documentation:
            return None
        return self.manager.get_definition(entry.plugin_id)

    def description_document(self, plugin_id: str) -> str:
        definition = self.manager.get_definition(plugin_id)
        source = getattr(self.loader, "source", None)
        if source is not None:
            return source(definition.description)
        return yaml.safe_dump(self.loader(definition.description).raw, sort_keys=False)

    def render_documentation(self, template: str) -> Optional[str]:
        definition = self.documentation_plugin(template)
        if definition is None:
            return None
        return _DOC_PAGE.format(
            title=html.escape(f"{definition.label} - Documentation"),
            ui=self.settings.swagger_ui_url.rstrip("/"),
            spec_url=f"{template}/{DESCRIPTION_DOCUMENT}",
        )


BUILTIN_PLUGINS = (PathbuilderApiV0, PathbuilderApiV1)


def build_service(
    settings: Optional[Settings] = None,
    store: Optional[GraphStore] = None,
) -> ApiService:
    """Service with the built-in plugins over `store`, routes already compiled."""
    settings = settings or get_settings()
    manager = PluginManager(BUILTIN_PLUGINS, store=store if store is not None else InMemoryGraphStore())
    service = ApiService(manager, settings)
    service.rebuild_routes()
    return service
