"""
FastAPI binding.

The host router can only bind routes to callables with fixed signatures, so
every compiled route is served by one of four generic handlers chosen by the
number of path parameters. The handler recovers the matched template from the
request scope and hands everything else to ApiService.
"""

from __future__ import annotations

from typing import Any, Callable, Optional

from fastapi import FastAPI, Request
from fastapi.responses import HTMLResponse, PlainTextResponse, Response
from loguru import logger
from starlette.concurrency import run_in_threadpool

from pbapi.codec.response import EncodedResponse
from pbapi.config.settings import Settings
from pbapi.dispatch.dispatcher import Invocation
from pbapi.orchestrator.api_service import DESCRIPTION_DOCUMENT, ApiService, build_service
from pbapi.routing.model import RouteEntry
from pbapi.routing.signatures import handler_signature


def _matched_template(request: Request) -> str:
    route = request.scope.get("route")
    return getattr(route, "path", request.url.path)


def to_http_response(encoded: EncodedResponse, settings: Settings) -> Response:
    headers = {k: v for k, v in encoded.headers.items() if k != "Content-Type"}
    if encoded.cacheable:
        headers["Cache-Control"] = f"public, max-age={settings.cache_max_age}"
    else:
        headers["Cache-Control"] = "no-cache"
    return Response(
        content=encoded.body,
        status_code=encoded.status_code,
        headers=headers,
        media_type=encoded.media_type,
    )


class GenericHandlers:
    def __init__(self, service: ApiService):
        self.service = service

    async def no_param_handler(self, request: Request) -> Response:
        return await self._handle(request)

    async def one_param_handler(self, request: Request, first: str) -> Response:
        return await self._handle(request, first)

    async def two_param_handler(self, request: Request, first: str, second: str) -> Response:
        return await self._handle(request, first, second)

    async def three_param_handler(
        self, request: Request, first: str, second: str, third: str
    ) -> Response:
        return await self._handle(request, first, second, third)

    def for_arity(self, arity: int) -> Callable[..., Any]:
        return getattr(self, handler_signature(arity).name)

    async def _handle(self, request: Request, *params: str) -> Response:
        method = request.method.lower()
        invocation = Invocation(
            path_values=tuple(params),
            query_values=dict(request.query_params),
            body=await request.body() if method == "post" else None,
            content_type=request.headers.get("content-type"),
        )
        encoded = await run_in_threadpool(
            self.service.handle, _matched_template(request), method, invocation
        )
        return to_http_response(encoded, self.service.settings)

    async def render_documentation(self, request: Request) -> Response:
        template = _matched_template(request)
        page = self.service.render_documentation(template)
        if page is None:
            return PlainTextResponse(f"No such API route: {template}", status_code=400)
        return HTMLResponse(page)

    async def description_document(self, request: Request) -> Response:
        prefix = _matched_template(request)[: -len(DESCRIPTION_DOCUMENT) - 1]
        definition = self.service.documentation_plugin(prefix)
        if definition is None:
            return PlainTextResponse(f"No such API route: {prefix}", status_code=400)
        text = await run_in_threadpool(self.service.description_document, definition.id)
        return PlainTextResponse(text, media_type="application/yaml")


def _add_route(app: FastAPI, handlers: GenericHandlers, entry: RouteEntry) -> None:
    if entry.is_documentation:
        app.add_api_route(
            entry.concrete_template,
            handlers.render_documentation,
            methods=["GET"],
            name=entry.route_name,
            include_in_schema=False,
        )
        app.add_api_route(
            f"{entry.concrete_template}/{DESCRIPTION_DOCUMENT}",
            handlers.description_document,
            methods=["GET"],
            name=f"{entry.route_name}.description",
            include_in_schema=False,
        )
        return

    app.add_api_route(
        entry.concrete_template,
        handlers.for_arity(entry.handler_arity),
        methods=[entry.http_method.upper()],
        name=entry.route_name,
        include_in_schema=False,
    )


def register_routes(app: FastAPI, service: ApiService) -> int:
    handlers = GenericHandlers(service)
    count = 0
    for entry in service.table.entries():
        _add_route(app, handlers, entry)
        count += 1
    logger.info("Registered {} API routes", count)
    return count


def create_app(service: Optional[ApiService] = None) -> FastAPI:
    service = service or build_service()
    app = FastAPI(title="pbapi", docs_url=None, redoc_url=None, openapi_url=None)
    app.state.service = service
    register_routes(app, service)
    return app
