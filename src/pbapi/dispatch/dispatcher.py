from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Protocol

from loguru import logger

from pbapi.dispatch.result import Err, Ok, ResultEnvelope
from pbapi.errors import DispatchInvariantError, PluginNotFound
from pbapi.routing.model import RouteEntry
from pbapi.routing.signatures import signature_for
from pbapi.routing.table import DispatchTable


class ApiOperations(Protocol):
    def invoke(self, name: str, arguments: Mapping[str, Any]) -> Any: ...


class PluginFactory(Protocol):
    def create_instance(self, plugin_id: str) -> ApiOperations: ...


@dataclass(frozen=True)
class Invocation:
    """One incoming request, already split by the HTTP layer."""

    path_values: tuple[str, ...] = ()
    query_values: Mapping[str, str] = field(default_factory=dict)
    body: Optional[bytes] = None
    content_type: Optional[str] = None


def decode_body(body: Optional[bytes]) -> Any:
    """JSON if it parses, otherwise the raw body as text (bytes when not UTF-8)."""
    try:
        raw = (body or b"").decode("utf-8")
    except UnicodeDecodeError:
        return bytes(body or b"")
    try:
        return json.loads(raw)
    except ValueError:
        return raw


def build_arguments(entry: RouteEntry, method: str, invocation: Invocation) -> dict[str, Any]:
    generic = signature_for(entry.handler_arity)
    if len(invocation.path_values) != len(generic):
        raise DispatchInvariantError(
            f"{entry.concrete_template} expects {len(generic)} path values, "
            f"got {len(invocation.path_values)}"
        )

    args: dict[str, Any] = {}
    for idx, value in enumerate(invocation.path_values):
        args[entry.parameter_map[generic[idx]]] = value

    if method == "post":
        args["data"] = decode_body(invocation.body)

    # absent query parameters are left out; operations supply their defaults
    for name in entry.query_parameters:
        if name in invocation.query_values:
            args[name] = invocation.query_values[name]

    return args


def dispatch(
    table: DispatchTable,
    template: str,
    method: str,
    invocation: Invocation,
    plugins: PluginFactory,
) -> ResultEnvelope:
    methods = table.methods_for(template)
    if methods is None:
        return Err(f"No such API route: {template}", 400)

    method = method.lower()
    entry = methods.get(method)
    if entry is None:
        return Err(f"Endpoint: {template} does not handle {method} requests.", 400)

    args = build_arguments(entry, method, invocation)
    logger.debug(
        "Dispatching {} {} -> {}.{}({})",
        method.upper(),
        template,
        entry.plugin_id,
        entry.operation_name,
        ", ".join(args),
    )

    try:
        api = plugins.create_instance(entry.plugin_id)
    except PluginNotFound as exc:
        logger.error("Route {} points to a missing plugin: {}", template, exc)
        return Err(str(exc), 500)

    try:
        result = api.invoke(entry.operation_name, args)
    except Exception as exc:
        logger.warning("{}.{} failed: {}", entry.plugin_id, entry.operation_name, exc)
        return Err(str(exc), 400)

    return Ok(result)
