from __future__ import annotations

import re
from typing import Iterable, List

from loguru import logger

from pbapi.domain.models import ApiDescription, OperationDescription
from pbapi.errors import MissingPathPlaceholder, TooManyPathParameters, UnsupportedMethod
from pbapi.routing.model import DOCUMENTATION_OPERATION, RouteEntry
from pbapi.routing.signatures import MAX_PATH_PARAMS, signature_for
from pbapi.routing.table import DispatchTable

DEFAULT_READ_PERMISSION = "pbapi.read"
DEFAULT_WRITE_PERMISSION = "pbapi.write"

_PLACEHOLDER = re.compile(r"\{([^{}/]+)\}")


def build_prefix(api_prefix: str, version: int) -> str:
    return f"{api_prefix.rstrip('/')}/v{version}"


def default_permission(
    method: str,
    read_permission: str = DEFAULT_READ_PERMISSION,
    write_permission: str = DEFAULT_WRITE_PERMISSION,
) -> str:
    m = method.lower()
    if m == "get":
        return read_permission
    if m in ("post", "delete"):
        return write_permission
    raise UnsupportedMethod(method)


def _dedupe(items: Iterable[str]) -> tuple[str, ...]:
    seen: set[str] = set()
    out: list[str] = []
    for i in items:
        if i in seen:
            continue
        seen.add(i)
        out.append(i)
    return tuple(out)


def _rewrite_path(path: str, path_params: list[str], generic: tuple[str, ...]) -> str:
    renames = dict(zip(path_params, generic))
    present = set(_PLACEHOLDER.findall(path))
    for name in path_params:
        if name not in present:
            raise MissingPathPlaceholder(path, name)

    # single pass, so a semantic name equal to a generic name is not renamed twice
    def _sub(m: re.Match) -> str:
        name = m.group(1)
        return "{" + renames.get(name, name) + "}"

    return _PLACEHOLDER.sub(_sub, path)


def compile_operation(
    path: str,
    method: str,
    operation: OperationDescription,
    prefix: str,
    plugin_id: str,
    read_permission: str = DEFAULT_READ_PERMISSION,
    write_permission: str = DEFAULT_WRITE_PERMISSION,
) -> RouteEntry:
    path_params = operation.path_parameters()
    query_params = operation.query_parameters()

    arity = len(path_params)
    if arity > MAX_PATH_PARAMS:
        raise TooManyPathParameters(path, arity, MAX_PATH_PARAMS)
    generic = signature_for(arity)

    # positional correspondence: i-th generic name <-> i-th declared path param
    parameter_map = dict(zip(generic, path_params))
    template = prefix + _rewrite_path(path, path_params, generic)

    permissions = [default_permission(method, read_permission, write_permission)]
    permissions.extend(operation.declared_permissions())

    return RouteEntry(
        concrete_template=template,
        http_method=method,
        operation_name=operation.operation_id,
        handler_arity=arity,
        plugin_id=plugin_id,
        parameter_map=parameter_map,
        query_parameters=_dedupe(query_params),
        required_permissions=_dedupe(permissions),
    )


def documentation_entry(
    prefix: str,
    plugin_id: str,
    read_permission: str = DEFAULT_READ_PERMISSION,
) -> RouteEntry:
    return RouteEntry(
        concrete_template=prefix,
        http_method="get",
        operation_name=DOCUMENTATION_OPERATION,
        handler_arity=0,
        plugin_id=plugin_id,
        required_permissions=(read_permission,),
    )


def compile_description(
    description: ApiDescription,
    prefix: str,
    plugin_id: str,
    read_permission: str = DEFAULT_READ_PERMISSION,
    write_permission: str = DEFAULT_WRITE_PERMISSION,
) -> List[RouteEntry]:
    """
    Turn one plugin's API description into route entries.

    Every (path, method) pair becomes one RouteEntry whose template uses the
    generic handler parameter names, plus one documentation entry at
    `prefix`. Any error aborts the whole description; nothing is returned
    partially.
    """
    entries: list[RouteEntry] = []

    for path, methods in description.paths.items():
        for method, operation in methods.items():
            entry = compile_operation(
                path,
                method,
                operation,
                prefix,
                plugin_id,
                read_permission=read_permission,
                write_permission=write_permission,
            )
            logger.debug(
                "Compiled {} {} -> {} ({})",
                entry.http_method.upper(),
                entry.concrete_template,
                entry.operation_name,
                entry.handler_name,
            )
            entries.append(entry)

    entries.append(documentation_entry(prefix, plugin_id, read_permission=read_permission))
    return entries


def build_dispatch_table(entries: Iterable[RouteEntry]) -> DispatchTable:
    return DispatchTable.from_entries(entries)
