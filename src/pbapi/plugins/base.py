from __future__ import annotations

import inspect
from typing import Any, Callable, ClassVar, Mapping, Optional, TypeVar

from pydantic import ConfigDict, validate_call

from pbapi.domain.models import PluginDefinition
from pbapi.errors import UnknownOperation

F = TypeVar("F", bound=Callable[..., Any])
P = TypeVar("P", bound=type)

_OPERATION_FLAG = "__pbapi_operation__"


def operation(fn: F) -> F:
    """
    Mark a plugin method as callable through the API.

    Arguments are validated and coerced against the method's annotations,
    so path and query strings like "10" or "true" arrive as int / bool.
    """
    wrapped = validate_call(config=ConfigDict(arbitrary_types_allowed=True))(fn)
    setattr(wrapped, _OPERATION_FLAG, True)
    return wrapped  # type: ignore[return-value]


def api_plugin(
    *,
    id: str,
    label: str,
    version: int,
    description: str,
    permissions: Optional[dict[str, str]] = None,
) -> Callable[[P], P]:
    def decorate(cls: P) -> P:
        cls.definition = PluginDefinition(  # type: ignore[attr-defined]
            id=id,
            label=label,
            version=version,
            description=description,
            permissions=permissions or {},
        )
        return cls

    return decorate


class ApiPlugin:
    """
    Base class for API plugins.

    The set of invocable operations is fixed per class: every method
    decorated with @operation, inherited ones included. Nothing else can be
    reached through `invoke`.
    """

    definition: ClassVar[PluginDefinition]
    _operations: ClassVar[dict[str, tuple[str, ...]]] = {}

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        ops: dict[str, tuple[str, ...]] = {}
        for klass in reversed(cls.__mro__):
            for name, attr in vars(klass).items():
                if getattr(attr, _OPERATION_FLAG, False):
                    params = [
                        p.name
                        for p in inspect.signature(attr).parameters.values()
                        if p.name != "self"
                    ]
                    ops[name] = tuple(params)
        cls._operations = ops

    @property
    def plugin_id(self) -> str:
        return self.definition.id

    @classmethod
    def operations(cls) -> dict[str, tuple[str, ...]]:
        """Operation name -> declared parameter names, in declaration order."""
        return dict(cls._operations)

    def invoke(self, name: str, arguments: Mapping[str, Any]) -> Any:
        params = self._operations.get(name)
        if params is None:
            raise UnknownOperation(self.plugin_id, name)

        unexpected = sorted(set(arguments) - set(params))
        if unexpected:
            raise TypeError(f"{name}() got unexpected parameters: {', '.join(unexpected)}")

        return getattr(self, name)(**arguments)
