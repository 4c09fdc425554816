from __future__ import annotations

from dataclasses import dataclass

from pbapi.errors import UnsupportedArity

MAX_PATH_PARAMS = 3

GENERIC_PARAMETER_NAMES = ("first", "second", "third")

_HANDLER_NAMES = (
    "no_param_handler",
    "one_param_handler",
    "two_param_handler",
    "three_param_handler",
)


@dataclass(frozen=True)
class OperationSignature:
    name: str
    parameters: tuple[str, ...]


# arity -> generic handler signature, request object excluded
HANDLER_SIGNATURES: dict[int, OperationSignature] = {
    k: OperationSignature(name=_HANDLER_NAMES[k], parameters=GENERIC_PARAMETER_NAMES[:k])
    for k in range(MAX_PATH_PARAMS + 1)
}


def handler_signature(arity: int) -> OperationSignature:
    if arity < 0 or arity > MAX_PATH_PARAMS:
        raise UnsupportedArity(arity, MAX_PATH_PARAMS)
    return HANDLER_SIGNATURES[arity]


def signature_for(arity: int) -> tuple[str, ...]:
    """Ordered generic parameter names of the handler taking `arity` path values."""
    return handler_signature(arity).parameters
