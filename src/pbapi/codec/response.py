from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Optional, Union

from pydantic import ConfigDict, TypeAdapter

from pbapi.codec.xml import encode_xml
from pbapi.dispatch.result import Err, Ok, ResultEnvelope

DEFAULT_CONTENT_TYPE = "application/json"

# request Content-Type -> serializer format
FORMAT_MAP = {
    "application/json": "json",
    "text/xml": "xml",
}

CACHE_CONTEXTS = ("url.query_args", "url.path")

BINARY_CONTENT_TYPE = "application/octet-stream"

# nested bytes are base64 encoded, everything else becomes plain JSON-able data
_PLAIN_DATA = TypeAdapter(Any, config=ConfigDict(ser_json_bytes="base64"))


@dataclass(frozen=True)
class EncodedResponse:
    status_code: int
    body: Union[str, bytes]
    headers: dict[str, str] = field(default_factory=dict)
    cacheable: bool = False
    cache_contexts: tuple[str, ...] = ()

    @property
    def media_type(self) -> Optional[str]:
        return self.headers.get("Content-Type")


def negotiate_format(content_type: Optional[str]) -> tuple[str, Optional[str]]:
    """Return (media type, format); format is None when unsupported."""
    media_type = (content_type or DEFAULT_CONTENT_TYPE).split(";", 1)[0].strip().lower()
    if not media_type:
        media_type = DEFAULT_CONTENT_TYPE
    return media_type, FORMAT_MAP.get(media_type)


def serialize(data: Any, fmt: str) -> str:
    if fmt == "json":
        return json.dumps(data, separators=(",", ":"), ensure_ascii=False)
    if fmt == "xml":
        return encode_xml(data)
    raise ValueError(f"Unknown format: {fmt}")


def _normalize(data: Any) -> Any:
    if isinstance(data, bool):
        return "TRUE" if data else "FALSE"
    if isinstance(data, (bytes, bytearray)):
        return bytes(data)
    # models, sets, datetimes and the like, at any depth
    return _PLAIN_DATA.dump_python(data, mode="json")


def build_response(
    data: Any,
    content_type: Optional[str] = None,
    caching: bool = False,
) -> EncodedResponse:
    """
    Serialize operation output.

    Composite data (mappings, sequences, pydantic models) is encoded in the
    format named by the request's Content-Type, JSON when absent. Scalars go
    out verbatim as text/plain and raw bytes as application/octet-stream.
    An unsupported Content-Type yields a 400.
    """
    payload = _normalize(data)
    status = 200

    if isinstance(payload, (dict, list)):
        media_type, fmt = negotiate_format(content_type)
        if fmt is not None:
            body = serialize(payload, fmt)
            headers = {"Content-Type": media_type}
        else:
            body = f"This API does not support the requested content-type: {media_type}"
            headers = {"Content-Type": "text/plain"}
            status = 400
    elif isinstance(payload, bytes):
        body = payload
        headers = {"Content-Type": BINARY_CONTENT_TYPE}
    else:
        body = "" if payload is None else str(payload)
        headers = {"Content-Type": "text/plain"}

    return EncodedResponse(
        status_code=status,
        body=body,
        headers=headers,
        cacheable=caching,
        cache_contexts=CACHE_CONTEXTS if caching else (),
    )


def build_error_response(
    message: str,
    status_code: int = 400,
    caching: bool = False,
) -> EncodedResponse:
    # no negotiation for errors: the message is always plain text
    response = build_response(message, None, caching)
    return EncodedResponse(
        status_code=status_code,
        body=response.body,
        headers=response.headers,
        cacheable=response.cacheable,
        cache_contexts=response.cache_contexts,
    )


def encode_result(
    result: ResultEnvelope,
    content_type: Optional[str] = None,
    caching: bool = False,
) -> EncodedResponse:
    if isinstance(result, Ok):
        return build_response(result.value, content_type, caching)
    if isinstance(result, Err):
        return build_error_response(result.message, result.status or 400, caching)
    raise TypeError(f"Not a result envelope: {result!r}")
