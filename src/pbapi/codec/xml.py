from __future__ import annotations

import re
import xml.etree.ElementTree as ET
from typing import Any

ROOT_NODE = "response"

_XML_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_.\-]*$")


def _is_valid_name(name: str) -> bool:
    return bool(_XML_NAME.match(name)) and not name.lower().startswith("xml")


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "1" if value else "0"
    return str(value)


def _fill(node: ET.Element, value: Any) -> None:
    if isinstance(value, dict):
        for key, child in value.items():
            _append(node, str(key), child)
    elif isinstance(value, (list, tuple)):
        for idx, child in enumerate(value):
            item = ET.SubElement(node, "item", {"key": str(idx)})
            _fill(item, child)
    else:
        node.text = _text(value)


def _append(parent: ET.Element, key: str, value: Any) -> None:
    if not _is_valid_name(key):
        node = ET.SubElement(parent, "item", {"key": key})
        _fill(node, value)
        return

    # lists under a named key repeat the element: {"a": [1, 2]} -> <a>1</a><a>2</a>
    if isinstance(value, (list, tuple)):
        for child in value:
            node = ET.SubElement(parent, key)
            _fill(node, child)
        return

    node = ET.SubElement(parent, key)
    _fill(node, value)


def encode_xml(data: Any, root: str = ROOT_NODE) -> str:
    node = ET.Element(root)
    _fill(node, data)
    body = ET.tostring(node, encoding="unicode")
    return f'<?xml version="1.0"?>\n{body}\n'
