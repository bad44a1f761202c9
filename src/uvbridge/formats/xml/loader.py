"""Loosely typed XML document loader for uVision project files.

uVision writes plain element trees with almost no attributes, so the loader
turns every element into either its text or a mapping of child names.  The
shape of a node therefore depends on cardinality: ``<Group>`` is a mapping when
a project has one group and a list of mappings when it has several.  The loader
deliberately keeps that ambiguity; consumers run list-like fields through
:func:`as_list` at the point where they expect a sequence.

>>> doc = parse_document("<Project><Targets><Target><TargetName>app</TargetName></Target></Targets></Project>")
>>> doc["Project"]["Targets"]["Target"]["TargetName"]
'app'
>>> as_list(doc["Project"]["Targets"]["Target"])[0]["TargetName"]
'app'
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from typing import Any, Dict, List, Mapping

from defusedxml import ElementTree as DEFUSED_ET
from defusedxml.common import DefusedXmlException

from ...core.types import MalformedDocument

TEXT_KEY = "_"


def _local_name(tag: str) -> str:
    if tag.startswith("{"):
        return tag.split("}", 1)[1]
    if ":" in tag:
        return tag.split(":", 1)[1]
    return tag


def _add_value(mapping: Dict[str, Any], key: str, value: Any) -> None:
    if key not in mapping:
        mapping[key] = value
        return
    existing = mapping[key]
    if isinstance(existing, list):
        existing.append(value)
    else:
        mapping[key] = [existing, value]


def _convert(element: ET.Element) -> Any:
    children = list(element)
    text = element.text or ""
    if not children and not element.attrib:
        return text

    node: Dict[str, Any] = {}
    for name, value in element.attrib.items():
        _add_value(node, _local_name(name), value)
    for child in children:
        _add_value(node, _local_name(child.tag), _convert(child))
    if text.strip():
        node[TEXT_KEY] = text
    return node


def parse_document(text: str) -> Dict[str, Any]:
    """Parse ``text`` into ``{root_name: value}``.

    Raises:
        MalformedDocument: when ``text`` is not well-formed XML or uses
            constructs refused by :mod:`defusedxml` (entities, external DTDs).
    """

    stripped = text.lstrip("\ufeff").strip()
    if not stripped:
        raise MalformedDocument("Project document is empty")
    try:
        root = DEFUSED_ET.fromstring(stripped)
    except (ET.ParseError, DefusedXmlException) as exc:
        raise MalformedDocument(f"Project document is not well-formed XML: {exc}") from exc
    return {_local_name(root.tag): _convert(root)}


def as_list(value: Any) -> List[Any]:
    """Normalise a single-or-many field into a list."""

    if value is None:
        return []
    if isinstance(value, list):
        return value
    if isinstance(value, tuple):
        return list(value)
    return [value]


def node_at(node: Any, *keys: str) -> Any:
    """Descend through nested mappings, raising on the first missing key."""

    current = node
    walked: List[str] = []
    for key in keys:
        walked.append(key)
        if not isinstance(current, Mapping) or key not in current:
            raise MalformedDocument(f"Missing <{'/'.join(walked)}> in project document")
        current = current[key]
    return current


def text_at(node: Any, *keys: str, default: str = "") -> str:
    """Return the text stored at ``keys`` or ``default`` when the leaf is absent.

    Every key except the last must exist; a missing leaf is treated as an empty
    element because uVision omits empty option fields in some versions.
    """

    *parents, leaf = keys
    parent = node_at(node, *parents) if parents else node
    if not isinstance(parent, Mapping):
        raise MalformedDocument(f"<{'/'.join(parents)}> is not an element container")
    value = parent.get(leaf)
    if value is None:
        return default
    if isinstance(value, Mapping):
        return str(value.get(TEXT_KEY, default))
    if isinstance(value, list):
        raise MalformedDocument(f"<{'/'.join(keys)}> appears more than once")
    return str(value)


__all__ = ["TEXT_KEY", "as_list", "node_at", "parse_document", "text_at"]
