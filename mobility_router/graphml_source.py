"""GraphML adapter producing flat node/edge records for the graph builder.

The key indirection (``<key id="d4" attr.name="lat">``) is resolved here, once
per document, so the graph core only ever sees semantic field names.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .graph_errors import REASON_GRAPH_UNAVAILABLE, GraphDataError

NODE_FIELDS: dict[str, str] = {
    "lat": "lat",
    "y": "lat",
    "lon": "lon",
    "x": "lon",
}
EDGE_FIELDS: dict[str, str] = {
    "length": "length",
    "name": "roadName",
    "oneway": "oneway",
}
# OSMnx exports use these key ids; honoured when a document omits <key> declarations.
LEGACY_KEY_FIELDS: dict[str, str] = {
    "d4": "lat",
    "d5": "lon",
    "d13": "roadName",
    "d16": "length",
}


def local_name(tag: str) -> str:
    """Strip ``{namespace}`` or ``prefix:`` qualifiers from an element tag."""
    if "}" in tag:
        tag = tag.rsplit("}", 1)[1]
    if ":" in tag:
        tag = tag.rsplit(":", 1)[1]
    return tag


@dataclass(frozen=True)
class GraphMLKeyTable:
    attr_names: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_root(cls, root: ET.Element) -> GraphMLKeyTable:
        attr_names: dict[str, str] = {}
        for child in root:
            if local_name(child.tag) != "key":
                continue
            key_id = child.attrib.get("id")
            attr_name = child.attrib.get("attr.name")
            if key_id and attr_name:
                attr_names[key_id] = attr_name
        return cls(attr_names=attr_names)

    def field_for(self, key_id: str, fields: dict[str, str]) -> str | None:
        attr_name = self.attr_names.get(key_id)
        if attr_name is not None:
            return fields.get(attr_name)
        legacy = LEGACY_KEY_FIELDS.get(key_id)
        if legacy is not None and legacy in fields.values():
            return legacy
        return None


def _data_fields(element: ET.Element, keys: GraphMLKeyTable, fields: dict[str, str]) -> dict[str, str]:
    out: dict[str, str] = {}
    for child in element:
        if local_name(child.tag) != "data":
            continue
        key_id = child.attrib.get("key")
        text = child.text
        if not key_id or text is None:
            continue
        semantic = keys.field_for(key_id, fields)
        if semantic is not None:
            out[semantic] = text.strip()
    return out


def _graph_element(root: ET.Element) -> ET.Element:
    for child in root:
        if local_name(child.tag) == "graph":
            return child
    return root


def records_from_root(root: ET.Element) -> tuple[list[dict[str, Any]], list[dict[str, Any]]]:
    keys = GraphMLKeyTable.from_root(root)
    graph = _graph_element(root)
    nodes: list[dict[str, Any]] = []
    edges: list[dict[str, Any]] = []
    for element in graph:
        tag = local_name(element.tag)
        if tag == "node":
            record: dict[str, Any] = {"id": element.attrib.get("id")}
            record.update(_data_fields(element, keys, NODE_FIELDS))
            nodes.append(record)
        elif tag == "edge":
            record = {
                "source": element.attrib.get("source"),
                "target": element.attrib.get("target"),
            }
            record.update(_data_fields(element, keys, EDGE_FIELDS))
            edges.append(record)
    return nodes, edges


def parse_graphml_text(text: str) -> tuple[list[dict[str, Any]], list[dict[str, Any]]]:
    try:
        root = ET.fromstring(text)
    except ET.ParseError as exc:
        raise GraphDataError(
            reason_code=REASON_GRAPH_UNAVAILABLE,
            message=f"GraphML document could not be parsed: {exc}",
        ) from exc
    return records_from_root(root)


def read_graphml_records(path: Path) -> tuple[list[dict[str, Any]], list[dict[str, Any]]]:
    try:
        tree = ET.parse(path)
    except (OSError, ET.ParseError) as exc:
        raise GraphDataError(
            reason_code=REASON_GRAPH_UNAVAILABLE,
            message=f"GraphML file could not be read: {path}",
            details={"path": str(path), "error": str(exc)},
        ) from exc
    return records_from_root(tree.getroot())
