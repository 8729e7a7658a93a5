from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path
from typing import Any

import ijson

from .graph_errors import REASON_GRAPH_UNAVAILABLE, GraphDataError


def _edge_record(raw: dict[str, Any]) -> dict[str, Any]:
    record: dict[str, Any] = {
        "source": raw.get("source", raw.get("u")),
        "target": raw.get("target", raw.get("v")),
        "length": raw.get("length", raw.get("distance_m")),
        "oneway": raw.get("oneway"),
    }
    for key in ("roadName", "road_name", "name"):
        if raw.get(key) is not None:
            record["roadName"] = raw[key]
            break
    return record


def _stream(path: Path, prefix: str) -> Iterator[Any]:
    try:
        with path.open("rb") as fh:
            yield from ijson.items(fh, prefix)
    except OSError as exc:
        raise GraphDataError(
            reason_code=REASON_GRAPH_UNAVAILABLE,
            message=f"graph asset could not be read: {path}",
            details={"path": str(path), "error": str(exc)},
        ) from exc
    except ijson.JSONError as exc:
        raise GraphDataError(
            reason_code=REASON_GRAPH_UNAVAILABLE,
            message=f"graph asset is not valid JSON: {path}",
            details={"path": str(path), "error": str(exc)},
        ) from exc


def read_json_records(path: Path) -> tuple[list[dict[str, Any]], list[dict[str, Any]]]:
    """Stream ``nodes.item`` and ``edges.item`` from a JSON graph asset."""
    nodes = [raw for raw in _stream(path, "nodes.item") if isinstance(raw, dict)]
    edges = [_edge_record(raw) for raw in _stream(path, "edges.item") if isinstance(raw, dict)]
    return nodes, edges
