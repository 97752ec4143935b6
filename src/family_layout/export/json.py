"""
JSON export for family tree layouts.

Produces plain, renderer-facing structures: clusters with their positioned
persons, and routed connectors with their segments and SVG path strings.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any, Callable, Optional

if TYPE_CHECKING:
    from ..orthogonal.types import RoutedPath, Segment
    from ..types import TreeNode


def _round(value: float, precision: Optional[int]) -> float:
    return value if precision is None else round(value, precision)


def _node_dict(
    node: TreeNode,
    precision: Optional[int],
    get_node_attrs: Optional[Callable[[TreeNode], dict[str, Any]]],
) -> dict[str, Any]:
    person = node.person
    data: dict[str, Any] = {
        "id": person.id,
        "name": person.display_name,
        "x": _round(node.position.x, precision),
        "y": _round(node.position.y, precision),
        "generation": node.generation,
        "clusterId": node.cluster_id,
    }
    if get_node_attrs is not None:
        data.update(get_node_attrs(node))
    return data


def _segment_dict(segment: Segment, precision: Optional[int]) -> dict[str, Any]:
    return {
        "orientation": segment.orientation.value,
        "start": [_round(segment.start[0], precision), _round(segment.start[1], precision)],
        "end": [_round(segment.end[0], precision), _round(segment.end[1], precision)],
        "lane": segment.lane,
        "jumps": [[_round(x, precision), _round(y, precision)] for x, y in segment.jumps],
    }


def _path_dict(
    path: RoutedPath, precision: Optional[int], include_segments: bool
) -> dict[str, Any]:
    data: dict[str, Any] = {
        "id": path.id,
        "kind": path.kind.value,
        "sourceIds": list(path.source_ids),
        "targetIds": list(path.target_ids),
        "groupId": path.group_id,
        "lane": path.lane,
        "path": path.path,
    }
    if include_segments:
        data["segments"] = [_segment_dict(s, precision) for s in path.segments]
    return data


def to_dict(
    layout: Any,
    *,
    precision: Optional[int] = 2,
    include_segments: bool = True,
    get_node_attrs: Optional[Callable[[TreeNode], dict[str, Any]]] = None,
) -> dict[str, Any]:
    """
    Export a layout to plain dicts and lists.

    Args:
        layout: A FamilyTreeLayout after run(), or a LayoutResult
        precision: Decimal places for coordinates (None keeps full floats)
        include_segments: Include per-segment geometry next to the path string
        get_node_attrs: Callable(node) -> dict of extra node fields

    Returns:
        {"clusters": [...], "paths": [...]}
    """
    clusters = []
    for cluster in layout.clusters:
        clusters.append(
            {
                "id": cluster.id,
                "center": {
                    "x": _round(cluster.center.x, precision),
                    "y": _round(cluster.center.y, precision),
                },
                "nodes": [_node_dict(n, precision, get_node_attrs) for n in cluster.nodes],
            }
        )

    return {
        "clusters": clusters,
        "paths": [_path_dict(p, precision, include_segments) for p in layout.paths],
    }


def to_json(
    layout: Any,
    *,
    indent: Optional[int] = 2,
    precision: Optional[int] = 2,
    include_segments: bool = True,
    get_node_attrs: Optional[Callable[[TreeNode], dict[str, Any]]] = None,
) -> str:
    """
    Export a layout to a JSON string.

    Args:
        layout: A FamilyTreeLayout after run(), or a LayoutResult
        indent: JSON indentation (None for compact output)
        precision: Decimal places for coordinates
        include_segments: Include per-segment geometry
        get_node_attrs: Callable(node) -> dict of extra (JSON serializable) node fields

    Returns:
        JSON string
    """
    data = to_dict(
        layout,
        precision=precision,
        include_segments=include_segments,
        get_node_attrs=get_node_attrs,
    )
    return json.dumps(data, indent=indent)


__all__ = [
    "to_dict",
    "to_json",
]
