"""Orthogonal connector routing for family trees.

Provides:
- Bus routing: parent trunks, a shared horizontal bar and child branches
  per sibling group, with lanes separating bars that would overlap
- Partner links between the two cards of a couple
- A generic point-to-point orthogonal router with lane offsets
- Direct per-link parent -> child routing as an alternative style
- Horizontal/vertical crossing detection and line jumps drawn over crossings

All coordinates are in the layout frame (card centers, y grows downward).
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any, Callable, Optional, Sequence

from ..hierarchical.refinement import partner_pairs
from ..preprocessing import PersonIndex
from ..types import Cluster, LayoutSpacing, TreeNode
from .types import EPSILON, CardBox, Crossing, EdgeKind, RoutedPath, Segment

Point = tuple[float, float]

JumpHook = Callable[[list[RoutedPath], list[Crossing]], Sequence[RoutedPath]]
"""Receives the routed paths and their crossings, returns the paths to use."""


def card_box(node: TreeNode, spacing: LayoutSpacing) -> CardBox:
    """Card rectangle centered on a node position."""
    return CardBox(
        id=node.id,
        x=node.position.x,
        y=node.position.y,
        width=spacing.card_width,
        height=spacing.card_height,
    )


def _same(a: Point, b: Point) -> bool:
    return abs(a[0] - b[0]) < EPSILON and abs(a[1] - b[1]) < EPSILON


def _simplify(points: Sequence[Point]) -> list[Point]:
    """Drop duplicate consecutive points and collinear middle points."""
    deduped: list[Point] = []
    for pt in points:
        if deduped and _same(pt, deduped[-1]):
            continue
        deduped.append(pt)

    if len(deduped) < 3:
        return deduped

    simplified = [deduped[0]]
    for i in range(1, len(deduped) - 1):
        px, py = simplified[-1]
        cx, cy = deduped[i]
        nx, ny = deduped[i + 1]
        if abs(py - cy) < EPSILON and abs(cy - ny) < EPSILON:
            continue
        if abs(px - cx) < EPSILON and abs(cx - nx) < EPSILON:
            continue
        simplified.append((cx, cy))
    simplified.append(deduped[-1])
    return simplified


def points_to_segments(
    points: Sequence[Point], *, lane: int = 0, edge_id: str = ""
) -> list[Segment]:
    """
    Convert a polyline into axis-aligned segments.

    Raises:
        ValueError: If two consecutive points are not axis aligned
    """
    pts = _simplify(points)
    return [
        Segment.between(pts[i], pts[i + 1], lane=lane, edge_id=edge_id)
        for i in range(len(pts) - 1)
    ]


# =============================================================================
# Point-to-point Routing
# =============================================================================


def route_orthogonal(
    start: Point,
    end: Point,
    *,
    lane: int = 0,
    lane_spacing: float = 6.0,
    edge_id: str = "",
) -> list[Segment]:
    """
    Route an orthogonal path between two points.

    Aligned points get a single straight segment. Otherwise the path goes
    vertical-first when the vertical distance dominates (vertical,
    horizontal, vertical) and horizontal-first otherwise. The middle
    segment is offset by lane * lane_spacing.

    Returns:
        Segments from start to end (empty when the points coincide)
    """
    sx, sy = start
    tx, ty = end
    if _same(start, end):
        return []
    if abs(sx - tx) < EPSILON or abs(sy - ty) < EPSILON:
        return [Segment.between(start, end, lane=lane, edge_id=edge_id)]

    offset = lane * lane_spacing
    if abs(ty - sy) > abs(tx - sx):
        mid_y = (sy + ty) / 2 + offset
        bends = [(sx, mid_y), (tx, mid_y)]
    else:
        mid_x = (sx + tx) / 2 + offset
        bends = [(mid_x, sy), (mid_x, ty)]

    return points_to_segments([start] + bends + [end], lane=lane, edge_id=edge_id)


# =============================================================================
# Family Connectors
# =============================================================================


def build_bus_path(
    parents: Sequence[CardBox],
    children: Sequence[CardBox],
    bus_y: float,
    *,
    lane: int = 0,
    group_id: str = "family-0",
    overhang: float = 10.0,
) -> list[RoutedPath]:
    """
    Build the bus connecting a set of parents to their common children.

    Every parent gets a vertical trunk from its bottom edge down to the bar,
    the bar spans from the leftmost to the rightmost parent or child plus
    the overhang on both sides, and every child gets a vertical branch from
    the bar to its top edge.

    Args:
        parents: Parent cards
        children: Child cards
        bus_y: y of the horizontal bar
        lane: Lane the bar was assigned
        group_id: Shared id of all pieces of this bus
        overhang: How far the bar reaches past the outermost card centers

    Returns:
        Trunks, then the bar, then branches
    """
    parent_ids = [box.id for box in parents]
    child_ids = [box.id for box in children]
    paths: list[RoutedPath] = []

    for box in parents:
        path_id = f"{group_id}:trunk:{box.id}"
        paths.append(
            RoutedPath(
                id=path_id,
                kind=EdgeKind.PARENT_TRUNK,
                segments=[
                    Segment.between((box.x, box.bottom), (box.x, bus_y), lane=lane, edge_id=path_id)
                ],
                source_ids=[box.id],
                target_ids=list(child_ids),
                group_id=group_id,
                lane=lane,
            )
        )

    xs = [box.x for box in parents] + [box.x for box in children]
    if xs:
        path_id = f"{group_id}:bar"
        paths.append(
            RoutedPath(
                id=path_id,
                kind=EdgeKind.BUS_BAR,
                segments=[
                    Segment.between(
                        (min(xs) - overhang, bus_y),
                        (max(xs) + overhang, bus_y),
                        lane=lane,
                        edge_id=path_id,
                    )
                ],
                source_ids=list(parent_ids),
                target_ids=list(child_ids),
                group_id=group_id,
                lane=lane,
            )
        )

    for box in children:
        path_id = f"{group_id}:branch:{box.id}"
        paths.append(
            RoutedPath(
                id=path_id,
                kind=EdgeKind.CHILD_BRANCH,
                segments=[
                    Segment.between((box.x, bus_y), (box.x, box.top), lane=lane, edge_id=path_id)
                ],
                source_ids=list(parent_ids),
                target_ids=[box.id],
                group_id=group_id,
                lane=lane,
            )
        )

    return paths


def route_partner(a: CardBox, b: CardBox, *, edge_id: str = "partner-0") -> RoutedPath:
    """
    Connect two partners.

    Cards on the same row are joined by a horizontal segment between their
    facing edges (between centers when the cards overlap). Cards on
    different rows get a vertical-horizontal-vertical path through the
    midpoint y between the facing card edges.
    """
    if abs(a.y - b.y) < EPSILON:
        left, right = (a, b) if a.x <= b.x else (b, a)
        if left.right < right.left:
            points = [(left.right, left.y), (right.left, right.y)]
        else:
            points = [(left.x, left.y), (right.x, right.y)]
    else:
        upper, lower = (a, b) if a.y < b.y else (b, a)
        start = (upper.x, upper.bottom)
        end = (lower.x, lower.top)
        mid_y = (start[1] + end[1]) / 2
        points = [start, (start[0], mid_y), (end[0], mid_y), end]
        if upper is not a:
            points.reverse()

    return RoutedPath(
        id=edge_id,
        kind=EdgeKind.PARTNER_LINK,
        segments=points_to_segments(points, edge_id=edge_id),
        source_ids=[a.id],
        target_ids=[b.id],
    )


# =============================================================================
# Lane Assignment
# =============================================================================


def _row_keys(values: Sequence[float], tolerance: float) -> list[int]:
    """Band index per value; values within tolerance of a band's first value share it."""
    order = sorted(range(len(values)), key=lambda i: values[i])
    keys = [0] * len(values)
    band = -1
    band_start: Optional[float] = None
    for i in order:
        if band_start is None or values[i] - band_start > tolerance:
            band += 1
            band_start = values[i]
        keys[i] = band
    return keys


def assign_lanes(spans: Sequence[tuple[float, float, float]], tolerance: float) -> list[int]:
    """
    Greedy lane assignment for horizontal bars.

    Args:
        spans: (y, min_x, max_x) per bar
        tolerance: Bars whose y differ by at most this share a row

    Returns:
        Lane per bar; bars in the same row with overlapping x-ranges never
        share a lane
    """
    rows = _row_keys([y for y, _, _ in spans], tolerance)
    order = sorted(range(len(spans)), key=lambda i: (rows[i], spans[i][1], spans[i][2], i))

    lanes = [0] * len(spans)
    lane_ends: dict[int, list[float]] = {}
    for i in order:
        _, min_x, max_x = spans[i]
        ends = lane_ends.setdefault(rows[i], [])
        for lane, end in enumerate(ends):
            if end < min_x - EPSILON:
                ends[lane] = max_x
                lanes[i] = lane
                break
        else:
            ends.append(max_x)
            lanes[i] = len(ends) - 1
    return lanes


# =============================================================================
# Layout-wide Routing
# =============================================================================


def family_groups(
    clusters: Sequence[Cluster], index: PersonIndex
) -> list[tuple[list[Any], list[Any]]]:
    """
    Group children by their set of positioned parents.

    Returns:
        (parent_ids, child_ids) per group in discovery order; both lists
        are sorted left to right
    """
    positions = {node.id: node.position for cluster in clusters for node in cluster.nodes}
    groups: dict[frozenset[Any], tuple[list[Any], list[Any]]] = {}

    for cluster in clusters:
        for node in cluster.nodes:
            parents = [p for p in index.parents_of(node.id) if p in positions]
            if not parents:
                continue
            key = frozenset(parents)
            if key not in groups:
                groups[key] = (sorted(parents, key=lambda p: positions[p].x), [])
            groups[key][1].append(node.id)

    result = []
    for parents, children in groups.values():
        result.append((parents, sorted(children, key=lambda c: positions[c].x)))
    return result


def route_partner_links(
    clusters: Sequence[Cluster],
    index: PersonIndex,
    spacing: LayoutSpacing,
) -> list[RoutedPath]:
    """One partner link per disjoint partner pair, left partner as source."""
    paths: list[RoutedPath] = []
    for cluster in clusters:
        for a, b in partner_pairs(cluster.nodes, index):
            left, right = (a, b) if a.position.x <= b.position.x else (b, a)
            paths.append(
                route_partner(
                    card_box(left, spacing),
                    card_box(right, spacing),
                    edge_id=f"partner-{len(paths)}",
                )
            )
    return paths


def find_crossings(paths: Sequence[RoutedPath]) -> list[Crossing]:
    """
    Find points where a horizontal segment crosses a vertical one.

    Only proper crossings count: touching at an endpoint (such as a trunk
    meeting its bar) is not a crossing, and pieces of the same bus never
    cross each other.
    """
    horizontals: list[tuple[RoutedPath, Segment]] = []
    verticals: list[tuple[RoutedPath, Segment]] = []
    for path in paths:
        for segment in path.segments:
            if segment.length < EPSILON:
                continue
            if segment.is_horizontal:
                horizontals.append((path, segment))
            else:
                verticals.append((path, segment))

    crossings: list[Crossing] = []
    for h_path, h in horizontals:
        y = h.start[1]
        for v_path, v in verticals:
            if h_path is v_path:
                continue
            if h_path.group_id is not None and h_path.group_id == v_path.group_id:
                continue
            x = v.start[0]
            inside_h = h.min_x + EPSILON < x < h.max_x - EPSILON
            inside_v = v.min_y + EPSILON < y < v.max_y - EPSILON
            if inside_h and inside_v:
                crossings.append(Crossing(horizontal=h, vertical=v, point=(x, y)))
    return crossings


def add_jumps(
    paths: Sequence[RoutedPath],
    crossings: Sequence[Crossing],
    *,
    radius: float = 4.0,
    jump_vertical: bool = False,
) -> list[RoutedPath]:
    """
    Mark line jumps at crossings so path strings hop over the crossed line.

    Usable directly as a jump hook. The horizontal segment of each crossing
    jumps by default; with jump_vertical the vertical one does instead.
    Input paths are left untouched.

    Args:
        paths: Routed paths
        crossings: Crossings between their segments (see find_crossings)
        radius: Jump arc radius
        jump_vertical: Jump on vertical segments instead of horizontal ones

    Returns:
        Paths in the same order, with jumping segments copied
    """
    jumps: dict[int, list[Point]] = {}
    for crossing in crossings:
        segment = crossing.vertical if jump_vertical else crossing.horizontal
        jumps.setdefault(id(segment), []).append(crossing.point)

    result: list[RoutedPath] = []
    for path in paths:
        if not any(id(segment) in jumps for segment in path.segments):
            result.append(path)
            continue
        segments = [
            replace(segment, jumps=segment.jumps + jumps[id(segment)])
            if id(segment) in jumps
            else segment
            for segment in path.segments
        ]
        result.append(replace(path, segments=segments, jump_radius=radius))
    return result


def _apply_jump_hook(paths: list[RoutedPath], jump_hook: Optional[JumpHook]) -> list[RoutedPath]:
    if jump_hook is None:
        return paths
    return list(jump_hook(paths, find_crossings(paths)))


def route_family_edges(
    clusters: Sequence[Cluster],
    index: PersonIndex,
    spacing: LayoutSpacing,
    *,
    bus_gap: Optional[float] = None,
    lane_spacing: float = 6.0,
    bus_overhang: float = 10.0,
    jump_hook: Optional[JumpHook] = None,
) -> list[RoutedPath]:
    """
    Route all parent/child buses and partner links of a layout.

    Args:
        clusters: Arranged clusters
        index: Person index
        spacing: Card sizes and row geometry
        bus_gap: Distance from the lowest parent bottom edge to the bar
            (default: half the free space between generations)
        lane_spacing: Vertical offset per bar lane
        bus_overhang: How far each bar reaches past its outermost card centers
        jump_hook: Optional post-processor receiving paths and crossings

    Returns:
        Bus pieces for every sibling group, then partner links
    """
    if bus_gap is None:
        bus_gap = (spacing.generation_spacing - spacing.card_height) / 2

    positions = {node.id: node for cluster in clusters for node in cluster.nodes}
    groups = family_groups(clusters, index)

    buses = []
    for parents, children in groups:
        parent_boxes = [card_box(positions[p], spacing) for p in parents]
        child_boxes = [card_box(positions[c], spacing) for c in children]
        base_y = max(box.bottom for box in parent_boxes) + bus_gap
        xs = [box.x for box in parent_boxes + child_boxes]
        buses.append(
            (parent_boxes, child_boxes, base_y, min(xs) - bus_overhang, max(xs) + bus_overhang)
        )

    lanes = assign_lanes([(y, lo, hi) for _, _, y, lo, hi in buses], spacing.row_tolerance)

    paths: list[RoutedPath] = []
    for i, ((parent_boxes, child_boxes, base_y, _, _), lane) in enumerate(zip(buses, lanes)):
        paths.extend(
            build_bus_path(
                parent_boxes,
                child_boxes,
                base_y + lane * lane_spacing,
                lane=lane,
                group_id=f"family-{i}",
                overhang=bus_overhang,
            )
        )

    paths.extend(route_partner_links(clusters, index, spacing))
    return _apply_jump_hook(paths, jump_hook)


def route_parent_links(
    clusters: Sequence[Cluster],
    index: PersonIndex,
    spacing: LayoutSpacing,
    *,
    lane_spacing: float = 6.0,
    jump_hook: Optional[JumpHook] = None,
) -> list[RoutedPath]:
    """
    Route one connector per parent -> child link, plus partner links.

    Each link runs from the parent's bottom edge to the child's top edge
    through route_orthogonal; the parents of one child use consecutive
    lanes so their middle segments do not coincide.
    """
    nodes = {node.id: node for cluster in clusters for node in cluster.nodes}
    paths: list[RoutedPath] = []
    for parents, children in family_groups(clusters, index):
        for child_id in children:
            child = card_box(nodes[child_id], spacing)
            for lane, parent_id in enumerate(parents):
                parent = card_box(nodes[parent_id], spacing)
                path_id = f"link:{parent_id}:{child_id}"
                paths.append(
                    RoutedPath(
                        id=path_id,
                        kind=EdgeKind.PARENT_LINK,
                        segments=route_orthogonal(
                            (parent.x, parent.bottom),
                            (child.x, child.top),
                            lane=lane,
                            lane_spacing=lane_spacing,
                            edge_id=path_id,
                        ),
                        source_ids=[parent_id],
                        target_ids=[child_id],
                        lane=lane,
                    )
                )

    paths.extend(route_partner_links(clusters, index, spacing))
    return _apply_jump_hook(paths, jump_hook)


__all__ = [
    "JumpHook",
    "card_box",
    "points_to_segments",
    "route_orthogonal",
    "build_bus_path",
    "route_partner",
    "assign_lanes",
    "family_groups",
    "route_partner_links",
    "find_crossings",
    "add_jumps",
    "route_family_edges",
    "route_parent_links",
]
