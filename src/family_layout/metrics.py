"""
Layout quality metrics.

Provides checks of the geometric contracts of a family tree layout:
- Partner spacing: partners exactly one partner spacing apart on one row
- Row overlaps: row-mates closer than the minimum block spacing
- Generation order: children drawn below their parents
- Path crossings: horizontal/vertical connector crossings

All metrics work with final node positions (and routed paths) of a run.
"""

from __future__ import annotations

from typing import Any, Sequence

from .hierarchical.refinement import partner_pairs, row_bands
from .orthogonal.edge_routing import find_crossings
from .orthogonal.types import RoutedPath
from .preprocessing import PersonIndex
from .types import Cluster, LayoutSpacing


def partner_spacing_errors(
    clusters: Sequence[Cluster],
    index: PersonIndex,
    spacing: LayoutSpacing,
    tolerance: float = 1e-6,
) -> list[tuple[Any, Any, float]]:
    """
    Find partner pairs that are not exactly one partner spacing apart.

    Args:
        clusters: Positioned clusters
        index: Person index
        spacing: Provides partner_spacing
        tolerance: Allowed absolute error

    Returns:
        List of (left_id, right_id, error) where error is
        |(|dx| - partner_spacing)| + |dy|
    """
    errors: list[tuple[Any, Any, float]] = []
    for cluster in clusters:
        for a, b in partner_pairs(cluster.nodes, index):
            left, right = (a, b) if a.position.x <= b.position.x else (b, a)
            dx = right.position.x - left.position.x
            dy = right.position.y - left.position.y
            error = abs(dx - spacing.partner_spacing) + abs(dy)
            if error > tolerance:
                errors.append((left.id, right.id, error))
    return errors


def row_overlaps(
    clusters: Sequence[Cluster],
    index: PersonIndex,
    spacing: LayoutSpacing,
    tolerance: float = 1e-6,
) -> list[tuple[Any, Any, float]]:
    """
    Find neighbouring row-mates closer than allowed.

    Partners must be partner_spacing apart; any other neighbours at least
    node_spacing apart.

    Returns:
        List of (left_id, right_id, gap) for every violation
    """
    violations: list[tuple[Any, Any, float]] = []
    for cluster in clusters:
        couples = set()
        for a, b in partner_pairs(cluster.nodes, index):
            couples.add(frozenset((a.id, b.id)))

        for row in row_bands(cluster.nodes, spacing.row_tolerance):
            ranked = sorted(row, key=lambda n: n.position.x)
            for left, right in zip(ranked, ranked[1:]):
                gap = right.position.x - left.position.x
                if frozenset((left.id, right.id)) in couples:
                    required = spacing.partner_spacing
                else:
                    required = spacing.node_spacing
                if gap < required - tolerance:
                    violations.append((left.id, right.id, gap))
    return violations


def generation_order_violations(
    clusters: Sequence[Cluster],
    index: PersonIndex,
) -> list[tuple[Any, Any]]:
    """
    Find children not drawn strictly below a parent.

    Returns:
        List of (parent_id, child_id)
    """
    positions = {node.id: node.position for cluster in clusters for node in cluster.nodes}
    violations: list[tuple[Any, Any]] = []
    for child_id, child_pos in positions.items():
        for parent_id in index.parents_of(child_id):
            parent_pos = positions.get(parent_id)
            if parent_pos is not None and child_pos.y <= parent_pos.y:
                violations.append((parent_id, child_id))
    return violations


def path_crossings(paths: Sequence[RoutedPath]) -> int:
    """
    Count horizontal/vertical connector crossings.

    Time Complexity: O(h * v) for h horizontal and v vertical segments
    """
    return len(find_crossings(paths))


def layout_quality_summary(
    clusters: Sequence[Cluster],
    paths: Sequence[RoutedPath],
    index: PersonIndex,
    spacing: LayoutSpacing,
) -> dict[str, Any]:
    """
    Compute a summary of layout quality metrics.

    Returns:
        Dictionary with all metrics:
        - partner_spacing_errors: Number of misplaced partner pairs
        - row_overlaps: Number of too-close row neighbours
        - generation_order_violations: Number of children not below a parent
        - path_crossings: Number of connector crossings
        - clusters: Number of clusters
        - persons: Number of positioned persons
    """
    return {
        "partner_spacing_errors": len(partner_spacing_errors(clusters, index, spacing)),
        "row_overlaps": len(row_overlaps(clusters, index, spacing)),
        "generation_order_violations": len(generation_order_violations(clusters, index)),
        "path_crossings": path_crossings(paths),
        "clusters": len(clusters),
        "persons": sum(len(cluster) for cluster in clusters),
    }


__all__ = [
    "partner_spacing_errors",
    "row_overlaps",
    "generation_order_violations",
    "path_crossings",
    "layout_quality_summary",
]
