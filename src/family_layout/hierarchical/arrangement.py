"""
Global arrangement of refined clusters.

A single cluster is centered on the origin. Several clusters are tiled on a
grid, row-major in cluster order, each centered on its cell origin. There is
no further overlap avoidance between cells.
"""

from __future__ import annotations

from typing import Sequence

import numpy as np

from ..types import Cluster, LayoutSpacing, Position, TreeNode


def bounding_box(nodes: Sequence[TreeNode]) -> tuple[float, float, float, float]:
    """
    Bounding box of node positions (card extents excluded).

    Returns:
        (min_x, min_y, max_x, max_y); all zero when nodes is empty
    """
    if not nodes:
        return (0.0, 0.0, 0.0, 0.0)
    coords = np.array([[n.position.x, n.position.y] for n in nodes], dtype=float)
    min_x, min_y = coords.min(axis=0)
    max_x, max_y = coords.max(axis=0)
    return (float(min_x), float(min_y), float(max_x), float(max_y))


def cluster_center(nodes: Sequence[TreeNode]) -> Position:
    """Mean of node positions (origin when empty)."""
    if not nodes:
        return Position(0.0, 0.0)
    coords = np.array([[n.position.x, n.position.y] for n in nodes], dtype=float)
    cx, cy = coords.mean(axis=0)
    return Position(float(cx), float(cy))


def grid_origin(i: int, spacing: LayoutSpacing) -> Position:
    """
    Cell origin of the i-th cluster.

    Columns are numbered so the middle column sits on x = 0; with three
    columns cell (row, col) has origin ((col - 1) * S, row * S).
    """
    columns = max(1, spacing.grid_columns)
    row, col = divmod(i, columns)
    size = spacing.cluster_spacing
    return Position((col - (columns - 1) // 2) * size, row * size)


def _center_on(cluster: Cluster, target: Position) -> None:
    min_x, min_y, max_x, max_y = bounding_box(cluster.nodes)
    dx = target.x - (min_x + max_x) / 2
    dy = target.y - (min_y + max_y) / 2
    cluster.translate(dx, dy)


def arrange_clusters(clusters: Sequence[Cluster], spacing: LayoutSpacing) -> None:
    """
    Translate clusters in place to their final frame.

    Args:
        clusters: Refined clusters, in discovery order
        spacing: Provides cluster_spacing and grid_columns
    """
    if len(clusters) == 1:
        cluster = clusters[0]
        if cluster.nodes:
            _center_on(cluster, Position(0.0, 0.0))
        cluster.center = cluster_center(cluster.nodes)
        return

    for i, cluster in enumerate(clusters):
        if cluster.nodes:
            _center_on(cluster, grid_origin(i, spacing))
        cluster.center = cluster_center(cluster.nodes)


__all__ = [
    "bounding_box",
    "cluster_center",
    "grid_origin",
    "arrange_clusters",
]
