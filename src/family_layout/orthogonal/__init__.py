"""
Orthogonal connector routing.

This module provides the connector geometry between person cards:
- Bus paths from parents to their common children
- Partner links
- Generic point-to-point orthogonal routes with lane offsets
- Crossing detection and line jumps
"""

from .edge_routing import (
    JumpHook,
    add_jumps,
    build_bus_path,
    find_crossings,
    route_family_edges,
    route_orthogonal,
    route_parent_links,
    route_partner,
)
from .types import CardBox, Crossing, EdgeKind, Orientation, RoutedPath, Segment

__all__ = [
    "CardBox",
    "Crossing",
    "EdgeKind",
    "Orientation",
    "RoutedPath",
    "Segment",
    "JumpHook",
    "add_jumps",
    "build_bus_path",
    "find_crossings",
    "route_family_edges",
    "route_orthogonal",
    "route_parent_links",
    "route_partner",
]
