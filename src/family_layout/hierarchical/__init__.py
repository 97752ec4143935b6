"""
Hierarchical family tree layout.

This module provides the generational layout pipeline:
- place_tree: Recursive placement of a cluster from a root person
- refine_layout: Parent alignment, partner spacing and row overlap removal
- arrange_clusters: Grid tiling of independent clusters
- FamilyTreeLayout: The full pipeline as a layout object
"""

from .arrangement import arrange_clusters, bounding_box, cluster_center
from .family_tree import FamilyTreeLayout, LayoutResult, compute_layout
from .placement import place_tree
from .refinement import partner_pairs, refine_layout, row_bands

__all__ = [
    "FamilyTreeLayout",
    "LayoutResult",
    "compute_layout",
    "place_tree",
    "refine_layout",
    "partner_pairs",
    "row_bands",
    "arrange_clusters",
    "bounding_box",
    "cluster_center",
]
