"""
family-layout: Generational layout for family trees in Python.

This package positions persons linked by parent, child and partner
relations and routes orthogonal connectors between them, ready for a
rendering layer to draw.

Pipeline:
- preprocessing: Person index, cluster detection, root selection
- hierarchical: Tree placement, refinement and cluster arrangement
- orthogonal: Bus, partner and point-to-point connector routing
- metrics: Layout quality checks
- export: Renderer-facing dict / JSON output
"""

__version__ = "0.1.0"

# Base classes for building layouts
from .base import (
    BaseLayout,
    StaticLayout,
)

# Hierarchical layout
from .hierarchical import (
    FamilyTreeLayout,
    LayoutResult,
    arrange_clusters,
    compute_layout,
    place_tree,
    refine_layout,
)

# Metrics for layout quality evaluation
from .metrics import (
    generation_order_violations,
    layout_quality_summary,
    partner_spacing_errors,
    path_crossings,
    row_overlaps,
)

# Connector routing
from .orthogonal import (
    EdgeKind,
    RoutedPath,
    Segment,
    add_jumps,
    build_bus_path,
    route_family_edges,
    route_orthogonal,
    route_partner,
)

# Preprocessing utilities
from .preprocessing import (
    GenealogyStructureWarning,
    PersonIndex,
    find_clusters,
    persons_from_relationships,
    select_root,
)
from .types import (
    Cluster,
    Event,
    EventType,
    LayoutSpacing,
    Person,
    PersonLike,
    Position,
    PositionLike,
    TreeNode,
)

# Validation utilities
from .validation import (
    InconsistentRelationError,
    InvalidOptionError,
    InvalidOverrideError,
    InvalidPersonError,
    InvalidSpacingError,
    ValidationError,
    find_relation_issues,
    reconcile_relations,
)

__all__ = [
    # Version
    "__version__",
    # Shared types
    "Person",
    "Position",
    "TreeNode",
    "Cluster",
    "LayoutSpacing",
    "EventType",
    "Event",
    # Type aliases for API
    "PersonLike",
    "PositionLike",
    # Base classes
    "BaseLayout",
    "StaticLayout",
    # Hierarchical layout
    "FamilyTreeLayout",
    "LayoutResult",
    "compute_layout",
    "place_tree",
    "refine_layout",
    "arrange_clusters",
    # Routing
    "EdgeKind",
    "RoutedPath",
    "Segment",
    "build_bus_path",
    "route_partner",
    "route_orthogonal",
    "route_family_edges",
    "add_jumps",
    # Metrics
    "partner_spacing_errors",
    "row_overlaps",
    "generation_order_violations",
    "path_crossings",
    "layout_quality_summary",
    # Validation
    "ValidationError",
    "InvalidPersonError",
    "InvalidSpacingError",
    "InvalidOverrideError",
    "InvalidOptionError",
    "InconsistentRelationError",
    "find_relation_issues",
    "reconcile_relations",
    # Preprocessing
    "GenealogyStructureWarning",
    "PersonIndex",
    "persons_from_relationships",
    "find_clusters",
    "select_root",
]
