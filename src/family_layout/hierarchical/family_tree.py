"""
Family tree layout.

Lays out a genealogical graph in five stages:

1. Partition persons into connected family clusters
2. Place each cluster generation by generation from a root person
3. Refine each cluster (parent alignment, partner spacing, row overlaps)
4. Tile the clusters on a grid (or center a single cluster on the origin)
5. Route orthogonal connectors between parents, children and partners

Position overrides replace computed positions after refinement, before
arrangement and routing, so no other position is ever derived from them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Optional, Sequence

from ..base import StaticLayout
from ..orthogonal.edge_routing import JumpHook, route_family_edges, route_parent_links
from ..orthogonal.types import RoutedPath
from ..preprocessing import PersonIndex, find_clusters, select_root
from ..types import (
    Cluster,
    Event,
    EventType,
    LayoutSpacing,
    PersonLike,
    Position,
    PositionLike,
    TreeNode,
)
from ..validation import (
    InvalidSpacingError,
    validate_iterations,
    validate_offset,
    validate_option,
    validate_spacing,
)
from .arrangement import arrange_clusters, cluster_center
from .placement import place_tree
from .refinement import refine_layout

EDGE_STYLES = ("bus", "direct")


@dataclass
class LayoutResult:
    """
    Output of a layout run.

    Attributes:
        clusters: Clusters with positioned nodes, in discovery order
        paths: Routed connectors
    """

    clusters: list[Cluster] = field(default_factory=list)
    paths: list[RoutedPath] = field(default_factory=list)

    @property
    def positions(self) -> dict[Any, Position]:
        """Final position per person id."""
        return {node.id: node.position for cluster in self.clusters for node in cluster.nodes}

    @property
    def nodes(self) -> list[TreeNode]:
        return [node for cluster in self.clusters for node in cluster.nodes]

    def node(self, person_id: Any) -> Optional[TreeNode]:
        for cluster in self.clusters:
            found = cluster.node(person_id)
            if found is not None:
                return found
        return None


def _positive_int(name: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise InvalidSpacingError(f"{name} must be a positive int, got {value!r}")
    return value


class FamilyTreeLayout(StaticLayout):
    """
    Generational family tree layout with orthogonal connectors.

    Partners sit side by side, parents one generation above their children,
    and children are centered under their parents. Unrelated families are
    laid out independently and tiled on a grid.

    Example:
        layout = FamilyTreeLayout(
            persons=[
                {"id": "gp1", "partnerId": "gp2", "childrenIds": ["p1"]},
                {"id": "gp2", "partnerId": "gp1", "childrenIds": ["p1"]},
                {"id": "p1", "parentIds": ["gp1", "gp2"]},
            ],
        )
        layout.run()

        for person_id, pos in layout.positions.items():
            print(person_id, pos.x, pos.y)
    """

    def __init__(
        self,
        *,
        persons: Optional[Sequence[PersonLike]] = None,
        overrides: Optional[Mapping[Any, PositionLike]] = None,
        on_start: Optional[Callable[[Optional[Event]], None]] = None,
        on_tick: Optional[Callable[[Optional[Event]], None]] = None,
        on_end: Optional[Callable[[Optional[Event]], None]] = None,
        # FamilyTreeLayout-specific parameters
        card_width: float = 150.0,
        card_height: float = 130.0,
        node_spacing: Optional[float] = None,
        generation_spacing: Optional[float] = None,
        partner_spacing: Optional[float] = None,
        cluster_spacing: float = 1200.0,
        grid_columns: int = 3,
        iterations: int = 2,
        max_depth: int = 500,
        bus_gap: Optional[float] = None,
        lane_spacing: float = 6.0,
        bus_overhang: float = 10.0,
        edge_style: str = "bus",
        jump_hook: Optional[JumpHook] = None,
    ) -> None:
        """
        Initialize family tree layout.

        Args:
            persons: Person records
            overrides: Mapping person id -> position replacing the computed one
            on_start: Callback for start event
            on_tick: Callback for tick event (once per refinement iteration)
            on_end: Callback for end event
            card_width: Width of a person card
            card_height: Height of a person card
            node_spacing: Horizontal unit between siblings and row blocks.
                Default: card_width + 30.
            generation_spacing: Vertical distance between generations.
                Default: card_height + 60.
            partner_spacing: Horizontal distance between partners.
                Default: card_width + 20.
            cluster_spacing: Grid cell size when tiling several clusters
            grid_columns: Number of grid columns when tiling clusters
            iterations: Refinement iterations (0 disables refinement)
            max_depth: Placement recursion cap
            bus_gap: Distance from the lowest parent's bottom edge to the bus
                bar. Default: half the free space between generations.
            lane_spacing: Vertical offset between bus lanes
            bus_overhang: How far each bus bar reaches past its outermost
                parent or child
            edge_style: 'bus' (shared sibling bars) or 'direct' (one
                connector per parent -> child link)
            jump_hook: Optional callable receiving (paths, crossings) and
                returning the paths to use, e.g. to insert line jumps
        """
        super().__init__(
            persons=persons,
            overrides=overrides,
            on_start=on_start,
            on_tick=on_tick,
            on_end=on_end,
        )

        # FamilyTreeLayout-specific configuration
        self._card_width: float = validate_spacing("card_width", card_width)
        self._card_height: float = validate_spacing("card_height", card_height)
        self._node_spacing: Optional[float] = None
        self._generation_spacing: Optional[float] = None
        self._partner_spacing: Optional[float] = None
        self._bus_gap: Optional[float] = None
        self.node_spacing = node_spacing
        self.generation_spacing = generation_spacing
        self.partner_spacing = partner_spacing
        self.bus_gap = bus_gap
        self._cluster_spacing: float = validate_spacing("cluster_spacing", cluster_spacing)
        self._grid_columns: int = _positive_int("grid_columns", grid_columns)
        self._iterations: int = validate_iterations(iterations)
        self._max_depth: int = _positive_int("max_depth", max_depth)
        self._lane_spacing: float = validate_spacing("lane_spacing", lane_spacing)
        self._bus_overhang: float = validate_offset("bus_overhang", bus_overhang)
        self._edge_style: str = validate_option("edge_style", edge_style, EDGE_STYLES)
        self._jump_hook: Optional[JumpHook] = jump_hook

        # Results
        self._index: Optional[PersonIndex] = None
        self._clusters: list[Cluster] = []
        self._paths: list[RoutedPath] = []

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def card_width(self) -> float:
        """Get card width."""
        return self._card_width

    @card_width.setter
    def card_width(self, value: float) -> None:
        self._card_width = validate_spacing("card_width", value)

    @property
    def card_height(self) -> float:
        """Get card height."""
        return self._card_height

    @card_height.setter
    def card_height(self, value: float) -> None:
        self._card_height = validate_spacing("card_height", value)

    @property
    def node_spacing(self) -> float:
        """Get horizontal unit (derived from card_width unless set)."""
        if self._node_spacing is None:
            return self._card_width + 30
        return self._node_spacing

    @node_spacing.setter
    def node_spacing(self, value: Optional[float]) -> None:
        """Set horizontal unit; None restores the derived default."""
        self._node_spacing = None if value is None else validate_spacing("node_spacing", value)

    @property
    def generation_spacing(self) -> float:
        """Get vertical distance between generations (derived from card_height unless set)."""
        if self._generation_spacing is None:
            return self._card_height + 60
        return self._generation_spacing

    @generation_spacing.setter
    def generation_spacing(self, value: Optional[float]) -> None:
        self._generation_spacing = (
            None if value is None else validate_spacing("generation_spacing", value)
        )

    @property
    def partner_spacing(self) -> float:
        """Get horizontal distance between partners (derived from card_width unless set)."""
        if self._partner_spacing is None:
            return self._card_width + 20
        return self._partner_spacing

    @partner_spacing.setter
    def partner_spacing(self, value: Optional[float]) -> None:
        self._partner_spacing = (
            None if value is None else validate_spacing("partner_spacing", value)
        )

    @property
    def bus_gap(self) -> float:
        """Get distance from the lowest parent bottom edge to the bus bar."""
        if self._bus_gap is None:
            return max(0.0, (self.generation_spacing - self._card_height) / 2)
        return self._bus_gap

    @bus_gap.setter
    def bus_gap(self, value: Optional[float]) -> None:
        self._bus_gap = None if value is None else validate_spacing("bus_gap", value)

    @property
    def cluster_spacing(self) -> float:
        """Get grid cell size."""
        return self._cluster_spacing

    @cluster_spacing.setter
    def cluster_spacing(self, value: float) -> None:
        self._cluster_spacing = validate_spacing("cluster_spacing", value)

    @property
    def grid_columns(self) -> int:
        """Get number of grid columns."""
        return self._grid_columns

    @grid_columns.setter
    def grid_columns(self, value: int) -> None:
        self._grid_columns = _positive_int("grid_columns", value)

    @property
    def iterations(self) -> int:
        """Get refinement iterations."""
        return self._iterations

    @iterations.setter
    def iterations(self, value: int) -> None:
        self._iterations = validate_iterations(value)

    @property
    def max_depth(self) -> int:
        """Get placement recursion cap."""
        return self._max_depth

    @max_depth.setter
    def max_depth(self, value: int) -> None:
        self._max_depth = _positive_int("max_depth", value)

    @property
    def lane_spacing(self) -> float:
        """Get vertical offset between bus lanes."""
        return self._lane_spacing

    @lane_spacing.setter
    def lane_spacing(self, value: float) -> None:
        self._lane_spacing = validate_spacing("lane_spacing", value)

    @property
    def bus_overhang(self) -> float:
        """Get how far bus bars reach past their outermost cards."""
        return self._bus_overhang

    @bus_overhang.setter
    def bus_overhang(self, value: float) -> None:
        self._bus_overhang = validate_offset("bus_overhang", value)

    @property
    def edge_style(self) -> str:
        """Get connector style."""
        return self._edge_style

    @edge_style.setter
    def edge_style(self, value: str) -> None:
        self._edge_style = validate_option("edge_style", value, EDGE_STYLES)

    @property
    def jump_hook(self) -> Optional[JumpHook]:
        """Get crossing post-processor."""
        return self._jump_hook

    @jump_hook.setter
    def jump_hook(self, value: Optional[JumpHook]) -> None:
        self._jump_hook = value

    @property
    def spacing(self) -> LayoutSpacing:
        """Resolved geometry passed to the layout stages."""
        return LayoutSpacing(
            card_width=self._card_width,
            card_height=self._card_height,
            node_spacing=self.node_spacing,
            generation_spacing=self.generation_spacing,
            partner_spacing=self.partner_spacing,
            cluster_spacing=self._cluster_spacing,
            grid_columns=self._grid_columns,
        )

    # ----- Results -----

    @property
    def index(self) -> Optional[PersonIndex]:
        """Person index of the last run."""
        return self._index

    @property
    def clusters(self) -> list[Cluster]:
        """Clusters of the last run."""
        return self._clusters

    @property
    def paths(self) -> list[RoutedPath]:
        """Routed connectors of the last run."""
        return self._paths

    @property
    def positions(self) -> dict[Any, Position]:
        """Final position per person id."""
        return self.result.positions

    @property
    def result(self) -> LayoutResult:
        return LayoutResult(clusters=self._clusters, paths=self._paths)

    # -------------------------------------------------------------------------
    # Layout Computation
    # -------------------------------------------------------------------------

    def _compute(self, **kwargs: Any) -> None:
        """
        Compute positions and routing.

        Args:
            arrange: If False, clusters keep their refined (and overridden)
                coordinates instead of being moved to the grid. Default True.
        """
        arrange = kwargs.get("arrange", True)
        spacing = self.spacing
        index = PersonIndex(self._persons)

        clusters: list[Cluster] = []
        for i, members in enumerate(find_clusters(index)):
            cluster_id = f"cluster-{i}"
            root_id = select_root(index, members)
            nodes = place_tree(
                index,
                members,
                root_id,
                spacing,
                cluster_id=cluster_id,
                max_depth=self._max_depth,
            )
            refine_layout(
                nodes,
                index,
                spacing,
                iterations=self._iterations,
                cluster_id=cluster_id,
                on_tick=self.trigger,
            )
            clusters.append(Cluster(id=cluster_id, nodes=nodes, center=cluster_center(nodes)))

        self._apply_overrides(clusters)
        if arrange:
            arrange_clusters(clusters, spacing)

        if self._edge_style == "direct":
            paths = route_parent_links(
                clusters,
                index,
                spacing,
                lane_spacing=self._lane_spacing,
                jump_hook=self._jump_hook,
            )
        else:
            paths = route_family_edges(
                clusters,
                index,
                spacing,
                bus_gap=self.bus_gap,
                lane_spacing=self._lane_spacing,
                bus_overhang=self._bus_overhang,
                jump_hook=self._jump_hook,
            )

        self._index = index
        self._clusters = clusters
        self._paths = paths

    def _apply_overrides(self, clusters: Sequence[Cluster]) -> None:
        """Replace computed positions by overrides; unknown ids are ignored."""
        if not self._overrides:
            return
        for cluster in clusters:
            for node in cluster.nodes:
                override = self._overrides.get(node.id)
                if override is not None:
                    node.position = Position(override.x, override.y)
            cluster.center = cluster_center(cluster.nodes)

    def _end_event(self) -> Event:
        return {
            "type": EventType.end,
            "persons": len(self._persons),
            "clusters": len(self._clusters),
        }


def compute_layout(
    persons: Sequence[PersonLike],
    overrides: Optional[Mapping[Any, PositionLike]] = None,
    **options: Any,
) -> LayoutResult:
    """
    Lay out a family graph in one call.

    Args:
        persons: Person records
        overrides: Mapping person id -> position replacing the computed one
        **options: Any FamilyTreeLayout keyword argument

    Returns:
        LayoutResult with clusters and routed paths

    Example:
        >>> result = compute_layout([{"id": "a"}, {"id": "b"}])
        >>> len(result.clusters)
        2
    """
    layout = FamilyTreeLayout(persons=persons, overrides=overrides, **options)
    layout.run()
    return layout.result


__all__ = [
    "EDGE_STYLES",
    "FamilyTreeLayout",
    "LayoutResult",
    "compute_layout",
]
