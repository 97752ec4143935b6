"""
Common types for family tree layout.

This module provides the fundamental types used across the layout pipeline:
- Person: A genealogical record with parent, child and partner relations
- Position: A point in the layout plane (y grows downward by generation)
- TreeNode: A positioned person owned by a cluster
- Cluster: A connected family component with its nodes and centroid
- EventType: Layout lifecycle events
- Event: Event payload for callbacks
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Callable, Optional, Sequence, TypedDict, Union


class EventType(IntEnum):
    """
    Layout lifecycle events.

    - start: Layout computation has begun
    - tick: Fired once per refinement iteration of a cluster
    - end: Layout and routing are complete
    """

    start = 0
    tick = 1
    end = 2


class Event(TypedDict, total=False):
    """Event payload passed to event listeners."""

    type: EventType
    cluster: Optional[str]
    iteration: int
    displacement: float
    clusters: int
    persons: int


@dataclass
class Position:
    """A point in the layout plane."""

    x: float = 0.0
    y: float = 0.0

    def translated(self, dx: float, dy: float) -> Position:
        """Return a copy moved by (dx, dy)."""
        return Position(self.x + dx, self.y + dy)


# Camel-case record keys used by the persistence layer, mapped to attributes
_RECORD_KEYS = {
    "id": "id",
    "firstName": "first_name",
    "lastName": "last_name",
    "birthYear": "birth_year",
    "deathYear": "death_year",
    "parentIds": "parent_ids",
    "partnerId": "partner_id",
    "childrenIds": "children_ids",
}


@dataclass
class Person:
    """
    A person record.

    Attributes:
        id: Unique identifier
        first_name: Display only
        last_name: Display only
        birth_year: Optional year of birth
        death_year: Optional year of death
        parent_ids: Ordered parent ids (typically at most two)
        partner_id: At most one partner id, expected to be mutual
        children_ids: Ordered children ids
    """

    id: str
    first_name: str = ""
    last_name: str = ""
    birth_year: Optional[int] = None
    death_year: Optional[int] = None
    parent_ids: list[str] = field(default_factory=list)
    partner_id: Optional[str] = None
    children_ids: list[str] = field(default_factory=list)

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Person:
        """
        Build a person from a record dict.

        Accepts both the camelCase keys used by stored records
        (``parentIds``, ``partnerId``...) and snake_case attribute names.
        Unknown keys are ignored. A missing id becomes None and is rejected
        later by validate_person.
        """
        kwargs: dict[str, Any] = {"id": None}
        for key, value in data.items():
            attr = _RECORD_KEYS.get(key, key)
            if attr in _PERSON_FIELDS:
                kwargs[attr] = value
        for attr in ("parent_ids", "children_ids"):
            value = kwargs.get(attr)
            if value is None:
                kwargs[attr] = []
            elif isinstance(value, (list, tuple)):
                kwargs[attr] = list(value)
        return cls(**kwargs)

    def to_dict(self) -> dict[str, Any]:
        """Return the camelCase record shape."""
        return {key: _copy_value(getattr(self, attr)) for key, attr in _RECORD_KEYS.items()}


_PERSON_FIELDS = frozenset(_RECORD_KEYS.values())


def _copy_value(value: Any) -> Any:
    return list(value) if isinstance(value, list) else value


@dataclass
class TreeNode:
    """
    A positioned person owned by exactly one cluster.

    ``generation`` is 0 for the topmost generation placed in the cluster
    and grows by one per generation downward.
    """

    person: Person
    position: Position
    cluster_id: str
    generation: int = 0

    @property
    def id(self) -> str:
        return self.person.id

    def __repr__(self) -> str:
        return f"TreeNode({self.person.id!r}, x={self.position.x:.2f}, y={self.position.y:.2f})"


@dataclass
class Cluster:
    """
    A connected family component.

    Attributes:
        id: Cluster identifier (``cluster-<n>`` in discovery order)
        nodes: Positioned members in placement order
        center: Mean of the node positions
    """

    id: str
    nodes: list[TreeNode] = field(default_factory=list)
    center: Position = field(default_factory=Position)

    def node(self, person_id: str) -> Optional[TreeNode]:
        """Find the node for a person id, or None."""
        for node in self.nodes:
            if node.person.id == person_id:
                return node
        return None

    @property
    def person_ids(self) -> list[str]:
        return [node.person.id for node in self.nodes]

    def translate(self, dx: float, dy: float) -> None:
        """Move every node and the centroid by (dx, dy)."""
        for node in self.nodes:
            node.position = node.position.translated(dx, dy)
        self.center = self.center.translated(dx, dy)

    def __len__(self) -> int:
        return len(self.nodes)


@dataclass(frozen=True)
class LayoutSpacing:
    """
    Resolved geometry shared by the layout stages.

    Attributes:
        card_width: Width of a person card
        card_height: Height of a person card
        node_spacing: Horizontal unit between siblings and between row blocks
        generation_spacing: Vertical distance between generations
        partner_spacing: Fixed horizontal distance between partners
        cluster_spacing: Grid cell size when tiling several clusters
        grid_columns: Number of grid columns when tiling clusters
    """

    card_width: float = 150.0
    card_height: float = 130.0
    node_spacing: float = 180.0
    generation_spacing: float = 190.0
    partner_spacing: float = 170.0
    cluster_spacing: float = 1200.0
    grid_columns: int = 3

    @property
    def min_parent_gap(self) -> float:
        """Minimum distance between the parent groups of two partners."""
        return 1.5 * self.card_width

    @property
    def row_tolerance(self) -> float:
        """Two nodes belong to the same row when their y differ by at most this."""
        return self.generation_spacing / 2


# Type aliases for Pythonic API
PersonLike = Union[Person, dict[str, Any], Any]
"""Input type for persons: Person objects, record dicts, or objects with person attributes."""

PositionLike = Union[Position, tuple[float, float], Sequence[float], dict[str, float]]
"""Input type for override positions: Position, (x, y) pair, or {"x": .., "y": ..}."""

EventCallback = Callable[[Optional[Event]], None]


__all__ = [
    "EventType",
    "Event",
    "EventCallback",
    "Position",
    "Person",
    "TreeNode",
    "Cluster",
    "LayoutSpacing",
    "PersonLike",
    "PositionLike",
]
