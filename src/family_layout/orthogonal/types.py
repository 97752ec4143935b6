"""
Type definitions for orthogonal edge routing.

Provides data structures for the connector geometry drawn between person
cards: axis-aligned segments, routed paths with their relationship kind,
card boxes, and horizontal/vertical crossings.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

EPSILON = 1e-6


class Orientation(Enum):
    """Axis of a segment."""

    HORIZONTAL = "horizontal"
    VERTICAL = "vertical"


class EdgeKind(Enum):
    """Relationship role of a routed path."""

    PARENT_TRUNK = "parent-trunk"  # parent card down to the bus bar
    BUS_BAR = "bus-bar"  # horizontal bar shared by a sibling group
    CHILD_BRANCH = "child-branch"  # bus bar down to a child card
    PARTNER_LINK = "partner-link"
    PARENT_LINK = "parent-link"  # direct parent -> child connector


@dataclass
class Segment:
    """
    An axis-aligned piece of a routed path.

    Attributes:
        orientation: Horizontal or vertical
        start: Start point (x, y)
        end: End point (x, y)
        lane: Lane index used to offset parallel segments
        edge_id: Id of the path owning this segment
        jumps: Points where this segment hops over a crossing segment
    """

    orientation: Orientation
    start: tuple[float, float]
    end: tuple[float, float]
    lane: int = 0
    edge_id: str = ""
    jumps: list[tuple[float, float]] = field(default_factory=list)

    @classmethod
    def between(
        cls,
        start: tuple[float, float],
        end: tuple[float, float],
        *,
        lane: int = 0,
        edge_id: str = "",
    ) -> Segment:
        """
        Build a segment, inferring its orientation.

        Raises:
            ValueError: If the points are not axis aligned
        """
        if abs(start[1] - end[1]) < EPSILON:
            orientation = Orientation.HORIZONTAL
        elif abs(start[0] - end[0]) < EPSILON:
            orientation = Orientation.VERTICAL
        else:
            raise ValueError(f"Segment {start} -> {end} is not axis aligned")
        return cls(
            orientation,
            (float(start[0]), float(start[1])),
            (float(end[0]), float(end[1])),
            lane,
            edge_id,
        )

    @property
    def is_horizontal(self) -> bool:
        return self.orientation is Orientation.HORIZONTAL

    @property
    def length(self) -> float:
        """Get segment length."""
        if self.is_horizontal:
            return abs(self.end[0] - self.start[0])
        return abs(self.end[1] - self.start[1])

    @property
    def min_x(self) -> float:
        return min(self.start[0], self.end[0])

    @property
    def max_x(self) -> float:
        return max(self.start[0], self.end[0])

    @property
    def min_y(self) -> float:
        return min(self.start[1], self.end[1])

    @property
    def max_y(self) -> float:
        return max(self.start[1], self.end[1])


def _fmt(value: float) -> str:
    return f"{value:.1f}"


def _pt(x: float, y: float) -> str:
    return f"{_fmt(x)} {_fmt(y)}"


def _jump_parts(segment: Segment, radius: float) -> list[str]:
    """
    Path commands drawing a segment's jumps, up to (not including) its end.

    A horizontal segment hops over a crossing with two quadratic arcs
    rising above it; a vertical segment bulges to the right. Each jump
    takes 1.5 radii on either side of its point. Jumps too close to an end
    of the segment or to the previous jump are dropped.
    """
    axis = 0 if segment.is_horizontal else 1
    lo, hi = segment.start[axis], segment.end[axis]
    d = 1.0 if hi >= lo else -1.0
    half = 1.5 * radius

    parts: list[str] = []
    last = lo
    for point in sorted(segment.jumps, key=lambda p: d * p[axis]):
        along = point[axis]
        if d * (along - last) < half - EPSILON or d * (hi - along) < half - EPSILON:
            continue
        x, y = point
        if segment.is_horizontal:
            parts.append(f"L {_pt(x - d * half, y)}")
            parts.append(f"Q {_pt(x, y)} {_pt(x, y - radius)}")
            parts.append(f"Q {_pt(x, y)} {_pt(x + d * half, y)}")
        else:
            parts.append(f"L {_pt(x, y - d * half)}")
            parts.append(f"Q {_pt(x, y)} {_pt(x + radius, y)}")
            parts.append(f"Q {_pt(x, y)} {_pt(x, y + d * half)}")
        last = along + d * half
    return parts


@dataclass
class RoutedPath:
    """
    A connector between persons, made of consecutive segments.

    Attributes:
        id: Path identifier, unique within one layout
        kind: Relationship role
        segments: Ordered segments
        source_ids: Persons the path starts from (parents or the left partner)
        target_ids: Persons the path leads to (children or the right partner)
        group_id: Shared by all pieces of one bus (trunks, bar and branches)
        lane: Lane of the path's offset segment
        jump_radius: Radius of the arcs drawn at segment jumps
    """

    id: str
    kind: EdgeKind
    segments: list[Segment] = field(default_factory=list)
    source_ids: list[Any] = field(default_factory=list)
    target_ids: list[Any] = field(default_factory=list)
    group_id: Optional[str] = None
    lane: int = 0
    jump_radius: float = 4.0

    @property
    def points(self) -> list[tuple[float, float]]:
        """Vertices of a connected path (empty when there are no segments)."""
        if not self.segments:
            return []
        result = [self.segments[0].start]
        for segment in self.segments:
            if segment.start != result[-1]:
                result.append(segment.start)
            result.append(segment.end)
        return result

    @property
    def path(self) -> str:
        """
        SVG path description, e.g. ``"M 0.0 65.0 L 0.0 95.0"``.

        A segment that does not start where the previous one ended opens a
        new subpath with ``M``. Segment jumps are drawn as ``Q`` arcs.
        """
        parts: list[str] = []
        last: Optional[tuple[float, float]] = None
        for segment in self.segments:
            if (
                last is None
                or abs(segment.start[0] - last[0]) > EPSILON
                or abs(segment.start[1] - last[1]) > EPSILON
            ):
                parts.append(f"M {_pt(*segment.start)}")
            if segment.jumps:
                parts.extend(_jump_parts(segment, self.jump_radius))
            parts.append(f"L {_pt(*segment.end)}")
            last = segment.end
        return " ".join(parts)

    @property
    def length(self) -> float:
        return sum(segment.length for segment in self.segments)


@dataclass
class CardBox:
    """
    A person card as a box around its center position.
    """

    id: Any
    x: float  # Center x
    y: float  # Center y
    width: float
    height: float

    @property
    def left(self) -> float:
        """Left edge x coordinate."""
        return self.x - self.width / 2

    @property
    def right(self) -> float:
        """Right edge x coordinate."""
        return self.x + self.width / 2

    @property
    def top(self) -> float:
        """Top edge y coordinate."""
        return self.y - self.height / 2

    @property
    def bottom(self) -> float:
        """Bottom edge y coordinate."""
        return self.y + self.height / 2


@dataclass
class Crossing:
    """A point where a horizontal segment crosses a vertical one."""

    horizontal: Segment
    vertical: Segment
    point: tuple[float, float]


__all__ = [
    "EPSILON",
    "Orientation",
    "EdgeKind",
    "Segment",
    "RoutedPath",
    "CardBox",
    "Crossing",
]
