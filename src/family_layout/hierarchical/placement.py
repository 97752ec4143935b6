"""
Recursive generational placement of a family cluster.

Starting from a root person, each visited person pulls its partner to its
right, its parents one generation up and its children (and its partner's
children) one generation down. Every person receives a position exactly
once; an already placed person still acts as an anchor for its unplaced
relatives when it is reached again.

All traversal state lives in a PlacementState passed through the recursion,
so independent placements never share data.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from typing import Any, Optional, Sequence

from ..preprocessing import PersonIndex, _unique
from ..types import LayoutSpacing, Position, TreeNode


@dataclass
class PlacementState:
    """
    Explicit traversal state for one placement run.

    Attributes:
        visited: Ids that already have a position
        positions: Assigned position per id
        generations: Generation offset per id, relative to the root
        order: Ids in placement order
        deferred: (id, generation) pairs whose traversal hit the depth cap
        max_depth: Recursion depth cap
    """

    max_depth: int = 500
    visited: set[Any] = field(default_factory=set)
    positions: dict[Any, Position] = field(default_factory=dict)
    generations: dict[Any, int] = field(default_factory=dict)
    order: list[Any] = field(default_factory=list)
    deferred: list[tuple[Any, int]] = field(default_factory=list)

    def place(self, person_id: Any, position: Position, generation: int) -> None:
        self.visited.add(person_id)
        self.positions[person_id] = Position(position.x, position.y)
        self.generations[person_id] = generation
        self.order.append(person_id)


def _spread(center: float, count: int, unit: float) -> list[float]:
    """Evenly spaced x-coordinates centered on center."""
    start = center - (count - 1) * unit / 2
    return [start + i * unit for i in range(count)]


def categorize_children(
    index: PersonIndex,
    person_id: Any,
    partner_id: Optional[Any],
) -> tuple[list[Any], list[Any], list[Any]]:
    """
    Split the children of a couple into three ordered groups.

    Returns:
        (person_only, shared, partner_only), each in first-seen order,
        person's children before partner's.
    """
    own = index.children_of(person_id)
    theirs = index.children_of(partner_id) if partner_id is not None else []
    own_set = set(own)
    their_set = set(theirs)

    person_only: list[Any] = []
    shared: list[Any] = []
    partner_only: list[Any] = []
    for child in _unique(own + theirs):
        if child in own_set and child in their_set:
            shared.append(child)
        elif child in own_set:
            person_only.append(child)
        else:
            partner_only.append(child)
    return person_only, shared, partner_only


def _group_shift(
    group_xs: Sequence[float],
    other_xs: Sequence[float],
    group_on_left: bool,
    min_gap: float,
) -> float:
    """Horizontal shift that keeps group_xs at least min_gap away from other_xs."""
    if group_on_left:
        gap = min(other_xs) - max(group_xs)
        return -(min_gap - gap) if gap < min_gap else 0.0
    gap = min(group_xs) - max(other_xs)
    return (min_gap - gap) if gap < min_gap else 0.0


def _place_parents(
    state: PlacementState,
    index: PersonIndex,
    spacing: LayoutSpacing,
    child_id: Any,
) -> list[Any]:
    """Place the unplaced parents of child_id one generation up. Returns the new ids."""
    parents = index.parents_of(child_id)
    if not parents or all(p in state.visited for p in parents):
        return []

    anchor = state.positions[child_id]
    generation = state.generations[child_id] - 1
    row_y = anchor.y - spacing.generation_spacing
    slots = [
        (parent, x)
        for parent, x in zip(parents, _spread(anchor.x, len(parents), spacing.node_spacing))
        if parent not in state.visited
    ]

    # Keep clear of the partner's parent group when it already sits in this row
    shift = 0.0
    partner = index.partner_of(child_id)
    if partner is not None and partner in state.visited:
        parent_set = set(parents)
        other_xs = [
            state.positions[p].x
            for p in index.parents_of(partner)
            if p in state.visited
            and p not in parent_set
            and abs(state.positions[p].y - row_y) <= spacing.row_tolerance
        ]
        if other_xs:
            group_on_left = anchor.x <= state.positions[partner].x
            shift = _group_shift(
                [x for _, x in slots], other_xs, group_on_left, spacing.min_parent_gap
            )

    for parent, x in slots:
        state.place(parent, Position(x + shift, row_y), generation)
    return [parent for parent, _ in slots]


def _place_children(
    state: PlacementState,
    index: PersonIndex,
    spacing: LayoutSpacing,
    person_id: Any,
) -> list[Any]:
    """Place the unplaced children of a couple one generation down. Returns the new ids."""
    partner = index.partner_of(person_id)
    person_only, shared, partner_only = categorize_children(index, person_id, partner)
    children = person_only + shared + partner_only
    if not children or all(c in state.visited for c in children):
        return []

    anchor = state.positions[person_id]
    center = anchor.x
    if partner is not None and partner in state.visited:
        partner_pos = state.positions[partner]
        if abs(partner_pos.y - anchor.y) <= spacing.row_tolerance:
            center = (anchor.x + partner_pos.x) / 2

    generation = state.generations[person_id] + 1
    row_y = anchor.y + spacing.generation_spacing
    placed: list[Any] = []
    for child, x in zip(children, _spread(center, len(children), spacing.node_spacing)):
        if child not in state.visited:
            state.place(child, Position(x, row_y), generation)
            placed.append(child)
    return placed


def _place_person(
    state: PlacementState,
    index: PersonIndex,
    spacing: LayoutSpacing,
    person_id: Any,
    position: Position,
    generation: int,
    depth: int,
) -> None:
    """One recursive placement step."""
    if person_id not in index:
        return
    if depth >= state.max_depth:
        state.deferred.append((person_id, generation))
        return

    if person_id not in state.visited:
        state.place(person_id, position, generation)

    new_parents: list[Any] = []
    partner = index.partner_of(person_id)
    if partner is not None and partner not in state.visited:
        anchor = state.positions[person_id]
        state.place(
            partner,
            Position(anchor.x + spacing.partner_spacing, anchor.y),
            state.generations[person_id],
        )
        new_parents.extend(_place_parents(state, index, spacing, partner))

    new_parents.extend(_place_parents(state, index, spacing, person_id))
    new_children = _place_children(state, index, spacing, person_id)

    for parent in new_parents:
        _place_person(
            state,
            index,
            spacing,
            parent,
            state.positions[parent],
            state.generations[parent],
            depth + 1,
        )
    for child in new_children:
        _place_person(
            state,
            index,
            spacing,
            child,
            state.positions[child],
            state.generations[child],
            depth + 1,
        )


def _traverse(
    state: PlacementState,
    index: PersonIndex,
    spacing: LayoutSpacing,
    root_id: Any,
    origin: Position,
) -> None:
    """Run placement from root_id, resuming deferred branches with a fresh stack."""
    pending: deque[tuple[Any, Position, int]] = deque([(root_id, origin, 0)])
    while pending:
        person_id, position, generation = pending.popleft()
        _place_person(state, index, spacing, person_id, position, generation, 0)
        while state.deferred:
            deferred_id, deferred_gen = state.deferred.pop(0)
            pending.append((deferred_id, state.positions.get(deferred_id, position), deferred_gen))


def place_tree(
    index: PersonIndex,
    member_ids: Sequence[Any],
    root_id: Any,
    spacing: LayoutSpacing,
    *,
    cluster_id: str = "cluster-0",
    origin: Optional[Position] = None,
    max_depth: int = 500,
) -> list[TreeNode]:
    """
    Assign provisional positions to every member of a cluster.

    Args:
        index: Person index covering at least the cluster members
        member_ids: Cluster members
        root_id: Seed person (see select_root)
        spacing: Layout geometry
        cluster_id: Id stored on the created nodes
        origin: Position of the root (default (0, 0))
        max_depth: Recursion depth after which traversal resumes from a fresh stack

    Returns:
        One TreeNode per member, in placement order. Generations are
        normalized so the topmost placed generation is 0.

    Example:
        >>> index = PersonIndex([Person("a", children_ids=["b"]), Person("b", parent_ids=["a"])])
        >>> [n.position.y for n in place_tree(index, ["a", "b"], "a", LayoutSpacing())]
        [0.0, 190.0]
    """
    state = PlacementState(max_depth=max(1, int(max_depth)))
    start = origin if origin is not None else Position(0.0, 0.0)
    _traverse(state, index, spacing, root_id, start)

    # Members the traversal could not reach are seeded to the right of the bounding box
    for person_id in member_ids:
        if person_id in state.visited or person_id not in index:
            continue
        max_x = max((p.x for p in state.positions.values()), default=start.x - spacing.node_spacing)
        seed = Position(max_x + spacing.node_spacing, start.y)
        _traverse(state, index, spacing, person_id, seed)

    if not state.order:
        return []
    top = min(state.generations.values())
    return [
        TreeNode(
            person=index[pid],
            position=state.positions[pid],
            cluster_id=cluster_id,
            generation=state.generations[pid] - top,
        )
        for pid in state.order
    ]


__all__ = [
    "PlacementState",
    "categorize_children",
    "place_tree",
]
