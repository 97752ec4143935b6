"""
Constraint refinement of a placed family cluster.

Each refinement iteration runs two passes over the nodes:

1. Barycenter alignment: rows are visited top to bottom and every node with
   placed parents moves halfway toward its parents' mean x. Partner pairs are
   then re-ordered so the partner whose parents sit further left is on the
   left, and the right partner is snapped to exactly one partner spacing
   beside the left one.
2. Row overlap resolution: within each row, partner pairs form rigid blocks
   and singles form zero-width blocks. Blocks are swept left to right and
   each one is pushed right just far enough to sit at least one horizontal
   unit after the previous block. Nothing is ever pulled left.
"""

from __future__ import annotations

from typing import Any, Optional, Sequence

import numpy as np

from ..preprocessing import PersonIndex
from ..types import EventCallback, EventType, LayoutSpacing, Position, TreeNode


# =============================================================================
# Helpers
# =============================================================================


def partner_pairs(nodes: Sequence[TreeNode], index: PersonIndex) -> list[tuple[TreeNode, TreeNode]]:
    """
    Disjoint partner pairs among the nodes, in placement order.

    A person appears in at most one pair even when partner links are
    inconsistent (a -> b, b -> c).
    """
    by_id = {node.id: node for node in nodes}
    paired: set[Any] = set()
    pairs: list[tuple[TreeNode, TreeNode]] = []

    for node in nodes:
        if node.id in paired:
            continue
        partner_id = index.partner_of(node.id)
        if partner_id is None or partner_id == node.id or partner_id in paired:
            continue
        partner = by_id.get(partner_id)
        if partner is None:
            continue
        paired.update((node.id, partner_id))
        pairs.append((node, partner))

    return pairs


def row_bands(nodes: Sequence[TreeNode], tolerance: float) -> list[list[TreeNode]]:
    """
    Group nodes into rows, top to bottom.

    A row starts at the smallest remaining y and takes every node whose y is
    within tolerance of it. Nodes keep placement order inside a row.
    """
    order = {id(node): i for i, node in enumerate(nodes)}
    ranked = sorted(nodes, key=lambda n: (n.position.y, order[id(n)]))

    rows: list[list[TreeNode]] = []
    row_y: Optional[float] = None
    for node in ranked:
        if row_y is None or node.position.y - row_y > tolerance:
            rows.append([])
            row_y = node.position.y
        rows[-1].append(node)

    return [sorted(row, key=lambda n: order[id(n)]) for row in rows]


def _parent_center(
    node: TreeNode, index: PersonIndex, by_id: dict[Any, TreeNode]
) -> Optional[float]:
    xs = [by_id[p].position.x for p in index.parents_of(node.id) if p in by_id]
    if not xs:
        return None
    return float(np.mean(xs))


# =============================================================================
# Barycenter Alignment
# =============================================================================


def align_to_parents(nodes: Sequence[TreeNode], index: PersonIndex, spacing: LayoutSpacing) -> None:
    """Move every node with placed parents halfway to their mean x, top row first."""
    by_id = {node.id: node for node in nodes}
    for row in row_bands(nodes, spacing.row_tolerance):
        for node in row:
            center = _parent_center(node, index, by_id)
            if center is None:
                continue
            x = node.position.x + (center - node.position.x) / 2
            node.position = Position(x, node.position.y)


def align_partners(
    pairs: Sequence[tuple[TreeNode, TreeNode]],
    index: PersonIndex,
    spacing: LayoutSpacing,
    nodes: Sequence[TreeNode],
) -> list[tuple[TreeNode, TreeNode]]:
    """
    Order each partner pair left/right and snap the right partner beside the left.

    The partner whose parents sit further left goes left (own x when it has
    no placed parents). Equal keys keep the current left-to-right order.

    Returns:
        Pairs as (left, right)
    """
    by_id = {node.id: node for node in nodes}
    ordered: list[tuple[TreeNode, TreeNode]] = []

    for a, b in pairs:
        key_a = _parent_center(a, index, by_id)
        key_b = _parent_center(b, index, by_id)
        if key_a is None:
            key_a = a.position.x
        if key_b is None:
            key_b = b.position.x

        if key_a < key_b:
            left, right = a, b
        elif key_b < key_a:
            left, right = b, a
        elif b.position.x < a.position.x:
            left, right = b, a
        else:
            left, right = a, b

        right.position = Position(left.position.x + spacing.partner_spacing, left.position.y)
        right.generation = left.generation
        ordered.append((left, right))

    return ordered


# =============================================================================
# Row Overlap Resolution
# =============================================================================


def _pack(desired: Sequence[float], widths: Sequence[float], gap: float) -> list[float]:
    """
    Sweep blocks left to right, pushing each one right only when it crowds the previous.

    Blocks are in left-to-right order; block i+1 must start at least
    widths[i] + gap after block i starts. A block never moves left.
    """
    lefts: list[float] = []
    for i, x in enumerate(desired):
        if lefts:
            x = max(x, lefts[-1] + widths[i - 1] + gap)
        lefts.append(float(x))
    return lefts


def resolve_row_overlaps(
    nodes: Sequence[TreeNode],
    pairs: Sequence[tuple[TreeNode, TreeNode]],
    spacing: LayoutSpacing,
) -> None:
    """
    Push row-mates apart so no two blocks are closer than one horizontal unit.

    Args:
        nodes: Cluster nodes (modified in place)
        pairs: (left, right) partner pairs, treated as rigid blocks when both
            members share a row
        spacing: Layout geometry
    """
    order = {id(node): i for i, node in enumerate(nodes)}
    partner_of = {id(left): right for left, right in pairs}
    left_of = {id(right): left for left, right in pairs}

    for row in row_bands(nodes, spacing.row_tolerance):
        in_row = {id(node) for node in row}
        claimed: set[int] = set()
        blocks: list[tuple[list[TreeNode], list[float], float]] = []

        for node in row:
            if id(node) in claimed:
                continue
            left = left_of.get(id(node))
            if left is not None and id(left) in in_row and id(left) not in claimed:
                node, right = left, node
            else:
                right = partner_of.get(id(node))
            if right is not None and id(right) in in_row and id(right) not in claimed:
                claimed.update((id(node), id(right)))
                offset = right.position.x - node.position.x
                blocks.append(([node, right], [0.0, offset], offset))
            else:
                claimed.add(id(node))
                blocks.append(([node], [0.0], 0.0))

        blocks.sort(key=lambda b: (b[0][0].position.x, order[id(b[0][0])]))
        lefts = _pack(
            [members[0].position.x for members, _, _ in blocks],
            [width for _, _, width in blocks],
            spacing.node_spacing,
        )
        for (members, offsets, _), left in zip(blocks, lefts):
            for member, offset in zip(members, offsets):
                member.position = Position(left + offset, member.position.y)


# =============================================================================
# Refinement Loop
# =============================================================================


def _coordinates(nodes: Sequence[TreeNode]) -> np.ndarray:
    return np.array([[n.position.x, n.position.y] for n in nodes], dtype=float).reshape(-1, 2)


def refine_layout(
    nodes: Sequence[TreeNode],
    index: PersonIndex,
    spacing: LayoutSpacing,
    *,
    iterations: int = 2,
    cluster_id: Optional[str] = None,
    on_tick: Optional[EventCallback] = None,
) -> float:
    """
    Refine provisional positions in place.

    Args:
        nodes: Placed nodes of one cluster
        index: Person index
        spacing: Layout geometry
        iterations: Number of barycenter + overlap rounds (0 disables refinement)
        cluster_id: Reported in tick events
        on_tick: Called after every iteration with a tick event

    Returns:
        Total displacement (sum of |dx| + |dy|) over all iterations
    """
    total = 0.0
    if not nodes:
        return total

    pairs = partner_pairs(nodes, index)
    for iteration in range(iterations):
        before = _coordinates(nodes)

        align_to_parents(nodes, index, spacing)
        ordered = align_partners(pairs, index, spacing, nodes)
        resolve_row_overlaps(nodes, ordered, spacing)

        displacement = float(np.abs(_coordinates(nodes) - before).sum())
        total += displacement
        if on_tick is not None:
            on_tick(
                {
                    "type": EventType.tick,
                    "cluster": cluster_id,
                    "iteration": iteration,
                    "displacement": displacement,
                }
            )

    return total


__all__ = [
    "partner_pairs",
    "row_bands",
    "align_to_parents",
    "align_partners",
    "resolve_row_overlaps",
    "refine_layout",
]
