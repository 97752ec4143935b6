"""
Family graph preprocessing utilities.

This module provides the stages that run before placement:
- Person indexing with dangling-reference filtering and reciprocal links
- Connected component (cluster) detection
- Root selection for recursive placement

These utilities are used internally by FamilyTreeLayout but can also be
used directly for graph analysis.
"""

from __future__ import annotations

import warnings
from collections import deque
from typing import Any, Iterable, Iterator, Mapping, Optional, Sequence

from .types import Person


class GenealogyStructureWarning(UserWarning):
    """Warning issued when the family graph contains cyclic ancestry."""

    pass


def _unique(ids: Iterable[Any]) -> list[Any]:
    """Deduplicate while preserving first-seen order."""
    seen: set[Any] = set()
    result: list[Any] = []
    for item in ids:
        if item not in seen:
            seen.add(item)
            result.append(item)
    return result


# =============================================================================
# Person Index
# =============================================================================


class PersonIndex:
    """
    Lookup structure over an ordered person list.

    Relations are resolved once at construction:
    - ids not present in the input (dangling references) are dropped
    - self references are dropped
    - a link declared on one side only is visible from both sides

    The first record wins when an id occurs more than once.

    Example:
        index = PersonIndex(persons)
        index.parents_of("p1")   # ['gp1', 'gp2']
        index.partner_of("p1")   # 'p2'
    """

    def __init__(self, persons: Sequence[Person]) -> None:
        self._persons: dict[Any, Person] = {}
        for person in persons:
            self._persons.setdefault(person.id, person)
        self._order: dict[Any, int] = {pid: i for i, pid in enumerate(self._persons)}

        declared_parents: dict[Any, list[Any]] = {pid: [] for pid in self._persons}
        declared_children: dict[Any, list[Any]] = {pid: [] for pid in self._persons}
        partner_claims: dict[Any, Any] = {}

        for pid, person in self._persons.items():
            for parent_id in person.parent_ids:
                if parent_id in self._persons and parent_id != pid:
                    declared_children[parent_id].append(pid)
            for child_id in person.children_ids:
                if child_id in self._persons and child_id != pid:
                    declared_parents[child_id].append(pid)
            partner_id = person.partner_id
            if partner_id is not None and partner_id in self._persons and partner_id != pid:
                partner_claims.setdefault(partner_id, pid)

        self._parents: dict[Any, list[Any]] = {}
        self._children: dict[Any, list[Any]] = {}
        self._partner: dict[Any, Optional[Any]] = {}

        for pid, person in self._persons.items():
            own_parents = [p for p in person.parent_ids if p in self._persons and p != pid]
            own_children = [c for c in person.children_ids if c in self._persons and c != pid]
            self._parents[pid] = _unique(own_parents + declared_parents[pid])
            self._children[pid] = _unique(own_children + declared_children[pid])

            partner_id = person.partner_id
            if partner_id is not None and partner_id in self._persons and partner_id != pid:
                self._partner[pid] = partner_id
            else:
                self._partner[pid] = partner_claims.get(pid)

    # -------------------------------------------------------------------------
    # Container protocol
    # -------------------------------------------------------------------------

    def __contains__(self, person_id: object) -> bool:
        return person_id in self._persons

    def __len__(self) -> int:
        return len(self._persons)

    def __iter__(self) -> Iterator[Any]:
        return iter(self._persons)

    def __getitem__(self, person_id: Any) -> Person:
        return self._persons[person_id]

    def get(self, person_id: Any) -> Optional[Person]:
        return self._persons.get(person_id)

    @property
    def persons(self) -> list[Person]:
        """Persons in input order (duplicates removed)."""
        return list(self._persons.values())

    def order_of(self, person_id: Any) -> int:
        """Input position of a person."""
        return self._order[person_id]

    # -------------------------------------------------------------------------
    # Resolved relations
    # -------------------------------------------------------------------------

    def parents_of(self, person_id: Any) -> list[Any]:
        return list(self._parents.get(person_id, ()))

    def children_of(self, person_id: Any) -> list[Any]:
        return list(self._children.get(person_id, ()))

    def partner_of(self, person_id: Any) -> Optional[Any]:
        return self._partner.get(person_id)

    def neighbors(self, person_id: Any) -> list[Any]:
        """Undirected adjacency: parents, then children, then partner."""
        result = self.parents_of(person_id) + self.children_of(person_id)
        partner = self.partner_of(person_id)
        if partner is not None:
            result.append(partner)
        return _unique(result)


def persons_from_relationships(
    person_rows: Sequence[Mapping[str, Any]],
    relationship_rows: Sequence[Mapping[str, Any]],
) -> list[Person]:
    """
    Build person records from flat relationship rows.

    Stored trees keep persons and relationships separately: a ``parent``
    row points from parent to child, a ``partner`` row links two persons in
    either direction. Only the first partner row of a person is used.

    Args:
        person_rows: Mappings accepted by Person.from_dict (relation keys are ignored)
        relationship_rows: Mappings with from_person_id, to_person_id and type

    Returns:
        Persons in the order of person_rows

    Example:
        >>> rows = [{"id": "a"}, {"id": "b"}]
        >>> rels = [{"from_person_id": "a", "to_person_id": "b", "type": "parent"}]
        >>> [p.parent_ids for p in persons_from_relationships(rows, rels)]
        [[], ['a']]
    """
    persons: list[Person] = []
    by_id: dict[Any, Person] = {}
    for row in person_rows:
        person = Person.from_dict(dict(row))
        person.parent_ids = []
        person.children_ids = []
        person.partner_id = None
        persons.append(person)
        by_id.setdefault(person.id, person)

    for rel in relationship_rows:
        source = rel.get("from_person_id")
        target = rel.get("to_person_id")
        kind = rel.get("type")
        if source not in by_id or target not in by_id or source == target:
            continue
        if kind == "parent":
            if source not in by_id[target].parent_ids:
                by_id[target].parent_ids.append(source)
            if target not in by_id[source].children_ids:
                by_id[source].children_ids.append(target)
        elif kind == "partner":
            if by_id[source].partner_id is None:
                by_id[source].partner_id = target
            if by_id[target].partner_id is None:
                by_id[target].partner_id = source

    return persons


# =============================================================================
# Clusters
# =============================================================================


def find_clusters(index: PersonIndex) -> list[list[Any]]:
    """
    Partition persons into connected components.

    Two persons share a component iff they are joined by a chain of parent,
    child or partner links. Components are discovered by BFS from each
    unprocessed person in input order; members are listed in BFS order.

    Args:
        index: Person index

    Returns:
        List of components, each a list of person ids.

    Example:
        >>> index = PersonIndex([Person("a", partner_id="b"), Person("b"), Person("c")])
        >>> find_clusters(index)
        [['a', 'b'], ['c']]
    """
    visited: set[Any] = set()
    clusters: list[list[Any]] = []

    for start in index:
        if start in visited:
            continue

        component: list[Any] = []
        queue: deque[Any] = deque([start])
        visited.add(start)

        while queue:
            pid = queue.popleft()
            component.append(pid)

            for neighbor in index.neighbors(pid):
                if neighbor not in visited:
                    visited.add(neighbor)
                    queue.append(neighbor)

        clusters.append(component)

    return clusters


# =============================================================================
# Root Selection
# =============================================================================


def ancestor_depth(index: PersonIndex, person_id: Any) -> int:
    """
    Length of the upward chain following the first listed parent.

    The walk stops at a missing id or at a person already seen in this
    walk, so cyclic ancestry terminates.
    """
    seen = {person_id}
    depth = 0
    current = person_id

    while True:
        person = index.get(current)
        if person is None:
            break
        if person.parent_ids:
            parent_id = person.parent_ids[0]
        else:
            resolved = index.parents_of(current)
            parent_id = resolved[0] if resolved else None
        if parent_id is None or parent_id not in index or parent_id in seen:
            break
        seen.add(parent_id)
        depth += 1
        current = parent_id

    return depth


def select_root(index: PersonIndex, member_ids: Sequence[Any]) -> Any:
    """
    Pick the person to seed recursive placement of a cluster.

    Prefers the first member (in input order) without parents. When every
    member has a parent, which implies cyclic ancestry, picks the member
    with the deepest ancestor chain (ties by input order) and warns.

    Args:
        index: Person index
        member_ids: Ids of the cluster members

    Returns:
        Root person id

    Raises:
        ValueError: If member_ids is empty
    """
    if not member_ids:
        raise ValueError("Cannot select a root from an empty cluster")

    ordered = sorted(member_ids, key=index.order_of)
    for pid in ordered:
        if not index.parents_of(pid):
            return pid

    warnings.warn(
        f"No parentless person in cluster of {len(ordered)} (every member has a parent). "
        "This indicates cyclic ancestry; placement stops at revisited persons.",
        GenealogyStructureWarning,
        stacklevel=2,
    )
    best = ordered[0]
    best_depth = -1
    for pid in ordered:
        depth = ancestor_depth(index, pid)
        if depth > best_depth:
            best, best_depth = pid, depth
    return best


__all__ = [
    "GenealogyStructureWarning",
    "PersonIndex",
    "persons_from_relationships",
    "find_clusters",
    "ancestor_depth",
    "select_root",
]
