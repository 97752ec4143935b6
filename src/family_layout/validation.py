"""
Input validation utilities for family tree layout.

Provides centralized validation for person records, spacing configuration
and position overrides, plus a consistency report for relationships.
Type violations raise descriptive exceptions; relationship inconsistencies
are reported (or repaired) rather than rejected.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import replace
from typing import Any, Optional, Sequence

from .types import Person, Position


class ValidationError(ValueError):
    """Base exception for layout validation errors."""

    pass


class InvalidPersonError(ValidationError):
    """Raised when a person record is malformed."""

    pass


class InvalidSpacingError(ValidationError):
    """Raised when a spacing or size parameter is invalid."""

    pass


class InvalidOverrideError(ValidationError):
    """Raised when a position override is malformed."""

    pass


class InvalidOptionError(ValidationError):
    """Raised when a named option is not one of its allowed values."""

    pass


class InconsistentRelationError(ValidationError):
    """Raised by strict relationship checks when links are not reciprocal."""

    pass


def _is_id(value: Any) -> bool:
    return isinstance(value, (str, int)) and not isinstance(value, bool)


def _is_id_list(value: Any) -> bool:
    if isinstance(value, (str, bytes)) or not isinstance(value, Sequence):
        return False
    return all(_is_id(item) for item in value)


def validate_person(person: Any, position: Optional[int] = None) -> Person:
    """
    Validate a single person record.

    Args:
        person: Person object to check
        position: Index in the input sequence (for error messages)

    Returns:
        The validated person

    Raises:
        InvalidPersonError: If the id or a relation field has the wrong type
    """
    where = f"Person {position}" if position is not None else "Person"

    if not isinstance(person, Person):
        raise InvalidPersonError(f"{where}: expected Person, got {type(person).__name__}")
    if not _is_id(person.id) or person.id == "":
        raise InvalidPersonError(f"{where}: id must be a non-empty str or int, got {person.id!r}")
    if not _is_id_list(person.parent_ids):
        raise InvalidPersonError(f"{where} ({person.id}): parent_ids must be a sequence of ids")
    if not _is_id_list(person.children_ids):
        raise InvalidPersonError(f"{where} ({person.id}): children_ids must be a sequence of ids")
    if person.partner_id is not None and not _is_id(person.partner_id):
        raise InvalidPersonError(
            f"{where} ({person.id}): partner_id must be an id or None, got {person.partner_id!r}"
        )
    return person


def validate_persons(persons: Sequence[Any]) -> list[Person]:
    """
    Validate a sequence of person records.

    Raises:
        InvalidPersonError: If the input is not a sequence or any record is malformed
    """
    if isinstance(persons, (str, bytes, Mapping)) or not isinstance(persons, Sequence):
        raise InvalidPersonError(
            f"persons must be a sequence of records, got {type(persons).__name__}"
        )
    return [validate_person(person, i) for i, person in enumerate(persons)]


def validate_spacing(name: str, value: Any) -> float:
    """
    Validate a spacing or size parameter.

    Args:
        name: Parameter name (for error messages)
        value: Candidate value

    Returns:
        Validated value as float

    Raises:
        InvalidSpacingError: If the value is not a finite positive number
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidSpacingError(f"{name} must be a number, got {type(value).__name__}")
    value = float(value)
    if not math.isfinite(value) or value <= 0:
        raise InvalidSpacingError(f"{name} must be positive, got {value}")
    return value


def validate_offset(name: str, value: Any) -> float:
    """
    Validate a distance that may be zero.

    Raises:
        InvalidSpacingError: If the value is not a finite number >= 0
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidSpacingError(f"{name} must be a number, got {type(value).__name__}")
    value = float(value)
    if not math.isfinite(value) or value < 0:
        raise InvalidSpacingError(f"{name} must be >= 0, got {value}")
    return value


def validate_option(name: str, value: Any, choices: Sequence[str]) -> str:
    """
    Validate a string option against its allowed values.

    Raises:
        InvalidOptionError: If value is not one of choices
    """
    if value not in choices:
        raise InvalidOptionError(f"{name} must be one of {tuple(choices)}, got {value!r}")
    return value


def validate_iterations(iterations: int) -> int:
    """
    Validate refinement iteration count (zero disables refinement).

    Raises:
        ValidationError: If iterations < 0
    """
    if isinstance(iterations, bool) or not isinstance(iterations, int):
        raise ValidationError(f"iterations must be an int, got {type(iterations).__name__}")
    if iterations < 0:
        raise ValidationError(f"iterations must be >= 0, got {iterations}")
    return iterations


def _to_position(value: Any) -> Optional[Position]:
    if isinstance(value, Position):
        x, y = value.x, value.y
    elif isinstance(value, Mapping):
        if "x" not in value or "y" not in value:
            return None
        x, y = value["x"], value["y"]
    elif isinstance(value, Sequence) and not isinstance(value, (str, bytes)) and len(value) == 2:
        x, y = value[0], value[1]
    else:
        return None

    for coord in (x, y):
        if isinstance(coord, bool) or not isinstance(coord, (int, float)):
            return None
        if not math.isfinite(coord):
            return None
    return Position(float(x), float(y))


def validate_overrides(overrides: Optional[Mapping[Any, Any]]) -> dict[Any, Position]:
    """
    Validate and normalise a position override map.

    Args:
        overrides: Mapping person id -> Position, (x, y) pair or {"x": .., "y": ..}

    Returns:
        Mapping person id -> Position (empty when overrides is None)

    Raises:
        InvalidOverrideError: If the map or any position is malformed
    """
    if overrides is None:
        return {}
    if not isinstance(overrides, Mapping):
        raise InvalidOverrideError(
            f"overrides must be a mapping of person id to position, got {type(overrides).__name__}"
        )

    result: dict[Any, Position] = {}
    for person_id, value in overrides.items():
        position = _to_position(value)
        if position is None:
            raise InvalidOverrideError(
                f"Override for {person_id!r}: expected finite (x, y), got {value!r}"
            )
        result[person_id] = position
    return result


def find_relation_issues(
    persons: Sequence[Person],
    strict: bool = False,
) -> list[tuple[Any, str]]:
    """
    Report relationship inconsistencies.

    Detects duplicate ids, dangling references, parent/child links declared
    on one side only, asymmetric partner links and self references.

    Args:
        persons: Person records
        strict: If True, raises on any issue. If False, returns list of issues.

    Returns:
        List of (person_id, issue_description) tuples

    Raises:
        InconsistentRelationError: If strict=True and issues were found
    """
    issues: list[tuple[Any, str]] = []
    by_id: dict[Any, Person] = {}

    for person in persons:
        if person.id in by_id:
            issues.append((person.id, f"Person {person.id}: duplicate id"))
            continue
        by_id[person.id] = person

    for pid, person in by_id.items():
        for parent_id in person.parent_ids:
            parent = by_id.get(parent_id)
            if parent_id == pid:
                issues.append((pid, f"Person {pid}: lists itself as parent"))
            elif parent is None:
                issues.append((pid, f"Person {pid}: parent {parent_id} not found"))
            elif pid not in parent.children_ids:
                issues.append((pid, f"Person {pid}: parent {parent_id} does not list it as child"))

        for child_id in person.children_ids:
            child = by_id.get(child_id)
            if child_id == pid:
                issues.append((pid, f"Person {pid}: lists itself as child"))
            elif child is None:
                issues.append((pid, f"Person {pid}: child {child_id} not found"))
            elif pid not in child.parent_ids:
                issues.append((pid, f"Person {pid}: child {child_id} does not list it as parent"))

        if person.partner_id is not None:
            partner = by_id.get(person.partner_id)
            if person.partner_id == pid:
                issues.append((pid, f"Person {pid}: lists itself as partner"))
            elif partner is None:
                issues.append((pid, f"Person {pid}: partner {person.partner_id} not found"))
            elif partner.partner_id != pid:
                issues.append(
                    (pid, f"Person {pid}: partner {person.partner_id} is not partnered back")
                )

    if strict and issues:
        msg = "Inconsistent relationships:\n" + "\n".join(issue[1] for issue in issues)
        raise InconsistentRelationError(msg)

    return issues


def reconcile_relations(persons: Sequence[Person]) -> list[Person]:
    """
    Repair one-sided relationships by adding the missing reciprocal link.

    Links are only ever added, never removed. Dangling ids and self
    references are left untouched. A partner link is mirrored only when the
    other person has no partner of their own. The input records are not
    modified; repaired copies are returned in input order.
    """
    copies = [
        replace(p, parent_ids=list(p.parent_ids), children_ids=list(p.children_ids))
        for p in persons
    ]
    by_id: dict[Any, Person] = {}
    for person in copies:
        by_id.setdefault(person.id, person)

    for person in copies:
        if by_id.get(person.id) is not person:
            continue
        for parent_id in person.parent_ids:
            parent = by_id.get(parent_id)
            if parent is not None and parent is not person and person.id not in parent.children_ids:
                parent.children_ids.append(person.id)
        for child_id in person.children_ids:
            child = by_id.get(child_id)
            if child is not None and child is not person and person.id not in child.parent_ids:
                child.parent_ids.append(person.id)

    for person in copies:
        if person.partner_id is None or by_id.get(person.id) is not person:
            continue
        partner = by_id.get(person.partner_id)
        if partner is not None and partner is not person and partner.partner_id is None:
            partner.partner_id = person.id

    return copies


__all__ = [
    "ValidationError",
    "InvalidPersonError",
    "InvalidSpacingError",
    "InvalidOverrideError",
    "InvalidOptionError",
    "InconsistentRelationError",
    "validate_person",
    "validate_persons",
    "validate_spacing",
    "validate_offset",
    "validate_option",
    "validate_iterations",
    "validate_overrides",
    "find_relation_issues",
    "reconcile_relations",
]
