"""
Base classes for family tree layouts.

This module provides the common interface and shared functionality for
layouts over person records:

- BaseLayout: Abstract base with event system, person and override management
- StaticLayout: For single-pass layouts (fires start, computes, fires end)
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Callable, Optional, Sequence

if TYPE_CHECKING:
    from typing_extensions import Self

from .types import Event, EventType, Person, PersonLike, Position, PositionLike
from .validation import validate_overrides, validate_persons

# Attribute names read from generic person objects, snake_case first
_PERSON_ATTRS = {
    "id": ("id",),
    "first_name": ("first_name", "firstName"),
    "last_name": ("last_name", "lastName"),
    "birth_year": ("birth_year", "birthYear"),
    "death_year": ("death_year", "deathYear"),
    "parent_ids": ("parent_ids", "parentIds"),
    "partner_id": ("partner_id", "partnerId"),
    "children_ids": ("children_ids", "childrenIds"),
}


def to_person(data: PersonLike) -> Person:
    """
    Normalize a person-like value into a Person.

    Accepts Person objects (used as is), record dicts (camelCase or
    snake_case keys) and arbitrary objects exposing the same attributes.
    """
    if isinstance(data, Person):
        return data
    if isinstance(data, Mapping):
        return Person.from_dict(dict(data))

    # Generic object - copy attributes
    kwargs: dict[str, Any] = {}
    for attr, names in _PERSON_ATTRS.items():
        for name in names:
            if hasattr(data, name):
                kwargs[attr] = getattr(data, name)
                break
    return Person.from_dict(kwargs)


class BaseLayout(ABC):
    """
    Abstract base class for family tree layouts.

    Provides shared infrastructure:
    - Event system (start/tick/end events)
    - Person management via properties
    - Position overrides

    Example:
        layout = SomeLayout(persons=persons)
        layout.run()

        for cluster in layout.clusters:
            print(cluster.id, cluster.center)
    """

    def __init__(
        self,
        *,
        persons: Optional[Sequence[PersonLike]] = None,
        overrides: Optional[Mapping[Any, PositionLike]] = None,
        on_start: Optional[Callable[[Optional[Event]], None]] = None,
        on_tick: Optional[Callable[[Optional[Event]], None]] = None,
        on_end: Optional[Callable[[Optional[Event]], None]] = None,
    ) -> None:
        """
        Initialize layout with configuration.

        Args:
            persons: Person records (Person objects, dicts, or objects with attributes)
            overrides: Mapping person id -> position that replaces the computed one
            on_start: Callback for start event
            on_tick: Callback for tick event (once per refinement iteration)
            on_end: Callback for end event
        """
        self._persons: list[Person] = []
        self._overrides: dict[Any, Position] = {}
        self._events: dict[EventType, Callable[[Optional[Event]], None]] = {}

        # Set initial values via properties (triggers normalization)
        if persons is not None:
            self.persons = persons
        if overrides is not None:
            self.overrides = overrides

        # Register event callbacks
        if on_start:
            self._events[EventType.start] = on_start
        if on_tick:
            self._events[EventType.tick] = on_tick
        if on_end:
            self._events[EventType.end] = on_end

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def persons(self) -> list[Person]:
        """Get the list of persons."""
        return self._persons

    @persons.setter
    def persons(self, value: Sequence[PersonLike]) -> None:
        """Set persons from a sequence of Person objects, dicts, or objects."""
        if isinstance(value, (str, bytes, Mapping)) or not isinstance(value, Sequence):
            # Let validation produce the error message
            validate_persons(value)
        self._persons = [to_person(item) for item in value]

    @property
    def overrides(self) -> dict[Any, Position]:
        """Get position overrides by person id."""
        return self._overrides

    @overrides.setter
    def overrides(self, value: Optional[Mapping[Any, PositionLike]]) -> None:
        """
        Set position overrides.

        Raises:
            InvalidOverrideError: If the map or any position is malformed
        """
        self._overrides = validate_overrides(value)

    # -------------------------------------------------------------------------
    # Event System
    # -------------------------------------------------------------------------

    def on(self, event: EventType | str, callback: Callable[[Optional[Event]], None]) -> Self:
        """
        Subscribe to a layout event.

        Args:
            event: Event type (EventType enum or string name)
            callback: Function to call when event fires

        Returns:
            self (for chaining)
        """
        if isinstance(event, str):
            event = EventType[event]
        self._events[event] = callback
        return self

    def trigger(self, event: Event) -> None:
        """
        Trigger an event, calling the registered callback.

        Args:
            event: Event payload with type and optional data
        """
        event_type = event.get("type")
        if event_type is not None and event_type in self._events:
            self._events[event_type](event)

    # -------------------------------------------------------------------------
    # Validation
    # -------------------------------------------------------------------------

    def validate(self) -> Self:
        """
        Validate current configuration.

        Checks every person record for well-formed ids and relation fields.
        Relationship consistency is not checked here (see
        find_relation_issues). Called automatically by run() but can be
        called early for fail-fast behavior.

        Returns:
            self (for chaining)

        Raises:
            InvalidPersonError: If any person record is malformed.
        """
        validate_persons(self._persons)
        return self

    # -------------------------------------------------------------------------
    # Lifecycle Methods
    # -------------------------------------------------------------------------

    @abstractmethod
    def run(self, **kwargs: Any) -> Self:
        """
        Run the layout algorithm.

        Returns:
            self (for chaining)
        """
        pass


class StaticLayout(BaseLayout):
    """
    Base class for single-pass layouts.

    Example:
        layout = FamilyTreeLayout(persons=persons, card_width=120)
        layout.run()
    """

    def run(self, **kwargs: Any) -> Self:
        """
        Run the layout algorithm.

        Validates persons, fires start event, computes layout, fires end event.

        Args:
            **kwargs: Additional arguments passed to _compute()

        Returns:
            self (for chaining)
        """
        self.validate()
        self.trigger({"type": EventType.start, "persons": len(self._persons)})

        # Subclasses implement _compute()
        self._compute(**kwargs)

        self.trigger(self._end_event())
        return self

    def _end_event(self) -> Event:
        return {"type": EventType.end, "persons": len(self._persons)}

    @abstractmethod
    def _compute(self, **kwargs: Any) -> None:
        """
        Compute positions and routing.

        Subclasses must implement this to perform the actual layout computation.
        """
        pass


__all__ = [
    "BaseLayout",
    "StaticLayout",
    "to_person",
]
