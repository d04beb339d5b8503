"""Data models for GTD items and their configuration."""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, ClassVar

from gtd_store.errors import AbstractTypeError, UnsupportedGtdTypeError

DEFAULT_CONTEXT_TAG_REGEX = r"@(\S+)"


@dataclass(frozen=True)
class Status:
    """A status keyword and whether items carrying it are still open."""

    display: str
    is_active: bool


@dataclass(frozen=True)
class Context:
    """A GTD context tag such as a place or a tool."""

    name: str


@dataclass(frozen=True)
class Configuration:
    """Per-type status lists and the regex used to pick contexts out of tags.

    A type name that has no entry in ``statuses`` has no valid status at all.
    """

    statuses: Mapping[str, tuple[Status, ...]] = field(default_factory=dict)
    context_tag_regex: str = DEFAULT_CONTEXT_TAG_REGEX

    def __post_init__(self) -> None:
        object.__setattr__(self, "statuses", {name: tuple(values) for name, values in self.statuses.items()})


def get_statuses_for_type(config: Configuration, type_name: str) -> tuple[Status, ...]:
    """Return the ordered statuses allowed for ``type_name``."""
    return config.statuses.get(type_name, ())


@dataclass(frozen=True)
class Entity:
    """Base class of every GTD item.

    Concrete item types set ``type_name``; classes that leave it empty are
    abstract and cannot be instantiated.
    """

    type_name: ClassVar[str] = ""

    id: str
    title: str
    status: Status

    def __new__(cls, *args: Any, **kwargs: Any) -> "Entity":
        if not cls.type_name:
            raise AbstractTypeError(cls)
        return super().__new__(cls)


@dataclass(frozen=True)
class Task(Entity):
    """An actionable item that can belong to projects and carry contexts."""

    superior_projects: tuple[str, ...] = ()
    context: frozenset[Context] = frozenset()

    def __post_init__(self) -> None:
        object.__setattr__(self, "superior_projects", tuple(self.superior_projects))
        object.__setattr__(self, "context", frozenset(self.context))


@dataclass(frozen=True)
class Project(Entity):
    """A multi-step outcome."""

    type_name: ClassVar[str] = "project"


@dataclass(frozen=True)
class NextAction(Task):
    """A single actionable step."""

    type_name: ClassVar[str] = "next_action"


@dataclass(frozen=True)
class WaitingFor(Task):
    """A task blocked on someone else."""

    type_name: ClassVar[str] = "waiting_for"


LEAF_TYPES: tuple[type[Entity], ...] = (Project, NextAction, WaitingFor)


def leaf_type_for(type_name: Any) -> type[Entity]:
    """Return the concrete item class whose ``type_name`` is ``type_name``.

    Raises:
        UnsupportedGtdTypeError: If no item class uses that name
    """
    for leaf in LEAF_TYPES:
        if leaf.type_name == type_name:
            return leaf
    raise UnsupportedGtdTypeError(type_name)


def make_entity(type_name: str, **fields: Any) -> Entity:
    """Build a concrete item from its type name and typed field values."""
    return leaf_type_for(type_name)(**fields)


def get_status(entity: Entity) -> Status:
    """Return the status of ``entity``."""
    return entity.status


def is_active(entity: Entity) -> bool:
    """Return whether the status of ``entity`` counts as active."""
    return entity.status.is_active


@dataclass
class Database:
    """Items read from a set of files, keyed by id, plus their configuration."""

    table: dict[str, Entity]
    global_config: Configuration
    sources: dict[str, Path] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.table)

    def __contains__(self, entity_id: object) -> bool:
        return entity_id in self.table

    def get(self, entity_id: str) -> Entity:
        """Return the item with ``entity_id``; raises KeyError if absent."""
        return self.table[entity_id]

    def items_of_type(self, entity_type: type[Entity]) -> list[Entity]:
        return [entity for entity in self.table.values() if isinstance(entity, entity_type)]

    def active_items(self, entities: Iterable[Entity] | None = None) -> list[Entity]:
        """Return the items whose status is active, in table order."""
        candidates = self.table.values() if entities is None else entities
        return [entity for entity in candidates if is_active(entity)]
