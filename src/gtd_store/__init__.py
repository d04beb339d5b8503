"""Read and write GTD items kept in Org or YAML files."""

from gtd_store.database import build_db_from_files, write_item_to_file
from gtd_store.formats import Format
from gtd_store.models import (
    LEAF_TYPES,
    Configuration,
    Context,
    Database,
    Entity,
    NextAction,
    Project,
    Status,
    Task,
    WaitingFor,
    get_status,
    get_statuses_for_type,
    is_active,
    make_entity,
)

__all__ = [
    "LEAF_TYPES",
    "Configuration",
    "Context",
    "Database",
    "Entity",
    "Format",
    "NextAction",
    "Project",
    "Status",
    "Task",
    "WaitingFor",
    "build_db_from_files",
    "get_status",
    "get_statuses_for_type",
    "is_active",
    "make_entity",
    "write_item_to_file",
]
