"""CLI for gtd-store."""

import dataclasses
from typing import Annotated, Literal

import structlog
from cyclopts import App, Parameter

from gtd_store.codec import parse_from_raw_for
from gtd_store.config import get_settings
from gtd_store.config_commands import config_app
from gtd_store.database import build_db_from_files, write_item_to_file
from gtd_store.formats import Format
from gtd_store.models import Database, Entity, Status, Task, is_active, leaf_type_for

logger = structlog.get_logger()

app = App(
    name="gtd",
    help="gtd-store - read and update GTD items kept in Org or YAML files",
)

app.command(config_app)


def configure_logging(log_level: str) -> None:
    """Configure structlog with the specified log level."""
    structlog.configure(wrapper_class=structlog.make_filtering_bound_logger(min_level=log_level.lower()))


def load_database() -> tuple[Format, Database]:
    """Build the database from the configured files."""
    settings = get_settings()
    files = settings.files()
    if not files:
        raise ValueError("No GTD files configured. Set them using:\n  gtd config set files <path>[,<path>...]")
    fmt = settings.format()
    return fmt, build_db_from_files(fmt, files)


def format_entity(entity: Entity) -> str:
    marker = "●" if is_active(entity) else "○"
    return f"{marker} {entity.id}: [{entity.status.display}] {entity.title} ({entity.type_name})"


@app.command(name="list")
def list_items(
    type: str | None = None,
    active: bool = False,
) -> None:
    """List items, optionally only those of one type or with an active status."""
    _, db = load_database()

    entities = list(db.table.values())
    if type:
        entities = db.items_of_type(leaf_type_for(type))
    if active:
        entities = db.active_items(entities)

    print(f"Found {len(entities)} item(s):\n")
    for entity in entities:
        print(format_entity(entity))


@app.command
def show(entity_id: str) -> None:
    """Show a single item."""
    _, db = load_database()
    entity = db.get(entity_id)

    print(f"Item: {entity.id}")
    print(f"Type: {entity.type_name}")
    print(f"Title: {entity.title}")
    print(f"Status: {entity.status.display} ({'active' if is_active(entity) else 'inactive'})")
    if isinstance(entity, Task):
        if entity.superior_projects:
            print(f"Projects: {', '.join(entity.superior_projects)}")
        if entity.context:
            print(f"Contexts: {', '.join(sorted(c.name for c in entity.context))}")
    print(f"File: {db.sources[entity.id]}")


@app.command(name="set-status")
def set_status(entity_id: str, status: str) -> None:
    """Change the status of an item and write it back to its file."""
    fmt, db = load_database()
    entity = db.get(entity_id)

    new_status: Status = parse_from_raw_for(fmt, type(entity), Status, db.global_config, status)
    updated = dataclasses.replace(entity, status=new_status)
    write_item_to_file(fmt, db.sources[entity_id], updated, db.global_config)
    print(f"Updated item {entity_id}: {entity.status.display} -> {new_status.display}")


@app.meta.default
def main(
    *tokens: Annotated[str, Parameter(show=False, allow_leading_hyphen=True)],
    log_level: Literal["debug", "info", "warning", "error", "critical"] = "critical",
) -> None:
    """Main entry point with global options."""
    configure_logging(log_level)
    app(tokens)


if __name__ == "__main__":
    app.meta()
