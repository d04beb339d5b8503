"""Building a database from GTD files and writing items back to them."""

from collections.abc import Iterable
from pathlib import Path

import structlog

from gtd_store.backend import TYPE_FIELD, RawRecord
from gtd_store.backends import get_record_store
from gtd_store.codec import (
    CONTEXT_REGEX_FIELD,
    config_from_record,
    entity_from_record,
    entity_to_record,
    is_config_record,
)
from gtd_store.errors import MissingConfigError, NoSuchFileError
from gtd_store.formats import Format
from gtd_store.models import DEFAULT_CONTEXT_TAG_REGEX, Configuration, Database, Entity

logger = structlog.get_logger()


def _merge_configs(configs: list[tuple[Configuration, bool]]) -> Configuration:
    """Merge config records in file order.

    Later records win per item type, and for the context regex when they declare one.
    """
    statuses = {}
    regex = DEFAULT_CONTEXT_TAG_REGEX
    for config, declares_regex in configs:
        statuses.update(config.statuses)
        if declares_regex:
            regex = config.context_tag_regex
    return Configuration(statuses=statuses, context_tag_regex=regex)


def build_db_from_files(fmt: Format, file_paths: Iterable[Path | str]) -> Database:
    """Read every record in ``file_paths`` and assemble a validated database.

    All files are read before any record is parsed. The first error aborts
    the build, so no partially built database is ever returned.

    Args:
        fmt: Format shared by all the files
        file_paths: Files to read, in order

    Returns:
        Database holding every item keyed by id and the merged configuration

    Raises:
        NoSuchFileError: If a file does not exist
        MissingConfigError: If no file contains a config record
        UnsupportedGtdTypeError: If a record has an unknown type tag
        UnknownStatusError: If a record's status is not allowed for its type
    """
    paths = [Path(p) for p in file_paths]
    store = get_record_store(fmt)
    logger.info("Building database", format=fmt.value, files=[str(p) for p in paths])

    pool: list[tuple[Path, RawRecord]] = []
    for path in paths:
        try:
            records = store.read_raw_records(path)
        except FileNotFoundError as e:
            logger.error("Input file does not exist", path=str(path))
            raise NoSuchFileError(path) from e
        pool.extend((path, record) for record in records)

    configs = []
    items = []
    for path, record in pool:
        if is_config_record(fmt, record):
            configs.append((config_from_record(fmt, record), record.get(CONTEXT_REGEX_FIELD) not in (None, "")))
        elif record.get(TYPE_FIELD) in (None, ""):
            logger.debug("Skipping record without a type", path=str(path), title=record.get("title"))
        else:
            items.append((path, record))

    if not configs:
        raise MissingConfigError(paths)
    if len(configs) > 1:
        logger.warning("Several config records found, later ones take precedence", count=len(configs))
    config = _merge_configs(configs)

    table: dict[str, Entity] = {}
    sources: dict[str, Path] = {}
    for path, record in items:
        entity = entity_from_record(fmt, record, config)
        if entity.id in table:
            logger.warning(
                "Duplicate item id, keeping the last one",
                id=entity.id,
                previous=str(sources[entity.id]),
                path=str(path),
            )
        table[entity.id] = entity
        sources[entity.id] = path

    logger.info("Database built", items=len(table), configs=len(configs))
    return Database(table=table, global_config=config, sources=sources)


def write_item_to_file(fmt: Format, file_path: Path | str, entity: Entity, config: Configuration) -> None:
    """Write ``entity`` into ``file_path``, replacing the record with the same id.

    Only the item's own fields are touched; everything else in the file is
    preserved. A record is appended when no record has the item's id.

    Raises:
        NoSuchFileError: If the file does not exist
    """
    path = Path(file_path)
    record = entity_to_record(fmt, entity, config)
    logger.info("Writing item", format=fmt.value, path=str(path), id=entity.id, type=entity.type_name)
    try:
        get_record_store(fmt).write_raw_record(path, entity.id, record)
    except FileNotFoundError as e:
        logger.error("Output file does not exist", path=str(path))
        raise NoSuchFileError(path) from e
