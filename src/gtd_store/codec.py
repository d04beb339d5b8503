"""Conversion between raw record values and typed GTD values.

Every conversion is looked up by ``(Format, target type)``. Parsing turns the
strings, booleans and lists found in a file into typed values; writing is the
exact inverse for every value parsing can produce. The active
``Configuration`` is always passed in explicitly.
"""

import re
from collections.abc import Callable, Iterable
from dataclasses import MISSING, fields
from typing import Any

import structlog

from gtd_store.backend import CONFIG_FIELD, TYPE_FIELD, RawRecord
from gtd_store.errors import InvalidValueError, MissingFieldError, UnknownStatusError
from gtd_store.formats import Format
from gtd_store.models import (
    DEFAULT_CONTEXT_TAG_REGEX,
    Configuration,
    Context,
    Entity,
    Status,
    get_statuses_for_type,
    leaf_type_for,
)

logger = structlog.get_logger()

ProjectIds = tuple[str, ...]
ContextSet = frozenset[Context]
StatusList = tuple[Status, ...]

Parser = Callable[[Configuration | None, Any], Any]
OwnedParser = Callable[[type[Entity], Configuration | None, Any], Any]
Writer = Callable[[Configuration | None, Any], Any]

ORG_TRUE = "t"
ORG_FALSE = "nil"
STATUS_SEPARATOR = "|"
ORG_STATUSES_SUFFIX = "_statuses"
YAML_STATUSES_FIELD = "statuses"
CONTEXT_REGEX_FIELD = "context_tag_regex"


def _context_regex(config: Configuration | None) -> re.Pattern[str]:
    pattern = config.context_tag_regex if config is not None else DEFAULT_CONTEXT_TAG_REGEX
    return re.compile(pattern)


def _match_context(regex: re.Pattern[str], token: str) -> Context | None:
    """Extract a context from ``token``: the first group if the regex has one, else the whole match."""
    match = regex.search(token)
    if match is None:
        return None
    if regex.groups and match.group(1) is not None:
        return Context(match.group(1))
    return Context(match.group(0))


def _first_group_span(pattern: str) -> tuple[int, int] | None:
    """Return the positions of the parentheses around the first capture group."""
    start = None
    depth = 0
    escaped = False
    for index, char in enumerate(pattern):
        if escaped:
            escaped = False
            continue
        if char == "\\":
            escaped = True
        elif char == "(":
            if start is None:
                if pattern.startswith("(?", index) and not pattern.startswith("(?P<", index):
                    continue
                start = index
            else:
                depth += 1
        elif char == ")" and start is not None:
            if depth == 0:
                return start, index
            depth -= 1
    return None


def _unescape(literal: str) -> str:
    return re.sub(r"\\(\W)", r"\1", literal)


def _render_context(config: Configuration | None, context: Context) -> str:
    """Produce the tag that the context regex turns back into ``context``."""
    regex = _context_regex(config)
    raw = context.name
    span = _first_group_span(regex.pattern)
    if regex.groups and span is not None:
        prefix = regex.pattern[: span[0]]
        suffix = regex.pattern[span[1] + 1 :]
        if prefix.startswith("^"):
            prefix = prefix[1:]
        if suffix.endswith("$") and not suffix.endswith("\\$"):
            suffix = suffix[:-1]
        raw = f"{_unescape(prefix)}{context.name}{_unescape(suffix)}"

    if _match_context(regex, raw) != context:
        raise InvalidValueError(Context, context.name, f"cannot be written as a tag matching {regex.pattern!r}")
    return raw


def _split(raw: Any) -> list[str]:
    if isinstance(raw, str):
        return raw.split()
    if isinstance(raw, list):
        return [str(item) for item in raw]
    raise InvalidValueError(list, raw, "expected a string or a list")


def _parse_contexts(config: Configuration | None, raw: Any) -> ContextSet:
    regex = _context_regex(config)
    contexts = set()
    for token in _split(raw):
        context = _match_context(regex, token)
        if context is None:
            logger.debug("Skipping tag that is not a context", tag=token, regex=regex.pattern)
            continue
        contexts.add(context)
    return frozenset(contexts)


def _parse_context(config: Configuration | None, raw: Any) -> Context:
    regex = _context_regex(config)
    context = _match_context(regex, str(raw))
    if context is None:
        raise InvalidValueError(Context, raw, f"does not match {regex.pattern!r}")
    return context


def _parse_org_str(config: Configuration | None, raw: Any) -> str:
    return str(raw).strip()


def _parse_yaml_str(config: Configuration | None, raw: Any) -> str:
    if isinstance(raw, (list, dict)):
        raise InvalidValueError(str, raw, "expected a scalar")
    return str(raw)


def _parse_org_bool(config: Configuration | None, raw: Any) -> bool:
    if isinstance(raw, bool):
        return raw
    value = str(raw).strip().lower()
    if value == ORG_TRUE:
        return True
    if value in (ORG_FALSE, ""):
        return False
    raise InvalidValueError(bool, raw, f"expected {ORG_TRUE!r} or {ORG_FALSE!r}")


def _parse_yaml_bool(config: Configuration | None, raw: Any) -> bool:
    if not isinstance(raw, bool):
        raise InvalidValueError(bool, raw, "expected true or false")
    return raw


def _parse_project_ids(config: Configuration | None, raw: Any) -> ProjectIds:
    return tuple(_split(raw))


def _parse_org_statuses(config: Configuration | None, raw: Any) -> StatusList:
    """Parse ``"ACTIVE NEXT | DONE CANCELLED"``; keywords after the bar are inactive."""
    parts = str(raw).split(STATUS_SEPARATOR)
    if len(parts) > 2:
        raise InvalidValueError(StatusList, raw, f"more than one {STATUS_SEPARATOR!r}")
    active = [Status(display, True) for display in parts[0].split()]
    inactive = [Status(display, False) for display in parts[1].split()] if len(parts) == 2 else []
    return tuple(active + inactive)


def _parse_yaml_statuses(config: Configuration | None, raw: Any) -> StatusList:
    if isinstance(raw, str):
        return _parse_org_statuses(config, raw)
    if not isinstance(raw, list):
        raise InvalidValueError(StatusList, raw, "expected a list")

    statuses = []
    for item in raw:
        if isinstance(item, str):
            statuses.append(Status(item, True))
        elif isinstance(item, dict) and "display" in item:
            statuses.append(Status(str(item["display"]), bool(item.get("is_active", True))))
        else:
            raise InvalidValueError(Status, item, "expected a name or a mapping with 'display'")
    return tuple(statuses)


def _parse_status(owner_type: type[Entity], config: Configuration | None, raw: Any) -> Status:
    allowed = get_statuses_for_type(config, owner_type.type_name) if config is not None else ()
    for status in allowed:
        if status.display == raw:
            return status
    raise UnknownStatusError(owner_type, raw)


def _write_status(config: Configuration | None, value: Status) -> str:
    return value.display


def _write_str(config: Configuration | None, value: str) -> str:
    return value


def _write_org_bool(config: Configuration | None, value: bool) -> str:
    return ORG_TRUE if value else ORG_FALSE


def _write_yaml_bool(config: Configuration | None, value: bool) -> bool:
    return value


def _join_org_tokens(target_type: Any, tokens: Iterable[str]) -> str | None:
    tokens = list(tokens)
    for token in tokens:
        if not token or token != token.strip() or len(token.split()) != 1:
            raise InvalidValueError(target_type, token, "Org lists cannot hold values containing whitespace")
    return " ".join(tokens) or None


def _write_org_project_ids(config: Configuration | None, value: ProjectIds) -> str | None:
    return _join_org_tokens(ProjectIds, value)


def _write_yaml_project_ids(config: Configuration | None, value: ProjectIds) -> list[str] | None:
    return list(value) or None


def _sorted_tags(config: Configuration | None, value: ContextSet) -> list[str]:
    return [_render_context(config, context) for context in sorted(value, key=lambda c: c.name)]


def _write_org_contexts(config: Configuration | None, value: ContextSet) -> str | None:
    return _join_org_tokens(ContextSet, _sorted_tags(config, value))


def _write_yaml_contexts(config: Configuration | None, value: ContextSet) -> list[str] | None:
    return _sorted_tags(config, value) or None


def _write_org_statuses(config: Configuration | None, value: StatusList) -> str:
    active = [status.display for status in value if status.is_active]
    inactive = [status.display for status in value if not status.is_active]
    if [status.display for status in value] != active + inactive:
        raise InvalidValueError(StatusList, value, "Org status lists must put active statuses first")
    if not inactive:
        return " ".join(active)
    return f"{' '.join(active)} {STATUS_SEPARATOR} {' '.join(inactive)}".strip()


def _write_yaml_statuses(config: Configuration | None, value: StatusList) -> list[dict[str, Any]]:
    return [{"display": status.display, "is_active": status.is_active} for status in value]


_PARSERS: dict[tuple[Format, Any], Parser] = {
    (Format.ORG, str): _parse_org_str,
    (Format.ORG, bool): _parse_org_bool,
    (Format.ORG, Context): _parse_context,
    (Format.ORG, ContextSet): _parse_contexts,
    (Format.ORG, ProjectIds): _parse_project_ids,
    (Format.ORG, StatusList): _parse_org_statuses,
    (Format.YAML, str): _parse_yaml_str,
    (Format.YAML, bool): _parse_yaml_bool,
    (Format.YAML, Context): _parse_context,
    (Format.YAML, ContextSet): _parse_contexts,
    (Format.YAML, ProjectIds): _parse_project_ids,
    (Format.YAML, StatusList): _parse_yaml_statuses,
}

_OWNED_PARSERS: dict[tuple[Format, Any], OwnedParser] = {
    (Format.ORG, Status): _parse_status,
    (Format.YAML, Status): _parse_status,
}

_WRITERS: dict[tuple[Format, Any], Writer] = {
    (Format.ORG, str): _write_str,
    (Format.ORG, bool): _write_org_bool,
    (Format.ORG, Status): _write_status,
    (Format.ORG, Context): _render_context,
    (Format.ORG, ContextSet): _write_org_contexts,
    (Format.ORG, ProjectIds): _write_org_project_ids,
    (Format.ORG, StatusList): _write_org_statuses,
    (Format.YAML, str): _write_str,
    (Format.YAML, bool): _write_yaml_bool,
    (Format.YAML, Status): _write_status,
    (Format.YAML, Context): _render_context,
    (Format.YAML, ContextSet): _write_yaml_contexts,
    (Format.YAML, ProjectIds): _write_yaml_project_ids,
    (Format.YAML, StatusList): _write_yaml_statuses,
}


def parse_from_raw(fmt: Format, target_type: Any, config: Configuration | None, raw_value: Any) -> Any:
    """Convert a raw value read from a ``fmt`` file into ``target_type``.

    Args:
        fmt: Format the value was read from
        target_type: Type to produce, e.g. ``Context`` or ``frozenset[Context]``
        config: Active configuration (supplies the context tag regex)
        raw_value: String, boolean or list found in the file

    Returns:
        The typed value

    Raises:
        TypeError: If no conversion exists for ``(fmt, target_type)``
        InvalidValueError: If the raw value cannot be converted
    """
    try:
        parser = _PARSERS[(fmt, target_type)]
    except KeyError:
        raise TypeError(f"No {fmt.value} parser for {target_type}") from None
    return parser(config, raw_value)


def parse_from_raw_for(
    fmt: Format,
    owner_type: type[Entity],
    target_type: Any,
    config: Configuration | None,
    raw_value: Any,
) -> Any:
    """Convert a raw value for a field of ``owner_type``.

    Statuses are only valid relative to the owning item type, so they are
    checked against ``config.statuses[owner_type.type_name]``. Other target
    types are converted exactly as ``parse_from_raw`` does.

    Raises:
        UnknownStatusError: If a status is not allowed for ``owner_type``
    """
    parser = _OWNED_PARSERS.get((fmt, target_type))
    if parser is None:
        return parse_from_raw(fmt, target_type, config, raw_value)
    return parser(owner_type, config, raw_value)


def write_to_raw(fmt: Format, target_type: Any, config: Configuration | None, value: Any) -> Any:
    """Convert a typed value into the raw form stored in ``fmt`` files.

    Returns None for empty collections, which removes the field from the record.
    """
    try:
        writer = _WRITERS[(fmt, target_type)]
    except KeyError:
        raise TypeError(f"No {fmt.value} writer for {target_type}") from None
    return writer(config, value)


def is_config_record(fmt: Format, record: RawRecord) -> bool:
    raw = record.get(CONFIG_FIELD)
    if raw is None:
        return False
    return parse_from_raw(fmt, bool, None, raw)


def _org_status_table(record: RawRecord) -> dict[str, Any]:
    return {
        key[: -len(ORG_STATUSES_SUFFIX)]: raw
        for key, raw in record.items()
        if key.endswith(ORG_STATUSES_SUFFIX) and len(key) > len(ORG_STATUSES_SUFFIX)
    }


def _yaml_status_table(record: RawRecord) -> dict[str, Any]:
    table = record.get(YAML_STATUSES_FIELD) or {}
    if not isinstance(table, dict):
        raise InvalidValueError(YAML_STATUSES_FIELD, table, "expected a mapping of type name to statuses")
    return {str(type_name): raw for type_name, raw in table.items()}


_STATUS_TABLES: dict[Format, Callable[[RawRecord], dict[str, Any]]] = {
    Format.ORG: _org_status_table,
    Format.YAML: _yaml_status_table,
}


def config_from_record(fmt: Format, record: RawRecord) -> Configuration:
    """Build a ``Configuration`` from a config record.

    Org config records carry one ``<TYPE>_STATUSES`` property per item type;
    YAML config records carry a ``statuses`` mapping.
    """
    statuses = {
        type_name: parse_from_raw(fmt, StatusList, None, raw) for type_name, raw in _STATUS_TABLES[fmt](record).items()
    }

    regex = record.get(CONTEXT_REGEX_FIELD)
    regex = parse_from_raw(fmt, str, None, regex) if regex not in (None, "") else DEFAULT_CONTEXT_TAG_REGEX
    try:
        re.compile(regex)
    except re.error as e:
        raise InvalidValueError(CONTEXT_REGEX_FIELD, regex, str(e)) from e

    logger.debug("Parsed config record", types=list(statuses), context_tag_regex=regex)
    return Configuration(statuses=statuses, context_tag_regex=regex)


def entity_from_record(fmt: Format, record: RawRecord, config: Configuration) -> Entity:
    """Instantiate and validate the item described by an item record.

    Raises:
        UnsupportedGtdTypeError: If the type tag names no item type
        UnknownStatusError: If the status is not allowed for the item type
        MissingFieldError: If a required field is absent
    """
    entity_type = leaf_type_for(parse_from_raw(fmt, str, config, record.get(TYPE_FIELD)))

    values = {}
    for entity_field in fields(entity_type):
        raw = record.get(entity_field.name)
        if raw is None:
            if entity_field.default is MISSING and entity_field.default_factory is MISSING:
                raise MissingFieldError(entity_type, entity_field.name)
            continue
        values[entity_field.name] = parse_from_raw_for(fmt, entity_type, entity_field.type, config, raw)
    return entity_type(**values)


def entity_to_record(fmt: Format, entity: Entity, config: Configuration) -> RawRecord:
    """Encode every field of ``entity``; empty optional fields encode as None."""
    record: RawRecord = {TYPE_FIELD: write_to_raw(fmt, str, config, entity.type_name)}
    for entity_field in fields(entity):
        record[entity_field.name] = write_to_raw(fmt, entity_field.type, config, getattr(entity, entity_field.name))
    return record
