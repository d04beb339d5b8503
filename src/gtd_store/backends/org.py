"""Org-mode record store: one record per headline with a property drawer."""

import re
from dataclasses import dataclass, field
from pathlib import Path

import structlog

from gtd_store.backend import ID_FIELD, RawRecord, RecordStore

logger = structlog.get_logger()

HEADLINE_RE = re.compile(r"^(?P<stars>\*+)[ \t]+(?P<text>.*?)(?P<tags>[ \t]+:[\w@#%:]+:)?[ \t]*$")
PLANNING_RE = re.compile(r"^[ \t]*(SCHEDULED|DEADLINE|CLOSED):")
DRAWER_START_RE = re.compile(r"^[ \t]*:PROPERTIES:[ \t]*$", re.IGNORECASE)
DRAWER_END_RE = re.compile(r"^[ \t]*:END:[ \t]*$", re.IGNORECASE)
PROPERTY_RE = re.compile(r"^(?P<indent>[ \t]*):(?P<key>[^:\s]+):(?:[ \t]+(?P<value>.*?))?[ \t]*$")

TITLE_FIELD = "title"


@dataclass
class _Headline:
    """Position of a headline and its property drawer inside a list of lines."""

    line: int
    stars: str
    title: str
    tags: str
    drawer_end: int | None = None
    properties: dict[str, tuple[int, str]] = field(default_factory=dict)


def _strip_eol(line: str) -> str:
    return line.rstrip("\r\n")


def _scan(lines: list[str]) -> list[_Headline]:
    """Locate every headline and, where present, its property drawer."""
    headlines = []
    for index, line in enumerate(lines):
        match = HEADLINE_RE.match(_strip_eol(line))
        if not match:
            continue
        headline = _Headline(
            line=index,
            stars=match.group("stars"),
            title=match.group("text"),
            tags=match.group("tags") or "",
        )
        headlines.append(headline)

        cursor = index + 1
        if cursor < len(lines) and PLANNING_RE.match(lines[cursor]):
            cursor += 1
        if cursor >= len(lines) or not DRAWER_START_RE.match(_strip_eol(lines[cursor])):
            continue

        properties: dict[str, tuple[int, str]] = {}
        for inner in range(cursor + 1, len(lines)):
            text = _strip_eol(lines[inner])
            if DRAWER_END_RE.match(text):
                headline.drawer_end = inner
                headline.properties = properties
                break
            if HEADLINE_RE.match(text):
                logger.debug("Unterminated property drawer", line=cursor + 1)
                break
            prop = PROPERTY_RE.match(text)
            if prop:
                properties[prop.group("key").upper()] = (inner, prop.group("value") or "")
    return headlines


def _format_property(key: str, value: str, indent: str = "") -> str:
    if value == "":
        return f"{indent}:{key}:\n"
    return f"{indent}:{key}: {value}\n"


class OrgRecordStore(RecordStore):
    """Reads and writes records stored as Org headlines with property drawers.

    Property keys map to lower-cased field names and the headline text is the
    ``title`` field. Every value is a string.
    """

    def _read_lines(self, path: Path) -> list[str]:
        with open(path, "r", encoding="utf-8", newline="") as f:
            return f.read().splitlines(keepends=True)

    def read_raw_records(self, path: Path) -> list[RawRecord]:
        """Read every headline that carries a property drawer."""
        lines = self._read_lines(path)
        records = []
        for headline in _scan(lines):
            if headline.drawer_end is None:
                continue
            record: RawRecord = {TITLE_FIELD: headline.title}
            for key, (_, value) in headline.properties.items():
                record[key.lower()] = value
            records.append(record)
        logger.debug("Read org records", path=str(path), count=len(records))
        return records

    def write_raw_record(self, path: Path, record_id: str, fields: RawRecord) -> None:
        """Update the headline whose ID property is ``record_id``, or append a new one."""
        lines = self._read_lines(path)
        target = None
        for headline in _scan(lines):
            if headline.drawer_end is not None and headline.properties.get("ID", (0, None))[1] == record_id:
                target = headline
                break

        if target is None:
            logger.info("Appending org record", path=str(path), record_id=record_id)
            lines = self._append(lines, record_id, fields)
        else:
            logger.info("Updating org record", path=str(path), record_id=record_id, line=target.line + 1)
            lines = self._update(lines, target, fields)

        with open(path, "w", encoding="utf-8", newline="") as f:
            f.writelines(lines)

    def _update(self, lines: list[str], headline: _Headline, fields: RawRecord) -> list[str]:
        lines = list(lines)
        title = fields.get(TITLE_FIELD)
        if title is not None:
            newline = lines[headline.line][len(_strip_eol(lines[headline.line])) :] or "\n"
            lines[headline.line] = f"{headline.stars} {title}{headline.tags}{newline}"

        deleted: set[int] = set()
        inserted: list[str] = []
        for name, value in fields.items():
            if name == TITLE_FIELD:
                continue
            key = name.upper()
            if key in headline.properties:
                index, _ = headline.properties[key]
                if value is None:
                    deleted.add(index)
                else:
                    indent = PROPERTY_RE.match(_strip_eol(lines[index])).group("indent")
                    lines[index] = _format_property(key, value, indent)
            elif value is not None:
                inserted.append(_format_property(key, value))

        updated = []
        for index, line in enumerate(lines):
            if index == headline.drawer_end:
                updated.extend(inserted)
            if index not in deleted:
                updated.append(line)
        return updated

    def _append(self, lines: list[str], record_id: str, fields: RawRecord) -> list[str]:
        lines = list(lines)
        if lines and not lines[-1].endswith("\n"):
            lines[-1] += "\n"
        title = fields.get(TITLE_FIELD)
        if title is None:
            title = record_id
        lines.append(f"* {title}\n")
        lines.append(":PROPERTIES:\n")
        lines.append(_format_property("ID", record_id))
        for name, value in fields.items():
            if name in (TITLE_FIELD, ID_FIELD) or value is None:
                continue
            lines.append(_format_property(name.upper(), value))
        lines.append(":END:\n")
        return lines
