"""YAML record store: one record per top-level key."""

from pathlib import Path
from typing import Any

import structlog
import yaml

from gtd_store.backend import ID_FIELD, RawRecord, RecordStore
from gtd_store.errors import InvalidValueError

logger = structlog.get_logger()


class YamlRecordStore(RecordStore):
    """Reads and writes records kept as a top-level YAML mapping keyed by id.

    Booleans, lists and nested mappings keep their native YAML types.
    """

    def _load(self, path: Path) -> dict[Any, Any]:
        """Load the document, which must be a mapping (an empty file is allowed)."""
        with open(path, "r", encoding="utf-8") as f:
            try:
                document = yaml.safe_load(f)
            except yaml.YAMLError as e:
                logger.error("Failed to parse YAML records", path=str(path), error=str(e))
                raise

        if document is None:
            return {}
        if not isinstance(document, dict):
            raise ValueError(f"Expected a mapping at the top level of {path}, got {type(document).__name__}")
        return document

    def read_raw_records(self, path: Path) -> list[RawRecord]:
        """Read every top-level entry whose value is a mapping."""
        document = self._load(path)
        records = []
        for key, value in document.items():
            if not isinstance(value, dict):
                logger.debug("Skipping non-record YAML entry", path=str(path), key=key)
                continue
            record: RawRecord = dict(value)
            record[ID_FIELD] = str(key)
            records.append(record)
        logger.debug("Read YAML records", path=str(path), count=len(records))
        return records

    def _locate(self, path: Path, text: str, lines: list[str], record_id: str) -> tuple[int, int, Any, Any] | None:
        """Find the top-level entry keyed by ``record_id``.

        Returns ``(start, end, key, value)`` where ``lines[start:end]`` holds the
        entry, or None if there is no such entry. Blank and column-0 comment
        lines at the end of an entry are left outside it, with what follows.
        """
        loader = yaml.SafeLoader(text)
        try:
            root = loader.get_single_node()
            if root is None:
                return None
            if not isinstance(root, yaml.MappingNode):
                raise ValueError(f"Expected a mapping at the top level of {path}, got {root.tag}")
            if root.flow_style:
                raise ValueError(f"Cannot update a single record in the flow-style mapping of {path}")

            starts = [key_node.start_mark.line for key_node, _ in root.value]
            for index, (key_node, value_node) in enumerate(root.value):
                key = loader.construct_object(key_node, deep=True)
                if str(key) != record_id:
                    continue
                start = starts[index]
                end = starts[index + 1] if index + 1 < len(starts) else len(lines)
                while end > start + 1 and (not lines[end - 1].strip() or lines[end - 1].startswith(("#", "..."))):
                    end -= 1
                return start, end, key, loader.construct_object(value_node, deep=True)
            return None
        except yaml.YAMLError as e:
            logger.error("Failed to parse YAML records", path=str(path), error=str(e))
            raise
        finally:
            loader.dispose()

    def write_raw_record(self, path: Path, record_id: str, fields: RawRecord) -> None:
        """Merge ``fields`` into the entry keyed by ``record_id``, creating it if needed.

        Only the lines of that entry are rewritten; every other line of the
        file, comments included, is kept as it was.
        """
        with open(path, "r", encoding="utf-8", newline="") as f:
            text = f.read()
        lines = text.splitlines(keepends=True)

        entry = self._locate(path, text, lines, record_id)
        if entry is None:
            start = end = len(lines)
            key: Any = record_id
            record: RawRecord = {}
        else:
            start, end, key, existing = entry
            if not isinstance(existing, dict):
                raise InvalidValueError(dict, existing, f"top-level key {record_id!r} in {path} is not a record")
            record = dict(existing)

        for name, value in fields.items():
            if name == ID_FIELD:
                continue
            if value is None:
                record.pop(name, None)
            else:
                record[name] = value

        logger.info("Writing YAML record", path=str(path), record_id=record_id, created=entry is None)
        rendered = yaml.safe_dump({key: record}, default_flow_style=False, sort_keys=False, allow_unicode=True)
        if start > 0 and not lines[start - 1].endswith("\n"):
            lines[start - 1] += "\n"
        lines[start:end] = [rendered]

        with open(path, "w", encoding="utf-8", newline="") as f:
            f.writelines(lines)
