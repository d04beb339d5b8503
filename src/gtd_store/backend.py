"""Record store interface shared by the file formats."""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

RawRecord = dict[str, Any]

ID_FIELD = "id"
TYPE_FIELD = "type"
CONFIG_FIELD = "is_config"


class RecordStore(ABC):
    """Abstract base class for reading and writing raw records in one file format.

    A raw record maps logical field names (``id``, ``type``, ``title``,
    ``status``, ...) to the values found in the file, before any validation.
    """

    @abstractmethod
    def read_raw_records(self, path: Path) -> list[RawRecord]:
        """Read every record in a file, in file order.

        Raises:
            FileNotFoundError: If the file does not exist
        """
        pass

    @abstractmethod
    def write_raw_record(self, path: Path, record_id: str, fields: RawRecord) -> None:
        """Insert or update the record with ``record_id``.

        Fields whose value is None are removed from the record. Every other
        part of the file is left as it was.

        Raises:
            FileNotFoundError: If the file does not exist
        """
        pass
