"""Record store implementations."""

from gtd_store.backend import RecordStore
from gtd_store.backends.org import OrgRecordStore
from gtd_store.backends.yaml_file import YamlRecordStore
from gtd_store.formats import Format

__all__ = ["OrgRecordStore", "YamlRecordStore", "get_record_store"]

_STORES: dict[Format, type[RecordStore]] = {
    Format.ORG: OrgRecordStore,
    Format.YAML: YamlRecordStore,
}


def get_record_store(fmt: Format) -> RecordStore:
    """Return the record store that reads and writes ``fmt`` files."""
    return _STORES[fmt]()
