"""Supported on-disk formats."""

from enum import Enum
from pathlib import Path


class Format(Enum):
    """File formats that GTD records can be read from and written to."""

    ORG = "org"
    YAML = "yaml"

    @classmethod
    def from_path(cls, path: Path | str) -> "Format":
        """Guess the format of a file from its suffix."""
        suffix = Path(path).suffix.lower()
        if suffix == ".org":
            return cls.ORG
        if suffix in (".yaml", ".yml"):
            return cls.YAML
        raise ValueError(f"Cannot tell the format of {path} from its suffix")
