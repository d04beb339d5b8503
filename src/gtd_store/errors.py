"""Exceptions raised while reading and writing GTD records."""

from pathlib import Path
from typing import Any


class GtdError(ValueError):
    """Base class for all gtd-store errors."""


class AbstractTypeError(GtdError, TypeError):
    """Raised when an abstract entity class is instantiated."""

    def __init__(self, cls: type) -> None:
        self.cls = cls
        super().__init__(f"{cls.__name__} is abstract")


class NoSuchFileError(GtdError, FileNotFoundError):
    """Raised when an input or output file does not exist."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        super().__init__(f"No such file: {self.path}")

    def __str__(self) -> str:
        return f"No such file: {self.path}"


class UnsupportedGtdTypeError(GtdError):
    """Raised when a record's type tag does not name a known item type."""

    def __init__(self, type_tag: Any) -> None:
        self.type_tag = type_tag
        super().__init__(type_tag)

    def __str__(self) -> str:
        return f"Unsupported GTD type: {self.type_tag!r}"


class UnknownStatusError(GtdError):
    """Raised when a status is not allowed for the item type that owns it."""

    def __init__(self, owner_type: type, status: Any) -> None:
        self.owner_type = owner_type
        self.status = status
        super().__init__(owner_type, status)

    def __str__(self) -> str:
        type_name = getattr(self.owner_type, "type_name", self.owner_type.__name__)
        return f"Unknown status {self.status!r} for type {type_name!r}"


class MissingFieldError(GtdError):
    """Raised when an item record lacks a required field."""

    def __init__(self, owner_type: type, field_name: str) -> None:
        self.owner_type = owner_type
        self.field_name = field_name
        super().__init__(owner_type, field_name)

    def __str__(self) -> str:
        return f"{self.owner_type.__name__} record is missing required field {self.field_name!r}"


class MissingConfigError(GtdError):
    """Raised when none of the input files contains a config record."""

    def __init__(self, paths: list[Path]) -> None:
        self.paths = paths
        super().__init__(f"No config record found in: {', '.join(str(p) for p in paths)}")


class InvalidValueError(GtdError):
    """Raised when a raw value cannot be converted to or from its typed form."""

    def __init__(self, target_type: Any, raw_value: Any, reason: str = "") -> None:
        self.target_type = target_type
        self.raw_value = raw_value
        message = f"Cannot convert {raw_value!r} for {target_type}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
