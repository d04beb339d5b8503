"""Settings for the gtd command line, stored in YAML files.

These are tool settings (which files to read, in which format). The status
lists and context regex that govern the items themselves live in the config
record inside the GTD files.
"""

from pathlib import Path
from typing import Any

import structlog
import yaml

from gtd_store.formats import Format

logger = structlog.get_logger()

SETTINGS_DIR_NAME = ".gtd-store"
SETTINGS_FILE_NAME = "config.yaml"


def parse_format(value: Any) -> Format:
    """Parse a format setting, accepting any letter case."""
    try:
        return Format(str(value).strip().lower())
    except ValueError:
        choices = ", ".join(fmt.value for fmt in Format)
        raise ValueError(f"Unsupported format {value!r}; expected one of: {choices}") from None


def split_files(value: str) -> list[str]:
    """Split a comma-separated files setting, dropping empty parts."""
    return [part.strip() for part in value.split(",") if part.strip()]


class Settings:
    """Settings manager using YAML file storage.

    Local settings live in .gtd-store/config.yaml in the current directory and
    global settings in ~/.gtd-store/config.yaml. Reads look in local settings
    first, then fall back to global settings.
    """

    def __init__(self, use_global: bool = False, settings_dir: Path | None = None) -> None:
        """Initialize settings manager.

        Args:
            use_global: If True, use global settings only. If False, use local settings with global fallback.
            settings_dir: Custom directory holding the settings file (overrides use_global)
        """
        if settings_dir is not None:
            self.settings_dir = Path(settings_dir)
            self.is_global = use_global
        elif use_global:
            self.settings_dir = Path.home() / SETTINGS_DIR_NAME
            self.is_global = True
        else:
            self.settings_dir = Path.cwd() / SETTINGS_DIR_NAME
            self.is_global = False

        self.settings_file = self.settings_dir / SETTINGS_FILE_NAME
        self._settings: dict[str, Any] = self._load(self.settings_file)

        self._global_settings: dict[str, Any] = {}
        if not self.is_global:
            global_file = Path.home() / SETTINGS_DIR_NAME / SETTINGS_FILE_NAME
            if global_file.exists() and global_file != self.settings_file:
                try:
                    self._global_settings = self._load(global_file)
                except ValueError as e:
                    logger.warning("Failed to load global settings", error=str(e))

        logger.debug("Settings initialized", settings_file=str(self.settings_file), is_global=self.is_global)

    def _load(self, path: Path) -> dict[str, Any]:
        """Load settings from a YAML file; a missing file yields empty settings."""
        if not path.exists():
            logger.debug("Settings file does not exist, initializing empty settings", path=str(path))
            return {}

        try:
            with open(path, "r", encoding="utf-8") as f:
                settings = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            logger.error("Failed to load settings", path=str(path), error=str(e))
            raise ValueError(f"Failed to load settings from {path}: {e}") from e

        if not isinstance(settings, dict):
            raise ValueError(f"Settings file {path} must contain a mapping")
        logger.debug("Settings loaded successfully", keys=list(settings.keys()))
        return settings

    def _save(self) -> None:
        self.settings_dir.mkdir(parents=True, exist_ok=True)
        with open(self.settings_file, "w", encoding="utf-8") as f:
            yaml.safe_dump(self._settings, f, default_flow_style=False, sort_keys=False)
        logger.debug("Settings saved successfully", settings_file=str(self.settings_file))

    def get(self, key: str, default: Any = None) -> Any:
        """Get a setting, checking local settings before global ones."""
        if key in self._settings:
            return self._settings[key]
        if not self.is_global and key in self._global_settings:
            logger.debug("Getting setting from global", key=key)
            return self._global_settings[key]
        return default

    def set(self, key: str, value: Any) -> None:
        logger.debug("Setting value", key=key)
        self._settings[key] = value
        self._save()

    def unset(self, key: str) -> None:
        logger.debug("Unsetting value", key=key)
        if key in self._settings:
            del self._settings[key]
            self._save()

    def files(self) -> list[Path]:
        """Return the configured GTD files.

        The ``files`` setting is either a YAML list or a comma-separated string.
        """
        value = self.get("files") or []
        if isinstance(value, str):
            value = split_files(value)
        return [Path(item).expanduser() for item in value]

    def format(self) -> Format:
        """Return the configured format, guessing it from the first file if unset."""
        value = self.get("format")
        if value:
            return parse_format(value)
        files = self.files()
        if not files:
            raise ValueError("No GTD files configured. Set them using:\n  gtd config set files <path>[,<path>...]")
        return Format.from_path(files[0])

    def list(self) -> dict[str, Any]:
        """List all settings; local values override global ones."""
        if self.is_global:
            return self._settings.copy()
        merged = self._global_settings.copy()
        merged.update(self._settings)
        return merged


def get_settings(use_global: bool = False) -> Settings:
    """Get a settings instance.

    Args:
        use_global: If True, return global settings. If False, return local settings with global fallback.
    """
    return Settings(use_global=use_global)
