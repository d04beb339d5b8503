"""Settings commands for the gtd CLI."""

from typing import Any

from cyclopts import App

from gtd_store.config import get_settings, parse_format, split_files

config_app = App(name="config", help="Manage gtd-store settings (format, files)")


def normalize_setting(key: str, value: str) -> Any:
    """Convert a command-line value into the form stored for ``key``.

    ``format`` must name a supported format and is stored lower-case.
    ``files`` is split on commas and stored as a list.
    """
    if key == "format":
        return parse_format(value).value
    if key == "files":
        files = split_files(value)
        if not files:
            raise ValueError("The files setting needs at least one path")
        return files
    return value


@config_app.command
def set(key: str, value: str, global_: bool = False) -> None:
    """Set a setting.

    Args:
        key: Setting key, e.g. ``format`` or ``files`` (comma-separated paths)
        value: Setting value
        global_: If True, set in global settings. If False, set in local settings.
    """
    stored = normalize_setting(key, value)
    settings = get_settings(use_global=global_)
    settings.set(key, stored)
    scope = "global" if global_ else "local"
    print(f"Set {key} = {stored} ({scope})")


@config_app.command
def unset(key: str, global_: bool = False) -> None:
    """Unset a setting."""
    settings = get_settings(use_global=global_)
    settings.unset(key)
    scope = "global" if global_ else "local"
    print(f"Unset {key} ({scope})")


@config_app.command
def get(key: str, global_: bool = False) -> None:
    """Get the value of a setting."""
    settings = get_settings(use_global=global_)
    value = settings.get(key)
    if value is None:
        print(f"{key} is not set")
    else:
        print(f"{key} = {value}")


@config_app.command(name="list")
def list_settings(global_: bool = False) -> None:
    """List all settings.

    Args:
        global_: If True, list global settings only. If False, list merged settings.
    """
    settings = get_settings(use_global=global_)
    values = settings.list()

    if not values:
        scope = "global" if global_ else "local"
        print(f"No {scope} settings")
        return

    print("Settings:\n")
    for key, value in values.items():
        print(f"{key} = {value}")
