"""Install and remove the vibesafu hook in the Claude Code settings file."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from vibesafu.logging import get_logger

log = get_logger("vibesafu.installer")

HOOK_MARKER = "vibesafu"
HOOK_EVENT = "PermissionRequest"


class SettingsFileError(Exception):
    """The host settings file exists but cannot be read or parsed."""


def build_hook_entry(command: str) -> dict[str, Any]:
    return {
        "matcher": "*",
        "hooks": [{"type": "command", "command": command}],
    }


def read_settings(path: Path) -> dict[str, Any]:
    """Read the settings file; a missing file is an empty configuration."""
    if not path.exists():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8") or "{}")
    except (OSError, json.JSONDecodeError) as e:
        raise SettingsFileError(f"Could not read {path}: {e}") from e
    if not isinstance(data, dict):
        raise SettingsFileError(f"{path} does not contain a JSON object")
    return data


def write_settings(path: Path, settings: dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(settings, indent=2) + "\n", encoding="utf-8")


def _is_vibesafu_entry(entry: Any) -> bool:  # noqa: ANN401
    if not isinstance(entry, dict):
        return False
    hooks = entry.get("hooks")
    if not isinstance(hooks, list):
        return False
    return any(
        isinstance(hook, dict) and HOOK_MARKER in str(hook.get("command", "")) for hook in hooks
    )


def is_hook_installed(settings: dict[str, Any]) -> bool:
    hooks = settings.get("hooks")
    if not isinstance(hooks, dict):
        return False
    entries = hooks.get(HOOK_EVENT)
    if not isinstance(entries, list):
        return False
    return any(_is_vibesafu_entry(entry) for entry in entries)


def install_hook(path: Path, command: str) -> bool:
    """Add the hook entry to *path*.

    Returns:
        ``True`` if the file was changed, ``False`` if the hook was already
        installed.

    Raises:
        SettingsFileError: If the file exists but is not valid settings JSON.
    """
    settings = read_settings(path)
    if is_hook_installed(settings):
        log.info("hook_already_installed", path=str(path))
        return False

    hooks = settings.setdefault("hooks", {})
    if not isinstance(hooks, dict):
        raise SettingsFileError(f"'hooks' in {path} is not an object")
    entries = hooks.setdefault(HOOK_EVENT, [])
    if not isinstance(entries, list):
        raise SettingsFileError(f"'hooks.{HOOK_EVENT}' in {path} is not a list")

    entries.append(build_hook_entry(command))
    write_settings(path, settings)
    log.info("hook_installed", path=str(path), command=command)
    return True


def uninstall_hook(path: Path) -> bool:
    """Remove every vibesafu hook entry from *path*.

    Empty ``hooks`` containers left behind are removed as well.

    Returns:
        ``True`` if the file was changed, ``False`` if nothing was installed.
    """
    settings = read_settings(path)
    if not is_hook_installed(settings):
        log.info("hook_not_installed", path=str(path))
        return False

    hooks = settings["hooks"]
    remaining = [entry for entry in hooks[HOOK_EVENT] if not _is_vibesafu_entry(entry)]
    if remaining:
        hooks[HOOK_EVENT] = remaining
    else:
        del hooks[HOOK_EVENT]
    if not hooks:
        del settings["hooks"]

    write_settings(path, settings)
    log.info("hook_uninstalled", path=str(path))
    return True
