"""Persisted user configuration written by ``vibesafu config``."""

from __future__ import annotations

import json
import os
import tomllib
from dataclasses import dataclass
from pathlib import Path

from vibesafu.config import config_file_path


@dataclass
class UserConfig:
    """Values stored in ``$VIBESAFU_HOME/config.toml``."""

    anthropic_api_key: str = ""
    triage_model: str = "claude-haiku-4-5"
    review_model: str = "claude-sonnet-4-5"
    triage_enabled: bool = True

    @classmethod
    def load(cls, path: Path | None = None) -> UserConfig:
        """Load config from disk, falling back to defaults."""
        path = path or config_file_path()
        if not path.exists():
            return cls()
        with path.open("rb") as f:
            data = tomllib.load(f)
        defaults = cls()
        return cls(
            anthropic_api_key=data.get("anthropic_api_key", defaults.anthropic_api_key),
            triage_model=data.get("triage_model", defaults.triage_model),
            review_model=data.get("review_model", defaults.review_model),
            triage_enabled=data.get("triage_enabled", defaults.triage_enabled),
        )

    def save(self, path: Path | None = None) -> Path:
        """Save config to disk, readable by the current user only."""
        path = path or config_file_path()
        path.parent.mkdir(parents=True, exist_ok=True)
        lines = [
            # JSON string escaping is valid TOML basic-string escaping
            f"anthropic_api_key = {json.dumps(self.anthropic_api_key)}",
            f"triage_model = {json.dumps(self.triage_model)}",
            f"review_model = {json.dumps(self.review_model)}",
            f"triage_enabled = {'true' if self.triage_enabled else 'false'}",
        ]
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write("\n".join(lines) + "\n")
        path.chmod(0o600)
        return path


def mask_secret(value: str) -> str:
    """Show only the last four characters of a secret."""
    if not value:
        return "NOT SET"
    if len(value) <= 8:
        return "*" * len(value)
    return f"{'*' * 8}{value[-4:]}"
