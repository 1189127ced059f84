"""Environment loading with optional .env support.

Sources are merged with later ones winning:
1) the .env file (explicit path, or ./.env when present)
2) OS environment variables
3) explicit overrides (e.g. command line flags)
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Dict, Mapping, MutableMapping, Optional

from dotenv import dotenv_values


class EnvLoader:
    """Merge .env values, the process environment and overrides."""

    def __init__(self, env_file: Optional[Path | str] = None) -> None:
        self.env_file = Path(env_file) if env_file else None

    def load(self, overrides: Optional[Mapping[str, object]] = None) -> MutableMapping[str, str]:
        merged: MutableMapping[str, str] = {}

        dotenv_path = self.env_file or Path.cwd() / ".env"
        if dotenv_path.is_file():
            merged.update(
                {key: value for key, value in dotenv_values(dotenv_path).items() if value is not None}
            )

        merged.update(os.environ)
        for key, value in (overrides or {}).items():
            merged[key] = str(value)
        return merged

    def load_prefixed(
        self, prefix: str, overrides: Optional[Mapping[str, object]] = None
    ) -> Dict[str, str]:
        """Variables named ``{prefix}_KEY``, keyed by ``KEY``.

        ``ATTENDANCE_BACKUP_RETAIN_DAILY=5`` with prefix ``ATTENDANCE_BACKUP``
        yields ``{"RETAIN_DAILY": "5"}``.
        """
        head = prefix.rstrip("_") + "_"
        return {
            key[len(head):]: value
            for key, value in self.load(overrides).items()
            if key.startswith(head) and len(key) > len(head)
        }

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        """Look up a single key using the same precedence as load()."""
        return self.load().get(key, default)


__all__ = ["EnvLoader"]
