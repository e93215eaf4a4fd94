from __future__ import annotations

import os
from dataclasses import dataclass


@dataclass(frozen=True)
class ConfigFsPaths:
    root: str = "."

    @property
    def config_dir(self) -> str:
        return os.path.join(self.root, "config")

    @property
    def state_dir(self) -> str:
        return os.path.join(self.root, "state")

    @property
    def backups_dir(self) -> str:
        return os.path.join(self.config_dir, "backups")

    @property
    def last_known_good_dir(self) -> str:
        return os.path.join(self.backups_dir, "last_known_good")

    # Files
    @property
    def app(self) -> str:
        return os.path.join(self.config_dir, "rememberme.json")

    def resolve(self, path: str) -> str:
        """Relative paths in config are relative to the root."""
        if os.path.isabs(path):
            return path
        return os.path.join(self.root, path)
