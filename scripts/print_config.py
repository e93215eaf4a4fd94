from __future__ import annotations

import argparse
import json

from rememberme.core.config import ConfigFsPaths, ConfigManager


def main() -> None:
    ap = argparse.ArgumentParser(description="Print the effective rememberme config")
    ap.add_argument("--root", default=".")
    args = ap.parse_args()
    cm = ConfigManager(fs=ConfigFsPaths(args.root), logger=None, read_only=True)
    cfg = cm.load()
    print(json.dumps(cfg.model_dump(), indent=2, sort_keys=True))


if __name__ == "__main__":
    main()
