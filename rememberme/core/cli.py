from __future__ import annotations

"""
Operator CLI for the remembered-accounts store.

Rendering helpers return plain lines so they can be tested without a
terminal; `main` wires them to argparse.
"""

import argparse
import asyncio
import json
from typing import Any, Dict, List, Optional, Sequence

from rememberme.core.accounts.remote import HttpTokenValidator
from rememberme.core.accounts.store import AccountStore
from rememberme.core.accounts.validator import SessionCheckResult
from rememberme.core.bootstrap import build_services
from rememberme.core.config.manager import ConfigManager
from rememberme.core.config.paths import ConfigFsPaths
from rememberme.core.errors import RememberMeError
from rememberme.core.events import redact
from rememberme.core.identity.codec import format_for_display
from rememberme.core.logger import setup_logging


def accounts_list_lines(*, store: AccountStore) -> List[str]:
    """
    Columns: username | active | roster | id | avatar
    """
    active = store.get_active()
    roster = store.get_roster()
    lines = ["username | active | roster | id | avatar"]
    for username, _token, data in store.list_accounts():
        pos = str(roster.index(username) + 1) if username in roster else "-"
        avatar = f"{len(data['avatar'])} chars" if isinstance(data.get("avatar"), str) else "none"
        lines.append(f"{username} | {str(username == active).lower()} | {pos} | {format_for_display(data.get('id'))} | {avatar}")
    return lines


def validation_lines(results: Sequence[SessionCheckResult]) -> List[str]:
    lines = ["username | valid | error"]
    for r in results:
        lines.append(f"{r.username} | {str(r.is_valid).lower()} | {r.error or ''}")
    return lines


def account_show_payload(*, store: AccountStore, username: str) -> Dict[str, Any]:
    data = store.get_account(username)
    return {
        "username": username,
        "exists": data is not None,
        "has_token": store.get_token(username) is not None,
        "active": store.get_active() == username,
        "account_data": redact(data or {}),
    }


def _parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Remembered accounts")
    ap.add_argument("--root", default=".", help="Directory holding config/ and state/.")
    sub = ap.add_subparsers(dest="cmd", required=True)
    sub.add_parser("list", help="List remembered accounts.")
    p_show = sub.add_parser("show", help="Show one account (tokens redacted).")
    p_show.add_argument("username")
    p_rm = sub.add_parser("remove", help="Forget an account.")
    p_rm.add_argument("username")
    p_act = sub.add_parser("activate", help="Make an account the active one.")
    p_act.add_argument("username")
    sub.add_parser("prune", help="Remove accounts whose stored identity fails its integrity check.")
    sub.add_parser("validate", help="Re-check every session with the configured server.")
    sub.add_parser("clear", help="Forget all accounts.")
    return ap


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = _parser().parse_args(argv)
    fs = ConfigFsPaths(args.root)
    try:
        cm = ConfigManager(fs=fs, logger=None)
        cfg = cm.load()
        logger = setup_logging(fs.resolve(cfg.logging.log_dir))
        svc = build_services(cfg, fs=fs, logger=logger)
        store = svc.accounts
        if args.cmd == "list":
            out: List[str] = accounts_list_lines(store=store)
        elif args.cmd == "show":
            out = [json.dumps(account_show_payload(store=store, username=args.username), indent=2, ensure_ascii=False)]
        elif args.cmd == "remove":
            store.delete_account(args.username)
            out = [f"Removed {args.username}"]
        elif args.cmd == "activate":
            store.set_active(args.username)
            out = [f"Active account: {args.username}"]
        elif args.cmd == "prune":
            out = validation_lines(svc.validator.prune_inconsistent())
        elif args.cmd == "validate":
            remote = HttpTokenValidator.from_config(cfg.remote)
            out = validation_lines(asyncio.run(svc.validator.validate_all(remote)))
        else:
            store.clear_all()
            out = ["All accounts cleared"]
    except RememberMeError as e:
        print(json.dumps(e.to_dict(), ensure_ascii=False))
        return 2
    for line in out:
        print(line)
    return 0
