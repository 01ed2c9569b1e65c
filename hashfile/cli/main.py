from __future__ import annotations

from pathlib import Path
from typing import Optional

from hashfile.app.config import load_config
from hashfile.core.errors import HashfileError

from hashfile.cli.args import parse_args
from hashfile.cli.commands import (
    cmd_anchors,
    cmd_caps,
    cmd_check,
    cmd_hash,
    cmd_receipt,
    cmd_tx,
    configure_logging,
)

_COMMANDS = {
    "hash": cmd_hash,
    "check": cmd_check,
    "caps": cmd_caps,
    "tx": cmd_tx,
    "receipt": cmd_receipt,
    "anchors": cmd_anchors,
}


def main(argv: Optional[list[str]] = None) -> int:
    args = parse_args(argv)
    try:
        configure_logging(
            verbose=args.verbose,
            log_file=Path(args.log_file) if args.log_file else None,
        )
        cfg = load_config(args.config)

        handler = _COMMANDS.get(args.cmd)
        if handler is None:
            return 2
        return handler(args, cfg)
    except HashfileError as e:
        print(f"ERROR: {e.message}")
        if e.hint:
            print(f"Hint: {e.hint}")
        return 1
