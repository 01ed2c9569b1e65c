from __future__ import annotations

import argparse
from typing import Optional

from hashfile.api.transactions import PROVIDERS


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="hashfile")
    parser.add_argument("--config", default=None, help="YAML config file (sections: hasher, api).")
    parser.add_argument("--log-file", default=None, help="Append application logs to this file.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging on stderr.")

    sub = parser.add_subparsers(dest="cmd", required=True)

    p_hash = sub.add_parser("hash", help="Hash one or more files, in order.")
    p_hash.add_argument("files", nargs="+")
    p_hash.add_argument("--progress", action="store_true", help="Print progress lines.")

    p_check = sub.add_parser("check", help="Resolve a SHA256 hash string or a file path to a hash.")
    p_check.add_argument("value")

    sub.add_parser("caps", help="Show detected hashing capabilities.")

    p_tx = sub.add_parser("tx", help="Look up a Bitcoin transaction.")
    p_tx.add_argument("tx_id")
    p_tx.add_argument("--provider", choices=PROVIDERS, default=None)

    p_receipt = sub.add_parser("receipt", help="Fetch an anchoring receipt.")
    p_receipt.add_argument("anchor_id")

    p_anchors = sub.add_parser("anchors", help="List anchor ids for a hash.")
    p_anchors.add_argument("hash")
    p_anchors.add_argument("--size", type=int, default=20)

    return parser


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    return build_parser().parse_args(argv)
