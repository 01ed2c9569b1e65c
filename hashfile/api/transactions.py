from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Iterable, Mapping, Optional

from hashfile.api.errors import TxNotFound

PROVIDERS = ("woleet.io", "chain.so", "blockcypher.com")


@dataclass(frozen=True)
class Transaction:
    tx_id: str
    confirmations: int
    confirmed_on: Optional[datetime]
    block_hash: Optional[str]
    op_return: Optional[str]


def normalize_provider(name: str) -> str:
    """Known providers are kept; anything else falls back to chain.so."""
    if name in ("woleet.io", "blockcypher.com"):
        return name
    return "chain.so"


def _from_epoch(value: Any) -> Optional[datetime]:
    try:
        return datetime.fromtimestamp(float(value), tz=timezone.utc)
    except (TypeError, ValueError, OverflowError, OSError):
        return None


def _from_iso(value: Any) -> Optional[datetime]:
    if not isinstance(value, str) or not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def _op_return_from_asm(asm: Any) -> Optional[str]:
    # "OP_RETURN <hex>"
    if not isinstance(asm, str) or "OP_RETURN" not in asm:
        return None
    parts = asm.split(" ")
    return parts[1] if len(parts) > 1 else None


def _last(values: Iterable[Optional[str]]) -> Optional[str]:
    """Last truthy value; later OP_RETURN outputs win."""
    found = None
    for v in values:
        if v:
            found = v
    return found


def parse_woleet(tx_id: str, res: Optional[Mapping[str, Any]]) -> Transaction:
    if not res:
        raise TxNotFound(f"Transaction not found: {tx_id}")
    outputs = res.get("vout") or []
    return Transaction(
        tx_id=res.get("txid", tx_id),
        confirmations=int(res.get("confirmations") or 0),
        confirmed_on=_from_epoch(res.get("time")),
        block_hash=res.get("blockhash") or None,
        op_return=_last(
            _op_return_from_asm((o.get("scriptPubKey") or {}).get("asm"))
            for o in outputs
            if isinstance(o, Mapping)
        ),
    )


def parse_chain_so(tx_id: str, res: Optional[Mapping[str, Any]]) -> Transaction:
    if not res or res.get("status") == "fail":
        raise TxNotFound(f"Transaction not found: {tx_id}")
    data = res.get("data") or {}
    outputs = data.get("outputs") or []
    return Transaction(
        tx_id=data.get("txid", tx_id),
        confirmations=int(data.get("confirmations") or 0),
        confirmed_on=_from_epoch(data.get("time")),
        block_hash=data.get("blockhash") or None,
        op_return=_last(
            _op_return_from_asm(o.get("script"))
            for o in outputs
            if isinstance(o, Mapping)
        ),
    )


def parse_blockcypher(tx_id: str, res: Optional[Mapping[str, Any]]) -> Transaction:
    if not res or res.get("error"):
        raise TxNotFound(f"Transaction not found: {tx_id}")
    outputs = res.get("outputs") or []
    return Transaction(
        tx_id=res.get("hash", tx_id),
        confirmations=int(res.get("confirmations") or 0),
        confirmed_on=_from_iso(res.get("confirmed")),
        block_hash=res.get("block_hash") or None,
        op_return=_last(o.get("data_hex") for o in outputs if isinstance(o, Mapping)),
    )
