"""Anchoring service client: receipts, anchor ids and transaction lookup."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from hashfile.api.errors import NotFound, RequestError
from hashfile.api.transactions import (
    Transaction,
    normalize_provider,
    parse_blockcypher,
    parse_chain_so,
    parse_woleet,
)
from hashfile.app.config import ApiConfig

CHAIN_SO_URL = "https://chain.so/api/v2/get_tx/BTC"
BLOCKCYPHER_URL = "https://api.blockcypher.com/v1/btc/main/txs"


class AnchorClient:
    """
    Thin synchronous wrapper over httpx.

    `http` is injectable (tests pass a client built on httpx.MockTransport).
    """

    def __init__(
        self,
        config: Optional[ApiConfig] = None,
        *,
        http: Optional[httpx.Client] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._cfg = config or ApiConfig()
        self.base_url = self._cfg.base_url.rstrip("/")
        self._http = http or httpx.Client(timeout=self._cfg.timeout_s)
        self._owns_http = http is None
        self._log = logger or logging.getLogger(__name__)
        self._provider = normalize_provider(self._cfg.provider)

    def close(self) -> None:
        if self._owns_http:
            self._http.close()

    def __enter__(self) -> "AnchorClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # ---------------- Transport ----------------
    def get_json(
        self,
        url: str,
        *,
        method: str = "GET",
        data: Any = None,
        token: Optional[str] = None,
    ) -> Any:
        """
        200/201 -> decoded JSON, 404 -> None, anything else -> RequestError.
        """
        headers: Dict[str, str] = {"Accept": "application/json"}
        token = token or self._cfg.token
        if token:
            headers["Authorization"] = f"Bearer {token}"

        try:
            if data is not None:
                resp = self._http.request(method.upper(), url, json=data, headers=headers)
            else:
                resp = self._http.request(method.upper(), url, headers=headers)
        except httpx.HTTPError as e:
            self._log.warning("HTTP_REQUEST_FAILED method=%s url=%s err=%s", method, url, e)
            raise RequestError(
                "Error while getting data",
                hint=str(e),
            ) from e

        self._log.debug("HTTP_RESPONSE method=%s url=%s status=%d", method, url, resp.status_code)

        if resp.status_code in (200, 201):
            try:
                return resp.json()
            except ValueError as e:
                raise RequestError(
                    "Invalid JSON in response",
                    status_code=resp.status_code,
                    body=resp.text,
                ) from e
        if resp.status_code == 404:
            return None

        raise RequestError(
            resp.reason_phrase or "Error while getting data",
            status_code=resp.status_code,
            body=resp.text,
        )

    # ---------------- Transactions ----------------
    @property
    def provider(self) -> str:
        return self._provider

    def set_default_provider(self, name: str) -> None:
        self._provider = normalize_provider(name)
        self._log.info("TX_PROVIDER_SET provider=%s", self._provider)

    def get_transaction(self, tx_id: str) -> Transaction:
        """Look up a Bitcoin transaction through the default provider."""
        if self._provider == "woleet.io":
            return parse_woleet(tx_id, self.get_json(f"{self.base_url}/bitcoin/transaction/{tx_id}"))
        if self._provider == "blockcypher.com":
            return parse_blockcypher(tx_id, self.get_json(f"{BLOCKCYPHER_URL}/{tx_id}"))
        return parse_chain_so(tx_id, self.get_json(f"{CHAIN_SO_URL}/{tx_id}"))

    # ---------------- Anchors / receipts ----------------
    def get_anchor_ids(self, hash_hex: str, size: int = 20) -> Any:
        return self.get_json(f"{self.base_url}/anchorids?size={int(size) or 20}&hash={hash_hex}")

    def get_receipt(self, anchor_id: str) -> Dict[str, Any]:
        res = self.get_json(f"{self.base_url}/receipt/{anchor_id}")
        if not res:
            raise NotFound(f"Receipt not found: {anchor_id}")
        return res
