"""Lightweight JSON-RPC client for Ethereum-compatible nodes.

This module provides:
- `RPC`: an async client with sane timeouts/connection limits
- `RpcLog`: pydantic model validating one `eth_getLogs` entry

Failures are mapped onto the engine's error taxonomy:
- HTTP 429 / JSON-RPC rate-limit errors → `RateLimited`
- any other HTTP, JSON-RPC or network failure → `TransportError`
"""

from __future__ import annotations

import itertools
import logging
from collections.abc import Sequence
from typing import Any

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from adrind.core.errors import RateLimited, TransportError
from adrind.core.models import RawLog

logger = logging.getLogger(__name__)

# JSON-RPC error codes providers use for throttling
RATE_LIMIT_CODES = {-32005, -32029, 429}
RATE_LIMIT_MARKERS = ("rate limit", "too many requests", "throttl")


def to_hex_block(x: int) -> str:
    """Return a 0x-prefixed hex block number."""
    return hex(x)


def _hex_int(v: Any) -> int:
    if isinstance(v, int):
        return v
    if isinstance(v, str):
        return int(v, 16) if v.lower().startswith("0x") else int(v)
    raise ValueError(f"not a quantity: {v!r}")


def _retry_after(response: httpx.Response) -> float | None:
    value = response.headers.get("Retry-After")
    if value is None:
        return None
    try:
        return max(0.0, float(value))
    except ValueError:
        return None


class RpcLog(BaseModel):
    """One log object as returned by `eth_getLogs`."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    address: str
    topics: list[str] = Field(default_factory=list)
    data: str = "0x"
    block_number: int = Field(alias="blockNumber")
    transaction_hash: str = Field(alias="transactionHash")
    log_index: int = Field(alias="logIndex")
    block_timestamp: int | None = Field(default=None, alias="blockTimestamp")
    removed: bool = False

    @field_validator("block_number", "log_index", "block_timestamp", mode="before")
    @classmethod
    def _quantity(cls, v: Any) -> Any:
        return None if v is None else _hex_int(v)

    def to_raw_log(self) -> RawLog:
        return RawLog(
            address=self.address.lower(),
            topics=tuple(t.lower() for t in self.topics),
            data_hex=self.data or "0x",
            block_number=self.block_number,
            tx_hash=self.transaction_hash.lower(),
            log_index=self.log_index,
            block_timestamp=self.block_timestamp,
        )


class RPC:
    """Minimal async RPC client.

    Parameters
    ----------
    url : str
        RPC endpoint URL.
    timeout_s : int
        Per-operation timeout in seconds (connect/read/write).
    max_connections : int
        Maximum concurrent connections to keep in the pool.
    transport : httpx.AsyncBaseTransport | None
        Custom transport (tests use `httpx.MockTransport`).
    """

    def __init__(
        self,
        url: str,
        *,
        timeout_s: int = 20,
        max_connections: int = 16,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.url = url
        self._ids = itertools.count(1)
        self.client = httpx.AsyncClient(
            timeout=httpx.Timeout(
                connect=timeout_s,
                read=timeout_s,
                write=timeout_s,
                pool=max(30, timeout_s * 3),
            ),
            limits=httpx.Limits(
                max_connections=max_connections,
                max_keepalive_connections=max(1, max_connections // 2),
            ),
            http2=True,
            transport=transport,
        )

    async def _call(self, method: str, params: list[Any]) -> Any:
        payload = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}
        try:
            r = await self.client.post(self.url, json=payload)
        except httpx.HTTPError as e:
            raise TransportError(f"{method}: {type(e).__name__}: {e}") from e

        if r.status_code == 429:
            raise RateLimited(f"{method}: HTTP 429", retry_after=_retry_after(r))
        if r.status_code >= 400:
            raise TransportError(f"{method}: HTTP {r.status_code}", retry_after=_retry_after(r))

        try:
            data = r.json()
        except ValueError as e:
            raise TransportError(f"{method}: invalid JSON response") from e

        if "error" in data:
            e = data["error"] or {}
            code = e.get("code") if isinstance(e, dict) else None
            message = str(e.get("message") if isinstance(e, dict) else e)
            if code in RATE_LIMIT_CODES or any(m in message.lower() for m in RATE_LIMIT_MARKERS):
                raise RateLimited(f"{method}: RPC error {code} {message}")
            raise TransportError(f"{method}: RPC error {code} {message}")
        return data.get("result")

    async def latest_block(self) -> int:
        """Return the latest block number as an int."""
        result = await self._call("eth_blockNumber", [])
        try:
            return _hex_int(result)
        except ValueError as e:
            raise TransportError(f"eth_blockNumber: bad result {result!r}") from e

    async def get_logs(
        self,
        *,
        addresses: Sequence[str],
        from_block: int,
        to_block: int,
    ) -> list[RawLog]:
        """Fetch every log emitted by `addresses` within an inclusive block range."""
        params = [
            {
                "address": [a.lower() for a in addresses],
                "fromBlock": to_hex_block(from_block),
                "toBlock": to_hex_block(to_block),
            }
        ]
        result = await self._call("eth_getLogs", params)

        out: list[RawLog] = []
        for entry in result or []:
            try:
                log = RpcLog.model_validate(entry)
            except ValidationError as e:
                raise TransportError(f"eth_getLogs: malformed log entry: {e}") from e
            if log.removed:
                continue
            out.append(log.to_raw_log())
        logger.debug("eth_getLogs [%d, %d] -> %d logs", from_block, to_block, len(out))
        return out

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self.client.aclose()
