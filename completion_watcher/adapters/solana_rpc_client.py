"""JSON-RPC log source backed by a Solana RPC node."""

from __future__ import annotations

import itertools
from types import TracebackType
from typing import Any, Final

import httpx

from completion_watcher.config.logging_config import get_logger
from completion_watcher.domain.exceptions import LogSourceError, RateLimitError
from completion_watcher.domain.models import ConfirmationLevel, ContainerContent

logger = get_logger(__name__)

DEFAULT_RPC_TIMEOUT_SECONDS: Final[float] = 10.0
HTTP_STATUS_TOO_MANY_REQUESTS: Final[int] = 429
DEFAULT_RETRY_AFTER_SECONDS: Final[float] = 1.0


class SolanaRpcLogSource:
    """Lists transaction signatures and fetches transaction logs over HTTP."""

    def __init__(
        self,
        rpc_url: str,
        *,
        timeout_seconds: float = DEFAULT_RPC_TIMEOUT_SECONDS,
        client: httpx.Client | None = None,
    ) -> None:
        """Initialize the RPC log source.

        Args:
            rpc_url: HTTP endpoint of the RPC node
            timeout_seconds: Per-request timeout
            client: Optional pre-built httpx client (shared pool or test transport)
        """
        if not rpc_url:
            raise ValueError("rpc_url must not be empty")
        self._rpc_url = rpc_url
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=timeout_seconds)
        self._request_ids = itertools.count(1)

    def list_recent_containers(self, address: str, limit: int) -> list[str]:
        result = self._call("getSignaturesForAddress", [address, {"limit": limit}])
        if not isinstance(result, list):
            raise LogSourceError("getSignaturesForAddress returned a non-list result")
        return [str(entry["signature"]) for entry in result]

    def fetch_container_content(
        self, container_id: str, confirmation_level: ConfirmationLevel
    ) -> ContainerContent:
        result = self._call(
            "getTransaction",
            [
                container_id,
                {
                    "commitment": ConfirmationLevel(confirmation_level).value,
                    "encoding": "json",
                    "maxSupportedTransactionVersion": 0,
                },
            ],
        )
        if result is None:
            return ContainerContent(found=False)
        if not isinstance(result, dict):
            raise LogSourceError("getTransaction returned a malformed result")

        meta = result.get("meta") or {}
        if not isinstance(meta, dict):
            raise LogSourceError("getTransaction returned a malformed result")
        log_messages = meta.get("logMessages") or []
        if not isinstance(log_messages, list):
            raise LogSourceError("getTransaction returned a malformed result")
        return ContainerContent(log_lines=[str(line) for line in log_messages])

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> SolanaRpcLogSource:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.close()

    def _call(self, method: str, params: list[Any]) -> Any:
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._request_ids),
            "method": method,
            "params": params,
        }

        try:
            response = self._client.post(self._rpc_url, json=payload)
        except httpx.HTTPError as exc:
            raise LogSourceError(f"{method} transport error: {exc}") from exc

        if response.status_code == HTTP_STATUS_TOO_MANY_REQUESTS:
            retry_after = _parse_retry_after(response.headers.get("Retry-After"))
            logger.warning(
                "rpc_rate_limited",
                method=method,
                retry_after_seconds=retry_after,
            )
            raise RateLimitError(retry_after=retry_after)

        try:
            response.raise_for_status()
            body = response.json()
        except (httpx.HTTPStatusError, ValueError) as exc:
            raise LogSourceError(f"{method} failed: {exc}") from exc

        if not isinstance(body, dict):
            raise LogSourceError(f"{method} returned a malformed response")

        error = body.get("error")
        if error:
            message = error.get("message") if isinstance(error, dict) else error
            raise LogSourceError(f"{method} RPC error: {message}")

        return body.get("result")


def _parse_retry_after(raw: str | None) -> float:
    if not raw:
        return DEFAULT_RETRY_AFTER_SECONDS
    try:
        return max(float(raw), 0.0)
    except ValueError:
        return DEFAULT_RETRY_AFTER_SECONDS


__all__ = ["SolanaRpcLogSource"]
