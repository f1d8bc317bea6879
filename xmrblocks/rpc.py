"""Client for the RPC interface of a Monero daemon."""

from __future__ import annotations

import threading
from typing import Any, Mapping

import requests

CORE_RPC_STATUS_OK = "OK"
CORE_RPC_STATUS_BUSY = "BUSY"

DEFAULT_DAEMON_URL = "http://127.0.0.1:18081"
DEFAULT_TIMEOUT_MS = 200000

_BUSY_MESSAGE = "daemon is busy. Please try again later."
_FAILED_MESSAGE = "daemon rpc failed. Please try again later."


class RpcError(Exception):
    """A call to the daemon failed."""


def _normalise_url(url: str) -> str:
    scheme, sep, rest = url.partition(":://")
    if sep:
        url = f"{scheme}://{rest}"
    return url.rstrip("/")


class DaemonRpc:
    """Thread-safe JSON client of a Monero daemon."""

    def __init__(self, daemon_url: str = DEFAULT_DAEMON_URL,
                 timeout: int = DEFAULT_TIMEOUT_MS) -> None:
        self.daemon_url = _normalise_url(daemon_url)
        self.timeout = timeout / 1000
        self._session = requests.Session()
        self._lock = threading.Lock()

    def close(self) -> None:
        self._session.close()

    def __enter__(self) -> "DaemonRpc":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _post(self, path: str, payload: Mapping[str, Any]) -> dict[str, Any]:
        url = self.daemon_url + path
        with self._lock:
            try:
                response = self._session.post(url, json=dict(payload), timeout=self.timeout)
                response.raise_for_status()
                data = response.json()
            except (requests.RequestException, ValueError) as exc:
                raise RpcError(f"Error connecting to Monero daemon at {self.daemon_url}") from exc
        if not isinstance(data, dict):
            raise RpcError(f"Unexpected reply from Monero daemon at {self.daemon_url}")
        return data

    @staticmethod
    def _check_status(result: Mapping[str, Any], failed_message: str | None = None) -> None:
        status = result.get("status")
        if status == CORE_RPC_STATUS_BUSY:
            raise RpcError(_BUSY_MESSAGE)
        if status != CORE_RPC_STATUS_OK:
            raise RpcError(failed_message or str(status))

    def _json_rpc(self, method: str, params: Mapping[str, Any] | None = None) -> dict[str, Any]:
        payload: dict[str, Any] = {"jsonrpc": "2.0", "id": 0, "method": method}
        if params is not None:
            payload["params"] = dict(params)
        data = self._post("/json_rpc", payload)
        error = data.get("error")
        if error:
            message = error.get("message") if isinstance(error, Mapping) else error
            raise RpcError(str(message))
        result = data.get("result")
        if not isinstance(result, dict):
            raise RpcError(f"No result in reply to {method}")
        self._check_status(result)
        return result

    def get_current_height(self) -> int:
        """Return the current blockchain height."""
        data = self._post("/getheight", {})
        try:
            return int(data["height"])
        except (KeyError, TypeError, ValueError) as exc:
            raise RpcError("No height in reply from Monero daemon") from exc

    def get_mempool(self) -> list[dict[str, Any]]:
        """Return the transactions in the pool, newest first."""
        data = self._post("/get_transaction_pool", {})
        if data.get("status") != CORE_RPC_STATUS_OK:
            raise RpcError(f"Error connecting to Monero daemon at {self.daemon_url}")
        txs = list(data.get("transactions") or [])
        return sorted(txs, key=lambda tx: tx.get("receive_time", 0), reverse=True)

    def send_raw_transaction(self, tx_hex: str) -> dict[str, Any]:
        """Submit a serialized transaction given as hex."""
        data = self._post("/sendrawtransaction", {"tx_as_hex": tx_hex, "do_not_relay": False})
        if data.get("status") == "Failed":
            raise RpcError(str(data.get("reason", "")))
        return data

    def get_network_info(self) -> dict[str, Any]:
        """Return the result of the get_info call."""
        return self._json_rpc("get_info")

    def get_hardfork_info(self) -> dict[str, Any]:
        """Return the result of the hard_fork_info call."""
        return self._json_rpc("hard_fork_info")

    def get_fee_estimate(self, grace_blocks: int) -> int:
        """Return the dynamic per-kB fee estimate."""
        result = self._json_rpc("get_fee_estimate", {"grace_blocks": grace_blocks})
        try:
            return int(result["fee"])
        except (KeyError, TypeError, ValueError) as exc:
            raise RpcError("No fee in reply from Monero daemon") from exc

    def get_alt_blocks(self) -> list[str]:
        """Return the hashes of alternative blocks known to the daemon."""
        data = self._post("/get_alt_blocks_hashes", {})
        self._check_status(data, _FAILED_MESSAGE)
        return list(data.get("blks_hashes") or [])

    def get_block(self, block_hash: str) -> bytes:
        """Return the serialized block with the given hash."""
        result = self._json_rpc("getblock", {"hash": block_hash})
        try:
            return bytes.fromhex(result["blob"])
        except (KeyError, TypeError, ValueError) as exc:
            raise RpcError(f"Cannot decode blob of block {block_hash}") from exc