"""Cached view of the daemon's transaction pool and of the network state."""

from __future__ import annotations

import dataclasses
import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Mapping, Protocol

from xmrblocks.tools import (
    NetworkType,
    make_difficulty,
    timestamp_to_str_gm,
    xmr_amount,
    xmr_amount_to_str,
)
from xmrblocks.txsummary import (
    get_additional_tx_pub_keys,
    get_payment_id,
    load_tx,
    summary_of_in_out_rct,
)

logger = logging.getLogger(__name__)

UNSIGNED_TX_PREFIX = "Monero unsigned tx set\003"
SIGNED_TX_PREFIX = "Monero signed tx set\003"
KEY_IMAGE_EXPORT_FILE_MAGIC = "Monero key image export\002"
OUTPUT_EXPORT_FILE_MAGIC = "Monero output export\003"

# estimated fee is valid for that many blocks
FEE_ESTIMATE_GRACE_BLOCKS = 10

DEFAULT_REFRESH_TIME = 10
NETWORK_INFO_PERIOD = 60

CORE_RPC_STATUS_OK = "OK"
CORE_RPC_STATUS_BUSY = "BUSY"

_UINT64_MASK = (1 << 64) - 1
_NULL_HASH = "00" * 32
_NULL_HASH8 = "00" * 8


class DaemonClient(Protocol):
    """The daemon calls the monitor relies on."""

    def get_mempool(self) -> list[dict[str, Any]]: ...

    def get_network_info(self) -> dict[str, Any]: ...

    def get_fee_estimate(self, grace_blocks: int) -> int: ...

    def get_hardfork_info(self) -> dict[str, Any]: ...


@dataclass(frozen=True)
class NetworkInfo:
    """Snapshot of the network state, kept to be shown when a fresh query fails."""

    status: int = 0
    height: int = 0
    target_height: int = 0
    difficulty: int = 0
    difficulty_top64: int = 0
    target: int = 0
    tx_count: int = 0
    tx_pool_size: int = 0
    alt_blocks_count: int = 0
    outgoing_connections_count: int = 0
    incoming_connections_count: int = 0
    white_peerlist_size: int = 0
    grey_peerlist_size: int = 0
    nettype: NetworkType = NetworkType.MAINNET
    top_block_hash: str = _NULL_HASH
    cumulative_difficulty: int = 0
    cumulative_difficulty_top64: int = 0
    block_size_limit: int = 0
    block_size_median: int = 0
    block_weight_limit: int = 0
    block_size_limit_str: str = ""
    block_size_median_str: str = ""
    start_time: int = 0
    current_hf_version: int = 0
    hash_rate: int = 0
    hash_rate_top64: int = 0
    fee_per_kb: int = 0
    info_timestamp: int = 0
    current: bool = False

    @classmethod
    def status_from_string(cls, status: str) -> int:
        """Map a daemon status string to 1 (OK), 2 (BUSY) or 0 (anything else)."""
        if status == CORE_RPC_STATUS_OK:
            return 1
        if status == CORE_RPC_STATUS_BUSY:
            return 2
        return 0

    @classmethod
    def status_to_string(cls, status: int) -> str:
        """Map 1 or 2 back to the daemon status string; other codes raise ValueError."""
        if status == 1:
            return CORE_RPC_STATUS_OK
        if status == 2:
            return CORE_RPC_STATUS_BUSY
        raise ValueError(f"No status string for code {status}")


@dataclass
class MempoolTx:
    """A pool transaction with the values shown on the front page."""

    tx_hash: str
    tx: dict[str, Any] = field(default_factory=dict)
    receive_time: int = 0
    sum_inputs: int = 0
    sum_outputs: int = 0
    no_inputs: int = 0
    no_outputs: int = 0
    num_nonrct_inputs: int = 0
    mixin_no: int = 0
    fee_str: str = ""
    fee_micro_str: str = ""
    payed_for_kB_str: str = ""
    payed_for_kB_micro_str: str = ""
    xmr_inputs_str: str = ""
    xmr_outputs_str: str = ""
    timestamp_str: str = ""
    txsize: str = ""
    # '-' no payment id, 'l' legacy, 'e' encrypted, 's' has subaddress keys
    pid: str = "-"


def _payment_id_flag(tx: Mapping[str, Any]) -> str:
    extra = tx.get("extra") or []
    ids = get_payment_id(extra)
    if ids.payment_id is not None and ids.payment_id != _NULL_HASH:
        return "l"
    if ids.payment_id8 is not None and ids.payment_id8 != _NULL_HASH8:
        return "e"
    if get_additional_tx_pub_keys(extra):
        return "s"
    return "-"


def mempool_tx_from_info(info: Mapping[str, Any]) -> MempoolTx:
    """Build a MempoolTx from a pool entry of the daemon; raise ValueError if it is unusable."""
    tx_json = info.get("tx_json")
    if tx_json is None:
        raise ValueError("Cant make tx from pool entry: no tx_json")
    tx = load_tx(tx_json)
    summary = summary_of_in_out_rct(tx)

    blob_size = int(info.get("blob_size", 0))
    fee = int(info.get("fee", 0))
    receive_time = int(info.get("receive_time", 0))

    tx_size = blob_size / 1024.0
    payed_for_kb = xmr_amount(fee) / tx_size if tx_size else float("inf")

    return MempoolTx(
        tx_hash=str(info.get("id_hash", "")),
        tx=tx,
        receive_time=receive_time,
        sum_inputs=summary.xmr_inputs,
        sum_outputs=summary.xmr_outputs,
        no_inputs=summary.no_inputs,
        no_outputs=summary.no_outputs,
        num_nonrct_inputs=summary.num_nonrct_inputs,
        mixin_no=summary.mixin_no,
        fee_str=xmr_amount_to_str(fee, "{:0.4f}", False),
        fee_micro_str=xmr_amount_to_str(int(fee * 1.0e6), "{:04.0f}", False),
        payed_for_kB_str="{:0.4f}".format(payed_for_kb),
        payed_for_kB_micro_str="{:04.0f}".format(payed_for_kb * 1e6),
        xmr_inputs_str=xmr_amount_to_str(summary.xmr_inputs, "{:0.3f}"),
        xmr_outputs_str=xmr_amount_to_str(summary.xmr_outputs, "{:0.3f}"),
        timestamp_str=timestamp_to_str_gm(receive_time),
        txsize="{:0.2f}".format(tx_size),
        pid=_payment_id_flag(tx),
    )


def _wide_difficulty(info: Mapping[str, Any]) -> int:
    wide = info.get("wide_difficulty")
    if wide:
        return int(str(wide), 0)
    return make_difficulty(int(info.get("difficulty", 0)), int(info.get("difficulty_top64", 0)))


def _nettype(info: Mapping[str, Any]) -> NetworkType:
    if info.get("testnet"):
        return NetworkType.TESTNET
    if info.get("stagenet"):
        return NetworkType.STAGENET
    return NetworkType.MAINNET


class MempoolMonitor:
    """Periodically refreshes the pool transactions and the network info."""

    def __init__(self, rpc: DaemonClient, refresh_time: int = DEFAULT_REFRESH_TIME) -> None:
        self.rpc = rpc
        self.refresh_time = refresh_time
        self._lock = threading.Lock()
        self._txs: list[MempoolTx] = []
        self._mempool_no = 0
        self._mempool_size = 0
        self._network_info = NetworkInfo()
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def mempool_no(self) -> int:
        """Number of transactions in the pool."""
        with self._lock:
            return self._mempool_no

    @property
    def mempool_size(self) -> int:
        """Total size of the pool transactions in bytes."""
        with self._lock:
            return self._mempool_size

    @property
    def network_info(self) -> NetworkInfo:
        """The last network info read."""
        with self._lock:
            return self._network_info

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def read_mempool(self) -> list[MempoolTx]:
        """Fetch the pool, newest first, and replace the cached transactions as a whole."""
        infos = sorted(
            self.rpc.get_mempool(),
            key=lambda item: int(item.get("receive_time", 0)),
            reverse=True,
        )
        txs = [mempool_tx_from_info(info) for info in infos]
        size = sum(int(info.get("blob_size", 0)) for info in infos)
        with self._lock:
            self._mempool_no = len(txs)
            self._mempool_size = size
            self._txs = txs
        return list(txs)

    def read_network_info(self) -> NetworkInfo:
        """Query the daemon for network, fee and hard fork info and cache the result."""
        info = self.rpc.get_network_info()
        fee_estimated = self.rpc.get_fee_estimate(FEE_ESTIMATE_GRACE_BLOCKS)
        hardfork = self.rpc.get_hardfork_info()

        target = int(info.get("target", 0))
        if target == 0:
            raise ValueError("Network info has a zero block target")
        hash_rate = _wide_difficulty(info) // target

        block_size_limit = int(info.get("block_size_limit", 0))
        block_size_median = int(info.get("block_size_median", 0))

        network = NetworkInfo(
            status=NetworkInfo.status_from_string(str(info.get("status", ""))),
            height=int(info.get("height", 0)),
            target_height=int(info.get("target_height", 0)),
            difficulty=int(info.get("difficulty", 0)),
            difficulty_top64=int(info.get("difficulty_top64", 0)),
            target=target,
            hash_rate=hash_rate & _UINT64_MASK,
            hash_rate_top64=(hash_rate >> 64) & _UINT64_MASK,
            tx_count=int(info.get("tx_count", 0)),
            tx_pool_size=int(info.get("tx_pool_size", 0)),
            alt_blocks_count=int(info.get("alt_blocks_count", 0)),
            outgoing_connections_count=int(info.get("outgoing_connections_count", 0)),
            incoming_connections_count=int(info.get("incoming_connections_count", 0)),
            white_peerlist_size=int(info.get("white_peerlist_size", 0)),
            nettype=_nettype(info),
            cumulative_difficulty=int(info.get("cumulative_difficulty", 0)),
            cumulative_difficulty_top64=int(info.get("cumulative_difficulty_top64", 0)),
            block_size_limit=block_size_limit,
            block_size_median=block_size_median,
            block_weight_limit=int(info.get("block_weight_limit", 0)),
            block_size_limit_str="{:0.2f}".format(block_size_limit / 2.0 / 1024.0),
            block_size_median_str="{:0.2f}".format(block_size_median / 1024.0),
            start_time=int(info.get("start_time", 0)),
            top_block_hash=str(info.get("top_block_hash", _NULL_HASH)),
            fee_per_kb=int(fee_estimated),
            info_timestamp=int(time.time()),
            current_hf_version=int(hardfork.get("version", 0)),
            current=True,
        )
        with self._lock:
            self._network_info = network
        return network

    def get_mempool_txs(self, limit: int | None = None) -> list[MempoolTx]:
        """Return a copy of the cached transactions, or only the first limit of them."""
        with self._lock:
            if limit is None:
                return list(self._txs)
            return self._txs[: max(0, min(limit, len(self._txs)))]

    def start(self) -> None:
        """Start the background refresh thread, unless it already runs."""
        self.refresh_time = max(1, self.refresh_time)
        if self.is_running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="mempool-status", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        """Ask the refresh thread to finish and wait for it."""
        self._stop.set()
        if self._thread is not None:
            self._thread.join()
            self._thread = None

    def _mark_network_info_stale(self) -> None:
        with self._lock:
            self._network_info = dataclasses.replace(self._network_info, current=False)

    def _run(self) -> None:
        loop_index = 0
        # network status is only checked about once a minute
        divider = max(1, NETWORK_INFO_PERIOD // self.refresh_time)
        while not self._stop.is_set():
            if loop_index % divider == 0:
                try:
                    self.read_network_info()
                except Exception:
                    logger.warning("Cant read network info", exc_info=True)
                    self._mark_network_info_stale()
                else:
                    logger.info("Current network info read")
                    loop_index = 0
            try:
                txs = self.read_mempool()
            except Exception:
                logger.warning("Getting mempool failed", exc_info=True)
            else:
                logger.info("mempool status txs: %d", len(txs))
            self._stop.wait(self.refresh_time)
            loop_index += 1
        logger.info("Mempool status thread interrupted.")