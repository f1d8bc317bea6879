"""Tracking of the total amount of coins emitted by the blockchain."""

from __future__ import annotations

import logging
import os
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from xmrblocks.tools import read_file

logger = logging.getLogger(__name__)

DEFAULT_OUTPUT_FILE = "emission_amount.txt"
DEFAULT_CHUNK_SIZE = 10000
DEFAULT_CHUNK_GAP = 3

_UINT64_MASK = (1 << 64) - 1
_CATCH_UP_PAUSE = 1.0
_TOP_OF_CHAIN_PAUSE = 60.0


class BlockSource(Protocol):
    """Read access to the blockchain needed to compute emission."""

    def get_current_blockchain_height(self) -> int:
        """Return the number of blocks in the blockchain."""

    def get_block_amounts(self, height: int) -> tuple[int, int]:
        """Return the miner transaction's output total and the sum of fees in a block."""


@dataclass(frozen=True)
class Emission:
    """Coinbase and fees emitted in the blocks below blk_no."""

    coinbase: int = 0
    fee: int = 0
    blk_no: int = 0

    def checksum(self) -> int:
        """Return the 64-bit checksum stored alongside the values."""
        return (self.coinbase + self.fee + self.blk_no) & _UINT64_MASK

    def __str__(self) -> str:
        return f"{self.blk_no},{self.coinbase},{self.fee},{self.checksum()}"

    @classmethod
    def parse(cls, text: str) -> "Emission":
        """Parse the saved form 'blk_no,coinbase,fee,checksum'; raise ValueError if invalid."""
        stripped = text.rstrip(" \n\r\t")
        if not stripped:
            raise ValueError("Emission data is empty")
        parts = stripped.split(",")
        if len(parts) < 4:
            raise ValueError(f"Emission data has too few fields: {stripped!r}")
        try:
            blk_no, coinbase, fee, checksum = (int(part, 10) for part in parts[:4])
        except ValueError as exc:
            raise ValueError(f"Cant parse to number data from string: {stripped!r}") from exc
        if min(blk_no, coinbase, fee, checksum) < 0:
            raise ValueError(f"Negative value in emission data: {stripped!r}")
        emission = cls(coinbase=coinbase, fee=fee, blk_no=blk_no)
        if checksum != emission.checksum():
            raise ValueError(
                f"read_check_sum != check_sum: {checksum} != {emission.checksum()}"
            )
        return emission


class EmissionMonitor:
    """Scans the blockchain in chunks and keeps the running emission total on disk."""

    def __init__(
        self,
        source: BlockSource,
        output_path: str | os.PathLike[str],
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        chunk_gap: int = DEFAULT_CHUNK_GAP,
    ) -> None:
        self.source = source
        path = Path(output_path)
        self.output_path = path / DEFAULT_OUTPUT_FILE if path.is_dir() else path
        self.chunk_size = chunk_size
        self.chunk_gap = chunk_gap
        self.current_height = 0
        self._emission = Emission()
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def emission(self) -> Emission:
        """The stored total, a few blocks behind the top of the chain."""
        with self._lock:
            return self._emission

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def calculate_emission_in_blocks(self, start: int, end: int) -> Emission:
        """Return the emission of blocks start..end-1, with blk_no set to where it stopped."""
        coinbase = 0
        fee = 0
        height = start
        while height < end:
            outs_amount, fees = self.source.get_block_amounts(height)
            coinbase += outs_amount - fees
            fee += fees
            height += 1
        return Emission(coinbase=coinbase, fee=fee, blk_no=height)

    def update_current_emission_amount(self) -> Emission:
        """Add the next chunk of blocks, staying chunk_gap blocks below the top."""
        self.current_height = self.source.get_current_blockchain_height()
        current = self.emission
        end_block = current.blk_no + self.chunk_size
        if end_block > self.current_height:
            end_block = max(0, self.current_height - self.chunk_gap)
        calculated = self.calculate_emission_in_blocks(current.blk_no, end_block)
        updated = Emission(
            coinbase=current.coinbase + calculated.coinbase,
            fee=current.fee + calculated.fee,
            blk_no=calculated.blk_no,
        )
        with self._lock:
            self._emission = updated
        return updated

    def save(self) -> None:
        """Write the stored total to the output file."""
        self.output_path.write_text(str(self.emission))

    def load(self) -> Emission:
        """Read the stored total from the output file; raise ValueError if it is corrupt."""
        text = read_file(self.output_path)
        if not text:
            raise ValueError(f"Emission file is empty: {self.output_path}")
        emission = Emission.parse(text)
        with self._lock:
            self._emission = emission
        return emission

    def get_emission(self) -> Emission:
        """Return the stored total plus the blocks in the gap at the top of the chain."""
        current = self.emission
        height = self.current_height
        start = current.blk_no
        end_block = start + self.chunk_gap
        if end_block >= height and start < height:
            end_block = min(end_block, height)
            gap = self.calculate_emission_in_blocks(start, end_block)
            current = Emission(
                coinbase=current.coinbase + gap.coinbase,
                fee=current.fee + gap.fee,
                blk_no=gap.blk_no if gap.blk_no > 0 else current.blk_no,
            )
        return current

    def start(self) -> None:
        """Load any saved total and start the background scanning thread."""
        if self.is_running:
            return
        with self._lock:
            self._emission = Emission()
        if self.output_path.exists():
            self.load()
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._run, name="emission-monitor", daemon=True
        )
        self._thread.start()

    def stop(self) -> None:
        """Ask the scanning thread to finish and wait for it."""
        self._stop.set()
        if self._thread is not None:
            self._thread.join()
            self._thread = None

    def _run(self) -> None:
        while not self._stop.is_set():
            current = self.emission
            try:
                self.update_current_emission_amount()
                logger.info("current emission: %s", current)
                self.save()
            except Exception:
                logger.exception("Emission update failed")
            if current.blk_no < self.current_height - self.chunk_size:
                pause = _CATCH_UP_PAUSE
            else:
                pause = _TOP_OF_CHAIN_PAUSE
            self._stop.wait(pause)
        logger.info("Emission monitoring thread interrupted.")