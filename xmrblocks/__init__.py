"""Monero blockchain explorer core: daemon RPC client, mempool and emission monitors, helpers."""

__version__ = "0.1.0"