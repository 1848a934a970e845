# beaconanchor/ports/chain.py
from __future__ import annotations

from typing import Protocol


class ChainReader(Protocol):
    """Port defining the read-only view of the source chain and the oracle contract."""

    async def latest_height(self) -> int:
        """Return the latest block number as an integer."""

    async def block_timestamp(self, height: int) -> int:
        """Return the unix timestamp of block `height`."""

    async def read_contract(self, encoded_call: bytes) -> bytes:
        """Execute `encoded_call` against the oracle contract (eth_call) and return the raw result."""
