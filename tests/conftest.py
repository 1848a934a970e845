from __future__ import annotations

import logging

import pytest

from beaconanchor.domain.calls import (
    ADD_TIMESTAMP_SELECTOR,
    TIMESTAMP_TO_BLOCK_ROOT_SELECTOR,
    ZERO_ROOT,
)
from beaconanchor.domain.errors import RPCError
from beaconanchor.domain.models import SubmissionOutcome

GENESIS_TS = 1_700_000_000
TX_HASH = "0x" + "ab" * 32


def block_ts(height: int) -> int:
    return GENESIS_TS + 12 * height


class FakeChain:
    """In-memory chain + oracle contract. Roots are keyed by timestamp, like the contract."""

    def __init__(self, height: int, anchored: tuple[int, ...] = ()) -> None:
        self.height = height
        self.roots: dict[int, bytes] = {block_ts(b): b"\x11" * 32 for b in anchored}
        self.timestamp_reads: list[int] = []
        self.contract_reads: list[int] = []
        self.fail_height = False
        self.fail_contract_reads = False

    async def latest_height(self) -> int:
        if self.fail_height:
            raise RPCError("eth_blockNumber", "node unavailable")
        return self.height

    async def block_timestamp(self, height: int) -> int:
        self.timestamp_reads.append(height)
        return block_ts(height)

    async def read_contract(self, encoded_call: bytes) -> bytes:
        assert encoded_call[:4] == TIMESTAMP_TO_BLOCK_ROOT_SELECTOR
        ts = int.from_bytes(encoded_call[4:36], "big")
        self.contract_reads.append(ts)
        if self.fail_contract_reads:
            raise RPCError("eth_call", "execution timeout", -32000)
        return self.roots.get(ts, ZERO_ROOT)

    def anchor(self, ts: int) -> None:
        self.roots[ts] = b"\x22" * 32


class FakeSubmitter:
    """Records submissions; a successful one anchors the timestamp on the fake chain."""

    def __init__(self, chain: FakeChain, failures: int = 0) -> None:
        self.chain = chain
        self.failures = failures
        self.calls: list[int] = []

    async def submit(self, encoded_call: bytes) -> SubmissionOutcome:
        assert encoded_call[:4] == ADD_TIMESTAMP_SELECTOR
        ts = int.from_bytes(encoded_call[4:36], "big")
        self.calls.append(ts)
        if self.failures > 0:
            self.failures -= 1
            return SubmissionOutcome.failed("broadcast rejected: nonce too low")
        self.chain.anchor(ts)
        return SubmissionOutcome.ok(TX_HASH)

    async def aclose(self) -> None:
        return None


def fixed_last(value: int | None):
    """Boundary locator that reports a fixed last anchored boundary."""
    async def locate(reader, interval, height, max_lookback, timeout_s):
        return value
    return locate


@pytest.fixture(autouse=True)
def _restore_root_logger():
    # CLI commands install their own root handler
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
