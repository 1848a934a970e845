from __future__ import annotations

import asyncio
import logging
import time
from typing import Any

from eth_account import Account
from eth_account.signers.local import LocalAccount
from eth_utils import to_checksum_address

from ..domain.errors import ConfigError, SubmissionError, TransientReadError
from ..domain.models import SubmissionOutcome
from ..domain.value_types import Address
from ..ports.submission import Submitter
from .rpc_httpx import HttpxRPC

logger = logging.getLogger(__name__)


def load_account(private_key: str | None) -> LocalAccount:
    if not private_key:
        raise ConfigError("PRIVATE_KEY must be set in direct mode")
    try:
        return Account.from_key(private_key)
    except Exception as e:
        # never echo the key itself
        raise ConfigError(f"invalid private key ({type(e).__name__})") from None


class DirectSubmitter(Submitter):
    """
    Signs the oracle call locally and broadcasts it through our own RPC node,
    then polls for the receipt. Failures are returned, not raised; the next
    cycle's idempotency check decides whether to try again.
    """

    def __init__(
        self,
        rpc: HttpxRPC,
        account: LocalAccount,
        chain_id: int,
        contract: Address,
        *,
        receipt_timeout_s: float = 180.0,
        poll_interval_s: float = 3.0,
        gas_multiplier: float = 1.2,
    ) -> None:
        self.rpc = rpc
        self.account = account
        self.chain_id = chain_id
        self.contract = to_checksum_address(contract)
        self.receipt_timeout_s = receipt_timeout_s
        self.poll_interval_s = poll_interval_s
        self.gas_multiplier = gas_multiplier

    @property
    def address(self) -> str:
        return self.account.address

    async def _build_tx(self, encoded_call: bytes) -> dict[str, Any]:
        data = "0x" + encoded_call.hex()
        nonce = await self.rpc.transaction_count(self.address, "pending")
        gas_price = await self.rpc.gas_price()
        gas = await self.rpc.estimate_gas({"from": self.address, "to": self.contract, "data": data})
        return {
            "chainId": self.chain_id,
            "nonce": nonce,
            "to": self.contract,
            "value": 0,
            "gas": int(gas * self.gas_multiplier),
            "gasPrice": gas_price,
            "data": data,
        }

    async def _broadcast(self, encoded_call: bytes) -> str:
        try:
            tx = await self._build_tx(encoded_call)
        except TransientReadError as e:
            raise SubmissionError(f"could not prepare transaction: {e}") from e
        signed = self.account.sign_transaction(tx)
        raw_tx = getattr(signed, "raw_transaction", None) or getattr(signed, "rawTransaction", None)
        try:
            return await self.rpc.send_raw_transaction(bytes(raw_tx))
        except TransientReadError as e:
            raise SubmissionError(f"broadcast rejected: {e}") from e

    async def _wait_for_receipt(self, tx_hash: str) -> dict[str, Any]:
        deadline = time.monotonic() + self.receipt_timeout_s
        while True:
            try:
                receipt = await self.rpc.transaction_receipt(tx_hash)
            except TransientReadError as e:
                # the tx is already out; keep polling until the deadline
                logger.debug("receipt poll failed for %s: %s", tx_hash, e)
                receipt = None
            if receipt is not None:
                return receipt
            if time.monotonic() >= deadline:
                raise SubmissionError(
                    f"transaction not confirmed within {self.receipt_timeout_s:g}s", tx_hash=tx_hash
                )
            await asyncio.sleep(self.poll_interval_s)

    async def submit(self, encoded_call: bytes) -> SubmissionOutcome:
        try:
            tx_hash = await self._broadcast(encoded_call)
            logger.debug("broadcast %s from %s on chain %s", tx_hash, self.address, self.chain_id)
            receipt = await self._wait_for_receipt(tx_hash)
        except SubmissionError as e:
            return SubmissionOutcome.failed(str(e), tx_id=e.tx_hash)
        status = receipt.get("status")
        if status is not None:
            try:
                ok = int(status, 16) == 1
            except (TypeError, ValueError):
                return SubmissionOutcome.failed(f"unreadable receipt status {status!r}", tx_id=tx_hash)
            if not ok:
                return SubmissionOutcome.failed("transaction reverted", tx_id=tx_hash)
        return SubmissionOutcome.ok(str(receipt.get("transactionHash") or tx_hash).lower())

    async def aclose(self) -> None:
        # the RPC client is shared with the reader and closed by its owner
        return None
