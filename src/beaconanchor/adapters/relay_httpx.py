from __future__ import annotations
import httpx
from typing import Any
from ..domain.models import SubmissionOutcome
from ..domain.value_types import Address
from ..ports.submission import Submitter

class RelaySubmitter(Submitter):
    """
    Hands the encoded call to a trusted relayer that holds its own signing key
    (KMS-backed) and broadcasts on our behalf. The relayer answers once the
    transaction is confirmed, so one request covers broadcast and inclusion.
    """

    def __init__(
        self,
        endpoint: str,
        api_key: str,
        chain_id: int,
        contract: Address,
        timeout_s: float = 180,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.endpoint = endpoint
        self.chain_id = chain_id
        self.contract = contract
        self.client = httpx.AsyncClient(
            timeout=httpx.Timeout(timeout_s),
            headers={"Authorization": f"Bearer {api_key}"},
            transport=transport,
        )

    def _payload(self, encoded_call: bytes) -> dict[str, Any]:
        return {
            "chain_id": self.chain_id,
            "address": str(self.contract),
            "calldata": "0x" + encoded_call.hex(),
            "platform_request": False,
        }

    async def submit(self, encoded_call: bytes) -> SubmissionOutcome:
        try:
            r = await self.client.post(self.endpoint, json=self._payload(encoded_call))
        except httpx.HTTPError as e:
            return SubmissionOutcome.failed(f"relayer unreachable: {type(e).__name__}: {e}")
        try:
            data = r.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {}
        reason = data.get("message") or data.get("error")
        if r.is_error:
            return SubmissionOutcome.failed(f"relayer rejected request: HTTP {r.status_code}" + (f" ({reason})" if reason else ""))
        tx_hash = data.get("transaction_hash")
        status = str(data.get("status") or "missing status").lower()
        if status != "success" or not tx_hash:
            return SubmissionOutcome.failed(f"relayer rejected request: {reason or status}", tx_id=tx_hash)
        return SubmissionOutcome.ok(str(tx_hash).lower())

    async def aclose(self) -> None:
        await self.client.aclose()
