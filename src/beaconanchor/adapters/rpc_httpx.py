from __future__ import annotations
import asyncio, httpx
from typing import Any
from ..domain.errors import MalformedResponseError, RPCError
from ..domain.value_types import Address
from ..ports.chain import ChainReader

def _to_hex_block(n: int) -> str: return hex(int(n))
def _from_hex(s: Any, field: str) -> int:
    if not isinstance(s, str) or not s.startswith("0x"):
        raise MalformedResponseError(f"{field}: expected 0x-quantity, got {s!r}")
    try:
        return int(s, 16)
    except ValueError:
        raise MalformedResponseError(f"{field}: invalid hex quantity {s!r}") from None
def _hexstr_to_bytes(s: Any, field: str) -> bytes:
    if not isinstance(s, str) or s[:2].lower() != "0x":
        raise MalformedResponseError(f"{field}: expected 0x-data, got {s!r}")
    h = s[2:]
    if len(h) % 2: h = "0" + h
    try:
        return bytes.fromhex(h)
    except ValueError as e:
        raise MalformedResponseError(f"{field}: invalid hex data") from e

class HttpxRPC(ChainReader):
    """Ethereum JSON-RPC client bound to one endpoint and one oracle contract."""

    def __init__(
        self,
        rpc_url: str,
        contract: Address,
        timeout_s: float = 20,
        max_conn: int = 8,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.rpc_url = rpc_url
        self.contract = contract
        self._id = 0
        self.client = httpx.AsyncClient(
            http2=True,
            timeout=httpx.Timeout(timeout_s),
            limits=httpx.Limits(max_connections=max_conn, max_keepalive_connections=max(1, max_conn//2)),
            transport=transport,
        )

    async def aclose(self) -> None:
        await self.client.aclose()

    async def request(self, method: str, params: list[Any]) -> Any:
        self._id += 1
        payload = {"jsonrpc":"2.0","id":self._id,"method":method,"params":params}
        # retry on 429 with simple backoff
        for attempt in range(3):
            try:
                r = await self.client.post(self.rpc_url, json=payload)
            except httpx.HTTPError as e:
                raise RPCError(method, f"{type(e).__name__}: {e}") from e
            if r.status_code == 429:
                ra = r.headers.get("Retry-After")
                delay = max(1.0, float(ra)) if ra and ra.isdigit() else (1.0 * (2**attempt))
                await asyncio.sleep(delay); continue
            if r.is_error:
                raise RPCError(method, f"HTTP {r.status_code}")
            try:
                data = r.json()
            except ValueError as e:
                raise MalformedResponseError(f"{method}: response is not JSON") from e
            if not isinstance(data, dict):
                raise MalformedResponseError(f"{method}: response is not a JSON-RPC object")
            if "error" in data:
                err = data["error"]
                if isinstance(err, dict):
                    raise RPCError(method, str(err.get("message")), err.get("code"))
                raise RPCError(method, str(err))
            if "result" not in data:
                raise MalformedResponseError(f"{method}: response has no result")
            return data["result"]
        raise RPCError(method, "retries exhausted (HTTP 429)")

    # ---- ChainReader ----------------------------------------------------------

    async def latest_height(self) -> int:
        return _from_hex(await self.request("eth_blockNumber", []), "eth_blockNumber")

    async def block_timestamp(self, height: int) -> int:
        block = await self.request("eth_getBlockByNumber", [_to_hex_block(height), False])
        if not isinstance(block, dict):
            raise MalformedResponseError(f"block {height} not found")
        return _from_hex(block.get("timestamp"), "block.timestamp")

    async def read_contract(self, encoded_call: bytes) -> bytes:
        res = await self.request("eth_call", [{"to": str(self.contract), "data": "0x" + encoded_call.hex()}, "latest"])
        return _hexstr_to_bytes(res, "eth_call")

    # ---- transaction plumbing (used by the direct signer) ---------------------

    async def transaction_count(self, address: str, block: str = "pending") -> int:
        return _from_hex(await self.request("eth_getTransactionCount", [address, block]), "eth_getTransactionCount")

    async def gas_price(self) -> int:
        return _from_hex(await self.request("eth_gasPrice", []), "eth_gasPrice")

    async def estimate_gas(self, tx: dict[str, Any]) -> int:
        return _from_hex(await self.request("eth_estimateGas", [tx]), "eth_estimateGas")

    async def send_raw_transaction(self, raw_tx: bytes) -> str:
        res = await self.request("eth_sendRawTransaction", ["0x" + raw_tx.hex()])
        if not isinstance(res, str):
            raise MalformedResponseError(f"eth_sendRawTransaction: unexpected result {res!r}")
        return res.lower()

    async def transaction_receipt(self, tx_hash: str) -> dict[str, Any] | None:
        res = await self.request("eth_getTransactionReceipt", [tx_hash])
        if res is not None and not isinstance(res, dict):
            raise MalformedResponseError(f"eth_getTransactionReceipt: unexpected result {res!r}")
        return res
