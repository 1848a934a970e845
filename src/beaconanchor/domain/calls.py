from __future__ import annotations

from eth_utils import function_signature_to_4byte_selector

from .errors import MalformedResponseError

# Oracle methods. Both take a single uint256, so encoding is selector + one word.
ADD_TIMESTAMP_SIG           = "addTimestamp(uint256)"
TIMESTAMP_TO_BLOCK_ROOT_SIG = "timestampToBlockRoot(uint256)"

ADD_TIMESTAMP_SELECTOR           = function_signature_to_4byte_selector(ADD_TIMESTAMP_SIG)
TIMESTAMP_TO_BLOCK_ROOT_SELECTOR = function_signature_to_4byte_selector(TIMESTAMP_TO_BLOCK_ROOT_SIG)

ZERO_ROOT = b"\x00" * 32

# --------- 32B word packing (no eth_abi) ---------------------------------------
def _u256_word(v: int) -> bytes:
    if v < 0 or v >= 1 << 256:
        raise ValueError(f"uint256 out of range: {v}")
    return int(v).to_bytes(32, "big")

def encode_add_timestamp(timestamp: int) -> bytes:
    return ADD_TIMESTAMP_SELECTOR + _u256_word(timestamp)

def encode_timestamp_to_block_root(timestamp: int) -> bytes:
    return TIMESTAMP_TO_BLOCK_ROOT_SELECTOR + _u256_word(timestamp)

def decode_bytes32(raw: bytes) -> bytes:
    """A bytes32 return value is exactly one word; anything else is malformed."""
    if len(raw) != 32:
        raise MalformedResponseError(f"expected 32-byte word, got {len(raw)} bytes")
    return bytes(raw)

def is_zero_root(root: bytes) -> bool:
    return root == ZERO_ROOT
