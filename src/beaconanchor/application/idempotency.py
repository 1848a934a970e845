from __future__ import annotations
from ..domain.calls import decode_bytes32, encode_timestamp_to_block_root, is_zero_root
from ..ports.chain import ChainReader
from .utils import bounded

async def is_already_anchored(reader: ChainReader, timestamp: int, *, timeout_s: float = 30.0) -> bool:
    """
    True when the oracle already stores a non-zero root for `timestamp`.
    Read failures propagate as TransientReadError: an unknown answer must never
    be taken as either "anchored" or "not anchored".
    """
    raw = await bounded(reader.read_contract(encode_timestamp_to_block_root(timestamp)),
                        timeout_s, f"timestampToBlockRoot({timestamp})")
    return not is_zero_root(decode_bytes32(raw))
