from __future__ import annotations
from typing import NewType, Literal

Address = NewType("Address", str)   # 0x-prefixed, lowercase, 20 bytes
TxHash  = NewType("TxHash", str)    # 66-char 0x-hash
SubmitMode = Literal["direct", "relay"]
CycleStatus = Literal[
    "submitted",         # strategy reported success
    "submit_failed",     # strategy reported failure, retried next cycle
    "already_anchored",  # candidate timestamp has a non-zero root
    "nothing_to_do",     # chain has not reached the next boundary
    "too_fresh",         # candidate inside the one-block safety margin
    "read_failed",       # chain/contract read failed, cycle aborted
    "dry_run",           # candidate found unanchored, submission skipped
]
