"""Error types for the operator.

Configuration errors are fatal and only raised during startup. Everything
raised while a cycle runs is recoverable: the scheduler logs it and waits for
the next tick.
"""

from __future__ import annotations


class BeaconAnchorError(Exception):
    """Base class for all operator errors."""


class ConfigError(BeaconAnchorError):
    """Missing or malformed configuration or credentials."""


class TransientReadError(BeaconAnchorError):
    """A chain or contract read failed; the answer is unknown, not negative."""


class RPCError(TransientReadError):
    def __init__(self, method: str, message: str, code: int | None = None) -> None:
        self.method = method
        self.code = code
        super().__init__(f"{method} RPC error code={code} message={message}")


class MalformedResponseError(TransientReadError):
    """The node answered, but not with the shape we expect."""


class SubmissionError(BeaconAnchorError):
    """Broadcast or relay failed. Strategies turn this into a failed outcome."""

    def __init__(self, message: str, tx_hash: str | None = None) -> None:
        self.tx_hash = tx_hash
        super().__init__(message)
