# beaconanchor/ports/submission.py
from __future__ import annotations

from typing import Protocol
from ..domain.models import SubmissionOutcome


class Submitter(Protocol):
    """Port for getting an encoded oracle call included on chain."""

    async def submit(self, encoded_call: bytes) -> SubmissionOutcome:
        """Submit `encoded_call` to the oracle contract. Never raises for per-cycle failures."""

    async def aclose(self) -> None:
        """Release network resources."""
