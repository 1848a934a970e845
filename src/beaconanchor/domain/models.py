from __future__ import annotations
from dataclasses import dataclass
from .value_types import CycleStatus, TxHash

@dataclass(slots=True, frozen=True)
class CandidateUpdate:
    boundary: int
    block_timestamp: int

@dataclass(slots=True, frozen=True)
class SubmissionOutcome:
    success: bool
    tx_id: TxHash | None = None
    error: str | None = None

    @classmethod
    def ok(cls, tx_id: str) -> "SubmissionOutcome":
        return cls(success=True, tx_id=TxHash(tx_id))

    @classmethod
    def failed(cls, error: str, tx_id: str | None = None) -> "SubmissionOutcome":
        return cls(success=False, tx_id=TxHash(tx_id) if tx_id else None, error=error)

@dataclass(slots=True, frozen=True)
class CycleReport:
    status: CycleStatus
    latest_height: int | None = None
    last_boundary: int | None = None
    candidate: CandidateUpdate | None = None
    outcome: SubmissionOutcome | None = None
    error: str | None = None
