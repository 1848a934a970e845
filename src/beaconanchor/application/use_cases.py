from __future__ import annotations
import asyncio
import logging
from typing import Awaitable, Callable

from ..adapters.direct_signer import DirectSubmitter, load_account
from ..adapters.relay_httpx import RelaySubmitter
from ..adapters.rpc_httpx import HttpxRPC
from ..config import Settings
from ..domain.calls import encode_add_timestamp
from ..domain.errors import ConfigError, TransientReadError
from ..domain.models import CandidateUpdate, CycleReport, SubmissionOutcome
from ..ports.chain import ChainReader
from ..ports.submission import Submitter
from .idempotency import is_already_anchored
from .planning import clears_safety_margin, highest_safe_boundary, select_boundary
from .utils import bounded

logger = logging.getLogger(__name__)

# (reader, interval, latest_height, max_lookback, timeout_s) -> last anchored boundary or None
BoundaryLocator = Callable[[ChainReader, int, int, int, float], Awaitable[int | None]]


async def find_last_anchored_boundary(
    reader: ChainReader,
    interval: int,
    latest_height: int,
    max_lookback: int,
    timeout_s: float,
) -> int | None:
    """
    The oracle only answers "root for timestamp T", so the newest anchored
    boundary is found by probing boundaries downwards, starting from the
    newest one that clears the safety margin.
    Returns None when none of the last `max_lookback` boundaries is anchored.
    Boundary 0 is never probed.
    """
    b = highest_safe_boundary(interval, latest_height)
    for _ in range(max_lookback):
        if b <= 0:
            break
        ts = await bounded(reader.block_timestamp(b), timeout_s, f"eth_getBlockByNumber({b})")
        if await is_already_anchored(reader, ts, timeout_s=timeout_s):
            return b
        b -= interval
    return None


async def run_cycle(
    reader: ChainReader,
    submitter: Submitter | None,
    *,
    interval: int,
    max_lookback: int = 64,
    timeout_s: float = 30.0,
    submit_timeout_s: float = 600.0,
    locate: BoundaryLocator = find_last_anchored_boundary,
    dry_run: bool = False,
) -> CycleReport:
    """One pass of read -> select -> check -> (maybe) submit. Never raises on chain trouble."""
    height: int | None = None
    last: int | None = None
    candidate: CandidateUpdate | None = None
    try:
        height = await bounded(reader.latest_height(), timeout_s, "eth_blockNumber")
        logger.debug("latest block %d", height, extra={"event": "cycle_started", "height": height})

        last = await locate(reader, interval, height, max_lookback, timeout_s)
        if last is None:
            base = highest_safe_boundary(interval, height) - interval
            logger.warning(
                "no anchored boundary in the last %d intervals, starting from the newest one",
                max_lookback, extra={"event": "no_anchor_found", "height": height},
            )
        else:
            base = last

        boundary = select_boundary(base, interval, height)
        if boundary is None:
            logger.debug("next boundary above %d not reached yet (height %d)", base, height,
                         extra={"event": "nothing_to_do", "height": height})
            return CycleReport("nothing_to_do", height, last)
        if not clears_safety_margin(boundary, height):
            logger.debug("boundary %d too close to tip %d, waiting", boundary, height,
                         extra={"event": "candidate_too_fresh", "height": height, "boundary": boundary})
            return CycleReport("too_fresh", height, last)

        logger.debug("attempting to add timestamp of block %d", boundary,
                     extra={"event": "candidate_selected", "height": height, "boundary": boundary})
        ts = await bounded(reader.block_timestamp(boundary), timeout_s, f"eth_getBlockByNumber({boundary})")
        candidate = CandidateUpdate(boundary=boundary, block_timestamp=ts)

        if await is_already_anchored(reader, ts, timeout_s=timeout_s):
            logger.info("block %d (timestamp %d) already anchored", boundary, ts,
                        extra={"event": "already_anchored", "boundary": boundary, "timestamp": ts})
            return CycleReport("already_anchored", height, last, candidate)
    except TransientReadError as e:
        logger.error("chain read failed, skipping cycle: %s", e, extra={"event": "read_failed", "error": str(e)})
        return CycleReport("read_failed", height, last, candidate, error=str(e))

    if dry_run or submitter is None:
        return CycleReport("dry_run", height, last, candidate)

    logger.info("submitting addTimestamp(%d) for block %d", candidate.block_timestamp, candidate.boundary,
                extra={"event": "submission_attempted", "boundary": candidate.boundary,
                       "timestamp": candidate.block_timestamp})
    try:
        outcome = await asyncio.wait_for(
            submitter.submit(encode_add_timestamp(candidate.block_timestamp)), timeout=submit_timeout_s
        )
    except asyncio.TimeoutError:
        outcome = SubmissionOutcome.failed(f"submission timed out after {submit_timeout_s:g}s")

    if outcome.success:
        logger.info("anchored block %d with tx hash %s", candidate.boundary, outcome.tx_id,
                    extra={"event": "submission_succeeded", "boundary": candidate.boundary, "tx_hash": outcome.tx_id})
        return CycleReport("submitted", height, last, candidate, outcome)
    logger.error("submission for block %d failed: %s", candidate.boundary, outcome.error,
                 extra={"event": "submission_failed", "boundary": candidate.boundary,
                        "tx_hash": outcome.tx_id, "error": outcome.error})
    return CycleReport("submit_failed", height, last, candidate, outcome, error=outcome.error)


async def run_forever(
    reader: ChainReader,
    submitter: Submitter,
    *,
    interval: int,
    loop_interval_s: float,
    max_cycles: int | None = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    **cycle_kwargs,
) -> None:
    """
    Scheduler loop. Cycles never overlap; a slow submission simply delays the
    next poll. Only cancellation (process shutdown) ends it, unless
    `max_cycles` bounds it.
    """
    n = 0
    while max_cycles is None or n < max_cycles:
        n += 1
        try:
            await run_cycle(reader, submitter, interval=interval, **cycle_kwargs)
        except Exception:
            logger.exception("cycle crashed", extra={"event": "cycle_crashed"})
        if max_cycles is not None and n >= max_cycles:
            break
        logger.debug("sleeping for %gs", loop_interval_s, extra={"event": "cycle_sleep", "seconds": loop_interval_s})
        await sleep(loop_interval_s)


# ---------------------------------------------------------------------------
# Wiring
# ---------------------------------------------------------------------------

def build_submitter(settings: Settings, rpc: HttpxRPC) -> Submitter:
    """The only place the submission mode is looked at."""
    if settings.mode == "direct":
        return DirectSubmitter(
            rpc,
            load_account(settings.private_key),
            settings.chain_id,
            settings.contract,
            receipt_timeout_s=settings.receipt_timeout_seconds,
        )
    if settings.relay is None:
        raise ConfigError("relay mode requires SECURE_RELAYER_ENDPOINT and SECURE_RELAYER_API_KEY")
    return RelaySubmitter(
        settings.relay.endpoint,
        settings.relay.api_key,
        settings.chain_id,
        settings.contract,
        timeout_s=settings.receipt_timeout_seconds,
    )


def _cycle_kwargs(settings: Settings) -> dict:
    return {
        "max_lookback": settings.max_lookback,
        "timeout_s": settings.rpc_timeout_seconds,
        "submit_timeout_s": settings.submit_timeout_seconds,
    }


async def run_operator(settings: Settings, *, once: bool = False) -> None:
    rpc = HttpxRPC(settings.rpc_url, settings.contract, timeout_s=settings.rpc_timeout_seconds)
    try:
        submitter = build_submitter(settings, rpc)
    except ConfigError:
        await rpc.aclose()
        raise
    logger.info("operator started for %s on chain %d (%s mode, every %d blocks)",
                settings.contract, settings.chain_id, settings.mode, settings.block_interval,
                extra={"event": "operator_started", "mode": settings.mode})
    try:
        await run_forever(
            rpc, submitter,
            interval=settings.block_interval,
            loop_interval_s=settings.loop_interval_seconds,
            max_cycles=1 if once else None,
            **_cycle_kwargs(settings),
        )
    finally:
        await submitter.aclose()
        await rpc.aclose()


async def inspect_status(settings: Settings) -> CycleReport:
    """Read-only cycle: everything up to the idempotency check, nothing submitted."""
    rpc = HttpxRPC(settings.rpc_url, settings.contract, timeout_s=settings.rpc_timeout_seconds)
    try:
        return await run_cycle(rpc, None, interval=settings.block_interval, dry_run=True, **_cycle_kwargs(settings))
    finally:
        await rpc.aclose()
