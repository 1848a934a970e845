from __future__ import annotations
import asyncio
from typing import Awaitable, TypeVar
from ..domain.errors import TransientReadError

T = TypeVar("T")

async def bounded(aw: Awaitable[T], timeout_s: float, what: str) -> T:
    """Await `aw` for at most `timeout_s`; a timeout is a transient read error."""
    try:
        return await asyncio.wait_for(aw, timeout=timeout_s)
    except asyncio.TimeoutError:
        raise TransientReadError(f"{what} timed out after {timeout_s:g}s") from None
