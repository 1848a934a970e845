from __future__ import annotations

def highest_boundary(interval: int, height: int) -> int:
    """Largest multiple of `interval` that is <= `height`."""
    if interval <= 0: raise ValueError(f"interval must be > 0, got {interval}")
    return (height // interval) * interval

def select_boundary(last_boundary: int, interval: int, latest_height: int) -> int | None:
    """
    Smallest multiple of `interval` strictly above `last_boundary` and not above
    `latest_height`; None when the chain has not reached it yet.
    """
    if interval <= 0: raise ValueError(f"interval must be > 0, got {interval}")
    nxt = (max(last_boundary, 0) // interval + 1) * interval
    return nxt if nxt <= latest_height else None

def clears_safety_margin(boundary: int, latest_height: int) -> bool:
    # stay one block behind the tip; replicas may not agree on it yet
    return boundary < latest_height - 1

def highest_safe_boundary(interval: int, latest_height: int) -> int:
    """Largest boundary that clears the safety margin (0 when none does)."""
    return highest_boundary(interval, max(latest_height - 2, 0))
