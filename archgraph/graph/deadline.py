"""
Per-request deadline used to abort long walks on pathological graphs.
"""

from __future__ import annotations

import time
from typing import Optional

from ..errors import ComputationTimeoutError


class Deadline:
    """
    Wall-clock budget for a single query.

    Walks call `check()` once per expansion; the clock is only read every
    `stride` calls so tight loops stay cheap.
    """

    def __init__(self, timeout_seconds: Optional[float], *, label: str = "query", stride: int = 64):
        self.timeout_seconds = timeout_seconds
        self.label = label
        self.stride = max(1, stride)
        self._started = time.monotonic()
        self._expires_at = (
            None if timeout_seconds is None else self._started + max(0.0, float(timeout_seconds))
        )
        self._ticks = 0

    @classmethod
    def unbounded(cls, label: str = "query") -> "Deadline":
        return cls(None, label=label)

    def expired(self) -> bool:
        return self._expires_at is not None and time.monotonic() >= self._expires_at

    def check(self) -> None:
        if self._expires_at is None:
            return
        self._ticks += 1
        if self._ticks % self.stride and self._ticks != 1:
            return
        if time.monotonic() >= self._expires_at:
            raise ComputationTimeoutError(
                f"{self.label} exceeded its {self.timeout_seconds:.2f}s budget; "
                "partial results are not available"
            )
