"""Deadline-aware parallel map used by every analysis stage."""

from __future__ import annotations

import concurrent.futures
import logging
import time
from typing import TYPE_CHECKING, TypeVar

from layerlint.errors import AnalysisTimeout

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


class Deadline:
    """A wall-clock budget for one analysis pass.

    ``Deadline(None)`` never expires.
    """

    def __init__(
        self, seconds: float | None, *, clock: Callable[[], float] = time.monotonic
    ) -> None:
        self.seconds = seconds
        self._clock = clock
        self._expires_at = None if seconds is None else clock() + seconds

    def remaining(self) -> float | None:
        """Seconds left, clamped at zero, or ``None`` for an unbounded pass."""
        if self._expires_at is None:
            return None
        return max(0.0, self._expires_at - self._clock())

    def expired(self) -> bool:
        return self._expires_at is not None and self._clock() >= self._expires_at

    def check(self, stage: str) -> None:
        """Raise :class:`AnalysisTimeout` if the budget is spent."""
        if self.expired():
            msg = f"analysis exceeded its {self.seconds:g}s deadline during {stage}"
            raise AnalysisTimeout(msg)


def map_with_deadline(
    fn: Callable[[T], R],
    items: Iterable[T],
    *,
    deadline: Deadline,
    stage: str,
    max_workers: int | None = None,
) -> list[R]:
    """Apply *fn* to every item on a thread pool, results in input order.

    Each unit checks *deadline* before it starts.  Exceptions raised by *fn*
    propagate unchanged; on timeout, pending units are cancelled and
    :class:`AnalysisTimeout` is raised so no partial result escapes.
    """
    units = list(items)
    deadline.check(stage)
    if not units:
        return []

    def _unit(item: T) -> R:
        deadline.check(stage)
        return fn(item)

    executor = concurrent.futures.ThreadPoolExecutor(
        max_workers=max_workers, thread_name_prefix=f"layerlint-{stage}"
    )
    try:
        futures = [executor.submit(_unit, item) for item in units]
        results: list[R] = []
        for future in futures:
            try:
                results.append(future.result(timeout=deadline.remaining()))
            except concurrent.futures.TimeoutError as exc:
                msg = f"analysis exceeded its {deadline.seconds:g}s deadline during {stage}"
                raise AnalysisTimeout(msg) from exc
        deadline.check(stage)
    finally:
        executor.shutdown(wait=False, cancel_futures=True)

    logger.debug("Stage %s: %d units done", stage, len(results))
    return results
