"""Deadline-bounded execution of blocking client calls.

Every client operation is a plain blocking call. This module wraps the
same call so a caller can stop waiting after a timeout; the abandoned
call keeps running on its worker thread until the store answers.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Callable, TypeVar

from core.errors import DeadlineExceededError

ResultT = TypeVar("ResultT")


def call_with_deadline(
    operation: Callable[[], ResultT],
    timeout_seconds: float | None,
    description: str,
    on_abandon: Callable[[], None] | None = None,
) -> ResultT:
    """Run a blocking operation with an optional deadline.

    Args:
        operation: Zero-argument callable performing the blocking call.
        timeout_seconds: Seconds to wait; ``None`` blocks without bound.
        description: Operation name used in error messages.
        on_abandon: Optional cleanup run once an abandoned call finishes,
            on the thread that finishes it.

    Returns:
        The operation result.

    Raises:
        DeadlineExceededError: If the deadline passes first.
        Exception: Whatever the operation raises, unchanged.
    """
    if timeout_seconds is None:
        return operation()
    executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="colbridge-deadline")
    try:
        future = executor.submit(operation)
        try:
            return future.result(timeout=timeout_seconds)
        except FutureTimeoutError as error:
            future.cancel()
            if on_abandon is not None:
                future.add_done_callback(lambda _future: on_abandon())
            raise DeadlineExceededError(
                f"{description} did not finish within {timeout_seconds}s. "
                "Retry with a larger timeout or check cluster health."
            ) from error
    finally:
        executor.shutdown(wait=False)
