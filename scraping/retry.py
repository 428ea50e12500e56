import asyncio
from typing import Awaitable, Callable, TypeVar

from tenacity import AsyncRetrying, RetryCallState, stop_after_attempt, wait_incrementing

from config.logging_config import log

T = TypeVar("T")


def _log_retry(label: str):
    def before_sleep(state: RetryCallState) -> None:
        exc = state.outcome.exception() if state.outcome else None
        log.warning(
            f"[{label}] attempt {state.attempt_number} failed: {exc}; "
            f"retrying in {state.next_action.sleep:.2f}s"
        )
    return before_sleep


async def with_retry(
    call: Callable[[], Awaitable[T]],
    max_attempts: int = 3,
    base_delay: float = 1.0,
    *,
    label: str = "fetch",
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """
    Run ``call`` up to ``max_attempts`` times. Attempt n failing waits
    n * base_delay (linear). Every failure kind is retried; on exhaustion the
    last exception is re-raised as is.
    """
    retrying = AsyncRetrying(
        stop=stop_after_attempt(max(1, max_attempts)),
        wait=wait_incrementing(start=base_delay, increment=base_delay),
        before_sleep=_log_retry(label),
        sleep=sleep,
        reraise=True,
    )
    async for attempt in retrying:
        with attempt:
            return await call()
