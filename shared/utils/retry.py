import asyncio
import random
from typing import Awaitable, Callable, Iterable, Optional, TypeVar

T = TypeVar("T")

OnRetry = Callable[[int, BaseException, float], Awaitable[None] | None]


def backoff_delays(
    retries: int, base_delay: float, max_delay: float, jitter: float
) -> list[float]:
    """Sleep durations between attempts: doubling, capped, with jitter."""
    delays = []
    delay = base_delay
    for _ in range(max(retries - 1, 0)):
        delays.append(min(delay, max_delay) + random.uniform(0, delay * jitter))
        delay = min(delay * 2, max_delay)
    return delays


async def retry_async(
    func: Callable[[], Awaitable[T]],
    retries: int = 5,
    base_delay: float = 0.5,
    max_delay: float = 10.0,
    jitter: float = 0.1,
    retry_on: Iterable[type[BaseException]] = (Exception,),
    on_retry: Optional[OnRetry] = None,
) -> T:
    """Await ``func`` until it succeeds or ``retries`` attempts are used up.

    The last exception is re-raised once attempts are exhausted.
    """
    retry_on = tuple(retry_on)
    delays = backoff_delays(retries, base_delay, max_delay, jitter)
    for attempt in range(1, retries + 1):
        try:
            return await func()
        except retry_on as exc:  # type: ignore[misc]
            if attempt == retries:
                raise
            sleep_for = delays[attempt - 1]
            if on_retry:
                result = on_retry(attempt, exc, sleep_for)
                if result is not None:
                    await result
            await asyncio.sleep(sleep_for)
    raise RuntimeError("async retry exhausted")
