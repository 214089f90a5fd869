#!filepath: crimestat/utils/retry.py
import random
import time
from functools import wraps
from typing import Callable, Iterator, Optional, Tuple, Type

from crimestat.utils.logger import logs

OnRetry = Callable[[int, BaseException], None]


class Retry:
    """
    Synchronous retry with exponential backoff.

    Only wrap idempotent work: a map / reduce task is a pure function of its
    partition, so running it again yields the same output.

    on_retry(attempt, error) is called before every wait; the executor uses
    it to count task retries.
    """

    @staticmethod
    def waits(
        max_attempts: int,
        delay: float = 1.0,
        backoff: float = 2.0,
        jitter: bool = True,
    ) -> Iterator[float]:
        """the max_attempts - 1 sleeps between attempts"""
        for n in range(max_attempts - 1):
            wait = delay * (backoff ** n)
            yield wait * random.uniform(0.8, 1.2) if jitter else wait

    @staticmethod
    def run(
        func: Callable,
        *args,
        exceptions: Tuple[Type[Exception], ...] = (Exception,),
        max_attempts: int = 3,
        delay: float = 1.0,
        backoff: float = 2.0,
        jitter: bool = True,
        on_retry: Optional[OnRetry] = None,
        **kwargs,
    ):
        name = getattr(func, "__name__", None) or getattr(getattr(func, "func", None), "__name__", repr(func))
        waits = Retry.waits(max_attempts, delay, backoff, jitter)

        for attempt in range(1, max_attempts + 1):
            try:
                return func(*args, **kwargs)
            except exceptions as e:
                if attempt == max_attempts:
                    logs.error(f"[Retry] {name} failed after {max_attempts} attempts: {e}")
                    raise

                wait = next(waits)
                if on_retry is not None:
                    on_retry(attempt, e)
                logs.warning(
                    f"[Retry] {name} attempt {attempt}/{max_attempts} failed: {e}. "
                    f"retrying in {wait:.2f}s"
                )
                time.sleep(wait)

    @staticmethod
    def decorator(
        exceptions: Tuple[Type[Exception], ...] = (Exception,),
        max_attempts: int = 2,
        delay: float = 1.0,
        backoff: float = 2.0,
        jitter: bool = True,
    ):
        def wrapper(func: Callable):
            @wraps(func)
            def inner(*args, **kwargs):
                return Retry.run(
                    func,
                    *args,
                    exceptions=exceptions,
                    max_attempts=max_attempts,
                    delay=delay,
                    backoff=backoff,
                    jitter=jitter,
                    **kwargs,
                )

            return inner

        return wrapper
