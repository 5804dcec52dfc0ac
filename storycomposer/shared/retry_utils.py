import time
from typing import Callable, Optional, Tuple, TypeVar

T = TypeVar("T")


def retry_with_backoff(
    operation: Callable[[], T],
    *,
    attempts: int = 3,
    delay: float = 1.5,
    backoff: float = 1.5,
    exceptions: Tuple[type, ...] = (Exception,),
    on_error: Optional[Callable[[int, Exception], None]] = None,
) -> T:
    """Execute `operation` with simple exponential backoff.

    ``on_error`` receives the 1-based attempt number and the exception for
    every failed attempt, including the last one.
    """
    if attempts < 1:
        raise ValueError("attempts must be >= 1")
    last_exc: Exception | None = None
    for attempt in range(attempts):
        try:
            return operation()
        except exceptions as exc:  # type: ignore[arg-type]
            last_exc = exc
            if on_error is not None:
                on_error(attempt + 1, exc)
            if attempt == attempts - 1:
                raise
            if delay > 0:
                time.sleep(delay)
            delay *= backoff
    assert last_exc is not None
    raise last_exc
