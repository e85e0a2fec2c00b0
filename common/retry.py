import time
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Tuple

from common.config import BACKOFF_BASE_SECONDS, MAX_ATTEMPTS
from common.errors import ClassifiedError


def is_classified_retryable(err: Exception) -> bool:
    return isinstance(err, ClassifiedError) and err.retryable


@dataclass
class RetryPolicy:
    max_attempts: int = MAX_ATTEMPTS
    base_delay_seconds: float = BACKOFF_BASE_SECONDS
    is_retryable: Callable[[Exception], bool] = field(
        default=is_classified_retryable
    )

    # attempt is 1-based: 2s, 4s, 8s, ... for the default base.
    def backoff(self, attempt: int) -> float:
        return self.base_delay_seconds * (2 ** (attempt - 1))


class RetryError(Exception):
    def __init__(self, last_error: Exception, attempts: int, exhausted: bool):
        reason = "retries exhausted" if exhausted else "non-retryable error"
        super().__init__(f"{reason} after {attempts} attempt(s): {last_error}")
        self.last_error = last_error
        self.attempts = attempts
        self.exhausted = exhausted


def run_with_retry(
    policy: RetryPolicy,
    fn: Callable[[], Any],
    label: str,
    sleep: Callable[[float], None] = time.sleep,
    on_retry: Optional[Callable[[int, Exception], None]] = None,
) -> Tuple[Any, int]:
    """
    Calls `fn` until it succeeds, the error is not retryable, or `policy.max_attempts` is used up.
    Returns (result, attempts). On giving up raises RetryError carrying the last error.
    `on_retry(attempt, err)` is called after every failed attempt which will be retried.
    """
    attempt = 0
    while True:
        attempt += 1
        try:
            return fn(), attempt
        except Exception as err:
            retryable = policy.is_retryable(err)
            print(
                f"WARNING: {label} attempt {attempt}/{policy.max_attempts} failed "
                f"with {type(err).__name__} (retryable={retryable}): {err}"
            )
            if not retryable:
                raise RetryError(err, attempt, exhausted=False) from err
            if attempt >= policy.max_attempts:
                raise RetryError(err, attempt, exhausted=True) from err

            if on_retry is not None:
                on_retry(attempt, err)
            wait_seconds = policy.backoff(attempt)
            print(f"{label}: waiting {wait_seconds}s before attempt {attempt + 1}")
            sleep(wait_seconds)
