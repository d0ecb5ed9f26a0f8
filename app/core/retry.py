from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, TypeVar

from tenacity import RetryCallState, Retrying, retry_if_exception_type, stop_after_attempt, wait_fixed

from app.core.logging_config import get_logger

T = TypeVar("T")

log = get_logger("retry")


@dataclass(frozen=True)
class RetryPolicy:
    """Fixed number of attempts with a fixed delay between them."""

    attempts: int = 3
    delay_seconds: float = 2.0
    retry_on: tuple[type[BaseException], ...] = (Exception,)

    def retrying(self, *, label: str = "call", sleep: Callable[[float], None] = time.sleep) -> Retrying:
        attempts = max(1, int(self.attempts))

        def log_attempt(state: RetryCallState) -> None:
            log.warning(
                "%s failed (attempt %s/%s): %s; retrying in %.1fs",
                label,
                state.attempt_number,
                attempts,
                state.outcome.exception() if state.outcome else None,
                state.next_action.sleep if state.next_action else self.delay_seconds,
            )

        return Retrying(
            reraise=True,
            stop=stop_after_attempt(attempts),
            wait=wait_fixed(self.delay_seconds),
            retry=retry_if_exception_type(self.retry_on),
            before_sleep=log_attempt,
            sleep=sleep,
        )

    def call(self, fn: Callable[[], T], *, label: str = "", sleep: Callable[[float], None] = time.sleep) -> T:
        retrying = self.retrying(label=label or getattr(fn, "__name__", "call"), sleep=sleep)
        return retrying(fn)
