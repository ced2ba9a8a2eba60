"""Monotonic deadline used by the polling loops.

The deadline is created once per wait() call and checked around every
blocking network call and sleep.
"""

import time
from typing import Callable

from custodia.errors import OperationTimeoutError


class Deadline:
    """A fixed point in monotonic time after which waiting stops.

    Example:
        deadline = Deadline(20.0, label="Transfer")
        while not done():
            deadline.check()
            deadline.sleep(0.2)
    """

    def __init__(
        self,
        timeout: float,
        label: str = "Operation",
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if timeout < 0:
            raise ValueError(f"Timeout must be non-negative, got {timeout}")
        self.timeout = timeout
        self.label = label
        self._clock = clock
        self._sleep = sleep
        self._start = clock()

    @property
    def elapsed(self) -> float:
        return self._clock() - self._start

    @property
    def remaining(self) -> float:
        return max(0.0, self.timeout - self.elapsed)

    def check(self) -> None:
        """Raise OperationTimeoutError if the deadline has passed."""
        elapsed = self.elapsed
        if elapsed > self.timeout:
            raise OperationTimeoutError(self.label, self.timeout, elapsed)

    def sleep(self, interval: float) -> None:
        """Sleep for `interval`, but never past the deadline."""
        self._sleep(min(interval, self.remaining))
