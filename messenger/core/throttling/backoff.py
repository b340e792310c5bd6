import random
from dataclasses import dataclass, field


@dataclass
class ExponentialBackoff:
    """
    Exponential reconnect delay with optional jitter and an attempt budget.

    The StreamTransport asks for `next_delay()` after every failed connect
    attempt and calls `reset()` once a connection is established:

        delay = current + uniform(0, jitter)
        current = min(current * factor, maximum)

    When `max_retries` is positive, `exhausted` becomes true after that many
    delays have been handed out since the last reset.
    """

    initial: float = 0.5
    """Delay (in seconds) before the first retry."""

    maximum: float = 30.0
    """Upper bound (in seconds) of the delay, jitter excluded."""

    factor: float = 2.0
    """Growth factor applied after each retry."""

    jitter: float = 1.2
    """Maximum random jitter added to each delay."""

    max_retries: int = 0
    """Number of retries allowed between resets, 0 for unlimited."""

    attempts: int = field(default=0, init=False)
    _current: float = field(default=0.0, init=False, repr=False)

    def __post_init__(self) -> None:
        self._current = self.initial

    @property
    def exhausted(self) -> bool:
        return 0 < self.max_retries <= self.attempts

    def next_delay(self) -> float:
        delay = self._current
        self._current = min(self._current * self.factor, self.maximum)
        self.attempts += 1

        if self.jitter > 0:
            delay += random.uniform(0, self.jitter)

        return delay

    def reset(self) -> None:
        self._current = self.initial
        self.attempts = 0
