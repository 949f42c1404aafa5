import random
from dataclasses import dataclass, field


@dataclass
class ExponentialBackoff:
    """
    Exponential delay with optional jitter, used to pace retries after
    consecutive failures.

    The server applies it between failing `accept` calls: a transient error
    (descriptor exhaustion, aborted handshake) must not stop the accept loop,
    but retrying immediately would spin the event loop while the condition
    lasts. The delay starts small and doubles up to `maximum`:

        delay = current + uniform(0, jitter)
        current = min(current * factor, maximum)

    `reset()` is called after the next success.
    """

    initial: float = 0.005
    """Delay (in seconds) after the first failure."""

    maximum: float = 1.0
    """Upper bound of the delay, jitter excluded."""

    factor: float = 2.0
    """Growth applied after each failure."""

    jitter: float = 0.0
    """Maximum random amount added to each delay."""

    _current: float = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._current = self.initial

    def next_delay(self) -> float:
        delay = self._current
        self._current = min(self._current * self.factor, self.maximum)

        if self.jitter > 0:
            delay += random.uniform(0, self.jitter)

        return delay

    def reset(self) -> None:
        self._current = self.initial
