"""Gateway sequence number tracking.

See https://discord.com/developers/docs/events/gateway#dispatch-events
"""

import threading


class Sequence:
    """Nullable, non-decreasing sequence number.

    Starts unset. :meth:`merge` keeps the maximum of the current value and
    any newly observed one; unset compares lower than every concrete value.
    Writers serialize on a private lock, readers (the heartbeat sender)
    read :attr:`value` without locking.
    """

    def __init__(self, value: int | None = None):
        if value is not None and value < 0:
            raise ValueError(f"sequence must be non-negative, got {value}")
        self._value = value
        self._lock = threading.Lock()

    @property
    def value(self) -> int | None:
        return self._value

    def merge(self, observed: int | None) -> int | None:
        """Fold an observed sequence number in and return the merged value."""
        if observed is None:
            return self._value
        if observed < 0:
            raise ValueError(f"sequence must be non-negative, got {observed}")
        with self._lock:
            if self._value is None or observed > self._value:
                self._value = observed
            return self._value

    def __repr__(self) -> str:
        return f"Sequence({self._value!r})"
