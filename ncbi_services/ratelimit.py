"""
Thread-safe request pacing for NCBI services.

NCBI usage policies cap how often a client may contact each service. A
RateGate enforces a minimum spacing between requests across every thread
that shares it; shared_gate() hands out the one instance per service that
clients use unless they are given their own.
"""

import time
import logging
import threading
from typing import Callable, Dict, Optional

logger = logging.getLogger(__name__)


class RateGate:
    """
    Blocks callers so that successive wait() returns are at least
    `interval` seconds apart, whichever thread makes the call.

    Waiting threads queue on the gate's lock; no ordering between them is
    guaranteed, only the spacing of the slots they claim.

    Example:
        >>> gate = RateGate(3.0)
        >>> gate.wait()  # returns immediately
        >>> gate.wait()  # returns ~3s later
    """

    def __init__(
        self,
        interval: float,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize the gate.

        Args:
            interval: Minimum number of seconds between wait() returns
            clock: Monotonic time source
            sleep: Function used to block the calling thread
        """
        if interval < 0:
            raise ValueError(f"interval must be non-negative, got {interval}")
        self._interval = float(interval)
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()
        self._next_allowed = float("-inf")

    @property
    def interval(self) -> float:
        return self._interval

    def wait(self) -> None:
        """Block until the next slot is free, then claim it."""
        with self._lock:
            now = self._clock()
            if self._next_allowed > now:
                delay = self._next_allowed - now
                logger.debug(f"Rate limiting: sleeping {delay:.3f}s")
                self._sleep(delay)
                now = self._clock()
            self._next_allowed = now + self._interval

    def __repr__(self) -> str:
        return f"RateGate(interval={self._interval})"


_shared_gates: Dict[str, RateGate] = {}
_shared_lock = threading.Lock()


def shared_gate(name: str, interval: Optional[float] = None) -> RateGate:
    """
    Return the process-wide gate for a service, creating it on first use.

    Args:
        name: Service name, e.g. "blast" or "entrez"
        interval: Spacing used when the gate is created; ignored afterwards

    Raises:
        KeyError: If the gate does not exist yet and no interval was given
    """
    with _shared_lock:
        gate = _shared_gates.get(name)
        if gate is None:
            if interval is None:
                raise KeyError(f"no shared rate gate named {name!r}")
            gate = RateGate(interval)
            _shared_gates[name] = gate
            logger.debug(f"Created shared rate gate {name!r} ({interval}s)")
        elif interval is not None and interval != gate.interval:
            logger.warning(
                f"Shared rate gate {name!r} already exists with interval "
                f"{gate.interval}s, ignoring requested {interval}s"
            )
        return gate
