from collections import deque
import threading
import time

class SecurityFailureThrottle:
    """In-process sliding window of security failures per scanner."""

    def __init__(self, threshold: int, window_seconds: float, clock=time.monotonic) -> None:
        self.threshold = threshold
        self.window = window_seconds
        self._clock = clock
        self._failures: dict[str, deque[float]] = {}
        self._lock = threading.Lock()

    def _prune(self, scanner_id: str, now: float) -> deque[float]:
        q = self._failures.setdefault(scanner_id, deque())
        while q and now - q[0] >= self.window:
            q.popleft()
        return q

    def is_blocked(self, scanner_id: str) -> bool:
        with self._lock:
            q = self._prune(scanner_id, self._clock())
            blocked = len(q) >= self.threshold
            if not q:
                self._failures.pop(scanner_id, None)
            return blocked

    def record_failure(self, scanner_id: str) -> None:
        with self._lock:
            now = self._clock()
            self._prune(scanner_id, now).append(now)
            # Scanners that went quiet are dropped here; is_blocked may never see them again.
            for other in list(self._failures):
                if not self._prune(other, now):
                    del self._failures[other]

    def tracked(self) -> int:
        with self._lock:
            return len(self._failures)

    def reset(self) -> None:
        with self._lock:
            self._failures.clear()
