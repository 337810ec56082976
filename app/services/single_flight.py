import threading
from contextlib import contextmanager
from typing import Iterator

from app.services.errors import SubmissionInFlightError


class SingleFlight:
    """Rejects a key while another caller holds it."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._active: set[str] = set()

    def is_active(self, key: str) -> bool:
        with self._lock:
            return key in self._active

    @contextmanager
    def claim(self, key: str) -> Iterator[None]:
        with self._lock:
            if key in self._active:
                raise SubmissionInFlightError()
            self._active.add(key)
        try:
            yield
        finally:
            with self._lock:
                self._active.discard(key)
