import threading
from typing import Set


class TypingTracker:
    """Множество пользователей, которые сейчас печатают."""

    def __init__(self):
        self._typing: Set[str] = set()
        self._lock = threading.Lock()

    def add(self, name: str) -> None:
        with self._lock:
            self._typing.add(name)

    def remove(self, name: str) -> None:
        with self._lock:
            self._typing.discard(name)

    def snapshot(self) -> Set[str]:
        with self._lock:
            return set(self._typing)
