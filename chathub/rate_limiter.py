import threading
import time
from typing import Dict, Optional

from chathub.errors import RateLimited

# Минимальный интервал между сообщениями одного пользователя
RATE_LIMIT_MS = 500


def now_ms() -> int:
    return int(time.monotonic() * 1000)


class RateLimiter:
    """Хранит время последней отправки по каждому имени."""

    def __init__(self, window_ms: int = RATE_LIMIT_MS):
        self.window_ms = window_ms
        self._last_send: Dict[str, int] = {}
        self._lock = threading.Lock()

    def _remaining(self, name: str, now: int) -> int:
        last = self._last_send.get(name)
        if last is None:
            return 0
        return max(0, self.window_ms - (now - last))

    def should_throttle(self, name: str, now: Optional[int] = None) -> bool:
        now = now_ms() if now is None else now
        with self._lock:
            last = self._last_send.get(name)
            return last is not None and now - last < self.window_ms

    def _prune(self, now: int) -> None:
        # Вызывается под замком; истёкшие записи ничего не ограничивают
        expired = [name for name, last in self._last_send.items() if now - last >= self.window_ms]
        for name in expired:
            del self._last_send[name]

    def record_send(self, name: str, now: Optional[int] = None) -> None:
        now = now_ms() if now is None else now
        with self._lock:
            self._prune(now)
            self._last_send[name] = now

    def remaining_cooldown(self, name: str, now: Optional[int] = None) -> int:
        now = now_ms() if now is None else now
        with self._lock:
            return self._remaining(name, now)

    def acquire(self, name: str, now: Optional[int] = None) -> None:
        """Проверка и запись одной попыткой; при превышении RateLimited."""
        now = now_ms() if now is None else now
        with self._lock:
            remaining = self._remaining(name, now)
            if remaining > 0:
                raise RateLimited(name, remaining)
            self._prune(now)
            self._last_send[name] = now

    def __len__(self) -> int:
        with self._lock:
            return len(self._last_send)
