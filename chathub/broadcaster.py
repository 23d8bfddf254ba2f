import threading
from dataclasses import dataclass
from typing import Iterable, List, Optional, Set

from loguru import logger

from chathub.errors import DeliveryFailure
from chathub.models.message import Message

EVENT = "message"


@dataclass
class DeliveryOutcome:
    sid: str
    error: Optional[DeliveryFailure] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class Broadcaster:
    """Рассылка сообщений живым соединениям через Socket.IO сервер.

    Ошибка на одном соединении не мешает доставке остальным. Каждое соединение
    получает сообщение не более одного раза, повторов нет.
    """

    def __init__(self, sio):
        self.sio = sio
        self._connections: Set[str] = set()
        self._lock = threading.Lock()

    def connect(self, sid: str) -> None:
        with self._lock:
            self._connections.add(sid)
        logger.debug(f"Соединение {sid} добавлено в рассылку")

    def disconnect(self, sid: str) -> None:
        with self._lock:
            self._connections.discard(sid)
        logger.debug(f"Соединение {sid} убрано из рассылки")

    def is_open(self, sid: Optional[str]) -> bool:
        if sid is None:
            return False
        with self._lock:
            return sid in self._connections

    def connections(self) -> List[str]:
        with self._lock:
            return list(self._connections)

    def _emit(self, sid: str, payload: dict) -> DeliveryOutcome:
        if not self.is_open(sid):
            failure = DeliveryFailure(sid, "соединение закрыто")
            logger.warning(str(failure))
            return DeliveryOutcome(sid, failure)
        try:
            self.sio.emit(EVENT, payload, to=sid)
        except Exception as e:
            failure = DeliveryFailure(sid, str(e))
            logger.error(str(failure))
            return DeliveryOutcome(sid, failure)
        return DeliveryOutcome(sid)

    def send_one(self, sid: str, message: Message) -> DeliveryOutcome:
        return self._emit(sid, message.to_wire())

    def send_many(self, sids: Iterable[str], message: Message) -> List[DeliveryOutcome]:
        payload = message.to_wire()
        return [self._emit(sid, payload) for sid in dict.fromkeys(sids)]

    def broadcast_all(self, message: Message) -> List[DeliveryOutcome]:
        # Снимок списка соединений на момент рассылки
        outcomes = self.send_many(self.connections(), message)
        failed = sum(1 for o in outcomes if not o.ok)
        logger.debug(
            f"Рассылка {message.type.value} ({message.id}): доставлено {len(outcomes) - failed}, ошибок {failed}"
        )
        return outcomes
