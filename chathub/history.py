import threading
from collections import deque
from typing import Deque, List, Optional

from loguru import logger

from chathub.models.message import Message, MessageType
from chathub.store import MessageStore

MAX_HISTORY_SIZE = 100

STORED_TYPES = (MessageType.CHAT, MessageType.PRIVATE)


class HistoryCache:
    """Ограниченная история CHAT и PRIVATE сообщений, от старых к новым.

    Сообщения с комнатой дополнительно уходят в долговременное хранилище.
    Ошибка хранилища не откатывает запись в памяти.
    """

    def __init__(self, store: Optional[MessageStore] = None, capacity: int = MAX_HISTORY_SIZE):
        self.capacity = capacity
        self._store = store
        self._messages: Deque[Message] = deque()
        self._lock = threading.Lock()

    def append(self, message: Message) -> bool:
        if message.type not in STORED_TYPES:
            logger.debug(f"Сообщение типа {message.type.value} в историю не попадает")
            return False

        with self._lock:
            self._messages.append(message.model_copy())
            while len(self._messages) > self.capacity:
                evicted = self._messages.popleft()
                logger.debug(f"Из истории вытеснено сообщение {evicted.id}")

        if message.room and self._store is not None:
            try:
                self._store.save(message)
            except Exception as e:
                logger.error(f"Не удалось сохранить сообщение {message.id} в комнате {message.room}: {e}")
        return True

    def snapshot(self) -> List[Message]:
        with self._lock:
            return [m.model_copy() for m in self._messages]

    def _find(self, message_id: str, sender: str) -> Optional[Message]:
        for message in self._messages:
            if message.id == message_id:
                return message if message.sender == sender else None
        return None

    def find_editable(self, message_id: str, sender: str) -> Optional[Message]:
        with self._lock:
            found = self._find(message_id, sender)
            return found.model_copy() if found else None

    def find_deletable(self, message_id: str, sender: str) -> Optional[Message]:
        # Удаление мягкое: запись остаётся в буфере, клиенты просто скрывают её
        return self.find_editable(message_id, sender)

    def mark_edited(self, message_id: str, sender: str, new_content: Optional[str]) -> Optional[Message]:
        """Меняет текст сообщения в памяти. Копия в хранилище не обновляется."""
        with self._lock:
            found = self._find(message_id, sender)
            if found is None:
                return None
            found.content = new_content
            return found.model_copy()

    def __len__(self) -> int:
        with self._lock:
            return len(self._messages)
