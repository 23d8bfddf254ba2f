"""Обработка входящих сообщений чата по их типу."""

from typing import Callable, Dict, Optional, Union

from loguru import logger
from pydantic import ValidationError

from chathub.errors import IdentityTaken, MalformedInbound, RateLimited, Unauthorized
from chathub.hub import ChatHub
from chathub.models.message import (
    SYSTEM_SENDER,
    Message,
    MessageType,
    new_message_id,
    system_message,
)
from chathub.rate_limiter import now_ms

Handler = Callable[[str, Message], None]


def parse_bool(value: Optional[str]) -> bool:
    return (value or "").strip().lower() == "true"


class Dispatcher:
    def __init__(self, hub: ChatHub, clock: Callable[[], int] = now_ms):
        self.hub = hub
        self.clock = clock
        self._handlers: Dict[MessageType, Handler] = {
            MessageType.JOIN: self._on_join,
            MessageType.CHAT: self._on_chat,
            MessageType.PRIVATE: self._on_private,
            MessageType.LEAVE: self._on_leave,
            MessageType.TYPING: self._on_typing,
            MessageType.EDIT: self._on_edit,
            MessageType.DELETE: self._on_delete,
            MessageType.USERS: self._on_users,
        }
        missing = set(MessageType) - set(self._handlers)
        if missing:
            raise RuntimeError(f"Нет обработчика для типов: {sorted(t.value for t in missing)}")

    # Точки входа для транспорта

    def connect(self, sid: str) -> None:
        self.hub.broadcaster.connect(sid)
        logger.info(f"Пользователь {sid} подключился")

    def handle_raw(self, sid: str, data: Union[dict, str, bytes]) -> None:
        """Разбирает входящие данные и передаёт сообщение обработчику."""
        try:
            if isinstance(data, (str, bytes)):
                message = Message.model_validate_json(data)
            else:
                message = Message.model_validate(data)
        except ValidationError as e:
            logger.warning(str(MalformedInbound(f"Некорректное сообщение от {sid}: {e.error_count()} ошибок")))
            return
        self.handle(sid, message)

    def handle(self, sid: str, message: Message) -> None:
        if message.type != MessageType.JOIN:
            name = self.hub.registry.identity_of(sid)
            if name is None:
                logger.debug(str(Unauthorized(f"{message.type.value} от соединения {sid} без имени отброшено")))
                return
            # Отправитель всегда тот, кто привязан к соединению
            message.sender = name
        logger.debug(f"Сообщение {message.type.value} от {message.sender or sid}")
        self._handlers[message.type](sid, message)

    def handle_close(self, sid: str) -> None:
        self.hub.broadcaster.disconnect(sid)
        self._leave(sid)
        logger.info(f"Пользователь {sid} отключился")

    # Обработчики по типам

    def _on_join(self, sid: str, message: Message) -> None:
        name = message.sender
        room = message.room or None
        if not name or not name.strip():
            self.hub.broadcaster.send_one(sid, system_message("Invalid name. Please choose a username."))
            logger.warning(f"Некорректное имя: name={name!r}, sid={sid}")
            return

        previous = self.hub.registry.identity_of(sid)
        try:
            self.hub.registry.register(sid, name, room)
        except IdentityTaken as e:
            self.hub.broadcaster.send_one(
                sid, system_message("Username is already taken. Please choose another one.")
            )
            logger.warning(f"{e} (sid={sid})")
            return
        if previous is not None and previous != name:
            # Старое имя больше не принадлежит соединению
            self.hub.typing.remove(previous)

        logger.info(f"Пользователь {name} (sid={sid}) вошёл в чат, комната={room}")
        self.hub.broadcaster.broadcast_all(system_message(f"{name} has joined the chat!", room=room))
        self._replay_history(sid, name, room)
        self._broadcast_users()

    def _replay_history(self, sid: str, name: str, room: Optional[str]) -> None:
        for old in self.hub.history.snapshot():
            if old.is_visible_to(name):
                self.hub.broadcaster.send_one(sid, old)

        if not room:
            return
        try:
            stored = self.hub.store.recent(room, self.hub.room_replay_limit)
        except Exception as e:
            logger.error(f"Не удалось загрузить историю комнаты {room}: {e}")
            return
        # Хранилище отдаёт от новых к старым, клиенту шлём по порядку
        for old in reversed(stored):
            if old.is_visible_to(name):
                self.hub.broadcaster.send_one(sid, old)

    def _passes_rate_limit(self, sid: str, name: str) -> bool:
        try:
            self.hub.limiter.acquire(name, self.clock())
        except RateLimited as e:
            logger.warning(str(e))
            self.hub.broadcaster.send_one(
                sid,
                system_message(f"Please slow down. You can send another message in {e.remaining_ms}ms."),
            )
            return False
        return True

    def _on_chat(self, sid: str, message: Message) -> None:
        if not self._passes_rate_limit(sid, message.sender):
            return
        message = message.model_copy(update={"id": new_message_id()})
        self.hub.history.append(message)
        self.hub.broadcaster.broadcast_all(message)
        logger.info(f"Сообщение от {message.sender} в комнате {message.room}: {message.content}")

    def _on_private(self, sid: str, message: Message) -> None:
        if not message.recipient:
            logger.warning(f"Личное сообщение от {message.sender} без получателя отброшено")
            return
        if not self._passes_rate_limit(sid, message.sender):
            return
        message = message.model_copy(update={"id": new_message_id()})
        self.hub.history.append(message)

        registry = self.hub.registry
        targets = [
            s
            for s in (registry.connection_of(message.recipient), registry.connection_of(message.sender))
            if self.hub.broadcaster.is_open(s)
        ]
        self.hub.broadcaster.send_many(targets, message)
        logger.info(f"Личное сообщение {message.sender} -> {message.recipient}")

    def _on_leave(self, sid: str, message: Message) -> None:
        self._leave(sid)

    def _on_typing(self, sid: str, message: Message) -> None:
        if parse_bool(message.content):
            self.hub.typing.add(message.sender)
        else:
            self.hub.typing.remove(message.sender)
        self._broadcast_typing()

    def _on_edit(self, sid: str, message: Message) -> None:
        edited = self.hub.history.mark_edited(message.id, message.sender, message.content)
        if edited is None:
            logger.debug(f"Правка {message.id} от {message.sender} отклонена")
            return
        self.hub.broadcaster.broadcast_all(message)
        logger.info(f"Сообщение {message.id} отредактировано пользователем {message.sender}")

    def _on_delete(self, sid: str, message: Message) -> None:
        if self.hub.history.find_deletable(message.id, message.sender) is None:
            logger.debug(f"Удаление {message.id} от {message.sender} отклонено")
            return
        self.hub.broadcaster.broadcast_all(message)
        logger.info(f"Сообщение {message.id} удалено пользователем {message.sender}")

    def _on_users(self, sid: str, message: Message) -> None:
        logger.debug(f"USERS от клиента {sid} проигнорировано")

    # Общие шаги

    def _leave(self, sid: str) -> None:
        name = self.hub.registry.identity_of(sid)
        if name is not None:
            self.hub.typing.remove(name)
        self._broadcast_typing()

        released = self.hub.registry.unregister(sid)
        if released is not None:
            self.hub.broadcaster.broadcast_all(system_message(f"{released} has left the chat."))
            logger.info(f"Пользователь {released} (sid={sid}) покинул чат")
        self._broadcast_users()

    def _broadcast_typing(self) -> None:
        typing = self.hub.typing.snapshot()
        if not typing:
            return
        self.hub.broadcaster.broadcast_all(
            Message(type=MessageType.TYPING, content=",".join(sorted(typing)), sender=SYSTEM_SENDER)
        )

    def _broadcast_users(self) -> None:
        users = self.hub.registry.active_identities()
        self.hub.broadcaster.broadcast_all(
            Message(type=MessageType.USERS, content=",".join(users), sender=SYSTEM_SENDER)
        )
