from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, Field, field_validator

SYSTEM_SENDER = "System"


class MessageType(str, Enum):
    CHAT = "CHAT"          # Обычное сообщение в общий чат
    JOIN = "JOIN"          # Пользователь входит в чат
    LEAVE = "LEAVE"        # Пользователь выходит из чата
    PRIVATE = "PRIVATE"    # Личное сообщение
    USERS = "USERS"        # Список активных пользователей (только от сервера)
    TYPING = "TYPING"      # Индикатор набора текста
    EDIT = "EDIT"          # Редактирование сообщения
    DELETE = "DELETE"      # Удаление сообщения


def new_message_id() -> str:
    return str(uuid4())


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Message(BaseModel):
    id: str = Field(default_factory=new_message_id)  # Уникальный идентификатор сообщения
    type: MessageType
    content: Optional[str] = None      # Текст; для TYPING "true"/"false", для USERS список через запятую
    sender: Optional[str] = None       # Имя отправителя
    recipient: Optional[str] = None    # Получатель (только для PRIVATE)
    room: Optional[str] = None         # Комната; включает сохранение в базу
    timestamp: datetime = Field(default_factory=utc_now)  # Всегда в UTC

    @field_validator("id", mode="before")
    @classmethod
    def _id_if_missing(cls, value):
        return new_message_id() if value in (None, "") else value

    @field_validator("timestamp", mode="before")
    @classmethod
    def _stamp_if_missing(cls, value):
        # Клиент может прислать null вместо времени
        return utc_now() if value in (None, "") else value

    @field_validator("timestamp")
    @classmethod
    def _to_utc(cls, value: datetime) -> datetime:
        # Время без зоны считаем UTC, остальное переводим в UTC
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    def to_wire(self) -> dict:
        """Сериализует сообщение в JSON-совместимый словарь."""
        return self.model_dump(mode="json")

    def is_visible_to(self, identity: str) -> bool:
        """Можно ли показать сообщение из истории пользователю identity."""
        if self.type == MessageType.CHAT:
            return True
        if self.type == MessageType.PRIVATE:
            return identity in (self.sender, self.recipient)
        return False


def system_message(content: str, room: Optional[str] = None) -> Message:
    """Создаёт системное CHAT-сообщение."""
    return Message(type=MessageType.CHAT, content=content, sender=SYSTEM_SENDER, room=room)
