"""Ошибки чат-хаба. Ни одна из них не фатальна для процесса."""


class ChatHubError(Exception):
    """Базовая ошибка хаба."""


class IdentityTaken(ChatHubError):
    """Имя уже занято другим живым соединением."""

    def __init__(self, identity: str):
        super().__init__(f"Имя '{identity}' уже занято")
        self.identity = identity


class RateLimited(ChatHubError):
    """Отправитель пишет слишком часто."""

    def __init__(self, identity: str, remaining_ms: int):
        super().__init__(f"Пользователь '{identity}' ограничен ещё на {remaining_ms} мс")
        self.identity = identity
        self.remaining_ms = remaining_ms


class Unauthorized(ChatHubError):
    """Сообщение от соединения без имени или правка чужого сообщения."""


class DeliveryFailure(ChatHubError):
    """Не удалось доставить сообщение конкретному соединению."""

    def __init__(self, connection: str, reason: str):
        super().__init__(f"Доставка на {connection} не удалась: {reason}")
        self.connection = connection
        self.reason = reason


class MalformedInbound(ChatHubError):
    """Входящие данные не удалось разобрать."""
