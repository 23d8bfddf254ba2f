import threading
from typing import Dict, List, Optional

from loguru import logger

from chathub.errors import IdentityTaken
from chathub.models.message import utc_now
from chathub.models.user import User


class SessionRegistry:
    """Двусторонняя связь соединение <-> имя пользователя.

    Оба словаря всегда взаимно обратны: одно имя занимает не больше одного
    соединения, одно соединение держит не больше одного имени.
    """

    def __init__(self):
        self._users: Dict[str, User] = {}   # sid -> User
        self._sids: Dict[str, str] = {}     # имя -> sid
        self._lock = threading.Lock()

    def register(self, sid: str, name: str, room: Optional[str] = None) -> User:
        """Привязывает имя к соединению или выбрасывает IdentityTaken."""
        with self._lock:
            owner = self._sids.get(name)
            if owner is not None and owner != sid:
                raise IdentityTaken(name)

            # Соединение могло держать другое имя, освобождаем его
            stale = self._users.get(sid)
            if stale is not None and stale.name != name:
                self._sids.pop(stale.name, None)

            user = User(sid=sid, name=name, room=room)
            self._users[sid] = user
            self._sids[name] = sid
        logger.debug(f"Пользователь зарегистрирован: {name} (SID={sid})")
        return user

    def unregister(self, sid: str) -> Optional[str]:
        """Удаляет связь для соединения и возвращает освободившееся имя."""
        with self._lock:
            user = self._users.pop(sid, None)
            if user is None:
                return None
            if self._sids.get(user.name) == sid:
                del self._sids[user.name]
        online = utc_now() - user.joined_at
        logger.debug(
            f"Пользователь удалён: {user.name} (SID={sid}, комната={user.room}, в чате {online.total_seconds():.0f} с)"
        )
        return user.name

    def identity_of(self, sid: str) -> Optional[str]:
        with self._lock:
            user = self._users.get(sid)
        return user.name if user else None

    def connection_of(self, name: str) -> Optional[str]:
        with self._lock:
            return self._sids.get(name)

    def active_identities(self) -> List[str]:
        """Снимок текущих имён, а не живое представление."""
        with self._lock:
            return list(self._sids)

    def __len__(self) -> int:
        with self._lock:
            return len(self._users)
