from dataclasses import dataclass, field
from typing import Optional

from chathub.broadcaster import Broadcaster
from chathub.history import HistoryCache
from chathub.rate_limiter import RateLimiter
from chathub.registry import SessionRegistry
from chathub.store import InMemoryMessageStore, MessageStore
from chathub.typing_tracker import TypingTracker

ROOM_REPLAY_LIMIT = 50


@dataclass
class ChatHub:
    """Всё состояние чата в одном объекте, который передаётся диспетчеру."""

    broadcaster: Broadcaster
    store: MessageStore
    history: HistoryCache
    registry: SessionRegistry = field(default_factory=SessionRegistry)
    limiter: RateLimiter = field(default_factory=RateLimiter)
    typing: TypingTracker = field(default_factory=TypingTracker)
    room_replay_limit: int = ROOM_REPLAY_LIMIT

    @classmethod
    def create(cls, sio, store: Optional[MessageStore] = None, room_replay_limit: int = ROOM_REPLAY_LIMIT) -> "ChatHub":
        store = store if store is not None else InMemoryMessageStore()
        return cls(
            broadcaster=Broadcaster(sio),
            store=store,
            history=HistoryCache(store),
            room_replay_limit=room_replay_limit,
        )
