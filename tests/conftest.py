import pytest

from chathub.dispatcher import Dispatcher
from chathub.hub import ChatHub
from chathub.store import InMemoryMessageStore


class FakeSio:
    """Записывает всё, что сервер отправил бы клиентам."""

    def __init__(self):
        self.sent = []
        self.broken = set()

    def emit(self, event, data, to=None):
        if to in self.broken:
            raise ConnectionError("connection reset")
        self.sent.append((to, event, data))

    def received(self, sid):
        return [data for to, _, data in self.sent if to == sid]

    def clear(self):
        self.sent.clear()


class FakeClock:
    def __init__(self, start=1_000_000):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, ms):
        self.now += ms


@pytest.fixture
def sio():
    return FakeSio()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return InMemoryMessageStore()


@pytest.fixture
def hub(sio, store):
    return ChatHub.create(sio, store)


@pytest.fixture
def dispatcher(hub, clock):
    return Dispatcher(hub, clock=clock)


@pytest.fixture
def connect(dispatcher):
    def _connect(*sids):
        for sid in sids:
            dispatcher.connect(sid)

    return _connect


@pytest.fixture
def join(dispatcher, connect):
    def _join(sid, name, room=None):
        connect(sid)
        dispatcher.handle_raw(sid, {"type": "JOIN", "sender": name, "room": room})

    return _join
