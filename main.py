import eventlet
from eventlet import wsgi
import socketio
from loguru import logger

from chathub.config import settings
from chathub.dispatcher import Dispatcher
from chathub.http_api import HistoryApp
from chathub.hub import ChatHub
from chathub.log import setup_logging
from chathub.store import InMemoryMessageStore, SqliteMessageStore

setup_logging(settings.log_level)

# Заставляем работать пути к статике
static_files = {'/': 'static/index.html', '/static': './static'}
sio = socketio.Server(cors_allowed_origins=settings.cors_allowed_origins, async_mode='eventlet')

# Хранилище сообщений: SQLite или память процесса
store = SqliteMessageStore(settings.database_path) if settings.database_path else InMemoryMessageStore()
hub = ChatHub.create(sio, store, room_replay_limit=settings.room_replay_limit)
dispatcher = Dispatcher(hub)

app = socketio.WSGIApp(
    sio,
    wsgi_app=HistoryApp(store, default_limit=settings.http_default_limit),
    static_files=static_files,
)


# Обрабатываем подключение пользователя
@sio.event
def connect(sid, environ):
    dispatcher.connect(sid)


# Все сообщения чата приходят одним событием, тип внутри
@sio.on('message')
def on_message(sid, data):
    dispatcher.handle_raw(sid, data)


@sio.event
def disconnect(sid, reason=None):
    dispatcher.handle_close(sid)


def run():
    logger.info(f"Запуск сервера на http://{settings.host}:{settings.port}")
    wsgi.server(eventlet.listen((settings.host, settings.port)), app)


if __name__ == '__main__':
    run()
