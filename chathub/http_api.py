"""HTTP-выдача сохранённой истории комнаты: GET /messages/{room}?limit=N"""

import json
from urllib.parse import parse_qs

from loguru import logger

from chathub.store import MessageStore


class HistoryApp:
    """WSGI-приложение, которое монтируется рядом с Socket.IO."""

    def __init__(self, store: MessageStore, default_limit: int = 50):
        self.store = store
        self.default_limit = default_limit

    @staticmethod
    def _respond(start_response, status: str, payload):
        body = json.dumps(payload, ensure_ascii=False).encode("utf-8")
        start_response(
            status,
            [("Content-Type", "application/json; charset=utf-8"), ("Content-Length", str(len(body)))],
        )
        return [body]

    def _parse_limit(self, query_string: str):
        raw = parse_qs(query_string).get("limit", [None])[0]
        if raw is None or raw == "":
            return self.default_limit
        limit = int(raw)
        if limit < 0:
            raise ValueError(raw)
        return limit

    def __call__(self, environ, start_response):
        path = environ.get("PATH_INFO", "")
        parts = [p for p in path.split("/") if p]
        if len(parts) != 2 or parts[0] != "messages":
            return self._respond(start_response, "404 Not Found", {"error": "Not found"})
        if environ.get("REQUEST_METHOD", "GET") != "GET":
            return self._respond(start_response, "405 Method Not Allowed", {"error": "Method not allowed"})

        room = parts[1]
        try:
            # WSGI отдаёт путь в latin-1, комнаты могут быть в UTF-8
            room = room.encode("latin-1").decode("utf-8")
        except UnicodeError:
            pass

        try:
            limit = self._parse_limit(environ.get("QUERY_STRING", ""))
        except ValueError:
            logger.warning(f"Некорректный limit в запросе истории: {environ.get('QUERY_STRING')}")
            return self._respond(start_response, "400 Bad Request", {"error": "limit must be a non-negative integer"})

        messages = self.store.recent(room, limit)
        logger.info(f"История комнаты {room}: отдано {len(messages)} сообщений (limit={limit})")
        return self._respond(start_response, "200 OK", [m.to_wire() for m in messages])
