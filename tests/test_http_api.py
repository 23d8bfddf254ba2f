import json
from datetime import datetime, timedelta

import pytest

from chathub.http_api import HistoryApp
from chathub.models.message import Message, MessageType


def call(app, path, query="", method="GET"):
    captured = {}

    def start_response(status, headers):
        captured["status"] = status
        captured["headers"] = dict(headers)

    body = b"".join(app({"REQUEST_METHOD": method, "PATH_INFO": path, "QUERY_STRING": query}, start_response))
    return captured["status"], captured["headers"], json.loads(body.decode("utf-8"))


@pytest.fixture
def app(store):
    base = datetime(2024, 5, 1, 12, 0)
    for i in range(60):
        store.save(Message(type=MessageType.CHAT, content=f"m{i}", sender="alice", room="lobby",
                           timestamp=base + timedelta(seconds=i)))
    return HistoryApp(store)


def test_default_limit_most_recent_first(app):
    status, headers, body = call(app, "/messages/lobby")

    assert status == "200 OK"
    assert headers["Content-Type"].startswith("application/json")
    assert len(body) == 50
    assert body[0]["content"] == "m59"
    assert body[-1]["content"] == "m10"


def test_explicit_limit(app):
    _, _, body = call(app, "/messages/lobby", "limit=3")
    assert [m["content"] for m in body] == ["m59", "m58", "m57"]


def test_unknown_room_is_empty(app):
    status, _, body = call(app, "/messages/nowhere")
    assert status == "200 OK"
    assert body == []


@pytest.mark.parametrize("query", ["limit=abc", "limit=-1"])
def test_bad_limit(app, query):
    status, _, body = call(app, "/messages/lobby", query)
    assert status == "400 Bad Request"
    assert "error" in body


def test_other_paths(app):
    assert call(app, "/api/other")[0] == "404 Not Found"
    assert call(app, "/messages/lobby", method="POST")[0] == "405 Method Not Allowed"
