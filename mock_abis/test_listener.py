# test_listener.py
import json
import threading
import time

import pytest
import redis

from mock_abis.constants import MessageType
from mock_abis.listener import QueueListener
from mock_abis.models import FailureResponse, ResponseMO
from mock_abis.responses import ResponseBuilder


@pytest.fixture
def listener(dispatcher, channel):
    # Redis client is only used by the polling loop, not by handle_message
    return QueueListener(None, "abis-requests", dispatcher, channel, ResponseBuilder())


def message(**fields):
    body = {"requestId": "q1", "requesttime": "2024-05-01T10:30:00", "referenceId": "ref1"}
    body.update(fields)
    return json.dumps(body).encode("utf-8")


def test_routes_insert_by_id(listener, store, channel):
    response = listener.handle_message(message(id="mosip.abis.insert"))
    assert isinstance(response, ResponseMO)
    assert "ref1" in store
    assert channel.wait_for(1)


def test_routes_delete_by_id(listener, store):
    listener.handle_message(message(id="mosip.abis.insert"))
    listener.handle_message(message(id="MOSIP.ABIS.DELETE", requestId="q2"))
    assert "ref1" not in store


def test_routes_identify_by_id(listener):
    response = listener.handle_message(message(id="mosip.abis.identify"))
    assert isinstance(response, FailureResponse)
    assert response.failureReason == "404"


@pytest.mark.parametrize("raw", [b"not json", b"[1, 2]", json.dumps({"id": "mosip.abis.unknown"}).encode()])
def test_bad_messages_are_dropped(listener, channel, raw):
    assert listener.handle_message(raw) is None
    assert channel.messages == []


def test_dispatch_error_reports_failure_directly(listener, dispatcher, channel):
    def explode(request, message_type):
        raise RuntimeError("engine down")

    dispatcher.identify = explode
    response = listener.handle_message(message(id="mosip.abis.identify"), MessageType.BYTES)

    assert response.failureReason == "7"
    body, message_type = channel.messages[0]
    assert message_type == MessageType.BYTES
    assert json.loads(body)["requestId"] == "q1"


def test_malformed_request_is_answered_with_failure(listener, channel, store):
    response = listener.handle_message(message(id="mosip.abis.insert", requesttime="not a time"))

    assert isinstance(response, FailureResponse)
    assert response.failureReason == "9"
    assert response.requestId == "q1"
    assert "ref1" not in store
    assert channel.wait_for(1)
    assert json.loads(channel.messages[0][0])["failureReason"] == "9"


class ScriptedRedis:
    """BLPOP stub: replays scripted results, then idles like an empty queue."""

    def __init__(self, *script):
        self.script = list(script)
        self.calls = 0
        self._lock = threading.Lock()

    def blpop(self, keys, timeout=0):
        with self._lock:
            self.calls += 1
            step = self.script.pop(0) if self.script else None
        if isinstance(step, Exception):
            raise step
        if step is None:
            time.sleep(0.05)
        return step


def test_polling_loop_survives_redis_errors_and_dispatches(dispatcher, channel, store):
    client = ScriptedRedis(
        redis.ConnectionError("connection refused"),
        ("abis-requests", message(id="mosip.abis.insert")),
    )
    listener = QueueListener(client, "abis-requests", dispatcher, channel, ResponseBuilder(), poll_timeout=1)

    listener.start()
    try:
        assert channel.wait_for(1, timeout=5)
    finally:
        listener.stop()

    assert listener._thread is None
    assert client.calls >= 2
    assert "ref1" in store
    assert json.loads(channel.messages[0][0])["requestId"] == "q1"


def test_stop_ends_idle_polling(dispatcher, channel):
    client = ScriptedRedis()
    listener = QueueListener(client, "abis-requests", dispatcher, channel, ResponseBuilder(), poll_timeout=1)
    listener.start()
    time.sleep(0.2)
    listener.stop(timeout=2)

    assert listener._thread is None
    calls = client.calls
    time.sleep(0.2)
    assert client.calls == calls
    assert channel.messages == []
