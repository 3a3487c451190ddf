import asyncio
import collections
import logging

import pytest
from aiohttp import WSMessage, WSMsgType

from optourney.bus import Bus
from optourney.connection import Connection
from optourney.message import IncomingMessage, new_outgoing_base


class FakeSocket:
    def __init__(self, messages=(), fail=False):
        self._messages = collections.deque(messages)
        self.fail = fail
        self.sent = []

    async def receive(self):
        if self._messages:
            return self._messages.popleft()
        return WSMessage(WSMsgType.CLOSED, None, None)

    async def send_str(self, data):
        if self.fail:
            raise ConnectionResetError("Cannot write to closing transport")
        self.sent.append(data)


def _text(data):
    return WSMessage(WSMsgType.TEXT, data, None)


def _close(code):
    return WSMessage(WSMsgType.CLOSE, code, "")


async def _two_payloads():
    for payload in (b"one", b"two"):
        yield payload


@pytest.mark.asyncio
async def test_read_incoming_queues_text_messages():
    socket = FakeSocket([_text('{"event":1}'), _text("second")])
    conn = Connection(socket, "42")
    queue = asyncio.Queue()
    await asyncio.wait_for(conn.read_incoming(queue), 2)
    received = [queue.get_nowait(), queue.get_nowait()]
    assert received == [
        IncomingMessage(discord_id="42", payload=b'{"event":1}'),
        IncomingMessage(discord_id="42", payload=b"second"),
    ]
    assert queue.empty()
    assert conn.closed


@pytest.mark.asyncio
async def test_read_incoming_skips_binary_messages(caplog):
    log = logging.getLogger("test.connection.binary")
    socket = FakeSocket([WSMessage(WSMsgType.BINARY, b"raw", None), _text("kept")])
    conn = Connection(socket, "7", log)
    queue = asyncio.Queue()
    with caplog.at_level(logging.DEBUG, logger=log.name):
        await asyncio.wait_for(conn.read_incoming(queue), 2)
    assert queue.qsize() == 1
    assert queue.get_nowait().payload == b"kept"
    assert any("wrong message type" in r.getMessage() for r in caplog.records)


@pytest.mark.asyncio
async def test_read_incoming_stops_at_close_frame():
    socket = FakeSocket([_close(1001), _text("after close")])
    conn = Connection(socket, "1")
    queue = asyncio.Queue()
    await asyncio.wait_for(conn.read_incoming(queue), 2)
    assert queue.empty()
    assert conn.closed


@pytest.mark.asyncio
async def test_normal_close_is_reported_as_unexpected(caplog):
    log = logging.getLogger("test.connection.normal")
    conn = Connection(FakeSocket([_close(1000)]), "1", log)
    with caplog.at_level(logging.DEBUG, logger=log.name):
        await conn.read_incoming(asyncio.Queue())
    errors = [r for r in caplog.records if r.levelno == logging.ERROR]
    assert any("failed to read message" in r.getMessage() for r in errors)


@pytest.mark.asyncio
@pytest.mark.parametrize("code", [1001, 1006])
async def test_going_away_and_abnormal_close_are_quiet(caplog, code):
    log = logging.getLogger(f"test.connection.quiet{code}")
    conn = Connection(FakeSocket([_close(code)]), "1", log)
    with caplog.at_level(logging.DEBUG, logger=log.name):
        await conn.read_incoming(asyncio.Queue())
    assert [r for r in caplog.records if r.levelno == logging.ERROR] == []


@pytest.mark.asyncio
async def test_send_writes_text_frame():
    socket = FakeSocket()
    conn = Connection(socket, "1")
    await conn.send(b'{"event":2}')
    assert socket.sent == ['{"event":2}']


@pytest.mark.asyncio
async def test_send_failure_while_open_raises():
    conn = Connection(FakeSocket(fail=True), "1")
    with pytest.raises(ConnectionError, match="failed to send message"):
        await conn.send(b"x")


@pytest.mark.asyncio
async def test_send_failure_after_close_is_ignored():
    socket = FakeSocket([_close(1001)], fail=True)
    conn = Connection(socket, "1")
    await conn.read_incoming(asyncio.Queue())
    await conn.send(b"x")
    assert conn.closed
    assert socket.sent == []


@pytest.mark.asyncio
async def test_write_outgoing_forwards_subscription_payloads():
    bus = Bus()
    subscription = bus.subscribe("9")
    socket = FakeSocket()
    conn = Connection(socket, "9")
    writer = asyncio.create_task(conn.write_outgoing(subscription))
    await asyncio.wait_for(bus.send(new_outgoing_base(["9"], 3)), 2)
    for _ in range(200):
        if socket.sent:
            break
        await asyncio.sleep(0.01)
    subscription.close()
    await asyncio.wait_for(writer, 2)
    assert socket.sent == ['{"event":3}']


@pytest.mark.asyncio
async def test_write_outgoing_logs_send_errors_and_continues(caplog):
    log = logging.getLogger("test.connection.write")
    socket = FakeSocket(fail=True)
    conn = Connection(socket, "5", log)
    with caplog.at_level(logging.DEBUG, logger=log.name):
        await asyncio.wait_for(conn.write_outgoing(_two_payloads()), 2)
    failures = [r for r in caplog.records if "failed to send message" in r.getMessage()]
    assert len(failures) == 2
    assert socket.sent == []