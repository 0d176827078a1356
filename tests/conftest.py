import asyncio
import json
import logging
from unittest.mock import AsyncMock, patch

import pytest
from websockets.exceptions import ConnectionClosedOK

DISCONNECT = object()
CLOSE_OK = object()


@pytest.fixture(autouse=True)
def reset_logging():
    """Reset logging configuration before each test"""
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    logging.basicConfig(level=logging.NOTSET)
    yield


class FakeTelephonySocket:
    """Stands in for the FastAPI WebSocket Twilio connects to."""

    def __init__(self):
        self.inbox = asyncio.Queue()
        self.sent = []
        self.accepted = False
        self.closed = False
        self.close_code = None

    def push(self, message):
        """Queue a message as if Twilio had sent it."""
        self.inbox.put_nowait(message if isinstance(message, str) else json.dumps(message))

    def disconnect(self):
        """Simulate the caller hanging up."""
        self.inbox.put_nowait(DISCONNECT)

    async def accept(self):
        self.accepted = True

    def push_bytes(self, data):
        """Queue a binary frame."""
        self.inbox.put_nowait(data)

    async def receive(self):
        item = await self.inbox.get()
        if item is DISCONNECT:
            return {"type": "websocket.disconnect", "code": 1006}
        if isinstance(item, bytes):
            return {"type": "websocket.receive", "bytes": item}
        return {"type": "websocket.receive", "text": item}

    async def send_text(self, text):
        if self.closed:
            raise RuntimeError("Cannot call 'send' once a close message has been sent.")
        self.sent.append(json.loads(text))

    async def close(self, code=1000):
        self.closed = True
        self.close_code = code


class FakeRealtimeSocket:
    """Stands in for the client connection returned by websockets.connect."""

    def __init__(self):
        self.inbox = asyncio.Queue()
        self.sent = []
        self.closed = False

    def push(self, message):
        """Queue a message as if the Realtime API had sent it."""
        self.inbox.put_nowait(message if isinstance(message, str) else json.dumps(message))

    def fail(self, error):
        """Make the receive side raise, e.g. an abnormal ConnectionClosedError."""
        self.inbox.put_nowait(error)

    def hang_up(self):
        """Remote side closes the connection cleanly."""
        self.inbox.put_nowait(CLOSE_OK)

    def commands(self, command_type):
        return [message for message in self.sent if message["type"] == command_type]

    def __aiter__(self):
        return self

    async def __anext__(self):
        item = await self.inbox.get()
        if item is CLOSE_OK:
            raise StopAsyncIteration
        if isinstance(item, BaseException):
            raise item
        return item

    async def send(self, text):
        if self.closed:
            raise ConnectionClosedOK(None, None)
        self.sent.append(json.loads(text))

    async def close(self):
        if not self.closed:
            self.closed = True
            self.inbox.put_nowait(CLOSE_OK)


async def _wait_until(predicate, timeout=1.0):
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("Condition not met before timeout")
        await asyncio.sleep(0.005)


@pytest.fixture
def wait_until():
    """Poll a predicate on the event loop until it holds."""
    return _wait_until


@pytest.fixture
def telephony_socket():
    return FakeTelephonySocket()


@pytest.fixture
def realtime_socket():
    return FakeRealtimeSocket()


@pytest.fixture
def mock_connect(realtime_socket):
    """Patch websockets.connect so upstream clients dial the fake socket."""
    with patch("websockets.connect", new=AsyncMock(return_value=realtime_socket)) as connect:
        yield connect
