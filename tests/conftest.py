import asyncio
import httpx
import pytest

_CLOSE = object()


class FakeTransport:
    def __init__(self):
        self.aborted = False

    def abort(self):
        self.aborted = True


class FakeWebSocket:
    """
    In-memory stand-in for a websockets client connection.

    `responses` are delivered in order once the session starts reading.
    After them the socket closes with `close_code`; pass close_code=None
    to keep it open forever.
    """

    def __init__(self, responses=None, *, close_code=1000, close_reason="", log=None):
        self.sent = []
        self.log = log if log is not None else []
        self.transport = FakeTransport()
        self.close_code = None
        self.close_reason = ""
        self.closed = False
        self._final_code = close_code
        self._final_reason = close_reason
        self._incoming = asyncio.Queue()
        for response in responses or []:
            self._incoming.put_nowait(response)
        if close_code is not None:
            self._incoming.put_nowait(_CLOSE)

    async def send(self, message):
        if self.closed or self.transport.aborted:
            raise ConnectionResetError("connection reset by peer")
        self.sent.append(message)
        self.log.append(("send", message))

    def push(self, message):
        self._incoming.put_nowait(message)

    async def close(self):
        self.closed = True

    def __aiter__(self):
        return self

    async def __anext__(self):
        item = await self._incoming.get()
        if item is _CLOSE:
            self.close_code = self._final_code
            self.close_reason = self._final_reason
            raise StopAsyncIteration
        self.log.append(("recv", item))
        return item


class FakeConnector:
    """Replaces websockets.connect; hands out the given sockets (or raises given errors) in order."""

    def __init__(self, *sockets):
        self.sockets = list(sockets)
        self.calls = []

    async def __call__(self, url, **kwargs):
        self.calls.append((url, kwargs))
        item = self.sockets.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item

    @property
    def url(self) -> str:
        return self.calls[-1][0]

    @property
    def headers(self) -> dict:
        return self.calls[-1][1].get("additional_headers") or {}


async def no_sleep(seconds: float):
    pass


@pytest.fixture
def fake_socket():
    return FakeWebSocket


@pytest.fixture
def fake_connector():
    return FakeConnector


@pytest.fixture
def instant_sleep():
    return no_sleep


@pytest.fixture
def mock_http():
    """Builds an httpx.AsyncClient routed to a handler; every request is recorded in `client.requests`."""
    def factory(handler):
        requests = []

        def recording_handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return handler(request)

        client = httpx.AsyncClient(transport=httpx.MockTransport(recording_handler))
        client.requests = requests
        return client

    return factory
