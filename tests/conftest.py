import asyncio

import pytest
import pytest_asyncio

from const import LgTvConfig
from session import LgTvSession


class FakeTimer:
    def __init__(self, when, callback, args):
        self.when = when
        self.callback = callback
        self.args = args
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class FakeScheduler:
    """Virtual clock standing in for the event loop call_later."""

    def __init__(self):
        self.now = 0.0
        self.timers = []

    def time(self):
        return self.now

    def call_later(self, delay, callback, *args):
        timer = FakeTimer(self.now + delay, callback, args)
        self.timers.append(timer)
        return timer

    @property
    def pending(self):
        return [timer for timer in self.timers if not timer.cancelled]

    def advance(self, seconds):
        self.advance_to(self.now + seconds)

    def advance_to(self, target):
        while True:
            due = [t for t in self.pending if t.when <= target + 1e-9]
            if not due:
                break
            timer = min(due, key=lambda t: t.when)
            self.timers.remove(timer)
            self.now = max(self.now, timer.when)
            timer.callback(*timer.args)
        self.now = max(self.now, target)


class FakeClient:
    """Stands in for ssap.SsapClient, recording requests and subscriptions."""

    def __init__(
        self,
        address,
        *,
        secure=False,
        timeout=15000,
        client_key=None,
        manifest=None,
        on_prompt=None,
        on_close=None,
        log_id="",
    ):
        self.address = address
        self.secure = secure
        self.timeout = timeout
        self.client_key = client_key
        self.on_prompt = on_prompt
        self.on_close = on_close
        self.connect_error = None
        self.issued_key = None
        self.prompt = False
        self.approved = asyncio.Event()
        self.requests = []
        self.subscriptions = {}
        self.closed = False
        self.close_gate = None

    async def connect(self):
        if self.prompt:
            self.on_prompt()
            await self.approved.wait()
        if self.connect_error is not None:
            raise self.connect_error
        if self.issued_key:
            self.client_key = self.issued_key

    async def close(self):
        if self.close_gate is not None:
            await self.close_gate.wait()
        self.closed = True

    def is_alive(self):
        return not self.closed

    async def request(self, uri, payload=None):
        self.requests.append((str(uri), payload))

    async def subscribe(self, uri, callback):
        self.subscriptions[str(uri)] = callback
        return f"subscribe_{len(self.subscriptions)}"

    def push(self, uri, payload):
        self.subscriptions[str(uri)](payload)

    def drop(self, error=None):
        self.on_close(error)


class ClientFactory:
    """Create FakeClients; outcomes are consumed one per connect, None is success."""

    def __init__(self):
        self.clients = []
        self.outcomes = []
        self.issued_key = None
        self.prompt = False

    def __call__(self, address, **kwargs):
        client = FakeClient(address, **kwargs)
        if self.outcomes:
            client.connect_error = self.outcomes.pop(0)
        client.issued_key = self.issued_key
        client.prompt = self.prompt
        self.clients.append(client)
        return client

    @property
    def latest(self):
        return self.clients[-1]

    @property
    def requests(self):
        return [request for client in self.clients for request in client.requests]


class RecordingHost:

    def __init__(self):
        self.updates = []
        self.reachable = []
        self.warnings = []
        self.client_keys = []

    def update_attributes(self, changes):
        self.updates.append(dict(changes))

    def set_reachable(self, reachable):
        self.reachable.append(reachable)

    def warn(self, message):
        self.warnings.append(message)

    def store_client_key(self, client_key):
        self.client_keys.append(client_key)

    def last(self, key):
        for update in reversed(self.updates):
            if key in update:
                return update[key]
        return None


async def _drain(rounds=20):
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def drain():
    return _drain


@pytest.fixture
def scheduler():
    return FakeScheduler()


@pytest.fixture
def host():
    return RecordingHost()


@pytest.fixture
def factory():
    return ClientFactory()


@pytest.fixture
def config():
    return LgTvConfig(
        identifier="lgtv_192_168_1_20", name="Living Room", address="192.168.1.20"
    )


@pytest_asyncio.fixture
async def session(config, host, factory, scheduler):
    session = LgTvSession(
        config, host, manifest={}, client_factory=factory, scheduler=scheduler
    )
    yield session
    await session.stop()
