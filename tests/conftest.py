import asyncio

import pytest

from siphandle import AsyncBaseSession, HandleConfig, SipHandle


HANDLE_ID = 42


class FakeSession(AsyncBaseSession):
    """Session that records requests instead of sending them."""

    def __init__(self, config=None):
        super().__init__(config)
        self.sent = []
        self._queue: asyncio.Queue = asyncio.Queue()
        self.fail_with = None
        self.send_delay = 0

    async def send(self, message):
        if self.send_delay:
            await asyncio.sleep(self.send_delay)
        if self.fail_with is not None:
            raise self.fail_with
        self.sent.append(message)
        self._queue.put_nowait(message)

    async def next_request(self, timeout=1.0):
        return await asyncio.wait_for(self._queue.get(), timeout)


def sip_event(event=None, *, transaction=None, call_id=None, jsep=None, sender=HANDLE_ID, **result):
    """Build an inbound SIP plugin notification."""
    data = {"sip": "event"}
    if event is not None:
        data["result"] = {"event": event, **result}
    if call_id is not None:
        data["call_id"] = call_id
    message = {
        "janus": "event",
        "sender": sender,
        "plugindata": {"plugin": "janus.plugin.sip", "data": data},
    }
    if transaction is not None:
        message["transaction"] = transaction
    if jsep is not None:
        message["jsep"] = jsep
    return message


def sip_error(code, reason, *, transaction=None, sender=HANDLE_ID):
    """Build an inbound SIP plugin error."""
    message = {
        "janus": "event",
        "sender": sender,
        "plugindata": {
            "plugin": "janus.plugin.sip",
            "data": {"sip": "event", "error_code": code, "error": reason},
        },
    }
    if transaction is not None:
        message["transaction"] = transaction
    return message


class Recorder:
    """Collects (kind, data) pairs published by a handle."""

    def __init__(self, handle, kinds):
        self.events = []
        for kind in kinds:
            handle.on(kind, lambda data, kind=kind: self.events.append((kind, data)))

    @property
    def kinds(self):
        return [kind for kind, _ in self.events]


@pytest.fixture
def session():
    return FakeSession(HandleConfig(request_timeout=0.5))


@pytest.fixture
def handle(session):
    return session.attach(SipHandle, HANDLE_ID)


@pytest.fixture
def recorder(handle):
    return Recorder(handle, SipHandle.EVENTS)
