"""Shared fixtures: an in-memory stand-in for the nak client."""

import asyncio
import hashlib
import json
import shutil

import pytest

from smart_widget.filters import validate_filters
from smart_widget.nak import resolve_nak_binary

TEST_SECRET_KEY = "0000000000000000000000000000000000000000000000000000000000000002"
TEST_PUBKEY = "c6047f9441ed7d6d3045406e95c07cd85c778e4b8cef3ca7abac09b95c709ee5"
TEST_NADDR = "naddr1qqxnzd3cxsmnjv3hx56rjwf3qgs8eseg5zxak2hal8umuaa7laxgxjyll9uhyxp86c522shn9gj8crssrqsqqqa28a2lhkx"


class FakeSubscription:
    def __init__(self, filters, options):
        self.filters = filters
        self.options = options
        self.event_handlers = []
        self.error_handlers = []
        self.stop_calls = 0

    @property
    def stopped(self):
        return self.stop_calls > 0

    def on_event(self, handler):
        self.event_handlers.append(handler)

    def on_error(self, handler):
        self.error_handlers.append(handler)

    def stop(self):
        self.stop_calls += 1

    def emit(self, event):
        for handler in list(self.event_handlers):
            handler(event)

    def fail(self, error):
        for handler in list(self.error_handlers):
            handler(error)


class FakeClient:
    """Event network client double.

    confirm: when True, a subscription filtering by ids emits the matching
    published event on the next loop iteration.
    """

    def __init__(self, confirm=True, pubkey=TEST_PUBKEY):
        self.confirm = confirm
        self.pubkey = pubkey
        self.connected = False
        self.subscriptions = []
        self.published = []
        self.signed = []
        self.publish_error = None
        self.subscribe_error = None
        self.sign_error = None
        self.sign_delay = 0

    async def connect(self):
        self.connected = True

    async def sign(self, event):
        if self.sign_delay:
            await asyncio.sleep(self.sign_delay)
        if self.sign_error is not None:
            raise self.sign_error
        data = event.to_dict()
        data.setdefault("created_at", 1700000000)
        data["pubkey"] = self.pubkey
        serialized = json.dumps([0, data["pubkey"], data["created_at"], data["kind"], data["tags"], data["content"]])
        data["id"] = hashlib.sha256(serialized.encode()).hexdigest()
        data["sig"] = "f" * 128
        self.signed.append(data)
        return data

    async def publish(self, event, relays=None):
        if self.publish_error is not None:
            raise self.publish_error
        self.published.append((event, relays))

    def subscribe(self, filters, options=None):
        if self.subscribe_error is not None:
            raise self.subscribe_error
        validate_filters(filters)
        subscription = FakeSubscription(filters, options)
        self.subscriptions.append(subscription)

        if self.confirm:
            ids = [id_ for filter_ in filters for id_ in filter_.get("ids", [])]
            matches = [event for event, _ in self.published if event["id"] in ids]
            for event in matches:
                asyncio.get_running_loop().call_soon(subscription.emit, event)

        return subscription


async def fake_naddr_encoder(pubkey, identifier, kind):
    return TEST_NADDR


@pytest.fixture
def fake_client():
    return FakeClient()


def make_event(event_id, pubkey=TEST_PUBKEY, kind=30033, tags=None, created_at=1700000000):
    return {
        "id": event_id,
        "pubkey": pubkey,
        "kind": kind,
        "created_at": created_at,
        "tags": tags or [],
        "content": "",
        "sig": "a" * 128,
    }


@pytest.fixture(scope="session")
def nak_binary():
    """Real nak binary for integration tests; skips when it is not installed."""
    binary = resolve_nak_binary()
    if shutil.which(binary) is None:
        pytest.skip(f"nak binary not available: {binary}")
    return binary
