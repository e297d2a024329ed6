"""Integration tests against the real nak binary (skipped when nak is missing).

Signing, verification and naddr encoding run offline.
"""

import pytest

from smart_widget.components import Button, ComponentSet, Icon, Image
from smart_widget.naddr_encoder import encode_naddr, validate_naddr
from smart_widget.nak import NakClient
from smart_widget.widget import Widget

from conftest import TEST_PUBKEY, TEST_SECRET_KEY

RELAYS = ["wss://relay.example.com"]

pytestmark = [pytest.mark.integration, pytest.mark.asyncio]


def make_widget(nak_binary):
    client = NakClient(RELAYS, TEST_SECRET_KEY, binary=nak_binary)
    return Widget("action", RELAYS, TEST_SECRET_KEY, client=client), client


async def test_sign_event_produces_verifiable_widget(nak_binary):
    widget, client = make_widget(nak_binary)
    components = ComponentSet(
        [
            Icon("https://example.com/icon.png"),
            Image("https://example.com/image.png"),
            Button(1, "Open", "app", "https://example.com/app"),
        ],
        widget,
    )

    signed = await widget.sign_event(components, "Coffee", "coffee-1")

    assert signed.pubkey == TEST_PUBKEY
    assert signed.event["kind"] == 30033
    assert signed.event["tags"][:2] == [["d", "coffee-1"], ["l", "action"]]
    assert await client.verify(signed.event)
    validate_naddr(signed.naddr)


async def test_tampered_event_fails_verification(nak_binary):
    widget, client = make_widget(nak_binary)
    components = ComponentSet([Image("https://example.com/image.png")], widget_type="basic")
    signed = await widget.sign_event(components, "Original", "tamper-1")

    tampered = dict(signed.event, content="Changed")

    assert not await client.verify(tampered)


async def test_encode_naddr_is_deterministic(nak_binary):
    first = await encode_naddr(TEST_PUBKEY, "coffee-1", binary=nak_binary)
    second = await encode_naddr(TEST_PUBKEY, "coffee-1", binary=nak_binary)
    other = await encode_naddr(TEST_PUBKEY, "coffee-2", binary=nak_binary)

    assert first == second
    assert first.startswith("naddr1")
    assert first != other
