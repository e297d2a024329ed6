"""Smart Widget facade.

Holds the widget type, relay set and signing key, and orchestrates event
construction, signing, publishing and search.
"""

import asyncio

from .collector import DEFAULT_QUIET_PERIOD, collect, wait_for_event
from .errors import (
    InvalidComponentSetError,
    InvalidFilterError,
    InvalidRelaySetError,
    InvalidTitleError,
    InvalidWidgetTypeError,
    PublishError,
    PublishTimeoutError,
)
from .event import construct_event
from .keys import KeyGenerator, resolve_secret_key
from .models import DEFAULT_WIDGET_TYPE, WIDGET_TYPES, SearchResult, SignedWidget
from .naddr_encoder import encode_naddr
from .nak import NakClient
from .relay import DEFAULT_RELAYS, validate_relay_set
from .validator import validate_title

DEFAULT_PUBLISH_TIMEOUT = 3.0

PUBLISH_FAILURE_MESSAGE = (
    "Event could not be published, make sure to init() your smart widget instance or change your relays set"
)


class Widget:
    """A Smart Widget identity publishing to a fixed relay set.

    CONTRACT:
      Inputs:
        - widget_type: "basic" (default), "action" or "tool"
        - relays: list of wss:// relay URLs (default: DEFAULT_RELAYS)
        - secret_key: hex private key (default: $SECRET_KEY, else a fallback)
        - client: event network client (default: NakClient over relays/key)
        - key_generator: fallback key source replacing the process-wide one
        - naddr_encoder: async (pubkey, identifier, kind) -> naddr

      Invariants:
        - Type, relays and key never change after construction
        - init() must complete before publish() or search_nostr()

      Raises (construction):
        - InvalidWidgetTypeError, InvalidRelaySetError, InvalidSecretKeyError
    """

    def __init__(
        self,
        widget_type: str = DEFAULT_WIDGET_TYPE,
        relays: list[str] | None = None,
        secret_key: str | None = None,
        *,
        client=None,
        key_generator: KeyGenerator | None = None,
        naddr_encoder=encode_naddr,
    ):
        if widget_type not in WIDGET_TYPES:
            raise InvalidWidgetTypeError(
                "The smart widget type should be one of these values (basic | action | tool)"
            )
        if relays is not None and not validate_relay_set(relays):
            raise InvalidRelaySetError("Relay set is invalid or empty. Please provide a valid array of wss:// URLs")

        self._widget_type = widget_type
        self._relays = tuple(relays) if relays is not None else tuple(DEFAULT_RELAYS)
        self._secret_key = resolve_secret_key(secret_key, key_generator)
        self._client = client if client is not None else NakClient(list(self._relays), self._secret_key)
        self._naddr_encoder = naddr_encoder

    @property
    def widget_type(self) -> str:
        return self._widget_type

    @property
    def relays(self) -> list[str]:
        return list(self._relays)

    @property
    def secret_key(self) -> str:
        return self._secret_key

    @property
    def client(self):
        return self._client

    def props(self) -> dict:
        return {"type": self._widget_type, "relays": self.relays, "secret_key": self._secret_key}

    async def init(self) -> None:
        """Connect the network client."""
        await self._client.connect()

    async def sign_event(self, component_set, title: str | None = None, identifier: str | None = None) -> SignedWidget:
        """Build and sign the widget event without publishing it.

        Raises:
          - InvalidTitleError, InvalidComponentSetError: bad arguments
          - SigningError, NakInvocationError: signing failed
        """
        self._check_arguments(component_set, title)

        unsigned = construct_event(component_set.tags(), title, identifier, self._widget_type)
        event = await self._client.sign(unsigned)
        naddr = await self._naddr_encoder(event["pubkey"], unsigned.tags[0][1], event["kind"])
        return SignedWidget(event=event, naddr=naddr)

    async def publish(
        self,
        component_set,
        title: str | None = None,
        identifier: str | None = None,
        timeout: float = DEFAULT_PUBLISH_TIMEOUT,
    ) -> SignedWidget:
        """Sign, publish and confirm a widget event.

        CONTRACT:
          Inputs:
            - component_set: ComponentSet instance
            - title: optional title, used as the event content
            - identifier: optional d-tag; generated when empty
            - timeout: seconds allowed for publishing plus confirmation,
              signing excluded

          Outputs:
            - SignedWidget(event, naddr) once a relay serves the event back

          Algorithm:
            1. Validate title and component set (raise immediately)
            2. Sign the event and encode its naddr (as sign_event), untimed
            3. Publish it to the widget relays
            4. Wait for an event with the same id; steps 3-4 race the
               timeout and the first of confirmation or timeout wins

          Raises:
            - InvalidTitleError, InvalidComponentSetError: bad arguments
            - SigningError, NakInvocationError: signing failed, not wrapped
            - PublishTimeoutError: no confirmation within timeout
            - PublishError: any other failure on the publish path
            Both publish errors carry PUBLISH_FAILURE_MESSAGE and chain the
            underlying cause.
        """
        signed = await self.sign_event(component_set, title, identifier)

        try:
            await asyncio.wait_for(self._publish_and_confirm(signed), timeout)
        except asyncio.TimeoutError as e:
            raise PublishTimeoutError(PUBLISH_FAILURE_MESSAGE) from e
        except Exception as e:
            raise PublishError(PUBLISH_FAILURE_MESSAGE) from e
        return signed

    async def _publish_and_confirm(self, signed: SignedWidget) -> None:
        await self._client.publish(signed.event, self.relays)
        await wait_for_event(self._client, [{"ids": [signed.event_id]}])

    async def search_nostr(self, filters, quiet_period: float = DEFAULT_QUIET_PERIOD) -> SearchResult:
        """Collect events matching a list of NIP-01 filters.

        Raises:
          - InvalidFilterError: filters is not a list or is malformed
          - NakInvocationError: client failure
        """
        if not isinstance(filters, list):
            raise InvalidFilterError("The filter param must be an array of objects")
        return await collect(self._client, filters, quiet_period)

    def _check_arguments(self, component_set, title) -> None:
        from .components import ComponentSet

        if not validate_title(title).valid:
            raise InvalidTitleError("The title should be an empty or valid string")
        if not isinstance(component_set, ComponentSet):
            raise InvalidComponentSetError("The components should be a ComponentSet instance")
