"""Nak subprocess client for signing, publishing and subscribing.

Handles asyncio process communication with the nak CLI tool. nak owns the
relay wire protocol and the signature scheme; this module only shapes its
input and parses its output.
"""

import asyncio
import json
import os
from dataclasses import dataclass
from typing import Callable

from .errors import NakInvocationError, SigningError
from .filters import matches_any, validate_filters
from .models import PublishResult, UnsignedEvent

NAK_BINARY_ENV = "SMART_WIDGET_NAK_BINARY"
DEFAULT_NAK_BINARY = "nak"
DEFAULT_COMMAND_TIMEOUT = 30

# Per-line limit for nak output; event lines can carry data URLs over 64 KiB
STREAM_LIMIT = 16 * 1024 * 1024

SIGNING_ERROR_KEYWORDS = ("rejected", "deny", "signing", "signer", "invalid secret")

CACHE_FIRST = "CACHE_FIRST"
ONLY_RELAY = "ONLY_RELAY"

EventHandler = Callable[[dict], None]
ErrorHandler = Callable[[Exception], None]


def resolve_nak_binary(binary: str | None = None) -> str:
    return binary or os.environ.get(NAK_BINARY_ENV) or DEFAULT_NAK_BINARY


async def spawn_nak(binary: str, args: list[str], env: dict | None = None) -> asyncio.subprocess.Process:
    """Start nak with all three standard streams piped."""
    try:
        return await asyncio.create_subprocess_exec(
            binary,
            *args,
            stdin=asyncio.subprocess.PIPE,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            env=env,
            limit=STREAM_LIMIT,
        )
    except FileNotFoundError:
        raise NakInvocationError("nak binary not found in system PATH") from None
    except OSError as e:
        raise NakInvocationError(f"Failed to start nak subprocess: {e}") from None


async def run_nak(
    args: list[str],
    input: str | None = None,
    timeout: float = DEFAULT_COMMAND_TIMEOUT,
    binary: str | None = None,
    env: dict | None = None,
) -> tuple[int, str, str]:
    """Run nak to completion.

    CONTRACT:
      Inputs:
        - args: nak arguments (without the binary)
        - input: optional text written to stdin
        - timeout: seconds to wait for completion
        - binary: nak executable (default from SMART_WIDGET_NAK_BINARY or "nak")
        - env: process environment (default: inherited)

      Outputs:
        - (returncode, stdout, stderr) with decoded text

      Raises:
        - NakInvocationError: binary missing, start failure, timeout or
          communication failure
    """
    process = await spawn_nak(resolve_nak_binary(binary), args, env)

    try:
        stdout, stderr = await asyncio.wait_for(
            process.communicate(input.encode() if input is not None else None), timeout
        )
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        raise NakInvocationError(f"nak subprocess timed out after {timeout} seconds") from None
    except asyncio.CancelledError:
        process.kill()
        await process.wait()
        raise
    except Exception as e:
        process.kill()
        await process.wait()
        raise NakInvocationError(f"Failed to communicate with nak subprocess: {e}") from None

    return process.returncode, stdout.decode(), stderr.decode()


def parse_event_line(line: str) -> dict | None:
    """Parse one line of nak output as an event object, or None."""
    line = line.strip()
    if not (line.startswith("{") and line.endswith("}")):
        return None
    try:
        data = json.loads(line)
    except json.JSONDecodeError:
        return None
    return data if isinstance(data, dict) else None


def parse_nak_output(stdout: str) -> dict:
    """Parse nak stdout to extract the signed event.

    CONTRACT:
      Inputs:
        - stdout: nak process stdout (status lines plus one JSON event line)

      Outputs:
        - event: dict with at least non-empty string id and pubkey

      Raises:
        - NakInvocationError: no JSON line, unparsable JSON or missing fields
    """
    json_line = None
    for line in stdout.strip().split("\n"):
        line = line.strip()
        if line.startswith("{") and line.endswith("}"):
            json_line = line
            break

    if not json_line:
        raise NakInvocationError("No JSON event found in nak output")

    try:
        data = json.loads(json_line)
    except json.JSONDecodeError as e:
        raise NakInvocationError(f"Failed to parse nak output as JSON: {e}") from e

    if not isinstance(data, dict):
        raise NakInvocationError("Nak output is not a JSON object")

    for field_name in ("id", "pubkey"):
        value = data.get(field_name)
        if not value or not isinstance(value, str) or not value.strip():
            raise NakInvocationError(f"Nak output missing required field: {field_name}")

    return data


def _raise_for_returncode(returncode: int, stderr: str) -> None:
    if returncode == 0:
        return
    stderr_lower = stderr.lower()
    if any(keyword in stderr_lower for keyword in SIGNING_ERROR_KEYWORDS):
        raise SigningError(stderr.strip() or "Signing rejected")
    raise NakInvocationError(stderr.strip() or f"Nak exited with code {returncode}")


@dataclass(frozen=True)
class SubscriptionOptions:
    """Subscription behaviour.

    cache_usage: CACHE_FIRST replays matching events the client has already
    seen before relay results; ONLY_RELAY ignores the cache.
    skip_verification: when False every relay event is checked with
    `nak verify` and dropped if its id or signature is wrong.
    """

    cache_usage: str = CACHE_FIRST
    skip_verification: bool = False


class Subscription:
    """Live `nak req --stream` query, one process per filter.

    Handlers registered with on_event receive each distinct event once.
    Subprocess failures are reported to on_error handlers. stop() is
    idempotent and may be called from any callback on the event loop.
    """

    def __init__(self, client: "NakClient", filters: list[dict], options: SubscriptionOptions):
        self._client = client
        self._filters = filters
        self._options = options
        self._event_handlers: list[EventHandler] = []
        self._error_handlers: list[ErrorHandler] = []
        self._seen: set[str] = set()
        self._tasks: list[asyncio.Task] = []
        self._stopped = False

    @property
    def filters(self) -> list[dict]:
        return self._filters

    @property
    def options(self) -> SubscriptionOptions:
        return self._options

    @property
    def stopped(self) -> bool:
        return self._stopped

    def on_event(self, handler: EventHandler) -> None:
        self._event_handlers.append(handler)

    def on_error(self, handler: ErrorHandler) -> None:
        self._error_handlers.append(handler)

    def start(self) -> None:
        """Schedule cache replay and one reader task per filter."""
        if self._options.cache_usage == CACHE_FIRST:
            self._tasks.append(asyncio.ensure_future(self._replay_cache()))
        for filter_ in self._filters:
            self._tasks.append(asyncio.ensure_future(self._read(filter_)))

    def stop(self) -> None:
        if self._stopped:
            return
        self._stopped = True
        for task in self._tasks:
            task.cancel()

    def _dispatch(self, event: dict) -> None:
        event_id = event.get("id")
        if self._stopped or not event_id or event_id in self._seen:
            return
        self._seen.add(event_id)
        self._client.remember(event)
        for handler in list(self._event_handlers):
            handler(event)

    def _fail(self, error: Exception) -> None:
        if self._stopped:
            return
        for handler in list(self._error_handlers):
            handler(error)

    async def _replay_cache(self) -> None:
        for event in self._client.cached_events(self._filters):
            self._dispatch(event)

    async def _read(self, filter_: dict) -> None:
        client = self._client
        args = ["req", "--stream", *client.relays]

        try:
            process = await spawn_nak(client.binary, args, client.env)
        except NakInvocationError as e:
            self._fail(e)
            return

        try:
            process.stdin.write(json.dumps(filter_).encode() + b"\n")
            await process.stdin.drain()
            process.stdin.close()

            async for raw_line in process.stdout:
                event = parse_event_line(raw_line.decode(errors="replace"))
                if event is None:
                    continue
                if not self._options.skip_verification and not await client.verify(event):
                    continue
                self._dispatch(event)

            await process.wait()
            if process.returncode != 0:
                stderr = (await process.stderr.read()).decode()
                self._fail(NakInvocationError(stderr.strip() or f"nak req exited with code {process.returncode}"))
        except Exception as e:
            self._fail(NakInvocationError(f"Failed to read from nak subprocess: {e}"))
        finally:
            if process.returncode is None:
                process.kill()
                await process.wait()


class NakClient:
    """Event network client backed by the nak CLI.

    The secret key is handed to nak through NOSTR_SECRET_KEY so it never
    appears on a command line. connect() must succeed before publish() or
    subscribe(); sign() works offline.
    """

    def __init__(
        self,
        relays: list[str],
        secret_key: str,
        binary: str | None = None,
        timeout: float = DEFAULT_COMMAND_TIMEOUT,
    ):
        self._relays = list(relays)
        self._secret_key = secret_key
        self._binary = resolve_nak_binary(binary)
        self._timeout = timeout
        self._connected = False
        self._cache: dict[str, dict] = {}

    @property
    def relays(self) -> list[str]:
        return list(self._relays)

    @property
    def binary(self) -> str:
        return self._binary

    @property
    def connected(self) -> bool:
        return self._connected

    @property
    def env(self) -> dict:
        return {**os.environ, "NOSTR_SECRET_KEY": self._secret_key}

    async def _run(self, args: list[str], input: str | None = None) -> tuple[int, str, str]:
        return await run_nak(args, input=input, timeout=self._timeout, binary=self._binary, env=self.env)

    async def connect(self) -> None:
        """Check that nak is runnable; relay sockets are opened per command."""
        returncode, _, stderr = await self._run(["--version"])
        if returncode != 0:
            raise NakInvocationError(stderr.strip() or f"nak exited with code {returncode}")
        self._connected = True

    def _require_connection(self) -> None:
        if not self._connected:
            raise NakInvocationError("nak client is not connected, call connect() first")

    async def sign(self, event: UnsignedEvent) -> dict:
        """Sign an event locally without contacting any relay."""
        returncode, stdout, stderr = await self._run(["event"], json.dumps(event.to_dict()))
        _raise_for_returncode(returncode, stderr)
        return parse_nak_output(stdout)

    async def publish(self, event: dict, relays: list[str] | None = None) -> PublishResult:
        """Publish a signed event to relays (default: the client's relays)."""
        self._require_connection()
        targets = list(relays) if relays else self.relays
        payload = {key: event[key] for key in ("kind", "content", "tags", "created_at") if key in event}

        returncode, stdout, stderr = await self._run(["event", *targets], json.dumps(payload))
        _raise_for_returncode(returncode, stderr)

        published = parse_nak_output(stdout)
        if event.get("id") and published["id"] != event["id"]:
            raise NakInvocationError(f"nak published event {published['id']} instead of {event['id']}")

        self.remember(published)
        return PublishResult(event_id=published["id"], pubkey=published["pubkey"], event=published)

    def subscribe(self, filters: list[dict], options: SubscriptionOptions | None = None) -> Subscription:
        """Open a streaming subscription.

        Raises:
          - InvalidFilterError: a filter is malformed
          - NakInvocationError: client is not connected
        """
        self._require_connection()
        validate_filters(filters)

        subscription = Subscription(self, list(filters), options or SubscriptionOptions())
        subscription.start()
        return subscription

    async def verify(self, event: dict) -> bool:
        """Check an event's id and signature with `nak verify`."""
        returncode, _, _ = await self._run(["verify"], json.dumps(event))
        return returncode == 0

    def remember(self, event: dict) -> None:
        if event.get("id"):
            self._cache[event["id"]] = event

    def cached_events(self, filters: list[dict]) -> list[dict]:
        return [event for event in self._cache.values() if matches_any(event, filters)]
