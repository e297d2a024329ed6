"""NIP-19 naddr encoding via nak CLI.

A Smart Widget is addressed by (kind, pubkey, d-tag); the naddr is the
shareable bech32 form of that address.
"""

import string

from .errors import NakInvocationError
from .models import WIDGET_KIND
from .nak import run_nak

BECH32_CHARS = frozenset("023456789acdefghjklmnpqrstuvwxyz")
NADDR_PREFIX = "naddr1"


def _check_address(pubkey, identifier) -> None:
    if not isinstance(pubkey, str) or len(pubkey) != 64 or not set(pubkey) <= set(string.hexdigits):
        raise NakInvocationError("pubkey must be 64 hex characters")
    if not identifier or not isinstance(identifier, str):
        raise NakInvocationError("identifier must be non-empty string")


async def encode_naddr(pubkey: str, identifier: str, kind: int = WIDGET_KIND, binary: str | None = None) -> str:
    """Encode the naddr of a widget address.

    CONTRACT:
      Inputs:
        - pubkey: author public key, 64 hex characters
        - identifier: d-tag value of the widget event
        - kind: event kind (default 30033)
        - binary: optional nak executable override

      Outputs:
        - naddr string starting with "naddr1", without relay hints

      Properties:
        - Deterministic: same pubkey, kind and identifier give the same naddr

      Raises:
        - NakInvocationError: malformed address, nak failure or output that
          is not an naddr
    """
    _check_address(pubkey, identifier)

    args = ["encode", "naddr", "--kind", str(kind), "--identifier", identifier, "--pubkey", pubkey]
    returncode, stdout, stderr = await run_nak(args, binary=binary)
    if returncode != 0:
        raise NakInvocationError(stderr.strip() or f"nak exited with code {returncode}")

    naddr = stdout.strip()
    validate_naddr(naddr)
    return naddr


def validate_naddr(naddr: str) -> None:
    """Check the shape of an naddr without decoding it.

    Raises:
        - NakInvocationError: empty, whitespace, wrong prefix, no payload or
          a character outside the bech32 alphabet
    """
    if not naddr or not isinstance(naddr, str):
        raise NakInvocationError("naddr must be non-empty string")
    if any(c.isspace() for c in naddr):
        raise NakInvocationError("naddr must not contain whitespace")
    if not naddr.startswith(NADDR_PREFIX) or len(naddr) == len(NADDR_PREFIX):
        raise NakInvocationError(f"naddr must start with '{NADDR_PREFIX}' followed by data, got: {naddr[:10]}")

    invalid_chars = sorted(set(naddr[len(NADDR_PREFIX):]) - BECH32_CHARS)
    if invalid_chars:
        raise NakInvocationError(f"naddr contains invalid bech32 character: '{invalid_chars[0]}'")
