"""Secret key validation and resolution.

A widget signs with, in order of preference: the key passed explicitly, the
SECRET_KEY environment variable (a .env file is honoured), or a fallback key.
The fallback is produced by an injected generator, or by the process-wide
generator which creates one random key and reuses it for the process lifetime.
"""

import os
import secrets
import sys
from typing import Callable

from dotenv import load_dotenv

from .errors import InvalidSecretKeyError

SECRET_KEY_ENV = "SECRET_KEY"

# Order of the secp256k1 group; valid private keys are in [1, N - 1]
SECP256K1_ORDER = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141

KeyGenerator = Callable[[], str]

_process_key: str | None = None


def is_valid_secret_key(secret_key) -> bool:
    """Check for a 64-character hex string encoding a scalar in [1, N - 1]."""
    if not isinstance(secret_key, str) or len(secret_key) != 64:
        return False
    try:
        value = int(secret_key, 16)
    except ValueError:
        return False
    return 0 < value < SECP256K1_ORDER


def generate_secret_key() -> str:
    """Generate a random valid secp256k1 private key as lowercase hex."""
    while True:
        candidate = secrets.token_hex(32)
        if is_valid_secret_key(candidate):
            return candidate


def process_secret_key() -> str:
    """Return the process-wide fallback key, generating it on first use."""
    global _process_key
    if _process_key is None:
        _process_key = generate_secret_key()
    return _process_key


def resolve_secret_key(
    secret_key: str | None = None, key_generator: KeyGenerator | None = None, environ=None
) -> str:
    """Resolve the signing key for a widget.

    CONTRACT:
      Inputs:
        - secret_key: explicit hex key or None
        - key_generator: optional zero-argument callable returning a hex key,
          used instead of the process-wide fallback
        - environ: mapping to read SECRET_KEY from (default: os.environ after
          loading .env)

      Outputs:
        - hex secret key string (validated)

      Algorithm:
        1. If secret_key is given: validate and return it
        2. If SECRET_KEY is set: validate and return it
        3. Otherwise call key_generator (or process_secret_key), validate,
           warn on stderr that an ephemeral key is in use, and return it

      Raises:
        - InvalidSecretKeyError: any candidate key is not a valid private key
    """
    if secret_key:
        if not is_valid_secret_key(secret_key):
            raise InvalidSecretKeyError("Invalid secretKey")
        return secret_key

    if environ is None:
        load_dotenv()
        environ = os.environ

    env_key = environ.get(SECRET_KEY_ENV)
    if env_key:
        if not is_valid_secret_key(env_key):
            raise InvalidSecretKeyError(f"Invalid secret key in ${SECRET_KEY_ENV}")
        return env_key

    generated = (key_generator or process_secret_key)()
    if not is_valid_secret_key(generated):
        raise InvalidSecretKeyError("Key generator produced an invalid secret key")

    sys.stderr.write(f"WARNING: no secret key provided and ${SECRET_KEY_ENV} unset, using an ephemeral key\n")
    return generated
