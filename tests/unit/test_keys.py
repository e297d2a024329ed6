"""Unit tests for secret key validation and resolution."""

import pytest
from hypothesis import given
from hypothesis import strategies as st

from smart_widget import keys
from smart_widget.errors import InvalidSecretKeyError
from smart_widget.keys import (
    SECP256K1_ORDER,
    generate_secret_key,
    is_valid_secret_key,
    process_secret_key,
    resolve_secret_key,
)

from conftest import TEST_SECRET_KEY

OTHER_KEY = "0000000000000000000000000000000000000000000000000000000000000003"

hex_keys = st.integers(min_value=1, max_value=SECP256K1_ORDER - 1).map(lambda n: f"{n:064x}")


class TestIsValidSecretKey:
    @given(hex_keys)
    def test_scalars_in_range_are_valid(self, key):
        assert is_valid_secret_key(key)

    def test_zero_is_invalid(self):
        assert not is_valid_secret_key("0" * 64)

    def test_group_order_is_invalid(self):
        assert not is_valid_secret_key(f"{SECP256K1_ORDER:064x}")

    @pytest.mark.parametrize("key", ["", "ab", "g" * 64, "a" * 63, "a" * 65, None, 12])
    def test_malformed_keys_are_invalid(self, key):
        assert not is_valid_secret_key(key)


class TestGenerateSecretKey:
    def test_generated_keys_are_valid_and_distinct(self):
        first, second = generate_secret_key(), generate_secret_key()
        assert is_valid_secret_key(first)
        assert is_valid_secret_key(second)
        assert first != second

    def test_process_key_is_reused(self, monkeypatch):
        monkeypatch.setattr(keys, "_process_key", None)
        assert process_secret_key() == process_secret_key()


class TestResolveSecretKey:
    def test_explicit_key_wins(self):
        assert resolve_secret_key(TEST_SECRET_KEY, environ={"SECRET_KEY": OTHER_KEY}) == TEST_SECRET_KEY

    def test_invalid_explicit_key_raises(self):
        with pytest.raises(InvalidSecretKeyError):
            resolve_secret_key("not-a-key", environ={})

    def test_environment_key_used(self):
        assert resolve_secret_key(None, environ={"SECRET_KEY": OTHER_KEY}) == OTHER_KEY

    def test_invalid_environment_key_raises(self):
        with pytest.raises(InvalidSecretKeyError, match="SECRET_KEY"):
            resolve_secret_key(None, environ={"SECRET_KEY": "zz"})

    def test_injected_generator_used_as_fallback(self, capsys):
        assert resolve_secret_key(None, key_generator=lambda: OTHER_KEY, environ={}) == OTHER_KEY
        assert "ephemeral key" in capsys.readouterr().err

    def test_invalid_generated_key_raises(self):
        with pytest.raises(InvalidSecretKeyError):
            resolve_secret_key(None, key_generator=lambda: "0" * 64, environ={})

    def test_process_fallback_stable_across_calls(self, monkeypatch):
        monkeypatch.setattr(keys, "_process_key", None)
        assert resolve_secret_key(None, environ={}) == resolve_secret_key(None, environ={})

    def test_reads_os_environment(self, monkeypatch):
        monkeypatch.setattr(keys, "load_dotenv", lambda: False)
        monkeypatch.setenv("SECRET_KEY", OTHER_KEY)
        assert resolve_secret_key() == OTHER_KEY
