"""Unit tests for the smart-widget CLI.

The Widget class is patched to run against the in-memory client so no
nak process is spawned.
"""

import json

import pytest

from smart_widget import cli
from smart_widget.cli import build_filter, main, parse_arguments
from smart_widget.errors import NakInvocationError
from smart_widget.relay import DEFAULT_RELAYS
from smart_widget.widget import DEFAULT_PUBLISH_TIMEOUT, Widget

from conftest import TEST_NADDR, TEST_PUBKEY, TEST_SECRET_KEY, FakeClient, fake_naddr_encoder

WIDGET_YAML = """\
title: Coffee
identifier: coffee-1
image: https://example.com/image.png
buttons:
  - {label: Open, type: redirect, url: "https://example.com"}
"""


@pytest.fixture
def definition_file(tmp_path):
    path = tmp_path / "widget.yaml"
    path.write_text(WIDGET_YAML, encoding="utf-8")
    return path


@pytest.fixture
def fake_widget(monkeypatch):
    """Patch cli.Widget so every widget shares one FakeClient."""
    client = FakeClient()

    def factory(*args, **kwargs):
        return Widget(*args, client=client, naddr_encoder=fake_naddr_encoder, **kwargs)

    monkeypatch.setattr(cli, "Widget", factory)
    return client


# ============================================================================
# parse_arguments Tests
# ============================================================================


class TestParseArguments:
    def test_publish_defaults(self):
        args = parse_arguments(["publish", "widget.yaml"])
        assert args["command"] == "publish"
        assert str(args["file"]) == "widget.yaml"
        assert args["relays"] == DEFAULT_RELAYS
        assert args["secret_key"] is None
        assert args["identifier"] is None
        assert args["timeout"] == DEFAULT_PUBLISH_TIMEOUT
        assert args["dry_run"] is False

    def test_repeated_relays(self):
        args = parse_arguments(["publish", "w.yaml", "--relay", "wss://a.com", "--relay", "wss://b.com"])
        assert args["relays"] == ["wss://a.com", "wss://b.com"]

    def test_non_positive_timeout_rejected(self):
        with pytest.raises(SystemExit):
            parse_arguments(["publish", "w.yaml", "--timeout", "0"])

    def test_search_builds_filter(self):
        args = parse_arguments(["search", "--author", "alice", "--tag", "coffee", "--limit", "5"])
        assert args["filters"] == [
            {"kinds": [30033], "authors": ["alice"], "#t": ["coffee"], "#d": [], "limit": 5}
        ]

    def test_search_raw_filter_object(self):
        args = parse_arguments(["search", "--filter", '{"kinds": [1]}'])
        assert args["filters"] == [{"kinds": [1]}]

    def test_search_raw_filter_array(self):
        args = parse_arguments(["search", "--filter", '[{"kinds": [1]}, {"kinds": [2]}]'])
        assert args["filters"] == [{"kinds": [1]}, {"kinds": [2]}]

    @pytest.mark.parametrize("raw", ["{not json", "42"])
    def test_search_bad_filter_rejected(self, raw):
        with pytest.raises(SystemExit):
            parse_arguments(["search", "--filter", raw])

    def test_non_positive_quiet_period_rejected(self):
        with pytest.raises(SystemExit):
            parse_arguments(["search", "--quiet-period", "-1"])

    def test_command_required(self):
        with pytest.raises(SystemExit):
            parse_arguments([])


def test_build_filter_defaults_to_widget_kind():
    assert build_filter([], [], [], [], None)["kinds"] == [30033]
    assert build_filter([1, 7], [], [], [], None)["kinds"] == [1, 7]


# ============================================================================
# main Tests
# ============================================================================


class TestMainPublish:
    def test_dry_run_signs_without_publishing(self, definition_file, fake_widget, capsys):
        exit_code = main(["publish", str(definition_file), "--dry-run", "--secret-key", TEST_SECRET_KEY])

        assert exit_code == 0
        output = json.loads(capsys.readouterr().out)
        assert output["published"] is False
        assert output["identifier"] == "coffee-1"
        assert output["naddr"] == TEST_NADDR
        assert output["event"]["content"] == "Coffee"
        assert fake_widget.published == []

    def test_publish(self, definition_file, fake_widget, capsys):
        exit_code = main(
            ["publish", str(definition_file), "--identifier", "override", "--secret-key", TEST_SECRET_KEY]
        )

        assert exit_code == 0
        output = json.loads(capsys.readouterr().out)
        assert output["published"] is True
        assert output["identifier"] == "override"
        assert output["pubkey"] == TEST_PUBKEY
        assert len(fake_widget.published) == 1

    def test_publish_failure_prints_cause(self, definition_file, fake_widget, capsys):
        fake_widget.publish_error = NakInvocationError("connection refused")

        exit_code = main(["publish", str(definition_file), "--secret-key", TEST_SECRET_KEY])

        assert exit_code == 1
        err = capsys.readouterr().err
        assert err.startswith("ERROR: PublishError: Event could not be published")
        assert "caused by NakInvocationError: connection refused" in err

    def test_missing_file(self, tmp_path, fake_widget, capsys):
        exit_code = main(["publish", str(tmp_path / "nope.yaml"), "--secret-key", TEST_SECRET_KEY])
        assert exit_code == 1
        assert capsys.readouterr().err.startswith("ERROR: FileNotFoundError:")

    def test_invalid_definition(self, tmp_path, fake_widget, capsys):
        path = tmp_path / "widget.yaml"
        path.write_text("title: no image\n", encoding="utf-8")
        assert main(["publish", str(path), "--secret-key", TEST_SECRET_KEY]) == 1
        assert "ERROR: MissingFieldError:" in capsys.readouterr().err

    def test_invalid_relay(self, definition_file, fake_widget, capsys):
        exit_code = main(["publish", str(definition_file), "--relay", "ws://insecure.com", "--secret-key", TEST_SECRET_KEY])
        assert exit_code == 1
        assert "ERROR: InvalidRelaySetError:" in capsys.readouterr().err


class TestMainSearch:
    def test_search_without_results(self, fake_widget, capsys):
        exit_code = main(["search", "--tag", "coffee", "--quiet-period", "0.01", "--secret-key", TEST_SECRET_KEY])

        assert exit_code == 0
        assert json.loads(capsys.readouterr().out) == {"data": [], "pubkeys": []}
        assert fake_widget.connected
        assert fake_widget.subscriptions[0].filters == [{"kinds": [30033], "#t": ["coffee"]}]

    def test_unknown_filter_field(self, fake_widget, capsys):
        exit_code = main(["search", "--filter", '{"bogus": [1]}', "--secret-key", TEST_SECRET_KEY])
        assert exit_code == 1
        assert "ERROR: InvalidFilterError:" in capsys.readouterr().err
