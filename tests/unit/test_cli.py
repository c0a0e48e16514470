"""Unit tests for the ``cbpro`` command line interface."""

import json
import logging

import pytest
import yaml
from click.testing import CliRunner

from cbpro_client.api.auth import CredentialManager, Credentials
from cbpro_client.main import cli

from conftest import (
    TEST_KEY,
    TEST_PASSPHRASE,
    TEST_SECRET,
    FakeTransport,
    hold_entry,
    ledger_entry,
    make_response,
)


@pytest.fixture
def config_path(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump({
        "logging": {"log_dir": str(tmp_path / "logs"), "console": False},
    }))
    yield str(path)
    root = logging.getLogger()
    for handler in list(root.handlers):
        if getattr(handler, "_cbpro_managed", False):
            root.removeHandler(handler)
            handler.close()


@pytest.fixture
def transport(monkeypatch):
    fake = FakeTransport()
    monkeypatch.setattr("cbpro_client.api.client.RequestsTransport", lambda: fake)
    return fake


def run(config_path, *args):
    return CliRunner().invoke(cli, ["--config-path", config_path, *args], obj={})


class TestAccountsCommands:

    def test_list(self, config_path, transport, sample_accounts):
        transport.queue(make_response(200, sample_accounts))

        result = run(config_path, "accounts", "list")

        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert [a["balance"] for a in data] == ["0.0000000000000001", "80.2301373066930000"]
        assert transport.closed
        assert transport.requests[0].url == "https://api.pro.coinbase.com/accounts"

    def test_sandbox_flag(self, config_path, transport):
        transport.queue(make_response(200, []))

        result = run(config_path, "--sandbox", "accounts", "list")

        assert result.exit_code == 0, result.output
        assert transport.requests[0].url.startswith("https://api-public.sandbox.pro.coinbase.com/")

    def test_get(self, config_path, transport):
        transport.queue(make_response(200, {"id": "a1", "balance": "1.100", "holds": "0.100",
                                            "available": "1.00", "currency": "USD"}))

        result = run(config_path, "accounts", "get", "a1")

        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout)["holds"] == "0.100"

    def test_api_error_exit_code(self, config_path, transport):
        transport.queue(make_response(401, {"message": "invalid signature"}))

        result = run(config_path, "accounts", "get", "a1")

        assert result.exit_code == 1
        assert "invalid signature" in result.output
        assert TEST_SECRET not in result.output

    def test_ledger_follows_cursor(self, config_path, transport):
        transport.queue(
            make_response(200, [ledger_entry(2)], headers={"CB-AFTER": "2"}),
            make_response(200, [ledger_entry(1)]),
        )

        result = run(config_path, "accounts", "ledger", "a1", "--limit", "1")

        assert result.exit_code == 0, result.output
        assert [e["id"] for e in json.loads(result.stdout)] == ["2", "1"]
        assert transport.requests[1].path_url == "/accounts/a1/ledger?limit=1&after=2"

    def test_holds_max_items(self, config_path, transport):
        transport.queue(make_response(200, [hold_entry("h1"), hold_entry("h2")], headers={"CB-AFTER": "c"}))

        result = run(config_path, "accounts", "holds", "a1", "--max-items", "1")

        assert result.exit_code == 0, result.output
        assert [h["id"] for h in json.loads(result.stdout)] == ["h1"]
        assert len(transport.requests) == 1

    def test_partial_results_printed_on_failure(self, config_path, transport):
        transport.queue(
            make_response(200, [hold_entry("h1")], headers={"CB-AFTER": "c"}),
            make_response(503, {"message": "unavailable"}),
        )

        result = run(config_path, "accounts", "holds", "a1")

        assert result.exit_code == 1
        assert '"id": "h1"' in result.output
        assert "unavailable" in result.output

    def test_limit_out_of_range(self, config_path, transport):
        result = run(config_path, "accounts", "ledger", "a1", "--limit", "101")
        assert result.exit_code == 2
        assert transport.requests == []

    def test_missing_credentials(self, config_path, transport, monkeypatch):
        monkeypatch.delenv("CBPRO_API_SECRET")

        result = run(config_path, "accounts", "list")

        assert result.exit_code == 1
        assert "Invalid credentials" in result.output
        assert transport.requests == []


class TestCredentialsCommands:

    def test_store_and_check(self, tmp_path):
        path = str(tmp_path / "creds.json")

        stored = CliRunner().invoke(cli, [
            "credentials", "store", "-o", path,
            "--key", TEST_KEY, "--secret", TEST_SECRET, "--passphrase", TEST_PASSPHRASE,
        ], obj={})
        checked = CliRunner().invoke(cli, ["credentials", "check", path], obj={})

        assert stored.exit_code == 0, stored.output
        assert checked.exit_code == 0, checked.output
        assert TEST_KEY in checked.output
        assert CredentialManager().load(path) == Credentials(TEST_KEY, TEST_SECRET, TEST_PASSPHRASE)

    def test_store_rejects_bad_secret(self, tmp_path):
        result = CliRunner().invoke(cli, [
            "credentials", "store", "-o", str(tmp_path / "creds.json"),
            "--key", TEST_KEY, "--secret", "not base64!", "--passphrase", TEST_PASSPHRASE,
        ], obj={})
        assert result.exit_code == 1

    def test_accounts_with_credentials_file(self, tmp_path, config_path, transport, monkeypatch):
        path = str(tmp_path / "creds.json")
        CredentialManager().store(Credentials("file-key", TEST_SECRET, TEST_PASSPHRASE), path)
        monkeypatch.delenv("CBPRO_API_KEY")
        transport.queue(make_response(200, []))

        result = CliRunner().invoke(cli, ["--config-path", config_path, "--credentials-file", path,
                                          "accounts", "list"], obj={})

        assert result.exit_code == 0, result.output
        assert transport.requests[0].headers["CB-ACCESS-KEY"] == "file-key"
