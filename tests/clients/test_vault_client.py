"""Tests for VaultClient - HashiCorp Vault secrets management.

hvac is mocked; these tests never talk to a Vault server.
"""

from unittest.mock import patch

import pytest
from hvac.exceptions import Forbidden, InvalidPath

import clients.vault_client as vault_module
from clients.vault_client import VaultClient, get_database_url


@pytest.fixture
def vault_env(monkeypatch):
    monkeypatch.setenv("VAULT_ADDR", "http://vault.test:8200")
    monkeypatch.setenv("VAULT_ROLE_ID", "role")
    monkeypatch.setenv("VAULT_SECRET_ID", "secret")
    monkeypatch.delenv("VAULT_NAMESPACE", raising=False)


@pytest.fixture
def hvac_client():
    with patch("clients.vault_client.hvac.Client") as client_cls:
        client = client_cls.return_value
        client.auth.approle.login.return_value = {"auth": {"client_token": "token"}}
        client.is_authenticated.return_value = True
        yield client


@pytest.fixture(autouse=True)
def reset_vault_singleton(monkeypatch):
    monkeypatch.setattr(vault_module, "_vault_client_instance", None)
    monkeypatch.setattr(vault_module, "_secret_cache", {})


class TestVaultClientInit:
    """Initialization and authentication."""

    def test_missing_vault_addr_raises(self, monkeypatch):
        """VAULT_ADDR required."""
        monkeypatch.delenv("VAULT_ADDR", raising=False)
        with pytest.raises(ValueError, match="VAULT_ADDR"):
            VaultClient()

    def test_missing_approle_credentials_raises(self, vault_env, monkeypatch):
        """VAULT_ROLE_ID and VAULT_SECRET_ID required."""
        monkeypatch.delenv("VAULT_ROLE_ID")
        with pytest.raises(ValueError, match="VAULT_ROLE_ID"):
            VaultClient()

    def test_login_failure_raises_permission_error(self, vault_env, hvac_client):
        """Rejected AppRole login surfaces as PermissionError."""
        hvac_client.auth.approle.login.side_effect = Forbidden("denied")
        with pytest.raises(PermissionError, match="authentication"):
            VaultClient()

    def test_valid_approle_authenticates(self, vault_env, hvac_client):
        """Token from the AppRole login is installed on the client."""
        client = VaultClient()
        assert client.client.token == "token"


class TestGetSecret:
    """Secret retrieval - paths automatically scoped to ledger/."""

    def test_returns_field_value(self, vault_env, hvac_client):
        hvac_client.secrets.kv.v2.read_secret_version.return_value = {
            "data": {"data": {"url": "postgresql://ledger"}}
        }

        assert VaultClient().get_secret("database", "url") == "postgresql://ledger"
        hvac_client.secrets.kv.v2.read_secret_version.assert_called_once_with(
            path="ledger/database", raise_on_deleted_version=True
        )

    def test_missing_field_raises_key_error(self, vault_env, hvac_client):
        hvac_client.secrets.kv.v2.read_secret_version.return_value = {"data": {"data": {"user": "x"}}}

        with pytest.raises(KeyError, match="url"):
            VaultClient().get_secret("database", "url")

    def test_missing_path_raises_permission_error(self, vault_env, hvac_client):
        hvac_client.secrets.kv.v2.read_secret_version.side_effect = InvalidPath("gone")

        with pytest.raises(PermissionError, match="ledger/nowhere"):
            VaultClient().get_secret("nowhere", "url")


class TestGetDatabaseUrl:
    """DATABASE_URL overrides Vault; Vault lookups are cached."""

    def test_environment_wins(self, monkeypatch, hvac_client):
        monkeypatch.setenv("DATABASE_URL", "postgresql://env")

        assert get_database_url() == "postgresql://env"
        hvac_client.secrets.kv.v2.read_secret_version.assert_not_called()

    def test_reads_vault_once(self, monkeypatch, vault_env, hvac_client):
        monkeypatch.delenv("DATABASE_URL", raising=False)
        hvac_client.secrets.kv.v2.read_secret_version.return_value = {
            "data": {"data": {"url": "postgresql://vault"}}
        }

        assert get_database_url() == "postgresql://vault"
        assert get_database_url() == "postgresql://vault"
        assert hvac_client.secrets.kv.v2.read_secret_version.call_count == 1
