"""
Tests for tenant configuration storage.
"""

import json

import pytest
from cryptography.fernet import Fernet

from desk_bridge.contracts.tenant import TenantConfig
from desk_bridge.errors import ValidationError
from desk_bridge.persistence.tenants import InMemoryTenantDirectory, RedisTenantDirectory


class FakeRedisHash:
    """The subset of redis.Redis hash commands used by the directory."""

    def __init__(self):
        self.hashes: dict[str, dict[str, str]] = {}

    def hget(self, name, key):
        return self.hashes.get(name, {}).get(key)

    def hgetall(self, name):
        return dict(self.hashes.get(name, {}))

    def hset(self, name, key, value):
        self.hashes.setdefault(name, {})[key] = value
        return 1


@pytest.fixture
def fernet_key():
    return Fernet.generate_key().decode()


class TestInMemoryTenantDirectory:
    def test_save_and_get(self, tenant):
        directory = InMemoryTenantDirectory()

        directory.save(tenant)

        assert directory.get("acme") == tenant
        assert directory.get("globex") is None

    def test_list_is_sorted(self, tenant):
        other = TenantConfig(**{**tenant.to_dict(), "tenant_id": "aaa"})
        directory = InMemoryTenantDirectory([tenant, other])

        assert [t.tenant_id for t in directory.list_tenants()] == ["aaa", "acme"]

    def test_empty_tenant_id_rejected(self, tenant):
        with pytest.raises(ValidationError):
            InMemoryTenantDirectory().save(TenantConfig(**{**tenant.to_dict(), "tenant_id": ""}))


class TestRedisTenantDirectory:
    """Tests for the Redis-backed directory."""

    def test_round_trip_without_key(self, tenant):
        client = FakeRedisHash()
        directory = RedisTenantDirectory(client)

        directory.save(tenant)

        assert directory.get("acme") == tenant
        assert json.loads(client.hashes["bridge:tenants"]["acme"])["access_token"] == "desk-token"

    def test_secrets_are_encrypted_at_rest(self, tenant, fernet_key):
        client = FakeRedisHash()
        directory = RedisTenantDirectory(client, encryption_key=fernet_key)
        secret = TenantConfig(**{**tenant.to_dict(), "gateway_api_key": "evo-key"})

        directory.save(secret)

        stored = json.loads(client.hashes["bridge:tenants"]["acme"])
        assert stored["access_token"] != "desk-token"
        assert stored["gateway_api_key"] != "evo-key"
        assert stored["desk_url"] == "https://desk.test"
        assert directory.get("acme") == secret

    def test_plaintext_secret_is_read_after_enabling_key(self, tenant, fernet_key):
        """Configs written before encryption was enabled still load."""
        client = FakeRedisHash()
        RedisTenantDirectory(client).save(tenant)

        loaded = RedisTenantDirectory(client, encryption_key=fernet_key).get("acme")

        assert loaded.access_token == "desk-token"

    def test_list_tenants(self, tenant):
        client = FakeRedisHash()
        directory = RedisTenantDirectory(client)
        directory.save(tenant)
        directory.save(TenantConfig(**{**tenant.to_dict(), "tenant_id": "aaa", "inbox_id": None, "inbox_name": "X"}))

        tenants = directory.list_tenants()

        assert [t.tenant_id for t in tenants] == ["aaa", "acme"]
        assert tenants[0].inbox_id is None
        assert tenants[0].inbox_name == "X"


class TestTenantConfig:
    def test_session_name_defaults_to_tenant_id(self, tenant):
        bare = TenantConfig(**{**tenant.to_dict(), "instance_name": ""})

        assert bare.session_name == "acme"
        assert tenant.session_name == "acme-session"

    def test_from_dict_coerces_values(self):
        config = TenantConfig.from_dict({"tenant_id": "acme", "account_id": 3, "inbox_id": "7"})

        assert config.account_id == "3"
        assert config.inbox_id == 7
        assert config.mirror_self_messages is False
