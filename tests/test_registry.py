"""
Tests for TenantRegistry.
"""

import asyncio
from pathlib import Path

import pytest

from smartmoney.config import StoreSettings
from smartmoney.storage import HandleState, StorageError, TenantRegistry, validate_tenant_id
from smartmoney.storage.registry import remove_database_files
from tests.conftest import make_transaction, run


class TestTenantIds:
    """Tenant id validation."""

    @pytest.mark.parametrize("tenant_id", ["alice", "Alice_01", "a.b", "user@example.com", "x-y+z"])
    def test_valid_ids(self, tenant_id):
        """Test ids accepted as part of a storage name."""
        assert validate_tenant_id(tenant_id) == tenant_id

    @pytest.mark.parametrize("tenant_id", ["", "..", "a/b", "a\\b", "has space", "x" * 65])
    def test_invalid_ids(self, tenant_id):
        """Test ids that can't become a file name."""
        with pytest.raises(ValueError):
            validate_tenant_id(tenant_id)

    def test_resolve_rejects_empty_id(self, registry):
        """Test that resolve() refuses an empty tenant id."""
        with pytest.raises(ValueError):
            run(registry.resolve(""))


class TestNaming:
    """Storage names and paths."""

    def test_storage_name_is_deterministic(self, registry, store_settings):
        """Test the storage name and file location."""
        assert registry.storage_name("alice") == "store_alice"
        assert registry.storage_path("alice") == store_settings.data_dir / "store_alice.db"
        assert registry.staging_path("alice").name == "store_alice.db.staging"

    def test_custom_prefix(self, tmp_path):
        """Test that the prefix comes from settings."""
        registry = TenantRegistry(StoreSettings(data_dir=tmp_path, name_prefix="db_"))
        assert registry.storage_name("alice") == "db_alice"


class TestResolve:
    """Handle identity and eviction."""

    def test_same_id_same_handle(self, registry):
        """Test that resolve() is stable until evict()."""
        async def scenario():
            first = await registry.resolve("alice")
            second = await registry.resolve("alice")
            return first, second

        first, second = run(scenario())
        assert first is second

    def test_different_ids_different_handles(self, registry):
        """Test that tenants never share a handle."""
        async def scenario():
            return await registry.resolve("alice"), await registry.resolve("bob")

        alice, bob = run(scenario())
        assert alice is not bob
        assert alice.path != bob.path

    def test_concurrent_resolve(self, registry):
        """Test that racing resolves still create one handle."""
        async def scenario():
            return await asyncio.gather(*(registry.resolve("alice") for _ in range(10)))

        handles = run(scenario())
        assert all(h is handles[0] for h in handles)

    def test_resolve_does_not_open(self, registry):
        """Test that resolving alone creates no file."""
        handle = run(registry.resolve("alice"))
        assert handle.state is HandleState.UNOPENED
        assert not registry.storage_exists("alice")

    def test_evict_gives_new_handle(self, registry):
        """Test that a handle resolved after evict() is a different object."""
        async def scenario():
            first = await registry.resolve("alice")
            await first.transactions.add(make_transaction("t1"))
            evicted = await registry.evict("alice")
            second = await registry.resolve("alice")
            count = await second.transactions.count()
            return first, evicted, second, count

        first, evicted, second, count = run(scenario())
        assert evicted is first
        assert second is not first
        assert first.is_open  # evict() doesn't close
        assert count == 1

    def test_evict_unknown_tenant(self, registry):
        """Test evicting a tenant that was never resolved."""
        assert run(registry.evict("nobody")) is None

    def test_registries_are_isolated(self, store_settings):
        """Test that two registries keep separate caches."""
        one = TenantRegistry(store_settings)
        two = TenantRegistry(store_settings)

        async def scenario():
            return await one.resolve("alice"), await two.resolve("alice")

        a, b = run(scenario())
        assert a is not b
        assert one.cached_tenants() == ["alice"]

    def test_close_all(self, registry):
        """Test closing every cached handle."""
        async def scenario():
            a = await registry.resolve("alice")
            b = await registry.resolve("bob")
            await a.open()
            await b.open()
            await registry.close_all()
            return a.state, b.state

        assert run(scenario()) == (HandleState.CLOSED, HandleState.CLOSED)


class TestDeleteStorage:
    """Permanent deletion of a tenant database."""

    def test_delete_requires_closed_handle(self, registry):
        """Test that an open handle blocks deletion."""
        async def scenario():
            handle = await registry.resolve("alice")
            await handle.open()
            with pytest.raises(StorageError):
                await registry.delete_storage("alice")
            await handle.close()
            deleted = await registry.delete_storage("alice")
            again = await registry.delete_storage("alice")
            return deleted, again

        assert run(scenario()) == (True, False)
        assert not registry.storage_exists("alice")

    def test_remove_database_files_removes_side_files(self, tmp_path):
        """Test that journal files go with the database."""
        path = tmp_path / "store_alice.db"
        path.write_bytes(b"")
        journal = tmp_path / "store_alice.db-journal"
        journal.write_bytes(b"")

        assert run(remove_database_files(path)) is True
        assert not path.exists()
        assert not journal.exists()
        assert run(remove_database_files(path)) is False

    def test_remove_database_files_retries_permission_error(self, tmp_path, monkeypatch):
        """Test that a file held briefly by another process is removed on a later attempt."""
        path = tmp_path / "store_alice.db"
        path.write_bytes(b"")
        original_unlink = Path.unlink
        calls = []

        def flaky_unlink(self, missing_ok=False):
            calls.append(self.name)
            if self == path and calls.count(path.name) == 1:
                raise PermissionError("file is in use")
            return original_unlink(self, missing_ok=missing_ok)

        monkeypatch.setattr(Path, "unlink", flaky_unlink)

        assert run(remove_database_files(path)) is True
        assert calls.count(path.name) == 2
        assert not path.exists()


class TestCaseVariants:
    """Storage lookups that ignore letter case."""

    def test_tenant_ids_like_ignores_case(self, registry, store_settings):
        """Test that Bob's storage is found when asking for bob."""
        async def scenario():
            handle = await registry.resolve("Bob")
            await handle.transactions.add(make_transaction("t1"))
            await handle.close()

        run(scenario())

        assert registry.tenant_ids_like("bob") == ["Bob"]
        assert registry.tenant_ids_like("BOB") == ["Bob"]
        assert registry.tenant_ids_like("bobby") == []

    def test_tenant_ids_like_skips_staging_and_side_files(self, registry, store_settings):
        """Test that only real database files count as tenants."""
        data_dir = store_settings.data_dir
        data_dir.mkdir(parents=True)
        (data_dir / "store_bob.db.staging").write_bytes(b"")
        (data_dir / "store_bob.db-journal").write_bytes(b"")
        (data_dir / "other_bob.db").write_bytes(b"")

        assert registry.tenant_ids_like("bob") == []

    def test_tenant_ids_like_without_data_dir(self, registry):
        """Test that a missing data directory means no tenants."""
        assert registry.tenant_ids_like("bob") == []

    def test_storage_has_data(self, registry):
        """Test empty, populated and missing storage."""
        async def scenario():
            empty = await registry.resolve("empty")
            await empty.open()
            await empty.close()
            full = await registry.resolve("full")
            await full.transactions.add(make_transaction("t1"))
            open_result = await registry.storage_has_data("full")
            await full.close()
            return (
                await registry.storage_has_data("empty"),
                open_result,
                await registry.storage_has_data("full"),
                await registry.storage_has_data("missing"),
            )

        assert run(scenario()) == (False, True, True, False)
        assert registry.cached_tenants() == ["empty", "full"]
        assert not registry.storage_exists("missing")
