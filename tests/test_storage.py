"""
Tests for storage backends, conditional updates and transaction support
"""

import pytest
import tempfile
import threading
from decimal import Decimal
from datetime import datetime, timezone
from pathlib import Path

from vault_ledger.errors import DuplicateRecordError
from vault_ledger.storage import (
    InMemoryStorage, SQLiteStorage, PostgreSQLStorage, StorageInterface,
    create_storage
)
from vault_ledger.wallets import WalletEngine


# Test data
test_data = {
    "id": "test_001",
    "user_id": "user_1",
    "balance": "100.50",
    "created_at": datetime.now(timezone.utc).isoformat(),
    "updated_at": datetime.now(timezone.utc).isoformat()
}


@pytest.fixture(params=["memory", "sqlite"])
def storage(request, tmp_path):
    if request.param == "memory":
        backend = InMemoryStorage()
    else:
        backend = SQLiteStorage(tmp_path / "test.db")
    yield backend
    backend.close()


class TestStorageInterface:
    """Behaviour shared by every backend"""

    def test_basic_operations(self, storage):
        """Test basic CRUD operations"""
        storage.insert("test_table", "test_001", test_data)
        assert storage.load("test_table", "test_001") == test_data
        assert storage.exists("test_table", "test_001")
        assert not storage.exists("test_table", "non_existent")
        assert storage.load("test_table", "non_existent") is None

        storage.save("test_table", "record_2", {"id": "record_2", "user_id": "user_2"})
        assert len(storage.load_all("test_table")) == 2
        assert storage.count("test_table") == 2

        results = storage.find("test_table", {"user_id": "user_1"})
        assert len(results) == 1
        assert results[0]["id"] == "test_001"
        assert storage.find_one("test_table", {"user_id": "nobody"}) is None

        assert storage.delete("test_table", "test_001")
        assert not storage.delete("test_table", "test_001")
        assert storage.count("test_table") == 1

        storage.clear_table("test_table")
        assert storage.count("test_table") == 0

    def test_insert_rejects_duplicate_id(self, storage):
        storage.insert("test_table", "test_001", test_data)
        with pytest.raises(DuplicateRecordError):
            storage.insert("test_table", "test_001", test_data)

    def test_save_overwrites(self, storage):
        storage.save("test_table", "test_001", test_data)
        storage.save("test_table", "test_001", {**test_data, "balance": "1.00"})
        assert storage.load("test_table", "test_001")["balance"] == "1.00"
        assert storage.count("test_table") == 1

    def test_update_where_applies_only_on_expected_state(self, storage):
        storage.insert("test_table", "test_001", test_data)

        updated = storage.update_where(
            "test_table", {"id": "test_001", "balance": Decimal("100.50")},
            {"balance": Decimal("90.50")}
        )
        assert updated == 1
        assert storage.load("test_table", "test_001")["balance"] == "90.50"

        # Stale expectation is rejected
        updated = storage.update_where(
            "test_table", {"id": "test_001", "balance": "100.50"}, {"balance": "0.00"}
        )
        assert updated == 0
        assert storage.load("test_table", "test_001")["balance"] == "90.50"

    def test_update_where_matches_null_fields(self, storage):
        storage.insert("test_table", "v1", {"id": "v1", "last_deducted_date": None})
        assert storage.update_where(
            "test_table", {"id": "v1", "last_deducted_date": None},
            {"last_deducted_date": "2026-10-17"}
        ) == 1
        assert storage.load("test_table", "v1")["last_deducted_date"] == "2026-10-17"

    def test_atomic_commits(self, storage):
        with storage.atomic():
            storage.insert("test_table", "a", {"id": "a"})
            storage.insert("test_table", "b", {"id": "b"})
        assert storage.count("test_table") == 2

    def test_atomic_rolls_back_everything_on_error(self, storage):
        storage.insert("test_table", "test_001", test_data)

        with pytest.raises(RuntimeError):
            with storage.atomic():
                storage.update_where("test_table", {"id": "test_001"}, {"balance": "0.00"})
                storage.insert("test_table", "other", {"id": "other"})
                raise RuntimeError("fail mid-way")

        assert storage.load("test_table", "test_001")["balance"] == "100.50"
        assert not storage.exists("test_table", "other")

    def test_nested_atomic_joins_outer_transaction(self, storage):
        with pytest.raises(RuntimeError):
            with storage.atomic():
                with storage.atomic():
                    storage.insert("test_table", "inner", {"id": "inner"})
                raise RuntimeError("outer fails")

        assert not storage.exists("test_table", "inner")

    def test_storage_usable_after_rollback(self, storage):
        with pytest.raises(DuplicateRecordError):
            with storage.atomic():
                storage.insert("test_table", "a", {"id": "a"})
                storage.insert("test_table", "a", {"id": "a"})

        storage.insert("test_table", "b", {"id": "b"})
        assert storage.count("test_table") == 1


class TestSQLitePersistence:
    """SQLite specific behaviour"""

    def test_data_survives_reopen(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            db_path = Path(temp_dir) / "test.db"
            storage = SQLiteStorage(db_path)
            storage.insert("test_table", "test_001", test_data)
            storage.close()

            reopened = SQLiteStorage(db_path)
            assert reopened.load("test_table", "test_001") == test_data
            reopened.close()

    def test_concurrent_funding_across_connections_loses_no_updates(self, tmp_path):
        """Two connections behave like two processes sharing the database"""
        db_path = tmp_path / "shared.db"
        first = SQLiteStorage(db_path)
        second = SQLiteStorage(db_path)
        engine_a = WalletEngine(first)
        engine_b = WalletEngine(second)
        engine_a.create_wallet("user_1")

        def fund_many(engine):
            for _ in range(20):
                engine.fund("user_1", "1.00")

        threads = [
            threading.Thread(target=fund_many, args=(engine_a,)),
            threading.Thread(target=fund_many, args=(engine_b,)),
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert engine_a.get_wallet("user_1").balance == Decimal("40.00")
        assert first.count("transactions") == 40
        first.close()
        second.close()


class TestCreateStorage:
    """Backend selection from database URLs"""

    def test_memory_url(self):
        assert isinstance(create_storage("memory://"), InMemoryStorage)

    def test_sqlite_urls(self, tmp_path):
        storage = create_storage(f"sqlite:///{tmp_path / 'app.db'}")
        assert isinstance(storage, SQLiteStorage)
        storage.close()

        in_memory = create_storage("sqlite:///:memory:")
        assert isinstance(in_memory, SQLiteStorage)
        assert in_memory.db_path == ":memory:"
        in_memory.close()

    def test_unknown_url(self):
        with pytest.raises(ValueError):
            create_storage("mysql://localhost/db")

    def test_backends_implement_interface(self):
        for backend in (InMemoryStorage, SQLiteStorage, PostgreSQLStorage):
            assert issubclass(backend, StorageInterface)
