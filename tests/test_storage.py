"""
Tests for blob storage backends
"""

import pytest
import pytest_asyncio
import tempfile
from pathlib import Path
from unittest.mock import patch

from borrow_ledger.storage import (
    AsyncBlobStore, InMemoryBlobStore, FileBlobStore, SQLiteBlobStore,
    create_blob_store
)
from borrow_ledger.exceptions import StorageError


BLOB = '[{"id": "1", "amount": "12.50"}]'


class TestInMemoryBlobStore:
    """Test InMemoryBlobStore functionality"""

    @pytest_asyncio.fixture
    async def store(self):
        return InMemoryBlobStore()

    @pytest.mark.asyncio
    async def test_get_missing_key(self, store):
        assert await store.get("borrowed_money") is None

    @pytest.mark.asyncio
    async def test_set_and_get(self, store):
        await store.set("borrowed_money", BLOB)
        assert await store.get("borrowed_money") == BLOB

        # Overwrite replaces the whole blob
        await store.set("borrowed_money", "[]")
        assert await store.get("borrowed_money") == "[]"

    @pytest.mark.asyncio
    async def test_keys_are_independent(self, store):
        await store.set("a", "1")
        await store.set("b", "2")
        assert store.get_all_data() == {"a": "1", "b": "2"}

    @pytest.mark.asyncio
    async def test_non_text_blob_rejected(self, store):
        with pytest.raises(StorageError):
            await store.set("borrowed_money", b"bytes")

    @pytest.mark.asyncio
    async def test_initial_data(self):
        store = InMemoryBlobStore({"borrowed_money": BLOB})
        assert await store.get("borrowed_money") == BLOB


class TestFileBlobStore:
    """Test FileBlobStore persistence"""

    @pytest.mark.asyncio
    async def test_set_and_get(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            store = FileBlobStore(Path(temp_dir) / "data")

            assert await store.get("borrowed_money") is None
            await store.set("borrowed_money", BLOB)
            assert await store.get("borrowed_money") == BLOB
            assert (Path(temp_dir) / "data" / "borrowed_money.json").exists()

    @pytest.mark.asyncio
    async def test_data_survives_new_instance(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            await FileBlobStore(temp_dir).set("borrowed_money", BLOB)
            assert await FileBlobStore(temp_dir).get("borrowed_money") == BLOB

    @pytest.mark.asyncio
    async def test_key_is_sanitized(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            store = FileBlobStore(temp_dir)
            await store.set("../escape", "x")

            assert await store.get("../escape") == "x"
            assert list(Path(temp_dir).iterdir())[0].name == ".._escape.json"

    @pytest.mark.asyncio
    async def test_write_error_becomes_storage_error(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            store = FileBlobStore(temp_dir)
            with patch("borrow_ledger.storage.os.replace", side_effect=OSError("read-only")):
                with pytest.raises(StorageError, match="read-only"):
                    await store.set("borrowed_money", BLOB)

            # The temp file is cleaned up
            assert list(Path(temp_dir).iterdir()) == []


class TestSQLiteBlobStore:
    """Test SQLiteBlobStore persistence"""

    @pytest.mark.asyncio
    async def test_in_memory_database(self):
        store = SQLiteBlobStore()
        assert await store.get("borrowed_money") is None

        await store.set("borrowed_money", BLOB)
        await store.set("borrowed_money", "[]")
        assert await store.get("borrowed_money") == "[]"

        await store.close()

    @pytest.mark.asyncio
    async def test_data_survives_reopen(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            db_path = Path(temp_dir) / "ledger.db"

            store = SQLiteBlobStore(db_path)
            await store.set("borrowed_money", BLOB)
            await store.close()

            reopened = SQLiteBlobStore(db_path)
            assert await reopened.get("borrowed_money") == BLOB
            await reopened.close()

    @pytest.mark.asyncio
    async def test_closed_store_raises_storage_error(self):
        store = SQLiteBlobStore()
        await store.close()

        with pytest.raises(StorageError):
            await store.get("borrowed_money")
        with pytest.raises(StorageError):
            await store.set("borrowed_money", BLOB)


class TestCreateBlobStore:
    """Test the storage factory"""

    def test_memory_store(self):
        assert isinstance(create_blob_store("memory"), InMemoryBlobStore)

    def test_sqlite_store(self):
        store = create_blob_store("sqlite", ":memory:")
        assert isinstance(store, SQLiteBlobStore)

    def test_file_store(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            store = create_blob_store("FILE", temp_dir)
            assert isinstance(store, FileBlobStore)
            assert store.directory == Path(temp_dir)

    def test_unknown_store(self):
        with pytest.raises(ValueError, match="Unknown storage type"):
            create_blob_store("redis")

    def test_all_stores_implement_interface(self):
        for store in (InMemoryBlobStore(), SQLiteBlobStore(), FileBlobStore(".")):
            assert isinstance(store, AsyncBlobStore)
