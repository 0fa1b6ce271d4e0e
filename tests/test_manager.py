"""IndexLifecycleManager 단일 연산 테스트."""

import pytest

from index_migrations import (
    CreateCode,
    ErrorKind,
    IndexDescriptor,
    StatusCode,
    StoreConnectionError,
)

from .conftest import BOOKS


class TestExistence:
    @pytest.mark.asyncio
    async def test_exists_false_then_true(self, store, books_descriptor, make_manager):
        books = make_manager(books_descriptor)

        assert (await books.exists()).exists is False
        await books.create()
        found = await books.exists()

        assert found.exists is True
        assert found.error is None
        assert found.request == {"index": "t~en~books~v1"}

    @pytest.mark.asyncio
    async def test_exists_error_is_classified(self, store, books_descriptor, make_manager):
        def refuse(*_):
            raise StoreConnectionError("connection refused")

        store.on("index_exists", refuse)
        found = await make_manager(books_descriptor).exists()

        assert found.exists is None
        assert found.error_kind is ErrorKind.CONNECTION
        assert isinstance(found.error, StoreConnectionError)

    @pytest.mark.asyncio
    async def test_alias_missing_is_not_an_error(self, books_descriptor, make_manager):
        found = await make_manager(books_descriptor).alias_exists()

        assert found.exists is False
        assert found.error is None

    @pytest.mark.asyncio
    async def test_disconnected_store(self, store, books_descriptor, make_manager):
        await store.close()
        found = await make_manager(books_descriptor).exists()

        assert found.exists is None
        assert found.error_kind is ErrorKind.DISCONNECTED


class TestCreation:
    @pytest.mark.asyncio
    async def test_create_uses_mapping_and_settings(self, store, make_manager):
        descriptor = IndexDescriptor("books", language="englishplus")
        books = make_manager(descriptor, settings={"index": {"number_of_shards": 1}})

        created = await books.create()

        assert created.index_name == "englishplus~books~v1"
        index = store.indices["englishplus~books~v1"]
        assert index.mapping["properties"]["title"] == {"type": "text"}
        assert index.settings["index"] == {"number_of_shards": 1}
        assert "englishplus" in index.settings["analysis"]["analyzer"]

    @pytest.mark.asyncio
    async def test_create_twice_returns_response_error(self, books_descriptor, make_manager):
        books = make_manager(books_descriptor)
        await books.create()

        again = await books.create()

        assert again.index_name is None
        assert again.error_kind is ErrorKind.RESPONSE

    @pytest.mark.asyncio
    async def test_create_if_needed_is_idempotent(self, store, books_descriptor, make_manager):
        books = make_manager(books_descriptor)

        first = await books.create_if_needed()
        second = await books.create_if_needed()

        assert first.code is CreateCode.CREATED
        assert second.code is CreateCode.ALREADY_EXISTS
        assert store.calls.count("create_index") == 1

    @pytest.mark.asyncio
    async def test_create_if_needed_reports_existence_error(
        self, store, books_descriptor, make_manager
    ):
        store.on("index_exists", lambda *_: 1 / 0)

        result = await make_manager(books_descriptor).create_if_needed()

        assert result.code is CreateCode.ERROR
        assert result.error_kind is ErrorKind.GENERIC
        assert "create_index" not in store.calls

    @pytest.mark.asyncio
    async def test_create_alias_if_needed(self, store, books_descriptor, make_manager):
        books = make_manager(books_descriptor)
        await books.create()

        first = await books.create_alias_if_needed()
        second = await books.create_alias_if_needed()

        assert first.code is CreateCode.CREATED
        assert second.code is CreateCode.ALREADY_EXISTS
        assert await store.get_alias_target("t~en~books") == "t~en~books~v1"

    @pytest.mark.asyncio
    async def test_create_alias_without_index_fails(self, books_descriptor, make_manager):
        result = await make_manager(books_descriptor).create_alias()

        assert result.acknowledged is False
        assert result.error_kind is ErrorKind.RESPONSE


class TestRemoval:
    @pytest.mark.asyncio
    async def test_drop_removes_bound_alias_first(self, store, books_descriptor, make_manager):
        books = make_manager(books_descriptor)
        await books.create()
        await books.create_alias()

        dropped = await books.drop()

        assert dropped.dropped is True
        assert store.calls[-3:] == ["delete_alias", "index_exists", "delete_index"]
        assert (await books.exists()).exists is False
        assert (await books.alias_exists()).exists is False

    @pytest.mark.asyncio
    async def test_drop_missing_index(self, books_descriptor, make_manager):
        dropped = await make_manager(books_descriptor).drop()

        assert dropped.dropped is False
        assert dropped.error is None

    @pytest.mark.asyncio
    async def test_drop_alias(self, books_descriptor, make_manager):
        books = make_manager(books_descriptor)
        await books.create()
        await books.create_alias()

        assert (await books.drop_alias()).acknowledged is True
        assert (await books.drop_alias()).acknowledged is False
        assert (await books.exists()).exists is True


class TestStatus:
    @pytest.mark.asyncio
    async def test_status_transitions(self, books_descriptor, make_manager):
        v1 = make_manager(books_descriptor)
        v2 = make_manager(books_descriptor.with_version(2))

        assert (await v1.get_status()).code is StatusCode.NEEDS_CREATION
        await v1.migrate_if_needed()
        assert (await v1.get_status()).code is StatusCode.CURRENT

        status = await v2.get_status()
        assert status.code is StatusCode.NEEDS_MIGRATION
        assert status.alias_target == "t~en~books~v1"

    @pytest.mark.asyncio
    async def test_put_bulk_writes_through_alias(self, store, books_descriptor, make_manager):
        books = make_manager(books_descriptor)
        await books.migrate_if_needed()

        written = await books.put_bulk(BOOKS)

        assert written.count == 3
        assert store.document_ids("t~en~books~v1") == ["1", "2", "3"]

    @pytest.mark.asyncio
    async def test_put_bulk_without_alias(self, books_descriptor, make_manager):
        written = await make_manager(books_descriptor).put_bulk(BOOKS)

        assert written.count == 0
        assert written.error_kind is ErrorKind.RESPONSE


class TestRecords:
    @pytest.mark.asyncio
    async def test_put_and_find_by_id(self, store, books_descriptor, make_manager):
        books = make_manager(books_descriptor)
        await books.migrate_if_needed()
        dune = {"id": 1, "title": "Dune", "author": "Herbert"}

        written = await books.put(dune)
        found = await books.find_by_id(1)

        assert written.id == "1"
        assert written.error is None
        assert found.record == dune
        assert store.document_ids("t~en~books~v1") == ["1"]

    @pytest.mark.asyncio
    async def test_put_without_id_is_error(self, store, books_descriptor, make_manager):
        books = make_manager(books_descriptor)
        await books.migrate_if_needed()

        written = await books.put({"title": "Dune"})

        assert written.id is None
        assert isinstance(written.error, ValueError)
        assert "index_document" not in store.calls

    @pytest.mark.asyncio
    async def test_patch_merges_fields(self, store, books_descriptor, make_manager):
        books = make_manager(books_descriptor)
        await books.migrate_if_needed()
        await books.put_bulk(BOOKS)

        patched = await books.patch("2", {"year": 1962})

        assert patched.id == "2"
        assert (await books.find_by_id("2")).record == {
            "title": "Solaris",
            "author": "Lem",
            "year": 1962,
        }

    @pytest.mark.asyncio
    async def test_patch_missing_document(self, books_descriptor, make_manager):
        books = make_manager(books_descriptor)
        await books.migrate_if_needed()

        patched = await books.patch("404", {"year": 1962})

        assert patched.id is None
        assert patched.error_kind is ErrorKind.RESPONSE

    @pytest.mark.asyncio
    async def test_delete(self, store, books_descriptor, make_manager):
        books = make_manager(books_descriptor)
        await books.migrate_if_needed()
        await books.put_bulk(BOOKS)

        deleted = await books.delete("1")
        again = await books.delete("1")

        assert deleted.deleted is True
        assert again.deleted is False
        assert again.error_kind is ErrorKind.RESPONSE
        assert store.document_ids("t~en~books") == ["2", "3"]

    @pytest.mark.asyncio
    async def test_delete_without_id_skips_store(self, store, books_descriptor, make_manager):
        deleted = await make_manager(books_descriptor).delete("")

        assert deleted.deleted is True
        assert deleted.response == "Not yet in database"
        assert store.calls == []

    @pytest.mark.asyncio
    async def test_find_by_id_missing(self, books_descriptor, make_manager):
        books = make_manager(books_descriptor)
        await books.migrate_if_needed()

        found = await books.find_by_id("404")

        assert found.record is None
        assert found.error is None

    @pytest.mark.asyncio
    async def test_find_by_id_without_index(self, books_descriptor, make_manager):
        found = await make_manager(books_descriptor).find_by_id("1")

        assert found.record is None
        assert found.error_kind is ErrorKind.RESPONSE
