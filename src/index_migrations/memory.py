"""
In-memory StoreClient implementation for testing.

This module provides a simple in-memory document store for:
- Unit tests of the migration protocol
- Local development without an Elasticsearch cluster

Invariants:
    - All data is lost on process exit
    - Every write to an index gets the next per-index sequence number,
      so watermark/replay behave like a single-shard Elasticsearch index
    - Writes to a write-blocked index fail with a 403 response error
    - Like Elasticsearch search, reindex and replay search only see writes
      up to the last refresh. Document reads (get_document, fetch_document)
      are realtime

Hooks:
    on(op, callback) registers a callback that runs before the named
    operation. A callback may mutate the store (simulate a concurrent
    writer) or raise (inject a failure).
"""

from __future__ import annotations

import asyncio
import copy
import inspect
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Callable

from .errors import StoreDisconnectedError, StoreResponseError
from .types import AliasAction


@dataclass
class _StoredDoc:
    seq_no: int
    source: dict[str, Any]


@dataclass
class InMemoryIndex:
    """In-memory index storage."""

    mapping: dict[str, Any] = field(default_factory=dict)
    settings: dict[str, Any] = field(default_factory=dict)
    docs: dict[str, _StoredDoc] = field(default_factory=dict)
    next_seq_no: int = 0
    refreshed_seq_no: int = -1
    write_blocked: bool = False

    def mark_refreshed(self) -> None:
        self.refreshed_seq_no = self.next_seq_no - 1

    def searchable(self) -> list[tuple[str, _StoredDoc]]:
        """Documents visible to search, in seq_no order."""
        return sorted(
            (
                (doc_id, doc)
                for doc_id, doc in self.docs.items()
                if doc.seq_no <= self.refreshed_seq_no
            ),
            key=lambda item: item[1].seq_no,
        )


class InMemoryStore:
    """In-memory implementation of StoreClientProtocol.

    Example:
        >>> store = InMemoryStore()
        >>> await store.create_index("books~v1", {"properties": {}})
        >>> store.put_document("books~v1", "1", {"title": "Dune"})
        >>> store.on("update_alias_atomic", lambda *_: 1 / 0)  # inject failure
    """

    def __init__(self) -> None:
        self.indices: dict[str, InMemoryIndex] = {}
        self.aliases: dict[str, set[str]] = defaultdict(set)
        self.calls: list[str] = []
        self._hooks: dict[str, list[Callable[..., Any]]] = defaultdict(list)
        self._closed = False

    # =========================================================================
    # Testing helpers
    # =========================================================================

    def on(self, op: str, callback: Callable[..., Any]) -> InMemoryStore:
        """Run callback(store, *args) before every call to op."""
        self._hooks[op].append(callback)
        return self

    async def close(self) -> None:
        self._closed = True

    def resolve(self, name: str) -> str:
        """Resolve an alias to its single index; index names pass through."""
        if name in self.indices:
            return name
        targets = self.aliases.get(name)
        if not targets:
            raise StoreResponseError(f"no such index [{name}]", status=404)
        if len(targets) > 1:
            raise StoreResponseError(f"alias [{name}] has more than one index", status=400)
        return next(iter(targets))

    def put_document(self, name: str, doc_id: str, source: dict[str, Any]) -> int:
        """Index one document (by index or alias name) without refreshing.

        Returns the document's seq_no.
        """
        index = self._writable(name)
        seq_no = index.next_seq_no
        index.next_seq_no += 1
        index.docs[doc_id] = _StoredDoc(seq_no=seq_no, source=copy.deepcopy(source))
        return seq_no

    def _writable(self, name: str) -> InMemoryIndex:
        index = self.indices[self.resolve(name)]
        if index.write_blocked:
            raise StoreResponseError(
                f"cluster_block_exception: index [{name}] blocked by [FORBIDDEN/8/index write]",
                status=403,
            )
        return index

    def get_document(self, name: str, doc_id: str) -> dict[str, Any] | None:
        doc = self.indices[self.resolve(name)].docs.get(doc_id)
        return copy.deepcopy(doc.source) if doc else None

    def document_ids(self, name: str) -> list[str]:
        return sorted(self.indices[self.resolve(name)].docs)

    def is_write_blocked(self, name: str) -> bool:
        return self.indices[name].write_blocked

    def _index(self, name: str) -> InMemoryIndex:
        if name not in self.indices:
            raise StoreResponseError(f"index_not_found_exception: no such index [{name}]", status=404)
        return self.indices[name]

    async def _before(self, op: str, *args: Any) -> None:
        if self._closed:
            raise StoreDisconnectedError("store is closed")
        self.calls.append(op)
        for callback in self._hooks.get(op, []):
            result = callback(self, *args)
            if inspect.isawaitable(result):
                await result
        # Yield so concurrent migrations interleave like real I/O
        await asyncio.sleep(0)

    # =========================================================================
    # StoreClientProtocol
    # =========================================================================

    async def index_exists(self, name: str) -> bool:
        await self._before("index_exists", name)
        return name in self.indices

    async def alias_exists(self, alias: str) -> bool:
        await self._before("alias_exists", alias)
        return bool(self.aliases.get(alias))

    async def create_index(
        self,
        name: str,
        mapping: dict[str, Any],
        settings: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        await self._before("create_index", name, mapping, settings)
        if name in self.indices:
            raise StoreResponseError(
                f"resource_already_exists_exception: index [{name}] already exists", status=400
            )
        self.indices[name] = InMemoryIndex(
            mapping=copy.deepcopy(mapping), settings=copy.deepcopy(settings or {})
        )
        return {"acknowledged": True, "index": name}

    async def delete_index(self, name: str) -> dict[str, Any]:
        await self._before("delete_index", name)
        self._index(name)
        del self.indices[name]
        for targets in self.aliases.values():
            targets.discard(name)
        return {"acknowledged": True}

    async def get_alias_target(self, alias: str) -> str | None:
        await self._before("get_alias_target", alias)
        targets = sorted(self.aliases.get(alias, ()))
        return targets[0] if targets else None

    async def put_alias(self, alias: str, name: str) -> dict[str, Any]:
        await self._before("put_alias", alias, name)
        self._index(name)
        self.aliases[alias].add(name)
        return {"acknowledged": True}

    async def delete_alias(self, alias: str, name: str) -> dict[str, Any]:
        await self._before("delete_alias", alias, name)
        if name not in self.aliases.get(alias, ()):
            raise StoreResponseError(f"aliases [{alias}] missing", status=404)
        self.aliases[alias].discard(name)
        return {"acknowledged": True}

    async def update_alias_atomic(self, remove: AliasAction, add: AliasAction) -> dict[str, Any]:
        await self._before("update_alias_atomic", remove, add)
        # Validate both actions before applying either
        if remove.index not in self.aliases.get(remove.alias, ()):
            raise StoreResponseError(f"aliases [{remove.alias}] missing", status=404)
        self._index(add.index)
        self.aliases[remove.alias].discard(remove.index)
        self.aliases[add.alias].add(add.index)
        return {"acknowledged": True}

    async def set_write_blocked(self, name: str, blocked: bool) -> dict[str, Any]:
        await self._before("set_write_blocked", name, blocked)
        self._index(name).write_blocked = blocked
        return {"acknowledged": True}

    async def get_sequence_watermark(self, name: str) -> int:
        await self._before("get_sequence_watermark", name)
        return self._index(name).next_seq_no - 1

    async def refresh(self, name: str) -> dict[str, Any]:
        await self._before("refresh", name)
        self.indices[self.resolve(name)].mark_refreshed()
        return {"_shards": {"failed": 0}}

    async def reindex(self, source: str, dest: str, conflicts: str = "proceed") -> dict[str, Any]:
        await self._before("reindex", source, dest, conflicts)
        visible = self._index(source).searchable()
        target = self._index(dest)
        for doc_id, doc in visible:
            self.put_document(dest, doc_id, doc.source)
        target.mark_refreshed()
        return {"total": len(visible), "created": len(visible), "failures": []}

    async def search_by_sequence_above(
        self,
        name: str,
        watermark: int,
        page_from: int,
        page_size: int,
        search_after: list[Any] | None = None,
    ) -> list[dict[str, Any]]:
        await self._before(
            "search_by_sequence_above", name, watermark, page_from, page_size, search_after
        )
        hits = [
            (doc_id, doc)
            for doc_id, doc in self._index(name).searchable()
            if doc.seq_no > watermark
        ]
        if search_after is not None:
            page = [hit for hit in hits if hit[1].seq_no > search_after[0]][:page_size]
        else:
            page = hits[page_from : page_from + page_size]
        return [
            {"_id": doc_id, "_source": copy.deepcopy(doc.source), "sort": [doc.seq_no]}
            for doc_id, doc in page
        ]

    async def bulk_upsert(
        self,
        dest: str,
        rows: list[dict[str, Any]],
        refresh: bool = True,
    ) -> int:
        await self._before("bulk_upsert", dest, rows, refresh)
        for row in rows:
            self.put_document(dest, row["_id"], row["_source"])
        if refresh:
            self.indices[self.resolve(dest)].mark_refreshed()
        return len(rows)

    async def index_document(
        self, dest: str, doc_id: str, source: dict[str, Any], refresh: bool = True
    ) -> dict[str, Any]:
        await self._before("index_document", dest, doc_id, source, refresh)
        seq_no = self.put_document(dest, doc_id, source)
        if refresh:
            self.indices[self.resolve(dest)].mark_refreshed()
        return {"_id": doc_id, "_seq_no": seq_no, "result": "created"}

    async def update_document(
        self, dest: str, doc_id: str, partial: dict[str, Any], refresh: bool = True
    ) -> dict[str, Any]:
        await self._before("update_document", dest, doc_id, partial, refresh)
        current = self.indices[self.resolve(dest)].docs.get(doc_id)
        if current is None:
            raise StoreResponseError(f"document_missing_exception: [{doc_id}]", status=404)
        seq_no = self.put_document(dest, doc_id, {**current.source, **partial})
        if refresh:
            self.indices[self.resolve(dest)].mark_refreshed()
        return {"_id": doc_id, "_seq_no": seq_no, "result": "updated"}

    async def delete_document(
        self, dest: str, doc_id: str, refresh: bool = True
    ) -> dict[str, Any]:
        await self._before("delete_document", dest, doc_id, refresh)
        index = self._writable(dest)
        if doc_id not in index.docs:
            raise StoreResponseError(f"document [{doc_id}] not found", status=404)
        del index.docs[doc_id]
        # Deletes consume a sequence number too
        index.next_seq_no += 1
        if refresh:
            index.mark_refreshed()
        return {"_id": doc_id, "result": "deleted"}

    async def fetch_document(self, name: str, doc_id: str) -> dict[str, Any] | None:
        await self._before("fetch_document", name, doc_id)
        return self.get_document(name, doc_id)
