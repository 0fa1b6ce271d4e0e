"""Elasticsearch 기반 StoreClient 구현.

StoreClientProtocol을 AsyncElasticsearch 8.x API로 구현합니다.
call_timeout_s를 지정하면 모든 호출에 asyncio 타임아웃이 적용됩니다.

Note:
    update_alias_atomic()의 원자성은 ES의 _aliases 복합 액션이 보장하는
    범위까지만 유효합니다.
    sequence 번호(_seq_no)는 샤드 단위이므로 watermark/replay는
    primary 샤드 1개 인덱스에서 정확합니다. 다중 샤드면 샤드별 최댓값 중
    최댓값을 사용하므로 일부 문서가 중복 재적용될 수 있습니다 (upsert라 무해).
    replay가 max_result_window를 넘어 search_after로 전환되면 _seq_no만으로
    정렬하므로 다중 샤드에서는 페이지 경계의 같은 _seq_no 문서를 건너뛸 수 있습니다.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable
from typing import Any, TypeVar

from elasticsearch import AsyncElasticsearch
from elasticsearch.helpers import async_bulk

from .client import create_es_client
from .config import IndexAdminConfig
from .errors import StoreDisconnectedError, StoreResponseError, StoreTimeoutError
from .types import AliasAction

logger = logging.getLogger(__name__)

T = TypeVar("T")

# index.max_result_window 기본값
MAX_RESULT_WINDOW = 10_000


class ElasticsearchStore:
    """AsyncElasticsearch 어댑터."""

    def __init__(self, es: AsyncElasticsearch, call_timeout_s: float | None = None):
        self.es = es
        self.call_timeout_s = call_timeout_s
        self._closed = False

    @classmethod
    def from_config(cls, cfg: IndexAdminConfig | None = None) -> ElasticsearchStore:
        cfg = cfg or IndexAdminConfig()
        return cls(create_es_client(cfg), call_timeout_s=cfg.call_timeout_s)

    async def close(self) -> None:
        self._closed = True
        await self.es.close()

    async def _call(self, aw: Awaitable[T]) -> T:
        """타임아웃/연결 상태를 적용해 스토어 호출 실행."""
        if self._closed:
            if asyncio.iscoroutine(aw):
                aw.close()
            raise StoreDisconnectedError("Elasticsearch 클라이언트가 닫혀 있습니다.")
        if self.call_timeout_s is None:
            return await aw
        try:
            return await asyncio.wait_for(aw, self.call_timeout_s)
        except asyncio.TimeoutError as e:
            raise StoreTimeoutError(f"스토어 호출이 {self.call_timeout_s}초 안에 끝나지 않았습니다.") from e

    # =========================================================================
    # Index / alias
    # =========================================================================

    async def index_exists(self, name: str) -> bool:
        return bool(await self._call(self.es.indices.exists(index=name)))

    async def alias_exists(self, alias: str) -> bool:
        return bool(await self._call(self.es.indices.exists_alias(name=alias)))

    async def create_index(
        self,
        name: str,
        mapping: dict[str, Any],
        settings: dict[str, Any] | None = None,
    ) -> Any:
        return await self._call(
            self.es.indices.create(index=name, mappings=mapping, settings=settings or None)
        )

    async def delete_index(self, name: str) -> Any:
        return await self._call(self.es.indices.delete(index=name))

    async def get_alias_target(self, alias: str) -> str | None:
        """별칭이 가리키는 인덱스 이름. 별칭이 없으면 None."""
        resp = await self._call(self.es.options(ignore_status=404).indices.get_alias(name=alias))
        if resp.meta.status == 404:
            return None
        names = sorted(resp.body)
        if not names:
            return None
        if len(names) > 1:
            logger.warning(f"별칭 '{alias}'이 여러 인덱스를 가리킵니다: {names}")
        return names[0]

    async def put_alias(self, alias: str, name: str) -> Any:
        return await self._call(self.es.indices.put_alias(index=name, name=alias))

    async def delete_alias(self, alias: str, name: str) -> Any:
        return await self._call(self.es.indices.delete_alias(index=name, name=alias))

    async def update_alias_atomic(self, remove: AliasAction, add: AliasAction) -> Any:
        """remove + add를 단일 _aliases 요청으로 실행."""
        return await self._call(
            self.es.indices.update_aliases(
                actions=[{"remove": remove.to_es()}, {"add": add.to_es()}]
            )
        )

    async def set_write_blocked(self, name: str, blocked: bool) -> Any:
        return await self._call(
            self.es.indices.put_settings(index=name, settings={"index.blocks.write": blocked})
        )

    # =========================================================================
    # Data
    # =========================================================================

    async def get_sequence_watermark(self, name: str) -> int:
        """primary 샤드들의 max_seq_no 중 최댓값. 빈 인덱스는 -1.

        max_seq_no는 refresh 전 문서도 포함하므로 호출 전에 refresh()가 필요합니다.
        """
        stats = await self._call(self.es.indices.stats(index=name, level="shards"))
        shards = stats["indices"].get(name, {}).get("shards", {})
        watermark = -1
        for copies in shards.values():
            for shard in copies:
                if not shard.get("routing", {}).get("primary", False):
                    continue
                watermark = max(watermark, int(shard.get("seq_no", {}).get("max_seq_no", -1)))
        return watermark

    async def refresh(self, name: str) -> Any:
        return await self._call(self.es.indices.refresh(index=name))

    async def reindex(self, source: str, dest: str, conflicts: str = "proceed") -> Any:
        """동기 reindex. 완료될 때까지 대기합니다.

        Raises:
            StoreResponseError: reindex 응답에 문서 단위 실패가 있는 경우
        """
        resp = await self._call(
            self.es.reindex(
                source={"index": source},
                dest={"index": dest},
                conflicts=conflicts,
                wait_for_completion=True,
                refresh=True,
            )
        )
        failures = (resp["failures"] if "failures" in resp else None) or []
        if failures:
            raise StoreResponseError(
                f"'{source}' → '{dest}' reindex 중 {len(failures)}건 실패: {failures[0]}",
                status=500,
            )
        return resp

    async def search_by_sequence_above(
        self,
        name: str,
        watermark: int,
        page_from: int,
        page_size: int,
        search_after: list[Any] | None = None,
    ) -> list[dict[str, Any]]:
        """_seq_no 범위 검색.

        from_ 페이징이 index.max_result_window를 넘으면 search_after로 전환합니다.
        """
        if search_after is not None and page_from + page_size > MAX_RESULT_WINDOW:
            paging: dict[str, Any] = {"search_after": search_after}
        else:
            paging = {"from_": page_from}
        resp = await self._call(
            self.es.search(
                index=name,
                query={"range": {"_seq_no": {"gt": watermark}}},
                sort=[{"_seq_no": {"order": "asc"}}],
                size=page_size,
                seq_no_primary_term=True,
                **paging,
            )
        )
        return [
            {"_id": h["_id"], "_source": h["_source"], "sort": h.get("sort")}
            for h in resp["hits"]["hits"]
        ]

    async def bulk_upsert(
        self,
        dest: str,
        rows: list[dict[str, Any]],
        refresh: bool = True,
    ) -> int:
        """대량 문서 upsert. 성공 건수 반환."""
        actions = [
            {
                "_op_type": "index",
                "_index": dest,
                "_id": row["_id"],
                "_source": row["_source"],
            }
            for row in rows
        ]
        if not actions:
            return 0
        ok, _ = await self._call(
            async_bulk(self.es, actions, refresh="wait_for" if refresh else False)
        )
        return int(ok)

    # =========================================================================
    # Single record
    # =========================================================================

    async def index_document(
        self, dest: str, doc_id: str, source: dict[str, Any], refresh: bool = True
    ) -> Any:
        return await self._call(
            self.es.index(
                index=dest, id=doc_id, document=source, refresh="wait_for" if refresh else False
            )
        )

    async def update_document(
        self, dest: str, doc_id: str, partial: dict[str, Any], refresh: bool = True
    ) -> Any:
        return await self._call(
            self.es.update(
                index=dest, id=doc_id, doc=partial, refresh="wait_for" if refresh else False
            )
        )

    async def delete_document(self, dest: str, doc_id: str, refresh: bool = True) -> Any:
        return await self._call(
            self.es.delete(index=dest, id=doc_id, refresh="wait_for" if refresh else False)
        )

    async def fetch_document(self, name: str, doc_id: str) -> dict[str, Any] | None:
        """문서 _source. 문서가 없으면 None.

        Raises:
            StoreResponseError: 인덱스가 없는 경우 (404)
        """
        resp = await self._call(self.es.options(ignore_status=404).get(index=name, id=doc_id))
        if resp.meta.status == 404:
            if resp.body.get("found") is False:
                return None
            raise StoreResponseError(f"'{name}' 인덱스를 찾을 수 없습니다.", status=404)
        return resp.body.get("_source")
