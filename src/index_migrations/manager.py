"""단일 인덱스 라이프사이클 관리.

IndexLifecycleManager는 하나의 버전 인덱스(descriptor)와 그 별칭에 대해
존재 확인, 멱등 생성, 삭제, 그리고 무중단 마이그레이션을 수행합니다.

모든 public 연산은 예외를 던지지 않고 envelope(types.py)로 결과를 반환합니다.

마이그레이션 프로토콜 (migrate_if_needed):
    1. 새 전체 이름이 이미 있으면 NO_CHANGE
    2. 새 인덱스 생성
    3. 별칭이 없거나 이미 새 인덱스를 가리키면 별칭 연결 후 CREATED_INDEX
    4. 구 인덱스 refresh 후 watermark(max seq_no) 조회
    5. 구 → 신 동기 reindex (버전 충돌은 건너뜀)
    6. 구 인덱스 쓰기 차단 후 refresh (차단 직전 쓰기까지 검색 가능하게)
    7. 별칭 원자 교체 (remove + add)
    8. watermark 이후 구 인덱스 쓰기를 신 인덱스로 replay
    9. 쓰기 차단 해제 (성공/실패와 무관하게 항상)
    10. 구 인덱스 삭제
    11. MIGRATED

Precondition:
    같은 descriptor에 대해 동시에 두 개의 migrate_if_needed()를 실행하면 안 됩니다.
    이는 호출자가 보장해야 하며 여기서 강제하지 않습니다.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from .errors import classify_error
from .mappings import analysis_settings, merge_settings
from .names import IndexDescriptor
from .protocols import MappingProviderProtocol, StoreClientProtocol
from .types import (
    AliasAction,
    AliasResult,
    BulkResult,
    CreateCode,
    CreateIfNeededResult,
    CreateResult,
    DeleteResult,
    DropResult,
    ExistsResult,
    FindResult,
    MigrationCode,
    MigrationResult,
    StatusCode,
    StatusReport,
    WriteResult,
)

logger = logging.getLogger(__name__)

DEFAULT_REPLAY_PAGE_SIZE = 100


def _elapsed_ms(start: float) -> float:
    return (time.perf_counter() - start) * 1000


async def _release_write_block(store: StoreClientProtocol, index_name: str) -> None:
    """이미 다른 예외가 처리 중일 때의 해제. 실패는 기록만 하고 원래 예외를 유지합니다."""
    try:
        await store.set_write_blocked(index_name, False)
        logger.info(f"'{index_name}' 쓰기 차단 해제")
    except Exception:
        logger.exception(f"'{index_name}' 쓰기 차단 해제 실패. 수동 해제가 필요합니다.")


@asynccontextmanager
async def write_blocked(store: StoreClientProtocol, index_name: str) -> AsyncIterator[None]:
    """인덱스 쓰기 차단 구간.

    진입 시 쓰기를 차단하고, 블록 내부의 성공/실패와 무관하게 종료 시 해제합니다.
    차단 요청이 실패해도 서버에는 적용됐을 수 있으므로(타임아웃, 연결 끊김) 해제를 시도합니다.
    블록 내부 예외가 있으면 해제 실패가 그 예외를 덮어쓰지 않습니다.
    """
    try:
        await store.set_write_blocked(index_name, True)
    except BaseException:
        await _release_write_block(store, index_name)
        raise
    logger.info(f"'{index_name}' 쓰기 차단")
    try:
        yield
    except BaseException:
        await _release_write_block(store, index_name)
        raise
    await store.set_write_blocked(index_name, False)
    logger.info(f"'{index_name}' 쓰기 차단 해제")


class IndexLifecycleManager:
    """Elasticsearch 버전 인덱스 관리자.

    Args:
        descriptor: 인덱스 이름 구성 (버전 포함)
        store: 스토어 클라이언트
        mapping_provider: 매핑 정의 제공자
        settings: 인덱스 settings (분석기 설정과 병합됨)
        replay_page_size: replay 단계 페이지 크기

    Example:
        >>> books = IndexLifecycleManager(
        ...     IndexDescriptor("books", version=2, prefix="prod"),
        ...     store=ElasticsearchStore.from_config(),
        ...     mapping_provider=StaticMappingProvider({"title": {"type": "text"}}),
        ... )
        >>> result = await books.migrate_if_needed()
        >>> result.code
        <MigrationCode.MIGRATED: 'MIGRATED'>
    """

    def __init__(
        self,
        descriptor: IndexDescriptor,
        store: StoreClientProtocol,
        mapping_provider: MappingProviderProtocol,
        settings: dict[str, Any] | None = None,
        replay_page_size: int = DEFAULT_REPLAY_PAGE_SIZE,
    ):
        if replay_page_size < 1:
            raise ValueError("replay_page_size는 1 이상이어야 합니다.")
        self.descriptor = descriptor
        self.store = store
        self.mapping_provider = mapping_provider
        self.settings = settings or {}
        self.replay_page_size = replay_page_size

    @property
    def index_name(self) -> str:
        return self.descriptor.full_name

    @property
    def alias_name(self) -> str:
        return self.descriptor.alias_name

    def _index_settings(self) -> dict[str, Any]:
        return merge_settings(analysis_settings(self.descriptor.language), self.settings)

    def __repr__(self) -> str:
        return f"IndexLifecycleManager({self.index_name!r})"

    # =========================================================================
    # Existence
    # =========================================================================

    async def exists(self) -> ExistsResult:
        """현재 버전 인덱스 존재 여부. 에러 시 exists=None."""
        start = time.perf_counter()
        request = {"index": self.index_name}
        try:
            exists = await self.store.index_exists(self.index_name)
            return ExistsResult(
                exists=exists, took_ms=_elapsed_ms(start), request=request, response=exists
            )
        except Exception as e:
            logger.warning(f"인덱스 '{self.index_name}' 존재 확인 실패: {e}")
            return ExistsResult(
                exists=None,
                took_ms=_elapsed_ms(start),
                request=request,
                error=e,
                error_kind=classify_error(e),
            )

    async def alias_exists(self) -> ExistsResult:
        """별칭 존재 여부. 스토어의 not found 응답은 exists=False."""
        start = time.perf_counter()
        request = {"alias": self.alias_name}
        try:
            exists = await self.store.alias_exists(self.alias_name)
            return ExistsResult(
                exists=exists, took_ms=_elapsed_ms(start), request=request, response=exists
            )
        except Exception as e:
            logger.warning(f"별칭 '{self.alias_name}' 존재 확인 실패: {e}")
            return ExistsResult(
                exists=None,
                took_ms=_elapsed_ms(start),
                request=request,
                error=e,
                error_kind=classify_error(e),
            )

    # =========================================================================
    # Creation
    # =========================================================================

    async def create(self) -> CreateResult:
        """현재 매핑/설정으로 인덱스 생성."""
        start = time.perf_counter()
        request: dict[str, Any] = {"index": self.index_name}
        try:
            mapping = self.mapping_provider.to_mapping_definition()
            settings = self._index_settings()
            request.update(mappings=mapping, settings=settings)
            response = await self.store.create_index(self.index_name, mapping, settings)
            logger.info(f"인덱스 '{self.index_name}' 생성")
            return CreateResult(
                index_name=self.index_name,
                took_ms=_elapsed_ms(start),
                request=request,
                response=response,
            )
        except Exception as e:
            logger.warning(f"인덱스 '{self.index_name}' 생성 실패: {e}")
            return CreateResult(
                took_ms=_elapsed_ms(start),
                request=request,
                error=e,
                error_kind=classify_error(e),
            )

    async def create_alias(self) -> AliasResult:
        """별칭을 현재 버전 인덱스에 연결."""
        start = time.perf_counter()
        request = {"index": self.index_name, "alias": self.alias_name}
        try:
            response = await self.store.put_alias(self.alias_name, self.index_name)
            return AliasResult(
                acknowledged=True, took_ms=_elapsed_ms(start), request=request, response=response
            )
        except Exception as e:
            logger.warning(f"별칭 '{self.alias_name}' 생성 실패: {e}")
            return AliasResult(
                took_ms=_elapsed_ms(start),
                request=request,
                error=e,
                error_kind=classify_error(e),
            )

    async def create_if_needed(self) -> CreateIfNeededResult:
        """인덱스가 없을 때만 생성."""
        start = time.perf_counter()
        found = await self.exists()
        if found.exists is True:
            return CreateIfNeededResult(
                code=CreateCode.ALREADY_EXISTS,
                took_ms=_elapsed_ms(start),
                request=found.request,
                response=found.response,
            )
        if found.error is not None:
            return CreateIfNeededResult(
                code=CreateCode.ERROR,
                took_ms=_elapsed_ms(start),
                request=found.request,
                error=found.error,
                error_kind=found.error_kind,
            )

        created = await self.create()
        return CreateIfNeededResult(
            code=CreateCode.CREATED if created.ok else CreateCode.ERROR,
            took_ms=_elapsed_ms(start),
            request=created.request,
            error=created.error,
            error_kind=created.error_kind,
            response=created.response,
        )

    async def create_alias_if_needed(self) -> CreateIfNeededResult:
        """별칭이 없을 때만 생성."""
        start = time.perf_counter()
        found = await self.alias_exists()
        if found.exists is True:
            return CreateIfNeededResult(
                code=CreateCode.ALREADY_EXISTS,
                took_ms=_elapsed_ms(start),
                request=found.request,
                response=found.response,
            )
        if found.error is not None:
            return CreateIfNeededResult(
                code=CreateCode.ERROR,
                took_ms=_elapsed_ms(start),
                request=found.request,
                error=found.error,
                error_kind=found.error_kind,
            )

        created = await self.create_alias()
        return CreateIfNeededResult(
            code=CreateCode.CREATED if created.acknowledged else CreateCode.ERROR,
            took_ms=_elapsed_ms(start),
            request=created.request,
            error=created.error,
            error_kind=created.error_kind,
            response=created.response,
        )

    # =========================================================================
    # Removal
    # =========================================================================

    async def drop(self) -> DropResult:
        """현재 버전 인덱스 삭제. 별칭이 이 인덱스에 연결돼 있으면 먼저 해제."""
        start = time.perf_counter()
        request = {"index": self.index_name, "alias": self.alias_name}
        try:
            if await self.store.get_alias_target(self.alias_name) == self.index_name:
                await self.store.delete_alias(self.alias_name, self.index_name)
            if not await self.store.index_exists(self.index_name):
                return DropResult(
                    index_name=self.index_name, took_ms=_elapsed_ms(start), request=request
                )
            response = await self.store.delete_index(self.index_name)
            logger.info(f"인덱스 '{self.index_name}' 삭제")
            return DropResult(
                index_name=self.index_name,
                dropped=True,
                took_ms=_elapsed_ms(start),
                request=request,
                response=response,
            )
        except Exception as e:
            logger.warning(f"인덱스 '{self.index_name}' 삭제 실패: {e}")
            return DropResult(
                index_name=self.index_name,
                took_ms=_elapsed_ms(start),
                request=request,
                error=e,
                error_kind=classify_error(e),
            )

    async def drop_alias(self) -> AliasResult:
        """별칭 해제. 별칭이 없으면 acknowledged=False."""
        start = time.perf_counter()
        request: dict[str, Any] = {"alias": self.alias_name}
        try:
            target = await self.store.get_alias_target(self.alias_name)
            request["index"] = target
            if target is None:
                return AliasResult(took_ms=_elapsed_ms(start), request=request)
            response = await self.store.delete_alias(self.alias_name, target)
            return AliasResult(
                acknowledged=True, took_ms=_elapsed_ms(start), request=request, response=response
            )
        except Exception as e:
            logger.warning(f"별칭 '{self.alias_name}' 삭제 실패: {e}")
            return AliasResult(
                took_ms=_elapsed_ms(start),
                request=request,
                error=e,
                error_kind=classify_error(e),
            )

    # =========================================================================
    # Status / data
    # =========================================================================

    async def get_status(self) -> StatusReport:
        """생성/마이그레이션 필요 여부."""
        start = time.perf_counter()
        found = await self.exists()
        report = StatusReport(
            alias_name=self.alias_name,
            index_name=self.index_name,
            exists=found.exists,
            request=found.request,
        )
        if found.error is not None:
            report.error = found.error
            report.error_kind = found.error_kind
        else:
            try:
                report.alias_target = await self.store.get_alias_target(self.alias_name)
                if found.exists:
                    report.code = StatusCode.CURRENT
                elif report.alias_target is not None:
                    report.code = StatusCode.NEEDS_MIGRATION
                else:
                    report.code = StatusCode.NEEDS_CREATION
            except Exception as e:
                report.error = e
                report.error_kind = classify_error(e)
        report.took_ms = _elapsed_ms(start)
        return report

    async def put_bulk(self, rows: list[dict[str, Any]], refresh: bool = True) -> BulkResult:
        """별칭을 통해 문서 대량 upsert. rows는 {"_id", "_source"} 형태."""
        start = time.perf_counter()
        request = {"alias": self.alias_name, "count": len(rows), "refresh": refresh}
        try:
            count = await self.store.bulk_upsert(self.alias_name, rows, refresh=refresh)
            return BulkResult(count=count, took_ms=_elapsed_ms(start), request=request)
        except Exception as e:
            logger.warning(f"'{self.alias_name}' 대량 저장 실패: {e}")
            return BulkResult(
                took_ms=_elapsed_ms(start),
                request=request,
                error=e,
                error_kind=classify_error(e),
            )

    # =========================================================================
    # Single record
    # =========================================================================

    async def put(self, record: dict[str, Any], refresh: bool = True) -> WriteResult:
        """별칭을 통해 문서 하나 저장. 문서 id는 record["id"]."""
        start = time.perf_counter()
        request: dict[str, Any] = {"alias": self.alias_name, "id": record.get("id")}
        try:
            if record.get("id") in (None, ""):
                raise ValueError("record에 id가 없습니다.")
            doc_id = str(record["id"])
            response = await self.store.index_document(
                self.alias_name, doc_id, record, refresh=refresh
            )
            return WriteResult(
                id=doc_id, took_ms=_elapsed_ms(start), request=request, response=response
            )
        except Exception as e:
            logger.warning(f"'{self.alias_name}' 문서 저장 실패: {e}")
            return WriteResult(
                took_ms=_elapsed_ms(start),
                request=request,
                error=e,
                error_kind=classify_error(e),
            )

    async def patch(
        self, doc_id: str | int, partial: dict[str, Any], refresh: bool = True
    ) -> WriteResult:
        """별칭을 통해 문서 일부 필드만 갱신. 문서가 없으면 에러."""
        start = time.perf_counter()
        request = {"alias": self.alias_name, "id": doc_id, "fields": sorted(partial)}
        try:
            response = await self.store.update_document(
                self.alias_name, str(doc_id), partial, refresh=refresh
            )
            return WriteResult(
                id=str(doc_id), took_ms=_elapsed_ms(start), request=request, response=response
            )
        except Exception as e:
            logger.warning(f"'{self.alias_name}' 문서 '{doc_id}' 갱신 실패: {e}")
            return WriteResult(
                took_ms=_elapsed_ms(start),
                request=request,
                error=e,
                error_kind=classify_error(e),
            )

    async def delete(self, doc_id: str | int | None, refresh: bool = True) -> DeleteResult:
        """별칭을 통해 문서 삭제.

        id가 비어 있으면 아직 저장된 적 없는 문서로 보고 스토어를 호출하지 않고
        deleted=True를 반환합니다.
        """
        start = time.perf_counter()
        request = {"alias": self.alias_name, "id": doc_id}
        if not doc_id:
            return DeleteResult(
                deleted=True,
                took_ms=_elapsed_ms(start),
                request=request,
                response="Not yet in database",
            )
        try:
            response = await self.store.delete_document(
                self.alias_name, str(doc_id), refresh=refresh
            )
            return DeleteResult(
                deleted=True, took_ms=_elapsed_ms(start), request=request, response=response
            )
        except Exception as e:
            logger.warning(f"'{self.alias_name}' 문서 '{doc_id}' 삭제 실패: {e}")
            return DeleteResult(
                took_ms=_elapsed_ms(start),
                request=request,
                error=e,
                error_kind=classify_error(e),
            )

    async def find_by_id(self, doc_id: str | int) -> FindResult:
        """현재 버전 인덱스에서 문서 하나 조회. 없으면 record=None."""
        start = time.perf_counter()
        request = {"index": self.index_name, "id": doc_id}
        try:
            record = await self.store.fetch_document(self.index_name, str(doc_id))
            return FindResult(
                record=record, took_ms=_elapsed_ms(start), request=request, response=record
            )
        except Exception as e:
            logger.warning(f"'{self.index_name}' 문서 '{doc_id}' 조회 실패: {e}")
            return FindResult(
                took_ms=_elapsed_ms(start),
                request=request,
                error=e,
                error_kind=classify_error(e),
            )

    # =========================================================================
    # Migration
    # =========================================================================

    async def _replay(self, old_name: str, new_name: str, watermark: int) -> int:
        """watermark 이후 구 인덱스에 들어온 쓰기를 신 인덱스에 재적용.

        짧은 페이지(page_size 미만)가 나오면 종료합니다.
        마지막 row의 sort 값을 함께 넘겨 스토어가 search_after 페이징을 쓸 수 있게 합니다.
        """
        page_from = 0
        cursor = None
        replayed = 0
        while True:
            rows = await self.store.search_by_sequence_above(
                old_name, watermark, page_from, self.replay_page_size, search_after=cursor
            )
            if rows:
                replayed += await self.store.bulk_upsert(new_name, rows, refresh=True)
            if len(rows) < self.replay_page_size:
                return replayed
            page_from += self.replay_page_size
            cursor = rows[-1].get("sort")

    async def migrate_if_needed(self) -> MigrationResult:
        """필요하면 새 버전 인덱스를 만들고 데이터를 옮긴 뒤 별칭을 교체.

        Returns:
            MigrationResult. 예외를 던지지 않습니다.
        """
        start = time.perf_counter()
        new_name = self.index_name
        old_name: str | None = None
        created = False
        replayed = 0

        def result(code: MigrationCode, error: BaseException | None = None) -> MigrationResult:
            return MigrationResult(
                success=error is None,
                code=code,
                alias_name=self.alias_name,
                old_name=old_name,
                new_name=new_name,
                took_ms=_elapsed_ms(start),
                replayed=replayed,
                error=error,
                error_kind=classify_error(error),
            )

        try:
            if await self.store.index_exists(new_name):
                return result(MigrationCode.NO_CHANGE)

            await self.store.create_index(
                new_name, self.mapping_provider.to_mapping_definition(), self._index_settings()
            )
            created = True
            logger.info(f"대상 인덱스 '{new_name}' 생성")

            old_name = await self.store.get_alias_target(self.alias_name)
            if old_name is None or old_name == new_name:
                await self.store.put_alias(self.alias_name, new_name)
                logger.info(f"별칭 '{self.alias_name}' → '{new_name}' 연결")
                return result(MigrationCode.CREATED_INDEX)

            # watermark 이하 문서는 모두 reindex에 보여야 함
            await self.store.refresh(old_name)
            watermark = await self.store.get_sequence_watermark(old_name)
            logger.info(f"'{old_name}' → '{new_name}' reindex 시작 (watermark={watermark})")
            await self.store.reindex(old_name, new_name, conflicts="proceed")

            async with write_blocked(self.store, old_name):
                await self.store.refresh(old_name)
                await self.store.update_alias_atomic(
                    remove=AliasAction(index=old_name, alias=self.alias_name),
                    add=AliasAction(index=new_name, alias=self.alias_name),
                )
                logger.info(f"별칭 '{self.alias_name}' 교체: '{old_name}' → '{new_name}'")
                replayed = await self._replay(old_name, new_name, watermark)
                logger.info(f"watermark 이후 문서 {replayed}건 replay")

            await self.store.delete_index(old_name)
            logger.info(f"구 인덱스 '{old_name}' 삭제")
            return result(MigrationCode.MIGRATED)

        except Exception as e:
            if not created:
                logger.warning(f"'{new_name}' 마이그레이션 준비 실패: {e}")
                return result(MigrationCode.ERROR, e)
            logger.exception(f"'{old_name}' → '{new_name}' 마이그레이션 실패")
            return result(MigrationCode.MIGRATION_FAILED, e)
