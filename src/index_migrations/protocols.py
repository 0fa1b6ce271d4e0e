"""스토어/매핑 Protocol(인터페이스) 정의.

이 모듈은 Elasticsearch나 다른 인프라에 의존하지 않습니다.

Protocol은 구조적 서브타이핑(Structural Subtyping)을 지원합니다.
구현체가 이 Protocol을 상속하지 않아도, 시그니처만 맞으면 호환됩니다.
"""

from __future__ import annotations

from typing import Any, Protocol

from .types import AliasAction


class MappingProviderProtocol(Protocol):
    """스키마 → 매핑 정의 변환기 인터페이스. create() 1회당 1번 호출됩니다."""

    def to_mapping_definition(self) -> dict[str, Any]: ...


class StoreClientProtocol(Protocol):
    """문서 스토어 관리/데이터 API.

    모든 메서드는 실패 시 예외를 던집니다. envelope 변환은 매니저의 몫입니다.

    Example:
        >>> class ElasticsearchStore:
        ...     async def index_exists(self, name: str) -> bool:
        ...         ...  # indices.exists 위임
        >>>
        >>> class InMemoryStore:
        ...     async def index_exists(self, name: str) -> bool:
        ...         ...  # dict 조회
    """

    async def index_exists(self, name: str) -> bool: ...

    async def alias_exists(self, alias: str) -> bool: ...

    async def create_index(
        self,
        name: str,
        mapping: dict[str, Any],
        settings: dict[str, Any] | None = None,
    ) -> Any: ...

    async def get_alias_target(self, alias: str) -> str | None: ...

    async def get_sequence_watermark(self, name: str) -> int: ...

    async def refresh(self, name: str) -> Any:
        """이미 기록된 쓰기를 검색/reindex에 보이게 만듭니다."""
        ...

    async def reindex(self, source: str, dest: str, conflicts: str = "proceed") -> Any: ...

    async def set_write_blocked(self, name: str, blocked: bool) -> Any: ...

    async def update_alias_atomic(self, remove: AliasAction, add: AliasAction) -> Any: ...

    async def search_by_sequence_above(
        self,
        name: str,
        watermark: int,
        page_from: int,
        page_size: int,
        search_after: list[Any] | None = None,
    ) -> list[dict[str, Any]]:
        """_seq_no > watermark 문서를 _seq_no 오름차순으로 반환.

        각 row는 {"_id", "_source", "sort"} 형태입니다. search_after가 주어지면
        page_from 대신 이전 페이지 마지막 row의 sort 값 이후부터 읽습니다.
        """
        ...

    async def bulk_upsert(
        self,
        dest: str,
        rows: list[dict[str, Any]],
        refresh: bool = True,
    ) -> int: ...

    async def index_document(
        self, dest: str, doc_id: str, source: dict[str, Any], refresh: bool = True
    ) -> Any: ...

    async def update_document(
        self, dest: str, doc_id: str, partial: dict[str, Any], refresh: bool = True
    ) -> Any: ...

    async def delete_document(self, dest: str, doc_id: str, refresh: bool = True) -> Any: ...

    async def fetch_document(self, name: str, doc_id: str) -> dict[str, Any] | None:
        """문서 _source. 문서가 없으면 None, 인덱스가 없으면 예외."""
        ...

    async def delete_index(self, name: str) -> Any: ...

    async def put_alias(self, alias: str, name: str) -> Any: ...

    async def delete_alias(self, alias: str, name: str) -> Any: ...
