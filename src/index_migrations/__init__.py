"""Elasticsearch 버전 인덱스 관리 및 무중단 마이그레이션.

주요 컴포넌트:
    - IndexDescriptor: 버전 인덱스 이름 / 별칭 이름 규칙
    - IndexLifecycleManager: 단일 인덱스 생성, 삭제, 마이그레이션
    - MigrationOrchestrator: 여러 인덱스 일괄 실행
    - ElasticsearchStore / InMemoryStore: StoreClient 구현체

Usage:
    >>> from index_migrations import IndexAdminConfig, IndexDescriptor
    >>> from index_migrations import ElasticsearchStore, IndexLifecycleManager
    >>> from index_migrations import MigrationOrchestrator, StaticMappingProvider
    >>>
    >>> cfg = IndexAdminConfig()
    >>> store = ElasticsearchStore.from_config(cfg)
    >>> books = IndexLifecycleManager(
    ...     IndexDescriptor("books", version=2, prefix=cfg.index_prefix),
    ...     store=store,
    ...     mapping_provider=StaticMappingProvider({"title": {"type": "text"}}),
    ... )
    >>> registry = MigrationOrchestrator().register(books)
    >>> batch = await registry.migrate_if_needed(group_size=cfg.group_size)
"""

from .client import check_connection, create_es_client
from .config import IndexAdminConfig
from .errors import (
    InvalidIndexNameError,
    StoreConnectionError,
    StoreDisconnectedError,
    StoreError,
    StoreResponseError,
    StoreTimeoutError,
    classify_error,
)
from .manager import IndexLifecycleManager, write_blocked
from .mappings import StaticMappingProvider, analysis_settings
from .memory import InMemoryStore
from .names import IndexDescriptor
from .protocols import MappingProviderProtocol, StoreClientProtocol
from .registry import MigrationOrchestrator, chunkify
from .store import ElasticsearchStore
from .types import (
    AliasAction,
    BatchResult,
    CreateCode,
    ErrorKind,
    MigrationCode,
    MigrationResult,
    StatusCode,
)

__all__ = [
    # Config
    "IndexAdminConfig",
    # Client
    "create_es_client",
    "check_connection",
    # Names / mappings
    "IndexDescriptor",
    "StaticMappingProvider",
    "analysis_settings",
    # Stores
    "StoreClientProtocol",
    "MappingProviderProtocol",
    "ElasticsearchStore",
    "InMemoryStore",
    # Lifecycle
    "IndexLifecycleManager",
    "write_blocked",
    "MigrationOrchestrator",
    "chunkify",
    # Types
    "AliasAction",
    "BatchResult",
    "CreateCode",
    "ErrorKind",
    "MigrationCode",
    "MigrationResult",
    "StatusCode",
    # Errors
    "StoreError",
    "StoreResponseError",
    "StoreConnectionError",
    "StoreTimeoutError",
    "StoreDisconnectedError",
    "InvalidIndexNameError",
    "classify_error",
]
