"""인덱스 관리 연산의 결과 타입 정의.

이 모듈은 인프라에 의존하지 않습니다.
매니저, 레지스트리, 스토어 어디서든 import할 수 있습니다.

모든 public 연산은 동일한 형태의 envelope를 반환합니다:
    <주 결과 필드>, took_ms, request, error, error_kind, response
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    """전송/응답 에러 분류."""

    RESPONSE = "response"
    CONNECTION = "connection"
    TIMEOUT = "timeout"
    DISCONNECTED = "disconnected"
    GENERIC = "generic"


class MigrationCode(str, Enum):
    """migrate_if_needed() 결과 코드."""

    CREATED_INDEX = "CREATED_INDEX"
    MIGRATED = "MIGRATED"
    NO_CHANGE = "NO_CHANGE"
    MIGRATION_FAILED = "MIGRATION_FAILED"
    ERROR = "ERROR"


class CreateCode(str, Enum):
    """create_if_needed() / create_alias_if_needed() 결과 코드."""

    ALREADY_EXISTS = "ALREADY_EXISTS"
    CREATED = "CREATED"
    ERROR = "ERROR"


class StatusCode(str, Enum):
    """get_status() 결과 코드."""

    NEEDS_CREATION = "NEEDS_CREATION"
    NEEDS_MIGRATION = "NEEDS_MIGRATION"
    CURRENT = "CURRENT"
    ERROR = "ERROR"


@dataclass(frozen=True)
class AliasAction:
    """별칭 변경 액션 하나 (index ↔ alias)."""

    index: str
    alias: str

    def to_es(self) -> dict[str, str]:
        return {"index": self.index, "alias": self.alias}


# =============================================================================
# Envelopes
# =============================================================================


@dataclass
class Envelope:
    """공통 결과 envelope.

    Attributes:
        took_ms: 소요 시간 (밀리초)
        request: 입력값 echo
        error: 발생한 예외 (없으면 None)
        error_kind: 예외 분류 (없으면 None)
        response: 스토어 원본 응답
    """

    took_ms: float = 0.0
    request: dict[str, Any] = field(default_factory=dict)
    error: BaseException | None = None
    error_kind: ErrorKind | None = None
    response: Any = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class ExistsResult(Envelope):
    exists: bool | None = None


@dataclass
class CreateResult(Envelope):
    index_name: str | None = None


@dataclass
class AliasResult(Envelope):
    acknowledged: bool = False


@dataclass
class CreateIfNeededResult(Envelope):
    code: CreateCode = CreateCode.ERROR


@dataclass
class DropResult(Envelope):
    index_name: str | None = None
    dropped: bool = False


@dataclass
class BulkResult(Envelope):
    count: int = 0


@dataclass
class WriteResult(Envelope):
    """단건 저장(put/patch) 결과. 성공 시 문서 id."""

    id: str | None = None


@dataclass
class DeleteResult(Envelope):
    deleted: bool = False


@dataclass
class FindResult(Envelope):
    """단건 조회 결과. 문서가 없으면 record=None (에러 아님)."""

    record: dict[str, Any] | None = None


@dataclass
class StatusReport(Envelope):
    """단일 인덱스 상태.

    Attributes:
        alias_name: 별칭 이름
        index_name: 현재 버전의 전체 인덱스 이름
        exists: 현재 버전 인덱스 존재 여부
        alias_target: 별칭이 현재 가리키는 인덱스 (없으면 None)
    """

    code: StatusCode = StatusCode.ERROR
    alias_name: str | None = None
    index_name: str | None = None
    exists: bool | None = None
    alias_target: str | None = None


@dataclass
class MigrationResult:
    """migrate_if_needed() 1회 실행 결과. 저장되지 않는 일시적 보고 객체."""

    success: bool
    code: MigrationCode
    alias_name: str | None = None
    old_name: str | None = None
    new_name: str | None = None
    took_ms: float = 0.0
    replayed: int = 0
    error: BaseException | None = None
    error_kind: ErrorKind | None = None


@dataclass
class BatchResult:
    """레지스트리 일괄 실행 결과.

    Attributes:
        success: 전체 실행 성공 여부
        took_ms: 소요 시간 (밀리초)
        report: 처리 순서대로 쌓인 개별 결과
        summary: 별칭 이름 → 결과 코드
        error: 처리되지 않은 예외 (없으면 None)
        error_kind: 예외 분류 (없으면 None)
    """

    success: bool
    took_ms: float
    report: list[Any] = field(default_factory=list)
    summary: dict[str, Any] = field(default_factory=dict)
    error: BaseException | None = None
    error_kind: ErrorKind | None = None
