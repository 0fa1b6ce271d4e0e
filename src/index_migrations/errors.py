"""스토어 예외 계층과 에러 분류.

Elasticsearch 클라이언트 예외와 이 패키지의 예외를 ErrorKind로 분류합니다.
매니저의 모든 public 연산은 예외를 던지지 않고 envelope에 담아 반환하므로,
이 모듈이 envelope의 error_kind를 결정합니다.
"""

from __future__ import annotations

import asyncio

from elasticsearch import ApiError, ConnectionTimeout
from elasticsearch import ConnectionError as ESConnectionError

from .types import ErrorKind


class StoreError(Exception):
    """스토어 연산 실패 기본 예외."""

    kind: ErrorKind = ErrorKind.GENERIC


class StoreResponseError(StoreError):
    """스토어가 구조화된 에러 응답을 반환한 경우 (예: 404)."""

    kind = ErrorKind.RESPONSE

    def __init__(self, message: str, status: int = 400):
        super().__init__(message)
        self.status = status


class StoreConnectionError(StoreError):
    """스토어 연결 실패."""

    kind = ErrorKind.CONNECTION


class StoreTimeoutError(StoreError):
    """스토어 호출 타임아웃."""

    kind = ErrorKind.TIMEOUT


class StoreDisconnectedError(StoreError):
    """사용 가능한 엔드포인트가 없음 (클라이언트가 닫힌 경우 포함)."""

    kind = ErrorKind.DISCONNECTED


class InvalidIndexNameError(ValueError):
    """인덱스 기본 이름이 규칙을 위반한 경우."""


def classify_error(exc: BaseException | None) -> ErrorKind | None:
    """예외를 ErrorKind로 분류.

    Args:
        exc: 분류할 예외. None이면 None 반환.

    Returns:
        ErrorKind 또는 None.
    """
    if exc is None:
        return None
    if isinstance(exc, StoreError):
        return exc.kind
    if isinstance(exc, ApiError):
        return ErrorKind.RESPONSE
    if isinstance(exc, (ConnectionTimeout, asyncio.TimeoutError)):
        return ErrorKind.TIMEOUT
    if isinstance(exc, ESConnectionError):
        return ErrorKind.CONNECTION
    return ErrorKind.GENERIC

