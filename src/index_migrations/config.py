"""인덱스 관리 설정.

환경변수로 설정을 관리합니다.

환경변수:
    ES_URL: Elasticsearch URL (기본: http://localhost:9200)
    ES_USERNAME: Basic Auth 사용자명 (선택)
    ES_PASSWORD: Basic Auth 비밀번호 (선택)
    ES_VERIFY_CERTS: SSL 인증서 검증 여부 (기본: true)
    ES_REQUEST_TIMEOUT_S: 전송 계층 요청 타임아웃 (기본: 30)
    ES_INDEX_PREFIX: 인덱스 접두사 (기본: 없음)
    ES_INDEX_LANGUAGE: 기본 언어/분석기 태그 (기본: english)
    ES_INDEX_SEPARATOR: 이름 구분자 (기본: ~)
    ES_REPLAY_PAGE_SIZE: replay 페이지 크기 (기본: 100)
    ES_CALL_TIMEOUT_S: 스토어 호출별 타임아웃 (기본: 없음)
    ES_MIGRATION_GROUP_SIZE: 레지스트리 그룹 크기 (기본: 2)
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

load_dotenv()


def _optional_float(name: str) -> float | None:
    value = os.getenv(name)
    return float(value) if value else None


@dataclass(frozen=True)
class IndexAdminConfig:
    """Elasticsearch 연결 및 인덱스 마이그레이션 설정.

    Attributes:
        es_url: Elasticsearch 서버 URL
        es_username: HTTP Basic Auth 사용자명 (선택)
        es_password: HTTP Basic Auth 비밀번호 (선택)
        verify_certs: SSL 인증서 검증 여부
        request_timeout_s: 요청 타임아웃 (초)
        index_prefix: 모든 인덱스 이름 앞에 붙는 접두사
        index_language: descriptor 기본 언어 태그
        index_separator: 이름 구성 요소 구분자
        replay_page_size: replay 단계 페이지 크기
        call_timeout_s: 스토어 호출별 타임아웃. None이면 무제한
        group_size: 레지스트리 기본 그룹 크기
    """

    # Connection
    es_url: str = field(default_factory=lambda: os.getenv("ES_URL", "http://localhost:9200"))
    es_username: str | None = field(default_factory=lambda: os.getenv("ES_USERNAME"))
    es_password: str | None = field(default_factory=lambda: os.getenv("ES_PASSWORD"))

    verify_certs: bool = field(
        default_factory=lambda: os.getenv("ES_VERIFY_CERTS", "true").lower() == "true"
    )
    request_timeout_s: int = field(
        default_factory=lambda: int(os.getenv("ES_REQUEST_TIMEOUT_S", "30"))
    )

    # Index names
    index_prefix: str = field(default_factory=lambda: os.getenv("ES_INDEX_PREFIX", ""))
    index_language: str = field(default_factory=lambda: os.getenv("ES_INDEX_LANGUAGE", "english"))
    index_separator: str = field(default_factory=lambda: os.getenv("ES_INDEX_SEPARATOR", "~"))

    # Migration
    replay_page_size: int = field(
        default_factory=lambda: int(os.getenv("ES_REPLAY_PAGE_SIZE", "100"))
    )
    call_timeout_s: float | None = field(
        default_factory=lambda: _optional_float("ES_CALL_TIMEOUT_S")
    )
    group_size: int = field(default_factory=lambda: int(os.getenv("ES_MIGRATION_GROUP_SIZE", "2")))

    @classmethod
    def from_env(cls) -> IndexAdminConfig:
        """환경변수에서 설정 로드."""
        return cls()
