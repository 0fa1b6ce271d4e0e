"""Elasticsearch 비동기 클라이언트 팩토리."""

from __future__ import annotations

import logging

from elasticsearch import AsyncElasticsearch

from .config import IndexAdminConfig

logger = logging.getLogger(__name__)


def create_es_client(cfg: IndexAdminConfig | None = None) -> AsyncElasticsearch:
    """AsyncElasticsearch 클라이언트 생성.

    Args:
        cfg: 설정. None이면 환경변수 기본 설정 사용.

    Returns:
        AsyncElasticsearch 클라이언트 인스턴스.

    Raises:
        ValueError: ES_URL이 비어 있는 경우.
    """
    if cfg is None:
        cfg = IndexAdminConfig()

    if not cfg.es_url:
        raise ValueError("ES_URL 환경변수를 설정하세요.")

    # Basic Auth 사용
    if cfg.es_username and cfg.es_password:
        return AsyncElasticsearch(
            hosts=[cfg.es_url],
            basic_auth=(cfg.es_username, cfg.es_password),
            verify_certs=cfg.verify_certs,
            request_timeout=cfg.request_timeout_s,
        )

    # No Auth (로컬 개발용)
    return AsyncElasticsearch(
        hosts=[cfg.es_url],
        verify_certs=cfg.verify_certs,
        request_timeout=cfg.request_timeout_s,
    )


async def check_connection(es: AsyncElasticsearch) -> bool:
    """ES 연결 상태 확인.

    Returns:
        연결 성공 여부.
    """
    try:
        return bool(await es.ping())
    except Exception as e:
        logger.warning(f"Elasticsearch 연결 확인 실패: {e}")
        return False
