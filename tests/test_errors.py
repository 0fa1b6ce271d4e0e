"""에러 분류 및 설정 테스트."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from index_migrations import (
    ErrorKind,
    IndexAdminConfig,
    StoreDisconnectedError,
    StoreResponseError,
    analysis_settings,
    check_connection,
    classify_error,
    create_es_client,
)
from index_migrations.mappings import merge_settings


def test_classify_error():
    assert classify_error(None) is None
    assert classify_error(StoreResponseError("missing", status=404)) is ErrorKind.RESPONSE
    assert classify_error(StoreDisconnectedError("closed")) is ErrorKind.DISCONNECTED
    assert classify_error(asyncio.TimeoutError()) is ErrorKind.TIMEOUT
    assert classify_error(ValueError("boom")) is ErrorKind.GENERIC


def test_config_from_env(monkeypatch):
    monkeypatch.setenv("ES_URL", "http://es:9200")
    monkeypatch.setenv("ES_INDEX_PREFIX", "prod")
    monkeypatch.setenv("ES_REPLAY_PAGE_SIZE", "250")
    monkeypatch.setenv("ES_CALL_TIMEOUT_S", "1.5")

    cfg = IndexAdminConfig.from_env()

    assert cfg.es_url == "http://es:9200"
    assert cfg.index_prefix == "prod"
    assert cfg.replay_page_size == 250
    assert cfg.call_timeout_s == 1.5


def test_config_call_timeout_defaults_to_none(monkeypatch):
    monkeypatch.delenv("ES_CALL_TIMEOUT_S", raising=False)

    assert IndexAdminConfig().call_timeout_s is None


def test_analysis_settings():
    assert "englishplus" in analysis_settings("englishplus")["analysis"]["analyzer"]
    assert analysis_settings("english") == {}


def test_merge_settings_is_deep():
    merged = merge_settings(
        {"analysis": {"analyzer": {"a": 1}}, "index": {"refresh_interval": "1s"}},
        {"analysis": {"filter": {"f": 2}}, "index": {"refresh_interval": "5s"}},
    )

    assert merged == {
        "analysis": {"analyzer": {"a": 1}, "filter": {"f": 2}},
        "index": {"refresh_interval": "5s"},
    }


@pytest.mark.asyncio
async def test_check_connection():
    es = MagicMock()
    es.ping = AsyncMock(return_value=True)
    assert await check_connection(es) is True

    es.ping = AsyncMock(side_effect=OSError("refused"))
    assert await check_connection(es) is False


def test_ko_nori_analysis_settings():
    analyzer = analysis_settings("ko_nori")["analysis"]["analyzer"]["ko_nori"]

    assert analyzer["tokenizer"] == "nori_tokenizer"


def test_create_es_client_uses_basic_auth(monkeypatch):
    created = MagicMock()
    monkeypatch.setattr("index_migrations.client.AsyncElasticsearch", created)
    cfg = IndexAdminConfig(
        es_url="https://es:9200", es_username="admin", es_password="secret", verify_certs=False
    )

    create_es_client(cfg)

    created.assert_called_once_with(
        hosts=["https://es:9200"],
        basic_auth=("admin", "secret"),
        verify_certs=False,
        request_timeout=cfg.request_timeout_s,
    )


def test_create_es_client_requires_url():
    with pytest.raises(ValueError):
        create_es_client(IndexAdminConfig(es_url=""))
