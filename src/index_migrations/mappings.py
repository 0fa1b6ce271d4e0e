"""Elasticsearch 인덱스 매핑/분석기 설정.

스키마 → 매핑 변환기는 외부 협력자이며, 이 모듈은 그 인터페이스와
가장 단순한 구현(고정 매핑)만 제공합니다.
"""

from __future__ import annotations

import copy
from typing import Any


def _englishplus_settings() -> dict[str, Any]:
    """영어 확장 분석기 설정 (stop + stemmer + asciifolding)."""
    return {
        "analysis": {
            "filter": {
                "english_stop": {"type": "stop", "stopwords": "_english_"},
                "english_stemmer": {"type": "stemmer", "language": "english"},
            },
            "analyzer": {
                "englishplus": {
                    "type": "custom",
                    "tokenizer": "standard",
                    "filter": ["lowercase", "english_stop", "english_stemmer", "asciifolding"],
                }
            },
        }
    }


def _ko_nori_settings() -> dict[str, Any]:
    """한국어 Nori 분석기 설정.

    Note:
        analysis-nori 플러그인이 필요합니다.
    """
    return {
        "analysis": {
            "analyzer": {
                "ko_nori": {
                    "type": "custom",
                    "tokenizer": "nori_tokenizer",
                    "filter": ["lowercase"],
                }
            }
        }
    }


# 언어 태그 -> 커스텀 분석기 설정. 내장 분석기(english, cjk 등)는 설정 불필요.
ANALYSIS_SETTINGS = {
    "englishplus": _englishplus_settings,
    "ko_nori": _ko_nori_settings,
}


def analysis_settings(language: str) -> dict[str, Any]:
    """언어 태그에 필요한 분석기 설정. 없으면 빈 dict."""
    factory = ANALYSIS_SETTINGS.get(language)
    return factory() if factory else {}


def merge_settings(base: dict[str, Any], extra: dict[str, Any] | None) -> dict[str, Any]:
    """settings를 재귀적으로 병합. extra 값이 우선합니다."""
    merged = copy.deepcopy(base)
    for key, value in (extra or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_settings(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


class StaticMappingProvider:
    """고정 매핑 정의를 반환하는 MappingProvider.

    Example:
        >>> provider = StaticMappingProvider({"title": {"type": "text"}})
        >>> provider.to_mapping_definition()
        {'properties': {'title': {'type': 'text'}}}
    """

    def __init__(self, properties: dict[str, Any] | None = None, **extra: Any):
        self.properties = properties or {}
        self.extra = extra

    def to_mapping_definition(self) -> dict[str, Any]:
        return {"properties": copy.deepcopy(self.properties), **copy.deepcopy(self.extra)}
