"""버전 인덱스 이름 규칙.

전체 이름(full name)은 버전을 포함하고, 별칭 이름(alias name)은 버전을 제외합니다.

    staging~english~wild_animals~v5   (full name)
    staging~english~wild_animals      (alias name)

prefix가 비어 있으면 두 이름 모두에서 생략됩니다.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, replace

from .errors import InvalidIndexNameError

_BASE_NAME_RE = re.compile(r"^[a-z][a-z0-9_-]+$")


@dataclass(frozen=True)
class IndexDescriptor:
    """인덱스 이름 구성 요소.

    Attributes:
        base_name: 기본 인덱스 이름 (예: "books")
        version: 스키마 버전
        prefix: 애플리케이션/환경 구분용 접두사 (예: "prod")
        language: 주 분석기 또는 언어 태그
        separator: 구성 요소 구분자
    """

    base_name: str
    version: int | str = 1
    prefix: str = ""
    language: str = "english"
    separator: str = "~"

    def __post_init__(self) -> None:
        if not self.is_valid_base_name(self.base_name, self.separator):
            raise InvalidIndexNameError(
                f"Index name is too short, too long, or contains invalid characters: "
                f"{self.base_name!r}"
            )

    @staticmethod
    def is_valid_base_name(name: str, separator: str = "~") -> bool:
        return (
            isinstance(name, str)
            and 1 <= len(name) <= 255
            and separator not in name
            and _BASE_NAME_RE.match(name) is not None
        )

    def _join(self, parts: list[str]) -> str:
        if not self.prefix:
            parts = parts[1:]
        return self.separator.join(parts)

    @property
    def full_name(self) -> str:
        return self._join([self.prefix, self.language, self.base_name, f"v{self.version}"])

    @property
    def alias_name(self) -> str:
        return self._join([self.prefix, self.language, self.base_name])

    def with_version(self, version: int | str) -> IndexDescriptor:
        """버전만 바꾼 새 descriptor 반환."""
        return replace(self, version=version)

    @classmethod
    def parse(cls, full_name: str, separator: str = "~") -> IndexDescriptor:
        """전체 인덱스 이름에서 descriptor 복원.

        Raises:
            InvalidIndexNameError: 구성 요소 개수가 3 또는 4가 아닌 경우
        """
        parts = full_name.split(separator)
        if len(parts) not in (3, 4):
            raise InvalidIndexNameError(f"Cannot parse index name: {full_name!r}")
        return cls(
            base_name=parts[-2],
            version=parts[-1].removeprefix("v"),
            prefix=parts[0] if len(parts) == 4 else "",
            language=parts[-3],
            separator=separator,
        )

    def __str__(self) -> str:
        return self.full_name
