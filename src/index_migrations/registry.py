"""여러 인덱스의 일괄 마이그레이션/상태 확인/삭제.

MigrationOrchestrator는 등록된 매니저들을 group_size 단위로 나누고,
모든 그룹을 동시에 실행하되 그룹 내부는 등록 순서대로 하나씩 실행합니다.

Note:
    group_size가 클수록 그룹 수가 줄어 동시성이 낮아집니다.
    "동시성" 파라미터의 직관과 반대이지만 기존 동작을 그대로 유지합니다.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Sequence
from typing import Any, TypeVar

from .errors import classify_error
from .manager import IndexLifecycleManager
from .types import BatchResult

logger = logging.getLogger(__name__)

T = TypeVar("T")


def chunkify(items: Sequence[T], size: int) -> list[list[T]]:
    """연속된 최대 size개 단위 그룹으로 분할. 마지막 그룹은 더 짧을 수 있음.

    Example:
        >>> chunkify([1, 2, 3, 4, 5, 6, 7], 3)
        [[1, 2, 3], [4, 5, 6], [7]]
    """
    if size < 1:
        raise ValueError(f"size는 1 이상이어야 합니다: {size}")
    return [list(items[i : i + size]) for i in range(0, len(items), size)]


class MigrationOrchestrator:
    """IndexLifecycleManager 묶음 실행기."""

    def __init__(self, managers: list[IndexLifecycleManager] | None = None):
        self.managers: list[IndexLifecycleManager] = list(managers or [])

    def register(self, manager: IndexLifecycleManager) -> MigrationOrchestrator:
        self.managers.append(manager)
        return self

    def register_all(self, managers: Sequence[IndexLifecycleManager]) -> MigrationOrchestrator:
        self.managers.extend(managers)
        return self

    chunkify = staticmethod(chunkify)

    async def _run_grouped(
        self,
        group_size: int,
        operation: Callable[[IndexLifecycleManager], Awaitable[Any]],
        summarize: Callable[[Any], Any],
    ) -> BatchResult:
        """그룹 병렬 / 그룹 내 순차 실행 후 report와 summary 집계.

        한 그룹에서 예외가 나도 다른 그룹은 끝까지 실행됩니다.
        예외가 난 그룹의 나머지 매니저는 실행되지 않습니다.
        """
        start = time.perf_counter()
        report: list[Any] = []
        summary: dict[str, Any] = {}

        async def run_group(group: list[IndexLifecycleManager]) -> None:
            for manager in group:
                result = await operation(manager)
                report.append(result)
                summary[manager.alias_name] = summarize(result)

        try:
            groups = chunkify(self.managers, group_size)
            outcomes = await asyncio.gather(
                *(run_group(group) for group in groups), return_exceptions=True
            )
            errors = [o for o in outcomes if isinstance(o, BaseException)]
            if errors:
                raise errors[0]
            return BatchResult(
                success=True,
                took_ms=(time.perf_counter() - start) * 1000,
                report=report,
                summary=summary,
            )
        except Exception as e:
            logger.exception("일괄 실행 중 처리되지 않은 예외")
            return BatchResult(
                success=False,
                took_ms=(time.perf_counter() - start) * 1000,
                report=report,
                summary=summary,
                error=e,
                error_kind=classify_error(e),
            )

    async def migrate_if_needed(self, group_size: int = 2) -> BatchResult:
        """등록된 모든 인덱스 마이그레이션. summary는 별칭 → MigrationCode."""
        batch = await self._run_grouped(
            group_size, lambda m: m.migrate_if_needed(), lambda r: r.code
        )
        logger.info(f"마이그레이션 완료 ({batch.took_ms:.0f}ms): {batch.summary}")
        return batch

    async def get_status(self, group_size: int = 2) -> BatchResult:
        """등록된 모든 인덱스 상태. summary는 별칭 → StatusCode."""
        return await self._run_grouped(group_size, lambda m: m.get_status(), lambda r: r.code)

    async def drop_all(self, group_size: int = 2) -> BatchResult:
        """등록된 모든 인덱스 삭제. summary는 별칭 → 삭제 여부."""
        return await self._run_grouped(group_size, lambda m: m.drop(), lambda r: r.dropped)
