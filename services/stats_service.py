"""
统计收集门面 (Stats Collection Facade)
并发读取四项统计 (写作活动、累计进度、回次统计、仪表盘汇总)，
为展示层提供统一且不会因乱序完成而闪烁的视图。

- 每项统计独立保存 data / loading / error，一项失败不阻塞其他项。
- 每次请求携带单调递增的序号；完成时若序号低于已应用的序号则丢弃 (按发起顺序后写者胜)。
- 只响应本项目的 "统计已变更" 通知。
"""
from __future__ import annotations
import asyncio
import itertools
import logging
from typing import Dict, Optional

from core.exceptions import StorageReadError, UnknownStatisticError
from core.schemas import CombinedStats, ProjectAnalysis, StatResult
from services.workflow import STATISTICS, StatsSource, analyze_project, run_statistic

logger = logging.getLogger(__name__)

# "尚无数据" 时各统计项的初始值
EMPTY_DATA = {
    "writing_activity": list,
    "progress_timeline": list,
    "episode_stats": lambda: None,
    "dashboard_summary": lambda: None,
}


class StatsCollectionFacade:
    def __init__(self, source: StatsSource, project_id: str, settings: Optional[dict] = None):
        self.source = source
        self.project_id = project_id
        self.settings = settings or {}
        self._sequence = itertools.count(1)
        self._issued: Dict[str, int] = {name: 0 for name in STATISTICS}
        self._applied: Dict[str, int] = {name: 0 for name in STATISTICS}
        self._results: Dict[str, StatResult] = {
            name: StatResult(data=EMPTY_DATA[name]()) for name in STATISTICS
        }

    def result(self, name: str) -> StatResult:
        return self._results[name]

    def _begin(self, name: str) -> int:
        sequence = next(self._sequence)
        self._issued[name] = sequence
        self._results[name].loading = True
        return sequence

    def _apply(self, name: str, sequence: int, data=None, error: Optional[Exception] = None) -> bool:
        if sequence < self._applied[name]:
            logger.debug(f"丢弃过期结果: {name} #{sequence} (已应用 #{self._applied[name]})")
            return False

        current = self._results[name]
        self._applied[name] = sequence
        self._results[name] = StatResult(
            data=current.data if error is not None else data,
            loading=self._issued[name] > sequence,
            error=error,
            sequence=sequence,
        )
        return True

    async def fetch(self, name: str) -> StatResult:
        """读取单项统计；失败时错误记录在该项结果中，不向上抛出"""
        if name not in STATISTICS:
            raise UnknownStatisticError(f"未知的统计项: {name}")
        sequence = self._begin(name)
        try:
            data = await asyncio.to_thread(run_statistic, name, self.source, self.project_id, self.settings)
        except StorageReadError as e:
            self._apply(name, sequence, error=e)
        else:
            self._apply(name, sequence, data=data)
        return self._results[name]

    async def refresh(self) -> CombinedStats:
        """并发刷新全部统计并返回合并视图"""
        await asyncio.gather(*(self.fetch(name) for name in STATISTICS))
        return self.combined()

    async def notify_stats_changed(self, project_id: Optional[str] = None) -> Optional[CombinedStats]:
        """
        处理外部的 "统计已变更" 通知。
        project_id 为空表示所有项目；属于其他项目的通知会被忽略并返回 None。
        """
        if project_id and project_id != self.project_id:
            logger.debug(f"忽略其他项目的统计变更通知: {project_id}")
            return None
        return await self.refresh()

    async def analyze(self) -> ProjectAnalysis:
        """完整分析 (角色评估、警告、完成度)，供一致性视图使用"""
        try:
            return await asyncio.to_thread(analyze_project, self.source, self.project_id)
        except Exception as e:
            logger.error(f"项目分析失败 {self.project_id}: {e}", exc_info=True)
            raise StorageReadError("analysis", self.project_id, e) from e

    def combined(self) -> CombinedStats:
        """loading 为任一项加载中；error 取固定优先级下的第一个错误"""
        results = [self._results[name] for name in STATISTICS]
        error = next((r.error for r in results if r.error is not None), None)
        return CombinedStats(
            writing_activity=self._results["writing_activity"].data or [],
            progress_timeline=self._results["progress_timeline"].data or [],
            episode_stats=self._results["episode_stats"].data,
            summary=self._results["dashboard_summary"].data,
            loading=any(r.loading for r in results),
            error=error,
        )
