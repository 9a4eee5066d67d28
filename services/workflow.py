"""
统计调度中心 (Stats Workflow)
将统计项名称分发至具体的计算流程。每个统计项只读取自己需要的存储数据，
存储层抛出的任何异常都会包装为 StorageReadError，并标明是哪一项统计失败。
"""
from __future__ import annotations
import logging
from typing import List, Optional, Protocol

from core.exceptions import StorageReadError, UnknownStatisticError
from core.schemas import (
    Character, Episode, Foreshadow, ProgressPoint, ProjectAnalysis, WritingActivity,
)
from services import dashboard_service
from services.completion_service import episode_completions
from services.consistency_service import (
    CharacterConsistencyAnalyzer, collect_warnings, project_consistency_score,
)
from services.foreshadow_service import integrity_warnings

logger = logging.getLogger(__name__)

# 固定顺序，同时也是合并视图中错误的优先级
STATISTICS = ("writing_activity", "progress_timeline", "episode_stats", "dashboard_summary")

DEFAULT_ACTIVITY_DAYS = 7
DEFAULT_TIMELINE_DAYS = 30


class StatsSource(Protocol):
    """外部存储需要提供的读取操作"""

    def list_episodes(self, project_id: str) -> List[Episode]: ...

    def list_characters(self, project_id: str) -> List[Character]: ...

    def list_foreshadows(self, project_id: str) -> List[Foreshadow]: ...

    def get_writing_activity(self, project_id: str, days: int) -> List[WritingActivity]: ...

    def get_progress_timeline(self, project_id: str, days: int) -> List[ProgressPoint]: ...


def analyze_project(source: StatsSource, project_id: str,
                    analyzer: Optional[CharacterConsistencyAnalyzer] = None) -> ProjectAnalysis:
    """
    读取项目源记录并执行完整分析。
    有角色时以角色平均分作为权威一致性分数，否则由仪表盘按警告数回退计算。
    """
    episodes = source.list_episodes(project_id) or []
    characters = source.list_characters(project_id) or []
    foreshadows = source.list_foreshadows(project_id) or []

    analyzer = analyzer or CharacterConsistencyAnalyzer()
    results = analyzer.analyze_all(characters)
    warnings = collect_warnings(results) + integrity_warnings(foreshadows)
    score = project_consistency_score(results) if results else None

    summary = dashboard_service.summarize(
        episodes, characters, foreshadows, warnings,
        consistency_score=score, project_id=project_id,
    )
    return ProjectAnalysis(
        project_id=project_id,
        characters=results,
        warnings=warnings,
        completions=episode_completions(episodes),
        summary=summary,
    )


def run_statistic(name: str, source: StatsSource, project_id: str, settings: dict = None):
    """
    统计项统一入口点。

    Args:
        name: 统计项名称，见 STATISTICS。
        source: 外部存储读取器。
        project_id: 项目标识。
        settings: 配置中的 stats 部分 (activity_days, timeline_days)。
    """
    if name not in STATISTICS:
        raise UnknownStatisticError(f"未知的统计项: {name}")

    settings = settings or {}
    logger.info(f"路由统计请求: {name} (项目: {project_id})")

    try:
        if name == "writing_activity":
            return source.get_writing_activity(project_id, settings.get("activity_days", DEFAULT_ACTIVITY_DAYS))
        if name == "progress_timeline":
            return source.get_progress_timeline(project_id, settings.get("timeline_days", DEFAULT_TIMELINE_DAYS))
        if name == "episode_stats":
            return dashboard_service.build_episode_stats(source.list_episodes(project_id))
        return analyze_project(source, project_id).summary
    except Exception as e:
        logger.error(f"执行统计 {name} 失败: {e}", exc_info=True)
        raise StorageReadError(name, project_id, e) from e
