"""
伏笔与时间线追踪 (Foreshadow / Timeline Tracker)
统计未回收伏笔，按回次映射伏笔的埋设与回收，并检测回收早于埋设的数据异常。
异常只生成低严重度的 timeline 警告，不自动修正原始记录。
"""
from __future__ import annotations
import logging
from typing import Dict, Iterable, List, Sequence

from core.schemas import Episode, Foreshadow, ForeshadowSummary, WarningRecord

logger = logging.getLogger(__name__)


def unresolved_count(foreshadows: Iterable[Foreshadow]) -> int:
    return sum(1 for f in foreshadows or [] if f.resolved_episode is None)


def episode_map(foreshadows: Iterable[Foreshadow], episode_number: int) -> Dict[str, List[Foreshadow]]:
    """返回指定回次埋设 (introduced) 与回收 (resolved) 的伏笔"""
    foreshadows = list(foreshadows or [])
    return {
        "introduced": [f for f in foreshadows if f.introduced_episode == episode_number],
        "resolved": [f for f in foreshadows if f.resolved_episode == episode_number],
    }


def order_episodes(episodes: Iterable[Episode]) -> List[Episode]:
    """时间线展示顺序：按回次号升序，相同回次号保持输入顺序"""
    return sorted(episodes or [], key=lambda e: e.episode_number)


def is_inverted(foreshadow: Foreshadow) -> bool:
    return (
        foreshadow.resolved_episode is not None
        and foreshadow.introduced_episode is not None
        and foreshadow.resolved_episode < foreshadow.introduced_episode
    )


def integrity_warnings(foreshadows: Iterable[Foreshadow]) -> List[WarningRecord]:
    """回收回次早于埋设回次的记录各生成一条低严重度警告"""
    warnings = []
    for f in foreshadows or []:
        if not is_inverted(f):
            continue
        logger.warning(
            f"伏笔 '{f.title}' ({f.id}) 的回收回次 {f.resolved_episode} 早于埋设回次 {f.introduced_episode}"
        )
        warnings.append(WarningRecord(
            id=f"foreshadow-order-{f.id}",
            type="timeline",
            severity="low",
            description=(
                f'Foreshadow "{f.title}" is resolved in episode {f.resolved_episode} '
                f"before it is introduced in episode {f.introduced_episode}."
            ),
            episode=f.introduced_episode,
        ))
    return warnings


def unresolved_warnings(foreshadows: Iterable[Foreshadow]) -> List[WarningRecord]:
    """未回收伏笔的提示列表 (供展示层使用)"""
    return [
        WarningRecord(
            id=f"foreshadow-{f.id}",
            type="timeline",
            severity="medium",
            description=f'Foreshadow "{f.title}" has not been resolved yet.',
            episode=f.introduced_episode or 0,
            character_name="story structure",
        )
        for f in foreshadows or []
        if f.resolved_episode is None
    ]


def summarize_foreshadows(foreshadows: Sequence[Foreshadow]) -> List[ForeshadowSummary]:
    return [
        ForeshadowSummary(
            id=f.id,
            title=f.title,
            introduced_episode=f.introduced_episode,
            resolved_episode=f.resolved_episode,
            importance=f.importance,
        )
        for f in foreshadows or []
    ]
