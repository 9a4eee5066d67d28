"""
完成度计算 (Completion Rate Calculator)
按连载平台的单回最低字数计算回次的完成率 (保留一位小数，可超过 100)。
"""
from __future__ import annotations
import logging
from typing import Iterable, List, Mapping, Optional

from config.loader import get_platform_table
from core.schemas import Episode, EpisodeCompletion, Platform, round_half_up

logger = logging.getLogger(__name__)

# 未选择平台时展示层使用的第四种状态
NO_PLATFORM = "unset"


def platform_minimum(platform: Optional[str], table: Optional[Mapping[str, Platform]] = None) -> Optional[int]:
    if not platform:
        return None
    table = table if table is not None else get_platform_table()
    entry = table.get(platform)
    return entry.minimum if entry else None


def completion_rate(word_count: int, platform: Optional[str], table: Optional[Mapping[str, Platform]] = None) -> float:
    """
    计算完成率 (%)。

    Args:
        word_count: 当前字数。
        platform: 平台标识，为空时不计算。
        table: 平台表，默认使用配置中的平台表。

    Returns:
        float: 保留一位小数的百分比；无平台、字数为 0 或平台未知时为 0。
    """
    if not platform or not word_count:
        return 0.0
    minimum = platform_minimum(platform, table)
    if not minimum:
        logger.warning(f"未知的连载平台: {platform}")
        return 0.0
    return round_half_up(word_count / minimum * 1000) / 10


def completion_status(rate: float) -> str:
    if rate >= 100:
        return "success"
    if rate >= 80:
        return "warning"
    return "danger"


def completion_state(episode: Episode, table: Optional[Mapping[str, Platform]] = None) -> str:
    """展示用状态：未设置平台时返回 NO_PLATFORM，而不是 danger。"""
    if not episode.platform:
        return NO_PLATFORM
    return completion_status(completion_rate(episode.resolved_word_count(), episode.platform, table))


def episode_completions(episodes: Iterable[Episode], table: Optional[Mapping[str, Platform]] = None) -> List[EpisodeCompletion]:
    """仅为设置了平台的回次生成完成度视图"""
    results = []
    for episode in episodes or []:
        if not episode.platform:
            continue
        rate = completion_rate(episode.resolved_word_count(), episode.platform, table)
        results.append(EpisodeCompletion(
            episode_id=episode.id,
            completion_rate=rate,
            completion_status=completion_status(rate),
        ))
    return results
