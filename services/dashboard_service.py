"""
仪表盘汇总服务 (Dashboard Service)
将回次、角色、伏笔与警告合并为仪表盘指标、存稿现况、时间线投影，
并按优先级给出作者的 "下一步行动" 建议。
本模块的任何函数都不会因输入缺失而抛出异常，缺失集合按空集合处理。
"""
from __future__ import annotations
import logging
import math
import re
from typing import List, Optional, Sequence

from core.schemas import (
    ACTS, ACT_LABELS, DEFAULT_TARGET_WORD_COUNT, PRIORITY_ORDER,
    ActStats, Character, DashboardSummary, Episode, EpisodeStats, FiveActAnalysis,
    Foreshadow, ManuscriptReserves, NextAction, TimelineEpisodeSummary, WarningRecord,
    round_half_up,
)
from services.foreshadow_service import summarize_foreshadows, unresolved_count

logger = logging.getLogger(__name__)

LOW_RESERVE_THRESHOLD = 3
FORESHADOW_BACKLOG_THRESHOLD = 5
WARNING_PENALTY = 5

# 五幕结构比例：도입 10% → 발단 20% → 전개 30% → 절정 25% → 결말 15%
ACT_RATIOS = (
    ("introduction", 0.1, 10),
    ("rising", 0.3, 20),
    ("development", 0.6, 30),
    ("climax", 0.85, 25),
    ("conclusion", 1.0, 15),
)
ACT_DESCRIPTIONS = {
    "introduction": "draws the reader in and establishes the world",
    "rising": "the conflict begins and the protagonist faces a challenge",
    "development": "the conflict deepens and grows complex",
    "climax": "the conflict reaches its peak",
    "conclusion": "the conflict is resolved and the story closes",
}
# 未标注幕次时按状态推断
STATUS_TO_ACT = {
    "planned": "introduction",
    "in-progress": "rising",
    "draft": "development",
    "completed": "climax",
    "published": "conclusion",
}

_SEPARATORS = re.compile(r"[\s_]+")


def normalize_status(status: Optional[str]) -> str:
    """
    将各种写法的状态归一为 draft / in-progress / completed / published。
    无法识别的状态原样 (小写) 返回。
    """
    value = _SEPARATORS.sub("-", (status or "draft").strip().lower())
    if "publish" in value or value == "released":
        return "published"
    if "complete" in value or "finish" in value or value == "done":
        return "completed"
    if "progress" in value or "writing" in value:
        return "in-progress"
    if "draft" in value:
        return "draft"
    return value


def reserve_count_from(completed_episodes: int, published_episodes: int) -> int:
    """存稿数 = 已完成 - 已发布 (可能为负，调用方自行裁剪)"""
    return completed_episodes - published_episodes


def build_reserves(episodes: Sequence[Episode]) -> ManuscriptReserves:
    episodes = list(episodes or [])
    statuses = [normalize_status(e.status) for e in episodes]
    total = len(episodes)
    completed = statuses.count("completed")
    published = statuses.count("published")
    total_words = sum(e.resolved_word_count() for e in episodes)

    published_dates = [
        e.published_at or e.updated_at
        for e, status in zip(episodes, statuses)
        if status == "published" and (e.published_at or e.updated_at)
    ]

    return ManuscriptReserves(
        total_episodes=total,
        draft_episodes=sum(1 for s in statuses if s in ("draft", "planned")),
        in_progress_episodes=statuses.count("in-progress"),
        completed_episodes=completed,
        published_episodes=published,
        reserve_count=reserve_count_from(completed, published),
        last_published_date=max(published_dates) if published_dates else None,
        next_scheduled_publish=None,
        total_word_count=total_words,
        average_word_count=round_half_up(total_words / total) if total else 0,
    )


def resolve_act(episode: Episode) -> Optional[str]:
    if episode.act in ACTS:
        return episode.act
    return STATUS_TO_ACT.get(normalize_status(episode.status))


def build_timeline(episodes: Sequence[Episode]) -> List[TimelineEpisodeSummary]:
    """按 sort_order (缺省取回次号)、回次号排序的时间线投影，排序稳定"""
    items = []
    for episode in episodes or []:
        sort_order = episode.sort_order if episode.sort_order is not None else episode.episode_number
        items.append(TimelineEpisodeSummary(
            id=episode.id,
            title=episode.title,
            episode_number=episode.episode_number,
            word_count=episode.resolved_word_count(),
            sort_order=sort_order,
            status=normalize_status(episode.status),
            act=resolve_act(episode),
            updated_at=episode.updated_at.isoformat() if episode.updated_at else None,
        ))
    return sorted(items, key=lambda item: (item.sort_order, item.episode_number))


def build_next_actions(reserve_count: int, warning_count: int, unresolved_foreshadows: int) -> List[NextAction]:
    """
    生成并排序下一步行动。

    规则依次为：存稿不足、待处理警告、待回收伏笔；若均未触发，
    则给出 "写下一回" 的默认建议。按 high / medium / low 稳定排序。
    """
    actions = []

    if reserve_count <= LOW_RESERVE_THRESHOLD:
        actions.append(NextAction(
            id="low-reserve",
            title=f"Only {max(0, reserve_count)} episodes in reserve",
            description="Finish the next episode before the publishing schedule catches up.",
            priority="high" if reserve_count <= 1 else "medium",
        ))

    if warning_count > 0:
        actions.append(NextAction(
            id="warnings",
            title=f"Resolve {warning_count} warnings",
            description="Review consistency and timeline warnings.",
            priority="high",
        ))

    if unresolved_foreshadows > 0:
        actions.append(NextAction(
            id="foreshadows",
            title=f"{unresolved_foreshadows} foreshadows awaiting resolution",
            description="Plan where the open plot threads pay off.",
            priority="medium" if unresolved_foreshadows >= FORESHADOW_BACKLOG_THRESHOLD else "low",
        ))

    if not actions:
        actions.append(NextAction(
            id="write-next",
            title="Write the next episode",
            description="Everything is on track; keep the momentum going.",
            priority="low",
        ))

    return sorted(actions, key=lambda action: PRIORITY_ORDER[action.priority])


def fallback_consistency_score(warning_count: int) -> int:
    return max(0, min(100, 100 - WARNING_PENALTY * warning_count))


def summarize(episodes: Optional[Sequence[Episode]] = None,
              characters: Optional[Sequence[Character]] = None,
              foreshadows: Optional[Sequence[Foreshadow]] = None,
              warnings: Optional[Sequence[WarningRecord]] = None,
              consistency_score: Optional[int] = None,
              project_id: str = "") -> DashboardSummary:
    """
    汇总仪表盘指标。

    Args:
        episodes / characters / foreshadows / warnings: 当前项目的源记录与派生警告。
        consistency_score: 权威一致性分数 (如各角色平均分)，为空时按警告数回退计算。
        project_id: 项目标识。
    """
    episodes = list(episodes or [])
    characters = list(characters or [])
    foreshadows = list(foreshadows or [])
    warnings = list(warnings or [])

    reserves = build_reserves(episodes)
    pending = unresolved_count(foreshadows)

    if consistency_score is None:
        score = fallback_consistency_score(len(warnings))
    else:
        score = max(0, min(100, round_half_up(consistency_score)))

    updated = [e.updated_at for e in episodes if e.updated_at]

    summary = DashboardSummary(
        project_id=project_id,
        total_episodes=reserves.total_episodes,
        completed_episodes=reserves.completed_episodes,
        published_episodes=reserves.published_episodes,
        reserve_count=reserves.reserve_count,
        reserve_episodes=max(0, reserves.reserve_count),
        total_word_count=reserves.total_word_count,
        average_word_count=reserves.average_word_count,
        character_count=len(characters),
        unresolved_foreshadows=pending,
        consistency_score=score,
        warning_count=len(warnings),
        next_actions=build_next_actions(reserves.reserve_count, len(warnings), pending),
        last_updated=max(updated).isoformat() if updated else None,
        reserves=reserves,
        timeline_episodes=build_timeline(episodes),
        foreshadows=summarize_foreshadows(foreshadows),
    )
    logger.debug(
        f"仪表盘汇总 {project_id}: 回次 {summary.total_episodes}, 存稿 {summary.reserve_count}, "
        f"警告 {summary.warning_count}, 未回收伏笔 {pending}"
    )
    return summary


# --- 回次统计 ---

def build_act_distribution(episodes: Sequence[Episode]) -> List[ActStats]:
    stats = []
    for act in ACTS:
        words = [e.resolved_word_count() for e in episodes or [] if resolve_act(e) == act]
        stats.append(ActStats(
            act=act,
            label=ACT_LABELS[act],
            count=len(words),
            avg_words=round_half_up(sum(words) / len(words)) if words else 0,
        ))
    return stats


def build_episode_stats(episodes: Sequence[Episode]) -> EpisodeStats:
    episodes = list(episodes or [])
    if not episodes:
        return EpisodeStats(
            by_status={"draft": 0, "in-progress": 0, "completed": 0, "published": 0},
            act_distribution=build_act_distribution([]),
        )

    by_status = {"draft": 0, "in-progress": 0, "completed": 0, "published": 0}
    by_act = {}
    for episode in episodes:
        status = normalize_status(episode.status)
        if status == "planned":
            status = "draft"
        if status in by_status:
            by_status[status] += 1
        if episode.act:
            by_act[episode.act] = by_act.get(episode.act, 0) + 1

    # 字数相同时保留先出现的回次
    ranked = sorted(episodes, key=lambda e: e.resolved_word_count(), reverse=True)
    longest, shortest = ranked[0], ranked[-1]
    total_words = sum(e.resolved_word_count() for e in episodes)

    return EpisodeStats(
        total_episodes=len(episodes),
        by_status=by_status,
        by_act=by_act,
        total_word_count=total_words,
        average_word_count=round_half_up(total_words / len(episodes)),
        longest_episode={"episode_number": longest.episode_number, "word_count": longest.resolved_word_count()},
        shortest_episode={"episode_number": shortest.episode_number, "word_count": shortest.resolved_word_count()},
        act_distribution=build_act_distribution(episodes),
    )


def act_ranges(total_episodes: int) -> dict:
    """按比例划分各幕覆盖的回次号区间 (上取整)"""
    ranges = {}
    start = 1
    for act, ratio, percentage in ACT_RATIOS:
        end = total_episodes if act == "conclusion" else math.ceil(total_episodes * ratio)
        ranges[act] = {"start": start, "end": end, "target_percentage": percentage}
        start = end + 1
    return ranges


def map_episode_to_act(episode_number: int, total_episodes: int) -> str:
    for act, bounds in act_ranges(total_episodes).items():
        if bounds["start"] <= episode_number <= bounds["end"]:
            return act
    return "introduction"


def analyze_five_acts(episodes: Sequence[Episode],
                      target_word_count: int = DEFAULT_TARGET_WORD_COUNT) -> List[FiveActAnalysis]:
    """
    五幕结构分析：对比各幕实际回次占比与目标占比，
    实际占比达到目标的 80% 即视为完成。
    """
    episodes = sorted(episodes or [], key=lambda e: e.episode_number)
    total = len(episodes)

    if total == 0:
        return [
            FiveActAnalysis(
                act=act, name=ACT_LABELS[act], description=ACT_DESCRIPTIONS[act],
                target_percentage=0, current_percentage=0,
                target_word_count=0, current_word_count=0,
            )
            for act in ACTS
        ]

    analysis = []
    for act, bounds in act_ranges(total).items():
        members = [e for e in episodes if bounds["start"] <= e.episode_number <= bounds["end"]]
        current_percentage = len(members) / total * 100
        target_percentage = bounds["target_percentage"]
        analysis.append(FiveActAnalysis(
            act=act,
            name=ACT_LABELS[act],
            description=ACT_DESCRIPTIONS[act],
            target_percentage=target_percentage,
            current_percentage=current_percentage,
            target_word_count=round_half_up(target_percentage * 0.01 * total * target_word_count),
            current_word_count=sum(e.resolved_word_count() for e in members),
            episode_ids=[e.id for e in members],
            is_complete=current_percentage >= target_percentage * 0.8,
        ))
    return analysis
