"""
业务对象定义 (Schemas)
定义存储层、分析引擎与展示层之间传递的强类型数据结构。
所有派生结果 (分数、警告、仪表盘汇总) 每次都由源记录重新计算，不单独持久化。
"""
import math
from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import Optional, List, Dict, Any, Tuple

# --- 枚举常量 ---
ACTS = ("introduction", "rising", "development", "climax", "conclusion")
ACT_LABELS = {
    "introduction": "도입",
    "rising": "발단",
    "development": "전개",
    "climax": "절정",
    "conclusion": "결말",
}
EPISODE_STATUSES = ("draft", "in-progress", "completed", "published")
IMPORTANCE_LEVELS = ("low", "medium", "high")
SEVERITIES = ("low", "medium", "high")
WARNING_TYPES = ("speech_pattern", "appearance", "personality", "location", "timeline", "other")
PRIORITY_ORDER = {"high": 0, "medium": 1, "low": 2}
COMPLETION_STATUSES = ("success", "warning", "danger")

DEFAULT_TARGET_WORD_COUNT = 5500


def round_half_up(value: float) -> int:
    """四舍五入到整数 (0.5 向上)，与展示层的取整规则一致。"""
    return int(math.floor(value + 0.5))


def count_words(content: Optional[str]) -> int:
    """按 Unicode 码位统计正文长度 (韩文按字计)。"""
    if not content:
        return 0
    return len(content.strip())


# --- 源记录 ---

@dataclass
class Character:
    """角色档案，由写作工作区维护。"""
    id: str
    name: str
    notes: Optional[str] = None
    personality: Optional[str] = None
    description: Optional[str] = None
    appearance: Optional[str] = None
    background: Optional[str] = None
    conflicts: Optional[str] = None
    updated_at: Optional[datetime] = None


@dataclass
class Episode:
    """连载回次。word_count 在每次正文编辑后重新计算。"""
    id: str
    episode_number: int
    title: str = ""
    content: str = ""
    word_count: int = 0
    target_word_count: int = DEFAULT_TARGET_WORD_COUNT
    act: Optional[str] = None
    status: str = "draft"
    platform: Optional[str] = None
    sort_order: Optional[int] = None
    updated_at: Optional[datetime] = None
    published_at: Optional[datetime] = None

    def resolved_word_count(self) -> int:
        """存储的字数为正时直接使用，否则由正文推算。"""
        if self.word_count and self.word_count > 0:
            return self.word_count
        return count_words(self.content) or (self.word_count or 0)


@dataclass
class Foreshadow:
    """伏笔记录。resolved_episode 为空即视为未回收。"""
    id: str
    title: str
    introduced_episode: Optional[int] = None
    resolved_episode: Optional[int] = None
    importance: str = "medium"

    @property
    def is_resolved(self) -> bool:
        return self.resolved_episode is not None


# --- 派生结果 ---

@dataclass
class WarningRecord:
    """一致性或时间线问题的派生信号 (不持久化)。"""
    id: str
    type: str
    severity: str
    description: str
    episode: int = 0
    character_id: Optional[str] = None
    character_name: Optional[str] = None
    created_at: Optional[datetime] = None


@dataclass
class ScoreDetail:
    score: int
    reason: str


@dataclass
class ConsistencyScores:
    speech: ScoreDetail
    appearance: ScoreDetail
    personality: ScoreDetail


@dataclass
class CharacterConsistencyResult:
    """单个角色的一致性评估结果"""
    character_id: str
    character_name: str
    overall_score: int
    scores: ConsistencyScores
    warnings: List[WarningRecord] = field(default_factory=list)

    def to_dict(self):
        return asdict(self)


@dataclass(frozen=True)
class KeywordDefinition:
    """关键词表中的一个类别"""
    id: str
    label: str
    keywords: Tuple[str, ...]
    guidance: str


@dataclass
class KeywordInsight:
    category: str
    label: str
    matched_keywords: List[str]
    missing_keywords: List[str]
    coverage_rate: float
    guidance: str
    summary: str


@dataclass(frozen=True)
class Platform:
    """连载平台及其单回最低字数"""
    id: str
    name: str
    minimum: int


@dataclass
class EpisodeCompletion:
    episode_id: str
    completion_rate: float
    completion_status: str


@dataclass
class ManuscriptReserves:
    """存稿现况：已完成但未发布的回次缓冲。"""
    total_episodes: int = 0
    draft_episodes: int = 0
    in_progress_episodes: int = 0
    completed_episodes: int = 0
    published_episodes: int = 0
    reserve_count: int = 0
    last_published_date: Optional[datetime] = None
    next_scheduled_publish: Optional[datetime] = None
    total_word_count: int = 0
    average_word_count: int = 0


@dataclass
class TimelineEpisodeSummary:
    id: str
    title: str
    episode_number: int
    word_count: int
    sort_order: int
    status: str
    act: Optional[str] = None
    updated_at: Optional[str] = None


@dataclass
class ForeshadowSummary:
    id: str
    title: str
    introduced_episode: Optional[int] = None
    resolved_episode: Optional[int] = None
    importance: Optional[str] = None


@dataclass
class NextAction:
    id: str
    title: str
    description: str
    priority: str


@dataclass
class DashboardSummary:
    """
    仪表盘汇总 (每次请求重新计算)。
    reserve_count 保留原始带符号值，reserve_episodes 为展示用的非负值。
    """
    project_id: str
    total_episodes: int
    completed_episodes: int
    published_episodes: int
    reserve_count: int
    reserve_episodes: int
    total_word_count: int
    average_word_count: int
    character_count: int
    unresolved_foreshadows: int
    consistency_score: int
    warning_count: int
    next_actions: List[NextAction]
    last_updated: Optional[str]
    reserves: ManuscriptReserves
    timeline_episodes: List[TimelineEpisodeSummary] = field(default_factory=list)
    foreshadows: List[ForeshadowSummary] = field(default_factory=list)

    def to_dict(self):
        return asdict(self)


@dataclass
class WritingActivity:
    date: str  # YYYY-MM-DD
    words: int
    duration_minutes: int


@dataclass
class ProgressPoint:
    date: str  # YYYY-MM-DD
    cumulative_words: int


@dataclass
class ActStats:
    act: str
    label: str
    count: int
    avg_words: int


@dataclass
class FiveActAnalysis:
    act: str
    name: str
    description: str
    target_percentage: float
    current_percentage: float
    target_word_count: int
    current_word_count: int
    episode_ids: List[str] = field(default_factory=list)
    is_complete: bool = False


@dataclass
class EpisodeStats:
    total_episodes: int = 0
    by_status: Dict[str, int] = field(default_factory=dict)
    by_act: Dict[str, int] = field(default_factory=dict)
    total_word_count: int = 0
    average_word_count: int = 0
    longest_episode: Optional[Dict[str, int]] = None
    shortest_episode: Optional[Dict[str, int]] = None
    act_distribution: List[ActStats] = field(default_factory=list)


@dataclass
class StatResult:
    """
    单项统计的加载状态。
    "尚无数据" (error 为空) 与 "加载失败" (error 非空) 是两种不同状态。
    """
    data: Any = None
    loading: bool = False
    error: Optional[Exception] = None
    sequence: int = 0


@dataclass
class CombinedStats:
    writing_activity: List[WritingActivity]
    progress_timeline: List[ProgressPoint]
    episode_stats: Optional[EpisodeStats]
    summary: Optional[DashboardSummary]
    loading: bool = False
    error: Optional[Exception] = None


@dataclass
class ProjectAnalysis:
    """一次完整分析的结果：角色评估、全部警告、完成度视图与仪表盘汇总"""
    project_id: str
    characters: List[CharacterConsistencyResult]
    warnings: List[WarningRecord]
    completions: List[EpisodeCompletion]
    summary: DashboardSummary

    def to_dict(self):
        return asdict(self)
