"""
角色一致性分析服务 (Character Consistency Service)
对每个角色的 말투 / 외모 / 성격 三个维度分别评估，加权汇总为总分并生成警告。
结果完全由当前角色属性决定，同样的输入总是得到同样的输出。
"""
from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

from core.schemas import (
    Character, CharacterConsistencyResult, ConsistencyScores, WarningRecord, round_half_up,
)
from services.field_evaluator import FieldThresholds, NarrativeFieldEvaluator, clamp_score

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FieldRule:
    """一个评估维度：字段来源、阈值、权重与警告线"""
    key: str
    label: str
    sources: tuple
    thresholds: FieldThresholds
    weight: float
    warning_type: str
    warning_below: int
    high_below: int
    advice: str


FIELD_RULES = (
    FieldRule(
        key="speech",
        label="speech",
        sources=("notes", "personality", "description"),
        thresholds=FieldThresholds(80, 160, 260, "speechPattern"),
        weight=0.40,
        warning_type="speech_pattern",
        warning_below=55,
        high_below=40,
        advice="speech pattern notes are thin; record signature lines or intonation",
    ),
    FieldRule(
        key="appearance",
        label="appearance",
        sources=("appearance", "description"),
        thresholds=FieldThresholds(70, 140, 220, "appearance"),
        weight=0.25,
        warning_type="appearance",
        warning_below=60,
        high_below=45,
        advice="appearance details are missing; add colour and silhouette",
    ),
    FieldRule(
        key="personality",
        label="personality",
        sources=("personality", "background", "conflicts"),
        thresholds=FieldThresholds(90, 180, 280, "personality"),
        weight=0.35,
        warning_type="personality",
        warning_below=60,
        high_below=45,
        advice="personality and motivation are unclear; add a conflict or goal",
    ),
)


class CharacterConsistencyAnalyzer:
    def __init__(self, evaluator: Optional[NarrativeFieldEvaluator] = None):
        self.evaluator = evaluator or NarrativeFieldEvaluator()

    def analyze(self, character: Character) -> CharacterConsistencyResult:
        details = {}
        warnings: List[WarningRecord] = []

        for rule in FIELD_RULES:
            sources = [getattr(character, name, None) for name in rule.sources]
            detail = self.evaluator.evaluate(rule.label, sources, rule.thresholds)
            details[rule.key] = detail

            if detail.score < rule.warning_below:
                warnings.append(WarningRecord(
                    id=f"{rule.key}-{character.id}",
                    type=rule.warning_type,
                    severity="high" if detail.score < rule.high_below else "medium",
                    description=f"{character.name}: {rule.advice}",
                    episode=0,
                    character_id=character.id,
                    character_name=character.name,
                    created_at=character.updated_at,
                ))

        overall = clamp_score(sum(rule.weight * details[rule.key].score for rule in FIELD_RULES))

        return CharacterConsistencyResult(
            character_id=character.id,
            character_name=character.name,
            overall_score=overall,
            scores=ConsistencyScores(**details),
            warnings=warnings,
        )

    def analyze_all(self, characters: Iterable[Character]) -> List[CharacterConsistencyResult]:
        results = [self.analyze(character) for character in characters or []]
        logger.debug(f"角色一致性分析完成: {len(results)} 个角色")
        return results


def project_consistency_score(results: Sequence[CharacterConsistencyResult]) -> int:
    """项目整体一致性分数：各角色总分的平均值，无角色时为 100。"""
    if not results:
        return 100
    return round_half_up(sum(r.overall_score for r in results) / len(results))


def collect_warnings(results: Sequence[CharacterConsistencyResult]) -> List[WarningRecord]:
    return [warning for result in results for warning in result.warnings]
