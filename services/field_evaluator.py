"""
叙事字段评估 (Narrative Field Evaluator)
依据长度分段插值与关键词覆盖，为单个自由文本属性打分 (0-100)。
"""
from __future__ import annotations
import re
from dataclasses import dataclass
from typing import Optional, Sequence

from core.schemas import ScoreDetail, round_half_up
from services.keyword_service import KeywordCoverageAnalyzer

EMPTY_FIELD_SCORE = 20
REASON_SEPARATOR = " · "

_WHITESPACE = re.compile(r"\s+")


@dataclass(frozen=True)
class FieldThresholds:
    minimum: int
    adequate: int
    excellent: int
    keyword_category: Optional[str] = None


def clamp_score(value: float) -> int:
    return max(0, min(100, round_half_up(value)))


def collapse_whitespace(sources: Sequence[Optional[str]]) -> str:
    joined = " ".join(s for s in sources if isinstance(s, str) and s.strip())
    return _WHITESPACE.sub(" ", joined).strip()


def length_base_score(length: int, thresholds: FieldThresholds) -> float:
    """四段线性插值得到长度基础分"""
    if length >= thresholds.excellent:
        return 94 + min(6, (length - thresholds.excellent) / 40)
    if length >= thresholds.adequate:
        span = max(thresholds.excellent - thresholds.adequate, 1)
        return 78 + ((length - thresholds.adequate) / span) * 16
    if length >= thresholds.minimum:
        span = max(thresholds.adequate - thresholds.minimum, 1)
        return 58 + ((length - thresholds.minimum) / span) * 20
    return 35 + (length / max(thresholds.minimum, 1)) * 18


def qualitative_remark(base: float) -> str:
    if base >= 85:
        return "stable length by reference norms"
    if base >= 65:
        return "adequate skeleton, add concrete detail"
    return "add sensory or event detail to aid reader recall"


class NarrativeFieldEvaluator:
    def __init__(self, analyzer: Optional[KeywordCoverageAnalyzer] = None):
        self.analyzer = analyzer or KeywordCoverageAnalyzer()

    def evaluate(self, field_label: str, sources: Sequence[Optional[str]], thresholds: FieldThresholds) -> ScoreDetail:
        combined = collapse_whitespace(sources)
        if not combined:
            return ScoreDetail(
                score=EMPTY_FIELD_SCORE,
                reason=f"{field_label} is empty; note at least one core habit or trait",
            )

        length = len(combined)
        base = length_base_score(length, thresholds)
        keyword_message = "core vocabulary not checked"
        guidance = None

        if thresholds.keyword_category:
            insight = self.analyzer.analyze([combined], [thresholds.keyword_category])[0]
            guidance = insight.guidance
            matched = insight.matched_keywords
            total = len(self.analyzer.definition(thresholds.keyword_category).keywords)

            if not matched:
                base -= 8
                keyword_message = f"missing core vocabulary for {field_label}"
            else:
                base += min(12, len(matched) * 3)
                if len(matched) >= total:
                    keyword_message = f"all core vocabulary for {field_label} present"
                else:
                    keyword_message = f"{len(matched)} core keywords found ({', '.join(matched[:3])})"

        reason_parts = [
            f"{field_label} text {length:,} chars",
            keyword_message,
            qualitative_remark(base),
        ]
        if guidance:
            reason_parts.append(guidance)

        return ScoreDetail(score=clamp_score(base), reason=REASON_SEPARATOR.join(reason_parts))


def evaluate_narrative_field(field_label: str, sources: Sequence[Optional[str]], thresholds: FieldThresholds,
                             analyzer: Optional[KeywordCoverageAnalyzer] = None) -> ScoreDetail:
    return NarrativeFieldEvaluator(analyzer).evaluate(field_label, sources, thresholds)
