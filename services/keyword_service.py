"""
关键词覆盖分析 (Keyword Coverage Analyzer)
将文本与固定的 类别 -> 关键词 词表进行子串匹配，输出覆盖率与写作指引。
词表在启动时加载一次并注入分析器，分析器本身无副作用。
"""
from __future__ import annotations
import logging
import re
from functools import lru_cache
from typing import Iterable, List, Mapping, Optional, Sequence, Tuple

from config.loader import get_keyword_dictionary
from core.schemas import KeywordDefinition, KeywordInsight, round_half_up

logger = logging.getLogger(__name__)

DEFAULT_CATEGORIES = ("speechPattern", "appearance", "personality")

_WHITESPACE = re.compile(r"\s+")


def normalize_sources(sources: Iterable[Optional[str]]) -> str:
    """过滤空值、折叠空白并转为小写后以单个空格拼接"""
    parts = [
        _WHITESPACE.sub(" ", source).strip().lower()
        for source in sources
        if isinstance(source, str) and source.strip()
    ]
    return " ".join(parts)


@lru_cache(maxsize=1024)
def _match_keywords(text: str, keywords: Tuple[str, ...]) -> Tuple[str, ...]:
    return tuple(keyword for keyword in keywords if keyword.lower() in text)


class KeywordCoverageAnalyzer:
    def __init__(self, dictionary: Optional[Mapping[str, KeywordDefinition]] = None):
        self._dictionary = dictionary if dictionary is not None else get_keyword_dictionary()

    @property
    def categories(self) -> List[str]:
        return list(self._dictionary.keys())

    def definition(self, category: str) -> KeywordDefinition:
        try:
            return self._dictionary[category]
        except KeyError:
            raise ValueError(f"未知的关键词类别: {category}") from None

    def analyze(self, texts: Sequence[Optional[str]], categories: Optional[Sequence[str]] = None) -> List[KeywordInsight]:
        """
        计算多段文本在各类别上的关键词覆盖情况。

        Args:
            texts: 待分析的文本片段，空值会被忽略。
            categories: 类别标识列表，默认为全部三个角色类别。

        Returns:
            List[KeywordInsight]: 与 categories 顺序一致的分析结果。
        """
        resolved_text = normalize_sources(texts)
        categories = list(categories) if categories is not None else list(DEFAULT_CATEGORIES)
        return [self._evaluate(self.definition(category), resolved_text) for category in categories]

    def _evaluate(self, definition: KeywordDefinition, resolved_text: str) -> KeywordInsight:
        if not resolved_text:
            return KeywordInsight(
                category=definition.id,
                label=definition.label,
                matched_keywords=[],
                missing_keywords=list(definition.keywords),
                coverage_rate=0.0,
                guidance=definition.guidance,
                summary="no text to analyze",
            )

        matched = list(_match_keywords(resolved_text, definition.keywords))
        total = len(definition.keywords)
        coverage_rate = len(matched) / total if total else 0.0
        summary = (
            f"detected keywords: {', '.join(matched)}"
            if matched else "no core vocabulary detected"
        )
        return KeywordInsight(
            category=definition.id,
            label=definition.label,
            matched_keywords=matched,
            missing_keywords=[k for k in definition.keywords if k not in matched],
            coverage_rate=coverage_rate,
            guidance=definition.guidance,
            summary=summary,
        )


def build_keyword_prompt(insights: Sequence[KeywordInsight]) -> str:
    """生成可直接嵌入提示词的简要说明，每个类别一行"""
    return "\n".join(
        f"{insight.label} ({round_half_up(insight.coverage_rate * 100)}%): {insight.summary}"
        for insight in insights
    )
