import pytest

from core.schemas import KeywordDefinition
from services.keyword_service import KeywordCoverageAnalyzer, build_keyword_prompt, normalize_sources


def test_normalize_sources_drops_empty_and_collapses_whitespace():
    assert normalize_sources([None, "  ", "Blue\n\n  Eyes", "둥근   얼굴"]) == "blue eyes 둥근 얼굴"


def test_analyze_reports_matched_and_missing_in_dictionary_order(keyword_analyzer):
    insight = keyword_analyzer.analyze(["그녀의 눈은 파랗고 머리는 길다"], ["appearance"])[0]

    assert insight.category == "appearance"
    assert insight.label == "외모"
    assert insight.matched_keywords == ["눈", "머리"]
    assert "머릿결" in insight.missing_keywords
    assert len(insight.missing_keywords) == 9
    assert insight.coverage_rate == pytest.approx(2 / 11)
    assert insight.summary == "detected keywords: 눈, 머리"


def test_analyze_defaults_to_three_character_categories(keyword_analyzer):
    insights = keyword_analyzer.analyze(["평소 말투"])
    assert [i.category for i in insights] == ["speechPattern", "appearance", "personality"]


def test_analyze_without_text(keyword_analyzer):
    insight = keyword_analyzer.analyze([None, ""], ["personality"])[0]

    assert insight.matched_keywords == []
    assert insight.coverage_rate == 0.0
    assert insight.summary == "no text to analyze"
    assert len(insight.missing_keywords) == 10


def test_analyze_without_any_match(keyword_analyzer):
    insight = keyword_analyzer.analyze(["아무 관련 없는 문장"], ["personality"])[0]
    assert insight.summary == "no core vocabulary detected"
    assert insight.coverage_rate == 0.0


def test_matching_is_case_insensitive():
    analyzer = KeywordCoverageAnalyzer({
        "appearance": KeywordDefinition(id="appearance", label="look", keywords=("Blue", "tall"), guidance=""),
    })
    insight = analyzer.analyze(["BLUE eyes"], ["appearance"])[0]
    assert insight.matched_keywords == ["Blue"]
    assert insight.missing_keywords == ["tall"]


def test_empty_keyword_list_has_zero_coverage():
    analyzer = KeywordCoverageAnalyzer({
        "empty": KeywordDefinition(id="empty", label="empty", keywords=(), guidance=""),
    })
    insight = analyzer.analyze(["some text"], ["empty"])[0]
    assert insight.coverage_rate == 0.0
    assert insight.summary == "no core vocabulary detected"


def test_unknown_category_raises(keyword_analyzer):
    with pytest.raises(ValueError):
        keyword_analyzer.analyze(["text"], ["voice"])


def test_build_keyword_prompt(keyword_analyzer):
    insights = keyword_analyzer.analyze(["그녀의 눈은 파랗고 머리는 길다"], ["appearance"])
    assert build_keyword_prompt(insights) == "외모 (18%): detected keywords: 눈, 머리"


def test_prompt_percentage_rounds_half_up():
    keywords = ("a", "b", "c", "d", "e", "f", "g", "h")
    analyzer = KeywordCoverageAnalyzer({
        "look": KeywordDefinition(id="look", label="look", keywords=keywords, guidance=""),
    })
    insights = analyzer.analyze(["a"], ["look"])
    assert build_keyword_prompt(insights) == "look (13%): detected keywords: a"
