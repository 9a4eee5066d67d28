from datetime import datetime

import pytest

from config.loader import DEFAULT_CONFIG, build_keyword_dictionary, build_platform_table
from core.schemas import Character, Episode, Foreshadow, WritingActivity, ProgressPoint
from services.consistency_service import CharacterConsistencyAnalyzer
from services.field_evaluator import NarrativeFieldEvaluator
from services.keyword_service import KeywordCoverageAnalyzer


@pytest.fixture
def keyword_dictionary():
    return build_keyword_dictionary(DEFAULT_CONFIG)


@pytest.fixture
def platform_table():
    return build_platform_table(DEFAULT_CONFIG)


@pytest.fixture
def keyword_analyzer(keyword_dictionary):
    return KeywordCoverageAnalyzer(keyword_dictionary)


@pytest.fixture
def field_evaluator(keyword_analyzer):
    return NarrativeFieldEvaluator(keyword_analyzer)


@pytest.fixture
def consistency_analyzer(field_evaluator):
    return CharacterConsistencyAnalyzer(field_evaluator)


class FakeSource:
    """内存中的存储读取器，可为单个操作注入异常"""

    def __init__(self, episodes=None, characters=None, foreshadows=None, activity=None, timeline=None,
                 failures=None):
        self.episodes = episodes or []
        self.characters = characters or []
        self.foreshadows = foreshadows or []
        self.activity = activity or []
        self.timeline = timeline or []
        self.failures = failures or {}
        self.calls = []

    def _call(self, name, value):
        self.calls.append(name)
        if name in self.failures:
            raise self.failures[name]
        return value

    def list_episodes(self, project_id):
        return self._call("list_episodes", list(self.episodes))

    def list_characters(self, project_id):
        return self._call("list_characters", list(self.characters))

    def list_foreshadows(self, project_id):
        return self._call("list_foreshadows", list(self.foreshadows))

    def get_writing_activity(self, project_id, days):
        return self._call("get_writing_activity", list(self.activity))

    def get_progress_timeline(self, project_id, days):
        return self._call("get_progress_timeline", list(self.timeline))


@pytest.fixture
def sample_project():
    episodes = [
        Episode(id="e1", episode_number=1, content="가" * 5200, status="published", platform="kakao",
                updated_at=datetime(2024, 3, 1, 9, 0)),
        Episode(id="e2", episode_number=2, word_count=4000, status="completed", platform="munpia",
                updated_at=datetime(2024, 3, 2, 9, 0)),
        Episode(id="e3", episode_number=3, word_count=1200, status="draft",
                updated_at=datetime(2024, 3, 3, 9, 0)),
    ]
    characters = [
        Character(id="c1", name="서하", notes="평소 말투는 낮은 톤이고 가끔 사투리가 섞인다.",
                  appearance="검은 머리와 회색 눈", personality="목표를 위해 욕망을 숨기는 성격"),
    ]
    foreshadows = [
        Foreshadow(id="f1", title="붉은 편지", introduced_episode=1),
        Foreshadow(id="f2", title="잃어버린 열쇠", introduced_episode=1, resolved_episode=2),
    ]
    activity = [WritingActivity(date="2024-03-03", words=1200, duration_minutes=45)]
    timeline = [ProgressPoint(date="2024-03-03", cumulative_words=10400)]
    return FakeSource(episodes, characters, foreshadows, activity, timeline)


@pytest.fixture
def fake_source_cls():
    return FakeSource
