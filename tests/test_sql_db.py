from datetime import date, timedelta

import pytest

from core.schemas import Character, Episode, Foreshadow
from infra.storage import sql_db


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "data" / "content.db")


def test_save_episode_recomputes_word_count(db_path):
    assert sql_db.save_episode(db_path, "p1", Episode(id="e1", episode_number=1, content="  안녕하세요  ", word_count=999))

    [episode] = sql_db.list_episodes(db_path, "p1")
    assert episode.word_count == 5
    assert episode.status == "draft"


def test_save_episode_updates_existing_row(db_path):
    sql_db.save_episode(db_path, "p1", Episode(id="e1", episode_number=1, word_count=100))
    sql_db.save_episode(db_path, "p1", Episode(id="e1", episode_number=1, word_count=4200, status="completed",
                                               platform="kakao"))

    [episode] = sql_db.list_episodes(db_path, "p1")
    assert episode.word_count == 4200
    assert episode.status == "completed"
    assert episode.platform == "kakao"


def test_episodes_are_scoped_and_ordered(db_path):
    sql_db.save_episode(db_path, "p1", Episode(id="e2", episode_number=2, sort_order=2))
    sql_db.save_episode(db_path, "p1", Episode(id="e1", episode_number=1, sort_order=1))
    sql_db.save_episode(db_path, "p2", Episode(id="x1", episode_number=1, sort_order=1))

    assert [e.id for e in sql_db.list_episodes(db_path, "p1")] == ["e1", "e2"]
    assert sql_db.list_episodes(db_path, "missing") == []


def test_characters_and_foreshadows(db_path):
    sql_db.save_character(db_path, "p1", Character(id="c1", name="서하", appearance="검은 머리"))
    sql_db.save_foreshadow(db_path, "p1", Foreshadow(id="f1", title="단서", introduced_episode=5, resolved_episode=2))

    [character] = sql_db.list_characters(db_path, "p1")
    assert character.appearance == "검은 머리"
    [foreshadow] = sql_db.list_foreshadows(db_path, "p1")
    assert (foreshadow.introduced_episode, foreshadow.resolved_episode) == (5, 2)
    assert foreshadow.importance == "medium"


def test_writing_activity_accumulates_per_day(db_path):
    today = date.today()
    sql_db.record_writing_activity(db_path, "p1", 400, 20)
    sql_db.record_writing_activity(db_path, "p1", 600, 25)
    sql_db.record_writing_activity(db_path, "p1", 300, 10, day=today - timedelta(days=1))

    series = sql_db.get_writing_activity(db_path, "p1", days=7)
    assert len(series) == 7
    assert series[-1].date == today.isoformat()
    assert (series[-1].words, series[-1].duration_minutes) == (1000, 45)
    assert series[-2].words == 300

    timeline = sql_db.get_progress_timeline(db_path, "p1", days=30)
    assert len(timeline) == 30
    assert timeline[-1].cumulative_words == 1300


def test_sql_source_implements_read_operations(db_path):
    sql_db.save_episode(db_path, "p1", Episode(id="e1", episode_number=1, word_count=3000))
    source = sql_db.SqlStatsSource(db_path)

    assert [e.id for e in source.list_episodes("p1")] == ["e1"]
    assert source.list_characters("p1") == []
    assert source.list_foreshadows("p1") == []
    # 没有写作记录时按回次更新日期回退
    assert sum(a.words for a in source.get_writing_activity("p1", 7)) == 3000
    assert source.get_progress_timeline("p1", 30)[-1].cumulative_words == 3000
