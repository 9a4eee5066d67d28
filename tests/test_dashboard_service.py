from datetime import datetime

import pytest

from core.schemas import Episode, Foreshadow, WarningRecord
from services import dashboard_service
from services.dashboard_service import (
    analyze_five_acts, build_episode_stats, build_next_actions, build_reserves, build_timeline,
    map_episode_to_act, normalize_status, reserve_count_from, summarize,
)


def _warning(i):
    return WarningRecord(id=f"w{i}", type="other", severity="low", description="")


def _episodes(*statuses):
    return [Episode(id=f"e{i}", episode_number=i, status=s) for i, s in enumerate(statuses, start=1)]


@pytest.mark.parametrize("raw, expected", [
    ("Published", "published"),
    ("in_progress", "in-progress"),
    ("In Progress", "in-progress"),
    ("done", "completed"),
    ("COMPLETED", "completed"),
    (None, "draft"),
    ("planned", "planned"),
])
def test_normalize_status(raw, expected):
    assert normalize_status(raw) == expected


def test_published_exceeding_completed_gives_high_low_reserve_action():
    summary = summarize(episodes=_episodes("published", "published"))

    assert summary.reserve_count == -2
    assert summary.reserve_episodes == 0
    action = summary.next_actions[0]
    assert action.id == "low-reserve"
    assert action.priority == "high"
    assert action.title == "Only 0 episodes in reserve"


def test_three_pending_foreshadows_are_low_priority():
    foreshadows = [
        Foreshadow(id="f1", title="a", introduced_episode=1),
        Foreshadow(id="f2", title="b", introduced_episode=1),
        Foreshadow(id="f3", title="c", introduced_episode=2),
        Foreshadow(id="f4", title="d", introduced_episode=2, resolved_episode=3),
        Foreshadow(id="f5", title="e", introduced_episode=2, resolved_episode=4),
    ]
    summary = summarize(foreshadows=foreshadows)

    assert summary.unresolved_foreshadows == 3
    pending = [a for a in summary.next_actions if a.id == "foreshadows"]
    assert len(pending) == 1
    assert pending[0].priority == "low"


def test_foreshadow_backlog_is_medium():
    actions = build_next_actions(10, 0, 5)
    assert [(a.id, a.priority) for a in actions] == [("foreshadows", "medium")]


def test_next_actions_never_empty():
    assert summarize().next_actions
    actions = build_next_actions(10, 0, 0)
    assert [a.id for a in actions] == ["write-next"]
    assert actions[0].priority == "low"


def test_next_actions_stable_priority_sort():
    actions = build_next_actions(2, 1, 6)
    assert [(a.id, a.priority) for a in actions] == [
        ("warnings", "high"),
        ("low-reserve", "medium"),
        ("foreshadows", "medium"),
    ]


def test_reserve_round_trip():
    reserves = build_reserves(_episodes("completed", "completed", "published", "draft", "completed"))
    assert reserves.reserve_count == 2
    assert reserve_count_from(reserves.completed_episodes, reserves.published_episodes) == reserves.reserve_count


def test_reserves_totals_and_last_published():
    episodes = [
        Episode(id="e1", episode_number=1, word_count=3000, status="published",
                published_at=datetime(2024, 1, 5)),
        Episode(id="e2", episode_number=2, word_count=4000, status="published",
                updated_at=datetime(2024, 2, 1)),
        Episode(id="e3", episode_number=3, content="가" * 1001, status="in-progress"),
    ]
    reserves = build_reserves(episodes)

    assert reserves.total_episodes == 3
    assert reserves.in_progress_episodes == 1
    assert reserves.published_episodes == 2
    assert reserves.total_word_count == 8001
    assert reserves.average_word_count == 2667
    assert reserves.last_published_date == datetime(2024, 2, 1)


def test_fallback_consistency_score_from_warnings():
    assert summarize(warnings=[_warning(i) for i in range(3)]).consistency_score == 85
    assert summarize(warnings=[_warning(i) for i in range(30)]).consistency_score == 0


def test_authoritative_consistency_score_is_used():
    summary = summarize(warnings=[_warning(1)], consistency_score=87.5)
    assert summary.consistency_score == 88
    assert summary.warning_count == 1


def test_summary_counts_and_last_updated():
    episodes = [
        Episode(id="e1", episode_number=1, word_count=100, status="completed", updated_at=datetime(2024, 3, 1)),
        Episode(id="e2", episode_number=2, word_count=300, status="draft", updated_at=datetime(2024, 3, 4)),
    ]
    summary = summarize(episodes=episodes, project_id="p1")

    assert summary.project_id == "p1"
    assert summary.total_episodes == 2
    assert summary.completed_episodes == 1
    assert summary.total_word_count == 400
    assert summary.average_word_count == 200
    assert summary.last_updated == "2024-03-04T00:00:00"
    assert summary.to_dict()["reserves"]["completed_episodes"] == 1


def test_empty_summary():
    summary = summarize()
    assert summary.total_episodes == 0
    assert summary.average_word_count == 0
    assert summary.consistency_score == 100
    assert summary.last_updated is None


def test_timeline_sorted_by_sort_order_then_number():
    episodes = [
        Episode(id="a", episode_number=2),
        Episode(id="b", episode_number=1, sort_order=5),
        Episode(id="c", episode_number=3, sort_order=2, act="climax"),
    ]
    timeline = build_timeline(episodes)

    assert [item.id for item in timeline] == ["a", "c", "b"]
    assert timeline[1].act == "climax"
    assert timeline[0].act == "development"


def test_episode_stats():
    episodes = [
        Episode(id="e1", episode_number=1, word_count=100, status="draft", act="introduction"),
        Episode(id="e2", episode_number=2, word_count=300, status="completed", act="rising"),
        Episode(id="e3", episode_number=3, word_count=300, status="published", act="rising"),
    ]
    stats = build_episode_stats(episodes)

    assert stats.total_episodes == 3
    assert stats.by_status == {"draft": 1, "in-progress": 0, "completed": 1, "published": 1}
    assert stats.by_act == {"introduction": 1, "rising": 2}
    assert stats.average_word_count == 233
    assert stats.longest_episode == {"episode_number": 2, "word_count": 300}
    assert stats.shortest_episode == {"episode_number": 1, "word_count": 100}
    rising = [a for a in stats.act_distribution if a.act == "rising"][0]
    assert (rising.label, rising.count, rising.avg_words) == ("발단", 2, 300)


def test_episode_stats_empty():
    stats = build_episode_stats([])
    assert stats.total_episodes == 0
    assert stats.longest_episode is None
    assert len(stats.act_distribution) == 5


def test_act_ranges_use_ceiling_boundaries():
    ranges = dashboard_service.act_ranges(10)
    assert [(r["start"], r["end"]) for r in ranges.values()] == [(1, 1), (2, 3), (4, 6), (7, 9), (10, 10)]
    assert map_episode_to_act(7, 10) == "climax"
    assert map_episode_to_act(10, 10) == "conclusion"


def test_five_act_analysis():
    episodes = [Episode(id=f"e{i}", episode_number=i, word_count=1000) for i in range(1, 11)]
    analysis = analyze_five_acts(episodes)

    assert [a.act for a in analysis] == ["introduction", "rising", "development", "climax", "conclusion"]
    introduction, conclusion = analysis[0], analysis[-1]
    assert introduction.target_word_count == 5500
    assert introduction.current_word_count == 1000
    assert introduction.is_complete
    assert analysis[3].episode_ids == ["e7", "e8", "e9"]
    assert conclusion.current_percentage == pytest.approx(10)
    assert not conclusion.is_complete


def test_five_act_analysis_without_episodes():
    analysis = analyze_five_acts([])
    assert len(analysis) == 5
    assert all(a.current_word_count == 0 and not a.is_complete for a in analysis)


def test_episode_stats_keep_four_status_keys():
    stats = build_episode_stats(_episodes("planned", "draft", "archived", "published"))

    assert stats.by_status == {"draft": 2, "in-progress": 0, "completed": 0, "published": 1}
    assert stats.total_episodes == 4
