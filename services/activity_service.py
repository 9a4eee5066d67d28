"""
写作活动统计 (Writing Activity Service)
将每日写作记录整理为以今天结尾的连续日期序列：最近 N 天写作量与累计字数曲线。
没有任何有效写作记录时，退回按回次最后更新日期汇总字数。
"""
from __future__ import annotations
import logging
from datetime import date
from typing import Iterable, List, Optional, Sequence

import pandas as pd

from core.schemas import Episode, ProgressPoint, WritingActivity

logger = logging.getLogger(__name__)


def build_date_range(days: int, today: Optional[date] = None) -> pd.DatetimeIndex:
    """以 today 结尾、长度为 days (至少 1) 的日期索引"""
    safe_days = max(1, int(days))
    end = pd.Timestamp(today or date.today()).normalize()
    return pd.date_range(end=end, periods=safe_days, freq="D")


def _activity_frame(records: Sequence[WritingActivity], index: pd.DatetimeIndex) -> pd.DataFrame:
    if not records:
        return pd.DataFrame({"words": 0, "duration": 0}, index=index)
    df = pd.DataFrame([
        {
            "date": pd.Timestamp(r.date).normalize(),
            "words": int(r.words or 0),
            "duration": int(r.duration_minutes or 0),
        }
        for r in records
    ])
    daily = df.groupby("date")[["words", "duration"]].sum()
    return daily.reindex(index, fill_value=0)


def _episode_words_by_day(episodes: Sequence[Episode], index: pd.DatetimeIndex) -> pd.Series:
    """按回次最后更新日期汇总字数；区间内无数据时把全部字数计在今天"""
    words = pd.Series(0, index=index, dtype="int64")
    rows = [
        (pd.Timestamp(e.updated_at).normalize(), e.resolved_word_count())
        for e in episodes or []
        if e.updated_at is not None
    ]
    if rows:
        df = pd.DataFrame(rows, columns=["date", "words"])
        words = df.groupby("date")["words"].sum().reindex(index, fill_value=0).astype("int64")

    if not (words > 0).any():
        total = sum(e.resolved_word_count() for e in episodes or [])
        if total > 0:
            words.iloc[-1] = total
    return words


def _daily_words(records: Sequence[WritingActivity], episodes: Sequence[Episode],
                 index: pd.DatetimeIndex) -> pd.DataFrame:
    frame = _activity_frame(list(records or []), index)
    if not (frame["words"] > 0).any():
        logger.debug("写作记录中没有有效字数，改用回次更新日期汇总。")
        frame["words"] = _episode_words_by_day(list(episodes or []), index)
    return frame


def writing_activity_series(records: Iterable[WritingActivity], days: int = 7,
                            episodes: Iterable[Episode] = None, today: Optional[date] = None) -> List[WritingActivity]:
    """
    最近 days 天的每日写作量。

    Args:
        records: 存储中的每日写作记录 (同一天多条会被累加)。
        days: 天数。
        episodes: 回退数据源。
        today: 序列结束日期，默认今天。
    """
    index = build_date_range(days, today)
    frame = _daily_words(list(records or []), list(episodes or []), index)
    return [
        WritingActivity(date=ts.strftime("%Y-%m-%d"), words=int(row.words), duration_minutes=int(row.duration))
        for ts, row in frame.iterrows()
    ]


def progress_timeline_series(records: Iterable[WritingActivity], days: int = 30,
                             episodes: Iterable[Episode] = None, today: Optional[date] = None) -> List[ProgressPoint]:
    """最近 days 天的累计字数曲线"""
    index = build_date_range(days, today)
    frame = _daily_words(list(records or []), list(episodes or []), index)
    cumulative = frame["words"].cumsum()
    return [
        ProgressPoint(date=ts.strftime("%Y-%m-%d"), cumulative_words=int(value))
        for ts, value in cumulative.items()
    ]
