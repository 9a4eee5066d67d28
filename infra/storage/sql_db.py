"""
SQLite 数据库管理器 (SQL Store)
统计引擎的默认外部存储：提供回次、角色、伏笔与写作活动的读取操作，
以及编辑器/工具使用的写入操作。
"""
import os
import logging
from datetime import date, datetime, timedelta
from functools import lru_cache
from typing import List

from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker, Session

from core.models import Base, EpisodeRecord, CharacterRecord, ForeshadowNote, WritingActivityRecord
from core.schemas import Character, Episode, Foreshadow, WritingActivity, ProgressPoint, count_words
from services import activity_service

logger = logging.getLogger(__name__)

@lru_cache(maxsize=5)
def get_engine(db_path: str):
    """
    获取指定数据库文件的引擎 (带缓存)。
    """
    os.makedirs(os.path.dirname(os.path.abspath(db_path)), exist_ok=True)
    # 统计门面会在工作线程中读取，因此允许跨线程使用连接
    engine = create_engine(f"sqlite:///{db_path}", connect_args={"check_same_thread": False})

    # 自动建表
    Base.metadata.create_all(engine)
    return engine

def get_session(db_path: str) -> Session:
    """获取一个新的数据库会话"""
    engine = get_engine(db_path)
    SessionLocal = sessionmaker(bind=engine)
    return SessionLocal()

# --- 行记录 -> 领域对象 ---

def _to_episode(row: EpisodeRecord) -> Episode:
    return Episode(
        id=row.id,
        episode_number=row.episode_number,
        title=row.title or "",
        content=row.content or "",
        word_count=row.word_count or 0,
        target_word_count=row.target_word_count or 5500,
        act=row.act,
        status=row.status or "draft",
        platform=row.platform,
        sort_order=row.sort_order,
        updated_at=row.updated_at,
        published_at=row.published_at,
    )

def _to_character(row: CharacterRecord) -> Character:
    return Character(
        id=row.id,
        name=row.name,
        notes=row.notes,
        personality=row.personality,
        description=row.description,
        appearance=row.appearance,
        background=row.background,
        conflicts=row.conflicts,
        updated_at=row.updated_at,
    )

def _to_foreshadow(row: ForeshadowNote) -> Foreshadow:
    return Foreshadow(
        id=row.id,
        title=row.title,
        introduced_episode=row.introduced_episode,
        resolved_episode=row.resolved_episode,
        importance=row.importance or "medium",
    )

# --- 读取操作 ---

def list_episodes(db_path: str, project_id: str) -> List[Episode]:
    """获取项目的全部有效回次，按 sort_order、回次号排列"""
    session = get_session(db_path)
    try:
        rows = (
            session.query(EpisodeRecord)
            .filter_by(project_id=project_id, is_active=True)
            .order_by(EpisodeRecord.sort_order, EpisodeRecord.episode_number)
            .all()
        )
        return [_to_episode(r) for r in rows]
    finally:
        session.close()

def list_characters(db_path: str, project_id: str) -> List[Character]:
    session = get_session(db_path)
    try:
        rows = session.query(CharacterRecord).filter_by(project_id=project_id, is_active=True).all()
        return [_to_character(r) for r in rows]
    finally:
        session.close()

def list_foreshadows(db_path: str, project_id: str) -> List[Foreshadow]:
    """获取未归档的伏笔，按创建时间排列"""
    session = get_session(db_path)
    try:
        rows = (
            session.query(ForeshadowNote)
            .filter_by(project_id=project_id, is_archived=False)
            .order_by(ForeshadowNote.created_at)
            .all()
        )
        return [_to_foreshadow(r) for r in rows]
    finally:
        session.close()

def list_activity_records(db_path: str, project_id: str, since: date) -> List[WritingActivity]:
    session = get_session(db_path)
    try:
        rows = (
            session.query(WritingActivityRecord)
            .filter(WritingActivityRecord.project_id == project_id, WritingActivityRecord.date >= since)
            .order_by(WritingActivityRecord.date)
            .all()
        )
        return [
            WritingActivity(date=r.date.isoformat(), words=r.word_count or 0, duration_minutes=r.duration or 0)
            for r in rows
        ]
    finally:
        session.close()

def get_writing_activity(db_path: str, project_id: str, days: int = 7) -> List[WritingActivity]:
    """最近 N 天写作活动 {date, words, duration_minutes}"""
    since = date.today() - timedelta(days=max(1, int(days)) - 1)
    records = list_activity_records(db_path, project_id, since)
    return activity_service.writing_activity_series(records, days, episodes=list_episodes(db_path, project_id))

def get_progress_timeline(db_path: str, project_id: str, days: int = 30) -> List[ProgressPoint]:
    """最近 N 天累计字数 {date, cumulative_words}"""
    since = date.today() - timedelta(days=max(1, int(days)) - 1)
    records = list_activity_records(db_path, project_id, since)
    return activity_service.progress_timeline_series(records, days, episodes=list_episodes(db_path, project_id))

# --- 写入操作 ---

def save_episode(db_path: str, project_id: str, episode: Episode) -> bool:
    """保存或更新回次，正文非空时重新计算字数"""
    session = get_session(db_path)
    try:
        word_count = count_words(episode.content) if episode.content else (episode.word_count or 0)
        row = session.get(EpisodeRecord, episode.id)
        if row is None:
            row = EpisodeRecord(id=episode.id, project_id=project_id)
            session.add(row)
        row.episode_number = episode.episode_number
        row.title = episode.title
        row.content = episode.content
        row.word_count = word_count
        row.target_word_count = episode.target_word_count
        row.act = episode.act
        row.status = episode.status
        row.platform = episode.platform
        row.sort_order = episode.sort_order
        row.updated_at = episode.updated_at or datetime.now()
        row.published_at = episode.published_at
        session.commit()
        return True
    except SQLAlchemyError as e:
        session.rollback()
        logger.error(f"保存回次失败 {episode.id}: {e}", exc_info=True)
        return False
    finally:
        session.close()

def save_character(db_path: str, project_id: str, character: Character) -> bool:
    """保存或更新角色"""
    session = get_session(db_path)
    try:
        row = session.get(CharacterRecord, character.id)
        if row is None:
            row = CharacterRecord(id=character.id, project_id=project_id)
            session.add(row)
        for attr in ("name", "notes", "personality", "description", "appearance", "background", "conflicts"):
            setattr(row, attr, getattr(character, attr))
        row.updated_at = character.updated_at or datetime.now()
        session.commit()
        return True
    except SQLAlchemyError as e:
        session.rollback()
        logger.error(f"保存角色失败 {character.id}: {e}", exc_info=True)
        return False
    finally:
        session.close()

def save_foreshadow(db_path: str, project_id: str, foreshadow: Foreshadow) -> bool:
    """保存或更新伏笔 (回收早于埋设的记录照常保存，由追踪器报告)"""
    session = get_session(db_path)
    try:
        row = session.get(ForeshadowNote, foreshadow.id)
        if row is None:
            row = ForeshadowNote(id=foreshadow.id, project_id=project_id, created_at=datetime.now())
            session.add(row)
        row.title = foreshadow.title
        row.introduced_episode = foreshadow.introduced_episode
        row.resolved_episode = foreshadow.resolved_episode
        row.importance = foreshadow.importance
        session.commit()
        return True
    except SQLAlchemyError as e:
        session.rollback()
        logger.error(f"保存伏笔失败 {foreshadow.id}: {e}", exc_info=True)
        return False
    finally:
        session.close()

def record_writing_activity(db_path: str, project_id: str, word_count: int, duration: int,
                            day: date = None, episode_id: str = None) -> bool:
    """累加当天的写作字数与时长"""
    day = day or date.today()
    session = get_session(db_path)
    try:
        row = session.query(WritingActivityRecord).filter_by(project_id=project_id, date=day).first()
        if row:
            row.word_count = (row.word_count or 0) + word_count
            row.duration = (row.duration or 0) + duration
            if episode_id:
                row.episode_id = episode_id
        else:
            session.add(WritingActivityRecord(
                project_id=project_id, date=day, word_count=word_count, duration=duration, episode_id=episode_id
            ))
        session.commit()
        return True
    except SQLAlchemyError as e:
        session.rollback()
        logger.error(f"记录写作活动失败 {project_id}: {e}", exc_info=True)
        return False
    finally:
        session.close()


class SqlStatsSource:
    """
    绑定到单个数据库文件的读取适配器，供统计门面使用。
    """

    def __init__(self, db_path: str):
        self.db_path = db_path

    def list_episodes(self, project_id: str) -> List[Episode]:
        return list_episodes(self.db_path, project_id)

    def list_characters(self, project_id: str) -> List[Character]:
        return list_characters(self.db_path, project_id)

    def list_foreshadows(self, project_id: str) -> List[Foreshadow]:
        return list_foreshadows(self.db_path, project_id)

    def get_writing_activity(self, project_id: str, days: int) -> List[WritingActivity]:
        return get_writing_activity(self.db_path, project_id, days)

    def get_progress_timeline(self, project_id: str, days: int) -> List[ProgressPoint]:
        return get_progress_timeline(self.db_path, project_id, days)
