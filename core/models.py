"""
核心数据模型 (Data Models)
定义默认存储 (SQLite content.db) 中的表结构。分析引擎只读取这些表，
分数、警告与汇总均不入库。
"""
from datetime import datetime
from sqlalchemy import Column, Integer, String, Text, Boolean, Date, DateTime, UniqueConstraint
from sqlalchemy.orm import declarative_base

Base = declarative_base()

class EpisodeRecord(Base):
    """
    回次表
    存储正文及连载元数据，word_count 在每次保存正文时重新计算。
    """
    __tablename__ = 'episodes'

    id = Column(String, primary_key=True)
    project_id = Column(String, index=True, nullable=False)
    episode_number = Column(Integer, nullable=False)
    title = Column(String, nullable=True)
    content = Column(Text, nullable=True)
    word_count = Column(Integer, default=0)
    target_word_count = Column(Integer, default=5500)
    act = Column(String, nullable=True) # introduction / rising / development / climax / conclusion
    status = Column(String, default="draft")
    platform = Column(String, nullable=True) # 连载平台，可为空
    sort_order = Column(Integer, nullable=True)
    is_active = Column(Boolean, default=True)
    updated_at = Column(DateTime, default=datetime.now)
    published_at = Column(DateTime, nullable=True)

class CharacterRecord(Base):
    """
    角色表
    """
    __tablename__ = 'characters'

    id = Column(String, primary_key=True)
    project_id = Column(String, index=True, nullable=False)
    name = Column(String, nullable=False)
    notes = Column(Text, nullable=True)
    personality = Column(Text, nullable=True)
    description = Column(Text, nullable=True)
    appearance = Column(Text, nullable=True)
    background = Column(Text, nullable=True)
    conflicts = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True)
    updated_at = Column(DateTime, default=datetime.now)

class ForeshadowNote(Base):
    """
    伏笔笔记表
    resolved_episode 为空表示尚未回收。
    """
    __tablename__ = 'foreshadows'

    id = Column(String, primary_key=True)
    project_id = Column(String, index=True, nullable=False)
    title = Column(String, nullable=False)
    introduced_episode = Column(Integer, nullable=True)
    resolved_episode = Column(Integer, nullable=True)
    importance = Column(String, default="medium") # low / medium / high
    is_archived = Column(Boolean, default=False)
    created_at = Column(DateTime, default=datetime.now)

class WritingActivityRecord(Base):
    """
    每日写作活动表 (每个项目每天一行)
    """
    __tablename__ = 'writing_activity'
    __table_args__ = (UniqueConstraint('project_id', 'date', name='uq_activity_project_day'),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    project_id = Column(String, index=True, nullable=False)
    date = Column(Date, nullable=False)
    word_count = Column(Integer, default=0)
    duration = Column(Integer, default=0) # 分钟
    episode_id = Column(String, nullable=True)
