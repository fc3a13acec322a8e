"""Video and watch history models."""

from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, Integer, String, Text, UniqueConstraint

from app.database import Base


class Video(Base):
    """Published video owned by a channel (user)."""

    __tablename__ = "video"

    id = Column(Integer, primary_key=True, autoincrement=True)
    owner_id = Column(Integer, ForeignKey("user.id"), nullable=False, index=True)
    title = Column(String(256), nullable=False)
    description = Column(Text, nullable=False, default="")
    video_url = Column(String(1024), nullable=False)
    thumbnail_url = Column(String(1024), nullable=False)
    duration = Column(Float, nullable=False, default=0.0)
    views = Column(Integer, nullable=False, default=0)
    is_published = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)


class WatchHistoryEntry(Base):
    """One video in a user's ordered watch history."""

    __tablename__ = "watch_history"
    __table_args__ = (UniqueConstraint("user_id", "position", name="uq_watch_history_user_position"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("user.id"), nullable=False, index=True)
    video_id = Column(Integer, ForeignKey("video.id"), nullable=False)
    position = Column(Integer, nullable=False)
    watched_at = Column(DateTime, nullable=False, default=datetime.utcnow)
