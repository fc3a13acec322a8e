"""User model."""

from datetime import datetime

from sqlalchemy import Column, DateTime, Integer, String, Text

from app.database import Base


class User(Base):
    """Account holder: identity, credentials and profile media references."""

    __tablename__ = "user"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(64), unique=True, nullable=False, index=True)
    email = Column(String(256), unique=True, nullable=False, index=True)
    full_name = Column(String(256), nullable=False, index=True)
    password_hash = Column(String(256), nullable=False)
    avatar_asset_id = Column(String(256), nullable=False)
    avatar_url = Column(String(1024), nullable=False)
    cover_image_asset_id = Column(String(256), nullable=False, default="")
    cover_image_url = Column(String(1024), nullable=False, default="")
    refresh_token = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)
