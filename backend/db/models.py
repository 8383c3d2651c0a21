from sqlalchemy import (
    Column, Integer, Text, Float, Date, ForeignKey, Index, UniqueConstraint,
    DateTime,
)
from sqlalchemy.orm import relationship
from db.database import Base
from utils.datetime_utils import utcnow


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(Text, unique=True, nullable=False)  # case-sensitive
    password_hash = Column(Text, nullable=False)
    display_name = Column(Text, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    daily_logs = relationship("DailyLog", back_populates="user", cascade="all, delete-orphan")


class DailyLog(Base):
    __tablename__ = "daily_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    log_date = Column(Date, nullable=False)
    sleep_hours = Column(Float)
    movement_minutes = Column(Integer)
    mood_score = Column(Integer)
    energy_score = Column(Integer)
    craving_level = Column(Integer)
    cycle_day = Column(Integer)
    notes = Column(Text)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    user = relationship("User", back_populates="daily_logs")

    __table_args__ = (
        UniqueConstraint("user_id", "log_date", name="uq_daily_logs_user_date"),
    )


class Recipe(Base):
    __tablename__ = "recipes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(Text, nullable=False)
    summary = Column(Text)
    main_tag = Column(Text)
    image_url = Column(Text)
    ingredients = Column(Text)  # newline separated
    instructions = Column(Text)
    prep_minutes = Column(Integer)
    created_at = Column(DateTime, default=utcnow)

    __table_args__ = (
        Index("idx_recipes_title", "title"),
    )
