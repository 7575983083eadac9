from sqlalchemy import Column, String, Text, DateTime, Integer, ForeignKey, Index, CheckConstraint
from .base import Base, now_utc


class Pomodoro(Base):
    __tablename__ = 'pomodoros'
    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(Text, nullable=False)
    description = Column(Text)
    duration = Column(Integer, nullable=False, default=25)  # minutes
    status = Column(String(20), nullable=False, default='running')
    start_time = Column(DateTime(timezone=True), nullable=False, default=now_utc)
    end_time = Column(DateTime(timezone=True), nullable=True)
    habit_id = Column(Integer, ForeignKey('habits.id', ondelete='SET NULL'), nullable=True)
    user_id = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=now_utc)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=now_utc, onupdate=now_utc)

    __table_args__ = (
        Index('idx_pomodoros_user_id', 'user_id'),
        Index('idx_pomodoros_status', 'status'),
        Index('idx_pomodoros_start_time', 'start_time'),
        CheckConstraint("status in ('running','paused','completed','canceled')", name='ck_pomodoros_status'),
        CheckConstraint("duration > 0", name='ck_pomodoros_duration_positive'),
    )
