from sqlalchemy import Column, String, Text, DateTime, Integer, Index, CheckConstraint
from .base import Base, now_utc


class Habit(Base):
    __tablename__ = 'habits'
    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(Text, nullable=False)
    description = Column(Text)
    frequency = Column(String(20), nullable=False, default='daily')
    category = Column(String(100))
    reward_points = Column(Integer, nullable=False, default=1)
    status = Column(String(20), nullable=False, default='active')
    user_id = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=now_utc)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=now_utc, onupdate=now_utc)

    __table_args__ = (
        Index('idx_habits_user_id', 'user_id'),
        CheckConstraint("frequency in ('daily','weekly','monthly','scenario')", name='ck_habits_frequency'),
        CheckConstraint("status in ('active','inactive','archived')", name='ck_habits_status'),
    )
