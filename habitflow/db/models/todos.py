from sqlalchemy import Column, String, Text, DateTime, Integer, Index, CheckConstraint
from .base import Base, now_utc


class Todo(Base):
    __tablename__ = 'todos'
    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(Text, nullable=False)
    description = Column(Text)
    status = Column(String(20), nullable=False, default='active')
    priority = Column(String(20), nullable=False, default='medium')
    due_date = Column(DateTime(timezone=True), nullable=True)
    planned_date = Column(DateTime(timezone=True), nullable=True)
    planned_start_time = Column(DateTime(timezone=True), nullable=True)
    planned_end_time = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    user_id = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=now_utc)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=now_utc, onupdate=now_utc)

    __table_args__ = (
        Index('idx_todos_user_id', 'user_id'),
        Index('idx_todos_status', 'status'),
        Index('idx_todos_due_date', 'due_date'),
        CheckConstraint("status in ('active','completed','archived')", name='ck_todos_status'),
        CheckConstraint("priority in ('urgent','high','medium','low')", name='ck_todos_priority'),
    )
