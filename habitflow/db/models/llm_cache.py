from sqlalchemy import Column, String, Text, DateTime, Integer, Index
from .base import Base, now_utc


class LLMCacheRecord(Base):
    __tablename__ = 'llm_cache_records'
    id = Column(Integer, primary_key=True, autoincrement=True)
    request_hash = Column(String(64), nullable=False)
    prompt = Column(Text, nullable=False)
    model = Column(String(255), nullable=False)
    response_content = Column(Text, nullable=False)
    user_id = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=now_utc)

    # No unique constraint on request_hash: concurrent writers may both insert.
    __table_args__ = (
        Index('idx_llm_cache_records_request_hash', 'request_hash', 'created_at'),
    )
