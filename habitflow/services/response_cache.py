"""
Persistent cache of generator responses keyed by a request fingerprint.

The cache only saves generator cost: every storage failure is logged and
reported as a miss (reads) or ignored (writes).
"""
from __future__ import annotations

import hashlib
import json
import logging
from datetime import timedelta
from typing import Any, Callable, Mapping, Optional

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from habitflow.config import GenerationSettings
from habitflow.db import models, schemas
from habitflow.db.models import now_utc

logger = logging.getLogger(__name__)


def fingerprint(template: str, context: Mapping[str, Any]) -> str:
    """SHA-256 over the template text and the JSON context (key order matters)."""
    payload = template + "\n" + json.dumps(context, ensure_ascii=False, default=str)
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


class ResponseCache:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        ttl_seconds: int,
        max_entries: int,
        clock: Callable = now_utc,
    ) -> None:
        self.session_factory = session_factory
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self.clock = clock

    @classmethod
    def from_settings(
        cls, session_factory: async_sessionmaker[AsyncSession], settings: Optional[GenerationSettings] = None
    ) -> "ResponseCache":
        settings = settings or GenerationSettings.from_env()
        return cls(session_factory, settings.cache_ttl_seconds, settings.cache_max_entries)

    fingerprint = staticmethod(fingerprint)

    async def get(self, request_hash: str, max_age: Optional[int] = None) -> Optional[schemas.CacheRecord]:
        """Newest record for ``request_hash`` younger than ``max_age`` seconds."""
        max_age = self.ttl_seconds if max_age is None else max_age
        cutoff = self.clock() - timedelta(seconds=max_age)
        stmt = (
            select(models.LLMCacheRecord)
            .where(
                models.LLMCacheRecord.request_hash == request_hash,
                models.LLMCacheRecord.created_at > cutoff,
            )
            .order_by(models.LLMCacheRecord.created_at.desc(), models.LLMCacheRecord.id.desc())
            .limit(1)
        )
        try:
            async with self.session_factory() as session:
                row = (await session.execute(stmt)).scalars().first()
                return schemas.CacheRecord.model_validate(row, from_attributes=True) if row else None
        except SQLAlchemyError as exc:
            logger.warning("Cache lookup failed for %s: %s", request_hash[:12], exc)
            return None

    async def put(
        self,
        request_hash: str,
        prompt: str,
        model: str,
        response: str,
        owner_id: Optional[str] = None,
    ) -> None:
        record = models.LLMCacheRecord(
            request_hash=request_hash,
            prompt=prompt,
            model=model,
            response_content=response,
            user_id=owner_id,
            created_at=self.clock(),
        )
        try:
            async with self.session_factory() as session:
                session.add(record)
                await session.commit()
                await self._enforce_bound(session)
        except SQLAlchemyError as exc:
            logger.warning("Cache write failed for %s: %s", request_hash[:12], exc)

    async def _enforce_bound(self, session: AsyncSession) -> None:
        total = (await session.execute(select(func.count()).select_from(models.LLMCacheRecord))).scalar_one()
        overflow = total - self.max_entries
        if overflow <= 0:
            return
        oldest = (
            select(models.LLMCacheRecord.id)
            .order_by(models.LLMCacheRecord.created_at.asc(), models.LLMCacheRecord.id.asc())
            .limit(overflow)
        )
        ids = list((await session.execute(oldest)).scalars().all())
        await session.execute(delete(models.LLMCacheRecord).where(models.LLMCacheRecord.id.in_(ids)))
        await session.commit()
        logger.info("Evicted %d cache records over the %d entry bound", len(ids), self.max_entries)

    async def purge_expired(self) -> int:
        cutoff = self.clock() - timedelta(seconds=self.ttl_seconds)
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    delete(models.LLMCacheRecord).where(models.LLMCacheRecord.created_at <= cutoff)
                )
                await session.commit()
                return result.rowcount or 0
        except SQLAlchemyError as exc:
            logger.warning("Cache purge failed: %s", exc)
            return 0
