"""
Database Service - Summary history in PostgreSQL

Handles all database operations using asyncpg and SQLAlchemy async.
Every failure surfaces as PersistenceFailure so callers can decide whether
it is fatal (history routes) or only worth a warning (summarize stream).
"""
import logging
import uuid
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import Column, DateTime, String, Text, UniqueConstraint, delete, select
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from summarizer.exceptions import PersistenceFailure
from summarizer.settings import get_settings

logger = logging.getLogger(__name__)


# SQLAlchemy Base
class Base(DeclarativeBase):
    pass


# =============================================================================
# Database Models (SQLAlchemy ORM)
# =============================================================================

class SummaryModel(Base):
    """Summaries table - one row per (video key, language)"""
    __tablename__ = "summaries"
    __table_args__ = (
        UniqueConstraint("video_id", "language", name="uq_summaries_video_language"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    # 11-char video ID, or an srt:... identifier for uploads without a linked video
    video_id = Column(String(512), nullable=False, index=True)
    title = Column(String(500), nullable=False)
    content = Column(Text, nullable=False)
    language = Column(String(10), nullable=False)
    mode = Column(String(20), nullable=False, default="video")
    source = Column(String(20), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


UPDATABLE_FIELDS = ("title", "content", "mode", "source")


def _parse_id(summary_id: str) -> Optional[uuid.UUID]:
    try:
        return uuid.UUID(str(summary_id))
    except ValueError:
        return None


class DatabaseService:
    """Service for summary history operations"""

    def __init__(self, database_url: Optional[str] = None):
        """Initialize database service"""
        self.engine = None
        self.async_session = None
        self.initialized = False

        self.database_url = database_url or get_settings().database_url

        if self.database_url:
            # Convert postgresql:// to postgresql+asyncpg://
            if self.database_url.startswith("postgresql://"):
                self.database_url = self.database_url.replace("postgresql://", "postgresql+asyncpg://", 1)

    def is_configured(self) -> bool:
        return bool(self.database_url)

    async def initialize(self):
        """Initialize database connection and create tables"""
        if self.initialized:
            return

        if not self.database_url:
            logger.warning("DATABASE_URL not set - summary history is disabled")
            return

        try:
            self.engine = create_async_engine(
                self.database_url,
                echo=get_settings().debug and get_settings().log_level.upper() == "DEBUG",
                pool_pre_ping=True,
                pool_recycle=300,
            )

            self.async_session = async_sessionmaker(
                self.engine,
                class_=AsyncSession,
                expire_on_commit=False
            )

            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)

            self.initialized = True
            logger.info("Database service initialized successfully")

        except Exception as e:
            logger.error(f"Failed to initialize database: {e}")
            raise PersistenceFailure("Failed to connect to database", str(e))

    async def close(self):
        """Close database connection"""
        if self.engine:
            await self.engine.dispose()
            self.initialized = False
            logger.info("Database connection closed")

    @asynccontextmanager
    async def get_session(self):
        """Get database session context manager"""
        if not self.initialized:
            await self.initialize()
        if not self.initialized:
            raise PersistenceFailure("Database not configured", "DATABASE_URL is not set")

        async with self.async_session() as session:
            try:
                yield session
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error(f"Database operation failed: {e}")
                raise PersistenceFailure("Database operation failed", str(e))
            except Exception:
                await session.rollback()
                raise

    # =========================================================================
    # Summary Operations
    # =========================================================================

    async def find_by_video_and_language(self, video_id: str, language: str) -> Optional[Dict[str, Any]]:
        """Get the stored summary for a video key in a language, if any"""
        async with self.get_session() as session:
            result = await session.execute(
                select(SummaryModel).where(
                    SummaryModel.video_id == video_id,
                    SummaryModel.language == language
                )
            )
            summary = result.scalar_one_or_none()
            return self._summary_to_dict(summary) if summary else None

    async def create_summary(
        self,
        video_id: str,
        title: str,
        content: str,
        language: str,
        mode: str,
        source: Optional[str] = None
    ) -> Dict[str, Any]:
        """Create a new summary record"""
        async with self.get_session() as session:
            summary = SummaryModel(
                video_id=video_id,
                title=title,
                content=content,
                language=language,
                mode=mode,
                source=source
            )
            session.add(summary)
            await session.flush()
            return self._summary_to_dict(summary)

    async def update_summary(self, summary_id: str, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Update selected fields of a summary; returns None if it does not exist"""
        parsed = _parse_id(summary_id)
        if parsed is None:
            return None

        async with self.get_session() as session:
            summary = await session.get(SummaryModel, parsed)
            if not summary:
                return None

            for field in UPDATABLE_FIELDS:
                if field in updates:
                    setattr(summary, field, updates[field])
            summary.updated_at = datetime.utcnow()

            await session.flush()
            return self._summary_to_dict(summary)

    async def get_summary(self, summary_id: str) -> Optional[Dict[str, Any]]:
        """Get summary by ID"""
        parsed = _parse_id(summary_id)
        if parsed is None:
            return None

        async with self.get_session() as session:
            summary = await session.get(SummaryModel, parsed)
            return self._summary_to_dict(summary) if summary else None

    async def list_summaries(self, limit: int = 100, offset: int = 0) -> List[Dict[str, Any]]:
        """List summaries, newest first"""
        async with self.get_session() as session:
            result = await session.execute(
                select(SummaryModel)
                .order_by(SummaryModel.created_at.desc())
                .offset(offset)
                .limit(limit)
            )
            return [self._summary_to_dict(s) for s in result.scalars().all()]

    async def delete_summary(self, summary_id: str) -> bool:
        """Delete one summary; returns False if it did not exist"""
        parsed = _parse_id(summary_id)
        if parsed is None:
            return False

        async with self.get_session() as session:
            result = await session.execute(
                delete(SummaryModel).where(SummaryModel.id == parsed)
            )
            return result.rowcount > 0

    async def delete_all_summaries(self) -> int:
        """Delete every summary; returns the number of rows removed"""
        async with self.get_session() as session:
            result = await session.execute(delete(SummaryModel))
            return result.rowcount or 0

    def _summary_to_dict(self, summary: SummaryModel) -> Dict[str, Any]:
        return {
            "id": str(summary.id),
            "video_id": summary.video_id,
            "title": summary.title,
            "content": summary.content,
            "language": summary.language,
            "mode": summary.mode,
            "source": summary.source,
            "created_at": summary.created_at,
            "updated_at": summary.updated_at,
        }


_database_service: Optional[DatabaseService] = None


async def get_database_service() -> DatabaseService:
    """Get or create database service singleton"""
    global _database_service
    if _database_service is None:
        _database_service = DatabaseService()
        await _database_service.initialize()
    return _database_service
