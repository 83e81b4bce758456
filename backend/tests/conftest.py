"""
Shared fixtures for the summarizer test suite
"""
import os
import uuid
from datetime import datetime
from typing import Any, Dict, Optional

import pytest

from summarizer.exceptions import PersistenceFailure

# Keep tests independent of any developer .env
os.environ["DATABASE_URL"] = ""
os.environ["LOG_LEVEL"] = "WARNING"


NO_KEYS = {
    "gemini_api_key": None,
    "groq_api_key": None,
    "openai_api_key": None,
    "deepseek_api_key": None,
    "database_url": None,
}


@pytest.fixture
def make_settings():
    """Build Settings with every credential cleared unless overridden"""
    from summarizer.settings import Settings

    def _make(**overrides):
        values = {**NO_KEYS, **overrides}
        return Settings(**values)

    return _make


class FakeDatabase:
    """In-memory stand-in for DatabaseService"""

    def __init__(self):
        self.records: Dict[str, Dict[str, Any]] = {}

    def add(self, video_id: str, language: str, content: str, **fields) -> Dict[str, Any]:
        now = datetime.utcnow()
        record = {
            "id": str(uuid.uuid4()),
            "video_id": video_id,
            "title": fields.get("title", "Stored title"),
            "content": content,
            "language": language,
            "mode": fields.get("mode", "video"),
            "source": fields.get("source", "youtube"),
            "created_at": now,
            "updated_at": now,
        }
        self.records[record["id"]] = record
        return record

    async def find_by_video_and_language(self, video_id: str, language: str) -> Optional[Dict[str, Any]]:
        for record in self.records.values():
            if record["video_id"] == video_id and record["language"] == language:
                return dict(record)
        return None

    async def create_summary(self, video_id, title, content, language, mode, source=None):
        # Same uniqueness rule as the summaries table
        if await self.find_by_video_and_language(video_id, language):
            raise PersistenceFailure(
                "Database operation failed",
                "UNIQUE constraint failed: summaries.video_id, summaries.language"
            )
        return dict(self.add(video_id, language, content, title=title, mode=mode, source=source))

    async def update_summary(self, summary_id, updates):
        record = self.records.get(summary_id)
        if record is None:
            return None
        record.update(updates)
        record["updated_at"] = datetime.utcnow()
        return dict(record)

    async def get_summary(self, summary_id):
        record = self.records.get(summary_id)
        return dict(record) if record else None

    async def list_summaries(self, limit=100, offset=0):
        ordered = sorted(self.records.values(), key=lambda r: r["created_at"], reverse=True)
        return [dict(r) for r in ordered[offset:offset + limit]]

    async def delete_summary(self, summary_id):
        return self.records.pop(summary_id, None) is not None

    async def delete_all_summaries(self):
        count = len(self.records)
        self.records.clear()
        return count


@pytest.fixture
def fake_db():
    return FakeDatabase()
