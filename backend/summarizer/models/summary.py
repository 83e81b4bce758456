"""
Summary Models

Request body for the summarize endpoint, the three event shapes written to the
progress stream, and the history record responses.
"""
from datetime import datetime
from typing import Optional, List, Literal
from pydantic import BaseModel, Field

from summarizer.settings import get_settings

from .transcript import Provenance

SummaryMode = Literal["video", "podcast"]
ProgressStage = Literal["analyzing", "processing", "finalizing", "saving"]


class SummarizeRequest(BaseModel):
    """Body of POST /api/summarize. Exactly one of url / srtId is expected."""
    url: Optional[str] = Field(None, description="Video URL or bare video ID")
    srt_id: Optional[str] = Field(None, alias="srtId", description="Identifier returned by /api/upload-srt")
    language: str = Field(
        default_factory=lambda: get_settings().default_language,
        max_length=10,
        description="Target summary language code"
    )
    mode: SummaryMode = "video"
    ai_model: str = Field(
        default_factory=lambda: get_settings().default_ai_model,
        alias="aiModel",
        description="Backend name"
    )

    class Config:
        populate_by_name = True


# =============================================================================
# Stream events
# =============================================================================

class ProgressEvent(BaseModel):
    type: Literal["progress"] = "progress"
    current_chunk: int = Field(..., alias="currentChunk")
    total_chunks: int = Field(..., alias="totalChunks")
    stage: ProgressStage
    message: str

    class Config:
        populate_by_name = True


class CompleteEvent(BaseModel):
    type: Literal["complete"] = "complete"
    summary: str
    source: Provenance
    status: Literal["completed"] = "completed"
    warning: Optional[str] = None


class ErrorEvent(BaseModel):
    type: Literal["error"] = "error"
    error: str
    details: str
    is_backend_error: Optional[bool] = Field(None, alias="isBackendError")

    class Config:
        populate_by_name = True


# =============================================================================
# History records
# =============================================================================

class SummaryRecordResponse(BaseModel):
    """Stored summary as returned by the history endpoints"""
    id: str
    video_id: str = Field(..., serialization_alias="videoId")
    title: str
    content: str
    language: str
    mode: str
    source: Optional[str] = None
    created_at: datetime = Field(..., serialization_alias="createdAt")
    updated_at: datetime = Field(..., serialization_alias="updatedAt")

    class Config:
        from_attributes = True


class SummaryListResponse(BaseModel):
    summaries: List[SummaryRecordResponse]


class SrtUploadResponse(BaseModel):
    success: bool
    id: str
    youtube_id: str = Field(..., serialization_alias="youtubeId")
