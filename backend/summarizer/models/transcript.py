"""
Transcript Models

A transcript is produced once per request by one of the acquisition
strategies and then only read.
"""
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field


class Provenance(str, Enum):
    """
    Where the text behind a summary came from.

    Values are the wire names used in the `source` field of completion events.
    """
    YOUTUBE = "youtube"    # Native captions
    SRT = "srt"            # Uploaded subtitle file
    WHISPER = "whisper"    # Audio download + speech-to-text
    CACHE = "cache"        # Previously stored summary


class Transcript(BaseModel):
    """Text obtained for one video or subtitle upload"""
    text: str = Field(..., description="Full transcript text")
    provenance: Provenance = Field(..., description="Acquisition strategy that produced the text")
    title: str = Field(..., description="Display title derived from the source")

    class Config:
        frozen = True


class VideoMetadata(BaseModel):
    """Metadata fetched before falling back to audio transcription"""
    video_id: str
    title: str
    duration_seconds: Optional[int] = None
    author: Optional[str] = None
