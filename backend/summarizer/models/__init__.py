"""
YouTube AI Summarizer - Data Models
"""
from .transcript import Provenance, Transcript, VideoMetadata
from .summary import (
    SummarizeRequest, ProgressEvent, CompleteEvent, ErrorEvent,
    SummaryRecordResponse, SummaryListResponse, SrtUploadResponse
)

__all__ = [
    "Provenance", "Transcript", "VideoMetadata",
    "SummarizeRequest", "ProgressEvent", "CompleteEvent", "ErrorEvent",
    "SummaryRecordResponse", "SummaryListResponse", "SrtUploadResponse"
]
