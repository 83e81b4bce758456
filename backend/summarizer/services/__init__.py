"""
YouTube AI Summarizer - Services
"""
from .summarization_service import SummarizationService
from .transcript_service import TranscriptService
from .database_service import DatabaseService

__all__ = [
    "SummarizationService",
    "TranscriptService",
    "DatabaseService"
]
