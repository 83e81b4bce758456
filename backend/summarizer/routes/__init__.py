"""
YouTube AI Summarizer - API Routes
"""
from . import summarize, upload, history

__all__ = ["summarize", "upload", "history"]
