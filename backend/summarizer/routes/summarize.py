"""
Summarize Routes
"""
import logging
from typing import Dict

from fastapi import APIRouter
from fastapi.responses import StreamingResponse

from summarizer.models.summary import SummarizeRequest
from summarizer.services.backends import backend_availability
from summarizer.services.summarization_service import get_summarization_service

logger = logging.getLogger(__name__)

router = APIRouter()

NDJSON_MEDIA_TYPE = "application/x-ndjson"


@router.get("", response_model=Dict[str, bool])
async def get_backend_availability():
    """Which AI models currently have an API key configured"""
    service = get_summarization_service()
    return backend_availability(service.backends)


@router.post("")
async def summarize(request: SummarizeRequest):
    """
    Summarize a video or an uploaded SRT file.

    The response is a stream of newline-delimited JSON events:
    `progress` events while working, then exactly one `complete` or `error`.
    """
    service = get_summarization_service()
    channel = service.start(request)

    return StreamingResponse(
        channel.stream(),
        media_type=NDJSON_MEDIA_TYPE,
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"}
    )
