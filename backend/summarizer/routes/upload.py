"""
SRT Upload Routes
"""
import logging
from typing import Optional

from fastapi import APIRouter, File, Form, HTTPException, UploadFile

from summarizer.exceptions import UploadInvalid
from summarizer.models.summary import SrtUploadResponse
from summarizer.services.upload_service import get_upload_service

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("", response_model=SrtUploadResponse, response_model_by_alias=True)
async def upload_srt(
    srt_file: Optional[UploadFile] = File(None, alias="srtFile"),
    youtube_id: Optional[str] = Form(None, alias="youtubeId")
):
    """
    Store an SRT file for a later summarize request.

    Returns the identifier to pass as `srtId` to /api/summarize.
    """
    upload_service = get_upload_service()

    content = await srt_file.read() if srt_file else None
    filename = srt_file.filename if srt_file else None

    try:
        reference = await upload_service.save_upload(filename, content, youtube_id)
    except UploadInvalid as e:
        logger.warning(f"Rejected SRT upload: {e.details}")
        raise HTTPException(status_code=400, detail=e.message)

    return SrtUploadResponse(success=True, id=reference.to_id(), youtube_id=reference.video_id)
