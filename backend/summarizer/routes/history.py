"""
History Routes - Stored summaries
"""
import logging

from fastapi import APIRouter, HTTPException, Query, Request

from summarizer.exceptions import PersistenceFailure
from summarizer.models.summary import SummaryListResponse, SummaryRecordResponse
from summarizer.services.output_cleaning import extract_title_from_content

logger = logging.getLogger(__name__)

router = APIRouter()


async def get_db(request: Request):
    """Get database service from app state"""
    db = getattr(request.app.state, "db", None)
    if db is None:
        raise HTTPException(status_code=503, detail="Database not available")
    return db


def _to_response(record: dict) -> SummaryRecordResponse:
    return SummaryRecordResponse(**{**record, "title": extract_title_from_content(record["content"])})


@router.get("", response_model=SummaryListResponse, response_model_by_alias=True)
async def list_history(
    request: Request,
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0)
):
    """List stored summaries, newest first"""
    db = await get_db(request)
    try:
        records = await db.list_summaries(limit=limit, offset=offset)
    except PersistenceFailure as e:
        logger.error(f"Failed to list summaries: {e.details}")
        raise HTTPException(status_code=500, detail="Failed to fetch history")

    return SummaryListResponse(summaries=[_to_response(r) for r in records])


@router.delete("")
async def delete_history(request: Request):
    """Delete all stored summaries"""
    db = await get_db(request)
    try:
        deleted = await db.delete_all_summaries()
    except PersistenceFailure as e:
        logger.error(f"Failed to clear history: {e.details}")
        raise HTTPException(status_code=500, detail="Failed to clear history")

    return {"success": True, "deleted": deleted}


@router.get("/{summary_id}", response_model=SummaryRecordResponse, response_model_by_alias=True)
async def get_history_item(summary_id: str, request: Request):
    """Get one stored summary"""
    db = await get_db(request)
    try:
        record = await db.get_summary(summary_id)
    except PersistenceFailure as e:
        logger.error(f"Failed to fetch summary {summary_id}: {e.details}")
        raise HTTPException(status_code=500, detail="Failed to fetch summary")

    if not record:
        raise HTTPException(status_code=404, detail="Summary not found")

    return _to_response(record)


@router.delete("/{summary_id}")
async def delete_history_item(summary_id: str, request: Request):
    """Delete one stored summary"""
    db = await get_db(request)
    try:
        deleted = await db.delete_summary(summary_id)
    except PersistenceFailure as e:
        logger.error(f"Failed to delete summary {summary_id}: {e.details}")
        raise HTTPException(status_code=500, detail="Failed to delete summary")

    if not deleted:
        raise HTTPException(status_code=404, detail="Summary not found")

    return {"success": True}
