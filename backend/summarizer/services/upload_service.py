"""
Upload Service - Stores SRT subtitle uploads until they are summarized
"""
import asyncio
import logging
import uuid
from pathlib import Path
from typing import Optional

from summarizer.exceptions import UploadInvalid
from summarizer.services.video_reference import SrtReference, is_valid_video_id
from summarizer.settings import get_settings

logger = logging.getLogger(__name__)

ALLOWED_EXTENSION = ".srt"


class UploadService:
    """Writes uploaded subtitle files to disk and reads them back by reference"""

    def __init__(self, upload_dir: Optional[str] = None):
        self.upload_dir = Path(upload_dir or get_settings().upload_dir)
        logger.info(f"Upload service initialized with directory: {self.upload_dir}")

    def _path_for(self, file_id: str) -> Path:
        return self.upload_dir / f"{file_id}{ALLOWED_EXTENSION}"

    async def save_upload(self, filename: Optional[str], content: Optional[bytes], video_id: Optional[str]) -> SrtReference:
        """
        Persist an uploaded subtitle file.

        Args:
            filename: Client-side file name, must end in .srt
            content: Raw file bytes
            video_id: 11-character ID of the video the subtitles belong to

        Returns:
            Reference to the stored file

        Raises:
            UploadInvalid: If the file, its extension or the video ID is invalid
        """
        if not filename or content is None:
            raise UploadInvalid("No file uploaded", "The srtFile field is required")

        if not filename.lower().endswith(ALLOWED_EXTENSION):
            raise UploadInvalid("Only .srt files are allowed", f"Rejected upload: {filename}")

        if not video_id or not is_valid_video_id(video_id.strip()):
            raise UploadInvalid("Invalid YouTube ID", f"Rejected video ID: {video_id}")

        file_id = str(uuid.uuid4())
        path = self._path_for(file_id)

        loop = asyncio.get_event_loop()
        await loop.run_in_executor(None, self._write, path, content)

        logger.info(f"Stored SRT upload {file_id} ({len(content)} bytes) for video {video_id.strip()}")
        return SrtReference(file_id=file_id, filename=filename, video_id=video_id.strip())

    def _write(self, path: Path, content: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)

    async def read_upload(self, reference: SrtReference) -> str:
        """
        Read a stored subtitle file as text.

        Raises:
            UploadInvalid: If the file no longer exists
        """
        path = self._path_for(reference.file_id)
        if not path.is_file():
            raise UploadInvalid("SRT file not found", f"No stored upload for {reference.file_id}")

        loop = asyncio.get_event_loop()
        data = await loop.run_in_executor(None, path.read_bytes)
        return data.decode("utf-8", errors="replace")

    async def delete_upload(self, reference: SrtReference) -> None:
        """Remove a stored upload; missing files are ignored"""
        path = self._path_for(reference.file_id)
        try:
            path.unlink(missing_ok=True)
            logger.info(f"Deleted SRT upload {reference.file_id}")
        except OSError as e:
            logger.warning(f"Failed to delete SRT upload {reference.file_id}: {e}")


# Singleton instance
_upload_service: Optional[UploadService] = None


def get_upload_service() -> UploadService:
    """Get or create upload service singleton"""
    global _upload_service
    if _upload_service is None:
        _upload_service = UploadService()
    return _upload_service
