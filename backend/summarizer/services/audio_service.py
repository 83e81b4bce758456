"""
Audio Service - Downloads a video's audio track and converts it for transcription

Used only by the speech-to-text fallback. Temporary files are always removed
when the `prepared_audio` context exits, whether transcription succeeded or not.
"""
import asyncio
import logging
import os
import uuid
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional

import yt_dlp
from yt_dlp.utils import DownloadError

from summarizer.exceptions import TranscriptUnavailable
from summarizer.models.transcript import VideoMetadata
from summarizer.settings import get_settings

logger = logging.getLogger(__name__)

WATCH_URL = "https://www.youtube.com/watch?v={video_id}"

# 16 kHz mono FLAC is what speech-to-text models expect
FFMPEG_CONVERT_ARGS = ["-ar", "16000", "-ac", "1", "-c:a", "flac"]


def select_audio_format(formats: List[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """
    Pick the best audio-only format.

    Opus streams are preferred; ties are broken by higher audio bitrate.
    """
    audio_only = [
        f for f in formats
        if f.get("acodec") not in (None, "none") and f.get("vcodec") in (None, "none")
    ]
    if not audio_only:
        return None

    def rank(fmt: Dict[str, Any]):
        is_opus = "opus" in (fmt.get("acodec") or "")
        return (0 if is_opus else 1, -(fmt.get("abr") or 0))

    return sorted(audio_only, key=rank)[0]


class AudioService:
    """yt-dlp download plus ffmpeg conversion"""

    def __init__(self, temp_dir: Optional[str] = None):
        self.temp_dir = temp_dir or get_settings().audio_temp_dir

    def _extract_info(self, video_id: str) -> Dict[str, Any]:
        ydl_opts = {"quiet": True, "no_warnings": True, "noplaylist": True}
        with yt_dlp.YoutubeDL(ydl_opts) as ydl:
            info = ydl.extract_info(WATCH_URL.format(video_id=video_id), download=False)
        if info is None:
            raise TranscriptUnavailable("Failed to get video info", f"yt-dlp returned no info for {video_id}")
        return info

    async def fetch_metadata(self, video_id: str) -> VideoMetadata:
        """Fetch title, duration and author for a video"""
        loop = asyncio.get_event_loop()
        try:
            info = await loop.run_in_executor(None, self._extract_info, video_id)
        except DownloadError as e:
            raise TranscriptUnavailable("Failed to get video info", str(e))

        return VideoMetadata(
            video_id=video_id,
            title=info.get("title") or "YouTube Video Summary",
            duration_seconds=info.get("duration"),
            author=info.get("uploader") or info.get("channel"),
        )

    def _download(self, video_id: str, output_path: str) -> None:
        info = self._extract_info(video_id)
        fmt = select_audio_format(info.get("formats") or [])
        if fmt is None:
            raise TranscriptUnavailable("No suitable audio format found", f"No audio-only stream for {video_id}")

        logger.info(
            f"Downloading audio for {video_id}: format={fmt.get('format_id')} "
            f"codec={fmt.get('acodec')} bitrate={fmt.get('abr')}"
        )
        ydl_opts = {
            "quiet": True,
            "no_warnings": True,
            "noplaylist": True,
            "format": fmt["format_id"],
            "outtmpl": output_path,
        }
        with yt_dlp.YoutubeDL(ydl_opts) as ydl:
            ydl.download([WATCH_URL.format(video_id=video_id)])

    async def download_audio(self, video_id: str, output_path: str) -> None:
        """Download the best audio stream to output_path"""
        loop = asyncio.get_event_loop()
        try:
            await loop.run_in_executor(None, self._download, video_id, output_path)
        except DownloadError as e:
            raise TranscriptUnavailable("Failed to download audio", str(e))

        if not os.path.exists(output_path) or os.path.getsize(output_path) == 0:
            raise TranscriptUnavailable("Failed to download audio", "Downloaded audio file is empty")

    async def convert_audio(self, input_path: str, output_path: str) -> None:
        """Convert to 16 kHz mono FLAC with ffmpeg"""
        cmd = ["ffmpeg", "-y", "-i", input_path, *FFMPEG_CONVERT_ARGS, output_path]
        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE
            )
        except FileNotFoundError:
            raise TranscriptUnavailable("Failed to convert audio format", "ffmpeg is not installed")

        _, stderr = await process.communicate()

        if process.returncode != 0:
            error_msg = stderr.decode("utf-8", errors="ignore")[-500:]
            logger.error(f"ffmpeg conversion failed: {error_msg}")
            raise TranscriptUnavailable("Failed to convert audio format", error_msg)

        if not os.path.exists(output_path) or os.path.getsize(output_path) == 0:
            raise TranscriptUnavailable("Failed to convert audio format", "Converted audio file is empty")

    @asynccontextmanager
    async def prepared_audio(self, video_id: str) -> AsyncIterator[str]:
        """
        Download and convert a video's audio, yielding the FLAC path.

        Both the raw download and the converted file are removed on exit.
        """
        token = uuid.uuid4().hex
        raw_path = os.path.join(self.temp_dir, f"{video_id}-{token}.audio")
        flac_path = os.path.join(self.temp_dir, f"{video_id}-{token}.flac")

        try:
            await self.download_audio(video_id, raw_path)
            await self.convert_audio(raw_path, flac_path)
            yield flac_path
        finally:
            for path in (raw_path, flac_path):
                try:
                    if os.path.exists(path):
                        os.remove(path)
                except OSError as e:
                    logger.warning(f"Failed to clean up temp file {path}: {e}")


# Singleton instance
_audio_service: Optional[AudioService] = None


def get_audio_service() -> AudioService:
    """Get or create audio service singleton"""
    global _audio_service
    if _audio_service is None:
        _audio_service = AudioService()
    return _audio_service
