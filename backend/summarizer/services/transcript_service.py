"""
Transcript Service - Obtains transcript text for a video or subtitle upload

Video transcripts are acquired through an ordered list of strategies:

1. Native captions (youtube-transcript-api)
2. Audio download + speech-to-text (yt-dlp, ffmpeg, OpenAI Whisper)

The first strategy that returns text wins. A failure in any strategy but the
last is logged and the next one is tried; the last strategy's failure is what
the caller sees. Subtitle uploads bypass the chain and are read from disk.
"""
import asyncio
import logging
import os
from typing import List, Optional, Sequence

from openai import AsyncOpenAI
from youtube_transcript_api import YouTubeTranscriptApi, NoTranscriptFound

from summarizer.exceptions import SummarizerError, TranscriptUnavailable
from summarizer.models.transcript import Provenance, Transcript
from summarizer.services.audio_service import AudioService, get_audio_service
from summarizer.services.srt_parser import srt_to_text
from summarizer.services.upload_service import UploadService, get_upload_service
from summarizer.services.video_reference import SrtReference
from summarizer.settings import Settings, get_settings

logger = logging.getLogger(__name__)

DEFAULT_VIDEO_TITLE = "YouTube Video Summary"
DEFAULT_SRT_TITLE = "SRT Subtitle Summary"

# Number of leading caption segments used to guess a title
TITLE_SEGMENTS = 5
MAX_TITLE_LENGTH = 100
MIN_TITLE_LENGTH = 10


def _bounded_title(title: str, fallback: str) -> str:
    if len(title) > MAX_TITLE_LENGTH:
        title = title[:MAX_TITLE_LENGTH - 3] + "..."
    if len(title) < MIN_TITLE_LENGTH:
        title = fallback
    return title


def title_from_captions(segments: Sequence[str]) -> str:
    """First sentence of the opening caption segments, bounded in length"""
    opening = " ".join(segments[:TITLE_SEGMENTS])
    return _bounded_title(opening.split(".")[0].strip(), DEFAULT_VIDEO_TITLE)


def title_from_filename(filename: Optional[str]) -> str:
    """Upload file name without its extension, bounded in length"""
    stem = os.path.splitext(os.path.basename(filename or ""))[0].strip()
    return _bounded_title(stem, DEFAULT_SRT_TITLE)


# =============================================================================
# Acquisition strategies
# =============================================================================

class TranscriptSource:
    """One way of turning a video ID into a transcript"""

    name: str = ""

    async def fetch(self, video_id: str, language: Optional[str] = None) -> Transcript:
        raise NotImplementedError


class CaptionFetchSource(TranscriptSource):
    """Native captions published for the video"""

    name = "captions"

    def __init__(self, api: Optional[YouTubeTranscriptApi] = None):
        self.api = api or YouTubeTranscriptApi()

    def _fetch_segments(self, video_id: str, languages: List[str]) -> List[str]:
        transcript_list = self.api.list(video_id)

        try:
            transcript = transcript_list.find_transcript(languages)
        except NoTranscriptFound:
            transcript = None
            for candidate in transcript_list:
                transcript = candidate
                break
            if transcript is None:
                raise

        logger.info(f"Using {transcript.language_code} captions for {video_id}")
        return [snippet.text for snippet in transcript.fetch()]

    async def fetch(self, video_id: str, language: Optional[str] = None) -> Transcript:
        languages = [lang for lang in (language, "en") if lang]

        loop = asyncio.get_event_loop()
        segments = await loop.run_in_executor(None, self._fetch_segments, video_id, languages)

        text = " ".join(s.strip() for s in segments if s and s.strip())
        if not text:
            raise TranscriptUnavailable("Transcript is empty", f"Captions for {video_id} contain no text")

        return Transcript(
            text=text,
            provenance=Provenance.YOUTUBE,
            title=title_from_captions(segments)
        )


class SpeechTranscriptionSource(TranscriptSource):
    """Download the audio track and run it through Whisper"""

    name = "speech"

    def __init__(
        self,
        settings: Optional[Settings] = None,
        audio: Optional[AudioService] = None,
        client: Optional[AsyncOpenAI] = None
    ):
        self.settings = settings or get_settings()
        self.audio = audio or get_audio_service()
        self.client = client

    def _get_client(self) -> AsyncOpenAI:
        if self.client is None:
            self.client = AsyncOpenAI(api_key=self.settings.openai_api_key)
        return self.client

    async def fetch(self, video_id: str, language: Optional[str] = None) -> Transcript:
        metadata = await self.audio.fetch_metadata(video_id)
        logger.info(f"Falling back to speech-to-text for '{metadata.title}' ({video_id})")

        if not self.settings.openai_api_key:
            raise TranscriptUnavailable(
                "Transcript not available and OpenAI API key not configured for Whisper fallback.",
                "Set OPENAI_API_KEY to enable audio transcription"
            )

        async with self.audio.prepared_audio(video_id) as audio_path:
            loop = asyncio.get_event_loop()
            with open(audio_path, "rb") as f:
                audio_bytes = await loop.run_in_executor(None, f.read)

            try:
                transcription = await self._get_client().audio.transcriptions.create(
                    file=(os.path.basename(audio_path), audio_bytes),
                    model=self.settings.whisper_model,
                )
            except Exception as e:
                logger.error(f"Whisper transcription failed for {video_id}: {e}")
                raise TranscriptUnavailable("Failed to transcribe audio", f"Whisper transcription failed: {e}")

        text = (transcription.text or "").strip()
        if not text:
            raise TranscriptUnavailable("Failed to transcribe audio", "Whisper returned an empty transcript")

        logger.info(f"Whisper transcription completed for {video_id} ({len(text)} chars)")
        return Transcript(text=text, provenance=Provenance.WHISPER, title=metadata.title)


# =============================================================================
# Service
# =============================================================================

class TranscriptService:
    """
    Runs the acquisition chain for videos and reads subtitle uploads.
    """

    def __init__(
        self,
        sources: Optional[List[TranscriptSource]] = None,
        uploads: Optional[UploadService] = None
    ):
        self.sources = sources if sources is not None else [
            CaptionFetchSource(),
            SpeechTranscriptionSource(),
        ]
        self.uploads = uploads or get_upload_service()
        logger.info(f"Transcript service initialized with sources: {[s.name for s in self.sources]}")

    async def get_video_transcript(self, video_id: str, language: Optional[str] = None) -> Transcript:
        """
        Acquire a transcript for a video, trying each source in order.

        Raises:
            TranscriptUnavailable: If every source fails
        """
        if not self.sources:
            raise TranscriptUnavailable("Failed to process video", "No transcript sources configured")

        last_index = len(self.sources) - 1
        for i, source in enumerate(self.sources):
            try:
                transcript = await source.fetch(video_id, language)
                logger.info(
                    f"Transcript for {video_id} acquired via {source.name} "
                    f"({len(transcript.text)} chars)"
                )
                return transcript
            except Exception as e:
                if i < last_index:
                    logger.info(f"{source.name} unavailable for {video_id}, trying next source: {e}")
                    continue
                logger.error(f"All transcript sources failed for {video_id}: {e}")
                if isinstance(e, SummarizerError):
                    raise
                raise TranscriptUnavailable("Failed to process video", f"Failed to process video: {e}") from e

    async def get_srt_transcript(self, reference: SrtReference) -> Transcript:
        """
        Read and flatten a subtitle upload.

        Raises:
            UploadInvalid: If the stored file is missing
            TranscriptUnavailable: If the file holds no subtitle text
        """
        content = await self.uploads.read_upload(reference)
        text = srt_to_text(content).strip()
        if not text:
            raise TranscriptUnavailable("SRT file contains no subtitles", f"No entries parsed from {reference.filename}")

        return Transcript(
            text=text,
            provenance=Provenance.SRT,
            title=title_from_filename(reference.filename)
        )


# Singleton instance
_transcript_service: Optional[TranscriptService] = None


def get_transcript_service() -> TranscriptService:
    """Get or create transcript service singleton"""
    global _transcript_service
    if _transcript_service is None:
        _transcript_service = TranscriptService()
    return _transcript_service
