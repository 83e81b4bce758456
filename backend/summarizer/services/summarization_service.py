"""
Summarization Service

Drives one summarize request from input to stored summary:

1. Dedup Gate - At most one in-flight request per (source, language, mode, backend)
2. Resolve - Video URL or SRT upload identifier, plus the backend by name
3. Cache Check - A stored summary for (video key, language) is returned as-is
4. Acquire - Transcript via the fallback chain, or the uploaded subtitle file
5. Chunk Summaries - Each chunk summarized in order, one backend call each
6. Final Summary - Partial summaries joined and summarized into the final layout
7. Save - Upsert into history; a failed save only adds a warning

Progress is pushed to a ProgressChannel as it happens. Every request ends with
exactly one `complete` or `error` event. Whatever happened before, the
in-flight key is released, the channel closed and a consumed SRT upload
removed from disk.
"""
import asyncio
import logging
from typing import Dict, Optional, Set, TYPE_CHECKING

from summarizer.exceptions import (
    BackendErrorKind,
    BackendRequestFailed,
    BackendUnavailable,
    DuplicateRequest,
    EmptyGenerationResult,
    PersistenceFailure,
    ReferenceInvalid,
    SummarizerError,
    TranscriptUnavailable,
    UploadInvalid,
)
from summarizer.models.summary import (
    CompleteEvent,
    ErrorEvent,
    ProgressEvent,
    SummarizeRequest,
)
from summarizer.models.transcript import Provenance, Transcript
from summarizer.services.backends import GenerativeBackend, create_backends, get_backend
from summarizer.services.chunking import split_transcript
from summarizer.services.progress import ConsumerDisconnected, ProgressChannel
from summarizer.services.transcript_service import TranscriptService, get_transcript_service
from summarizer.services.upload_service import UploadService, get_upload_service
from summarizer.services.video_reference import SrtReference, is_srt_id, parse_srt_id, resolve_video_id
from summarizer.settings import Settings, get_settings

if TYPE_CHECKING:
    from summarizer.services.database_service import DatabaseService

logger = logging.getLogger(__name__)

# ============================================================================
# PROMPTS
# ============================================================================

CHUNK_SUMMARY_PROMPT = """Create a detailed summary of section {section_number} in {language}.
Maintain all important information, arguments, and connections.
Pay special attention to:
- Main topics and arguments
- Important details and examples
- Connections with other mentioned topics
- Key statements and conclusions

Only use information stated in the text below. Do not add facts, names or numbers that are not in it.

Text: {text}"""

SECTION_SEPARATOR = "\n\n=== Next Section ===\n\n"

LANGUAGE_LABELS: Dict[str, Dict[str, str]] = {
    "en": {
        "title": "TITLE",
        "overview": "OVERVIEW",
        "key_points": "KEY POINTS",
        "takeaways": "MAIN TAKEAWAYS",
        "context": "CONTEXT & IMPLICATIONS",
    },
    "zh": {
        "title": "标题",
        "overview": "概述",
        "key_points": "要点",
        "takeaways": "主要收获",
        "context": "背景与影响",
    },
}

FALLBACK_LANGUAGE = "zh"

VIDEO_SUMMARY_PROMPT = """Please provide a detailed summary of the following content in {language}.
Structure your response EXACTLY as follows, keeping all emojis and section headers intact:

🎯 {title}: Create a descriptive title

📝 {overview} (2-3 sentences):
- Provide a brief context and main purpose

🔑 {key_points}:
- Extract and explain the main arguments
- Include specific examples
- Highlight unique perspectives

💡 {takeaways}:
- List 3-5 practical insights
- Explain their significance

🔄 {context}:
- Broader context discussion
- Future implications

Text to summarize: {text}

IMPORTANT:
1. Keep ALL emojis (🎯, 📝, 🔑, 💡, 🔄) at the beginning of each section
2. Maintain the exact format structure with section headers
3. Do not add any prefixes or meta-commentary
4. If writing in Chinese, ensure proper formatting with emojis followed by Chinese section headers
5. Ensure the summary is comprehensive enough for someone who hasn't seen the original content"""

PODCAST_SUMMARY_PROMPT = """Please provide a detailed podcast-style summary of the following content in {language}.
Structure your response EXACTLY as follows, keeping all emojis and section headers intact:

🎙️ {title}: Create an engaging title

🎧 {overview} (3-5 sentences):
- Provide a detailed context and main purpose

🔍 {key_points}:
- Deep dive into the main arguments
- Include specific examples and anecdotes
- Highlight unique perspectives and expert opinions

📈 {takeaways}:
- List 5-7 practical insights
- Explain their significance and potential impact

🌐 {context}:
- Broader context discussion
- Future implications and expert predictions

Text to summarize: {text}

IMPORTANT:
1. Keep ALL emojis (🎙️, 🎧, 🔍, 📈, 🌐) at the beginning of each section
2. Maintain the exact format structure with section headers
3. Do not add any prefixes or meta-commentary
4. If writing in Chinese, ensure proper formatting with emojis followed by Chinese section headers
5. Ensure the summary is comprehensive enough for someone who hasn't seen the original content"""

BACKEND_ERROR_HINTS: Dict[BackendErrorKind, str] = {
    BackendErrorKind.AUTHENTICATION: "Check that your {provider} API key is valid and correctly configured in the .env file",
    BackendErrorKind.QUOTA: "Top up your {provider} account or switch to a different AI model",
    BackendErrorKind.RATE_LIMITED: "Wait a few minutes before trying again or switch to a different AI model",
    BackendErrorKind.SERVER_ERROR: "Try again later when the {provider} service is less busy or switch to a different AI model",
    BackendErrorKind.MALFORMED: "Try a shorter video or switch to a different AI model",
    BackendErrorKind.UNKNOWN: "Try selecting a different AI model",
}

HISTORY_SAVE_WARNING = "Failed to save to history"


def create_summary_prompt(text: str, language: str, mode: str = "video") -> str:
    """Build the final structured prompt; unknown languages use the Chinese labels"""
    labels = LANGUAGE_LABELS.get(language, LANGUAGE_LABELS[FALLBACK_LANGUAGE])
    template = PODCAST_SUMMARY_PROMPT if mode == "podcast" else VIDEO_SUMMARY_PROMPT
    return template.format(language=language, text=text, **labels)


def create_chunk_prompt(text: str, index: int, language: str) -> str:
    return CHUNK_SUMMARY_PROMPT.format(section_number=index + 1, language=language, text=text)


def backend_error_hint(error: BackendRequestFailed) -> str:
    template = BACKEND_ERROR_HINTS.get(error.kind, BACKEND_ERROR_HINTS[BackendErrorKind.UNKNOWN])
    return template.format(provider=error.provider)


# ============================================================================
# IN-FLIGHT REQUESTS
# ============================================================================

class InFlightRegistry:
    """Keys of the requests currently being processed"""

    def __init__(self):
        self._keys: Set[str] = set()
        self._lock = asyncio.Lock()

    async def try_acquire(self, key: str) -> bool:
        """Insert the key if absent; False if it was already held"""
        async with self._lock:
            if key in self._keys:
                return False
            self._keys.add(key)
            return True

    async def release(self, key: str) -> None:
        async with self._lock:
            self._keys.discard(key)

    def __contains__(self, key: str) -> bool:
        return key in self._keys

    def __len__(self) -> int:
        return len(self._keys)


class _ResolvedInput:
    """What a request points at, once validated"""

    def __init__(self, video_key: str, video_id: Optional[str] = None, srt: Optional[SrtReference] = None):
        self.video_key = video_key
        self.video_id = video_id
        self.srt = srt


# ============================================================================
# SERVICE
# ============================================================================

class SummarizationService:
    """Runs summarize requests and owns the in-flight table"""

    def __init__(
        self,
        transcripts: Optional[TranscriptService] = None,
        backends: Optional[Dict[str, GenerativeBackend]] = None,
        uploads: Optional[UploadService] = None,
        settings: Optional[Settings] = None
    ):
        """Initialize the summarization service"""
        self.settings = settings or get_settings()
        self.transcripts = transcripts or get_transcript_service()
        self.backends = backends if backends is not None else create_backends(self.settings)
        self.uploads = uploads or get_upload_service()
        self.db: Optional["DatabaseService"] = None
        self.in_flight = InFlightRegistry()
        self._tasks: Set[asyncio.Task] = set()

        logger.info(f"Summarization service initialized with backends: {list(self.backends)}")

    def set_database(self, db: "DatabaseService"):
        """
        Inject database service.

        Called during app startup in main.py.
        """
        self.db = db
        logger.info("Database service injected into Summarization service")

    @staticmethod
    def upload_id(request: SummarizeRequest) -> Optional[str]:
        """SRT identifier the request points at, if any; srtId wins over url"""
        if request.srt_id and request.srt_id.strip():
            return request.srt_id.strip()
        # Summary links for uploads carry the SRT identifier in the url field
        if is_srt_id(request.url):
            return request.url.strip()
        return None

    @classmethod
    def request_key(cls, request: SummarizeRequest) -> str:
        """Dedup key: source, language, mode and backend"""
        upload_id = cls.upload_id(request)
        if upload_id:
            source = upload_id
        else:
            raw = (request.url or "").strip()
            try:
                source = resolve_video_id(raw)
            except ReferenceInvalid:
                source = raw
        return f"{source}|{request.language}|{request.mode}|{request.ai_model}"

    def start(self, request: SummarizeRequest) -> ProgressChannel:
        """Schedule a request in the background and return its progress channel"""
        channel = ProgressChannel()
        task = asyncio.create_task(self.run(request, channel))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return channel

    async def run(self, request: SummarizeRequest, channel: ProgressChannel) -> None:
        """Process one request to completion, reporting through the channel"""
        key = self.request_key(request)

        if not await self.in_flight.try_acquire(key):
            duplicate = DuplicateRequest(key)
            logger.warning(f"Rejected duplicate summarize request: {key}")
            await self._safe_emit(channel, ProgressEvent(
                current_chunk=0,
                total_chunks=1,
                stage="analyzing",
                message=duplicate.message
            ))
            await self._safe_emit(channel, ErrorEvent(error=duplicate.message, details=duplicate.details))
            await self._safe_close(channel)
            return

        try:
            await self._process(request, channel)
        except ConsumerDisconnected:
            logger.info(f"Stopped processing {key}: client disconnected")
        except Exception as e:
            logger.error(f"Error processing summarize request {key}: {e}")
            await self._safe_emit(channel, self._error_event(e))
        finally:
            await self.in_flight.release(key)
            await self._safe_close(channel)
            await self._discard_upload(request)

    async def _process(self, request: SummarizeRequest, channel: ProgressChannel) -> None:
        backend = get_backend(self.backends, request.ai_model)
        resolved = self._resolve_input(request)
        language = request.language

        logger.info(
            f"Processing request: key={resolved.video_key} language={language} "
            f"mode={request.mode} backend={backend.display_name}"
        )

        cached = await self._find_cached(resolved.video_key, language)
        if cached:
            logger.info(f"Returning cached summary for {resolved.video_key} ({language})")
            await channel.emit(CompleteEvent(summary=cached["content"], source=Provenance.CACHE))
            return

        await channel.emit(ProgressEvent(
            current_chunk=0,
            total_chunks=1,
            stage="analyzing",
            message="Reading subtitle file..." if resolved.srt else "Fetching video transcript..."
        ))

        transcript = await self._acquire_transcript(resolved, language)
        channel.ensure_connected()

        chunks = split_transcript(
            transcript.text,
            self.settings.chunk_size_chars,
            self.settings.chunk_overlap_chars
        )
        if not chunks:
            raise TranscriptUnavailable("Transcript is empty", "No text to summarize")

        total_chunks = len(chunks)
        partial_summaries = []

        for i, chunk in enumerate(chunks):
            channel.ensure_connected()
            await channel.emit(ProgressEvent(
                current_chunk=i + 1,
                total_chunks=total_chunks,
                stage="processing",
                message=f"Processing section {i + 1} of {total_chunks}..."
            ))
            partial_summaries.append(
                await backend.generate_content(create_chunk_prompt(chunk, i, language))
            )

        channel.ensure_connected()
        await channel.emit(ProgressEvent(
            current_chunk=total_chunks,
            total_chunks=total_chunks,
            stage="finalizing",
            message="Creating final summary..."
        ))

        combined = SECTION_SEPARATOR.join(partial_summaries)
        summary = await backend.generate_content(create_summary_prompt(combined, language, request.mode))
        if not summary or not summary.strip():
            raise EmptyGenerationResult()

        await channel.emit(ProgressEvent(
            current_chunk=total_chunks,
            total_chunks=total_chunks,
            stage="saving",
            message="Saving summary to history..."
        ))

        warning = None
        try:
            await self._save(resolved.video_key, transcript, summary, language, request.mode)
        except PersistenceFailure as e:
            logger.warning(f"Warning: Failed to save summary for {resolved.video_key}: {e.details}")
            warning = HISTORY_SAVE_WARNING

        await channel.emit(CompleteEvent(summary=summary, source=transcript.provenance, warning=warning))

    def _resolve_input(self, request: SummarizeRequest) -> _ResolvedInput:
        upload_id = self.upload_id(request)
        if upload_id:
            reference = parse_srt_id(upload_id)
            # Uploads linked to a video share its history entry
            return _ResolvedInput(video_key=reference.video_id or reference.to_id(), srt=reference)

        if request.url and request.url.strip():
            video_id = resolve_video_id(request.url)
            return _ResolvedInput(video_key=video_id, video_id=video_id)

        raise ReferenceInvalid("No video URL or SRT file provided", "Either url or srtId is required")

    async def _acquire_transcript(self, resolved: _ResolvedInput, language: str) -> Transcript:
        if resolved.srt:
            return await self.transcripts.get_srt_transcript(resolved.srt)
        return await self.transcripts.get_video_transcript(resolved.video_id, language)

    async def _find_cached(self, video_key: str, language: str) -> Optional[dict]:
        if self.db is None:
            return None
        try:
            return await self.db.find_by_video_and_language(video_key, language)
        except PersistenceFailure as e:
            logger.warning(f"Cache lookup failed for {video_key}, continuing without cache: {e.details}")
            return None

    async def _save(self, video_key: str, transcript: Transcript, summary: str, language: str, mode: str) -> dict:
        if self.db is None:
            raise PersistenceFailure("Database not configured", "No database service available")

        updates = {"content": summary, "mode": mode, "source": transcript.provenance.value}

        # A concurrent request for another backend may have stored this key first
        saved = await self._update_existing(video_key, language, updates)
        if saved is not None:
            return saved

        try:
            return await self.db.create_summary(
                video_id=video_key,
                title=transcript.title,
                content=summary,
                language=language,
                mode=mode,
                source=transcript.provenance.value
            )
        except PersistenceFailure:
            # Lost the race on (video_id, language) between lookup and insert
            saved = await self._update_existing(video_key, language, updates)
            if saved is None:
                raise
            logger.info(f"Summary for {video_key} ({language}) was stored concurrently, updated it instead")
            return saved

    async def _update_existing(self, video_key: str, language: str, updates: dict) -> Optional[dict]:
        existing = await self.db.find_by_video_and_language(video_key, language)
        if not existing:
            return None
        return await self.db.update_summary(existing["id"], updates)

    def _error_event(self, error: Exception) -> ErrorEvent:
        if isinstance(error, BackendRequestFailed):
            error.hint = backend_error_hint(error)
            return ErrorEvent(
                error=error.message,
                details=f"{error.details} Suggestion: {error.hint}",
                is_backend_error=True
            )
        if isinstance(error, BackendUnavailable):
            return ErrorEvent(error=error.message, details=error.details, is_backend_error=True)
        if isinstance(error, SummarizerError):
            return ErrorEvent(error=error.message, details=error.details)
        return ErrorEvent(error=str(error) or "Failed to process video", details=repr(error))

    async def _discard_upload(self, request: SummarizeRequest) -> None:
        """Remove the stored SRT file once its request is over, whatever the outcome"""
        upload_id = self.upload_id(request)
        if not upload_id:
            return
        try:
            await self.uploads.delete_upload(parse_srt_id(upload_id))
        except UploadInvalid:
            # Malformed identifier, nothing was stored under it
            return
        except Exception as e:
            logger.error(f"Failed to discard SRT upload {upload_id}: {e}")

    async def _safe_emit(self, channel: ProgressChannel, event) -> None:
        try:
            await channel.emit(event)
        except Exception as e:
            logger.error(f"Failed to write progress event: {e}")

    async def _safe_close(self, channel: ProgressChannel) -> None:
        try:
            await channel.close()
        except Exception as e:
            logger.error(f"Failed to close progress channel: {e}")


# Singleton instance
_summarization_service: Optional[SummarizationService] = None


def get_summarization_service() -> SummarizationService:
    """Get or create summarization service singleton"""
    global _summarization_service
    if _summarization_service is None:
        _summarization_service = SummarizationService()
    return _summarization_service
