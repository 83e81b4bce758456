"""
Tests for transcript acquisition

Covers the caption/speech fallback chain, the speech-to-text source and the
temporary file cleanup of the audio service.
"""
from contextlib import asynccontextmanager
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from youtube_transcript_api import NoTranscriptFound

from summarizer.exceptions import TranscriptUnavailable
from summarizer.models.transcript import Provenance, Transcript, VideoMetadata
from summarizer.services.audio_service import AudioService, select_audio_format
from summarizer.services.transcript_service import (
    CaptionFetchSource,
    SpeechTranscriptionSource,
    TranscriptService,
    TranscriptSource,
)

VIDEO_ID = "dQw4w9WgXcQ"


class FakeCaptionTrack:
    def __init__(self, language_code, texts):
        self.language_code = language_code
        self.texts = texts

    def fetch(self):
        return [SimpleNamespace(text=t, start=float(i), duration=1.0) for i, t in enumerate(self.texts)]


class FakeTranscriptList:
    def __init__(self, tracks, preferred_available=True):
        self.tracks = tracks
        self.preferred_available = preferred_available

    def find_transcript(self, language_codes):
        if not self.preferred_available:
            raise NoTranscriptFound(VIDEO_ID, language_codes, "[]")
        return self.tracks[0]

    def __iter__(self):
        return iter(self.tracks)


class StubSource(TranscriptSource):
    def __init__(self, name, result=None, error=None):
        self.name = name
        self.result = result
        self.error = error
        self.calls = 0

    async def fetch(self, video_id, language=None):
        self.calls += 1
        if self.error:
            raise self.error
        return self.result


class TestCaptionFetchSource:

    @pytest.fixture
    def api(self):
        api = MagicMock()
        api.list.return_value = FakeTranscriptList([
            FakeCaptionTrack("en", ["Welcome to the deep dive.", "Today we cover", "caching"]),
        ])
        return api

    @pytest.mark.asyncio
    async def test_joins_segments_and_derives_title(self, api):
        transcript = await CaptionFetchSource(api).fetch(VIDEO_ID, "en")

        assert transcript.text == "Welcome to the deep dive. Today we cover caching"
        assert transcript.title == "Welcome to the deep dive"
        assert transcript.provenance == Provenance.YOUTUBE
        api.list.assert_called_with(VIDEO_ID)

    @pytest.mark.asyncio
    async def test_repeated_fetch_is_identical(self, api):
        source = CaptionFetchSource(api)

        first = await source.fetch(VIDEO_ID, "en")
        second = await source.fetch(VIDEO_ID, "en")

        assert first == second

    @pytest.mark.asyncio
    async def test_falls_back_to_first_available_track(self):
        api = MagicMock()
        api.list.return_value = FakeTranscriptList(
            [FakeCaptionTrack("de", ["Willkommen zur Sendung heute.", "Los geht's"])],
            preferred_available=False
        )

        transcript = await CaptionFetchSource(api).fetch(VIDEO_ID, "zh")

        assert transcript.text == "Willkommen zur Sendung heute. Los geht's"

    @pytest.mark.asyncio
    async def test_empty_captions_are_unavailable(self):
        api = MagicMock()
        api.list.return_value = FakeTranscriptList([FakeCaptionTrack("en", ["", "  "])])

        with pytest.raises(TranscriptUnavailable):
            await CaptionFetchSource(api).fetch(VIDEO_ID, "en")


class TestFallbackChain:

    @pytest.fixture
    def whisper_transcript(self):
        return Transcript(text="spoken words", provenance=Provenance.WHISPER, title="Video Title")

    @pytest.mark.asyncio
    async def test_caption_failure_falls_through(self, whisper_transcript):
        captions = StubSource("captions", error=RuntimeError("Subtitles are disabled"))
        speech = StubSource("speech", result=whisper_transcript)
        service = TranscriptService(sources=[captions, speech], uploads=MagicMock())

        transcript = await service.get_video_transcript(VIDEO_ID, "en")

        assert transcript == whisper_transcript
        assert captions.calls == 1
        assert speech.calls == 1

    @pytest.mark.asyncio
    async def test_first_success_wins(self, whisper_transcript):
        caption_transcript = Transcript(text="captions", provenance=Provenance.YOUTUBE, title="Caption Title")
        captions = StubSource("captions", result=caption_transcript)
        speech = StubSource("speech", result=whisper_transcript)
        service = TranscriptService(sources=[captions, speech], uploads=MagicMock())

        assert await service.get_video_transcript(VIDEO_ID) == caption_transcript
        assert speech.calls == 0

    @pytest.mark.asyncio
    async def test_last_failure_propagates(self):
        last_error = TranscriptUnavailable("Transcript not available and OpenAI API key not configured for Whisper fallback.")
        service = TranscriptService(
            sources=[StubSource("captions", error=RuntimeError("no captions")), StubSource("speech", error=last_error)],
            uploads=MagicMock()
        )

        with pytest.raises(TranscriptUnavailable) as exc_info:
            await service.get_video_transcript(VIDEO_ID)

        assert exc_info.value is last_error

    @pytest.mark.asyncio
    async def test_unexpected_last_failure_is_wrapped(self):
        service = TranscriptService(
            sources=[StubSource("speech", error=OSError("disk full"))],
            uploads=MagicMock()
        )

        with pytest.raises(TranscriptUnavailable) as exc_info:
            await service.get_video_transcript(VIDEO_ID)

        assert "disk full" in exc_info.value.details

    @pytest.mark.asyncio
    async def test_srt_transcript(self):
        uploads = MagicMock()
        uploads.read_upload = AsyncMock(return_value="1\n00:00:01,000 --> 00:00:02,000\nHello\n\n2\n00:00:02,000 --> 00:00:03,000\nworld\n")
        service = TranscriptService(sources=[], uploads=uploads)
        reference = SimpleNamespace(file_id="f", filename="Weekly Team Sync.srt", video_id=VIDEO_ID)

        transcript = await service.get_srt_transcript(reference)

        assert transcript.text == "Hello world"
        assert transcript.provenance == Provenance.SRT
        assert transcript.title == "Weekly Team Sync"


class TestSpeechTranscriptionSource:

    @pytest.fixture
    def audio(self, tmp_path):
        audio_file = tmp_path / "clip.flac"
        audio_file.write_bytes(b"fLaC-data")

        audio = MagicMock()
        audio.fetch_metadata = AsyncMock(return_value=VideoMetadata(video_id=VIDEO_ID, title="Real Video Title"))
        audio.entered = False

        @asynccontextmanager
        async def prepared_audio(video_id):
            audio.entered = True
            yield str(audio_file)

        audio.prepared_audio = prepared_audio
        return audio

    @pytest.mark.asyncio
    async def test_fails_fast_without_key(self, make_settings, audio):
        source = SpeechTranscriptionSource(settings=make_settings(), audio=audio, client=MagicMock())

        with pytest.raises(TranscriptUnavailable):
            await source.fetch(VIDEO_ID)

        audio.fetch_metadata.assert_awaited_once_with(VIDEO_ID)
        assert audio.entered is False

    @pytest.mark.asyncio
    async def test_transcribes_with_metadata_title(self, make_settings, audio):
        client = MagicMock()
        client.audio.transcriptions.create = AsyncMock(return_value=SimpleNamespace(text=" hello from whisper "))
        source = SpeechTranscriptionSource(
            settings=make_settings(openai_api_key="sk-test"), audio=audio, client=client
        )

        transcript = await source.fetch(VIDEO_ID)

        assert transcript.text == "hello from whisper"
        assert transcript.title == "Real Video Title"
        assert transcript.provenance == Provenance.WHISPER
        kwargs = client.audio.transcriptions.create.call_args.kwargs
        assert kwargs["model"] == "whisper-1"
        assert kwargs["file"] == ("clip.flac", b"fLaC-data")

    @pytest.mark.asyncio
    async def test_transcription_error_is_wrapped(self, make_settings, audio):
        client = MagicMock()
        client.audio.transcriptions.create = AsyncMock(side_effect=RuntimeError("413 file too large"))
        source = SpeechTranscriptionSource(
            settings=make_settings(openai_api_key="sk-test"), audio=audio, client=client
        )

        with pytest.raises(TranscriptUnavailable) as exc_info:
            await source.fetch(VIDEO_ID)

        assert "413 file too large" in exc_info.value.details


class TestAudioService:

    @pytest.fixture
    def service(self, tmp_path):
        return AudioService(temp_dir=str(tmp_path))

    @staticmethod
    async def _write_raw(video_id, path):
        Path(path).write_bytes(b"raw-audio")

    @staticmethod
    async def _write_flac(input_path, output_path):
        Path(output_path).write_bytes(b"flac-audio")

    @pytest.mark.asyncio
    async def test_files_removed_after_success(self, service, tmp_path):
        service.download_audio = self._write_raw
        service.convert_audio = self._write_flac

        async with service.prepared_audio(VIDEO_ID) as path:
            assert Path(path).read_bytes() == b"flac-audio"
            assert len(list(tmp_path.iterdir())) == 2

        assert list(tmp_path.iterdir()) == []

    @pytest.mark.asyncio
    async def test_raw_file_removed_when_conversion_fails(self, service, tmp_path):
        async def failing_convert(input_path, output_path):
            Path(output_path).write_bytes(b"")
            raise TranscriptUnavailable("Failed to convert audio format")

        service.download_audio = self._write_raw
        service.convert_audio = failing_convert

        with pytest.raises(TranscriptUnavailable):
            async with service.prepared_audio(VIDEO_ID):
                pass

        assert list(tmp_path.iterdir()) == []

    @pytest.mark.asyncio
    async def test_files_removed_when_transcription_fails(self, service, tmp_path):
        service.download_audio = self._write_raw
        service.convert_audio = self._write_flac

        with pytest.raises(RuntimeError):
            async with service.prepared_audio(VIDEO_ID):
                raise RuntimeError("transcription failed")

        assert list(tmp_path.iterdir()) == []

    @pytest.mark.asyncio
    async def test_empty_download_is_a_failure(self, service, tmp_path):
        service._download = lambda video_id, path: Path(path).write_bytes(b"")

        with pytest.raises(TranscriptUnavailable) as exc_info:
            await service.download_audio(VIDEO_ID, str(tmp_path / "raw.audio"))

        assert exc_info.value.message == "Failed to download audio"

    def test_prefers_opus_then_bitrate(self):
        formats = [
            {"format_id": "18", "acodec": "mp4a.40.2", "vcodec": "avc1", "abr": 96},
            {"format_id": "140", "acodec": "mp4a.40.2", "vcodec": "none", "abr": 129},
            {"format_id": "249", "acodec": "opus", "vcodec": "none", "abr": 50},
            {"format_id": "251", "acodec": "opus", "vcodec": "none", "abr": 135},
        ]

        assert select_audio_format(formats)["format_id"] == "251"

    def test_no_audio_only_format(self):
        assert select_audio_format([{"format_id": "18", "acodec": "mp4a", "vcodec": "avc1"}]) is None
        assert select_audio_format([]) is None
