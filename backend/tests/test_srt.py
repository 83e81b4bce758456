"""
Tests for SRT parsing, upload storage and subtitle titles
"""
import pytest

from summarizer.exceptions import UploadInvalid
from summarizer.services.srt_parser import parse_srt, srt_to_text
from summarizer.services.transcript_service import title_from_captions, title_from_filename
from summarizer.services.upload_service import UploadService
from summarizer.services.video_reference import SrtReference

VIDEO_ID = "dQw4w9WgXcQ"

SAMPLE_SRT = """1
00:00:01,000 --> 00:00:03,000
Hello there

2
00:00:04,000 --> 00:00:06,500
General
Kenobi

x
00:00:07,000 --> 00:00:08,000
bad index

3
not a timestamp
bad timing

4
00:00:09,000 --> 00:00:10,000

5
00:00:11,000 --> 00:00:12,000
The end
"""


class TestParseSrt:

    def test_valid_blocks_in_order(self):
        entries = parse_srt(SAMPLE_SRT)

        assert [e.index for e in entries] == [1, 2, 5]
        assert entries[0].start_time == "00:00:01,000"
        assert entries[0].end_time == "00:00:03,000"
        assert entries[1].text == "General Kenobi"

    def test_malformed_blocks_are_skipped(self):
        texts = [e.text for e in parse_srt(SAMPLE_SRT)]

        assert "bad index" not in texts
        assert "bad timing" not in texts

    def test_crlf_and_bom(self):
        content = "\ufeff1\r\n00:00:01,000 --> 00:00:02,000\r\nFirst\r\n\r\n2\r\n00:00:02,000 --> 00:00:03,000\r\nSecond\r\n"

        assert srt_to_text(content) == "First Second"

    def test_empty_content(self):
        assert parse_srt("") == []
        assert srt_to_text("\n\n") == ""

    def test_srt_to_text_joins_with_single_spaces(self):
        assert srt_to_text(SAMPLE_SRT) == "Hello there General Kenobi The end"


class TestTitles:

    def test_caption_title_is_first_sentence(self):
        segments = ["Welcome to the channel.", "Today we talk", "about databases"]
        assert title_from_captions(segments) == "Welcome to the channel"

    def test_caption_title_uses_first_five_segments_only(self):
        segments = ["one", "two", "three", "four", "five", "six seven"]
        assert title_from_captions(segments) == "one two three four five"

    def test_long_caption_title_is_truncated(self):
        title = title_from_captions(["word " * 40])

        assert len(title) == 100
        assert title.endswith("...")

    def test_short_caption_title_falls_back(self):
        assert title_from_captions(["Hi. Welcome back everyone"]) == "YouTube Video Summary"
        assert title_from_captions([]) == "YouTube Video Summary"

    def test_filename_title(self):
        assert title_from_filename("Quarterly Review Call.srt") == "Quarterly Review Call"
        assert title_from_filename("a.srt") == "SRT Subtitle Summary"
        assert title_from_filename(None) == "SRT Subtitle Summary"
        assert len(title_from_filename("n" * 150 + ".srt")) == 100


class TestUploadService:

    @pytest.fixture
    def upload_service(self, tmp_path):
        return UploadService(str(tmp_path / "uploads"))

    @pytest.mark.asyncio
    async def test_save_and_read(self, upload_service, tmp_path):
        reference = await upload_service.save_upload("talk.srt", SAMPLE_SRT.encode("utf-8"), VIDEO_ID)

        assert reference.video_id == VIDEO_ID
        assert reference.filename == "talk.srt"
        assert (tmp_path / "uploads" / f"{reference.file_id}.srt").is_file()
        assert await upload_service.read_upload(reference) == SAMPLE_SRT

    @pytest.mark.asyncio
    async def test_rejects_wrong_extension(self, upload_service):
        with pytest.raises(UploadInvalid) as exc_info:
            await upload_service.save_upload("talk.txt", b"data", VIDEO_ID)
        assert exc_info.value.message == "Only .srt files are allowed"

    @pytest.mark.asyncio
    async def test_rejects_invalid_video_id(self, upload_service):
        with pytest.raises(UploadInvalid):
            await upload_service.save_upload("talk.srt", b"data", "not-an-id")

    @pytest.mark.asyncio
    async def test_rejects_missing_file(self, upload_service):
        with pytest.raises(UploadInvalid):
            await upload_service.save_upload(None, None, VIDEO_ID)

    @pytest.mark.asyncio
    async def test_read_missing_upload(self, upload_service):
        reference = SrtReference(file_id="8c1f4a5e-0b7d-4d3e-9a53-2f1f0c7f9a10", filename="gone.srt")

        with pytest.raises(UploadInvalid):
            await upload_service.read_upload(reference)

    @pytest.mark.asyncio
    async def test_delete_upload(self, upload_service, tmp_path):
        reference = await upload_service.save_upload("talk.srt", b"1", VIDEO_ID)

        await upload_service.delete_upload(reference)
        await upload_service.delete_upload(reference)

        assert not (tmp_path / "uploads" / f"{reference.file_id}.srt").exists()
