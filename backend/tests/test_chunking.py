"""
Tests for transcript chunking
"""
from summarizer.services.chunking import split_transcript


def _words(n: int):
    return [f"w{i:04d}" for i in range(n)]


class TestSplitTranscript:

    def test_blank_input(self):
        assert split_transcript("") == []
        assert split_transcript("   \n\t ") == []

    def test_short_text_is_a_single_chunk(self):
        assert split_transcript("one two  three\nfour", chunk_size=100, overlap=0) == ["one two three four"]

    def test_chunks_respect_budget(self):
        text = " ".join(_words(2000))
        chunks = split_transcript(text, chunk_size=200, overlap=100)

        assert len(chunks) > 1
        assert all(len(chunk) <= 200 for chunk in chunks)

    def test_consecutive_chunks_share_overlap(self):
        chunks = split_transcript(" ".join(_words(2000)), chunk_size=200, overlap=100)

        for previous, current in zip(chunks, chunks[1:]):
            assert current.split()[:10] == previous.split()[-10:]

    def test_non_overlapping_spans_rebuild_the_text(self):
        words = _words(2000)
        chunks = split_transcript(" ".join(words), chunk_size=200, overlap=100)

        rebuilt = chunks[0].split()
        for chunk in chunks[1:]:
            rebuilt.extend(chunk.split()[10:])

        assert rebuilt == words

    def test_no_overlap(self):
        words = _words(300)
        chunks = split_transcript(" ".join(words), chunk_size=120, overlap=0)

        rebuilt = [w for chunk in chunks for w in chunk.split()]
        assert rebuilt == words

    def test_oversized_word_gets_its_own_chunk(self):
        giant = "x" * 50
        chunks = split_transcript(f"a {giant} b", chunk_size=10, overlap=0)

        assert chunks == ["a", giant, "b"]

    def test_overlap_seed_is_trimmed_to_fit_oversized_word(self):
        giant = "y" * 50
        chunks = split_transcript(f"a b {giant}", chunk_size=10, overlap=20)

        assert chunks == ["a b", giant]

    def test_final_partial_chunk_is_emitted(self):
        words = _words(45)
        chunks = split_transcript(" ".join(words), chunk_size=100, overlap=0)

        assert chunks[-1].split()[-1] == words[-1]
        assert len(chunks[-1]) < 100

    def test_deterministic(self):
        text = " ".join(_words(500))
        assert split_transcript(text, 150, 50) == split_transcript(text, 150, 50)
