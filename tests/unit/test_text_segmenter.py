"""Tests for sentence-aligned text segmentation."""

import re

import pytest

from longform_tts.pipeline.text_segmenter import Segment, segment_text, split_sentences


def _squash(text: str) -> str:
    return re.sub(r"\s+", "", text)


class TestSplitSentences:
    """Terminator runs stay attached to the sentence they close."""

    def test_basic_split(self):
        assert split_sentences("Hello world. This is a test.") == [
            "Hello world.",
            " This is a test.",
        ]

    def test_terminator_runs(self):
        assert split_sentences("Wait... what?! Ok") == ["Wait...", " what?!", " Ok"]

    def test_newline_is_a_terminator(self):
        assert split_sentences("Line one\nLine two") == ["Line one\n", "Line two"]

    def test_bengali_danda(self):
        assert split_sentences("আমি ভাত খাই। তুমি কি খাও?") == ["আমি ভাত খাই।", " তুমি কি খাও?"]

    def test_empty(self):
        assert split_sentences("") == []


class TestSegmentText:
    """Chunking under a character budget."""

    def test_two_sentences_over_budget(self):
        segments = segment_text("Hello world. This is a test.", 15)
        assert segments == [
            Segment(index=1, text="Hello world."),
            Segment(index=2, text="This is a test."),
        ]

    def test_fits_in_one_segment(self):
        segments = segment_text("Hello world. This is a test.", 2500)
        assert segments == [Segment(index=1, text="Hello world. This is a test.")]

    def test_sentences_accumulate_until_budget(self):
        text = "One. Two. Three. Four."
        segments = segment_text(text, 10)
        assert [s.text for s in segments] == ["One. Two.", "Three.", "Four."]

    def test_oversized_sentence_kept_whole(self):
        long_sentence = "A" * 30 + "."
        segments = segment_text(f"Hi. {long_sentence} Bye.", 10)
        assert [s.text for s in segments] == ["Hi.", long_sentence, "Bye."]
        assert len(segments[1].text) > 10

    def test_empty_and_whitespace_input(self):
        assert segment_text("", 100) == []
        assert segment_text("   \n\n  ", 100) == []

    def test_whitespace_only_chunks_dropped(self):
        assert segment_text("Hello. \n", 6) == [Segment(index=1, text="Hello.")]

    def test_non_positive_limit(self):
        with pytest.raises(ValueError):
            segment_text("Hello.", 0)
        with pytest.raises(ValueError):
            segment_text("Hello.", -5)

    def test_newline_separated_lines(self):
        segments = segment_text("Line one\nLine two", 9)
        assert [s.text for s in segments] == ["Line one", "Line two"]

    def test_text_without_terminators(self):
        segments = segment_text("no punctuation at all", 5)
        assert segments == [Segment(index=1, text="no punctuation at all")]


class TestSegmentProperties:
    """Properties that hold for any input."""

    @pytest.fixture
    def long_text(self):
        sentences = [
            f"Sentence number {i} talks about {'something ' * (i % 7)}here"
            + ("?" if i % 5 == 0 else "!" if i % 3 == 0 else ".")
            for i in range(1, 200)
        ]
        return " ".join(sentences) + "\nআমি বাংলায় কথা বলি। Final words"

    @pytest.mark.parametrize("limit", [1, 40, 100, 500, 2500])
    def test_no_text_lost(self, long_text: str, limit: int):
        segments = segment_text(long_text, limit)
        assert _squash("".join(s.text for s in segments)) == _squash(long_text)

    @pytest.mark.parametrize("limit", [40, 100, 500])
    def test_budget_respected_except_single_sentences(self, long_text: str, limit: int):
        for seg in segment_text(long_text, limit):
            assert len(seg.text) <= limit or len(split_sentences(seg.text)) == 1

    def test_indices_are_sequential_from_one(self, long_text: str):
        segments = segment_text(long_text, 100)
        assert [s.index for s in segments] == list(range(1, len(segments) + 1))

    def test_segments_are_trimmed_and_non_empty(self, long_text: str):
        for seg in segment_text(long_text, 100):
            assert seg.text
            assert seg.text == seg.text.strip()
