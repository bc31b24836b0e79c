"""Tests for TextChunker and its helpers."""

import random

import pytest

from shared.content.TextChunker import (
    TextChunker,
    split_recursive,
    trim_to_end_sentence,
    trim_to_start_sentence,
)

WORDS = ["alpha", "beta", "gamma", "delta", "epsilon", "zeta", "eta", "theta", "iota", "kappa"]


def _random_text(rng: random.Random, word_count: int) -> str:
    return " ".join(rng.choice(WORDS) for _ in range(word_count))


def test_rejects_non_positive_chunk_size():
    with pytest.raises(ValueError):
        TextChunker(chunk_size=0)


@pytest.mark.parametrize("text", ["", "   ", "\n\n"])
def test_blank_text_has_no_chunks(text):
    assert TextChunker(chunk_size=10).split(text) == []


def test_short_text_is_one_chunk():
    assert TextChunker(chunk_size=100, overlap_percent=10).split("short text") == ["short text"]


def test_prefers_paragraph_boundaries():
    text = "first paragraph here\n\nsecond paragraph here"
    assert TextChunker(chunk_size=25).split(text) == ["first paragraph here", "second paragraph here"]


def test_forced_delimiter_is_tried_first():
    chunker = TextChunker(chunk_size=12, force_delimiter="|")
    assert chunker.get_delimiters() == ["|", "\n\n", "\n", " ", ""]
    assert chunker.split("aaaa bbbb|cccc dddd") == ["aaaa bbbb", "cccc dddd"]


def test_overlap_sizes():
    chunker = TextChunker(chunk_size=1000, overlap_percent=10)
    assert chunker.get_overlap_size() == 100
    assert chunker.get_target_size() == 900
    assert TextChunker(chunk_size=25, overlap_percent=10).get_overlap_size() == 3
    assert TextChunker(chunk_size=1000).get_target_size() == 1000


def test_long_word_falls_back_to_characters():
    assert split_recursive("abcdefghij", 4, ["\n\n", "\n", " ", ""]) == ["abcd", "efgh", "ij"]


@pytest.mark.parametrize("seed", range(20))
def test_round_trip_without_overlap(seed):
    rng = random.Random(seed)
    text = _random_text(rng, rng.randint(1, 200))
    chunk_size = rng.randint(8, 120)
    chunks = TextChunker(chunk_size=chunk_size).split(text)
    assert " ".join(chunks) == text


@pytest.mark.parametrize("seed", range(20))
def test_core_never_exceeds_chunk_size(seed):
    rng = random.Random(seed)
    text = "\n".join(_random_text(rng, rng.randint(1, 40)) for _ in range(rng.randint(1, 10)))
    chunk_size = rng.randint(1, 80)
    chunker = TextChunker(chunk_size=chunk_size, overlap_percent=rng.randint(0, 50))
    for segment in chunker.split_segments(text):
        assert len(segment.core) <= chunk_size


def test_overlap_borrows_from_neighbours():
    text = "One sentence here. Two sentence here. Three sentence here. Four sentence here."
    segments = TextChunker(chunk_size=40, overlap_percent=50).split_segments(text)
    assert len(segments) > 1
    assert segments[0].head == ""
    assert segments[-1].tail == ""
    assert segments[0].text.startswith(segments[0].core)
    for segment in segments:
        assert segment.core in segment.text


def test_trim_to_end_sentence():
    assert trim_to_end_sentence("Done. And then some") == "Done."
    assert trim_to_end_sentence("no punctuation ") == "no punctuation"
    assert trim_to_end_sentence("") == ""


def test_trim_to_start_sentence():
    assert trim_to_start_sentence("end of one. Start of two") == "Start of two"
    assert trim_to_start_sentence("line one\nline two") == "line two"
    assert trim_to_start_sentence("no boundary") == "no boundary"
