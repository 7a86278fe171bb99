import re

import pytest

from tonic.text.chunker import chunk_text, split_paragraphs, split_sentences

LONG_TEXT = (
    "Dr. Smith went to Washington. He met Mr. J. R. Jones at 5 p.m. on Main St. "
    "They talked about the U.S. economy, etc. and many other topics! Did they agree? "
    "Nobody knows.\n\n"
    "The second paragraph is short.\n  \n\n"
    "Acme Inc. announced earnings today. Shares rose. Analysts, e.g. at big banks, "
    "were surprised. " * 4
)


def _squash(text: str) -> str:
    return re.sub(r"\s+", "", text)


def test_split_paragraphs_drops_blank_ones():
    assert split_paragraphs("One.\n\n\n  \nTwo.\n \nThree.") == ["One.", "Two.", "Three."]
    assert split_paragraphs("  \n\n ") == []


def test_single_newline_does_not_split_paragraph():
    assert split_paragraphs("Line one\nline two.") == ["Line one\nline two."]


def test_split_sentences_basic():
    assert split_sentences("Hi there. How are you? Great!") == [
        "Hi there.",
        "How are you?",
        "Great!",
    ]


@pytest.mark.parametrize(
    "text",
    [
        "Dr. Smith arrived.",
        "Talk to Mr. Brown now.",
        "Apples, pears, etc. are fruit.",
        "Use a tool, e.g. a hammer.",
        "That is, i.e. the best one.",
        "Cats vs. dogs is old.",
        "Acme Inc. hired him.",
        "Globex Corp. and Initech Ltd. merged.",
        "She lives on Elm St. near the park.",
        "He earned a Ph.D. last year.",
        "J. R. R. Tolkien wrote books.",
    ],
)
def test_abbreviations_do_not_split(text):
    assert split_sentences(text) == [text]


def test_abbreviation_needs_word_boundary():
    assert split_sentences("I like tacos. Co. Ltd. is fine.") == [
        "I like tacos.",
        "Co. Ltd. is fine.",
    ]


def test_lowercase_after_period_still_splits():
    assert split_sentences("First one. second one.") == ["First one.", "second one."]


def test_chunk_rejects_non_string():
    with pytest.raises(TypeError):
        chunk_text(None)
    with pytest.raises(TypeError):
        chunk_text(["a list"])


def test_chunk_rejects_bad_max_len():
    with pytest.raises(ValueError):
        chunk_text("Hello.", 0)


def test_blank_text_yields_no_chunks():
    assert chunk_text("") == []
    assert chunk_text(" \n\n \n") == []


def test_paragraphs_become_separate_chunks():
    assert chunk_text("First paragraph.\n\nSecond paragraph.") == [
        "First paragraph.",
        "Second paragraph.",
    ]


def test_greedy_packing_respects_limit():
    text = "Aaaa aaaa. Bbbb bbbb. Cccc cccc. Dddd dddd."
    assert chunk_text(text, max_len=21) == [
        "Aaaa aaaa. Bbbb bbbb.",
        "Cccc cccc. Dddd dddd.",
    ]


def test_oversized_sentence_is_its_own_chunk():
    long_sentence = "word " * 80 + "end."
    text = f"Short one. {long_sentence} Short two."
    chunks = chunk_text(text, max_len=50)
    assert chunks == ["Short one.", long_sentence.strip(), "Short two."]


@pytest.mark.parametrize("max_len", [20, 50, 120, 300])
def test_no_chunk_exceeds_limit_unless_single_sentence(max_len):
    for chunk in chunk_text(LONG_TEXT, max_len):
        if len(chunk) > max_len:
            assert len(split_sentences(chunk)) == 1


@pytest.mark.parametrize("max_len", [20, 50, 120, 300])
def test_chunks_preserve_content_and_order(max_len):
    chunks = chunk_text(LONG_TEXT, max_len)
    assert all(chunks)
    assert _squash("".join(chunks)) == _squash(LONG_TEXT)
