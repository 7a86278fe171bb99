"""
Splits long input into chunks the model can synthesise independently.

Paragraph breaks always start a new chunk.  Within a paragraph,
sentences are packed greedily up to a maximum length; a sentence is
never cut in half, so one that is longer than the limit becomes a chunk
of its own.
"""

import re
from typing import List

DEFAULT_MAX_CHUNK_LENGTH = 300

# Blank line (possibly containing whitespace) between paragraphs
_RE_PARAGRAPH_BREAK = re.compile(r"\n\s*\n+")

# Candidate boundary: terminal punctuation followed by whitespace
_RE_SENTENCE_BOUNDARY = re.compile(r"[.!?](\s+)")

# Python lookbehind requires fixed width, so the abbreviation check runs
# on the text up to and including the punctuation instead.
_SENT_ABBREVS = (
    "Mr",
    "Mrs",
    "Ms",
    "Dr",
    "Prof",
    "Sr",
    "Jr",
    r"Ph\.D",
    "etc",
    r"e\.g",
    r"i\.e",
    "vs",
    "Inc",
    "Ltd",
    "Co",
    "Corp",
    "St",
    "Ave",
    "Blvd",
)
_RE_NO_SPLIT_BEFORE = re.compile(
    r"(?:\b(?:" + "|".join(_SENT_ABBREVS) + r")|\b[A-Z])\.$"
)


def split_paragraphs(text: str) -> List[str]:
    """Split on blank lines, dropping empty paragraphs."""
    paragraphs = _RE_PARAGRAPH_BREAK.split(text.strip())
    return [p.strip() for p in paragraphs if p.strip()]


def split_sentences(paragraph: str) -> List[str]:
    """
    Split a paragraph into sentences.

    A boundary is ``.``, ``!`` or ``?`` followed by whitespace, unless
    the punctuation closes a known abbreviation (``Dr.``, ``etc.``,
    ``Inc.``) or a single-capital initial (``J. Smith``).

    Returns a list of non-empty sentence strings.
    """
    sentences = []
    last = 0

    for m in _RE_SENTENCE_BOUNDARY.finditer(paragraph):
        split_at = m.start(1)  # right after the punctuation
        if _RE_NO_SPLIT_BEFORE.search(paragraph[last:split_at]):
            continue

        sentence = paragraph[last:split_at].strip()
        if sentence:
            sentences.append(sentence)
        last = m.end()

    tail = paragraph[last:].strip()
    if tail:
        sentences.append(tail)

    return sentences


def chunk_text(text: str, max_len: int = DEFAULT_MAX_CHUNK_LENGTH) -> List[str]:
    """
    Split *text* into ordered chunks of at most *max_len* characters.

    Args:
        text:    Input text.  Paragraphs are separated by blank lines.
        max_len: Upper bound on chunk length.  Exceeded only by a single
                 sentence that is longer than the bound on its own.

    Returns:
        Chunks in document order.  Empty for blank input.

    Raises:
        TypeError:  If *text* is not a string.
        ValueError: If *max_len* is not a positive integer.
    """
    if not isinstance(text, str):
        raise TypeError(f"chunk_text expects a string, got {type(text).__name__}")
    if isinstance(max_len, bool) or not isinstance(max_len, int) or max_len < 1:
        raise ValueError(f"max_len must be a positive integer, got {max_len!r}")

    chunks: List[str] = []

    for paragraph in split_paragraphs(text):
        current = ""
        for sentence in split_sentences(paragraph):
            if not current:
                current = sentence
            elif len(current) + len(sentence) + 1 <= max_len:
                current = f"{current} {sentence}"
            else:
                chunks.append(current)
                current = sentence

        if current:
            chunks.append(current)

    return chunks
