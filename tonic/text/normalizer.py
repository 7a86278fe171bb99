"""
Text normalisation for the character-level speech model.

Canonicalises raw text into the restricted character set the vocabulary
indexer understands: decomposes accents, drops emoji and decorative
symbols, straightens quotes, tidies spacing around punctuation, and
guarantees a terminal punctuation mark.
"""

import re
import unicodedata

# -----------------------------------------------------------------
# Character tables
# -----------------------------------------------------------------

# Applied in insertion order after decomposition
CHAR_REPLACEMENTS = {
    "\u2013": "-",  # en dash
    "\u2011": "-",  # non-breaking hyphen
    "\u2014": "-",  # em dash
    "¯": " ",  # macron
    "_": " ",
    "“": '"',
    "”": '"',
    "‘": "'",
    "’": "'",
    "´": "'",
    "`": "'",
    "[": " ",
    "]": " ",
    "|": " ",
    "/": " ",
    "#": " ",
    "\u2192": " ",  # rightwards arrow
    "\u2190": " ",  # leftwards arrow
}

# Literal, case-sensitive
EXPR_REPLACEMENTS = {
    "@": " at ",
    "e.g.,": "for example, ",
    "i.e.,": "that is, ",
}

DUPLICATE_QUOTES = [('""', '"'), ("''", "'"), ("``", "`")]

# Closing marks that already end an utterance
ENDING_PUNCTUATION = frozenset(
    ".!?;:,'\")]}…。」』】〉》›»"
)

# -----------------------------------------------------------------
# Regex patterns
# -----------------------------------------------------------------

_RE_EMOJI = re.compile(
    "["
    "\U0001F600-\U0001F64F"  # emoticons
    "\U0001F300-\U0001F5FF"  # symbols & pictographs
    "\U0001F680-\U0001F6FF"  # transport & map
    "\U0001F700-\U0001F77F"  # alchemical
    "\U0001F780-\U0001F7FF"  # geometric shapes extended
    "\U0001F800-\U0001F8FF"  # supplemental arrows-c
    "\U0001F900-\U0001F9FF"  # supplemental symbols & pictographs
    "\U0001FA00-\U0001FA6F"  # chess symbols
    "\U0001FA70-\U0001FAFF"  # symbols & pictographs extended-a
    "\u2600-\u26FF"  # miscellaneous symbols
    "\u2700-\u27BF"  # dingbats
    "\U0001F1E6-\U0001F1FF"  # regional indicators
    "]+"
)

# Only these combining marks are dropped; the acute accent (U+0301) and
# the rest of the block are left for the indexer.
_RE_DIACRITICS = re.compile(
    "[\u0302\u0303\u0304\u0305\u0306\u0307\u0308\u030A\u030B\u030C"
    "\u0327\u0328\u0329\u032A\u032B\u032C\u032D\u032E\u032F]"
)

_RE_SPECIAL_SYMBOLS = re.compile("[♥☆♡©\\\\]")

_RE_SPACE_BEFORE_PUNCT = re.compile(r" ([,.!?;:'])")

_RE_MULTI_WHITESPACE = re.compile(r"\s+")


# -----------------------------------------------------------------
# Public API
# -----------------------------------------------------------------


def normalize_text(text: str) -> str:
    """
    Normalise *text* for the vocabulary indexer.

    Steps:
    1. NFKD decomposition
    2. Strip emoji and pictographs
    3. Character substitutions (dashes, quotes, brackets, ...)
    4. Strip selected combining diacritics
    5. Strip decorative symbols
    6. Expression substitutions (``@``, ``e.g.,``, ``i.e.,``)
    7. Remove a single space before punctuation
    8. Collapse doubled quotes and backticks
    9. Collapse whitespace and trim
    10. Append a period unless already terminated

    Steps 6-9 repeat until the text is stable (collapsing spaces can
    expose a new ``" ."`` or ``"e.g.,"``), so the result is a fixed
    point: ``normalize_text(normalize_text(x)) == normalize_text(x)``.
    """
    t = unicodedata.normalize("NFKD", text)

    t = _RE_EMOJI.sub("", t)

    for src, dst in CHAR_REPLACEMENTS.items():
        t = t.replace(src, dst)

    t = _RE_DIACRITICS.sub("", t)
    t = _RE_SPECIAL_SYMBOLS.sub("", t)

    while True:
        cleaned = _tidy(t)
        if cleaned == t:
            break
        t = cleaned

    if not t or t[-1] not in ENDING_PUNCTUATION:
        t += "."

    return t


def _tidy(t: str) -> str:
    for src, dst in EXPR_REPLACEMENTS.items():
        t = t.replace(src, dst)

    t = _RE_SPACE_BEFORE_PUNCT.sub(r"\1", t)

    for pair, single in DUPLICATE_QUOTES:
        while pair in t:
            t = t.replace(pair, single)

    return _RE_MULTI_WHITESPACE.sub(" ", t).strip()
