import pytest

from tonic.text.normalizer import ENDING_PUNCTUATION, normalize_text

SAMPLES = [
    "",
    "   ",
    "Hello world",
    "Hello world.",
    "Hello , world !",
    "a  .",
    "a \u00a0.",
    "' '",
    "He said \u201chi\u201d and left\u2014quickly",
    "caf\u00e9 cr\u00e8me br\u00fbl\u00e9e",
    "Mail me @ home, e.g., tonight i.e., soon",
    "e.g. , then",
    "I \u2665 TTS \U0001F600 \u00a9 2024 \\o/",
    "path/to[file]|#tag \u2192 next \u2190 back",
    "snake_case and \u00afmacron",
    "`quoted` ``twice`` ''thrice''",
    "Line one\n\nLine two\tend",
    "\u3053\u3093\u306b\u3061\u306f\u3002",
    "done \u00bb",
]


def test_empty_input_becomes_period():
    assert normalize_text("") == "."
    assert normalize_text(" \n\t ") == "."


def test_appends_period_when_unterminated():
    assert normalize_text("Hello world") == "Hello world."
    assert normalize_text("Really?") == "Really?"
    assert normalize_text("(aside)") == "(aside)"


def test_removes_space_before_punctuation():
    assert normalize_text("Hello , world !") == "Hello, world!"


def test_character_replacements():
    assert normalize_text("a\u2014b\u2013c") == "a-b-c."
    assert normalize_text("\u201cquoted\u201d") == '"quoted"'
    assert normalize_text("it\u2019s") == "it's."
    assert normalize_text("a/b|c#d") == "a b c d."


def test_strips_emoji_and_symbols():
    assert normalize_text("I \u2665 you \U0001F600") == "I you."
    assert normalize_text("\u00a9 2024") == "2024."
    assert normalize_text("back\\slash") == "backslash."


def test_expression_replacements():
    assert normalize_text("me@home") == "me at home."
    assert normalize_text("fruit, e.g., apples") == "fruit, for example, apples."
    assert normalize_text("one, i.e., this") == "one, that is, this."


def test_expression_replacement_is_case_sensitive():
    assert "for example" not in normalize_text("E.G., apples")


def test_strips_listed_diacritics_only():
    # Circumflex is stripped, the acute accent survives decomposition
    assert normalize_text("br\u00fbl\u00e9e") == "brule\u0301e."


def test_collapses_duplicate_quotes():
    assert normalize_text("''hi''") == "'hi'"
    assert normalize_text('""hi""') == '"hi"'


def test_collapses_whitespace():
    assert normalize_text("  a \n\n b\t c  ") == "a b c."


def test_cjk_terminal_punctuation_kept():
    assert normalize_text("\u3053\u3093\u306b\u3061\u306f\u3002").endswith("\u3002")
    assert not normalize_text("\u3053\u3093\u306b\u3061\u306f\u3002").endswith(".")


@pytest.mark.parametrize("text", SAMPLES)
def test_idempotent(text):
    once = normalize_text(text)
    assert normalize_text(once) == once


@pytest.mark.parametrize("text", SAMPLES)
def test_ends_with_terminal_punctuation(text):
    assert normalize_text(text)[-1] in ENDING_PUNCTUATION
