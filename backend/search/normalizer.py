"""
Kana-aware text normalization for fuzzy stock search.

Folds the ways a Japanese company name can be typed (hiragana vs katakana,
voiced vs unvoiced kana, small vs full-size kana, mixed-case latin) onto one
comparable form.
"""

import re
from typing import Dict


# Katakana carrying dakuten/handakuten or small-form marks -> base form
KANA_BASE_FORMS: Dict[str, str] = {
    "ガ": "カ", "ギ": "キ", "グ": "ク", "ゲ": "ケ", "ゴ": "コ",
    "ザ": "サ", "ジ": "シ", "ズ": "ス", "ゼ": "セ", "ゾ": "ソ",
    "ダ": "タ", "ヂ": "チ", "ヅ": "ツ", "デ": "テ", "ド": "ト",
    "バ": "ハ", "ビ": "ヒ", "ブ": "フ", "ベ": "ヘ", "ボ": "ホ",
    "パ": "ハ", "ピ": "ヒ", "プ": "フ", "ペ": "ヘ", "ポ": "ホ",
    "ァ": "ア", "ィ": "イ", "ゥ": "ウ", "ェ": "エ", "ォ": "オ",
    "ッ": "ツ", "ャ": "ヤ", "ュ": "ユ", "ョ": "ヨ", "ヮ": "ワ",
    "ヴ": "ウ", "ヵ": "カ", "ヶ": "ケ",
}

_HIRAGANA_FIRST = 0x3041
_HIRAGANA_LAST = 0x3096
_KATAKANA_OFFSET = 0x60

_WHITESPACE = re.compile(r"\s+")


def hiragana_to_katakana(text: str) -> str:
    """Shift every hiragana codepoint (U+3041-U+3096) into the katakana block."""
    return "".join(
        chr(ord(ch) + _KATAKANA_OFFSET) if _HIRAGANA_FIRST <= ord(ch) <= _HIRAGANA_LAST else ch
        for ch in text
    )


def fold_katakana(text: str) -> str:
    """Replace voiced and small katakana with their base characters."""
    return "".join(KANA_BASE_FORMS.get(ch, ch) for ch in text)


def normalize(text: str) -> str:
    """
    Build the search form of a string.

    Steps: hiragana -> katakana, katakana base-form folding, lowercase,
    whitespace removal. Applying it twice gives the same result as once.

    >>> normalize("ばなな") == normalize("バナナ")
    True
    """
    normalized = hiragana_to_katakana(text)
    normalized = fold_katakana(normalized)
    normalized = normalized.lower()
    return _WHITESPACE.sub("", normalized)
