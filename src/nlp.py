"""
nlp.py
Number normalization for the phonemizer frontend: rewrites grouped digits,
currency, decimals, ordinals and plain integers into spoken English words.
"""

import re
import logging
from typing import Callable, List, Tuple

from errors import ConversionError, ParsingError

logger = logging.getLogger(__name__)


# ─────────────────────────────────────────────
# Number → Words conversion
# ─────────────────────────────────────────────

_NEGATIVE = "minus"
_BASE_NUMBERS = [
    "zero", "one", "two", "three", "four", "five", "six", "seven", "eight", "nine",
    "ten", "eleven", "twelve", "thirteen", "fourteen", "fifteen", "sixteen",
    "seventeen", "eighteen", "nineteen",
]
_TENS = ["", "", "twenty", "thirty", "forty", "fifty", "sixty", "seventy", "eighty", "ninety"]
_HUNDRED = "hundred"

# Index i is the word for 1000 ** (i + 1).
_SCALE = ["thousand", "million", "billion", "trillion", "quadrillion", "quintillion"]
MAX_SUPPORTED = 1000 ** (len(_SCALE) + 1)
# Longest digit run, leading zeros aside, that can be below MAX_SUPPORTED.
_MAX_DIGITS = len(str(MAX_SUPPORTED - 1))

_ORDINAL_EXCEPTIONS = {
    "one": "first", "two": "second", "three": "third", "five": "fifth",
    "eight": "eighth", "nine": "ninth", "twelve": "twelfth",
}


def _two_digits_to_words(n: int, words: List[str]) -> None:
    if n < 20:
        words.append(_BASE_NUMBERS[n])
        return
    words.append(_TENS[n // 10])
    if n % 10:
        words.append(_BASE_NUMBERS[n % 10])


def _three_digits_to_words(n: int, words: List[str]) -> None:
    """Convert a number 0–999 to English words."""
    if n < 100:
        _two_digits_to_words(n, words)
        return
    words.append(_BASE_NUMBERS[n // 100])
    words.append(_HUNDRED)
    if n % 100:
        _two_digits_to_words(n % 100, words)


def _large_to_words(n: int, words: List[str]) -> None:
    if n < 1000:
        _three_digits_to_words(n, words)
        return

    # Largest magnitude first.
    for power in range(len(_SCALE), 0, -1):
        magnitude = 1000 ** power
        if n < magnitude:
            continue
        leading, remainder = divmod(n, magnitude)
        _three_digits_to_words(leading, words)
        words.append(_SCALE[power - 1])
        if remainder:
            _large_to_words(remainder, words)
        return


def number_to_words(n: int) -> str:
    """
    Convert an integer to its English cardinal word form.

    Examples:
        8                 → "eight"
        -8                → "minus eight"
        21                → "twenty one"
        9000              → "nine thousand"
        444_000_000_000_000 → "four hundred forty four trillion"

    Raises:
        ConversionError: if abs(n) needs a scale word beyond quintillion.
    """
    if not isinstance(n, int):
        n = int(n)
    if n < 0:
        return f"{_NEGATIVE} {number_to_words(-n)}"
    if n >= MAX_SUPPORTED:
        raise ConversionError(n)

    words: List[str] = []
    _large_to_words(n, words)
    return " ".join(words)


def ordinal_words(n: int) -> str:
    """
    Return the ordinal word form of n, inflecting only the last word.

    Examples:
        1   → "first"
        5   → "fifth"
        20  → "twentieth"
        21  → "twenty first"
        100 → "one hundredth"
    """
    cardinal = number_to_words(n)
    prefix, _, last = cardinal.rpartition(" ")

    if last in _ORDINAL_EXCEPTIONS:
        last = _ORDINAL_EXCEPTIONS[last]
    elif last.endswith("y"):
        last = last[:-1] + "ieth"
    else:
        last = last + "th"

    return f"{prefix} {last}" if prefix else last


def digits_to_int(digits: str) -> int:
    """
    Parse an ASCII digit run, refusing runs too long for the scale table
    before int() has to read them.

    Raises:
        ConversionError: the run is larger than any supported magnitude.
    """
    significant = digits.lstrip("0")
    if len(significant) > _MAX_DIGITS:
        raise ConversionError(digits)
    return int(significant or "0")


# ─────────────────────────────────────────────
# Regex patterns
# ─────────────────────────────────────────────

# At least one digit on both sides of every separator: "1,000,000" but not "1,,2" or ",5".
_RE_GROUPED_DIGITS = re.compile(r"(?<!\d)\d+(?:,\d+)+")

_RE_POUNDS = re.compile(r"£([0-9,]*[0-9])")

# The amount may carry any number of point separators so malformed amounts
# ("$1.2.3") can be detected and left alone.
_RE_DOLLARS = re.compile(r"\$([0-9.,]*[0-9])")

# Exactly one point between two digit runs; "1.2.3" is not a decimal.
_RE_DECIMAL = re.compile(r"(?<!\d\.)(?<!\d)(\d+)\.(\d+)(?!\d)(?!\.\d)")

_RE_ORDINAL_STNDRD = re.compile(r"(?<!\d)(\d+)(st|nd|rd)\b", re.IGNORECASE)
_RE_ORDINAL_TH = re.compile(r"(?<!\d)(\d+)th\b", re.IGNORECASE)

_RE_NUMBER = re.compile(r"\d+")

_SIMPLE_ORDINALS = {"1st": "first", "2nd": "second", "3rd": "third"}


# ─────────────────────────────────────────────
# Expansion passes
# ─────────────────────────────────────────────

def collapse_grouped_digits(text: str) -> str:
    """
    Remove thousands separators from grouped digit runs.

    Examples:
        "1,000,000 people" → "1000000 people"
        "a,b and 1,,2"     → unchanged
    """
    return _RE_GROUPED_DIGITS.sub(lambda m: m.group(0).replace(",", ""), text)


def expand_pounds(text: str) -> str:
    """
    Expand pound amounts. Pence are not modeled.

    Examples:
        "£50" → "50 pounds"
    """
    return _RE_POUNDS.sub(lambda m: f"{m.group(1)} pounds", text)


def _parse_unsigned(fragment: str, context: str) -> int:
    if fragment == "":
        return 0
    if not fragment.isdigit():
        raise ParsingError(fragment, context)
    return digits_to_int(fragment)


def expand_dollars(text: str) -> str:
    """
    Expand dollar amounts into dollars and cents.

    Examples:
        "$250"    → "250 dollars"
        "$4.50"   → "4 dollars 50 cents "
        "$0.99"   → "99 cents"
        "$0"      → "zero dollars"
        "$1.2.3"  → "1.2.3 dollars"

    Raises:
        ParsingError: if a component is not a plain digit run (e.g. "$,5").
    """
    def _replace(m: re.Match) -> str:
        amount = m.group(1)
        parts = amount.split(".")
        if len(parts) > 2:
            return f"{amount} dollars"

        dollars = _parse_unsigned(parts[0], m.group(0))
        cents = _parse_unsigned(parts[1], m.group(0)) if len(parts) == 2 else 0

        if dollars and cents:
            return f"{dollars} dollars {cents} cents "
        if dollars:
            return f"{dollars} dollars"
        if cents:
            return f"{cents} cents"
        return "zero dollars"

    return _RE_DOLLARS.sub(_replace, text)


def expand_decimals(text: str) -> str:
    """
    Spell the point of decimal numbers; the digit runs are left for the
    integer pass.

    Examples:
        "0.50 kg" → "0 point 50 kg"
        "1.2.3"   → unchanged
    """
    return _RE_DECIMAL.sub(lambda m: f"{m.group(1)} point {m.group(2)}", text)


def expand_simple_ordinals(text: str) -> str:
    """
    Convert ordinals with st/nd/rd suffixes.

    Examples:
        "1st place"    → "first place"
        "3rd base"     → "third base"
        "21st century" → "twenty first century"
    """
    def _replace(m: re.Match) -> str:
        literal = m.group(0).lower()
        if literal in _SIMPLE_ORDINALS:
            return _SIMPLE_ORDINALS[literal]
        return ordinal_words(digits_to_int(m.group(1)))

    return _RE_ORDINAL_STNDRD.sub(_replace, text)


def expand_th_ordinals(text: str) -> str:
    """
    Convert ordinals with a th suffix.

    Examples:
        "5th"   → "fifth"
        "6th"   → "sixth"
        "100th" → "one hundredth"
    """
    return _RE_ORDINAL_TH.sub(lambda m: ordinal_words(digits_to_int(m.group(1))), text)


def expand_integers(text: str) -> str:
    """
    Replace every remaining digit run by its cardinal words.

    Examples:
        "250 dollars" → "two hundred fifty dollars"
    """
    return _RE_NUMBER.sub(lambda m: number_to_words(digits_to_int(m.group(0))), text)


# Order matters: each pass assumes the earlier ones already ran.
NORMALIZATION_PASSES: Tuple[Tuple[str, Callable[[str], str]], ...] = (
    ("grouped_digits", collapse_grouped_digits),
    ("pounds", expand_pounds),
    ("dollars", expand_dollars),
    ("decimals", expand_decimals),
    ("simple_ordinals", expand_simple_ordinals),
    ("th_ordinals", expand_th_ordinals),
    ("integers", expand_integers),
)


def normalize_numbers(text: str) -> str:
    """
    Rewrite every numeric expression in text into spoken words.

    Examples:
        "I have $250 in my pocket."   → "I have two hundred fifty dollars in my pocket."
        "weight by 0.50 kg."          → "weight by zero point fifty kg."
        "I finished 5th overall"      → "I finished fifth overall"

    Raises:
        ParsingError: malformed currency components.
        ConversionError: integers too large for the scale table.
    """
    if not text:
        return ""
    for name, rewrite in NORMALIZATION_PASSES:
        rewritten = rewrite(text)
        if rewritten != text:
            logger.debug("Number pass '%s' rewrote text.", name)
        text = rewritten
    return text
