"""
tokenizer.py
Social-text aware tokenizer used to split normalized text into synthesis units.

One combined pattern is compiled from an ordered list of token classes. When
several classes could match at the same position, the one listed first wins.
"""

import re
import logging
from enum import Enum
from typing import Iterator, List, NamedTuple, Pattern, Tuple

logger = logging.getLogger(__name__)


class TokenClass(str, Enum):
    EMOTICON = "emoticon"
    URL = "url"
    MARKUP = "markup"
    ARROW = "arrow"
    MENTION = "mention"
    HASHTAG = "hashtag"
    EMAIL = "email"
    EMOJI = "emoji"
    WORD = "word"
    NUMBER = "number"
    ALNUM = "alnum"
    ELLIPSIS = "ellipsis"
    SYMBOL = "symbol"


class Token(NamedTuple):
    text: str
    start: int
    end: int
    kind: TokenClass


# ─────────────────────────────────────────────
# Token class patterns (compiled with re.VERBOSE)
# ─────────────────────────────────────────────

_EMOTICON = r"""
    (?:
      [<>]?[:;=8][\-o\*']?[\)\]\(\[dDpP/:\}\{@\|\\]
      |
      [\)\]\(\[dDpP/:\}\{@\|\\][\-o\*']?[:;=8][<>]?
      |
      </?3
    )
"""

# Scheme-prefixed or bare-domain URLs; parentheses in the path may nest once.
# Each repetition consumes one character or one balanced group, so a failed
# match backtracks linearly.
_URL_PAREN_GROUP = r"""
      \([^\s()]*\([^\s()]+\)[^\s()]*\)
      |
      \([^\s()]+\)
"""

_URL = rf"""
    (?:
      https?:
      (?:
        /{{1,3}}
        |
        [a-z0-9%]
      )
      |
      [a-z0-9.\-]+[.]
      (?:[a-z]{{2,13}})
      /
    )
    (?:
      [^\s()<>{{}}\[\]]
      |
      {_URL_PAREN_GROUP}
    )+
    (?:
      {_URL_PAREN_GROUP}
      |
      [^\s`!()\[\]{{}};:'".,<>?«»“”‘’]
    )
"""

_MARKUP = r"<[^>\s]+>"

_ARROW = r"[\-]+>|<[\-]+"

_MENTION = r"(?:@[\w_]+)"

_HASHTAG = r"(?:\#+[\w_]+[\w'_\-]*[\w_]+)"

_EMAIL = r"[\w.+-]+@[\w-]+\.(?:[\w-]\.?)+[\w-]"

# Zero-width-joiner sequences and skin tone modifiers.
_EMOJI = r".(?:[\U0001F3FB-\U0001F3FF]?(?:\u200d.[\U0001F3FB-\U0001F3FF]?)+|[\U0001F3FB-\U0001F3FF])"

_WORD = r"(?:[^\W\d_](?:[^\W\d_]|['\-_])+[^\W\d_])"

_NUMBER = r"(?:[+\-]?\d+[,/.:-]\d+[+\-]?)"

_ALNUM = r"(?:[\w_]+)"

_ELLIPSIS = r"(?:\.(?:\s*\.){1,})"

_SYMBOL = r"(?:\S)"

# Priority order, highest first.
TOKEN_PATTERNS: Tuple[Tuple[TokenClass, str], ...] = (
    (TokenClass.EMOTICON, _EMOTICON),
    (TokenClass.URL, _URL),
    (TokenClass.MARKUP, _MARKUP),
    (TokenClass.ARROW, _ARROW),
    (TokenClass.MENTION, _MENTION),
    (TokenClass.HASHTAG, _HASHTAG),
    (TokenClass.EMAIL, _EMAIL),
    (TokenClass.EMOJI, _EMOJI),
    (TokenClass.WORD, _WORD),
    (TokenClass.NUMBER, _NUMBER),
    (TokenClass.ALNUM, _ALNUM),
    (TokenClass.ELLIPSIS, _ELLIPSIS),
    (TokenClass.SYMBOL, _SYMBOL),
)


def compile_token_patterns(patterns: Tuple[Tuple[TokenClass, str], ...]) -> Pattern:
    """Join (class, pattern) pairs into one alternation of named groups, in order."""
    alternatives = [f"(?P<{kind.name}>{pattern})" for kind, pattern in patterns]
    return re.compile("|".join(alternatives), re.VERBOSE | re.IGNORECASE | re.UNICODE)


_RE_TOKENS = compile_token_patterns(TOKEN_PATTERNS)


# ─────────────────────────────────────────────
# Tokenizers
# ─────────────────────────────────────────────

class RegexpTokenizer:
    """
    Single-pattern tokenizer. Every non-overlapping match is a token.

    The default pattern keeps words of two or more word characters.
    """

    def __init__(self, pattern: str = r"\b\w\w+\b"):
        self.pattern = pattern
        self._regexp = re.compile(pattern)

    def tokenize(self, text: str) -> Iterator[str]:
        return (m.group(0) for m in self._regexp.finditer(text))

    def __repr__(self) -> str:
        return f"{type(self).__name__}(pattern={self.pattern!r})"


class Tokenizer:
    """
    Prioritized multi-pattern tokenizer for tweets, feeds and prose.

    Usage:
        tk = Tokenizer()
        list(tk.tokenize("@remy: hello :-)"))
        # → ["@remy", ":", "hello", ":-)"]
    """

    def __init__(self):
        self.patterns = TOKEN_PATTERNS
        self._regexp = _RE_TOKENS

    def classify(self, text: str) -> Iterator[Token]:
        """Yield Token spans over text, left to right."""
        for m in self._regexp.finditer(text):
            yield Token(m.group(0), m.start(), m.end(), TokenClass[m.lastgroup])

    def tokenize(self, text: str) -> Iterator[str]:
        """Yield token strings over text, left to right."""
        return (m.group(0) for m in self._regexp.finditer(text))

    def __call__(self, text: str) -> List[str]:
        return list(self.tokenize(text))

    def __repr__(self) -> str:
        return f"{type(self).__name__}(classes={[kind.value for kind, _ in self.patterns]})"


def tokenize(text: str) -> List[str]:
    """Tokenize text with the default Tokenizer."""
    return [m.group(0) for m in _RE_TOKENS.finditer(text)]
