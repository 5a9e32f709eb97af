# File: errors.py
# Exception hierarchy shared by the normalizer, lexicon, predictors and feed client.

from typing import Union


class NormalizeError(Exception):
    """Base class for failures while rewriting numbers into words."""


def _describe_magnitude(value: Union[int, str]) -> str:
    # Very large ints cannot be formatted with str() on current interpreters.
    if isinstance(value, int):
        if value.bit_length() > 128:
            return f"an integer of {value.bit_length()} bits"
        return str(value)
    if len(value) > 32:
        return f"'{value[:12]}...' ({len(value)} digits)"
    return value


class ConversionError(NormalizeError):
    """An integer is outside the range the cardinal scale table can express.

    `value` is the integer, or the raw digit run when it was too long to parse.
    """

    def __init__(self, value: Union[int, str]):
        self.value = value
        super().__init__(
            f"Cannot convert {_describe_magnitude(value)} to words: magnitude not supported"
        )


class ParsingError(NormalizeError):
    """A numeric-looking substring could not be parsed as an integer."""

    def __init__(self, fragment: str, context: str = ""):
        self.fragment = fragment
        self.context = context
        detail = f" in '{context}'" if context else ""
        super().__init__(f"Cannot parse '{fragment}' as an integer{detail}")


class PredictionError(Exception):
    """Base class for out-of-vocabulary prediction failures."""


class ModelError(PredictionError):
    """The predictor could not produce phonemes for a token."""

    def __init__(self, token: str, reason: str = ""):
        self.token = token
        self.reason = reason
        message = f"No phonemes predicted for '{token}'"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class LexiconError(Exception):
    """Base class for lexicon construction failures. These are fatal."""


class LexiconIOError(LexiconError):
    """The lexicon resource could not be opened or read."""


class LexiconFormatError(LexiconError):
    """A lexicon line does not split into a grapheme and a phoneme list."""

    def __init__(self, source: str, line_number: int, line: str):
        self.source = source
        self.line_number = line_number
        self.line = line
        super().__init__(
            f"{source}:{line_number}: expected '<grapheme> <phonemes...>', got '{line}'"
        )


class FeedError(Exception):
    """Base class for feed retrieval failures."""


class FeedFetchError(FeedError):
    """The feed body could not be downloaded."""


class FeedParseError(FeedError):
    """The feed body is not a usable Atom document."""
