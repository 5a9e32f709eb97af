import logging
from typing import List, Mapping, Protocol, Sequence, runtime_checkable

from errors import ModelError

logger = logging.getLogger(__name__)


@runtime_checkable
class Predictor(Protocol):
    """Grapheme-to-phoneme fallback for words missing from the lexicon."""

    def predict(self, token: str) -> Sequence[str]:
        """Return the phoneme sequence for token or raise PredictionError."""
        ...


class NullPredictor:
    """Predictor used when no backend is configured; every token is a miss."""

    def predict(self, token: str) -> Sequence[str]:
        raise ModelError(token, "no predictor backend configured")


class StaticPredictor:
    """Answers from a fixed token -> phonemes table."""

    def __init__(self, table: Mapping[str, Sequence[str]]):
        self._table = {key.lower(): list(value) for key, value in table.items()}

    def predict(self, token: str) -> List[str]:
        phonemes = self._table.get(token.lower())
        if not phonemes:
            raise ModelError(token, "not in static table")
        return list(phonemes)
