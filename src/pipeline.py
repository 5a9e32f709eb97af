# File: pipeline.py
# Text -> phoneme-unit pipeline: number normalization, character filtering,
# abbreviation expansion, tokenization and lexicon lookup with predictor fallback.

import logging
import re
from enum import Enum
from typing import List, NamedTuple, Optional

from errors import PredictionError
from lexicon import Lexicon
from nlp import normalize_numbers
from predictors.base import Predictor
from tokenizer import Tokenizer

logger = logging.getLogger(__name__)

OOV_POLICIES = ("raise", "skip", "placeholder")

_RE_SPACES = re.compile(r"\s+")
_RE_NON_SUPPORTED = re.compile(r"[^ a-z'.,?!-]")
_RE_NON_LETTER = re.compile(r"[^a-z]")

# Applied after character filtering, in order.
ABBREVIATIONS = (
    ("i.e.", "that is"),
    ("e.g.", "for example"),
)


class UnitKind(str, Enum):
    PHONEME = "phoneme"
    SYMBOL = "symbol"
    PLACEHOLDER = "placeholder"
    BOUNDARY = "boundary"


class PhonemeUnit(NamedTuple):
    value: str
    kind: UnitKind
    token: str


class Phonemizer:
    """
    Converts raw text into a flat sequence of phoneme units.

    Usage:
        ph = Phonemizer(Lexicon.build("librispeech-lexicon.txt"), EspeakPredictor())
        ph.phonemize("I have $5.")
        # → ["AY1", "HH", "AE1", "V", "F", "AY1", "V", "D", "AA1", "L", "ER0", "Z", "."]

    oov_policy decides what happens when the predictor fails on a token:
    "raise" propagates the PredictionError, "skip" drops the token and
    "placeholder" emits `placeholder` instead.
    """

    def __init__(
        self,
        lexicon: Lexicon,
        predictor: Predictor,
        tokenizer=None,
        oov_policy: str = "raise",
        placeholder: str = "<unk>",
        word_boundary: Optional[str] = None,
        collapse_whitespace: bool = True,
    ):
        if oov_policy not in OOV_POLICIES:
            raise ValueError(f"Unknown oov_policy '{oov_policy}'. Choose from: {OOV_POLICIES}")
        self.lexicon = lexicon
        self.predictor = predictor
        self.tokenizer = tokenizer if tokenizer is not None else Tokenizer()
        self.oov_policy = oov_policy
        self.placeholder = placeholder
        self.word_boundary = word_boundary or None
        self.collapse_whitespace = collapse_whitespace

    def __len__(self) -> int:
        return len(self.lexicon)

    def is_empty(self) -> bool:
        return self.lexicon.is_empty()

    def get(self, key: str):
        return self.lexicon.get(key)

    def prepare(self, text: str) -> str:
        """Return the filtered, number-normalized text that gets tokenized."""
        text = text.encode("ascii", "ignore").decode("ascii")
        text = normalize_numbers(text).lower()
        if self.collapse_whitespace:
            text = _RE_SPACES.sub(" ", text)
        text = _RE_NON_SUPPORTED.sub("", text)
        for abbreviation, expansion in ABBREVIATIONS:
            text = text.replace(abbreviation, expansion)
        return text

    def _predict(self, token: str, oov_policy: str) -> List[PhonemeUnit]:
        try:
            phonemes = self.predictor.predict(token)
        except PredictionError as exc:
            if oov_policy == "raise":
                raise
            logger.warning("Prediction failed for '%s' (%s); applying '%s' policy.", token, exc, oov_policy)
            if oov_policy == "skip":
                return []
            return [PhonemeUnit(self.placeholder, UnitKind.PLACEHOLDER, token)]
        logger.debug("OOV token '%s' predicted as %s", token, list(phonemes))
        return [PhonemeUnit(p, UnitKind.PHONEME, token) for p in phonemes]

    def phonemize_units(self, text: str, oov_policy: Optional[str] = None) -> List[PhonemeUnit]:
        """Like phonemize, but each unit records its kind and source token."""
        return self.units_from_prepared(self.prepare(text), oov_policy=oov_policy)

    def units_from_prepared(self, prepared_text: str, oov_policy: Optional[str] = None) -> List[PhonemeUnit]:
        """Phonemize text that has already been through prepare()."""
        policy = oov_policy or self.oov_policy
        if policy not in OOV_POLICIES:
            raise ValueError(f"Unknown oov_policy '{policy}'. Choose from: {OOV_POLICIES}")

        units: List[PhonemeUnit] = []
        for token in self.tokenizer.tokenize(prepared_text):
            if _RE_NON_LETTER.search(token):
                units.append(PhonemeUnit(token, UnitKind.SYMBOL, token))
            else:
                sound = self.lexicon.get(token)
                if sound is not None:
                    units.extend(PhonemeUnit(p, UnitKind.PHONEME, token) for p in sound)
                else:
                    units.extend(self._predict(token, policy))
            if self.word_boundary is not None:
                units.append(PhonemeUnit(self.word_boundary, UnitKind.BOUNDARY, token))
        return units

    def phonemize(self, text: str, oov_policy: Optional[str] = None) -> List[str]:
        """
        Convert text into phoneme units.

        Raises:
            NormalizeError: a number could not be normalized.
            PredictionError: an OOV token failed under the "raise" policy.
        """
        return [unit.value for unit in self.phonemize_units(text, oov_policy=oov_policy)]

    def __call__(self, text: str) -> List[str]:
        return self.phonemize(text)
