import logging
import os
from typing import List

import phonemizer
from phonemizer.separator import Separator

from errors import ModelError

logger = logging.getLogger(__name__)


def _create_backend(language: str = "en-us"):
    try:
        return phonemizer.backend.EspeakBackend(
            language=language, preserve_punctuation=False, with_stress=True
        )
    except RuntimeError as exc:
        if "espeak not installed" not in str(exc).lower():
            raise

        # Fallback to bundled espeak-ng when system espeak is unavailable.
        import espeakng_loader
        from phonemizer.backend.espeak.base import BaseEspeakBackend

        os.environ["ESPEAK_DATA_PATH"] = espeakng_loader.get_data_path()
        BaseEspeakBackend.set_library(espeakng_loader.get_library_path())

        logger.info(
            "System espeak not found; using bundled espeak-ng from espeakng_loader."
        )
        return phonemizer.backend.EspeakBackend(
            language=language, preserve_punctuation=False, with_stress=True
        )


class EspeakPredictor:
    """Predicts IPA phonemes for out-of-vocabulary words with espeak-ng."""

    def __init__(self, language: str = "en-us", backend=None):
        self.language = language
        self.backend = backend if backend is not None else _create_backend(language)
        self.separator = Separator(phone=" ", word="", syllable="")

    def predict(self, token: str) -> List[str]:
        try:
            output = self.backend.phonemize([token], separator=self.separator, strip=True)
        except RuntimeError as exc:
            raise ModelError(token, str(exc)) from exc

        phonemes = output[0].split() if output else []
        if not phonemes:
            raise ModelError(token, "espeak returned no phonemes")
        logger.debug("espeak predicted %s for '%s'", phonemes, token)
        return phonemes
