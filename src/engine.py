# File: engine.py
# Process-wide phonemizer: loads the lexicon once and wires the configured predictor.

import logging
from typing import List, Optional

from errors import LexiconError
from lexicon import Lexicon
from pipeline import Phonemizer
from predictors.base import NullPredictor, Predictor

# Import the singleton config_manager
from config import config_manager, get_lexicon_path, get_oov_policy

logger = logging.getLogger(__name__)

# --- Global Module Variables ---
phonemizer: Optional[Phonemizer] = None
ENGINE_LOADED: bool = False


def create_predictor(backend: Optional[str] = None) -> Predictor:
    """
    Build the out-of-vocabulary predictor named by `backend`
    (defaults to predictor.backend from config).
    """
    backend = (backend or config_manager.get_string("predictor.backend", "espeak")).strip().lower()

    if backend == "none":
        logger.info("No OOV predictor configured; unknown words will be handled by the OOV policy.")
        return NullPredictor()

    if backend == "espeak":
        from predictors.espeak import EspeakPredictor

        language = config_manager.get_string("predictor.language", "en-us")
        logger.info(f"Using espeak OOV predictor (language={language}).")
        return EspeakPredictor(language=language)

    if backend == "onnx":
        from predictors.onnx_model import OnnxG2PPredictor

        model_path = config_manager.get_string("predictor.model_path", "")
        if not model_path:
            raise ValueError("predictor.backend is 'onnx' but PODCAST_PREDICTOR_MODEL_PATH is not set.")
        vocab_path = config_manager.get_string("predictor.vocab_path", "") or None
        device = config_manager.get_string("predictor.device", "auto")
        logger.info(f"Loading ONNX G2P predictor from: {model_path} (device={device})")
        return OnnxG2PPredictor(model_path, vocab_path=vocab_path, device=device)

    raise ValueError(f"Unknown predictor backend '{backend}'.")


def build_phonemizer(lexicon: Lexicon, predictor: Predictor) -> Phonemizer:
    """Construct a Phonemizer with the phonemizer.* settings from config."""
    return Phonemizer(
        lexicon,
        predictor,
        oov_policy=get_oov_policy(),
        placeholder=config_manager.get_string("phonemizer.placeholder", "<unk>"),
        word_boundary=config_manager.get_string("phonemizer.word_boundary", "") or None,
        collapse_whitespace=config_manager.get_bool("phonemizer.collapse_whitespace", True),
    )


def load_engine(predictor: Optional[Predictor] = None) -> bool:
    """
    Loads the lexicon and predictor and builds the global Phonemizer.

    Returns:
        bool: True if the engine is ready, False otherwise. A lexicon that
        cannot be read or parsed is logged as critical.
    """
    global phonemizer, ENGINE_LOADED

    if ENGINE_LOADED:
        logger.info("Phonemizer engine is already loaded.")
        return True

    lexicon_path = get_lexicon_path()
    logger.info(f"Loading lexicon from: {lexicon_path}")

    try:
        lexicon = Lexicon.build(lexicon_path)
    except LexiconError as e:
        logger.critical(f"Lexicon could not be loaded: {e}")
        phonemizer = None
        ENGINE_LOADED = False
        return False

    try:
        if predictor is None:
            predictor = create_predictor()
        phonemizer = build_phonemizer(lexicon, predictor)
    except Exception as e:
        logger.error(f"Error initializing OOV predictor: {e}", exc_info=True)
        phonemizer = None
        ENGINE_LOADED = False
        return False

    ENGINE_LOADED = True
    logger.info("Phonemizer engine loaded successfully (%d lexicon entries).", len(lexicon))
    return True


def get_phonemizer() -> Phonemizer:
    if not ENGINE_LOADED or phonemizer is None:
        raise RuntimeError("Phonemizer engine is not loaded.")
    return phonemizer


def phonemize(text: str, oov_policy: Optional[str] = None) -> List[str]:
    """Phonemize text with the global engine."""
    return get_phonemizer().phonemize(text, oov_policy=oov_policy)


# --- End File: engine.py ---
