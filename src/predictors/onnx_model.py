import json
import logging
from pathlib import Path
from typing import Dict, List, Optional, Union

import numpy as np
import onnxruntime as ort

from errors import ModelError

logger = logging.getLogger(__name__)

PAD = "<pad>"
BOS = "<s>"
EOS = "</s>"
UNK = "<unk>"


CPU_PROVIDER = "CPUExecutionProvider"

# Execution providers to try for each device setting, best first.
DEVICE_PROVIDERS: Dict[str, List[str]] = {
    "cpu": [CPU_PROVIDER],
    "cuda": ["CUDAExecutionProvider", CPU_PROVIDER],
    "auto": [
        "CUDAExecutionProvider",
        "ROCMExecutionProvider",
        "DirectMLExecutionProvider",
        "CoreMLExecutionProvider",
        CPU_PROVIDER,
    ],
}

_DEVICE_ALIASES = {"gpu": "cuda"}


def normalize_device(device: Optional[str]) -> str:
    """Map a predictor.device setting onto a DEVICE_PROVIDERS key; unknown values mean "auto"."""
    name = str(device or "auto").strip().lower()
    name = _DEVICE_ALIASES.get(name, name)
    return name if name in DEVICE_PROVIDERS else "auto"


def select_providers(device: Optional[str] = "auto", providers: Optional[List[str]] = None) -> List[str]:
    """
    Pick the ONNX Runtime execution providers to use.

    An explicit `providers` list wins, filtered to what this build offers and
    always ending in the CPU provider. Otherwise the device's preference list
    is intersected with the available providers.
    """
    available = ort.get_available_providers()

    if providers:
        selected = [name for name in providers if name in available]
        if selected:
            if CPU_PROVIDER in available and CPU_PROVIDER not in selected:
                selected.append(CPU_PROVIDER)
            return selected

    selected = [name for name in DEVICE_PROVIDERS[normalize_device(device)] if name in available]
    return selected or list(available) or [CPU_PROVIDER]


def create_session(model_path: str, device: Optional[str] = "auto", providers: Optional[List[str]] = None):
    """Open an InferenceSession, falling back to the CPU provider if the accelerated ones fail."""
    selected = select_providers(device, providers)
    try:
        session = ort.InferenceSession(model_path, providers=selected)
    except Exception:
        if selected == [CPU_PROVIDER]:
            raise
        logger.warning("ONNX session failed with providers %s; retrying on CPU only.", selected, exc_info=True)
        session = ort.InferenceSession(model_path, providers=[CPU_PROVIDER])
    logger.info("ONNX Runtime providers requested: %s (active: %s)", selected, session.get_providers())
    return session


class G2PVocab:
    """
    Symbol tables of a grapheme-to-phoneme model.

    The JSON file holds {"graphemes": [...], "phonemes": [...]}; a symbol's
    list index is its id. <pad>, <s>, </s> and <unk> are optional.
    """

    def __init__(self, graphemes: List[str], phonemes: List[str]):
        self.graphemes = list(graphemes)
        self.phonemes = list(phonemes)
        self.grapheme_to_id: Dict[str, int] = {g: i for i, g in enumerate(self.graphemes)}
        self.phoneme_to_id: Dict[str, int] = {p: i for i, p in enumerate(self.phonemes)}

    @classmethod
    def load(cls, path: Union[str, Path]) -> "G2PVocab":
        with open(path, "r", encoding="utf-8") as vocab_file:
            data = json.load(vocab_file)
        if not isinstance(data, dict) or "graphemes" not in data or "phonemes" not in data:
            raise ValueError(f"G2P vocab '{path}' must define 'graphemes' and 'phonemes' lists.")
        return cls(data["graphemes"], data["phonemes"])

    def encode(self, word: str) -> List[int]:
        unk_id = self.grapheme_to_id.get(UNK)
        ids = []
        if BOS in self.grapheme_to_id:
            ids.append(self.grapheme_to_id[BOS])
        for char in word:
            if char in self.grapheme_to_id:
                ids.append(self.grapheme_to_id[char])
            elif unk_id is not None:
                ids.append(unk_id)
        if EOS in self.grapheme_to_id:
            ids.append(self.grapheme_to_id[EOS])
        return ids

    def decode(self, ids) -> List[str]:
        phonemes = []
        for index in ids:
            index = int(index)
            if index < 0 or index >= len(self.phonemes):
                continue
            symbol = self.phonemes[index]
            if symbol == EOS:
                break
            if symbol in (PAD, BOS, UNK):
                continue
            phonemes.append(symbol)
        return phonemes


class OnnxG2PPredictor:
    """Runs an exported sequence-to-sequence G2P model with onnxruntime."""

    def __init__(
        self,
        model_path: Union[str, Path],
        vocab_path: Optional[Union[str, Path]] = None,
        device: str = "auto",
        providers=None,
        session=None,
        vocab: Optional[G2PVocab] = None,
    ):
        """Initialize the predictor.

        Args:
            model_path: Path to the ONNX model file
            vocab_path: Path to the JSON symbol tables; defaults to <model>.vocab.json
        """
        self.model_path = str(model_path)
        if vocab is None:
            vocab_path = vocab_path or Path(self.model_path).with_suffix(".vocab.json")
            vocab = G2PVocab.load(vocab_path)
        self.vocab = vocab
        self.session = session if session is not None else create_session(
            self.model_path, device=device, providers=providers
        )
        self.input_name = self.session.get_inputs()[0].name

    def predict(self, token: str) -> List[str]:
        ids = self.vocab.encode(token)
        if not ids:
            raise ModelError(token, "no known graphemes")

        input_ids = np.array([ids], dtype=np.int64)
        try:
            outputs = self.session.run(None, {self.input_name: input_ids})
        except Exception as exc:
            raise ModelError(token, f"inference failed: {exc}") from exc

        prediction = np.asarray(outputs[0])
        if prediction.ndim == 3:
            prediction = prediction.argmax(axis=-1)
        phonemes = self.vocab.decode(prediction.reshape(-1))
        if not phonemes:
            raise ModelError(token, "model produced an empty sequence")
        return phonemes
