# File: config.py
# Manages application configuration using environment variables loaded from .env.

import logging
import os
from copy import deepcopy
from pathlib import Path
from threading import Lock
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parent.parent
ENV_FILE_PATH = PROJECT_ROOT / ".env"

DEFAULT_LEXICON_PATH = PROJECT_ROOT / "resources" / "librispeech-lexicon.txt"
DEFAULT_FEED_URL = (
    "http://export.arxiv.org/api/query?search_query=all:%22real-time%20bidding%22"
    "+OR+all:%22online%20advertisment%22+cat:cs"
    "&sortBy=lastUpdatedDate&sortOrder=descending&max_results=4"
)

DEFAULT_CONFIG: Dict[str, Any] = {
    "server": {
        "host": "0.0.0.0",
        "port": 8006,
        "enable_performance_monitor": False,
    },
    "lexicon": {
        "path": str(DEFAULT_LEXICON_PATH),
    },
    "predictor": {
        "backend": "espeak",
        "language": "en-us",
        "model_path": "",
        "vocab_path": "",
        "device": "auto",
    },
    "phonemizer": {
        "oov_policy": "raise",
        "placeholder": "<unk>",
        "word_boundary": "",
        "collapse_whitespace": True,
    },
    "feed": {
        "url": DEFAULT_FEED_URL,
        "timeout": 30.0,
    },
    "ui": {
        "title": "arXiv Podcast Text Frontend",
    },
}

ENV_KEY_MAP: Dict[str, str] = {
    "server.host": "PODCAST_SERVER_HOST",
    "server.port": "PODCAST_SERVER_PORT",
    "server.enable_performance_monitor": "PODCAST_SERVER_ENABLE_PERFORMANCE_MONITOR",
    "lexicon.path": "PODCAST_LEXICON_PATH",
    "predictor.backend": "PODCAST_PREDICTOR_BACKEND",
    "predictor.language": "PODCAST_PREDICTOR_LANGUAGE",
    "predictor.model_path": "PODCAST_PREDICTOR_MODEL_PATH",
    "predictor.vocab_path": "PODCAST_PREDICTOR_VOCAB_PATH",
    "predictor.device": "PODCAST_PREDICTOR_DEVICE",
    "phonemizer.oov_policy": "PODCAST_OOV_POLICY",
    "phonemizer.placeholder": "PODCAST_OOV_PLACEHOLDER",
    "phonemizer.word_boundary": "PODCAST_WORD_BOUNDARY",
    "phonemizer.collapse_whitespace": "PODCAST_COLLAPSE_WHITESPACE",
    "feed.url": "PODCAST_FEED_URL",
    "feed.timeout": "PODCAST_FEED_TIMEOUT",
    "ui.title": "PODCAST_UI_TITLE",
}

_ALLOWED_PREDICTOR_BACKENDS = {"espeak", "onnx", "none"}
_ALLOWED_OOV_POLICIES = {"raise", "skip", "placeholder"}


def _set_nested_value(d: Dict[str, Any], keys: list[str], value: Any):
    for key in keys[:-1]:
        d = d.setdefault(key, {})
    d[keys[-1]] = value


def _get_nested_value(d: Dict[str, Any], keys: list[str], default: Any = None) -> Any:
    for key in keys:
        if isinstance(d, dict) and key in d:
            d = d[key]
        else:
            return default
    return d


def _parse_bool(raw_value: Any, default: bool = False) -> bool:
    if raw_value is None:
        return default
    if isinstance(raw_value, bool):
        return raw_value
    if isinstance(raw_value, str):
        return raw_value.strip().lower() in {"1", "true", "t", "yes", "y", "on"}
    return bool(raw_value)


class EnvConfigManager:
    """Loads read-only runtime configuration from .env and process environment variables."""

    def __init__(self):
        self._lock = Lock()
        self.config: Dict[str, Any] = {}
        self.load_config()

    def _parse_env_file(self) -> Dict[str, str]:
        if not ENV_FILE_PATH.exists():
            return {}

        parsed: Dict[str, str] = {}
        with open(ENV_FILE_PATH, "r", encoding="utf-8") as env_file:
            for raw_line in env_file:
                line = raw_line.strip()
                if not line or line.startswith("#"):
                    continue

                if line.startswith("export "):
                    line = line[len("export ") :].strip()

                if "=" not in line:
                    continue

                key, value = line.split("=", 1)
                key = key.strip()
                value = value.strip()

                if len(value) >= 2 and value[0] == value[-1] and value[0] in {'"', "'"}:
                    value = value[1:-1]

                parsed[key] = value

        return parsed

    def _coerce_env_value(self, raw_value: str, default_value: Any) -> Any:
        if isinstance(default_value, bool):
            return _parse_bool(raw_value, default=default_value)
        if isinstance(default_value, int) and not isinstance(default_value, bool):
            try:
                return int(str(raw_value).strip())
            except (ValueError, TypeError):
                logger.warning("Invalid integer env value '%s'. Falling back to default '%s'.", raw_value, default_value)
                return default_value
        if isinstance(default_value, float):
            try:
                return float(str(raw_value).strip())
            except (ValueError, TypeError):
                logger.warning("Invalid float env value '%s'. Falling back to default '%s'.", raw_value, default_value)
                return default_value
        return str(raw_value)

    def _detect_best_device(self) -> str:
        try:
            from predictors.onnx_model import select_providers

            providers = select_providers("auto")
        except Exception as exc:
            logger.warning("ONNX Runtime device detection failed: %s. Defaulting to CPU.", exc)
            return "cpu"

        logger.debug("Usable ONNX Runtime providers: %s", providers)
        if "CUDAExecutionProvider" in providers:
            logger.info("CUDAExecutionProvider found. Using CUDA mode.")
            return "cuda"

        logger.info("CUDAExecutionProvider not found. Using CPU.")
        return "cpu"

    def _resolve_choices(self, config_data: Dict[str, Any]) -> Dict[str, Any]:
        backend = str(_get_nested_value(config_data, ["predictor", "backend"], "espeak")).strip().lower()
        if backend not in _ALLOWED_PREDICTOR_BACKENDS:
            logger.warning(
                "Invalid PODCAST_PREDICTOR_BACKEND '%s'. Using 'espeak' instead.",
                backend,
            )
            backend = "espeak"
        _set_nested_value(config_data, ["predictor", "backend"], backend)

        oov_policy = str(_get_nested_value(config_data, ["phonemizer", "oov_policy"], "raise")).strip().lower()
        if oov_policy not in _ALLOWED_OOV_POLICIES:
            logger.warning(
                "Invalid PODCAST_OOV_POLICY '%s'. Using 'raise' instead.",
                oov_policy,
            )
            oov_policy = "raise"
        _set_nested_value(config_data, ["phonemizer", "oov_policy"], oov_policy)

        configured_device = str(_get_nested_value(config_data, ["predictor", "device"], "auto")).strip().lower()
        if configured_device == "auto":
            resolved_device = self._detect_best_device() if backend == "onnx" else "cpu"
        elif configured_device in {"cuda", "gpu"}:
            resolved_device = "cuda"
        elif configured_device == "cpu":
            resolved_device = "cpu"
        else:
            logger.warning(
                "Invalid PODCAST_PREDICTOR_DEVICE '%s'. Using auto device detection instead.",
                configured_device,
            )
            resolved_device = self._detect_best_device()
        _set_nested_value(config_data, ["predictor", "device"], resolved_device)

        lexicon_path_raw = _get_nested_value(config_data, ["lexicon", "path"])
        if isinstance(lexicon_path_raw, str):
            _set_nested_value(config_data, ["lexicon", "path"], Path(lexicon_path_raw))

        return config_data

    def _load_from_environment(self) -> Dict[str, Any]:
        base_config = deepcopy(DEFAULT_CONFIG)
        env_file_values = self._parse_env_file()

        for key_path, env_key in ENV_KEY_MAP.items():
            raw_value = os.environ.get(env_key, env_file_values.get(env_key))
            if raw_value is None:
                continue

            default_value = _get_nested_value(DEFAULT_CONFIG, key_path.split("."))
            coerced_value = self._coerce_env_value(raw_value, default_value)
            _set_nested_value(base_config, key_path.split("."), coerced_value)

        return self._resolve_choices(base_config)

    def load_config(self) -> Dict[str, Any]:
        with self._lock:
            self.config = self._load_from_environment()
            return deepcopy(self.config)

    def get(self, key_path: str, default: Any = None) -> Any:
        keys = key_path.split(".")
        with self._lock:
            value = _get_nested_value(self.config, keys, default)
        return deepcopy(value) if isinstance(value, (dict, list)) else value

    def get_string(self, key_path: str, default: Optional[str] = None) -> str:
        value = self.get(key_path, default)
        if value is None:
            return default if default is not None else ""
        return str(value)

    def get_int(self, key_path: str, default: Optional[int] = None) -> int:
        value = self.get(key_path, default)
        if value is None:
            return default if default is not None else 0
        try:
            return int(value)
        except (ValueError, TypeError):
            return default if isinstance(default, int) else 0

    def get_float(self, key_path: str, default: Optional[float] = None) -> float:
        value = self.get(key_path, default)
        if value is None:
            return default if default is not None else 0.0
        try:
            return float(value)
        except (ValueError, TypeError):
            return default if isinstance(default, float) else 0.0

    def get_bool(self, key_path: str, default: Optional[bool] = None) -> bool:
        value = self.get(key_path, default)
        return _parse_bool(value, default if default is not None else False)

    def get_path(
        self,
        key_path: str,
        default_str_path: Optional[str] = None,
        ensure_absolute: bool = False,
    ) -> Path:
        value = self.get(key_path)

        if isinstance(value, Path):
            path_obj = value
        elif isinstance(value, str) and value:
            path_obj = Path(value)
        elif default_str_path is not None:
            path_obj = Path(default_str_path)
        else:
            path_obj = Path(".")

        return path_obj.resolve() if ensure_absolute else path_obj

    def get_all(self) -> Dict[str, Any]:
        with self._lock:
            return deepcopy(self.config)


config_manager = EnvConfigManager()


def _get_default_from_structure(key_path: str) -> Any:
    return _get_nested_value(DEFAULT_CONFIG, key_path.split("."))


def get_host() -> str:
    return config_manager.get_string("server.host", _get_default_from_structure("server.host"))


def get_port() -> int:
    return config_manager.get_int("server.port", _get_default_from_structure("server.port"))


def get_lexicon_path(ensure_absolute: bool = True) -> Path:
    return config_manager.get_path(
        "lexicon.path",
        str(_get_default_from_structure("lexicon.path")),
        ensure_absolute=ensure_absolute,
    )


def get_predictor_backend() -> str:
    return config_manager.get_string(
        "predictor.backend", _get_default_from_structure("predictor.backend")
    )


def get_oov_policy() -> str:
    return config_manager.get_string(
        "phonemizer.oov_policy", _get_default_from_structure("phonemizer.oov_policy")
    )


def get_feed_url() -> str:
    return config_manager.get_string("feed.url", _get_default_from_structure("feed.url"))


def get_feed_timeout() -> float:
    return config_manager.get_float("feed.timeout", _get_default_from_structure("feed.timeout"))


def get_ui_title() -> str:
    return config_manager.get_string("ui.title", _get_default_from_structure("ui.title"))


# --- End File: config.py ---
