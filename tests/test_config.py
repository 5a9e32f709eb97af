from pathlib import Path
import sys


PROJECT_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(PROJECT_ROOT / "src"))

import config
from config import EnvConfigManager


def _isolate_from_dotenv(monkeypatch, tmp_path):
    monkeypatch.setattr(config, "ENV_FILE_PATH", tmp_path / ".env")
    for env_key in config.ENV_KEY_MAP.values():
        monkeypatch.delenv(env_key, raising=False)


def test_defaults_without_environment(monkeypatch, tmp_path):
    _isolate_from_dotenv(monkeypatch, tmp_path)

    manager = EnvConfigManager()

    assert manager.get_int("server.port") == 8006
    assert manager.get_string("predictor.backend") == "espeak"
    assert manager.get_string("predictor.device") == "cpu"
    assert manager.get_string("phonemizer.oov_policy") == "raise"
    assert manager.get_bool("phonemizer.collapse_whitespace") is True
    assert manager.get_path("lexicon.path") == config.DEFAULT_LEXICON_PATH


def test_environment_values_are_coerced_by_default_type(monkeypatch, tmp_path):
    _isolate_from_dotenv(monkeypatch, tmp_path)
    monkeypatch.setenv("PODCAST_SERVER_PORT", "9000")
    monkeypatch.setenv("PODCAST_FEED_TIMEOUT", "5")
    monkeypatch.setenv("PODCAST_COLLAPSE_WHITESPACE", "false")
    monkeypatch.setenv("PODCAST_OOV_POLICY", "Placeholder")
    monkeypatch.setenv("PODCAST_WORD_BOUNDARY", "|")

    manager = EnvConfigManager()

    assert manager.get("server.port") == 9000
    assert manager.get("feed.timeout") == 5.0
    assert manager.get_bool("phonemizer.collapse_whitespace") is False
    assert manager.get_string("phonemizer.oov_policy") == "placeholder"
    assert manager.get_string("phonemizer.word_boundary") == "|"


def test_invalid_values_fall_back(monkeypatch, tmp_path):
    _isolate_from_dotenv(monkeypatch, tmp_path)
    monkeypatch.setenv("PODCAST_SERVER_PORT", "not-a-port")
    monkeypatch.setenv("PODCAST_PREDICTOR_BACKEND", "festival")
    monkeypatch.setenv("PODCAST_OOV_POLICY", "ignore")

    manager = EnvConfigManager()

    assert manager.get_int("server.port") == 8006
    assert manager.get_string("predictor.backend") == "espeak"
    assert manager.get_string("phonemizer.oov_policy") == "raise"


def test_dotenv_file_is_read_and_environment_wins(monkeypatch, tmp_path):
    _isolate_from_dotenv(monkeypatch, tmp_path)
    (tmp_path / ".env").write_text(
        "# comment\n"
        "export PODCAST_LEXICON_PATH='/data/lexicon.txt'\n"
        'PODCAST_FEED_URL="http://from-dotenv.test"\n',
        encoding="utf-8",
    )
    monkeypatch.setenv("PODCAST_FEED_URL", "http://from-env.test")

    manager = EnvConfigManager()

    assert manager.get_path("lexicon.path") == Path("/data/lexicon.txt")
    assert manager.get_string("feed.url") == "http://from-env.test"


def test_device_resolution_for_onnx_backend(monkeypatch, tmp_path):
    _isolate_from_dotenv(monkeypatch, tmp_path)
    monkeypatch.setenv("PODCAST_PREDICTOR_BACKEND", "onnx")
    monkeypatch.setenv("PODCAST_PREDICTOR_DEVICE", "gpu")

    assert EnvConfigManager().get_string("predictor.device") == "cuda"

    monkeypatch.setenv("PODCAST_PREDICTOR_DEVICE", "auto")
    monkeypatch.setattr(EnvConfigManager, "_detect_best_device", lambda self: "cuda")

    assert EnvConfigManager().get_string("predictor.device") == "cuda"


def test_get_all_returns_a_copy(monkeypatch, tmp_path):
    _isolate_from_dotenv(monkeypatch, tmp_path)
    manager = EnvConfigManager()

    snapshot = manager.get_all()
    snapshot["server"]["port"] = 1

    assert manager.get_int("server.port") == 8006


def test_auto_device_detection_uses_onnx_provider_selection(monkeypatch, tmp_path):
    from predictors import onnx_model

    _isolate_from_dotenv(monkeypatch, tmp_path)
    monkeypatch.setenv("PODCAST_PREDICTOR_BACKEND", "onnx")
    monkeypatch.setenv("PODCAST_PREDICTOR_DEVICE", "auto")

    monkeypatch.setattr(
        onnx_model.ort,
        "get_available_providers",
        lambda: ["CUDAExecutionProvider", "CPUExecutionProvider"],
    )
    assert EnvConfigManager().get_string("predictor.device") == "cuda"

    monkeypatch.setattr(onnx_model.ort, "get_available_providers", lambda: ["CPUExecutionProvider"])
    assert EnvConfigManager().get_string("predictor.device") == "cpu"


def test_device_detection_failure_falls_back_to_cpu(monkeypatch, tmp_path):
    from predictors import onnx_model

    _isolate_from_dotenv(monkeypatch, tmp_path)
    monkeypatch.setenv("PODCAST_PREDICTOR_BACKEND", "onnx")
    monkeypatch.setenv("PODCAST_PREDICTOR_DEVICE", "auto")

    def broken_providers():
        raise RuntimeError("provider query failed")

    monkeypatch.setattr(onnx_model.ort, "get_available_providers", broken_providers)

    assert EnvConfigManager().get_string("predictor.device") == "cpu"
