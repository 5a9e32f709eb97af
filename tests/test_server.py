from datetime import datetime, timezone
from pathlib import Path
import sys

import pytest
from fastapi.testclient import TestClient


PROJECT_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(PROJECT_ROOT / "src"))

import server
import pipeline
from arxiv import ArxivFeed, FeedDocument, FeedEntry
from errors import FeedFetchError, FeedParseError
from lexicon import Lexicon
from pipeline import Phonemizer
from predictors import StaticPredictor


LEXICON_LINES = [
    "I AY1",
    "HAVE HH AE1 V",
    "FIVE F AY1 V",
    "DOLLARS D AA1 L ER0 Z",
    "REAL R IY1 L",
    "TIME T AY1 M",
    "BIDDING B IH1 D IH0 NG",
    "WE W IY1",
    "STUDY S T AH1 D IY0",
    "AUCTIONS AO1 K SH AH0 N Z",
    "TWO T UW1",
]


@pytest.fixture
def api_client(monkeypatch) -> TestClient:
    # Skip lifespan model loading; the engine is wired directly.
    phonemizer = Phonemizer(
        Lexicon.from_lines(LEXICON_LINES),
        StaticPredictor({"arxiv": ["AA1", "R", "K", "AY0", "V"]}),
    )
    monkeypatch.setattr(server.engine, "phonemizer", phonemizer)
    monkeypatch.setattr(server.engine, "ENGINE_LOADED", True)
    return TestClient(server.app)


class FakeFeed:
    def __init__(self, document=None, error=None):
        self.document = document
        self.error = error
        self.fetched = 0

    def fetch(self):
        self.fetched += 1
        if self.error is not None:
            raise self.error
        return "<feed/>"

    def parse(self, body):
        assert body == "<feed/>"
        return self.document


@pytest.fixture
def use_feed():
    def install(feed):
        server.app.dependency_overrides[server.get_feed_source] = lambda: feed
        return feed

    yield install
    server.app.dependency_overrides.pop(server.get_feed_source, None)


@pytest.fixture
def fake_feed(use_feed):
    document = FeedDocument(
        title="ArXiv Query",
        entries=[
            FeedEntry(
                id="http://arxiv.org/abs/2401.00001v1",
                title="Real-Time Bidding",
                summary="We study 2 auctions.",
                authors=["Ada Lovelace"],
                published=datetime(2024, 1, 2, tzinfo=timezone.utc),
            )
        ],
    )
    return use_feed(FakeFeed(document))


def test_health_reports_engine_state(api_client: TestClient):
    response = api_client.get("/api/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert body["engine_loaded"] is True
    assert body["lexicon_entries"] == len(LEXICON_LINES)


def test_normalize_endpoint(api_client: TestClient):
    response = api_client.post("/normalize", json={"text": "I have $250 in my pocket."})

    assert response.status_code == 200
    assert response.json()["text"] == "I have two hundred fifty dollars in my pocket."


def test_normalize_endpoint_rejects_malformed_amount(api_client: TestClient):
    response = api_client.post("/normalize", json={"text": "costs $,5"})

    assert response.status_code == 400
    assert ",5" in response.json()["detail"]


def test_empty_text_is_a_validation_error(api_client: TestClient):
    response = api_client.post("/normalize", json={"text": ""})

    assert response.status_code == 422


def test_tokenize_endpoint(api_client: TestClient):
    response = api_client.post("/tokenize", json={"text": "@remy: wow :-)"})

    assert response.status_code == 200
    tokens = response.json()["tokens"]
    assert [(t["text"], t["kind"]) for t in tokens] == [
        ("@remy", "mention"),
        (":", "symbol"),
        ("wow", "word"),
        (":-)", "emoticon"),
    ]
    assert tokens[0]["start"] == 0 and tokens[0]["end"] == 5


def test_phonemize_endpoint(api_client: TestClient):
    response = api_client.post("/phonemize", json={"text": "I have $5 arXiv."})

    assert response.status_code == 200
    body = response.json()
    assert body["prepared_text"] == "i have five dollars arxiv."
    assert body["phonemes"] == [
        "AY1", "HH", "AE1", "V", "F", "AY1", "V", "D", "AA1", "L", "ER0", "Z",
        "AA1", "R", "K", "AY0", "V", ".",
    ]
    assert body["units"][-1] == {"value": ".", "kind": "symbol", "token": "."}


def test_phonemize_unknown_word_with_raise_policy(api_client: TestClient):
    response = api_client.post("/phonemize", json={"text": "I have quasars"})

    assert response.status_code == 422
    assert "quasars" in response.json()["detail"]


def test_phonemize_unknown_word_with_placeholder_policy(api_client: TestClient):
    response = api_client.post(
        "/phonemize", json={"text": "I have quasars", "oov_policy": "placeholder"}
    )

    assert response.status_code == 200
    units = response.json()["units"]
    assert units[-1]["kind"] == "placeholder"
    assert units[-1]["token"] == "quasars"


def test_phonemize_requires_loaded_engine(api_client: TestClient, monkeypatch):
    monkeypatch.setattr(server.engine, "ENGINE_LOADED", False)

    response = api_client.post("/phonemize", json={"text": "I have"})

    assert response.status_code == 503
    assert api_client.get("/api/health").json()["status"] == "unavailable"


def test_feed_phonemes_endpoint(api_client: TestClient, fake_feed):
    response = api_client.get("/feed/phonemes")

    assert response.status_code == 200
    body = response.json()
    assert body["title"] == "ArXiv Query"
    entry = body["entries"][0]
    assert entry["authors"] == ["Ada Lovelace"]
    # Hyphenated words are a single token and pass through unchanged.
    assert entry["title_phonemes"] == ["real-time", "B", "IH1", "D", "IH0", "NG"]
    assert entry["summary_phonemes"] == [
        "W", "IY1", "S", "T", "AH1", "D", "IY0", "T", "UW1",
        "AO1", "K", "SH", "AH0", "N", "Z", ".",
    ]


def test_feed_phonemes_fetch_failure_is_bad_gateway(api_client: TestClient, use_feed):
    use_feed(FakeFeed(error=FeedFetchError("arXiv unreachable")))

    response = api_client.get("/feed/phonemes")

    assert response.status_code == 502
    assert "unreachable" in response.json()["detail"]


def test_feed_phonemes_parse_failure_is_bad_gateway(api_client: TestClient, use_feed):
    class GarbledFeed(FakeFeed):
        def parse(self, body):
            raise FeedParseError("not an Atom document")

    use_feed(GarbledFeed())

    response = api_client.get("/feed/phonemes")

    assert response.status_code == 502
    assert "Atom" in response.json()["detail"]


def test_feed_source_defaults_to_configured_arxiv_query(monkeypatch):
    import config

    monkeypatch.setattr(config, "get_feed_url", lambda: "http://example.org/atom")
    monkeypatch.setattr(config, "get_feed_timeout", lambda: 5.0)

    feed = server.get_feed_source()

    assert isinstance(feed, ArxivFeed)
    assert feed.url == "http://example.org/atom"
    assert feed.timeout == 5.0


def test_phonemize_normalizes_text_once_per_request(api_client: TestClient, monkeypatch):
    calls = []
    original = pipeline.normalize_numbers

    def counting_normalize(text):
        calls.append(text)
        return original(text)

    monkeypatch.setattr(pipeline, "normalize_numbers", counting_normalize)

    response = api_client.post("/phonemize", json={"text": "I have $5."})

    assert response.status_code == 200
    assert calls == ["I have $5."]


def test_feed_phonemes_rejects_unknown_policy(api_client: TestClient, fake_feed):
    response = api_client.get("/feed/phonemes", params={"oov_policy": "ignore"})

    assert response.status_code == 400
    assert fake_feed.fetched == 0
