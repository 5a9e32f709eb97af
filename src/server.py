# File: server.py
# Main FastAPI application for the podcast text frontend.
# Exposes number normalization, tokenization, phonemization and the
# arXiv feed phonemizer over HTTP.

import logging
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

# --- Internal Project Imports ---
from config import (
    config_manager,
    get_host,
    get_port,
    get_ui_title,
    get_predictor_backend,
)

import engine  # Phonemizer engine interface
import nlp
from arxiv import ArxivFeed, FeedSource
from errors import FeedError, NormalizeError, PredictionError
from models import (  # Pydantic models
    ErrorResponse,
    FeedEntryPhonemes,
    FeedPhonemesResponse,
    HealthResponse,
    NormalizeResponse,
    PhonemeUnitModel,
    PhonemizeRequest,
    PhonemizeResponse,
    TextRequest,
    TokenModel,
    TokenizeResponse,
)
from pipeline import OOV_POLICIES
from tokenizer import Tokenizer
import utils  # Utility functions


logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
    handlers=[
        logging.StreamHandler(),
    ],
)
logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
logging.getLogger("watchfiles").setLevel(logging.WARNING)
logger = logging.getLogger(__name__)

_tokenizer = Tokenizer()

_ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Text could not be normalized"},
    422: {"model": ErrorResponse, "description": "An unknown word could not be phonemized"},
    503: {"model": ErrorResponse, "description": "Phonemizer engine not loaded"},
}


def _log_access_urls(host: str, port: int):
    """Logs a readable startup summary with the docs URL."""
    display_host = "localhost" if host == "0.0.0.0" else host
    base_url = f"http://{display_host}:{port}"
    logger.info("")
    logger.info("========================================")
    logger.info("  Podcast text frontend is ready")
    logger.info("  API Docs:   %s/docs", base_url)
    if display_host != host:
        logger.info("  Listening:  http://%s:%s", host, port)
    logger.info("========================================")


def _new_perf_monitor(event_name: str) -> utils.PerformanceMonitor:
    perf_monitor = utils.PerformanceMonitor(
        enabled=config_manager.get_bool("server.enable_performance_monitor", False),
        logger_instance=logger,
    )
    perf_monitor.record(event_name)
    return perf_monitor


def _require_engine():
    if not engine.ENGINE_LOADED:
        logger.error("Request failed: phonemizer engine not loaded.")
        raise HTTPException(
            status_code=503,
            detail="Phonemizer engine is not currently loaded or available.",
        )
    return engine.get_phonemizer()


def get_feed_source() -> FeedSource:
    """Feed read by /feed/phonemes: the configured arXiv query."""
    return ArxivFeed.from_config()


def _phonemize_or_http_error(text: str, oov_policy: Optional[str] = None) -> List[str]:
    try:
        return engine.phonemize(text, oov_policy=oov_policy)
    except NormalizeError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except PredictionError as e:
        raise HTTPException(status_code=422, detail=str(e))


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manages application startup and shutdown events."""
    logger.info("Podcast frontend: Initializing application...")
    try:
        if not engine.load_engine():
            logger.critical(
                "CRITICAL: Phonemizer engine failed to load on startup. Refusing to start."
            )
            raise RuntimeError("Phonemizer engine failed to load.")
        logger.info("Phonemizer engine loaded successfully.")

        _log_access_urls(get_host(), get_port())

        logger.info("Application startup sequence complete.")
        yield
    finally:
        logger.info("Podcast frontend: Application shutdown sequence initiated...")
        logger.info("Podcast frontend: Application shutdown complete.")


# --- FastAPI Application Instance ---
app = FastAPI(
    title=get_ui_title(),
    description="Text frontend for an arXiv podcast: number normalization, tokenization and phonemization.",
    version="1.0.0",
    lifespan=lifespan,
)

# --- CORS Middleware ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*", "null"],
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)


@app.get("/api/health", response_model=HealthResponse, tags=["Status"])
def health_endpoint():
    lexicon_entries = 0
    if engine.ENGINE_LOADED and engine.phonemizer is not None:
        lexicon_entries = len(engine.phonemizer)
    return HealthResponse(
        status="ok" if engine.ENGINE_LOADED else "unavailable",
        engine_loaded=engine.ENGINE_LOADED,
        lexicon_entries=lexicon_entries,
        predictor_backend=get_predictor_backend(),
    )


@app.post(
    "/normalize",
    response_model=NormalizeResponse,
    tags=["Text Processing"],
    responses={400: _ERROR_RESPONSES[400]},
)
def normalize_endpoint(request: TextRequest):
    """Spells out numbers, currency amounts, decimals and ordinals."""
    try:
        normalized = nlp.normalize_numbers(request.text)
    except NormalizeError as e:
        logger.warning(f"Normalization failed: {e}")
        raise HTTPException(status_code=400, detail=str(e))
    return NormalizeResponse(text=normalized)


@app.post("/tokenize", response_model=TokenizeResponse, tags=["Text Processing"])
def tokenize_endpoint(request: TextRequest):
    tokens = [
        TokenModel(text=token.text, start=token.start, end=token.end, kind=token.kind.value)
        for token in _tokenizer.classify(request.text)
    ]
    return TokenizeResponse(tokens=tokens)


@app.post(
    "/phonemize",
    response_model=PhonemizeResponse,
    tags=["Text Processing"],
    responses=_ERROR_RESPONSES,
)
def phonemize_endpoint(request: PhonemizeRequest):
    """
    Converts text into phoneme units. Known words come from the lexicon;
    unknown words go to the configured predictor and the OOV policy.
    """
    perf_monitor = _new_perf_monitor("Phonemize request received")
    phonemizer = _require_engine()

    logger.debug(f"Input text (first 100 chars): '{request.text[:100]}...'")
    try:
        prepared_text = phonemizer.prepare(request.text)
        perf_monitor.record("Input text prepared")
        units = phonemizer.units_from_prepared(prepared_text, oov_policy=request.oov_policy)
    except NormalizeError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except PredictionError as e:
        raise HTTPException(status_code=422, detail=str(e))
    perf_monitor.record(f"Phonemized into {len(units)} units")

    logger.debug(perf_monitor.report())
    return PhonemizeResponse(
        prepared_text=prepared_text,
        phonemes=[unit.value for unit in units],
        units=[
            PhonemeUnitModel(value=unit.value, kind=unit.kind.value, token=unit.token)
            for unit in units
        ],
    )


@app.get(
    "/feed/phonemes",
    response_model=FeedPhonemesResponse,
    tags=["arXiv Feed"],
    responses={
        **_ERROR_RESPONSES,
        502: {"model": ErrorResponse, "description": "Feed could not be fetched or parsed"},
    },
)
def feed_phonemes_endpoint(
    oov_policy: Optional[str] = None,
    feed: FeedSource = Depends(get_feed_source),
):
    """Fetches the configured arXiv query and phonemizes each entry's title and summary."""
    perf_monitor = _new_perf_monitor("Feed request received")
    _require_engine()

    if oov_policy is not None and oov_policy not in OOV_POLICIES:
        raise HTTPException(status_code=400, detail=f"Unknown oov_policy '{oov_policy}'.")

    try:
        document = feed.parse(feed.fetch())
    except FeedError as e:
        logger.error(f"Feed unavailable: {e}")
        raise HTTPException(status_code=502, detail=str(e))
    perf_monitor.record(f"Feed loaded ({len(document.entries)} entries)")

    entries = []
    for entry in document.entries:
        entries.append(
            FeedEntryPhonemes(
                id=entry.id,
                title=entry.title,
                authors=entry.authors,
                published=entry.published,
                title_phonemes=_phonemize_or_http_error(entry.title, oov_policy),
                summary_phonemes=_phonemize_or_http_error(entry.summary, oov_policy)
                if entry.summary
                else [],
            )
        )
        perf_monitor.record(f"Phonemized entry {entry.id}")

    logger.info(f"Phonemized feed '{document.title}' with {len(entries)} entries.")
    logger.debug(perf_monitor.report())
    return FeedPhonemesResponse(title=document.title, entries=entries)


# --- Main Execution ---
if __name__ == "__main__":
    server_host = get_host()
    server_port = get_port()

    logger.info(f"Starting podcast frontend on http://{server_host}:{server_port}")
    logger.info("Startup in progress. URL summary will be logged when ready.")

    import uvicorn

    uvicorn.run(
        "server:app",
        host=server_host,
        port=server_port,
        log_level="info",
        workers=1,
        reload=False,
    )
