# File: models.py
# Pydantic models for API request and response validation.

from datetime import datetime
from typing import List, Literal, Optional
from pydantic import BaseModel, Field


class TextRequest(BaseModel):
    """Request body carrying raw input text."""

    text: str = Field(..., min_length=1, description="Raw text to process.")


class PhonemizeRequest(TextRequest):
    """Request model for the /phonemize endpoint."""

    oov_policy: Optional[Literal["raise", "skip", "placeholder"]] = Field(
        None,
        description="What to do when an out-of-vocabulary word cannot be predicted. Overrides the server default.",
    )


class NormalizeResponse(BaseModel):
    text: str = Field(..., description="Input with numbers, currency and ordinals spelled out.")


class TokenModel(BaseModel):
    text: str
    start: int
    end: int
    kind: str = Field(..., description="Token class, e.g. 'word', 'hashtag', 'emoticon'.")


class TokenizeResponse(BaseModel):
    tokens: List[TokenModel]


class PhonemeUnitModel(BaseModel):
    value: str
    kind: Literal["phoneme", "symbol", "placeholder", "boundary"]
    token: str = Field(..., description="The token this unit was produced from.")


class PhonemizeResponse(BaseModel):
    prepared_text: str = Field(..., description="Text after normalization and filtering, as tokenized.")
    phonemes: List[str] = Field(..., description="Flattened phoneme-unit sequence.")
    units: List[PhonemeUnitModel]


class FeedEntryPhonemes(BaseModel):
    id: str
    title: str
    authors: List[str]
    published: Optional[datetime] = None
    title_phonemes: List[str]
    summary_phonemes: List[str]


class FeedPhonemesResponse(BaseModel):
    title: str
    entries: List[FeedEntryPhonemes]


class HealthResponse(BaseModel):
    status: Literal["ok", "unavailable"]
    engine_loaded: bool
    lexicon_entries: int = 0
    predictor_backend: str


class ErrorResponse(BaseModel):
    """Standard error response model for API errors."""

    detail: str = Field(..., description="A human-readable explanation of the error.")
