# pickboard/models/extraction.py
"""
Typed boundary for the extraction service output.

The model returns a JSON array of picks. `parse_extraction` decodes it into
`ExtractedPick` objects and returns a tagged result instead of raising: one
bad item rejects the whole batch.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Optional, Union

from pydantic import BaseModel, Field, ValidationError, model_validator

from pickboard.models.types import SIDES_FOR_TYPE, PickSide, PickType


class ExtractedGame(BaseModel):
    homeTeam: str = Field(min_length=1)
    awayTeam: str = Field(min_length=1)
    week: Optional[int] = None
    season: Optional[int] = None


class ExtractedPick(BaseModel):
    game: ExtractedGame
    pickType: PickType
    pickSide: PickSide
    line: Optional[float] = None
    confidence: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    quote: Optional[str] = None

    @model_validator(mode="after")
    def _side_matches_type(self) -> "ExtractedPick":
        if self.pickSide not in SIDES_FOR_TYPE[self.pickType]:
            raise ValueError(f"pickSide {self.pickSide.value!r} is not valid for {self.pickType.value} picks")
        return self


@dataclass
class ExtractionBatch:
    picks: List[ExtractedPick] = field(default_factory=list)

    ok = True


@dataclass
class ExtractionInvalid:
    reason: str
    errors: List[Any] = field(default_factory=list)

    ok = False


ExtractionResult = Union[ExtractionBatch, ExtractionInvalid]


def parse_extraction(payload: Any) -> ExtractionResult:
    if not isinstance(payload, list):
        return ExtractionInvalid(reason=f"expected a JSON array, got {type(payload).__name__}")

    picks: List[ExtractedPick] = []
    for i, item in enumerate(payload):
        try:
            picks.append(ExtractedPick.model_validate(item))
        except ValidationError as e:
            return ExtractionInvalid(reason=f"item {i} failed validation", errors=e.errors())
    return ExtractionBatch(picks=picks)
