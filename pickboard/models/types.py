# pickboard/models/types.py
from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional


class PickType(str, Enum):
    SPREAD = "spread"
    TOTAL = "total"


class PickSide(str, Enum):
    HOME = "home"
    AWAY = "away"
    OVER = "over"
    UNDER = "under"


class ExtractionMethod(str, Enum):
    MODEL = "model"
    HEURISTIC = "heuristic"
    MANUAL = "manual"


class RunStatus(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"


# First-listed side wins ties.
SIDES_FOR_TYPE = {
    PickType.SPREAD: (PickSide.HOME, PickSide.AWAY),
    PickType.TOTAL: (PickSide.OVER, PickSide.UNDER),
}


def new_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Source:
    name: str
    base_url: str
    associated_team: Optional[str] = None
    category: str = "Unknown"
    active: bool = True
    id: str = field(default_factory=new_id)


@dataclass
class Game:
    season: int
    week: int
    kickoff: Optional[datetime]
    home_team: str
    away_team: str
    spread_line: Optional[float] = None
    total_line: Optional[float] = None
    status: str = "scheduled"
    id: str = field(default_factory=new_id)

    @property
    def key(self) -> tuple:
        return (self.season, self.week, self.home_team, self.away_team)


@dataclass
class RawArticle:
    source_id: str
    url: str
    body: str
    content_hash: str
    week: Optional[int] = None
    processed: bool = False
    fetched_at: datetime = field(default_factory=utcnow)
    id: str = field(default_factory=new_id)


@dataclass
class Prediction:
    source_id: str
    game_id: str
    season: int
    week: int
    pick_type: PickType
    pick_side: PickSide
    line_at_pick: float
    article_url: str
    extraction_method: ExtractionMethod = ExtractionMethod.MODEL
    confidence: float = 0.5
    quote: Optional[str] = None
    extracted_at: datetime = field(default_factory=utcnow)
    id: str = field(default_factory=new_id)


@dataclass
class ConsensusScore:
    game_id: str
    season: int
    week: int
    pick_type: PickType
    majority_side: PickSide
    score: int
    signal_label: str
    num_predictions: int
    calculated_at: datetime = field(default_factory=utcnow)
    id: str = field(default_factory=new_id)


@dataclass(frozen=True)
class RunSnapshot:
    status: RunStatus = RunStatus.IDLE
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    duration_ms: Optional[int] = None
    season: Optional[int] = None
    week: Optional[int] = None
    sources: int = 0
    articles_processed: int = 0
    errors: int = 0
    rejections: int = 0
    message: Optional[str] = None

    def as_dict(self) -> dict:
        return {
            "status": self.status.value,
            "startedAt": self.started_at.isoformat() if self.started_at else None,
            "finishedAt": self.finished_at.isoformat() if self.finished_at else None,
            "durationMs": self.duration_ms,
            "season": self.season,
            "week": self.week,
            "sources": self.sources,
            "articlesProcessed": self.articles_processed,
            "errors": self.errors,
            "rejections": self.rejections,
            "message": self.message,
        }
