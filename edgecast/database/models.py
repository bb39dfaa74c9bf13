"""Row-level data models for the prediction store."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional

CONFIDENCE_LEVELS = ("High", "Medium", "Low")


@dataclass
class ActualResult:
    game_id: str
    game_date: str
    home_team: str
    away_team: str
    home_score: int
    away_score: int
    sport: str = "nfl"

    @property
    def winner(self) -> str:
        if self.home_score > self.away_score:
            return self.home_team
        if self.away_score > self.home_score:
            return self.away_team
        return "TIE"


@dataclass
class PropResult:
    game_id: str
    player_name: str
    prop_type: str
    actual_value: float


@dataclass
class BucketTally:
    correct: int = 0
    total: int = 0

    @property
    def accuracy(self) -> float:
        return round(self.correct / self.total * 100, 1) if self.total else 0.0

    def to_dict(self) -> dict:
        return {"correct": self.correct, "total": self.total, "accuracy": self.accuracy}


@dataclass
class AccuracySummary:
    """Aggregate winner accuracy across every graded prediction."""

    total_predictions: int = 0
    total_completed: int = 0
    winner_correct: int = 0
    avg_home_score_diff: float = 0.0
    avg_away_score_diff: float = 0.0
    by_confidence: Dict[str, BucketTally] = field(
        default_factory=lambda: {level: BucketTally() for level in CONFIDENCE_LEVELS}
    )
    last_updated: Optional[str] = None

    @property
    def winner_accuracy(self) -> float:
        if not self.total_completed:
            return 0.0
        return round(self.winner_correct / self.total_completed * 100, 1)

    @property
    def avg_total_score_diff(self) -> float:
        return round((self.avg_home_score_diff + self.avg_away_score_diff) / 2, 1)

    def to_dict(self) -> dict:
        return {
            "totalPredictions": self.total_predictions,
            "totalCompleted": self.total_completed,
            "winnerCorrect": self.winner_correct,
            "winnerAccuracy": self.winner_accuracy,
            "avgHomeScoreDiff": self.avg_home_score_diff,
            "avgAwayScoreDiff": self.avg_away_score_diff,
            "avgTotalScoreDiff": self.avg_total_score_diff,
            "byConfidence": {k: v.to_dict() for k, v in self.by_confidence.items()},
            "lastUpdated": self.last_updated,
        }


@dataclass
class PropAccuracy:
    total_props: int = 0
    total_completed: int = 0
    correct: int = 0
    by_confidence: Dict[str, BucketTally] = field(
        default_factory=lambda: {level: BucketTally() for level in CONFIDENCE_LEVELS}
    )

    @property
    def accuracy(self) -> float:
        return round(self.correct / self.total_completed * 100, 1) if self.total_completed else 0.0

    def to_dict(self) -> dict:
        return {
            "totalProps": self.total_props,
            "totalCompleted": self.total_completed,
            "correctPredictions": self.correct,
            "accuracy": self.accuracy,
            "byConfidence": {k: v.to_dict() for k, v in self.by_confidence.items()},
        }
