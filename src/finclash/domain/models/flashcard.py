"""Flashcard models for the spaced-repetition trainer."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

DEFAULT_EASE_FACTOR = 2.5
MIN_EASE_FACTOR = 1.3
MAX_BOX = 5


@dataclass(frozen=True)
class Flashcard:
    """Static card content."""

    card_id: str
    category: str
    front: str
    back: str
    difficulty: int = 1


@dataclass
class CardProgress:
    """Per-user review state for one card (Leitner box 1..5)."""

    card_id: str
    box: int = 1
    last_reviewed: Optional[datetime] = field(default=None)
    times_reviewed: int = 0
    times_correct: int = 0
    times_incorrect: int = 0
    ease_factor: float = DEFAULT_EASE_FACTOR

    @property
    def accuracy(self) -> Optional[float]:
        if self.times_reviewed == 0:
            return None
        return self.times_correct / self.times_reviewed
