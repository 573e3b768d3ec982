"""Spaced-repetition flashcard trainer (Leitner boxes)."""

import random
from dataclasses import asdict
from datetime import datetime, timedelta
from typing import Callable, Optional

from finclash.core.exceptions import NotFoundError
from finclash.core.timezone import now_eastern, to_eastern
from finclash.domain.models import CardProgress, Flashcard
from finclash.domain.models.flashcard import (
    DEFAULT_EASE_FACTOR,
    MAX_BOX,
    MIN_EASE_FACTOR,
)

# Days between reviews per box; box 5 is mastered and never due
REVIEW_INTERVAL_DAYS: dict[int, int] = {1: 1, 2: 3, 3: 7, 4: 30}

TRADING_FLASHCARDS: tuple[Flashcard, ...] = (
    Flashcard("stock", "basics", "What is a Stock?", "A share of partial ownership in a company.", 1),
    Flashcard("bid", "basics", "What is the Bid Price?", "The highest price a buyer currently offers.", 1),
    Flashcard("ask", "basics", "What is the Ask Price?", "The lowest price a seller currently accepts.", 1),
    Flashcard("spread", "basics", "What is the Bid-Ask Spread?", "Ask minus bid; tight spreads mean liquid markets.", 1),
    Flashcard("volume", "basics", "What is Trading Volume?", "Shares traded over a period; confirms price moves.", 1),
    Flashcard("marketcap", "basics", "What is Market Cap?", "Share price times shares outstanding.", 1),
    Flashcard("support", "technical", "What is a Support Level?", "A price where buying tends to halt declines.", 2),
    Flashcard("resistance", "technical", "What is a Resistance Level?", "A price where selling tends to halt rallies.", 2),
    Flashcard("rsi", "technical", "What is RSI?", "Momentum oscillator 0-100; above 70 overbought, below 30 oversold.", 2),
    Flashcard("macd", "technical", "What is MACD?", "Difference of two EMAs compared with its signal line.", 3),
    Flashcard("sma", "technical", "What is a Simple Moving Average?", "Mean closing price over the last N periods.", 2),
    Flashcard("bollinger", "technical", "What are Bollinger Bands?", "An SMA with bands two standard deviations away.", 3),
    Flashcard("bullflag", "patterns", "What is a Bull Flag?", "Sharp rise, tight consolidation, then upside breakout.", 2),
    Flashcard("doublebottom", "patterns", "What is a Double Bottom?", "Two similar troughs forming a W; bullish reversal.", 2),
    Flashcard("stoploss", "risk", "What is a Stop-Loss?", "An order that exits once price hits a set level.", 1),
    Flashcard("positionsizing", "risk", "What is Position Sizing?", "Choosing trade size so one loss risks 1-2% of the account.", 2),
    Flashcard("riskreward", "risk", "What is the Risk/Reward Ratio?", "Potential profit divided by potential loss.", 2),
    Flashcard("marketorder", "orders", "What is a Market Order?", "Fills immediately at the best available price.", 1),
    Flashcard("limitorder", "orders", "What is a Limit Order?", "Fills only at the given price or better.", 1),
    Flashcard("shortselling", "shorting", "What is Short Selling?", "Selling borrowed shares to buy back later, cheaper.", 2),
    Flashcard("shortsqueeze", "shorting", "What is a Short Squeeze?", "Rising price forces shorts to cover, pushing it higher.", 2),
    Flashcard("margincall", "margin", "What is a Margin Call?", "Demand for more equity once it falls below maintenance.", 2),
    Flashcard("fomo", "psychology", "What is FOMO?", "Chasing a rising stock out of fear of missing the move.", 1),
)


class FlashcardService:
    """Tracks per-card Leitner progress for one learner."""

    def __init__(
        self,
        cards: tuple[Flashcard, ...] = TRADING_FLASHCARDS,
        progress: Optional[list[dict]] = None,
        clock: Callable[[], datetime] = now_eastern,
        rng: Optional[random.Random] = None,
    ):
        self._cards = {card.card_id: card for card in cards}
        self._progress = {card_id: CardProgress(card_id=card_id) for card_id in self._cards}
        self._clock = clock
        self._rng = rng or random.Random()
        if progress:
            self.load_progress(progress)

    def get_card(self, card_id: str) -> Flashcard:
        card = self._cards.get(card_id)
        if card is None:
            raise NotFoundError("Flashcard", card_id)
        return card

    def get_progress(self, card_id: str) -> CardProgress:
        self.get_card(card_id)
        return self._progress[card_id]

    def is_due(self, progress: CardProgress, now: Optional[datetime] = None) -> bool:
        if progress.last_reviewed is None:
            return True
        if progress.box >= MAX_BOX:
            return False
        now = now or self._clock()
        interval = timedelta(days=REVIEW_INTERVAL_DAYS.get(progress.box, 0))
        return now - progress.last_reviewed >= interval

    def due_cards(self) -> list[Flashcard]:
        now = self._clock()
        return [self._cards[p.card_id] for p in self._progress.values() if self.is_due(p, now)]

    def cards_by_category(self, category: str) -> list[Flashcard]:
        return [card for card in self._cards.values() if card.category == category]

    def review(self, card_id: str, correct: bool) -> CardProgress:
        """Move the card up one box on success, back to box 1 on failure."""
        progress = self.get_progress(card_id)
        progress.times_reviewed += 1
        progress.last_reviewed = self._clock()
        if correct:
            progress.times_correct += 1
            progress.box = min(MAX_BOX, progress.box + 1)
            progress.ease_factor = max(MIN_EASE_FACTOR, progress.ease_factor + 0.1)
        else:
            progress.times_incorrect += 1
            progress.box = 1
            progress.ease_factor = max(MIN_EASE_FACTOR, progress.ease_factor - 0.2)
        return progress

    def mastery_level(self, card_id: str) -> str:
        progress = self.get_progress(card_id)
        accuracy = progress.accuracy
        if accuracy is None:
            return "new"
        if progress.box == MAX_BOX and accuracy >= 0.9:
            return "mastered"
        if progress.box >= 4 or accuracy >= 0.8:
            return "proficient"
        if progress.box >= 3 or accuracy >= 0.7:
            return "learning"
        return "struggling"

    def random_due_card(self, category: Optional[str] = None) -> Optional[Flashcard]:
        """Pick a due card, weighting lower boxes more heavily (6 - box)."""
        now = self._clock()
        pool = [
            p for p in self._progress.values()
            if self.is_due(p, now) and (category is None or self._cards[p.card_id].category == category)
        ]
        if not pool:
            return None
        weights = [6 - p.box for p in pool]
        chosen = self._rng.choices(pool, weights=weights, k=1)[0]
        return self._cards[chosen.card_id]

    def reset(self, card_id: str) -> None:
        self.get_card(card_id)
        self._progress[card_id] = CardProgress(card_id=card_id, ease_factor=DEFAULT_EASE_FACTOR)

    def stats(self) -> dict:
        progress = list(self._progress.values())
        total_reviews = sum(p.times_reviewed for p in progress)
        total_correct = sum(p.times_correct for p in progress)
        return {
            "total": len(progress),
            "mastered": sum(1 for p in progress if p.box == 5),
            "proficient": sum(1 for p in progress if p.box == 4),
            "learning": sum(1 for p in progress if 2 <= p.box <= 3),
            "new": sum(1 for p in progress if p.times_reviewed == 0),
            "struggling": sum(1 for p in progress if p.box == 1 and p.times_reviewed > 0),
            "due_today": len(self.due_cards()),
            "total_reviews": total_reviews,
            "accuracy": round(total_correct / total_reviews * 100, 1) if total_reviews else 0.0,
        }

    def export_progress(self) -> list[dict]:
        """Serializable progress snapshot (datetimes as ISO strings)."""
        exported = []
        for progress in self._progress.values():
            item = asdict(progress)
            if progress.last_reviewed is not None:
                item["last_reviewed"] = progress.last_reviewed.isoformat()
            exported.append(item)
        return exported

    def load_progress(self, saved: list[dict]) -> None:
        """Restore a snapshot; entries for unknown cards are ignored."""
        for item in saved:
            card_id = item.get("card_id")
            if card_id not in self._cards:
                continue
            last_reviewed = item.get("last_reviewed")
            if isinstance(last_reviewed, str):
                last_reviewed = datetime.fromisoformat(last_reviewed)
            self._progress[card_id] = CardProgress(
                card_id=card_id,
                box=int(item.get("box", 1)),
                last_reviewed=to_eastern(last_reviewed) if last_reviewed else None,
                times_reviewed=int(item.get("times_reviewed", 0)),
                times_correct=int(item.get("times_correct", 0)),
                times_incorrect=int(item.get("times_incorrect", 0)),
                ease_factor=float(item.get("ease_factor", DEFAULT_EASE_FACTOR)),
            )
