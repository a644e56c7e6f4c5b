"""
In-memory registry of live rounds.
One round per screen id; removing it closes the round and stops its clock.
"""

import logging
import os
from contextlib import contextmanager
from threading import RLock
from typing import Dict, Iterator, List, Optional
from uuid import uuid4

from .duel import DuelReconciler, make_strategy
from .engine import format_elapsed
from .rounds import GuessOutcome, RecordSink, Round
from .schemas import HistoryEntryOut, RoundOut, WinOut
from .types import FeedbackMode

logger = logging.getLogger(__name__)

MAX_ROUNDS = int(os.getenv("MAX_ROUNDS", "256"))


class RoundRegistry:
    def __init__(self, max_rounds: int = MAX_ROUNDS) -> None:
        self._rounds: Dict[str, Round] = {}
        self._lock = RLock()
        self.max_rounds = max_rounds

    def _add(self, rnd: Round) -> str:
        new_id = str(uuid4())
        evicted: List[Round] = []
        with self._lock:
            self._rounds[new_id] = rnd
            # screens that never said goodbye: drop the oldest (dicts keep insertion order)
            while len(self._rounds) > self.max_rounds:
                oldest = next(iter(self._rounds))
                evicted.append(self._rounds.pop(oldest))
        for old in evicted:
            old.close()
        if evicted:
            logger.info("Evicted %d abandoned round(s)", len(evicted))
        return new_id

    def __len__(self) -> int:
        with self._lock:
            return len(self._rounds)

    def create_solo(self, allow_repeats: Optional[bool] = None) -> str:
        return self._add(Round.solo(allow_repeats))

    def create_duel(self, feedback: FeedbackMode = "auto") -> str:
        return self._add(Round.duel(DuelReconciler(make_strategy(feedback))))

    def get(self, round_id: str) -> Optional[Round]:
        with self._lock:
            return self._rounds.get(round_id)

    @contextmanager
    def use(self, round_id: str, record_sink: Optional[RecordSink] = None) -> Iterator[Optional[Round]]:
        """
        Hold a round for one event. Wins during the event are written to
        record_sink, which is only attached for as long as the event lasts.
        """
        with self._lock:
            rnd = self._rounds.get(round_id)
            if rnd is None:
                yield None
                return
            rnd.record_sink = record_sink
            try:
                yield rnd
            finally:
                rnd.record_sink = None

    def remove(self, round_id: str) -> bool:
        with self._lock:
            rnd = self._rounds.pop(round_id, None)
        if rnd is None:
            return False
        rnd.close()
        return True

    def clear(self) -> None:
        with self._lock:
            rounds: List[Round] = list(self._rounds.values())
            self._rounds.clear()
        for rnd in rounds:
            rnd.close()


# --- DTO builder so routes stay small ---

def to_round_out(round_id: str, rnd: Round, outcome: Optional[GuessOutcome] = None) -> RoundOut:
    duel = rnd.mode == "duel"
    won = None
    if rnd.won is not None:
        won = WinOut(
            attempts=rnd.won.attempts,
            time_sec=rnd.won.time_sec,
            time=format_elapsed(rnd.won.time_sec),
        )
    return RoundOut(
        round_id=round_id,
        mode=rnd.mode,
        phase=rnd.phase,
        allow_repeats=rnd.allow_repeats,
        feedback=rnd.reconciler.mode if duel else None,
        # the own code is only echoed back while it is being typed
        own_code=rnd.secret if duel and not rnd.started else None,
        current=rnd.current,
        history=[
            HistoryEntryOut(id=h.id, guess=h.guess, bulls=h.bulls, cows=h.cows)
            for h in rnd.history
        ],
        revealed=list(rnd.revealed),
        last_guess=rnd.last_guess_digits,
        attempts=rnd.attempts,
        elapsed=rnd.elapsed,
        elapsed_text=format_elapsed(rnd.elapsed),
        paused=rnd.paused,
        won=won,
        friend_won=rnd.friend_won,
        awaiting_marks=rnd.awaiting_marks,
        pending_guess=rnd.reconciler.pending if duel else None,
        marks=[int(m) for m in rnd.reconciler.marks] if rnd.awaiting_marks else None,
        secret=rnd.secret if (not duel and rnd.won is not None) else None,
        newly_revealed=outcome.newly_revealed if outcome is not None else [],
    )
