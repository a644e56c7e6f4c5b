"""
Round state machine for both game modes.

Solo:  setup (pick repeats policy) -> playing <-> paused -> resolved (won)
Duel:  entering_code (type own code) -> playing <-> paused -> resolved
       (won, or the friend claims a win; that flag is dismissable)

All changes happen synchronously inside the method handling an input event.
The only thing that moves on its own is the round clock, and close() stops it
for good when the screen owning the round goes away.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from time import time
from typing import Callable, List, Optional
from uuid import uuid4

from .clock import RoundClock
from .duel import DuelReconciler
from .engine import Feedback, generate_secret, is_win, score_guess, tally_marks
from .random_client import draw_digit
from .schemas import RecordEntry
from .types import CODE_LENGTH, Code, Digit, DIGITS, FeedbackMark, Mode, Phase

logger = logging.getLogger(__name__)

BACKSPACE = "back"
SUBMIT = "ok"

RevealListener = Callable[[int, Digit], None]
RecordSink = Callable[[RecordEntry], None]


@dataclass(frozen=True)
class HistoryEntry:
    id: str
    guess: Code
    bulls: int
    cows: int


@dataclass(frozen=True)
class WinResult:
    attempts: int
    time_sec: int


@dataclass
class GuessOutcome:
    entry: HistoryEntry
    newly_revealed: List[int] = field(default_factory=list)
    won: Optional[WinResult] = None


def _empty_slots() -> List[Optional[Digit]]:
    return [None] * CODE_LENGTH


class Round:
    def __init__(
        self,
        mode: Mode,
        reconciler: Optional[DuelReconciler] = None,
        record_sink: Optional[RecordSink] = None,
        clock: Optional[RoundClock] = None,
        draw: Callable[[], Digit] = draw_digit,
    ) -> None:
        self.mode = mode
        self.reconciler = reconciler if reconciler is not None else DuelReconciler()
        self.record_sink = record_sink
        self.clock = clock if clock is not None else RoundClock()
        self._draw = draw
        self._reveal_listeners: List[RevealListener] = []

        self.allow_repeats: Optional[bool] = None  # solo only, None until chosen
        self.secret: Code = ""                     # solo: generated; duel: own code
        self.started = False
        self.current: Code = ""
        self.history: List[HistoryEntry] = []      # newest first
        self.revealed: List[Optional[Digit]] = _empty_slots()
        self.paused = False
        self.won: Optional[WinResult] = None
        self.friend_won = False
        self.closed = False

    # ---- construction helpers ----

    @classmethod
    def solo(cls, allow_repeats: Optional[bool] = None, **kwargs) -> "Round":
        rnd = cls("solo", **kwargs)
        if allow_repeats is not None:
            rnd.choose_policy(allow_repeats)
        return rnd

    @classmethod
    def duel(cls, reconciler: Optional[DuelReconciler] = None, **kwargs) -> "Round":
        return cls("duel", reconciler=reconciler, **kwargs)

    # ---- derived state ----

    @property
    def phase(self) -> Phase:
        if self.won is not None or self.friend_won:
            return "resolved"
        if not self.started:
            return "setup" if self.mode == "solo" else "entering_code"
        if self.paused:
            return "paused"
        return "playing"

    @property
    def elapsed(self) -> int:
        return self.clock.elapsed

    @property
    def attempts(self) -> int:
        return len(self.history)

    @property
    def last_guess_digits(self) -> List[Digit]:
        guess = self.history[0].guess if self.history else ""
        return [guess[i] if i < len(guess) else "" for i in range(CODE_LENGTH)]

    @property
    def awaiting_marks(self) -> bool:
        return self.mode == "duel" and self.reconciler.awaiting_marks

    def on_reveal(self, listener: RevealListener) -> None:
        """Register a callback fired once per newly confirmed slot."""
        self._reveal_listeners.append(listener)

    # ---- setup ----

    def choose_policy(self, allow_repeats: bool) -> None:
        if self.mode != "solo" or self.closed:
            return
        self.allow_repeats = allow_repeats
        self._start_fresh()

    def _start_fresh(self) -> None:
        self.secret = generate_secret(bool(self.allow_repeats), draw=self._draw)
        self._clear()
        self.started = True
        self.clock.start()

    def _clear(self) -> None:
        self.current = ""
        self.history = []
        self.revealed = _empty_slots()
        self.paused = False
        self.won = None
        self.friend_won = False
        self.reconciler.cancel()
        self.clock.reset()

    # ---- keypad ----

    def _accepts_input(self) -> bool:
        if self.closed or self.paused or self.won is not None or self.friend_won:
            return False
        if self.awaiting_marks:
            return False
        if self.mode == "solo" and self.allow_repeats is None:
            return False
        return True

    def press(self, key: str) -> Optional[GuessOutcome]:
        if key == BACKSPACE:
            self.backspace()
            return None
        if key == SUBMIT:
            return self.submit()
        self.type_digit(key)
        return None

    def type_digit(self, digit: Digit) -> None:
        if len(digit) != 1 or digit not in DIGITS or not self._accepts_input():
            return
        buffer = self.current if self.started else self.secret
        if len(buffer) >= CODE_LENGTH:
            return
        if buffer == "" and digit == "0":
            return
        if self.mode == "solo" and not self.allow_repeats and digit in buffer:
            return
        if self.started:
            self.current = buffer + digit
        else:
            self.secret = buffer + digit

    def backspace(self) -> None:
        if not self._accepts_input():
            return
        if self.started:
            self.current = self.current[:-1]
        else:
            self.secret = self.secret[:-1]

    def submit(self) -> Optional[GuessOutcome]:
        if not self._accepts_input():
            return None
        if not self.started:
            # duel: own code typed in, the duel begins
            if len(self.secret) == CODE_LENGTH:
                self.started = True
                self.clock.start()
            return None
        if len(self.current) != CODE_LENGTH:
            return None

        guess = self.current
        if self.mode == "solo":
            feedback = score_guess(guess, self.secret)
            correct = [i for i in range(CODE_LENGTH) if guess[i] == self.secret[i]]
            return self._apply(guess, feedback, correct)

        marks = self.reconciler.begin(guess, self.secret)
        if marks is None:
            # manual: wait for the opponent to mark the digits
            return None
        return self._apply_marks(guess, marks)

    # ---- manual duel feedback ----

    def _accepts_marks(self) -> bool:
        if not self.awaiting_marks or self.closed:
            return False
        # markers freeze with the keypad: paused, won or friend-won notice up
        return not (self.paused or self.won is not None or self.friend_won)

    def cycle_mark(self, position: int) -> Optional[FeedbackMark]:
        if not self._accepts_marks():
            return None
        return self.reconciler.cycle(position)

    def confirm_marks(self) -> Optional[GuessOutcome]:
        if not self._accepts_marks():
            return None
        guess, marks = self.reconciler.confirm()
        return self._apply_marks(guess, marks)

    def _apply_marks(self, guess: Code, marks: List[FeedbackMark]) -> GuessOutcome:
        correct = [i for i, mark in enumerate(marks) if mark == FeedbackMark.CORRECT]
        return self._apply(guess, tally_marks(marks), correct)

    # ---- shared guess bookkeeping ----

    def _apply(self, guess: Code, feedback: Feedback, correct: List[int]) -> GuessOutcome:
        newly_revealed = []
        for i in correct:
            if self.revealed[i] != guess[i]:
                self.revealed[i] = guess[i]
                newly_revealed.append(i)

        entry = HistoryEntry(id=str(uuid4()), guess=guess, bulls=feedback.bulls, cows=feedback.cows)
        self.history.insert(0, entry)
        self.current = ""

        outcome = GuessOutcome(entry=entry, newly_revealed=newly_revealed)
        for i in newly_revealed:
            for listener in self._reveal_listeners:
                listener(i, guess[i])

        if is_win(feedback):
            self.clock.stop()
            self.won = WinResult(attempts=len(self.history), time_sec=self.clock.elapsed)
            outcome.won = self.won
            logger.info("%s round won in %d tries, %ds", self.mode, self.won.attempts, self.won.time_sec)
            self._write_record(self.won)
        return outcome

    def _write_record(self, result: WinResult) -> None:
        if self.record_sink is None:
            return
        now_ms = int(time() * 1000)
        entry = RecordEntry(
            id=str(uuid4()),
            mode=self.mode,
            tries=result.attempts,
            time_sec=result.time_sec,
            created_at=now_ms,
        )
        try:
            self.record_sink(entry)
        except Exception:
            # the win stands even if the record is lost
            logger.warning("Could not record %s win", self.mode, exc_info=True)

    # ---- lifecycle ----

    def pause(self) -> None:
        if self.phase != "playing" or self.closed:
            return
        self.paused = True
        self.clock.stop()

    def resume(self) -> None:
        if not self.paused or self.closed:
            return
        self.paused = False
        self.clock.start()

    def claim_friend_won(self) -> None:
        """The opponent says they cracked our code first. Clock keeps running."""
        if self.mode != "duel" or not self.started or self.won is not None or self.closed:
            return
        self.friend_won = True

    def dismiss(self) -> None:
        if self.closed:
            return
        self.friend_won = False

    def restart(self) -> None:
        if self.closed:
            return
        if self.mode == "solo":
            if self.allow_repeats is None:
                return
            self._start_fresh()
            return
        # duel goes back to typing a new own code
        self._clear()
        self.secret = ""
        self.started = False

    def close(self) -> None:
        self.clock.stop()
        self.closed = True

    def __enter__(self) -> "Round":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
