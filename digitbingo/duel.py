"""
Duel feedback: who scores a guess when the secret lives in a human's head.

Two strategies, chosen when the duel round is set up:
- AutoFeedback: the device holds the code typed in before the duel started and
  marks each guess digit itself.
- ManualFeedback: the guess is held as pending and the opponent cycles four
  markers (absent -> present -> correct) before confirming.

Manual marks are taken as given. Nothing checks they are consistent with any
real code; only the opponent knows it.
"""

from typing import List, Optional, Tuple, Union

from .engine import auto_marks, next_mark
from .types import CODE_LENGTH, Code, FeedbackMark, FeedbackMode


class AutoFeedback:
    mode: FeedbackMode = "auto"

    def marks_for(self, guess: Code, own_code: Code) -> Optional[List[FeedbackMark]]:
        return auto_marks(guess, own_code)


class ManualFeedback:
    mode: FeedbackMode = "manual"

    def marks_for(self, guess: Code, own_code: Code) -> Optional[List[FeedbackMark]]:
        # None = ask the opponent
        return None


FeedbackStrategy = Union[AutoFeedback, ManualFeedback]


def make_strategy(mode: FeedbackMode) -> FeedbackStrategy:
    if mode == "manual":
        return ManualFeedback()
    return AutoFeedback()


class DuelReconciler:
    """Turns a submitted duel guess into per-digit marks, now or after confirmation."""

    def __init__(self, strategy: Optional[FeedbackStrategy] = None) -> None:
        self.strategy: FeedbackStrategy = strategy if strategy is not None else AutoFeedback()
        self.pending: Optional[Code] = None
        self.marks: List[FeedbackMark] = [FeedbackMark.ABSENT] * CODE_LENGTH

    @property
    def mode(self) -> FeedbackMode:
        return self.strategy.mode

    @property
    def awaiting_marks(self) -> bool:
        return self.pending is not None

    def begin(self, guess: Code, own_code: Code) -> Optional[List[FeedbackMark]]:
        """
        Returns the marks right away when the strategy can score the guess,
        otherwise keeps the guess pending with every marker reset to absent.
        """
        marks = self.strategy.marks_for(guess, own_code)
        if marks is not None:
            return marks
        self.pending = guess
        self.marks = [FeedbackMark.ABSENT] * CODE_LENGTH
        return None

    def cycle(self, position: int) -> FeedbackMark:
        if not 0 <= position < CODE_LENGTH:
            raise IndexError(f"Marker position must be between 0 and {CODE_LENGTH - 1}.")
        self.marks[position] = next_mark(self.marks[position])
        return self.marks[position]

    def confirm(self) -> Optional[Tuple[Code, List[FeedbackMark]]]:
        if self.pending is None:
            return None
        guess, marks = self.pending, list(self.marks)
        self.cancel()
        return guess, marks

    def cancel(self) -> None:
        self.pending = None
        self.marks = [FeedbackMark.ABSENT] * CODE_LENGTH
