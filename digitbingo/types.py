"""
Labels for clarity.
"""

from enum import IntEnum
from typing import Literal

Digit = str  # '0' -> '9'
Code = str  # 4 digit secret or guess, e.g. "1234"
Mode = Literal["solo", "duel"]
FeedbackMode = Literal["auto", "manual"]
Phase = Literal["setup", "entering_code", "playing", "paused", "resolved"]

CODE_LENGTH = 4
DIGITS = "0123456789"


class FeedbackMark(IntEnum):
    """Per-digit marker the opponent sets in manual duel feedback."""
    ABSENT = 0
    PRESENT = 1
    CORRECT = 2
