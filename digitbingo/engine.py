"""
Pure game logic (no HTTP, no storage, no timers).
We compute two feedback numbers for each guess:
- bulls: how many indices are exactly correct (right digit, right place)
- cows: how many of the other guess digits appear anywhere in the secret

Cows are counted per guess digit with a plain membership test, so a repeated
guess digit counts again even if the secret holds that digit only once:
  secret = "1234", guess = "1122" -> bulls 1, cows 3
This is the game's rule, not the canonical Bulls-and-Cows one.
"""

from typing import Callable, List, NamedTuple, Sequence

from .types import CODE_LENGTH, Code, Digit, FeedbackMark
from .random_client import draw_digit


class Feedback(NamedTuple):
    bulls: int
    cows: int


def generate_secret(allow_repeats: bool, draw: Callable[[], Digit] = draw_digit) -> Code:
    """
    Rejection sampling over single uniform draws:
      - a '0' is rejected while the code is still empty (no leading zero)
      - without repeats, a digit already placed is rejected
    Always terminates with a valid 4 digit code.
    """
    code = ""
    while len(code) < CODE_LENGTH:
        digit = draw()
        if code == "" and digit == "0":
            continue
        if not allow_repeats and digit in code:
            continue
        code += digit
    return code


def score_guess(guess: Code, secret: Code) -> Feedback:
    """
    Example:
      secret = "1234"
      guess  = "1243"
      bulls = 2  (positions 0 and 1)
      cows  = 2  ('4' and '3' are in the secret elsewhere)
    """
    if len(guess) != CODE_LENGTH or len(secret) != CODE_LENGTH:
        raise ValueError(f"Guess and secret must both have exactly {CODE_LENGTH} digits.")

    bulls = 0
    cows = 0
    for i in range(CODE_LENGTH):
        if guess[i] == secret[i]:
            bulls += 1
        elif guess[i] in secret:
            cows += 1
    return Feedback(bulls, cows)


def auto_marks(guess: Code, secret: Code) -> List[FeedbackMark]:
    """The markers an honest opponent would set for this guess."""
    marks = []
    for i in range(CODE_LENGTH):
        if guess[i] == secret[i]:
            marks.append(FeedbackMark.CORRECT)
        elif guess[i] in secret:
            marks.append(FeedbackMark.PRESENT)
        else:
            marks.append(FeedbackMark.ABSENT)
    return marks


def next_mark(mark: FeedbackMark) -> FeedbackMark:
    # absent -> present -> correct -> absent
    return FeedbackMark((int(mark) + 1) % len(FeedbackMark))


def tally_marks(marks: Sequence[FeedbackMark]) -> Feedback:
    bulls = sum(1 for m in marks if m == FeedbackMark.CORRECT)
    cows = sum(1 for m in marks if m == FeedbackMark.PRESENT)
    return Feedback(bulls, cows)


def is_win(feedback: Feedback) -> bool:
    return feedback.bulls == CODE_LENGTH


def format_elapsed(seconds: int) -> str:
    """MM:SS, zero padded. Minutes keep growing past 59 (no hour field)."""
    minutes, secs = divmod(max(0, int(seconds)), 60)
    return f"{minutes:02d}:{secs:02d}"
