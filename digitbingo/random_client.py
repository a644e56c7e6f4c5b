"""
- Uniform digit source with an optional HTTP batch
By default digits come from Python's secure random. With RANDOM_SOURCE=random_org
we fetch a batch of digits (0..9) from random.org and hand them out one by one.
If anything goes wrong (no internet, timeout, bad response), we fall back to the
local secure generator so the game still works.
"""

import logging
import os
from secrets import randbelow
from threading import Lock
from typing import List

import requests
from dotenv import load_dotenv

from .types import DIGITS, Digit

load_dotenv()

logger = logging.getLogger(__name__)

RANDOM_URL = "https://www.random.org/integers/"
RANDOM_SOURCE = os.getenv("RANDOM_SOURCE", "local")
BATCH_SIZE = 16


def fetch_digits(count: int = BATCH_SIZE) -> List[Digit]:
    # Parameters to send to random.org
    params = {
        "num": count,
        "min": 0,
        "max": 9,
        "col": 1,          # one number per line
        "base": 10,
        "format": "plain",
        "rnd": "new",
    }

    # keep network quick; if it takes too long, we will just fallback
    timeout_seconds = 3.0

    try:
        response = requests.get(RANDOM_URL, params=params, timeout=timeout_seconds)
        response.raise_for_status()

        # The body looks like:
        #   0\n3\n1\n9\n
        digits = [line.strip() for line in response.text.splitlines() if line.strip()]

        if len(digits) != count:
            raise ValueError(f"random.org returned {len(digits)} values, expected {count}.")
        for text in digits:
            if len(text) != 1 or text not in DIGITS:
                raise ValueError(f"random.org value {text!r} out of range 0..9.")
        return digits

    except (requests.RequestException, ValueError) as exc:
        logger.info("random.org unavailable (%s); using local secure random", exc)
        return [local_digit() for _ in range(count)]


def local_digit() -> Digit:
    # randbelow(10) gives us a number between 0 and 9
    return DIGITS[randbelow(10)]


class DigitSource:
    """Hands out single uniform digits, refilling from random.org when enabled."""

    def __init__(self, source: str = RANDOM_SOURCE, batch_size: int = BATCH_SIZE) -> None:
        self.source = source
        self.batch_size = batch_size
        self._buffer: List[Digit] = []
        self._lock = Lock()

    def draw(self) -> Digit:
        if self.source != "random_org":
            return local_digit()
        # shared by every round; refill and pop happen as one step
        with self._lock:
            if not self._buffer:
                self._buffer = fetch_digits(self.batch_size)
            return self._buffer.pop()


_default_source = DigitSource()


def draw_digit() -> Digit:
    return _default_source.draw()
