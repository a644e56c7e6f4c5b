"""
Explicit validation & Pydantic models
- RecordEntry is also the stored wire format of the records list
  (camelCase keys: id, mode, tries, timeSec, createdAt).
- The rest defines the structure of API requests and responses.
"""

from typing import List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

KEYS = ("0", "1", "2", "3", "4", "5", "6", "7", "8", "9", "back", "ok")


# 1. One completed round, as persisted by the record sink
class RecordEntry(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., description="Unique id of the record")
    mode: Literal["solo", "duel"] = Field(..., description="Game mode of the round")
    tries: int = Field(..., ge=1, description="Guesses used to crack the code")
    time_sec: int = Field(..., ge=0, alias="timeSec", description="Elapsed seconds at the win")
    created_at: int = Field(..., alias="createdAt", description="Epoch millis when recorded")


# 2. Start a solo round; the policy may be chosen later
class NewSoloRound(BaseModel):
    allow_repeats: Optional[bool] = Field(
        None, description="Whether the secret may repeat digits; omit to choose later"
    )


class PolicyRequest(BaseModel):
    allow_repeats: bool = Field(..., description="Whether the secret may repeat digits")


# 3. Start a duel round
class NewDuelRound(BaseModel):
    feedback: Optional[Literal["auto", "manual"]] = Field(
        None, description="How guesses get scored; defaults to the server setting"
    )


# 4. One keypad press
class KeyRequest(BaseModel):
    key: str = Field(..., description="A digit '0'..'9', 'back' or 'ok'")

    @field_validator("key")
    @classmethod
    def validate_key(cls, key: str) -> str:
        if key not in KEYS:
            raise ValueError("Key must be a single digit, 'back' or 'ok'.")
        return key

    model_config = {
        "json_schema_extra": {
            "examples": [
                {"key": "7"},
                {"key": "back"},
                {"key": "ok"},
            ]
        }
    }


# 5. Feedback for a single guess
class HistoryEntryOut(BaseModel):
    id: str = Field(..., description="Unique id of the guess")
    guess: str = Field(..., description="The 4 digit guess")
    bulls: int = Field(..., description="Digits right in value and position")
    cows: int = Field(..., description="Digits in the code but elsewhere")


class WinOut(BaseModel):
    attempts: int = Field(..., description="Guesses used, including the winning one")
    time_sec: int = Field(..., description="Elapsed seconds when the code was cracked")
    time: str = Field(..., description="Elapsed time as MM:SS")


# 6. Overall state of one round, as the screen sees it
class RoundOut(BaseModel):
    round_id: str = Field(..., description="Id of the screen owning the round")
    mode: Literal["solo", "duel"]
    phase: Literal["setup", "entering_code", "playing", "paused", "resolved"]
    allow_repeats: Optional[bool] = Field(None, description="Solo repeats policy")
    feedback: Optional[Literal["auto", "manual"]] = Field(None, description="Duel feedback strategy")
    own_code: Optional[str] = Field(None, description="Duel code while it is being typed")
    current: str = Field(..., description="Guess being composed")
    history: List[HistoryEntryOut] = Field(..., description="Guesses so far, newest first")
    revealed: List[Optional[str]] = Field(..., description="Confirmed digit per slot")
    last_guess: List[str] = Field(..., description="Digits of the latest guess per slot")
    attempts: int = Field(..., description="Number of guesses so far")
    elapsed: int = Field(..., description="Elapsed seconds")
    elapsed_text: str = Field(..., description="Elapsed time as MM:SS")
    paused: bool
    won: Optional[WinOut] = None
    friend_won: bool = False
    awaiting_marks: bool = False
    pending_guess: Optional[str] = None
    marks: Optional[List[int]] = Field(None, description="Manual markers: 0 absent, 1 present, 2 correct")
    secret: Optional[str] = Field(None, description="Solo secret, only revealed once won")
    newly_revealed: List[int] = Field(default_factory=list, description="Slots confirmed by this action")


# 7. Records
class RecordOut(BaseModel):
    id: str
    mode: Literal["solo", "duel"]
    tries: int
    time_sec: int
    time: str = Field(..., description="Elapsed time as MM:SS")
    created_at: int


class RecordsSummaryOut(BaseModel):
    total: int = Field(..., description="Records kept")
    solo: int = Field(..., description="Solo wins kept")
    duel: int = Field(..., description="Duel wins kept")
    best_tries: Optional[int] = Field(None, description="Fewest guesses in a win")
    fastest_time_sec: Optional[int] = Field(None, description="Quickest win in seconds")


# 8. Settings
class VibrationSetting(BaseModel):
    enabled: bool = Field(..., description="Whether vibration feedback is on")
