'''
Digit Bingo API (local presentation adapter)

Rounds:
POST   /rounds/solo                      -> start a solo round (policy now or later)
POST   /rounds/duel                      -> start a duel round (type own code first)
GET    /rounds/{id}                      -> read state & history
POST   /rounds/{id}/policy               -> choose the solo repeats policy
POST   /rounds/{id}/keys                 -> keypad press: digit, "back" or "ok"
POST   /rounds/{id}/marks/confirm        -> confirm manual duel feedback
POST   /rounds/{id}/marks/{position}     -> cycle one manual marker
POST   /rounds/{id}/pause | resume | restart | friend-won | dismiss
DELETE /rounds/{id}                      -> leave the screen, stops the clock

Extras:
GET    /records                          -> past wins, newest first
GET    /records/summary                  -> best tries / fastest time
DELETE /records                          -> clear all records
GET    /settings/vibration               -> vibration flag
PUT    /settings/vibration               -> set vibration flag
'''

import os
from typing import List

from fastapi import FastAPI, HTTPException, Depends
from fastapi.middleware.cors import CORSMiddleware

from .db import get_db                  # SQLAlchemy Session dependency
from .kv import DBKVStore               # DB-backed key-value store
from .records import RecordBook, summarize, to_record_out
from .registry import RoundRegistry, to_round_out
from .settings import get_vibration, set_vibration
from .bootstrap_db import create_all    # dev-only: create tables

from .schemas import (
    NewSoloRound,
    NewDuelRound,
    PolicyRequest,
    KeyRequest,
    RoundOut,
    RecordOut,
    RecordsSummaryOut,
    VibrationSetting,
)

APP_ENV = os.getenv("APP_ENV", "local")
DUEL_FEEDBACK = os.getenv("DUEL_FEEDBACK", "auto")

app = FastAPI(title="Digit Bingo API", version="1.0.0")

# Allow everything in dev so the docs and front-end work easily
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"]
)

# --- Dev convenience: auto-create tables locally ---
if APP_ENV == "local":
    @app.on_event("startup")
    def _dev_create_tables():
        create_all()

registry = RoundRegistry()

@app.on_event("shutdown")
def _close_rounds():
    registry.clear()

def get_registry() -> RoundRegistry:
    return registry

# Small factories so routes get per-request stores (bound to the current DB session)
def get_kv(session = Depends(get_db)) -> DBKVStore:
    return DBKVStore(session)

def get_records(kv: DBKVStore = Depends(get_kv)) -> RecordBook:
    return RecordBook(kv)

def _not_found() -> HTTPException:
    return HTTPException(status_code=404, detail="Round not found")

# ---------------- Rounds ----------------

@app.post("/rounds/solo", response_model=RoundOut, summary="Start a solo round")
def start_solo(
    payload: NewSoloRound,
    rounds: RoundRegistry = Depends(get_registry),
) -> RoundOut:
    round_id = rounds.create_solo(payload.allow_repeats)
    return to_round_out(round_id, rounds.get(round_id))

@app.post("/rounds/duel", response_model=RoundOut, summary="Start a duel round")
def start_duel(
    payload: NewDuelRound,
    rounds: RoundRegistry = Depends(get_registry),
) -> RoundOut:
    feedback = payload.feedback or ("manual" if DUEL_FEEDBACK == "manual" else "auto")
    round_id = rounds.create_duel(feedback)
    return to_round_out(round_id, rounds.get(round_id))

@app.get("/rounds/{round_id}", response_model=RoundOut, summary="Get current round state")
def get_round(
    round_id: str,
    rounds: RoundRegistry = Depends(get_registry),
) -> RoundOut:
    # snapshot under the same lock the event routes hold
    with rounds.use(round_id) as rnd:
        if rnd is None:
            raise _not_found()
        return to_round_out(round_id, rnd)

@app.post("/rounds/{round_id}/policy", response_model=RoundOut, summary="Choose the repeats policy")
def choose_policy(
    round_id: str,
    payload: PolicyRequest,
    rounds: RoundRegistry = Depends(get_registry),
) -> RoundOut:
    with rounds.use(round_id) as rnd:
        if rnd is None:
            raise _not_found()
        rnd.choose_policy(payload.allow_repeats)
        return to_round_out(round_id, rnd)

@app.post("/rounds/{round_id}/keys", response_model=RoundOut, summary="Press a keypad key")
def press_key(
    round_id: str,
    payload: KeyRequest,
    rounds: RoundRegistry = Depends(get_registry),
    book: RecordBook = Depends(get_records),
) -> RoundOut:
    # a winning "ok" writes the record through the book bound to this request
    with rounds.use(round_id, record_sink=book.add_record) as rnd:
        if rnd is None:
            raise _not_found()
        outcome = rnd.press(payload.key)
        return to_round_out(round_id, rnd, outcome)

@app.post("/rounds/{round_id}/marks/confirm", response_model=RoundOut, summary="Confirm manual feedback")
def confirm_marks(
    round_id: str,
    rounds: RoundRegistry = Depends(get_registry),
    book: RecordBook = Depends(get_records),
) -> RoundOut:
    with rounds.use(round_id, record_sink=book.add_record) as rnd:
        if rnd is None:
            raise _not_found()
        outcome = rnd.confirm_marks()
        return to_round_out(round_id, rnd, outcome)

@app.post("/rounds/{round_id}/marks/{position}", response_model=RoundOut, summary="Cycle one feedback marker")
def cycle_mark(
    round_id: str,
    position: int,
    rounds: RoundRegistry = Depends(get_registry),
) -> RoundOut:
    if not 0 <= position <= 3:
        raise HTTPException(status_code=422, detail="Marker position must be between 0 and 3.")
    with rounds.use(round_id) as rnd:
        if rnd is None:
            raise _not_found()
        rnd.cycle_mark(position)
        return to_round_out(round_id, rnd)

@app.post("/rounds/{round_id}/pause", response_model=RoundOut, summary="Pause the round")
def pause_round(round_id: str, rounds: RoundRegistry = Depends(get_registry)) -> RoundOut:
    with rounds.use(round_id) as rnd:
        if rnd is None:
            raise _not_found()
        rnd.pause()
        return to_round_out(round_id, rnd)

@app.post("/rounds/{round_id}/resume", response_model=RoundOut, summary="Resume the round")
def resume_round(round_id: str, rounds: RoundRegistry = Depends(get_registry)) -> RoundOut:
    with rounds.use(round_id) as rnd:
        if rnd is None:
            raise _not_found()
        rnd.resume()
        return to_round_out(round_id, rnd)

@app.post("/rounds/{round_id}/restart", response_model=RoundOut, summary="Restart with a fresh code")
def restart_round(round_id: str, rounds: RoundRegistry = Depends(get_registry)) -> RoundOut:
    with rounds.use(round_id) as rnd:
        if rnd is None:
            raise _not_found()
        rnd.restart()
        return to_round_out(round_id, rnd)

@app.post("/rounds/{round_id}/friend-won", response_model=RoundOut, summary="Friend guessed the code first")
def friend_won(round_id: str, rounds: RoundRegistry = Depends(get_registry)) -> RoundOut:
    # not a hard stop: the player may dismiss and keep guessing
    with rounds.use(round_id) as rnd:
        if rnd is None:
            raise _not_found()
        rnd.claim_friend_won()
        return to_round_out(round_id, rnd)

@app.post("/rounds/{round_id}/dismiss", response_model=RoundOut, summary="Dismiss the friend-won notice")
def dismiss_notice(round_id: str, rounds: RoundRegistry = Depends(get_registry)) -> RoundOut:
    with rounds.use(round_id) as rnd:
        if rnd is None:
            raise _not_found()
        rnd.dismiss()
        return to_round_out(round_id, rnd)

@app.delete("/rounds/{round_id}", summary="Leave the round")
def leave_round(
    round_id: str,
    rounds: RoundRegistry = Depends(get_registry),
) -> dict:
    if not rounds.remove(round_id):
        raise _not_found()
    return {"message": "Round closed."}

# ---------------- Records ----------------

@app.get("/records", response_model=List[RecordOut], summary="List past wins")
def list_records(book: RecordBook = Depends(get_records)) -> List[RecordOut]:
    return [to_record_out(r) for r in book.get_records()]

@app.get("/records/summary", response_model=RecordsSummaryOut, summary="Best results")
def records_summary(book: RecordBook = Depends(get_records)) -> RecordsSummaryOut:
    return summarize(book.get_records())

@app.delete("/records", summary="Clear all records")
def clear_records(book: RecordBook = Depends(get_records)) -> dict:
    book.clear_records()
    return {"message": "Records cleared."}

# ---------------- Settings ----------------

@app.get("/settings/vibration", response_model=VibrationSetting, summary="Read vibration flag")
def read_vibration(kv: DBKVStore = Depends(get_kv)) -> VibrationSetting:
    return VibrationSetting(enabled=get_vibration(kv))

@app.put("/settings/vibration", response_model=VibrationSetting, summary="Set vibration flag")
def write_vibration(payload: VibrationSetting, kv: DBKVStore = Depends(get_kv)) -> VibrationSetting:
    set_vibration(kv, payload.enabled)
    return VibrationSetting(enabled=get_vibration(kv))
