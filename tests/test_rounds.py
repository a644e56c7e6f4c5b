"""
Testing the round state machine
- Secrets are scripted so we know every outcome.
- The clock runs on a fake time source.
"""

from digitbingo.clock import RoundClock
from digitbingo.duel import DuelReconciler, ManualFeedback
from digitbingo.rounds import Round

from conftest import ScriptedDigits


def make_solo(fake_time, digits="1234", allow_repeats=False, sink=None):
    return Round.solo(
        allow_repeats,
        record_sink=sink,
        clock=RoundClock(now=fake_time),
        draw=ScriptedDigits(digits),
    )

def type_code(rnd, code):
    for d in code:
        rnd.press(d)
    return rnd.press("ok")


def test_solo_waits_for_policy(fake_time):
    rnd = Round.solo(clock=RoundClock(now=fake_time), draw=ScriptedDigits("1234"))
    assert rnd.phase == "setup"
    rnd.press("5")
    assert rnd.current == ""
    rnd.restart()
    assert rnd.phase == "setup"

    rnd.choose_policy(False)
    assert rnd.phase == "playing"
    assert rnd.secret == "1234"
    assert rnd.clock.running

def test_guess_buffer_rules(fake_time):
    rnd = make_solo(fake_time, allow_repeats=False)
    rnd.press("0")          # no leading zero
    assert rnd.current == ""
    rnd.press("5")
    rnd.press("5")          # no repeats under this policy
    assert rnd.current == "5"
    for d in "678":
        rnd.press(d)
    rnd.press("9")          # full
    assert rnd.current == "5678"
    rnd.press("back")
    assert rnd.current == "567"
    assert rnd.press("ok") is None  # too short, nothing happens
    assert rnd.history == []

def test_repeats_policy_allows_repeated_guess_digits(fake_time):
    rnd = make_solo(fake_time, digits="1123", allow_repeats=True)
    assert rnd.secret == "1123"
    for d in "1111":
        rnd.press(d)
    assert rnd.current == "1111"

def test_submit_records_history_newest_first(fake_time):
    rnd = make_solo(fake_time)
    type_code(rnd, "5678")
    outcome = type_code(rnd, "1243")

    assert outcome.entry.bulls == 2
    assert outcome.entry.cows == 2
    assert [h.guess for h in rnd.history] == ["1243", "5678"]
    assert rnd.current == ""
    assert rnd.revealed == ["1", "2", None, None]
    assert rnd.last_guess_digits == ["1", "2", "4", "3"]

def test_reveal_events_fire_once_per_new_slot(fake_time):
    rnd = make_solo(fake_time)
    events = []
    rnd.on_reveal(lambda i, d: events.append((i, d)))

    first = type_code(rnd, "1243")
    assert first.newly_revealed == [0, 1]
    second = type_code(rnd, "1289")
    assert second.newly_revealed == []
    third = type_code(rnd, "1534")
    assert third.newly_revealed == [2, 3]
    assert events == [(0, "1"), (1, "2"), (2, "3"), (3, "4")]

def test_win_happens_once_and_writes_one_record(fake_time):
    written = []
    rnd = make_solo(fake_time, sink=written.append)
    fake_time.advance(3)
    type_code(rnd, "5678")
    fake_time.advance(4)
    outcome = type_code(rnd, "1234")

    assert outcome.won.attempts == 2
    assert outcome.won.time_sec == 7
    assert rnd.phase == "resolved"
    assert not rnd.clock.running

    # the round ignores input once won
    type_code(rnd, "1234")
    assert len(rnd.history) == 2
    assert len(written) == 1
    assert written[0].mode == "solo"
    assert written[0].tries == 2
    assert written[0].time_sec == 7

def test_failing_record_sink_does_not_undo_win(fake_time):
    def broken_sink(entry):
        raise OSError("disk full")

    rnd = make_solo(fake_time, sink=broken_sink)
    outcome = type_code(rnd, "1234")
    assert outcome.won.attempts == 1
    assert rnd.won is not None

def test_pause_and_resume_keep_everything(fake_time):
    rnd = make_solo(fake_time)
    type_code(rnd, "1243")
    rnd.press("5")
    fake_time.advance(10)
    rnd.pause()
    assert rnd.phase == "paused"

    fake_time.advance(60)
    rnd.press("6")              # ignored while paused
    assert rnd.elapsed == 10
    assert rnd.current == "5"

    rnd.resume()
    assert rnd.phase == "playing"
    assert rnd.elapsed == 10
    assert rnd.revealed == ["1", "2", None, None]
    assert len(rnd.history) == 1
    fake_time.advance(2)
    assert rnd.elapsed == 12

def test_restart_draws_fresh_secret_and_clears(fake_time):
    rnd = make_solo(fake_time, digits="12345678")
    assert rnd.secret == "1234"
    type_code(rnd, "1243")
    fake_time.advance(20)
    rnd.pause()

    rnd.restart()
    assert rnd.secret == "5678"
    assert rnd.history == []
    assert rnd.revealed == [None, None, None, None]
    assert rnd.current == ""
    assert rnd.elapsed == 0
    assert rnd.phase == "playing"
    fake_time.advance(1)
    assert rnd.elapsed == 1

def test_close_stops_clock_for_good(fake_time):
    with make_solo(fake_time) as rnd:
        fake_time.advance(4)
    assert rnd.closed
    fake_time.advance(100)
    assert rnd.elapsed == 4
    rnd.resume()
    rnd.close()
    assert rnd.elapsed == 4
    rnd.press("1")
    assert rnd.current == ""


# ---- duel ----

def test_duel_starts_after_own_code(fake_time):
    rnd = Round.duel(clock=RoundClock(now=fake_time))
    assert rnd.phase == "entering_code"
    rnd.press("0")
    rnd.press("1")
    rnd.press("2")
    rnd.press("ok")             # only 2 digits, not yet
    assert rnd.phase == "entering_code"
    rnd.press("2")              # duel codes may repeat digits
    rnd.press("3")
    fake_time.advance(5)
    rnd.press("ok")
    assert rnd.phase == "playing"
    assert rnd.secret == "1223"
    assert rnd.elapsed == 0
    fake_time.advance(5)
    assert rnd.elapsed == 5

def test_duel_auto_feedback_wins(fake_time):
    written = []
    rnd = Round.duel(clock=RoundClock(now=fake_time), record_sink=written.append)
    type_code(rnd, "4567")
    outcome = type_code(rnd, "4576")
    assert (outcome.entry.bulls, outcome.entry.cows) == (2, 2)
    outcome = type_code(rnd, "4567")
    assert outcome.won.attempts == 2
    assert written[0].mode == "duel"

def test_duel_manual_feedback(fake_time):
    rnd = Round.duel(DuelReconciler(ManualFeedback()), clock=RoundClock(now=fake_time))
    type_code(rnd, "9876")
    assert type_code(rnd, "1234") is None
    assert rnd.awaiting_marks
    assert rnd.reconciler.pending == "1234"

    rnd.press("5")              # keypad is blocked while marking
    assert rnd.current == "1234"

    rnd.cycle_mark(0)
    rnd.cycle_mark(0)           # correct
    rnd.cycle_mark(3)           # present
    outcome = rnd.confirm_marks()

    assert (outcome.entry.bulls, outcome.entry.cows) == (1, 1)
    assert outcome.newly_revealed == [0]
    assert rnd.revealed == ["1", None, None, None]
    assert rnd.current == ""
    assert not rnd.awaiting_marks

def test_duel_manual_all_correct_is_a_win(fake_time):
    written = []
    rnd = Round.duel(
        DuelReconciler(ManualFeedback()),
        clock=RoundClock(now=fake_time),
        record_sink=written.append,
    )
    type_code(rnd, "9876")
    type_code(rnd, "1234")
    for i in range(4):
        rnd.cycle_mark(i)
        rnd.cycle_mark(i)
    outcome = rnd.confirm_marks()
    # the opponent's word is taken as is
    assert outcome.won.attempts == 1
    assert len(written) == 1

def test_friend_won_is_dismissable(fake_time):
    rnd = Round.duel(clock=RoundClock(now=fake_time))
    rnd.claim_friend_won()      # not started yet, nothing to claim
    assert rnd.friend_won is False

    type_code(rnd, "4567")
    fake_time.advance(3)
    rnd.claim_friend_won()
    assert rnd.phase == "resolved"
    assert rnd.clock.running
    rnd.press("1")
    assert rnd.current == ""

    rnd.dismiss()
    assert rnd.phase == "playing"
    rnd.press("1")
    assert rnd.current == "1"

def test_duel_restart_goes_back_to_code_entry(fake_time):
    rnd = Round.duel(clock=RoundClock(now=fake_time))
    type_code(rnd, "4567")
    type_code(rnd, "4576")
    fake_time.advance(9)
    rnd.restart()
    assert rnd.phase == "entering_code"
    assert rnd.secret == ""
    assert rnd.history == []
    assert rnd.revealed == [None, None, None, None]
    assert rnd.elapsed == 0
    assert not rnd.clock.running

def test_friend_won_only_in_duel(fake_time):
    rnd = make_solo(fake_time)
    rnd.claim_friend_won()
    assert rnd.friend_won is False

def start_manual_duel_with_pending_guess(fake_time, sink=None):
    rnd = Round.duel(
        DuelReconciler(ManualFeedback()),
        clock=RoundClock(now=fake_time),
        record_sink=sink,
    )
    type_code(rnd, "9876")
    type_code(rnd, "1234")
    return rnd

def test_marks_are_frozen_while_paused(fake_time):
    written = []
    rnd = start_manual_duel_with_pending_guess(fake_time, sink=written.append)
    rnd.cycle_mark(0)
    fake_time.advance(6)
    rnd.pause()

    assert rnd.cycle_mark(1) is None
    assert rnd.confirm_marks() is None
    assert rnd.history == []
    assert rnd.revealed == [None, None, None, None]
    assert [int(m) for m in rnd.reconciler.marks] == [1, 0, 0, 0]
    assert rnd.phase == "paused"
    assert written == []

    # after resuming, the same pending guess can still be marked
    rnd.resume()
    for i in range(4):
        while int(rnd.reconciler.marks[i]) != 2:
            rnd.cycle_mark(i)
    fake_time.advance(2)
    outcome = rnd.confirm_marks()
    assert outcome.won.attempts == 1
    assert outcome.won.time_sec == 8
    assert rnd.paused is False
    assert len(written) == 1

def test_marks_are_frozen_while_friend_won_notice_is_up(fake_time):
    rnd = start_manual_duel_with_pending_guess(fake_time)
    rnd.claim_friend_won()
    assert rnd.cycle_mark(0) is None
    assert rnd.confirm_marks() is None
    assert rnd.history == []

    rnd.dismiss()
    rnd.cycle_mark(0)
    rnd.cycle_mark(0)
    outcome = rnd.confirm_marks()
    assert outcome.newly_revealed == [0]
    assert len(rnd.history) == 1

def test_pause_keeps_manual_duel_history_and_reveals(fake_time):
    rnd = start_manual_duel_with_pending_guess(fake_time)
    rnd.cycle_mark(1)
    rnd.cycle_mark(1)
    rnd.confirm_marks()
    type_code(rnd, "5678")
    rnd.pause()
    rnd.resume()
    assert [h.guess for h in rnd.history] == ["1234"]
    assert rnd.revealed == [None, "2", None, None]
    assert rnd.awaiting_marks
    assert rnd.reconciler.pending == "5678"

def test_closed_round_ignores_dismiss(fake_time):
    rnd = Round.duel(clock=RoundClock(now=fake_time))
    type_code(rnd, "4567")
    rnd.claim_friend_won()
    rnd.close()
    rnd.dismiss()
    assert rnd.friend_won is True
