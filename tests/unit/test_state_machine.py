"""Unit tests for the single-tick reconciliation engine."""

from __future__ import annotations

from dataclasses import dataclass, field

import pytest

from replicaset_reconciler.state import (
    DuplicateStateError,
    FixedDelayPacing,
    Machine,
    NoCurrentStateError,
    Outcome,
    ProgressPersistenceError,
    ProgressRecord,
    State,
    UnknownStateError,
    direct_transition,
    from_bool,
)


@dataclass
class RecordingSaver:
    saved: list[str] = field(default_factory=list)
    fail: bool = False

    def save(self, next_state: str) -> None:
        if self.fail:
            raise OSError("store unavailable")
        self.saved.append(next_state)


@dataclass
class Ctx:
    done: bool = False
    calls: list[str] = field(default_factory=list)


def _state(name: str, *, is_complete=None, outcome: Outcome | None = None) -> State[Ctx]:
    def action(ctx: Ctx) -> Outcome:
        ctx.calls.append(name)
        return outcome or Outcome.retry()

    return State(name=name, action=action, is_complete=is_complete)


def _start_middle_end(saver: RecordingSaver, record: ProgressRecord) -> Machine[Ctx]:
    sm: Machine[Ctx] = Machine(saver)
    start = _state("Start")
    middle = _state("Middle", is_complete=lambda ctx: ctx.done)
    end = _state("End", outcome=Outcome.done())
    sm.add_transition(start, middle, direct_transition)
    sm.add_transition(middle, end, lambda ctx: ctx.done)
    sm.resume(record, initial_state="Start")
    return sm


def _resume_point(saver: RecordingSaver) -> ProgressRecord:
    return ProgressRecord(next_state=saver.saved[-1] if saver.saved else "")


def test_end_to_end_start_middle_end() -> None:
    saver = RecordingSaver()
    ctx = Ctx()

    _start_middle_end(saver, _resume_point(saver)).tick(ctx)
    assert ctx.calls == ["Start"]
    assert saver.saved == ["Middle"]

    _start_middle_end(saver, _resume_point(saver)).tick(ctx)
    assert ctx.calls == ["Start", "Middle"]
    assert saver.saved == ["Middle"]

    ctx.done = True
    _start_middle_end(saver, _resume_point(saver)).tick(ctx)
    assert ctx.calls == ["Start", "Middle", "Middle"]
    assert saver.saved == ["Middle", "End"]

    assert _start_middle_end(saver, _resume_point(saver)).tick(ctx) == Outcome.done()
    assert saver.saved == ["Middle", "End", ""]


def test_no_matching_guard_persists_the_empty_sentinel() -> None:
    saver = RecordingSaver()
    sm: Machine[Ctx] = Machine(saver)
    sm.add_transition(_state("Middle"), _state("End"), from_bool(False))
    sm.set_state("Middle")

    sm.tick(Ctx())
    assert saver.saved == [""]


def test_incomplete_state_does_not_persist_and_replays() -> None:
    saver = RecordingSaver()
    ctx = Ctx()
    flag = {"complete": False}

    sm: Machine[Ctx] = Machine(saver)
    middle = _state("Middle", is_complete=lambda _ctx: flag["complete"])
    end = _state("End")
    sm.add_transition(middle, end, direct_transition)

    for _ in range(2):
        sm.set_state("Middle")
        assert sm.tick(ctx) == Outcome.retry()
    assert ctx.calls == ["Middle", "Middle"]
    assert saver.saved == []

    flag["complete"] = True
    sm.tick(ctx)
    assert ctx.calls == ["Middle", "Middle", "Middle"]
    assert saver.saved == ["End"]


def test_action_failure_propagates_without_transition() -> None:
    saver = RecordingSaver()

    class Boom(RuntimeError):
        pass

    def action(_ctx: Ctx) -> Outcome:
        raise Boom("cannot reach the cluster")

    sm: Machine[Ctx] = Machine(saver)
    sm.add_transition(State(name="Middle", action=action), _state("End"), direct_transition)
    sm.set_state("Middle")

    with pytest.raises(Boom):
        sm.tick(Ctx())
    assert saver.saved == []
    assert sm.current_state is not None and sm.current_state.name == "Middle"


def test_completion_check_failure_propagates_without_transition() -> None:
    saver = RecordingSaver()

    def is_complete(_ctx: Ctx) -> bool:
        raise LookupError("object vanished")

    sm: Machine[Ctx] = Machine(saver)
    sm.add_transition(_state("Middle", is_complete=is_complete), _state("End"))
    sm.set_state("Middle")

    with pytest.raises(LookupError):
        sm.tick(Ctx())
    assert saver.saved == []


def test_persistence_failure_is_raised_after_action_ran() -> None:
    saver = RecordingSaver(fail=True)
    ctx = Ctx()

    sm: Machine[Ctx] = Machine(saver)
    sm.add_transition(_state("Start"), _state("End"))
    sm.set_state("Start")

    with pytest.raises(ProgressPersistenceError) as excinfo:
        sm.tick(ctx)
    assert isinstance(excinfo.value.__cause__, OSError)
    assert excinfo.value.next_state == "End"
    assert ctx.calls == ["Start"]


def test_state_without_completion_check_completes_in_one_tick() -> None:
    saver = RecordingSaver()
    sm: Machine[Ctx] = Machine(saver)
    sm.add_transition(_state("A"), _state("B"))
    sm.set_state("A")

    sm.tick(Ctx())
    assert saver.saved == ["B"]


def test_resolve_next_is_first_match_wins() -> None:
    sm: Machine[Ctx] = Machine(RecordingSaver())
    a = _state("A")
    sm.add_transition(a, _state("B"), from_bool(False))
    sm.add_transition(a, _state("C"), from_bool(True))
    sm.add_transition(a, _state("D"), from_bool(True))
    sm.set_state("A")

    assert sm.resolve_next(Ctx()) == "C"
    assert [t.to_name for t in sm.transitions_from("A")] == ["B", "C", "D"]


def test_guards_are_not_evaluated_before_completion() -> None:
    evaluated: list[str] = []

    def guard(_ctx: Ctx) -> bool:
        evaluated.append("guard")
        return True

    sm: Machine[Ctx] = Machine(RecordingSaver())
    sm.add_transition(_state("A", is_complete=lambda _c: False), _state("B"), guard)
    sm.set_state("A")

    sm.tick(Ctx())
    assert evaluated == []


def test_outcome_is_passed_through_unchanged() -> None:
    saver = RecordingSaver()
    sm: Machine[Ctx] = Machine(saver)
    sm.add_transition(_state("A", outcome=Outcome.retry(10)), _state("B"))
    sm.set_state("A")

    assert sm.tick(Ctx()) == Outcome.retry(10)


def test_cycles_are_supported() -> None:
    saver = RecordingSaver()
    ctx = Ctx()
    a = _state("A")
    b = _state("B")

    def build(record: ProgressRecord) -> Machine[Ctx]:
        sm: Machine[Ctx] = Machine(saver)
        sm.add_transition(a, b)
        sm.add_transition(b, a, lambda c: not c.done)
        sm.resume(record, initial_state="A")
        return sm

    record = ProgressRecord()
    for _ in range(4):
        build(record).tick(ctx)
        record = ProgressRecord(next_state=saver.saved[-1])
    assert saver.saved == ["B", "A", "B", "A"]

    ctx.done = True
    build(record).tick(ctx)
    build(ProgressRecord(next_state=saver.saved[-1])).tick(ctx)
    assert saver.saved[-2:] == ["B", ""]


def test_resume_from_empty_record_selects_initial_state() -> None:
    sm: Machine[Ctx] = Machine(RecordingSaver())
    sm.add_transition(_state("Start"), _state("Middle"))

    state = sm.resume(ProgressRecord(), initial_state="Start")
    assert state.name == "Start"


def test_resume_from_unregistered_state_fails_fast() -> None:
    sm: Machine[Ctx] = Machine(RecordingSaver())
    sm.add_transition(_state("Start"), _state("Middle"))

    with pytest.raises(UnknownStateError) as excinfo:
        sm.resume(ProgressRecord(next_state="Removed"), initial_state="Start")
    assert excinfo.value.state_name == "Removed"
    assert sm.current_state is None


def test_tick_without_current_state_is_a_configuration_error() -> None:
    sm: Machine[Ctx] = Machine(RecordingSaver())
    sm.add_transition(_state("A"), _state("B"))

    with pytest.raises(NoCurrentStateError):
        sm.tick(Ctx())


def test_duplicate_state_names_with_different_definitions_are_rejected() -> None:
    sm: Machine[Ctx] = Machine(RecordingSaver())
    a = _state("A")
    sm.add_transition(a, _state("B"))
    # Same object registered again is fine.
    sm.add_transition(a, _state("C"))

    with pytest.raises(DuplicateStateError):
        sm.add_transition(_state("A"), _state("D"))


def test_state_name_must_be_non_empty() -> None:
    with pytest.raises(ValueError):
        State(name="", action=lambda _ctx: Outcome.retry())


def test_pacing_policy_is_invoked_around_save() -> None:
    slept: list[float] = []
    pacing = FixedDelayPacing(
        before_action_seconds=1.0,
        before_save_seconds=2.0,
        after_save_seconds=3.0,
        sleep=slept.append,
    )
    sm: Machine[Ctx] = Machine(RecordingSaver(), pacing=pacing)
    sm.add_transition(_state("A"), _state("B"))
    sm.set_state("A")

    sm.tick(Ctx())
    assert slept == [1.0, 2.0, 3.0]


def test_pacing_skips_save_delays_when_incomplete() -> None:
    slept: list[float] = []
    pacing = FixedDelayPacing(
        before_action_seconds=1.0, before_save_seconds=2.0, sleep=slept.append
    )
    sm: Machine[Ctx] = Machine(RecordingSaver(), pacing=pacing)
    sm.add_transition(_state("A", is_complete=lambda _c: False), _state("B"))
    sm.set_state("A")

    sm.tick(Ctx())
    assert slept == [1.0]
