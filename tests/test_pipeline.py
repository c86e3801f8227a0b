from __future__ import annotations

from collections import Counter
from pathlib import Path
from typing import List

import pytest

from zen_installer.errors import ConfirmationDeclined, InstallInterrupted, StepActionError
from zen_installer.pipeline import (
    StepRecord,
    StepState,
    bind_steps,
    describe_progress,
    run_pipeline,
)
from zen_installer.state_store import CompletionLog, MemoryCompletionStore


class Spy:
    """Records every action call; optionally fails the first ``fail_times`` calls per step."""

    def __init__(self, fail: dict | None = None):
        self.calls: List[str] = []
        self.handoffs = 0
        self.fail = dict(fail or {})

    def action(self, name: str):
        def _run():
            self.calls.append(name)
            if self.fail.get(name, 0) > 0:
                self.fail[name] -= 1
                raise RuntimeError(f"{name} exploded")

        return _run

    def handoff(self):
        self.handoffs += 1

    def steps(self, *names: str) -> List[StepRecord]:
        return [StepRecord(name=n, action=self.action(n)) for n in names]


def test_runs_all_steps_in_order_then_hands_off(tmp_path: Path):
    spy = Spy()
    log = CompletionLog(tmp_path / ".install_state")
    result = run_pipeline(steps=spy.steps("A", "B", "C"), store=log, handoff=spy.handoff)

    assert spy.calls == ["A", "B", "C"]
    assert spy.handoffs == 1
    assert result.ran_steps == ["A", "B", "C"]
    assert result.handed_off
    assert log.completed() == {"A", "B", "C"}
    assert set(result.states.values()) == {StepState.COMPLETED}


def test_completed_steps_are_never_invoked_again(tmp_path: Path):
    log = CompletionLog(tmp_path / ".install_state")
    run_pipeline(steps=Spy().steps("A", "B", "C"), store=log, handoff=lambda: None)

    spy = Spy()
    result = run_pipeline(steps=spy.steps("A", "B", "C"), store=log, handoff=spy.handoff)
    assert spy.calls == []
    assert result.skipped_steps == ["A", "B", "C"]
    assert spy.handoffs == 1


def test_resume_runs_remaining_steps_in_order(tmp_path: Path):
    log = CompletionLog(tmp_path / ".install_state")
    log.append("A")

    spy = Spy()
    run_pipeline(steps=spy.steps("A", "B", "C"), store=log, handoff=spy.handoff)
    assert spy.calls == ["B", "C"]


def test_failure_marks_nothing_and_stops(tmp_path: Path):
    log = CompletionLog(tmp_path / ".install_state")
    spy = Spy(fail={"B": 1})

    with pytest.raises(StepActionError) as exc:
        run_pipeline(steps=spy.steps("A", "B", "C"), store=log, handoff=spy.handoff)

    assert exc.value.step == "B"
    assert isinstance(exc.value.__cause__, RuntimeError)
    assert spy.calls == ["A", "B"]
    assert spy.handoffs == 0
    assert log.completed() == {"A"}


def test_failed_step_is_retried_on_next_run(tmp_path: Path):
    log = CompletionLog(tmp_path / ".install_state")
    spy = Spy(fail={"B": 2})
    steps = spy.steps("A", "B", "C")

    for _ in range(2):
        with pytest.raises(StepActionError):
            run_pipeline(steps=steps, store=log, handoff=spy.handoff)
    run_pipeline(steps=steps, store=log, handoff=spy.handoff)

    assert spy.calls == ["A", "B", "B", "B", "C"]
    assert spy.handoffs == 1


def test_one_record_per_success_across_restarts(tmp_path: Path):
    path = tmp_path / ".install_state"
    spy = Spy(fail={"C": 3})
    steps = spy.steps("A", "B", "C")
    for _ in range(3):
        with pytest.raises(StepActionError):
            run_pipeline(steps=steps, store=CompletionLog(path), handoff=spy.handoff)
    run_pipeline(steps=steps, store=CompletionLog(path), handoff=spy.handoff)

    counts = Counter(path.read_text().splitlines())
    assert counts == {"A=true": 1, "B=true": 1, "C=true": 1}


def test_installer_errors_propagate_unwrapped():
    def decline():
        raise ConfirmationDeclined("no")

    store = MemoryCompletionStore()
    with pytest.raises(ConfirmationDeclined):
        run_pipeline(steps=[StepRecord("USER_INPUT_COMPLETE", decline)], store=store, handoff=lambda: None)
    assert store.completed() == set()


def test_empty_pipeline_hands_off_once():
    spy = Spy()
    result = run_pipeline(steps=[], store=MemoryCompletionStore(), handoff=spy.handoff)
    assert spy.handoffs == 1
    assert result.handed_off


def test_unknown_completed_names_are_ignored(caplog):
    spy = Spy()
    store = MemoryCompletionStore(["RETIRED_STEP"])
    run_pipeline(steps=spy.steps("A"), store=store, handoff=spy.handoff)
    assert spy.calls == ["A"]
    assert "unknown step RETIRED_STEP" in caplog.text


def test_gap_is_reported_and_later_step_still_skipped(caplog):
    spy = Spy()
    store = MemoryCompletionStore(["A", "C"])
    run_pipeline(steps=spy.steps("A", "B", "C"), store=store, handoff=spy.handoff)
    assert spy.calls == ["B"]
    assert "Step B is pending" in caplog.text


def test_duplicate_names_rejected():
    spy = Spy()
    with pytest.raises(ValueError, match="Duplicate"):
        run_pipeline(steps=spy.steps("A", "A"), store=MemoryCompletionStore())
    assert spy.calls == []


def test_stop_after_skips_handoff():
    spy = Spy()
    store = MemoryCompletionStore()
    result = run_pipeline(steps=spy.steps("A", "B", "C"), store=store, handoff=spy.handoff, stop_after="B")
    assert spy.calls == ["A", "B"]
    assert spy.handoffs == 0
    assert not result.handed_off
    assert result.states["C"] is StepState.PENDING


def test_stop_after_unknown_step():
    with pytest.raises(ValueError):
        run_pipeline(steps=Spy().steps("A"), store=MemoryCompletionStore(), stop_after="Z")


def test_abort_flag_checked_between_steps():
    class Flag:
        requested = False

    flag = Flag()
    calls = []

    def a():
        calls.append("A")
        flag.requested = True

    store = MemoryCompletionStore()
    steps = [StepRecord("A", a), StepRecord("B", lambda: calls.append("B"))]
    with pytest.raises(InstallInterrupted):
        run_pipeline(steps=steps, store=store, handoff=lambda: calls.append("handoff"), abort=flag)
    assert calls == ["A"]
    assert store.completed() == {"A"}


def test_bind_steps_closes_over_context():
    seen = []

    class Step:
        step_id = "X"

        def run(self, ctx):
            seen.append(ctx)

    records = bind_steps([Step()], ctx="the-context")
    records[0].action()
    assert records[0].name == "X"
    assert seen == ["the-context"]


def test_describe_progress():
    spy = Spy()
    progress = describe_progress(spy.steps("A", "B"), MemoryCompletionStore(["A"]))
    assert progress == [("A", StepState.COMPLETED), ("B", StepState.PENDING)]


def test_restore_runs_for_completed_steps_before_pending_work():
    calls = []
    steps = [
        StepRecord("MOUNT", lambda: calls.append("mount"), restore=lambda: calls.append("remount")),
        StepRecord("WRITE", lambda: calls.append("write")),
        StepRecord("CHROOT", lambda: calls.append("chroot")),
    ]
    store = MemoryCompletionStore({"MOUNT", "WRITE"})
    run_pipeline(steps=steps, store=store, handoff=lambda: calls.append("handoff"))
    assert calls == ["remount", "chroot", "handoff"]


def test_restore_skipped_when_nothing_is_pending():
    calls = []
    steps = [StepRecord("MOUNT", lambda: calls.append("mount"), restore=lambda: calls.append("remount"))]
    run_pipeline(steps=steps, store=MemoryCompletionStore({"MOUNT"}), handoff=lambda: calls.append("handoff"))
    assert calls == ["handoff"]


def test_restore_failure_stops_before_pending_steps():
    def broken():
        raise RuntimeError("mount: special device does not exist")

    calls = []
    steps = [
        StepRecord("MOUNT", lambda: None, restore=broken),
        StepRecord("CHROOT", lambda: calls.append("chroot")),
    ]
    store = MemoryCompletionStore({"MOUNT"})
    with pytest.raises(StepActionError) as exc:
        run_pipeline(steps=steps, store=store)
    assert exc.value.step == "MOUNT"
    assert calls == []
    assert store.completed() == {"MOUNT"}


def test_bind_steps_binds_optional_restore():
    class Mounting:
        step_id = "MOUNT"

        def run(self, ctx):
            ctx.append("run")

        def restore(self, ctx):
            ctx.append("restore")

    class Plain:
        step_id = "PLAIN"

        def run(self, ctx):
            ctx.append("plain")

    ctx: list = []
    mounting, plain = bind_steps([Mounting(), Plain()], ctx)
    mounting.restore()
    assert ctx == ["restore"]
    assert plain.restore is None
