from __future__ import annotations

import io
import signal
from pathlib import Path

import pytest

from zen_installer.errors import InstallInterrupted
from zen_installer.interrupt import AbortHandler
from zen_installer.pipeline import StepRecord, run_pipeline
from zen_installer.state_store import CompletionLog


def _pipeline(abort, calls, interrupt_in=None):
    def make(name):
        def _run():
            calls.append(name)
            if name == interrupt_in:
                abort(signal.SIGINT, None)
                calls.append(f"{name}-after-signal")

        return _run

    return [StepRecord(n, make(n)) for n in ("A", "B", "C")]


def test_interrupt_leaves_no_partial_mark_and_resume_retries(tmp_path: Path):
    log = CompletionLog(tmp_path / ".install_state")
    cleanups = []
    abort = AbortHandler(cleanup=lambda: cleanups.append("umount"), stream=io.StringIO())
    calls = []

    with pytest.raises(InstallInterrupted):
        run_pipeline(steps=_pipeline(abort, calls, interrupt_in="B"), store=log, handoff=lambda: calls.append("handoff"))

    assert calls == ["A", "B"]
    assert log.completed() == {"A"}
    assert cleanups == ["umount"]
    assert abort.requested

    calls.clear()
    fresh = AbortHandler(stream=io.StringIO())
    run_pipeline(steps=_pipeline(fresh, calls), store=log, handoff=lambda: calls.append("handoff"))
    assert calls == ["B", "C", "handoff"]


def test_notice_tells_operator_how_to_resume():
    out = io.StringIO()
    abort = AbortHandler(resume_hint="zen-installer --state-dir /x", stream=out)
    with pytest.raises(InstallInterrupted):
        abort(signal.SIGINT)
    text = out.getvalue()
    assert "INTERRUPTED" in text
    assert "saved" in text
    assert "sudo zen-installer --state-dir /x" in text


def test_cleanup_failure_is_swallowed():
    def broken():
        raise OSError("umount: target is busy")

    abort = AbortHandler(cleanup=broken, stream=io.StringIO())
    with pytest.raises(InstallInterrupted) as exc:
        abort(signal.SIGTERM)
    assert exc.value.signum == signal.SIGTERM


def test_second_signal_during_cleanup_skips_cleanup():
    runs = []
    abort = AbortHandler(stream=io.StringIO())

    def cleanup():
        runs.append("cleanup")
        abort(signal.SIGINT)

    abort.cleanup = cleanup
    with pytest.raises(InstallInterrupted):
        abort(signal.SIGINT)
    assert runs == ["cleanup"]


def test_step_code_cannot_swallow_interrupt():
    abort = AbortHandler(stream=io.StringIO())
    with pytest.raises(InstallInterrupted):
        try:
            abort(signal.SIGINT)
        except Exception:
            pytest.fail("InstallInterrupted must not be an Exception")


def test_installs_and_restores_signal_handlers():
    before = signal.getsignal(signal.SIGINT)
    with AbortHandler(stream=io.StringIO()) as abort:
        assert signal.getsignal(signal.SIGINT) is abort
        assert signal.getsignal(signal.SIGTERM) is abort
    assert signal.getsignal(signal.SIGINT) is before


def test_real_signal_interrupts_running_step(tmp_path: Path):
    log = CompletionLog(tmp_path / ".install_state")
    calls = []

    def b():
        calls.append("B")
        signal.raise_signal(signal.SIGINT)
        calls.append("B-after-signal")

    steps = [
        StepRecord("A", lambda: calls.append("A")),
        StepRecord("B", b),
        StepRecord("C", lambda: calls.append("C")),
    ]
    with AbortHandler(stream=io.StringIO()) as abort:
        with pytest.raises(InstallInterrupted):
            run_pipeline(steps=steps, store=log, handoff=lambda: None, abort=abort)

    assert calls == ["A", "B"]
    assert log.completed() == {"A"}
