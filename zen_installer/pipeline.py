from __future__ import annotations

import enum
import functools
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Protocol, Sequence, Tuple

from .errors import InstallerError, InstallInterrupted, StepActionError
from .state_store import CompletionStore, mark_done

logger = logging.getLogger(__name__)

# Bump when steps are renamed, removed or inserted before existing ones.
PIPELINE_VERSION = "phase1-v1"

Action = Callable[[], None]


class Step(Protocol):
    """A single idempotent step.

    Steps whose effect does not outlive the process (mounts) may also define
    ``restore(ctx)``; it is called instead of ``run`` when the step is already
    complete but later steps still need that effect.
    """

    step_id: str

    def run(self, ctx: Any) -> None:
        ...


class StepState(enum.Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class StepRecord:
    name: str
    action: Action
    restore: Optional[Action] = None


@dataclass
class PipelineResult:
    ran_steps: List[str] = field(default_factory=list)
    skipped_steps: List[str] = field(default_factory=list)
    states: Dict[str, StepState] = field(default_factory=dict)
    handed_off: bool = False


def bind_steps(steps: Sequence[Step], ctx: Any) -> List[StepRecord]:
    """Close each step over the context so the runner only sees zero-arg actions."""

    records = []
    for s in steps:
        restore = getattr(s, "restore", None)
        records.append(
            StepRecord(
                name=s.step_id,
                action=functools.partial(s.run, ctx),
                restore=functools.partial(restore, ctx) if restore is not None else None,
            )
        )
    return records


def validate_steps(steps: Sequence[StepRecord]) -> None:
    seen = set()
    for s in steps:
        if not s.name:
            raise ValueError("Step name must not be empty")
        if s.name in seen:
            raise ValueError(f"Duplicate step name: {s.name}")
        seen.add(s.name)


def describe_progress(steps: Sequence[StepRecord], store: CompletionStore) -> List[Tuple[str, StepState]]:
    done = store.contains_any(s.name for s in steps)
    return [(s.name, StepState.COMPLETED if s.name in done else StepState.PENDING) for s in steps]


def _warn_about_store(steps: Sequence[StepRecord], store: CompletionStore, done: set) -> None:
    names = [s.name for s in steps]
    for unknown in sorted(store.completed() - set(names)):
        logger.warning("Ignoring completion record for unknown step %s", unknown)

    first_pending = next((n for n in names if n not in done), None)
    if first_pending is not None:
        later_done = [n for n in names[names.index(first_pending) + 1 :] if n in done]
        if later_done:
            logger.warning(
                "Step %s is pending but later steps are already complete (%s); they will be skipped",
                first_pending,
                ", ".join(later_done),
            )


def _call(name: str, fn: Action, result: PipelineResult) -> None:
    try:
        fn()
    except InstallerError:
        result.states[name] = StepState.FAILED
        logger.error("Step %s failed", name)
        raise
    except Exception as e:
        result.states[name] = StepState.FAILED
        logger.error("Step %s failed: %s", name, e)
        raise StepActionError(name, e) from e


def run_pipeline(
    *,
    steps: Sequence[StepRecord],
    store: CompletionStore,
    handoff: Optional[Action] = None,
    abort: Any = None,
    stop_after: Optional[str] = None,
) -> PipelineResult:
    """Run steps in order with resume/idempotency semantics.

    A step whose completion is recorded in ``store`` is skipped without
    calling its action. Otherwise its action runs once; completion is
    recorded only after it returns. Any failure stops the pipeline with
    nothing recorded for the failed step. When every step is complete the
    ``handoff`` action runs exactly once. A skipped step with a ``restore``
    action has it called when a later step is still pending.

    Actions must be safe to repeat: a crash between an action returning and
    its completion being recorded re-runs that action on the next start.
    """

    validate_steps(steps)
    if stop_after is not None and stop_after not in {s.name for s in steps}:
        raise ValueError(f"Unknown step for stop_after: {stop_after}")

    result = PipelineResult(states={s.name: StepState.PENDING for s in steps})
    done = store.contains_any(s.name for s in steps)
    _warn_about_store(steps, store, done)
    pending = [i for i, s in enumerate(steps) if s.name not in done]
    last_pending = pending[-1] if pending else -1

    for index, step in enumerate(steps):
        if abort is not None and abort.requested:
            logger.warning("Abort requested; not starting step %s", step.name)
            raise InstallInterrupted()

        if step.name in done:
            logger.info("Skipping step %s (already completed)", step.name)
            result.skipped_steps.append(step.name)
            result.states[step.name] = StepState.COMPLETED
            if step.restore is not None and index < last_pending:
                logger.info("Restoring %s for the remaining steps", step.name)
                _call(step.name, step.restore, result)
        else:
            logger.info("Running step %s", step.name)
            result.states[step.name] = StepState.RUNNING
            _call(step.name, step.action, result)

            mark_done(store, step.name)
            result.states[step.name] = StepState.COMPLETED
            result.ran_steps.append(step.name)
            logger.info("Completed step %s", step.name)

        if stop_after is not None and step.name == stop_after:
            logger.info("Stopping after %s", stop_after)
            return result

    if abort is not None and abort.requested:
        raise InstallInterrupted()

    if handoff is not None:
        logger.info("All steps complete; handing off")
        handoff()
        result.handed_off = True
    return result
