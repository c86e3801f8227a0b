from __future__ import annotations

import argparse
import logging
import sys
from typing import Any, List, Optional

from .config_store import ConfigStore
from .context import PipelineContext
from .errors import (
    EXIT_INTERRUPTED,
    EXIT_OK,
    InstallerError,
    InstallInterrupted,
    PersistenceError,
    StepActionError,
    ValidationError,
)
from .interrupt import AbortHandler
from .lib.chroot import umount_recursive
from .logging_utils import configure_logging
from .pipeline import PIPELINE_VERSION, PipelineResult, StepState, bind_steps, describe_progress, run_pipeline
from .preflight import Check, default_checks, run_preflight_checks
from .prompts import ConsolePrompter
from .settings import InstallerSettings, load_settings
from .state_store import CompletionLog, CompletionStore, MemoryCompletionStore
from .steps import (
    ConfigureChrootStep,
    ExtractStage3Step,
    FinalizeReboot,
    GatherConfigurationStep,
    GeneratePhase2Step,
    MountFilesystemsStep,
    PartitionDiskStep,
    PrepareRebootStep,
)

logger = logging.getLogger(__name__)


def build_steps():
    return [
        GatherConfigurationStep(),
        PartitionDiskStep(),
        MountFilesystemsStep(),
        ExtractStage3Step(),
        ConfigureChrootStep(),
        GeneratePhase2Step(),
        PrepareRebootStep(),
    ]


def open_store(settings: InstallerSettings, *, dry_run: bool = False) -> CompletionStore:
    log = CompletionLog(settings.state_path, pipeline_version=PIPELINE_VERSION)
    log.check_version()
    if dry_run:
        # Dry runs see real progress but never record any.
        return MemoryCompletionStore(log.completed())
    return log


def run(
    settings: InstallerSettings,
    *,
    dry_run: bool = False,
    stop_after: Optional[str] = None,
    prompter: Any = None,
    checks: Optional[List[Check]] = None,
) -> PipelineResult:
    """Validate the environment, restore saved configuration and run the pipeline."""

    run_preflight_checks(checks if checks is not None else default_checks(settings, dry_run=dry_run))

    prompter = prompter or ConsolePrompter()
    store = open_store(settings, dry_run=dry_run)
    config_store = ConfigStore(settings.config_path, persist_secrets=settings.persist_secrets, dry_run=dry_run)
    snapshot = config_store.load()

    steps = build_steps()
    if snapshot is None and store.contains_any([steps[0].step_id]):
        raise PersistenceError(
            f"{steps[0].step_id} is recorded but {settings.config_path} is missing; "
            "re-run with --reset to start over"
        )

    if snapshot is not None and snapshot.missing_secrets():
        answers = settings.answers
        if answers.get("user_password"):
            user_pw = str(answers["user_password"])
            root_pw = str(answers.get("root_password") or user_pw)
        else:
            prompter.out("Passwords are not stored between runs; please enter them again.")
            user_pw, root_pw = prompter.ask_secrets(snapshot.username)
        snapshot = snapshot.with_secrets(user_password=user_pw, root_password=root_pw)

    ctx = PipelineContext(
        settings=settings,
        config_store=config_store,
        prompter=prompter,
        dry_run=dry_run,
        snapshot=snapshot,
    )

    abort = AbortHandler(
        cleanup=lambda: umount_recursive(settings.chroot_dir, dry_run=dry_run),
        resume_hint=" ".join(["zen-installer", *sys.argv[1:]]),
    )
    with abort:
        return run_pipeline(
            steps=bind_steps(steps, ctx),
            store=store,
            handoff=FinalizeReboot(ctx),
            abort=abort,
            stop_after=stop_after,
        )


def show_status(settings: InstallerSettings) -> None:
    log = CompletionLog(settings.state_path, pipeline_version=PIPELINE_VERSION)
    records = bind_steps(build_steps(), ctx=None)
    version = log.recorded_version()
    print(f"State: {settings.state_path} (pipeline {version or 'untagged'})")
    for name, state in describe_progress(records, log):
        print(f"  [{'x' if state is StepState.COMPLETED else ' '}] {name}")


def reset(settings: InstallerSettings) -> None:
    CompletionLog(settings.state_path).reset()
    ConfigStore(settings.config_path).clear()
    logger.info("Installer state reset; the next run starts from the beginning")


def main(argv: Optional[list[str]] = None) -> int:
    p = argparse.ArgumentParser(prog="zen-installer", description="Resumable Gentoo installer, phase 1")
    p.add_argument("--settings", default=None, help="Path to installer settings (yaml)")
    p.add_argument(
        "--state-dir",
        default=None,
        help="Directory holding progress and saved configuration; on a live medium, point this at persistent "
        "storage (e.g. a mounted USB stick) so a power loss does not erase it",
    )
    p.add_argument("--chroot-dir", default=None, help="Mount point for the new system")
    p.add_argument("--log", default=None, help="Path to installer log")
    p.add_argument("--dry-run", action="store_true", help="Log commands without running them or recording progress")
    p.add_argument("--yes", action="store_true", help="Skip interactive confirmations")
    p.add_argument("--verbose", action="store_true", help="Show command output on the console as well as in the log")
    p.add_argument(
        "--stop-after",
        default=None,
        choices=[s.step_id for s in build_steps()],
        metavar="STEP",
        help="Stop after step (e.g. FILESYSTEMS_MOUNTED)",
    )
    g = p.add_mutually_exclusive_group()
    g.add_argument("--status", action="store_true", help="Show which steps are complete and exit")
    g.add_argument("--reset", action="store_true", help="Forget all progress and saved configuration")

    args = p.parse_args(argv)

    try:
        settings = load_settings(args.settings)
    except (OSError, ValueError, RuntimeError) as e:
        sys.stderr.write(f"[ERROR] Unable to load settings {args.settings}: {e}\n")
        return InstallerError.exit_code

    settings = settings.with_overrides(
        chroot_dir=args.chroot_dir,
        state_dir=args.state_dir,
        log_path=args.log,
        assume_yes=args.yes,
    )

    if not args.status:
        configure_logging(log_path=settings.log_path, console_level=logging.DEBUG if args.verbose else logging.INFO)

    try:
        if args.status:
            show_status(settings)
            return EXIT_OK
        if args.reset:
            reset(settings)
            return EXIT_OK
        run(settings, dry_run=bool(args.dry_run), stop_after=args.stop_after)
        return EXIT_OK
    except InstallInterrupted:
        return EXIT_INTERRUPTED
    except ValidationError as e:
        for failure in e.failures:
            sys.stderr.write(f"[ERROR] {failure}\n")
        return e.exit_code
    except StepActionError as e:
        logger.exception("Installer failed at step %s", e.step)
        sys.stderr.write(f"[ERROR] {e}\nCompleted steps are saved; fix the problem and run the installer again.\n")
        return e.exit_code
    except InstallerError as e:
        logger.error("%s", e)
        sys.stderr.write(f"[ERROR] {e}\n")
        return e.exit_code


if __name__ == "__main__":
    raise SystemExit(main())
