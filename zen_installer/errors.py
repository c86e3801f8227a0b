from __future__ import annotations

from typing import Optional, Sequence

EXIT_OK = 0
EXIT_INTERRUPTED = 130


class InstallerError(RuntimeError):
    """Base for fatal installer conditions; each maps to a process exit code."""

    exit_code = 1


class ValidationError(InstallerError):
    exit_code = 2

    def __init__(self, failures: Sequence[str]):
        self.failures = list(failures)
        super().__init__("Pre-flight checks failed: " + "; ".join(self.failures))


class ConfirmationDeclined(InstallerError):
    exit_code = 3


class StepActionError(InstallerError):
    exit_code = 4

    def __init__(self, step: str, cause: Optional[BaseException] = None):
        self.step = step
        self.cause = cause
        msg = f"Step {step} failed"
        if cause is not None:
            msg = f"{msg}: {cause}"
        super().__init__(msg)


class PersistenceError(InstallerError):
    exit_code = 5


class InstallInterrupted(BaseException):
    """Raised out of the signal handler; not an Exception so step code can't swallow it."""

    def __init__(self, signum: Optional[int] = None):
        self.signum = signum
        super().__init__(f"interrupted (signal {signum})" if signum is not None else "interrupted")
