from __future__ import annotations

import logging
import signal
import sys
from typing import Any, Callable, Dict, Optional, Sequence, TextIO

from .errors import InstallInterrupted

logger = logging.getLogger(__name__)

DEFAULT_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class AbortHandler:
    """Signal handler that abandons the in-flight step.

    On the first signal it sets ``requested``, tells the operator that
    progress is kept, runs ``cleanup`` (errors are logged and dropped, the
    process is exiting anyway) and raises ``InstallInterrupted`` into
    whatever step was running. Nothing is recorded for that step, so it
    runs again from the start on the next invocation.
    """

    def __init__(
        self,
        cleanup: Optional[Callable[[], None]] = None,
        *,
        resume_hint: str = "zen-installer",
        signals: Sequence[int] = DEFAULT_SIGNALS,
        stream: Optional[TextIO] = None,
    ):
        self.cleanup = cleanup
        self.resume_hint = resume_hint
        self.signals = tuple(signals)
        self.stream = stream
        self.requested = False
        self._cleaning = False
        self._previous: Dict[int, Any] = {}

    def install(self) -> "AbortHandler":
        for signum in self.signals:
            self._previous[signum] = signal.signal(signum, self)
        return self

    def uninstall(self) -> None:
        for signum, previous in self._previous.items():
            signal.signal(signum, previous)
        self._previous.clear()

    def __enter__(self) -> "AbortHandler":
        return self.install()

    def __exit__(self, *exc: Any) -> None:
        self.uninstall()

    def notice(self) -> str:
        return (
            "\n>>> INSTALLATION INTERRUPTED! <<<\n"
            "All progress up to the last completed step has been saved.\n"
            "To resume from where you left off, run the installer again:\n"
            f"    sudo {self.resume_hint}\n"
        )

    def __call__(self, signum: int, frame: Any = None) -> None:
        if self._cleaning:
            raise InstallInterrupted(signum)

        self.requested = True
        self._cleaning = True
        stream = self.stream or sys.stderr
        stream.write(self.notice())
        stream.flush()
        logger.warning("Received signal %s; abandoning current step", signum)

        if self.cleanup is not None:
            try:
                self.cleanup()
            except Exception:
                logger.warning("Cleanup after interrupt failed", exc_info=True)

        raise InstallInterrupted(signum)
