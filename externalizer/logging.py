"""Logging configuration for Externalizer.

Logs to stderr so stdout stays free for CLI JSON output.
Provides a tqdm progress bar that also serves as the commit progress sink.
"""

import logging
import os
import sys
import time
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from tqdm import tqdm as _tqdm

# Disable with EXTERNALIZER_DISABLE_PROGRESS=1, or automatically when stderr
# is not a TTY (hosts embedding the library, CI).
_DISABLE_PROGRESS = (
    os.getenv("EXTERNALIZER_DISABLE_PROGRESS", "").lower() in ("1", "true", "yes")
    or not sys.stderr.isatty()
)

logger = logging.getLogger("externalizer")
logger.setLevel(os.getenv("EXTERNALIZER_LOG_LEVEL", "INFO").upper())

# Only add handler if not already configured
if not logger.handlers:
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(logging.DEBUG)
    formatter = logging.Formatter(
        "[Externalizer] %(asctime)s %(levelname)s: %(message)s",
        datefmt="%H:%M:%S",
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)


@contextmanager
def log_operation(operation: str, details: dict[str, Any] | None = None) -> Iterator[None]:
    """Log the start and outcome of a session step with its duration.

    Example:
        with log_operation("scan", {"root": root}):
            groups = group_occurrences(...)
    """
    suffix = "".join(f" {k}={v}" for k, v in (details or {}).items())
    logger.info("▶ Starting %s%s", operation, suffix)
    started = time.perf_counter()
    try:
        yield
    except Exception as e:
        logger.error(
            "✗ %s failed after %.2fs: %s", operation, time.perf_counter() - started, e
        )
        raise
    logger.info("✓ Completed %s in %.2fs", operation, time.perf_counter() - started)


# =============================================================================
# Progress reporting (tqdm)
# =============================================================================


class ProgressBar:
    """tqdm bar on stderr, or a single summary log line when bars are off.

    Doubles as a commit progress sink: ``on_phase`` swaps the description and
    ``on_progress`` advances the bar to the reported index.

    Example:
        with ProgressBar(total=len(occurrences), desc="Rewriting") as pbar:
            session.commit(groups, progress=pbar)
    """

    def __init__(self, total: int, desc: str = "Progress", unit: str = "it"):
        self.total = total
        self.desc = desc
        self.unit = unit
        self._bar: Any = None
        self._done = 0
        self._started = 0.0

    def __enter__(self) -> "ProgressBar":
        self._started = time.perf_counter()
        if not _DISABLE_PROGRESS:
            self._bar = _tqdm(
                total=self.total,
                desc=f"  {self.desc}",
                unit=self.unit,
                file=sys.stderr,
                ncols=80,
                leave=False,
            )
        return self

    def __exit__(self, *exc_info: Any) -> None:
        if self._bar is not None:
            self._bar.close()
            return
        logger.info(
            "  %s: %d/%d %s in %.2fs",
            self.desc,
            self._done,
            self.total,
            self.unit,
            time.perf_counter() - self._started,
        )

    def update(self, n: int = 1) -> None:
        self._done += n
        if self._bar is not None:
            self._bar.update(n)

    def on_phase(self, label: str) -> None:
        self.desc = label
        if self._bar is not None:
            self._bar.set_description(f"  {label}")

    def on_progress(self, current: int, total: int, label: str) -> None:
        if total != self.total:
            self.total = total
            if self._bar is not None:
                self._bar.total = total
        self.update(max(current - self._done, 0))
        if self._bar is not None:
            self._bar.set_postfix_str(label, refresh=False)
