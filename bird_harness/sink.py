# sink.py
# Append-only output log for a single harness run.
#
# The log is the transcript the test runner diffs against its fixture, so
# every record() is flushed and synced before it returns. A write failure,
# to the log or to the console mirror, is fatal.

import logging
import os
from pathlib import Path

from .errors import SinkWriteFailure

logger = logging.getLogger(__name__)


class OutputSink:
    """
    Owns the output log file for the duration of one run. Every recorded
    value becomes exactly one newline-terminated line, in call order, and is
    mirrored to the console.
    """
    def __init__(self, path: Path):
        self.path = Path(path)
        self.lines = 0

    def reset(self):
        """Creates the log file, or truncates it if it already exists."""
        try:
            with open(self.path, "w", encoding="utf-8"):
                pass
        except OSError as e:
            raise SinkWriteFailure(f"cannot reset output log {self.path}: {e}") from e
        self.lines = 0
        logger.debug("Reset output log %s", self.path)

    def record(self, line: str):
        """Appends `line` to the log, then echoes it to stdout."""
        try:
            with open(self.path, "a", encoding="utf-8") as f:
                f.write(line + "\n")
                f.flush()
                os.fsync(f.fileno())
        except (OSError, UnicodeEncodeError) as e:
            raise SinkWriteFailure(f"cannot append to output log {self.path}: {e}") from e
        try:
            print(line, flush=True)
        except OSError as e:
            raise SinkWriteFailure(f"cannot mirror to console: {e}") from e
        self.lines += 1
