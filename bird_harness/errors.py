# errors.py
# Failures a harness run can end with. None of them are recoverable within
# a run: the driver stops at the first one and the process exits non-zero.


class HarnessError(Exception):
    """Base class for every fatal run failure."""


class ArtifactNotFound(HarnessError):
    """The compiled .wasm artifact is missing or unreadable."""


class InstantiationError(HarnessError):
    """The module failed validation, compilation or linking."""

    def __init__(self, message: str, unresolved: list[str] | None = None):
        super().__init__(message)
        self.unresolved = unresolved or []


class MissingEntryExport(HarnessError):
    """The module has no callable `main` export."""


class ExecutionTrap(HarnessError):
    """The module trapped while `main` was running."""


class SinkWriteFailure(HarnessError):
    """The output log could not be written."""
