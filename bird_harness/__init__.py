"""
Bird Wasm test harness.

Loads a module produced by the Bird compiler, supplies the `env` print
functions it imports, runs its `main` export and records every printed
value, one per line, into an output log for the test runner to diff.
"""

__version__ = '0.1.0'

from .errors import (
    HarnessError, ArtifactNotFound, InstantiationError,
    MissingEntryExport, ExecutionTrap, SinkWriteFailure,
)
from .sink import OutputSink
from .host import Host, format_f64, format_i32, read_c_string
from .guest import ARTIFACT_PATH, OUTPUT_PATH, RunState, WasmGuest, run
