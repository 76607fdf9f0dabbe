# guest.py
# Runs one compiled Bird program: load output.wasm, link it against the
# `env` host functions, call its `main` export and record everything it
# prints into output.txt.
#
# A run is single-shot:
#   IDLE -> ARTIFACT_LOADED -> INSTANTIATING -> RUNNING -> COMPLETED
# and any failing step ends in FAILED.

from __future__ import annotations

import asyncio
import contextlib
import enum
import logging
from pathlib import Path
from typing import Any

from wasmtime import Engine, Func, Instance, Memory, Module, Store, Trap, WasmtimeError

from .errors import (
    ArtifactNotFound,
    ExecutionTrap,
    InstantiationError,
    MissingEntryExport,
)
from .host import Host
from .sink import OutputSink

logger = logging.getLogger(__name__)

# Owned by the test orchestration, relative to its working directory.
ARTIFACT_PATH = Path("output.wasm")
OUTPUT_PATH = Path("output.txt")

IMPORT_NAMESPACE = "env"
ENTRY_EXPORT = "main"
MEMORY_EXPORT = "memory"


class RunState(enum.Enum):
    IDLE = "idle"
    ARTIFACT_LOADED = "artifact_loaded"
    INSTANTIATING = "instantiating"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class WasmGuest:
    """
    Represents a compiled program under test. It handles loading,
    instantiation, and calling into the Wasm module's exports, with every
    host call recorded through the sink it was given.
    """
    def __init__(self, wasm_file: Path, sink: OutputSink):
        self.state = RunState.IDLE
        self.engine = Engine()
        self.store = Store(self.engine)
        self.module: Module | None = None
        self.instance: Instance | None = None

        # Host-provided functions are bound to this run's sink only
        self.host = Host(self.store, sink)

        with self._step():
            self.wasm_bytes = self._load(Path(wasm_file))
        self.state = RunState.ARTIFACT_LOADED

    def _load(self, wasm_file: Path) -> bytes:
        logger.info("Loading Wasm module from %s", wasm_file)
        try:
            return wasm_file.read_bytes()
        except OSError as e:
            raise ArtifactNotFound(f"cannot read Wasm artifact {wasm_file}: {e}") from e

    async def instantiate(self):
        """
        Compiles the artifact off the event loop, then links it against the
        `env` namespace. Compilation is the run's only suspension point.
        """
        self.state = RunState.INSTANTIATING
        with self._step():
            loop = asyncio.get_running_loop()
            try:
                self.module = await loop.run_in_executor(None, Module, self.engine, self.wasm_bytes)
            except WasmtimeError as e:
                raise InstantiationError(f"invalid Wasm module: {e}") from e

            for name in self.declared_imports():
                logger.debug("  - Import: %s", name)

            imports = self._prepare_imports()

            logger.info("Instantiating module...")
            try:
                self.instance = Instance(self.store, self.module, imports)
            except (WasmtimeError, Trap) as e:
                raise InstantiationError(f"cannot instantiate module: {e}") from e

            # Link the instance's memory to the host
            memory = self._export(MEMORY_EXPORT)
            if isinstance(memory, Memory):
                self.host.memory = memory
            else:
                logger.debug("Module exports no memory; print_str is unavailable")

        self.state = RunState.RUNNING
        logger.info("Successfully instantiated Wasm module.")

    def declared_imports(self) -> list[str]:
        """The imports required by the Wasm module, as `module.name`."""
        if self.module is None:
            return []
        return [f"{imp.module}.{imp.name}" for imp in self.module.imports]

    def _prepare_imports(self) -> list[Func]:
        """Resolves every declared import, in declaration order, from `env`."""
        env = self.host.imports()
        resolved = []
        unresolved = []
        for imp in self.module.imports:
            func = env.get(imp.name) if imp.module == IMPORT_NAMESPACE else None
            if func is None:
                unresolved.append(f"{imp.module}.{imp.name}")
            else:
                resolved.append(func)
        if unresolved:
            raise InstantiationError(
                f"unresolved imports: {', '.join(unresolved)}", unresolved=unresolved
            )
        return resolved

    def _export(self, name: str) -> Any:
        try:
            return self.instance.exports(self.store)[name]
        except KeyError:
            return None

    def call(self, func_name: str, *args: Any) -> Any:
        """
        Calls an exported function from the Wasm module.

        Raises MissingEntryExport if there is no such function export and
        ExecutionTrap if the module traps. Errors raised by the host
        functions themselves come out unchanged.
        """
        if self.instance is None:
            raise RuntimeError("module is not instantiated")

        func = self._export(func_name)
        if not isinstance(func, Func):
            raise MissingEntryExport(f"module has no exported function {func_name!r}")

        logger.debug("Calling exported function %r with args: %s", func_name, args)
        try:
            return func(self.store, *args)
        except (WasmtimeError, Trap) as e:
            raise ExecutionTrap(f"{func_name} trapped: {e}") from e

    def run_main(self):
        """Invokes the entry export and marks the run completed."""
        if self.state is not RunState.RUNNING:
            raise RuntimeError(f"cannot run main from state {self.state.value}")
        with self._step():
            self.call(ENTRY_EXPORT)
        self.state = RunState.COMPLETED

    @property
    def lines(self) -> int:
        return self.host.sink.lines

    @contextlib.contextmanager
    def _step(self):
        try:
            yield
        except BaseException:
            self.state = RunState.FAILED
            raise


async def run(artifact_path: Path = ARTIFACT_PATH, output_path: Path = OUTPUT_PATH) -> WasmGuest:
    """
    Performs one complete harness run and returns the finished guest.

    The output log is truncated before anything else happens, so a failed
    run leaves it holding only what was printed before the failure.
    """
    sink = OutputSink(output_path)
    sink.reset()

    guest = WasmGuest(artifact_path, sink)
    await guest.instantiate()
    guest.run_main()
    logger.info("Run completed: %d line(s) written to %s", guest.lines, output_path)
    return guest
