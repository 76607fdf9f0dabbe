# package.py
# Builds .wasm artifacts with the same import/export surface the Bird
# compiler emits for print statements:
#   (import "env" "print_i32" (func $print_i32 (param i32)))
#   (import "env" "print_f64" (func $print_f64 (param f64)))
#   (import "env" "print_str" (func $print_str (param i32)))
#   (memory (export "memory") 1)
#   (export "main" (func $main))
#
# Used to produce fixtures for the harness, and as a small CLI that turns a
# hand-written .wat file into the artifact the harness loads.
#
# Deterministic output: the emitted WAT is derived from the steps only.

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from wasmtime import WasmtimeError, wat2wasm

from .guest import ARTIFACT_PATH

logger = logging.getLogger(__name__)

WASM_PAGE_SIZE = 65536
# Literals start past the first KiB so that no string lives at pointer 0.
DATA_OFFSET = 1024

# --- Print steps --------------------------------------------------------------------

class Step:
    pass

class PrintI32(Step):
    def __init__(self, value: int): self.value = value

class PrintF64(Step):
    def __init__(self, value: float): self.value = float(value)

class PrintStr(Step):
    def __init__(self, text: str): self.text = text

# --- WAT emission -------------------------------------------------------------------

def emit_wat(steps: list[Step]) -> str:
    # Lay out string literals, NUL-terminated, one byte per character.
    mem_offset = DATA_OFFSET
    data_segments = []
    pointers: dict[int, int] = {}  # step index -> ptr

    for i, s in enumerate(steps):
        if isinstance(s, PrintStr):
            if "\x00" in s.text:
                raise ValueError(f"string literal {s.text!r} contains a NUL byte")
            b = s.text.encode("latin-1") + b"\x00"
            pointers[i] = mem_offset
            data_segments.append(f'  (data (i32.const {mem_offset}) "{_wat_bytes(b)}")')
            mem_offset += len(b)

    pages = max(1, -(-mem_offset // WASM_PAGE_SIZE))

    body = []
    for i, s in enumerate(steps):
        if isinstance(s, PrintI32):
            body.append(f"    i32.const {_i32(s.value)}\n    call $print_i32\n")
        elif isinstance(s, PrintF64):
            body.append(f"    f64.const {s.value.hex()}\n    call $print_f64\n")
        elif isinstance(s, PrintStr):
            body.append(f"    i32.const {pointers[i]}\n    call $print_str\n")
        else:
            raise TypeError(f"unknown step {s!r}")

    main_body = "".join(body)

    wat = f"""
(module
  (import "env" "print_i32" (func $print_i32 (param i32)))
  (import "env" "print_f64" (func $print_f64 (param f64)))
  (import "env" "print_str" (func $print_str (param i32)))
  (memory (export "memory") {pages})

{chr(10).join(data_segments)}

  (func $main
{main_body}  )

  (export "main" (func $main))
)
    """.strip()
    return wat

def _i32(value: int) -> int:
    if not -(2 ** 31) <= value < 2 ** 32:
        raise ValueError(f"{value} does not fit in 32 bits")
    return value

def _wat_bytes(b: bytes) -> str:
    # Encode arbitrary bytes into WAT string with escapes
    # Printable ASCII except " and \ are emitted directly, others as \xx
    out = []
    for by in b:
        ch = chr(by)
        if 32 <= by <= 126 and ch not in {'"', '\\'}:
            out.append(ch)
        else:
            out.append(f"\\{by:02x}")
    return "".join(out)

# --- Assembly -----------------------------------------------------------------------

def build(steps: list[Step]) -> bytes:
    return wat2wasm(emit_wat(steps))

def assemble(wat_path: Path, out_path: Path = ARTIFACT_PATH) -> int:
    """Assembles a .wat file into a binary artifact; returns its size."""
    wasm_bytes = wat2wasm(Path(wat_path).read_text(encoding="utf-8"))
    Path(out_path).write_bytes(wasm_bytes)
    logger.info("Wrote %s (%d bytes)", out_path, len(wasm_bytes))
    return len(wasm_bytes)

# --- Main ---------------------------------------------------------------------------

def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Assemble a .wat file into a harness artifact.")
    parser.add_argument("wat_file", type=Path, help="Path to the .wat source")
    parser.add_argument("-o", "--output", type=Path, default=ARTIFACT_PATH,
                        help=f"Where to write the .wasm artifact (default: {ARTIFACT_PATH})")
    args = parser.parse_args(argv)

    try:
        size = assemble(args.wat_file, args.output)
    except (OSError, WasmtimeError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 1
    print(f"Wrote {args.output} ({size} bytes)")
    return 0

if __name__ == "__main__":
    sys.exit(main())
