# host.py
# Host side of the `env` import namespace a compiled Bird program links
# against:
#   (import "env" "print_i32" (func (param i32)))
#   (import "env" "print_f64" (func (param f64)))
#   (import "env" "print_str" (func (param i32)))
#
# Each call prints exactly one value, i.e. appends exactly one line to the
# run's output log.

import math

from wasmtime import Func, FuncType, Memory, Store, ValType

from .errors import ExecutionTrap
from .sink import OutputSink

U32_MASK = 0xFFFFFFFF


def format_i32(value: int) -> str:
    return str(value)


def format_f64(value: float) -> str:
    """
    Formats a float the way JavaScript's Number#toString does, which is what
    the expected-output fixtures were produced with: shortest round-trip
    digits, no fractional part for integral values, and exponent notation
    only below 1e-6 or from 1e21 up.
    """
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if value == 0:
        return "0"

    sign = "-" if value < 0 else ""
    mantissa, _, exponent = repr(abs(value)).partition("e")
    whole, _, fraction = mantissa.partition(".")

    # value == 0.<digits> * 10**point
    digits = whole + fraction
    point = len(whole) + int(exponent or 0)
    stripped = digits.lstrip("0")
    point -= len(digits) - len(stripped)
    digits = stripped.rstrip("0")
    k = len(digits)

    if k <= point <= 21:
        return sign + digits + "0" * (point - k)
    if 0 < point <= 21:
        return sign + digits[:point] + "." + digits[point:]
    if -6 < point <= 0:
        return sign + "0." + "0" * -point + digits

    e = point - 1
    exp = f"e{'+' if e >= 0 else '-'}{abs(e)}"
    if k == 1:
        return sign + digits + exp
    return sign + digits[0] + "." + digits[1:] + exp


def read_c_string(memory: Memory, store: Store, pointer: int) -> str:
    """
    Reads a NUL-terminated string out of linear memory, one byte at a time.
    Every byte maps to the code point of the same value; there is no
    multi-byte decoding.
    """
    address = pointer & U32_MASK
    size = memory.data_len(store)
    chars = []
    while True:
        if address >= size:
            raise ExecutionTrap(
                f"print_str: unterminated string at {pointer & U32_MASK:#x} "
                f"(memory is {size} bytes)"
            )
        byte = memory.read(store, address, address + 1)[0]
        if byte == 0:
            return "".join(chars)
        chars.append(chr(byte))
        address += 1


class Host:
    """
    Manages the state and implementations of functions provided by the
    host to the Wasm guest.

    `memory` starts out unset: the import functions have to exist before the
    instance does, so the guest's memory is bound here right after
    instantiation succeeds.
    """
    def __init__(self, store: Store, sink: OutputSink):
        self.store = store
        self.sink = sink
        self.memory: Memory | None = None

    def imports(self) -> dict[str, Func]:
        """Creates the Func objects for the `env` namespace, keyed by name."""
        return {
            "print_i32": Func(self.store, FuncType([ValType.i32()], []), self.print_i32),
            "print_f64": Func(self.store, FuncType([ValType.f64()], []), self.print_f64),
            "print_str": Func(self.store, FuncType([ValType.i32()], []), self.print_str),
        }

    def print_i32(self, value: int):
        self.sink.record(format_i32(value))

    def print_f64(self, value: float):
        self.sink.record(format_f64(value))

    def print_str(self, pointer: int):
        if self.memory is None:
            raise ExecutionTrap("print_str: guest memory is not bound")
        self.sink.record(read_c_string(self.memory, self.store, pointer))
