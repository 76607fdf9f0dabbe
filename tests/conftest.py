"""
Pytest fixtures for the harness tests.

Artifacts are assembled from WAT on the fly, so the suite needs nothing
but wasmtime.
"""

import pytest
from wasmtime import wat2wasm

from bird_harness.package import PrintF64, PrintI32, PrintStr, build


@pytest.fixture
def artifact(tmp_path):
    """Writes wasm bytes (or WAT text) to output.wasm under tmp_path."""
    path = tmp_path / "output.wasm"

    def write(source):
        data = wat2wasm(source) if isinstance(source, str) else source
        path.write_bytes(data)
        return path

    return write


@pytest.fixture
def output_path(tmp_path):
    return tmp_path / "output.txt"


@pytest.fixture
def mixed_program():
    """print 42; print 3.0; print "ok";"""
    return build([PrintI32(42), PrintF64(3.0), PrintStr("ok")])
