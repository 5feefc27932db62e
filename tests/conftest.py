"""
Pytest configuration and shared fixtures for Interlingua tests.
"""

from __future__ import annotations

import copy
import json
import shlex
import sys
import textwrap
from pathlib import Path

import pytest

from interlingua.extraction import ModuleSurface

# Scanner output for a small module exercising every item kind
GEOMETRY_SURFACE = {
    "module_path": "geometry",
    "declarations": [
        {
            "kind": "function",
            "name": "greet",
            "parameters": [{"name": "name", "type": "&str"}],
            "returns": "String",
            "location": {"path": "src/lib.rs", "line": 3, "column": 1},
        },
        {
            "kind": "struct",
            "name": "Point",
            "fields": [
                {"name": "x", "type": "f64"},
                {"name": "y", "type": "f64"},
            ],
            "location": {"path": "src/lib.rs", "line": 8, "column": 1},
        },
        {
            "kind": "struct",
            "name": "Counter",
            "fields": [{"name": "count", "type": "u32", "visibility": "private"}],
            "operations": [
                {"name": "new", "returns": "Self"},
                {"name": "increment", "receiver": "&mut self"},
                {"name": "get", "receiver": "&self", "returns": "u32"},
            ],
            "location": {"path": "src/lib.rs", "line": 14, "column": 1},
        },
        {
            "kind": "enum",
            "name": "Color",
            "cases": [{"name": "Red"}, {"name": "Green"}],
            "location": {"path": "src/lib.rs", "line": 30, "column": 1},
        },
        {
            "kind": "function",
            "name": "word_counts",
            "parameters": [{"name": "counts", "type": "impl MapLike<String, u64>"}],
            "returns": "impl VecLike<String>",
            "location": {"path": "src/lib.rs", "line": 36, "column": 1},
        },
        {
            "kind": "function",
            "name": "helper",
            "visibility": "private",
            "location": {"path": "src/lib.rs", "line": 40, "column": 1},
        },
    ],
}


@pytest.fixture
def geometry_data() -> dict:
    """Scanner JSON for the geometry module (a fresh copy per test)."""
    return copy.deepcopy(GEOMETRY_SURFACE)


@pytest.fixture
def geometry_surface(geometry_data) -> ModuleSurface:
    """The geometry module as a ModuleSurface."""
    return ModuleSurface.from_dict(geometry_data)


@pytest.fixture
def surface_file(tmp_path, geometry_data) -> Path:
    """The geometry module written to a scanner output file."""
    path = tmp_path / "surface.json"
    path.write_text(json.dumps(geometry_data), encoding="utf-8")
    return path


# Backend scripts, selected by backend identifier
BACKEND_SCRIPTS = {
    "ok": """
        import json, sys
        request = json.load(sys.stdin)
        json.dump({"generated_files": [
            {"path": request["backend"] + ".txt", "content": request["idl"]["module_path"]}
        ]}, sys.stdout)
    """,
    "echo": """
        import json, sys
        request = json.load(sys.stdin)
        request["argv"] = sys.argv[1:]
        json.dump({"generated_files": [
            {"path": "request.json", "content": json.dumps(request)}
        ]}, sys.stdout)
    """,
    "slow": """
        import sys, time
        sys.stdin.read()
        sys.stderr.write("starting\\n")
        sys.stderr.flush()
        time.sleep(30)
    """,
    "fail": """
        import json, sys
        sys.stdin.read()
        sys.stderr.buffer.write(b"boom\\xff\\n")
        json.dump({"message": "template rendering failed", "origin": "backend"}, sys.stdout)
        sys.exit(3)
    """,
    "garbage": """
        import sys
        sys.stdin.read()
        print("this is not json")
    """,
    "crash": """
        import sys
        sys.stdin.read()
        sys.exit(2)
    """,
}


@pytest.fixture
def backend_dir(tmp_path) -> Path:
    """Directory holding one Python script per test backend identifier."""
    directory = tmp_path / "backends"
    directory.mkdir()
    for backend_id, source in BACKEND_SCRIPTS.items():
        (directory / f"{backend_id}.py").write_text(textwrap.dedent(source), encoding="utf-8")
    (directory / "ok2.py").write_text(textwrap.dedent(BACKEND_SCRIPTS["ok"]), encoding="utf-8")
    return directory


@pytest.fixture
def script_command(backend_dir) -> str:
    """backend_command template running ``<backend_dir>/<id>.py`` with this interpreter."""
    return f"{shlex.quote(sys.executable)} {shlex.quote(str(backend_dir))}/{{backend}}.py"


@pytest.fixture
def pystub_command() -> str:
    """backend_command template running the reference stub backend."""
    return f"{shlex.quote(sys.executable)} -m interlingua.backends.pystub"
