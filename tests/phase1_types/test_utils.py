"""
Phase 1 Tests: Shared Utilities

Tests for serialization helpers and build-ID logging.
"""

import io
import math
import threading
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from interlingua.utils import (
    generate_build_id,
    get_build_id,
    is_scalar,
    logger,
    run_with_build_context,
    serialize_to_primitives,
    with_build_id,
)
from interlingua.utils.logger import get_build_context


class Color(Enum):
    RED = "red"


@dataclass
class Sample:
    name: str
    path: Path
    color: Color


class TestSerialization:
    """Tests for serialize_to_primitives."""

    def test_complex_values(self):
        data = {
            "sample": Sample("a", Path("out/x"), Color.RED),
            "raw": b"bo\xffom",
            "items": (1, 2.5, None),
            "bad": math.inf,
        }
        result = serialize_to_primitives(data)
        assert result == {
            "sample": {"name": "a", "path": str(Path("out/x")), "color": "red"},
            "raw": "bo\ufffdom",
            "items": [1, 2.5, None],
            "bad": None,
        }

    def test_to_dict_preferred(self):
        class Custom:
            def to_dict(self):
                return {"k": Color.RED}

        assert serialize_to_primitives(Custom()) == {"k": "red"}

    def test_scalars(self):
        assert is_scalar("x") and is_scalar(1) and is_scalar(None) and is_scalar(False)
        assert not is_scalar([1])


class TestBuildContext:
    """Tests for build-ID propagation."""

    def test_build_id_format(self):
        assert generate_build_id().startswith("build_")
        assert generate_build_id() != generate_build_id()

    def test_scoped_build_id(self):
        assert get_build_id() is None
        with with_build_id("build_test", module_path="geometry") as ctx:
            assert get_build_id() == "build_test"
            assert ctx.module_path == "geometry"
        assert get_build_id() is None

    def test_context_carried_into_threads(self):
        seen = []
        with with_build_id("build_thread"):
            context = get_build_context()
            worker = threading.Thread(
                target=lambda: seen.append(run_with_build_context(context, get_build_id))
            )
            worker.start()
            worker.join()
        assert seen == ["build_thread"]

    def test_log_records_carry_build_id(self):
        stream = io.StringIO()
        handler_id = logger.add(stream, format="{extra[build_id]}{message}", level="INFO")
        try:
            with with_build_id("build_log"):
                logger.info("inside")
            logger.info("outside")
        finally:
            logger.remove(handler_id)
        lines = stream.getvalue().splitlines()
        assert lines == ["[build_log] inside", "outside"]
