"""
Phase 1 Tests: Security Utilities

Tests for security utilities including:
- Backend identifier validation
- Manifest path validation
"""

import pytest

from interlingua.utils import (
    get_unsafe_path_reason,
    is_safe_backend_id,
    is_safe_manifest_path,
)


class TestBackendIdentifiers:
    """Tests for backend identifier validation."""

    @pytest.mark.parametrize("backend_id", ["pystub", "java", "py3", "wasm-bindgen", "my_backend.v2"])
    def test_accepts_plain_identifiers(self, backend_id: str):
        """Letters, digits, '-', '_' and '.' are accepted."""
        assert is_safe_backend_id(backend_id) is True

    @pytest.mark.parametrize(
        "backend_id",
        ["", "-rf", "../evil", "a/b", "a\\b", "two words", "x;rm", "a..b", "x" * 65],
    )
    def test_rejects_unsafe_identifiers(self, backend_id: str):
        """Separators, whitespace, traversal and overlong identifiers are rejected."""
        assert is_safe_backend_id(backend_id) is False


class TestManifestPaths:
    """Tests for manifest path validation."""

    @pytest.mark.parametrize(
        "path",
        ["lib.pyi", "src/main/java/Foo.java", "a/b/c.txt", "./relative.txt", "dir/..hidden"],
    )
    def test_accepts_relative_paths(self, path: str):
        """Relative paths inside the destination are safe."""
        assert is_safe_manifest_path(path) is True

    @pytest.mark.parametrize(
        "path, reason",
        [
            ("", "empty"),
            ("/etc/passwd", "absolute"),
            ("C:\\Windows\\x.dll", "absolute"),
            ("C:relative.txt", "drive"),
            ("../outside.txt", "escapes"),
            ("a/../../outside.txt", "escapes"),
            ("a\\..\\..\\outside.txt", "escapes"),
            ("nul\x00byte", "null"),
        ],
    )
    def test_rejects_escaping_paths(self, path: str, reason: str):
        """Absolute, drive-qualified and traversing paths are rejected with a reason."""
        assert is_safe_manifest_path(path) is False
        assert reason in get_unsafe_path_reason(path)
