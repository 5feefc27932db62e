"""
Logging utility for Interlingua.

Backend Protocol:
- STDOUT: Reserved for command output (IDL documents, reports)
- STDERR: Used for logging

Backends speak JSON over their own stdout, so the driver never logs to
stdout either; all log records go to stderr.

Build ID Support:
- Uses contextvars to propagate a build ID across worker threads
- Automatically includes the build ID in log output when present
- Use with_build_id() context manager for a scoped build ID
"""

import os
import secrets
import sys
import time
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
from typing import Any, Callable, Generator, TypeVar

from loguru import logger as loguru_logger

# ============================================================================
# Build Context
# ============================================================================


@dataclass
class BuildContext:
    """Build context for log correlation."""

    build_id: str
    module_path: str | None = None
    start_time: float | None = None


# Context variable for build tracking
_build_context: ContextVar[BuildContext | None] = ContextVar(
    "build_context", default=None
)


def generate_build_id() -> str:
    """
    Generate a unique build ID for correlation.

    Format: build_<timestamp_base36>_<random_hex>
    """
    timestamp = int(time.time() * 1000)
    random_part = secrets.token_hex(4)
    return f"build_{base36_encode(timestamp)}_{random_part}"


def base36_encode(number: int) -> str:
    """Encode an integer to base36 string."""
    if number == 0:
        return "0"

    chars = "0123456789abcdefghijklmnopqrstuvwxyz"
    result = []
    while number:
        result.append(chars[number % 36])
        number //= 36
    return "".join(reversed(result))


def get_build_context() -> BuildContext | None:
    """Get the current build context (if any)."""
    return _build_context.get()


def get_build_id() -> str | None:
    """Get the current build ID (if any)."""
    ctx = get_build_context()
    return ctx.build_id if ctx else None


T = TypeVar("T")


@contextmanager
def with_build_id(
    build_id: str | None = None,
    module_path: str | None = None,
) -> Generator[BuildContext, None, None]:
    """
    Context manager for running a build under a build ID.

    All log messages within this context include the build ID.

    Args:
        build_id: The build ID to use (generated when omitted)
        module_path: Optional module being built, for additional context

    Yields:
        The BuildContext object
    """
    context = BuildContext(
        build_id=build_id or generate_build_id(),
        module_path=module_path,
        start_time=time.time(),
    )
    token = _build_context.set(context)
    try:
        yield context
    finally:
        _build_context.reset(token)


def run_with_build_context(
    context: BuildContext,
    fn: Callable[[], T],
) -> T:
    """
    Run a function within a build context.

    Worker threads do not inherit context variables, so the dispatcher
    uses this to carry the build ID into its pool.

    Args:
        context: The build context to activate (may be None)
        fn: The function to run within the context

    Returns:
        The result of the function
    """
    token = _build_context.set(context)
    try:
        return fn()
    finally:
        _build_context.reset(token)


# ============================================================================
# Logger Configuration
# ============================================================================


def is_debug_enabled() -> bool:
    """Check if debug mode is enabled."""
    return os.environ.get("INTERLINGUA_DEBUG", "").lower() == "true"


def _inject_build_id(record: dict[str, Any]) -> None:
    build_id = get_build_id()
    record["extra"]["build_id"] = f"[{build_id}] " if build_id else ""


LOG_FORMAT = (
    "<green>{time:HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
    "{extra[build_id]}<cyan>{name}</cyan> - <level>{message}</level>"
)


def _stderr_sink(message: str) -> None:
    # sys.stderr is looked up per message
    sys.stderr.write(message)


def configure_logging(verbose: bool = False) -> None:
    """Route log output to stderr at WARNING (or DEBUG when verbose)."""
    level = "DEBUG" if verbose or is_debug_enabled() else "WARNING"
    loguru_logger.remove()
    loguru_logger.configure(extra={"build_id": ""})
    loguru_logger.add(_stderr_sink, level=level, format=LOG_FORMAT)


# Export loguru logger for direct use
logger = loguru_logger.patch(_inject_build_id)
