"""CLI build context -- one build ID per command invocation.

All CLI commands that extract or dispatch should run inside
cli_build_scope() instead of calling with_build_id() directly. This provides:
- Log correlation across the dispatcher's worker threads
- Timing of the whole command at debug level
"""

from __future__ import annotations

import contextlib
import time
from collections.abc import Generator

from interlingua.utils.logger import BuildContext, logger, with_build_id


@contextlib.contextmanager
def cli_build_scope(module_path: str | None = None) -> Generator[BuildContext, None, None]:
    """Context manager providing a BuildContext that logs its duration on exit."""
    with with_build_id(module_path=module_path) as ctx:
        logger.debug(f"Build started for {module_path or 'unknown module'}")
        try:
            yield ctx
        finally:
            elapsed = time.time() - (ctx.start_time or time.time())
            logger.debug(f"Build finished in {elapsed:.2f}s")
