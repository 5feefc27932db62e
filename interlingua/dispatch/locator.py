"""Backend locator.

Maps a backend identifier to something runnable, trying in order:

1. the configured ``backend_command`` template, with ``{backend}``
   replaced by the identifier
2. an executable named ``interlingua-<id>`` in the configured local
   backend directories
3. the same executable on ``PATH``
4. only when installation is allowed: the install strategy, followed by
   a second search of (2) and (3)
"""

from __future__ import annotations

import shutil
import subprocess
import sys
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path
from typing import Callable, Iterable, Protocol, runtime_checkable

from interlingua.constants import BACKEND_PLACEHOLDER, BACKEND_PREFIX
from interlingua.dispatch.subprocess_util import format_argv, split_command, subprocess_kwargs
from interlingua.types.errors import BackendNotFoundError
from interlingua.utils.logger import logger
from interlingua.utils.security import is_safe_backend_id

# shutil.which-compatible lookup: (name, path) -> executable or None
PathLookup = Callable[..., "str | None"]


class RunnableOrigin(StrEnum):
    COMMAND_TEMPLATE = "command_template"
    LOCAL = "local"
    PATH = "path"
    INSTALLED = "installed"


@dataclass(frozen=True)
class Runnable:
    """How to start one backend."""

    backend_id: str
    argv: tuple[str, ...]
    origin: RunnableOrigin

    def __str__(self) -> str:
        return format_argv(list(self.argv))


@runtime_checkable
class InstallStrategy(Protocol):
    """Fetches a missing backend from a package registry."""

    def install(self, package: str) -> bool:
        """Install ``package``; return True on success."""
        ...


class PipInstallStrategy:
    """Installs backends with pip into the running interpreter."""

    def __init__(self, python: str | None = None, timeout_seconds: float = 300.0) -> None:
        self.python = python or sys.executable
        self.timeout_seconds = timeout_seconds

    def install(self, package: str) -> bool:
        argv = [self.python, "-m", "pip", "install", package]
        logger.info(f"Installing backend package: {format_argv(argv)}")
        try:
            proc = subprocess.run(
                argv,
                capture_output=True,
                timeout=self.timeout_seconds,
                **subprocess_kwargs(),
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            logger.warning(f"Installing {package} failed: {e}")
            return False
        if proc.returncode != 0:
            logger.warning(
                f"Installing {package} failed with status {proc.returncode}: "
                f"{proc.stderr.decode('utf-8', errors='replace').strip()[-500:]}"
            )
            return False
        return True


class PluginLocator:
    """Resolves backend identifiers to runnables.

    Args:
        command_template: Command with a ``{backend}`` placeholder; wins over any search
        search_dirs: Local directories searched before PATH
        allow_install: Whether the install strategy may be used
        install_strategy: Registry installer (pip by default)
        path_lookup: Executable lookup with shutil.which's signature
    """

    def __init__(
        self,
        command_template: str | None = None,
        search_dirs: Iterable[str | Path] = (),
        allow_install: bool = False,
        install_strategy: InstallStrategy | None = None,
        path_lookup: PathLookup = shutil.which,
    ) -> None:
        self.command_template = command_template
        self.search_dirs = [Path(d) for d in search_dirs]
        self.allow_install = allow_install
        self.install_strategy = install_strategy or PipInstallStrategy()
        self._which = path_lookup

    @classmethod
    def from_configuration(cls, config, install_strategy: InstallStrategy | None = None) -> PluginLocator:
        """Build a locator from an EffectiveConfiguration."""
        return cls(
            command_template=config.backend_command,
            search_dirs=config.backend_dirs,
            allow_install=config.allow_install,
            install_strategy=install_strategy,
        )

    @staticmethod
    def executable_name(backend_id: str) -> str:
        return f"{BACKEND_PREFIX}{backend_id}"

    def _from_template(self, backend_id: str) -> Runnable:
        command = self.command_template.replace(BACKEND_PLACEHOLDER, backend_id)
        argv = split_command(command)
        if not argv:
            raise BackendNotFoundError(backend_id, "backend_command is empty")
        return Runnable(backend_id, tuple(argv), RunnableOrigin.COMMAND_TEMPLATE)

    def _search(self, backend_id: str) -> Runnable | None:
        name = self.executable_name(backend_id)
        for directory in self.search_dirs:
            if not directory.is_dir():
                continue
            found = self._which(name, path=str(directory))
            if found:
                return Runnable(backend_id, (found,), RunnableOrigin.LOCAL)
        found = self._which(name)
        if found:
            return Runnable(backend_id, (found,), RunnableOrigin.PATH)
        return None

    def locate(self, backend_id: str) -> Runnable:
        """Find a runnable for ``backend_id``.

        Raises:
            BackendNotFoundError: If no resolution step yields a runnable
        """
        if not is_safe_backend_id(backend_id):
            raise BackendNotFoundError(backend_id, "backend identifier is not valid")

        if self.command_template:
            runnable = self._from_template(backend_id)
            logger.debug(f"Backend {backend_id} from command template: {runnable}")
            return runnable

        runnable = self._search(backend_id)
        if runnable is not None:
            logger.debug(f"Backend {backend_id} found ({runnable.origin}): {runnable}")
            return runnable

        name = self.executable_name(backend_id)
        if not self.allow_install:
            raise BackendNotFoundError(
                backend_id,
                f"no executable '{name}' in backend directories or on PATH "
                "(set allow_install to fetch it)",
            )

        try:
            installed = self.install_strategy.install(name)
        except Exception as e:
            raise BackendNotFoundError(
                backend_id, f"installing '{name}' raised {type(e).__name__}: {e}", original_error=e
            ) from e
        if not installed:
            raise BackendNotFoundError(backend_id, f"installing '{name}' failed")

        runnable = self._search(backend_id)
        if runnable is None:
            raise BackendNotFoundError(backend_id, f"'{name}' was installed but is still not runnable")
        logger.info(f"Backend {backend_id} installed: {runnable}")
        return Runnable(backend_id, runnable.argv, RunnableOrigin.INSTALLED)
