import platform
import shlex
import subprocess


def subprocess_kwargs() -> dict:
    """
    Returns a dictionary of keyword arguments for backend subprocess calls, adding
    platform-specific flags that we want to use consistently.
    """
    kwargs = {}
    if platform.system() == "Windows":
        kwargs["creationflags"] = subprocess.CREATE_NO_WINDOW  # type: ignore
    return kwargs


def split_command(template: str) -> list[str]:
    """Split a command template shell-style, without invoking a shell."""
    return shlex.split(template, posix=platform.system() != "Windows")


def quote_arg(arg: str) -> str:
    """Safely quote a single argument for shell command strings."""
    return shlex.quote(arg)


def format_argv(argv: list[str]) -> str:
    """Render an argument vector for log messages."""
    return " ".join(quote_arg(a) for a in argv)
