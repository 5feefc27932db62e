"""Python-side backend support and the reference stub backend."""

from interlingua.backends.pystub import StubWriter, generate_stubs
from interlingua.backends.sdk import run_backend

__all__ = ["StubWriter", "generate_stubs", "run_backend"]
