"""
Interlingua - Language-neutral interface extraction for library bindings.

Reads the public surface of a library written in an ownership-based,
statically typed language and produces:
- A versioned, serializable interface description (the IDL)
- Diagnostics for every declaration outside the translatable subset
- Generated bindings by dispatching the IDL to out-of-process backends

Each backend is an independent executable named ``interlingua-<id>`` that
reads the IDL on stdin and answers with a manifest of generated files.
"""

__version__ = "0.1.0"
