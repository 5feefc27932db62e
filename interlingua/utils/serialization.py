"""Shared serialization utilities.

Converts configuration values and report objects (dataclasses, enums,
paths, bytes) to JSON-serializable primitives. The IDL model has its own
exact codec in ``interlingua.idl.codec``; this module is for everything
that only needs to be printed or sent as backend configuration.
"""

import math
from dataclasses import asdict, is_dataclass
from enum import Enum
from pathlib import PurePath
from typing import Any

SCALAR_TYPES = (str, int, float, bool)


def serialize_to_primitives(data: Any) -> Any:
    """Convert complex Python types to JSON-serializable primitives.

    Handles:
    - Primitives (str, int, float, bool, None): returned as-is
    - Enum: converted to value
    - Path: converted to its string form
    - bytes: decoded as UTF-8 with replacement
    - dataclass: converted to dict via asdict()
    - dict: recursively serialize keys and values
    - list/tuple: recursively serialize items
    - Objects with to_dict(): use that method
    - Special floats (inf, nan): converted to None

    Args:
        data: Any Python data structure.

    Returns:
        JSON-serializable data (primitives, dicts, lists only).

    Examples:
        >>> from dataclasses import dataclass
        >>> @dataclass
        ... class Point:
        ...     x: float
        ...     y: float
        >>> serialize_to_primitives(Point(1.0, 2.0))
        {'x': 1.0, 'y': 2.0}
    """
    if data is None:
        return None

    if isinstance(data, Enum):
        return data.value

    if isinstance(data, (str, int, bool)):
        return data

    if isinstance(data, float):
        if math.isnan(data) or math.isinf(data):
            return None
        return data

    if isinstance(data, PurePath):
        return str(data)

    if isinstance(data, bytes):
        return data.decode("utf-8", errors="replace")

    if hasattr(data, "to_dict"):
        return serialize_to_primitives(data.to_dict())

    if is_dataclass(data) and not isinstance(data, type):
        return serialize_to_primitives(asdict(data))

    if isinstance(data, dict):
        return {
            str(serialize_to_primitives(k)): serialize_to_primitives(v)
            for k, v in data.items()
        }

    if isinstance(data, (list, tuple, set, frozenset)):
        return [serialize_to_primitives(item) for item in data]

    return str(data)


def is_scalar(value: Any) -> bool:
    """Check whether a value is a scalar allowed in backend configuration."""
    return value is None or isinstance(value, SCALAR_TYPES)

