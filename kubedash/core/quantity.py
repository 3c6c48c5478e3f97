"""
Kubernetes Quantity Parsing

Converts the resource-quantity strings Kubernetes reports for node capacity,
allocatable resources and metrics-server usage into base units:
- CPU: cores (float)
- Memory / ephemeral storage: bytes (float)

Parsing never raises. Empty, negative or malformed input resolves to 0, which
callers treat as "no data".
"""

import math
import re
from typing import Optional

_CPU_SUFFIXES = {
    "n": 1e-9,
    "u": 1e-6,
    "m": 1e-3,
}

_MEMORY_SUFFIXES = {
    "Ki": 1024,
    "Mi": 1024 ** 2,
    "Gi": 1024 ** 3,
}

GIB = 1024 ** 3

_NUMERIC_PREFIX = re.compile(r"[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?")


def _to_float(text: str) -> Optional[float]:
    try:
        value = float(text)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(value) or value < 0:
        return None
    return value


def parse_cpu(quantity: Optional[str]) -> float:
    """
    Parse a CPU quantity into cores.

    Examples:
        >>> parse_cpu("500000000n")
        0.5
        >>> parse_cpu("4")
        4.0
        >>> parse_cpu("250m")
        0.25
        >>> parse_cpu("bogus")
        0.0
    """
    if quantity is None:
        return 0.0
    text = str(quantity).strip()
    if not text:
        return 0.0

    multiplier = 1.0
    suffix = text[-1]
    if suffix in _CPU_SUFFIXES:
        multiplier = _CPU_SUFFIXES[suffix]
        text = text[:-1]

    value = _to_float(text)
    if value is None:
        return 0.0
    return value * multiplier


def parse_memory(quantity: Optional[str]) -> float:
    """
    Parse a memory or storage quantity into bytes.

    Only the binary suffixes Ki, Mi and Gi are scaled; any other suffix (or
    none) parses the numeric part as raw bytes.

    Examples:
        >>> parse_memory("1048576Ki") == 1024 ** 3
        True
        >>> parse_memory("2Gi") == 2 * 1024 ** 3
        True
        >>> parse_memory("100")
        100.0
    """
    if quantity is None:
        return 0.0
    text = str(quantity).strip()
    if not text:
        return 0.0

    for suffix, multiplier in _MEMORY_SUFFIXES.items():
        if text.endswith(suffix):
            value = _to_float(text[:-len(suffix)])
            return value * multiplier if value is not None else 0.0

    value = _to_float(_numeric_prefix(text))
    return value if value is not None else 0.0


def _numeric_prefix(text: str) -> str:
    match = _NUMERIC_PREFIX.match(text)
    return match.group(0) if match else ""


def bytes_to_gib(num_bytes: float) -> int:
    """Whole GiB, rounded down."""
    if num_bytes <= 0:
        return 0
    return int(num_bytes // GIB)
