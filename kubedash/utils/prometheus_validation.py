"""
PromQL Input Validation

Request parameters (node-exporter instances, endpoint labels, windows and
steps) are interpolated into PromQL templates. Everything is validated here
first so a crafted value cannot close a label matcher or inject an
expression.
"""

import re


class PromQLValidationError(ValueError):
    """Exception raised when PromQL input validation fails."""
    pass


_LABEL_VALUE = re.compile(r'^[a-zA-Z0-9\-_.:/]+$')
_DURATION = re.compile(r'^[0-9]+(ms|s|m|h|d|w|y)$')


def sanitize_label_value(value: str, max_length: int = 255) -> str:
    """
    Validate a Prometheus label value.

    Allowed: alphanumerics, hyphen, underscore, period, colon and slash,
    which covers node names, "IP:port" instances and endpoint paths.

    Raises:
        PromQLValidationError: If the value is empty, too long or contains
            anything else (quotes, braces, whitespace, ...)

    Examples:
        >>> sanitize_label_value("10.0.0.11:9100")
        '10.0.0.11:9100'
        >>> sanitize_label_value("/api/orders")
        '/api/orders'
        >>> sanitize_label_value('node"}')  # Raises PromQLValidationError
    """
    if not value:
        raise PromQLValidationError("Label value cannot be empty")

    if len(value) > max_length:
        raise PromQLValidationError(
            f"Label value exceeds maximum length of {max_length}: {value[:50]}..."
        )

    if not _LABEL_VALUE.match(value):
        raise PromQLValidationError(
            f"Label value contains invalid characters. "
            f"Allowed: alphanumeric, hyphen, underscore, period, colon, slash. "
            f"Got: {value}"
        )

    return value


def validate_step(step: str) -> str:
    """
    Validate a PromQL duration used as a range, window or step ("5m", "1h").

    Raises:
        PromQLValidationError: If the format is invalid
    """
    if not step:
        raise PromQLValidationError("Step value cannot be empty")

    if not _DURATION.match(step):
        raise PromQLValidationError(
            f"Invalid step format. Must match [0-9]+(ms|s|m|h|d|w|y). Got: {step}"
        )

    return step
