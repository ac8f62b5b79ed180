"""
Error Taxonomy for Offline Evaluation.

Fatal errors (raised and propagated to the caller):
- ConfigurationError: invalid strategy/metric name, cutoff, test fraction
- IOFailure: unreadable input file
- ParseFailure: malformed token in an input file (line/column attached)

Per-user errors (caught by the pipeline, recorded as diagnostics):
- RecommendationFailure: a recommender failed for one user

Non-fatal diagnostics:
- InsufficientDataWarning: data too sparse to honor a guarantee

Undefined metric values are not exceptions: they are represented by
UNDEFINED (NaN) and excluded from every average.
"""

import math
from typing import Any, Optional


UNDEFINED = float('nan')


def is_undefined(value: Optional[float]) -> bool:
    """True if a metric value is missing or NaN."""
    return value is None or math.isnan(value)


class EvaluationError(Exception):
    """Base class for all receval errors."""


class ConfigurationError(EvaluationError, ValueError):
    """Invalid evaluation configuration. Never retried."""


class IOFailure(EvaluationError, OSError):
    """An input file could not be read."""

    def __init__(self, path: Any, reason: str = ''):
        self.path = str(path)
        self.reason = reason
        message = f"Cannot read {self.path}"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class ParseFailure(EvaluationError, ValueError):
    """
    A malformed token was found while parsing an input file.

    Attributes:
        path: File being parsed
        line: 1-based line number (None if unknown)
        column: 0-based column (token) index (None if unknown)
    """

    def __init__(
        self,
        message: str,
        path: Any = None,
        line: Optional[int] = None,
        column: Optional[int] = None
    ):
        self.path = str(path) if path is not None else None
        self.line = line
        self.column = column

        location = []
        if self.path:
            location.append(self.path)
        if line is not None:
            location.append(f"line {line}")
        if column is not None:
            location.append(f"column {column}")
        if location:
            message = f"{', '.join(location)}: {message}"
        super().__init__(message)


class RecommendationFailure(EvaluationError):
    """A recommender could not produce recommendations for one user."""

    def __init__(self, user: Any, reason: str = ''):
        self.user = user
        self.reason = reason
        message = f"Recommendation failed for user {user}"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class InsufficientDataWarning(UserWarning):
    """Too few ratings to honor a splitting or coverage guarantee."""
