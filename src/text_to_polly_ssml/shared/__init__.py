"""Shared utilities for markup to SSML conversion.

This module provides shared data structures, configuration objects, result types,
error classes and logging helpers used across all processing layers.
"""

from .result import (
    DiagnosticEntry,
    DiagnosticSeverity,
    PerformanceMetrics,
)
from .config import (
    ConfigError,
    ConfigValidationError,
    ConverterConfig,
    TokenizationConfig,
    TreeConfig,
    ValidationConfig,
)
from .errors import (
    DuplicateAttributeError,
    InputTooLargeError,
    InvalidCharacterError,
    InvalidAttributeValueError,
    MalformedTagError,
    MismatchedCloseTagError,
    MissingAttributeError,
    NestingTooDeepError,
    SSMLMarkupError,
    UnclosedTagError,
    UnknownAttributeError,
    UnknownTagError,
    UnmatchedCloseTagError,
)
from .logging import (
    CorrelationLogger,
    get_logger,
)

__all__ = [
    "DiagnosticEntry",
    "DiagnosticSeverity",
    "PerformanceMetrics",
    "ConfigError",
    "ConfigValidationError",
    "ConverterConfig",
    "TokenizationConfig",
    "TreeConfig",
    "ValidationConfig",
    "DuplicateAttributeError",
    "InputTooLargeError",
    "InvalidCharacterError",
    "InvalidAttributeValueError",
    "MalformedTagError",
    "MismatchedCloseTagError",
    "MissingAttributeError",
    "NestingTooDeepError",
    "SSMLMarkupError",
    "UnclosedTagError",
    "UnknownAttributeError",
    "UnknownTagError",
    "UnmatchedCloseTagError",
    "CorrelationLogger",
    "get_logger",
]
