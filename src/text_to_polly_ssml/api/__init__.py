"""Public conversion API for markup to SSML conversion."""

from .parser import (
    InputType,
    SSMLConverter,
    parse,
    parse_file,
    parse_string,
    to_ssml,
)

__all__ = [
    "InputType",
    "SSMLConverter",
    "parse",
    "parse_file",
    "parse_string",
    "to_ssml",
]
