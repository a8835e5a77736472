"""Text to Polly SSML.

Converts compact ``${tag|key=value}text${/tag}`` markup into the SSML dialect
accepted by Amazon Polly, validating every tag and attribute against a fixed
registry and rejecting malformed or unbalanced markup.

Progressive API Disclosure:
- Level 1: Simple functions - to_ssml(), parse(), parse_string(), parse_file()
- Level 2: Configured converter - SSMLConverter class
"""

__version__ = "0.1.0"
__author__ = "Text to Polly SSML Team"

# Progressive API disclosure - Level 1: Simple functions
# Progressive API disclosure - Level 2: Advanced configuration
from .api import SSMLConverter, parse, parse_file, parse_string, to_ssml

# Configuration classes for advanced usage
from .shared.config import ConverterConfig

# Error types raised by to_ssml and stored on failed results
from .shared.errors import SSMLMarkupError

# Core result objects for all API levels
from .tree.builder import ParseResult, SSMLDocument, SSMLElement, TextNode

__all__ = [
    # Version and metadata
    "__author__",
    "__version__",

    # Level 1: Simple conversion functions (progressive disclosure entry point)
    "to_ssml",
    "parse",
    "parse_string",
    "parse_file",

    # Level 2: Advanced converter class
    "SSMLConverter",

    # Result objects and data structures
    "ParseResult",
    "SSMLDocument",
    "SSMLElement",
    "TextNode",

    # Configuration and errors
    "ConverterConfig",
    "SSMLMarkupError",
]
