"""Tree building, validation and serialization for markup conversion.

Key Components:
    SSMLTreeBuilder: Builds validated document trees from token streams
    TagValidator: Checks tags and attributes against the tag registry
    SSMLSerializer: Renders document trees to SSML inside the Polly envelope
    SSMLDocument: Implicit root holding the top-level nodes
    SSMLElement: Individual element with rendered attributes and children
    ParseResult: Result object with document, SSML, diagnostics and metrics
"""

from .builder import (
    Node,
    ParseResult,
    SSMLDocument,
    SSMLElement,
    SSMLTreeBuilder,
    TextNode,
)
from .registry import (
    TAG_REGISTRY,
    AttributeSpec,
    TagSpec,
    get_tag_spec,
    is_supported_tag,
    supported_tags,
)
from .serializer import SSMLSerializer, escape_attribute, escape_text
from .validation import TagValidator, ValidatedTag, ValueNormalization

__all__ = [
    "AttributeSpec",
    "Node",
    "ParseResult",
    "SSMLDocument",
    "SSMLElement",
    "SSMLSerializer",
    "SSMLTreeBuilder",
    "TAG_REGISTRY",
    "TagSpec",
    "TagValidator",
    "TextNode",
    "ValidatedTag",
    "ValueNormalization",
    "escape_attribute",
    "escape_text",
    "get_tag_spec",
    "is_supported_tag",
    "supported_tags",
]
