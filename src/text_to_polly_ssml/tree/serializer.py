"""SSML serialization for validated document trees.

Renders a document into a single XML string wrapped in the fixed Polly
envelope. Text and attribute values are escaped here and only here; the tree
always stores unescaped text.
"""

from typing import List, Optional, Sequence, Tuple, Union

from text_to_polly_ssml.shared.logging import get_logger
from text_to_polly_ssml.tree.builder import Node, SSMLDocument, SSMLElement, TextNode

XML_DECLARATION = '<?xml version="1.0"?>'
SPEAK_TAG = "speak"
SPEAK_ATTRIBUTES: Tuple[Tuple[str, str], ...] = (
    ("xml:lang", "en-US"),
    ("onlangfailure", "processorchoice"),
    ("xmlns", "http://www.w3.org/2001/10/synthesis"),
    ("xmlns:xsi", "http://www.w3.org/2001/XMLSchema-instance"),
)


def escape_text(text: str) -> str:
    """Escape character data for use between tags."""
    return (text
            .replace("&", "&amp;")
            .replace("<", "&lt;")
            .replace(">", "&gt;")
            .replace("'", "&apos;"))


def escape_attribute(value: str) -> str:
    """Escape a value for use inside a double-quoted attribute."""
    return (value
            .replace("&", "&amp;")
            .replace("<", "&lt;")
            .replace(">", "&gt;")
            .replace('"', "&quot;"))


def _start_tag(name: str, attributes: Sequence[Tuple[str, str]]) -> str:
    parts = [name]
    parts.extend(f'{key}="{escape_attribute(value)}"' for key, value in attributes)
    return f"<{' '.join(parts)}>"


class SSMLSerializer:
    """Renders SSML documents to strings.

    Elements always get an explicit close tag, even when empty, and no
    whitespace is added anywhere. Rendering uses an explicit work stack so
    deeply nested documents cannot exhaust the interpreter's recursion limit.
    """

    def __init__(self, correlation_id: Optional[str] = None) -> None:
        self.correlation_id = correlation_id
        self.logger = get_logger(__name__, correlation_id, "ssml_serializer")

    def serialize(self, document: SSMLDocument) -> str:
        """Render a document inside the XML declaration and ``<speak>`` envelope."""
        output = "".join((
            XML_DECLARATION,
            _start_tag(SPEAK_TAG, SPEAK_ATTRIBUTES),
            self.render_fragment(document.children),
            f"</{SPEAK_TAG}>",
        ))
        self.logger.debug(
            "Serialization completed", extra={"output_length": len(output)}
        )
        return output

    def render_fragment(self, nodes: Sequence[Node]) -> str:
        """Render nodes without the envelope."""
        parts: List[str] = []
        # Entries are nodes still to render or literal close tags.
        stack: List[Union[Node, str]] = list(reversed(nodes))
        while stack:
            item = stack.pop()
            if isinstance(item, str):
                parts.append(item)
            elif isinstance(item, TextNode):
                parts.append(escape_text(item.text))
            elif isinstance(item, SSMLElement):
                parts.append(_start_tag(item.name, list(item.attributes.items())))
                stack.append(f"</{item.name}>")
                stack.extend(reversed(item.children))
            else:
                raise TypeError(f"Cannot serialize {type(item).__name__}")
        return "".join(parts)
