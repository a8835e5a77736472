"""Tree building for markup to SSML conversion.

This module turns the token stream into a validated document tree. Open tags
are validated against the registry before they are pushed onto the element
stack, close tags must match the innermost open element exactly, and any
unbalanced markup raises immediately; no partial tree is ever returned.
"""

import time
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union

from text_to_polly_ssml.shared.config import TreeConfig, ValidationConfig
from text_to_polly_ssml.shared.errors import (
    MismatchedCloseTagError,
    NestingTooDeepError,
    SSMLMarkupError,
    UnclosedTagError,
    UnmatchedCloseTagError,
)
from text_to_polly_ssml.shared.logging import get_logger
from text_to_polly_ssml.shared.result import (
    MS_PER_SECOND,
    DiagnosticEntry,
    DiagnosticSeverity,
    PerformanceMetrics,
)
from text_to_polly_ssml.tokenization import (
    Token,
    TokenizationResult,
    TokenPosition,
    TokenType,
)
from text_to_polly_ssml.tree.validation import TagValidator, ValueNormalization


@dataclass(frozen=True)
class TextNode:
    """Literal character data, not yet escaped."""

    text: str
    position: Optional[TokenPosition] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert text node to dictionary representation."""
        return {"text": self.text}


@dataclass(eq=False)
class SSMLElement:
    """Represents a single validated SSML element in the document tree.

    Attributes are stored under their rendered XML names in source order.
    """

    name: str
    attributes: Dict[str, str] = field(default_factory=dict)
    children: List["Node"] = field(default_factory=list)
    position: Optional[TokenPosition] = None

    def __post_init__(self) -> None:
        """Validate element values."""
        if not self.name:
            raise ValueError("Element name cannot be empty")

    @property
    def local_name(self) -> str:
        """Get local tag name without namespace prefix."""
        if ":" in self.name:
            return self.name.split(":", 1)[1]
        return self.name

    @property
    def namespace_prefix(self) -> Optional[str]:
        """Get namespace prefix if present."""
        if ":" in self.name:
            return self.name.split(":", 1)[0]
        return None

    @property
    def full_text(self) -> str:
        """Get all text content including text inside child elements."""
        return "".join(
            node.text for node in _iter_nodes(self.children)
            if isinstance(node, TextNode)
        )

    @property
    def child_elements(self) -> List["SSMLElement"]:
        """Direct children that are elements."""
        return [child for child in self.children if isinstance(child, SSMLElement)]

    def add_child(self, child: "Node") -> None:
        """Append a child node."""
        if not isinstance(child, (TextNode, SSMLElement)):
            raise TypeError("Child must be a TextNode or SSMLElement instance")
        self.children.append(child)

    def get_attribute(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Get attribute value with optional default."""
        return self.attributes.get(name, default)

    def has_attribute(self, name: str) -> bool:
        """Check if element has specific attribute."""
        return name in self.attributes

    def iter_elements(self) -> Iterator["SSMLElement"]:
        """Iterate over descendant elements in document order."""
        for node in _iter_nodes(self.children):
            if isinstance(node, SSMLElement):
                yield node

    def find(self, name: str) -> Optional["SSMLElement"]:
        """Find first descendant element with matching tag name."""
        return next((elem for elem in self.iter_elements() if elem.name == name), None)

    def find_all(self, name: str) -> List["SSMLElement"]:
        """Find all descendant elements with matching tag name."""
        return [elem for elem in self.iter_elements() if elem.name == name]

    def to_dict(self) -> Dict[str, Any]:
        """Convert element to dictionary representation."""
        result: Dict[str, Any] = {
            "tag": self.name,
            "attributes": dict(self.attributes),
        }
        if self.children:
            result["children"] = [child.to_dict() for child in self.children]
        return result


Node = Union[TextNode, SSMLElement]


def _iter_nodes(nodes: List[Node]) -> Iterator[Node]:
    """Walk nodes depth-first in document order without recursion."""
    stack = list(reversed(nodes))
    while stack:
        node = stack.pop()
        yield node
        if isinstance(node, SSMLElement):
            stack.extend(reversed(node.children))


@dataclass
class SSMLDocument:
    """Implicit root holding the top-level nodes of a converted document.

    The ``<speak>`` envelope is not part of the tree; the serializer adds it.
    """

    children: List[Node] = field(default_factory=list)
    normalizations: List[ValueNormalization] = field(default_factory=list)
    correlation_id: Optional[str] = None

    def iter_elements(self) -> Iterator[SSMLElement]:
        """Iterate over all elements in document order."""
        for node in _iter_nodes(self.children):
            if isinstance(node, SSMLElement):
                yield node

    def find(self, name: str) -> Optional[SSMLElement]:
        """Find first element with matching tag name."""
        return next((elem for elem in self.iter_elements() if elem.name == name), None)

    def find_all(self, name: str) -> List[SSMLElement]:
        """Find all elements with matching tag name."""
        return [elem for elem in self.iter_elements() if elem.name == name]

    @property
    def total_elements(self) -> int:
        return sum(1 for _ in self.iter_elements())

    @property
    def total_attributes(self) -> int:
        return sum(len(elem.attributes) for elem in self.iter_elements())

    @property
    def max_depth(self) -> int:
        """Deepest element nesting level; top-level elements are at depth 1."""
        deepest = 0
        stack: List[Tuple[Node, int]] = [(node, 1) for node in self.children]
        while stack:
            node, depth = stack.pop()
            if isinstance(node, SSMLElement):
                deepest = max(deepest, depth)
                stack.extend((child, depth + 1) for child in node.children)
        return deepest

    @property
    def text_content(self) -> str:
        """All text in the document with markup removed."""
        return "".join(
            node.text for node in _iter_nodes(self.children)
            if isinstance(node, TextNode)
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert document to dictionary representation."""
        return {
            "total_elements": self.total_elements,
            "total_attributes": self.total_attributes,
            "max_depth": self.max_depth,
            "children": [child.to_dict() for child in self.children],
        }


@dataclass
class ParseResult:
    """Result object for one conversion.

    On success ``ssml`` holds the rendered document. On failure ``error`` holds
    the exception that stopped the conversion and the diagnostics contain a
    matching ERROR (markup problem) or CRITICAL (unexpected failure) entry.
    """

    # Core results
    document: SSMLDocument = field(default_factory=SSMLDocument)
    ssml: Optional[str] = None
    success: bool = True
    error: Optional[Exception] = None

    # Metadata and diagnostics
    diagnostics: List[DiagnosticEntry] = field(default_factory=list)
    performance: PerformanceMetrics = field(default_factory=PerformanceMetrics)

    # Source information
    tokenization_result: Optional[TokenizationResult] = None
    correlation_id: Optional[str] = None

    @property
    def element_count(self) -> int:
        """Get total number of elements in document."""
        return self.document.total_elements if self.document else 0

    @property
    def processing_time_ms(self) -> float:
        """Get processing time in milliseconds."""
        return self.performance.processing_time_ms

    @property
    def tree(self) -> SSMLDocument:
        """Direct access to the document tree.

        Examples:
            >>> result = parse_string("${p}Hello${/p}")
            >>> result.tree.find("p").full_text
            'Hello'
        """
        return self.document

    def add_diagnostic(
        self,
        severity: DiagnosticSeverity,
        message: str,
        component: str,
        position: Optional[Dict[str, int]] = None,
        details: Optional[Dict[str, Any]] = None
    ) -> None:
        """Add diagnostic entry to result."""
        entry = DiagnosticEntry(
            severity=severity,
            message=message,
            component=component,
            position=position,
            details=details,
            correlation_id=self.correlation_id
        )
        self.diagnostics.append(entry)

    def get_diagnostics_by_severity(
        self,
        severity: DiagnosticSeverity
    ) -> List[DiagnosticEntry]:
        """Get diagnostics of specific severity level."""
        return [diag for diag in self.diagnostics if diag.severity == severity]

    def has_errors(self) -> bool:
        """Check if result contains any error diagnostics."""
        return any(
            diag.severity in (DiagnosticSeverity.ERROR, DiagnosticSeverity.CRITICAL)
            for diag in self.diagnostics
        )

    def raise_for_error(self) -> None:
        """Re-raise the error that stopped the conversion, if any."""
        if self.error is not None:
            raise self.error

    def get_diagnostics_summary(self) -> Dict[str, Any]:
        """Get diagnostics counts by severity and component."""
        by_severity: Dict[str, int] = {}
        by_component: Dict[str, int] = {}
        for diagnostic in self.diagnostics:
            by_severity[diagnostic.severity.name] = (
                by_severity.get(diagnostic.severity.name, 0) + 1
            )
            by_component[diagnostic.component] = (
                by_component.get(diagnostic.component, 0) + 1
            )
        return {
            "total_diagnostics": len(self.diagnostics),
            "has_errors": self.has_errors(),
            "diagnostics_by_severity": by_severity,
            "diagnostics_by_component": by_component,
        }

    def summary(self) -> Dict[str, Any]:
        """Get summary statistics for the conversion."""
        summary: Dict[str, Any] = {
            "success": self.success,
            "element_count": self.element_count,
            "attribute_count": self.document.total_attributes if self.document else 0,
            "max_depth": self.document.max_depth if self.document else 0,
            "normalizations": len(self.document.normalizations) if self.document else 0,
            "fast_path_used": (
                self.tokenization_result.fast_path_used
                if self.tokenization_result else False
            ),
            "performance": self.performance.to_dict(),
            "diagnostics_summary": self.get_diagnostics_summary(),
            "correlation_id": self.correlation_id,
        }
        if self.error is not None:
            summary["error"] = (
                self.error.to_dict() if isinstance(self.error, SSMLMarkupError)
                else {"kind": type(self.error).__name__, "message": str(self.error)}
            )
        return summary


class SSMLTreeBuilder:
    """Builds a validated SSML document tree from a token stream.

    Keeps an explicit stack of open elements. An element is attached to its
    parent only when its close tag is seen, so elements carry no parent
    references and recursion depth never depends on input nesting.
    """

    def __init__(
        self,
        config: Optional[TreeConfig] = None,
        validation_config: Optional[ValidationConfig] = None,
        correlation_id: Optional[str] = None,
    ) -> None:
        """Initialize tree builder.

        Args:
            config: Tree building settings
            validation_config: Settings passed to the tag validator
            correlation_id: Optional correlation ID for request tracking
        """
        self.config = config or TreeConfig()
        self.correlation_id = correlation_id
        self.validator = TagValidator(validation_config, correlation_id)
        self.logger = get_logger(__name__, correlation_id, "ssml_tree_builder")

    def build(self, tokens: Union[TokenizationResult, List[Token]]) -> SSMLDocument:
        """Build a document tree from tokens.

        The open-element stack is local to each call, so one builder can be
        shared between threads.

        Args:
            tokens: Either TokenizationResult or list of tokens to process

        Returns:
            SSMLDocument holding the top-level nodes

        Raises:
            SSMLMarkupError: For the first validation or nesting error found
        """
        start_time = time.perf_counter()
        token_list = tokens.tokens if isinstance(tokens, TokenizationResult) else tokens

        stack: List[SSMLElement] = []
        document = SSMLDocument(correlation_id=self.correlation_id)

        for token in token_list:
            if token.type == TokenType.TEXT:
                self._append_text(self._container(document, stack), token)
            elif token.type == TokenType.TAG_OPEN:
                self._open_element(document, stack, token)
            elif token.type == TokenType.TAG_CLOSE:
                self._close_element(document, stack, token)
            else:
                raise ValueError(f"Unsupported token type: {token.type}")

        if stack:
            innermost = stack[-1]
            raise UnclosedTagError(innermost.name, **_location(innermost.position))

        processing_time_ms = (time.perf_counter() - start_time) * MS_PER_SECOND
        self.logger.debug(
            "Tree building completed",
            extra={
                "element_count": document.total_elements,
                "max_depth": document.max_depth,
                "processing_time_ms": processing_time_ms,
            },
        )
        return document

    @staticmethod
    def _container(document: SSMLDocument, stack: List[SSMLElement]) -> List[Node]:
        """Children list that new nodes are appended to."""
        if stack:
            return stack[-1].children
        return document.children

    def _append_text(self, container: List[Node], token: Token) -> None:
        if not token.value:
            return
        if (
            self.config.merge_adjacent_text
            and container
            and isinstance(container[-1], TextNode)
        ):
            previous = container[-1]
            container[-1] = TextNode(previous.text + token.value, previous.position)
        else:
            container.append(TextNode(token.value, token.position))

    def _open_element(
        self, document: SSMLDocument, stack: List[SSMLElement], token: Token
    ) -> None:
        validated = self.validator.validate(token.value, token.attributes, token.position)

        limit = self.config.max_depth
        if limit is not None and len(stack) >= limit:
            raise NestingTooDeepError(token.value, limit, **_location(token.position))

        document.normalizations.extend(validated.normalizations)
        stack.append(
            SSMLElement(
                name=validated.name,
                attributes=validated.attribute_dict(),
                position=token.position,
            )
        )

    def _close_element(
        self, document: SSMLDocument, stack: List[SSMLElement], token: Token
    ) -> None:
        if not stack:
            raise UnmatchedCloseTagError(token.value, **_location(token.position))

        current = stack[-1]
        if current.name != token.value:
            raise MismatchedCloseTagError(
                current.name, token.value, **_location(token.position)
            )

        stack.pop()
        self._container(document, stack).append(current)


def _location(position: Optional[TokenPosition]) -> Dict[str, int]:
    return position.to_dict() if position else {}
