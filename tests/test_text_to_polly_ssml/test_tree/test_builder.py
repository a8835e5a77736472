"""Tests for the tree building engine.

Tests tree construction from token streams, structural error detection and
the navigation helpers of the document tree.
"""

import pytest

from text_to_polly_ssml.shared import DiagnosticSeverity
from text_to_polly_ssml.shared.config import TreeConfig, ValidationConfig
from text_to_polly_ssml.shared.errors import (
    InvalidAttributeValueError,
    MismatchedCloseTagError,
    NestingTooDeepError,
    UnclosedTagError,
    UnknownTagError,
    UnmatchedCloseTagError,
)
from text_to_polly_ssml.tokenization import (
    MarkupTokenizer,
    Token,
    TokenPosition,
    TokenType,
)
from text_to_polly_ssml.tree import (
    ParseResult,
    SSMLDocument,
    SSMLElement,
    SSMLTreeBuilder,
    TextNode,
)


def build(text: str, **config) -> SSMLDocument:
    tokens = MarkupTokenizer().tokenize(text)
    return SSMLTreeBuilder(TreeConfig(**config)).build(tokens)


class TestSSMLElement:
    """Test SSMLElement functionality and navigation methods."""

    def test_element_creation_with_valid_data(self) -> None:
        """Test creating SSMLElement with valid data."""
        element = SSMLElement(name="prosody", attributes={"rate": "slow"})

        assert element.name == "prosody"
        assert element.get_attribute("rate") == "slow"
        assert element.get_attribute("pitch", "default") == "default"
        assert element.has_attribute("rate")
        assert not element.has_attribute("pitch")
        assert element.children == []

    def test_element_creation_with_empty_name_raises_error(self) -> None:
        """Test that an empty name raises ValueError."""
        with pytest.raises(ValueError, match="Element name cannot be empty"):
            SSMLElement(name="")

    def test_namespace_properties(self) -> None:
        """Test local name and prefix of namespaced tags."""
        effect = SSMLElement(name="amazon:effect")
        sentence = SSMLElement(name="s")

        assert effect.local_name == "effect"
        assert effect.namespace_prefix == "amazon"
        assert sentence.local_name == "s"
        assert sentence.namespace_prefix is None

    def test_add_child_type_checking(self) -> None:
        """Test that only nodes can be added as children."""
        element = SSMLElement(name="p")
        element.add_child(TextNode("hi"))

        with pytest.raises(TypeError, match="Child must be"):
            element.add_child("plain string")  # type: ignore[arg-type]

        assert element.full_text == "hi"

    def test_navigation(self) -> None:
        """Test find helpers on a nested element."""
        document = build("${p}${s}one${/s}${s}two ${emphasis}three${/emphasis}${/s}${/p}")
        paragraph = document.children[0]

        assert isinstance(paragraph, SSMLElement)
        assert [child.name for child in paragraph.child_elements] == ["s", "s"]
        assert len(paragraph.find_all("s")) == 2
        assert paragraph.find("emphasis").full_text == "three"
        assert paragraph.find("break") is None
        assert paragraph.full_text == "onetwo three"
        assert [elem.name for elem in paragraph.iter_elements()] == ["s", "s", "emphasis"]

    def test_to_dict(self) -> None:
        """Test dictionary representation."""
        document = build("${prosody|rate=slow}x${/prosody}${break|time=1s}${/break}")

        assert document.children[0].to_dict() == {
            "tag": "prosody",
            "attributes": {"rate": "slow"},
            "children": [{"text": "x"}],
        }
        assert document.children[1].to_dict() == {
            "tag": "break",
            "attributes": {"time": "1s"},
        }


class TestSSMLTreeBuilder:
    """Test tree construction."""

    def test_nested_structure(self) -> None:
        """Test that nesting in the markup becomes nesting in the tree."""
        document = build("${p}${s}x${/s}${/p}")

        assert len(document.children) == 1
        paragraph = document.children[0]
        assert paragraph.name == "p"
        assert len(paragraph.children) == 1
        sentence = paragraph.children[0]
        assert sentence.name == "s"
        assert sentence.children == [TextNode("x", TokenPosition(1, 9, 8))]

    def test_mixed_top_level_content(self) -> None:
        """Test text and elements side by side at the top level."""
        document = build("Hello ${emphasis}world${/emphasis}!")

        kinds = [type(node).__name__ for node in document.children]
        assert kinds == ["TextNode", "SSMLElement", "TextNode"]
        assert document.text_content == "Hello world!"

    def test_plain_text_document(self) -> None:
        """Test input without tags."""
        document = build("Just text")

        assert document.children == [TextNode("Just text", TokenPosition(1, 1, 0))]
        assert document.total_elements == 0
        assert document.max_depth == 0

    def test_empty_document(self) -> None:
        """Test empty input."""
        document = build("")

        assert document.children == []

    def test_element_positions(self) -> None:
        """Test that elements remember where their open tag was."""
        document = build("ab${s}x${/s}")

        assert document.children[1].position == TokenPosition(1, 3, 2)

    def test_attributes_rendered(self) -> None:
        """Test that attributes are stored under rendered names and values."""
        document = build("${lang|lang=fr-FR|onlangfailure=IgnoreText}Bonjour${/lang}")

        element = document.find("lang")
        assert element.attributes == {
            "xml:lang": "fr-FR",
            "onlangfailure": "ignoretext",
        }
        assert len(document.normalizations) == 1
        assert document.normalizations[0].canonical == "ignoretext"

    def test_document_statistics(self) -> None:
        """Test document counting helpers."""
        document = build(
            "${p}${s}${prosody|rate=slow|pitch=low}a${/prosody}${/s}${/p}"
            "${break|time=1s}${/break}"
        )

        assert document.total_elements == 4
        assert document.total_attributes == 3
        assert document.max_depth == 3
        assert document.to_dict()["max_depth"] == 3
        assert [elem.name for elem in document.find_all("p")] == ["p"]

    def test_merge_adjacent_text(self) -> None:
        """Test merging of text tokens in the same container."""
        pos = TokenPosition(1, 1, 0)
        tokens = [
            Token(TokenType.TEXT, "a", pos),
            Token(TokenType.TEXT, "b", TokenPosition(1, 2, 1)),
        ]

        merged = SSMLTreeBuilder().build(tokens)
        separate = SSMLTreeBuilder(TreeConfig(merge_adjacent_text=False)).build(tokens)

        assert merged.children == [TextNode("ab", pos)]
        assert len(separate.children) == 2

    def test_empty_text_tokens_skipped(self) -> None:
        """Test that empty text does not create nodes."""
        tokens = [Token(TokenType.TEXT, "", TokenPosition(1, 1, 0))]

        assert SSMLTreeBuilder().build(tokens).children == []

    def test_builder_keeps_no_state_between_builds(self) -> None:
        """Test that each build starts from an empty element stack."""
        builder = SSMLTreeBuilder()
        first = builder.build(MarkupTokenizer().tokenize("${p}${s}x${/s}${/p}"))
        second = builder.build(MarkupTokenizer().tokenize("${s}y${/s}"))

        assert first.total_elements == 2
        assert second.total_elements == 1
        assert not hasattr(builder, "_element_stack")

    def test_builder_is_reusable_after_error(self) -> None:
        """Test that a failed build does not affect the next one."""
        builder = SSMLTreeBuilder()
        with pytest.raises(UnclosedTagError):
            builder.build(MarkupTokenizer().tokenize("${p}x"))

        document = builder.build(MarkupTokenizer().tokenize("${s}y${/s}"))
        assert [node.name for node in document.children] == ["s"]

    def test_deep_nesting_without_recursion(self) -> None:
        """Test that very deep documents build and walk fine."""
        depth = 3000
        text = "${s}" * depth + "x" + "${/s}" * depth

        document = build(text)

        assert document.max_depth == depth
        assert document.total_elements == depth
        assert document.text_content == "x"


class TestStructuralErrors:
    """Test structural error detection."""

    def test_unclosed_tag(self) -> None:
        """Test that an unclosed tag names the element."""
        with pytest.raises(UnclosedTagError) as exc_info:
            build("${p}text")

        assert exc_info.value.tag == "p"
        assert exc_info.value.offset == 0

    def test_unclosed_reports_innermost(self) -> None:
        """Test that the innermost open element is reported."""
        with pytest.raises(UnclosedTagError) as exc_info:
            build("${p}${s}text")

        assert exc_info.value.tag == "s"
        assert exc_info.value.offset == 4

    def test_unmatched_close_tag(self) -> None:
        """Test a close tag with nothing open."""
        with pytest.raises(UnmatchedCloseTagError) as exc_info:
            build("text${/p}")

        assert exc_info.value.tag == "p"
        assert exc_info.value.offset == 4

    def test_mismatched_close_tag(self) -> None:
        """Test a close tag that does not match the innermost element."""
        with pytest.raises(MismatchedCloseTagError) as exc_info:
            build("${p}${s}x${/p}${/s}")

        assert exc_info.value.expected == "s"
        assert exc_info.value.found == "p"

    def test_first_error_wins(self) -> None:
        """Test that validation errors stop the build immediately."""
        with pytest.raises(UnknownTagError):
            build("${shout}x${/p}")

    def test_invalid_value_inside_nesting(self) -> None:
        """Test validation of nested tags."""
        with pytest.raises(InvalidAttributeValueError):
            build("${p}${prosody|rate=ludicrous-speed}x${/prosody}${/p}")

    def test_nesting_limit(self) -> None:
        """Test the configurable nesting limit."""
        assert build("${p}${s}x${/s}${/p}", max_depth=2).max_depth == 2

        with pytest.raises(NestingTooDeepError) as exc_info:
            build("${p}${s}${emphasis}x${/emphasis}${/s}${/p}", max_depth=2)

        assert exc_info.value.tag == "emphasis"
        assert exc_info.value.limit == 2

    def test_validation_before_nesting_limit(self) -> None:
        """Test that an unknown tag is reported even beyond the limit."""
        with pytest.raises(UnknownTagError):
            build("${p}${bogus}x${/bogus}${/p}", max_depth=1)

    def test_validation_config_passed_through(self) -> None:
        """Test that the builder applies the validation configuration."""
        tokens = MarkupTokenizer().tokenize("${emphasis|level=Strong}x${/emphasis}")
        builder = SSMLTreeBuilder(validation_config=ValidationConfig(case_sensitive_values=True))

        with pytest.raises(InvalidAttributeValueError):
            builder.build(tokens)


class TestParseResult:
    """Test ParseResult helpers."""

    def test_defaults(self) -> None:
        """Test a fresh result."""
        result = ParseResult()

        assert result.success
        assert result.element_count == 0
        assert not result.has_errors()
        result.raise_for_error()

    def test_diagnostics(self) -> None:
        """Test adding and querying diagnostics."""
        result = ParseResult(correlation_id="abc")
        result.add_diagnostic(DiagnosticSeverity.INFO, "note", "tag_validator")
        result.add_diagnostic(DiagnosticSeverity.ERROR, "bad", "ssml_converter")

        assert result.diagnostics[0].correlation_id == "abc"
        assert len(result.get_diagnostics_by_severity(DiagnosticSeverity.INFO)) == 1
        assert result.has_errors()
        summary = result.get_diagnostics_summary()
        assert summary["total_diagnostics"] == 2
        assert summary["diagnostics_by_severity"] == {"INFO": 1, "ERROR": 1}
        assert summary["diagnostics_by_component"]["ssml_converter"] == 1

    def test_raise_for_error(self) -> None:
        """Test re-raising the stored error."""
        result = ParseResult(success=False, error=UnknownTagError("foo"))

        with pytest.raises(UnknownTagError):
            result.raise_for_error()

    def test_summary_includes_error(self) -> None:
        """Test that the summary reports the error kind."""
        markup_failure = ParseResult(success=False, error=UnknownTagError("foo"))
        other_failure = ParseResult(success=False, error=OSError("gone"))

        assert markup_failure.summary()["error"]["kind"] == "UnknownTag"
        assert other_failure.summary()["error"] == {"kind": "OSError", "message": "gone"}
        assert "error" not in ParseResult().summary()

    def test_tree_alias(self) -> None:
        """Test that tree is the document."""
        document = SSMLDocument()

        assert ParseResult(document=document).tree is document
