"""Tests for the conversion API with progressive disclosure.

Tests the module-level conversion functions and the SSMLConverter class,
covering successful conversion, failed results for bad markup and input
problems, diagnostics and usage statistics.
"""

import tempfile
from concurrent.futures import ThreadPoolExecutor
from io import BytesIO, StringIO
from pathlib import Path
from unittest.mock import patch

import pytest

from text_to_polly_ssml.api.parser import (
    SSMLConverter,
    parse,
    parse_file,
    parse_string,
    to_ssml,
)
from text_to_polly_ssml.shared import DiagnosticSeverity
from text_to_polly_ssml.shared.config import ConverterConfig
from text_to_polly_ssml.shared.errors import (
    InputTooLargeError,
    InvalidAttributeValueError,
    InvalidCharacterError,
    MissingAttributeError,
    SSMLMarkupError,
    UnclosedTagError,
    UnknownTagError,
    UnmatchedCloseTagError,
)
from text_to_polly_ssml.tree.builder import ParseResult

ENVELOPE_START = (
    '<?xml version="1.0"?>'
    '<speak xml:lang="en-US" onlangfailure="processorchoice" '
    'xmlns="http://www.w3.org/2001/10/synthesis" '
    'xmlns:xsi="http://www.w3.org/2001/XMLSchema-instance">'
)


class TestToSSML:
    """Test the raising convenience function."""

    def test_prosody_example(self):
        """Test the documented prosody conversion."""
        output = to_ssml(
            "${prosody|volume=+14dB|pitch=+200%|rate=x-fast}coffee coffee coffee${/prosody}"
        )

        assert output == (
            ENVELOPE_START
            + '<prosody volume="+14dB" pitch="+200%" rate="x-fast">'
            + "coffee coffee coffee</prosody></speak>"
        )

    def test_plain_text(self):
        """Test that plain text is escaped and wrapped."""
        assert to_ssml('5 < 10 & "ok"') == ENVELOPE_START + '5 &lt; 10 &amp; "ok"</speak>'

    @pytest.mark.parametrize("markup, error_class", [
        ("${shout}x${/shout}", UnknownTagError),
        ("${prosody|rate=ludicrous-speed}x${/prosody}", InvalidAttributeValueError),
        ("${p}text", UnclosedTagError),
        ("text${/p}", UnmatchedCloseTagError),
        ("${prosody}x${/prosody}", MissingAttributeError),
        ("${amazon:effect}x${/amazon:effect}", MissingAttributeError),
        ("${break|time=\u0665s}${/break}", InvalidAttributeValueError),
        ("${prosody|rate=\uff15\uff10%}x${/prosody}", InvalidAttributeValueError),
        ("bell\x07", InvalidCharacterError),
    ])
    def test_errors_raise(self, markup, error_class):
        """Test that bad markup raises the matching error."""
        with pytest.raises(error_class):
            to_ssml(markup)

    def test_config_is_applied(self):
        """Test passing a configuration."""
        with pytest.raises(InputTooLargeError):
            to_ssml("x" * 11, ConverterConfig().override(tokenization__max_input_length=10))

        with pytest.raises(InvalidAttributeValueError):
            to_ssml("${emphasis|level=Strong}x${/emphasis}", ConverterConfig.strict())


class TestSimpleParsingFunctions:
    """Test Level 1: Simple module-level conversion functions."""

    def test_parse_string_basic(self):
        """Test basic string conversion."""
        result = parse_string("${p}${s}x${/s}${/p}")

        assert isinstance(result, ParseResult)
        assert result.success is True
        assert result.error is None
        assert result.ssml == ENVELOPE_START + "<p><s>x</s></p></speak>"
        assert result.tree.find("s").full_text == "x"
        assert result.element_count == 2
        assert not result.has_errors()

    def test_parse_string_markup_error(self):
        """Test that bad markup gives a failed result instead of raising."""
        result = parse_string("${p}${s}x${/s}")

        assert result.success is False
        assert result.ssml is None
        assert result.element_count == 0
        assert isinstance(result.error, UnclosedTagError)
        assert result.has_errors()

        diagnostic = result.diagnostics[-1]
        assert diagnostic.severity == DiagnosticSeverity.ERROR
        assert diagnostic.component == "ssml_converter"
        assert diagnostic.position == {"line": 1, "column": 1, "offset": 0}
        assert diagnostic.details["kind"] == "UnclosedTag"
        assert diagnostic.details["tag"] == "p"

    def test_parse_string_invalid_character(self):
        """Test that characters XML forbids give a failed result, not bad XML."""
        result = parse_string("${s}a\x01b${/s}")

        assert result.success is False
        assert result.ssml is None
        assert result.error.kind == "InvalidCharacter"
        assert result.diagnostics[0].position == {"line": 1, "column": 6, "offset": 5}

    def test_parse_string_empty(self):
        """Test converting empty input."""
        result = parse_string("")

        assert result.success is True
        assert result.ssml == ENVELOPE_START + "</speak>"

    def test_parse_universal_string(self):
        """Test universal parse function with string input."""
        result = parse("${s}Hi${/s}")

        assert result.success is True
        assert result.tree.find("s") is not None

    def test_parse_universal_bytes(self):
        """Test universal parse function with bytes input."""
        result = parse("${s}Grüße${/s}".encode("utf-8"))

        assert result.success is True
        assert result.tree.text_content == "Grüße"

    def test_parse_invalid_bytes(self):
        """Test that undecodable bytes give a failed result."""
        result = parse(b"\xff\xfe\xfa")

        assert result.success is False
        assert isinstance(result.error, UnicodeDecodeError)
        assert result.diagnostics[0].component == "input_reader"
        assert result.diagnostics[0].message.startswith("UnicodeDecodeError: ")

    def test_parse_universal_unknown_type(self):
        """Test universal parse function with an unsupported type."""
        result = parse(12345)  # type: ignore[arg-type]

        assert result.success is False
        assert isinstance(result.error, TypeError)
        assert "Unsupported input type: int" in result.diagnostics[0].message

    def test_parse_with_file_like_objects(self):
        """Test parse with text and binary file-like objects."""
        assert parse(StringIO("${s}a${/s}")).success
        assert parse(BytesIO(b"${s}a${/s}")).success

    def test_parse_file_basic(self):
        """Test file conversion with temporary file."""
        with tempfile.NamedTemporaryFile(mode='w', suffix='.txt', delete=False,
                                         encoding='utf-8') as f:
            f.write("${p}From a file${/p}\n")
            temp_path = f.name

        try:
            result = parse_file(temp_path)
            assert result.success is True
            assert result.ssml.endswith("<p>From a file</p>\n</speak>")
        finally:
            Path(temp_path).unlink()

    def test_parse_file_encoding_override(self):
        """Test file conversion with an explicit encoding."""
        with tempfile.NamedTemporaryFile(mode='w', encoding='latin-1',
                                         suffix='.txt', delete=False) as f:
            f.write("${s}café${/s}")
            temp_path = Path(f.name)

        try:
            result = parse_file(temp_path, encoding='latin-1')
            assert result.success is True
            assert result.tree.text_content == "café"
        finally:
            temp_path.unlink()

    def test_parse_file_nonexistent(self):
        """Test file conversion with a missing file."""
        result = parse_file("/nonexistent/file.txt")

        assert result.success is False
        assert isinstance(result.error, FileNotFoundError)
        assert result.diagnostics[0].severity == DiagnosticSeverity.ERROR
        assert result.diagnostics[0].component == "input_reader"

    def test_parse_never_raises_for_markup(self):
        """Test that conversion functions report markup errors as results."""
        for markup in ("${", "${p}", "${/p}", "${x}${/x}", "${p}${/s}", "${break}${/break}x${"):
            result = parse_string(markup)
            assert result.success is False
            assert isinstance(result.error, SSMLMarkupError)

    def test_correlation_id(self):
        """Test that the correlation ID reaches the result and diagnostics."""
        result = parse_string("${bogus}x${/bogus}", correlation_id="req-42")

        assert result.correlation_id == "req-42"
        assert result.diagnostics[0].correlation_id == "req-42"


class TestDiagnostics:
    """Test diagnostics recorded on successful conversions."""

    def test_fast_path_diagnostic(self):
        """Test that plain text records the fast path."""
        result = parse_string("No tags here")

        info = result.get_diagnostics_by_severity(DiagnosticSeverity.INFO)
        assert [diag.component for diag in info] == ["markup_tokenizer"]
        assert result.tokenization_result.fast_path_used
        assert result.summary()["fast_path_used"] is True

    def test_normalization_diagnostics(self):
        """Test that canonicalized values are reported."""
        result = parse_string(
            "${amazon:effect|name=whisper}psst${/amazon:effect}"
            "${emphasis|level=STRONG}now${/emphasis}"
        )

        info = result.get_diagnostics_by_severity(DiagnosticSeverity.INFO)
        assert [diag.details["canonical"] for diag in info] == ["whispered", "strong"]
        assert all(diag.component == "tag_validator" for diag in info)
        assert "'whisper'" in info[0].message
        assert result.summary()["normalizations"] == 2

    def test_no_diagnostics_for_exact_values(self):
        """Test that exact spellings produce no diagnostics."""
        result = parse_string("${emphasis|level=strong}now${/emphasis}")

        assert result.diagnostics == []

    def test_performance_metrics(self):
        """Test that performance metrics are filled in."""
        markup = "${p}${s}x${/s}${/p}"
        result = parse_string(markup)

        assert result.performance.characters_processed == len(markup)
        assert result.performance.tokens_generated == 5
        assert result.performance.elements_built == 2
        assert result.performance.output_length == len(result.ssml)
        assert result.processing_time_ms >= 0


class TestSSMLConverter:
    """Test Level 2: the configurable converter class."""

    def test_basic_initialization(self):
        """Test default initialization."""
        converter = SSMLConverter()

        assert converter.config == ConverterConfig()
        assert converter.correlation_id is None

    def test_strict_configuration(self):
        """Test that the strict preset rejects differently cased values."""
        converter = SSMLConverter(ConverterConfig.strict())

        result = converter.convert("${emphasis|level=STRONG}x${/emphasis}")

        assert result.success is False
        assert result.error.kind == "InvalidAttributeValue"

    def test_to_ssml_method(self):
        """Test the raising method."""
        converter = SSMLConverter()

        assert converter.to_ssml("${s}x${/s}").endswith("<s>x</s></speak>")
        with pytest.raises(UnknownTagError):
            converter.to_ssml("${nope}x${/nope}")
        assert converter.statistics["errors_by_kind"] == {"UnknownTag": 1}

    def test_converter_reuse_statistics(self):
        """Test statistics across multiple conversions."""
        converter = SSMLConverter(correlation_id="stats")

        converter.convert("${s}a${/s}")
        converter.convert("${p}b${/p}")
        converter.convert("${p}unclosed")
        converter.convert("${p}${/s}")

        stats = converter.statistics
        assert stats["total_conversions"] == 4
        assert stats["successful_conversions"] == 2
        assert stats["failed_conversions"] == 2
        assert stats["success_rate"] == 0.5
        assert stats["errors_by_kind"] == {"UnclosedTag": 1, "MismatchedCloseTag": 1}
        assert stats["average_processing_time_ms"] >= 0
        assert stats["correlation_id"] == "stats"

    def test_reset_statistics(self):
        """Test resetting statistics."""
        converter = SSMLConverter()
        converter.convert("${s}a${/s}")

        converter.reset_statistics()

        stats = converter.statistics
        assert stats["total_conversions"] == 0
        assert stats["success_rate"] == 0.0
        assert stats["errors_by_kind"] == {}

    def test_reconfigure(self):
        """Test swapping configuration on a live converter."""
        converter = SSMLConverter()
        assert converter.convert("${p}${s}x${/s}${/p}").success

        converter.reconfigure(ConverterConfig().override(tree__max_depth=1))

        result = converter.convert("${p}${s}x${/s}${/p}")
        assert result.error.kind == "NestingTooDeep"
        assert converter.config.tree.max_depth == 1

    def test_unexpected_failure_is_critical(self):
        """Test that internal failures are reported rather than raised."""
        converter = SSMLConverter()

        with patch.object(converter._serializer, "serialize",
                          side_effect=RuntimeError("boom")):
            result = converter.convert("${s}x${/s}")

        assert result.success is False
        assert isinstance(result.error, RuntimeError)
        diagnostic = result.diagnostics[0]
        assert diagnostic.severity == DiagnosticSeverity.CRITICAL
        assert diagnostic.message == "RuntimeError: boom"
        assert converter.statistics["errors_by_kind"] == {"RuntimeError": 1}

    def test_results_are_independent(self):
        """Test that a failure does not leak into the next result."""
        converter = SSMLConverter()
        failed = converter.convert("${p}")
        ok = converter.convert("${p}x${/p}")

        assert not failed.success
        assert ok.success
        assert ok.diagnostics == []

    def test_shared_between_threads(self):
        """Test that concurrent conversions on one converter stay separate."""
        converter = SSMLConverter()
        sources = [
            f"${{p}}${{s}}{'x' * i}${{/s}}${{break|time={i}ms}}${{/break}}${{/p}}"
            for i in range(1, 31)
        ] + [f"${{p}}${{s}}broken {i}${{/p}}" for i in range(10)]
        expected = [parse_string(source).ssml for source in sources]

        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(converter.convert, sources * 4))

        for index, result in enumerate(results):
            assert result.ssml == expected[index % len(sources)]
            if result.success:
                assert result.performance.elements_built == 3
            else:
                assert result.error.kind == "MismatchedCloseTag"
        stats = converter.statistics
        assert stats["total_conversions"] == 160
        assert stats["successful_conversions"] == 120
        assert stats["errors_by_kind"] == {"MismatchedCloseTag": 40}
