"""Conversion API with progressive disclosure.

Level 1 is a set of module-level functions: ``to_ssml`` returns the SSML
string or raises, while ``parse``, ``parse_string`` and ``parse_file`` never
raise for bad markup and return a ``ParseResult`` instead. Level 2 is the
``SSMLConverter`` class for configured, reusable conversion with usage
statistics.
"""

import threading
import time
from pathlib import Path
from typing import Any, BinaryIO, Dict, Optional, TextIO, Tuple, Union

from text_to_polly_ssml.shared.config import ConverterConfig
from text_to_polly_ssml.shared.errors import SSMLMarkupError
from text_to_polly_ssml.shared.logging import get_logger
from text_to_polly_ssml.shared.result import MS_PER_SECOND, DiagnosticSeverity
from text_to_polly_ssml.tokenization import MarkupTokenizer, TokenizationResult
from text_to_polly_ssml.tree import (
    ParseResult,
    SSMLDocument,
    SSMLSerializer,
    SSMLTreeBuilder,
)

# Type definitions for input data
InputType = Union[str, bytes, BinaryIO, TextIO, Path]

# Constants for API operations
PREVIEW_LENGTH = 100  # Max length for content preview in logs
DEFAULT_ENCODING = "utf-8"


def to_ssml(markup: str, config: Optional[ConverterConfig] = None) -> str:
    """Convert markup to an SSML document string.

    Args:
        markup: Markup text such as ``"${p}Hello${/p}"``
        config: Optional converter configuration

    Returns:
        The complete SSML document

    Raises:
        SSMLMarkupError: Subclass describing the first problem in the markup

    Examples:
        >>> to_ssml("${emphasis|level=strong}now${/emphasis}").endswith(
        ...     '<emphasis level="strong">now</emphasis></speak>')
        True
    """
    return SSMLConverter(config=config).to_ssml(markup)


def parse(input_data: InputType, correlation_id: Optional[str] = None) -> ParseResult:
    """Convert markup from various input sources.

    Strings are treated as markup, bytes are decoded as UTF-8, file-like
    objects are read, and ``Path`` objects are read from disk.

    Args:
        input_data: Markup as string, bytes, file-like object, or Path
        correlation_id: Optional correlation ID for request tracking

    Returns:
        ParseResult with the SSML string on success, or the error on failure

    Examples:
        >>> result = parse(b"${s}Hi${/s}")
        >>> result.success
        True
        >>> parse("${bogus}x${/bogus}").error.kind
        'UnknownTag'
    """
    return SSMLConverter(correlation_id=correlation_id).convert(input_data)


def parse_string(markup: str, correlation_id: Optional[str] = None) -> ParseResult:
    """Convert markup held in a string.

    Args:
        markup: Markup text
        correlation_id: Optional correlation ID for request tracking

    Returns:
        ParseResult with the SSML string on success, or the error on failure
    """
    return SSMLConverter(correlation_id=correlation_id).convert(markup)


def parse_file(
    file_path: Union[str, Path],
    encoding: str = DEFAULT_ENCODING,
    correlation_id: Optional[str] = None
) -> ParseResult:
    """Convert markup read from a file.

    Args:
        file_path: Path to the markup file (string or Path object)
        encoding: Text encoding of the file
        correlation_id: Optional correlation ID for request tracking

    Returns:
        ParseResult; a missing or undecodable file gives a failed result

    Examples:
        >>> result = parse_file("missing.txt")
        >>> result.success
        False
    """
    converter = SSMLConverter(correlation_id=correlation_id)
    return converter.convert(Path(file_path), encoding=encoding)


def _read_input(input_data: InputType, encoding: str) -> str:
    """Obtain markup text from any supported input type.

    Raises:
        OSError: If a file cannot be read
        UnicodeDecodeError: If bytes are not valid in ``encoding``
        TypeError: If the input type is not supported
    """
    if isinstance(input_data, str):
        return input_data
    if isinstance(input_data, bytes):
        return input_data.decode(encoding)
    if isinstance(input_data, Path):
        with input_data.open("rb") as file:
            return file.read().decode(encoding)
    if hasattr(input_data, "read"):
        content = input_data.read()
        if isinstance(content, bytes):
            return content.decode(encoding)
        if isinstance(content, str):
            return content
        raise TypeError(
            f"File-like object returned {type(content).__name__}, expected str or bytes"
        )
    raise TypeError(f"Unsupported input type: {type(input_data).__name__}")


def _create_error_result(
    error: Exception,
    severity: DiagnosticSeverity,
    component: str,
    correlation_id: Optional[str],
    result: Optional[ParseResult] = None
) -> ParseResult:
    """Mark a result as failed and record the error as a diagnostic.

    Args:
        error: Exception that stopped the conversion
        severity: ERROR for input problems, CRITICAL for unexpected failures
        component: Component name for the diagnostic
        correlation_id: Optional correlation ID
        result: Result to update; a new one is created when omitted

    Returns:
        ParseResult with error information and no document content
    """
    result = result or ParseResult(correlation_id=correlation_id)
    result.success = False
    result.error = error
    result.ssml = None
    result.document = SSMLDocument(correlation_id=correlation_id)

    if isinstance(error, SSMLMarkupError):
        position = {
            key: value
            for key, value in (
                ("line", error.line), ("column", error.column), ("offset", error.offset)
            )
            if value is not None
        }
        result.add_diagnostic(
            severity,
            str(error),
            component,
            position=position or None,
            details=error.to_dict(),
        )
    else:
        result.add_diagnostic(
            severity,
            f"{type(error).__name__}: {error}",
            component,
            details={"exception_type": type(error).__name__},
        )
    return result


class SSMLConverter:
    """Configured, reusable markup to SSML converter.

    One converter may be shared between threads; each conversion keeps its
    scan and tree state to itself and statistics updates are locked.

    Attributes:
        config: Current converter configuration
        correlation_id: Correlation ID for request tracking

    Examples:
        Basic usage with default configuration:
        >>> converter = SSMLConverter()
        >>> converter.convert("${p}Hello${/p}").success
        True

        Strict preset:
        >>> converter = SSMLConverter(ConverterConfig.strict())
        >>> converter.convert("${emphasis|level=STRONG}x${/emphasis}").error.kind
        'InvalidAttributeValue'
    """

    def __init__(
        self,
        config: Optional[ConverterConfig] = None,
        correlation_id: Optional[str] = None
    ) -> None:
        """Initialize converter.

        Args:
            config: Converter configuration (defaults to ``ConverterConfig()``)
            correlation_id: Optional correlation ID for request tracking
        """
        self.config = config or ConverterConfig()
        self.correlation_id = correlation_id
        self.logger = get_logger(__name__, correlation_id, "ssml_converter")
        self._create_components()

        # Converter state for multi-conversion scenarios
        self._conversion_count = 0
        self._successful_conversions = 0
        self._total_processing_time = 0.0
        self._error_kinds: Dict[str, int] = {}
        self._stats_lock = threading.Lock()

    def _create_components(self) -> None:
        self._tokenizer = MarkupTokenizer(self.config.tokenization, self.correlation_id)
        self._tree_builder = SSMLTreeBuilder(
            self.config.tree, self.config.validation, self.correlation_id
        )
        self._serializer = SSMLSerializer(self.correlation_id)

    def _render(self, text: str) -> Tuple[TokenizationResult, SSMLDocument, str]:
        """Run tokenizer, tree builder and serializer, raising on bad markup."""
        with self.logger.timed("tokenization"):
            tokenization_result = self._tokenizer.tokenize(text)
        with self.logger.timed("tree_building"):
            document = self._tree_builder.build(tokenization_result)
        with self.logger.timed("serialization"):
            ssml = self._serializer.serialize(document)
        return tokenization_result, document, ssml

    def to_ssml(self, markup: str) -> str:
        """Convert markup to SSML, raising on the first markup error.

        Raises:
            SSMLMarkupError: Subclass describing the first problem found
        """
        start_time = time.perf_counter()
        try:
            _, _, ssml = self._render(markup)
        except SSMLMarkupError as e:
            self._record(False, start_time, e.kind)
            raise
        self._record(True, start_time)
        return ssml

    def convert(
        self, input_data: InputType, encoding: str = DEFAULT_ENCODING
    ) -> ParseResult:
        """Convert markup from any supported input into a ParseResult.

        Markup errors and input problems produce a failed result with an
        ERROR diagnostic; unexpected exceptions are logged with traceback and
        produce a failed result with a CRITICAL diagnostic.

        Args:
            input_data: Markup as string, bytes, file-like object, or Path
            encoding: Encoding used for bytes, binary files and paths

        Returns:
            ParseResult with comprehensive conversion information
        """
        start_time = time.perf_counter()
        result = ParseResult(correlation_id=self.correlation_id)

        try:
            text = _read_input(input_data, encoding)
        except (OSError, UnicodeDecodeError, TypeError) as e:
            self.logger.warning(
                "Unable to read input",
                extra={"input_type": type(input_data).__name__, "error": str(e)},
            )
            _create_error_result(e, DiagnosticSeverity.ERROR, "input_reader",
                                 self.correlation_id, result)
            self._finish(result, start_time)
            return result

        self.logger.debug(
            "Starting conversion",
            extra={
                "content_length": len(text),
                "preview": (
                    text[:PREVIEW_LENGTH] + "..."
                    if len(text) > PREVIEW_LENGTH else text
                ),
            },
        )
        result.performance.characters_processed = len(text)

        try:
            tokenization_result, document, ssml = self._render(text)
        except SSMLMarkupError as e:
            self.logger.info(
                "Markup rejected",
                extra={"error_kind": e.kind, "line": e.line, "column": e.column},
            )
            _create_error_result(e, DiagnosticSeverity.ERROR, "ssml_converter",
                                 self.correlation_id, result)
        except Exception as e:
            self.logger.exception(
                "Conversion failed unexpectedly",
                extra={"content_length": len(text)},
            )
            _create_error_result(e, DiagnosticSeverity.CRITICAL, "ssml_converter",
                                 self.correlation_id, result)
        else:
            result.tokenization_result = tokenization_result
            result.document = document
            result.ssml = ssml
            result.performance.tokens_generated = tokenization_result.token_count
            result.performance.elements_built = document.total_elements
            result.performance.output_length = len(ssml)
            self._add_success_diagnostics(result)

        self._finish(result, start_time)
        return result

    def _add_success_diagnostics(self, result: ParseResult) -> None:
        if result.tokenization_result and result.tokenization_result.fast_path_used:
            result.add_diagnostic(
                DiagnosticSeverity.INFO,
                "Input contains no tags; fast path used",
                "markup_tokenizer",
            )
        for normalization in result.document.normalizations:
            result.add_diagnostic(
                DiagnosticSeverity.INFO,
                f"Value '{normalization.original}' of attribute "
                f"'{normalization.key}' on '{normalization.tag}' rendered as "
                f"'{normalization.canonical}'",
                "tag_validator",
                details={
                    "tag": normalization.tag,
                    "key": normalization.key,
                    "original": normalization.original,
                    "canonical": normalization.canonical,
                },
            )

    def _finish(self, result: ParseResult, start_time: float) -> None:
        error_kind = None
        if result.error is not None:
            error_kind = getattr(result.error, "kind", type(result.error).__name__)
        processing_time = self._record(result.success, start_time, error_kind)
        result.performance.processing_time_ms = processing_time

        self.logger.info(
            "Conversion completed",
            extra={
                "success": result.success,
                "element_count": result.element_count,
                "processing_time_ms": processing_time,
                "total_conversions": self._conversion_count,
            },
        )

    def _record(
        self, success: bool, start_time: float, error_kind: Optional[str] = None
    ) -> float:
        """Update usage statistics and return the elapsed time in milliseconds."""
        processing_time = (time.perf_counter() - start_time) * MS_PER_SECOND
        with self._stats_lock:
            self._conversion_count += 1
            self._total_processing_time += processing_time
            if success:
                self._successful_conversions += 1
            elif error_kind:
                self._error_kinds[error_kind] = self._error_kinds.get(error_kind, 0) + 1
        return processing_time

    def reconfigure(self, config: ConverterConfig) -> None:
        """Replace the configuration and rebuild the pipeline components.

        Args:
            config: New converter configuration
        """
        self.config = config
        self._create_components()
        self.logger.info(
            "Converter reconfigured",
            extra={"config_name": config.name},
        )

    @property
    def statistics(self) -> Dict[str, Any]:
        """Get converter usage statistics.

        Returns:
            Dictionary with conversion counts, timings and error kinds
        """
        with self._stats_lock:
            return {
                "total_conversions": self._conversion_count,
                "successful_conversions": self._successful_conversions,
                "failed_conversions": self._conversion_count - self._successful_conversions,
                "success_rate": (
                    self._successful_conversions / self._conversion_count
                    if self._conversion_count > 0 else 0.0
                ),
                "total_processing_time_ms": self._total_processing_time,
                "average_processing_time_ms": (
                    self._total_processing_time / self._conversion_count
                    if self._conversion_count > 0 else 0.0
                ),
                "errors_by_kind": dict(self._error_kinds),
                "correlation_id": self.correlation_id,
            }

    def reset_statistics(self) -> None:
        """Reset converter usage statistics."""
        with self._stats_lock:
            self._conversion_count = 0
            self._successful_conversions = 0
            self._total_processing_time = 0.0
            self._error_kinds = {}

        self.logger.info("Converter statistics reset")
