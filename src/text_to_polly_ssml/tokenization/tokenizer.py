"""Markup tokenization with a position-tracking state machine.

This module converts ``${tag|key=value}text${/tag}`` markup into a flat stream
of TEXT, TAG_OPEN and TAG_CLOSE tokens. The tokenizer is strict: malformed tag
syntax raises ``MalformedTagError`` pointing at the ``${`` that started the
offending construct, and characters that XML 1.0 cannot represent raise
``InvalidCharacterError`` at the character itself.
"""

import re
import time
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Dict, Iterator, List, Optional, Tuple

from text_to_polly_ssml.shared.config import TokenizationConfig
from text_to_polly_ssml.shared.errors import (
    InputTooLargeError,
    InvalidCharacterError,
    MalformedTagError,
)
from text_to_polly_ssml.shared.logging import CorrelationLogger, get_logger
from text_to_polly_ssml.shared.result import MS_PER_SECOND

TAG_OPEN_MARKER = "${"
TEXT_ESCAPE = "$\\{"
VALUE_ESCAPABLE = "|}\\"
NAME_EXTRA_CHARS = frozenset(":_-")

# Characters outside the XML 1.0 Char production
INVALID_XML_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\ud800-\udfff\ufffe\uffff]")


class TokenType(Enum):
    """Markup token types produced by the tokenizer."""

    TEXT = auto()       # Literal character data between tags
    TAG_OPEN = auto()   # ${name|key=value...}
    TAG_CLOSE = auto()  # ${/name}


class TokenizerState(Enum):
    """State machine states for markup tokenization."""

    TEXT_CONTENT = auto()       # Processing text content
    DOLLAR = auto()             # Seen '$' in text, may start a tag
    DOLLAR_ESCAPE = auto()      # Seen '$\' in text, may be an escaped '${'
    TAG_OPENING = auto()        # Just after '${'
    TAG_NAME = auto()           # Reading an open tag name
    TAG_CLOSING = auto()        # Reading a close tag name after '${/'
    ATTR_NAME = auto()          # Reading an attribute key
    ATTR_VALUE = auto()         # Reading an attribute value
    ATTR_VALUE_ESCAPE = auto()  # Just after a backslash inside a value


@dataclass(frozen=True)
class TokenPosition:
    """Position information for markup tokens."""

    line: int
    column: int
    offset: int

    def __post_init__(self) -> None:
        """Validate position values."""
        if self.line < 1:
            raise ValueError("Line number must be >= 1")
        if self.column < 1:
            raise ValueError("Column number must be >= 1")
        if self.offset < 0:
            raise ValueError("Offset must be >= 0")

    def to_dict(self) -> Dict[str, int]:
        """Convert position to dictionary representation."""
        return {"line": self.line, "column": self.column, "offset": self.offset}


@dataclass
class Token:
    """Represents a single markup token with its source position."""

    type: TokenType
    value: str
    position: TokenPosition
    attributes: List[Tuple[str, str]] = field(default_factory=list)
    raw_content: Optional[str] = None

    @property
    def is_tag(self) -> bool:
        """Check if this token is an open or close tag."""
        return self.type in (TokenType.TAG_OPEN, TokenType.TAG_CLOSE)


@dataclass
class TokenizationResult:
    """Result of tokenization with timing metadata."""

    tokens: List[Token]
    fast_path_used: bool = False
    character_count: int = 0
    processing_time_ms: float = 0.0

    @property
    def token_count(self) -> int:
        """Get the total number of tokens."""
        return len(self.tokens)

    def count_by_type(self) -> Dict[str, int]:
        """Count tokens grouped by token type name."""
        counts = {token_type.name: 0 for token_type in TokenType}
        for token in self.tokens:
            counts[token.type.name] += 1
        return counts


class MarkupTokenizer:
    """Strict tokenizer for ``${...}`` markup.

    The tokenizer itself only holds configuration. Every call scans with its
    own ``_MarkupScanner``, so one instance can serve interleaved generators
    and concurrent threads.
    """

    def __init__(
        self,
        config: Optional[TokenizationConfig] = None,
        correlation_id: Optional[str] = None,
    ) -> None:
        """Initialize the markup tokenizer.

        Args:
            config: Tokenization settings, defaults are used when omitted
            correlation_id: Optional correlation ID for tracking requests
        """
        self.config = config or TokenizationConfig()
        self.correlation_id = correlation_id
        self.logger = get_logger(__name__, correlation_id, "markup_tokenizer")

    def tokenize(self, text: str) -> TokenizationResult:
        """Tokenize markup text into a list of tokens.

        Args:
            text: Markup input

        Returns:
            TokenizationResult with tokens and timing metadata

        Raises:
            MalformedTagError: If tag syntax is invalid
            InvalidCharacterError: If the input holds a character XML forbids
            InputTooLargeError: If the input exceeds ``max_input_length``
        """
        start_time = time.perf_counter()
        self.logger.debug(
            "Starting tokenization", extra={"char_count": len(text)}
        )

        fast_path = self._can_use_fast_path(text)
        tokens = list(self.iter_tokens(text))
        processing_time_ms = (time.perf_counter() - start_time) * MS_PER_SECOND

        result = TokenizationResult(
            tokens=tokens,
            fast_path_used=fast_path,
            character_count=len(text),
            processing_time_ms=processing_time_ms,
        )
        self.logger.debug(
            "Tokenization completed",
            extra={
                "token_count": result.token_count,
                "fast_path_used": fast_path,
                "processing_time_ms": processing_time_ms,
            },
        )
        return result

    def iter_tokens(self, text: str) -> Iterator[Token]:
        """Yield tokens from markup text one at a time.

        Args:
            text: Markup input

        Yields:
            Tokens in source order

        Raises:
            MalformedTagError: If tag syntax is invalid
            InvalidCharacterError: If the input holds a character XML forbids
            InputTooLargeError: If the input exceeds ``max_input_length``
        """
        limit = self.config.max_input_length
        if limit is not None and len(text) > limit:
            raise InputTooLargeError(len(text), limit)

        if self._can_use_fast_path(text):
            if text:
                yield Token(
                    TokenType.TEXT, text, TokenPosition(1, 1, 0), raw_content=text
                )
            return

        yield from _MarkupScanner(text, self.config, self.logger).scan()

    def _can_use_fast_path(self, text: str) -> bool:
        """Check whether the input is plain text needing no state machine."""
        if not self.config.enable_fast_path:
            return False
        if TAG_OPEN_MARKER in text:
            return False
        if self.config.enable_text_escapes and TEXT_ESCAPE in text:
            return False
        return INVALID_XML_CHARS.search(text) is None


class _MarkupScanner:
    """Scan state for a single tokenization call.

    Processes input left to right, consuming at least one character per
    step, so scanning always finishes in time linear in the input. Runs of
    plain text are consumed in bulk; tag syntax is handled one character at
    a time by the state machine.
    """

    def __init__(
        self, text: str, config: TokenizationConfig, logger: CorrelationLogger
    ) -> None:
        self.text = text
        self.config = config
        self.logger = logger
        self.state = TokenizerState.TEXT_CONTENT
        self.current_position = TokenPosition(1, 1, 0)
        self.token_start = self.current_position
        self.text_buffer: List[str] = []
        self.text_start: Optional[TokenPosition] = None
        self.tag_name: List[str] = []
        self.attr_name: List[str] = []
        self.attr_value: List[str] = []
        self.attributes: List[Tuple[str, str]] = []
        self.pending: List[Token] = []

    def scan(self) -> Iterator[Token]:
        """Yield tokens for the whole input."""
        text = self.text
        index = 0
        length = len(text)
        while index < length:
            if self.state == TokenizerState.TEXT_CONTENT:
                index = self._consume_text_run(text, index)
            else:
                char = text[index]
                if INVALID_XML_CHARS.match(char):
                    self._invalid_character(char)
                self._process_character(char)
                self._update_position(char)
                index += 1
            if self.pending:
                yield from self.pending
                self.pending.clear()

        self._finish()
        yield from self.pending
        self.pending.clear()

    def _consume_text_run(self, text: str, index: int) -> int:
        """Consume plain text up to the next '$' and return the new index."""
        next_dollar = text.find("$", index)
        end = len(text) if next_dollar == -1 else next_dollar
        if end > index:
            chunk = text[index:end]
            invalid = INVALID_XML_CHARS.search(chunk)
            if invalid:
                self._advance(chunk[:invalid.start()])
                self._invalid_character(invalid.group())
            self._append_text(chunk)
            self._advance(chunk)
        if next_dollar != -1:
            self._start_token()
            self.state = TokenizerState.DOLLAR
            self._update_position("$")
            return next_dollar + 1
        return end

    def _process_character(self, char: str) -> None:
        """Process a single character through the state machine."""
        if self.state == TokenizerState.DOLLAR:
            self._process_dollar(char)
        elif self.state == TokenizerState.DOLLAR_ESCAPE:
            self._process_dollar_escape(char)
        elif self.state == TokenizerState.TAG_OPENING:
            self._process_tag_opening(char)
        elif self.state == TokenizerState.TAG_NAME:
            self._process_tag_name(char)
        elif self.state == TokenizerState.TAG_CLOSING:
            self._process_tag_closing(char)
        elif self.state == TokenizerState.ATTR_NAME:
            self._process_attr_name(char)
        elif self.state == TokenizerState.ATTR_VALUE:
            self._process_attr_value(char)
        elif self.state == TokenizerState.ATTR_VALUE_ESCAPE:
            self._process_attr_value_escape(char)
        else:
            self._process_text_content(char)

    def _update_position(self, char: str) -> None:
        """Advance position tracking past one character."""
        if char == "\n":
            self.current_position = TokenPosition(
                self.current_position.line + 1,
                1,
                self.current_position.offset + 1,
            )
        else:
            self.current_position = TokenPosition(
                self.current_position.line,
                self.current_position.column + 1,
                self.current_position.offset + 1,
            )

    def _advance(self, chunk: str) -> None:
        """Advance position tracking past a run of characters."""
        newlines = chunk.count("\n")
        if newlines:
            column = len(chunk) - chunk.rfind("\n")
            line = self.current_position.line + newlines
        else:
            column = self.current_position.column + len(chunk)
            line = self.current_position.line
        self.current_position = TokenPosition(
            line, column, self.current_position.offset + len(chunk)
        )

    def _process_text_content(self, char: str) -> None:
        """Process character in text content state."""
        if char == "$":
            self._start_token()
            self.state = TokenizerState.DOLLAR
        else:
            self._append_text(char)

    def _process_dollar(self, char: str) -> None:
        """Decide whether a '$' in text starts a tag."""
        if char == "{":
            self._flush_text()
            self.state = TokenizerState.TAG_OPENING
        elif char == "\\" and self.config.enable_text_escapes:
            self.state = TokenizerState.DOLLAR_ESCAPE
        else:
            self._append_text("$", self.token_start)
            self.state = TokenizerState.TEXT_CONTENT
            self._process_text_content(char)

    def _process_dollar_escape(self, char: str) -> None:
        """Resolve '$\\{' into a literal '${'."""
        self.state = TokenizerState.TEXT_CONTENT
        if char == "{":
            self._append_text("${", self.token_start)
        else:
            self._append_text("$\\", self.token_start)
            self._process_text_content(char)

    def _process_tag_opening(self, char: str) -> None:
        """Process the first character after '${'."""
        if char == "/":
            self.state = TokenizerState.TAG_CLOSING
        else:
            self.state = TokenizerState.TAG_NAME
            self._process_tag_name(char)

    def _process_tag_name(self, char: str) -> None:
        """Process character of an open tag name."""
        if char == "|":
            self._require_tag_name()
            self.state = TokenizerState.ATTR_NAME
        elif char == "}":
            self._require_tag_name()
            self._emit_tag(TokenType.TAG_OPEN)
        elif self._is_name_char(char):
            self.tag_name.append(char)
        else:
            self._malformed(f"invalid character {char!r} in tag name")

    def _process_tag_closing(self, char: str) -> None:
        """Process character of a close tag name."""
        if char == "}":
            self._require_tag_name()
            self._emit_tag(TokenType.TAG_CLOSE)
        elif char == "|":
            self._malformed("close tag cannot carry attributes")
        elif self._is_name_char(char):
            self.tag_name.append(char)
        else:
            self._malformed(f"invalid character {char!r} in close tag name")

    def _process_attr_name(self, char: str) -> None:
        """Process character of an attribute key."""
        if char == "=":
            if not self.attr_name:
                self._malformed("attribute segment has an empty key")
            self.state = TokenizerState.ATTR_VALUE
        elif char in "|}":
            self._malformed("attribute segment is missing '='")
        elif self._is_name_char(char):
            self.attr_name.append(char)
        else:
            self._malformed(f"invalid character {char!r} in attribute key")

    def _process_attr_value(self, char: str) -> None:
        """Process character of an attribute value."""
        if char == "\\":
            self.state = TokenizerState.ATTR_VALUE_ESCAPE
        elif char == "|":
            self._finish_attribute()
            self.state = TokenizerState.ATTR_NAME
        elif char == "}":
            self._finish_attribute()
            self._emit_tag(TokenType.TAG_OPEN)
        else:
            self.attr_value.append(char)

    def _process_attr_value_escape(self, char: str) -> None:
        """Process the character following a backslash in a value.

        Only the delimiters and the backslash itself are escapable; any other
        backslash is literal, as in X-SAMPA ``r\\``.
        """
        if char not in VALUE_ESCAPABLE:
            self.attr_value.append("\\")
        self.attr_value.append(char)
        self.state = TokenizerState.ATTR_VALUE

    def _finish(self) -> None:
        """Handle end of input in the current state."""
        if self.state == TokenizerState.DOLLAR:
            self._append_text("$", self.token_start)
        elif self.state == TokenizerState.DOLLAR_ESCAPE:
            self._append_text("$\\", self.token_start)
        elif self.state != TokenizerState.TEXT_CONTENT:
            self._malformed("unterminated tag, expected '}'")
        self.state = TokenizerState.TEXT_CONTENT
        self._flush_text()

    def _start_token(self) -> None:
        """Remember where the current construct started."""
        self.token_start = self.current_position

    def _append_text(self, chunk: str, position: Optional[TokenPosition] = None) -> None:
        """Append literal characters to the pending text token."""
        if self.text_start is None:
            self.text_start = position or self.current_position
        self.text_buffer.append(chunk)

    def _flush_text(self) -> None:
        """Emit accumulated text as a single TEXT token."""
        if self.text_buffer and self.text_start is not None:
            value = "".join(self.text_buffer)
            raw_end = self.token_start.offset
            if self.state == TokenizerState.TEXT_CONTENT:
                raw_end = self.current_position.offset
            self.pending.append(
                Token(
                    TokenType.TEXT,
                    value,
                    self.text_start,
                    raw_content=self.text[self.text_start.offset:raw_end],
                )
            )
        self.text_buffer = []
        self.text_start = None

    def _finish_attribute(self) -> None:
        self.attributes.append(("".join(self.attr_name), "".join(self.attr_value)))
        self.attr_name = []
        self.attr_value = []

    def _require_tag_name(self) -> None:
        if not self.tag_name:
            self._malformed("empty tag name")

    def _emit_tag(self, token_type: TokenType) -> None:
        """Emit the completed tag token and return to text content."""
        end_offset = self.current_position.offset + 1
        self.pending.append(
            Token(
                token_type,
                "".join(self.tag_name),
                self.token_start,
                attributes=self.attributes,
                raw_content=self.text[self.token_start.offset:end_offset],
            )
        )
        self.tag_name = []
        self.attributes = []
        self.state = TokenizerState.TEXT_CONTENT

    def _malformed(self, reason: str) -> None:
        """Raise MalformedTagError located at the start of the current tag."""
        self.logger.debug(
            "Malformed tag",
            extra={"reason": reason, "offset": self.token_start.offset},
        )
        raise MalformedTagError(
            reason,
            offset=self.token_start.offset,
            line=self.token_start.line,
            column=self.token_start.column,
        )

    def _invalid_character(self, char: str) -> None:
        """Raise InvalidCharacterError located at the character itself."""
        position = self.current_position
        self.logger.debug(
            "Invalid character",
            extra={"code_point": ord(char), "offset": position.offset},
        )
        raise InvalidCharacterError(
            char,
            offset=position.offset,
            line=position.line,
            column=position.column,
        )

    def _is_name_char(self, char: str) -> bool:
        """Check if character is valid in tag names and attribute keys."""
        return (char.isascii() and char.isalnum()) or char in NAME_EXTRA_CHARS
