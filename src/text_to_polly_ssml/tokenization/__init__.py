"""Tokenization engine for markup to SSML conversion.

This module converts raw markup into a flat stream of text and tag tokens
using a strict state machine with precise error positions.

Key Components:
    MarkupTokenizer: Main tokenization class for processing markup text
    Token: Represents individual markup tokens with position information
    TokenType: Enumeration of TEXT, TAG_OPEN and TAG_CLOSE
    TokenPosition: Position tracking for error reporting
    TokenizerState: State machine states for tokenization processing
"""

from .tokenizer import (
    MarkupTokenizer,
    Token,
    TokenizationResult,
    TokenizerState,
    TokenPosition,
    TokenType,
)

__all__ = [
    "MarkupTokenizer",
    "Token",
    "TokenPosition",
    "TokenType",
    "TokenizationResult",
    "TokenizerState",
]
