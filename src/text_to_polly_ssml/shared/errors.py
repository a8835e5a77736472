"""Exception hierarchy for markup conversion failures.

Every failure the pipeline can detect in author input is reported as a subclass
of ``SSMLMarkupError``. Each error carries a ``kind`` naming its category and,
when known, the offset, line and column of the token that triggered it. The
first error found in left-to-right order aborts the conversion.
"""

from typing import Any, Dict, Optional, Sequence


class SSMLMarkupError(ValueError):
    """Base class for all markup conversion errors."""

    kind = "MarkupError"

    def __init__(
        self,
        message: str,
        offset: Optional[int] = None,
        line: Optional[int] = None,
        column: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.offset = offset
        self.line = line
        self.column = column

    @property
    def location(self) -> Optional[str]:
        """Human readable location of the error, if one is known."""
        if self.line is not None and self.column is not None:
            return f"line {self.line}, column {self.column}"
        if self.offset is not None:
            return f"offset {self.offset}"
        return None

    def __str__(self) -> str:
        location = self.location
        if location:
            return f"{self.message} (at {location})"
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary representation."""
        result: Dict[str, Any] = {
            "kind": self.kind,
            "message": self.message,
        }
        for key in ("offset", "line", "column"):
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        result.update(self._details())
        return result

    def _details(self) -> Dict[str, Any]:
        return {}


class MalformedTagError(SSMLMarkupError):
    """A ``${...}`` or ``${/...}`` construct could not be tokenized."""

    kind = "MalformedTag"

    def __init__(self, reason: str, **position: Any) -> None:
        super().__init__(f"Malformed tag: {reason}", **position)
        self.reason = reason

    def _details(self) -> Dict[str, Any]:
        return {"reason": self.reason}


class UnknownTagError(SSMLMarkupError):
    """Tag name is not part of the supported registry."""

    kind = "UnknownTag"

    def __init__(self, tag: str, **position: Any) -> None:
        super().__init__(f"Unknown tag '{tag}'", **position)
        self.tag = tag

    def _details(self) -> Dict[str, Any]:
        return {"tag": self.tag}


class UnknownAttributeError(SSMLMarkupError):
    """Attribute key is not permitted on the given tag."""

    kind = "UnknownAttribute"

    def __init__(self, tag: str, key: str, **position: Any) -> None:
        super().__init__(f"Attribute '{key}' is not permitted on tag '{tag}'", **position)
        self.tag = tag
        self.key = key

    def _details(self) -> Dict[str, Any]:
        return {"tag": self.tag, "key": self.key}


class InvalidAttributeValueError(SSMLMarkupError):
    """Attribute value does not satisfy the attribute's constraint."""

    kind = "InvalidAttributeValue"

    def __init__(
        self,
        tag: str,
        key: str,
        value: str,
        expected: Optional[str] = None,
        **position: Any,
    ) -> None:
        message = f"Invalid value '{value}' for attribute '{key}' on tag '{tag}'"
        if expected:
            message += f"; expected {expected}"
        super().__init__(message, **position)
        self.tag = tag
        self.key = key
        self.value = value
        self.expected = expected

    def _details(self) -> Dict[str, Any]:
        details = {"tag": self.tag, "key": self.key, "value": self.value}
        if self.expected:
            details["expected"] = self.expected
        return details


class MissingAttributeError(SSMLMarkupError):
    """A required attribute was not supplied by the author.

    Raised with ``choices`` when a tag needs at least one attribute from a
    group and none was given.
    """

    kind = "MissingAttribute"

    def __init__(
        self,
        tag: str,
        key: Optional[str] = None,
        choices: Sequence[str] = (),
        **position: Any,
    ) -> None:
        if choices:
            message = (
                f"Tag '{tag}' requires at least one of the attributes "
                f"{', '.join(choices)}"
            )
        else:
            message = f"Tag '{tag}' requires attribute '{key}'"
        super().__init__(message, **position)
        self.tag = tag
        self.key = key
        self.choices = tuple(choices)

    def _details(self) -> Dict[str, Any]:
        details: Dict[str, Any] = {"tag": self.tag}
        if self.key is not None:
            details["key"] = self.key
        if self.choices:
            details["choices"] = list(self.choices)
        return details


class DuplicateAttributeError(SSMLMarkupError):
    """The same attribute was given more than once on one tag."""

    kind = "DuplicateAttribute"

    def __init__(self, tag: str, key: str, **position: Any) -> None:
        super().__init__(f"Attribute '{key}' appears more than once on tag '{tag}'", **position)
        self.tag = tag
        self.key = key

    def _details(self) -> Dict[str, Any]:
        return {"tag": self.tag, "key": self.key}


class UnmatchedCloseTagError(SSMLMarkupError):
    """A close tag appeared while no element was open."""

    kind = "UnmatchedCloseTag"

    def __init__(self, tag: str, **position: Any) -> None:
        super().__init__(f"Close tag '{tag}' has no matching open tag", **position)
        self.tag = tag

    def _details(self) -> Dict[str, Any]:
        return {"tag": self.tag}


class MismatchedCloseTagError(SSMLMarkupError):
    """A close tag does not match the innermost open element."""

    kind = "MismatchedCloseTag"

    def __init__(self, expected: str, found: str, **position: Any) -> None:
        super().__init__(
            f"Close tag '{found}' does not match open tag '{expected}'", **position
        )
        self.expected = expected
        self.found = found

    def _details(self) -> Dict[str, Any]:
        return {"expected": self.expected, "found": self.found}


class UnclosedTagError(SSMLMarkupError):
    """Input ended while at least one element was still open."""

    kind = "UnclosedTag"

    def __init__(self, tag: str, **position: Any) -> None:
        super().__init__(f"Tag '{tag}' is never closed", **position)
        self.tag = tag

    def _details(self) -> Dict[str, Any]:
        return {"tag": self.tag}


class NestingTooDeepError(SSMLMarkupError):
    """Opening a tag would exceed the configured nesting limit."""

    kind = "NestingTooDeep"

    def __init__(self, tag: str, limit: int, **position: Any) -> None:
        super().__init__(
            f"Opening tag '{tag}' exceeds the maximum nesting depth of {limit}",
            **position,
        )
        self.tag = tag
        self.limit = limit

    def _details(self) -> Dict[str, Any]:
        return {"tag": self.tag, "limit": self.limit}


class InputTooLargeError(SSMLMarkupError):
    """Input is longer than the configured maximum."""

    kind = "InputTooLarge"

    def __init__(self, length: int, limit: int) -> None:
        super().__init__(
            f"Input of {length} characters exceeds the limit of {limit}"
        )
        self.length = length
        self.limit = limit

    def _details(self) -> Dict[str, Any]:
        return {"length": self.length, "limit": self.limit}


class InvalidCharacterError(SSMLMarkupError):
    """Input holds a character that cannot appear in an XML 1.0 document."""

    kind = "InvalidCharacter"

    def __init__(self, char: str, **position: Any) -> None:
        super().__init__(
            f"Character U+{ord(char):04X} is not allowed in XML", **position
        )
        self.char = char

    def _details(self) -> Dict[str, Any]:
        return {"code_point": f"U+{ord(self.char):04X}"}
