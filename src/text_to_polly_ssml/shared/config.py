"""Configuration classes for markup to SSML conversion.

This module provides configuration objects for all conversion components,
enabling fine-tuned control over tokenization limits, tree building and
attribute value validation.
"""

import json
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional

VALID_LOGGING_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


@dataclass(frozen=True)
class TokenizationConfig:
    """Configuration for markup tokenization."""

    enable_fast_path: bool = True
    enable_text_escapes: bool = True
    max_input_length: Optional[int] = None

    def __post_init__(self) -> None:
        """Validate tokenization configuration."""
        if self.max_input_length is not None and self.max_input_length <= 0:
            raise ValueError("max_input_length must be > 0 or None")


@dataclass(frozen=True)
class TreeConfig:
    """Configuration for tree building."""

    max_depth: Optional[int] = None
    merge_adjacent_text: bool = True

    def __post_init__(self) -> None:
        """Validate tree configuration."""
        if self.max_depth is not None and self.max_depth <= 0:
            raise ValueError("max_depth must be > 0 or None")


@dataclass(frozen=True)
class ValidationConfig:
    """Configuration for tag and attribute validation."""

    case_sensitive_values: bool = False


_COMPONENT_CLASSES: Dict[str, type] = {
    "tokenization": TokenizationConfig,
    "tree": TreeConfig,
    "validation": ValidationConfig,
}


class ConfigError(Exception):
    """Base exception for configuration errors."""


class ConfigValidationError(ConfigError):
    """Exception raised when configuration validation fails."""

    def __init__(self, message: str, field_name: Optional[str] = None,
                 suggestions: Optional[List[str]] = None):
        super().__init__(message)
        self.field_name = field_name
        self.suggestions = suggestions or []


@dataclass(frozen=True)
class ConverterConfig:
    """Complete configuration for all converter components.

    Instances are immutable and therefore safe to share between threads and
    between ``SSMLConverter`` instances. Use ``override`` to derive variants.
    """

    tokenization: TokenizationConfig = field(default_factory=TokenizationConfig)
    tree: TreeConfig = field(default_factory=TreeConfig)
    validation: ValidationConfig = field(default_factory=ValidationConfig)

    logging_level: str = "WARNING"

    # Metadata
    version: str = "1.0.0"
    name: Optional[str] = None
    description: Optional[str] = None

    def __post_init__(self) -> None:
        """Validate the complete converter configuration."""
        if self.logging_level not in VALID_LOGGING_LEVELS:
            raise ConfigValidationError(
                f"logging_level must be one of {VALID_LOGGING_LEVELS}",
                field_name="logging_level",
                suggestions=VALID_LOGGING_LEVELS,
            )
        for component, expected in _COMPONENT_CLASSES.items():
            if not isinstance(getattr(self, component), expected):
                raise ConfigValidationError(
                    f"{component} must be a {expected.__name__} instance",
                    field_name=component,
                )

    def override(self, **kwargs: Any) -> "ConverterConfig":
        """Create a new configuration with specific overrides.

        Args:
            **kwargs: Keyword arguments for configuration fields to override

        Returns:
            New ConverterConfig instance with overrides applied

        Raises:
            ConfigValidationError: If a field is unknown or a value is invalid

        Example:
            >>> config = ConverterConfig()
            >>> new_config = config.override(
            ...     tree__max_depth=16,
            ...     validation__case_sensitive_values=True
            ... )
        """
        nested_overrides: Dict[str, Dict[str, Any]] = {}
        top_level: Dict[str, Any] = {}
        for key, value in kwargs.items():
            if "__" in key:
                component, field_name = key.split("__", 1)
                if component not in _COMPONENT_CLASSES:
                    raise ConfigValidationError(
                        f"Unknown configuration component '{component}'",
                        field_name=key,
                        suggestions=list(_COMPONENT_CLASSES),
                    )
                nested_overrides.setdefault(component, {})[field_name] = value
            else:
                if key not in self.__dataclass_fields__:
                    raise ConfigValidationError(
                        f"Unknown configuration field '{key}'", field_name=key
                    )
                top_level[key] = value

        new_fields: Dict[str, Any] = dict(top_level)
        for component, overrides in nested_overrides.items():
            current_config = getattr(self, component)
            try:
                new_fields[component] = replace(current_config, **overrides)
            except TypeError as e:
                raise ConfigValidationError(
                    f"Unknown field for {component}: {e}",
                    field_name=component,
                ) from e
            except ValueError as e:
                raise ConfigValidationError(str(e), field_name=component) from e

        return replace(self, **new_fields)

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary format.

        Returns:
            Dictionary representation of the configuration
        """
        def _dataclass_to_dict(obj: Any) -> Any:
            """Recursively convert dataclass to dict."""
            if hasattr(obj, "__dataclass_fields__"):
                return {
                    name: _dataclass_to_dict(getattr(obj, name))
                    for name in obj.__dataclass_fields__
                }
            return obj

        result = _dataclass_to_dict(self)
        if not isinstance(result, dict):
            raise ConfigValidationError("Configuration serialization failed")
        return result

    def to_json(self, indent: int = 2) -> str:
        """Convert configuration to JSON string."""
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ConverterConfig":
        """Create configuration from dictionary.

        Args:
            data: Dictionary containing configuration data

        Returns:
            ConverterConfig instance created from dictionary

        Raises:
            ConfigValidationError: If the data contains unknown or invalid fields
        """
        field_values: Dict[str, Any] = {}
        for key, value in data.items():
            if key not in cls.__dataclass_fields__:
                raise ConfigValidationError(
                    f"Unknown configuration field '{key}'", field_name=key
                )
            if key in _COMPONENT_CLASSES:
                if not isinstance(value, dict):
                    raise ConfigValidationError(
                        f"{key} must be a mapping", field_name=key
                    )
                try:
                    field_values[key] = _COMPONENT_CLASSES[key](**value)
                except TypeError as e:
                    raise ConfigValidationError(
                        f"Unknown field for {key}: {e}", field_name=key
                    ) from e
                except ValueError as e:
                    raise ConfigValidationError(str(e), field_name=key) from e
            else:
                field_values[key] = value
        return cls(**field_values)

    @classmethod
    def from_json(cls, json_str: str) -> "ConverterConfig":
        """Create configuration from JSON string."""
        try:
            data = json.loads(json_str)
        except json.JSONDecodeError as e:
            raise ConfigValidationError(f"Invalid configuration JSON: {e}") from e
        if not isinstance(data, dict):
            raise ConfigValidationError("Configuration JSON must be an object")
        return cls.from_dict(data)

    # Preset factory methods
    @classmethod
    def default(cls) -> "ConverterConfig":
        """Create the default configuration."""
        return cls(name="default")

    @classmethod
    def strict(cls) -> "ConverterConfig":
        """Create configuration preset that rejects anything but exact spellings."""
        return cls(
            tokenization=TokenizationConfig(max_input_length=100_000),
            tree=TreeConfig(max_depth=32),
            validation=ValidationConfig(case_sensitive_values=True),
            name="strict",
            description=(
                "Case-sensitive attribute values with bounded input size and nesting"
            ),
        )
