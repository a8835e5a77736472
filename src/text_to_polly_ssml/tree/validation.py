"""Tag and attribute validation against the Polly tag registry.

The tree builder calls ``TagValidator.validate`` for every open tag before the
element is pushed, so no invalid element ever becomes part of a tree.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Set, Tuple

from text_to_polly_ssml.shared.config import ValidationConfig
from text_to_polly_ssml.shared.errors import (
    DuplicateAttributeError,
    InvalidAttributeValueError,
    MissingAttributeError,
    SSMLMarkupError,
    UnknownAttributeError,
    UnknownTagError,
)
from text_to_polly_ssml.shared.logging import get_logger
from text_to_polly_ssml.tokenization.tokenizer import TokenPosition
from text_to_polly_ssml.tree.registry import TAG_REGISTRY, TagSpec


@dataclass(frozen=True)
class ValueNormalization:
    """Record of an attribute value rewritten to its canonical spelling."""

    tag: str
    key: str
    original: str
    canonical: str


@dataclass
class ValidatedTag:
    """An open tag whose name and attributes passed validation.

    ``attributes`` holds ``(xml_name, rendered_value)`` pairs in source order.
    """

    name: str
    attributes: List[Tuple[str, str]] = field(default_factory=list)
    normalizations: List[ValueNormalization] = field(default_factory=list)

    def attribute_dict(self) -> Dict[str, str]:
        """Attributes as an insertion-ordered dictionary."""
        return dict(self.attributes)


class TagValidator:
    """Validates tag names and attributes using the registry.

    Checks run in a fixed order so the reported error is deterministic:
    unknown tag, then for each attribute in source order an unknown key,
    a duplicate key or an invalid value, and finally missing required
    attributes.
    """

    def __init__(
        self,
        config: Optional[ValidationConfig] = None,
        correlation_id: Optional[str] = None,
    ) -> None:
        self.config = config or ValidationConfig()
        self.correlation_id = correlation_id
        self.logger = get_logger(__name__, correlation_id, "tag_validator")

    def validate(
        self,
        name: str,
        attributes: Sequence[Tuple[str, str]],
        position: Optional[TokenPosition] = None,
    ) -> ValidatedTag:
        """Validate one open tag.

        Args:
            name: Tag name as written by the author
            attributes: ``(key, value)`` pairs in source order
            position: Source position of the tag, attached to raised errors

        Returns:
            ValidatedTag with rendered attribute names and canonical values

        Raises:
            UnknownTagError: If the tag is not in the registry
            UnknownAttributeError: If a key is not permitted on the tag
            DuplicateAttributeError: If a key (or its rendered name) repeats
            InvalidAttributeValueError: If a value fails its constraint
            MissingAttributeError: If a required attribute or group is absent
        """
        location = position.to_dict() if position else {}
        try:
            return self._validate(name, attributes, location)
        except SSMLMarkupError as e:
            self.logger.debug(
                "Tag validation failed",
                extra={"tag": name, "error_kind": e.kind, **location},
            )
            raise

    def _validate(
        self,
        name: str,
        attributes: Sequence[Tuple[str, str]],
        location: Dict[str, int],
    ) -> ValidatedTag:
        spec = TAG_REGISTRY.get(name)
        if spec is None:
            raise UnknownTagError(name, **location)

        result = ValidatedTag(name=name)
        seen: Set[str] = set()
        for key, value in attributes:
            attr_spec = spec.get_attribute(key)
            if attr_spec is None:
                raise UnknownAttributeError(name, key, **location)
            if attr_spec.xml_name in seen:
                raise DuplicateAttributeError(name, key, **location)
            seen.add(attr_spec.xml_name)

            rendered = attr_spec.constraint.match(
                value, case_sensitive=self.config.case_sensitive_values
            )
            if rendered is None:
                raise InvalidAttributeValueError(
                    name,
                    key,
                    value,
                    expected=attr_spec.constraint.description,
                    **location,
                )
            if rendered != value:
                result.normalizations.append(
                    ValueNormalization(name, key, value, rendered)
                )
            result.attributes.append((attr_spec.xml_name, rendered))

        self._check_required(spec, seen, location)
        return result

    def _check_required(
        self, spec: TagSpec, seen: Set[str], location: Dict[str, int]
    ) -> None:
        """Raise for the first required attribute that was not supplied.

        A required attribute is satisfied by any key rendering to the same
        XML name, so ``xml:lang`` satisfies ``lang``.
        Tags with ``requires_one_of`` also need at least one key from that
        group.
        """
        for attr_spec in spec.required_attributes:
            if attr_spec.xml_name not in seen:
                raise MissingAttributeError(spec.name, attr_spec.name, **location)

        choices = spec.requires_one_of
        if choices and not any(
            spec.get_attribute(key).xml_name in seen for key in choices
        ):
            raise MissingAttributeError(spec.name, choices=choices, **location)
