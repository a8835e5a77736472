"""Registry of the SSML tags and attributes accepted by Amazon Polly.

The registry is plain data: every supported tag is a ``TagSpec`` listing its
permitted attributes, and every attribute carries a ``ValueConstraint`` that
decides whether an author-supplied value is acceptable and how it is spelled
in the output. Adding a tag or attribute means adding a table entry; the
validator has no per-tag logic.
"""

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Tuple


class ValueConstraint(ABC):
    """Base class for attribute value constraints."""

    @abstractmethod
    def match(self, value: str, case_sensitive: bool = False) -> Optional[str]:
        """Return the value as it should be rendered, or None if it is invalid."""

    @property
    @abstractmethod
    def description(self) -> str:
        """Human readable description of the accepted values."""


@dataclass(frozen=True)
class Enumeration(ValueConstraint):
    """A closed set of keywords, optionally with accepted aliases.

    Matching returns the canonical spelling, so ``X-Fast`` renders as
    ``x-fast`` and the alias ``whisper`` renders as ``whispered``.
    """

    values: Tuple[str, ...]
    aliases: Tuple[Tuple[str, str], ...] = ()

    def match(self, value: str, case_sensitive: bool = False) -> Optional[str]:
        if case_sensitive:
            if value in self.values:
                return value
            return dict(self.aliases).get(value)
        folded = value.casefold()
        for candidate in self.values:
            if candidate.casefold() == folded:
                return candidate
        for alias, canonical in self.aliases:
            if alias.casefold() == folded:
                return canonical
        return None

    @property
    def description(self) -> str:
        return "one of " + ", ".join(self.values)


@dataclass(frozen=True)
class Pattern(ValueConstraint):
    """A regular expression the whole value must match.

    Matching values are rendered verbatim. Digits and letters in the
    pattern only match their ASCII forms.
    """

    regex: str
    label: str

    def match(self, value: str, case_sensitive: bool = False) -> Optional[str]:
        flags = re.ASCII if case_sensitive else re.ASCII | re.IGNORECASE
        if re.fullmatch(self.regex, value, flags):
            return value
        return None

    @property
    def description(self) -> str:
        return self.label


@dataclass(frozen=True)
class AnyOf(ValueConstraint):
    """Accepts a value if any of the given constraints accepts it."""

    options: Tuple[ValueConstraint, ...]

    def match(self, value: str, case_sensitive: bool = False) -> Optional[str]:
        for option in self.options:
            rendered = option.match(value, case_sensitive)
            if rendered is not None:
                return rendered
        return None

    @property
    def description(self) -> str:
        return " or ".join(option.description for option in self.options)


@dataclass(frozen=True)
class FreeText(ValueConstraint):
    """Any string, rendered verbatim."""

    non_empty: bool = True

    def match(self, value: str, case_sensitive: bool = False) -> Optional[str]:
        if self.non_empty and not value:
            return None
        return value

    @property
    def description(self) -> str:
        return "non-empty text" if self.non_empty else "any text"


@dataclass(frozen=True)
class AttributeSpec:
    """A permitted attribute of a tag."""

    name: str
    constraint: ValueConstraint
    required: bool = False
    render_as: Optional[str] = None

    @property
    def xml_name(self) -> str:
        """Attribute name used in the generated SSML."""
        return self.render_as or self.name


@dataclass(frozen=True)
class TagSpec:
    """A supported tag and its permitted attributes."""

    name: str
    attributes: Tuple[AttributeSpec, ...] = ()
    description: str = ""
    requires_one_of: Tuple[str, ...] = ()
    _by_name: Mapping[str, AttributeSpec] = field(
        init=False, repr=False, compare=False
    )

    def __post_init__(self) -> None:
        lookup = {spec.name: spec for spec in self.attributes}
        if len(lookup) != len(self.attributes):
            raise ValueError(f"Tag '{self.name}' declares an attribute twice")
        for key in self.requires_one_of:
            if key not in lookup:
                raise ValueError(
                    f"Tag '{self.name}' requires unknown attribute '{key}'"
                )
        object.__setattr__(self, "_by_name", MappingProxyType(lookup))

    def get_attribute(self, key: str) -> Optional[AttributeSpec]:
        """Look up the attribute spec for an author-supplied key."""
        return self._by_name.get(key)

    @property
    def required_attributes(self) -> List[AttributeSpec]:
        """Attributes that must be present, in declaration order."""
        return [spec for spec in self.attributes if spec.required]

    @property
    def attribute_names(self) -> List[str]:
        """Author-facing keys accepted by this tag."""
        return [spec.name for spec in self.attributes]


# Reusable constraints
DURATION = Pattern(r"\d+(ms|s)", "a duration such as 500ms or 2s")
PERCENT_SIGNED = Pattern(r"[+-]?\d+(\.\d+)?%", "a percentage such as +10% or -5%")
PERCENT_UNSIGNED = Pattern(r"\d+(\.\d+)?%", "a percentage such as 80%")
DECIBELS = Pattern(r"[+-]?\d+(\.\d+)?dB", "a decibel change such as +6dB")
LANGUAGE_TAG = Pattern(
    r"[A-Za-z]{2,3}([-_][A-Za-z0-9]{2,8})*", "a language code such as en-US"
)
BREATH_VOLUME = Enumeration(("default", "x-soft", "soft", "medium", "loud", "x-loud"))
BREATH_DURATION = Enumeration(
    ("default", "x-short", "short", "medium", "long", "x-long")
)

_TAGS: Tuple[TagSpec, ...] = (
    TagSpec(
        "break",
        (
            AttributeSpec(
                "strength",
                Enumeration(("none", "x-weak", "weak", "medium", "strong", "x-strong")),
            ),
            AttributeSpec("time", DURATION),
        ),
        "Pause in speech",
    ),
    TagSpec(
        "emphasis",
        (AttributeSpec("level", Enumeration(("strong", "moderate", "reduced"))),),
        "Emphasize the enclosed words",
    ),
    TagSpec(
        "lang",
        (
            AttributeSpec("lang", LANGUAGE_TAG, required=True, render_as="xml:lang"),
            AttributeSpec("xml:lang", LANGUAGE_TAG),
            AttributeSpec(
                "onlangfailure",
                Enumeration(
                    ("changevoice", "ignoretext", "ignorelang", "processorchoice")
                ),
            ),
        ),
        "Speak the enclosed text in another language",
    ),
    TagSpec(
        "mark",
        (AttributeSpec("name", FreeText(), required=True),),
        "Custom marker returned in speech marks",
    ),
    TagSpec("p", (), "Paragraph"),
    TagSpec("s", (), "Sentence"),
    TagSpec(
        "phoneme",
        (
            AttributeSpec("alphabet", Enumeration(("ipa", "x-sampa")), required=True),
            AttributeSpec("ph", FreeText(), required=True),
        ),
        "Phonetic pronunciation",
    ),
    TagSpec(
        "prosody",
        (
            AttributeSpec(
                "volume",
                AnyOf((
                    Enumeration(
                        ("silent", "x-soft", "soft", "medium", "loud", "x-loud", "default")
                    ),
                    DECIBELS,
                )),
            ),
            AttributeSpec(
                "rate",
                AnyOf((
                    Enumeration(("x-slow", "slow", "medium", "fast", "x-fast", "default")),
                    PERCENT_UNSIGNED,
                )),
            ),
            AttributeSpec(
                "pitch",
                AnyOf((
                    Enumeration(("x-low", "low", "medium", "high", "x-high", "default")),
                    PERCENT_SIGNED,
                )),
            ),
            AttributeSpec("amazon:max-duration", DURATION),
        ),
        "Volume, rate and pitch of the enclosed speech",
        requires_one_of=("volume", "rate", "pitch", "amazon:max-duration"),
    ),
    TagSpec(
        "say-as",
        (
            AttributeSpec(
                "interpret-as",
                Enumeration((
                    "characters", "spell-out", "cardinal", "number", "ordinal",
                    "digits", "fraction", "unit", "date", "time", "address",
                    "expletive", "telephone",
                )),
                required=True,
            ),
            AttributeSpec(
                "format",
                Enumeration((
                    "mdy", "dmy", "ymd", "md", "dm", "ym", "my", "d", "m", "y",
                    "yyyymmdd",
                )),
            ),
        ),
        "How to interpret the enclosed characters",
    ),
    TagSpec(
        "sub",
        (AttributeSpec("alias", FreeText(), required=True),),
        "Pronounce the alias instead of the enclosed text",
    ),
    TagSpec(
        "w",
        (
            AttributeSpec(
                "role",
                Enumeration((
                    "amazon:VB", "amazon:VBD", "amazon:DT", "amazon:IN",
                    "amazon:JJ", "amazon:NN", "amazon:SENSE_1",
                )),
                required=True,
            ),
        ),
        "Part of speech of the enclosed word",
    ),
    TagSpec(
        "amazon:effect",
        (
            AttributeSpec(
                "name",
                Enumeration(("whispered", "drc"), aliases=(("whisper", "whispered"),)),
            ),
            AttributeSpec("vocal-tract-length", PERCENT_SIGNED),
            AttributeSpec("phonation", Enumeration(("soft",))),
        ),
        "Amazon voice effects",
        requires_one_of=("name", "vocal-tract-length", "phonation"),
    ),
    TagSpec(
        "amazon:auto-breaths",
        (
            AttributeSpec("volume", BREATH_VOLUME),
            AttributeSpec(
                "frequency",
                Enumeration(("default", "x-low", "low", "medium", "high", "x-high")),
            ),
            AttributeSpec("duration", BREATH_DURATION),
        ),
        "Automatic breathing sounds",
    ),
    TagSpec(
        "amazon:breath",
        (
            AttributeSpec("volume", BREATH_VOLUME),
            AttributeSpec("duration", BREATH_DURATION),
        ),
        "Single breathing sound",
    ),
    TagSpec(
        "amazon:domain",
        (
            AttributeSpec(
                "name", Enumeration(("news", "conversational")), required=True
            ),
        ),
        "Newscaster or conversational speaking style",
    ),
)

TAG_REGISTRY: Mapping[str, TagSpec] = MappingProxyType(
    {spec.name: spec for spec in _TAGS}
)


def get_tag_spec(name: str) -> Optional[TagSpec]:
    """Look up a supported tag by its exact name."""
    return TAG_REGISTRY.get(name)


def is_supported_tag(name: str) -> bool:
    """Check whether a tag name is part of the registry."""
    return name in TAG_REGISTRY


def supported_tags() -> List[str]:
    """Names of all supported tags in registry order."""
    return list(TAG_REGISTRY)


def describe_registry() -> Dict[str, Dict[str, Dict[str, object]]]:
    """Describe every tag and attribute as plain data for reporting."""
    return {
        spec.name: {
            attr.name: {
                "required": attr.required,
                "renders_as": attr.xml_name,
                "accepts": attr.constraint.description,
            }
            for attr in spec.attributes
        }
        for spec in _TAGS
    }
