#!/usr/bin/env python3
"""
Quick Start Guide for Text to Polly SSML.

This example walks through converting markup to SSML, inspecting the
document tree, handling errors and using a configured converter.
Run it after installing the package with ``pip install -e .``.
"""

from text_to_polly_ssml import (
    ConverterConfig,
    SSMLConverter,
    SSMLMarkupError,
    parse_string,
    to_ssml,
)
from text_to_polly_ssml.shared import DiagnosticSeverity


def quick_start_example():
    """Quick start example showing basic usage."""

    print("🚀 QUICK START - Text to Polly SSML")
    print("=" * 45)

    # Step 1: One-call conversion
    print("\n📄 Step 1: Converting Markup")
    print("-" * 30)

    markup = (
        "${p}${s}Good morning!${/s}"
        "${s}${prosody|rate=slow|pitch=-10%}Take a deep breath.${/prosody}${/s}"
        "${break|time=1s}${/break}"
        "${s}Coffee is ${emphasis|level=strong}ready${/emphasis}.${/s}${/p}"
    )
    print(to_ssml(markup))

    # Step 2: Inspect the result
    print("\n🔍 Step 2: Inspecting the Document")
    print("-" * 30)

    result = parse_string(markup)
    print(f"✅ Success: {result.success}")
    print(f"🌳 Elements: {result.element_count}")
    print(f"📏 Depth: {result.tree.max_depth}")
    print(f"💬 Spoken text: {result.tree.text_content!r}")
    for element in result.tree.find_all("prosody"):
        print(f"🎚️  prosody attributes: {element.attributes}")

    # Step 3: Errors
    print("\n⚠️  Step 3: Handling Errors")
    print("-" * 30)

    try:
        to_ssml("${prosody|rate=ludicrous-speed}Faster!${/prosody}")
    except SSMLMarkupError as e:
        print(f"❌ {e.kind}: {e}")

    failed = parse_string("Line one\n${p}never closed")
    for diagnostic in failed.get_diagnostics_by_severity(DiagnosticSeverity.ERROR):
        print(f"❌ {diagnostic.message} {diagnostic.position}")

    # Step 4: Configured converter
    print("\n⚙️  Step 4: Strict Converter")
    print("-" * 30)

    default = SSMLConverter()
    strict = SSMLConverter(ConverterConfig.strict())
    sample = "${amazon:effect|name=Whisper}Between us.${/amazon:effect}"

    relaxed = default.convert(sample)
    print(f"Default: success={relaxed.success}")
    for diagnostic in relaxed.diagnostics:
        print(f"  ℹ️  {diagnostic.message}")
    print(f"Strict:  success={strict.convert(sample).success}")
    print(f"📊 Statistics: {strict.statistics['errors_by_kind']}")

    print("\n🎉 Done! See `polly-ssml --help` for the command-line tool.")


if __name__ == "__main__":
    quick_start_example()
