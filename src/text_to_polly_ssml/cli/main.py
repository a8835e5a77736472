"""Main CLI entry point for the polly-ssml command-line tool.

Provides commands to convert markup files to SSML, check markup without
producing output, and list the supported tags.
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from text_to_polly_ssml import __version__
from text_to_polly_ssml.api import SSMLConverter
from text_to_polly_ssml.shared.config import ConfigError, ConverterConfig
from text_to_polly_ssml.shared.logging import get_logger
from text_to_polly_ssml.tree.builder import ParseResult
from text_to_polly_ssml.tree.registry import TAG_REGISTRY, describe_registry

STDIN_MARKER = "-"
PRESETS = {
    "default": ConverterConfig.default,
    "strict": ConverterConfig.strict,
}


def build_config(args: argparse.Namespace) -> ConverterConfig:
    """Resolve the converter configuration from command-line options.

    A ``--config`` file takes precedence over ``--preset``; ``--strict`` is a
    shortcut for ``--preset strict``.

    Raises:
        ConfigError: If the configuration file is unreadable or invalid
    """
    config_path: Optional[Path] = getattr(args, "config", None)
    if config_path is not None:
        try:
            return ConverterConfig.from_json(config_path.read_text(encoding="utf-8"))
        except OSError as e:
            raise ConfigError(f"Could not read config file {config_path}: {e}") from e

    preset = getattr(args, "preset", None) or "default"
    if getattr(args, "strict", False):
        preset = "strict"
    return PRESETS[preset]()


class MarkupProcessor:
    """Runs conversions for the CLI commands."""

    def __init__(self, config: ConverterConfig):
        self.config = config
        self.converter = SSMLConverter(config=config)
        self.logger = get_logger(__name__, None, "cli_processor")

    def process_sources(self, sources: List[str]) -> List[Tuple[str, ParseResult]]:
        """Convert every source, reading stdin for ``-`` or when none are given.

        Files and stdin are both read as bytes and decoded as UTF-8.
        """
        results = []
        for source in sources or [STDIN_MARKER]:
            if source == STDIN_MARKER:
                label = "<stdin>"
                result = self.converter.convert(sys.stdin.buffer)
            else:
                label = source
                result = self.converter.convert(Path(source))
            self.logger.debug(
                "Processed source",
                extra={"source": label, "success": result.success},
            )
            results.append((label, result))
        return results


def format_error(label: str, result: ParseResult) -> str:
    """Format a failed result as ``source:line:column: Kind: message``."""
    error = result.error
    kind = getattr(error, "kind", type(error).__name__)
    message = getattr(error, "message", str(error))
    line = getattr(error, "line", None)
    column = getattr(error, "column", None)
    location = f"{label}:{line}:{column}" if line is not None else label
    return f"{location}: {kind}: {message}"


def result_to_dict(label: str, result: ParseResult) -> Dict[str, Any]:
    """Summarize one checked source for JSON output."""
    entry: Dict[str, Any] = {
        "source": label,
        "valid": result.success,
        "element_count": result.element_count,
        "processing_time_ms": result.performance.processing_time_ms,
        "diagnostics": [diag.to_dict() for diag in result.diagnostics],
    }
    if result.error is not None:
        error = result.error
        entry["error"] = (
            error.to_dict() if hasattr(error, "to_dict")
            else {"kind": type(error).__name__, "message": str(error)}
        )
    return entry


def create_argument_parser() -> argparse.ArgumentParser:
    """Create the main argument parser."""
    parser = argparse.ArgumentParser(
        prog="polly-ssml",
        description="Convert ${tag|key=value}...${/tag} markup into Amazon Polly SSML"
    )

    parser.add_argument("--version", action="version", version=__version__)
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Verbose output"
    )
    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Quiet output"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Convert command
    convert_parser = subparsers.add_parser("convert", help="Convert markup to SSML")
    convert_parser.add_argument(
        "sources",
        nargs="*",
        help="Markup files to convert ('-' or none reads stdin)"
    )
    convert_parser.add_argument(
        "--output", "-o",
        type=Path,
        help="Output file (default: stdout)"
    )
    _add_config_arguments(convert_parser)

    # Check command
    check_parser = subparsers.add_parser("check", help="Validate markup without output")
    check_parser.add_argument(
        "sources",
        nargs="*",
        help="Markup files to check ('-' or none reads stdin)"
    )
    check_parser.add_argument(
        "--format", "-f",
        choices=["text", "json"],
        default="text",
        help="Output format (default: text)"
    )
    _add_config_arguments(check_parser)

    # Tags command
    tags_parser = subparsers.add_parser("tags", help="List supported tags")
    tags_parser.add_argument(
        "--format", "-f",
        choices=["text", "json"],
        default="text",
        help="Output format (default: text)"
    )

    return parser


def _add_config_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Use the strict preset"
    )
    parser.add_argument(
        "--preset",
        choices=sorted(PRESETS),
        default="default",
        help="Converter configuration preset"
    )
    parser.add_argument(
        "--config", "-c",
        type=Path,
        help="JSON configuration file path"
    )


def cmd_convert(args: argparse.Namespace, config: ConverterConfig) -> int:
    """Handle convert command."""
    processor = MarkupProcessor(config)
    results = processor.process_sources(args.sources)

    documents = []
    failures = 0
    for label, result in results:
        if result.success and result.ssml is not None:
            documents.append(result.ssml)
        else:
            failures += 1
            print(format_error(label, result), file=sys.stderr)

    if failures:
        return 1

    output = "\n".join(documents) + "\n"
    if args.output:
        try:
            args.output.write_text(output, encoding="utf-8")
        except OSError as e:
            print(f"Error writing output: {e}", file=sys.stderr)
            return 1
        if not args.quiet:
            print(f"SSML written to {args.output}", file=sys.stderr)
    else:
        sys.stdout.write(output)
    return 0


def cmd_check(args: argparse.Namespace, config: ConverterConfig) -> int:
    """Handle check command."""
    processor = MarkupProcessor(config)
    results = processor.process_sources(args.sources)
    valid_count = sum(1 for _, result in results if result.success)

    if args.format == "json":
        print(json.dumps([result_to_dict(label, result) for label, result in results],
                         indent=2))
    else:
        print(f"Checked {len(results)} sources, {valid_count} valid")
        print("-" * 50)
        for label, result in results:
            if result.success:
                print(f"✓ {label} ({result.element_count} elements)")
            else:
                print(f"✗ {format_error(label, result)}")

    return 0 if valid_count == len(results) else 1


def cmd_tags(args: argparse.Namespace) -> int:
    """Handle tags command."""
    if args.format == "json":
        print(json.dumps(describe_registry(), indent=2))
        return 0

    for name, spec in TAG_REGISTRY.items():
        print(f"{name}: {spec.description}")
        for attr in spec.attributes:
            flags = " (required)" if attr.required else ""
            rendered = f" -> {attr.xml_name}" if attr.xml_name != attr.name else ""
            print(f"   {attr.name}{rendered}{flags}: {attr.constraint.description}")
        if spec.requires_one_of:
            print(f"   (needs at least one of: {', '.join(spec.requires_one_of)})")
    return 0


def configure_logging(args: argparse.Namespace, config: ConverterConfig) -> None:
    """Set up logging verbosity from flags, falling back to the configuration."""
    if args.verbose:
        level = logging.DEBUG
    elif args.quiet:
        level = logging.ERROR
    else:
        level = getattr(logging, config.logging_level)
    logging.basicConfig(level=level)


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = create_argument_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    try:
        config = build_config(args)
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    configure_logging(args, config)

    # Route to appropriate command handler
    try:
        if args.command == "convert":
            return cmd_convert(args, config)
        elif args.command == "check":
            return cmd_check(args, config)
        elif args.command == "tags":
            return cmd_tags(args)
        else:
            print(f"Unknown command: {args.command}", file=sys.stderr)
            return 1

    except KeyboardInterrupt:
        print("\nOperation interrupted by user", file=sys.stderr)
        return 130  # Standard exit code for SIGINT


if __name__ == "__main__":
    sys.exit(main())
