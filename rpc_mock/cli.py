"""CLI entry point for rpc-mock.

Handles argument parsing and dispatches to list-methods, validate or match mode.
"""

from __future__ import annotations

import argparse
import json
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from rpc_mock.matcher import RequestMatcher


DEFAULT_LOG_LEVEL = "WARNING"


@dataclass
class SourceArgs:
    """Where mocks come from: a mocks directory or a runtime config file."""

    mocks: Path | None
    config: Path | None
    log_level: str


@dataclass
class ListMethodsArgs(SourceArgs):
    """Parsed arguments for list-methods mode."""


@dataclass
class ValidateArgs(SourceArgs):
    """Parsed arguments for validate mode."""


@dataclass
class MatchArgs(SourceArgs):
    """Parsed arguments for match mode."""

    method: str
    payload: Path | None


def _add_source_arguments(parser: argparse.ArgumentParser) -> None:
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument(
        "--mocks",
        type=Path,
        help="Directory containing mock definition .json files",
    )
    source.add_argument(
        "--config",
        type=Path,
        help="Runtime config YAML file (mocks_path, log_level, log_format)",
    )
    parser.add_argument(
        "--log-level",
        default=DEFAULT_LOG_LEVEL,
        help=f"Log level when --mocks is used (default: {DEFAULT_LOG_LEVEL})",
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with list-methods, validate and match subcommands."""
    parser = argparse.ArgumentParser(
        prog="rpc-mock",
        description="Match RPC requests against declarative mock definitions.",
    )

    subparsers = parser.add_subparsers(dest="command", required=True, help="Execution mode")

    list_parser = subparsers.add_parser(
        "list-methods",
        help="List every mocked method with its number of mocks",
    )
    _add_source_arguments(list_parser)

    validate_parser = subparsers.add_parser(
        "validate",
        help="Load mock definitions and report problems without matching",
    )
    _add_source_arguments(validate_parser)

    match_parser = subparsers.add_parser(
        "match",
        help="Match one payload and print the mocked response",
    )
    _add_source_arguments(match_parser)
    match_parser.add_argument(
        "--method",
        required=True,
        help="RPC method name, e.g. /greet.Greeter/SayHello",
    )
    match_parser.add_argument(
        "--payload",
        type=Path,
        default=None,
        help="File containing the JSON payload (default: read stdin)",
    )

    return parser


def parse_args(args: list[str] | None = None) -> ListMethodsArgs | ValidateArgs | MatchArgs:
    """Parse command-line arguments and return typed args dataclass.

    Args:
        args: Command-line arguments to parse. If None, uses sys.argv[1:].

    Raises:
        SystemExit: If arguments are invalid (argparse behavior).
    """
    parser = build_parser()
    namespace = parser.parse_args(args)
    source = {
        "mocks": namespace.mocks,
        "config": namespace.config,
        "log_level": namespace.log_level,
    }

    if namespace.command == "list-methods":
        return ListMethodsArgs(**source)
    elif namespace.command == "validate":
        return ValidateArgs(**source)
    elif namespace.command == "match":
        return MatchArgs(**source, method=namespace.method, payload=namespace.payload)
    else:
        # Should not happen with required=True on subparsers
        parser.error(f"Unknown command: {namespace.command}")


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    try:
        parsed = parse_args(argv)

        if isinstance(parsed, ListMethodsArgs):
            return run_list_methods(parsed)
        elif isinstance(parsed, ValidateArgs):
            return run_validate(parsed)
        else:
            return run_match(parsed)

    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        return 1


def _load_matcher(args: SourceArgs) -> RequestMatcher | None:
    """Build a matcher from --mocks or --config, printing errors to stderr."""
    from rpc_mock.config_loader import ConfigError, build_matcher, load_runtime_config
    from rpc_mock.mock_loader import LoadError
    from rpc_mock.models import RuntimeConfig

    try:
        if args.config is not None:
            config = load_runtime_config(args.config)
        else:
            config = RuntimeConfig(
                mocks_path=str(args.mocks), log_level=args.log_level, log_format="plain"
            )
    except ConfigError as e:
        print(f"Error loading config: {e}", file=sys.stderr)
        return None

    if not config.mocks_path:
        print("Error: config does not set mocks_path", file=sys.stderr)
        return None

    try:
        return build_matcher(config)
    except LoadError as e:
        print(f"Error loading mocks: {e}", file=sys.stderr)
        return None


def run_list_methods(args: ListMethodsArgs) -> int:
    """Run list-methods mode."""
    matcher = _load_matcher(args)
    if matcher is None:
        return 1

    total = 0
    for method in matcher.methods:
        count = len(matcher.rules[method])
        total += count
        print(f"{method}  ({count} mock{'s' if count != 1 else ''})")

    print(f"Total: {len(matcher.methods)} methods, {total} mocks")
    return 0


def run_validate(args: ValidateArgs) -> int:
    """Run validate mode.

    Loading failures and lint errors exit with 1; warnings alone exit with 0.
    """
    from rpc_mock.config_loader import validate_mocks

    matcher = _load_matcher(args)
    if matcher is None:
        return 1

    result = validate_mocks(matcher.rules)

    if result.warnings:
        print(f"Warnings ({len(result.warnings)}):")
        for warning in result.warnings:
            print(f"  WARNING: {warning}")

    if result.errors:
        print(f"Errors ({len(result.errors)}):")
        for error in result.errors:
            print(f"  ERROR: {error}")
        print("Validation failed")
        return 1

    total = sum(len(mocks) for mocks in matcher.rules.values())
    if result.warnings:
        print("Validation passed with warnings")
    else:
        print(f"Validation passed: {total} mocks across {len(matcher.rules)} methods")
    return 0


def run_match(args: MatchArgs) -> int:
    """Run match mode.

    Prints the mocked response as JSON. Exits with 1 when nothing matches.
    """
    from rpc_mock.matcher import NotMatchedError

    matcher = _load_matcher(args)
    if matcher is None:
        return 1

    try:
        if args.payload is not None:
            payload = args.payload.read_bytes()
        else:
            payload = sys.stdin.buffer.read()
    except OSError as e:
        print(f"Error reading payload: {e}", file=sys.stderr)
        return 1

    try:
        response = matcher.match(args.method, payload)
    except NotMatchedError as e:
        print(f"Not matched: {e.method}", file=sys.stderr)
        return 1

    print(json.dumps(response, indent=2, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    sys.exit(main())
