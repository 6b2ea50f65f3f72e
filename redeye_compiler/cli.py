"""Command-line interface for redeye-compiler."""

import argparse
import logging
import sys
from pathlib import Path

from redeye_compiler.compiler import compile_file
from redeye_compiler.config import (
    BODY_SCAN_CHOICES,
    COERCION_CHOICES,
    MARSHALING_CHOICES,
    CompilerConfig,
)
from redeye_compiler.errors import CompileError

logger = logging.getLogger(__name__)


def setup_logging(verbosity: int = 0):
    """Configure logging to stderr."""
    level = {0: logging.WARNING, 1: logging.INFO}.get(verbosity, logging.DEBUG)
    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="redeye-compile",
        description="Turn (T, error) functions into Router-dispatchable workers",
    )
    parser.add_argument("source", help="Source file to compile")
    parser.add_argument(
        "target",
        help="Directory to write the compiled file to (same base name)",
    )
    parser.add_argument(
        "--marshaling",
        "-m",
        choices=MARSHALING_CHOICES,
        default="bundle",
        help="How arguments cross the Router boundary (default: bundle)",
    )
    parser.add_argument(
        "--coercion",
        choices=COERCION_CHOICES,
        default="permissive",
        help="Handler behaviour on a payload that does not convert "
        "(default: permissive, zero-fill)",
    )
    parser.add_argument(
        "--body-scan",
        choices=BODY_SCAN_CHOICES,
        default="depth",
        help="How function bodies are delimited (default: depth)",
    )
    parser.add_argument(
        "--no-propagate-errors",
        dest="propagate_errors",
        action="store_false",
        help="Do not rewrite `v := call(...)` into the early-return form",
    )
    parser.add_argument(
        "--no-scope-check",
        dest="scope_check",
        action="store_false",
        help="Rewrite calls even when the callee name is bound locally",
    )
    parser.add_argument(
        "--separator",
        default=":",
        help="Field separator for string-encoded payloads (default: ':')",
    )
    parser.add_argument(
        "--router-type",
        default="*Router",
        help="Go type of the router parameter (default: *Router)",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="count",
        default=0,
        help="Log progress (-v) or every decision (-vv) to stderr",
    )
    return parser


def config_from_args(parsed: argparse.Namespace) -> CompilerConfig:
    """Build a CompilerConfig from parsed arguments."""
    return CompilerConfig(
        marshaling=parsed.marshaling,
        coercion=parsed.coercion,
        body_scan=parsed.body_scan,
        propagate_errors=parsed.propagate_errors,
        scope_check=parsed.scope_check,
        separator=parsed.separator,
        router_type=parsed.router_type,
    )


def run_cli(args: list[str]) -> int:
    """Run the CLI with the given arguments.

    Args:
        args: Command-line arguments (without program name)

    Returns:
        Exit code (0 for success, non-zero for errors)
    """
    try:
        parsed = create_parser().parse_args(args)
    except SystemExit as e:
        return e.code if e.code else 1

    setup_logging(parsed.verbose)

    try:
        config = config_from_args(parsed)
    except ValueError as e:
        logger.error(f"Invalid configuration: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return 2

    source = Path(parsed.source)
    logger.info(f"Compiling {source}")
    try:
        result = compile_file(source, Path(parsed.target), config)
    except CompileError as e:
        logger.error(f"Compilation failed in {e.phase}: {e}")
        print(f"Error: {source}: {e}", file=sys.stderr)
        return 1
    except OSError as e:
        logger.error(f"I/O error: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(result.to_json())
    return 0


def main():
    """Entry point for the CLI."""
    sys.exit(run_cli(sys.argv[1:]))


if __name__ == "__main__":
    main()
