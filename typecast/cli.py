"""Command-line interface for typecast.

Provides a ``repair`` command for local JSON repair and a ``cast`` command
that runs the full self-healing loop against a configured backend.
"""

from __future__ import annotations

import argparse
import importlib
import json
import logging
import sys
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from .caster import TypeCast
from .config import CastOptions
from .errors import TypeCastError
from .llm.json_utils import repair_json
from .llm.provider import LLMProviderError
from .llm.provider_registry import available_providers, create_provider
from .validation import PydanticValidator

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="typecast",
        description="Turn messy LLM output into schema-validated JSON",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Repair a fenced/chatty response saved to a file
  python -m typecast repair response.txt

  # Ask the default backend for a value matching a pydantic model
  python -m typecast cast --schema myapp.models:User --prompt "Return a user."

Environment Variables:
  LLM_PRIMARY                    Backend to use (default: gemini)
  TYPECAST_MAX_RETRIES           Corrective retries per cast (default: 2)
  GEMINI_MIN_REQUEST_INTERVAL    Min seconds between Gemini requests (default: 0)
  MISTRAL_API_KEY                Required for the mistral backend
        """,
    )
    parser.add_argument(
        "--dotenv",
        type=Path,
        help="Path to .env file for API keys and settings",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: WARNING)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    repair = subparsers.add_parser("repair", help="Apply local JSON repair only")
    repair.add_argument(
        "input",
        nargs="?",
        type=Path,
        help="File containing the raw response (default: stdin)",
    )

    cast = subparsers.add_parser("cast", help="Prompt a backend and validate the result")
    cast.add_argument(
        "--schema",
        required=True,
        help="Schema to validate against, as module:attribute (e.g. myapp.models:User)",
    )
    prompt_group = cast.add_mutually_exclusive_group(required=True)
    prompt_group.add_argument("--prompt", help="Prompt text")
    prompt_group.add_argument("--prompt-file", type=Path, help="File containing the prompt")
    cast.add_argument(
        "--provider",
        choices=available_providers(),
        help="Backend to use (default: LLM_PRIMARY or gemini)",
    )
    cast.add_argument(
        "--system-prompt",
        help="System prompt text or path to a prompt file",
    )
    cast.add_argument(
        "--max-retries",
        type=int,
        help="Corrective retries after the first attempt (default: TYPECAST_MAX_RETRIES or 2)",
    )
    return parser


def load_schema(dotted_path: str) -> Any:
    """Import ``module:attribute`` (attribute may be dotted)."""

    module_name, sep, attr_path = dotted_path.partition(":")
    if not sep or not module_name or not attr_path:
        raise ValueError(f"Schema must look like module:attribute, got {dotted_path!r}")
    target: Any = importlib.import_module(module_name)
    for part in attr_path.split("."):
        target = getattr(target, part)
    return target


def _read_text(path: Path | None) -> str:
    if path is None:
        return sys.stdin.read()
    return path.read_text(encoding="utf-8")


def run_repair(args: argparse.Namespace) -> int:
    repaired = repair_json(_read_text(args.input))
    print(repaired)
    try:
        json.loads(repaired)
    except json.JSONDecodeError as exc:
        print(f"Error: repaired text is still not valid JSON: {exc}", file=sys.stderr)
        return 1
    return 0


def run_cast(args: argparse.Namespace) -> int:
    try:
        validator = PydanticValidator(load_schema(args.schema))
    except (ImportError, AttributeError, ValueError) as exc:
        print(f"Error loading schema {args.schema!r}: {exc}", file=sys.stderr)
        return 1

    prompt = args.prompt if args.prompt is not None else _read_text(args.prompt_file)

    try:
        options = CastOptions.from_env()
        if args.max_retries is not None:
            options = CastOptions(max_retries=args.max_retries)
        provider = create_provider(
            args.provider,
            system_prompt=args.system_prompt,
        )
    except (TypeError, ValueError, LLMProviderError) as exc:
        print(f"Error creating LLM provider: {exc}", file=sys.stderr)
        return 1

    logger.info("Using LLM provider: %s", provider.name)

    try:
        value = TypeCast(provider, options=options).cast(validator, prompt)
    except TypeCastError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    except LLMProviderError as exc:
        print(f"LLM error: {exc}", file=sys.stderr)
        return 1

    print(validator.dump_json(value))
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the CLI.

    Args:
        argv: Command-line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code (0 for success, 1 for error)
    """
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level))

    # Load .env before anything reads LLM_PRIMARY or API keys
    if args.dotenv is not None:
        load_dotenv(dotenv_path=args.dotenv, override=True)

    if args.command == "repair":
        return run_repair(args)
    return run_cast(args)
