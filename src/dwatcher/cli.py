"""CLI entry point for dwatcher: parses flags and runs the supervisor."""

import argparse
import asyncio
import logging
import os
import sys
from dataclasses import replace
from pathlib import Path

from dwatcher import __version__
from dwatcher_core.config import (
    DEFAULT_CONFIG_FILENAME,
    FileConfig,
    create_default_config,
    load_config_file,
    normalize_extension,
)
from dwatcher_core.notifier import ConsoleNotifier
from dwatcher_core.orchestrator import run
from dwatcher_core.watchers import DEFAULT_DEBOUNCE_MS, WatchConfig

DEBUG_ENV_VAR = "DWATCHER_DEBUG"


def _debounce_ms(value: str) -> int:
    """Parse --debounce, falling back to the default on bad input."""
    try:
        ms = int(value)
    except ValueError:
        return DEFAULT_DEBOUNCE_MS
    return ms if ms > 0 else DEFAULT_DEBOUNCE_MS


def _extensions(value: str) -> tuple[str, ...]:
    """Parse a comma-separated extension list."""
    return tuple(normalize_extension(ext) for ext in value.split(",") if ext.strip())


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="dwatcher",
        description="Run a command and restart it when source files change.",
        epilog="Examples:\n"
        "  dwatcher python app.py\n"
        '  dwatcher "npm start"\n'
        "  dwatcher python app.py --verbose\n"
        '  dwatcher "python server.py --port 3000" --debounce 500\n'
        "  dwatcher --ext .py,.toml -- python -m myapp --reload\n"
        "\n"
        "Environment Variables:\n"
        "  DWATCHER_RUNNING    Set to '1' when your app is running under dwatcher\n"
        "  DWATCHER_DEBUG      Set to enable debug logging",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "command",
        nargs="*",
        help="Command to run and its arguments; only the --options listed here belong to dwatcher",
    )
    parser.add_argument(
        "--debounce",
        type=_debounce_ms,
        metavar="MS",
        help=f"Debounce delay in milliseconds (default: {DEFAULT_DEBOUNCE_MS})",
    )
    parser.add_argument(
        "--ignore",
        action="append",
        default=[],
        metavar="PATTERN",
        help="Add ignore pattern (can be used multiple times)",
    )
    parser.add_argument(
        "--ext",
        type=_extensions,
        metavar="EXTENSIONS",
        help="Watch specific extensions (default: .js,.mjs,.json,.ts,.jsx,.tsx)",
    )
    parser.add_argument("--verbose", action="store_true", default=None, help="Enable verbose logging")
    parser.add_argument(
        "--no-clear",
        dest="clear",
        action="store_false",
        default=None,
        help="Don't clear console on restart",
    )
    parser.add_argument("--watch", metavar="PATH", help="Watch specific directory (default: current directory)")
    parser.add_argument(
        "-c",
        "--config",
        help=f"Path to config file (default: {DEFAULT_CONFIG_FILENAME} if present; -c only before the command)",
    )
    parser.add_argument(
        "--init",
        action="store_true",
        help=f"Create a default {DEFAULT_CONFIG_FILENAME} (or the --config path) and exit",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    return parser


VALUE_OPTIONS = frozenset({"--debounce", "--ignore", "--ext", "--watch", "--config"})
"""dwatcher options that take a value."""

FLAG_OPTIONS = frozenset({"--verbose", "--no-clear", "--init", "--help", "--version"})

SHORT_OPTIONS = {"-c": "--config", "-h": "--help"}
"""Short aliases, honored only before the first command word."""


def split_argv(argv: list[str]) -> tuple[list[str], list[str], list[str]]:
    """
    Separate dwatcher's own options from the command to run.

    Only recognized "--" options (and their values) belong to dwatcher. Any
    other token, including single-dash flags like "-m", is a command word.
    An unknown "--option" is dropped but the token after it stays a command
    word. Everything after "--" is a command word.

    Args:
        argv: Arguments without the program name

    Returns:
        Tuple of (option tokens as "--name=value" or "--name", command words, unknown options)
    """
    options: list[str] = []
    command: list[str] = []
    unknown: list[str] = []

    i = 0
    while i < len(argv):
        arg = argv[i]
        if arg == "--":
            command.extend(argv[i + 1 :])
            break
        if not command and arg in SHORT_OPTIONS:
            arg = SHORT_OPTIONS[arg]

        if not arg.startswith("--"):
            command.append(arg)
        else:
            name, has_value, value = arg.partition("=")
            if name in VALUE_OPTIONS:
                if not has_value and i + 1 < len(argv):
                    i += 1
                    value, has_value = argv[i], "="
                # Joined form, so a value starting with "-" is never read as an option
                options.append(f"{name}={value}" if has_value else name)
            elif name in FLAG_OPTIONS and not has_value:
                options.append(name)
            else:
                unknown.append(arg)
        i += 1

    return options, command, unknown


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Options may be mixed with the command words; see split_argv for how the
    two are told apart. Unrecognized options are collected in ``unknown``
    instead of failing.

    Args:
        argv: Arguments without the program name (defaults to sys.argv[1:])

    Returns:
        Parsed arguments namespace
    """
    argv = list(sys.argv[1:] if argv is None else argv)
    options, command, unknown = split_argv(argv)

    args = build_parser().parse_args(options)
    args.command = command
    args.unknown = unknown

    # Handle quoted commands (e.g., "npm start")
    if len(args.command) == 1 and " " in args.command[0].strip():
        args.command = args.command[0].split()

    return args


def build_settings(args: argparse.Namespace) -> tuple[list[str], WatchConfig]:
    """
    Merge the config file and command-line flags.

    Args:
        args: Parsed arguments

    Returns:
        Tuple of (command words, watch config)

    Raises:
        FileNotFoundError: If an explicit --config file is missing
        ValueError: If the config file is invalid
    """
    if args.config:
        file_config = load_config_file(args.config)
    elif Path(DEFAULT_CONFIG_FILENAME).exists():
        file_config = load_config_file(DEFAULT_CONFIG_FILENAME)
    else:
        file_config = FileConfig()

    config = file_config.to_watch_config()
    overrides = {}
    if args.debounce is not None:
        overrides["debounce_ms"] = args.debounce
    if args.ignore:
        overrides["ignore_patterns"] = config.ignore_patterns + tuple(args.ignore)
    if args.ext is not None:
        overrides["watch_extensions"] = args.ext
    if args.verbose is not None:
        overrides["verbose"] = args.verbose
    if args.clear is not None:
        overrides["clear"] = args.clear
    if args.watch:
        overrides["watch_path"] = Path(args.watch)

    command = args.command or file_config.command
    return command, replace(config, **overrides)


def configure_logging() -> None:
    """Set up stdlib logging; DWATCHER_DEBUG enables debug output."""
    logging.basicConfig(level=logging.WARNING, format="%(levelname)s %(name)s: %(message)s")
    if os.environ.get(DEBUG_ENV_VAR):
        for name in ("dwatcher", "dwatcher_core"):
            logging.getLogger(name).setLevel(logging.DEBUG)


def main(argv: list[str] | None = None) -> None:
    """
    Main entry point for the dwatcher CLI.

    Handles:
    - Argument parsing and config-file merging
    - --init config creation
    - Running the supervisor until a termination signal
    - Error handling and exit codes
    """
    configure_logging()
    args = parse_args(argv)
    notifier = ConsoleNotifier()

    for option in args.unknown:
        notifier.warning(f"Unknown option: {option}")

    if args.init:
        config_path = Path(args.config or DEFAULT_CONFIG_FILENAME).resolve()
        try:
            if create_default_config(config_path):
                print(f"Created default config at: {config_path}")
            else:
                print(f"Config already exists: {config_path}")
        except OSError as e:
            print(f"Error: Failed to create config: {e}", file=sys.stderr)
            sys.exit(1)
        return

    try:
        command, config = build_settings(args)
    except (FileNotFoundError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    if not command:
        print("Error: No command specified to run", file=sys.stderr)
        build_parser().print_usage(sys.stderr)
        sys.exit(1)

    try:
        exit_code = asyncio.run(run(command[0], command[1:], config, notifier))
    except KeyboardInterrupt:
        sys.exit(130)
    except Exception as e:
        notifier.error(str(e))
        sys.exit(1)

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
