"""Module entrypoint.

Allows: python -m mixedbuild
"""

from __future__ import annotations

import argparse
import logging
import signal
import sys
import textwrap
from collections.abc import Sequence
from pathlib import Path
from typing import cast

from pydantic import ValidationError

from . import __version__
from . import run as run_mod
from .config import (
    ENV_CHECK_TOOL,
    ENV_LOG_LEVEL,
    ENV_TMPDIR,
    BuildConfig,
    env_log_level,
    env_path,
    load_environment,
)
from .errors import MixedBuildError

EXIT_OK = 0
EXIT_ERROR = 1

log = logging.getLogger("mixedbuild")


def _build_parser() -> argparse.ArgumentParser:
    epilog = textwrap.dedent(
        f"""\
        Environment:
          {ENV_CHECK_TOOL}   checker used when CHECK_TOOL is omitted
          {ENV_TMPDIR}       parent directory for the scratch directory
          {ENV_LOG_LEVEL}    log level (default INFO)

        Exit codes:
          0   Success
          1   Usage, input or build error
        """
    )

    parser = argparse.ArgumentParser(
        prog="build_mixed",
        description=(
            "Build a mixed device image archive from a GSI build and a device build."
        ),
        epilog=epilog,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    _ = parser.add_argument(
        "--version",
        action="version",
        version=f"build_mixed {__version__}",
        help="Print version and exit.",
    )
    _ = parser.add_argument(
        "-v",
        dest="vendor_version",
        metavar="VENDOR_VERSION",
        default=None,
        help="Vendor version the system image is patched for. Requires -m.",
    )
    _ = parser.add_argument(
        "-m",
        dest="modify_script",
        metavar="MODIFY_SCRIPT",
        default=None,
        help="Script that modifies the system image in target files. Requires -v.",
    )
    _ = parser.add_argument(
        "--report",
        dest="report_path",
        metavar="PATH",
        default=None,
        help="Write a JSON run report to PATH.",
    )
    _ = parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging.",
    )
    _ = parser.add_argument(
        "gsi_dir",
        metavar="GSI_DIR",
        help="Directory holding the GSI *-target_files-*.zip.",
    )
    _ = parser.add_argument(
        "device_dir",
        metavar="DEVICE_DIR",
        help="Directory holding the device *-img-*.zip and *-target_files-*.zip.",
    )
    _ = parser.add_argument(
        "out_dir",
        metavar="OUT_DIR",
        help="Output (dist) directory.",
    )
    _ = parser.add_argument(
        "check_tool",
        metavar="CHECK_TOOL",
        nargs="?",
        default=None,
        help="Optional compatibility checker (checkvintf).",
    )
    return parser


def _configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else env_log_level()
    logging.basicConfig(
        level=level, format="[%(levelname)s] %(message)s", stream=sys.stderr
    )
    logging.getLogger("mixedbuild").setLevel(level)


def _config_from_args(args: argparse.Namespace) -> BuildConfig:
    check_tool_raw = cast(str | None, getattr(args, "check_tool", None))
    modify_raw = cast(str | None, getattr(args, "modify_script", None))
    report_raw = cast(str | None, getattr(args, "report_path", None))
    check_tool = Path(check_tool_raw) if check_tool_raw else env_path(ENV_CHECK_TOOL)
    return BuildConfig(
        gsi_dir=Path(cast(str, args.gsi_dir)),
        device_dir=Path(cast(str, args.device_dir)),
        out_dir=Path(cast(str, args.out_dir)),
        check_tool=check_tool,
        vendor_version=cast(str | None, getattr(args, "vendor_version", None)),
        modify_script=Path(modify_raw) if modify_raw else None,
        scratch_parent=env_path(ENV_TMPDIR),
        report_path=Path(report_raw) if report_raw else None,
    )


def _terminate(signum: int, frame: object) -> None:
    _ = frame
    # Unwinds the scratch directory context before the process exits.
    log.warning("Received signal %d, cleaning up", signum)
    raise SystemExit(EXIT_ERROR)


def _usage_error(parser: argparse.ArgumentParser, messages: Sequence[str]) -> int:
    parser.print_usage(sys.stderr)
    for msg in messages:
        print(f"{parser.prog}: error: {msg}", file=sys.stderr)
    return EXIT_ERROR


def main(argv: Sequence[str] | None = None) -> int:
    if argv is None:
        argv = sys.argv[1:]

    load_environment()
    parser = _build_parser()
    try:
        args = parser.parse_args(list(argv))
    except SystemExit as e:
        # argparse uses 2 for usage errors; this tool reports every error as 1.
        return EXIT_OK if e.code in (0, None) else EXIT_ERROR

    _configure_logging(bool(getattr(args, "verbose", False)))

    try:
        config = _config_from_args(args)
    except ValidationError as e:
        return _usage_error(
            parser, [str(err.get("msg", "invalid arguments")) for err in e.errors()]
        )

    previous = signal.signal(signal.SIGTERM, _terminate)
    try:
        report = run_mod.build_mixed(config)
    except (MixedBuildError, OSError) as e:
        print(f"{parser.prog}: {e}", file=sys.stderr)
        return EXIT_ERROR
    finally:
        _ = signal.signal(signal.SIGTERM, previous)

    if report.status != "ok":
        failed = report.failed_stage
        reason = "; ".join(failed.limitations) if failed is not None else ""
        stage = failed.stage if failed is not None else "<unknown>"
        print(f"{parser.prog}: stage '{stage}' failed: {reason}", file=sys.stderr)
        return EXIT_ERROR

    print(str(config.out_dir))
    return EXIT_OK


def _entry() -> None:
    raise SystemExit(main())


if __name__ == "__main__":
    raise SystemExit(main())
