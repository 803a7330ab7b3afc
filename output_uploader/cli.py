"""Command line interface for output_uploader package."""
from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import signal
import sys
from contextlib import AsyncExitStack
from pathlib import Path
from typing import Optional, Sequence

from rich.logging import RichHandler

from .cli_progress import render_configuration_summary, render_error, render_result
from .errors import UploadError
from .models import DataLoadingFormat, IOStrategy, UploadConfig, VariableMap
from .orchestrator import Uploader
from .runner import UploadRunner
from .services import FileSystemDataStore, HTTPDataStore, LiteralMapSerializer

logger = logging.getLogger(__name__)

DEFAULT_ERROR_FILE = "error.txt"


class CLIError(RuntimeError):
    """Raised when CLI validation/execution fails."""


def _setup_logging(debug: bool, silent: bool, log_level: Optional[str]) -> str:
    """
    Configure logging.

    Default behavior is silent unless --debug or --log-level is provided.
    Returns a string describing effective mode.
    """
    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)

    logging.disable(logging.NOTSET)

    if silent or (not debug and not log_level):
        logging.disable(logging.CRITICAL)
        root_logger.setLevel(logging.CRITICAL + 1)
        return "silent"

    if debug:
        level = logging.DEBUG
    else:
        level = getattr(logging, log_level.upper(), logging.INFO)

    handler = RichHandler(
        rich_tracebacks=True,
        markup=False,
        show_time=False,
        show_path=False,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    root_logger.addHandler(handler)
    root_logger.setLevel(level)
    return logging.getLevelName(level)


def _strip_optional_quotes(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in {"'", '"'}:
        return value[1:-1]
    return value


def _load_env_file(path: Path, override: bool = False) -> None:
    if not path.exists():
        raise CLIError(f"env file not found: {path}")
    if not path.is_file():
        raise CLIError(f"env path is not a file: {path}")

    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise CLIError(f"could not read env file {path}: {exc}") from exc

    for raw_line in content.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if line.startswith("export "):
            line = line[len("export ") :].strip()
        if "=" not in line:
            continue

        key, value = line.split("=", 1)
        key = key.strip()
        if not key:
            continue

        value = _strip_optional_quotes(value.strip())
        if override or key not in os.environ:
            os.environ[key] = value


def _resolve_default_env_file() -> Optional[Path]:
    default_env = Path(".env")
    return default_env if default_env.exists() and default_env.is_file() else None


def _load_schema(path: Path) -> VariableMap:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise CLIError(f"could not read schema {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise CLIError(f"schema {path} is not valid JSON: {exc}") from exc

    try:
        return VariableMap.from_dict(data)
    except (KeyError, TypeError, ValueError) as exc:
        raise CLIError(f"invalid schema {path}: {exc}") from exc


def _parse_enum(enum_cls, value: str, flag: str):
    try:
        return enum_cls(value.strip().lower())
    except ValueError:
        choices = ", ".join(member.value for member in enum_cls)
        raise CLIError(f"invalid {flag} '{value}' (choose from: {choices})") from None


def _install_cancel_handlers(cancel_event: asyncio.Event) -> None:
    """SIGTERM stops new uploads from starting."""
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGTERM, cancel_event.set)
    except (NotImplementedError, RuntimeError):
        logger.debug("Signal handlers not supported on this platform")


async def _run_upload(
    local_root: Path,
    schema: VariableMap,
    output_ref: str,
    raw_ref: str,
    store_root: Optional[Path],
    store_url: Optional[str],
    data_format: DataLoadingFormat,
    io_strategy: IOStrategy,
    error_file: str,
    config: UploadConfig,
    failure_file: Optional[str] = None,
) -> int:
    cancel_event = asyncio.Event()
    _install_cancel_handlers(cancel_event)

    async with AsyncExitStack() as stack:
        if store_url:
            store = await stack.enter_async_context(HTTPDataStore(store_url))
        elif store_root:
            store = FileSystemDataStore(store_root)
        else:
            raise CLIError("no store configured (use --store-root or --store-url)")

        try:
            serializer = LiteralMapSerializer(store, data_format)
        except ValueError as exc:
            raise CLIError(str(exc)) from exc

        uploader = Uploader(store, serializer, data_format, io_strategy, error_file, config)
        runner = UploadRunner(uploader, serializer, failure_file)

        try:
            result = await runner.run(schema, local_root, output_ref, raw_ref, cancel_event=cancel_event)
        except UploadError as exc:
            render_error(str(exc))
            return 1

        render_result(result)
        return 0


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="output-uploader",
        description="Upload a task's local outputs and write the typed output record.",
    )
    parser.add_argument("local_root", nargs="?", type=Path, help="Directory holding the task outputs")
    parser.add_argument("-s", "--schema", type=Path, default=None, help="Output schema (JSON VariableMap)")
    parser.add_argument("-o", "--output-ref", default=None, help="Reference where the output record is written")
    parser.add_argument("-r", "--raw-ref", default=None, help="Base reference for uploaded data")
    parser.add_argument(
        "--store-root",
        type=Path,
        default=None,
        help="Local directory store (default from UPLOADER_STORE_ROOT)",
    )
    parser.add_argument(
        "--store-url",
        default=None,
        help="HTTP object store URL (default from UPLOADER_STORE_URL)",
    )
    parser.add_argument(
        "-f",
        "--format",
        default=DataLoadingFormat.JSON.value,
        help="Output record encoding: json or yaml",
    )
    parser.add_argument(
        "--io-strategy",
        default=IOStrategy.UPLOAD_ON_EXIT.value,
        help="upload_on_exit or upload_eager",
    )
    parser.add_argument(
        "--error-file",
        default=DEFAULT_ERROR_FILE,
        help=f"Error file name, relative to LOCAL_ROOT unless absolute (default {DEFAULT_ERROR_FILE})",
    )
    parser.add_argument(
        "--failure-file",
        default=None,
        help="Where upload failures are described (default ERROR_FILE.upload-failure)",
    )
    parser.add_argument("--allow-missing", action="store_true", help="Skip declared outputs that are missing")
    parser.add_argument("--max-parallel", type=int, default=None, help="Concurrent file uploads per directory")
    parser.add_argument(
        "--env-file",
        type=Path,
        default=None,
        help="Load environment variables from this .env file",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logs")
    parser.add_argument("--silent", action="store_true", help="Only print errors")
    parser.add_argument(
        "--log-level",
        default=None,
        help="Explicit log level (DEBUG/INFO/WARNING/ERROR)",
    )
    return parser


def run_cli(argv: Optional[Sequence[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    used_env_file = args.env_file or _resolve_default_env_file()
    if used_env_file is not None:
        try:
            _load_env_file(Path(used_env_file))
        except CLIError as exc:
            print(f"ERROR: {exc}", file=sys.stderr)
            return 1

    effective_log_mode = _setup_logging(
        debug=args.debug,
        silent=args.silent,
        log_level=args.log_level,
    )

    if args.local_root is None:
        parser.print_help()
        return 0

    local_root = Path(args.local_root).expanduser()
    store_root = args.store_root or (
        Path(os.environ["UPLOADER_STORE_ROOT"]) if os.getenv("UPLOADER_STORE_ROOT") else None
    )
    store_url = args.store_url or os.getenv("UPLOADER_STORE_URL")

    try:
        if args.schema is None:
            raise CLIError("--schema is required")
        if not args.output_ref or not args.raw_ref:
            raise CLIError("--output-ref and --raw-ref are required")
        schema = _load_schema(Path(args.schema).expanduser())
        data_format = _parse_enum(DataLoadingFormat, args.format, "--format")
        io_strategy = _parse_enum(IOStrategy, args.io_strategy, "--io-strategy")
        config = UploadConfig.from_env(
            max_parallel_uploads=args.max_parallel,
            allow_missing_outputs=True if args.allow_missing else None,
        )
    except (CLIError, ValueError) as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1

    render_configuration_summary(
        {
            "Local Root": str(local_root),
            "Outputs": ", ".join(sorted(schema.variables)) or "(none)",
            "Output Ref": args.output_ref,
            "Raw Ref": args.raw_ref,
            "Store": store_url or (str(store_root) if store_root else "(missing)"),
            "Format": data_format.value,
            "IO Strategy": io_strategy.value,
            "Error File": args.error_file,
            "Allow Missing": "yes" if config.allow_missing_outputs else "no",
            "Max Parallel": config.max_parallel_uploads,
            "Env File": str(used_env_file) if used_env_file else "-",
            "Logging": effective_log_mode,
        }
    )

    try:
        return asyncio.run(
            _run_upload(
                local_root=local_root,
                schema=schema,
                output_ref=args.output_ref,
                raw_ref=args.raw_ref,
                store_root=store_root,
                store_url=store_url,
                data_format=data_format,
                io_strategy=io_strategy,
                error_file=args.error_file,
                config=config,
                failure_file=args.failure_file,
            )
        )
    except CLIError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("Cancelled.", file=sys.stderr)
        return 130


def main() -> None:
    raise SystemExit(run_cli())


if __name__ == "__main__":
    main()
