"""Command-line entry point for the smdis disassembler."""

import argparse
from datetime import datetime, timezone
import glob
import logging
from logging.handlers import RotatingFileHandler
import os
import sys
from types import TracebackType
from typing import List

from smdis.smdis_config import DisassemblyConfig
from smdis.smdis_error import UnitLoadError
from smdis.smdis_files import redact_path, sibling_path, write_file_atomic
from smdis.smdis_function_tree import FunctionTreeWalker
from smdis.smdis_unit_loader import load_unit
from smdecompile.decompile_client import OllamaDecompiler
from smdecompile.decompile_settings import MAX_NUM_CTX, MIN_NUM_CTX, DecompileSettings


def env_flag(name: str) -> bool:
    """Return True if an environment variable is set, non-empty and not "0"."""
    value = os.environ.get(name, "")
    return value != "" and value != "0"


def setup_logging(debug: bool, log_dir: str | None = None) -> None:
    """
    Configure logging to stderr and, optionally, to rotating log files.

    Args:
        debug: Log at DEBUG level instead of INFO
        log_dir: Directory for timestamped log files, or None for stderr only
    """
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stderr)]

    if log_dir:
        os.makedirs(log_dir, exist_ok=True)

        # Generate timestamp for log filename
        timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%d-%H-%M-%S-%f")[:23]
        log_file = os.path.join(log_dir, f"{timestamp}.log")

        # Keep up to 50 log files, max 1MB each
        handlers.append(RotatingFileHandler(
            log_file,
            maxBytes=1024*1024,  # 1MB
            backupCount=49,  # Keep 50 files total (current + 49 backups)
            encoding='utf-8'
        ))

    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers,
        force=True
    )

    if log_dir:
        cleanup_old_logs(log_dir, max_logs=50)


def cleanup_old_logs(log_dir: str, max_logs: int) -> None:
    """Remove oldest log files if we exceed maximum count."""
    log_files = glob.glob(os.path.join(log_dir, "*.log*"))
    log_files.sort(key=os.path.getctime)  # Sort by creation time

    # Remove oldest files if we have too many
    while len(log_files) > max_logs:
        try:
            os.remove(log_files.pop(0))  # Remove oldest file

        except OSError as e:
            logging.getLogger(__name__).debug("Could not remove old log file: %s", e)


def install_global_exception_handler() -> None:
    """Install a global exception handler for uncaught exceptions."""
    logger = logging.getLogger('GlobalExceptionHandler')

    def handle_exception(exc_type: type[BaseException], exc_value: BaseException, exc_traceback: TracebackType | None) -> None:
        """Handle uncaught exceptions and log them."""
        if issubclass(exc_type, KeyboardInterrupt):
            # Don't log keyboard interrupt
            sys.__excepthook__(exc_type, exc_value, exc_traceback)
            return

        logger.critical(
            "Uncaught exception",
            exc_info=(exc_type, exc_value, exc_traceback),
            stack_info=True
        )

    sys.excepthook = handle_exception


def _positive_int(text: str) -> int:
    value = int(text)
    if value <= 0:
        raise argparse.ArgumentTypeError(f"{text} must be positive")

    return value


def _non_negative_int(text: str) -> int:
    value = int(text)
    if value < 0:
        raise argparse.ArgumentTypeError(f"{text} must be non-negative")

    return value


def _num_ctx(text: str) -> int:
    value = int(text)
    if not MIN_NUM_CTX <= value <= MAX_NUM_CTX:
        raise argparse.ArgumentTypeError(f"{text} must be {MIN_NUM_CTX}-{MAX_NUM_CTX}")

    return value


def build_parser() -> argparse.ArgumentParser:
    """Build the command-line parser."""
    parser = argparse.ArgumentParser(
        prog="smdis",
        description="SpiderMonkey bytecode disassembler",
        epilog="Writes <input>.dis next to the input and prints the annotated listing."
    )
    parser.add_argument("input", help="JSON unit description to disassemble")
    parser.add_argument("-v", "--debug", action="store_true", help="enable debug output")
    parser.add_argument("--no-inner", action="store_true", help="disable nested function disassembly")
    parser.add_argument("--lines", dest="lines", action="store_true", default=False, help="show source line numbers")
    parser.add_argument("--no-lines", dest="lines", action="store_false", help="hide source line numbers")
    parser.add_argument("--no-sugar", action="store_true", help="disable idiom annotations")
    parser.add_argument("--no-dis-sugar", action="store_true", help="write the .dis file without idiom annotations")
    parser.add_argument("--max-depth", type=_non_negative_int, default=3, help="nested function depth (default: 3)")
    parser.add_argument("--decompile", action="store_true", help="decompile the listing with Ollama")
    parser.add_argument("--ollama-host", help="Ollama server URL (default: http://localhost:11434)")
    parser.add_argument("--ollama-model", help="Ollama model name (default: llama31-abliterated-q8:latest)")
    parser.add_argument("--ollama-timeout", type=_positive_int, help="request timeout in seconds (default: 300)")
    parser.add_argument("--ollama-retries", type=_non_negative_int, help="retries on failure (default: 3)")
    parser.add_argument("--ollama-num-ctx", type=_num_ctx, help="context window in tokens (default: 65536)")
    parser.add_argument("--settings", help="JSON file with decompiler settings")
    parser.add_argument("--log-dir", help="also write rotating log files to this directory")
    return parser


def build_decompile_settings(args: argparse.Namespace) -> DecompileSettings:
    """Combine a settings file (if any) with command-line overrides."""
    settings = DecompileSettings.load(args.settings) if args.settings else DecompileSettings()

    if args.ollama_host is not None:
        settings.host = args.ollama_host

    if args.ollama_model is not None:
        settings.model = args.ollama_model

    if args.ollama_timeout is not None:
        settings.timeout = args.ollama_timeout

    if args.ollama_retries is not None:
        settings.retries = args.ollama_retries

    if args.ollama_num_ctx is not None:
        settings.num_ctx = args.ollama_num_ctx

    settings.validate()
    return settings


def decompile_listing(dis_path: str, js_path: str, settings: DecompileSettings, debug: bool) -> bool:
    """
    Decompile a written listing and save the result next to it.

    Args:
        dis_path: Listing file
        js_path: Output path for the JavaScript
        settings: Decompiler settings
        debug: Show full paths in log messages

    Returns:
        True on success
    """
    logger = logging.getLogger(__name__)
    try:
        with open(dis_path, 'r', encoding='utf-8') as f:
            listing = f.read()

    except OSError as e:
        logger.error("Failed to read %s: %s", redact_path(dis_path, debug), e.strerror)
        return False

    function_name = os.path.splitext(os.path.basename(dis_path))[0] or "main"
    response = OllamaDecompiler(settings).decompile(listing, function_name)
    if response.error is not None:
        logger.error("Decompiler call failed: %s", response.error.message)
        return False

    try:
        write_file_atomic(js_path, response.content)

    except OSError as e:
        logger.error("Failed to write %s: %s", redact_path(js_path, debug), e.strerror)
        return False

    logger.info("Wrote %s", redact_path(js_path, debug))
    print(response.content)
    return True


def main(argv: List[str] | None = None) -> int:
    """Main function to run the disassembler."""
    args = build_parser().parse_args(argv)
    debug = args.debug or env_flag("SMDIS_DEBUG")

    setup_logging(debug, args.log_dir)
    install_global_exception_handler()
    logger = logging.getLogger(__name__)

    recurse = not args.no_inner
    if "SMDIS_INNER" in os.environ:
        recurse = env_flag("SMDIS_INNER") and not args.no_inner

    try:
        settings = build_decompile_settings(args) if args.decompile else None

    except (OSError, ValueError) as e:
        logger.error("Invalid decompiler settings: %s", e)
        return 2

    console_config = DisassemblyConfig(
        recurse_nested=recurse,
        annotate=not args.no_sugar,
        show_lines=args.lines,
        extended_hints=not args.no_sugar,
        max_depth=args.max_depth
    )
    file_config = console_config.for_listing_file(annotate=not args.no_dis_sugar)

    try:
        unit = load_unit(args.input)

    except UnitLoadError as e:
        logger.error("Failed to load %s: %s", redact_path(args.input, debug), e)
        return 1

    dis_path = sibling_path(args.input, ".dis")
    js_path = sibling_path(args.input, ".js")

    file_result = FunctionTreeWalker(config=file_config).walk(unit)
    try:
        write_file_atomic(dis_path, file_result.text)

    except OSError as e:
        logger.error("Failed to write %s: %s", redact_path(dis_path, debug), e.strerror)
        return 1

    logger.info("Wrote %s", redact_path(dis_path, debug))

    console_result = FunctionTreeWalker(config=console_config).walk(unit)
    sys.stdout.write(console_result.text)
    sys.stdout.flush()

    for diagnostic in console_result.diagnostics:
        logger.debug("Diagnostic: %s", diagnostic)

    if settings is not None and not decompile_listing(dis_path, js_path, settings, debug):
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
