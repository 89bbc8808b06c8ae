"""
automemo command line entry point
"""

import logging
import time
from typing import Any

import typer
from pydantic import ValidationError

from automemo.features import Feature, FeatureRegistry, OperationResult
from automemo.settings import VERBOSE_LEVEL, MemoSettings

# Module-level logger
logger = logging.getLogger("automemo.main")

# Create CLI app with Typer
app = typer.Typer(
    name="automemo",
    help="automemo - tiered, garbage-collection friendly memoization",
    add_completion=False,
)


# ----------------- Helper Functions -----------------


class ElapsedMsFormatter(logging.Formatter):
    """Formatter that shows milliseconds since program start, right-aligned for up to 9999 seconds."""
    def __init__(self, fmt=None, datefmt=None, *args, **kwargs):
        super().__init__(fmt, datefmt, *args, **kwargs)
        self.start_time = time.monotonic()
        self.width = 8  # Enough for '9999000ms'

    def format(self, record):
        elapsed_ms = int((time.monotonic() - self.start_time) * 1000)
        if elapsed_ms < 10**7:  # up to 9999.999s
            elapsed = f"[{elapsed_ms:>{self.width}}ms]"
        else:
            elapsed = f"[{elapsed_ms}ms]"
        record.elapsed = elapsed
        return super().format(record)


def setup_logging(debug: bool = False, verbose: bool = False) -> None:
    """Set up logging configuration"""
    if debug:
        log_level = logging.DEBUG
    elif verbose:
        log_level = VERBOSE_LEVEL
    else:
        try:
            log_level = MemoSettings.from_env().log_level_number
        except ValidationError as exc:
            log_level = logging.INFO
            logger.warning(f"Ignoring invalid automemo settings: {exc}")
    formatter = ElapsedMsFormatter('%(elapsed)s %(message)s')
    handler = logging.StreamHandler()
    handler.setFormatter(formatter)
    root = logging.getLogger()
    root.handlers = []  # Remove any existing handlers
    root.addHandler(handler)
    root.setLevel(log_level)


def _feature_or_exit(feature_name: str) -> Feature:
    feature = FeatureRegistry.get_feature(feature_name)
    if feature is None:
        logger.error("Unknown feature: %s", feature_name)
        raise typer.Exit(code=1)
    return feature


def _handle_cli_result(feature_name: str, result: OperationResult[Any]) -> None:
    if not result.success:
        logger.error("Operation failed: %s", result.error or "Unknown error")
        raise typer.Exit(code=1)

    data = result.data or {}
    if feature_name == "version":
        logger.info("automemo version: %s", data.get("version", "unknown"))
    elif feature_name == "bench":
        logger.info(
            "%d calls, %d invocations, %.3f ms",
            data.get("calls", 0),
            data.get("invocations", 0),
            data.get("elapsed_ms", 0.0),
        )
        logger.log(VERBOSE_LEVEL, "Cache statistics: %s", data.get("stats"))
        if not data.get("consistent", True):
            logger.warning("Repeated calls returned different objects")


def handle_cli_feature(feature_name: str, **kwargs: Any) -> None:
    """Handle a CLI feature execution"""
    feature = _feature_or_exit(feature_name)
    result = feature.handler(**kwargs)
    _handle_cli_result(feature_name, result)


# ----------------- CLI Commands -----------------


@app.command()
def version() -> None:
    """Show the automemo version"""
    setup_logging(False)
    handle_cli_feature("version")


@app.command()
def bench(
    calls: int = typer.Option(1_000_000, "--calls", "-n", help="Number of loop iterations (two calls each)"),
    argument: str = typer.Option("321", "--argument", help="Argument passed on every call"),
    no_cache: bool = typer.Option(
        False,
        "--no-cache",
        help="Force recomputation without reading or writing the cache",
    ),
    debug: bool = typer.Option(False, "--debug", help="Enable debug mode"),
    verbose: bool = typer.Option(False, "--verbose", help="Enable verbose logging (between info and debug)"),
) -> None:
    """Call a memoized identity function repeatedly and report invocations"""
    setup_logging(debug, verbose)
    handle_cli_feature("bench", calls=calls, argument=argument, no_cache=no_cache)


if __name__ == "__main__":
    app()
