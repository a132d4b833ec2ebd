"""
Logging configuration for spot-analyzer.

This module sets up the logging system with multiple outputs:
    - Console: Real-time messages with tqdm-compatible formatting
    - log_full.log: Complete log of all events (DEBUG and above)
    - log_errors.log: Only ERROR and CRITICAL level messages
    - analysis_failures.log: Tracks whose audio analysis failed, with Spotify URLs

The logging system follows the principle: everything to screen is also saved
to file, then filtered into specialized files.

Log File Locations:
    All log files are created in the logs/ folder of the storage directory.
    Each run gets its own timestamped files.

Usage:
    from spot_analyzer.core.logger import setup_logging, get_logger

    setup_logging(logs_dir)  # Call once at startup
    logger = get_logger(__name__)  # Get logger for each module

    logger.info("Loading playlist")
"""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import TextIO

from tqdm import tqdm


# Log format for file output (detailed with timestamp)
FILE_LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
FILE_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

SPOTIFY_TRACK_URL = "https://open.spotify.com/track/{track_id}"


# ANSI color codes
class Colors:
    """ANSI color codes for terminal output."""
    RESET = "\033[0m"
    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    BLUE = "\033[34m"
    CYAN = "\033[36m"
    WHITE = "\033[37m"
    BOLD = "\033[1m"


class ColoredConsoleFormatter(logging.Formatter):
    """
    Custom formatter that adds colors to console output.

    Colors:
        - DEBUG: Blue
        - INFO: Green
        - WARNING: Yellow
        - ERROR: Red
        - CRITICAL: Bold Red
    """

    LEVEL_COLORS = {
        logging.DEBUG: Colors.BLUE,
        logging.INFO: Colors.GREEN,
        logging.WARNING: Colors.YELLOW,
        logging.ERROR: Colors.RED,
        logging.CRITICAL: Colors.BOLD + Colors.RED,
    }

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelno, Colors.WHITE)
        colored_levelname = f"{color}{record.levelname}{Colors.RESET}"
        seconds = getattr(record, "countdown_seconds", None)
        if seconds is not None:
            return f"{colored_levelname}: {format_countdown_message(seconds, colored=True)}"
        return f"{colored_levelname}: {record.getMessage()}"


class TqdmLoggingHandler(logging.Handler):
    """
    Logging handler that writes to console without breaking progress bars.

    Uses tqdm.write(), which prints above any active bar instead of
    through it. When no stream is given, sys.stderr is looked up at emit
    time so a redirected stderr (e.g. while a rich progress display is
    live) is honored.

    Attributes:
        stream: The output stream, or None for the current sys.stderr.
    """

    def __init__(self, stream: TextIO | None = None) -> None:
        super().__init__()
        self.stream = stream

    def emit(self, record: logging.LogRecord) -> None:
        try:
            msg = self.format(record)
            tqdm.write(msg, file=self.stream or sys.stderr)
        except Exception:
            self.handleError(record)


class AnalysisFailedTrackHandler(logging.Handler):
    """
    Handler that captures failed analyses for the analysis failures report.

    This handler listens for log records that contain track analysis
    failure information and writes them to analysis_failures.log in a
    simple, human-readable format:

        Song Title (Artist Name)
        https://open.spotify.com/track/xxxxx
        Reason: analysis not found

    The handler looks for specific extra fields in log records:
        - 'analysis_failed_track_name': Display name of the track
        - 'analysis_failed_track_id': The Spotify track ID
        - 'analysis_failed_reason': The error message

    Only records containing these fields are written to the report.

    Attributes:
        report_path: Path to the analysis_failures.log file.
        report_file: Open file handle (opened by open()).
    """

    def __init__(self, report_path: Path) -> None:
        super().__init__()
        self.report_path = report_path
        self.report_file: TextIO | None = None

    def open(self) -> None:
        """
        Open the report file for writing.

        Called by setup_logging() after handler is created.
        File is opened in write mode (overwrites existing content).
        """
        self.report_file = open(self.report_path, "w", encoding="utf-8")

    def emit(self, record: logging.LogRecord) -> None:
        if not hasattr(record, "analysis_failed_track_name"):
            return

        if self.report_file is None:
            return

        try:
            track_name = getattr(record, "analysis_failed_track_name", "Unknown")
            track_id = getattr(record, "analysis_failed_track_id", "")
            reason = getattr(record, "analysis_failed_reason", "")

            self.report_file.write(f"{track_name}\n")
            self.report_file.write(f"{SPOTIFY_TRACK_URL.format(track_id=track_id)}\n")
            self.report_file.write(f"Reason: {reason}\n\n")
            self.report_file.flush()
        except Exception:
            self.handleError(record)

    def close(self) -> None:
        """
        Close the report file handle.

        Called automatically when logging is shut down.
        Safe to call multiple times.
        """
        if self.report_file is not None:
            try:
                self.report_file.close()
            except OSError:
                pass
            self.report_file = None
        super().close()


class ErrorOnlyFilter(logging.Filter):
    """Filter that only allows ERROR and CRITICAL level records."""

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno >= logging.ERROR


def setup_logging(logs_dir: Path) -> None:
    """
    Configure the logging system for the application.

    This function should be called ONCE at application startup, after
    the configuration is loaded but before any other operations.

    Args:
        logs_dir: Directory where log files will be created.

    Behavior:
        1. Create logs_dir if it doesn't exist
        2. Generate timestamp for this run's log files
        3. Configure root logger level to DEBUG
        4. Console handler (TqdmLoggingHandler), INFO and up, colored
        5. Full log file handler, DEBUG and up
        6. Error log file handler, filtered to ERROR+ by ErrorOnlyFilter
        7. Analysis failures report handler

    File Handling:
        - Each run creates new log files with unique timestamps
        - Files use UTF-8 encoding
        - Files are closed by shutdown_logging()
    """
    logs_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)

    # Remove any existing handlers
    root_logger.handlers.clear()

    console_handler = TqdmLoggingHandler()
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(ColoredConsoleFormatter())
    root_logger.addHandler(console_handler)

    full_log_path = logs_dir / f"log_full_{timestamp}.log"
    full_handler = logging.FileHandler(full_log_path, mode="w", encoding="utf-8")
    full_handler.setLevel(logging.DEBUG)
    full_handler.setFormatter(logging.Formatter(FILE_LOG_FORMAT, FILE_DATE_FORMAT))
    root_logger.addHandler(full_handler)

    error_log_path = logs_dir / f"log_errors_{timestamp}.log"
    error_handler = logging.FileHandler(error_log_path, mode="w", encoding="utf-8")
    error_handler.setLevel(logging.DEBUG)  # Filter handles the level restriction
    error_handler.setFormatter(logging.Formatter(FILE_LOG_FORMAT, FILE_DATE_FORMAT))
    error_handler.addFilter(ErrorOnlyFilter())
    root_logger.addHandler(error_handler)

    failures_path = logs_dir / f"analysis_failures_{timestamp}.log"
    failures_handler = AnalysisFailedTrackHandler(failures_path)
    failures_handler.open()
    root_logger.addHandler(failures_handler)

    # Keep urllib3 connection chatter out of the full log
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for a module.

    Args:
        name: The logger name, typically __name__ of the calling module.

    Note:
        Loggers obtained before setup_logging() is called will have no
        handlers and will not produce output.
    """
    return logging.getLogger(name)


def format_countdown_message(seconds: int, colored: bool = False) -> str:
    """
    Format the remaining wait of a rate-limited request.

    Log records carry the plain text; the console formatter asks for the
    colored form via the record's countdown_seconds field.
    """
    if colored:
        return f"Time remaining: {Colors.YELLOW}{seconds}{Colors.RESET} seconds"
    return f"Time remaining: {seconds} seconds"


def log_analysis_failure(
    logger: logging.Logger,
    track_name: str,
    track_id: str,
    error_message: str
) -> None:
    """
    Log a track whose audio analysis failed.

    Logs a WARNING with the extra fields AnalysisFailedTrackHandler uses
    to write the track to analysis_failures.log.

    Example:
        log_analysis_failure(
            logger,
            track_name="Song Title (Artist Name)",
            track_id="4cOdK2wGLETKBW3PvgPWqT",
            error_message="analysis not found"
        )
    """
    logger.warning(
        f"Error analyzing {track_name}: {error_message}",
        extra={
            "analysis_failed_track_name": track_name,
            "analysis_failed_track_id": track_id,
            "analysis_failed_reason": error_message,
        }
    )


def shutdown_logging() -> None:
    """
    Properly shut down the logging system.

    Flushes and closes every handler on the root logger, then removes them.
    Called from the CLI's finally block.
    """
    root_logger = logging.getLogger()

    for handler in root_logger.handlers[:]:
        try:
            handler.flush()
            handler.close()
        except Exception:
            pass
        root_logger.removeHandler(handler)
