"""Console and JSON-lines logging for reconciliation runs.

The console gets short human-readable lines at the requested level. A
JSON-lines file under the log directory always receives DEBUG, including
the per-item fields workers attach through ``extra=``.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional


STRUCTURED_FIELDS = ('address', 'resource_type', 'operation', 'duration', 'category', 'error_type')

DEFAULT_LOG_DIR = Path('.tfreconcile/logs')

NOISY_LOGGERS = ('boto3', 'botocore', 's3transfer', 'urllib3')


def _record_time(record: logging.LogRecord) -> datetime:
    return datetime.fromtimestamp(record.created, tz=timezone.utc)


class JSONFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            'timestamp': _record_time(record).strftime('%Y-%m-%dT%H:%M:%S.%fZ'),
            'level': record.levelname,
            'logger': record.name,
            'thread': record.threadName,
            'message': record.getMessage(),
        }
        entry.update(
            (name, getattr(record, name)) for name in STRUCTURED_FIELDS if hasattr(record, name)
        )
        if record.exc_info:
            entry['exception'] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class ConsoleFormatter(logging.Formatter):
    """``HH:MM:SS LEVEL [address] message``, colored on a terminal."""

    COLORS = {
        'DEBUG': '\033[2m',
        'INFO': '\033[32m',
        'WARNING': '\033[33m',
        'ERROR': '\033[31m',
        'CRITICAL': '\033[1;31m',
    }
    RESET = '\033[0m'

    def __init__(self, use_color: bool = False):
        super().__init__()
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        level = f"{record.levelname:<8}"
        if self.use_color:
            level = f"{self.COLORS.get(record.levelname, '')}{level}{self.RESET}"

        message = record.getMessage()
        address = getattr(record, 'address', None)
        if address:
            message = f"[{address}] {message}"

        line = f"{_record_time(record):%H:%M:%S} {level} {message}"
        if record.exc_info and record.levelno >= logging.ERROR:
            line += "\n" + self.formatException(record.exc_info)
        return line


def setup_logging(
    log_level: str = 'info',
    log_dir: Optional[Path] = None,
    stream=None
) -> Path:
    """Install the console and file handlers on the root logger.

    Args:
        log_level: Console level (debug, info, warning, error)
        log_dir: Directory for the JSON-lines file
        stream: Console stream, stdout by default. JSON mode passes stderr.

    Returns:
        Path of the JSON-lines log file
    """
    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    stream = stream or sys.stdout
    console = logging.StreamHandler(stream)
    console.setLevel(getattr(logging, log_level.upper()))
    console.setFormatter(ConsoleFormatter(use_color=hasattr(stream, 'isatty') and stream.isatty()))
    root.addHandler(console)

    log_dir = Path(log_dir) if log_dir else DEFAULT_LOG_DIR
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / f"tfreconcile-{datetime.now(timezone.utc):%Y%m%d}.jsonl"
    file_handler = logging.FileHandler(log_file, encoding='utf-8')
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(JSONFormatter())
    root.addHandler(file_handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return log_file


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
