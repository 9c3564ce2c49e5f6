from __future__ import annotations

import logging
import sys
from pathlib import Path


class _ConsoleNoiseFilter(logging.Filter):
    """
    Keep the console readable:
    - all taskcal logs pass
    - werkzeug request lines pass (the dev server's access log)
    - other third-party loggers only at WARNING+
    """

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name
        if name.startswith('taskcal') or name == 'werkzeug':
            return True
        if name == 'py.warnings':
            return record.levelno >= logging.ERROR
        return record.levelno >= logging.WARNING


def setup_logging(
    *,
    log_dir: str | Path = '.local/taskcal',
    console_level: int | str = logging.INFO,
    file_level: int = logging.DEBUG,
) -> Path:
    """
    Configure logging with a filtered console handler and a full file log.

    Call this once, before the app starts serving. Returns the log file path.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / 'taskcal.log'

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)

    # Remove any pre-existing handlers to avoid duplicates.
    for h in list(root.handlers):
        root.removeHandler(h)

    fmt = logging.Formatter(
        fmt='%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S',
    )

    ch = logging.StreamHandler(sys.stderr)
    ch.setLevel(console_level)
    ch.setFormatter(fmt)
    ch.addFilter(_ConsoleNoiseFilter())
    root.addHandler(ch)

    fh = logging.FileHandler(str(log_file), encoding='utf-8')
    fh.setLevel(file_level)
    fh.setFormatter(fmt)
    root.addHandler(fh)

    # SQL echo is far too chatty even for the file log.
    logging.getLogger('sqlalchemy.engine').setLevel(logging.WARNING)

    logging.captureWarnings(True)
    return log_file
