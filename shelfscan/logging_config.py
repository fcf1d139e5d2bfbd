"""Logging setup: readable console output plus JSON log files."""

import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from pythonjsonlogger import jsonlogger

from shelfscan.config import settings

CONSOLE_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"
JSON_FIELDS = "%(timestamp)s %(level)s %(name)s %(message)s"

# Third-party loggers capped at WARNING
QUIET_LOGGERS = ("asyncio", "httpx", "httpcore")


class ScrapeJsonFormatter(jsonlogger.JsonFormatter):
    """Adds timestamp, level, origin and scrape target to each JSON line."""

    def add_fields(self, log_record, record, message_dict):
        super().add_fields(log_record, record, message_dict)

        log_record.update(
            timestamp=datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            level=record.levelname,
            origin=f"{record.module}.{record.funcName}:{record.lineno}",
        )

        target = getattr(record, "target", None)
        if target:
            log_record["target"] = target


def _json_file_handler(path: Path, level: int) -> logging.Handler:
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(ScrapeJsonFormatter(JSON_FIELDS))
    return handler


def setup_logging(base_dir: str | Path | None = None, level: str | None = None) -> logging.Logger:
    """
    Configure the root logger.

    The console gets human-readable lines (JSON when settings.log_json_console
    is set). <log_dir>/app.log receives every record and <log_dir>/error.log
    only errors, both as JSON lines.

    Args:
        base_dir: Directory the log folder is created in (defaults to cwd)
        level: Level name overriding settings.log_level
    """
    log_dir = Path(base_dir or Path.cwd()) / settings.log_dir
    log_dir.mkdir(parents=True, exist_ok=True)

    root = logging.getLogger()
    root.setLevel((level or settings.log_level).upper())
    for handler in list(root.handlers):
        root.removeHandler(handler)

    console = logging.StreamHandler(sys.stdout)
    if settings.log_json_console:
        console.setFormatter(ScrapeJsonFormatter(JSON_FIELDS))
    else:
        console.setFormatter(logging.Formatter(CONSOLE_FORMAT))
    root.addHandler(console)

    root.addHandler(_json_file_handler(log_dir / "app.log", logging.DEBUG))
    root.addHandler(_json_file_handler(log_dir / "error.log", logging.ERROR))

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return root


class TargetLoggerAdapter(logging.LoggerAdapter):
    """Tags records with a scrape target key, in the message and as a field."""

    def process(self, msg, kwargs):
        target = self.extra["target"]
        kwargs["extra"] = {**kwargs.get("extra", {}), "target": target}
        return f"[{target}] {msg}", kwargs


def get_target_logger(name: str, target: str) -> TargetLoggerAdapter:
    """Logger whose records carry the given target key, e.g. 'phones:Samsung@bestbuy'."""
    return TargetLoggerAdapter(logging.getLogger(name), {"target": target})
