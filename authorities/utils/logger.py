"""
Centralized logging for the authorities package.

`LoggerManager` hands out configured `logging.Logger` instances with a colored
console handler and a file handler (plain text or JSON). `JsonLogFormatter`
produces one JSON object per line so harvest runs can be inspected or
ingested by log tooling.
"""

import os
import sys
import logging
import json
from typing import Optional

from colorlog import ColoredFormatter


class LoggerManager:
    """
    Factory for singleton `logging.Logger` instances.

    For any logger name (optionally suffixed with a `run_id`) the same
    instance is returned, so handlers are only attached once.

    - Console output goes to stdout, colored through `colorlog` when
      `use_color` is set.
    - File output goes to an explicit `log_file`, to a path resolved from a
      `TaskPaths` object, or to `<default_log_dir>/<name>.log`.
    - Propagation is disabled so records are not handled twice by ancestors.

    `configure()` changes the defaults applied to loggers created afterwards;
    it is called once at start-up from the loaded settings.
    """

    _loggers = {}
    _default_log_dir = "logs"
    _default_level = "INFO"
    _default_use_json = True

    @classmethod
    def configure(
        cls,
        level: Optional[str] = None,
        use_json: Optional[bool] = None,
        log_dir: Optional[str] = None,
    ) -> None:
        """Set defaults for loggers created after this call.

        Loggers that already exist have their level updated in place.
        """
        if level:
            cls._default_level = level.upper()
            for logger in cls._loggers.values():
                logger.setLevel(cls._default_level)
                for handler in logger.handlers:
                    handler.setLevel(cls._default_level)
        if use_json is not None:
            cls._default_use_json = use_json
        if log_dir:
            cls._default_log_dir = log_dir

    @classmethod
    def get_logger(
        cls,
        name: str,
        log_file: Optional[str] = None,
        level: Optional[str] = None,
        use_json: Optional[bool] = None,
        use_color: bool = True,
        task_paths: Optional[object] = None,
        run_id: Optional[str] = None,
    ) -> logging.Logger:
        """
        Retrieve or create a logger configured for console and file output.

        Args:
            name (str): A unique identifier (typically the module name).
            log_file (Optional[str]): Full path to a log file. Overrides
                task_paths if set.
            level (Optional[str]): Logging level threshold ("DEBUG", "INFO",
                etc.). Falls back to the configured default.
            use_json (Optional[bool]): Format file logs as JSON. Falls back to
                the configured default.
            use_color (bool): Enable colored console output.
            task_paths (Optional[object]): A TaskPaths instance used to
                resolve the log file path.
            run_id (Optional[str]): Optional run identifier used to create
                per-run logs.

        Returns:
            logging.Logger: A fully configured logger instance.
        """
        logger_key = f"{name}-{run_id}" if run_id else name
        if logger_key in cls._loggers:
            return cls._loggers[logger_key]

        level = (level or cls._default_level).upper()
        if use_json is None:
            use_json = cls._default_use_json

        logger = logging.getLogger(logger_key)
        logger.setLevel(level)
        logger.propagate = False  # Prevent duplicate logs

        if not log_file and task_paths:
            log_file = task_paths.get_log_path(run_id=run_id, name=name)

        log_dir = os.path.dirname(log_file) if log_file else cls._default_log_dir
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)

        if not log_file:
            log_file = os.path.join(log_dir, f"{name}.log")

        logger.addHandler(cls._setup_file_handler(log_file, level, use_json))
        logger.addHandler(cls._setup_console_handler(level, use_color))

        cls._loggers[logger_key] = logger
        return logger

    @staticmethod
    def _setup_file_handler(
        filepath: str, level: str, use_json: bool
    ) -> logging.Handler:
        handler = logging.FileHandler(filepath, encoding="utf-8")
        handler.setLevel(level)
        handler.setFormatter(LoggerManager._get_formatter(use_json=use_json, color=False))
        return handler

    @staticmethod
    def _setup_console_handler(level: str, use_color: bool) -> logging.Handler:
        handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(level)
        handler.setFormatter(LoggerManager._get_formatter(use_json=False, color=use_color))
        return handler

    @staticmethod
    def _get_formatter(
        use_json: bool = False, color: bool = False
    ) -> logging.Formatter:
        """
        Returns a log formatter object based on configuration.

        Args:
            use_json (bool): If True, returns a JSON formatter.
            color (bool): If True, returns a colorlog formatter.

        Returns:
            logging.Formatter: A formatter instance.
        """
        if use_json:
            return JsonLogFormatter()

        fmt = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
        datefmt = "%Y-%m-%d %H:%M:%S"

        if color:
            return ColoredFormatter(
                fmt="%(log_color)s" + fmt,
                datefmt=datefmt,
                log_colors={
                    'DEBUG': 'cyan',
                    'INFO': 'green',
                    'WARNING': 'yellow',
                    'ERROR': 'red',
                    'CRITICAL': 'bold_red',
                },
            )
        return logging.Formatter(fmt, datefmt)


class JsonLogFormatter(logging.Formatter):
    """
    Formatter that writes each record as a single JSON object.

    Example Output:
        {
            "timestamp": "2026-05-07 13:12:01",
            "level": "INFO",
            "logger": "authorities.harvest.harvester",
            "message": "harvest.finished",
            "authority": "lcnaf",
            "entries": 12031
        }

    Structured fields are passed via `extra={"extra_data": {...}}`.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_record = {
            "timestamp": self.formatTime(record, "%Y-%m-%d %H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if hasattr(record, "extra_data"):
            log_record.update(record.extra_data)
        if record.exc_info:
            log_record["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_record)
