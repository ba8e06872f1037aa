"""
Logging configuration for the Stageflow backend
Structured or human-readable logs with rotation
"""
import logging
import logging.handlers
import json
import sys
from pathlib import Path
from datetime import datetime, timezone
from typing import Any, Dict, Optional

DEFAULT_LOG_DIR = Path(__file__).parent.parent.parent / "logs"


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging"""

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        # Cascade context attached through ``extra=``
        for key in ("task_id", "stage_id", "deal_id", "deal_type", "operation"):
            if hasattr(record, key):
                log_data[key] = getattr(record, key)

        return json.dumps(log_data, default=str)


class DetailedFormatter(logging.Formatter):
    """Detailed human-readable formatter"""

    def __init__(self):
        super().__init__(
            fmt='%(asctime)s | %(levelname)-8s | %(name)-20s | %(funcName)-15s | %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )


def setup_logging(
    log_dir: Optional[Path] = None,
    level: str = "INFO",
    enable_json: bool = False,
    enable_console: bool = True
) -> logging.Logger:
    """
    Setup logging for the backend

    Args:
        log_dir: Directory to store log files (defaults to backend/logs)
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        enable_json: Enable JSON formatted logs
        enable_console: Enable console output
    """
    log_dir = Path(log_dir) if log_dir else DEFAULT_LOG_DIR
    log_dir.mkdir(parents=True, exist_ok=True)

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))
    root_logger.handlers.clear()

    # File handler with rotation (10MB, keep 5 backups)
    log_file = log_dir / "stageflow.log"
    file_handler = logging.handlers.RotatingFileHandler(
        log_file,
        maxBytes=10 * 1024 * 1024,
        backupCount=5,
        encoding='utf-8'
    )
    file_handler.setLevel(logging.DEBUG)

    error_file = log_dir / "stageflow_errors.log"
    error_handler = logging.handlers.RotatingFileHandler(
        error_file,
        maxBytes=10 * 1024 * 1024,
        backupCount=10,
        encoding='utf-8'
    )
    error_handler.setLevel(logging.ERROR)

    formatter = JSONFormatter() if enable_json else DetailedFormatter()
    file_handler.setFormatter(formatter)
    error_handler.setFormatter(formatter)

    root_logger.addHandler(file_handler)
    root_logger.addHandler(error_handler)

    if enable_console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(logging.INFO)
        console_handler.setFormatter(DetailedFormatter())
        root_logger.addHandler(console_handler)

    logger = logging.getLogger("stageflow")
    logger.info(f"Logging configured - Level: {level}, Directory: {log_dir}")

    return logger
