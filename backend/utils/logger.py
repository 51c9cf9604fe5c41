import logging
import sys
import json
from utils.utcnow import utcnow
from typing import Any


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging"""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": utcnow().isoformat() + "Z",
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        # Structured fields passed as logger keyword arguments
        extra_data = getattr(record, "extra_data", None)
        if extra_data:
            log_data["data"] = extra_data

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        # Decimals, datetimes and enums show up in trade/opportunity fields
        return json.dumps(log_data, default=str)


class PlainFormatter(logging.Formatter):
    """Human-readable formatter that appends structured fields as key=value"""

    def __init__(self):
        super().__init__("%(asctime)s [%(levelname)s] %(name)s: %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        extra_data = getattr(record, "extra_data", None)
        if extra_data:
            fields = " ".join(f"{key}={value}" for key, value in extra_data.items())
            line = f"{line} | {fields}"
        return line


class ContextLogger:
    """Logger that accepts structured keyword fields (logger.info("msg", network=...))"""

    def __init__(self, name: str):
        self.logger = logging.getLogger(name)

    def _log(self, level: int, msg: str, *args: Any, **kwargs: Any):
        # Stdlib logger kwargs pass through; everything else becomes a field.
        exc_info = kwargs.pop("exc_info", None)
        stack_info = kwargs.pop("stack_info", False)
        stacklevel = kwargs.pop("stacklevel", 1)
        extra = kwargs.pop("extra", None)

        try:
            stacklevel_int = max(1, int(stacklevel))
        except (TypeError, ValueError):
            stacklevel_int = 1

        extra_data: dict[str, Any] = {}
        if isinstance(extra, dict):
            extra_data.update(extra)
        elif extra is not None:
            extra_data["extra"] = extra
        extra_data.update(kwargs)

        self.logger.log(
            level,
            msg,
            *args,
            exc_info=exc_info,
            stack_info=stack_info,
            stacklevel=stacklevel_int + 2,  # skip ContextLogger wrappers
            extra={"extra_data": extra_data if extra_data else None},
        )

    def debug(self, msg: str, *args: Any, **kwargs: Any):
        self._log(logging.DEBUG, msg, *args, **kwargs)

    def info(self, msg: str, *args: Any, **kwargs: Any):
        self._log(logging.INFO, msg, *args, **kwargs)

    def warning(self, msg: str, *args: Any, **kwargs: Any):
        self._log(logging.WARNING, msg, *args, **kwargs)

    def error(self, msg: str, *args: Any, **kwargs: Any):
        self._log(logging.ERROR, msg, *args, **kwargs)

    def critical(self, msg: str, *args: Any, **kwargs: Any):
        self._log(logging.CRITICAL, msg, *args, **kwargs)


def setup_logging(level: str = "INFO", json_format: bool = True):
    """Configure application logging"""
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    # Clear existing handlers
    root_logger.handlers = []

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(JSONFormatter() if json_format else PlainFormatter())
    root_logger.addHandler(console_handler)

    # Suppress noisy libraries
    for noisy in ("httpx", "httpcore", "asyncio", "web3", "websockets", "urllib3"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def get_logger(name: str) -> ContextLogger:
    """Get a context-aware logger"""
    return ContextLogger(name)


# Pre-configured loggers
scanner_logger = get_logger("scanner")
api_logger = get_logger("api")
execution_logger = get_logger("execution")
chain_logger = get_logger("chain")
