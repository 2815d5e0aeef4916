from contextvars import ContextVar
from datetime import datetime
from pytz import timezone
import logging.config
import logging
import os
from logging import Logger


debug_mode = os.getenv("LOG_LEVEL", "info").lower() == "debug"
loglevel = logging.INFO if not debug_mode else logging.DEBUG

# Supported ANSI color names for the color= parameter
_ANSI_RESET = "\033[0m"
_COLOR_MAP: dict[str, str] = {
    "cyan":    "\033[36m",
    "green":   "\033[32m",
    "yellow":  "\033[33m",
    "red":     "\033[31m",
    "magenta": "\033[35m",
    "blue":    "\033[34m",
    "white":   "\033[37m",
}

_owner_ctx: ContextVar[str | None] = ContextVar("log_owner", default=None)
_session_ctx: ContextVar[str | None] = ContextVar("log_session", default=None)


def set_log_context(owner_id: str | None, session_id: str | None) -> None:
    """Stamp subsequent log records of the current task with owner and session."""
    _owner_ctx.set(owner_id)
    _session_ctx.set(session_id)


def clear_log_context() -> None:
    _owner_ctx.set(None)
    _session_ctx.set(None)


class ConversationFilter(logging.Filter):
    """Adds a ``conversation`` attribute ("[owner/session] " or "") to every record."""

    def filter(self, record):
        owner = _owner_ctx.get()
        session = _session_ctx.get()
        if owner or session:
            record.conversation = f"[{owner or '-'}/{session or '-'}] "
        else:
            record.conversation = ""
        return True


_LEVEL_PREFIX: dict[int, str] = {
    logging.WARNING: "⚠️ ",
    logging.ERROR: "⛔ ",
    logging.CRITICAL: "⛔ ",
}


class CustomFormatter(logging.Formatter):
    """Plain formatter: timestamps in ``TIMEZONE``, level prefix on warnings and errors."""

    def __init__(self, tz_name, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.tz = timezone(tz_name)

    def formatTime(self, record, datefmt=None):
        dt = datetime.fromtimestamp(record.created, self.tz)
        return dt.strftime(datefmt) if datefmt else dt.isoformat()

    def format(self, record):
        # console and file handlers share the record, format a copy
        record = logging.makeLogRecord(record.__dict__)
        if not hasattr(record, "conversation"):
            record.conversation = ""
        record.msg = _LEVEL_PREFIX.get(record.levelno, "") + record.getMessage()
        record.args = ()
        return super().format(record)


class ColoredFormatter(CustomFormatter):
    """Console formatter that wraps a line in the ANSI color named by ``record.color``."""

    def format(self, record) -> str:
        line = super().format(record)
        ansi = _COLOR_MAP.get(getattr(record, "color", None) or "", "")
        return f"{ansi}{line}{_ANSI_RESET}" if ansi else line


class ColorLogger(logging.LoggerAdapter):
    """Logger adapter accepting ``color=`` on every log call.

    Usage::

        logger.info("Indexed %d documents.", count, color="green")

    Only the console handler renders the color; the file handler stays plain.
    """

    def __init__(self, logger: Logger, extra: dict | None = None):
        super().__init__(logger, extra or {})

    def process(self, msg, kwargs):
        color = kwargs.pop("color", None)
        extra = {**self.extra, **(kwargs.get("extra") or {})}
        if color is not None:
            extra["color"] = color
        kwargs["extra"] = extra
        return msg, kwargs


def setup_logging() -> ColorLogger:
    tz_name = os.getenv("TIMEZONE", "Europe/Berlin")
    log_to_file = os.getenv("LOG_TO_FILE", "true").lower() in ("true", "1", "yes")
    log_format = "%(asctime)s - %(levelname)s - %(conversation)s%(message)s"

    handlers: dict = {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "colored",
            "level": loglevel,
            "filters": ["conversation"],
            "stream": "ext://sys.stdout",
        },
    }
    if log_to_file:
        log_dir = os.path.join(os.getenv("ROOT_DIR", os.getcwd()), "logs")
        if not os.path.exists(log_dir):
            os.makedirs(log_dir)
        handlers["file"] = {
            "class": "logging.FileHandler",
            "formatter": "standard",
            "level": loglevel,
            "filters": ["conversation"],
            "filename": os.path.join(log_dir, "app.log"),
            "encoding": "utf-8",
        }

    logging_config = {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {
            "conversation": {"()": ConversationFilter},
        },
        "formatters": {
            "standard": {
                "()": CustomFormatter,
                "format": log_format,
                "datefmt": "%Y-%m-%d %H:%M:%S",
                "tz_name": tz_name,
            },
            "colored": {
                "()": ColoredFormatter,
                "format": log_format,
                "datefmt": "%Y-%m-%d %H:%M:%S",
                "tz_name": tz_name,
            },
        },
        "handlers": handlers,
        "root": {
            "handlers": list(handlers.keys()),
            "level": loglevel,
        },
    }

    logging.config.dictConfig(logging_config)

    # Suppress httpx request logs unless in debug mode
    logging.getLogger("httpx").setLevel(logging.DEBUG if debug_mode else logging.WARNING)

    return ColorLogger(logging.getLogger("advisor_ai_bridge"))
