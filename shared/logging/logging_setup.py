from datetime import datetime
from pytz import timezone
import logging.config
import logging
import os
import re


debug_mode = os.getenv("LOG_LEVEL", "info").lower() == "debug"
loglevel = logging.DEBUG if debug_mode else logging.INFO

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_ANSI = {
    "cyan": "\033[36m",
    "green": "\033[32m",
    "yellow": "\033[33m",
    "red": "\033[31m",
    "magenta": "\033[35m",
    "blue": "\033[34m",
    "white": "\033[37m",
}
_ANSI_RESET = "\033[0m"

_LEVEL_PREFIX = {logging.WARNING: "⚠️ ", logging.ERROR: "⛔ ", logging.CRITICAL: "⛔ "}

# credentials that may end up in request/response logs
_SECRET_PATTERNS: list[re.Pattern] = [
    re.compile(r"(Bearer\s+)[A-Za-z0-9._~+/=-]+", re.IGNORECASE),
    re.compile(r"(Token\s+)[A-Za-z0-9._~+/=-]+", re.IGNORECASE),
    re.compile(r"(x-api-key['\"]?\s*[:=]\s*['\"]?)[^\s'\",}]+", re.IGNORECASE),
    re.compile(r"(api_key['\"]?\s*[:=]\s*['\"]?)[^\s'\",}&]+", re.IGNORECASE),
]


def redact_secrets(text: str) -> str:
    """Mask API keys and tokens in a log line."""
    for pattern in _SECRET_PATTERNS:
        text = pattern.sub(lambda m: m.group(1) + "***", text)
    return text


class SecretRedactionFilter(logging.Filter):
    """Handler filter that rewrites a record when its message contains credentials."""

    def filter(self, record):
        try:
            message = record.getMessage()
        except (TypeError, ValueError):
            return True
        redacted = redact_secrets(message)
        if redacted != message:
            record.msg = redacted
            record.args = ()
        return True


class DraftLogFormatter(logging.Formatter):
    """Formats records with timestamps in the configured timezone and a level prefix.

    With ``colored=True`` the line is wrapped in the ANSI color a caller passed
    through ``ColorLogger`` (console only, the file handler stays plain).
    """

    def __init__(self, tz_name: str, colored: bool = False, **kwargs):
        super().__init__(**kwargs)
        self.tz = timezone(tz_name)
        self.colored = colored

    def formatTime(self, record, datefmt=None):
        stamp = datetime.fromtimestamp(record.created, self.tz)
        return stamp.strftime(datefmt) if datefmt else stamp.isoformat()

    def formatMessage(self, record):
        line = super().formatMessage(record)
        prefix = _LEVEL_PREFIX.get(record.levelno, "")
        if prefix:
            head, sep, message = line.partition(f"{record.levelname} - ")
            line = f"{head}{sep}{prefix}{message}" if sep else prefix + line
        if self.colored:
            ansi = _ANSI.get(getattr(record, "color", None) or "")
            if ansi:
                line = f"{ansi}{line}{_ANSI_RESET}"
        return line


class ColorLogger(logging.LoggerAdapter):
    """Logger adapter whose methods accept ``color=<name>``.

        logger.info("Committed draft %s", draft_id, color="green")
    """

    def __init__(self, logger: logging.Logger):
        super().__init__(logger, {})

    def process(self, msg, kwargs):
        color = kwargs.pop("color", None)
        if color is not None:
            kwargs["extra"] = {**(kwargs.get("extra") or {}), "color": color}
        return msg, kwargs


def setup_logging(log_to_file: bool = True) -> ColorLogger:
    """Configure the root logger (console plus optional <ROOT_DIR>/logs/app.log) and return the app logger."""
    tz_name = os.getenv("TIMEZONE", "Europe/Berlin")

    handlers: dict = {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "console",
            "level": loglevel,
            "stream": "ext://sys.stdout",
            "filters": ["redact"],
        },
    }
    if log_to_file:
        log_dir = os.path.join(os.getenv("ROOT_DIR") or os.getcwd(), "logs")
        os.makedirs(log_dir, exist_ok=True)
        handlers["file"] = {
            "class": "logging.FileHandler",
            "formatter": "plain",
            "level": loglevel,
            "filename": os.path.join(log_dir, "app.log"),
            "encoding": "utf-8",
            "filters": ["redact"],
        }

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "filters": {"redact": {"()": SecretRedactionFilter}},
            "formatters": {
                "plain": {"()": DraftLogFormatter, "fmt": LOG_FORMAT, "datefmt": DATE_FORMAT, "tz_name": tz_name},
                "console": {
                    "()": DraftLogFormatter,
                    "fmt": LOG_FORMAT,
                    "datefmt": DATE_FORMAT,
                    "tz_name": tz_name,
                    "colored": True,
                },
            },
            "handlers": handlers,
            "root": {"handlers": list(handlers), "level": loglevel},
        }
    )

    # httpx logs every request at info
    logging.getLogger("httpx").setLevel(logging.DEBUG if debug_mode else logging.WARNING)

    return ColorLogger(logging.getLogger("draft_review"))
