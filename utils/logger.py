import json
import logging
import os
from datetime import UTC, datetime
from typing import Any, Dict, Optional

from colorama import Fore, Style, init

init(autoreset=True)

PLAIN_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
EVENT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(event_type)s] - %(message)s"
CONSOLE_EVENT_FORMAT = "%(asctime)s - %(level_tag)s - [%(event_tag)s] - %(message)s"


def _file_handler(path: str, formatter: logging.Formatter) -> logging.Handler:
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setFormatter(formatter)
    return handler


def _reset(logger: logging.Logger, level: int) -> None:
    logger.setLevel(level)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()


def setup_logger(
    name="variant_engine", level=logging.INFO, log_file: Optional[str] = None, console=True
):
    """Plain logger for services and scripts: optional file, coloured console"""

    logger = logging.getLogger(name)
    _reset(logger, level)

    if log_file:
        logger.addHandler(_file_handler(log_file, logging.Formatter(PLAIN_FORMAT)))

    if console:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(EventConsoleFormatter("%(asctime)s - %(level_tag)s - %(message)s"))
        logger.addHandler(console_handler)

    return logger


# ============================================================================
# SELECTION EVENT LOGGING
# ============================================================================


class StructuredFormatter(logging.Formatter):
    """One JSON object per line for selection events"""

    def format(self, record):
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "event_type": getattr(record, "event_type", "general"),
            "message": record.getMessage(),
            "event_data": getattr(record, "event_data", {}),
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


class EventConsoleFormatter(logging.Formatter):
    """Console formatter colouring the level and the selection event type"""

    LEVEL_COLORS = {
        "DEBUG": Fore.CYAN,
        "INFO": Fore.BLUE,
        "WARNING": Fore.YELLOW,
        "ERROR": Fore.RED,
        "CRITICAL": Fore.MAGENTA + Style.BRIGHT,
    }

    EVENT_COLORS = {
        "init": Fore.GREEN,
        "selection": Fore.CYAN,
        "refresh": Fore.MAGENTA,
        "preview": Fore.YELLOW,
    }

    def format(self, record):
        level_color = self.LEVEL_COLORS.get(record.levelname, Fore.WHITE)
        record.level_tag = f"{level_color}{record.levelname}{Style.RESET_ALL}"

        event_type = getattr(record, "event_type", "general")
        event_color = self.EVENT_COLORS.get(event_type, Fore.WHITE)
        record.event_tag = f"{event_color}{event_type.upper()}{Style.RESET_ALL}"
        return super().format(record)


class DefaultEventMetadataFilter(logging.Filter):
    """Fill in event metadata for records logged through the plain logging API"""

    def filter(self, record: logging.LogRecord) -> bool:
        record.__dict__.setdefault("event_type", "general")
        record.__dict__.setdefault("event_data", {})
        return True


def setup_engine_logger(
    name="variant_engine.events",
    level=logging.INFO,
    log_file: Optional[str] = None,
    structured_file: Optional[str] = None,
    console=True,
    config: Optional[Dict[str, Any]] = None,
):
    """Setup the selection event logger

    Args:
        name: Logger name
        level: Logging level
        log_file: Path to plain log file, None disables it
        structured_file: Path to JSON lines file, None disables it
        console: Whether to enable console logging
        config: Optional ``logging`` section from settings.json; its
            destinations override the keyword arguments
    """

    if config:
        destinations = config.get("log_destinations", {})
        file_cfg = destinations.get("file", {})
        json_cfg = destinations.get("json_file", {})

        if file_cfg.get("enabled") and file_cfg.get("path"):
            log_file = file_cfg["path"]
        if json_cfg.get("enabled") and json_cfg.get("path"):
            structured_file = json_cfg["path"]
        console = destinations.get("console", {}).get("enabled", console)
        level = logging.getLevelName(str(config.get("log_level", "")).upper()) if config.get("log_level") else level
        if not isinstance(level, int):
            level = logging.INFO

    logger = logging.getLogger(name)
    _reset(logger, level)
    if not any(isinstance(f, DefaultEventMetadataFilter) for f in logger.filters):
        logger.addFilter(DefaultEventMetadataFilter())

    if log_file:
        logger.addHandler(_file_handler(log_file, logging.Formatter(EVENT_FORMAT)))
    if structured_file:
        logger.addHandler(_file_handler(structured_file, StructuredFormatter()))
    if console:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(EventConsoleFormatter(CONSOLE_EVENT_FORMAT))
        logger.addHandler(console_handler)

    return logger


def get_engine_logger(name: str = "events") -> logging.Logger:
    """Selection event logger, configured from settings.json on first use"""
    logger = logging.getLogger(f"variant_engine.{name}")
    if logger.handlers:
        return logger

    from .config_loader import load_settings

    return setup_engine_logger(logger.name, config=load_settings().get("logging", {}))


def log_engine_event(event_type: str, event_data: Dict[str, Any], level: str = "INFO"):
    """Structured selection event logging"""
    logger = get_engine_logger("events")

    log_level = logging.getLevelName(level.upper())
    if not isinstance(log_level, int):
        log_level = logging.INFO
    if not logger.isEnabledFor(log_level):
        return

    logger.log(
        log_level,
        "Selection event: %s",
        event_type,
        extra={"event_type": event_type, "event_data": event_data},
    )
