"""
Structured logging for LotLedger.

structlog renders every record, including records emitted through plain
stdlib loggers. The console gets a colored single-line layout (or JSON), the
optional file handler always gets JSON lines.

Event names are dotted and start with the emitting area:
settlement.exit.settled, ledger.session.committed, positions.lot.consumed.
"""

import inspect
import logging
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Callable, Literal

import structlog
from pydantic import BaseModel, Field

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

DEFAULT_LOG_FILE = Path("logs/lotledger.log")

# Keys attached by the shared processors; never shown as context on the console
_META_KEYS = ("log_timestamp", "level", "event", "filename", "lineno", "logger")

_TIMESTAMP_FORMATS: dict[str, Callable[[datetime], str]] = {
    "compact": lambda now: now.strftime("%y%m%d-%H%M%S.") + f"{now.microsecond // 10000:02d}",
    "time": lambda now: now.strftime("%H:%M:%S.") + f"{now.microsecond // 10000:02d}",
    "short": lambda now: now.strftime("%m%dT%H%M%S"),
    "iso": lambda now: now.isoformat(),
}


class LoggingConfig(BaseModel):
    """Logging setup consumed by LoggerFactory.configure().

    What shows up at each level:

    - DEBUG: lot lookups and consumption, unit-of-work begin/commit/rollback,
      bus subscriptions
    - INFO: settled exits, closed positions, settlement event display
    - WARNING: rejected exits (closed position, insufficient inventory)
    - ERROR: unexpected settlement failures, event handler errors

    timestamp_format is one of "compact" (240105-143000.25), "time"
    (14:30:00.25), "short" (0105T143000) or "iso".
    """

    level: LogLevel = "INFO"
    format: Literal["console", "json"] = "console"
    timestamp_format: Literal["iso", "compact", "time", "short"] = "compact"
    enable_file: bool = False
    file_path: Path | None = Field(default=None, description="Defaults to logs/lotledger.log when file output is on")
    file_level: LogLevel = "WARNING"
    file_rotation: bool = True
    max_file_size_mb: int = 10
    backup_count: int = 3
    enable_event_display: bool = Field(
        default=True,
        description="Render exit_settled / position_closed events as compact console lines",
    )


def _timestamper(fmt: str) -> Callable[[Any, str, dict[str, Any]], dict[str, Any]]:
    """Stamp records under 'log_timestamp' so domain fields like exit_date stay untouched."""
    render = _TIMESTAMP_FORMATS[fmt]

    def stamp(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
        event_dict["log_timestamp"] = render(datetime.now(timezone.utc))
        return event_dict

    return stamp


class LoggerFactory:
    """
    Process-wide structlog setup.

    Example:
        LoggerFactory.configure(LoggingConfig(level="DEBUG"))
        logger = LoggerFactory.get_logger()
        logger.info("settlement.exit.settled", position_id="pos-1", quantity=5)

    get_logger() configures defaults on first use when configure() was never called.
    """

    _config: LoggingConfig | None = None
    _configured: bool = False

    @classmethod
    def configure(cls, config: LoggingConfig | None = None) -> None:
        config = config or LoggingConfig()
        if config.enable_file and config.file_path is None:
            config.file_path = DEFAULT_LOG_FILE
        cls._config = config

        shared = cls._build_common_processors(config.timestamp_format)
        handlers = [cls._console_handler(config, shared)]
        root_level = getattr(logging, config.level)
        if config.enable_file:
            handlers.append(cls._configure_file_logging(config, shared))
            root_level = min(root_level, getattr(logging, config.file_level))
        logging.basicConfig(level=root_level, handlers=handlers, force=True)

        structlog.configure(
            processors=[*shared, *cls._exception_processors(config.format)],
            wrapper_class=structlog.stdlib.BoundLogger,
            context_class=dict,
            logger_factory=structlog.stdlib.LoggerFactory(),
            cache_logger_on_first_use=True,
        )
        cls._configured = True

    @classmethod
    def _build_common_processors(cls, timestamp_format: str) -> list[Any]:
        """Run for structlog and foreign stdlib records alike, before rendering."""
        return [
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            _timestamper(timestamp_format),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.CallsiteParameterAdder(
                [structlog.processors.CallsiteParameter.FILENAME, structlog.processors.CallsiteParameter.LINENO]
            ),
        ]

    @staticmethod
    def _exception_processors(output_format: str) -> list[Any]:
        if output_format == "console":
            processors: list[Any] = [
                structlog.dev.set_exc_info,
                structlog.processors.ExceptionRenderer(structlog.dev.plain_traceback),  # type: ignore[arg-type]
            ]
        else:
            processors = [structlog.processors.format_exc_info]
        return [*processors, structlog.stdlib.ProcessorFormatter.wrap_for_formatter]

    @classmethod
    def _console_handler(cls, config: LoggingConfig, pre_chain: list[Any]) -> logging.Handler:
        renderer: Any = cls._custom_console_renderer() if config.format == "console" else structlog.processors.JSONRenderer()
        handler = logging.StreamHandler(stream=sys.stdout)
        handler.setLevel(getattr(logging, config.level))
        handler.setFormatter(structlog.stdlib.ProcessorFormatter(processor=renderer, foreign_pre_chain=pre_chain))
        return handler

    @classmethod
    def _configure_file_logging(cls, config: LoggingConfig, pre_chain: list[Any]) -> logging.Handler:
        """JSON lines, rotated by size unless rotation is off."""
        path = config.file_path or DEFAULT_LOG_FILE
        path.parent.mkdir(parents=True, exist_ok=True)

        handler: logging.Handler
        if config.file_rotation:
            handler = RotatingFileHandler(
                path,
                maxBytes=config.max_file_size_mb * 1024 * 1024,
                backupCount=config.backup_count,
                encoding="utf-8",
            )
        else:
            handler = logging.FileHandler(path, encoding="utf-8")
        handler.setLevel(getattr(logging, config.file_level))
        handler.setFormatter(
            structlog.stdlib.ProcessorFormatter(
                processor=structlog.processors.JSONRenderer(), foreign_pre_chain=pre_chain
            )
        )
        return handler

    @staticmethod
    def _custom_console_renderer() -> "_ConsoleRenderer":
        return _ConsoleRenderer(LoggerFactory.get_config())

    @classmethod
    def get_logger(cls, name: str | None = None):
        """
        Logger for the given name, or for the calling module when omitted.

        Returns:
            structlog BoundLogger (lazy proxy until first use)
        """
        if not cls._configured:
            cls.configure()
        if name is None:
            caller = inspect.currentframe()
            caller = caller.f_back if caller is not None else None
            name = caller.f_globals.get("__name__", "lotledger") if caller is not None else "lotledger"
        return structlog.get_logger(name)

    @classmethod
    def get_config(cls) -> LoggingConfig:
        return cls._config if cls._config is not None else LoggingConfig()

    @classmethod
    def is_configured(cls) -> bool:
        return cls._configured

    @classmethod
    def reset(cls) -> None:
        """Drop handlers and structlog configuration (tests use this between cases)."""
        root = logging.getLogger()
        for handler in list(root.handlers):
            root.removeHandler(handler)
            handler.close()
        root.setLevel(logging.NOTSET)
        cls._config = None
        cls._configured = False
        structlog.reset_defaults()


class _ConsoleRenderer:
    """
    One line per record: timestamp, level, event, sorted context, source location.

    Records logged as "event.display" under lotledger.events.* are settlement
    events published on the bus; they get the compact event layout instead.
    """

    LEVEL_COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    GRAY = "\033[90m"
    RESET = "\033[0m"

    def __init__(self, config: LoggingConfig) -> None:
        self._show_events = config.enable_event_display

    def __call__(self, logger: Any, name: str, event_dict: dict[str, Any]) -> str:
        if str(event_dict.get("logger", "")).startswith("lotledger.events.") and event_dict.get("event") == "event.display":
            if not self._show_events:
                raise structlog.DropEvent
            payload = {k: v for k, v in event_dict.items() if k not in _META_KEYS}
            return _EventFormatters.format_event(payload)
        return self._render_line(event_dict)

    def _render_line(self, event_dict: dict[str, Any]) -> str:
        meta = {key: event_dict.pop(key, "") for key in _META_KEYS}
        level = str(meta["level"] or "info").upper()

        parts = [
            str(meta["log_timestamp"]),
            f"[{self.LEVEL_COLORS.get(level, '')}{level.lower()}{self.RESET}]",
            str(meta["event"]),
        ]
        context = " ".join(f"{k}={v}" for k, v in sorted(event_dict.items()) if not k.startswith("_"))
        if context:
            parts.append(f"{self.GRAY}|{self.RESET} {context}")
        if meta["filename"] and meta["lineno"]:
            module = Path(str(meta["filename"])).stem
            logger_name = meta["logger"]
            where = f"{logger_name}.{module}" if logger_name and logger_name != "lotledger" else module
            parts.append(f"{self.GRAY}({where}:{meta['lineno']}){self.RESET}")
        return " ".join(parts)


class _EventFormatters:
    """Compact console formatters for settlement events."""

    CYAN = "\033[36m"
    MAGENTA = "\033[35m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    RED = "\033[31m"
    DIM = "\033[2m"
    RESET = "\033[0m"

    @classmethod
    def format_event(cls, event_dict: dict[str, Any]) -> str:
        event_type = event_dict.get("event_type", "unknown")
        if event_type == "exit_settled":
            return cls.format_exit_settled(event_dict)
        if event_type == "position_closed":
            return cls.format_position_closed(event_dict)
        return f"  {cls.DIM}└─{cls.RESET} {event_type} {event_dict.get('event_id', '')}"

    @classmethod
    def _pnl_color(cls, value: Any) -> str:
        pnl = float(value or 0)
        if pnl > 0:
            return cls.GREEN
        if pnl < 0:
            return cls.RED
        return cls.YELLOW

    @classmethod
    def format_exit_settled(cls, event_dict: dict[str, Any]) -> str:
        pnl = event_dict.get("profit_loss", "0")
        parts = [
            f"  {cls.DIM}└─{cls.RESET}",
            f"{cls.CYAN}{'Exit':<8}{cls.RESET}",
            f"{cls.MAGENTA}{event_dict.get('asset_code', '?')}{cls.RESET}",
            f"{event_dict.get('strategy', '?')} {event_dict.get('quantity', 0)} @ {event_dict.get('exit_unit_price', '?')}",
            f"P&L: {cls._pnl_color(pnl)}{pnl} ({event_dict.get('profit_loss_percentage', '0')}){cls.RESET}",
            f"{cls.DIM}lots: {len(event_dict.get('exit_record_ids', []))}{cls.RESET}",
        ]
        return " | ".join(parts)

    @classmethod
    def format_position_closed(cls, event_dict: dict[str, Any]) -> str:
        total = event_dict.get("total_realized_profit", "0")
        parts = [
            f"  {cls.DIM}└─{cls.RESET}",
            f"{cls.YELLOW}{'Closed':<8}{cls.RESET}",
            f"{cls.MAGENTA}{event_dict.get('asset_code', '?')}{cls.RESET}",
            f"on {event_dict.get('close_date', '?')}",
            f"Realized: {cls._pnl_color(total)}{total}{cls.RESET}",
        ]
        return " | ".join(parts)
