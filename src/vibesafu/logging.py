"""Logging configuration for vibesafu.

Standard output carries the hook response, so console logs always go to
standard error.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler

import structlog

from vibesafu.config import Settings, get_settings


def setup_logging(settings: Settings | None = None) -> None:
    """Configure structured logging with stderr and optional file outputs."""
    settings = settings or get_settings()
    log_level = getattr(logging, settings.log_level.upper(), logging.WARNING)
    log_to_file = settings.log_to_file

    # The audit log is optional; the hook must answer even without it
    if log_to_file:
        try:
            settings.log_directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            print(
                f"vibesafu: audit log disabled, cannot create {settings.log_directory}: {e}",
                file=sys.stderr,
            )
            log_to_file = False

    # structlog renders through the stdlib root logger
    logging.basicConfig(
        format="%(message)s",
        level=log_level,
        handlers=[],
    )
    for handler in list(logging.root.handlers):
        logging.root.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(log_level)
    logging.root.addHandler(console_handler)

    file_handler = None
    if log_to_file:
        try:
            file_handler = RotatingFileHandler(
                filename=settings.log_file_path,
                maxBytes=settings.log_file_max_bytes,
                backupCount=settings.log_file_backup_count,
                encoding="utf-8",
            )
            # Audit records are INFO, keep them in the file even when the console is quieter
            file_handler.setLevel(min(log_level, logging.INFO))
            logging.root.addHandler(file_handler)
        except OSError as e:
            print(f"vibesafu: audit log disabled, cannot open log file: {e}", file=sys.stderr)
            file_handler = None

    root_level = min(log_level, logging.INFO) if file_handler else log_level
    logging.root.setLevel(root_level)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(root_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # stderr: readable in development, JSON under the agent host
    console_formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            (
                structlog.dev.ConsoleRenderer(colors=True)  # type: ignore[list-item]
                if settings.is_development
                else structlog.processors.JSONRenderer()
            ),
        ]
    )
    console_handler.setFormatter(console_formatter)

    # Audit file: one JSON record per line
    if file_handler:
        file_formatter = structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                structlog.processors.JSONRenderer(),
            ]
        )
        file_handler.setFormatter(file_formatter)

    # SDK request logs would echo command text into stderr
    logging.getLogger("anthropic").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Return a structlog logger bound to *name*."""
    return structlog.get_logger(name)  # type: ignore[no-any-return]
