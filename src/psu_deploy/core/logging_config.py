"""Logging configuration for psu-deploy.

Configures:
- Rich console narration on the `psu_deploy` logger
- Optional rotating file output (everything at DEBUG)
- Quiet third-party HTTP loggers
"""

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from rich.logging import RichHandler

LOGGER_NAME = "psu_deploy"


def setup_logging(
    verbose: bool = False,
    log_file: str | None = None,
    max_bytes: int = 10 * 1024 * 1024,  # 10MB
    backup_count: int = 5,
) -> logging.Logger:
    """Configure application logging.

    Args:
        verbose: If True, show DEBUG logs with timestamps and paths.
                 If False, show INFO narration only.
        log_file: Path to a rotating log file (None disables file output)
        max_bytes: Maximum size of log file before rotation
        backup_count: Number of backup files to keep

    Returns:
        The configured `psu_deploy` logger
    """
    # Root logger - suppress everything by default
    logging.getLogger().setLevel(logging.WARNING)

    app_logger = logging.getLogger(LOGGER_NAME)
    app_logger.setLevel(logging.DEBUG if verbose else logging.INFO)

    # HTTP libraries
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("requests").setLevel(logging.WARNING)

    # Re-running setup (tests, repeated CLI invocations) replaces handlers
    for handler in list(app_logger.handlers):
        app_logger.removeHandler(handler)
        handler.close()

    console_handler = RichHandler(
        show_time=verbose,
        show_path=verbose,
        markup=True,
        rich_tracebacks=True,
        tracebacks_show_locals=verbose,
    )
    console_handler.setFormatter(logging.Formatter("%(message)s"))
    app_logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        try:
            log_path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = RotatingFileHandler(
                log_path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
            )
        except OSError as e:
            app_logger.warning(f"Could not create log file {log_file}: {e}")
        else:
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(
                logging.Formatter(
                    "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                    datefmt="%Y-%m-%d %H:%M:%S",
                )
            )
            app_logger.addHandler(file_handler)

    app_logger.propagate = False  # Don't propagate to root logger
    return app_logger

