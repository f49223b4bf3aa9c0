import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Dict, Optional

# Constants
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_FILE_NAME = "memopad.log"
LOG_FILE_SIZE = 10 * 1024 * 1024  # 10 MB
LOG_BACKUP_COUNT = 5

# Editor components that can be tuned separately (the "log_levels" config key)
COMPONENT_LOGGERS = {
    'session': 'memopad.editor.session',
    'store': 'memopad.editor.store',
    'preview': 'memopad.images.preview',
}

# Normal-mode levels. Preview logs every double-click, so only its problems show.
DEFAULT_COMPONENT_LEVELS = {
    'session': 'INFO',
    'store': 'INFO',
    'preview': 'WARNING',
}


def configure_component_levels(debug_mode: bool = False,
                               overrides: Optional[Dict[str, str]] = None) -> Dict[str, int]:
    """
    Set the level of each editor component logger.

    Debug mode opens every component up to DEBUG; explicit overrides win over both.
    Unknown components and level names are reported and skipped.
    Returns the level applied to each component logger, by logger name.
    """
    levels = {name: ('DEBUG' if debug_mode else level)
              for name, level in DEFAULT_COMPONENT_LEVELS.items()}

    for name, level in (overrides or {}).items():
        if name not in COMPONENT_LOGGERS:
            logging.warning(f"Unknown log component '{name}', expected one of {sorted(COMPONENT_LOGGERS)}")
            continue
        if not isinstance(level, str) or not isinstance(logging.getLevelName(level.upper()), int):
            logging.warning(f"Invalid log level {level!r} for component '{name}'")
            continue
        levels[name] = level.upper()

    applied = {}
    for name, level in levels.items():
        logger_name = COMPONENT_LOGGERS[name]
        logging.getLogger(logger_name).setLevel(level)
        applied[logger_name] = logging.getLevelName(level)
    return applied


def setup_logging(log_dir: Path, debug_mode: bool = False,
                  component_levels: Optional[Dict[str, str]] = None) -> Path:
    """
    Configure the root logger with rotating file handler and console handler,
    then the per-component levels of the editor loggers.
    Returns the path of the active log file.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / LOG_FILE_NAME

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG if debug_mode else logging.INFO)

    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    # 1. Rotating File Handler
    file_handler = logging.handlers.RotatingFileHandler(
        log_file,
        maxBytes=LOG_FILE_SIZE,
        backupCount=LOG_BACKUP_COUNT,
        encoding='utf-8'
    )
    file_handler.setFormatter(formatter)
    file_handler.setLevel(logging.DEBUG)  # Component levels decide what reaches the file

    # 2. Console Handler
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    console_handler.setLevel(logging.DEBUG if debug_mode else logging.INFO)

    # Replace handlers so repeated setup (app factory in tests) does not duplicate output
    if root_logger.hasHandlers():
        for handler in list(root_logger.handlers):
            handler.close()
        root_logger.handlers.clear()

    root_logger.addHandler(file_handler)
    root_logger.addHandler(console_handler)

    applied = configure_component_levels(debug_mode, component_levels)
    logging.info(f"Logging initialized. Log file: {log_file}")
    logging.debug(f"Component log levels: {applied}")

    # Quiet down some noisy libraries
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("werkzeug").setLevel(logging.WARNING)  # Flask dev server noise
    logging.getLogger("PIL").setLevel(logging.WARNING)  # Pillow plugin discovery chatter

    return log_file
