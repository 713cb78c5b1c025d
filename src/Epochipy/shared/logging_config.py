"""
Centralized logging configuration for Epochipy.

This module provides functions to set up logging with different verbosity levels,
including a development mode with more detailed logging. Logs are written to
the console and, unless disabled, to a file in the logs directory.

The module provides two main functions:
1. setup_logging - Configure the package logger with console and file handlers
2. get_logger - Get a properly namespaced logger for a specific module

Usage:
    # In the report entry point:
    from Epochipy.shared.logging_config import setup_logging
    setup_logging(dev_mode=True)  # Enable development mode

    # In other modules:
    from Epochipy.shared.logging_config import get_logger
    log = get_logger(__name__)
    log.info("This is a log message")
"""
import os
import sys
import logging
from pathlib import Path
from datetime import datetime

# Default log directory is in the user's home directory
DEFAULT_LOG_DIR = Path.home() / '.epochipy' / 'logs'

DEFAULT_CONSOLE_LEVEL = logging.INFO
DEFAULT_FILE_LEVEL = logging.INFO
DEV_CONSOLE_LEVEL = logging.DEBUG
DEV_FILE_LEVEL = logging.DEBUG


def setup_logging(dev_mode=False, log_dir=None, log_filename=None, log_to_file=True):
    """
    Configure the logging system for Epochipy.

    Sets up the 'Epochipy' logger with a console handler and, when
    ``log_to_file`` is True, a timestamped log file plus an ``app.log`` that
    is overwritten on every run. In development mode, file and line number
    information is included.

    Args:
        dev_mode (bool): If True, enables more verbose logging for development.
        log_dir (Path, optional): Directory where log files will be stored.
            Defaults to ~/.epochipy/logs/
        log_filename (str, optional): Name of the log file.
            If not provided, a timestamped name will be used.
        log_to_file (bool): Set to False to log to the console only.

    Returns:
        logging.Logger: The configured package logger
    """
    root_logger = logging.getLogger('Epochipy')

    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()

    root_logger.setLevel(logging.DEBUG)

    console_level = DEV_CONSOLE_LEVEL if dev_mode else DEFAULT_CONSOLE_LEVEL
    file_level = DEV_FILE_LEVEL if dev_mode else DEFAULT_FILE_LEVEL

    if dev_mode:
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s'
        )
    else:
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    mode_str = "DEVELOPMENT" if dev_mode else "PRODUCTION"
    root_logger.info(f"Epochipy logging initialized in {mode_str} mode")

    if not log_to_file:
        return root_logger

    log_dir = Path(log_dir) if log_dir else DEFAULT_LOG_DIR
    os.makedirs(log_dir, exist_ok=True)

    if not log_filename:
        timestamp = datetime.now().strftime('%Y-%m-%d_%H-%M-%S')
        log_filename = f"epochipy_{timestamp}.log"

    log_file_path = log_dir / log_filename

    file_handler = logging.FileHandler(log_file_path)
    file_handler.setLevel(file_level)
    file_handler.setFormatter(formatter)
    root_logger.addHandler(file_handler)

    # app.log always holds the most recent run
    app_log_path = log_dir / "app.log"
    app_file_handler = logging.FileHandler(app_log_path, mode='w')
    app_file_handler.setLevel(file_level)
    app_file_handler.setFormatter(formatter)
    root_logger.addHandler(app_file_handler)

    root_logger.info(f"Log file: {log_file_path}")

    return root_logger


def get_logger(name):
    """
    Get a logger with the specified name, properly namespaced under Epochipy.

    Args:
        name (str): The logger name, which will be prefixed with 'Epochipy.' if not already.

    Returns:
        logging.Logger: A logger instance
    """
    if name != 'Epochipy' and not name.startswith('Epochipy.'):
        name = f'Epochipy.{name}'
    return logging.getLogger(name)
