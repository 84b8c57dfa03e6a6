import logging
import sys
import os


def setup_logging(name: str = "safety_triage", log_level: str = None) -> logging.Logger:
    """
    Sets up a named logger for the routing service.

    Console output always goes to stdout. A file handler is added only
    when LOG_DIR is set, so tests and containers do not write to disk.

    Args:
        name (str): The name of the logger.
        log_level (str): Logging level (DEBUG, INFO, WARNING, ERROR).
            Defaults to the LOG_LEVEL environment variable, then INFO.

    Returns:
        logging.Logger: Configured logger instance.
    """
    log_level = log_level or os.getenv("LOG_LEVEL", "INFO")

    logger = logging.getLogger(name)
    level = getattr(logging, log_level.upper(), logging.INFO)
    logger.setLevel(level)

    if not logger.handlers:
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

        log_dir = os.getenv("LOG_DIR")
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
            file_handler = logging.FileHandler(
                os.path.join(log_dir, f"{name}.log"), encoding='utf-8'
            )
            file_handler.setLevel(level)
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)

    return logger
