import logging
import os
from rich.logging import RichHandler
from rich.console import Console

console = Console(stderr=True)


def setup_logger(
    name: str = "fch",
    level: str = "INFO",
    log_file: str | None = None,
    markup: bool = False,
) -> logging.Logger:
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    if logger.handlers:
        if log_file:
            add_file_handler(logger, log_file)
        return logger

    rich_handler = RichHandler(
        console=console,
        show_time=True,
        show_path=False,
        markup=markup,
        rich_tracebacks=True,
    )
    rich_handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(rich_handler)

    if log_file:
        add_file_handler(logger, log_file)

    return logger


def add_file_handler(logger: logging.Logger, log_file: str) -> logging.Handler:
    for handler in logger.handlers:
        if isinstance(handler, logging.FileHandler) and handler.baseFilename == os.path.abspath(log_file):
            return handler

    file_handler = logging.FileHandler(log_file)
    file_handler.setFormatter(
        logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    )
    logger.addHandler(file_handler)
    return file_handler
