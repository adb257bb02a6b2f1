from typing import Protocol, runtime_checkable

from utils.logger import setup_logger

LOGGER_METHODS = ("info", "warning", "error")


@runtime_checkable
class Logger(Protocol):
    def info(self, message: str, *args, **kwargs): ...

    def warning(self, message: str, *args, **kwargs): ...

    def error(self, message: str, *args, **kwargs): ...


logger = setup_logger("fch")


def default_logger() -> Logger:
    return logger


def is_logger(obj) -> bool:
    return obj is not None and all(callable(getattr(obj, name, None)) for name in LOGGER_METHODS)


def adapt_logger(obj=None) -> Logger:
    """Return ``obj`` when it can be used as a logger, else the default one."""
    if is_logger(obj):
        return obj
    return default_logger()


class GatedLogger:
    """Logger view that forwards to its owner's logger while logging is enabled."""

    def __init__(self, owner):
        self._owner = owner

    @property
    def enabled(self) -> bool:
        return self._owner.logging_enabled

    def _emit(self, level: str, message: str, *args, **kwargs):
        if self.enabled:
            getattr(self._owner.logger, level)(message, *args, **kwargs)

    def info(self, message: str, *args, **kwargs):
        self._emit("info", message, *args, **kwargs)

    def warning(self, message: str, *args, **kwargs):
        self._emit("warning", message, *args, **kwargs)

    def error(self, message: str, *args, **kwargs):
        self._emit("error", message, *args, **kwargs)
