from .abort import AbortController
from .body import FormData
from .client import Fch, fch
from .config import client_from_config, load_config
from .errors import FchError, RequestAbortedError, RequestError, RequestTimeoutError
from .logger import Logger
from .response import FchResponse

__all__ = [
    "AbortController",
    "FormData",
    "Fch",
    "fch",
    "client_from_config",
    "load_config",
    "FchError",
    "RequestAbortedError",
    "RequestError",
    "RequestTimeoutError",
    "Logger",
    "FchResponse",
]
