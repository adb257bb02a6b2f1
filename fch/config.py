import os

import yaml

from .client import Fch
from .logger import Logger

DEFAULT_CONFIG_PATH = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "config.yaml")

# Keys under "request" that are forwarded to aiohttp as-is
_PASSTHROUGH_OPTIONS = ("allow_redirects", "proxy", "ssl", "cookies", "max_redirects")


def load_config(config_path: str | None = None) -> dict:
    path = config_path or DEFAULT_CONFIG_PATH

    if os.path.exists(path):
        with open(path) as f:
            return yaml.safe_load(f) or {}
    return {}


def _non_negative(section: dict, key: str, default):
    value = section.get(key, default)
    if value is None:
        return None
    try:
        value = float(value)
    except (TypeError, ValueError):
        raise ValueError(f"request.{key} must be a number, got {value!r}") from None
    if value < 0:
        raise ValueError(f"request.{key} must not be negative, got {value!r}")
    return value


def _retries(section: dict) -> int:
    value = section.get("retries")
    if value is None:
        return 1
    try:
        value = int(value)
    except (TypeError, ValueError):
        raise ValueError(f"request.retries must be an integer, got {value!r}") from None
    # Fewer than one attempt still sends the request once
    return max(value, 1)


def client_from_config(url: str, config: dict, logger: Logger | None = None) -> Fch:
    request_cfg = config.get("request", {}) or {}
    logging_cfg = config.get("logging", {}) or {}

    options = {key: request_cfg[key] for key in _PASSTHROUGH_OPTIONS if key in request_cfg}

    return Fch(
        url,
        method=request_cfg.get("method", "GET"),
        retries=_retries(request_cfg),
        retry_timeout=_non_negative(request_cfg, "retry_timeout", 0.0),
        timeout=_non_negative(request_cfg, "timeout", 5.0),
        headers=request_cfg.get("headers") or {},
        debug=bool(logging_cfg.get("debug", False)),
        logger=logger,
        **options,
    )
