from .logger import setup_logger
from .helpers import split_url, build_url, stringify, parse_key_value

__all__ = ["setup_logger", "split_url", "build_url", "stringify", "parse_key_value"]
