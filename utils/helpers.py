from urllib.parse import urlsplit, urlunsplit, urlencode, parse_qsl

from multidict import MultiDict


def split_url(url: str) -> tuple[str, str, str, MultiDict, str]:
    parsed = urlsplit(str(url))
    if not parsed.scheme or not parsed.netloc:
        raise ValueError(f"Invalid URL: {url!r}")
    path = parsed.path or "/"
    params = MultiDict(parse_qsl(parsed.query, keep_blank_values=True))
    return parsed.scheme.lower(), parsed.netloc, path, params, parsed.fragment


def build_url(scheme: str, netloc: str, path: str, params: MultiDict, fragment: str = "") -> str:
    query = urlencode(list(params.items()))
    return urlunsplit((scheme, netloc, path or "/", query, fragment))


def stringify(value) -> str:
    # Booleans render lower-case, as query strings usually expect
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def parse_key_value(raw: str, sep: str = "=") -> tuple[str, str]:
    key, found, value = raw.partition(sep)
    key = key.strip()
    if not found or not key:
        raise ValueError(f"Expected 'key{sep}value', got {raw!r}")
    return key, value.strip() if sep == ":" else value
