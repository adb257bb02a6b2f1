import json
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlencode

import aiohttp

from utils.helpers import stringify

FORM_URLENCODED = "application/x-www-form-urlencoded"
JSON = "application/json"


@dataclass(frozen=True)
class FormField:
    name: str
    value: Any
    filename: str | None = None
    content_type: str | None = None


class FormData:
    """Ordered multipart/form-data fields.

    aiohttp writers can only be sent once, so a new one is built for every
    attempt from the stored fields.
    """

    def __init__(self, fields: dict | None = None):
        self._fields: list[FormField] = []
        for name, value in (fields or {}).items():
            self.append(name, value)

    def append(self, name: str, value: Any, filename: str | None = None, content_type: str | None = None):
        if hasattr(value, "read"):
            # Streams are read once here so every attempt sends the same bytes
            value = value.read()
        if isinstance(value, (int, float, bool)):
            value = stringify(value)
        self._fields.append(FormField(name, value, filename, content_type))
        return self

    def get(self, name: str):
        for field in self._fields:
            if field.name == name:
                return field.value
        return None

    def get_all(self, name: str) -> list:
        return [field.value for field in self._fields if field.name == name]

    def items(self) -> list[tuple[str, Any]]:
        return [(field.name, field.value) for field in self._fields]

    @property
    def fields(self) -> list[FormField]:
        return list(self._fields)

    def copy(self) -> "FormData":
        clone = FormData()
        clone._fields = list(self._fields)
        return clone

    def to_payload(self) -> aiohttp.MultipartWriter:
        writer = aiohttp.MultipartWriter("form-data")
        for field in self._fields:
            headers = {aiohttp.hdrs.CONTENT_TYPE: field.content_type} if field.content_type else None
            part = writer.append(field.value, headers)
            params = {"name": field.name}
            if field.filename is not None:
                params["filename"] = field.filename
            part.set_content_disposition("form-data", **params)
        return writer

    def __len__(self):
        return len(self._fields)

    def __iter__(self):
        return iter(self.items())

    def __repr__(self):
        return f"FormData({[field.name for field in self._fields]!r})"


def encode_form_urlencoded(data: dict) -> str:
    pairs = []
    for key, value in data.items():
        if isinstance(value, (list, tuple)):
            pairs.extend((key, stringify(v)) for v in value)
        else:
            pairs.append((key, stringify(value)))
    return urlencode(pairs)


def encode_json(data: Any) -> str:
    return json.dumps(data)
