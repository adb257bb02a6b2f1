import json
from dataclasses import dataclass, field
from typing import Any

from multidict import CIMultiDict


@dataclass
class FchResponse:
    status: int
    headers: CIMultiDict
    body: bytes
    url: str
    elapsed: float
    reason: str = ""
    charset: str | None = None
    redirect_chain: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    @property
    def content_type(self) -> str:
        return self.headers.get("content-type", "")

    @property
    def is_html(self) -> bool:
        return "text/html" in self.content_type

    @property
    def is_json(self) -> bool:
        return "application/json" in self.content_type

    def read(self) -> bytes:
        return self.body

    def text(self, encoding: str | None = None) -> str:
        return self.body.decode(encoding or self.charset or "utf-8", errors="replace")

    def json(self) -> Any:
        return json.loads(self.text())
