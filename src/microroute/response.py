"""Response types that know how to send themselves over ASGI."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel

if TYPE_CHECKING:
    from microroute._types import Send


class Response:
    """Raw bytes response."""

    media_type = "text/plain; charset=utf-8"

    __slots__ = ("body", "headers", "status_code")

    def __init__(
        self,
        content: bytes | str = b"",
        status_code: int = 200,
        headers: dict[str, str] | None = None,
    ) -> None:
        self.body = self.render(content)
        self.status_code = status_code
        self.headers: dict[str, str] = dict(headers or {})

    def render(self, content: Any) -> bytes:
        if isinstance(content, bytes):
            return content
        return str(content).encode("utf-8")

    def raw_headers(self) -> list[tuple[bytes, bytes]]:
        headers = {"content-type": self.media_type, **{k.lower(): v for k, v in self.headers.items()}}
        headers["content-length"] = str(len(self.body))
        return [(k.encode("latin-1"), v.encode("latin-1")) for k, v in headers.items()]

    async def send(self, send: Send, *, head: bool = False) -> None:
        """Send start and body messages; *head* keeps the headers but drops the body."""
        await send(
            {
                "type": "http.response.start",
                "status": self.status_code,
                "headers": self.raw_headers(),
            }
        )
        await send({"type": "http.response.body", "body": b"" if head else self.body})


class JSONResponse(Response):
    """JSON response; pydantic models are dumped in JSON mode."""

    media_type = "application/json"

    __slots__ = ()

    def render(self, content: Any) -> bytes:
        return json.dumps(
            content,
            default=_encode_default,
            ensure_ascii=False,
            separators=(",", ":"),
        ).encode("utf-8")


def _encode_default(obj: Any) -> Any:
    if isinstance(obj, BaseModel):
        return obj.model_dump(mode="json")
    msg = f"Object of type {type(obj).__name__} is not JSON serializable"
    raise TypeError(msg)
