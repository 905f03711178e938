"""Request body size limit middleware.

Task payloads carry attachment references, never file bytes, so bodies stay
small. Bodies over max_bytes get 413 whether the size is declared
(Content-Length) or only discovered while reading a chunked body.
"""

import json
from typing import Callable

from app.middleware.request_id import header_value

_BODYLESS_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})


async def _reject(send: Callable, max_bytes: int) -> None:
    body = json.dumps(
        {
            "error": "PAYLOAD_TOO_LARGE",
            "message": f"Request body must be at most {max_bytes} bytes",
            "details": {"max_bytes": max_bytes},
        }
    ).encode()
    await send(
        {
            "type": "http.response.start",
            "status": 413,
            "headers": [(b"content-type", b"application/json")],
        }
    )
    await send({"type": "http.response.body", "body": body})


async def _read_body(receive: Callable, max_bytes: int) -> bytes | None:
    """Read the whole body; None as soon as it grows past max_bytes."""
    body = bytearray()
    while True:
        message = await receive()
        if message["type"] == "http.disconnect":
            break
        body.extend(message.get("body", b""))
        if len(body) > max_bytes:
            return None
        if not message.get("more_body", False):
            break
    return bytes(body)


def RequestSizeLimitMiddleware(app: Callable, max_bytes: int) -> Callable:
    """Reject HTTP requests whose body exceeds max_bytes with 413."""

    async def asgi_app(scope: dict, receive: Callable, send: Callable) -> None:
        if scope["type"] != "http" or scope.get("method") in _BODYLESS_METHODS:
            await app(scope, receive, send)
            return

        declared = header_value(scope, "content-length")
        if declared is not None and declared.isdigit():
            if int(declared) > max_bytes:
                await _reject(send, max_bytes)
                return
            await app(scope, receive, send)
            return

        body = await _read_body(receive, max_bytes)
        if body is None:
            await _reject(send, max_bytes)
            return
        replayed = False

        async def replay() -> dict:
            nonlocal replayed
            if replayed:
                return await receive()
            replayed = True
            return {"type": "http.request", "body": body, "more_body": False}

        await app(scope, replay, send)

    return asgi_app
