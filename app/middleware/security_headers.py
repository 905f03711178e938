"""Security headers middleware.

The API serves JSON only, so responses forbid framing, sniffing and caching.
Raw ASGI; headers already set by a route are left alone.
"""

from typing import Callable

API_SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "no-referrer",
    "Cache-Control": "no-store",
    "Strict-Transport-Security": "max-age=31536000; includeSubDomains",
}


def SecurityHeadersMiddleware(
    app: Callable, headers: dict[str, str] | None = None
) -> Callable:
    """Set the API security headers on every HTTP response."""
    defaults = [
        (k.lower().encode(), v.encode())
        for k, v in (headers or API_SECURITY_HEADERS).items()
    ]

    async def asgi_app(scope: dict, receive: Callable, send: Callable) -> None:
        if scope["type"] != "http":
            await app(scope, receive, send)
            return

        async def send_with_headers(message: dict) -> None:
            if message["type"] == "http.response.start":
                existing = list(message.get("headers", []))
                present = {k.lower() for k, _ in existing}
                existing.extend(h for h in defaults if h[0] not in present)
                message["headers"] = existing
            await send(message)

        await app(scope, receive, send_with_headers)

    return asgi_app
