from __future__ import annotations

import json
from typing import Any, Dict, List, Tuple

from fastapi.responses import JSONResponse


def error_response(detail: str, *, code: str | None = None, status_code: int = 400) -> JSONResponse:
    body: Dict[str, Any] = {"error": detail}
    if code:
        body["code"] = code
    return JSONResponse(body, status_code=status_code)


def _first_invalid_field(raw: bytes) -> str | None:
    try:
        payload = json.loads(raw.decode("utf-8") or "{}")
    except (ValueError, UnicodeDecodeError):
        return None
    detail = payload.get("detail") if isinstance(payload, dict) else None
    if not isinstance(detail, list) or not detail:
        return None
    loc = detail[0].get("loc") if isinstance(detail[0], dict) else None
    if not loc:
        return None
    parts = [str(part) for part in loc if part not in ("body", "query", "path")]
    return ".".join(parts) or None


class ValidationNormalizeMiddleware:
    """Turn FastAPI 422 validation responses into 400 with a short error body.

    The body names the first offending field so form code can highlight it.
    """

    def __init__(self, app: Any) -> None:
        self.app = app

    async def __call__(self, scope: Dict[str, Any], receive: Any, send: Any) -> None:
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return

        status_code = 500
        headers: List[Tuple[bytes, bytes]] = []
        body_chunks: List[bytes] = []

        async def send_wrapper(message: Dict[str, Any]) -> None:
            nonlocal status_code, headers
            if message["type"] == "http.response.start":
                status_code = message.get("status", 500)
                headers = list(message.get("headers", []))
                return
            if message["type"] != "http.response.body":
                await send(message)
                return

            body_chunks.append(message.get("body", b"") or b"")
            if message.get("more_body"):
                return

            raw = b"".join(body_chunks)
            if status_code == 422:
                field = _first_invalid_field(raw)
                error = f"Invalid input: {field}." if field else "Invalid input."
                raw = json.dumps({"error": error, "code": "invalid_input"}).encode("utf-8")
                status_code = 400
                headers = [
                    (key, value)
                    for key, value in headers
                    if key.lower() not in {b"content-length", b"content-type"}
                ]
                headers.append((b"content-type", b"application/json"))
                headers.append((b"content-length", str(len(raw)).encode("ascii")))

            await send(
                {
                    "type": "http.response.start",
                    "status": status_code,
                    "headers": headers,
                }
            )
            await send({"type": "http.response.body", "body": raw})

        await self.app(scope, receive, send_wrapper)
