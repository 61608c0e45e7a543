"""HTTP hardening middleware: security headers, body limits and input filtering."""

from __future__ import annotations

import json
import re
from typing import Any, Iterable, List, Tuple
from urllib.parse import parse_qsl

import bleach
from starlette.datastructures import Headers
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.types import ASGIApp, Message, Receive, Scope, Send
import structlog

from .responses import error_response

logger = structlog.get_logger(__name__)

_SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "X-XSS-Protection": "0",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Strict-Transport-Security": "max-age=31536000; includeSubDomains; preload",
    "Content-Security-Policy": (
        "default-src 'self'; "
        "script-src 'self' 'unsafe-inline' https://cdn.jsdelivr.net; "
        "style-src 'self' 'unsafe-inline' https://cdn.jsdelivr.net https://fonts.googleapis.com; "
        "font-src 'self' https://fonts.gstatic.com; "
        "img-src 'self' data: https:; "
        "object-src 'none'"
    ),
}

_INJECTION_PATTERNS = (
    re.compile(r"\b(SELECT|INSERT|UPDATE|DELETE|DROP|CREATE|ALTER|EXEC|EXECUTE|UNION|SCRIPT)\b", re.IGNORECASE),
    re.compile(r"(--|;|\||/\*|\*/)"),
    re.compile(r"(script|javascript|vbscript|onload|onerror|onclick)", re.IGNORECASE),
)
_STRIPPED_CHARACTERS = re.compile(r"['\";\\]")

# Secrets are passed through untouched.
DEFAULT_EXEMPT_FIELDS = frozenset({"password", "currentPassword", "newPassword", "refreshToken", "token"})
# Free text is cleaned but not pattern-checked.
DEFAULT_FREE_TEXT_FIELDS = frozenset({"noteText"})


def sanitize_text(value: str) -> str:
    """Strip every HTML tag and the characters ``' " ; \\``."""
    cleaned = bleach.clean(value, tags=[], attributes={}, strip=True)
    return _STRIPPED_CHARACTERS.sub("", cleaned).strip()


def contains_injection(value: str) -> bool:
    return any(pattern.search(value) for pattern in _INJECTION_PATTERNS)


def sanitize_payload(payload: Any, exempt_fields: Iterable[str] = DEFAULT_EXEMPT_FIELDS) -> Any:
    exempt = frozenset(exempt_fields)
    if isinstance(payload, str):
        return sanitize_text(payload)
    if isinstance(payload, list):
        return [sanitize_payload(item, exempt) for item in payload]
    if isinstance(payload, dict):
        return {
            key: value if key in exempt else sanitize_payload(value, exempt)
            for key, value in payload.items()
        }
    return payload


def find_injection(
    payload: Any,
    skip_fields: Iterable[str] = DEFAULT_EXEMPT_FIELDS | DEFAULT_FREE_TEXT_FIELDS,
    path: str = "",
) -> str | None:
    """Return the dotted path of the first suspicious value, or ``None``."""
    skip = frozenset(skip_fields)
    if isinstance(payload, str):
        if contains_injection(payload):
            return path or "<root>"
        return None
    if isinstance(payload, list):
        for index, item in enumerate(payload):
            hit = find_injection(item, skip, f"{path}[{index}]")
            if hit:
                return hit
    elif isinstance(payload, dict):
        for key, value in payload.items():
            if key in skip:
                continue
            hit = find_injection(value, skip, f"{path}.{key}" if path else key)
            if hit:
                return hit
    return None


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Set the usual browser hardening headers on every response."""

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        for header, value in _SECURITY_HEADERS.items():
            response.headers.setdefault(header, value)
        return response


class RequestSizeLimitMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: ASGIApp, *, max_bytes: int) -> None:
        super().__init__(app)
        self._max_bytes = max_bytes

    async def dispatch(self, request: Request, call_next):
        content_length = request.headers.get("content-length")
        if content_length and content_length.isdigit() and int(content_length) > self._max_bytes:
            return error_response(
                413,
                "Request entity too large",
                "REQUEST_TOO_LARGE",
                details={"maxBytes": self._max_bytes},
            )
        return await call_next(request)


class InputSanitizationMiddleware:
    """Clean JSON bodies and reject query strings or bodies that look like injection.

    Bodies are read fully, sanitised with bleach and replayed to the app with
    a corrected ``content-length``. Multipart uploads are left alone.
    """

    def __init__(
        self,
        app: ASGIApp,
        *,
        path_prefix: str = "/api",
        exempt_fields: Iterable[str] = DEFAULT_EXEMPT_FIELDS,
        free_text_fields: Iterable[str] = DEFAULT_FREE_TEXT_FIELDS,
    ) -> None:
        self.app = app
        self._path_prefix = path_prefix
        self._exempt = frozenset(exempt_fields)
        self._skip_check = self._exempt | frozenset(free_text_fields)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or not scope["path"].startswith(self._path_prefix):
            await self.app(scope, receive, send)
            return

        query = parse_qsl(scope.get("query_string", b"").decode("latin-1"), keep_blank_values=True)
        for key, value in query:
            if key not in self._exempt and contains_injection(value):
                logger.warning("suspicious_query_rejected", parameter=key)
                response = error_response(400, "Invalid query parameters detected", "INVALID_QUERY")
                await response(scope, receive, send)
                return

        headers = Headers(scope=scope)
        if "application/json" not in headers.get("content-type", ""):
            await self.app(scope, receive, send)
            return

        body = await _read_body(receive)
        if body:
            try:
                payload = json.loads(body)
            except ValueError:
                payload = None  # Let the route report the malformed body.
            if payload is not None:
                cleaned = sanitize_payload(payload, self._exempt)
                hit = find_injection(cleaned, self._skip_check)
                if hit:
                    logger.warning("suspicious_body_rejected", field=hit)
                    response = error_response(400, "Invalid input detected", "INVALID_INPUT")
                    await response(scope, receive, send)
                    return
                body = json.dumps(cleaned).encode("utf-8")

        scope = dict(scope)
        scope["headers"] = _replace_content_length(scope["headers"], len(body))
        await self.app(scope, _replay(body, receive), send)


async def _read_body(receive: Receive) -> bytes:
    chunks: List[bytes] = []
    more_body = True
    while more_body:
        message = await receive()
        if message["type"] == "http.disconnect":
            break
        chunks.append(message.get("body", b""))
        more_body = message.get("more_body", False)
    return b"".join(chunks)


def _replay(body: bytes, receive: Receive) -> Receive:
    sent = False

    async def replay() -> Message:
        nonlocal sent
        if not sent:
            sent = True
            return {"type": "http.request", "body": body, "more_body": False}
        return await receive()

    return replay


def _replace_content_length(raw_headers: List[Tuple[bytes, bytes]], length: int) -> List[Tuple[bytes, bytes]]:
    headers = [(name, value) for name, value in raw_headers if name.lower() != b"content-length"]
    headers.append((b"content-length", str(length).encode("latin-1")))
    return headers
