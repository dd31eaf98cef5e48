"""Raw body capture middleware.

Reads every request body exactly once, before any route or body parser
runs, and attaches it to the request scope:

- ``request.state.raw_body``: the bytes as received (``b""`` when empty)
- ``request.state.parsed_body``: the decoded JSON object, for JSON
  requests on paths that are not raw-only

Raw-only paths (the Stripe webhook) are never decoded here; their handlers
verify signatures over ``raw_body``. The captured bytes are replayed to the
downstream app, so nothing after this middleware can find the stream
already consumed.
"""

import json
import re
from collections.abc import Iterable

from starlette.datastructures import Headers
from starlette.responses import JSONResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from api.exceptions import get_http_status_for_error
from shared.models.errors import (
    ErrorCode,
    MalformedContentType,
    PayloadTooLarge,
    RelayError,
)
from shared.utils.logging import get_logger

logger = get_logger(__name__)

RAW_BODY_KEY = "raw_body"
PARSED_BODY_KEY = "parsed_body"
DEFAULT_MAX_BODY_SIZE = 1024 * 1024

BODY_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})

_TOKEN = r"[!#$%&'*+.^_`|~0-9a-z-]+"
_MEDIA_TYPE = re.compile(rf"^{_TOKEN}/{_TOKEN}$")


def parse_media_type(content_type: str | None) -> str | None:
    """Return the lower-cased media type of a Content-Type header.

    Raises:
        MalformedContentType: If the header is present but not ``type/subtype``.
    """
    if content_type is None:
        return None
    media_type = content_type.split(";", 1)[0].strip().lower()
    if not _MEDIA_TYPE.match(media_type):
        raise MalformedContentType(details={"content_type": content_type[:100]})
    return media_type


def is_json_media_type(media_type: str | None) -> bool:
    if media_type is None:
        return False
    return media_type == "application/json" or media_type.endswith("+json")


def _route_path(scope: Scope) -> str:
    path: str = scope["path"]
    root_path: str = scope.get("root_path", "")
    if root_path and path.startswith(root_path):
        path = path[len(root_path):] or "/"
    return path.rstrip("/") or "/"


class RawBodyMiddleware:
    """ASGI middleware that captures request bytes before anything decodes them."""

    def __init__(
        self,
        app: ASGIApp,
        *,
        max_body_size: int = DEFAULT_MAX_BODY_SIZE,
        raw_only_paths: Iterable[str] = (),
    ) -> None:
        """Initialize the middleware.

        Args:
            app: Downstream ASGI app
            max_body_size: Largest accepted body, in bytes
            raw_only_paths: Paths whose bodies are captured but never decoded
        """
        self.app = app
        self.max_body_size = max_body_size
        self.raw_only_paths = frozenset(p.rstrip("/") or "/" for p in raw_only_paths)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or scope["method"] not in BODY_METHODS:
            await self.app(scope, receive, send)
            return

        headers = Headers(scope=scope)
        try:
            media_type = parse_media_type(headers.get("content-type"))
            self._check_declared_length(headers)
            raw_body = await self._read_body(receive)
            if raw_body is None:
                logger.info("Client disconnected before sending the full body")
                return
            parsed_body = self._decode(scope, media_type, raw_body)
        except RelayError as e:
            logger.warning(
                "Rejected request body on %s %s: %s",
                scope["method"],
                scope["path"],
                e.message,
            )
            response = JSONResponse(
                status_code=get_http_status_for_error(e.code),
                content=e.to_error_response().model_dump(mode="json"),
            )
            await response(scope, receive, send)
            return

        state = scope.setdefault("state", {})
        state[RAW_BODY_KEY] = raw_body
        if parsed_body is not None:
            state[PARSED_BODY_KEY] = parsed_body

        await self.app(scope, self._replay(raw_body, receive), send)

    def _check_declared_length(self, headers: Headers) -> None:
        declared = headers.get("content-length")
        if declared is None:
            return
        try:
            length = int(declared)
        except ValueError:
            # Let the server reject it; we still enforce the limit while reading
            return
        if length > self.max_body_size:
            raise PayloadTooLarge(
                details={"content_length": declared, "limit": str(self.max_body_size)}
            )

    async def _read_body(self, receive: Receive) -> bytes | None:
        """Read the whole body, enforcing the size limit as chunks arrive."""
        chunks: list[bytes] = []
        size = 0
        while True:
            message = await receive()
            if message["type"] == "http.disconnect":
                return None
            chunk = message.get("body", b"")
            size += len(chunk)
            if size > self.max_body_size:
                raise PayloadTooLarge(details={"limit": str(self.max_body_size)})
            chunks.append(chunk)
            if not message.get("more_body", False):
                return b"".join(chunks)

    def _decode(self, scope: Scope, media_type: str | None, raw_body: bytes) -> dict | None:
        if _route_path(scope) in self.raw_only_paths:
            return None
        if not is_json_media_type(media_type):
            return None
        if not raw_body:
            return {}
        try:
            parsed = json.loads(raw_body)
        except ValueError as e:
            raise RelayError(
                code=ErrorCode.INVALID_JSON_BODY,
                details={"message": str(e)[:200]},
            ) from e
        if not isinstance(parsed, dict):
            raise RelayError(
                code=ErrorCode.INVALID_JSON_BODY,
                details={"message": "JSON body must be an object"},
            )
        return parsed

    @staticmethod
    def _replay(raw_body: bytes, receive: Receive) -> Receive:
        """Build a receive callable that yields the captured body once."""
        delivered = False

        async def replay_receive() -> Message:
            nonlocal delivered
            if not delivered:
                delivered = True
                return {"type": "http.request", "body": raw_body, "more_body": False}
            return await receive()

        return replay_receive
