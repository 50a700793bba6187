"""Request correlation: X-Request-ID propagation plus start/complete access logs."""

import time
import uuid

import sentry_sdk
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from peachrecon.core.logging import get_logger, set_request_id

REQUEST_ID_HEADER = b"x-request-id"


class RequestIDMiddleware:
    """
    Tag every HTTP request with a correlation id.

    A caller-supplied X-Request-ID is reused, otherwise a UUID4 is minted. The id
    is bound to structlog context, set as a Sentry tag and echoed on the response,
    so one finalize call can be traced across logs and error reports.
    """

    def __init__(self, app: ASGIApp):
        self.app = app
        self.logger = get_logger(__name__)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        raw_id = dict(scope.get("headers", [])).get(REQUEST_ID_HEADER)
        request_id = raw_id.decode() if raw_id else str(uuid.uuid4())
        set_request_id(request_id)
        sentry_sdk.set_tag("request_id", request_id)
        started = time.perf_counter()

        self.logger.info("request.start", method=scope["method"], path=scope["path"])

        async def send_with_request_id(message: Message) -> None:
            if message["type"] == "http.response.start":
                message["headers"] = [*message.get("headers", []), (REQUEST_ID_HEADER, request_id.encode())]
                self.logger.info(
                    "request.complete",
                    method=scope["method"],
                    path=scope["path"],
                    status_code=message.get("status"),
                    duration_ms=int((time.perf_counter() - started) * 1000),
                )
            await send(message)

        await self.app(scope, receive, send_with_request_id)
