"""
Request ID middleware.

Every request gets an id (the client's X-Request-ID or a fresh UUID) that is
echoed in the response and stamped on every log record emitted while the
request is handled, so a gateway callback can be followed through the order,
payment and inventory logs.
"""

import uuid
import logging
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

REQUEST_ID_HEADER = "X-Request-ID"


class RequestIDMiddleware(BaseHTTPMiddleware):

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request.state.request_id = request_id

        # Stamp log records created during this request
        previous_factory = logging.getLogRecordFactory()

        def record_factory(*args, **kwargs):
            record = previous_factory(*args, **kwargs)
            record.request_id = request_id
            return record

        logging.setLogRecordFactory(record_factory)

        try:
            response: Response = await call_next(request)
            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        finally:
            logging.setLogRecordFactory(previous_factory)


def get_request_id(request: Request) -> str:
    """Request id stored by RequestIDMiddleware, or "no-request-id"."""
    return getattr(request.state, "request_id", "no-request-id")
