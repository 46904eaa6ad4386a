"""Request logging middleware.

Logs every HTTP request with method, path, status code, latency, a short
request ID, and the snapshot version the request was served against. The
request_id is also injected into request.state so router handlers can
include it in ApiResponse.

Log format:
    INFO [POST] /api/v1/quotes/mint → 200 (3ms) req_a1b2c3d4e5f6 snap=v42
"""

import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger("gm.request")


def _snapshot_tag(request: Request) -> str:
    reconciler = getattr(request.app.state, "reconciler", None)
    snapshot = reconciler.snapshot if reconciler is not None else None
    if snapshot is None:
        return "snap=none"
    return f"snap=v{snapshot.version}"


class RequestLogMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request.state.request_id = f"req_{uuid.uuid4().hex[:12]}"
        # version the request is served against, read before the handler runs
        snapshot_tag = _snapshot_tag(request)

        start = time.perf_counter()
        response: Response = await call_next(request)
        elapsed_ms = (time.perf_counter() - start) * 1000

        logger.info(
            "[%s] %s → %d (%.0fms) %s %s",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
            request.state.request_id,
            snapshot_tag,
        )
        return response
