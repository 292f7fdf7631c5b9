from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
import hashlib
import logging
from typing import Callable

from backoffice.schemas.audit import AuditLogEntry, AuditStatus
from backoffice.schemas.entities import EntityKind

logger = logging.getLogger(__name__)

AUDITED_METHODS = {"POST", "PUT", "PATCH", "DELETE"}

# Data-maintenance routes rewrite whole collections; auditing them would
# leave a record behind after a reset.
UNAUDITED_PREFIXES = ("/reset", "/load-sample-data", "/sync-data")

_ACTIONS = {"POST": "CREATE", "PUT": "UPDATE", "PATCH": "UPDATE", "DELETE": "DELETE"}


def action_type_for(method: str, path: str) -> str:
    """``CREATE_TEAMS``, ``UPDATE_CUSTOMER_COUNTS``, ... from method and path."""
    collection = path.strip("/").split("/")[0] or "ROOT"
    return f"{_ACTIONS.get(method, method)}_{collection.replace('-', '_').upper()}"


class AuditMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: Callable):
        endpoint = request.url.path
        method = request.method

        if method not in AUDITED_METHODS or endpoint.startswith(UNAUDITED_PREFIXES):
            return await call_next(request)

        actor = request.headers.get("X-Actor") or "system"

        # Capture & hash input. Starlette caches the body, so the endpoint
        # can still read it.
        request_body_bytes = await request.body()
        input_hash = hashlib.sha256(request_body_bytes).hexdigest()

        status = AuditStatus.FAILURE
        output_hash = None
        try:
            response = await call_next(request)
            if 200 <= response.status_code < 300:
                status = AuditStatus.SUCCESS

            response_body_bytes = b""
            async for chunk in response.body_iterator:
                response_body_bytes += chunk
            output_hash = hashlib.sha256(response_body_bytes).hexdigest()

            response = Response(
                content=response_body_bytes,
                status_code=response.status_code,
                headers=dict(response.headers),
                media_type=response.media_type
            )
        finally:
            try:
                entry = AuditLogEntry(
                    endpoint=endpoint,
                    method=method,
                    action_type=action_type_for(method, endpoint),
                    actor=actor,
                    input_hash=input_hash,
                    output_hash=output_hash,
                    status=status
                )
                request.app.state.store.create(EntityKind.AUDIT_LOGS, entry.to_record())
            except Exception as log_error:
                logger.error(f"Audit Logging Failed: {log_error}")

        return response
