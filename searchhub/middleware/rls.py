import uuid
from typing import Awaitable, Callable

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.responses import Response

# Define public paths that don't need a tenant ID
PUBLIC_PATHS = ["/", "/health", "/docs", "/openapi.json"]

TENANT_HEADER = "X-Tenant-ID"


async def rls_tenant_middleware(
    request: Request, call_next: Callable[[Request], Awaitable[Response]]
) -> Response:
    """
    FastAPI middleware to enforce tenant isolation via X-Tenant-ID header.

    Every route except the public ones needs an 'X-Tenant-ID' header holding
    a UUID. The parsed value is stored in `request.state.tenant_id`, where the
    route dependencies pick it up and scope every store query to it.
    """
    if request.url.path in PUBLIC_PATHS:
        return await call_next(request)

    raw_tenant_id = request.headers.get(TENANT_HEADER)
    if not raw_tenant_id:
        return JSONResponse(
            status_code=401, content={"detail": "X-Tenant-ID header not provided"}
        )

    try:
        tenant_id = uuid.UUID(raw_tenant_id)
    except ValueError:
        return JSONResponse(
            status_code=422,
            content={"detail": "Invalid X-Tenant-ID format (must be a valid UUID)"},
        )

    request.state.tenant_id = tenant_id
    return await call_next(request)
