# backoffice/middleware/request_id.py
from __future__ import annotations

import uuid
from contextvars import ContextVar
from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from ..config import settings

REQUEST_ID_HEADER = "X-Request-ID"
MAX_REQUEST_ID_LEN = 128

request_id_ctx: ContextVar[str | None] = ContextVar("request_id", default=None)
org_slug_ctx: ContextVar[str | None] = ContextVar("org_slug", default=None)


def get_request_id() -> str | None:
    return request_id_ctx.get()


def get_org_slug() -> str | None:
    return org_slug_ctx.get()


def _clean_request_id(raw: str | None) -> str:
    rid = (raw or "").strip()[:MAX_REQUEST_ID_LEN]
    return rid or str(uuid.uuid4())


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Tags each request with an id and the tenant it acts for.

    A caller-supplied X-Request-ID is kept (trimmed, capped at 128 chars);
    otherwise a UUID4 is minted. The id and the X-Org-Slug value sit in
    ContextVars so workflow log lines deep in a request can be traced back
    to the organization and call that produced them.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        rid = _clean_request_id(request.headers.get(REQUEST_ID_HEADER))
        org_slug = (request.headers.get(settings.dev_header_org_slug) or "").strip() or None

        request.state.request_id = rid
        rid_token = request_id_ctx.set(rid)
        org_token = org_slug_ctx.set(org_slug)
        try:
            resp = await call_next(request)
            resp.headers[REQUEST_ID_HEADER] = rid
            return resp
        finally:
            org_slug_ctx.reset(org_token)
            request_id_ctx.reset(rid_token)
