import html
import logging
from typing import Optional

from fastapi import APIRouter, Query, Request
from fastapi.responses import HTMLResponse, RedirectResponse, Response
from opentelemetry import trace

from webrelay.dispatch import classify_content_type, render_resource
from webrelay.fetch import fetch_url
from webrelay.rewrite.urls import PROXY_PATH, is_absolute_http
from webrelay.utils import (
    format_exception_message,
    log_exception_with_details,
    traced_request,
)
from webrelay.vars import PUBLIC_URL

router = APIRouter()

logger = logging.getLogger("uvicorn.error")

tracer = trace.get_tracer(__name__)

LANDING_PAGE = f"""<!DOCTYPE html>
<html>
<head><meta charset="utf-8"><title>webrelay</title></head>
<body style="font-family:monospace;padding:40px;background:#0d0d0f;color:#e8e8f0">
  <h2>webrelay</h2>
  <form action="{PROXY_PATH}" method="get">
    <input name="url" placeholder="https://example.com" autofocus size="60"/>
    <button type="submit">Go</button>
  </form>
</body>
</html>"""


def normalize_target(raw: str) -> str:
    """Assume https:// for bare hosts such as ``example.com/path``."""
    raw = raw.strip()
    if is_absolute_http(raw):
        return raw
    return "https://" + raw


def get_self_origin(request: Request) -> str:
    """Origin under which proxied URLs are published."""
    if PUBLIC_URL:
        return PUBLIC_URL
    forwarded_proto = request.headers.get("x-forwarded-proto", "")
    scheme = forwarded_proto.split(",")[0].strip() or request.url.scheme
    host = request.headers.get("host") or request.url.netloc
    return f"{scheme}://{host}"


def error_response(message: str) -> HTMLResponse:
    return HTMLResponse(
        content=(
            '<h2 style="font-family:monospace;padding:40px;color:#ff4d6d">'
            f"Proxy error: {html.escape(message)}<br/><br/>"
            '<a href="/" style="color:#00f5a0">&larr; Go back</a>'
            "</h2>"
        ),
        status_code=500,
    )


@router.get("/", response_class=HTMLResponse)
async def index():
    return HTMLResponse(LANDING_PAGE)


@router.api_route(PROXY_PATH, methods=["GET", "POST"])
async def proxy(
    request: Request,
    url: Optional[str] = Query(None, description="Absolute URL or bare host to fetch"),
) -> Response:
    if not url or not url.strip():
        return RedirectResponse("/", status_code=302)

    target_url = normalize_target(url)
    self_origin = get_self_origin(request)

    body = None
    if request.method == "POST":
        body = await request.body()

    with traced_request(
        tracer,
        operation="proxy_request",
        start_message=f"[Proxy] {request.method} {target_url}",
        extra_attrs={"proxy.target_url": target_url, "proxy.method": request.method},
    ) as span:
        try:
            resource = await fetch_url(target_url, request.method, body or None)
            response = render_resource(resource, self_origin)
        except Exception as e:
            log_exception_with_details(logger, "[Proxy]", e)
            span.set_attribute("proxy.error", type(e).__name__)
            span.record_exception(e)
            return error_response(format_exception_message(e))

        span.set_attribute("proxy.status_code", resource.status)
        span.set_attribute(
            "proxy.content_kind", classify_content_type(resource.content_type).value
        )
        return response
