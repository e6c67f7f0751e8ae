import logging
from enum import Enum

from fastapi.responses import Response

from webrelay.fetch import FetchedResource
from webrelay.rewrite import RewriteContext, rewrite_css, rewrite_html, rewrite_js

logger = logging.getLogger("uvicorn.error")

BINARY_CACHE_CONTROL = "public, max-age=86400"

# Statuses that must not carry a body.
BODYLESS_STATUSES = {204, 304}


class ContentKind(str, Enum):
    BINARY = "binary"
    STYLESHEET = "stylesheet"
    SCRIPT = "script"
    MARKUP = "markup"


def classify_content_type(content_type: str) -> ContentKind:
    """
    Anything that is not recognisably textual is binary. Text that is neither
    a stylesheet nor a script (html, json, plain text) is treated as markup.
    """
    ct = (content_type or "").lower()
    is_css = "css" in ct
    is_js = "javascript" in ct or "ecmascript" in ct
    is_text = is_css or is_js or "html" in ct or "json" in ct or "text" in ct
    if not is_text:
        return ContentKind.BINARY
    if is_css:
        return ContentKind.STYLESHEET
    if is_js:
        return ContentKind.SCRIPT
    return ContentKind.MARKUP


def render_resource(resource: FetchedResource, self_origin: str) -> Response:
    """Run the matching transformer and build the outgoing response."""
    kind = classify_content_type(resource.content_type)
    headers = {"Access-Control-Allow-Origin": "*", "X-Frame-Options": ""}
    logger.debug(f"[Proxy] {resource.url} classified as {kind.value}")

    if resource.status in BODYLESS_STATUSES or not resource.body:
        return Response(
            content=b"",
            status_code=resource.status,
            headers=headers,
            media_type=resource.content_type or None,
        )

    if kind is ContentKind.BINARY:
        headers["Cache-Control"] = BINARY_CACHE_CONTROL
        return Response(
            content=resource.body,
            status_code=resource.status,
            headers=headers,
            media_type=resource.content_type or "application/octet-stream",
        )

    ctx = RewriteContext(base_url=resource.url, self_origin=self_origin)
    if kind is ContentKind.STYLESHEET:
        body, media_type = rewrite_css(resource.text, ctx), "text/css; charset=utf-8"
    elif kind is ContentKind.SCRIPT:
        body = rewrite_js(resource.text, ctx)
        media_type = "application/javascript; charset=utf-8"
    else:
        body, media_type = rewrite_html(resource.text, ctx), "text/html; charset=utf-8"

    return Response(
        content=body.encode("utf-8"),
        status_code=resource.status,
        headers=headers,
        media_type=media_type,
    )
