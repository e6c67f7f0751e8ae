"""
Outbound fetch of the proxied resource.

Redirects are followed by hand so that every hop is resolved against the URL
that produced it, and the body is read raw and decompressed here: the
rewriting passes need the decoded text, and binary content is passed on
without any ``Content-Encoding``.
"""

import codecs
import logging
import re
import zlib
from dataclasses import dataclass
from typing import Optional, Union

import brotli
import httpx
from opentelemetry import trace

from webrelay.rewrite.urls import resolve_url
from webrelay.utils.traced_requests import traced_request
from webrelay.vars import (
    PROXY_ALLOW_UNSAFE_CERT,
    PROXY_MAX_REDIRECTS,
    PROXY_TIMEOUT,
    PROXY_USER_AGENT,
)

tracer = trace.get_tracer(__name__)
logger = logging.getLogger("uvicorn.error")

REDIRECT_STATUSES = {301, 302, 303, 307, 308}

BROWSER_HEADERS = {
    "Accept": (
        "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8"
    ),
    "Accept-Language": "en-US,en;q=0.9",
    "Accept-Encoding": "gzip, deflate, br",
}

_CHARSET_RE = re.compile(r"""charset\s*=\s*["']?([\w.:-]+)""", re.IGNORECASE)


class FetchError(Exception):
    """The origin could not be reached (DNS, refused connection, protocol)."""


class FetchTimeout(FetchError):
    pass


class TooManyRedirects(FetchError):
    def __init__(self, url: str, hops: int):
        super().__init__(f"Too many redirects ({hops}) while fetching {url}")
        self.url = url
        self.hops = hops


@dataclass
class FetchedResource:
    url: str
    status: int
    headers: httpx.Headers
    body: bytes

    @property
    def content_type(self) -> str:
        return self.headers.get("content-type", "")

    @property
    def charset(self) -> str:
        match = _CHARSET_RE.search(self.content_type)
        if match:
            try:
                return codecs.lookup(match.group(1)).name
            except LookupError:
                logger.debug(f"[Fetch] Unknown charset {match.group(1)!r}, using utf-8")
        return "utf-8"

    @property
    def text(self) -> str:
        return self.body.decode(self.charset, errors="replace")


def _decode_one(data: bytes, encoding: str) -> bytes:
    if encoding in ("gzip", "x-gzip"):
        return zlib.decompress(data, 16 + zlib.MAX_WBITS)
    if encoding == "deflate":
        # Servers send both zlib-wrapped and raw deflate streams.
        try:
            return zlib.decompress(data)
        except zlib.error:
            return zlib.decompress(data, -zlib.MAX_WBITS)
    if encoding == "br":
        return brotli.decompress(data)
    if encoding not in ("identity", ""):
        logger.debug(
            f"[Fetch] Unsupported content-encoding {encoding!r}, leaving body as is"
        )
    return data


def decompress_body(raw: bytes, content_encoding: Optional[str]) -> bytes:
    """
    Undo ``Content-Encoding``. Multiple codings are removed in reverse order of
    application. On any failure the raw bytes are returned.
    """
    encodings = [
        e.strip().lower() for e in (content_encoding or "").split(",") if e.strip()
    ]
    data = raw
    try:
        for encoding in reversed(encodings):
            data = _decode_one(data, encoding)
    except (zlib.error, brotli.error) as e:
        logger.debug(f"[Fetch] Decompression ({content_encoding}) failed: {e}")
        return raw
    return data


def _request_headers(content: Optional[bytes]) -> dict:
    headers = {"User-Agent": PROXY_USER_AGENT, **BROWSER_HEADERS}
    if content:
        headers["Content-Type"] = "application/x-www-form-urlencoded"
        headers["Content-Length"] = str(len(content))
    return headers


async def fetch_url(
    target_url: str,
    method: str = "GET",
    body: Optional[Union[bytes, str]] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FetchedResource:
    """
    Fetch ``target_url`` following redirects and return the terminal response
    with its body decompressed.

    Raises FetchTimeout, TooManyRedirects or FetchError. Nothing is retried.
    """
    content = body.encode("utf-8") if isinstance(body, str) else body
    current = target_url
    hops = 0

    with traced_request(
        tracer,
        operation="origin_fetch",
        start_message=f"[Fetch] {method} {target_url}",
        extra_attrs={"fetch.url": target_url, "fetch.method": method},
    ) as span:
        async with httpx.AsyncClient(
            timeout=httpx.Timeout(PROXY_TIMEOUT),
            follow_redirects=False,
            verify=not PROXY_ALLOW_UNSAFE_CERT,
            transport=transport,
        ) as client:
            while True:
                next_url = None
                try:
                    async with client.stream(
                        method,
                        current,
                        headers=_request_headers(content),
                        content=content or None,
                    ) as response:
                        location = response.headers.get("location")
                        if response.status_code in REDIRECT_STATUSES and location:
                            next_url = resolve_url(current, location)
                        else:
                            raw = b"".join(
                                [chunk async for chunk in response.aiter_raw()]
                            )
                except httpx.TimeoutException as e:
                    logger.error(f"[Fetch] Timeout for {current}: {e}")
                    span.set_attribute("fetch.error", "timeout")
                    raise FetchTimeout(f"Timeout while fetching {current}") from e
                except (httpx.HTTPError, httpx.InvalidURL) as e:
                    logger.error(f"[Fetch] Failed to fetch {current}: {e}")
                    span.set_attribute("fetch.error", type(e).__name__)
                    raise FetchError(f"Failed to fetch {current}: {e}") from e

                if next_url is None:
                    break

                hops += 1
                if hops > PROXY_MAX_REDIRECTS:
                    span.set_attribute("fetch.error", "too_many_redirects")
                    raise TooManyRedirects(target_url, hops)
                logger.debug(
                    f"[Fetch] {response.status_code} redirect {current} -> {next_url}"
                )
                current = next_url
                method = "GET"
                content = None

        encoding = response.headers.get("content-encoding", "")
        span.set_attribute("fetch.redirects", hops)
        span.set_attribute("fetch.status_code", response.status_code)
        span.set_attribute("fetch.content_encoding", encoding)

        headers = httpx.Headers(response.headers)
        # The body handed on is already decoded.
        headers.pop("content-encoding", None)
        headers.pop("content-length", None)
        return FetchedResource(
            url=current,
            status=response.status_code,
            headers=headers,
            body=decompress_body(raw, encoding),
        )
