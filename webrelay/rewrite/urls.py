"""
URL helpers shared by every rewriting pass.

A reference found in fetched content goes through three steps before it is
written back:

    classify  -> excluded schemes (javascript:, mailto:, tel:, data:, blob:, #)
                 and URLs already on the proxy origin are kept as they are
    resolve   -> relative and protocol-relative references become absolute
    encode    -> <self_origin>/proxy?url=<percent-encoded absolute URL>

Every failure degrades to returning the original reference unchanged.
"""

import re
from dataclasses import dataclass, replace
from urllib.parse import parse_qs, quote, urljoin, urlsplit

PROXY_PATH = "/proxy"

EXCLUDED_PREFIXES = ("javascript:", "mailto:", "tel:", "data:", "blob:", "#")

_ABSOLUTE_HTTP_RE = re.compile(r"^https?://", re.IGNORECASE)


@dataclass(frozen=True)
class RewriteContext:
    """Request-scoped state handed to every transformer."""

    base_url: str
    self_origin: str

    def with_base(self, base_url: str) -> "RewriteContext":
        return replace(self, base_url=base_url)

    @property
    def proxy_endpoint(self) -> str:
        return f"{self.self_origin}{PROXY_PATH}"


def is_absolute_http(url: str) -> bool:
    return bool(url) and bool(_ABSOLUTE_HTTP_RE.match(url))


def is_excluded(reference: str) -> bool:
    """True for references that must never be rewritten."""
    if not reference:
        return False
    return reference.lstrip().lower().startswith(EXCLUDED_PREFIXES)


def _origin(url: str) -> tuple:
    parts = urlsplit(url)
    return parts.scheme.lower(), parts.netloc.lower()


def is_self_url(url: str, self_origin: str) -> bool:
    """True when ``url`` already points at the proxy's own origin."""
    try:
        scheme, netloc = _origin(url)
        return bool(netloc) and (scheme, netloc) == _origin(self_origin)
    except ValueError:
        return False


def resolve_url(base: str, reference: str) -> str:
    """
    Resolve ``reference`` against ``base``.

    Absolute http(s) references come back as they are, ``//host/path`` inherits
    the scheme of ``base`` and anything that cannot be joined is returned
    unchanged.
    """
    if not reference:
        return base
    reference = reference.strip()
    if is_absolute_http(reference):
        return reference
    try:
        if reference.startswith("//"):
            return f"{urlsplit(base).scheme}:{reference}"
        return urljoin(base, reference)
    except ValueError:
        return reference


def encode_proxy_url(absolute: str, self_origin: str) -> str:
    """Wrap an absolute http(s) URL into the proxy endpoint."""
    if not is_absolute_http(absolute):
        return absolute
    try:
        if not urlsplit(absolute).netloc:
            return absolute
    except ValueError:
        return absolute
    return f"{self_origin}{PROXY_PATH}?url={quote(absolute, safe='')}"


def decode_proxy_url(proxied: str) -> str:
    """Return the target URL carried by a proxied URL, or an empty string."""
    try:
        query = urlsplit(proxied).query
    except ValueError:
        return ""
    values = parse_qs(query).get("url")
    return values[0] if values else ""


def proxy_url(reference: str, ctx: RewriteContext) -> str:
    """Full classify/resolve/encode pipeline for one reference."""
    if not reference or not reference.strip():
        return reference
    if is_excluded(reference):
        return reference
    resolved = resolve_url(ctx.base_url, reference)
    if not is_absolute_http(resolved) or is_self_url(resolved, ctx.self_origin):
        return reference
    encoded = encode_proxy_url(resolved, ctx.self_origin)
    if encoded == resolved:
        return reference
    return encoded
