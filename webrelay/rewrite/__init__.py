from .urls import (
    RewriteContext,
    decode_proxy_url,
    encode_proxy_url,
    is_excluded,
    is_self_url,
    proxy_url,
    resolve_url,
)
from .css import rewrite_css
from .js import rewrite_js
from .html import rewrite_html
from .shim import build_navbar, build_shim

__all__ = [
    "RewriteContext",
    "decode_proxy_url",
    "encode_proxy_url",
    "is_excluded",
    "is_self_url",
    "proxy_url",
    "resolve_url",
    "rewrite_css",
    "rewrite_js",
    "rewrite_html",
    "build_navbar",
    "build_shim",
]
