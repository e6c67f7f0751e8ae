"""
Markup rewriting.

The document is rewritten with a fixed sequence of regex passes over the raw
text, not a parsed tree. Order matters: the base declaration must be applied
before any reference is resolved, and the shim and navigation bar are injected
last so that they are never rewritten themselves.
"""

import logging
import re
from html import escape, unescape

from webrelay.rewrite.css import rewrite_css, rewrite_css_urls
from webrelay.rewrite.js import rewrite_js
from webrelay.rewrite.shim import NAVBAR_ID, SHIM_ID, build_navbar, build_shim
from webrelay.rewrite.urls import RewriteContext, proxy_url, resolve_url

logger = logging.getLogger("uvicorn.error")

URL_ATTRIBUTES = (
    "href",
    "src",
    "action",
    "data-src",
    "data-href",
    "data-url",
    "data-lazy",
    "data-original",
    "poster",
    "background",
)

# Attribute values in any of the three HTML forms: double-quoted, single-quoted
# or unquoted. The lookbehind keeps "src" from matching inside "data-src" and
# skips bare framework bindings such as ":href" while still accepting
# namespaced names such as "xlink:href".
_ATTR_VALUE = r"""(\s*=\s*)(?:"([^"]*)"|'([^']*)'|([^\s"'=<>`]+))"""
_ATTR_PREFIX = r"(?<![\w-])(?<![\s\"']:)"

# Opening tags only; attribute passes never look at text or script code.
TAG_RE = re.compile(r"""<[a-zA-Z][\w:-]*\s(?:[^>"']|"[^"]*"|'[^']*')*>""")
URL_ATTR_RE = re.compile(
    _ATTR_PREFIX
    + "("
    + "|".join(re.escape(a) for a in URL_ATTRIBUTES)
    + ")"
    + _ATTR_VALUE,
    re.IGNORECASE,
)
SRCSET_ATTR_RE = re.compile(
    _ATTR_PREFIX + "(srcset|data-srcset)" + _ATTR_VALUE, re.IGNORECASE
)
STYLE_ATTR_RE = re.compile(_ATTR_PREFIX + "(style)" + _ATTR_VALUE, re.IGNORECASE)
CHAR_REF_RE = re.compile(r"&(?:#[0-9]+|#[xX][0-9a-fA-F]+|[a-zA-Z][a-zA-Z0-9]*);")

BASE_HREF_RE = re.compile(
    r"""<base\b[^>]*?\bhref\s*=\s*(?:"([^"]*)"|'([^']*)')[^>]*>""", re.IGNORECASE
)
BASE_TAG_RE = re.compile(r"<base\b[^>]*>", re.IGNORECASE)
STYLE_BLOCK_RE = re.compile(
    r"<style([^>]*)>(.*?)</style>", re.IGNORECASE | re.DOTALL
)
SCRIPT_BLOCK_RE = re.compile(
    r"<script([^>]*)>(.*?)</script>", re.IGNORECASE | re.DOTALL
)
SCRIPT_TYPE_RE = re.compile(
    r"""(?<![\w-])type\s*=\s*(?:"([^"]*)"|'([^']*)'|([^\s>]+))""", re.IGNORECASE
)
HEAD_OPEN_RE = re.compile(r"<head(?=[\s>/])[^>]*>", re.IGNORECASE)
BODY_OPEN_RE = re.compile(r"<body(?=[\s>/])[^>]*>", re.IGNORECASE)

EXECUTABLE_SCRIPT_TYPES = {
    "text/javascript",
    "application/javascript",
    "application/x-javascript",
    "text/ecmascript",
    "application/ecmascript",
    "module",
}


def _attr_value(match: re.Match) -> tuple:
    """
    Return (value, quote) for a match built from ``_ATTR_VALUE``.

    Character references terminated by ``;`` are decoded, so ``&amp;`` in a
    query string reaches the resolver as ``&``. Unquoted values are written
    back double-quoted.
    """
    if match.group(3) is not None:
        raw, quote = match.group(3), '"'
    elif match.group(4) is not None:
        raw, quote = match.group(4), "'"
    else:
        raw, quote = match.group(5), '"'
    return CHAR_REF_RE.sub(lambda m: unescape(m.group(0)), raw), quote


def _replace_value(match: re.Match, value: str, quote: str) -> str:
    value = escape(value, quote=False)
    value = value.replace(quote, "&quot;" if quote == '"' else "&#x27;")
    return f"{match.group(1)}{match.group(2)}{quote}{value}{quote}"


def _rewrite_in_tags(html: str, pattern: re.Pattern, repl) -> str:
    return TAG_RE.sub(lambda tag: pattern.sub(repl, tag.group(0)), html)


def _apply_base(html: str, ctx: RewriteContext) -> tuple:
    match = BASE_HREF_RE.search(html)
    if match:
        declared = match.group(1) if match.group(1) is not None else match.group(2)
        if declared.strip():
            ctx = ctx.with_base(resolve_url(ctx.base_url, unescape(declared)))
            logger.debug(f"[Rewrite] Document declares base {ctx.base_url}")
    return BASE_TAG_RE.sub("", html), ctx


def _rewrite_url_attributes(html: str, ctx: RewriteContext) -> str:
    def _attr(match: re.Match) -> str:
        value, quote = _attr_value(match)
        rewritten = proxy_url(value, ctx)
        if rewritten == value:
            return match.group(0)
        return _replace_value(match, rewritten, quote)

    return _rewrite_in_tags(html, URL_ATTR_RE, _attr)


def split_srcset(value: str) -> list:
    """
    Split a srcset into (url, descriptor) pairs.

    The URL is a run of non-whitespace, so commas inside ``data:`` URLs stay
    part of the URL; the descriptor runs up to the next comma.
    """
    candidates = []
    pos, end = 0, len(value)
    while pos < end:
        while pos < end and (value[pos].isspace() or value[pos] == ","):
            pos += 1
        if pos >= end:
            break
        start = pos
        while pos < end and not value[pos].isspace():
            pos += 1
        url = value[start:pos]
        descriptor = ""
        if url.endswith(","):
            url = url.rstrip(",")
        else:
            comma = value.find(",", pos)
            if comma == -1:
                comma = end
            descriptor = value[pos:comma].strip()
            pos = comma + 1
        candidates.append((url, descriptor))
    return candidates


def rewrite_srcset(value: str, ctx: RewriteContext) -> str:
    """Rewrite the URL of each ``url [descriptor]`` candidate."""
    candidates = []
    changed = False
    for url, descriptor in split_srcset(value):
        if not url.lower().startswith(("data:", "blob:")):
            rewritten = proxy_url(url, ctx)
            changed = changed or rewritten != url
            url = rewritten
        candidates.append(f"{url} {descriptor}" if descriptor else url)
    if not changed:
        return value
    return ", ".join(candidates)


def _rewrite_srcset_attributes(html: str, ctx: RewriteContext) -> str:
    def _srcset(match: re.Match) -> str:
        value, quote = _attr_value(match)
        rewritten = rewrite_srcset(value, ctx)
        if rewritten == value:
            return match.group(0)
        return _replace_value(match, rewritten, quote)

    return _rewrite_in_tags(html, SRCSET_ATTR_RE, _srcset)


def _rewrite_style_blocks(html: str, ctx: RewriteContext) -> str:
    return STYLE_BLOCK_RE.sub(
        lambda m: f"<style{m.group(1)}>{rewrite_css(m.group(2), ctx)}</style>", html
    )


def _rewrite_style_attributes(html: str, ctx: RewriteContext) -> str:
    def _style(match: re.Match) -> str:
        value, quote = _attr_value(match)
        rewritten = rewrite_css_urls(value, ctx)
        if rewritten == value:
            return match.group(0)
        return _replace_value(match, rewritten, quote)

    return _rewrite_in_tags(html, STYLE_ATTR_RE, _style)


def is_executable_script(attrs: str) -> bool:
    """False for data islands such as ``application/json`` or templates."""
    match = SCRIPT_TYPE_RE.search(attrs)
    if not match:
        return True
    declared = next(g for g in match.groups() if g is not None)
    declared = declared.split(";")[0].strip().lower()
    return not declared or declared in EXECUTABLE_SCRIPT_TYPES


def _rewrite_script_blocks(html: str, ctx: RewriteContext) -> str:
    def _script(match: re.Match) -> str:
        attrs, code = match.group(1), match.group(2)
        if SHIM_ID in attrs or not code.strip() or not is_executable_script(attrs):
            return match.group(0)
        return f"<script{attrs}>{rewrite_js(code, ctx)}</script>"

    return SCRIPT_BLOCK_RE.sub(_script, html)


def _inject_after(pattern: re.Pattern, html: str, fragment: str) -> str:
    match = pattern.search(html)
    if not match:
        return fragment + html
    return html[: match.end()] + fragment + html[match.end():]


def rewrite_html(html: str, ctx: RewriteContext) -> str:
    html, ctx = _apply_base(html, ctx)
    html = _rewrite_url_attributes(html, ctx)
    html = _rewrite_srcset_attributes(html, ctx)
    html = _rewrite_style_blocks(html, ctx)
    html = _rewrite_style_attributes(html, ctx)
    html = _rewrite_script_blocks(html, ctx)

    if f'id="{SHIM_ID}"' not in html:
        html = _inject_after(HEAD_OPEN_RE, html, build_shim(ctx))
    if f'id="{NAVBAR_ID}"' not in html:
        html = _inject_after(BODY_OPEN_RE, html, build_navbar(ctx))
    return html
