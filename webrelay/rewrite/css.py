import re

from webrelay.rewrite.urls import RewriteContext, proxy_url

CSS_URL_RE = re.compile(r"""url\(\s*["']?([^"')]+)["']?\s*\)""", re.IGNORECASE)
CSS_IMPORT_RE = re.compile(r"""@import\s+["']([^"']+)["']""", re.IGNORECASE)

_INLINE_PREFIXES = ("data:", "blob:")


def rewrite_css_urls(css: str, ctx: RewriteContext) -> str:
    """Rewrite ``url(...)`` references only; used for inline style attributes."""

    def _url(match: re.Match) -> str:
        value = match.group(1)
        if value.strip().lower().startswith(_INLINE_PREFIXES):
            return match.group(0)
        rewritten = proxy_url(value, ctx)
        if rewritten == value:
            return match.group(0)
        return f"url({rewritten})"

    return CSS_URL_RE.sub(_url, css)


def rewrite_css(css: str, ctx: RewriteContext) -> str:
    """
    Rewrite a stylesheet so every ``url(...)`` and ``@import`` goes through the
    proxy. Inline data and blob references are kept verbatim.
    """
    css = rewrite_css_urls(css, ctx)

    def _import(match: re.Match) -> str:
        value = match.group(1)
        rewritten = proxy_url(value, ctx)
        if rewritten == value:
            return match.group(0)
        return f'@import "{rewritten}"'

    return CSS_IMPORT_RE.sub(_import, css)
