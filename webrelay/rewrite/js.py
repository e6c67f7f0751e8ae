import re

from webrelay.rewrite.urls import RewriteContext, proxy_url

# Quoted absolute URL literals. Textual heuristic: a URL-shaped string used as
# plain data is rewritten too.
JS_URL_LITERAL_RE = re.compile(
    r"""(['"])(https?://[^"'<>\s]{4,})\1""", re.IGNORECASE
)

# Cross-origin font loading breaks when routed through the proxy.
FONT_HOST_MARKERS = ("fonts.googleapis", "fonts.gstatic")
FONT_EXTENSIONS = (".woff2", ".woff")


def _is_font_reference(url: str) -> bool:
    lowered = url.lower()
    return any(marker in lowered for marker in FONT_HOST_MARKERS) or lowered.endswith(
        FONT_EXTENSIONS
    )


def rewrite_js(js: str, ctx: RewriteContext) -> str:
    def _literal(match: re.Match) -> str:
        quote_char, url = match.group(1), match.group(2)
        if _is_font_reference(url):
            return match.group(0)
        return f"{quote_char}{proxy_url(url, ctx)}{quote_char}"

    return JS_URL_LITERAL_RE.sub(_literal, js)
