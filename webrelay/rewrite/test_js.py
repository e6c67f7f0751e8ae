"""Tests for the script literal heuristic."""

from urllib.parse import quote

from webrelay.rewrite.js import rewrite_js
from webrelay.rewrite.urls import RewriteContext

CTX = RewriteContext(base_url="https://a.com/app.js", self_origin="https://proxy.io")


def px(url: str) -> str:
    return "https://proxy.io/proxy?url=" + quote(url, safe="")


class TestRewriteJs:
    def test_double_and_single_quoted_literals(self):
        js = (
            'fetch("https://api.a.com/v1/items"); '
            "var img = 'http://img.a.com/x.png';"
        )
        result = rewrite_js(js, CTX)

        assert f'fetch("{px("https://api.a.com/v1/items")}")' in result
        assert f"'{px('http://img.a.com/x.png')}'" in result

    def test_relative_paths_not_touched(self):
        js = 'fetch("/api/items"); const p = "img/a.png";'
        assert rewrite_js(js, CTX) == js

    def test_too_short_literal_not_touched(self):
        js = 'var s = "http://a";'
        assert rewrite_js(js, CTX) == js

    def test_mismatched_quotes_not_touched(self):
        js = "var s = \"https://a.com/x';"
        assert rewrite_js(js, CTX) == js

    def test_font_references_kept(self):
        js = (
            'load("https://fonts.googleapis.com/css2?family=Inter");'
            'load("https://fonts.gstatic.com/s/inter/v1/a.ttf");'
            'load("https://cdn.a.com/f/icons.woff2");'
            'load("https://cdn.a.com/f/icons.WOFF");'
        )
        assert rewrite_js(js, CTX) == js

    def test_template_literals_ignored(self):
        js = "const u = `https://a.com/${id}`;"
        assert rewrite_js(js, CTX) == js

    def test_idempotent(self):
        js = 'location.href = "https://b.com/next";'
        once = rewrite_js(js, CTX)
        assert once != js
        assert rewrite_js(once, CTX) == once
