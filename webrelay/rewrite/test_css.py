"""Tests for stylesheet rewriting."""

from webrelay.rewrite.css import rewrite_css, rewrite_css_urls
from webrelay.rewrite.urls import RewriteContext

CTX = RewriteContext(
    base_url="https://a.com/css/site.css", self_origin="https://proxy.io"
)


def px(url: str) -> str:
    from urllib.parse import quote

    return "https://proxy.io/proxy?url=" + quote(url, safe="")


def test_url_functions_all_quote_styles():
    css = """
    body { background: url("/bg.jpg") no-repeat; }
    .a { background-image: url('img/a.png'); }
    .b { background-image: url( //cdn.b.com/b.png ); }
    """
    result = rewrite_css(css, CTX)

    assert f"url({px('https://a.com/bg.jpg')})" in result
    assert f"url({px('https://a.com/css/img/a.png')})" in result
    assert f"url({px('https://cdn.b.com/b.png')})" in result


def test_font_face_sources():
    css = "@font-face { src: url('/fonts/x.woff2') format('woff2'); }"
    result = rewrite_css(css, CTX)
    assert f"url({px('https://a.com/fonts/x.woff2')}) format('woff2')" in result


def test_inline_data_and_blob_untouched():
    css = (
        ".i { background: url(data:image/png;base64,iVBORw0KGgo=); }"
        ".j { background: url('blob:https://a.com/1234'); }"
        ".k { background: url(\"DATA:image/gif;base64,R0lG\"); }"
    )
    assert rewrite_css(css, CTX) == css


def test_import_statements():
    css = '@import "reset.css";\n@import \'https://fonts.example.com/f.css\';'
    result = rewrite_css(css, CTX)

    assert f'@import "{px("https://a.com/css/reset.css")}"' in result
    assert f'@import "{px("https://fonts.example.com/f.css")}"' in result


def test_import_with_url_function():
    css = '@import url("theme.css") screen;'
    result = rewrite_css(css, CTX)
    assert result == f"@import url({px('https://a.com/css/theme.css')}) screen;"


def test_fragment_reference_untouched():
    css = "svg .x { fill: url(#gradient); }"
    assert rewrite_css(css, CTX) == css


def test_idempotent():
    css = "a { background: url(/x.png) } @import 'y.css';"
    once = rewrite_css(css, CTX)
    assert rewrite_css(once, CTX) == once


def test_rewrite_css_urls_ignores_imports():
    css = "@import 'y.css'; color: red; background: url(z.png)"
    result = rewrite_css_urls(css, CTX)
    assert "@import 'y.css'" in result
    assert f"url({px('https://a.com/css/z.png')})" in result
