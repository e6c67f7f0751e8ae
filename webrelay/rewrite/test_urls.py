"""Tests for URL resolution, classification and proxy encoding."""

import pytest
from urllib.parse import parse_qs, urlsplit

from webrelay.rewrite.urls import (
    RewriteContext,
    decode_proxy_url,
    encode_proxy_url,
    is_excluded,
    is_self_url,
    proxy_url,
    resolve_url,
)

SELF = "https://proxy.io"


@pytest.fixture
def ctx():
    return RewriteContext(base_url="https://a.com/x/y", self_origin=SELF)


class TestResolveUrl:
    def test_parent_relative(self):
        assert resolve_url("https://a.com/x/y", "../z.png") == "https://a.com/z.png"

    def test_protocol_relative_inherits_scheme(self):
        cdn = "//cdn.b.com/f.js"
        assert resolve_url("https://a.com/x/y", cdn) == "https://cdn.b.com/f.js"
        assert resolve_url("http://a.com/", cdn) == "http://cdn.b.com/f.js"

    def test_empty_reference_returns_base(self):
        assert resolve_url("https://a.com/x", "") == "https://a.com/x"

    def test_absolute_returned_unchanged(self):
        result = resolve_url("https://a.com/", "  HTTP://Other.com/P ")
        assert result == "HTTP://Other.com/P"

    def test_root_relative(self):
        assert resolve_url("https://a.com/x/y?q=1", "/p") == "https://a.com/p"

    def test_malformed_reference_returned_unchanged(self):
        assert resolve_url("https://a.com/", "http://[broken") == "http://[broken"
        assert resolve_url("https://a.com/", "x://[bad") == "x://[bad"


class TestIsExcluded:
    @pytest.mark.parametrize(
        "reference",
        [
            "javascript:void(0)",
            "JavaScript:alert(1)",
            "mailto:me@example.com",
            "tel:+123",
            "data:image/png;base64,AAAA",
            "blob:https://a.com/uuid",
            "#section",
        ],
    )
    def test_excluded_schemes(self, reference):
        assert is_excluded(reference)

    @pytest.mark.parametrize("reference", ["/p", "https://a.com", "page.html#frag", ""])
    def test_rewritable(self, reference):
        assert not is_excluded(reference)


class TestIsSelfUrl:
    def test_same_origin(self):
        assert is_self_url("https://proxy.io/proxy?url=x", SELF)
        assert is_self_url("HTTPS://PROXY.IO/", SELF)

    def test_other_origin(self):
        assert not is_self_url("https://a.com/", SELF)
        assert not is_self_url("http://proxy.io/", SELF)
        assert not is_self_url("/relative", SELF)


class TestEncodeProxyUrl:
    def test_encodes_whole_url(self):
        assert (
            encode_proxy_url("https://a.com/p", SELF)
            == "https://proxy.io/proxy?url=https%3A%2F%2Fa.com%2Fp"
        )

    def test_reserved_characters_encoded(self):
        encoded = encode_proxy_url("https://a.com/s?q=a b&x=1#top", SELF)
        query = urlsplit(encoded).query
        assert "&" not in query and "#" not in encoded and " " not in encoded
        assert parse_qs(query)["url"] == ["https://a.com/s?q=a b&x=1#top"]

    @pytest.mark.parametrize("garbage", ["not a url", "ftp://a.com/f", "https://", ""])
    def test_garbage_returned_unchanged(self, garbage):
        assert encode_proxy_url(garbage, SELF) == garbage

    def test_round_trip(self):
        target = "https://a.com/path/ä?x=1&y=%20#frag"
        assert decode_proxy_url(encode_proxy_url(target, SELF)) == target


class TestProxyUrl:
    def test_relative_reference(self, ctx):
        assert (
            proxy_url("../z.png", ctx)
            == "https://proxy.io/proxy?url=https%3A%2F%2Fa.com%2Fz.png"
        )

    def test_excluded_untouched(self, ctx):
        for ref in ("#top", "mailto:x@y.z", " javascript:go()", "data:,hi"):
            assert proxy_url(ref, ctx) == ref

    def test_idempotent(self, ctx):
        once = proxy_url("https://b.com/page?x=1", ctx)
        assert proxy_url(once, ctx) == once

    def test_self_origin_untouched(self, ctx):
        assert proxy_url("https://proxy.io/", ctx) == "https://proxy.io/"

    def test_non_http_resolution_untouched(self, ctx):
        assert proxy_url("ftp://files.a.com/x", ctx) == "ftp://files.a.com/x"
        assert proxy_url("about:blank", ctx) == "about:blank"

    def test_blank_reference(self, ctx):
        assert proxy_url("   ", ctx) == "   "

    def test_with_base(self, ctx):
        moved = ctx.with_base("https://c.com/dir/")
        assert moved.self_origin == SELF
        assert decode_proxy_url(proxy_url("f.js", moved)) == "https://c.com/dir/f.js"
