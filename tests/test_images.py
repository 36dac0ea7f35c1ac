"""Tests for image reference resolution."""
import base64

import pytest
import requests

from catalog.services.images import ExternalFetchFailure, encode_data_uri, sniff_image

URL = "https://cdn.example.com/milk.png"


class TestPassThrough:
    """Values that never trigger a fetch."""

    @pytest.mark.parametrize("raw", [None, "", "   "])
    def test_empty_resolves_to_empty(self, image_resolver, fake_http, raw):
        assert image_resolver.resolve(raw) == ""
        assert fake_http.calls == []

    def test_data_uri_kept_byte_identical(self, image_resolver, fake_http, png_bytes):
        data_uri = encode_data_uri(png_bytes, "image/png")

        assert image_resolver.resolve(data_uri) == data_uri
        assert fake_http.calls == []

    def test_opaque_reference_kept(self, image_resolver, fake_http):
        assert image_resolver.resolve("images/milk.png") == "images/milk.png"
        assert image_resolver.resolve("ftp://files.example.com/a.png") == "ftp://files.example.com/a.png"
        assert fake_http.calls == []


class TestRemoteFetch:
    """URLs are downloaded once and inlined."""

    def test_fetched_image_encoded_with_declared_type(self, image_resolver, fake_http, png_bytes, fake_response):
        fake_http.add(URL, fake_response(200, png_bytes, {"Content-Type": "image/png"}))

        result = image_resolver.resolve(URL)

        assert result == "data:image/png;base64," + base64.b64encode(png_bytes).decode("ascii")
        assert fake_http.calls == [URL]

    def test_content_type_parameters_dropped(self, image_resolver, fake_http, png_bytes, fake_response):
        fake_http.add(URL, fake_response(200, png_bytes, {"Content-Type": "image/png; charset=binary"}))

        assert image_resolver.resolve(URL).startswith("data:image/png;base64,")

    def test_detected_type_used_without_header(self, image_resolver, fake_http, png_bytes, fake_response):
        fake_http.add(URL, fake_response(200, png_bytes))

        assert image_resolver.resolve(URL).startswith("data:image/png;base64,")

    def test_declared_image_type_kept_without_decoding(self, image_resolver, fake_http, fake_response):
        url = "https://cdn.example.com/a.svg"
        svg = b'<svg xmlns="http://www.w3.org/2000/svg" width="4" height="4"><rect width="4" height="4"/></svg>'
        fake_http.add(url, fake_response(200, svg, {"Content-Type": "image/svg+xml"}))

        assert image_resolver.resolve(url) == encode_data_uri(svg, "image/svg+xml")

    def test_mistyped_image_detected(self, image_resolver, fake_http, png_bytes, fake_response):
        fake_http.add(URL, fake_response(200, png_bytes, {"Content-Type": "application/octet-stream"}))

        assert image_resolver.resolve(URL).startswith("data:image/png;base64,")

    def test_scheme_match_is_case_insensitive(self, image_resolver, fake_http, png_bytes, fake_response):
        url = "HTTP://cdn.example.com/milk.png"
        fake_http.add(url, fake_response(200, png_bytes, {"Content-Type": "image/png"}))

        assert image_resolver.resolve(url).startswith("data:image/png")


class TestFetchFailures:
    """Failures yield an empty image and are never raised."""

    def test_unreachable_host(self, image_resolver, fake_http):
        assert image_resolver.resolve("http://unreachable.invalid/x.png") == ""
        assert fake_http.calls == ["http://unreachable.invalid/x.png"]

    def test_http_error_status(self, image_resolver, fake_http, fake_response):
        fake_http.add(URL, fake_response(404, b"not found", {"Content-Type": "text/html"}))
        assert image_resolver.resolve(URL) == ""

    def test_timeout(self, image_resolver, fake_http):
        fake_http.add(URL, requests.Timeout("read timed out"))
        assert image_resolver.resolve(URL) == ""

    def test_non_image_body(self, image_resolver, fake_http, fake_response):
        fake_http.add(URL, fake_response(200, b"<html>nope</html>", {"Content-Type": "text/html"}))
        assert image_resolver.resolve(URL) == ""

    def test_untyped_undecodable_body(self, image_resolver, fake_http, fake_response):
        fake_http.add(URL, fake_response(200, b"\x00\x01garbage"))
        assert image_resolver.resolve(URL) == ""

    def test_empty_body(self, image_resolver, fake_http, fake_response):
        fake_http.add(URL, fake_response(200, b"", {"Content-Type": "image/png"}))
        assert image_resolver.resolve(URL) == ""

    def test_fetch_data_uri_raises_for_direct_callers(self, image_resolver):
        with pytest.raises(ExternalFetchFailure) as exc_info:
            image_resolver.fetch_data_uri("http://unreachable.invalid/x.png")
        assert exc_info.value.url == "http://unreachable.invalid/x.png"


class TestSniffImage:

    def test_png_detected(self, png_bytes):
        assert sniff_image(png_bytes) == "image/png"

    def test_garbage_rejected(self):
        with pytest.raises(ValueError):
            sniff_image(b"\x00\x01garbage")
