import unittest

import httpx

from ocr_gateway.dto.error_response import ErrorKind
from ocr_gateway.processor.fetcher import (
    TLS_UNAVAILABLE_MESSAGE,
    UNSUPPORTED_SCHEME_MESSAGE,
    RemoteTarget,
    parse_remote_url,
)

from ..tests.utils_helpers import RecordingHandler, make_image_bytes, mock_fetcher, serve_bytes


class TestParseRemoteUrl(unittest.TestCase):

    def test_https_defaults(self):
        target = parse_remote_url("https://example.com")
        self.assertEqual(target, RemoteTarget(scheme="https", host="example.com", port=443, path="/"))
        self.assertTrue(target.use_tls)

    def test_http_defaults(self):
        target = parse_remote_url("http://example.com/images/a.jpg")
        self.assertEqual((target.scheme, target.host, target.port, target.path),
                         ("http", "example.com", 80, "/images/a.jpg"))
        self.assertFalse(target.use_tls)

    def test_explicit_port_and_query(self):
        target = parse_remote_url("http://example.com:8080/img/a.jpg?size=large")
        self.assertEqual(target.port, 8080)
        self.assertEqual(target.path, "/img/a.jpg?size=large")
        self.assertEqual(target.url, "http://example.com:8080/img/a.jpg?size=large")

    def test_rejects_other_schemes(self):
        for url in ("ftp://example.com/x.jpg", "file:///etc/hosts", "example.com/x.jpg", "HTTPS://example.com"):
            with self.subTest(url=url):
                with self.assertRaises(ValueError) as ctx:
                    parse_remote_url(url)
                self.assertEqual(str(ctx.exception), UNSUPPORTED_SCHEME_MESSAGE)

    def test_rejects_invalid_port(self):
        with self.assertRaises(ValueError):
            parse_remote_url("http://example.com:notaport/x.jpg")


class TestRemoteFetcher(unittest.TestCase):

    def setUp(self) -> None:
        self.png = make_image_bytes("PNG")

    def test_fetch_success(self):
        handler = RecordingHandler(serve_bytes(self.png))
        fetcher = mock_fetcher(handler)
        result = fetcher.fetch("http://images.example.com/a.png")
        self.assertTrue(result.ok)
        self.assertEqual(result.status_code, 200)
        self.assertEqual(result.content, self.png)
        self.assertEqual(handler.requests[0].url.host, "images.example.com")
        self.assertEqual(handler.requests[0].url.path, "/a.png")
        fetcher.close()

    def test_non_200_status_is_fetch_failed(self):
        fetcher = mock_fetcher(serve_bytes(b"not found", status_code=404))
        result = fetcher.fetch("http://example.com/missing.png")
        self.assertFalse(result.ok)
        self.assertEqual(result.failure.kind, ErrorKind.FETCH_FAILED)
        self.assertEqual(result.status_code, 404)
        self.assertIn("HTTP 404", result.failure.message)

    def test_transport_error_is_fetch_failed(self):
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        result = mock_fetcher(refuse).fetch("http://example.com/a.png")
        self.assertEqual(result.failure.kind, ErrorKind.FETCH_FAILED)
        self.assertEqual(result.failure.message, "Failed to fetch image: connection refused")

    def test_unsupported_scheme_never_connects(self):
        handler = RecordingHandler(serve_bytes(self.png))
        result = mock_fetcher(handler).fetch("ftp://example.com/x.jpg")
        self.assertEqual(result.failure.kind, ErrorKind.UNSUPPORTED_SCHEME)
        self.assertEqual(handler.requests, [])

    def test_invalid_url_is_fetch_failed(self):
        handler = RecordingHandler(serve_bytes(self.png))
        result = mock_fetcher(handler).fetch("http://example.com:notaport/x.jpg")
        self.assertEqual(result.failure.kind, ErrorKind.FETCH_FAILED)
        self.assertTrue(result.failure.message.startswith("Invalid URL"))
        self.assertEqual(handler.requests, [])

    def test_https_without_tls_capability(self):
        handler = RecordingHandler(serve_bytes(self.png))
        result = mock_fetcher(handler, tls_available=False).fetch("https://example.com/a.png")
        self.assertEqual(result.failure.kind, ErrorKind.TLS_UNAVAILABLE)
        self.assertEqual(result.failure.message, TLS_UNAVAILABLE_MESSAGE)
        self.assertEqual(handler.requests, [])

    def test_https_with_tls_capability(self):
        result = mock_fetcher(serve_bytes(self.png), tls_available=True).fetch("https://example.com/a.png")
        self.assertTrue(result.ok)

    def test_follows_redirects(self):
        def redirect(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/old.png":
                return httpx.Response(302, headers={"Location": "http://example.com/new.png"})
            return httpx.Response(200, content=self.png)

        handler = RecordingHandler(redirect)
        result = mock_fetcher(handler).fetch("http://example.com/old.png")
        self.assertTrue(result.ok)
        self.assertEqual(result.content, self.png)
        self.assertEqual([r.url.path for r in handler.requests], ["/old.png", "/new.png"])

    def test_redirect_to_https_without_tls_capability(self):
        def redirect(request: httpx.Request) -> httpx.Response:
            return httpx.Response(301, headers={"Location": "https://example.com/secure.png"})

        handler = RecordingHandler(redirect)
        result = mock_fetcher(handler, tls_available=False).fetch("http://example.com/a.png")
        self.assertEqual(result.failure.kind, ErrorKind.TLS_UNAVAILABLE)
        self.assertEqual(len(handler.requests), 1)

    def test_declared_body_over_limit(self):
        result = mock_fetcher(serve_bytes(b"x" * 2048), max_bytes=1024).fetch("http://example.com/big.png")
        self.assertEqual(result.failure.kind, ErrorKind.PAYLOAD_TOO_LARGE)
        self.assertEqual(result.failure.status_code, 413)

    def test_streamed_body_over_limit(self):
        def chunked(request: httpx.Request) -> httpx.Response:
            # an iterator body has no Content-Length, only the running total can catch it
            return httpx.Response(200, content=iter([b"a" * 600, b"b" * 600, b"c" * 600]))

        result = mock_fetcher(chunked, max_bytes=1000).fetch("http://example.com/big.png")
        self.assertEqual(result.failure.kind, ErrorKind.PAYLOAD_TOO_LARGE)
        self.assertEqual(result.content, b"")

    def test_body_at_limit_is_accepted(self):
        result = mock_fetcher(serve_bytes(b"x" * 1024), max_bytes=1024).fetch("http://example.com/a.png")
        self.assertTrue(result.ok)
        self.assertEqual(len(result.content), 1024)
