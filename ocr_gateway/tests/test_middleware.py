import unittest

from fastapi import FastAPI, Request
from fastapi.testclient import TestClient

from ocr_gateway.api.middleware import PayloadLimitMiddleware
from ocr_gateway.app import create_app
from ocr_gateway.utils.utils import ERROR_KIND_HEADER

from ..tests.utils_helpers import FakeEngine, mock_fetcher, serve_bytes


class TestRequestTiming(unittest.TestCase):

    def setUp(self) -> None:
        self.client = TestClient(create_app(engine=FakeEngine(), fetcher=mock_fetcher(serve_bytes(b""))))

    def tearDown(self) -> None:
        self.client.close()

    def test_logs_method_path_status_and_duration(self):
        # first request builds the middleware stack
        self.client.get("/api/health")

        with self.assertLogs("http_access", level="INFO") as captured:
            response = self.client.get("/api/version")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(captured.records), 1)
        message = captured.records[0].getMessage()
        self.assertTrue(message.startswith("[GET] /api/version - Status: 200 - Duration: "))
        self.assertTrue(message.endswith("ms"))

    def test_logs_error_responses_too(self):
        self.client.get("/api/health")

        with self.assertLogs("http_access", level="INFO") as captured:
            response = self.client.post("/api/ocr/base64", json={"image": "###"})

        self.assertEqual(response.status_code, 400)
        self.assertIn("[POST] /api/ocr/base64 - Status: 400", captured.records[0].getMessage())

    def test_response_is_not_altered(self):
        response = self.client.get("/api/version")
        self.assertEqual(response.json()["api_version"], "v1")
        self.assertEqual(response.headers["content-type"], "application/json")


class TestCors(unittest.TestCase):

    def setUp(self) -> None:
        self.client = TestClient(create_app(engine=FakeEngine(), fetcher=mock_fetcher(serve_bytes(b""))))

    def tearDown(self) -> None:
        self.client.close()

    def test_simple_request_allows_any_origin(self):
        response = self.client.get("/api/health", headers={"Origin": "http://dashboard.example.com"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.headers["access-control-allow-origin"], "*")

    def test_preflight(self):
        response = self.client.options("/api/ocr/base64", headers={
            "Origin": "http://dashboard.example.com",
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "Content-Type",
        })
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.headers["access-control-allow-origin"], "*")
        self.assertIn("POST", response.headers["access-control-allow-methods"])

    def test_preflight_rejects_other_methods(self):
        response = self.client.options("/api/ocr/base64", headers={
            "Origin": "http://dashboard.example.com",
            "Access-Control-Request-Method": "DELETE",
        })
        self.assertEqual(response.status_code, 400)

    def test_error_responses_carry_cors_headers(self):
        response = self.client.post("/api/ocr/url",
                                    json={"url": "ftp://example.com/a.png"},
                                    headers={"Origin": "http://dashboard.example.com"})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.headers["access-control-allow-origin"], "*")


class TestPayloadLimit(unittest.TestCase):

    def setUp(self) -> None:
        self.app = FastAPI()

        @self.app.post("/echo")
        async def echo(request: Request) -> dict:
            body = await request.body()
            return {"ok": True, "size": len(body)}

        self.app.add_middleware(PayloadLimitMiddleware, max_body_size=10)
        self.client = TestClient(self.app)

    def tearDown(self) -> None:
        self.client.close()

    def test_body_over_limit_is_rejected(self):
        response = self.client.post("/echo", content=b"x" * 11)
        self.assertEqual(response.status_code, 413)
        self.assertEqual(response.json(), {"code": 413, "error": "Request body exceeds 10 bytes limit"})
        self.assertEqual(response.headers[ERROR_KIND_HEADER], "payload_too_large")

    def test_body_at_limit_passes(self):
        response = self.client.post("/echo", content=b"x" * 10)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"ok": True, "size": 10})

    def test_request_without_body_passes(self):
        response = self.client.post("/echo")
        self.assertEqual(response.status_code, 200)

    def test_chunked_body_over_limit_is_rejected(self):
        def chunks():
            yield b"x" * 6
            yield b"x" * 6

        response = self.client.post("/echo", content=chunks())
        self.assertEqual(response.status_code, 413)
        self.assertEqual(response.json(), {"code": 413, "error": "Request body exceeds 10 bytes limit"})
        self.assertEqual(response.headers[ERROR_KIND_HEADER], "payload_too_large")

    def test_chunked_body_within_limit_passes(self):
        def chunks():
            yield b"x" * 4
            yield b"x" * 4

        response = self.client.post("/echo", content=chunks())
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"ok": True, "size": 8})
