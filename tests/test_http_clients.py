import unittest
from unittest.mock import patch

import httpx

from storefront.infrastructure.http_clients import HTTPStorageClient
from storefront.domain.exceptions import StorageServiceError
from tests.fakes import make_proof_file

REAL_ASYNC_CLIENT = httpx.AsyncClient


def mock_transport(handler):
    """Routes every AsyncClient created by the storage client through handler."""
    return patch(
        "httpx.AsyncClient",
        side_effect=lambda *args, **kwargs: REAL_ASYNC_CLIENT(transport=httpx.MockTransport(handler))
    )


class TestHTTPStorageClient(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self.client = HTTPStorageClient("http://storage.local/", "secret", "payment_proofs", timeout=2)
        self.requests = []

    async def test_upload_returns_stored_file(self):
        def handler(request):
            self.requests.append(request)
            return httpx.Response(201, json={"id": "f-1", "url": "http://storage.local/f-1"})

        with mock_transport(handler):
            stored = await self.client.upload(make_proof_file())

        self.assertEqual(stored.file_id, "f-1")
        self.assertEqual(stored.file_url, "http://storage.local/f-1")
        request = self.requests[0]
        self.assertEqual(request.method, "POST")
        self.assertEqual(request.url.path, "/api/storage/buckets/payment_proofs/files")
        self.assertEqual(request.headers["X-API-Key"], "secret")

    async def test_upload_error_status(self):
        with mock_transport(lambda request: httpx.Response(500)):
            with self.assertRaises(StorageServiceError):
                await self.client.upload(make_proof_file())

    async def test_upload_unexpected_body(self):
        responses = [
            httpx.Response(201, json={"url": "http://storage.local/f-1"}),
            httpx.Response(200, json=["f-1"]),
            httpx.Response(201, content=b"<html>ok</html>"),
        ]
        for response in responses:
            with self.subTest(body=response.content):
                with mock_transport(lambda request: response):
                    with self.assertRaises(StorageServiceError):
                        await self.client.upload(make_proof_file())

    async def test_upload_connection_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with mock_transport(handler):
            with self.assertRaises(StorageServiceError):
                await self.client.upload(make_proof_file())

    async def test_delete_tolerates_missing_file(self):
        def handler(request):
            self.requests.append(request)
            return httpx.Response(404)

        with mock_transport(handler):
            await self.client.delete("f-1")

        self.assertEqual(self.requests[0].method, "DELETE")
        self.assertEqual(self.requests[0].url.path, "/api/storage/buckets/payment_proofs/files/f-1")

    async def test_delete_error_status(self):
        with mock_transport(lambda request: httpx.Response(503)):
            with self.assertRaises(StorageServiceError):
                await self.client.delete("f-1")


if __name__ == "__main__":
    unittest.main()
