import unittest

from fastapi.testclient import TestClient

from storefront.main import app
from storefront.presentation.api import get_storage_service, get_unit_of_work
from tests.fakes import FakeStorage, FakeUnitOfWork, InMemoryStore

READER = {"X-User-Id": "reader-1", "X-User-Name": "Ana", "X-User-Email": "ana@example.com", "X-User-Role": "leitor"}
OTHER_READER = {"X-User-Id": "reader-2", "X-User-Name": "Rui", "X-User-Role": "reader"}
ADMIN = {"X-User-Id": "admin-1", "X-User-Name": "Staff", "X-User-Role": "adm"}
AUTHOR = {"X-User-Id": "author-1", "X-User-Name": "Machado", "X-User-Role": "autor"}

PDF = ("comprovativo.pdf", b"%PDF-1.4 receipt", "application/pdf")


class APITestCase(unittest.TestCase):

    def setUp(self):
        self.store = InMemoryStore()
        self.store.add_book()
        self.store.add_book(id="free-1", title="O Alienista", price=0, digital_file_url="https://files.example.com/free-1.pdf")
        self.storage = FakeStorage()
        app.dependency_overrides[get_unit_of_work] = lambda: FakeUnitOfWork(self.store)
        app.dependency_overrides[get_storage_service] = lambda: self.storage
        self.addCleanup(app.dependency_overrides.clear)
        # no context manager, the lifespan would try to reach the database
        self.client = TestClient(app)

    def place_order(self, headers=READER, book_id="book-1", price=2500, key="key-1", email="ana@example.com"):
        return self.client.post(
            "/api/orders",
            headers=headers,
            json={
                "customer_name": "Ana Leitora",
                "customer_email": email,
                "items": [{"book_id": book_id, "title": "Dom Casmurro", "quantity": 1, "unit_price": price}],
                "total": price,
                "idempotency_key": key
            }
        )

    def place_paid_order(self):
        response = self.place_order()
        self.assertEqual(response.status_code, 201)
        return response.json()["payment_notification_id"]

    def upload(self, notification_id, headers=READER, file=PDF):
        return self.client.post(
            f"/api/payment-notifications/{notification_id}/proof", headers=headers, files={"file": file}
        )

    def set_status(self, notification_id, status, headers=ADMIN, notes=None):
        return self.client.post(
            f"/api/payment-notifications/{notification_id}/status",
            headers=headers,
            json={"status": status, "notes": notes}
        )


class TestOrdersAPI(APITestCase):

    def test_health(self):
        self.assertEqual(self.client.get("/health").json(), {"status": "healthy"})

    def test_checkout_requires_identity(self):
        self.assertEqual(self.place_order(headers={}).status_code, 401)

    def test_unknown_role_is_refused(self):
        self.assertEqual(self.place_order(headers={"X-User-Id": "x", "X-User-Role": "root"}).status_code, 401)

    def test_checkout_creates_pending_order(self):
        response = self.place_order()

        self.assertEqual(response.status_code, 201)
        body = response.json()
        self.assertEqual(body["status"], "Pendente")
        self.assertEqual(body["customer_id"], "reader-1")
        self.assertRegex(body["reference"], r"^BK-[A-Z0-9]{8}$")
        self.assertIsNotNone(body["payment_notification_id"])

    def test_retry_returns_same_order(self):
        first = self.place_order().json()
        second = self.place_order().json()

        self.assertEqual(first["id"], second["id"])
        self.assertEqual(len(self.store.tables.orders), 1)

    def test_free_checkout_is_validated(self):
        body = self.place_order(book_id="free-1", price=0, key="free").json()

        self.assertEqual(body["status"], "Validado")
        self.assertIsNone(body["payment_notification_id"])

    def test_invalid_checkout(self):
        self.assertEqual(self.place_order(price=100).status_code, 400)
        self.assertEqual(self.place_order(book_id="missing", key="k2").status_code, 404)

    def test_malformed_email_is_refused(self):
        for email in ("reader@...", "a@b..c"):
            self.assertEqual(self.place_order(email=email, key=email).status_code, 422)

        self.assertEqual(self.store.tables.orders, {})

    def test_order_visibility(self):
        order_id = self.place_order().json()["id"]

        self.assertEqual(self.client.get(f"/api/orders/{order_id}", headers=READER).status_code, 200)
        self.assertEqual(self.client.get(f"/api/orders/{order_id}", headers=OTHER_READER).status_code, 403)
        self.assertEqual(self.client.get(f"/api/orders/{order_id}", headers=ADMIN).status_code, 200)
        self.assertEqual(self.client.get("/api/orders/missing", headers=ADMIN).status_code, 404)

        self.assertEqual(len(self.client.get("/api/orders", headers=READER).json()), 1)
        self.assertEqual(self.client.get("/api/orders", headers=OTHER_READER).json(), [])
        self.assertEqual(len(self.client.get("/api/orders", headers=ADMIN).json()), 1)


class TestPaymentAPI(APITestCase):

    def test_proof_upload_flow(self):
        notification_id = self.place_paid_order()

        response = self.upload(notification_id)
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()["file_url"], "https://storage.example.com/file-1")

        self.assertEqual(self.upload(notification_id).status_code, 409)
        proof = self.client.get(f"/api/payment-notifications/{notification_id}/proof", headers=ADMIN)
        self.assertEqual(proof.status_code, 200)
        other = self.client.get(f"/api/payment-notifications/{notification_id}/proof", headers=OTHER_READER)
        self.assertEqual(other.status_code, 403)

    def test_proof_upload_errors(self):
        notification_id = self.place_paid_order()

        self.assertEqual(self.upload(notification_id, headers=OTHER_READER).status_code, 403)
        self.assertEqual(self.upload(notification_id, file=("a.txt", b"hello", "text/plain")).status_code, 400)
        self.assertEqual(self.upload("missing").status_code, 404)

        self.storage.fail_upload = True
        self.assertEqual(self.upload(notification_id).status_code, 503)

    def test_only_admin_reviews_payments(self):
        notification_id = self.place_paid_order()
        self.upload(notification_id)

        self.assertEqual(self.set_status(notification_id, "confirmed", headers=READER).status_code, 403)

        response = self.set_status(notification_id, "confirmed")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], "confirmed")

        self.assertEqual(self.set_status(notification_id, "rejected").status_code, 409)

    def test_reader_can_cancel_own_notification(self):
        notification_id = self.place_paid_order()

        self.assertEqual(self.set_status(notification_id, "cancelled", headers=OTHER_READER).status_code, 403)
        response = self.set_status(notification_id, "cancelled", headers=READER)

        self.assertEqual(response.status_code, 200)
        order = self.client.get("/api/orders", headers=READER).json()[0]
        self.assertEqual(order["status"], "Cancelado")

    def test_notification_listing(self):
        self.place_paid_order()

        self.assertEqual(len(self.client.get("/api/payment-notifications", headers=READER).json()), 1)
        self.assertEqual(self.client.get("/api/payment-notifications", headers=OTHER_READER).json(), [])
        pending = self.client.get("/api/payment-notifications?status=pending", headers=ADMIN).json()
        self.assertEqual(len(pending), 1)
        confirmed = self.client.get("/api/payment-notifications?status=confirmed", headers=ADMIN).json()
        self.assertEqual(confirmed, [])


class TestBooksAPI(APITestCase):

    def test_access_and_download(self):
        free = self.client.get("/api/books/free-1/download")
        self.assertEqual(free.status_code, 200)
        self.assertEqual(free.json()["url"], "https://files.example.com/free-1.pdf")

        self.assertFalse(self.client.get("/api/books/book-1/access").json()["can_download"])
        self.assertEqual(self.client.get("/api/books/book-1/download", headers=READER).status_code, 403)

        notification_id = self.place_paid_order()
        self.upload(notification_id)
        self.set_status(notification_id, "confirmed")

        self.assertTrue(self.client.get("/api/books/book-1/access", headers=READER).json()["can_download"])
        self.assertEqual(self.client.get("/api/books/book-1/download", headers=READER).status_code, 200)
        self.assertEqual(self.client.get("/api/books/missing/access").status_code, 404)

        library = self.client.get("/api/library", headers=READER).json()
        self.assertEqual([book["id"] for book in library], ["book-1"])

    def test_reviews_views_and_stats(self):
        review = self.client.post("/api/books/book-1/reviews", headers=READER, json={"rating": 4, "comment": "Bom"})
        self.assertEqual(review.status_code, 201)
        self.assertEqual(review.json()["user_name"], "Ana")

        bad = self.client.post("/api/books/book-1/reviews", headers=READER, json={"rating": 4.5})
        self.assertEqual(bad.status_code, 400)
        self.assertEqual(self.client.post("/api/books/book-1/reviews", json={"rating": 4}).status_code, 401)

        self.assertTrue(self.client.post("/api/books/book-1/views").json()["counted"])
        self.assertEqual(self.client.post("/api/books/missing/views").status_code, 404)

        stats = self.client.get("/api/books/book-1/stats").json()
        self.assertEqual(stats["views"], 1)
        self.assertEqual(stats["review_count"], 1)
        self.assertEqual(stats["average_rating"], 4.0)


class TestDashboardsAPI(APITestCase):

    def test_admin_stats_need_admin(self):
        self.assertEqual(self.client.get("/api/admin/stats", headers=READER).status_code, 403)

        response = self.client.get("/api/admin/stats", headers=ADMIN)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["total_books"], 2)

    def test_author_dashboard(self):
        notification_id = self.place_paid_order()
        self.upload(notification_id)
        self.set_status(notification_id, "confirmed")

        self.assertEqual(self.client.get("/api/authors/author-1/stats", headers=READER).status_code, 403)

        stats = self.client.get("/api/authors/author-1/stats", headers=AUTHOR).json()
        self.assertEqual(stats["total_sales"], 1)
        self.assertEqual(stats["total_royalties"], 1750)

        sales = self.client.get("/api/authors/author-1/sales", headers=ADMIN).json()
        self.assertEqual(len(sales), 1)
        self.assertEqual(sales[0]["royalty"], 1750)


if __name__ == "__main__":
    unittest.main()
