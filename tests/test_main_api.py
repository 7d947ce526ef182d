import os
import sys
import unittest


ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
SRC = os.path.join(ROOT, "src")
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)
if SRC not in sys.path:
    sys.path.insert(0, SRC)

import httpx
from fastapi.testclient import TestClient

os.environ["BASIN_DEV_BACKEND"] = "1"
os.environ["APP_ENV"] = "dev"

import app.main as main
from app import dev_backend
from app.transport import ItemsTransport


USERS_FIELDS = [
    {"name": "id", "is_primary": True},
    {"name": "name", "is_required": True, "created_at": "2024-01-01"},
    {"name": "email", "created_at": "2024-01-02"},
]


class TestMainApi(unittest.TestCase):
    def setUp(self) -> None:
        self.backend = dev_backend.create_app()
        self.backend.state.collections.register("users", USERS_FIELDS)
        self._saved_transport = main.transport
        main.transport = ItemsTransport("http://dev", http_transport=httpx.ASGITransport(app=self.backend))
        self.client = TestClient(main.app)

    def tearDown(self) -> None:
        main.transport = self._saved_transport

    def _create(self, record: dict) -> httpx.Response:
        return self.client.post("/collections/users/items", json=record)

    def test_health(self) -> None:
        res = self.client.get("/health")
        body = res.json()
        self.assertEqual(res.status_code, 200)
        self.assertTrue(body["ok"])
        self.assertIn("api", body["config"])

    def test_layout_from_schema(self) -> None:
        body = self.client.get("/collections/users/layout").json()
        self.assertTrue(body["ok"], body)
        self.assertEqual(body["layout"]["source"], "schema")
        self.assertEqual([c["key"] for c in body["layout"]["columns"]], ["id", "name", "email"])
        self.assertEqual([f["key"] for f in body["layout"]["form"]], ["name", "email"])
        email = [f for f in body["layout"]["form"] if f["key"] == "email"][0]
        self.assertEqual(email["widget"], "email")

    def test_layout_falls_back_without_schema(self) -> None:
        body = self.client.get("/collections/ghosts/layout").json()
        self.assertEqual(body["layout"]["source"], "fallback")
        self.assertEqual([f["key"] for f in body["layout"]["form"]], ["name", "created_at"])

    def test_validate_endpoint(self) -> None:
        body = self.client.post("/collections/users/validate", json={"data": {"email": "bad"}, "mode": "edit"}).json()
        self.assertTrue(body["ok"])
        self.assertFalse(body["valid"])
        self.assertEqual([e["code"] for e in body["field_errors"]], ["INVALID_EMAIL"])

        body = self.client.post("/collections/users/validate", json={"data": {"name": "Ada"}}).json()
        self.assertTrue(body["valid"])

        res = self.client.post("/collections/users/validate", json={"data": {}, "mode": "bulk"})
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.json()["errors"][0]["code"], "MODE_INVALID")

    def test_create_rejects_invalid_record_before_upstream(self) -> None:
        res = self._create({"name": "", "email": "ada@example.com"})
        self.assertEqual(res.status_code, 400)
        body = res.json()
        self.assertFalse(body["ok"])
        self.assertEqual(body["errors"][0]["code"], "REQUIRED_FIELD")
        self.assertEqual(self.backend.state.items.count("users"), 0)

    def test_item_lifecycle(self) -> None:
        res = self._create({"name": "Ada", "email": "ada@example.com"})
        self.assertEqual(res.status_code, 200, res.text)
        item_id = res.json()["data"]["id"]

        listed = self.client.get("/collections/users/items").json()
        self.assertTrue(listed["success"])
        self.assertEqual([item["id"] for item in listed["data"]], [item_id])

        fetched = self.client.get(f"/collections/users/items/{item_id}").json()
        self.assertEqual(fetched["data"]["name"], "Ada")

        updated = self.client.put(f"/collections/users/items/{item_id}", json={"name": "Grace"})
        self.assertEqual(updated.status_code, 200, updated.text)
        self.assertEqual(updated.json()["data"]["name"], "Grace")

        deleted = self.client.delete(f"/collections/users/items/{item_id}")
        self.assertEqual(deleted.status_code, 200)
        again = self.client.delete(f"/collections/users/items/{item_id}")
        self.assertEqual(again.status_code, 404)
        error = again.json()["errors"][0]
        self.assertEqual(error["code"], "TRANSPORT_ERROR")
        self.assertEqual(error["detail"], {"category": "not_found", "status": 404})

    def test_record_wrapper_is_accepted(self) -> None:
        res = self._create({"record": {"name": "Ada"}})
        self.assertEqual(res.status_code, 200, res.text)

    def test_list_pagination(self) -> None:
        for name in ("c", "a", "b"):
            self._create({"name": name})
        body = self.client.get("/collections/users/items", params={"sort": "name", "limit": 2}).json()
        self.assertEqual([item["name"] for item in body["data"]], ["a", "b"])

    def test_missing_item(self) -> None:
        res = self.client.get("/collections/users/items/nope")
        self.assertEqual(res.status_code, 404)
        self.assertEqual(res.json()["errors"][0]["code"], "UPSTREAM_NOT_FOUND")
        res = self.client.put("/collections/users/items/nope", json={"name": "x"})
        self.assertEqual(res.status_code, 404)

    def test_upstream_unreachable(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        main.transport = ItemsTransport("http://down", http_transport=httpx.MockTransport(handler))
        res = self.client.get("/collections/users/items")
        self.assertEqual(res.status_code, 503)
        body = res.json()
        self.assertEqual(body["errors"][0]["code"], "UPSTREAM_NETWORK")
        self.assertIn("(network)", body["errors"][0]["message"])

    def test_upstream_auth_failure(self) -> None:
        main.transport = ItemsTransport(
            "http://backend",
            http_transport=httpx.MockTransport(lambda request: httpx.Response(401, json={"message": "bad token"})),
        )
        res = self.client.get("/collections/users/items")
        self.assertEqual(res.status_code, 401)
        self.assertEqual(res.json()["errors"][0]["message"], "bad token (401)")

    def _upstream_rejecting(self, method: str, status: int) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.method == method:
                return httpx.Response(status, json={"message": "rejected"})
            return httpx.Response(200, json={"data": []})

        main.transport = ItemsTransport("http://backend", http_transport=httpx.MockTransport(handler))

    def test_mutation_keeps_upstream_auth_status(self) -> None:
        self._upstream_rejecting("DELETE", 403)
        res = self.client.delete("/collections/users/items/1")
        self.assertEqual(res.status_code, 403)
        error = res.json()["errors"][0]
        self.assertEqual(error["code"], "TRANSPORT_ERROR")
        self.assertEqual(error["detail"], {"category": "auth", "status": 403})

    def test_mutation_keeps_upstream_client_status(self) -> None:
        self._upstream_rejecting("PUT", 409)
        res = self.client.put("/collections/users/items/1", json={"name": "Grace"})
        self.assertEqual(res.status_code, 409)
        self.assertEqual(res.json()["errors"][0]["detail"], {"category": "client", "status": 409})

    def test_mutation_server_failure_is_bad_gateway(self) -> None:
        self._upstream_rejecting("POST", 500)
        res = self._create({"name": "Ada"})
        self.assertEqual(res.status_code, 502)

    def test_collection_metadata(self) -> None:
        body = self.client.get("/collections/users/metadata").json()
        self.assertTrue(body["ok"], body)
        self.assertEqual(body["data"]["display_name"], "Users")
        res = self.client.get("/collections/ghosts/metadata")
        self.assertEqual(res.status_code, 404)
        self.assertEqual(res.json()["errors"][0]["code"], "UPSTREAM_NOT_FOUND")


if __name__ == "__main__":
    unittest.main()
